"""
Prayer journal API endpoints.

Provides endpoints for:
- Writing, listing, editing and deleting prayers
- Marking favourites
- Category list and personal statistics
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from mindchat.core.deps import get_db, get_current_user, parse_uuid
from mindchat.core.exceptions import NotFoundError
from mindchat.models.prayer import Prayer
from mindchat.models.user import User
from mindchat.schemas.prayer import (
    PRAYER_CATEGORIES,
    PrayerCategoriesResponse,
    PrayerCategory,
    PrayerCreate,
    PrayerListResponse,
    PrayerOut,
    PrayerStatsResponse,
    PrayerUpdate,
)
from mindchat.services.audit import AuditAction, TargetType, get_client_info, log_action
from mindchat.services.journal_stats import prayer_stats
from mindchat.services.pagination import get_page_info

router = APIRouter(prefix="/prayers", tags=["prayers"])


def prayer_to_out(prayer: Prayer) -> PrayerOut:
    return PrayerOut(
        id=str(prayer.id),
        title=prayer.title,
        category=prayer.category,
        content=prayer.content,
        emotions=prayer.emotions or [],
        minutes_spent=prayer.minutes_spent,
        privacy=prayer.privacy,
        is_favorite=prayer.is_favorite,
        created_at=prayer.created_at,
        updated_at=prayer.updated_at,
    )


def get_owned_prayer(db: Session, prayer_id: str, user: User) -> Prayer:
    """Another user's prayer answers 404, like a missing one."""
    pid = parse_uuid(prayer_id, "prayer ID")
    prayer = db.query(Prayer).filter(
        Prayer.id == pid,
        Prayer.user_id == user.id,
    ).first()
    if not prayer:
        raise NotFoundError("Prayer not found")
    return prayer


def audit_prayer_action(
    db: Session,
    request: Request,
    action: str,
    user: User,
    prayer_id: UUID,
    details: Optional[dict] = None,
) -> None:
    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=action,
        user_id=user.id,
        target_type=TargetType.PRAYER,
        target_id=str(prayer_id),
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )


# =============================================================================
# Reference data and statistics
# =============================================================================

@router.get("/categories", response_model=PrayerCategoriesResponse)
def list_categories():
    """Prayer categories accepted by create and update."""
    return PrayerCategoriesResponse(categories=PRAYER_CATEGORIES)


@router.get("/stats", response_model=PrayerStatsResponse)
def get_prayer_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Totals, category distribution and short insights for the current user."""
    return prayer_stats(db, current_user.id)


# =============================================================================
# Prayers
# =============================================================================

@router.get("", response_model=PrayerListResponse)
def list_prayers(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    category: Optional[PrayerCategory] = None,
    favorites: bool = False,
    search: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List the user's prayers, newest first.

    - **category**: Only this category
    - **favorites**: Only favourites
    - **search**: Case-insensitive match on title or content
    """
    query = db.query(Prayer).filter(Prayer.user_id == current_user.id)
    if category:
        query = query.filter(Prayer.category == category)
    if favorites:
        query = query.filter(Prayer.is_favorite.is_(True))
    if search:
        query = query.filter(
            or_(
                Prayer.title.ilike(f"%{search}%"),
                Prayer.content.ilike(f"%{search}%"),
            )
        )

    page_info = get_page_info(page, page_size, query.count())
    prayers = (
        query.order_by(Prayer.created_at.desc(), Prayer.id)
        .offset(page_info.offset)
        .limit(page_info.page_size)
        .all()
    )
    return PrayerListResponse(
        prayers=[prayer_to_out(p) for p in prayers],
        total=page_info.total,
        page=page_info.page,
        page_size=page_info.page_size,
        total_pages=page_info.total_pages,
        has_next=page_info.has_next,
        has_prev=page_info.has_prev,
    )


@router.post("", response_model=PrayerOut, status_code=status.HTTP_201_CREATED)
def create_prayer(
    data: PrayerCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Write a prayer.

    - **title**, **category**, **content**: Required
    - **minutes_spent**: Optional time spent praying
    """
    prayer = Prayer(user_id=current_user.id, **data.model_dump())
    db.add(prayer)
    db.commit()
    db.refresh(prayer)

    audit_prayer_action(
        db,
        request,
        AuditAction.CREATE_PRAYER,
        current_user,
        prayer.id,
        details={"category": prayer.category},
    )
    return prayer_to_out(prayer)


@router.get("/{prayer_id}", response_model=PrayerOut)
def get_prayer(
    prayer_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return prayer_to_out(get_owned_prayer(db, prayer_id, current_user))


@router.put("/{prayer_id}", response_model=PrayerOut)
def update_prayer(
    prayer_id: str,
    data: PrayerUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a prayer. Fields left out (or null) keep their value."""
    prayer = get_owned_prayer(db, prayer_id, current_user)
    changes = data.model_dump(exclude_none=True)
    for name, value in changes.items():
        setattr(prayer, name, value)
    db.commit()
    db.refresh(prayer)

    audit_prayer_action(
        db,
        request,
        AuditAction.UPDATE_PRAYER,
        current_user,
        prayer.id,
        details={"fields": sorted(changes)},
    )
    return prayer_to_out(prayer)


@router.patch("/{prayer_id}/favorite", response_model=PrayerOut)
def toggle_favorite(
    prayer_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Flip the favourite flag."""
    prayer = get_owned_prayer(db, prayer_id, current_user)
    prayer.is_favorite = not prayer.is_favorite
    db.commit()
    db.refresh(prayer)
    return prayer_to_out(prayer)


@router.delete("/{prayer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prayer(
    prayer_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    prayer = get_owned_prayer(db, prayer_id, current_user)
    pid = prayer.id
    db.delete(prayer)
    db.commit()
    audit_prayer_action(db, request, AuditAction.DELETE_PRAYER, current_user, pid)
