"""
Faith diary API endpoints.

Provides endpoints for:
- Writing, listing, editing and deleting diary entries
- Full-text search and date-range timelines
- Reference lists (climates, emotions) and personal statistics
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from mindchat.core.deps import get_db, get_current_user, parse_uuid
from mindchat.core.exceptions import BadRequestError, NotFoundError
from mindchat.models.diary_entry import DiaryEntry
from mindchat.models.user import User
from mindchat.schemas.diary import (
    DIARY_EMOTIONS,
    EMOTIONAL_CLIMATES,
    Climate,
    ClimatesResponse,
    DiaryDateRangeResponse,
    DiaryEntryCreate,
    DiaryEntryListResponse,
    DiaryEntryOut,
    DiaryEntrySummary,
    DiaryEntryUpdate,
    DiarySearchResponse,
    DiaryStatsResponse,
    EmotionsResponse,
)
from mindchat.services.audit import AuditAction, TargetType, get_client_info, log_action
from mindchat.services.journal_stats import as_utc, diary_stats
from mindchat.services.pagination import get_page_info

router = APIRouter(prefix="/diary", tags=["diary"])

LIST_FIELDS = ("emotions", "verses", "gratitude", "prayers")
# Columns that may not be cleared with an explicit null
REQUIRED_FIELDS = ("content", "privacy", "is_favorite")


def entry_to_out(entry: DiaryEntry) -> DiaryEntryOut:
    return DiaryEntryOut(
        id=str(entry.id),
        title=entry.title,
        content=entry.content,
        emotions=entry.emotions or [],
        verses=entry.verses or [],
        gratitude=entry.gratitude or [],
        prayers=entry.prayers or [],
        reflections=entry.reflections,
        climate=entry.climate,
        privacy=entry.privacy,
        is_favorite=entry.is_favorite,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def entry_to_summary(entry: DiaryEntry) -> DiaryEntrySummary:
    return DiaryEntrySummary(
        id=str(entry.id),
        title=entry.title,
        emotions=entry.emotions or [],
        climate=entry.climate,
        gratitude=entry.gratitude or [],
        created_at=entry.created_at,
    )


def entry_matches(entry: DiaryEntry, query: str) -> bool:
    """
    Substring match on the text fields, or an exact item in verses,
    gratitude or prayers. Both ignore case.
    """
    needle = query.casefold()
    for text in (entry.title, entry.content, entry.reflections):
        if text and needle in text.casefold():
            return True
    for name in ("verses", "gratitude", "prayers"):
        if any(item.casefold() == needle for item in getattr(entry, name) or []):
            return True
    return False


def get_owned_entry(db: Session, entry_id: str, user: User) -> DiaryEntry:
    """Another user's entry answers 404, like a missing one."""
    eid = parse_uuid(entry_id, "diary entry ID")
    entry = db.query(DiaryEntry).filter(
        DiaryEntry.id == eid,
        DiaryEntry.user_id == user.id,
    ).first()
    if not entry:
        raise NotFoundError("Diary entry not found")
    return entry


def audit_entry_action(
    db: Session,
    request: Request,
    action: str,
    user: User,
    entry_id: UUID,
    details: Optional[dict] = None,
) -> None:
    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=action,
        user_id=user.id,
        target_type=TargetType.DIARY_ENTRY,
        target_id=str(entry_id),
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )


# =============================================================================
# Reference data and statistics
# =============================================================================

@router.get("/climates", response_model=ClimatesResponse)
def list_climates():
    """Emotional climates an entry can be tagged with."""
    return ClimatesResponse(climates=EMOTIONAL_CLIMATES)


@router.get("/emotions", response_model=EmotionsResponse)
def list_emotions():
    """Suggested emotion labels."""
    return EmotionsResponse(emotions=DIARY_EMOTIONS)


@router.get("/stats", response_model=DiaryStatsResponse)
def get_diary_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Totals, distributions, activity and short insights for the current user."""
    return diary_stats(db, current_user.id)


# =============================================================================
# Search and timelines
# =============================================================================

@router.get("/search", response_model=DiarySearchResponse)
def search_entries(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Search the user's entries, newest first.

    Matches text in title, content and reflections, or a whole item in
    verses, gratitude or prayers.
    """
    entries = (
        db.query(DiaryEntry)
        .filter(DiaryEntry.user_id == current_user.id)
        .order_by(DiaryEntry.created_at.desc(), DiaryEntry.id)
        .all()
    )
    found = [entry for entry in entries if entry_matches(entry, q)][:limit]
    return DiarySearchResponse(query=q, entries=[entry_to_out(e) for e in found])


@router.get("/date-range", response_model=DiaryDateRangeResponse)
def entries_in_range(
    start: datetime,
    end: datetime,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Entries created between start and end (inclusive), oldest first."""
    start, end = as_utc(start), as_utc(end)
    if start >= end:
        raise BadRequestError("start must be before end")

    entries = (
        db.query(DiaryEntry)
        .filter(
            DiaryEntry.user_id == current_user.id,
            DiaryEntry.created_at >= start,
            DiaryEntry.created_at <= end,
        )
        .order_by(DiaryEntry.created_at.asc(), DiaryEntry.id)
        .all()
    )
    return DiaryDateRangeResponse(
        start=start,
        end=end,
        entries=[entry_to_summary(e) for e in entries],
    )


# =============================================================================
# Entries
# =============================================================================

@router.get("", response_model=DiaryEntryListResponse)
def list_entries(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    climate: Optional[Climate] = None,
    favorites: bool = False,
    search: Optional[str] = Query(None, max_length=200),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List the user's entries, newest first.

    - **climate**: Only this climate
    - **favorites**: Only favourites
    - **search**: Case-insensitive match on title, content or reflections
    - **start_date** / **end_date**: Creation time bounds
    """
    query = db.query(DiaryEntry).filter(DiaryEntry.user_id == current_user.id)
    if climate:
        query = query.filter(DiaryEntry.climate == climate)
    if favorites:
        query = query.filter(DiaryEntry.is_favorite.is_(True))
    if search:
        query = query.filter(
            or_(
                DiaryEntry.title.ilike(f"%{search}%"),
                DiaryEntry.content.ilike(f"%{search}%"),
                DiaryEntry.reflections.ilike(f"%{search}%"),
            )
        )
    if start_date:
        query = query.filter(DiaryEntry.created_at >= as_utc(start_date))
    if end_date:
        query = query.filter(DiaryEntry.created_at <= as_utc(end_date))

    page_info = get_page_info(page, page_size, query.count())
    entries = (
        query.order_by(DiaryEntry.created_at.desc(), DiaryEntry.id)
        .offset(page_info.offset)
        .limit(page_info.page_size)
        .all()
    )
    return DiaryEntryListResponse(
        entries=[entry_to_out(e) for e in entries],
        total=page_info.total,
        page=page_info.page,
        page_size=page_info.page_size,
        total_pages=page_info.total_pages,
        has_next=page_info.has_next,
        has_prev=page_info.has_prev,
    )


@router.post("", response_model=DiaryEntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(
    data: DiaryEntryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Write a diary entry.

    - **content**: Required
    - **climate**: Optional, one of the values from `/diary/climates`
    """
    entry = DiaryEntry(user_id=current_user.id, **data.model_dump())
    db.add(entry)
    db.commit()
    db.refresh(entry)

    audit_entry_action(
        db,
        request,
        AuditAction.CREATE_DIARY_ENTRY,
        current_user,
        entry.id,
        details={"climate": entry.climate} if entry.climate else None,
    )
    return entry_to_out(entry)


@router.get("/{entry_id}", response_model=DiaryEntryOut)
def get_entry(
    entry_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return entry_to_out(get_owned_entry(db, entry_id, current_user))


@router.put("/{entry_id}", response_model=DiaryEntryOut)
def update_entry(
    entry_id: str,
    data: DiaryEntryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update an entry. Fields left out keep their value.

    An explicit null clears title, reflections, climate and the list fields.
    """
    entry = get_owned_entry(db, entry_id, current_user)
    changes = data.model_dump(exclude_unset=True)
    for name, value in changes.items():
        if value is None and name in REQUIRED_FIELDS:
            continue
        if value is None and name in LIST_FIELDS:
            value = []
        setattr(entry, name, value)
    db.commit()
    db.refresh(entry)

    audit_entry_action(
        db,
        request,
        AuditAction.UPDATE_DIARY_ENTRY,
        current_user,
        entry.id,
        details={"fields": sorted(changes)},
    )
    return entry_to_out(entry)


@router.patch("/{entry_id}/favorite", response_model=DiaryEntryOut)
def toggle_favorite(
    entry_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Flip the favourite flag."""
    entry = get_owned_entry(db, entry_id, current_user)
    entry.is_favorite = not entry.is_favorite
    db.commit()
    db.refresh(entry)
    return entry_to_out(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    entry = get_owned_entry(db, entry_id, current_user)
    eid = entry.id
    db.delete(entry)
    db.commit()
    audit_entry_action(db, request, AuditAction.DELETE_DIARY_ENTRY, current_user, eid)
