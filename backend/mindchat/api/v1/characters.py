"""
Character catalogue API endpoints.

Anyone signed in can browse active characters; only admins can add, edit
or deactivate them. Characters are never hard-deleted because sessions
keep referring to them.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from mindchat.core.deps import get_db, get_current_admin, get_current_user
from mindchat.core.exceptions import ConflictError, NotFoundError
from mindchat.models.character import Character
from mindchat.models.user import User
from mindchat.schemas.character import (
    CharacterCreate,
    CharacterListResponse,
    CharacterOut,
    CharacterUpdate,
)
from mindchat.services.audit import log_action, get_client_info, AuditAction, TargetType

router = APIRouter(prefix="/characters", tags=["characters"])


def character_to_out(character: Character) -> CharacterOut:
    return CharacterOut(
        id=str(character.id),
        key=character.key,
        name=character.name,
        avatar_url=character.avatar_url,
        style_tags=character.style_tags or [],
        is_active=character.is_active,
        created_at=character.created_at,
        updated_at=character.updated_at,
    )


def get_character_or_404(db: Session, key: str, include_inactive: bool = False) -> Character:
    query = db.query(Character).filter(Character.key == key)
    if not include_inactive:
        query = query.filter(Character.is_active.is_(True))
    character = query.first()
    if not character:
        raise NotFoundError("Character not found")
    return character


@router.get("", response_model=CharacterListResponse)
def list_characters(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List characters, by name.

    - **include_inactive**: Also list deactivated characters (admins only)
    """
    query = db.query(Character)
    if not (include_inactive and current_user.role == "admin"):
        query = query.filter(Character.is_active.is_(True))

    characters = query.order_by(Character.name).all()
    return CharacterListResponse(
        characters=[character_to_out(c) for c in characters],
        count=len(characters),
    )


@router.get("/{key}", response_model=CharacterOut)
def get_character(
    key: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get an active character by key."""
    return character_to_out(get_character_or_404(db, key))


@router.post("", response_model=CharacterOut, status_code=status.HTTP_201_CREATED)
def create_character(
    data: CharacterCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Add a character (admin only)."""
    if db.query(Character).filter(Character.key == data.key).first():
        raise ConflictError(f"Character key already exists: {data.key}")

    character = Character(**data.model_dump())
    db.add(character)
    db.commit()
    db.refresh(character)

    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=AuditAction.CREATE_CHARACTER,
        user_id=admin.id,
        target_type=TargetType.CHARACTER,
        target_id=str(character.id),
        details={"key": character.key},
        ip_address=ip_address,
        user_agent=user_agent,
    )

    return character_to_out(character)


@router.put("/{key}", response_model=CharacterOut)
def update_character(
    key: str,
    data: CharacterUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Edit a character, including re-activating it (admin only)."""
    character = get_character_or_404(db, key, include_inactive=True)

    changes = data.model_dump(exclude_unset=True)
    for name, value in changes.items():
        setattr(character, name, value)
    db.commit()
    db.refresh(character)

    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=AuditAction.UPDATE_CHARACTER,
        user_id=admin.id,
        target_type=TargetType.CHARACTER,
        target_id=str(character.id),
        details={"key": character.key, "fields": sorted(changes)},
        ip_address=ip_address,
        user_agent=user_agent,
    )

    return character_to_out(character)


@router.delete("/{key}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_character(
    key: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Deactivate a character (admin only). Existing sessions keep it."""
    character = get_character_or_404(db, key)
    character.is_active = False
    db.commit()

    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=AuditAction.DEACTIVATE_CHARACTER,
        user_id=admin.id,
        target_type=TargetType.CHARACTER,
        target_id=str(character.id),
        details={"key": character.key},
        ip_address=ip_address,
        user_agent=user_agent,
    )
