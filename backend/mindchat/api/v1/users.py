"""
User profile API endpoints.

Provides endpoints for:
- The profile (display name, avatar, favourites, response style)
- The onboarding questionnaire the prompts are personalised with
- Response style and favourite characters
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from mindchat.core.deps import get_db, get_current_user
from mindchat.core.exceptions import NotFoundError
from mindchat.models.questionnaire import Questionnaire
from mindchat.models.user import User
from mindchat.schemas.user import (
    PreferencesOut,
    PreferencesUpdate,
    ProfileOut,
    ProfileUpdate,
    QuestionnaireIn,
    QuestionnaireOut,
)
from mindchat.services.audit import AuditAction, TargetType, get_client_info, log_action

router = APIRouter(prefix="/user", tags=["user"])


def questionnaire_to_out(questionnaire: Questionnaire) -> QuestionnaireOut:
    answers = {
        name: getattr(questionnaire, name)
        for name in QuestionnaireIn.model_fields
    }
    return QuestionnaireOut(
        id=str(questionnaire.id),
        created_at=questionnaire.created_at,
        updated_at=questionnaire.updated_at,
        **answers,
    )


def preferences_to_out(user: User) -> PreferencesOut:
    return PreferencesOut(
        response_style=user.response_style,
        favorites=user.favorites or [],
    )


def profile_to_out(user: User) -> ProfileOut:
    return ProfileOut(
        id=str(user.id),
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        favorites=user.favorites or [],
        response_style=user.response_style,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


# =============================================================================
# Profile
# =============================================================================

@router.get("/profile", response_model=ProfileOut)
def get_profile(current_user: User = Depends(get_current_user)):
    return profile_to_out(current_user)


@router.put("/profile", response_model=ProfileOut)
def update_profile(
    data: ProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update the profile. Fields left out (or null) keep their value."""
    changes = data.model_dump(exclude_none=True)
    for name, value in changes.items():
        setattr(current_user, name, value)
    db.commit()
    db.refresh(current_user)

    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=AuditAction.UPDATE_PROFILE,
        user_id=current_user.id,
        target_type=TargetType.USER,
        target_id=str(current_user.id),
        details={"fields": sorted(changes)},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return profile_to_out(current_user)


# =============================================================================
# Questionnaire
# =============================================================================

@router.get("/questionnaire", response_model=QuestionnaireOut)
def get_questionnaire(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get the current user's questionnaire answers."""
    questionnaire = db.query(Questionnaire).filter(
        Questionnaire.user_id == current_user.id,
    ).first()
    if not questionnaire:
        raise NotFoundError("Questionnaire not found")
    return questionnaire_to_out(questionnaire)


@router.put("/questionnaire", response_model=QuestionnaireOut)
def save_questionnaire(
    data: QuestionnaireIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create or replace the current user's questionnaire.

    Answers left out of the request are cleared.
    """
    questionnaire = db.query(Questionnaire).filter(
        Questionnaire.user_id == current_user.id,
    ).first()
    if questionnaire is None:
        questionnaire = Questionnaire(user_id=current_user.id)
        db.add(questionnaire)

    for name, value in data.model_dump().items():
        setattr(questionnaire, name, value)

    db.commit()
    db.refresh(questionnaire)
    return questionnaire_to_out(questionnaire)


# =============================================================================
# Preferences
# =============================================================================

@router.get("/preferences", response_model=PreferencesOut)
def get_preferences(current_user: User = Depends(get_current_user)):
    """Get response style and favourite characters."""
    return preferences_to_out(current_user)


@router.put("/preferences", response_model=PreferencesOut)
def update_preferences(
    data: PreferencesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update response style and/or favourite characters."""
    if data.response_style is not None:
        current_user.response_style = data.response_style
    if data.favorites is not None:
        current_user.favorites = data.favorites

    db.commit()
    db.refresh(current_user)
    return preferences_to_out(current_user)
