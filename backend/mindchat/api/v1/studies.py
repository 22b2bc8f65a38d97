"""
Bible study API endpoints.

Provides endpoints for:
- The study catalogue and lesson content
- Starting a study and recording progress through its lessons
- The current user's participations and statistics
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from mindchat.core.deps import get_db, get_current_admin, get_current_user, parse_uuid
from mindchat.models.study import Study, StudyLesson, StudyParticipation
from mindchat.models.user import User
from mindchat.schemas.study import (
    STUDY_CATEGORIES,
    ParticipationListResponse,
    ParticipationOut,
    ParticipationStatus,
    StudyCategoriesResponse,
    StudyCategory,
    StudyCreate,
    StudyLessonOut,
    StudyLessonSummary,
    StudyListResponse,
    StudyOut,
    StudyProgressUpdate,
    StudyStatsResponse,
)
from mindchat.services import study_service
from mindchat.services.audit import AuditAction, TargetType, get_client_info, log_action

router = APIRouter(prefix="/studies", tags=["studies"])


def study_to_out(study: Study, participant_count: int) -> StudyOut:
    return StudyOut(
        id=str(study.id),
        title=study.title,
        description=study.description,
        category=study.category,
        estimated_minutes=study.estimated_minutes,
        lessons=[
            StudyLessonSummary(number=lesson.number, title=lesson.title)
            for lesson in study.lessons
        ],
        participant_count=participant_count,
        created_at=study.created_at,
    )


def lesson_to_out(lesson: StudyLesson) -> StudyLessonOut:
    return StudyLessonOut(
        id=str(lesson.id),
        number=lesson.number,
        title=lesson.title,
        content=lesson.content,
        verse=lesson.verse,
        reflection=lesson.reflection,
    )


def participation_to_out(participation: StudyParticipation) -> ParticipationOut:
    study = participation.study
    return ParticipationOut(
        id=str(participation.id),
        study_id=str(study.id),
        study_title=study.title,
        study_category=study.category,
        lesson_count=len(study.lessons),
        current_lesson=participation.current_lesson,
        progress=participation.progress,
        answers=participation.answers,
        started_at=participation.started_at,
        finished_at=participation.finished_at,
    )


def audit_study_action(
    db: Session,
    request: Request,
    action: str,
    user: User,
    study: Study,
    details: Optional[dict] = None,
) -> None:
    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=action,
        user_id=user.id,
        target_type=TargetType.STUDY,
        target_id=str(study.id),
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )


# =============================================================================
# Catalogue
# =============================================================================

@router.get("/categories", response_model=StudyCategoriesResponse)
def list_categories():
    """Study categories."""
    return StudyCategoriesResponse(categories=STUDY_CATEGORIES)


@router.get("", response_model=StudyListResponse)
def list_studies(
    category: Optional[StudyCategory] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List studies, newest first, with lesson titles and participant counts."""
    studies, page_info = study_service.list_studies(db, category, page, page_size)
    counts = study_service.participant_counts(db, [s.id for s in studies])
    return StudyListResponse(
        studies=[study_to_out(s, counts.get(s.id, 0)) for s in studies],
        total=page_info.total,
        page=page_info.page,
        page_size=page_info.page_size,
        total_pages=page_info.total_pages,
        has_next=page_info.has_next,
        has_prev=page_info.has_prev,
    )


@router.post("", response_model=StudyOut, status_code=status.HTTP_201_CREATED)
def create_study(
    data: StudyCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Add a study with its lessons (admin only)."""
    study = study_service.create_study(db, data)
    audit_study_action(
        db,
        request,
        AuditAction.CREATE_STUDY,
        admin,
        study,
        details={"title": study.title, "lessons": len(study.lessons)},
    )
    return study_to_out(study, 0)


# =============================================================================
# Current user
# =============================================================================

@router.get("/my-participations", response_model=ParticipationListResponse)
def list_my_participations(
    status: Optional[ParticipationStatus] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    The studies the user has started, latest first.

    - **status**: `ativo` (in progress) or `finalizado` (finished)
    """
    participations = study_service.list_participations(db, current_user.id, status)
    return ParticipationListResponse(
        participations=[participation_to_out(p) for p in participations],
    )


@router.get("/my-stats", response_model=StudyStatsResponse)
def get_my_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return StudyStatsResponse(**study_service.study_stats(db, current_user.id))


# =============================================================================
# Single study
# =============================================================================

@router.get("/{study_id}", response_model=StudyOut)
def get_study(study_id: str, db: Session = Depends(get_db)):
    sid = parse_uuid(study_id, "study ID")
    study = study_service.get_study(db, sid)
    counts = study_service.participant_counts(db, [sid])
    return study_to_out(study, counts.get(sid, 0))


@router.get("/{study_id}/lessons/{number}", response_model=StudyLessonOut)
def get_lesson(
    study_id: str,
    number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Full content of one lesson, numbered from 1."""
    sid = parse_uuid(study_id, "study ID")
    return lesson_to_out(study_service.get_lesson(db, sid, number))


@router.post(
    "/{study_id}/start",
    response_model=ParticipationOut,
    status_code=status.HTTP_201_CREATED,
)
def start_study(
    study_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Start a study at lesson 1. Starting it twice answers 409."""
    sid = parse_uuid(study_id, "study ID")
    participation = study_service.start_participation(db, current_user.id, sid)
    audit_study_action(db, request, AuditAction.START_STUDY, current_user, participation.study)
    return participation_to_out(participation)


@router.get("/{study_id}/participation", response_model=ParticipationOut)
def get_participation(
    study_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sid = parse_uuid(study_id, "study ID")
    return participation_to_out(study_service.get_participation(db, current_user.id, sid))


@router.put("/{study_id}/progress", response_model=ParticipationOut)
def update_progress(
    study_id: str,
    data: StudyProgressUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record the lesson the user reached, with optional reflection answers.

    - **current_lesson**: 1 to the study's lesson count
    - **answers**: Replaces the stored answers when given
    """
    sid = parse_uuid(study_id, "study ID")
    participation = study_service.update_progress(
        db,
        current_user.id,
        sid,
        data.current_lesson,
        data.answers,
    )
    audit_study_action(
        db,
        request,
        AuditAction.UPDATE_STUDY_PROGRESS,
        current_user,
        participation.study,
        details={"current_lesson": participation.current_lesson},
    )
    return participation_to_out(participation)
