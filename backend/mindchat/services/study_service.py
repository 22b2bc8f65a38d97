"""
Bible studies - catalogue, lessons and each user's progress through them.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mindchat.core.exceptions import BadRequestError, ConflictError, NotFoundError
from mindchat.models.study import Study, StudyLesson, StudyParticipation
from mindchat.schemas.study import StudyCreate
from mindchat.services.pagination import PageInfo, get_page_info

logger = logging.getLogger(__name__)

STUDY_NOT_FOUND = "Study not found"
PARTICIPATION_NOT_FOUND = "Study participation not found"
LESSON_NOT_FOUND = "Lesson not found"


# =============================================================================
# Catalogue
# =============================================================================

def participant_counts(db: Session, study_ids: List[UUID]) -> Dict[UUID, int]:
    if not study_ids:
        return {}
    rows = (
        db.query(StudyParticipation.study_id, func.count(StudyParticipation.id))
        .filter(StudyParticipation.study_id.in_(study_ids))
        .group_by(StudyParticipation.study_id)
        .all()
    )
    return {study_id: count for study_id, count in rows}


def list_studies(
    db: Session,
    category: Optional[str],
    page: int,
    page_size: int,
) -> Tuple[List[Study], PageInfo]:
    """Studies, newest first, optionally limited to one category."""
    query = db.query(Study)
    if category:
        query = query.filter(Study.category == category)

    page_info = get_page_info(page, page_size, query.count())
    studies = (
        query.order_by(Study.created_at.desc(), Study.id)
        .offset(page_info.offset)
        .limit(page_info.page_size)
        .all()
    )
    return studies, page_info


def get_study(db: Session, study_id: UUID) -> Study:
    study = db.query(Study).filter(Study.id == study_id).first()
    if study is None:
        raise NotFoundError(STUDY_NOT_FOUND)
    return study


def create_study(db: Session, data: StudyCreate) -> Study:
    """Create a study with its lessons numbered 1..n in the order given."""
    study = Study(
        title=data.title,
        description=data.description,
        category=data.category,
        estimated_minutes=data.estimated_minutes,
    )
    study.lessons = [
        StudyLesson(
            number=index,
            title=lesson.title,
            content=lesson.content,
            verse=lesson.verse,
            reflection=lesson.reflection,
        )
        for index, lesson in enumerate(data.lessons, start=1)
    ]
    db.add(study)
    db.commit()
    db.refresh(study)
    logger.info(f"Created study {study.id} ({study.title}) with {len(study.lessons)} lessons")
    return study


def get_lesson(db: Session, study_id: UUID, number: int) -> StudyLesson:
    if number < 1:
        raise BadRequestError("Invalid lesson number")
    lesson = db.query(StudyLesson).filter(
        StudyLesson.study_id == study_id,
        StudyLesson.number == number,
    ).first()
    if lesson is None:
        raise NotFoundError(LESSON_NOT_FOUND)
    return lesson


# =============================================================================
# Participation
# =============================================================================

def get_participation(db: Session, user_id: UUID, study_id: UUID) -> StudyParticipation:
    participation = db.query(StudyParticipation).filter(
        StudyParticipation.user_id == user_id,
        StudyParticipation.study_id == study_id,
    ).first()
    if participation is None:
        raise NotFoundError(PARTICIPATION_NOT_FOUND)
    return participation


def start_participation(db: Session, user_id: UUID, study_id: UUID) -> StudyParticipation:
    """
    Enrol the user in a study at lesson 1.

    Raises:
        NotFoundError: If the study does not exist
        ConflictError: If the user already takes part in it
    """
    get_study(db, study_id)
    exists = db.query(StudyParticipation.id).filter(
        StudyParticipation.user_id == user_id,
        StudyParticipation.study_id == study_id,
    ).first()
    if exists:
        raise ConflictError("Already participating in this study")

    participation = StudyParticipation(
        user_id=user_id,
        study_id=study_id,
        current_lesson=1,
        progress=0.0,
    )
    db.add(participation)
    try:
        db.commit()
    except IntegrityError:
        # Two concurrent starts; the unique constraint kept one
        db.rollback()
        raise ConflictError("Already participating in this study")
    db.refresh(participation)
    logger.info(f"User {user_id} started study {study_id}")
    return participation


def update_progress(
    db: Session,
    user_id: UUID,
    study_id: UUID,
    current_lesson: int,
    answers: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> StudyParticipation:
    """
    Move the user to ``current_lesson`` and recompute progress.

    progress is current_lesson / lesson count as a percentage. Reaching the
    last lesson marks the study finished; the first finish time is kept.

    Raises:
        BadRequestError: If current_lesson is outside 1..lesson count
        NotFoundError: If the study or the participation does not exist
    """
    if current_lesson < 1:
        raise BadRequestError("current_lesson must be at least 1")
    study = get_study(db, study_id)
    participation = get_participation(db, user_id, study_id)

    total = len(study.lessons)
    if current_lesson > total:
        raise BadRequestError(f"current_lesson must be at most {total}")

    participation.current_lesson = current_lesson
    participation.progress = min(current_lesson / total * 100, 100.0)
    if answers is not None:
        participation.answers = answers
    if current_lesson >= total and participation.finished_at is None:
        participation.finished_at = now or datetime.now(timezone.utc)

    db.commit()
    db.refresh(participation)
    return participation


def list_participations(
    db: Session,
    user_id: UUID,
    status: Optional[str] = None,
) -> List[StudyParticipation]:
    """The user's participations, latest started first; status is "ativo" or "finalizado"."""
    query = db.query(StudyParticipation).filter(StudyParticipation.user_id == user_id)
    if status == "finalizado":
        query = query.filter(StudyParticipation.finished_at.isnot(None))
    elif status == "ativo":
        query = query.filter(StudyParticipation.finished_at.is_(None))
    return query.order_by(StudyParticipation.started_at.desc(), StudyParticipation.id).all()


def study_stats(db: Session, user_id: UUID) -> dict:
    participations = list_participations(db, user_id)
    completed = sum(1 for p in participations if p.finished_at is not None)
    categories: Dict[str, int] = {}
    for participation in participations:
        category = participation.study.category
        categories[category] = categories.get(category, 0) + 1
    return {
        "total_participations": len(participations),
        "completed": completed,
        "active": len(participations) - completed,
        "categories": categories,
    }
