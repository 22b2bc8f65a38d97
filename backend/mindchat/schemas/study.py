"""Schemas for thematic bible studies and user participation."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

STUDY_CATEGORIES = [
    "fe",
    "sabedoria",
    "amor",
    "perda",
    "proposito",
    "esperanca",
    "perdao",
    "gratidao",
    "oracao",
    "familia",
]

StudyCategory = Literal[
    "fe",
    "sabedoria",
    "amor",
    "perda",
    "proposito",
    "esperanca",
    "perdao",
    "gratidao",
    "oracao",
    "familia",
]
ParticipationStatus = Literal["ativo", "finalizado"]


# =============================================================================
# Studies
# =============================================================================

class StudyLessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    verse: Optional[str] = Field(None, max_length=1000)
    reflection: str = Field(..., min_length=1)


class StudyCreate(BaseModel):
    """Lessons are numbered from 1 in the order given."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category: StudyCategory
    estimated_minutes: int = Field(..., ge=1, le=10000)
    lessons: List[StudyLessonCreate] = Field(..., min_length=1, max_length=100)


class StudyLessonSummary(BaseModel):
    number: int
    title: str


class StudyLessonOut(StudyLessonSummary):
    id: str
    content: str
    verse: Optional[str] = None
    reflection: str


class StudyOut(BaseModel):
    id: str
    title: str
    description: str
    category: str
    estimated_minutes: int
    lessons: List[StudyLessonSummary]
    participant_count: int
    created_at: datetime


class StudyListResponse(BaseModel):
    studies: List[StudyOut]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class StudyCategoriesResponse(BaseModel):
    categories: List[str]


# =============================================================================
# Participation
# =============================================================================

class StudyProgressUpdate(BaseModel):
    current_lesson: int
    answers: Optional[Dict[str, Any]] = None


class ParticipationOut(BaseModel):
    id: str
    study_id: str
    study_title: str
    study_category: str
    lesson_count: int
    current_lesson: int
    # Percentage of lessons reached, 0-100
    progress: float
    answers: Optional[Dict[str, Any]] = None
    started_at: datetime
    finished_at: Optional[datetime] = None


class ParticipationListResponse(BaseModel):
    participations: List[ParticipationOut]


class StudyStatsResponse(BaseModel):
    total_participations: int
    completed: int
    active: int
    # category -> participations
    categories: Dict[str, int]
