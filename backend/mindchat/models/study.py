"""Thematic bible studies, their lessons and user participation."""

import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class Study(Base):
    """A thematic study made of numbered lessons."""

    __tablename__ = "studies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(30), nullable=False, index=True)
    estimated_minutes = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )

    lessons = relationship(
        "StudyLesson",
        back_populates="study",
        cascade="all, delete-orphan",
        order_by="StudyLesson.number",
    )
    participations = relationship(
        "StudyParticipation",
        back_populates="study",
        cascade="all, delete-orphan",
    )


class StudyLesson(Base):
    """One lesson of a study; number is 1-based and unique within the study."""

    __tablename__ = "study_lessons"
    __table_args__ = (
        UniqueConstraint("study_id", "number", name="uq_study_lesson_number"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    study_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("studies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    number = Column(Integer, nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    verse = Column(Text, nullable=True)
    reflection = Column(Text, nullable=False)

    study = relationship("Study", back_populates="lessons")


class StudyParticipation(Base):
    """
    A user's progress through a study.

    progress is a percentage (0-100) of lessons reached; finished_at is set
    once the user reaches the last lesson.
    """

    __tablename__ = "study_participations"
    __table_args__ = (
        UniqueConstraint("user_id", "study_id", name="uq_study_participation_user_study"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    study_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("studies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    current_lesson = Column(Integer, nullable=False, default=1)
    progress = Column(Float, nullable=False, default=0.0)
    # Free-form answers to the lesson reflections, keyed by the client
    answers = Column(JSON, nullable=True)

    started_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    finished_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="study_participations")
    study = relationship("Study", back_populates="participations")
