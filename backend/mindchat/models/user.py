import uuid

from sqlalchemy import JSON, Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    display_name = Column(String, nullable=False)
    avatar_url = Column(String(500), nullable=True)
    # "admin" or "user"
    role = Column(String(20), nullable=False, default="user")

    # BREVE, DETALHADA, ESPIRITUAL or PRATICA; read by the prompt builder
    response_style = Column(String(20), nullable=False, default="BREVE")
    # JSON array of favourite character keys
    favorites = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )

    # Relationships
    chat_sessions = relationship(
        "ChatSession",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    questionnaire = relationship(
        "Questionnaire",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    prayers = relationship(
        "Prayer",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    diary_entries = relationship(
        "DiaryEntry",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    study_participations = relationship(
        "StudyParticipation",
        back_populates="user",
        cascade="all, delete-orphan",
    )
