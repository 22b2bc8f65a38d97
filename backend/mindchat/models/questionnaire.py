"""Questionnaire model holding a user's profile answers."""

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class Questionnaire(Base):
    """
    One questionnaire per user.

    The chat core reads it to personalise prompts; it never writes it.
    List-valued answers are stored as JSON arrays of strings.
    """

    __tablename__ = "questionnaires"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    age_range = Column(String(50), nullable=True)
    current_situation = Column(Text, nullable=True)
    anxiety_frequency = Column(String(50), nullable=True)
    sadness_handling = Column(Text, nullable=True)
    social_life = Column(Text, nullable=True)
    love_relationships = Column(Text, nullable=True)
    work_feeling = Column(Text, nullable=True)
    motivation = Column(JSON, nullable=True)
    routine = Column(Text, nullable=True)
    sleep = Column(String(50), nullable=True)
    self_knowledge_goal = Column(JSON, nullable=True)
    values = Column(JSON, nullable=True)
    challenge = Column(Text, nullable=True)
    childhood_influence = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="questionnaire")
