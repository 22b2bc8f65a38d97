"""DiaryEntry model for the faith diary."""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class DiaryEntry(Base):
    """
    One faith diary entry.

    The list fields (emotions, verses, gratitude, prayers) are JSON arrays
    of strings. climate, when set, is one of EMOTIONAL_CLIMATES
    (schemas.diary).
    """

    __tablename__ = "diary_entries"
    __table_args__ = (
        Index("ix_diary_entries_user_created", "user_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)
    emotions = Column(JSON, nullable=True)
    verses = Column(JSON, nullable=True)
    gratitude = Column(JSON, nullable=True)
    prayers = Column(JSON, nullable=True)
    reflections = Column(Text, nullable=True)
    climate = Column(String(30), nullable=True)
    # "privada" or "publica"
    privacy = Column(String(20), nullable=False, default="privada")
    is_favorite = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="diary_entries")
