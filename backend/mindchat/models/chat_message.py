"""
ChatMessage model for storing session messages.

Rows are append-only. Role-specific data lives in ``meta``; code should go
through ``mindchat.schemas.messages`` rather than reading ``meta`` directly.
"""
import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from mindchat.db.base import Base, utc_now


class MessageRole:
    """Constants for message roles."""

    USER = "USER"
    CHARACTER = "CHARACTER"
    SUMMARY = "SUMMARY"
    SYSTEM = "SYSTEM"
    # Reserved, not produced by any current mode
    NARRATOR = "NARRATOR"


class ChatMessage(Base):
    """
    Represents a single message in a chat session.

    created_at is assigned by the session store with millisecond precision
    and increases strictly within a session, so (created_at, id) order is
    persistence order.
    """
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_session_created", "session_id", "created_at", "id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role = Column(String(20), nullable=False)

    # Set for CHARACTER and SUMMARY messages
    author_key = Column(String(50), nullable=True)
    author_name = Column(String(100), nullable=True)

    content = Column(Text, nullable=False)
    meta = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    # Relationships
    session = relationship("ChatSession", back_populates="messages")
