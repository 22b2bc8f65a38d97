"""
ChatSession model for Council/Decision conversations.

A session belongs to one user, runs in one mode for its whole lifetime,
and owns its participants and messages.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class ChatMode:
    """Constants for session modes."""

    COUNCIL = "COUNCIL"
    DECISION = "DECISION"

    ALL = (COUNCIL, DECISION)


class ChatSession(Base):
    """
    Represents a chat session with an ordered group of characters.

    State machine: open -> closed. A closed session is still readable,
    renamable and deletable, but accepts no new messages.
    """

    __tablename__ = "chat_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # COUNCIL or DECISION
    mode = Column(String(20), nullable=False)
    title = Column(String(255), nullable=True)
    closed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
        index=True,
    )

    # Relationships
    user = relationship("User", back_populates="chat_sessions")
    participants = relationship(
        "ChatParticipant",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatParticipant.order_index",
    )
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )
