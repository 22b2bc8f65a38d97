"""ChatParticipant model linking a session to a character."""

import uuid

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from mindchat.db.base import Base


class ChatParticipant(Base):
    """
    A character taking part in a session.

    order_index is 0-based, matches the order the characters were supplied
    at creation, and never changes. It drives the order of responses and
    analyses in every turn.
    """

    __tablename__ = "chat_participants"
    __table_args__ = (
        UniqueConstraint("session_id", "order_index", name="uq_chat_participants_order"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    character_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("characters.id"),
        nullable=False,
        index=True,
    )
    order_index = Column(Integer, nullable=False)

    # Relationships
    session = relationship("ChatSession", back_populates="participants")
    character = relationship("Character", lazy="joined")
