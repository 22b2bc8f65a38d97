"""Character model for the personas available in chat sessions."""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text, Uuid
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class Character(Base):
    """
    A persona the AI plays in Council/Decision sessions.

    Characters are shared across sessions and are only ever deactivated
    (is_active=False), never deleted, once a session references them.
    """

    __tablename__ = "characters"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    key = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    base_prompt = Column(Text, nullable=False)
    # JSON array of short tags, e.g. ["liderança", "fé"]
    style_tags = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )
