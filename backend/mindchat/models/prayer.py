"""Prayer model for the prayer journal."""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class Prayer(Base):
    """
    A prayer written down by a user.

    category is one of PRAYER_CATEGORIES (schemas.prayer); emotions is a JSON
    array of free-text labels.
    """

    __tablename__ = "prayers"
    __table_args__ = (
        Index("ix_prayers_user_created", "user_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(200), nullable=False)
    category = Column(String(30), nullable=False)
    content = Column(Text, nullable=False)
    emotions = Column(JSON, nullable=True)
    # Minutes spent praying, when the user tracked it
    minutes_spent = Column(Integer, nullable=True)
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

    user = relationship("User", back_populates="prayers")
