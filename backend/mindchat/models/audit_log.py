"""
Audit Log model for tracking user actions.
"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.sql import func

from mindchat.db.base import Base, utc_now


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action = Column(
        String, nullable=False
    )  # e.g., "login", "create_chat_session", "chat_turn"
    target_type = Column(String, nullable=True)  # e.g., "chat_session", "character"
    target_id = Column(String, nullable=True)  # ID of the affected resource
    details = Column(String, nullable=True)  # JSON-encoded additional details
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
