"""
Audit logging service.

This module provides functions to log user actions for security monitoring.
"""
import json
import logging
from typing import Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from mindchat.core.rate_limiter import get_client_ip
from mindchat.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    """Constants for audit actions."""

    # Authentication
    LOGIN = "login"
    LOGOUT = "logout"
    REGISTER = "register"
    LOGIN_FAILED = "login_failed"

    # Chat
    CREATE_CHAT_SESSION = "create_chat_session"
    CLOSE_CHAT_SESSION = "close_chat_session"
    DELETE_CHAT_SESSION = "delete_chat_session"
    CHAT_TURN = "chat_turn"
    MESSAGE_FLAGGED = "message_flagged"

    # Characters
    CREATE_CHARACTER = "create_character"
    UPDATE_CHARACTER = "update_character"
    DEACTIVATE_CHARACTER = "deactivate_character"

    # Profile
    UPDATE_PROFILE = "update_profile"

    # Prayer journal
    CREATE_PRAYER = "create_prayer"
    UPDATE_PRAYER = "update_prayer"
    DELETE_PRAYER = "delete_prayer"

    # Faith diary
    CREATE_DIARY_ENTRY = "create_diary_entry"
    UPDATE_DIARY_ENTRY = "update_diary_entry"
    DELETE_DIARY_ENTRY = "delete_diary_entry"

    # Studies
    CREATE_STUDY = "create_study"
    START_STUDY = "start_study"
    UPDATE_STUDY_PROGRESS = "update_study_progress"


class TargetType:
    """Constants for audit target types."""

    USER = "user"
    CHAT_SESSION = "chat_session"
    MESSAGE = "message"
    CHARACTER = "character"
    PRAYER = "prayer"
    DIARY_ENTRY = "diary_entry"
    STUDY = "study"


def get_client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    """
    Extract client IP and user agent from request.

    Returns:
        Tuple of (ip_address, user_agent)
    """
    ip_address = get_client_ip(request)
    if ip_address == "unknown":
        ip_address = None
    return ip_address, request.headers.get("User-Agent")


def log_action(
    db: Session,
    action: str,
    user_id: Optional[UUID] = None,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """
    Log an audit event.

    Args:
        db: Database session
        action: Action type (use AuditAction constants)
        user_id: User who performed the action
        target_type: Type of resource affected (e.g., "chat_session")
        target_id: ID of the affected resource
        details: Additional details as a dictionary
        ip_address: Client IP address
        user_agent: Client user agent string

    Returns:
        Created AuditLog record
    """
    log = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=json.dumps(details, ensure_ascii=False) if details else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log
