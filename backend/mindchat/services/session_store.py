"""
Session store - all reads and writes of chat sessions, participants and messages.

Ownership checks deliberately collapse "missing", "owned by someone else"
and (for sending) "closed" into the same NotFoundError so that session ids
cannot be guessed. The real reason is logged.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from mindchat.core.exceptions import BadRequestError, NotFoundError
from mindchat.models.character import Character
from mindchat.models.chat_message import ChatMessage, MessageRole
from mindchat.models.chat_participant import ChatParticipant
from mindchat.models.chat_session import ChatMode, ChatSession
from mindchat.schemas.messages import MessageBase, MessageView, to_message_view
from mindchat.services.pagination import PageInfo, decode_cursor, encode_cursor, get_page_info

logger = logging.getLogger(__name__)

SESSION_NOT_FOUND = "Chat session not found"
SESSION_NOT_FOUND_OR_CLOSED = "Chat session not found or closed"


# =============================================================================
# Helpers
# =============================================================================

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def _latest_message_time(db: Session, session_id: UUID) -> Optional[datetime]:
    latest = (
        db.query(func.max(ChatMessage.created_at))
        .filter(ChatMessage.session_id == session_id)
        .scalar()
    )
    return _as_utc(latest) if latest is not None else None


def _next_timestamps(db: Session, session_id: UUID, count: int) -> List[datetime]:
    """
    ``count`` millisecond-precision timestamps, each later than every message
    already in the session and than the previous one.
    """
    now = _truncate_to_millis(datetime.now(timezone.utc))
    latest = _latest_message_time(db, session_id)
    if latest is not None and now <= latest:
        now = latest + timedelta(milliseconds=1)
    return [now + timedelta(milliseconds=i) for i in range(count)]


# =============================================================================
# Sessions
# =============================================================================

def get_owned_session(
    db: Session,
    session_id: UUID,
    user_id: UUID,
    require_open: bool = False,
) -> ChatSession:
    """
    Load a session the user owns.

    Raises:
        NotFoundError: If the session does not exist, belongs to another
            user, or (with require_open) is closed
    """
    session = db.query(ChatSession).filter(ChatSession.id == session_id).first()
    message = SESSION_NOT_FOUND_OR_CLOSED if require_open else SESSION_NOT_FOUND

    if session is None:
        logger.info(f"Session {session_id} requested by user {user_id}: does not exist")
        raise NotFoundError(message)
    if session.user_id != user_id:
        logger.warning(
            f"Session {session_id} requested by user {user_id}: owned by another user"
        )
        raise NotFoundError(message)
    if require_open and session.closed:
        logger.info(f"Session {session_id} requested by user {user_id}: session is closed")
        raise NotFoundError(message)
    return session


def find_active_characters(db: Session, keys: Sequence[str]) -> List[Character]:
    """
    Active characters for ``keys``, in the order of ``keys``.

    Raises:
        BadRequestError: Listing the keys that are unknown or inactive
    """
    found = (
        db.query(Character)
        .filter(Character.key.in_(list(keys)), Character.is_active.is_(True))
        .all()
    )
    by_key = {c.key: c for c in found}
    missing = [key for key in keys if key not in by_key]
    if missing:
        raise BadRequestError(f"Characters not found: {', '.join(missing)}")
    return [by_key[key] for key in keys]


def default_session_title(mode: str, participant_count: int) -> str:
    label = "Conselho" if mode == ChatMode.COUNCIL else "Decisão"
    return f"{label} com {participant_count} personagens"


def create_session(
    db: Session,
    user_id: UUID,
    mode: str,
    character_keys: Sequence[str],
    title: Optional[str] = None,
) -> ChatSession:
    """Create a session with participants in the order given."""
    characters = find_active_characters(db, character_keys)

    session = ChatSession(
        user_id=user_id,
        mode=mode,
        title=title or default_session_title(mode, len(characters)),
    )
    db.add(session)
    db.flush()

    for index, character in enumerate(characters):
        db.add(
            ChatParticipant(
                session_id=session.id,
                character_id=character.id,
                order_index=index,
            )
        )

    db.commit()
    db.refresh(session)
    logger.info(
        f"Created {mode} session {session.id} for user {user_id} "
        f"with characters: {', '.join(character_keys)}"
    )
    return session


@dataclass
class SessionListing:
    session: ChatSession
    message_count: int
    last_message: Optional[ChatMessage]


def list_sessions(
    db: Session,
    user_id: UUID,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[SessionListing], PageInfo]:
    """User's sessions, most recently active first, with counts and last message."""
    total = db.query(func.count(ChatSession.id)).filter(ChatSession.user_id == user_id).scalar()
    page_info = get_page_info(page, page_size, total or 0)

    rows = (
        db.query(ChatSession, func.count(ChatMessage.id).label("message_count"))
        .outerjoin(ChatMessage, ChatMessage.session_id == ChatSession.id)
        .filter(ChatSession.user_id == user_id)
        .group_by(ChatSession.id)
        .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
        .offset(page_info.offset)
        .limit(page_info.page_size)
        .all()
    )

    listings = [
        SessionListing(
            session=session,
            message_count=message_count,
            last_message=get_last_message(db, session.id),
        )
        for session, message_count in rows
    ]
    return listings, page_info


def rename_session(db: Session, session: ChatSession, title: str) -> ChatSession:
    session.title = title
    db.commit()
    db.refresh(session)
    return session


def close_session(db: Session, session: ChatSession) -> ChatSession:
    session.closed = True
    db.commit()
    db.refresh(session)
    logger.info(f"Closed session {session.id}")
    return session


def delete_session(db: Session, session: ChatSession) -> None:
    """Delete a session; participants and messages go with it."""
    session_id = session.id
    db.delete(session)
    db.commit()
    logger.info(f"Deleted session {session_id}")


def touch_session(db: Session, session_id: UUID) -> None:
    db.query(ChatSession).filter(ChatSession.id == session_id).update(
        {ChatSession.updated_at: datetime.now(timezone.utc)},
        synchronize_session=False,
    )


# =============================================================================
# Messages
# =============================================================================

def count_messages(db: Session, session_id: UUID) -> int:
    return (
        db.query(func.count(ChatMessage.id))
        .filter(ChatMessage.session_id == session_id)
        .scalar()
        or 0
    )


def get_last_message(db: Session, session_id: UUID) -> Optional[ChatMessage]:
    """Latest user-facing message of a session."""
    return (
        db.query(ChatMessage)
        .filter(
            ChatMessage.session_id == session_id,
            ChatMessage.role != MessageRole.SYSTEM,
        )
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .first()
    )


def append_messages(
    db: Session,
    session_id: UUID,
    drafts: Sequence[MessageBase],
    require_open: bool = False,
) -> List[MessageView]:
    """
    Persist message drafts in the given order, in a single transaction.

    Each row gets a timestamp later than the previous one, so reading back
    by (created_at, id) reproduces this order. Touches the session's
    updated_at.

    Raises:
        NotFoundError: If ``require_open`` is set and the session was
            closed or deleted in the meantime
    """
    if not drafts:
        return []

    if require_open:
        # Read the flag from the database, not the identity map
        closed = (
            db.query(ChatSession.closed)
            .filter(ChatSession.id == session_id)
            .scalar()
        )
        if closed is None or closed:
            logger.warning(f"Session {session_id} was closed or deleted during a turn")
            raise NotFoundError(SESSION_NOT_FOUND_OR_CLOSED)

    timestamps = _next_timestamps(db, session_id, len(drafts))
    rows = []
    for draft, created_at in zip(drafts, timestamps):
        author_key, author_name = draft.author()
        row = ChatMessage(
            session_id=session_id,
            role=draft.role,
            author_key=author_key,
            author_name=author_name,
            content=draft.content,
            meta=draft.to_meta(),
            created_at=created_at,
        )
        db.add(row)
        rows.append(row)

    touch_session(db, session_id)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    for row in rows:
        db.refresh(row)
    return [to_message_view(row) for row in rows]


def append_message(db: Session, session_id: UUID, draft: MessageBase) -> MessageView:
    return append_messages(db, session_id, [draft])[0]


def list_messages_page(
    db: Session,
    session_id: UUID,
    cursor: Optional[str] = None,
    limit: int = 30,
) -> Tuple[List[ChatMessage], Optional[str]]:
    """
    One page of user-facing messages, oldest first.

    Pages walk backwards in time: the cursor points at the oldest message of
    the previous page. A full page yields a next cursor (there may be more);
    a short page means the history is exhausted.
    """
    query = db.query(ChatMessage).filter(
        ChatMessage.session_id == session_id,
        ChatMessage.role != MessageRole.SYSTEM,
    )

    if cursor:
        cursor_time, cursor_id = decode_cursor(cursor)
        query = query.filter(
            or_(
                ChatMessage.created_at < cursor_time,
                and_(ChatMessage.created_at == cursor_time, ChatMessage.id < cursor_id),
            )
        )

    messages = (
        query.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    messages.reverse()

    next_cursor = None
    if len(messages) == limit:
        oldest = messages[0]
        next_cursor = encode_cursor(oldest.created_at, oldest.id)
    return messages, next_cursor


def get_recent_history(
    db: Session,
    session_id: UUID,
    limit: int,
    exclude_message_id: Optional[UUID] = None,
) -> List[MessageView]:
    """The ``limit`` most recent non-system messages, oldest first."""
    query = db.query(ChatMessage).filter(
        ChatMessage.session_id == session_id,
        ChatMessage.role != MessageRole.SYSTEM,
    )
    if exclude_message_id is not None:
        query = query.filter(ChatMessage.id != exclude_message_id)

    rows = (
        query.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    rows.reverse()
    return [to_message_view(row) for row in rows]


def get_latest_suggestions(db: Session, session_id: UUID) -> List[str]:
    """Suggested topics from the newest system message that carries them."""
    system_messages = (
        db.query(ChatMessage)
        .filter(
            ChatMessage.session_id == session_id,
            ChatMessage.role == MessageRole.SYSTEM,
        )
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .all()
    )
    for row in system_messages:
        topics = (row.meta or {}).get("suggested_topics")
        if isinstance(topics, list):
            return topics
    return []
