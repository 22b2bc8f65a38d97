"""
Chat API endpoints for Council and Decision sessions.

Provides endpoints for:
- Managing chat sessions (create, list, get, rename, close, delete)
- Sending a message and running the AI turn, buffered or as Server-Sent Events
- Suggested follow-up topics

Missing sessions and sessions owned by other users both answer 404; sending
to a closed session answers 404 as well.
"""
import asyncio
import logging
from typing import Callable, Optional, Set
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from mindchat.core.config import settings
from mindchat.core.deps import get_db, get_current_user, get_session_factory, parse_uuid
from mindchat.core.exceptions import AppException, BadRequestError
from mindchat.core.turn_lock import TurnLockRegistry, get_turn_locks
from mindchat.models.chat_message import ChatMessage
from mindchat.models.chat_session import ChatSession
from mindchat.models.user import User
from mindchat.schemas.chat import (
    CharacterSummary,
    ChatSessionCreate,
    ChatSessionDetailResponse,
    ChatSessionListResponse,
    ChatSessionResponse,
    ChatSessionUpdate,
    CursorPagination,
    LastMessageOut,
    ParticipantOut,
    SendMessageRequest,
    SendMessageResponse,
    SuggestionsResponse,
)
from mindchat.schemas.messages import MessageView, UserMessage, to_message_view
from mindchat.services import session_store
from mindchat.services.audit import log_action, get_client_info, AuditAction, TargetType
from mindchat.services.chat_orchestrator import ChatOrchestrator
from mindchat.services.llm_client import LLMClient, get_llm_client
from mindchat.services.sse import SSE_HEADERS, SSEChannel, SSEEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

# Strong references to running streamed turns
_background_turns: Set[asyncio.Task] = set()


# =============================================================================
# Helper Functions
# =============================================================================

def participants_to_out(session: ChatSession) -> list[ParticipantOut]:
    return [
        ParticipantOut(
            character=CharacterSummary(
                key=p.character.key,
                name=p.character.name,
                avatar_url=p.character.avatar_url,
                style_tags=p.character.style_tags or [],
            ),
            order_index=p.order_index,
        )
        for p in session.participants
    ]


def last_message_to_out(message: Optional[ChatMessage]) -> Optional[LastMessageOut]:
    if message is None:
        return None
    return LastMessageOut(
        role=message.role,
        author_name=message.author_name,
        content=message.content,
        created_at=message.created_at,
    )


def session_to_response(
    session: ChatSession,
    message_count: int = 0,
    last_message: Optional[ChatMessage] = None,
) -> ChatSessionResponse:
    return ChatSessionResponse(
        id=str(session.id),
        mode=session.mode,
        title=session.title,
        closed=session.closed,
        participants=participants_to_out(session),
        message_count=message_count,
        last_message=last_message_to_out(last_message),
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def audit_session_action(
    db: Session,
    request: Request,
    action: str,
    user: User,
    session_id: UUID,
    details: Optional[dict] = None,
) -> None:
    ip_address, user_agent = get_client_info(request)
    log_action(
        db=db,
        action=action,
        user_id=user.id,
        target_type=TargetType.CHAT_SESSION,
        target_id=str(session_id),
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )


# =============================================================================
# Session Management Endpoints
# =============================================================================

@router.post("/sessions", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    data: ChatSessionCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a Council or Decision session.

    - **mode**: COUNCIL or DECISION (fixed for the session's lifetime)
    - **characters**: 1-6 distinct active character keys, in answering order
    - **title**: Optional; defaults to "Conselho com N personagens" / "Decisão com N personagens"
    """
    session = session_store.create_session(
        db,
        user_id=current_user.id,
        mode=data.mode,
        character_keys=data.characters,
        title=data.title,
    )
    audit_session_action(
        db,
        request,
        AuditAction.CREATE_CHAT_SESSION,
        current_user,
        session.id,
        details={"mode": session.mode, "characters": data.characters},
    )
    return session_to_response(session)


@router.get("/sessions", response_model=ChatSessionListResponse)
def list_sessions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List the user's sessions, most recently active first.
    """
    listings, page_info = session_store.list_sessions(db, current_user.id, page, page_size)
    return ChatSessionListResponse(
        sessions=[
            session_to_response(item.session, item.message_count, item.last_message)
            for item in listings
        ],
        total=page_info.total,
        page=page_info.page,
        page_size=page_info.page_size,
        total_pages=page_info.total_pages,
        has_next=page_info.has_next,
        has_prev=page_info.has_prev,
    )


@router.get("/sessions/{session_id}", response_model=ChatSessionDetailResponse)
def get_session(
    session_id: str,
    cursor: Optional[str] = None,
    limit: int = Query(settings.CHAT_PAGE_LIMIT_DEFAULT, ge=1, le=settings.CHAT_PAGE_LIMIT_MAX),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get a session with one page of its messages, oldest first.

    - **cursor**: `next_cursor` of the previous page, to load older messages
    - **limit**: Page size (1-100, default 30)
    """
    sid = parse_uuid(session_id, "session ID")
    session = session_store.get_owned_session(db, sid, current_user.id)
    messages, next_cursor = session_store.list_messages_page(db, sid, cursor, limit)

    return ChatSessionDetailResponse(
        id=str(session.id),
        mode=session.mode,
        title=session.title,
        closed=session.closed,
        participants=participants_to_out(session),
        messages=[to_message_view(m) for m in messages],
        pagination=CursorPagination(
            next_cursor=next_cursor,
            has_more=next_cursor is not None,
        ),
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


@router.patch("/sessions/{session_id}", response_model=ChatSessionResponse)
def rename_session(
    session_id: str,
    data: ChatSessionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Rename a session (closed sessions too)."""
    sid = parse_uuid(session_id, "session ID")
    session = session_store.get_owned_session(db, sid, current_user.id)
    session = session_store.rename_session(db, session, data.title)
    return session_to_response(
        session,
        session_store.count_messages(db, sid),
        session_store.get_last_message(db, sid),
    )


@router.post("/sessions/{session_id}/close", response_model=ChatSessionResponse)
def close_session(
    session_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    turn_locks: TurnLockRegistry = Depends(get_turn_locks),
):
    """
    Close a session. It stays readable but accepts no new messages.

    Closing while a reply is being generated answers 409.
    """
    sid = parse_uuid(session_id, "session ID")
    session = session_store.get_owned_session(db, sid, current_user.id)
    turn_locks.acquire_or_conflict(sid)
    try:
        session = session_store.close_session(db, session)
    finally:
        turn_locks.release(sid)
    audit_session_action(db, request, AuditAction.CLOSE_CHAT_SESSION, current_user, sid)
    return session_to_response(
        session,
        session_store.count_messages(db, sid),
        session_store.get_last_message(db, sid),
    )


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(
    session_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    turn_locks: TurnLockRegistry = Depends(get_turn_locks),
):
    """Delete a session with its participants and messages."""
    sid = parse_uuid(session_id, "session ID")
    session = session_store.get_owned_session(db, sid, current_user.id)
    turn_locks.acquire_or_conflict(sid)
    try:
        session_store.delete_session(db, session)
    finally:
        turn_locks.release(sid)
    audit_session_action(db, request, AuditAction.DELETE_CHAT_SESSION, current_user, sid)


@router.get("/sessions/{session_id}/suggestions", response_model=SuggestionsResponse)
def get_session_suggestions(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Suggested topics from the latest turn, or an empty list."""
    sid = parse_uuid(session_id, "session ID")
    session_store.get_owned_session(db, sid, current_user.id)
    return SuggestionsResponse(
        session_id=str(sid),
        suggestions=session_store.get_latest_suggestions(db, sid),
    )


# =============================================================================
# Message Endpoints
# =============================================================================

async def store_user_message(
    db: Session,
    session_id: UUID,
    content: str,
    llm_client: LLMClient,
    request: Request,
    user: User,
) -> MessageView:
    """
    Moderate and persist the user's message.

    A flagged message is still stored, with its moderation result, and then
    rejected.

    Raises:
        BadRequestError: If moderation flags the message
    """
    moderation = await llm_client.moderate(content)
    message = session_store.append_message(
        db,
        session_id,
        UserMessage(
            content=content,
            flagged=moderation.flagged,
            moderation={"flagged": moderation.flagged, "categories": moderation.categories},
        ),
    )

    if moderation.flagged:
        flagged_categories = sorted(k for k, v in moderation.categories.items() if v)
        logger.warning(
            f"Message {message.id} in session {session_id} flagged by moderation: "
            f"{', '.join(flagged_categories) or 'no categories'}"
        )
        ip_address, user_agent = get_client_info(request)
        log_action(
            db=db,
            action=AuditAction.MESSAGE_FLAGGED,
            user_id=user.id,
            target_type=TargetType.MESSAGE,
            target_id=message.id,
            details={"session_id": str(session_id), "categories": flagged_categories},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise BadRequestError("Message violates the content policy")

    return message


def start_streamed_turn(
    session_factory: Callable[[], Session],
    orchestrator: ChatOrchestrator,
    turn_locks: TurnLockRegistry,
    session_id: UUID,
    user_message: MessageView,
    user_id: UUID,
) -> StreamingResponse:
    """
    Run the turn in a background task and stream its events.

    The stream opens with ``connected`` and always ends with ``close``; a
    failed turn sends a single ``error`` event before closing. The task owns
    the turn lock from here on, and works in its own database session since
    it outlives the request.
    """
    channel = SSEChannel()
    channel.send(
        SSEEvent.CONNECTED,
        {"session_id": str(session_id), "user_message_id": user_message.id},
    )

    async def run_turn() -> None:
        db = session_factory()
        try:
            result = await orchestrator.orchestrate(
                db,
                session_id,
                user_message.content,
                sink=channel,
                exclude_message_id=UUID(user_message.id),
            )
            log_action(
                db=db,
                action=AuditAction.CHAT_TURN,
                user_id=user_id,
                target_type=TargetType.CHAT_SESSION,
                target_id=str(session_id),
                details={"mode": result.mode, "stream": True},
            )
        except AppException as e:
            logger.error(f"Streamed turn failed for session {session_id}: {e.message}")
            channel.send_error(e)
        except Exception as e:
            logger.error(f"Streamed turn failed for session {session_id}: {e}", exc_info=True)
            channel.send_error(e)
        finally:
            db.close()
            turn_locks.release(session_id)
            channel.close()

    task = asyncio.create_task(run_turn())
    _background_turns.add(task)
    task.add_done_callback(_background_turns.discard)

    return StreamingResponse(channel, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/sessions/{session_id}/messages", response_model=SendMessageResponse)
async def send_message(
    session_id: str,
    data: SendMessageRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm_client: LLMClient = Depends(get_llm_client),
    turn_locks: TurnLockRegistry = Depends(get_turn_locks),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """
    Send a message and run the AI turn.

    - **content**: 1-2000 characters
    - **stream**: Answer as Server-Sent Events instead of one JSON body

    The user's message is stored before the turn runs and is kept even if
    the turn fails. Only one turn per session may run at a time (409).
    """
    sid = parse_uuid(session_id, "session ID")
    session_store.get_owned_session(db, sid, current_user.id, require_open=True)
    turn_locks.acquire_or_conflict(sid)

    handed_off = False
    try:
        user_message = await store_user_message(
            db, sid, data.content, llm_client, request, current_user
        )
        orchestrator = ChatOrchestrator(llm_client)

        if data.stream:
            response = start_streamed_turn(
                session_factory, orchestrator, turn_locks, sid, user_message, current_user.id
            )
            handed_off = True
            return response

        result = await orchestrator.orchestrate(
            db,
            sid,
            data.content,
            exclude_message_id=UUID(user_message.id),
        )
    finally:
        if not handed_off:
            turn_locks.release(sid)

    audit_session_action(
        db,
        request,
        AuditAction.CHAT_TURN,
        current_user,
        sid,
        details={"mode": result.mode, "stream": False},
    )
    return SendMessageResponse(
        session_id=str(sid),
        user_message_id=user_message.id,
        result=result,
    )
