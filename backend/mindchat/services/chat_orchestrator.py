"""
Chat Orchestrator - runs one AI turn of a Council or Decision session.

A turn is a single structured completion covering every participant:
1. Reload the session, its ordered participants, the owner's profile and
   the recent conversation
2. Build the mode prompt and request a structured completion
3. Validate the completion
4. Persist the character rows (plus the summary and suggested topics) in
   one transaction
5. Push the persisted units to the event sink, in persistence order

Nothing is written unless the completion validates. The user's own message
is stored by the caller before the turn starts and is never rolled back.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from mindchat.core.config import settings
from mindchat.core.exceptions import BadRequestError, MalformedResponseError, NotFoundError
from mindchat.models.character import Character
from mindchat.models.chat_session import ChatMode, ChatSession
from mindchat.schemas.ai_response import CouncilResponse, DecisionResponse
from mindchat.schemas.chat import CharacterReply, FinalDecisionOut, TurnResult
from mindchat.schemas.messages import (
    CharacterMessage,
    MessageBase,
    MessageView,
    SummaryMessage,
    SystemMessage,
)
from mindchat.services import session_store
from mindchat.services.llm_client import LLMClient
from mindchat.services.prompt_builder import (
    UserContext,
    build_council_prompt,
    build_decision_prompt,
    build_llm_messages,
    build_user_context,
)
from mindchat.services.response_validator import RESPONSE_SCHEMAS, validate_response
from mindchat.services.sse import EventSink, SSEEvent

logger = logging.getLogger(__name__)


@dataclass
class TurnContext:
    """Everything a mode runner needs, loaded once per turn."""

    session: ChatSession
    characters: List[Character]
    history: List[MessageView]
    user_context: UserContext


class ChatOrchestrator:
    """
    Single entry point for AI turns.

    Usage:
        orchestrator = ChatOrchestrator(llm_client)
        result = await orchestrator.orchestrate(db, session_id, "Como lidar com a ansiedade?")
    """

    def __init__(self, llm_client: LLMClient, context_messages: Optional[int] = None):
        self.llm_client = llm_client
        self.context_messages = context_messages or settings.CHAT_CONTEXT_MESSAGES

    async def orchestrate(
        self,
        db: Session,
        session_id: UUID,
        user_input: str,
        sink: Optional[EventSink] = None,
        exclude_message_id: Optional[UUID] = None,
    ) -> TurnResult:
        """
        Run one turn for ``user_input`` and return its result.

        Args:
            db: Database session
            session_id: Session to answer in
            user_input: The user's new message
            sink: Optional receiver of streaming events
            exclude_message_id: Message to leave out of the history (the
                user message of this turn, already persisted)

        Raises:
            NotFoundError: If the session no longer exists, or was closed
                before the reply could be stored
            BadRequestError: If the session mode cannot be orchestrated
            LLMUpstreamError: If the completion call fails
            MalformedResponseError: If the completion does not validate
        """
        context = self.load_context(db, session_id, exclude_message_id)

        mode = context.session.mode
        if mode == ChatMode.COUNCIL:
            result = await self.run_council(db, context, user_input, sink)
        elif mode == ChatMode.DECISION:
            result = await self.run_decision(db, context, user_input, sink)
        else:
            logger.error(f"Session {session_id} has unsupported mode '{mode}'")
            raise BadRequestError(f"Unsupported chat mode: {mode}")

        logger.info(
            f"{mode} turn completed for session {session_id}: "
            f"{len(result.messages)} character messages, "
            f"{len(result.suggested_topics)} suggested topics"
        )
        return result

    def load_context(
        self,
        db: Session,
        session_id: UUID,
        exclude_message_id: Optional[UUID] = None,
    ) -> TurnContext:
        session = db.query(ChatSession).filter(ChatSession.id == session_id).first()
        if session is None:
            raise NotFoundError(session_store.SESSION_NOT_FOUND)

        characters = [p.character for p in session.participants]
        history = session_store.get_recent_history(
            db,
            session_id,
            limit=self.context_messages,
            exclude_message_id=exclude_message_id,
        )
        return TurnContext(
            session=session,
            characters=characters,
            history=history,
            user_context=build_user_context(session.user),
        )

    async def run_council(
        self,
        db: Session,
        context: TurnContext,
        user_input: str,
        sink: Optional[EventSink] = None,
    ) -> TurnResult:
        """Council turn: one response per character, then suggested topics."""
        system_prompt = build_council_prompt(
            context.characters, context.history, user_input, context.user_context
        )
        self._emit(sink, SSEEvent.COUNCIL_START, {"characters": _character_list(context.characters)})

        response: CouncilResponse = await self._complete(ChatMode.COUNCIL, system_prompt, user_input)

        replies = _order_by_participants(
            context.characters,
            [(item.characterKey, item.content) for item in response.messages],
            context.session.id,
        )
        drafts: List[MessageBase] = [
            CharacterMessage(
                author_key=character.key,
                author_name=character.name,
                content=content,
                mode=ChatMode.COUNCIL,
                message_type="response",
                character_order=order,
            )
            for order, character, content in replies
        ]
        if response.suggested_topics:
            drafts.append(SystemMessage(suggested_topics=response.suggested_topics))

        saved = session_store.append_messages(db, context.session.id, drafts, require_open=True)

        messages = [
            CharacterReply(
                character_key=view.author_key,
                character_name=view.author_name,
                content=view.content,
                message_id=view.id,
            )
            for view in saved
            if isinstance(view, CharacterMessage)
        ]
        for reply in messages:
            self._emit(
                sink,
                SSEEvent.CHARACTER_RESPONSE,
                {
                    "characterKey": reply.character_key,
                    "characterName": reply.character_name,
                    "content": reply.content,
                    "messageId": reply.message_id,
                },
            )
        self._emit(sink, SSEEvent.COUNCIL_COMPLETE, {"suggested_topics": response.suggested_topics})

        return TurnResult(
            mode=ChatMode.COUNCIL,
            messages=messages,
            suggested_topics=response.suggested_topics,
        )

    async def run_decision(
        self,
        db: Session,
        context: TurnContext,
        user_input: str,
        sink: Optional[EventSink] = None,
    ) -> TurnResult:
        """Decision turn: one analysis per character, then the final decision."""
        system_prompt = build_decision_prompt(
            context.characters, context.history, user_input, context.user_context
        )
        self._emit(sink, SSEEvent.DECISION_START, {"characters": _character_list(context.characters)})

        response: DecisionResponse = await self._complete(ChatMode.DECISION, system_prompt, user_input)

        analyses = _order_by_participants(
            context.characters,
            [(item.characterKey, item.summary) for item in response.analyses],
            context.session.id,
        )
        decision = response.final_decision
        drafts: List[MessageBase] = [
            CharacterMessage(
                author_key=character.key,
                author_name=character.name,
                content=summary,
                mode=ChatMode.DECISION,
                message_type="analysis",
                character_order=order,
            )
            for order, character, summary in analyses
        ]
        drafts.append(
            SummaryMessage(
                content=decision.content,
                title=decision.title,
                rationale=decision.rationale,
            )
        )
        if response.suggested_topics:
            drafts.append(SystemMessage(suggested_topics=response.suggested_topics))

        saved = session_store.append_messages(db, context.session.id, drafts, require_open=True)

        messages = [
            CharacterReply(
                character_key=view.author_key,
                character_name=view.author_name,
                content=view.content,
                message_id=view.id,
            )
            for view in saved
            if isinstance(view, CharacterMessage)
        ]
        summary_view = next(view for view in saved if isinstance(view, SummaryMessage))
        final_decision = FinalDecisionOut(
            title=summary_view.title,
            content=summary_view.content,
            rationale=summary_view.rationale,
            message_id=summary_view.id,
        )

        for reply in messages:
            self._emit(
                sink,
                SSEEvent.CHARACTER_ANALYSIS,
                {
                    "characterKey": reply.character_key,
                    "characterName": reply.character_name,
                    "summary": reply.content,
                    "messageId": reply.message_id,
                },
            )
        self._emit(
            sink,
            SSEEvent.FINAL_DECISION,
            {
                "title": final_decision.title,
                "content": final_decision.content,
                "rationale": final_decision.rationale,
                "messageId": final_decision.message_id,
            },
        )
        self._emit(sink, SSEEvent.DECISION_COMPLETE, {"suggested_topics": response.suggested_topics})

        return TurnResult(
            mode=ChatMode.DECISION,
            messages=messages,
            final_decision=final_decision,
            suggested_topics=response.suggested_topics,
        )

    async def _complete(self, mode: str, system_prompt: str, user_input: str):
        raw = await self.llm_client.create_structured_response(
            build_llm_messages(system_prompt, user_input),
            response_format=RESPONSE_SCHEMAS[mode],
            schema_name=f"{mode.lower()}_response",
        )
        return validate_response(raw, mode)

    @staticmethod
    def _emit(sink: Optional[EventSink], event_type: str, data: Dict) -> None:
        if sink is not None:
            sink.send(event_type, data)


def _character_list(characters: Sequence[Character]) -> List[Dict[str, str]]:
    return [{"key": c.key, "name": c.name} for c in characters]


def _order_by_participants(
    characters: Sequence[Character],
    items: Sequence[Tuple[str, str]],
    session_id: UUID,
) -> List[Tuple[int, Character, str]]:
    """
    Match (character key, text) pairs to participants, in participant order.

    Keys that are not participants, and repeats of a key, are dropped.
    """
    positions = {c.key: (index, c) for index, c in enumerate(characters)}
    matched: Dict[str, Tuple[int, Character, str]] = {}

    for key, text in items:
        if key not in positions:
            logger.warning(f"Session {session_id}: dropping response for unknown character '{key}'")
            continue
        if key in matched:
            logger.warning(f"Session {session_id}: dropping repeated response for '{key}'")
            continue
        index, character = positions[key]
        matched[key] = (index, character, text)

    missing = [c.key for c in characters if c.key not in matched]
    if missing:
        logger.warning(f"Session {session_id}: no response for characters: {', '.join(missing)}")
    if not matched:
        raise MalformedResponseError("AI response did not match any session character")

    return sorted(matched.values(), key=lambda entry: entry[0])
