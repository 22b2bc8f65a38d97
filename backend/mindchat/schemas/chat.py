"""
Chat schemas for request/response validation.

Covers session management, message sending and the turn results returned
by the orchestrator in buffered mode.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from mindchat.core.config import settings
from mindchat.schemas.messages import MessageView


# =============================================================================
# Chat Session Schemas
# =============================================================================

class ChatSessionCreate(BaseModel):
    """Request schema for creating a new chat session."""
    mode: Literal["COUNCIL", "DECISION"]
    characters: List[str] = Field(
        ...,
        min_length=1,
        max_length=settings.CHAT_MAX_PARTICIPANTS,
        description="Character keys, in the order they should answer.",
    )
    title: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("characters")
    @classmethod
    def validate_character_keys(cls, v: List[str]) -> List[str]:
        if any(not key.strip() for key in v):
            raise ValueError("Character key cannot be empty")
        if len(set(v)) != len(v):
            raise ValueError("Each character can only join a session once")
        return v


class ChatSessionUpdate(BaseModel):
    """Request schema for renaming a chat session."""
    title: str = Field(..., min_length=1, max_length=100)


class CharacterSummary(BaseModel):
    key: str
    name: str
    avatar_url: Optional[str] = None
    style_tags: List[str] = Field(default_factory=list)


class ParticipantOut(BaseModel):
    character: CharacterSummary
    order_index: int


class LastMessageOut(BaseModel):
    role: str
    author_name: Optional[str] = None
    content: str
    created_at: datetime


class ChatSessionResponse(BaseModel):
    """Response schema for a chat session."""
    id: str
    mode: str
    title: Optional[str] = None
    closed: bool
    participants: List[ParticipantOut]
    message_count: int = 0
    last_message: Optional[LastMessageOut] = None
    created_at: datetime
    updated_at: datetime


class ChatSessionListResponse(BaseModel):
    """Response schema for listing chat sessions."""
    sessions: List[ChatSessionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class CursorPagination(BaseModel):
    next_cursor: Optional[str] = None
    has_more: bool


class ChatSessionDetailResponse(BaseModel):
    """A session with one page of its user-facing messages."""
    id: str
    mode: str
    title: Optional[str] = None
    closed: bool
    participants: List[ParticipantOut]
    messages: List[MessageView]
    pagination: CursorPagination
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Chat Message Schemas
# =============================================================================

class SendMessageRequest(BaseModel):
    """Request schema for sending a message to a session."""
    content: str = Field(..., min_length=1, max_length=settings.CHAT_MESSAGE_MAX_LENGTH)
    stream: bool = Field(False, description="Answer as a Server-Sent Events stream.")

    @field_validator("content")
    @classmethod
    def validate_content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be empty")
        return v


class CharacterReply(BaseModel):
    character_key: str
    character_name: str
    content: str
    message_id: Optional[str] = None


class FinalDecisionOut(BaseModel):
    title: str
    content: str
    rationale: str
    message_id: Optional[str] = None


class TurnResult(BaseModel):
    """Outcome of one orchestrated turn."""
    mode: Literal["COUNCIL", "DECISION"]
    # Council responses or Decision analyses, in participant order
    messages: List[CharacterReply]
    final_decision: Optional[FinalDecisionOut] = None
    suggested_topics: List[str] = Field(default_factory=list)


class SendMessageResponse(BaseModel):
    session_id: str
    user_message_id: str
    result: TurnResult


class SuggestionsResponse(BaseModel):
    session_id: str
    suggestions: List[str]
