"""
Typed views over chat message rows.

A ChatMessage row stores role-specific data in an open ``meta`` JSON column.
Everything above the store works with the variants below instead, discriminated
by ``role``. Drafts (id/created_at unset) are turned into rows by the session
store; persisted rows are read back with ``to_message_view``.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from mindchat.models.chat_message import ChatMessage


class MessageBase(BaseModel):
    id: Optional[str] = None
    session_id: Optional[str] = None
    content: str
    created_at: Optional[datetime] = None

    def author(self) -> tuple[Optional[str], Optional[str]]:
        """(author_key, author_name) to store on the row."""
        return None, None

    def to_meta(self) -> Optional[Dict[str, Any]]:
        return None


class UserMessage(MessageBase):
    role: Literal["USER"] = "USER"
    flagged: bool = False
    moderation: Dict[str, Any] = Field(default_factory=dict)

    def to_meta(self) -> Dict[str, Any]:
        return {"flagged": self.flagged, "moderation": self.moderation}


class CharacterMessage(MessageBase):
    role: Literal["CHARACTER"] = "CHARACTER"
    author_key: str
    author_name: str
    mode: str
    # "response" in Council mode, "analysis" in Decision mode
    message_type: Literal["response", "analysis"] = "response"
    character_order: int

    def author(self) -> tuple[Optional[str], Optional[str]]:
        return self.author_key, self.author_name

    def to_meta(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "message_type": self.message_type,
            "character_order": self.character_order,
        }


class SummaryMessage(MessageBase):
    role: Literal["SUMMARY"] = "SUMMARY"
    author_name: str = "Conselho"
    title: str
    rationale: str

    def author(self) -> tuple[Optional[str], Optional[str]]:
        return None, self.author_name

    def to_meta(self) -> Dict[str, Any]:
        return {
            "mode": "DECISION",
            "message_type": "final_decision",
            "title": self.title,
            "rationale": self.rationale,
        }


class SystemMessage(MessageBase):
    role: Literal["SYSTEM"] = "SYSTEM"
    content: str = "Suggested topics"
    suggested_topics: List[str]

    def to_meta(self) -> Dict[str, Any]:
        return {"suggested_topics": self.suggested_topics}


class NarratorMessage(MessageBase):
    role: Literal["NARRATOR"] = "NARRATOR"


MessageView = Annotated[
    Union[UserMessage, CharacterMessage, SummaryMessage, SystemMessage, NarratorMessage],
    Field(discriminator="role"),
]

_message_view_adapter = TypeAdapter(MessageView)


def to_message_view(row: ChatMessage) -> MessageView:
    """Build the typed view of a persisted row."""
    meta = row.meta or {}
    data: Dict[str, Any] = {
        "id": str(row.id),
        "session_id": str(row.session_id),
        "role": row.role,
        "content": row.content,
        "created_at": row.created_at,
    }
    if row.role == "USER":
        data["flagged"] = bool(meta.get("flagged", False))
        data["moderation"] = meta.get("moderation") or {}
    elif row.role == "CHARACTER":
        data["author_key"] = row.author_key or ""
        data["author_name"] = row.author_name or ""
        data["mode"] = meta.get("mode", "COUNCIL")
        data["message_type"] = meta.get("message_type", "response")
        data["character_order"] = meta.get("character_order", 0)
    elif row.role == "SUMMARY":
        data["author_name"] = row.author_name or "Conselho"
        data["title"] = meta.get("title", "")
        data["rationale"] = meta.get("rationale", "")
    elif row.role == "SYSTEM":
        data["suggested_topics"] = meta.get("suggested_topics") or []
    return _message_view_adapter.validate_python(data)
