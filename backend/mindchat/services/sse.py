"""
Server-Sent Events helpers for streamed chat turns.

Every event is a single ``data:`` line carrying ``{"type", "data",
"timestamp"}``. There are no ``id:``/``retry:`` fields and no replay: a
client that drops the connection loses what was sent before it reconnects.

``SSEChannel`` bridges the orchestrator (which pushes events as rows are
committed) and the StreamingResponse body (which drains them).
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional, Protocol

from mindchat.core.exceptions import AppException

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class SSEEvent:
    """Constants for event types."""

    CONNECTED = "connected"
    COUNCIL_START = "council_start"
    DECISION_START = "decision_start"
    CHARACTER_RESPONSE = "character_response"
    CHARACTER_ANALYSIS = "character_analysis"
    FINAL_DECISION = "final_decision"
    COUNCIL_COMPLETE = "council_complete"
    DECISION_COMPLETE = "decision_complete"
    ERROR = "error"
    CLOSE = "close"


class EventSink(Protocol):
    """Anything the orchestrator can push turn events to."""

    def send(self, event_type: str, data: Dict[str, Any]) -> None: ...


def format_event(event_type: str, data: Optional[Dict[str, Any]] = None) -> str:
    payload = {
        "type": event_type,
        "data": data if data is not None else {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return f"data: {json.dumps(payload, ensure_ascii=False, default=str)}\n\n"


def error_payload(exc: Exception) -> Dict[str, Any]:
    """Error event data; internals of unexpected exceptions are not exposed."""
    if isinstance(exc, AppException):
        return {"message": exc.message, "status_code": exc.status_code}
    return {"message": "Internal server error", "status_code": 500}


class SSEChannel:
    """
    In-process event queue feeding one streaming response.

    Producers call ``send``/``send_error``/``close``; the response body
    iterates the channel. Nothing can be sent after ``close``.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        if self._closed:
            logger.warning(f"Dropping SSE event '{event_type}' sent after close")
            return
        self._queue.put_nowait(format_event(event_type, data))

    def send_error(self, exc: Exception) -> None:
        self.send(SSEEvent.ERROR, error_payload(exc))

    def close(self) -> None:
        if self._closed:
            return
        self.send(SSEEvent.CLOSE)
        self._closed = True
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                break
            yield chunk
