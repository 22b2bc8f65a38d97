"""
Single-flight guard for AI turns.

At most one turn may be in flight per chat session. A send that arrives
while another turn of the same session is running is rejected, not queued.
The registry lives in process memory, so it only covers one API instance.

Must only be used from the event loop thread: acquiring is a check-and-set
with no await in between.
"""
import logging
from typing import Set
from uuid import UUID

from mindchat.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


class TurnLockRegistry:
    """Sessions with a turn in flight."""

    def __init__(self) -> None:
        self._active: Set[UUID] = set()

    def try_acquire(self, session_id: UUID) -> bool:
        """Mark the session busy without waiting. False if it already is."""
        if session_id in self._active:
            return False
        self._active.add(session_id)
        return True

    def acquire_or_conflict(self, session_id: UUID) -> None:
        """
        Raises:
            ConflictError: If a turn is already running for the session
        """
        if not self.try_acquire(session_id):
            logger.info(f"Rejected concurrent turn for session {session_id}")
            raise ConflictError("A reply is already being generated for this session")

    def release(self, session_id: UUID) -> None:
        self._active.discard(session_id)

    def is_locked(self, session_id: UUID) -> bool:
        return session_id in self._active


turn_locks = TurnLockRegistry()


def get_turn_locks() -> TurnLockRegistry:
    return turn_locks
