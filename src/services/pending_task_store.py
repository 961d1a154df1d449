"""In-memory pending-task slot per conversation."""

import logging

from src.core.logging import log_with_conversation_context
from src.domain.conversation import PendingTask


logger = logging.getLogger(__name__)


class PendingTaskStore:
    """Holds at most one pending task per conversation id.

    The dialogue service itself is stateless; callers that run a
    conversation loop keep the pending task here between turns.
    """

    def __init__(self) -> None:
        self._pending: dict[str, PendingTask] = {}

    def get(self, conversation_id: str) -> PendingTask | None:
        return self._pending.get(conversation_id)

    def put(self, conversation_id: str, pending: PendingTask | None) -> None:
        """Store a pending task, or clear the slot when ``pending`` is None."""
        if pending is None:
            self._pending.pop(conversation_id, None)
            return
        self._pending[conversation_id] = pending
        log_with_conversation_context(
            logger, "debug", "pending_task_stored", conversation_id, rounds_used=pending.rounds_used
        )

    def pop(self, conversation_id: str) -> PendingTask | None:
        return self._pending.pop(conversation_id, None)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)
