"""Dialogue models: the caller-held pending task and the per-turn outcome."""

from enum import StrEnum

from pydantic import BaseModel, Field

from src.domain.create_models import NewTask
from src.domain.task import TaskPriority
from src.domain.update_models import UpdateResult


class DialogueState(StrEnum):
    """Where a conversation is between turns."""

    IDLE = "idle"
    AWAITING_CLARIFICATION = "awaiting_clarification"


class DialogueAction(StrEnum):
    """What the caller should do with a turn's outcome."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CLARIFY = "clarify"
    QUERY = "query"


class PendingTask(BaseModel):
    """Partial task held by the caller across one clarification round."""

    title: str
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: str | None = None
    accumulated_context: str = ""
    rounds_used: int = Field(default=0, ge=0, le=1)
    suggested_improvements: list[str] | None = None


class DialogueTurn(BaseModel):
    """Outcome of handling one user message."""

    action: DialogueAction
    question: str | None = None
    task: NewTask | None = None
    update: UpdateResult | None = None
    task_id: str | None = None
    task_title: str | None = None
    pending_task: PendingTask | None = None
    follow_up_questions: list[str] = Field(default_factory=list)
    vagueness_score: int | None = None
    confidence: int | None = None
    reasoning: str | None = None
    message: str | None = None

    @property
    def next_state(self) -> DialogueState:
        """State the conversation is in after this turn."""
        if self.pending_task is not None:
            return DialogueState.AWAITING_CLARIFICATION
        return DialogueState.IDLE
