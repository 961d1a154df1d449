"""Domain models and DTOs."""

from src.domain.classification import (
    ClassificationResult,
    IntentType,
    OrchestrationResult,
    QueryType,
    TargetTask,
    TaskDetails,
    TaskFieldDiff,
)
from src.domain.conversation import DialogueAction, DialogueState, DialogueTurn, PendingTask
from src.domain.create_models import NewTask
from src.domain.task import (
    RecentActivity,
    SpaceContext,
    Task,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    TaskUpdateType,
)
from src.domain.update_models import TimelineEntry, UpdateResult


__all__ = [
    "ClassificationResult",
    "DialogueAction",
    "DialogueState",
    "DialogueTurn",
    "IntentType",
    "NewTask",
    "OrchestrationResult",
    "PendingTask",
    "QueryType",
    "RecentActivity",
    "SpaceContext",
    "TargetTask",
    "Task",
    "TaskDetails",
    "TaskFieldDiff",
    "TaskPriority",
    "TaskStatus",
    "TaskUpdate",
    "TaskUpdateType",
    "TimelineEntry",
    "UpdateResult",
]
