"""Update-resolution models."""

from pydantic import BaseModel, Field

from src.domain.classification import PayloadModel, TaskFieldDiff
from src.domain.task import TaskUpdateType


class TimelineEntry(PayloadModel):
    """Timeline entry proposed for a task; the store assigns its ID when persisting."""

    type: TaskUpdateType = TaskUpdateType.NOTE
    content: str
    timestamp: int
    field: str | None = None
    old_value: str | None = None
    new_value: str | None = None


class UpdateResult(BaseModel):
    """Outcome of resolving an update utterance against one target task."""

    task_id: str | None = Field(default=None, description="Validated target task ID")
    updates: TaskFieldDiff = Field(default_factory=TaskFieldDiff, description="Only the fields that change")
    timeline: TimelineEntry | None = Field(default=None, description="Exactly one entry when a target was resolved")
    missing_info: str | None = Field(default=None, description="Question for the user when nothing could be applied")
