"""Task domain models and enums (owned by the external store, read-only to this engine)."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskUpdateType(StrEnum):
    """Kind of activity recorded on a task timeline."""

    STATUS_CHANGE = "status_change"
    NOTE = "note"
    FIELD_UPDATE = "field_update"
    CREATION = "creation"


class StoreModel(BaseModel):
    """Base for models exchanged with the store, which speaks camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TaskUpdate(StoreModel):
    """Append-only timeline entry attached to a task."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique timeline entry ID")
    type: TaskUpdateType = Field(..., description="Kind of activity")
    content: str = Field(..., description="Human-readable description of the change or note")
    timestamp: int = Field(..., description="Creation time (epoch milliseconds)")
    field: str | None = Field(default=None, description="Changed field name, e.g. priority")
    old_value: str | None = Field(default=None, description="Value before the change")
    new_value: str | None = Field(default=None, description="Value after the change")


class Task(StoreModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID, stable within a space")
    space_id: str | None = Field(default=None, description="Owning space ID")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    due_date: str | None = Field(default=None, description="Due date (YYYY-MM-DD)")
    due_time: str | None = Field(default=None, description="Due time (HH:MM)")
    priority: TaskPriority | None = Field(default=None, description="low, medium or high")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Current lifecycle status")
    created_at: int | None = Field(default=None, description="Creation timestamp (epoch milliseconds)")
    updated_at: int | None = Field(default=None, description="Last update timestamp (epoch milliseconds)")
    updates: list[TaskUpdate] = Field(default_factory=list, description="Ordered activity timeline")
    suggested_improvements: list[str] = Field(
        default_factory=list,
        description="Optional clarifying questions the user can answer later",
    )

    @field_validator("updates", "suggested_improvements", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


class RecentActivity(StoreModel):
    """Most recent task events in a space."""

    last_created_task: Task | None = None
    last_updated_task: Task | None = None
    last_completed_task: Task | None = None


class SpaceContext(BaseModel):
    """Transient snapshot of a space, rebuilt for every classification call."""

    space_name: str = "Current Space"
    tasks: list[Task] = Field(default_factory=list)
    recent_activity: RecentActivity | None = None

    def find_task(self, task_id: str | None) -> Task | None:
        """Return the task with the given ID, or None."""
        return find_task(self.tasks, task_id)


def find_task(tasks: list[Task], task_id: str | None) -> Task | None:
    """Return the task with the given ID from a snapshot, or None."""
    if not task_id:
        return None
    return next((task for task in tasks if task.id == task_id), None)
