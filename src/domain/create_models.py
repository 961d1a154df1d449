"""Create models emitted when the dialogue decides to create a task."""

from pydantic import BaseModel, Field

from src.domain.task import TaskPriority


class NewTask(BaseModel):
    """Fields for a task the caller should create."""

    title: str = Field(..., description="Short action-oriented title")
    description: str | None = Field(default=None, description="Additional context")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="low, medium or high")
    due_date: str | None = Field(default=None, description="Due date (YYYY-MM-DD)")
    tags: list[str] | None = Field(default=None, description="Optional tags")
    suggested_improvements: list[str] | None = Field(
        default=None,
        description="Contextual questions the user can answer later to enrich the task",
    )
