"""Classification and orchestration result models.

The completion service answers in camelCase JSON of uncertain shape, so
these models accept both camelCase and snake_case keys, ignore unknown keys
and coerce out-of-range numbers instead of rejecting them.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.core.due_dates import normalize_due_date
from src.domain.task import TaskPriority, TaskStatus


class IntentType(StrEnum):
    """What the user wants to do."""

    CREATE = "create"
    UPDATE = "update"
    COMPLETE = "complete"
    DELETE = "delete"
    QUERY = "query"
    CLARIFY = "clarify"


TARGETED_INTENTS: frozenset[IntentType] = frozenset({IntentType.UPDATE, IntentType.COMPLETE, IntentType.DELETE})


class QueryType(StrEnum):
    """Kind of read-only question."""

    STATUS = "status"
    LIST = "list"
    SEARCH = "search"
    SUMMARY = "summary"


class PayloadModel(BaseModel):
    """Lenient base for models parsed from completion-service output."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _coerce_enum(value: object, enum_type: type[StrEnum]) -> object:
    if value is None or isinstance(value, enum_type):
        return value
    normalized = str(value).strip().lower()
    return normalized if normalized in {member.value for member in enum_type} else None


def _clamp_score(value: object, default: int | None) -> int | None:
    if value is None:
        return default
    try:
        score = round(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(0, min(100, score))


def _string_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list | tuple):
        return [str(item).strip() for item in value if isinstance(item, str) and item.strip()]
    return []


class TaskDetails(PayloadModel):
    """Proposed fields for a new task."""

    title: str = ""
    description: str | None = None
    priority: TaskPriority | None = None
    due_date: str | None = None
    tags: list[str] | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _lenient_priority(cls, value: object) -> object:
        return _coerce_enum(value, TaskPriority)

    @field_validator("tags", mode="before")
    @classmethod
    def _lenient_tags(cls, value: object) -> object:
        return None if value is None else _string_list(value)

    @field_validator("due_date", mode="before")
    @classmethod
    def _normalize_due_date(cls, value: object) -> object:
        return normalize_due_date(value)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: object) -> object:
        return "" if value is None else str(value).strip()


class TargetTask(PayloadModel):
    """Reference to an existing task the utterance is about."""

    id: str
    title: str = ""
    match_reason: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value


class TaskFieldDiff(PayloadModel):
    """Minimal set of task fields an update changes.

    Unset fields are None and are never serialised. Clearing a due date is
    the only removal an update may express and is carried by
    ``clear_due_date``.
    """

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: str | None = None
    due_time: str | None = None
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    clear_due_date: bool = False

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() in {"in_progress", "in progress", "doing"}:
            return TaskStatus.IN_PROGRESS
        if isinstance(value, str) and value.strip().lower() in {"complete", "completed", "finished"}:
            return TaskStatus.DONE
        return _coerce_enum(value, TaskStatus)

    @field_validator("priority", mode="before")
    @classmethod
    def _lenient_priority(cls, value: object) -> object:
        return _coerce_enum(value, TaskPriority)

    @field_validator("tags", mode="before")
    @classmethod
    def _lenient_tags(cls, value: object) -> object:
        return None if value is None else _string_list(value)

    @field_validator("due_date", mode="before")
    @classmethod
    def _normalize_due_date(cls, value: object) -> object:
        return normalize_due_date(value)

    def changed_fields(self) -> dict[str, Any]:
        """Return only the fields this diff sets, keyed by snake_case name."""
        fields = self.model_dump(mode="json", exclude_none=True, exclude={"clear_due_date"})
        if self.clear_due_date and "due_date" not in fields:
            fields["due_date"] = None
        return fields

    def is_empty(self) -> bool:
        """True when the diff changes nothing."""
        return not self.changed_fields()

    def merged_with(self, other: "TaskFieldDiff | None") -> "TaskFieldDiff":
        """Return a new diff with ``other``'s set fields layered over this one."""
        if other is None:
            return self.model_copy()
        data = self.model_dump(exclude_none=True)
        data.update(other.model_dump(exclude_none=True, exclude_defaults=True))
        return TaskFieldDiff.model_validate(data)


class ClassificationResult(PayloadModel):
    """Structured intent produced for a single utterance."""

    intent: IntentType = IntentType.CREATE
    confidence: int = 50
    reasoning: str = ""
    task_details: TaskDetails | None = None
    vagueness_score: int | None = None
    vague_reason: str | None = None
    target_task: TargetTask | None = None
    updates: TaskFieldDiff | None = None
    query_type: QueryType | None = None
    clarifying_question: str | None = None
    missing_info: list[str] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list)

    @field_validator("intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value: object) -> object:
        if isinstance(value, IntentType):
            return value
        normalized = str(value or "").strip().lower()
        return normalized if normalized in {member.value for member in IntentType} else IntentType.CREATE

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: object) -> object:
        return _clamp_score(value, 50)

    @field_validator("vagueness_score", mode="before")
    @classmethod
    def _clamp_vagueness(cls, value: object) -> object:
        return _clamp_score(value, None)

    @field_validator("query_type", mode="before")
    @classmethod
    def _lenient_query_type(cls, value: object) -> object:
        return _coerce_enum(value, QueryType)

    @field_validator("target_task", mode="before")
    @classmethod
    def _drop_empty_target(cls, value: object) -> object:
        if isinstance(value, dict) and not value.get("id"):
            return None
        return value

    @field_validator("missing_info", "follow_up_questions", mode="before")
    @classmethod
    def _string_lists(cls, value: object) -> object:
        return _string_list(value)

    @field_validator("reasoning", mode="before")
    @classmethod
    def _none_reasoning(cls, value: object) -> object:
        return "" if value is None else value


class OrchestrationResult(BaseModel):
    """Normalised result returned to the caller for one utterance.

    ``intent`` never holds ``complete``; completion is folded into ``update``
    with ``updates.status`` set to done.
    """

    intent: IntentType
    reasoning: str
    confidence: int
    classification: ClassificationResult
    task_details: TaskDetails | None = None
    suggested_task_id: str | None = None
    updates: TaskFieldDiff | None = None
    clarifying_question: str | None = None
    follow_up_questions: list[str] = Field(default_factory=list)
