"""Update resolver: turns an update utterance into a minimal field diff plus one timeline entry.

The target task always comes from the classifier's validated target; this
module never searches for a target by itself.
"""

import logging
import math
import re
import time
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from src.agents.completion import CompletionService, get_completion_service
from src.agents.prompts import build_updater_prompt
from src.agents.retry_handler import RetryConfig, retry_with_backoff
from src.core.config import constants
from src.core.errors import AIError, user_friendly_message
from src.core.logging import span
from src.core.structured_output import parse_structured
from src.domain.classification import TaskFieldDiff
from src.domain.task import Task, TaskStatus, TaskUpdateType, find_task
from src.domain.update_models import TimelineEntry, UpdateResult
from src.services.task_context_service import build_update_task_list


logger = logging.getLogger(__name__)

TARGET_NOT_FOUND_MESSAGE = "Could not find the task you're referring to. Please specify which task you want to update."
UNPARSEABLE_MESSAGE = "I couldn't process the update request. Please try again."

_STOPWORDS = frozenset(
    {
        "the", "a", "an", "is", "are", "was", "were", "to", "for", "of", "in", "on", "at", "and", "or",
        "with", "my", "our", "this", "that", "it", "up", "i", "we", "be", "by", "as",
    }
)  # fmt: skip

_COMPLETION_WORDS = re.compile(r"\b(done|finish(ed)?|complete(d)?|wrapped up|closed|shipped)\b")

_WHOLE_TASK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bmark(ed)?\b.*\bas\s+(done|complete(d)?|finished)\b"),
    re.compile(r"\b(it|this|that|the task|this task|that task|everything)\s*(is|was|'s|has been)\s+(done|finished|complete(d)?)\b"),
    re.compile(r"^\s*(all\s+)?(done|finished|completed?)\s*[.!]*\s*$"),
    re.compile(r"\b(finished|completed|wrapped up|closed)\s+(it|this|that|this task|that task|the task)\b"),
)

_SUBPART_MARKERS = (
    "part of",
    "half of",
    "some of",
    "first part",
    "initial",
    "phase",
    "step",
    "portion",
    "partially",
    "mostly",
    "milestone",
)

# Words that may accompany a task title without naming a sub-part of it.
_COMPLETION_FILLER = frozenset(
    {"task", "today", "yesterday", "now", "finally", "already", "just", "all", "whole", "entire", "fully", "work"}
)

_DESCRIPTION_MARKERS = ("description", "details")
_TITLE_MARKERS = ("title", "rename", "call it")

_FIELD_LABELS: dict[str, tuple[str, str]] = {
    # field -> (timeline field name, human label)
    "status": ("status", "status"),
    "priority": ("priority", "priority"),
    "due_date": ("dueDate", "due date"),
    "due_time": ("dueTime", "due time"),
    "title": ("title", "title"),
    "description": ("description", "description"),
    "tags": ("tags", "tags"),
}


def _significant_words(text: str) -> set[str]:
    words = set()
    for word in re.findall(r"[a-z0-9]+", text.lower()):
        if word in _STOPWORDS:
            continue
        if len(word) > 3 and word.endswith("s"):
            word = word[:-1]
        words.add(word)
    return words


def references_task_title(utterance: str, task: Task) -> bool:
    """True when most of the task title's significant words appear in the utterance."""
    title_words = _significant_words(task.title)
    if not title_words:
        return False
    overlap = title_words & _significant_words(utterance)
    return len(overlap) >= max(1, math.ceil(len(title_words) * 0.6))


def names_extra_subject(utterance: str, task: Task) -> bool:
    """True when the thing said to be finished has words the task title lacks.

    The subject is the text after the completion word when that text names
    the task, otherwise the text before it: "completed the RAG pipeline
    embedding setup" names a sub-part of "Build RAG pipeline".
    """
    match = _COMPLETION_WORDS.search(utterance)
    if match is None:
        return False
    tail = utterance[match.end() :]
    subject = tail if references_task_title(tail, task) else utterance[: match.start()]
    extra = _significant_words(subject) - _significant_words(task.title) - _COMPLETION_FILLER
    return bool(extra)


def asserts_whole_task_completion(utterance: str, task: Task) -> bool:
    """Decide whether an utterance says the entire task is finished.

    "Mark it as done", "that's done" and "I finished <task title>" qualify.
    Finishing a named sub-part ("completed the schema setup", "completed
    the <title> embedding setup") or a portion ("finished the first part
    of ...") does not.
    """
    lower = utterance.lower().strip()
    if not _COMPLETION_WORDS.search(lower):
        return False
    if any(marker in lower for marker in _SUBPART_MARKERS):
        return False
    if any(pattern.search(lower) for pattern in _WHOLE_TASK_PATTERNS):
        return True
    return references_task_title(lower, task) and not names_extra_subject(lower, task)


def _current_value(task: Task, field: str) -> Any:
    value = getattr(task, field, None)
    return value.value if hasattr(value, "value") else value


def minimize_diff(diff: TaskFieldDiff, task: Task, utterance: str) -> TaskFieldDiff:
    """Drop fields that would not change the task or were not asked for.

    Progress notes belong on the timeline, so description and title changes
    survive only when the utterance asks for them.
    """
    lower = utterance.lower()
    kept: dict[str, Any] = {}
    for field, value in diff.model_dump(mode="json", exclude_none=True, exclude={"clear_due_date"}).items():
        if value == _current_value(task, field):
            continue
        if field == "description" and not any(marker in lower for marker in _DESCRIPTION_MARKERS):
            continue
        if field == "title" and not any(marker in lower for marker in _TITLE_MARKERS):
            continue
        kept[field] = value

    minimized = TaskFieldDiff.model_validate(kept)
    if diff.clear_due_date and "due_date" not in kept and task.due_date:
        minimized.clear_due_date = True
    return minimized


def _parse_diff(raw_updates: object) -> TaskFieldDiff:
    if not isinstance(raw_updates, dict):
        return TaskFieldDiff()
    try:
        diff = TaskFieldDiff.model_validate(raw_updates)
    except ValidationError as e:
        logger.warning("updater_invalid_updates", extra={"error": str(e)})
        return TaskFieldDiff()
    for key in ("dueDate", "due_date"):
        if key in raw_updates and raw_updates[key] is None:
            diff.clear_due_date = True
    return diff


def note_from_utterance(utterance: str) -> str:
    """Turn a progress report into a one-sentence timeline note."""
    note = re.sub(r"^(i\s+have|i've|i\s+just|i|we\s+have|we've|we|just)\s+", "", utterance.strip(), flags=re.IGNORECASE)
    note = note.rstrip(" .!")
    if not note:
        return "Progress noted"
    return note[:1].upper() + note[1:]


def _describe_change(field: str, value: Any) -> str:
    label = _FIELD_LABELS[field][1]
    if field == "status" and value == TaskStatus.DONE.value:
        return "Marked as complete"
    if value is None:
        return f"{label.capitalize()} removed"
    if isinstance(value, list):
        value = ", ".join(value)
    return f"{label.capitalize()} changed to {value}"


def _entry_type_for(changed: dict[str, Any]) -> TaskUpdateType:
    if not changed:
        return TaskUpdateType.NOTE
    if list(changed) == ["status"]:
        return TaskUpdateType.STATUS_CHANGE
    return TaskUpdateType.FIELD_UPDATE


def build_timeline_entry(
    raw_timeline: object,
    diff: TaskFieldDiff,
    task: Task,
    utterance: str,
    timestamp: int,
    *,
    status_demoted: bool = False,
) -> TimelineEntry:
    """Produce the single timeline entry for an update, consistent with the final diff."""
    changed = diff.changed_fields()
    entry_type = _entry_type_for(changed)

    proposed: TimelineEntry | None = None
    if isinstance(raw_timeline, dict) and raw_timeline.get("content"):
        try:
            proposed = TimelineEntry.model_validate({**raw_timeline, "timestamp": timestamp})
        except ValidationError as e:
            logger.warning("updater_invalid_timeline", extra={"error": str(e)})

    if not changed:
        # The model's wording is kept unless it described a status change that was refused.
        if proposed and not status_demoted and proposed.type == TaskUpdateType.NOTE:
            content = proposed.content
        else:
            content = note_from_utterance(utterance)
        return TimelineEntry(type=TaskUpdateType.NOTE, content=content, timestamp=timestamp)

    if len(changed) == 1:
        field, new_value = next(iter(changed.items()))
        old_value = _current_value(task, field)
        content = proposed.content if proposed and proposed.type != TaskUpdateType.NOTE else None
        return TimelineEntry(
            type=entry_type,
            content=content or _describe_change(field, new_value),
            timestamp=timestamp,
            field=_FIELD_LABELS[field][0],
            old_value=None if old_value is None else str(old_value),
            new_value=None if new_value is None else str(new_value),
        )

    labels = [_FIELD_LABELS[field][1] for field in changed]
    summary = "Updated " + (", ".join(labels[:-1]) + " and " + labels[-1])
    content = proposed.content if proposed and proposed.type != TaskUpdateType.NOTE else summary
    return TimelineEntry(type=entry_type, content=content, timestamp=timestamp)


async def resolve_update(
    utterance: str,
    tasks: list[Task],
    target_task_id: str | None,
    current_date: str | None = None,
    *,
    proposed_updates: TaskFieldDiff | None = None,
    completion: CompletionService | None = None,
    now_ms: int | None = None,
) -> UpdateResult:
    """Resolve an update utterance against one validated target task.

    Never raises. An unknown target or a failed completion call yields an
    empty diff and a ``missing_info`` message.

    Args:
        utterance: Raw user input
        tasks: Current tasks of the space (read-only)
        target_task_id: ID validated by the classifier
        current_date: Human-readable current date for the prompt
        proposed_updates: Field diff already proposed by the classifier, layered over the resolver's
        completion: Completion service (defaults to the shared OpenRouter service)
        now_ms: Timeline timestamp in epoch milliseconds (defaults to now)

    Returns:
        UpdateResult with the minimal diff and exactly one timeline entry
    """
    with span("updater.resolve_update"):
        target = find_task(tasks, target_task_id)
        if target is None:
            logger.info("updater_target_not_found", extra={"target_task_id": target_task_id})
            return UpdateResult(task_id=None, missing_info=TARGET_NOT_FOUND_MESSAGE)

        timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
        prompt = build_updater_prompt(
            utterance=utterance,
            task_list=build_update_task_list(tasks),
            target=target,
            current_date=current_date or datetime.now().strftime("%A, %B %d, %Y %H:%M"),
            timestamp=timestamp,
        )
        service = completion or get_completion_service()

        async def execute() -> dict[str, Any] | None:
            text = await service.complete(prompt)
            logger.debug("updater_raw_response", extra={"raw_text": text[: constants.RAW_RESPONSE_LOG_LENGTH]})
            return parse_structured(text, None)

        config = RetryConfig.from_settings(
            max_retries=constants.AGENT_MAX_RETRIES,
            timeout=constants.UPDATER_TIMEOUT_SECONDS,
        )
        try:
            payload = await retry_with_backoff(execute, config, "Task Update")
        except AIError as e:
            logger.error("updater_failed", extra={"error_kind": e.kind.value, "task_id": target.id})
            return UpdateResult(task_id=target.id, missing_info=user_friendly_message(e))

        if payload is None:
            return UpdateResult(task_id=target.id, missing_info=UNPARSEABLE_MESSAGE)

        diff = _parse_diff(payload.get("updates")).merged_with(proposed_updates)
        diff = minimize_diff(diff, target, utterance)

        status_demoted = False
        if diff.status == TaskStatus.DONE and not asserts_whole_task_completion(utterance, target):
            logger.info("updater_status_demoted_to_note", extra={"task_id": target.id})
            diff.status = None
            status_demoted = True

        timeline = build_timeline_entry(
            payload.get("timeline"),
            diff,
            target,
            utterance,
            timestamp,
            status_demoted=status_demoted,
        )

        missing_info = payload.get("missingInfo")
        result = UpdateResult(
            task_id=target.id,
            updates=diff,
            timeline=timeline,
            missing_info=missing_info if isinstance(missing_info, str) and missing_info.strip() else None,
        )

        logger.info(
            "updater_result",
            extra={
                "task_id": target.id,
                "changed_fields": sorted(diff.changed_fields()),
                "timeline_type": timeline.type.value,
            },
        )
        return result
