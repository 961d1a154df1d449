"""Deterministic keyword heuristics used when the completion service is silent or unavailable."""

import re

from src.core.config import constants
from src.domain.task import TaskPriority


HIGH_PRIORITY_KEYWORDS: tuple[str, ...] = (
    "urgent",
    "asap",
    "critical",
    "important",
    "blocking",
    "emergency",
    "immediately",
    "right now",
    "today",
    "eod",
    "end of day",
)

LOW_PRIORITY_KEYWORDS: tuple[str, ...] = (
    "eventually",
    "someday",
    "when you get a chance",
    "no rush",
    "low priority",
    "backlog",
    "nice to have",
    "whenever",
    "not urgent",
)

_TITLE_PREFIXES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(I need to|I want to|I have to|I should|I must|Please|Can you|Could you)\s+", re.IGNORECASE),
    re.compile(r"^(Create|Add|Make|Start|Begin)\s+(a\s+)?(task|item)?\s*(for|about|to|called)?\s*", re.IGNORECASE),
)


def infer_priority(text: str) -> TaskPriority:
    """Infer a task priority from urgency keywords in the raw utterance.

    Matching is a case-insensitive substring test. High wins over low when
    both match; anything else is medium.
    """
    lower = text.lower()
    if any(keyword in lower for keyword in HIGH_PRIORITY_KEYWORDS):
        return TaskPriority.HIGH
    if any(keyword in lower for keyword in LOW_PRIORITY_KEYWORDS):
        return TaskPriority.LOW
    return TaskPriority.MEDIUM


def extract_title(text: str) -> str:
    """Turn a raw utterance into a plausible task title.

    Strips conversational prefixes ("I need to", "Please", "Create a task
    for"), capitalises the first letter and truncates long input.
    """
    title = text.strip()
    for prefix in _TITLE_PREFIXES:
        title = prefix.sub("", title)

    title = title.strip()
    if not title:
        title = text.strip()

    title = title[:1].upper() + title[1:]

    max_length = constants.MAX_TITLE_LENGTH
    if len(title) > max_length:
        title = title[: max_length - 3] + "..."

    return title
