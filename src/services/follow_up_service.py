"""Deterministic follow-up questions and question-list utilities."""

from src.core.config import constants
from src.domain.classification import TaskDetails
from src.domain.task import Task, TaskPriority, TaskStatus


DATE_QUESTION = "When do you need this done by?"
URGENT_DATE_QUESTION = "This seems urgent - should I set it for today or tomorrow?"
COMPLETION_DATE_QUESTION = "When do you need this completed by?"
MORE_DETAIL_QUESTION = "Can you provide more details about what this involves?"

_DATE_QUESTION_MARKERS = ("when", "deadline", "due", "timeline")

# (keywords, question), checked in order against the lower-cased title
_KEYWORD_QUESTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("bug", "fix", "error"), "What's the impact of this bug? Is it blocking anything?"),
    (("meeting", "call", "sync"), "Who should be involved in this?"),
    (("review", "pr", "code"), "Is there a specific PR or branch this relates to?"),
    (("deploy", "release", "prod"), "Are there any dependencies or blockers for this deployment?"),
    (("test", "qa", "sanity"), "What specific areas need to be tested?"),
    (("merge", "branch"), "Are there any conflicts or dependent branches?"),
)


def generate_smart_follow_ups(details: TaskDetails | None, existing_tasks: list[Task]) -> list[str]:
    """Generate follow-up questions for a proposed task without calling the completion service.

    Args:
        details: Proposed task fields
        existing_tasks: Current tasks of the space

    Returns:
        Up to three questions, most relevant first
    """
    if details is None:
        return []

    questions: list[str] = []
    title = details.title.lower()

    if not details.due_date:
        if any(word in title for word in ("urgent", "asap", "critical")):
            questions.append(URGENT_DATE_QUESTION)
        else:
            questions.append(COMPLETION_DATE_QUESTION)

    if details.priority is None:
        has_open_high_priority = any(
            task.status != TaskStatus.DONE and task.priority == TaskPriority.HIGH for task in existing_tasks
        )
        if has_open_high_priority:
            questions.append("You have other high-priority tasks. How does this compare in urgency?")

    for keywords, question in _KEYWORD_QUESTIONS:
        if any(keyword in title for keyword in keywords):
            questions.append(question)

    if len(title.split()) <= constants.SHORT_TITLE_WORDS:
        questions.append(MORE_DETAIL_QUESTION)

    return questions[: constants.MAX_FOLLOW_UP_QUESTIONS]


def merge_follow_ups(*question_lists: list[str], limit: int | None = None) -> list[str]:
    """Concatenate question lists, dropping case-insensitive duplicates, preserving order, capped."""
    cap = constants.MAX_FOLLOW_UP_QUESTIONS if limit is None else limit
    seen: set[str] = set()
    merged: list[str] = []
    for questions in question_lists:
        for question in questions:
            key = question.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(question.strip())
    return merged[:cap]


def is_date_question(question: str) -> bool:
    """True when a question asks about timing rather than content."""
    lower = question.lower()
    return any(marker in lower for marker in _DATE_QUESTION_MARKERS)


def split_date_questions(questions: list[str]) -> tuple[list[str], list[str]]:
    """Split questions into (date questions, contextual questions), preserving order."""
    date_questions = [q for q in questions if is_date_question(q)]
    context_questions = [q for q in questions if not is_date_question(q)]
    return date_questions, context_questions
