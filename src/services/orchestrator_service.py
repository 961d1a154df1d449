"""Orchestrator service: the single entry point from an utterance to a normalised intent."""

import logging
import re
from datetime import date

from src.agents.classifier_agent import classify_intent
from src.agents.completion import CompletionService
from src.core.logging import span
from src.core.priority import infer_priority
from src.domain.classification import IntentType, OrchestrationResult, TaskFieldDiff
from src.domain.task import RecentActivity, SpaceContext, Task, TaskStatus
from src.services.follow_up_service import generate_smart_follow_ups, merge_follow_ups


logger = logging.getLogger(__name__)

DEFAULT_SPACE_NAME = "Current Space"

_MARK_DONE_PATTERN = re.compile(r"^(mark|set)\s+.+\s+(as\s+)?(done|complete|finished)")


async def orchestrate(
    utterance: str,
    tasks: list[Task],
    space_name: str | None = None,
    recent_activity: RecentActivity | None = None,
    *,
    completion: CompletionService | None = None,
    history: list[str] | None = None,
    today: date | None = None,
) -> OrchestrationResult:
    """Classify an utterance against a task snapshot and normalise the result.

    Args:
        utterance: Raw user input
        tasks: Current tasks of the space (read-only)
        space_name: Display name of the space
        recent_activity: Last created/updated/completed tasks
        completion: Completion service (defaults to the shared OpenRouter service)
        history: Optional earlier conversation lines
        today: Reference date for relative due dates

    Returns:
        OrchestrationResult with ``complete`` folded into ``update``
    """
    with span("orchestrator.orchestrate"):
        context = SpaceContext(
            space_name=space_name or DEFAULT_SPACE_NAME,
            tasks=tasks,
            recent_activity=recent_activity,
        )
        logger.info("orchestrator_processing", extra={"task_count": len(tasks), "space_name": context.space_name})

        classification = await classify_intent(utterance, context, history, completion=completion, today=today)
        intent = classification.intent

        # The classifier already backfills priority; repeat it so callers can rely on it.
        if classification.task_details and classification.task_details.priority is None:
            classification.task_details.priority = infer_priority(utterance)

        follow_up_questions = list(classification.follow_up_questions)
        if intent == IntentType.CREATE and classification.task_details:
            follow_up_questions = merge_follow_ups(
                follow_up_questions,
                generate_smart_follow_ups(classification.task_details, tasks),
            )

        result = OrchestrationResult(
            intent=IntentType.UPDATE if intent == IntentType.COMPLETE else intent,
            reasoning=classification.reasoning,
            confidence=classification.confidence,
            classification=classification,
            task_details=classification.task_details,
            follow_up_questions=follow_up_questions,
        )

        if intent in (IntentType.UPDATE, IntentType.COMPLETE):
            result.suggested_task_id = classification.target_task.id if classification.target_task else None
            result.updates = classification.updates
            if intent == IntentType.COMPLETE:
                result.updates = (classification.updates or TaskFieldDiff()).merged_with(
                    TaskFieldDiff(status=TaskStatus.DONE)
                )
        elif intent == IntentType.DELETE:
            result.suggested_task_id = classification.target_task.id if classification.target_task else None
        elif intent == IntentType.CLARIFY:
            result.clarifying_question = classification.clarifying_question

        logger.info(
            "orchestrator_result",
            extra={
                "intent": result.intent.value,
                "confidence": result.confidence,
                "suggested_task_id": result.suggested_task_id,
                "follow_up_count": len(result.follow_up_questions),
            },
        )
        return result


def quick_intent_hint(text: str) -> IntentType:
    """Cheap pattern-based intent hint for UI affordances; never used for decisions."""
    lower = text.lower().strip()

    if lower.startswith(("delete ", "remove ")):
        return IntentType.DELETE
    if lower.startswith(("what ", "how many", "show ", "list ")):
        return IntentType.QUERY
    if _MARK_DONE_PATTERN.match(lower):
        return IntentType.UPDATE
    return IntentType.CREATE
