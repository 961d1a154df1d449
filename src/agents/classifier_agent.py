"""Context-aware intent classifier.

Sends one prompt per utterance to the completion service and turns the
answer into a validated `ClassificationResult`. Whatever the service
returns, the result never targets a task that is not in the snapshot.
"""

import logging
from datetime import date

from pydantic import ValidationError

from src.agents.completion import CompletionService, get_completion_service
from src.agents.prompts import build_classifier_prompt
from src.agents.retry_handler import RetryConfig, retry_with_backoff
from src.core.config import constants
from src.core.errors import AIError, AIErrorKind, user_friendly_message
from src.core.logging import span
from src.core.priority import extract_title, infer_priority
from src.core.structured_output import parse_structured
from src.domain.classification import TARGETED_INTENTS, ClassificationResult, IntentType, TaskDetails
from src.domain.task import SpaceContext
from src.services.task_context_service import build_task_context


logger = logging.getLogger(__name__)

NO_MATCHING_TASK_REASONING = "No matching task found; creating a new task instead"
UNAVAILABLE_REASONING = "AI service temporarily unavailable - defaulting to create"
UNAVAILABLE_FOLLOW_UP = (
    "The AI assistant is temporarily unavailable. I'll create this task, but could you provide more details?"
)
DEFAULT_FOLLOW_UPS = ("When do you need this done by?", "How urgent is this task?")


def default_create_result(
    utterance: str,
    *,
    reasoning: str = "Defaulting to create due to classification error",
    confidence: int = 70,
    follow_up_questions: list[str] | None = None,
) -> ClassificationResult:
    """Safe create result with a heuristically extracted title and inferred priority."""
    return ClassificationResult(
        intent=IntentType.CREATE,
        confidence=confidence,
        reasoning=reasoning,
        task_details=TaskDetails(title=extract_title(utterance), priority=infer_priority(utterance)),
        follow_up_questions=list(DEFAULT_FOLLOW_UPS) if follow_up_questions is None else follow_up_questions,
    )


def _unparseable_response_result(utterance: str) -> ClassificationResult:
    return default_create_result(
        utterance,
        reasoning=UNAVAILABLE_REASONING,
        confidence=50,
        follow_up_questions=[UNAVAILABLE_FOLLOW_UP],
    )


def enforce_target_safety(result: ClassificationResult, utterance: str, context: SpaceContext) -> ClassificationResult:
    """Demote update/complete/delete results whose target is not in the snapshot to create.

    Also backfills a missing priority from utterance keywords.
    """
    if result.intent in TARGETED_INTENTS:
        target_id = result.target_task.id if result.target_task else None
        if not target_id:
            logger.info("classifier_demoted_to_create", extra={"intent": result.intent, "reason": "missing_target"})
            details = result.task_details or TaskDetails()
            demoted = default_create_result(utterance, reasoning=NO_MATCHING_TASK_REASONING)
            demoted.task_details = details.model_copy(
                update={"title": details.title or extract_title(utterance)},
            )
            result = demoted
        elif context.find_task(target_id) is None:
            logger.info(
                "classifier_demoted_to_create",
                extra={"intent": result.intent, "reason": "unknown_target", "target_task_id": target_id},
            )
            result = default_create_result(utterance, reasoning=NO_MATCHING_TASK_REASONING)

    if result.task_details and result.task_details.priority is None:
        result.task_details.priority = infer_priority(utterance)
        logger.debug("classifier_priority_inferred", extra={"priority": result.task_details.priority})

    return result


async def classify_intent(
    utterance: str,
    context: SpaceContext,
    history: list[str] | None = None,
    *,
    completion: CompletionService | None = None,
    today: date | None = None,
) -> ClassificationResult:
    """Classify a user utterance against the tasks of a space.

    Never raises: completion-service failures and malformed output both
    degrade to a create result.

    Args:
        utterance: Raw user input
        context: Snapshot of the space's tasks
        history: Optional earlier conversation lines (last few are used)
        completion: Completion service (defaults to the shared OpenRouter service)
        today: Reference date for relative due dates

    Returns:
        A validated ClassificationResult
    """
    with span("classifier.classify_intent"):
        prompt = build_classifier_prompt(
            utterance=utterance,
            task_context=build_task_context(context),
            today=(today or date.today()).isoformat(),
            history=history,
        )
        service = completion or get_completion_service()

        async def execute() -> ClassificationResult:
            text = await service.complete(prompt)
            logger.debug("classifier_raw_response", extra={"raw_text": text[: constants.RAW_RESPONSE_LOG_LENGTH]})

            payload = parse_structured(text, None)
            if payload is None:
                return _unparseable_response_result(utterance)

            if not payload.get("intent") or not payload.get("reasoning"):
                raise AIError(AIErrorKind.UNKNOWN, "Completion response is missing intent or reasoning")

            try:
                return ClassificationResult.model_validate(payload)
            except ValidationError as e:
                logger.warning("classifier_invalid_payload", extra={"error": str(e)})
                return _unparseable_response_result(utterance)

        config = RetryConfig.from_settings(
            max_retries=constants.AGENT_MAX_RETRIES,
            timeout=constants.CLASSIFIER_TIMEOUT_SECONDS,
        )
        try:
            result = await retry_with_backoff(execute, config, "Intent Classification")
        except AIError as e:
            logger.error(
                "classifier_failed",
                extra={"error_kind": e.kind.value, "error_message": str(e)},
            )
            return default_create_result(utterance, reasoning=user_friendly_message(e))

        result = enforce_target_safety(result, utterance, context)

        logger.info(
            "classifier_result",
            extra={
                "intent": result.intent.value,
                "confidence": result.confidence,
                "vagueness_score": result.vagueness_score,
                "target_task_id": result.target_task.id if result.target_task else None,
            },
        )
        return result
