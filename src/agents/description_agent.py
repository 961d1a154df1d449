"""Description agent: polished descriptions, and folding answers to suggested questions into them."""

import logging

from src.agents.completion import CompletionService, get_completion_service
from src.agents.prompts import build_description_prompt, build_enhance_description_prompt
from src.agents.retry_handler import RetryConfig, retry_with_backoff
from src.core.config import constants
from src.core.errors import AIError, AIErrorKind
from src.core.logging import span
from src.domain.task import Task


logger = logging.getLogger(__name__)


def fallback_description(task: Task) -> str:
    return f"Task: {task.title}"


async def generate_polished_description(task: Task, *, completion: CompletionService | None = None) -> str:
    """Generate a description for a task.

    Tasks without history get a single sentence; tasks with timeline entries
    get a living summary of where they stand.

    Args:
        task: Task to describe
        completion: Completion service (defaults to the shared OpenRouter service)

    Returns:
        The generated description, or ``"Task: <title>"`` when generation fails
    """
    with span("description.generate_polished_description"):
        prompt = build_description_prompt(task)
        service = completion or get_completion_service()

        async def execute() -> str:
            text = (await service.complete(prompt)).strip()
            if not text:
                raise AIError(AIErrorKind.UNKNOWN, "Empty description response")
            return text

        config = RetryConfig.from_settings(
            max_retries=constants.AGENT_MAX_RETRIES,
            timeout=constants.DESCRIPTION_TIMEOUT_SECONDS,
        )
        try:
            description = await retry_with_backoff(execute, config, "Description Generation")
        except AIError as e:
            logger.warning("description_fallback", extra={"task_id": task.id, "error_kind": e.kind.value})
            return fallback_description(task)

        logger.info(
            "description_generated",
            extra={"task_id": task.id, "living": bool(task.updates), "length": len(description)},
        )
        return description


async def enhance_description(
    title: str,
    current_description: str | None,
    question: str,
    answer: str,
    *,
    completion: CompletionService | None = None,
) -> str:
    """Fold the user's answer to a suggested-improvement question into a task description.

    Args:
        title: Task title
        current_description: Existing description, if any
        question: The suggested-improvement question that was answered
        answer: The user's answer
        completion: Completion service (defaults to the shared OpenRouter service)

    Returns:
        The enhanced description. On failure the current description is kept,
        or the bare answer is used when there is none.
    """
    with span("description.enhance_description"):
        if not answer.strip():
            return current_description or ""

        prompt = build_enhance_description_prompt(title, current_description, question, answer.strip())
        service = completion or get_completion_service()

        async def execute() -> str:
            text = (await service.complete(prompt)).strip()
            if not text:
                raise AIError(AIErrorKind.UNKNOWN, "Empty enhanced description response")
            return text

        config = RetryConfig.from_settings(
            max_retries=constants.AGENT_MAX_RETRIES,
            timeout=constants.DESCRIPTION_TIMEOUT_SECONDS,
        )
        try:
            enhanced = await retry_with_backoff(execute, config, "Description Enhancement")
        except AIError as e:
            logger.warning("enhance_description_fallback", extra={"title": title, "error_kind": e.kind.value})
            return current_description or answer.strip()

        logger.info("description_enhanced", extra={"title": title, "length": len(enhanced)})
        return enhanced
