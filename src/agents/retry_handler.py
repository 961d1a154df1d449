"""Retry handler for completion-service calls with timeout, exponential backoff and jitter."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from src.core.config import constants, settings
from src.core.errors import AIError, AIErrorKind, classify_error


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    timeout: float = 30.0
    jitter: float = constants.RETRY_JITTER_RATIO

    @classmethod
    def from_settings(cls, **overrides: float) -> "RetryConfig":
        """Build a config from application settings, with per-operation overrides."""
        config = cls(
            max_retries=settings.ai_max_retries,
            initial_delay=settings.ai_initial_delay_seconds,
            max_delay=settings.ai_max_delay_seconds,
            timeout=settings.ai_timeout_seconds,
        )
        return replace(config, **overrides)


def voice_retry_config() -> RetryConfig:
    """Retry config for audio operations, which need a longer per-attempt timeout."""
    return RetryConfig.from_settings(timeout=constants.VOICE_TIMEOUT_SECONDS)


class RetryHandler:
    """Runs an async operation with per-attempt timeout and exponential backoff.

    Attempts are strictly sequential. Non-retryable errors propagate on the
    first occurrence; retryable ones are retried until the attempt budget is
    spent, after which the last AIError is raised.
    """

    def __init__(self, config: RetryConfig | None = None, *, rng: random.Random | None = None) -> None:
        self.config = config or RetryConfig()
        self._rng = rng or random.Random()

    def calculate_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay for the given attempt.

        Args:
            attempt: The attempt number (0-indexed)

        Returns:
            Delay in seconds, before jitter
        """
        delay = self.config.initial_delay * (self.config.backoff_multiplier**attempt)
        return min(delay, self.config.max_delay)

    def apply_jitter(self, delay: float) -> float:
        """Spread a delay by up to ±jitter of its value, never exceeding max_delay."""
        spread = delay * self.config.jitter * (self._rng.random() * 2 - 1)
        return max(0.0, min(delay + spread, self.config.max_delay))

    async def execute(self, operation: Callable[[], Awaitable[T]], label: str = "AI operation") -> T:
        """Execute an operation with retry logic.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            label: Name used in logs

        Returns:
            The result of the operation

        Raises:
            AIError: The classified error of the final failed attempt
        """
        total_attempts = self.config.max_retries + 1
        last_error: AIError | None = None

        for attempt in range(total_attempts):
            logger.debug(
                "ai_attempt",
                extra={"label": label, "attempt": attempt + 1, "max_attempts": total_attempts},
            )
            try:
                result = await asyncio.wait_for(operation(), timeout=self.config.timeout)
            except TimeoutError as e:
                last_error = AIError(AIErrorKind.TIMEOUT, f"{label} timed out after {self.config.timeout}s")
                last_error.__cause__ = e
            except Exception as e:
                last_error = classify_error(e)
                if last_error is not e:
                    last_error.__cause__ = e
            else:
                if attempt > 0:
                    logger.info(
                        "ai_retry_success",
                        extra={"label": label, "attempt": attempt + 1, "total_attempts": attempt + 1},
                    )
                return result

            logger.warning(
                "ai_error",
                extra={
                    "label": label,
                    "attempt": attempt + 1,
                    "max_attempts": total_attempts,
                    "error_kind": last_error.kind.value,
                    "error_message": str(last_error),
                    "retryable": last_error.retryable,
                },
            )

            if not last_error.retryable:
                logger.info(
                    "ai_retry_skipped",
                    extra={"label": label, "attempt": attempt + 1, "reason": "non_retryable_error"},
                )
                raise last_error

            if attempt >= total_attempts - 1:
                logger.error(
                    "ai_retry_exhausted",
                    extra={"label": label, "attempts": total_attempts, "error_kind": last_error.kind.value},
                )
                raise last_error

            delay = self.apply_jitter(self.calculate_delay(attempt))
            logger.info(
                "ai_retry",
                extra={
                    "label": label,
                    "attempt": attempt + 1,
                    "delay_seconds": delay,
                    "next_attempt": attempt + 2,
                },
            )
            await asyncio.sleep(delay)

        # Only reachable with a negative max_retries.
        raise last_error or AIError(AIErrorKind.UNKNOWN, f"{label} was not attempted")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    label: str = "AI operation",
) -> T:
    """Retry an async operation with timeout, exponential backoff and jitter.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        config: Retry configuration (defaults to RetryConfig())
        label: Name used in logs

    Returns:
        The result of the operation

    Raises:
        AIError: If a non-retryable error occurs or all attempts fail
    """
    return await RetryHandler(config).execute(operation, label)
