"""Logfire setup and tracing helpers.

Modules log through ``logging.getLogger(__name__)`` with event-style
messages and ``extra`` fields; Logfire captures those records once
configured.
"""

import logging

import logfire

from src.core.config import settings


logger = logging.getLogger(__name__)


class _LogfireState:
    """Singleton state for logfire configuration."""

    configured = False


def configure_logfire() -> None:
    """Configure Logfire once; later calls are no-ops."""
    if _LogfireState.configured:
        return

    logfire.configure(
        token=settings.logfire_token,
        service_name="taskpilot",
        service_version="0.1.0",
        send_to_logfire="if-token-present",
    )
    _LogfireState.configured = True
    logger.info("logfire_configured")


def instrument_pydantic_ai() -> None:
    """Trace completion-service calls made through Pydantic AI agents."""
    logfire.instrument_pydantic_ai()
    logger.info("pydantic_ai_instrumented")


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span named ``<component>.<operation>``."""
    return logfire.span(name)


def log_with_conversation_context(
    target: logging.Logger,
    level: str,
    message: str,
    conversation_id: str | None = None,
    **extra: object,
) -> None:
    """Log ``message`` at ``level`` with the conversation ID as a structured field."""
    context = {"conversation_id": conversation_id, **extra} if conversation_id else extra
    getattr(target, level.lower())(message, extra=context)
