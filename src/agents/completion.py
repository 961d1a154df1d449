"""Text-completion service used as the engine's only source of semantic understanding.

The engine depends only on the `CompletionService` protocol. The default
implementation sends each prompt through a Pydantic AI agent backed by
OpenRouter.
"""

import logging
import re
from typing import Protocol

from pydantic_ai import Agent
from pydantic_ai.models.openrouter import OpenRouterModel, OpenRouterModelSettings
from pydantic_ai.providers.openrouter import OpenRouterProvider

from src.core.config import settings
from src.core.logging import configure_logfire


logger = logging.getLogger(__name__)

# Special tokens some models leak into their output
_SPECIAL_TOKEN_PATTERN = re.compile(
    r"<\|(?:FunctionCallEnd|endoftext|im_start|im_end|pad|eos|bos|assistant|user|system)\|>",
    re.IGNORECASE,
)


class CompletionService(Protocol):
    """Anything that turns a prompt into completion text."""

    async def complete(self, prompt: str) -> str: ...


def sanitize_completion(text: str) -> str:
    """Remove leaked special tokens from completion text."""
    return _SPECIAL_TOKEN_PATTERN.sub("", text).strip()


class OpenRouterCompletionService:
    """Completion service backed by a Pydantic AI agent over OpenRouter."""

    def __init__(self, agent: Agent[None, str] | None = None) -> None:
        self._agent = agent

    @property
    def agent(self) -> Agent[None, str]:
        if self._agent is None:
            self._agent = _create_agent()
        return self._agent

    async def complete(self, prompt: str) -> str:
        result = await self.agent.run(prompt)
        return sanitize_completion(result.output)


def _create_agent() -> Agent[None, str]:
    """Create the agent instance (called once, on first use)."""
    configure_logfire()

    api_key = settings.require_credential("openrouter_api_key", "OpenRouter API key")
    provider = OpenRouterProvider(api_key=api_key)

    model_settings: OpenRouterModelSettings | None = None
    if settings.model_provider:
        model_settings = OpenRouterModelSettings(openrouter_provider={"only": [settings.model_provider]})

    model = OpenRouterModel(
        model_name=settings.model_id,
        provider=provider,
        settings=model_settings,
    )

    logger.info("completion_agent_created", extra={"model_id": settings.model_id})

    # Retries are owned by src.agents.retry_handler.
    return Agent(model=model, output_type=str, retries=0)


class _CompletionState:
    """Singleton state for the default completion service."""

    instance: CompletionService | None = None


def get_completion_service() -> CompletionService:
    """Get or create the default completion service."""
    if _CompletionState.instance is None:
        _CompletionState.instance = OpenRouterCompletionService()
    return _CompletionState.instance


def set_completion_service(service: CompletionService | None) -> None:
    """Replace the default completion service (None resets to lazy creation)."""
    _CompletionState.instance = service
