"""Configuration management for taskpilot."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # OpenRouter Configuration
    openrouter_api_key: str | None = Field(default=None, description="OpenRouter API key for LLM access")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # AI Model Configuration
    model_id: str = Field(
        default="google/gemini-2.5-flash",
        description="Model ID for OpenRouter used as the completion service",
    )
    model_provider: str | None = Field(
        default=None, description="Restrict OpenRouter routing to a single upstream provider (optional)"
    )

    # Retry Configuration
    ai_max_retries: int = Field(default=3, description="Additional attempts after the first failed AI call")
    ai_initial_delay_seconds: float = Field(default=1.0, description="Backoff delay before the first retry")
    ai_max_delay_seconds: float = Field(default=10.0, description="Upper bound for any single backoff delay")
    ai_timeout_seconds: float = Field(default=30.0, description="Per-attempt timeout for AI calls")

    # Dialogue Configuration
    vagueness_threshold: int = Field(
        default=60, description="Vagueness score above which a contextual clarifying question is asked"
    )
    max_context_tasks: int = Field(default=50, description="Maximum number of tasks rendered into the AI context")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Per-operation AI timeouts
    CLASSIFIER_TIMEOUT_SECONDS: float = 25.0
    UPDATER_TIMEOUT_SECONDS: float = 20.0
    DESCRIPTION_TIMEOUT_SECONDS: float = 20.0
    VOICE_TIMEOUT_SECONDS: float = 60.0

    # Per-operation retry counts (additional attempts)
    AGENT_MAX_RETRIES: int = 2

    # Backoff jitter as a fraction of the computed delay
    RETRY_JITTER_RATIO: float = 0.2

    # Context rendering
    CONTEXT_DESCRIPTION_LENGTH: int = 100
    UPDATER_DESCRIPTION_LENGTH: int = 80
    CONVERSATION_HISTORY_LIMIT: int = 5

    # Titles
    MAX_TITLE_LENGTH: int = 100

    # Follow-up questions
    MAX_FOLLOW_UP_QUESTIONS: int = 3
    SHORT_TITLE_WORDS: int = 3

    # Clarification rounds allowed after the first question
    MAX_EXTRA_CLARIFICATION_ROUNDS: int = 1

    # Logging
    RAW_RESPONSE_LOG_LENGTH: int = 200


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
