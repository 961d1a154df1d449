"""Tests for configuration."""

import pytest

from src.core.config import Settings, constants


def test_defaults() -> None:
    """Test dialogue and retry defaults."""
    settings = Settings(openrouter_api_key="key", _env_file=None)

    assert settings.vagueness_threshold == 60
    assert settings.ai_max_retries == 3
    assert settings.ai_timeout_seconds == 30.0


def test_require_credential_with_valid_value() -> None:
    """Test require_credential returns value when credential is set."""
    settings = Settings(openrouter_api_key="sk-or-123", _env_file=None)

    assert settings.require_credential("openrouter_api_key", "OpenRouter API key") == "sk-or-123"


def test_require_credential_with_none_raises_error() -> None:
    """Test require_credential raises ValueError when credential is None."""
    settings = Settings(openrouter_api_key=None, _env_file=None)

    with pytest.raises(ValueError, match="OpenRouter API key credential not configured"):
        settings.require_credential("openrouter_api_key", "OpenRouter API key")


def test_require_credential_error_message_includes_field_name() -> None:
    """Test error message includes the environment variable name."""
    settings = Settings(openrouter_api_key="", _env_file=None)

    with pytest.raises(ValueError, match="OPENROUTER_API_KEY"):
        settings.require_credential("openrouter_api_key", "OpenRouter API key")


def test_settings_read_from_environment(monkeypatch) -> None:
    """Test environment variables override defaults."""
    monkeypatch.setenv("VAGUENESS_THRESHOLD", "75")

    assert Settings(_env_file=None).vagueness_threshold == 75


def test_constants() -> None:
    """Test per-operation limits."""
    assert constants.AGENT_MAX_RETRIES == 2
    assert constants.MAX_FOLLOW_UP_QUESTIONS == 3
    assert constants.MAX_EXTRA_CLARIFICATION_ROUNDS == 1
