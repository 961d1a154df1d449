"""Pytest configuration and fixtures for unit tests."""

from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_asyncio_sleep():
    """Mock asyncio.sleep so retry backoff never delays a test."""
    with patch("src.agents.retry_handler.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep
