"""Shared fixtures for completion layer tests."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from factories import create_completion_response


# =============================================================================
# Mock Settings Fixtures
# =============================================================================


@pytest.fixture
def mock_settings_helicone_enabled():
    """Mock factory settings with Helicone enabled."""
    with patch("gymtime.ai.client_factory.settings") as mock:
        mock.COMPLETION_API_KEY = "gsk-test-key"
        mock.COMPLETION_BASE_URL = "https://api.groq.com/openai/v1"
        mock.HELICONE_ENABLED = True
        mock.HELICONE_API_KEY = "sk-test-helicone"
        mock.HELICONE_BASE_URL = "https://groq.helicone.ai/openai/v1"
        mock.ENVIRONMENT = "test"
        yield mock


@pytest.fixture
def mock_settings_helicone_disabled():
    """Mock factory settings with Helicone disabled."""
    with patch("gymtime.ai.client_factory.settings") as mock:
        mock.COMPLETION_API_KEY = "gsk-test-key"
        mock.COMPLETION_BASE_URL = "https://api.groq.com/openai/v1"
        mock.HELICONE_ENABLED = False
        mock.HELICONE_API_KEY = None
        mock.ENVIRONMENT = "development"
        yield mock


@pytest.fixture
def mock_openai_client():
    """Async OpenAI client double answering with an empty JSON array."""
    mock_client = MagicMock()
    mock_client.chat.completions.create = AsyncMock(return_value=create_completion_response("[]"))
    return mock_client
