"""
Test fixtures for gymtime.

Replaces the completion endpoint and Supabase with mocks so tests are fast,
deterministic, and offline.
"""

import datetime as dt
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import gymtime...`
for p in {ROOT, SRC}:
    p_str = str(p)
    if p_str not in sys.path:
        sys.path.insert(0, p_str)

from gymtime.api.dependencies import (
    get_completion_client,
    get_optional_workout_store,
    get_summary_cache,
    get_summary_service,
    get_workout_store,
)
from gymtime.auth import get_current_user
from gymtime.main import app
from gymtime.models import WorkoutEntry
from gymtime.services.summary_service import SummaryCache, WorkoutSummaryService
from gymtime.services.workout_store import WorkoutStore


# ---------------------------------------------------------------------------
# Auth Mock
# ---------------------------------------------------------------------------


TEST_USER_ID = "test-user-123"


async def mock_get_current_user() -> str:
    """Mock auth dependency that returns a test user."""
    return TEST_USER_ID


# ---------------------------------------------------------------------------
# Collaborator Mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_completion_client():
    """Completion client whose ``complete`` returns an empty JSON array."""
    client = MagicMock()
    client.complete = AsyncMock(return_value="[]")
    return client


@pytest.fixture
def mock_store():
    """WorkoutStore double; ``insert`` echoes its entries back."""
    store = MagicMock(spec=WorkoutStore)
    store.insert.side_effect = lambda entries: list(entries)
    return store


@pytest.fixture
def mock_summary_service():
    service = MagicMock(spec=WorkoutSummaryService)
    service.summary_for_day = AsyncMock(return_value="Push Day")
    service.generate = AsyncMock(return_value="Push Day")
    return service


@pytest.fixture
def summary_cache():
    return SummaryCache()


# ---------------------------------------------------------------------------
# Core Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def client(mock_completion_client, mock_store, mock_summary_service, summary_cache) -> TestClient:
    """Per-test FastAPI TestClient with auth and collaborators overridden."""
    app.dependency_overrides[get_current_user] = mock_get_current_user
    app.dependency_overrides[get_completion_client] = lambda: mock_completion_client
    app.dependency_overrides[get_workout_store] = lambda: mock_store
    app.dependency_overrides[get_optional_workout_store] = lambda: mock_store
    app.dependency_overrides[get_summary_cache] = lambda: summary_cache
    app.dependency_overrides[get_summary_service] = lambda: mock_summary_service
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Sample Data Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_entry():
    """Build a WorkoutEntry for TEST_USER_ID with sensible defaults."""

    def _make(**overrides) -> WorkoutEntry:
        data = {
            "user_id": TEST_USER_ID,
            "exercise": "Bench Press",
            "muscle_group": "Chest",
            "weight": 185.0,
            "sets": 3,
            "reps": 5,
            "date": dt.date(2024, 3, 15),
        }
        data.update(overrides)
        return WorkoutEntry(**data)

    return _make
