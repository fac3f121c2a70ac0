"""
Tests for the Supabase-backed workout and summary stores.

The Supabase client is a MagicMock; query builder calls are chained mocks
whose ``execute()`` returns a canned result.
"""
import datetime as dt
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from gymtime.models import DailyWorkoutSummary, WorkoutField
from gymtime.services.workout_store import (
    DailySummaryStore,
    WorkoutNotFoundError,
    WorkoutStore,
    WorkoutStoreError,
    get_supabase_client,
)


def _row(**overrides):
    row = {
        "id": str(uuid4()),
        "user_id": "user-1",
        "exercise": "Squats",
        "muscle_group": "Legs",
        "weight": 225,
        "sets": 5,
        "reps": 5,
        "date": "2024-03-15",
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_client():
    """Supabase client whose every query chain resolves to ``table.result``."""
    client = MagicMock()
    table = MagicMock()
    client.table.return_value = table
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "upsert", "eq", "gte", "lte", "order", "limit"):
        getattr(table, method).return_value = query
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.query = query
    return client


@pytest.fixture
def store(mock_client):
    return WorkoutStore(mock_client)


class TestGetSupabaseClient:
    def test_returns_none_when_not_configured(self):
        with patch("gymtime.services.workout_store.settings") as mock_settings:
            mock_settings.SUPABASE_URL = None
            mock_settings.SUPABASE_KEY = None
            assert get_supabase_client() is None

    def test_creates_client(self):
        with patch("gymtime.services.workout_store.settings") as mock_settings, \
             patch("gymtime.services.workout_store.create_client") as mock_create:
            mock_settings.SUPABASE_URL = "https://example.supabase.co"
            mock_settings.SUPABASE_KEY = "service-key"
            assert get_supabase_client() is mock_create.return_value
            mock_create.assert_called_once_with("https://example.supabase.co", "service-key")

    def test_creation_failure_returns_none(self):
        with patch("gymtime.services.workout_store.settings") as mock_settings, \
             patch("gymtime.services.workout_store.create_client", side_effect=Exception("bad url")):
            mock_settings.SUPABASE_URL = "nope"
            mock_settings.SUPABASE_KEY = "key"
            assert get_supabase_client() is None


class TestWorkoutStore:
    def test_insert_sends_records(self, store, mock_client, make_entry):
        entries = [make_entry(), make_entry(exercise="Squats", muscle_group="Legs")]

        result = store.insert(entries)

        assert result == entries
        mock_client.table.assert_called_with("workouts")
        records = mock_client.table.return_value.insert.call_args[0][0]
        assert [r["exercise"] for r in records] == ["Bench Press", "Squats"]
        assert records[0]["date"] == "2024-03-15"

    def test_insert_nothing_skips_call(self, store, mock_client):
        assert store.insert([]) == []
        mock_client.table.assert_not_called()

    def test_list_for_date(self, store, mock_client):
        mock_client.query.execute.return_value = MagicMock(data=[_row(), _row(exercise="Lunges")])

        entries = store.list_for_date("user-1", dt.date(2024, 3, 15))

        assert [e.exercise for e in entries] == ["Squats", "Lunges"]
        assert entries[0].weight == 225.0
        mock_client.query.eq.assert_any_call("date", "2024-03-15")
        mock_client.query.order.assert_called_with("created_at", desc=True)

    def test_list_between(self, store, mock_client):
        store.list_between("user-1", dt.date(2024, 3, 1), dt.date(2024, 3, 31))

        mock_client.query.gte.assert_called_with("date", "2024-03-01")
        mock_client.query.lte.assert_called_with("date", "2024-03-31")

    def test_list_by_muscle_group_limits_to_ten(self, store, mock_client):
        store.list_by_muscle_group("user-1", "Legs")

        mock_client.query.eq.assert_any_call("muscle_group", "Legs")
        mock_client.query.limit.assert_called_with(10)

    def test_workout_dates_are_distinct(self, store, mock_client):
        mock_client.query.execute.return_value = MagicMock(
            data=[{"date": "2024-03-15"}, {"date": "2024-03-15"}, {"date": "2024-03-16"}]
        )
        assert store.workout_dates("user-1") == {dt.date(2024, 3, 15), dt.date(2024, 3, 16)}

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(WorkoutNotFoundError):
            store.get(uuid4())

    def test_update_field_persists_typed_value(self, store, mock_client):
        row = _row()
        mock_client.query.execute.return_value = MagicMock(data=[row])

        updated = store.update_field(row["id"], WorkoutField.WEIGHT, "235")

        assert updated.weight == 235.0
        mock_client.table.return_value.update.assert_called_once_with({"weight": 235.0})

    def test_update_field_non_numeric_clears_value(self, store, mock_client):
        row = _row()
        mock_client.query.execute.return_value = MagicMock(data=[row])

        updated = store.update_field(row["id"], WorkoutField.REPS, "lots")

        assert updated.reps is None
        mock_client.table.return_value.update.assert_called_once_with({"reps": None})

    def test_delete_returns_count(self, store, mock_client):
        mock_client.query.execute.return_value = MagicMock(data=[_row()])
        assert store.delete(uuid4()) == 1

    def test_failures_become_store_errors(self, store, mock_client):
        mock_client.query.execute.side_effect = Exception("duplicate key value violates unique constraint")

        with pytest.raises(WorkoutStoreError):
            store.list_all("user-1")
        assert mock_client.query.execute.call_count == 1


class TestDailySummaryStore:
    def test_get_returns_summary(self, mock_client):
        mock_client.query.execute.return_value = MagicMock(data=[{"summary": "Leg Day"}])

        assert DailySummaryStore(mock_client).get("user-1", dt.date(2024, 3, 15)) == "Leg Day"
        mock_client.table.assert_called_with("daily_workout_summaries")

    def test_get_missing_returns_none(self, mock_client):
        assert DailySummaryStore(mock_client).get("user-1", dt.date(2024, 3, 15)) is None

    def test_upsert_on_user_and_date(self, mock_client):
        summary = DailyWorkoutSummary(user_id="user-1", date=dt.date(2024, 3, 15), summary="Leg Day")

        DailySummaryStore(mock_client).upsert(summary)

        args, kwargs = mock_client.table.return_value.upsert.call_args
        assert args[0]["summary"] == "Leg Day"
        assert args[0]["date"] == "2024-03-15"
        assert kwargs == {"on_conflict": "user_id,date"}

    def test_upsert_failure_raises(self, mock_client):
        mock_client.query.execute.side_effect = Exception("permission denied for table")
        summary = DailyWorkoutSummary(user_id="user-1", date=dt.date(2024, 3, 15), summary="Leg Day")

        with pytest.raises(WorkoutStoreError):
            DailySummaryStore(mock_client).upsert(summary)
