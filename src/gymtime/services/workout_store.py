"""
Supabase-backed storage for workout entries and daily summaries.

The parser only produces entries; these stores are where the calling layer
persists, edits, and deletes them.
"""
import datetime as dt
import logging
from typing import Any, Iterable, List, Optional, Set
from uuid import UUID

from supabase import create_client

from gymtime.config import settings
from gymtime.models import DailyWorkoutSummary, WorkoutEntry, WorkoutField
from gymtime.retry import store_retry

logger = logging.getLogger(__name__)


class WorkoutStoreError(Exception):
    """A Supabase call failed."""

    code = "store_error"


class WorkoutNotFoundError(WorkoutStoreError):
    code = "not_found"


def get_supabase_client():
    """Get Supabase client instance, or None when not configured."""
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        logger.warning("Supabase credentials not configured. Workout storage is disabled.")
        return None

    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


@store_retry
def _execute(query: Any) -> Any:
    return query.execute()


class WorkoutStore:
    """CRUD over the ``workouts`` table."""

    TABLE_NAME = "workouts"

    def __init__(self, client: Any):
        self.client = client

    def _run(self, query: Any, action: str) -> List[dict]:
        try:
            result = _execute(query)
        except Exception as e:
            logger.error(f"Failed to {action}: {e}")
            raise WorkoutStoreError(f"Failed to {action}") from e
        return result.data or []

    def _table(self):
        return self.client.table(self.TABLE_NAME)

    def insert(self, entries: Iterable[WorkoutEntry]) -> List[WorkoutEntry]:
        """Persist new entries; returns them unchanged."""
        entries = list(entries)
        if not entries:
            return []
        self._run(
            self._table().insert([entry.to_record() for entry in entries]),
            "save workouts",
        )
        logger.info(f"Saved {len(entries)} workouts")
        return entries

    def get(self, workout_id: UUID) -> WorkoutEntry:
        rows = self._run(
            self._table().select("*").eq("id", str(workout_id)).limit(1),
            "load workout",
        )
        if not rows:
            raise WorkoutNotFoundError(f"No workout with id {workout_id}")
        return WorkoutEntry.model_validate(rows[0])

    def list_for_date(self, user_id: str, day: dt.date) -> List[WorkoutEntry]:
        """Entries logged for one day, newest first."""
        rows = self._run(
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .eq("date", day.isoformat())
            .order("created_at", desc=True),
            "load workouts",
        )
        return [WorkoutEntry.model_validate(row) for row in rows]

    def list_between(self, user_id: str, start: dt.date, end: dt.date) -> List[WorkoutEntry]:
        """Entries with ``start <= date <= end``, oldest first."""
        rows = self._run(
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .gte("date", start.isoformat())
            .lte("date", end.isoformat())
            .order("date"),
            "load workouts",
        )
        return [WorkoutEntry.model_validate(row) for row in rows]

    def list_all(self, user_id: str) -> List[WorkoutEntry]:
        rows = self._run(
            self._table().select("*").eq("user_id", user_id).order("date"),
            "load workouts",
        )
        return [WorkoutEntry.model_validate(row) for row in rows]

    def list_by_muscle_group(self, user_id: str, muscle_group: str, limit: int = 10) -> List[WorkoutEntry]:
        """Most recent entries for one muscle group."""
        rows = self._run(
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .eq("muscle_group", muscle_group)
            .order("date", desc=True)
            .limit(limit),
            "load workouts",
        )
        return [WorkoutEntry.model_validate(row) for row in rows]

    def workout_dates(self, user_id: str) -> Set[dt.date]:
        """Distinct days on which the user logged anything."""
        rows = self._run(
            self._table().select("date").eq("user_id", user_id),
            "load workout dates",
        )
        return {dt.date.fromisoformat(row["date"]) for row in rows}

    def update_field(self, workout_id: UUID, field: WorkoutField, raw_value: str) -> WorkoutEntry:
        """Apply a single-field edit and persist the typed value."""
        updated = self.get(workout_id).with_field(field, raw_value)
        self._run(
            self._table()
            .update({field.value: getattr(updated, field.value)})
            .eq("id", str(workout_id)),
            "update workout",
        )
        logger.info(f"Updated workout {workout_id} field {field.value}")
        return updated

    def delete(self, workout_id: UUID) -> int:
        """Delete a workout; returns the number of rows removed."""
        rows = self._run(
            self._table().delete().eq("id", str(workout_id)),
            "delete workout",
        )
        return len(rows)


class DailySummaryStore:
    """Read/write the ``daily_workout_summaries`` table."""

    TABLE_NAME = "daily_workout_summaries"

    def __init__(self, client: Any):
        self.client = client

    def get(self, user_id: str, day: dt.date) -> Optional[str]:
        try:
            result = _execute(
                self.client.table(self.TABLE_NAME)
                .select("summary")
                .eq("user_id", user_id)
                .eq("date", day.isoformat())
                .limit(1)
            )
        except Exception as e:
            logger.error(f"Failed to load daily summary: {e}")
            raise WorkoutStoreError("Failed to load daily summary") from e
        rows = result.data or []
        if not rows:
            return None
        return rows[0].get("summary")

    def upsert(self, summary: DailyWorkoutSummary) -> None:
        try:
            _execute(
                self.client.table(self.TABLE_NAME)
                .upsert(summary.to_record(), on_conflict="user_id,date")
            )
        except Exception as e:
            logger.error(f"Failed to save daily summary: {e}")
            raise WorkoutStoreError("Failed to save daily summary") from e
