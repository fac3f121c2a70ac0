"""FastAPI dependencies providing the app's shared collaborators."""
import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi import HTTPException

from gymtime.ai import CompletionClient, CompletionConfigError
from gymtime.services.summary_service import SummaryCache, WorkoutSummaryService
from gymtime.services.workout_parser import WorkoutParser
from gymtime.services.workout_store import DailySummaryStore, WorkoutStore, get_supabase_client

logger = logging.getLogger(__name__)


@lru_cache
def _supabase_client() -> Any:
    client = get_supabase_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Workout storage is not configured")
    return client


@lru_cache
def get_completion_client() -> CompletionClient:
    try:
        return CompletionClient.from_settings()
    except CompletionConfigError as e:
        logger.error(f"Completion client unavailable: {e}")
        raise HTTPException(status_code=503, detail="Workout parsing is not configured") from e


def get_workout_store() -> WorkoutStore:
    return WorkoutStore(_supabase_client())


def get_optional_workout_store() -> Optional[WorkoutStore]:
    """The workout store, or None when storage is not configured."""
    try:
        return get_workout_store()
    except HTTPException:
        return None


def get_summary_store() -> DailySummaryStore:
    return DailySummaryStore(_supabase_client())


@lru_cache
def get_summary_cache() -> SummaryCache:
    # Shared so writes can mark a day's summary stale for later reads
    return SummaryCache()


@lru_cache
def get_summary_service() -> WorkoutSummaryService:
    return WorkoutSummaryService(
        WorkoutParser(get_completion_client()),
        get_summary_store(),
        get_summary_cache(),
    )
