"""
Statistics endpoints backing the profile, progression, and PT screens.
"""
import asyncio
import datetime as dt
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from gymtime.auth import get_current_user
from gymtime.services.muscle_balance import InsufficientDataError, MuscleBalanceAnalyzer
from gymtime.services.workout_stats import DEFAULT_WEEK_LOOKBACK, build_profile_stats, weekly_progression
from gymtime.services.workout_store import WorkoutStore, WorkoutStoreError

from .dependencies import get_workout_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats")


@router.get("/profile")
async def profile_stats(
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
):
    """Totals, streak, personal records, recent volume, and earned milestones."""
    try:
        entries = await asyncio.to_thread(store.list_all, user_id)
    except WorkoutStoreError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return build_profile_stats(entries, dt.date.today())


@router.get("/progression")
async def progression(
    weeks: int = Query(default=DEFAULT_WEEK_LOOKBACK, ge=1, le=52),
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
):
    """Per-exercise weekly bests, newest week first."""
    today = dt.date.today()
    start = today - dt.timedelta(days=today.weekday(), weeks=weeks - 1)
    try:
        entries = await asyncio.to_thread(store.list_between, user_id, start, today)
    except WorkoutStoreError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return weekly_progression(entries, today, weeks=weeks)


@router.get("/muscle-balance")
async def muscle_balance(
    days: int = Query(default=30, ge=1, le=365),
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
):
    """Push/pull balance and per-muscle-group training status."""
    today = dt.date.today()
    try:
        entries = await asyncio.to_thread(
            store.list_between, user_id, today - dt.timedelta(days=days), today
        )
    except WorkoutStoreError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    try:
        return MuscleBalanceAnalyzer(analysis_timeframe=days).analyze(entries, today)
    except InsufficientDataError as e:
        raise HTTPException(status_code=422, detail="Not enough workout history to analyze") from e
