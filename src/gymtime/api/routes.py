"""
Workout endpoints: voice parsing, manual entry, editing, and daily summaries.
"""
import asyncio
import datetime as dt
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from gymtime.ai import CompletionClient, CompletionConfigError, CompletionError
from gymtime.auth import StaticSessionProvider, get_current_user
from gymtime.models import WorkoutEntry, WorkoutField
from gymtime.services.summary_service import SummaryCache, WorkoutSummaryService, clean_summary_for_display
from gymtime.services.voice_capture import friendly_error_message
from gymtime.services.workout_parser import NoUserIdError, ParserError, WorkoutParser
from gymtime.services.workout_store import WorkoutNotFoundError, WorkoutStore, WorkoutStoreError

from .dependencies import (
    get_completion_client,
    get_optional_workout_store,
    get_summary_cache,
    get_summary_service,
    get_workout_store,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------


class ParseVoiceRequest(BaseModel):
    """Request model for POST /workouts/parse-voice"""
    transcript: str = Field(..., max_length=10000, description="Speech transcript to parse")
    date: Optional[dt.date] = Field(default=None, description="Day the workouts belong to (defaults to today)")
    persist: bool = Field(default=True, description="Save parsed entries to the workout log")


class ParseVoiceResponse(BaseModel):
    success: bool
    entries: List[WorkoutEntry] = Field(default_factory=list)
    transcript: str = ""


class CreateWorkoutRequest(BaseModel):
    """Request model for POST /workouts (manual entry)"""
    exercise: str = Field(..., max_length=200)
    muscle_group: str = Field(..., max_length=50)
    weight: Optional[float] = None
    sets: Optional[int] = Field(default=None, ge=0)
    reps: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)
    date: Optional[dt.date] = None
    location: Optional[str] = None


class UpdateWorkoutRequest(BaseModel):
    """Request model for PATCH /workouts/{id}"""
    field: WorkoutField
    value: str = Field(..., max_length=2000)


class DailySummaryResponse(BaseModel):
    date: dt.date
    summary: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_error_status(error: Exception) -> int:
    if isinstance(error, NoUserIdError):
        return 401
    if isinstance(error, ParserError):
        return 422
    if isinstance(error, CompletionConfigError):
        return 503
    if isinstance(error, (CompletionError, WorkoutStoreError)):
        return 502
    return 500


def _store_http_error(error: WorkoutStoreError) -> HTTPException:
    if isinstance(error, WorkoutNotFoundError):
        return HTTPException(status_code=404, detail="Workout not found")
    return HTTPException(status_code=502, detail=str(error))


async def _owned_workout(store: WorkoutStore, workout_id: UUID, user_id: str) -> WorkoutEntry:
    try:
        entry = await asyncio.to_thread(store.get, workout_id)
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e
    if entry.user_id != user_id:
        # Other users' workouts are indistinguishable from missing ones
        raise HTTPException(status_code=404, detail="Workout not found")
    return entry


def _invalidate_summaries(cache: SummaryCache, user_id: str, entries: List[WorkoutEntry]) -> None:
    for day in {entry.date for entry in entries}:
        cache.invalidate(user_id, day)


# ---------------------------------------------------------------------------
# Voice parsing
# ---------------------------------------------------------------------------


@router.post("/workouts/parse-voice", response_model=ParseVoiceResponse)
async def parse_voice(
    request: ParseVoiceRequest,
    user_id: str = Depends(get_current_user),
    completion_client: CompletionClient = Depends(get_completion_client),
    store: Optional[WorkoutStore] = Depends(get_optional_workout_store),
    summary_cache: SummaryCache = Depends(get_summary_cache),
):
    """
    Parse a speech transcript into workout entries and (optionally) save them.

    A blank transcript is a successful no-op and never reaches the model.
    Storage is only required when the entries are saved.
    """
    if not request.transcript.strip():
        return ParseVoiceResponse(success=True)
    if request.persist and store is None:
        raise HTTPException(status_code=503, detail="Workout storage is not configured")

    parser = WorkoutParser(completion_client, StaticSessionProvider(user_id))
    try:
        entries = await parser.parse(request.transcript, request.date)
        if request.persist:
            await asyncio.to_thread(store.insert, entries)
            _invalidate_summaries(summary_cache, user_id, entries)
    except (ParserError, CompletionError, WorkoutStoreError) as e:
        logger.error(f"Voice parse failed for user {user_id}: {e!r}")
        return JSONResponse(
            status_code=_parse_error_status(e),
            content={
                "success": False,
                "error": e.code,
                "message": friendly_error_message(e),
                "transcript": request.transcript,
            },
        )

    return ParseVoiceResponse(success=True, entries=entries, transcript=request.transcript)


# ---------------------------------------------------------------------------
# Workout log
# ---------------------------------------------------------------------------


@router.post("/workouts", response_model=WorkoutEntry, status_code=201)
async def create_workout(
    request: CreateWorkoutRequest,
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
    summary_cache: SummaryCache = Depends(get_summary_cache),
):
    """Log a workout entered by hand."""
    data = request.model_dump(exclude_none=True)
    try:
        entry = WorkoutEntry(user_id=user_id, **data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False)) from e

    try:
        await asyncio.to_thread(store.insert, [entry])
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e
    _invalidate_summaries(summary_cache, user_id, [entry])
    return entry


@router.get("/workouts", response_model=List[WorkoutEntry])
async def list_workouts(
    date: Optional[dt.date] = Query(default=None, description="Day to list (defaults to today)"),
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
):
    """List one day's workouts, newest first."""
    try:
        return await asyncio.to_thread(store.list_for_date, user_id, date or dt.date.today())
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e


@router.get("/workouts/dates", response_model=List[dt.date])
async def list_workout_dates(
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
):
    """Days with at least one logged workout (for the calendar)."""
    try:
        dates = await asyncio.to_thread(store.workout_dates, user_id)
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e
    return sorted(dates)


@router.get("/workouts/muscle-group/{muscle_group}", response_model=List[WorkoutEntry])
async def list_muscle_group_workouts(
    muscle_group: str,
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
):
    """The last 10 workouts logged for one muscle group."""
    try:
        return await asyncio.to_thread(store.list_by_muscle_group, user_id, muscle_group)
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e


@router.get("/workouts/summary", response_model=DailySummaryResponse)
async def get_daily_summary(
    date: Optional[dt.date] = Query(default=None),
    refresh: bool = Query(default=False, description="Regenerate after the day's workouts changed"),
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
    summary_service: WorkoutSummaryService = Depends(get_summary_service),
):
    """Short summary ("Push Day") of one day's workouts; empty when none are logged."""
    day = date or dt.date.today()
    try:
        entries = await asyncio.to_thread(store.list_for_date, user_id, day)
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e

    if refresh:
        summary = await summary_service.generate(user_id, day, entries)
    else:
        summary = await summary_service.summary_for_day(user_id, day, entries)
    return DailySummaryResponse(date=day, summary=clean_summary_for_display(summary))


@router.patch("/workouts/{workout_id}", response_model=WorkoutEntry)
async def update_workout(
    workout_id: UUID,
    request: UpdateWorkoutRequest,
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
    summary_cache: SummaryCache = Depends(get_summary_cache),
):
    """Edit a single field of a logged workout."""
    entry = await _owned_workout(store, workout_id, user_id)
    try:
        updated = await asyncio.to_thread(store.update_field, workout_id, request.field, request.value)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False)) from e
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e
    _invalidate_summaries(summary_cache, user_id, [entry])
    return updated


@router.delete("/workouts/{workout_id}")
async def delete_workout(
    workout_id: UUID,
    user_id: str = Depends(get_current_user),
    store: WorkoutStore = Depends(get_workout_store),
    summary_cache: SummaryCache = Depends(get_summary_cache),
):
    entry = await _owned_workout(store, workout_id, user_id)
    try:
        deleted = await asyncio.to_thread(store.delete, workout_id)
    except WorkoutStoreError as e:
        raise _store_http_error(e) from e
    if deleted:
        _invalidate_summaries(summary_cache, user_id, [entry])
    return {"success": True, "deleted": deleted}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"ok": True}
