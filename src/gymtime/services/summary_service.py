"""Daily workout summaries ("Upper Body + Core") shown above a day's entries."""
import asyncio
import datetime as dt
import logging
import re
from collections import OrderedDict
from typing import Iterable, Optional, Sequence, Tuple

from gymtime.ai import CompletionError
from gymtime.models import DailyWorkoutSummary, WorkoutEntry
from gymtime.services.workout_parser import WorkoutParser
from gymtime.services.workout_store import DailySummaryStore, WorkoutStoreError

logger = logging.getLogger(__name__)

SUMMARY_INSTRUCTION = (
    "Summarize this workout in 3-4 words (e.g. 'Upper Body + Core', 'Full Body Circuit', "
    "'Legs + Cardio', 'Push Day', or 'Back & Biceps'): "
)

_DISPLAY_STRIP_RE = re.compile(r"[\"'\[\]{}`]")

MAX_CACHED_SUMMARIES = 512


def describe_workouts(entries: Iterable[WorkoutEntry]) -> str:
    """Build the summarization request, e.g. "...: Bench Press (3x5), Squats (0x0)"."""
    fragments = ", ".join(
        f"{entry.exercise} ({entry.sets or 0}x{entry.reps or 0})" for entry in entries
    )
    return SUMMARY_INSTRUCTION + fragments


def clean_summary_for_display(summary: str) -> str:
    """Drop stray quote/bracket characters the model sometimes adds."""
    return " ".join(_DISPLAY_STRIP_RE.sub("", summary).split())


class SummaryCache:
    """Recently used summaries keyed by (user_id, day), least recently used evicted first.

    ``invalidate`` marks a day stale after its workouts change so the next
    read regenerates instead of serving the saved summary.
    """

    def __init__(self, max_entries: int = MAX_CACHED_SUMMARIES):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[str, dt.date], Optional[str]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, user_id: str, day: dt.date) -> Optional[str]:
        key = (user_id, day)
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def is_stale(self, user_id: str, day: dt.date) -> bool:
        key = (user_id, day)
        return key in self._entries and self._entries[key] is None

    def put(self, user_id: str, day: dt.date, summary: str) -> None:
        self._set((user_id, day), summary)

    def invalidate(self, user_id: str, day: dt.date) -> None:
        logger.debug(f"Summary for {user_id} on {day} marked stale")
        self._set((user_id, day), None)

    def _set(self, key: Tuple[str, dt.date], value: Optional[str]) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)


class WorkoutSummaryService:
    """Loads, caches, and generates per-day summaries."""

    def __init__(
        self,
        parser: WorkoutParser,
        summary_store: DailySummaryStore,
        cache: Optional[SummaryCache] = None,
    ):
        self.parser = parser
        self.summary_store = summary_store
        self.cache = cache if cache is not None else SummaryCache()

    async def summary_for_day(
        self,
        user_id: str,
        day: dt.date,
        entries: Sequence[WorkoutEntry],
    ) -> str:
        """Cached summary, else the stored one, else a freshly generated one.

        A day invalidated since its summary was saved is always regenerated.
        """
        if not entries:
            return ""

        if self.cache.is_stale(user_id, day):
            return await self.generate(user_id, day, entries)

        cached = self.cache.get(user_id, day)
        if cached:
            return cached

        try:
            stored = await asyncio.to_thread(self.summary_store.get, user_id, day)
        except WorkoutStoreError:
            stored = None
        if stored:
            self.cache.put(user_id, day, stored)
            return stored

        return await self.generate(user_id, day, entries)

    async def generate(
        self,
        user_id: str,
        day: dt.date,
        entries: Sequence[WorkoutEntry],
    ) -> str:
        """Summarize ``entries`` and save the result; "" if that fails."""
        if not entries:
            return ""

        try:
            summary = await self.parser.summarize(describe_workouts(entries))
        except CompletionError as e:
            logger.error(f"Failed to generate workout summary: {e}")
            return ""

        try:
            await asyncio.to_thread(
                self.summary_store.upsert,
                DailyWorkoutSummary(user_id=user_id, date=day, summary=summary),
            )
        except WorkoutStoreError as e:
            logger.error(f"Failed to save workout summary: {e}")
            return ""

        self.cache.put(user_id, day, summary)
        return summary
