"""Progression statistics for the profile screen: streaks, PRs, volume, milestones."""
import datetime as dt
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

# Weeks of history shown in the progression view
DEFAULT_WEEK_LOOKBACK = 6
# Days of volume history shown in the profile chart
DEFAULT_VOLUME_DAYS = 14


@dataclass
class VolumePoint:
    date: dt.date
    percentage: float  # of the busiest day in range
    volume: float  # weight * sets * reps, summed


@dataclass
class BestSet:
    weight: float
    reps: int
    sets: Optional[int] = None


@dataclass
class ExerciseProgress:
    exercise: str
    max_weight: Optional[float] = None
    best_set: Optional[BestSet] = None
    is_improvement: bool = False
    improvement_percentage: float = 0.0


@dataclass
class WeeklyProgression:
    week_start: dt.date
    week_end: dt.date
    exercises: List[ExerciseProgress] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.week_start:%b} {self.week_start.day} - {self.week_end:%b} {self.week_end.day}"


@dataclass
class Milestone:
    id: int
    title: str


@dataclass
class ProfileStats:
    total_workouts: int
    workouts_this_week: int
    current_streak: int
    personal_records: int
    milestones: List[Milestone]
    volume: List[VolumePoint]


def _volume(entry) -> float:
    return (entry.weight or 0) * (entry.sets or 0) * (entry.reps or 0)


def current_streak(dates: Iterable[dt.date], today: dt.date) -> int:
    """Number of consecutive days with a workout, counting back from today."""
    logged = set(dates)
    streak = 0
    day = today
    while day in logged:
        streak += 1
        day -= dt.timedelta(days=1)
    return streak


def workouts_since(entries: Iterable, since: dt.date) -> int:
    return sum(1 for entry in entries if entry.date >= since)


def personal_records(entries: Iterable) -> Dict[str, float]:
    """Heaviest weight logged per exercise."""
    records: Dict[str, float] = {}
    for entry in entries:
        if entry.weight is None:
            continue
        if entry.weight > records.get(entry.exercise, float("-inf")):
            records[entry.exercise] = entry.weight
    return records


def daily_volume(entries: Iterable, start: dt.date, end: dt.date) -> List[VolumePoint]:
    """One point per day in ``[start, end]``, scaled against the busiest day."""
    totals: Dict[dt.date, float] = defaultdict(float)
    for entry in entries:
        if start <= entry.date <= end:
            totals[entry.date] += _volume(entry)

    max_volume = max(totals.values(), default=0.0)
    if max_volume <= 0:
        max_volume = 1.0

    points = []
    day = start
    while day <= end:
        volume = totals.get(day, 0.0)
        points.append(VolumePoint(date=day, percentage=volume / max_volume * 100, volume=volume))
        day += dt.timedelta(days=1)
    return points


def _exercise_progress(entries: Sequence) -> List[ExerciseProgress]:
    by_exercise: Dict[str, list] = defaultdict(list)
    for entry in entries:
        by_exercise[entry.exercise].append(entry)

    progress = []
    for exercise, group in by_exercise.items():
        weights = [e.weight for e in group if e.weight is not None]
        best_set = None
        best_value = None
        for e in group:
            if e.weight is None or e.reps is None:
                continue
            value = e.weight * e.reps
            if best_value is None or value > best_value:
                best_value = value
                best_set = BestSet(weight=e.weight, reps=e.reps, sets=e.sets)
        progress.append(ExerciseProgress(
            exercise=exercise,
            max_weight=max(weights) if weights else None,
            best_set=best_set,
        ))
    return sorted(progress, key=lambda p: p.exercise)


def weekly_progression(
    entries: Sequence,
    today: dt.date,
    weeks: int = DEFAULT_WEEK_LOOKBACK,
) -> List[WeeklyProgression]:
    """Per-exercise bests for the last ``weeks`` Monday-based weeks, newest first.

    An exercise counts as improved when its max weight beats the previous
    week's max weight for the same exercise.
    """
    current_week_start = today - dt.timedelta(days=today.weekday())
    result = []
    for offset in range(weeks):
        week_start = current_week_start - dt.timedelta(weeks=offset)
        week_end = week_start + dt.timedelta(days=6)
        week_entries = [e for e in entries if week_start <= e.date <= week_end]
        result.append(WeeklyProgression(
            week_start=week_start,
            week_end=week_end,
            exercises=_exercise_progress(week_entries),
        ))

    for current, previous in zip(result, result[1:]):
        previous_by_name = {p.exercise: p for p in previous.exercises}
        for progress in current.exercises:
            before = previous_by_name.get(progress.exercise)
            if before is None or progress.max_weight is None or not before.max_weight:
                continue
            if progress.max_weight > before.max_weight:
                progress.is_improvement = True
                progress.improvement_percentage = (
                    (progress.max_weight - before.max_weight) / before.max_weight * 100
                )
    return result


def milestones(entries: Sequence, streak: int) -> List[Milestone]:
    earned = []
    if len(entries) >= 10:
        earned.append(Milestone(id=1, title="10 Workouts"))
    if len(entries) >= 20:
        earned.append(Milestone(id=5, title="Iron Warrior"))
    if streak >= 7:
        earned.append(Milestone(id=2, title="1 Week Streak"))
    if any((e.weight or 0) >= 225 for e in entries):
        earned.append(Milestone(id=3, title="225lb Club"))
    if len({e.exercise for e in entries}) >= 3:
        earned.append(Milestone(id=4, title="Diverse Training"))
    return earned


def build_profile_stats(entries: Sequence, today: dt.date) -> ProfileStats:
    streak = current_streak((e.date for e in entries), today)
    return ProfileStats(
        total_workouts=len(entries),
        workouts_this_week=workouts_since(entries, today - dt.timedelta(days=7)),
        current_streak=streak,
        personal_records=len(personal_records(entries)),
        milestones=milestones(entries, streak),
        volume=daily_volume(entries, today - dt.timedelta(days=DEFAULT_VOLUME_DAYS), today),
    )
