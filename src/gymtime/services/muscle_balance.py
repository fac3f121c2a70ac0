"""
Muscle balance analysis for injury prevention.

Looks at a window of workout history and reports, per muscle group, how
often and how hard it was trained, plus warnings when push and pull work
drift apart or a group is neglected or overworked.
"""
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from gymtime.models import WorkoutEntry

logger = logging.getLogger(__name__)

KNOWN_MUSCLE_GROUPS = ["chest", "back", "shoulders", "biceps", "triceps", "legs", "core"]

EXERCISE_MUSCLE_GROUPS: Dict[str, List[str]] = {
    # Push
    "Bench Press": ["chest", "shoulders", "triceps"],
    "Shoulder Press": ["shoulders", "triceps"],
    "Push-ups": ["chest", "shoulders", "triceps"],
    # Pull
    "Pull-ups": ["back", "biceps"],
    "Lat Pulldown": ["back", "biceps"],
    "Cable Rows": ["back", "biceps"],
    "Barbell Rows": ["back", "biceps"],
    "Face Pulls": ["shoulders", "back"],
    # Legs
    "Squats": ["legs"],
    "Deadlift": ["legs", "back"],
    # Core
    "Chin-ups": ["back", "biceps", "core"],
}

PUSH_HEAVY_RATIO = 1.5
PULL_HEAVY_RATIO = 0.67
IDLE_WARNING_DAYS = 7
OPTIMAL_GAP_DAYS = 3.5


class AnalysisError(Exception):
    code = "analysis_error"


class InsufficientDataError(AnalysisError):
    code = "insufficient_data"


@dataclass
class MuscleGroupStatus:
    training_count: int = 0
    last_workout_date: Optional[dt.date] = None
    strength_score: float = 0.0  # 0-100


@dataclass
class WorkoutAnalysis:
    muscle_groups: Dict[str, MuscleGroupStatus]
    push_pull_ratio: float
    analysis_date: dt.date
    days_analyzed: int
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def is_push_pull_balanced(self) -> bool:
        return 0.8 <= self.push_pull_ratio <= 1.2

    def status_for(self, group: str) -> MuscleGroupStatus:
        return self.muscle_groups.get(group, MuscleGroupStatus())


def muscle_groups_for(entry: WorkoutEntry) -> List[str]:
    """Groups an exercise works; unknown exercises count toward their logged group."""
    groups = EXERCISE_MUSCLE_GROUPS.get(entry.exercise)
    if groups is not None:
        return groups
    return [entry.muscle_group.lower()]


class MuscleBalanceAnalyzer:
    """Scores training balance across the known muscle groups."""

    def __init__(self, analysis_timeframe: int = 30):
        self.analysis_timeframe = analysis_timeframe

    def analyze(self, entries: Sequence[WorkoutEntry], today: Optional[dt.date] = None) -> WorkoutAnalysis:
        """
        Analyze workout history.

        Args:
            entries: Workouts inside the analysis window
            today: Reference day for "idle" checks (defaults to today)

        Raises:
            InsufficientDataError: No workouts to analyze
        """
        if not entries:
            raise InsufficientDataError("No workouts to analyze")
        if today is None:
            today = dt.date.today()

        frequencies = self._frequencies(entries)
        statuses = {}
        for group in KNOWN_MUSCLE_GROUPS:
            count, last_date = frequencies.get(group, (0, None))
            statuses[group] = MuscleGroupStatus(
                training_count=count,
                last_workout_date=last_date,
                strength_score=self._strength_score(group, count, entries),
            )

        analysis = WorkoutAnalysis(
            muscle_groups=statuses,
            push_pull_ratio=self._push_pull_ratio(entries),
            analysis_date=today,
            days_analyzed=self.analysis_timeframe,
        )
        self._add_insights(analysis, today)
        logger.info(f"Analyzed {len(entries)} workouts, {len(analysis.warnings)} warnings")
        return analysis

    def _frequencies(self, entries: Sequence[WorkoutEntry]) -> Dict[str, tuple]:
        frequencies: Dict[str, tuple] = {}
        for entry in entries:
            for group in muscle_groups_for(entry):
                count, last_date = frequencies.get(group, (0, None))
                if last_date is None or entry.date > last_date:
                    last_date = entry.date
                frequencies[group] = (count + 1, last_date)
        return frequencies

    def _push_pull_ratio(self, entries: Sequence[WorkoutEntry]) -> float:
        push = pull = 0
        for entry in entries:
            groups = muscle_groups_for(entry)
            if (
                "chest" in groups
                or ("shoulders" in groups and "back" not in groups)
                or ("triceps" in groups and "back" not in groups)
            ):
                push += 1
            if "back" in groups or "biceps" in groups:
                pull += 1
        return push / pull if pull else 0.0

    def _strength_score(self, group: str, frequency: int, entries: Sequence[WorkoutEntry]) -> float:
        frequency_score = min(frequency * 10.0, 40.0)

        total_volume = sum(
            (e.weight or 0) * (e.sets or 0) * (e.reps or 0)
            for e in entries
            if group in muscle_groups_for(e)
        )
        volume_score = min(total_volume / self.analysis_timeframe / 1000, 40.0)

        return min(frequency_score + volume_score + self._consistency_score(group, entries), 100.0)

    def _consistency_score(self, group: str, entries: Sequence[WorkoutEntry]) -> float:
        # 20 points for an average gap of 3.5 days, falling off linearly
        dates = sorted(e.date for e in entries if group in muscle_groups_for(e))
        if len(dates) < 2:
            return 0.0
        average_gap = (dates[-1] - dates[0]).days / (len(dates) - 1)
        return 20 * (1 - min(abs(OPTIMAL_GAP_DAYS - average_gap) / 7, 1))

    def _add_insights(self, analysis: WorkoutAnalysis, today: dt.date) -> None:
        if analysis.push_pull_ratio > PUSH_HEAVY_RATIO:
            analysis.warnings.append("Your training favors push exercises significantly over pull exercises")
            analysis.recommendations.append("Include more pulling movements (rows, pull-ups) in your routine")
        elif analysis.push_pull_ratio < PULL_HEAVY_RATIO:
            analysis.warnings.append("Your training favors pull exercises significantly over push exercises")
            analysis.recommendations.append(
                "Include more pushing movements (bench press, shoulder press) in your routine"
            )

        for group in KNOWN_MUSCLE_GROUPS:
            status = analysis.muscle_groups[group]
            if status.training_count == 0:
                analysis.warnings.append(f"{group.capitalize()} appears to be completely neglected")
                analysis.recommendations.append(f"Add {group} exercises to your routine")
            elif (today - status.last_workout_date).days > IDLE_WARNING_DAYS:
                analysis.warnings.append(f"{group.capitalize()} hasn't been trained in over a week")
                analysis.recommendations.append(f"Schedule a {group} workout soon")

        for group in KNOWN_MUSCLE_GROUPS:
            if analysis.muscle_groups[group].training_count > self.analysis_timeframe // 2:
                analysis.warnings.append(f"Potential overtraining of {group}")
                analysis.recommendations.append(f"Consider reducing {group} training frequency")
