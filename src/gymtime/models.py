"""Data models for workout logging."""
import datetime as dt
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

MUSCLE_GROUPS = ["Chest", "Back", "Shoulders", "Biceps", "Triceps", "Legs", "Core", "Cardio"]


class ParsedWorkoutCandidate(BaseModel):
    """One exercise as emitted by the extraction prompt.

    Decoding is strict: strings must be JSON strings and sets/reps must be
    JSON integers. Unknown keys are ignored and ``null`` counts as absent.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    exercise: StrictStr
    muscle_group: StrictStr
    duration: Optional[StrictStr] = None
    weight: Optional[StrictStr] = None
    sets: Optional[StrictInt] = None
    reps: Optional[StrictInt] = None
    notes: Optional[StrictStr] = None


class WorkoutField(str, Enum):
    """Fields of a logged workout that can be edited after the fact."""

    EXERCISE = "exercise"
    WEIGHT = "weight"
    SETS = "sets"
    REPS = "reps"
    NOTES = "notes"


def _to_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def _to_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


class WorkoutEntry(BaseModel):
    """A validated, persistence-ready workout record (one row of ``workouts``)."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: UUID = Field(default_factory=uuid4, frozen=True)
    user_id: str = Field(frozen=True)
    exercise: str
    muscle_group: str
    weight: Optional[float] = None
    sets: Optional[int] = None
    reps: Optional[int] = None
    notes: Optional[str] = None
    date: dt.date = Field(default_factory=dt.date.today)
    location: Optional[str] = None

    @field_validator("exercise", "muscle_group")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_day(cls, value: Any) -> Any:
        # Only the day is stored
        if isinstance(value, dt.datetime):
            return value.date()
        return value

    def to_record(self) -> dict[str, Any]:
        """Render as a Supabase row: ISO date, absent fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)

    def with_field(self, field: WorkoutField, raw_value: str) -> "WorkoutEntry":
        """Return a validated copy with one field replaced from user input.

        Non-numeric input for weight/sets/reps clears the value; blank notes
        are stored as absent.
        """
        value: Any
        if field is WorkoutField.EXERCISE:
            value = raw_value
        elif field is WorkoutField.WEIGHT:
            value = _to_float(raw_value.strip())
        elif field is WorkoutField.SETS:
            value = _to_int(raw_value.strip())
        elif field is WorkoutField.REPS:
            value = _to_int(raw_value.strip())
        elif field is WorkoutField.NOTES:
            value = raw_value.strip() or None
        else:
            raise ValueError(f"Unsupported workout field: {field}")

        data = self.model_dump()
        data[field.value] = value
        return WorkoutEntry.model_validate(data)


class DailyWorkoutSummary(BaseModel):
    """Short AI summary for one user's training day (``daily_workout_summaries``)."""

    model_config = ConfigDict(extra="ignore")

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    date: dt.date
    summary: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_day(cls, value: Any) -> Any:
        if isinstance(value, dt.datetime):
            return value.date()
        return value

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
