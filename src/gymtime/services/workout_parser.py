"""Workout transcript parsing using a hosted completion model.

Turns a free-text workout description (usually a voice transcript) into
validated ``WorkoutEntry`` records, and produces the short daily summaries
shown above a day's workouts.
"""
import datetime as dt
import json
import logging
import re
from typing import Any, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from gymtime.ai import AIRequestContext, CompletionClient
from gymtime.auth import SessionProvider
from gymtime.config import settings
from gymtime.models import MUSCLE_GROUPS, ParsedWorkoutCandidate, WorkoutEntry


logger = logging.getLogger(__name__)

_CANDIDATES = TypeAdapter(List[ParsedWorkoutCandidate])
_JSON_DECODER = json.JSONDecoder()
_NON_DIGIT_RE = re.compile(r"\D")


class ParserError(Exception):
    """Base class for transcript parsing failures."""

    code = "parser_error"


class InvalidDataError(ParserError):
    """The completion was not a JSON array of workout candidates."""

    code = "invalid_data"


class MissingExerciseError(ParserError):
    code = "missing_exercise"


class MissingMuscleGroupError(ParserError):
    code = "missing_muscle_group"


class InvalidFormatError(ParserError):
    """Reserved for stricter field validation."""

    code = "invalid_format"


class NoUserIdError(ParserError):
    """No authenticated user to own the parsed entries."""

    code = "no_user_id"


def clean_exercise_name(name: str) -> str:
    """Trim, collapse spaces, and capitalize each word ("bench press" -> "Bench Press")."""
    return " ".join(token.capitalize() for token in name.strip().split(" ") if token)


def clean_weight(weight: str) -> Optional[float]:
    """Keep only the digits of ``weight`` and read them as a number.

    Unit text and decimal points are dropped along with everything else:
    "185 lbs" -> 185.0, "2.5 plates" -> 25.0, "n/a" -> None.
    """
    digits = _NON_DIGIT_RE.sub("", weight)
    if not digits:
        return None
    return float(digits)


def merge_notes(duration: Optional[str], notes: Optional[str]) -> Optional[str]:
    """Fold a duration into the notes as "<duration> - <notes>"."""
    notes = (notes or "").strip()
    duration = (duration or "").strip()
    if duration:
        notes = f"{duration} - {notes}" if notes else duration
    return notes or None


def _load_candidates_json(text: str) -> Any:
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        # The model sometimes wraps the array in prose or a markdown fence
        start = text.find("[")
        if start == -1:
            raise
        candidates_json, _ = _JSON_DECODER.raw_decode(text, start)
        return candidates_json


def _decode_candidates(text: str) -> List[ParsedWorkoutCandidate]:
    try:
        return _CANDIDATES.validate_python(_load_candidates_json(text))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to decode workout candidates: {e}")
        raise InvalidDataError("The AI response was not in the expected format") from e


class WorkoutParser:
    """Parses workout transcripts into entries and summarizes workout days."""

    EXTRACTION_PROMPT = """You are a fitness tracking assistant. Parse the workout description into one or more exercises.

IMPORTANT: Return ONLY a valid JSON array that strictly follows this format:
[
  {
    "exercise": "Exercise Name",
    "muscle_group": "Primary Muscle Group",
    "duration": "Time spent (optional)",
    "weight": "Weight used (optional)",
    "sets": integer_value_not_string,
    "reps": integer_value_not_string,
    "notes": "Additional details (optional)"
  }
]

Field requirements:
- exercise: (REQUIRED) Name of the exercise as a string
- muscle_group: (REQUIRED) One of: Chest, Back, Shoulders, Biceps, Triceps, Legs, Core, Cardio
- duration: (OPTIONAL) Time spent as a string (e.g. "10 minutes", "30 seconds")
- weight: (OPTIONAL) Weight/resistance used as a string (e.g. "185 lbs", "50 kg")
- sets: (OPTIONAL) Number of sets as an INTEGER (not a string)
- reps: (OPTIONAL) Reps per set as an INTEGER (not a string)
- notes: (OPTIONAL) Additional details as a string, include ALL extra details mentioned.

Rules for JSON formatting:
1. Always use double quotes for strings, never single quotes
2. Include only fields that are mentioned or can be reasonably inferred
3. For missing optional fields, omit them entirely (don't include null values)
4. SETS and REPS must be integers without quotes (e.g., 3 not "3")
5. Always return a well-formed JSON array, even for a single exercise
6. If no exercise is described, return an empty array: []

Examples:

Input: "um"
Output: []

Input: "10 minutes of abs"
Output: [{"exercise": "Ab Workout", "muscle_group": "Core", "duration": "10 mins"}]

Input: "Bench press 185lbs 3x5"
Output: [{"exercise": "Bench Press", "muscle_group": "Chest", "weight": "185 lbs", "sets": 3, "reps": 5}]

Input: "Tricep push downs, 4 sets of 10 reps, did 70 pounds for the warmup then 3 sets at 85 pounds, felt strong"
Output: [{"exercise": "Tricep Pushdown", "muscle_group": "Triceps", "weight": "85 lbs", "sets": 4, "reps": 10, "notes": "70 pounds for warmup, then 3 sets at 85 pounds. Felt strong."}]

Input: "Squats 5 by 5 at 225 then 20 minutes on the bike, legs were tired"
Output: [{"exercise": "Squats", "muscle_group": "Legs", "weight": "225 lbs", "sets": 5, "reps": 5, "notes": "Legs were tired"}, {"exercise": "Stationary Bike", "muscle_group": "Cardio", "duration": "20 mins"}]

Never include backticks, markdown formatting, or explanatory text."""

    SUMMARY_PROMPT = """You are a fitness tracking assistant that creates concise, natural workout summaries.
Summarize the workout in 3-4 words using common fitness terminology.
Focus on the main muscle groups or workout type.
Use "+" to combine different focuses.
DO NOT return JSON formatting or quotes.

Examples:
- Upper Body + Core
- Full Body Circuit
- Legs + Cardio
- Push Day
- Back & Biceps"""

    def __init__(
        self,
        completion_client: CompletionClient,
        session_provider: Optional[SessionProvider] = None,
        extraction_model: Optional[str] = None,
        summary_model: Optional[str] = None,
    ):
        self.completion_client = completion_client
        self.session_provider = session_provider
        self.extraction_model = extraction_model or settings.EXTRACTION_MODEL
        self.summary_model = summary_model or settings.SUMMARY_MODEL

    async def parse(
        self,
        transcript: str,
        target_date: Union[dt.date, dt.datetime, None] = None,
    ) -> List[WorkoutEntry]:
        """
        Parse a transcript into workout entries for ``target_date``.

        Args:
            transcript: Free-text workout description
            target_date: Day the entries belong to (defaults to today)

        Returns:
            One entry per exercise the model found, in the model's order

        Raises:
            InvalidDataError: The completion was not a JSON array of candidates
            NoUserIdError: No authenticated user
            MissingExerciseError / MissingMuscleGroupError: A candidate failed
                validation; no entries are returned
            CompletionError: The completion call itself failed
        """
        logger.debug(f"Parsing transcript: {transcript!r}")
        user_id = self._user_id_or_none()
        response = await self.completion_client.complete(
            transcript,
            self.extraction_model,
            self.EXTRACTION_PROMPT,
            context=AIRequestContext(user_id=user_id, feature_name="workout_extraction"),
        )

        candidates = _decode_candidates(response)

        if not user_id:
            raise NoUserIdError("No authenticated user")

        if target_date is None:
            target_date = dt.date.today()

        entries = [self._clean_and_validate(c, user_id, target_date) for c in candidates]
        logger.info(f"Parsed {len(entries)} workout entries for {target_date}")
        return entries

    async def summarize(self, described_workouts: str) -> str:
        """Return a short plain-text summary of a day's workouts."""
        response = await self.completion_client.complete(
            described_workouts,
            self.summary_model,
            self.SUMMARY_PROMPT,
            context=AIRequestContext(feature_name="workout_summary"),
        )
        return response.strip()

    def _user_id_or_none(self) -> Optional[str]:
        if self.session_provider is None:
            return None
        return self.session_provider.current_user_id()

    def _clean_and_validate(
        self,
        parsed: ParsedWorkoutCandidate,
        user_id: str,
        target_date: Union[dt.date, dt.datetime],
    ) -> WorkoutEntry:
        exercise = clean_exercise_name(parsed.exercise)
        if not exercise:
            raise MissingExerciseError("Exercise name is missing")

        muscle_group = parsed.muscle_group.strip()
        if not muscle_group:
            raise MissingMuscleGroupError(f"Muscle group is missing for {exercise}")
        if muscle_group not in MUSCLE_GROUPS:
            logger.warning(f"Unknown muscle group {muscle_group!r} for {exercise}")

        weight = clean_weight(parsed.weight) if parsed.weight is not None else None

        return WorkoutEntry(
            user_id=user_id,
            exercise=exercise,
            muscle_group=muscle_group,
            weight=weight,
            sets=parsed.sets,
            reps=parsed.reps,
            notes=merge_notes(parsed.duration, parsed.notes),
            date=target_date,
        )
