"""Voice workout capture: microphone levels + live transcription -> parsed entries.

The recorder and recognizer are injected; this module only coordinates them.
A single pipeline instance owns one recording session at a time.
"""
import asyncio
import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable, List, Optional, Protocol, Union

from gymtime.ai import (
    CompletionAPIError,
    CompletionConfigError,
    CompletionDecodingError,
    CompletionNetworkError,
)
from gymtime.models import WorkoutEntry
from gymtime.services.workout_parser import (
    InvalidDataError,
    InvalidFormatError,
    MissingExerciseError,
    WorkoutParser,
)


logger = logging.getLogger(__name__)

# Speech sits roughly between -60 dBFS and 0 dBFS
MIN_SPEECH_DB = -60.0
# Shown as soon as recording starts so the waveform appears immediately
INITIAL_AUDIO_LEVEL = 0.05
# How long stop() waits for producers to flush their last update
DRAIN_TIMEOUT_SECONDS = 1.0

FORMAT_ERROR_MESSAGE = "That's quite the workout and it confused our AI. Try again with clearer details."
MISSING_EXERCISE_MESSAGE = "Hmm, couldn't detect any exercises. What workout did you do?"
CONNECTIVITY_ERROR_MESSAGE = "Gym wifi acting up again? Check your connection."
MODEL_ERROR_MESSAGE = "The AI is catching its breath and needs a spot. Try again in a moment."
API_ERROR_MESSAGE = "Back in the gym already? The AI and the weights need a rest day."
DEFAULT_ERROR_MESSAGE = "Even workouts have off days! Try recording again."


class AudioRecorder(Protocol):
    """Microphone capture with level metering."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    def levels(self) -> AsyncIterator[float]:
        """Average input power in dBFS, one value per metering tick; ends after stop()."""
        ...


class SpeechRecognizer(Protocol):
    """Streaming speech-to-text."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    def hypotheses(self) -> AsyncIterator[str]:
        """Best transcription so far, re-emitted as recognition improves; ends after stop()."""
        ...


class PipelineState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    ERROR = "error"


@dataclass
class VoiceCaptureResult:
    """Result of one start/stop cycle."""
    success: bool
    entries: List[WorkoutEntry] = field(default_factory=list)
    transcript: str = ""
    error: Optional[str] = None
    message: Optional[str] = None


def normalize_audio_level(average_power_db: float, min_db: float = MIN_SPEECH_DB) -> float:
    """Map a metering sample in dBFS to 0..1, boosting quiet input.

    The linear position inside ``[min_db, 0]`` is square-rooted so soft
    speech still moves the waveform visibly.
    """
    if math.isnan(average_power_db):
        return 0.0
    normalized = max(0.0, min(1.0, (average_power_db - min_db) / abs(min_db)))
    return math.sqrt(normalized)


def friendly_error_message(error: BaseException) -> str:
    """Short, non-technical message for a failed voice entry."""
    if isinstance(error, (InvalidDataError, InvalidFormatError, CompletionDecodingError)):
        return FORMAT_ERROR_MESSAGE
    if isinstance(error, MissingExerciseError):
        return MISSING_EXERCISE_MESSAGE
    if isinstance(error, CompletionNetworkError):
        return CONNECTIVITY_ERROR_MESSAGE
    if isinstance(error, CompletionAPIError):
        if "model" in error.body.lower():
            return MODEL_ERROR_MESSAGE
        return API_ERROR_MESSAGE
    if isinstance(error, CompletionConfigError):
        return API_ERROR_MESSAGE
    return DEFAULT_ERROR_MESSAGE


class VoiceCapturePipeline:
    """Coordinates recording, live transcription, and parsing.

    State moves IDLE -> RECORDING -> PROCESSING -> IDLE; any failure passes
    through ERROR and lands back in IDLE. Callers must not call ``start``
    while a session is already recording.
    """

    def __init__(
        self,
        recorder: AudioRecorder,
        recognizer: SpeechRecognizer,
        parser: WorkoutParser,
        on_state_change: Optional[Callable[[PipelineState], None]] = None,
    ):
        self.recorder = recorder
        self.recognizer = recognizer
        self.parser = parser
        self.on_state_change = on_state_change

        self.state = PipelineState.IDLE
        self.transcript = ""
        self.audio_level = 0.0
        self.error_message: Optional[str] = None

        self._level_task: Optional[asyncio.Task] = None
        self._transcript_task: Optional[asyncio.Task] = None
        self._capturing = False

    async def __aenter__(self) -> "VoiceCapturePipeline":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _set_state(self, state: PipelineState) -> None:
        self.state = state
        if self.on_state_change:
            self.on_state_change(state)

    async def start(self) -> None:
        """Begin capture and transcription together."""
        self.transcript = ""
        self.error_message = None
        self.audio_level = INITIAL_AUDIO_LEVEL
        self._set_state(PipelineState.RECORDING)
        logger.info("Starting voice recording")

        self._capturing = True
        try:
            await asyncio.gather(self.recorder.start(), self.recognizer.start())
        except Exception as e:
            logger.exception(f"Could not start voice recording: {e}")
            await self._release()
            self._fail(DEFAULT_ERROR_MESSAGE)
            return

        self._level_task = asyncio.create_task(self._consume_levels())
        self._transcript_task = asyncio.create_task(self._consume_transcript())

    async def stop(
        self,
        target_date: Union[dt.date, dt.datetime, None] = None,
    ) -> VoiceCaptureResult:
        """
        Stop recording and parse whatever was said.

        Args:
            target_date: Day the parsed workouts belong to (defaults to today)

        Returns:
            VoiceCaptureResult; an empty transcript is a successful no-op
        """
        logger.info("Stopping voice recording")
        await self._release()

        transcript = self.transcript
        if not transcript.strip():
            # Nothing was said: finish silently
            self.transcript = ""
            self._set_state(PipelineState.IDLE)
            return VoiceCaptureResult(success=True)

        self._set_state(PipelineState.PROCESSING)
        try:
            entries = await self.parser.parse(transcript, target_date)
        except Exception as e:
            logger.error(f"Failed to process voice recording: {e!r}")
            message = friendly_error_message(e)
            self._fail(message)
            return VoiceCaptureResult(
                success=False,
                transcript=transcript,
                error=getattr(e, "code", type(e).__name__),
                message=message,
            )

        self.transcript = ""
        self._set_state(PipelineState.IDLE)
        return VoiceCaptureResult(success=True, entries=entries, transcript=transcript)

    async def close(self) -> None:
        """Release the microphone and recognizer if a session is still open."""
        await self._release()
        if self.state is PipelineState.RECORDING:
            self._set_state(PipelineState.IDLE)

    def _fail(self, message: str) -> None:
        self.error_message = message
        self._set_state(PipelineState.ERROR)
        self._set_state(PipelineState.IDLE)

    async def _consume_levels(self) -> None:
        async for db in self.recorder.levels():
            self.audio_level = normalize_audio_level(db)

    async def _consume_transcript(self) -> None:
        async for hypothesis in self.recognizer.hypotheses():
            self.transcript = hypothesis

    async def _release(self) -> None:
        if self._capturing:
            self._capturing = False
            results = await asyncio.gather(
                self.recorder.stop(),
                self.recognizer.stop(),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    logger.warning(f"Error while stopping capture: {result!r}")

        tasks = [t for t in (self._level_task, self._transcript_task) if t is not None]
        self._level_task = None
        self._transcript_task = None
        if tasks:
            # Producers are stopped; let the consumers take their last update
            done, pending = await asyncio.wait(tasks, timeout=DRAIN_TIMEOUT_SECONDS)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.warning(f"Capture stream ended with error: {task.exception()!r}")
        self.audio_level = 0.0
