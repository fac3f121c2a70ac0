"""
Tests for the voice capture pipeline.

Recorder and recognizer are in-memory fakes that stream queued values until
stopped, so state transitions and message mapping can be checked offline.
"""
import asyncio
import datetime as dt
import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from gymtime.ai import (
    CompletionAPIError,
    CompletionConfigError,
    CompletionDecodingError,
    CompletionNetworkError,
)
from gymtime.models import WorkoutEntry
from gymtime.services.voice_capture import (
    API_ERROR_MESSAGE,
    CONNECTIVITY_ERROR_MESSAGE,
    DEFAULT_ERROR_MESSAGE,
    FORMAT_ERROR_MESSAGE,
    INITIAL_AUDIO_LEVEL,
    MISSING_EXERCISE_MESSAGE,
    MODEL_ERROR_MESSAGE,
    PipelineState,
    VoiceCapturePipeline,
    friendly_error_message,
    normalize_audio_level,
)
from gymtime.services.workout_parser import (
    InvalidDataError,
    InvalidFormatError,
    MissingExerciseError,
    MissingMuscleGroupError,
    NoUserIdError,
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


_END = object()


class FakeStream:
    """Async producer: values pushed with ``emit`` are yielded until ``stop``."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.started = False
        self.stopped = False
        self.fail_on_start = False

    async def start(self):
        if self.fail_on_start:
            raise RuntimeError("microphone permission denied")
        self.started = True

    async def stop(self):
        self.stopped = True
        await self.queue.put(_END)

    def emit(self, value):
        self.queue.put_nowait(value)

    async def _stream(self):
        while True:
            value = await self.queue.get()
            if value is _END:
                return
            yield value


class FakeRecorder(FakeStream):
    def levels(self):
        return self._stream()


class FakeRecognizer(FakeStream):
    def hypotheses(self):
        return self._stream()


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def parser():
    parser = MagicMock()
    parser.parse = AsyncMock(return_value=[])
    return parser


@pytest.fixture
def states():
    return []


@pytest.fixture
def pipeline(recorder, recognizer, parser, states):
    return VoiceCapturePipeline(recorder, recognizer, parser, on_state_change=states.append)


async def drain():
    # Let the consumer tasks pick up queued values
    for _ in range(5):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# normalize_audio_level
# ---------------------------------------------------------------------------


class TestNormalizeAudioLevel:
    def test_silence_floor(self):
        assert normalize_audio_level(-60) == 0.0
        assert normalize_audio_level(-120) == 0.0

    def test_full_scale(self):
        assert normalize_audio_level(0) == 1.0
        assert normalize_audio_level(6) == 1.0

    def test_quiet_input_is_boosted(self):
        level = normalize_audio_level(-45)
        assert level == pytest.approx(math.sqrt(0.25))
        assert level > 0.25

    def test_nan_is_silent(self):
        assert normalize_audio_level(float("nan")) == 0.0


# ---------------------------------------------------------------------------
# friendly_error_message
# ---------------------------------------------------------------------------


class TestFriendlyErrorMessage:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (InvalidDataError("bad"), FORMAT_ERROR_MESSAGE),
            (InvalidFormatError("bad"), FORMAT_ERROR_MESSAGE),
            (CompletionDecodingError("bad"), FORMAT_ERROR_MESSAGE),
            (MissingExerciseError("none"), MISSING_EXERCISE_MESSAGE),
            (CompletionNetworkError("offline"), CONNECTIVITY_ERROR_MESSAGE),
            (CompletionAPIError(404, '{"error": "The model `x` does not exist"}'), MODEL_ERROR_MESSAGE),
            (CompletionAPIError(429, "Too Many Requests"), API_ERROR_MESSAGE),
            (CompletionConfigError("no key"), API_ERROR_MESSAGE),
            (MissingMuscleGroupError("none"), DEFAULT_ERROR_MESSAGE),
            (NoUserIdError("none"), DEFAULT_ERROR_MESSAGE),
            (RuntimeError("boom"), DEFAULT_ERROR_MESSAGE),
        ],
    )
    def test_maps_error_to_message(self, error, expected):
        assert friendly_error_message(error) == expected

    def test_format_and_connectivity_messages_differ(self):
        assert FORMAT_ERROR_MESSAGE != CONNECTIVITY_ERROR_MESSAGE


# ---------------------------------------------------------------------------
# VoiceCapturePipeline
# ---------------------------------------------------------------------------


class TestPipeline:
    @pytest.mark.asyncio
    async def test_start_begins_recording(self, pipeline, recorder, recognizer, states):
        await pipeline.start()

        assert recorder.started and recognizer.started
        assert pipeline.state is PipelineState.RECORDING
        assert pipeline.audio_level == INITIAL_AUDIO_LEVEL
        assert states == [PipelineState.RECORDING]
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_publishes_levels_and_hypotheses(self, pipeline, recorder, recognizer):
        await pipeline.start()
        recorder.emit(0.0)
        recognizer.emit("bench")
        recognizer.emit("bench press 185")
        await drain()

        assert pipeline.audio_level == 1.0
        assert pipeline.transcript == "bench press 185"
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_stop_parses_final_transcript(self, pipeline, recognizer, parser, states):
        entry = WorkoutEntry(user_id="u1", exercise="Bench Press", muscle_group="Chest")
        parser.parse.return_value = [entry]
        target = dt.date(2024, 3, 14)

        await pipeline.start()
        recognizer.emit("bench press 185 three by five")
        result = await pipeline.stop(target)

        parser.parse.assert_awaited_once_with("bench press 185 three by five", target)
        assert result.success is True
        assert result.entries == [entry]
        assert result.transcript == "bench press 185 three by five"
        assert pipeline.state is PipelineState.IDLE
        assert pipeline.transcript == ""
        assert states == [PipelineState.RECORDING, PipelineState.PROCESSING, PipelineState.IDLE]

    @pytest.mark.asyncio
    async def test_stop_releases_resources(self, pipeline, recorder, recognizer):
        await pipeline.start()
        await pipeline.stop()

        assert recorder.stopped and recognizer.stopped
        assert pipeline.audio_level == 0.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("spoken", [None, "", "   \n"])
    async def test_empty_transcript_is_silent_no_op(self, pipeline, recognizer, parser, states, spoken):
        await pipeline.start()
        if spoken is not None:
            recognizer.emit(spoken)
        result = await pipeline.stop()

        parser.parse.assert_not_awaited()
        assert result.success is True
        assert result.entries == []
        assert result.error is None
        assert pipeline.state is PipelineState.IDLE
        assert PipelineState.ERROR not in states

    @pytest.mark.asyncio
    async def test_parse_failure_surfaces_message_and_returns_to_idle(
        self, pipeline, recognizer, parser, states
    ):
        parser.parse.side_effect = InvalidDataError("not json")

        await pipeline.start()
        recognizer.emit("something unclear")
        result = await pipeline.stop()

        assert result.success is False
        assert result.error == "invalid_data"
        assert result.message == FORMAT_ERROR_MESSAGE
        assert result.transcript == "something unclear"
        assert pipeline.error_message == FORMAT_ERROR_MESSAGE
        assert pipeline.state is PipelineState.IDLE
        assert states[-3:] == [PipelineState.PROCESSING, PipelineState.ERROR, PipelineState.IDLE]

    @pytest.mark.asyncio
    async def test_network_failure_message(self, pipeline, recognizer, parser):
        parser.parse.side_effect = CompletionNetworkError("offline")

        await pipeline.start()
        recognizer.emit("squats")
        result = await pipeline.stop()

        assert result.error == "network_error"
        assert result.message == CONNECTIVITY_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_start_failure_releases_and_returns_to_idle(self, pipeline, recorder, recognizer, states):
        recorder.fail_on_start = True

        await pipeline.start()

        assert recognizer.stopped
        assert pipeline.state is PipelineState.IDLE
        assert pipeline.error_message == DEFAULT_ERROR_MESSAGE
        assert states == [PipelineState.RECORDING, PipelineState.ERROR, PipelineState.IDLE]

    @pytest.mark.asyncio
    async def test_start_resets_previous_session(self, pipeline, recognizer, parser):
        parser.parse.side_effect = InvalidDataError("not json")
        await pipeline.start()
        recognizer.emit("first try")
        await pipeline.stop()

        await pipeline.start()
        assert pipeline.transcript == ""
        assert pipeline.error_message is None
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_exit(self, recorder, recognizer, parser):
        async with VoiceCapturePipeline(recorder, recognizer, parser) as pipeline:
            await pipeline.start()

        assert recorder.stopped and recognizer.stopped
        assert pipeline.state is PipelineState.IDLE
