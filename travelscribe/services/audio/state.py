"""
Recording session states, errors and results.

States are frozen dataclasses matched with ``isinstance``/``match``.
Recording errors are exceptions so adapters can raise them, but the
recorder never lets them escape: they are returned inside ``Error``
results and broadcast on its error channel.
"""

from dataclasses import dataclass
from pathlib import Path

from travelscribe.core.exceptions import ErrorCode, TravelScribeError
from travelscribe.core.resource import Error
from travelscribe.services.audio.formats import AudioOutputFormat

# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Preparing:
    pass


@dataclass(frozen=True)
class Recording:
    file_path: Path
    start_time_ms: int


@dataclass(frozen=True)
class Paused:
    file_path: Path
    paused_elapsed_ms: int


@dataclass(frozen=True)
class Stopping:
    pass


@dataclass(frozen=True)
class ErrorState:
    error: "RecordingError"


RecordingState = Idle | Preparing | Recording | Paused | Stopping | ErrorState


def state_name(state: RecordingState) -> str:
    return "Error" if isinstance(state, ErrorState) else type(state).__name__


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class RecordingError(TravelScribeError):
    """Base class for the closed set of recording failures."""

    def __init__(
        self,
        detail: str,
        code: ErrorCode = ErrorCode.AUDIO_ERROR,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(detail=detail, code=code)
        self.cause = cause

    def to_resource(self) -> Error:
        return Error(message=self.detail, code=self.code, exception=self)


class PermissionDeniedError(RecordingError):
    def __init__(self) -> None:
        super().__init__("Microphone permission not granted", ErrorCode.PERMISSION_DENIED)


class InitializationFailedError(RecordingError):
    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__(f"Failed to initialize recorder: {_describe(cause)}", cause=cause)


class RecordingFailedError(RecordingError):
    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__(f"Recording failed: {_describe(cause)}", cause=cause)


class FinalizationFailedError(RecordingError):
    def __init__(self, cause: BaseException | str | None = None) -> None:
        if isinstance(cause, str):
            super().__init__(f"Failed to save recording: {cause}")
        else:
            super().__init__(f"Failed to save recording: {_describe(cause)}", cause=cause)


class StorageError(RecordingError):
    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__(
            f"Storage error: {_describe(cause)}", ErrorCode.STORAGE_ERROR, cause=cause
        )


class InvalidStateError(RecordingError):
    """A transition was requested from a state that does not allow it."""

    def __init__(self, current_state: RecordingState, detail: str | None = None) -> None:
        super().__init__(
            detail or f"Invalid state for this operation: {state_name(current_state)}"
        )
        self.current_state = current_state


class UnknownRecordingError(RecordingError):
    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__(f"Unknown error: {_describe(cause)}", ErrorCode.UNKNOWN, cause=cause)


def _describe(cause: BaseException | None) -> str:
    if cause is None:
        return "unknown"
    return str(cause) or type(cause).__name__


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordingResult:
    """A finalized recording. The caller owns ``file_path`` from here on."""

    file_path: Path
    duration_ms: int
    file_size_bytes: int
    format: AudioOutputFormat
