"""
TravelScribe exception hierarchy and error codes.

All application-specific exceptions inherit from TravelScribeError. Adapters
raise them internally; the port boundaries convert them into
``Resource.Error`` values carrying the same ``ErrorCode``.
"""

from datetime import UTC, datetime
from enum import StrEnum


class ErrorCode(StrEnum):
    """Standard error codes shared by every layer."""

    UNKNOWN = "UNKNOWN"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    API_ERROR = "API_ERROR"
    TIMEOUT = "TIMEOUT"
    NO_INTERNET = "NO_INTERNET"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    AUDIO_ERROR = "AUDIO_ERROR"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    DATABASE_ERROR = "DATABASE_ERROR"


class TravelScribeError(Exception):
    """Base exception for all TravelScribe errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: ErrorCode = ErrorCode.UNKNOWN,
    ) -> None:
        self.detail = detail
        self.code = code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class TripNotFoundError(TravelScribeError):
    """Raised when a trip ID does not exist."""

    def __init__(self, trip_id: int) -> None:
        super().__init__(detail=f"Trip not found: {trip_id}", code=ErrorCode.NOT_FOUND)


class TravelDayNotFoundError(TravelScribeError):
    """Raised when a travel day ID does not exist."""

    def __init__(self, day_id: int) -> None:
        super().__init__(detail=f"Travel day not found: {day_id}", code=ErrorCode.NOT_FOUND)


class TravelLogNotFoundError(TravelScribeError):
    """Raised when a travel log ID does not exist."""

    def __init__(self, log_id: int) -> None:
        super().__init__(detail=f"Travel log not found: {log_id}", code=ErrorCode.NOT_FOUND)


class TranscriptionApiError(TravelScribeError):
    """Raised by the transcription client for any failed API exchange."""

    def __init__(
        self,
        detail: str = "Transcription failed",
        code: ErrorCode = ErrorCode.API_ERROR,
    ) -> None:
        super().__init__(detail=detail, code=code)


class AudioCaptureError(TravelScribeError):
    """Raised by capture adapters when the device cannot produce audio."""

    def __init__(self, detail: str = "Audio capture failed") -> None:
        super().__init__(detail=detail, code=ErrorCode.AUDIO_ERROR)
