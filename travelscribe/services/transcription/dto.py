"""Wire models for the transcription REST API (snake_case JSON)."""

from typing import Any

from pydantic import BaseModel, Field

from travelscribe.core.models import ExtractedExpense, TranscriptionOutcome
from travelscribe.services.transcription.base import (
    Cancelled,
    Completed,
    Failed,
    Processing,
    Queued,
    TranscriptionState,
    TranscriptionStatus,
)

DEFAULT_CONFIDENCE = 0.9


class TranscriptionRequestDto(BaseModel):
    """Body of ``POST api/v1/transcribe``; send either a URL or base64 audio."""

    audio_url: str | None = None
    audio_base64: str | None = None
    source_languages: list[str] = Field(default_factory=lambda: ["hi", "en"])
    target_language: str = "en"
    extract_expenses: bool = True
    format_output: bool = True


class TranscriptionResponseDto(BaseModel):
    request_id: str | None = None
    narrative: str
    expenses: list[ExtractedExpense] = Field(default_factory=list)
    detected_languages: list[str] | None = None
    confidence: float | None = None
    processing_time_ms: int | None = None
    metadata: dict[str, Any] | None = None

    def to_outcome(
        self,
        fallback_languages: list[str] | None = None,
        measured_ms: int = 0,
    ) -> TranscriptionOutcome:
        """Fill optional fields with defaults and build the domain outcome.

        Args:
            fallback_languages: Used when the service reports no languages.
            measured_ms: Round-trip time, used when the service reports none.
        """
        return TranscriptionOutcome(
            narrative=self.narrative,
            expenses=self.expenses,
            detected_languages=self.detected_languages or list(fallback_languages or []),
            confidence=DEFAULT_CONFIDENCE if self.confidence is None else self.confidence,
            processing_time_ms=(
                measured_ms if self.processing_time_ms is None else self.processing_time_ms
            ),
            request_id=self.request_id,
            metadata=self.metadata,
        )


class UploadResponseDto(BaseModel):
    url: str
    file_id: str | None = None
    expires_at: str | None = None


class TranscriptionStatusDto(BaseModel):
    request_id: str
    status: str
    position: int | None = None
    progress: float | None = None
    result: TranscriptionResponseDto | None = None
    error: str | None = None

    def to_status(self) -> TranscriptionStatus:
        match self.status.lower():
            case TranscriptionState.QUEUED:
                return Queued(position=self.position or 0)
            case TranscriptionState.PROCESSING:
                return Processing(progress=self.progress or 0.0)
            case TranscriptionState.COMPLETED:
                if self.result is None:
                    return Failed(error="Result not available")
                return Completed(outcome=self.result.to_outcome())
            case TranscriptionState.FAILED:
                return Failed(error=self.error or "Unknown error")
            case TranscriptionState.CANCELLED:
                return Cancelled()
            case _:
                return Failed(error=f"Unknown status: {self.status}")
