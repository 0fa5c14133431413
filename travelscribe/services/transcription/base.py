"""
Abstract base class for transcription providers.

A provider turns a recorded audio file into a narrative plus extracted
expenses. Every method returns a ``Resource`` instead of raising, so the
orchestrator can hand failures back to its caller unchanged.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from travelscribe.core.models import TranscriptionOutcome
from travelscribe.core.resource import Resource


class TranscriptionState(StrEnum):
    """Remote job states reported by the status endpoint."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Queued:
    position: int = 0
    state = TranscriptionState.QUEUED


@dataclass(frozen=True)
class Processing:
    progress: float = 0.0
    state = TranscriptionState.PROCESSING


@dataclass(frozen=True)
class Completed:
    outcome: TranscriptionOutcome
    state = TranscriptionState.COMPLETED


@dataclass(frozen=True)
class Failed:
    error: str
    state = TranscriptionState.FAILED


@dataclass(frozen=True)
class Cancelled:
    state = TranscriptionState.CANCELLED


TranscriptionStatus = Queued | Processing | Completed | Failed | Cancelled


class TranscriptionPort(ABC):
    """Interface that every transcription provider must implement."""

    @abstractmethod
    async def transcribe(
        self,
        audio_path: str,
        source_languages: list[str],
        target_language: str,
    ) -> Resource[TranscriptionOutcome]:
        """Transcribe an audio file in a single request.

        Args:
            audio_path: Local path of the recording.
            source_languages: Languages spoken in the recording (ISO 639-1).
            target_language: Language the narrative should be written in.

        Returns:
            Success with the outcome, or Error coded NOT_FOUND, API_ERROR,
            NETWORK_ERROR or TRANSCRIPTION_FAILED.
        """

    @abstractmethod
    async def upload_audio(self, audio_path: str) -> Resource[str]:
        """Upload an audio file and return its remote URL."""

    @abstractmethod
    async def get_status(self, request_id: str) -> Resource[TranscriptionStatus]:
        """Poll the state of an asynchronous transcription job."""

    @abstractmethod
    async def cancel(self, request_id: str) -> Resource[None]:
        """Cancel an asynchronous transcription job."""
