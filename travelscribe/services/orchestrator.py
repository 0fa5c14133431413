"""Transcription pipeline from a finished recording to a stored travel log.

Usage::

    from travelscribe.services.orchestrator import TranscriptionOrchestrator

    orchestrator = TranscriptionOrchestrator(transcriber, persistence)
    result = await orchestrator.transcribe(trip_id, date.today(), path, duration_ms)
    if isinstance(result, Success):
        log = result.data

Steps run strictly in order: get-or-create the day, transcribe, build the
log, persist it. Each failure is returned to the caller as-is; nothing is
retried. A failure after the first step leaves the day in place so the
caller can retry against the same day.
"""

import logging
from datetime import date

from travelscribe.core.config import get_settings
from travelscribe.core.exceptions import ErrorCode
from travelscribe.core.models import TravelLog, TranscriptionOutcome
from travelscribe.core.resource import Error, Resource, Success
from travelscribe.services.audio.state import RecordingResult
from travelscribe.services.classification.expense_category import build_expense
from travelscribe.services.storage.base import PersistencePort
from travelscribe.services.transcription.base import TranscriptionPort

logger = logging.getLogger(__name__)


class TranscriptionOrchestrator:
    """Turns recorded audio into a persisted ``TravelLog``.

    Args:
        transcription: Provider that converts audio into narrative + expenses.
        persistence: Storage for days and logs.
        target_language: Language of the narrative; defaults to settings.
    """

    def __init__(
        self,
        transcription: TranscriptionPort,
        persistence: PersistencePort,
        target_language: str | None = None,
    ) -> None:
        settings = get_settings()
        self._transcription = transcription
        self._persistence = persistence
        self._target_language = target_language or settings.target_language
        self._default_languages = list(settings.source_languages)

    async def transcribe(
        self,
        trip_id: int,
        day: date,
        audio_file_path: str,
        audio_duration_ms: int,
        source_languages: list[str] | None = None,
    ) -> Resource[TravelLog]:
        """Transcribe one audio file and file it under the trip's day.

        Args:
            trip_id: Trip the note belongs to.
            day: Calendar date of the note; its TravelDay is created if needed.
            audio_file_path: Local path of the recording.
            audio_duration_ms: Recorded length, stored on the log.
            source_languages: Spoken languages; defaults to settings.

        Returns:
            Success with the stored log (id assigned), or the first Error
            produced by persistence or transcription.
        """
        languages = list(source_languages or self._default_languages)

        # Step 1: Day container
        day_result = await self._persistence.get_or_create_day(trip_id, day)
        if isinstance(day_result, Error):
            logger.warning("No travel day for trip %d on %s: %s", trip_id, day, day_result.message)
            return day_result
        if not isinstance(day_result, Success):
            return _unexpected_loading("get_or_create_day")
        travel_day = day_result.data
        logger.debug("Using travel day %d for %s", travel_day.id, day)

        # Step 2: Remote transcription
        outcome_result = await self._transcription.transcribe(
            audio_file_path, languages, self._target_language
        )
        if isinstance(outcome_result, Error):
            logger.warning(
                "Transcription failed for %s (%s): %s",
                audio_file_path,
                outcome_result.code,
                outcome_result.message,
            )
            return outcome_result
        if not isinstance(outcome_result, Success):
            return _unexpected_loading("transcription")

        # Step 3: Build the log
        log = self._build_log(
            travel_day.id, audio_file_path, audio_duration_ms, languages, outcome_result.data
        )

        # Step 4: Persist
        created = await self._persistence.create_log(log)
        if isinstance(created, Error):
            logger.warning("Failed to store travel log for day %d: %s", travel_day.id, created.message)
            return created
        if not isinstance(created, Success):
            return _unexpected_loading("create_log")

        logger.info(
            "Stored travel log %d for trip %d (%d expenses)",
            created.data.id,
            trip_id,
            len(created.data.expenses),
        )
        return created

    async def transcribe_recording(
        self,
        trip_id: int,
        day: date,
        recording: RecordingResult,
        source_languages: list[str] | None = None,
    ) -> Resource[TravelLog]:
        """Convenience wrapper taking a ``RecordingResult`` from the recorder."""
        return await self.transcribe(
            trip_id,
            day,
            str(recording.file_path),
            recording.duration_ms,
            source_languages,
        )

    @staticmethod
    def _build_log(
        day_id: int,
        audio_file_path: str,
        audio_duration_ms: int,
        languages: list[str],
        outcome: TranscriptionOutcome,
    ) -> TravelLog:
        return TravelLog(
            day_id=day_id,
            raw_audio_path=audio_file_path,
            audio_duration_ms=audio_duration_ms,
            transcribed_text=outcome.narrative,
            original_languages=outcome.detected_languages or languages,
            expenses=[build_expense(e) for e in outcome.expenses],
            is_edited=False,
        )


def _unexpected_loading(step: str) -> Error:
    """Error for a step that returned Loading instead of a final result."""
    logger.error("%s returned Loading instead of a final result", step)
    return Error(message="Unexpected loading state", code=ErrorCode.UNKNOWN)
