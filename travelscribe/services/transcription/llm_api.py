"""
Transcription over the remote LLM REST API.

Uses ``httpx.AsyncClient``. Audio is sent inline as base64 for the
synchronous path; the upload/status/cancel endpoints back the asynchronous
job flow. Nothing is retried here, failures come back as ``Error`` values.
"""

import asyncio
import base64
import logging
import time
from pathlib import Path

import httpx
from pydantic import ValidationError

from travelscribe.core.config import get_settings
from travelscribe.core.exceptions import ErrorCode, TranscriptionApiError
from travelscribe.core.models import TranscriptionOutcome
from travelscribe.core.resource import Error, Resource, Success
from travelscribe.services.transcription.base import TranscriptionPort, TranscriptionStatus
from travelscribe.services.transcription.dto import (
    TranscriptionRequestDto,
    TranscriptionResponseDto,
    TranscriptionStatusDto,
    UploadResponseDto,
)

logger = logging.getLogger(__name__)

TRANSCRIBE_PATH = "api/v1/transcribe"
UPLOAD_PATH = "api/v1/upload"
STATUS_PATH = "api/v1/transcription/{request_id}/status"
CANCEL_PATH = "api/v1/transcription/{request_id}/cancel"

_MIME_TYPES = {
    ".m4a": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".aac": "audio/aac",
    ".amr": "audio/amr",
    ".webm": "audio/webm",
}


def mime_type_for(path: str | Path) -> str:
    return _MIME_TYPES.get(Path(path).suffix.lower(), "audio/*")


class LlmApiTranscriber(TranscriptionPort):
    """REST client for the transcription service.

    Args:
        base_url: Service root, e.g. ``https://api.example.com/``.
        api_key: Sent as ``Authorization: Bearer <key>``.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        client_version: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = base_url or settings.llm_api_base_url
        api_key = settings.llm_api_key if api_key is None else api_key
        timeout = httpx.Timeout(
            settings.read_timeout_seconds,
            connect=settings.connect_timeout_seconds,
            read=settings.read_timeout_seconds,
            write=settings.write_timeout_seconds,
        )
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "X-Client-Version": client_version or settings.client_version,
            },
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LlmApiTranscriber":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # TranscriptionPort
    # ------------------------------------------------------------------

    async def transcribe(
        self,
        audio_path: str,
        source_languages: list[str],
        target_language: str,
    ) -> Resource[TranscriptionOutcome]:
        path = Path(audio_path)
        if not path.exists():
            return Error(message=f"Audio file not found: {audio_path}", code=ErrorCode.NOT_FOUND)

        try:
            audio_bytes = await asyncio.to_thread(path.read_bytes)
            request = TranscriptionRequestDto(
                audio_base64=base64.b64encode(audio_bytes).decode("ascii"),
                source_languages=source_languages,
                target_language=target_language,
            )
            started = time.monotonic()
            response = await self._request(
                "post", TRANSCRIBE_PATH, "Transcription", json=request.model_dump()
            )
            measured_ms = int((time.monotonic() - started) * 1000)
            body = self._parse(response, TranscriptionResponseDto, "transcription")
        except TranscriptionApiError as exc:
            logger.warning("Transcription of %s failed: %s", audio_path, exc.detail)
            return Error.from_exception(exc)
        except (httpx.HTTPError, OSError, ValidationError, ValueError) as exc:
            logger.exception("Transcription of %s failed", audio_path)
            return Error.from_exception(
                exc, fallback="Transcription failed", code=ErrorCode.TRANSCRIPTION_FAILED
            )

        outcome = body.to_outcome(fallback_languages=source_languages, measured_ms=measured_ms)
        logger.info(
            "Transcribed %s: %d chars, %d expenses",
            path.name,
            len(outcome.narrative),
            len(outcome.expenses),
        )
        return Success(outcome)

    async def upload_audio(self, audio_path: str) -> Resource[str]:
        path = Path(audio_path)
        if not path.exists():
            return Error(message=f"Audio file not found: {audio_path}", code=ErrorCode.NOT_FOUND)
        try:
            content = await asyncio.to_thread(path.read_bytes)
            response = await self._request(
                "post",
                UPLOAD_PATH,
                "Upload",
                files={"audio": (path.name, content, mime_type_for(path))},
            )
            body = self._parse(response, UploadResponseDto, "upload")
        except TranscriptionApiError as exc:
            return Error.from_exception(exc)
        except (httpx.HTTPError, OSError, ValidationError, ValueError) as exc:
            return Error.from_exception(exc, fallback="Upload failed", code=ErrorCode.NETWORK_ERROR)
        return Success(body.url)

    async def get_status(self, request_id: str) -> Resource[TranscriptionStatus]:
        try:
            response = await self._request(
                "get", STATUS_PATH.format(request_id=request_id), "Status request"
            )
            body = self._parse(response, TranscriptionStatusDto, "status")
        except TranscriptionApiError as exc:
            return Error.from_exception(exc)
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            return Error.from_exception(
                exc, fallback="Failed to get transcription status", code=ErrorCode.NETWORK_ERROR
            )
        return Success(body.to_status())

    async def cancel(self, request_id: str) -> Resource[None]:
        try:
            await self._request(
                "post", CANCEL_PATH.format(request_id=request_id), "Cancel request"
            )
        except TranscriptionApiError as exc:
            return Error.from_exception(exc)
        except httpx.HTTPError as exc:
            return Error.from_exception(
                exc, fallback="Failed to cancel transcription", code=ErrorCode.NETWORK_ERROR
            )
        logger.info("Cancelled transcription %s", request_id)
        return Success(None)

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, action: str, **kwargs) -> httpx.Response:
        """Execute a request, mapping httpx failures to TranscriptionApiError.

        Args:
            method: HTTP method name ("get", "post").
            path: Endpoint path relative to the base URL.
            action: Prefix for the error message on non-2xx responses.
            **kwargs: Passed through to httpx (json, files, ...).

        Raises:
            TranscriptionApiError: NETWORK_ERROR when the service cannot be
                reached, API_ERROR for non-2xx responses.
            httpx.HTTPError: Other transport failures (e.g. timeouts).
        """
        try:
            resp = await getattr(self._client, method)(path, **kwargs)
        except (httpx.ConnectError, httpx.NetworkError) as exc:
            raise TranscriptionApiError(
                f"Network error: {exc}", code=ErrorCode.NETWORK_ERROR
            ) from exc
        if resp.is_error:
            reason = resp.reason_phrase or str(resp.status_code)
            raise TranscriptionApiError(f"{action} failed: {reason}", code=ErrorCode.API_ERROR)
        return resp

    @staticmethod
    def _parse(response: httpx.Response, model: type, what: str):
        if not response.content.strip():
            raise TranscriptionApiError(
                f"Empty response from {what} API", code=ErrorCode.API_ERROR
            )
        return model.model_validate_json(response.content)
