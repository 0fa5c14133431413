"""
Voice recording state machine.

``VoiceRecorder`` owns one ``AudioCapture`` device and drives a single
session at a time through Idle -> Preparing -> Recording <-> Paused ->
Stopping -> Idle, with Error reachable on failures. ``cancel()`` returns
to Idle from any state, including Error.

Live values are published through ``StateCell``/``EventChannel``:

    recorder.state       current RecordingState
    recorder.amplitude   peak level 0..32767 while Recording
    recorder.duration    elapsed ms, paused time excluded
    recorder.errors      every failure, as RecordingError
    recorder.results     every finalized RecordingResult (incl. auto-stop)

Transitions are serialized by an ``asyncio.Lock``. A call that queues behind
another transition re-checks the state once it gets the lock, so a second
``start()`` is rejected with ``InvalidStateError`` rather than interleaved.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from travelscribe.core.config import get_settings
from travelscribe.core.exceptions import ErrorCode
from travelscribe.core.observable import EventChannel, StateCell
from travelscribe.core.resource import Error, Resource, Success
from travelscribe.core.utils import epoch_ms
from travelscribe.services.audio.capture import AudioCapture
from travelscribe.services.audio.formats import AudioOutputFormat, RecordingConfig
from travelscribe.services.audio.monitors import AmplitudeMonitor, DurationTicker
from travelscribe.services.audio.state import (
    ErrorState,
    FinalizationFailedError,
    Idle,
    InitializationFailedError,
    InvalidStateError,
    Paused,
    PermissionDeniedError,
    Preparing,
    Recording,
    RecordingError,
    RecordingFailedError,
    RecordingResult,
    RecordingState,
    StorageError,
    Stopping,
    UnknownRecordingError,
)

logger = logging.getLogger(__name__)


class VoiceRecorder:
    """Single-session voice recorder over an ``AudioCapture`` device."""

    def __init__(
        self,
        capture: AudioCapture,
        config: RecordingConfig | None = None,
        recordings_dir: str | Path | None = None,
        clock: Callable[[], float] = time.monotonic,
        amplitude_interval: float | None = None,
        duration_interval: float | None = None,
    ) -> None:
        settings = get_settings()
        self._capture = capture
        self._config = config or RecordingConfig.from_settings(settings)
        self._recordings_dir = Path(recordings_dir or settings.recordings_dir)
        self._clock = clock

        self.state: StateCell[RecordingState] = StateCell(Idle())
        self.amplitude: StateCell[int] = StateCell(0)
        self.duration: StateCell[int] = StateCell(0)
        self.errors: EventChannel[RecordingError] = EventChannel()
        self.results: EventChannel[RecordingResult] = EventChannel()

        self._lock = asyncio.Lock()
        self._file_path: Path | None = None
        self._last_path: Path | None = None
        self._format = self._config.output_format
        self._accumulated_ms = 0
        self._segment_start: float | None = None
        self._released = False
        self._capture_open = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._background: set[asyncio.Task] = set()

        self._amplitude_monitor = AmplitudeMonitor(
            capture,
            self.state,
            self.amplitude,
            interval=amplitude_interval or settings.amplitude_interval_ms / 1000,
        )
        self._duration_ticker = DurationTicker(
            self.elapsed_ms,
            self.state,
            self.duration,
            interval=duration_interval or settings.duration_tick_ms / 1000,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_file_path(self) -> Path | None:
        return self._file_path

    @property
    def is_recording(self) -> bool:
        return isinstance(self.state.value, Recording)

    def elapsed_ms(self) -> int:
        """Recorded time so far, excluding any time spent paused."""
        if self._segment_start is None:
            return self._accumulated_ms
        segment = int((self._clock() - self._segment_start) * 1000)
        return self._accumulated_ms + max(segment, 0)

    async def has_recording_permission(self) -> bool:
        try:
            return await asyncio.to_thread(self._capture.has_permission)
        except Exception:
            logger.warning("Permission check failed", exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self, output_format: AudioOutputFormat | None = None) -> Resource[Path]:
        """Begin a new session.

        Returns:
            Success with the output file path, or Error carrying one of
            PermissionDeniedError, StorageError, InitializationFailedError,
            UnknownRecordingError or InvalidStateError.

        If the calling task is cancelled while preparing, the device and the
        new file are released before the cancellation propagates.
        """
        async with self._lock:
            current = self.state.value
            if self._released:
                return self._fail(InvalidStateError(current, "Recorder has been released"))
            if not isinstance(current, Idle):
                return self._fail(InvalidStateError(current))

            self.state.set(Preparing())
            try:
                return await self._prepare_locked(output_format or self._config.output_format)
            except asyncio.CancelledError:
                logger.info("Start cancelled while preparing")
                await self._cancel_locked()
                raise

    async def _prepare_locked(self, fmt: AudioOutputFormat) -> Resource[Path]:
        try:
            granted = await self._device_call(self._capture.has_permission)
        except Exception as exc:
            logger.exception("Permission check raised")
            self.state.set(Idle())
            return self._fail(UnknownRecordingError(exc))
        if not granted:
            self.state.set(Idle())
            return self._fail(PermissionDeniedError())

        try:
            file_path = await asyncio.to_thread(self._create_output_file, fmt)
        except OSError as exc:
            logger.error("Cannot create recording file in %s: %s", self._recordings_dir, exc)
            return self._fail(StorageError(exc), enter_error=True)

        self._file_path = file_path
        self._last_path = file_path
        self._format = fmt
        self._loop = asyncio.get_running_loop()
        self._capture_open = True
        try:
            await self._device_call(
                self._capture.prepare,
                file_path,
                self._config.with_format(fmt),
                self._on_device_limit,
                self._on_device_error,
            )
            await self._device_call(self._capture.start)
        except Exception as exc:
            logger.exception("Failed to initialize capture for %s", file_path)
            await self._release_capture()
            await self._delete_file(file_path)
            self._file_path = None
            return self._fail(InitializationFailedError(exc), enter_error=True)

        self._accumulated_ms = 0
        self._segment_start = self._clock()
        self.duration.set(0)
        self.state.set(Recording(file_path=file_path, start_time_ms=epoch_ms()))
        self._start_monitors()
        logger.info("Recording started: %s (%s)", file_path, fmt.name)
        return Success(file_path)

    async def pause(self) -> Resource[None]:
        async with self._lock:
            current = self.state.value
            if not isinstance(current, Recording):
                return self._fail(InvalidStateError(current))
            if not self._capture.supports_pause:
                return self._fail(
                    InvalidStateError(current, "Pause not supported by this capture device")
                )
            try:
                await self._device_call(self._capture.pause)
            except Exception as exc:
                logger.exception("Failed to pause recording")
                return await self._enter_failure(RecordingFailedError(exc))

            elapsed = self.elapsed_ms()
            self._accumulated_ms = elapsed
            self._segment_start = None
            self.state.set(Paused(file_path=current.file_path, paused_elapsed_ms=elapsed))
            await self._stop_monitors()
            self.duration.set(elapsed)
            logger.info("Recording paused at %d ms", elapsed)
            return Success(None)

    async def resume(self) -> Resource[None]:
        async with self._lock:
            current = self.state.value
            if not isinstance(current, Paused):
                return self._fail(InvalidStateError(current))
            try:
                await self._device_call(self._capture.resume)
            except Exception as exc:
                logger.exception("Failed to resume recording")
                return await self._enter_failure(RecordingFailedError(exc))

            self._segment_start = self._clock()
            self.state.set(
                Recording(
                    file_path=current.file_path,
                    start_time_ms=epoch_ms() - current.paused_elapsed_ms,
                )
            )
            self._start_monitors()
            logger.info("Recording resumed at %d ms", current.paused_elapsed_ms)
            return Success(None)

    async def stop(self) -> Resource[RecordingResult]:
        """Finalize the session and hand the file over to the caller."""
        async with self._lock:
            return await self._stop_locked()

    async def cancel(self) -> None:
        """Abort the session, delete its file and return to Idle.

        Safe from any state and idempotent. Both monitors have stopped by the
        time this returns.
        """
        async with self._lock:
            await self._cancel_locked()

    async def release(self) -> None:
        """Cancel any session and refuse further starts."""
        self._released = True
        await self.cancel()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("Recorder released")

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    async def delete_recording(self, file_path: str | Path) -> Resource[None]:
        path = Path(file_path)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return Error(message=f"Recording not found: {path}", code=ErrorCode.NOT_FOUND)
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
            return Error(
                message=f"Failed to delete file: {exc}",
                code=ErrorCode.STORAGE_ERROR,
                exception=exc,
            )
        return Success(None)

    @staticmethod
    def get_recording_file_size(file_path: str | Path) -> int | None:
        try:
            return Path(file_path).stat().st_size
        except OSError:
            return None

    def _create_output_file(self, fmt: AudioOutputFormat) -> Path:
        self._recordings_dir.mkdir(parents=True, exist_ok=True)
        stem = f"recording_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"
        path = self._recordings_dir / f"{stem}.{fmt.extension}"
        suffix = 1
        while path == self._last_path or path.exists():
            path = self._recordings_dir / f"{stem}_{suffix}.{fmt.extension}"
            suffix += 1
        return path

    async def _delete_file(self, path: Path) -> None:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete partial recording %s: %s", path, exc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _stop_locked(self) -> Resource[RecordingResult]:
        current = self.state.value
        if not isinstance(current, (Recording, Paused)):
            return self._fail(InvalidStateError(current))

        duration_ms = self.elapsed_ms()
        file_path = current.file_path
        self._segment_start = None
        self._accumulated_ms = duration_ms
        self.state.set(Stopping())
        await self._stop_monitors()

        try:
            await self._device_call(self._capture.stop)
        except asyncio.CancelledError:
            logger.info("Stop cancelled, discarding %s", file_path)
            await self._cancel_locked()
            raise
        except Exception as exc:
            logger.exception("Failed to finalize recording %s", file_path)
            await self._release_capture()
            return self._fail(FinalizationFailedError(exc), enter_error=True)
        await self._release_capture()

        size = await asyncio.to_thread(self.get_recording_file_size, file_path)
        if not size:
            logger.error("Recording file missing after stop: %s", file_path)
            return self._fail(FinalizationFailedError("Recording file not found"), enter_error=True)

        result = RecordingResult(
            file_path=file_path,
            duration_ms=duration_ms,
            file_size_bytes=size,
            format=self._format,
        )
        self._file_path = None
        self._accumulated_ms = 0
        self.state.set(Idle())
        self.duration.set(0)
        self.amplitude.set(0)
        logger.info("Recording stopped: %s, %d ms, %d bytes", file_path, duration_ms, size)
        self.results.emit(result)
        return Success(result)

    async def _cancel_locked(self) -> None:
        await self._stop_monitors()
        if (
            isinstance(self.state.value, Idle)
            and self._file_path is None
            and not self._capture_open
        ):
            return
        await self._release_capture()
        path = self._file_path
        self._file_path = None
        if path is not None:
            await self._delete_file(path)
        self._accumulated_ms = 0
        self._segment_start = None
        self.state.set(Idle())
        self.amplitude.set(0)
        self.duration.set(0)
        logger.info("Recording cancelled")

    async def _enter_failure(self, error: RecordingError) -> Error:
        """Move to Error after a device failure; the file stays for cancel()."""
        self._segment_start = None
        self.state.set(ErrorState(error))
        await self._stop_monitors()
        await self._release_capture()
        self.errors.emit(error)
        return error.to_resource()

    def _fail(self, error: RecordingError, enter_error: bool = False) -> Error:
        if enter_error:
            self.state.set(ErrorState(error))
        else:
            logger.warning("%s", error.detail)
        self.errors.emit(error)
        return error.to_resource()

    def _start_monitors(self) -> None:
        self._amplitude_monitor.start()
        self._duration_ticker.start()

    async def _stop_monitors(self) -> None:
        await self._amplitude_monitor.stop()
        await self._duration_ticker.stop()

    async def _release_capture(self) -> None:
        self._capture_open = False
        try:
            await self._device_call(self._capture.reset)
        except Exception:
            logger.warning("Capture reset failed", exc_info=True)

    async def _device_call(self, fn: Callable, *args):
        """Run a blocking device call in a worker thread.

        On cancellation the call is still waited for, so the device never
        sees a ``reset`` while ``prepare`` or ``stop`` is running.
        """
        call = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        try:
            return await asyncio.shield(call)
        except asyncio.CancelledError:
            await asyncio.wait([call])
            if not call.cancelled() and call.exception() is not None:
                logger.warning("Device call %s failed after cancellation: %s", fn, call.exception())
            raise

    # Device callbacks may arrive on the device's own thread.

    def _on_device_limit(self) -> None:
        self._schedule(self._auto_stop)

    def _on_device_error(self, exc: BaseException) -> None:
        self._schedule(self._handle_device_error, exc)

    def _schedule(self, fn: Callable, *args) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("Device event dropped, no running loop")
            return
        loop.call_soon_threadsafe(self._spawn, fn, *args)

    def _spawn(self, fn: Callable, *args) -> None:
        task = asyncio.create_task(fn(*args))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _auto_stop(self) -> None:
        async with self._lock:
            if not isinstance(self.state.value, (Recording, Paused)):
                return
            logger.info("Recording limit reached, stopping")
            await self._stop_locked()

    async def _handle_device_error(self, exc: BaseException) -> None:
        async with self._lock:
            if not isinstance(self.state.value, (Recording, Paused)):
                return
            logger.error("Capture device error: %s", exc)
            await self._enter_failure(RecordingFailedError(exc))
