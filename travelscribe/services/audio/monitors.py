"""Background tasks publishing live amplitude and elapsed duration.

Both monitors run only while the recorder is in the Recording state and
stop on their own as soon as the state cell holds anything else.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from travelscribe.core.observable import StateCell
from travelscribe.services.audio.capture import AudioCapture
from travelscribe.services.audio.state import Recording, RecordingState

logger = logging.getLogger(__name__)


class _PeriodicMonitor:
    """Runs ``_tick`` every ``interval`` seconds while Recording."""

    def __init__(self, state: StateCell[RecordingState], interval: float) -> None:
        self._state = state
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=type(self).__name__)

    async def stop(self) -> None:
        """Cancel the task and wait for it, so nothing publishes afterwards."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._on_stopped()

    async def _run(self) -> None:
        while isinstance(self._state.value, Recording):
            await asyncio.sleep(self._interval)
            if not isinstance(self._state.value, Recording):
                break
            await self._tick()

    async def _tick(self) -> None:
        raise NotImplementedError

    def _on_stopped(self) -> None:
        pass


class AmplitudeMonitor(_PeriodicMonitor):
    """Publishes the capture device's peak amplitude."""

    def __init__(
        self,
        capture: AudioCapture,
        state: StateCell[RecordingState],
        amplitude: StateCell[int],
        interval: float = 0.1,
    ) -> None:
        super().__init__(state, interval)
        self._capture = capture
        self._amplitude = amplitude

    async def _tick(self) -> None:
        try:
            value = await asyncio.to_thread(self._capture.max_amplitude)
        except Exception:
            logger.debug("Amplitude read failed", exc_info=True)
            value = 0
        self._amplitude.set(max(0, min(int(value), 32767)))

    def _on_stopped(self) -> None:
        self._amplitude.set(0)


class DurationTicker(_PeriodicMonitor):
    """Publishes elapsed recording time from ``elapsed_fn``."""

    def __init__(
        self,
        elapsed_fn: Callable[[], int],
        state: StateCell[RecordingState],
        duration: StateCell[int],
        interval: float = 1.0,
    ) -> None:
        super().__init__(state, interval)
        self._elapsed_fn = elapsed_fn
        self._duration = duration

    async def _tick(self) -> None:
        self._duration.set(self._elapsed_fn())
