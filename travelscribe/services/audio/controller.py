"""External start/stop trigger for the recorder.

Hosts (a tray icon, a hotkey daemon, a notification action) send one of two
action strings; everything else shuts the controller down.
"""

import asyncio
import logging

from travelscribe.services.audio.formats import AudioOutputFormat
from travelscribe.services.audio.recorder import VoiceRecorder

logger = logging.getLogger(__name__)

ACTION_START = "com.travelscribe.action.START_RECORDING"
ACTION_STOP = "com.travelscribe.action.STOP_RECORDING"


class RecordingController:
    """Delegates host actions to a ``VoiceRecorder``.

    Actions are fire-and-forget: ``handle`` returns the scheduled task, and
    failures surface on ``recorder.errors``.
    """

    def __init__(
        self,
        recorder: VoiceRecorder,
        output_format: AudioOutputFormat | None = None,
    ) -> None:
        self.recorder = recorder
        self.output_format = output_format
        self._tasks: set[asyncio.Task] = set()
        self._shutdown = False

    @property
    def is_shut_down(self) -> bool:
        return self._shutdown

    def handle(self, action: str | None) -> asyncio.Task:
        if self._shutdown:
            logger.warning("Ignoring %s, controller is shut down", action)
            return self._track(asyncio.sleep(0))
        if action == ACTION_START:
            return self._track(self.recorder.start(self.output_format))
        if action == ACTION_STOP:
            return self._track(self.recorder.stop())
        logger.info("Unknown action %r, shutting down", action)
        return asyncio.create_task(self.shutdown())

    async def shutdown(self) -> None:
        """Let in-flight actions finish, then discard any active session."""
        self._shutdown = True
        tasks = list(self._tasks)
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.recorder.cancel()

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
