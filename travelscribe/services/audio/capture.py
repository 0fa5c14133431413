"""Abstract interface for audio capture devices."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from travelscribe.services.audio.formats import RecordingConfig

LimitCallback = Callable[[], None]
ErrorCallback = Callable[[BaseException], None]


class AudioCapture(ABC):
    """Capability set for a single capture device.

    Methods block and are called from a worker thread by the recorder.
    ``on_limit`` and ``on_error`` may be invoked from the device's own
    thread; implementations must not call back into the recorder directly.
    """

    #: Whether pause()/resume() are available on this device.
    supports_pause: bool = True

    @abstractmethod
    def has_permission(self) -> bool:
        """Return True if an input device can be opened."""

    @abstractmethod
    def prepare(
        self,
        file_path: Path,
        config: RecordingConfig,
        on_limit: LimitCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Open the device and bind it to ``file_path`` without capturing yet."""

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def resume(self) -> None: ...

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing and write the finalized file."""

    @abstractmethod
    def max_amplitude(self) -> int:
        """Peak amplitude (0..32767) observed since the previous call."""

    @abstractmethod
    def reset(self) -> None:
        """Release the device and discard buffered audio. Safe to repeat."""
