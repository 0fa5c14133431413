"""Microphone capture via PortAudio (sounddevice) with ffmpeg encoding.

Frames arrive on PortAudio's callback thread as int16 numpy blocks and are
buffered in memory. ``stop()`` concatenates them and encodes the result
with pydub into the container/codec pair of the chosen output format.
"""

import logging
import threading
from pathlib import Path

import numpy as np
import sounddevice as sd
from pydub import AudioSegment
from pydub.exceptions import CouldntEncodeError

from travelscribe.core.exceptions import AudioCaptureError
from travelscribe.services.audio.capture import AudioCapture, ErrorCallback, LimitCallback
from travelscribe.services.audio.formats import AudioOutputFormat, RecordingConfig

logger = logging.getLogger(__name__)

# AMR-NB only encodes 8 kHz mono at narrowband bit rates
_AMR_PARAMETERS = ["-ar", "8000", "-ac", "1"]


class SoundDeviceCapture(AudioCapture):
    """AudioCapture backed by ``sounddevice.InputStream``."""

    supports_pause = True

    def __init__(self, device: int | str | None = None) -> None:
        self._device = device
        self._lock = threading.Lock()
        self._stream: sd.InputStream | None = None
        self._chunks: list[np.ndarray] = []
        self._frames = 0
        self._peak = 0
        self._capturing = False
        self._stopping = False
        self._limit_reached = False
        self._file_path: Path | None = None
        self._config: RecordingConfig | None = None
        self._on_limit: LimitCallback | None = None
        self._on_error: ErrorCallback | None = None

    def has_permission(self) -> bool:
        try:
            sd.query_devices(self._device, kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            logger.warning("No usable input device: %s", exc)
            return False
        return True

    def prepare(
        self,
        file_path: Path,
        config: RecordingConfig,
        on_limit: LimitCallback,
        on_error: ErrorCallback,
    ) -> None:
        self.reset()
        self._file_path = file_path
        self._config = config
        self._on_limit = on_limit
        self._on_error = on_error
        try:
            self._stream = sd.InputStream(
                samplerate=config.sample_rate,
                channels=config.channels,
                dtype="int16",
                device=self._device,
                callback=self._callback,
                finished_callback=self._finished,
            )
        except sd.PortAudioError as exc:
            raise AudioCaptureError(f"Could not open input stream: {exc}") from exc

    def start(self) -> None:
        if self._stream is None:
            raise AudioCaptureError("Capture not prepared")
        with self._lock:
            self._capturing = True
        self._stream.start()

    def pause(self) -> None:
        with self._lock:
            self._capturing = False

    def resume(self) -> None:
        with self._lock:
            self._capturing = True

    def stop(self) -> None:
        if self._file_path is None or self._config is None:
            raise AudioCaptureError("Capture not prepared")
        self._close_stream()
        with self._lock:
            chunks = self._chunks
            self._chunks = []
        if not chunks:
            raise AudioCaptureError("No audio was captured")
        audio = np.concatenate(chunks, axis=0)
        self._export(audio, self._file_path, self._config)

    def max_amplitude(self) -> int:
        with self._lock:
            peak = self._peak
            self._peak = 0
        return peak

    def reset(self) -> None:
        self._close_stream()
        with self._lock:
            self._chunks = []
            self._frames = 0
            self._peak = 0
            self._capturing = False
            self._limit_reached = False
        self._file_path = None
        self._config = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            logger.warning("Input stream status: %s", status)
        config = self._config
        with self._lock:
            if not self._capturing or self._limit_reached or config is None:
                return
            self._chunks.append(indata.copy())
            self._frames += frames
            # abs() of -32768 overflows int16, so widen first
            peak = int(np.abs(indata.astype(np.int32)).max(initial=0))
            self._peak = min(max(self._peak, peak), 32767)
            limit_hit = self._limit_hit(config)
            if limit_hit:
                self._limit_reached = True
        if limit_hit:
            logger.info("Recording limit reached after %d frames", self._frames)
            if self._on_limit is not None:
                self._on_limit()

    def _limit_hit(self, config: RecordingConfig) -> bool:
        elapsed_ms = self._frames * 1000 // config.sample_rate
        estimated_bytes = self._frames / config.sample_rate * config.bit_rate / 8
        return (
            elapsed_ms >= config.max_duration_ms
            or estimated_bytes >= config.max_file_size_bytes
        )

    def _finished(self) -> None:
        if self._stopping:
            return
        logger.error("Input stream finished unexpectedly")
        if self._on_error is not None:
            self._on_error(AudioCaptureError("Input stream stopped unexpectedly"))

    def _close_stream(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        self._stopping = True
        try:
            stream.stop()
            stream.close()
        finally:
            self._stopping = False

    def _export(self, audio: np.ndarray, file_path: Path, config: RecordingConfig) -> None:
        segment = AudioSegment(
            data=audio.tobytes(),
            sample_width=2,
            frame_rate=config.sample_rate,
            channels=config.channels,
        )
        fmt = config.output_format
        try:
            self._encode(segment, file_path, fmt, fmt.codec, config.bit_rate)
        except CouldntEncodeError:
            if fmt.fallback_codec is None:
                raise
            logger.warning(
                "Codec %s unavailable, falling back to %s", fmt.codec, fmt.fallback_codec
            )
            self._encode(segment, file_path, fmt, fmt.fallback_codec, config.bit_rate)
        logger.info("Wrote %s (%d bytes)", file_path, file_path.stat().st_size)

    @staticmethod
    def _encode(
        segment: AudioSegment,
        file_path: Path,
        fmt: AudioOutputFormat,
        codec: str,
        bit_rate: int,
    ) -> None:
        if fmt is AudioOutputFormat.AMR:
            handle = segment.export(
                str(file_path), format=fmt.container, codec=codec, parameters=_AMR_PARAMETERS
            )
        else:
            handle = segment.export(
                str(file_path), format=fmt.container, codec=codec, bitrate=f"{bit_rate // 1000}k"
            )
        handle.close()
