"""Output formats and capture settings for voice recordings."""

from dataclasses import dataclass, replace
from enum import Enum

from travelscribe.core.config import Settings, get_settings


class AudioOutputFormat(Enum):
    """Supported output formats with their fixed container/codec pairing.

    Each member carries ``(extension, mime_type, container, codec,
    fallback_codec)``. ``container`` and ``codec`` are ffmpeg names used when
    the captured PCM is encoded to disk.
    """

    M4A = ("m4a", "audio/mp4", "mp4", "aac", None)
    AMR = ("amr", "audio/amr", "amr", "libopencore_amrnb", None)
    WEBM = ("webm", "audio/webm", "webm", "libopus", "libvorbis")
    AAC = ("aac", "audio/aac", "adts", "aac", None)

    def __init__(
        self,
        extension: str,
        mime_type: str,
        container: str,
        codec: str,
        fallback_codec: str | None,
    ) -> None:
        self.extension = extension
        self.mime_type = mime_type
        self.container = container
        self.codec = codec
        self.fallback_codec = fallback_codec

    @classmethod
    def from_extension(cls, extension: str) -> "AudioOutputFormat | None":
        ext = extension.lower().lstrip(".")
        for fmt in cls:
            if fmt.extension == ext:
                return fmt
        return None


@dataclass(frozen=True)
class RecordingConfig:
    """Capture parameters for one recording session.

    Attributes:
        sample_rate: Capture sample rate in Hz.
        bit_rate: Target encoder bit rate in bits per second.
        channels: Number of input channels (1 = mono).
        output_format: Container/codec pair written on stop.
        max_duration_ms: Session auto-stops after this much recorded audio.
        max_file_size_bytes: Session auto-stops once the encoded size
            estimate reaches this value.
    """

    sample_rate: int = 44100
    bit_rate: int = 128000
    channels: int = 1
    output_format: AudioOutputFormat = AudioOutputFormat.M4A
    max_duration_ms: int = 10 * 60 * 1000
    max_file_size_bytes: int = 50 * 1024 * 1024

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RecordingConfig":
        settings = settings or get_settings()
        return cls(
            sample_rate=settings.sample_rate,
            bit_rate=settings.bit_rate,
            channels=settings.channels,
            max_duration_ms=settings.max_duration_ms,
            max_file_size_bytes=settings.max_file_size_bytes,
        )

    def with_format(self, output_format: AudioOutputFormat) -> "RecordingConfig":
        return replace(self, output_format=output_format)


HIGH_QUALITY = RecordingConfig(sample_rate=48000, bit_rate=192000)
STANDARD = RecordingConfig()
LOW_QUALITY = RecordingConfig(sample_rate=22050, bit_rate=64000)
