"""
Audio module - voice capture and the recording state machine.
"""

from .capture import AudioCapture
from .controller import ACTION_START, ACTION_STOP, RecordingController
from .formats import AudioOutputFormat, RecordingConfig
from .recorder import VoiceRecorder
from .state import RecordingResult

__all__ = [
    "ACTION_START",
    "ACTION_STOP",
    "AudioCapture",
    "AudioOutputFormat",
    "RecordingConfig",
    "RecordingController",
    "RecordingResult",
    "VoiceRecorder",
]
