"""
Transcription module - remote audio-to-narrative abstraction layer.

Factory function for creating transcription providers based on configuration.
"""

from .base import TranscriptionPort, TranscriptionState, TranscriptionStatus

__all__ = ["TranscriptionPort", "TranscriptionState", "TranscriptionStatus", "create_transcriber"]


def create_transcriber(provider: str | None = None, **kwargs) -> TranscriptionPort:
    """
    Factory function to create a transcription provider.

    Args:
        provider: Provider name ("llm_api"); defaults to the configured one
        **kwargs: Provider-specific configuration

    Returns:
        TranscriptionPort implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider is None:
        from travelscribe.core.config import get_settings

        provider = get_settings().transcription_provider
    if provider in ("llm_api", "remote"):
        from .llm_api import LlmApiTranscriber

        return LlmApiTranscriber(**kwargs)
    raise ValueError(f"Unknown transcription provider: {provider}")
