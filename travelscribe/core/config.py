"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """TravelScribe settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        recordings_dir: Directory where captured audio files are written.
        llm_api_base_url: Base URL of the remote transcription service.
        database_url: Async SQLAlchemy connection string for SQLite.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Audio capture ---
    sample_rate: int = 44100
    bit_rate: int = 128000
    channels: int = 1
    max_duration_ms: int = 10 * 60 * 1000  # 10 minutes
    max_file_size_bytes: int = 50 * 1024 * 1024  # 50 MB
    amplitude_interval_ms: int = 100
    duration_tick_ms: int = 1000
    recordings_dir: str = "data/recordings"

    # --- Transcription API ---
    # Remote LLM backend that turns audio into narrative text + expenses
    transcription_provider: str = "llm_api"
    llm_api_base_url: str = "http://localhost:8080/"
    llm_api_key: str = ""
    client_version: str = "0.1.0"  # Sent as X-Client-Version
    connect_timeout_seconds: float = 30.0
    read_timeout_seconds: float = 60.0
    write_timeout_seconds: float = 60.0

    # --- Languages ---
    source_languages: list[str] = Field(default_factory=lambda: ["hi", "en"])
    target_language: str = "en"

    # --- Storage ---
    database_url: str = "sqlite+aiosqlite:///data/travelscribe.db"

    # --- Application ---
    log_level: str = "INFO"  # Python logging level


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
