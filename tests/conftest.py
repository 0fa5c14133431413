"""Shared pytest fixtures for the TravelScribe test suite.

Provides a scriptable fake capture device, a manual clock, and an in-memory
SQLite database wired into the repository and persistence adapters.
"""

import time
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from travelscribe.services.audio.capture import AudioCapture
from travelscribe.services.audio.recorder import VoiceRecorder
from travelscribe.services.storage.database import enable_sqlite_foreign_keys, init_db
from travelscribe.services.storage.persistence import SqlPersistence
from travelscribe.services.storage.repository import TravelRepository

# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


class FakeAudioCapture(AudioCapture):
    """In-memory AudioCapture whose behaviour tests can script.

    Attributes:
        permission: Value returned by ``has_permission``.
        amplitude: Value returned by ``max_amplitude``.
        payload: Bytes written to the output file on ``stop``.
        write_on_stop: When False, ``stop`` leaves no file behind.
        touch_on_prepare: When True, ``prepare`` creates an empty file.
        fail_on: Method name -> exception raised by that method.
        delay_on: Method name -> seconds that method blocks before returning.
        calls: Names of the lifecycle methods called, in order.
    """

    def __init__(self, supports_pause: bool = True) -> None:
        self.supports_pause = supports_pause
        self.permission = True
        self.amplitude = 1200
        self.payload = b"\x00\x01" * 512
        self.write_on_stop = True
        self.touch_on_prepare = False
        self.fail_on: dict[str, Exception] = {}
        self.delay_on: dict[str, float] = {}
        self.calls: list[str] = []
        self.file_path: Path | None = None
        self.config = None
        self.on_limit = None
        self.on_error = None

    def _call(self, name: str) -> None:
        self.calls.append(name)
        delay = self.delay_on.get(name)
        if delay:
            time.sleep(delay)
        exc = self.fail_on.get(name)
        if exc is not None:
            raise exc

    def has_permission(self) -> bool:
        self._call("has_permission")
        return self.permission

    def prepare(self, file_path, config, on_limit, on_error) -> None:
        self._call("prepare")
        self.file_path = file_path
        self.config = config
        self.on_limit = on_limit
        self.on_error = on_error
        if self.touch_on_prepare:
            file_path.touch()

    def start(self) -> None:
        self._call("start")

    def pause(self) -> None:
        self._call("pause")

    def resume(self) -> None:
        self._call("resume")

    def stop(self) -> None:
        self._call("stop")
        if self.write_on_stop and self.file_path is not None:
            self.file_path.write_bytes(self.payload)

    def max_amplitude(self) -> int:
        exc = self.fail_on.get("max_amplitude")
        if exc is not None:
            raise exc
        return self.amplitude

    def reset(self) -> None:
        self.calls.append("reset")


class FakeClock:
    """Monotonic clock advanced manually, in seconds."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms / 1000


@pytest.fixture
def fake_capture():
    """A FakeAudioCapture that supports pause and grants permission."""
    return FakeAudioCapture()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recordings_dir(tmp_path):
    return tmp_path / "recordings"


@pytest.fixture
async def recorder(fake_capture, fake_clock, recordings_dir):
    """VoiceRecorder over the fake device with fast monitor intervals."""
    rec = VoiceRecorder(
        fake_capture,
        recordings_dir=recordings_dir,
        clock=fake_clock,
        amplitude_interval=0.01,
        duration_interval=0.01,
    )
    yield rec
    await rec.release()


@pytest.fixture
def audio_file(tmp_path):
    """A small non-empty file standing in for a recorded note."""
    path = tmp_path / "note.m4a"
    path.write_bytes(b"\x00\x00\x00\x18ftypM4A " + b"\x00" * 64)
    return path


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine with all tables created.

    ``StaticPool`` keeps a single connection so every session sees the
    same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    """TravelRepository bound to the test session."""
    return TravelRepository(db_session)


@pytest.fixture
def persistence(session_factory):
    """SqlPersistence using the in-memory database."""
    return SqlPersistence(session_factory)
