"""Shared pytest fixtures for the Scribe test suite.

Provides mock LLM/STT providers, a recording connection double, a
mocked persistence gateway and in-memory database fixtures.
"""

import struct
from unittest.mock import AsyncMock

import pytest

from scribe.core.models import TranscriptionResult

# ---------------------------------------------------------------------------
# LLM / STT Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm():
    """Create a mock LLM provider returning a small Markdown summary."""
    from scribe.services.llm.base import BaseLLM

    llm = AsyncMock(spec=BaseLLM)
    llm.summarize.return_value = "## Overview\nA short test conversation."
    llm.generate.return_value = "## Overview\nA short test conversation."
    return llm


@pytest.fixture
def mock_stt():
    """Create a mock STT provider with a default transcription result."""
    from scribe.services.transcription.base import BaseSTT

    stt = AsyncMock(spec=BaseSTT)
    stt.transcribe.return_value = TranscriptionResult(
        text="This is a test transcription.",
        language="en",
        confidence=0.95,
        duration=3.0,
    )
    return stt


@pytest.fixture
def adapter(mock_stt, mock_llm):
    """SpeechAdapter wired to the mock providers, no timeout."""
    from scribe.services.adapter import SpeechAdapter

    return SpeechAdapter(stt=mock_stt, llm=mock_llm, timeout=None)


# ---------------------------------------------------------------------------
# Coordinator Fixtures
# ---------------------------------------------------------------------------


class FakeConnection:
    """Connection double that records every emitted event in wire form."""

    def __init__(self, connection_id: str = "conn-1") -> None:
        self.id = connection_id
        self.events: list[tuple[str, dict]] = []

    async def emit(self, event, payload) -> None:
        self.events.append((str(event), payload.to_wire()))

    def of(self, event: str) -> list[dict]:
        """Return the payloads of every emitted *event*, in order."""
        return [data for name, data in self.events if name == event]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def connection():
    return FakeConnection("conn-1")


@pytest.fixture
def other_connection():
    return FakeConnection("conn-2")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_gateway():
    """AsyncMock standing in for PersistenceGateway; every update succeeds."""
    from scribe.services.storage.gateway import PersistenceGateway

    gateway = AsyncMock(spec=PersistenceGateway)
    gateway.get_session.return_value = None
    return gateway


@pytest.fixture
def coordinator(mock_gateway, adapter, clock):
    """SessionCoordinator with mocked persistence and providers."""
    from scribe.services.coordinator import SessionCoordinator
    from scribe.services.registry import SessionRegistry

    return SessionCoordinator(
        registry=SessionRegistry(clock=clock),
        gateway=mock_gateway,
        adapter=adapter,
        session_max_age=3600.0,
        sweep_interval=60.0,
        shutdown_grace_period=1.0,
        default_mime_type="audio/webm",
        debug=False,
        clock=clock,
    )


@pytest.fixture
def connection_factory():
    """Return a callable building extra FakeConnection instances."""
    return FakeConnection


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_pcm_bytes():
    """Generate 1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono)."""
    import math

    sample_rate = 16000
    frequency = 440.0
    amplitude = 16000

    samples = []
    for i in range(sample_rate):
        value = int(amplitude * math.sin(2 * math.pi * frequency * i / sample_rate))
        samples.append(struct.pack("<h", value))
    return b"".join(samples)


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with tables, dispose after test."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from scribe.services.storage.database import Base, init_db

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await init_db(engine)
    assert "recordings" in Base.metadata.tables
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Yield an AsyncSession bound to the test engine; rolls back after test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    """Return a RecordingRepository bound to the test session."""
    from scribe.services.storage.repository import RecordingRepository

    return RecordingRepository(db_session)


@pytest.fixture
def use_test_db(db_engine):
    """Route ``get_session()`` to the in-memory engine for the test."""
    from scribe.services.storage import database

    database._engine = db_engine
    database._session_factory = None
    yield db_engine
    database.reset_engine()
