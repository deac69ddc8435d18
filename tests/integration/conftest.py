"""Integration test fixtures for Scribe.

Provides an async HTTP client backed by an in-memory SQLite database and a
synchronous TestClient for WebSocket tests whose coordinator uses mocked
AI providers.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from scribe.api.app import create_app
from scribe.services import coordinator as coordinator_module
from scribe.services.coordinator import SessionCoordinator
from scribe.services.storage import database


@pytest.fixture(autouse=True)
def _fresh_coordinator():
    coordinator_module.reset_coordinator()
    yield
    coordinator_module.reset_coordinator()


@pytest.fixture
def app():
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
async def async_client(app, db_engine):
    """AsyncClient backed by the in-memory test engine."""
    database._engine = db_engine
    database._session_factory = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    database.reset_engine()


@pytest.fixture
def ws_coordinator(mock_gateway, adapter):
    """Coordinator injected as the process singleton for WebSocket tests."""
    coordinator = SessionCoordinator(
        gateway=mock_gateway,
        adapter=adapter,
        session_max_age=3600.0,
        sweep_interval=60.0,
        shutdown_grace_period=5.0,
        debug=False,
    )
    coordinator_module._coordinator = coordinator
    return coordinator


@pytest.fixture
def test_client(app, ws_coordinator):
    """Synchronous TestClient for WebSocket tests; the database is not touched."""
    with (
        patch("scribe.api.app.init_db", new=AsyncMock()),
        patch("scribe.api.app.close_db", new=AsyncMock()),
    ):
        with TestClient(app) as c:
            yield c
