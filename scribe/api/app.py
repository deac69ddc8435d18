"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, auth and error
handlers, the recording routes, the streaming WebSocket and the health
endpoint. The module-level ``app`` instance allows
``uvicorn scribe.api.app:app --reload``.
"""

import asyncio
import logging
import os
import signal
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from scribe import __version__
from scribe.api import websocket
from scribe.api.middleware.api_key_auth import ApiKeyAuthMiddleware
from scribe.api.middleware.error_handler import register_error_handlers
from scribe.api.routes import recordings
from scribe.core.config import get_settings
from scribe.core.models import HealthResponse
from scribe.core.utils import configure_logging
from scribe.services.coordinator import get_coordinator
from scribe.services.storage.database import close_db, init_db, ping_db

logger = logging.getLogger(__name__)

_started_at = time.monotonic()
_shutdown_requested = False


def _on_unhandled_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Last-resort guard for exceptions no task retrieved.

    Logs at CRITICAL and asks the server to stop with SIGTERM, which runs the
    normal lifespan shutdown (pipeline grace period, DB dispose). Sessions are
    not recovered individually.
    """
    global _shutdown_requested
    logger.critical(
        "Unhandled exception in event loop: %s",
        context.get("message"),
        exc_info=context.get("exception"),
    )
    if _shutdown_requested:
        return
    _shutdown_requested = True
    logger.critical("Starting graceful shutdown after unhandled exception")
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Startup: configure logging, create tables, start registry maintenance.
    Shutdown: let in-flight completions finish, then dispose the DB engine.
    """
    global _shutdown_requested
    settings = get_settings()
    configure_logging(settings.log_level)
    _shutdown_requested = False
    asyncio.get_running_loop().set_exception_handler(_on_unhandled_exception)

    await init_db()
    coordinator = get_coordinator()
    await coordinator.start()
    logger.info("Scribe %s ready; streaming on /ws/recordings", __version__)
    yield
    await coordinator.shutdown()
    await close_db()


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application."""

    app = FastAPI(
        title="Scribe",
        description="Streaming audio recording with transcription and AI summaries.",
        version=__version__,
        lifespan=lifespan,
    )

    # -- CORS --
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Shared API key --
    app.add_middleware(ApiKeyAuthMiddleware)

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health(response: Response) -> HealthResponse:
        status, database = "ok", "ok"
        try:
            await ping_db()
        except Exception:
            logger.warning("Health check: database unreachable", exc_info=True)
            status, database = "unhealthy", "unreachable"
            response.status_code = 503

        return HealthResponse(
            status=status,
            version=__version__,
            timestamp=datetime.now(UTC),
            database=database,
            active_sessions=len(get_coordinator().registry),
            uptime_seconds=round(time.monotonic() - _started_at, 1),
        )

    # -- REST routes --
    app.include_router(recordings.router, prefix="/api/v1")

    # -- WebSocket --
    app.include_router(websocket.router)

    return app


app = create_app()
