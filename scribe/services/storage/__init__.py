"""Recording persistence: engine lifecycle, ORM model, repository and gateway."""

from scribe.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    init_db,
    ping_db,
    reset_engine,
)
from scribe.services.storage.gateway import PersistenceGateway
from scribe.services.storage.models_db import Recording
from scribe.services.storage.repository import RecordingRepository

__all__ = [
    "Base",
    "PersistenceGateway",
    "Recording",
    "RecordingRepository",
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
    "ping_db",
    "reset_engine",
]
