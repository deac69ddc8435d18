"""In-memory registry of recordings that are currently being captured.

The registry is the single source of truth for "is this recording live",
independent of the database. Entries are created lazily on the first chunk
of an unseen recording and removed on completion, on disconnect of the
owning connection, or by the idle sweep.

Every operation takes the registry lock for its whole body and never
awaits while holding it, so event handlers, completion pipelines and the
maintenance sweep always observe whole entries.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class LiveSession:
    """Ephemeral capture state for one recording."""

    session_id: str
    connection_id: str
    started_at: float
    last_activity_at: float
    mime_type: str = "audio/webm"
    chunks: list[bytes] = field(default_factory=list)
    is_paused: bool = False
    chunk_count: int = 0

    @property
    def buffered_bytes(self) -> int:
        return sum(len(c) for c in self.chunks)


class SessionRegistry:
    """Thread-safe map of recording id to :class:`LiveSession`.

    Args:
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, LiveSession] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def get(self, session_id: str) -> LiveSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def ensure(
        self,
        session_id: str,
        connection_id: str,
        mime_type: str = "audio/webm",
    ) -> LiveSession:
        """Return the live session for *session_id*, creating it if unseen."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                now = self._clock()
                session = LiveSession(
                    session_id=session_id,
                    connection_id=connection_id,
                    started_at=now,
                    last_activity_at=now,
                    mime_type=mime_type,
                )
                self._sessions[session_id] = session
                logger.info(
                    "Started tracking recording %s (connection=%s)", session_id, connection_id
                )
            return session

    def append(self, session_id: str, chunk: bytes) -> bool:
        """Buffer *chunk* at the end of the session; False if the session is unknown."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.debug("Dropping chunk for unknown recording %s", session_id)
                return False
            session.chunks.append(chunk)
            session.chunk_count += 1
            session.last_activity_at = self._clock()
            return True

    def set_paused(self, session_id: str, paused: bool) -> bool:
        """Set the pause flag; False if the session is unknown."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.debug("Ignoring pause=%s for unknown recording %s", paused, session_id)
                return False
            session.is_paused = paused
            session.last_activity_at = self._clock()
            return True

    def drain(self, session_id: str) -> list[bytes]:
        """Remove and return all buffered chunks in arrival order."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return []
            chunks, session.chunks = session.chunks, []
            return chunks

    def take(self, session_id: str) -> tuple[LiveSession, list[bytes]] | None:
        """Atomically drain and remove a session.

        Used when completion starts so that a concurrent second completion
        finds nothing to process.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return None
            chunks, session.chunks = session.chunks, []
            return session, chunks

    def remove(self, session_id: str) -> bool:
        """Delete the session; idempotent."""
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def sweep(self, max_age: float) -> list[str]:
        """Remove sessions idle for longer than *max_age* seconds."""
        with self._lock:
            cutoff = self._clock() - max_age
            stale = [
                sid for sid, s in self._sessions.items() if s.last_activity_at < cutoff
            ]
            for sid in stale:
                del self._sessions[sid]
        for sid in stale:
            logger.warning("Swept stale recording %s", sid)
        return stale

    def remove_by_connection(self, connection_id: str) -> set[str]:
        """Remove every session owned by *connection_id* and return their ids."""
        with self._lock:
            owned = {
                sid for sid, s in self._sessions.items() if s.connection_id == connection_id
            }
            for sid in owned:
                del self._sessions[sid]
        for sid in owned:
            logger.warning("Cleaning up abandoned recording %s", sid)
        return owned

    def snapshot(self) -> dict:
        """Return aggregate statistics for logging and health checks."""
        with self._lock:
            return {
                "active_sessions": len(self._sessions),
                "paused_sessions": sum(1 for s in self._sessions.values() if s.is_paused),
                "buffered_chunks": sum(len(s.chunks) for s in self._sessions.values()),
                "buffered_bytes": sum(s.buffered_bytes for s in self._sessions.values()),
            }
