"""Streaming recording session coordinator.

Ingests audio chunks from client connections into the
:class:`SessionRegistry`, drives the recording state machine and runs the
completion pipeline (transcribe → summarize → persist) as a background
``asyncio.Task`` so that slow AI calls never block other connections.

State machine (durable status in parentheses)::

    RECORDING ⇄ PAUSED → PROCESSING → COMPLETED
                                    ↘ FAILED

Usage::

    from scribe.services.coordinator import get_coordinator

    coordinator = get_coordinator()
    await coordinator.start()
    await coordinator.handle(connection, ClientEvent.AUDIO_CHUNK, payload)
    coordinator.on_disconnect(connection)
    await coordinator.shutdown()
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from scribe.core.config import get_settings
from scribe.core.exceptions import ScribeError
from scribe.core.models import (
    AudioChunkPayload,
    ChunkAckPayload,
    ClientEvent,
    RecordingCompletedPayload,
    RecordingErrorPayload,
    RecordingRef,
    RecordingStatus,
    RecordingStatusPayload,
    ServerEvent,
    TranscriptionUpdatePayload,
    WireModel,
)
from scribe.core.utils import utc_now_iso
from scribe.services.adapter import SpeechAdapter
from scribe.services.registry import LiveSession, SessionRegistry
from scribe.services.storage.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

NO_AUDIO_MESSAGE = "No audio data received"
INVALID_MESSAGE = "Invalid message"
SHUTDOWN_MESSAGE = "Server shutting down"

# User-visible reasons per error code; raw exception text is only sent in debug mode.
_USER_MESSAGES: dict[str, str] = {
    "EMPTY_INPUT": "No speech could be recognized in the recording",
    "CONFIGURATION_ERROR": "The transcription service is not configured",
    "RATE_LIMITED": "The AI service is busy, please try again later",
}

_STAGE_MESSAGES: dict[str, str] = {
    "transcription": "Failed to transcribe audio",
    "summarization": "Failed to generate summary",
}


class Connection(ABC):
    """One client's end of the event transport, as seen by the coordinator."""

    id: str

    @abstractmethod
    async def emit(self, event: ServerEvent, payload: WireModel) -> None:
        """Send an event to the client; silently dropped once the client is gone."""


class SessionCoordinator:
    """Orchestrates live recordings across all client connections.

    Args:
        registry: In-memory live-session table.
        gateway: Durable record access.
        adapter: Transcription/summarization boundary; built from settings on
            first use when omitted.
        clock: Monotonic time source shared with the registry.
    """

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        gateway: PersistenceGateway | None = None,
        adapter: SpeechAdapter | None = None,
        *,
        session_max_age: float | None = None,
        sweep_interval: float | None = None,
        shutdown_grace_period: float | None = None,
        default_mime_type: str | None = None,
        debug: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = get_settings()
        self._clock = clock
        self._registry = registry or SessionRegistry(clock=clock)
        self._gateway = gateway or PersistenceGateway()
        self._adapter = adapter
        self._session_max_age = (
            session_max_age if session_max_age is not None else settings.session_max_age
        )
        self._sweep_interval = (
            sweep_interval if sweep_interval is not None else settings.sweep_interval
        )
        self._grace_period = (
            shutdown_grace_period
            if shutdown_grace_period is not None
            else settings.shutdown_grace_period
        )
        self._default_mime_type = default_mime_type or settings.default_mime_type
        self._debug = settings.debug if debug is None else debug

        # recording id -> monotonic time its completion was accepted
        self._finalized: dict[str, float] = {}
        self._pipelines: dict[str, asyncio.Task] = {}
        self._maintenance_task: asyncio.Task | None = None

        self._handlers: dict[
            ClientEvent, Callable[[Connection, WireModel], Awaitable[None]]
        ] = {
            ClientEvent.AUDIO_CHUNK: self.on_audio_chunk,
            ClientEvent.COMPLETE_RECORDING: self.on_complete,
            ClientEvent.PAUSE_RECORDING: self.on_pause,
            ClientEvent.RESUME_RECORDING: self.on_resume,
        }

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def adapter(self) -> SpeechAdapter:
        if self._adapter is None:
            self._adapter = SpeechAdapter.from_settings()
        return self._adapter

    def is_finalized(self, recording_id: str) -> bool:
        return recording_id in self._finalized

    def in_flight(self, recording_id: str) -> bool:
        return recording_id in self._pipelines

    def stats(self) -> dict:
        stats = self._registry.snapshot()
        stats["in_flight_pipelines"] = len(self._pipelines)
        return stats

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    async def handle(self, connection: Connection, event: ClientEvent, payload: WireModel) -> None:
        """Dispatch one client event; never raises."""
        try:
            await self._handlers[event](connection, payload)
        except Exception:
            recording_id = getattr(payload, "recording_id", "")
            logger.exception("Error handling %s for recording %s", event, recording_id)
            await self._emit_error(connection, recording_id, "Internal server error")

    async def reject(self, connection: Connection, event: str | None, data: object) -> None:
        """Answer a frame that could not be parsed into a known event."""
        recording_id = ""
        if isinstance(data, dict) and isinstance(data.get("recordingId"), str):
            recording_id = data["recordingId"]
        logger.warning(
            "Rejected invalid %r message on connection %s", event, connection.id
        )
        if event == ClientEvent.AUDIO_CHUNK and recording_id:
            await self._send(
                connection,
                ServerEvent.AUDIO_CHUNK_RECEIVED,
                ChunkAckPayload(recording_id=recording_id, success=False),
            )
            return
        await self._emit_error(connection, recording_id, INVALID_MESSAGE)

    async def on_audio_chunk(self, connection: Connection, payload: AudioChunkPayload) -> None:
        recording_id = payload.recording_id
        if recording_id in self._finalized:
            logger.info("Ignoring chunk for recording %s: already completing", recording_id)
            return

        live = self._registry.ensure(
            recording_id, connection.id, mime_type=self._default_mime_type
        )
        if live.connection_id != connection.id:
            logger.warning(
                "Rejecting chunk for recording %s from connection %s (owned by %s)",
                recording_id,
                connection.id,
                live.connection_id,
            )
            await self._send(
                connection,
                ServerEvent.AUDIO_CHUNK_RECEIVED,
                ChunkAckPayload(recording_id=recording_id, success=False),
            )
            return

        accepted = self._registry.append(recording_id, payload.chunk)
        if payload.is_final:
            logger.info("Final chunk received for recording %s", recording_id)
        await self._send(
            connection,
            ServerEvent.AUDIO_CHUNK_RECEIVED,
            ChunkAckPayload(recording_id=recording_id, success=accepted),
        )

    async def on_complete(self, connection: Connection, payload: RecordingRef) -> None:
        recording_id = payload.recording_id
        if recording_id in self._finalized:
            logger.info("Duplicate complete-recording for %s ignored", recording_id)
            return

        live = self._registry.get(recording_id)
        if live is not None and live.connection_id != connection.id:
            logger.warning(
                "Connection %s tried to complete recording %s owned by %s",
                connection.id,
                recording_id,
                live.connection_id,
            )
            await self._emit_error(connection, recording_id, "Recording is not owned by this connection")
            return

        # Drain and remove before any await so a concurrent completion sees nothing.
        taken = self._registry.take(recording_id)
        if taken is None or not taken[1]:
            logger.warning("Cannot complete recording %s: no audio buffered", recording_id)
            await self._emit_error(connection, recording_id, NO_AUDIO_MESSAGE)
            return

        live, chunks = taken
        self._finalized[recording_id] = self._clock()
        if await self._already_finished(recording_id):
            logger.info(
                "Duplicate complete-recording for %s ignored: record is already final",
                recording_id,
            )
            return

        logger.info(
            "Completing recording %s (%d chunks, %d bytes)",
            recording_id,
            len(chunks),
            sum(len(c) for c in chunks),
        )

        await self._send(
            connection,
            ServerEvent.RECORDING_STATUS,
            RecordingStatusPayload(recording_id=recording_id, status=RecordingStatus.PROCESSING),
        )
        task = asyncio.create_task(
            self._run_pipeline(connection, live, chunks), name=f"pipeline-{recording_id}"
        )
        self._pipelines[recording_id] = task
        task.add_done_callback(lambda _t: self._pipelines.pop(recording_id, None))

    async def on_pause(self, connection: Connection, payload: RecordingRef) -> None:
        await self._set_paused(connection, payload.recording_id, paused=True)

    async def on_resume(self, connection: Connection, payload: RecordingRef) -> None:
        await self._set_paused(connection, payload.recording_id, paused=False)

    async def _set_paused(self, connection: Connection, recording_id: str, paused: bool) -> None:
        live = self._registry.get(recording_id)
        if live is None or live.connection_id != connection.id:
            logger.debug(
                "Ignoring %s for recording %s: not live on this connection",
                "pause" if paused else "resume",
                recording_id,
            )
            return

        self._registry.set_paused(recording_id, paused)
        status = RecordingStatus.PAUSED if paused else RecordingStatus.RECORDING
        logger.info("Recording %s is now %s", recording_id, status)

        persisted = await self._persist(recording_id, status=status)
        await self._send(
            connection,
            ServerEvent.RECORDING_STATUS,
            RecordingStatusPayload(recording_id=recording_id, status=status),
        )
        if not persisted:
            action = "pause" if paused else "resume"
            await self._emit_error(connection, recording_id, f"Failed to {action} recording")

    def on_disconnect(self, connection: Connection) -> set[str]:
        """Drop every live recording owned by *connection*; durable records are untouched."""
        removed = self._registry.remove_by_connection(connection.id)
        if removed:
            logger.info(
                "Connection %s closed; discarded %d live recording(s)", connection.id, len(removed)
            )
        return removed

    # ------------------------------------------------------------------
    # Completion pipeline
    # ------------------------------------------------------------------

    async def _run_pipeline(
        self, connection: Connection, live: LiveSession, chunks: list[bytes]
    ) -> None:
        recording_id = live.session_id
        stage = "transcription"
        transcript: str | None = None

        try:
            await self._persist(recording_id, status=RecordingStatus.PROCESSING)
            audio = b"".join(chunks)
            transcript = await self.adapter.transcribe(audio, live.mime_type)
            await self._send(
                connection,
                ServerEvent.TRANSCRIPTION_UPDATE,
                TranscriptionUpdatePayload(
                    recording_id=recording_id,
                    text=transcript,
                    timestamp=utc_now_iso(),
                    is_final=True,
                ),
            )
            duration = max(int(self._clock() - live.started_at), 0)

            stage = "summarization"
            summary = await self.adapter.summarize(transcript)
        except asyncio.CancelledError:
            logger.warning("Pipeline for recording %s cancelled during %s", recording_id, stage)
            await self._emit_error(connection, recording_id, SHUTDOWN_MESSAGE)
            await self._persist(
                recording_id,
                status=RecordingStatus.FAILED,
                summary="Processing failed: server shutting down",
            )
            raise
        except Exception as exc:
            reason = self._describe_failure(stage, exc)
            if isinstance(exc, ScribeError):
                logger.error(
                    "%s failed for recording %s: %s", stage.capitalize(), recording_id, exc.detail
                )
            else:
                logger.exception("%s failed for recording %s", stage.capitalize(), recording_id)

            fields: dict = {"status": RecordingStatus.FAILED, "summary": f"Processing failed: {reason}"}
            if transcript:
                fields["transcript"] = transcript
            await self._persist(recording_id, **fields)
            await self._emit_error(connection, recording_id, reason)
            return

        await self._persist(
            recording_id,
            status=RecordingStatus.COMPLETED,
            transcript=transcript,
            summary=summary,
            duration=duration,
        )
        await self._send(
            connection,
            ServerEvent.RECORDING_COMPLETED,
            RecordingCompletedPayload(
                recording_id=recording_id,
                summary=summary,
                transcript=transcript,
                duration=duration,
            ),
        )
        logger.info("Recording %s completed (duration=%ss)", recording_id, duration)

    def _describe_failure(self, stage: str, exc: Exception) -> str:
        if self._debug:
            return exc.detail if isinstance(exc, ScribeError) else str(exc)
        if isinstance(exc, ScribeError) and exc.code in _USER_MESSAGES:
            return _USER_MESSAGES[exc.code]
        return _STAGE_MESSAGES[stage]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _already_finished(self, recording_id: str) -> bool:
        """True when the durable record is COMPLETED or FAILED.

        Lookup failures count as not finished so completion still proceeds.
        """
        try:
            record = await self._gateway.get_session(recording_id)
        except Exception:
            logger.exception("Could not read recording %s before completing", recording_id)
            return False
        return record is not None and record.status in (
            RecordingStatus.COMPLETED,
            RecordingStatus.FAILED,
        )

    async def _persist(self, recording_id: str, **fields) -> bool:
        """Best-effort durable update; failures are logged, never raised."""
        try:
            await self._gateway.update_session(recording_id, **fields)
            return True
        except ScribeError as exc:
            logger.warning("Could not persist recording %s: %s", recording_id, exc.detail)
        except Exception:
            logger.exception("Could not persist recording %s", recording_id)
        return False

    async def _send(self, connection: Connection, event: ServerEvent, payload: WireModel) -> None:
        try:
            await connection.emit(event, payload)
        except Exception:
            logger.warning(
                "Failed to emit %s to connection %s (non-fatal)", event, connection.id
            )

    async def _emit_error(self, connection: Connection, recording_id: str, error: str) -> None:
        await self._send(
            connection,
            ServerEvent.RECORDING_ERROR,
            RecordingErrorPayload(recording_id=recording_id, error=error),
        )

    # ------------------------------------------------------------------
    # Maintenance and lifecycle
    # ------------------------------------------------------------------

    def sweep(self) -> list[str]:
        """Drop idle live sessions and expired completion markers."""
        stale = self._registry.sweep(self._session_max_age)
        cutoff = self._clock() - self._session_max_age
        expired = [
            rid
            for rid, accepted_at in self._finalized.items()
            if accepted_at < cutoff and rid not in self._pipelines
        ]
        for rid in expired:
            del self._finalized[rid]
        logger.debug("Coordinator stats: %s", self.stats())
        return stale

    async def _maintenance_loop(self) -> None:
        logger.info(
            "Maintenance loop started (interval=%ss, max_age=%ss)",
            self._sweep_interval,
            self._session_max_age,
        )
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Registry sweep failed")

    async def start(self) -> None:
        """Launch the periodic maintenance sweep."""
        if self._maintenance_task is None:
            self._maintenance_task = asyncio.create_task(
                self._maintenance_loop(), name="registry-maintenance"
            )

    async def shutdown(self) -> None:
        """Stop maintenance and give in-flight pipelines a grace period to finish."""
        if self._maintenance_task is not None:
            self._maintenance_task.cancel()
            await asyncio.gather(self._maintenance_task, return_exceptions=True)
            self._maintenance_task = None

        pending = set(self._pipelines.values())
        if not pending:
            return
        logger.info("Waiting for %d in-flight pipeline(s)", len(pending))
        _done, still_running = await asyncio.wait(pending, timeout=self._grace_period)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.error("Cancelled %d pipeline(s) after grace period", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)


# ---------------------------------------------------------------------------
# Module-level singleton management
# ---------------------------------------------------------------------------

_coordinator: SessionCoordinator | None = None


def get_coordinator() -> SessionCoordinator:
    """Return the process-wide coordinator, creating it on first call."""
    global _coordinator
    if _coordinator is None:
        _coordinator = SessionCoordinator()
    return _coordinator


def reset_coordinator() -> None:
    """Forget the singleton (test helper)."""
    global _coordinator
    _coordinator = None
