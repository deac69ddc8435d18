"""WebSocket endpoint for streaming recording sessions.

Every frame is a JSON object ``{"event": <name>, "data": {...}}``. Clients
send ``audio-chunk`` (base64 ``chunk``), ``complete-recording``,
``pause-recording`` and ``resume-recording``; the server answers with
``audio-chunk-received``, ``transcription-update``, ``recording-status``,
``recording-completed`` and ``recording-error``.

Each connection runs one receive loop that parses frames into typed
payloads and hands them to the :class:`SessionCoordinator` in arrival
order. Completion runs in the background, so results may arrive while
the client keeps streaming.
"""

import asyncio
import json
import logging
import time
import uuid

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from scribe.core.models import (
    CLIENT_PAYLOADS,
    ClientEvent,
    ConnectedPayload,
    ServerEvent,
    WebSocketMessage,
    WireModel,
)
from scribe.services.coordinator import Connection, get_coordinator

logger = logging.getLogger(__name__)

router = APIRouter()


class InvalidFrameError(ValueError):
    """Raised when a frame is not a well-formed client event."""

    def __init__(self, event: str | None, data: object) -> None:
        self.event = event
        self.data = data
        super().__init__(f"Invalid {event!r} frame")


def parse_client_frame(raw: str | bytes) -> tuple[ClientEvent, WireModel]:
    """Parse one frame into its event kind and validated payload.

    Raises:
        InvalidFrameError: If the frame is not JSON, names an unknown event,
            or carries a payload that fails validation.
    """
    try:
        frame = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidFrameError(None, None) from exc
    if not isinstance(frame, dict):
        raise InvalidFrameError(None, None)

    event_name = frame.get("event")
    data = frame.get("data")
    try:
        event = ClientEvent(event_name)
        payload = CLIENT_PAYLOADS[event].model_validate(data)
    except ValueError as exc:
        raise InvalidFrameError(event_name, data) from exc
    return event, payload


class WebSocketConnection(Connection):
    """Coordinator-facing wrapper around one accepted WebSocket.

    Sends are serialized with a lock because background pipelines emit
    concurrently with the receive loop's acknowledgements.
    """

    def __init__(self, websocket: WebSocket, user_id: str | None = None) -> None:
        self.id = uuid.uuid4().hex
        self.user_id = user_id
        self.closed = False
        self._websocket = websocket
        self._send_lock = asyncio.Lock()

    async def emit(self, event: ServerEvent, payload: WireModel) -> None:
        if self.closed:
            logger.debug("Dropping %s for closed connection %s", event, self.id)
            return
        message = WebSocketMessage(event=str(event), data=payload.to_wire())
        async with self._send_lock:
            try:
                await self._websocket.send_json(message.model_dump(mode="json"))
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                self.closed = True
                logger.debug("Send of %s failed on connection %s: %s", event, self.id, exc)


@router.websocket("/ws/recordings")
async def recordings_ws(
    websocket: WebSocket,
    user_id: str | None = Query(None),
) -> None:
    """Bidirectional event channel for live recordings.

    Query params:
        user_id: Authenticated user id (alternatively the ``X-User-Id`` header).
    """
    await websocket.accept()
    connection = WebSocketConnection(
        websocket, user_id=user_id or websocket.headers.get("x-user-id")
    )
    coordinator = get_coordinator()
    connected_at = time.monotonic()
    logger.info("Client connected: %s (user=%s)", connection.id, connection.user_id)

    await connection.emit(ServerEvent.CONNECTED, ConnectedPayload(connection_id=connection.id))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""

            try:
                event, payload = parse_client_frame(raw)
            except InvalidFrameError as exc:
                await coordinator.reject(connection, exc.event, exc.data)
                continue

            await coordinator.handle(connection, event, payload)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Socket error on connection %s", connection.id)
    finally:
        connection.closed = True
        coordinator.on_disconnect(connection)
        logger.info(
            "Client disconnected: %s after %.1fs",
            connection.id,
            time.monotonic() - connected_at,
        )
