"""
Async client for the Scribe streaming API.

Creates recordings over REST (``httpx.AsyncClient``) and streams audio over
the recording WebSocket (``websockets``). Opening the WebSocket is retried
with exponential backoff; a connection lost mid-recording is reported as
an error rather than silently resumed, because the server discards the
audio buffered for a dropped connection.

Usage::

    async with RecordingStreamClient("http://localhost:5000", user_id="u1") as client:
        result = await client.stream_file("meeting.webm", title="Weekly sync")
        print(result["summary"])
"""

import asyncio
import base64
import json
import logging
from pathlib import Path
from urllib.parse import urlencode

import httpx
import websockets
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from websockets.exceptions import ConnectionClosed, WebSocketException

from scribe.core.models import ClientEvent, ServerEvent, WebSocketMessage

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """User-friendly client error with a category.

    Categories: "connection", "http", "recording", "timeout", "protocol".
    """

    def __init__(self, message: str, category: str = "unknown") -> None:
        self.message = message
        self.category = category
        super().__init__(message)


class RecordingStreamClient:
    """Streams one or more recordings to a Scribe server.

    Args:
        base_url: HTTP base URL of the server, e.g. ``http://localhost:5000``.
        user_id: Identity forwarded as ``X-User-Id`` / ``user_id``.
        api_key: Optional Bearer key for ``/api/v1`` routes.
        connect_attempts: WebSocket connection attempts before giving up.
        chunk_size: Bytes per ``audio-chunk`` when streaming a file.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        user_id: str = "local-user",
        api_key: str | None = None,
        connect_attempts: int = 5,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_id = user_id
        self._api_key = api_key
        self._connect_attempts = connect_attempts
        self._chunk_size = chunk_size
        self._ws = None
        self.connection_id: str | None = None

    @property
    def ws_url(self) -> str:
        scheme, _, rest = self._base_url.partition("://")
        ws_scheme = "wss" if scheme == "https" else "ws"
        return f"{ws_scheme}://{rest}/ws/recordings?{urlencode({'user_id': self._user_id})}"

    async def __aenter__(self) -> "RecordingStreamClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the WebSocket, retrying with exponential backoff."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._connect_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
                retry=retry_if_exception_type((OSError, TimeoutError, WebSocketException)),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info(
                            "Reconnecting to %s (attempt %d)",
                            self.ws_url,
                            attempt.retry_state.attempt_number,
                        )
                    self._ws = await websockets.connect(self.ws_url)
        except (OSError, TimeoutError, WebSocketException) as exc:
            raise ClientError(
                f"Cannot connect to {self.ws_url}: {exc}", category="connection"
            ) from exc

        hello = await self.receive()
        if hello.event != ServerEvent.CONNECTED:
            raise ClientError(f"Unexpected greeting: {hello.event}", category="protocol")
        self.connection_id = hello.data.get("connectionId")
        logger.info("Connected to %s as %s", self.ws_url, self.connection_id)

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def _send(self, event: ClientEvent, data: dict) -> None:
        if self._ws is None:
            raise ClientError("Not connected", category="connection")
        try:
            await self._ws.send(json.dumps({"event": event.value, "data": data}))
        except ConnectionClosed as exc:
            self._ws = None
            raise ClientError(
                "Connection lost; buffered audio was discarded by the server",
                category="connection",
            ) from exc

    async def receive(self) -> WebSocketMessage:
        """Return the next server event."""
        if self._ws is None:
            raise ClientError("Not connected", category="connection")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            self._ws = None
            raise ClientError("Connection closed by server", category="connection") from exc
        return WebSocketMessage.model_validate_json(raw)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def send_chunk(self, recording_id: str, chunk: bytes, is_final: bool = False) -> None:
        await self._send(
            ClientEvent.AUDIO_CHUNK,
            {
                "recordingId": recording_id,
                "chunk": base64.b64encode(chunk).decode("ascii"),
                "isFinal": is_final,
            },
        )

    async def complete(self, recording_id: str) -> None:
        await self._send(ClientEvent.COMPLETE_RECORDING, {"recordingId": recording_id})

    async def pause(self, recording_id: str) -> None:
        await self._send(ClientEvent.PAUSE_RECORDING, {"recordingId": recording_id})

    async def resume(self, recording_id: str) -> None:
        await self._send(ClientEvent.RESUME_RECORDING, {"recordingId": recording_id})

    async def wait_for_result(self, recording_id: str, timeout: float = 600.0) -> dict:
        """Consume events until the recording completes or fails.

        Returns:
            The ``recording-completed`` payload.

        Raises:
            ClientError: On ``recording-error`` or when *timeout* elapses.
        """

        async def _wait() -> dict:
            while True:
                message = await self.receive()
                if message.data.get("recordingId") != recording_id:
                    continue
                if message.event == ServerEvent.RECORDING_COMPLETED:
                    return message.data
                if message.event == ServerEvent.RECORDING_ERROR:
                    raise ClientError(message.data.get("error", "Recording failed"), "recording")
                logger.debug("Event %s for %s", message.event, recording_id)

        try:
            return await asyncio.wait_for(_wait(), timeout=timeout)
        except TimeoutError:
            raise ClientError(
                f"No result for recording {recording_id} after {timeout}s", category="timeout"
            ) from None

    # ------------------------------------------------------------------
    # REST + streaming workflow
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"X-User-Id": self._user_id}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def create_recording(self, title: str) -> dict:
        """Create the durable record and return its JSON representation."""
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, headers=self._headers(), timeout=30.0
            ) as http:
                resp = await http.post("/api/v1/recordings", json={"title": title})
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise ClientError(
                f"Server rejected recording: {exc.response.status_code}", category="http"
            ) from exc
        except httpx.HTTPError as exc:
            raise ClientError(f"Network error: {exc}", category="connection") from exc

    async def stream_file(self, path: str | Path, title: str | None = None, timeout: float = 600.0) -> dict:
        """Create a recording, upload *path* in chunks, and wait for the summary."""
        path = Path(path)
        data = path.read_bytes()
        if not data:
            raise ClientError(f"{path} is empty", category="recording")

        recording = await self.create_recording(title or path.stem)
        recording_id = recording["id"]
        if self._ws is None:
            await self.connect()

        offsets = range(0, len(data), self._chunk_size)
        for index, offset in enumerate(offsets):
            chunk = data[offset : offset + self._chunk_size]
            await self.send_chunk(recording_id, chunk, is_final=index == len(offsets) - 1)
        logger.info("Uploaded %d chunk(s) for recording %s", len(offsets), recording_id)

        await self.complete(recording_id)
        return await self.wait_for_result(recording_id, timeout=timeout)
