"""Unit tests for RecordingStreamClient (fake WebSocket, mocked httpx)."""

import asyncio
import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.exceptions import ConnectionClosed

from scribe.client import ClientError, RecordingStreamClient


class FakeWebSocket:
    """Simulates a websockets connection for testing.

    Replays queued server frames on ``recv()`` (a ``connected`` greeting
    first) and records every frame the client sends.
    """

    def __init__(self, server_messages: list[dict] | None = None):
        self._incoming = [{"event": "connected", "data": {"connectionId": "c-1"}}]
        self._incoming.extend(server_messages or [])
        self.sent: list[dict] = []
        self.closed = False

    async def recv(self):
        if not self._incoming:
            raise ConnectionClosed(None, None)
        await asyncio.sleep(0)
        return json.dumps(self._incoming.pop(0))

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        self.closed = True


def _mock_http(recording_id="rec-1", status_code=201):
    """Patch httpx.AsyncClient with a context manager returning canned JSON."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = {"id": recording_id, "title": "t", "status": "RECORDING"}
    http = MagicMock()
    http.post = AsyncMock(return_value=resp)
    client_cls = MagicMock()
    client_cls.return_value.__aenter__.return_value = http
    return client_cls, http


class TestConnect:
    async def test_reads_greeting(self):
        fake_ws = FakeWebSocket()
        with patch("websockets.connect", new=AsyncMock(return_value=fake_ws)) as connect:
            async with RecordingStreamClient("http://srv:5000", user_id="u 1") as client:
                assert client.connection_id == "c-1"

        connect.assert_awaited_once_with("ws://srv:5000/ws/recordings?user_id=u+1")
        assert fake_ws.closed

    def test_secure_url(self):
        client = RecordingStreamClient("https://example.com/", user_id="u1")
        assert client.ws_url == "wss://example.com/ws/recordings?user_id=u1"

    async def test_retries_until_connected(self):
        fake_ws = FakeWebSocket()
        connect = AsyncMock(side_effect=[OSError("refused"), fake_ws])
        with patch("websockets.connect", new=connect):
            client = RecordingStreamClient(connect_attempts=3)
            await client.connect()

        assert connect.await_count == 2
        assert client.connection_id == "c-1"

    async def test_gives_up_after_attempts(self):
        connect = AsyncMock(side_effect=OSError("refused"))
        with patch("websockets.connect", new=connect):
            client = RecordingStreamClient(connect_attempts=2)
            with pytest.raises(ClientError) as exc_info:
                await client.connect()

        assert exc_info.value.category == "connection"
        assert connect.await_count == 2

    async def test_unexpected_greeting(self):
        fake_ws = FakeWebSocket()
        fake_ws._incoming = [{"event": "recording-error", "data": {}}]
        with patch("websockets.connect", new=AsyncMock(return_value=fake_ws)):
            with pytest.raises(ClientError) as exc_info:
                await RecordingStreamClient().connect()

        assert exc_info.value.category == "protocol"


class TestEvents:
    async def test_frames_match_wire_format(self):
        fake_ws = FakeWebSocket()
        with patch("websockets.connect", new=AsyncMock(return_value=fake_ws)):
            async with RecordingStreamClient() as client:
                await client.send_chunk("abc", b"\x00\x01", is_final=True)
                await client.pause("abc")
                await client.resume("abc")
                await client.complete("abc")

        assert fake_ws.sent == [
            {
                "event": "audio-chunk",
                "data": {
                    "recordingId": "abc",
                    "chunk": base64.b64encode(b"\x00\x01").decode(),
                    "isFinal": True,
                },
            },
            {"event": "pause-recording", "data": {"recordingId": "abc"}},
            {"event": "resume-recording", "data": {"recordingId": "abc"}},
            {"event": "complete-recording", "data": {"recordingId": "abc"}},
        ]

    async def test_send_without_connection(self):
        with pytest.raises(ClientError):
            await RecordingStreamClient().complete("abc")

    async def test_lost_connection_is_reported(self):
        fake_ws = FakeWebSocket()
        with patch("websockets.connect", new=AsyncMock(return_value=fake_ws)):
            client = RecordingStreamClient()
            await client.connect()
        fake_ws.closed = True

        with pytest.raises(ClientError, match="discarded"):
            await client.send_chunk("abc", b"x")


class TestWaitForResult:
    async def test_returns_completed_payload(self):
        fake_ws = FakeWebSocket(
            [
                {"event": "recording-status", "data": {"recordingId": "abc", "status": "PROCESSING"}},
                {"event": "recording-completed", "data": {"recordingId": "other", "summary": "no"}},
                {
                    "event": "recording-completed",
                    "data": {"recordingId": "abc", "summary": "s", "transcript": "t", "duration": 4},
                },
            ]
        )
        with patch("websockets.connect", new=AsyncMock(return_value=fake_ws)):
            async with RecordingStreamClient() as client:
                result = await client.wait_for_result("abc")

        assert result["summary"] == "s"
        assert result["duration"] == 4

    async def test_error_event_raises(self):
        fake_ws = FakeWebSocket(
            [{"event": "recording-error", "data": {"recordingId": "abc", "error": "No audio data received"}}]
        )
        with patch("websockets.connect", new=AsyncMock(return_value=fake_ws)):
            async with RecordingStreamClient() as client:
                with pytest.raises(ClientError, match="No audio data received") as exc_info:
                    await client.wait_for_result("abc")

        assert exc_info.value.category == "recording"

    async def test_server_closing_raises(self):
        fake_ws = FakeWebSocket()
        with patch("websockets.connect", new=AsyncMock(return_value=fake_ws)):
            async with RecordingStreamClient() as client:
                with pytest.raises(ClientError) as exc_info:
                    await client.wait_for_result("abc")

        assert exc_info.value.category == "connection"


class TestStreamFile:
    async def test_uploads_in_chunks(self, tmp_path):
        audio = tmp_path / "meeting.webm"
        audio.write_bytes(b"x" * 10)
        fake_ws = FakeWebSocket(
            [
                {
                    "event": "recording-completed",
                    "data": {"recordingId": "rec-1", "summary": "s", "transcript": "t", "duration": 1},
                }
            ]
        )
        client_cls, http = _mock_http()

        with (
            patch("websockets.connect", new=AsyncMock(return_value=fake_ws)),
            patch("scribe.client.httpx.AsyncClient", client_cls),
        ):
            async with RecordingStreamClient(user_id="u1", api_key="k", chunk_size=4) as client:
                result = await client.stream_file(audio)

        assert result["summary"] == "s"
        http.post.assert_awaited_once_with("/api/v1/recordings", json={"title": "meeting"})
        headers = client_cls.call_args.kwargs["headers"]
        assert headers == {"X-User-Id": "u1", "Authorization": "Bearer k"}

        chunk_frames = [f for f in fake_ws.sent if f["event"] == "audio-chunk"]
        assert [base64.b64decode(f["data"]["chunk"]) for f in chunk_frames] == [
            b"xxxx",
            b"xxxx",
            b"xx",
        ]
        assert [f["data"]["isFinal"] for f in chunk_frames] == [False, False, True]
        assert fake_ws.sent[-1] == {"event": "complete-recording", "data": {"recordingId": "rec-1"}}

    async def test_empty_file_rejected(self, tmp_path):
        audio = tmp_path / "empty.webm"
        audio.write_bytes(b"")

        with pytest.raises(ClientError):
            await RecordingStreamClient().stream_file(audio)
