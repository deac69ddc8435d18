"""Unit tests for WebSocket frame parsing and wire payload serialization."""

import base64
import json

import pytest

from scribe.api.websocket import InvalidFrameError, parse_client_frame
from scribe.core.models import (
    AudioChunkPayload,
    ChunkAckPayload,
    ClientEvent,
    RecordingCompletedPayload,
    RecordingRef,
    RecordingStatus,
    RecordingStatusPayload,
    TranscriptionUpdatePayload,
)


def _frame(event, data) -> str:
    return json.dumps({"event": event, "data": data})


class TestParseClientFrame:
    def test_audio_chunk(self):
        raw = _frame(
            "audio-chunk",
            {
                "recordingId": "abc",
                "chunk": base64.b64encode(b"\x1a\x45\xdf\xa3").decode(),
                "isFinal": True,
                "timestamp": "2024-01-01T00:00:00.000Z",
            },
        )

        event, payload = parse_client_frame(raw)

        assert event is ClientEvent.AUDIO_CHUNK
        assert isinstance(payload, AudioChunkPayload)
        assert payload.recording_id == "abc"
        assert payload.chunk == b"\x1a\x45\xdf\xa3"
        assert payload.is_final is True

    def test_is_final_defaults_false(self):
        raw = _frame("audio-chunk", {"recordingId": "abc", "chunk": "AAAA"})

        _, payload = parse_client_frame(raw)

        assert payload.is_final is False

    @pytest.mark.parametrize(
        "event", ["complete-recording", "pause-recording", "resume-recording"]
    )
    def test_reference_events(self, event):
        parsed_event, payload = parse_client_frame(_frame(event, {"recordingId": "abc"}))

        assert parsed_event == event
        assert isinstance(payload, RecordingRef)
        assert payload.recording_id == "abc"

    def test_accepts_binary_frames(self):
        raw = _frame("pause-recording", {"recordingId": "abc"}).encode()

        event, _ = parse_client_frame(raw)

        assert event is ClientEvent.PAUSE_RECORDING

    @pytest.mark.parametrize(
        "raw,event",
        [
            ("not json", None),
            ("[1, 2]", None),
            (_frame("launch-rockets", {}), "launch-rockets"),
            (_frame("audio-chunk", {"recordingId": "abc"}), "audio-chunk"),
            (_frame("audio-chunk", {"recordingId": "abc", "chunk": "abc"}), "audio-chunk"),
            (_frame("audio-chunk", {"recordingId": "", "chunk": "AAAA"}), "audio-chunk"),
            (_frame("complete-recording", None), "complete-recording"),
            (_frame("complete-recording", {"recordingId": 7}), "complete-recording"),
        ],
    )
    def test_invalid_frames(self, raw, event):
        with pytest.raises(InvalidFrameError) as exc_info:
            parse_client_frame(raw)
        assert exc_info.value.event == event


class TestServerPayloads:
    def test_camel_case_keys(self):
        payload = TranscriptionUpdatePayload(
            recording_id="abc", text="hi", timestamp="2024-01-01T00:00:00.000Z", is_final=True
        )

        assert payload.to_wire() == {
            "recordingId": "abc",
            "text": "hi",
            "timestamp": "2024-01-01T00:00:00.000Z",
            "isFinal": True,
        }

    def test_status_serializes_as_string(self):
        payload = RecordingStatusPayload(recording_id="abc", status=RecordingStatus.PAUSED)

        assert payload.to_wire() == {"recordingId": "abc", "status": "PAUSED"}

    def test_ack_and_completed(self):
        assert ChunkAckPayload(recording_id="abc", success=True).to_wire() == {
            "recordingId": "abc",
            "success": True,
        }
        completed = RecordingCompletedPayload(
            recording_id="abc", summary="s", transcript="t", duration=3
        )
        assert completed.to_wire()["duration"] == 3
