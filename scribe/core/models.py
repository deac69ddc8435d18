"""
Pydantic v2 request / response models used across the API layer.

REST models describe the durable recording record. Wire models describe the
event frames exchanged over the recording WebSocket; their JSON field names
are camelCase (``recordingId``, ``isFinal``) and form the compatibility
surface with browser clients.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import Base64Bytes, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime
    database: str = "ok"
    active_sessions: int = 0
    uptime_seconds: float = 0.0


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class RecordingStatus(StrEnum):
    """Possible states for a recording session."""

    RECORDING = "RECORDING"
    PAUSED = "PAUSED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (RecordingStatus.COMPLETED, RecordingStatus.FAILED)

    def can_transition_to(self, new: "RecordingStatus") -> bool:
        """Return True if moving from this status to *new* keeps the lifecycle monotonic."""
        if self.is_terminal:
            return False
        if new == self or new == RecordingStatus.FAILED:
            return True
        return new in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[RecordingStatus, set[RecordingStatus]] = {
    RecordingStatus.RECORDING: {RecordingStatus.PAUSED, RecordingStatus.PROCESSING},
    RecordingStatus.PAUSED: {RecordingStatus.RECORDING, RecordingStatus.PROCESSING},
    RecordingStatus.PROCESSING: {RecordingStatus.COMPLETED},
}


class AudioSource(StrEnum):
    """Where the captured audio comes from."""

    MICROPHONE = "MICROPHONE"
    TAB_SHARE = "TAB_SHARE"
    SCREEN_SHARE = "SCREEN_SHARE"


class RecordingCreate(BaseModel):
    """POST /recordings request body."""

    title: str = Field(min_length=1, max_length=255)
    audio_source: AudioSource = AudioSource.MICROPHONE


class RecordingUpdate(BaseModel):
    """PUT /recordings/{id} request body; only provided fields are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    status: RecordingStatus | None = None
    duration: int | None = Field(default=None, ge=0)
    transcript: str | None = None
    summary: str | None = None


class RecordingResponse(BaseModel):
    """Standard recording representation returned by the API."""

    id: str
    user_id: str
    title: str
    status: RecordingStatus
    audio_source: AudioSource = AudioSource.MICROPHONE
    transcript: str | None = None
    summary: str | None = None
    duration: int | None = None
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class RecordingListResponse(BaseModel):
    """GET /recordings response envelope."""

    recordings: list[RecordingResponse] = Field(default_factory=list)
    pagination: Pagination


class DeleteRecordingResponse(BaseModel):
    success: bool = True
    message: str = "Recording deleted successfully"


# ---------------------------------------------------------------------------
# WebSocket wire protocol
# ---------------------------------------------------------------------------


class ClientEvent(StrEnum):
    """Events a client may send over the recording WebSocket."""

    AUDIO_CHUNK = "audio-chunk"
    COMPLETE_RECORDING = "complete-recording"
    PAUSE_RECORDING = "pause-recording"
    RESUME_RECORDING = "resume-recording"


class ServerEvent(StrEnum):
    """Events the server sends over the recording WebSocket."""

    CONNECTED = "connected"
    AUDIO_CHUNK_RECEIVED = "audio-chunk-received"
    TRANSCRIPTION_UPDATE = "transcription-update"
    RECORDING_STATUS = "recording-status"
    RECORDING_COMPLETED = "recording-completed"
    RECORDING_ERROR = "recording-error"


class WireModel(BaseModel):
    """Base for event payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AudioChunkPayload(WireModel):
    """``audio-chunk``: one base64-encoded fragment of captured audio."""

    recording_id: str = Field(min_length=1)
    chunk: Base64Bytes
    is_final: bool = False
    timestamp: str | None = None


class RecordingRef(WireModel):
    """Payload of ``complete-recording``, ``pause-recording`` and ``resume-recording``."""

    recording_id: str = Field(min_length=1)


class ConnectedPayload(WireModel):
    connection_id: str


class ChunkAckPayload(WireModel):
    recording_id: str
    success: bool


class TranscriptionUpdatePayload(WireModel):
    recording_id: str
    text: str
    timestamp: str
    is_final: bool


class RecordingStatusPayload(WireModel):
    recording_id: str
    status: RecordingStatus


class RecordingCompletedPayload(WireModel):
    recording_id: str
    summary: str
    transcript: str
    duration: int


class RecordingErrorPayload(WireModel):
    recording_id: str
    error: str


CLIENT_PAYLOADS: dict[ClientEvent, type[WireModel]] = {
    ClientEvent.AUDIO_CHUNK: AudioChunkPayload,
    ClientEvent.COMPLETE_RECORDING: RecordingRef,
    ClientEvent.PAUSE_RECORDING: RecordingRef,
    ClientEvent.RESUME_RECORDING: RecordingRef,
}


class WebSocketMessage(BaseModel):
    """JSON frame exchanged over the WebSocket in either direction."""

    event: str
    data: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class TranscriptionSegment(BaseModel):
    """A single transcription segment with timestamps."""

    text: str
    start: float
    end: float
    avg_logprob: float = 0.0
    no_speech_prob: float = 0.0


class TranscriptionResult(BaseModel):
    """Complete transcription result for one recording's audio."""

    text: str
    language: str = "unknown"
    confidence: float = 0.0
    duration: float = 0.0
    segments: list[TranscriptionSegment] = Field(default_factory=list)
