"""
Recording REST endpoints.

Thin CRUD over the durable recording record. Every route is scoped to the
calling user: another user's recording is reported as not found. Reads
and ownership checks go through ``RecordingRepository``; listing and
deletion reuse the ``PersistenceGateway`` the coordinator writes through.
"""

import logging

from fastapi import APIRouter, Depends, Query

from scribe.api.dependencies import get_current_user
from scribe.core.models import (
    DeleteRecordingResponse,
    Pagination,
    RecordingCreate,
    RecordingListResponse,
    RecordingResponse,
    RecordingStatus,
    RecordingUpdate,
)
from scribe.services.coordinator import get_coordinator
from scribe.services.storage.database import get_session
from scribe.services.storage.gateway import PersistenceGateway
from scribe.services.storage.repository import RecordingRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recordings", tags=["recordings"])


def _to_response(recording) -> RecordingResponse:
    """Convert an ORM Recording object to its API response model."""
    return RecordingResponse.model_validate(recording, from_attributes=True)


@router.post("", response_model=RecordingResponse, status_code=201)
async def create_recording(body: RecordingCreate, user_id: str = Depends(get_current_user)):
    """Create the durable record for a new recording session."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        recording = await repo.create_recording(
            user_id=user_id, title=body.title, audio_source=body.audio_source
        )
    logger.info("Created recording %s for user %s", recording.id, user_id)
    return _to_response(recording)


@router.get("", response_model=RecordingListResponse)
async def list_recordings(
    status: RecordingStatus | None = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user),
):
    """List the caller's recordings, newest first."""
    recordings, total = await PersistenceGateway().list_sessions(
        user_id=user_id, status=status, limit=limit, offset=offset
    )
    return RecordingListResponse(
        recordings=[_to_response(r) for r in recordings],
        pagination=Pagination(
            total=total, limit=limit, offset=offset, has_more=offset + limit < total
        ),
    )


@router.get("/{recording_id}", response_model=RecordingResponse)
async def get_recording(recording_id: str, user_id: str = Depends(get_current_user)):
    async with get_session() as session:
        repo = RecordingRepository(session)
        recording = await repo.get_recording(recording_id, user_id=user_id)
    return _to_response(recording)


@router.put("/{recording_id}", response_model=RecordingResponse)
async def update_recording(
    recording_id: str,
    body: RecordingUpdate,
    user_id: str = Depends(get_current_user),
):
    """Apply the provided fields; status changes must follow the lifecycle."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        await repo.get_recording(recording_id, user_id=user_id)
        recording = await repo.update_recording(recording_id, **body.model_dump(exclude_none=True))
    return _to_response(recording)


@router.delete("/{recording_id}", response_model=DeleteRecordingResponse)
async def delete_recording(recording_id: str, user_id: str = Depends(get_current_user)):
    """Delete a recording and stop tracking it if it is still live."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        await repo.get_recording(recording_id, user_id=user_id)
    await PersistenceGateway().delete_session(recording_id)

    if get_coordinator().registry.remove(recording_id):
        logger.info("Discarded live audio for deleted recording %s", recording_id)
    return DeleteRecordingResponse()
