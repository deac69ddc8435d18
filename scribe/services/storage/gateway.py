"""
Persistence gateway used by the streaming coordinator.

The coordinator never touches the ORM directly: it reads and upserts the
durable recording record through this narrow interface, where every call
runs in its own short transaction via :func:`get_session`.
"""

import logging

from scribe.core.models import AudioSource, RecordingStatus
from scribe.services.storage.database import get_session
from scribe.services.storage.models_db import Recording
from scribe.services.storage.repository import RecordingRepository

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Key-value style access to recording records, keyed by recording id."""

    async def create_session(
        self,
        user_id: str,
        title: str,
        audio_source: AudioSource = AudioSource.MICROPHONE,
    ) -> Recording:
        async with get_session() as session:
            repo = RecordingRepository(session)
            return await repo.create_recording(
                user_id=user_id, title=title, audio_source=audio_source
            )

    async def get_session(self, recording_id: str) -> Recording | None:
        """Return the recording, or None when it does not exist."""
        async with get_session() as session:
            repo = RecordingRepository(session)
            return await repo.find_recording(recording_id)

    async def update_session(self, recording_id: str, **fields) -> Recording:
        """Apply a partial update.

        Raises:
            RecordingNotFoundError: If the recording does not exist.
            InvalidStatusTransitionError: If the status change is not allowed.
        """
        status = fields.get("status")
        async with get_session() as session:
            repo = RecordingRepository(session)
            recording = await repo.update_recording(recording_id, **fields)
        logger.debug(
            "Updated recording %s (fields=%s, status=%s)",
            recording_id,
            sorted(fields),
            RecordingStatus(status).value if status else recording.status,
        )
        return recording

    async def list_sessions(
        self,
        user_id: str,
        status: RecordingStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Recording], int]:
        """Return one page of a user's recordings and the total count."""
        async with get_session() as session:
            repo = RecordingRepository(session)
            return await repo.list_recordings(
                user_id=user_id, status=status, limit=limit, offset=offset
            )

    async def delete_session(self, recording_id: str) -> None:
        """Delete the durable record.

        Raises:
            RecordingNotFoundError: If the recording does not exist.
        """
        async with get_session() as session:
            repo = RecordingRepository(session)
            await repo.delete_recording(recording_id)
        logger.debug("Deleted recording %s", recording_id)
