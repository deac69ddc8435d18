"""
CRUD repository for the ``recordings`` table.

``RecordingRepository`` receives an ``AsyncSession`` and provides all
data-access methods.  It calls ``flush()`` rather than ``commit()`` so
that transaction boundaries are controlled by the caller (typically
:func:`get_session`).
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.core.exceptions import InvalidStatusTransitionError, RecordingNotFoundError
from scribe.core.models import AudioSource, RecordingStatus
from scribe.services.storage.models_db import Recording

logger = logging.getLogger(__name__)

# Columns that may be changed after creation; id, user_id and created_at are immutable.
_UPDATABLE_FIELDS = frozenset({"title", "status", "transcript", "summary", "duration"})


class RecordingRepository:
    """Data-access layer for recording rows.

    All methods use ``flush()`` instead of ``commit()`` so transaction
    boundaries are controlled by the caller.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_recording(
        self,
        user_id: str,
        title: str,
        audio_source: AudioSource = AudioSource.MICROPHONE,
    ) -> Recording:
        """Create and return a new recording with status *RECORDING*."""
        recording = Recording(
            user_id=user_id,
            title=title,
            status=RecordingStatus.RECORDING.value,
            audio_source=AudioSource(audio_source).value,
        )
        self._session.add(recording)
        await self._session.flush()
        return recording

    async def find_recording(self, recording_id: str) -> Recording | None:
        """Return a recording by ID, or None."""
        return await self._session.get(Recording, recording_id)

    async def get_recording(self, recording_id: str, user_id: str | None = None) -> Recording:
        """Return a recording by ID or raise :class:`RecordingNotFoundError`.

        When *user_id* is given, a recording owned by someone else is
        reported as not found.
        """
        recording = await self.find_recording(recording_id)
        if recording is None or (user_id is not None and recording.user_id != user_id):
            raise RecordingNotFoundError(recording_id)
        return recording

    async def list_recordings(
        self,
        user_id: str,
        status: RecordingStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Recording], int]:
        """Return one page of a user's recordings (newest first) and the total count."""
        conditions = [Recording.user_id == user_id]
        if status is not None:
            conditions.append(Recording.status == status.value)

        stmt = (
            select(Recording)
            .where(*conditions)
            .order_by(Recording.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        count_stmt = select(func.count()).select_from(Recording).where(*conditions)

        result = await self._session.execute(stmt)
        total = await self._session.scalar(count_stmt)
        return list(result.scalars().all()), total or 0

    async def update_recording(self, recording_id: str, **fields) -> Recording:
        """Apply a partial update, enforcing the status lifecycle.

        Raises:
            RecordingNotFoundError: If the recording does not exist.
            InvalidStatusTransitionError: If ``status`` would leave a terminal
                state or skip a lifecycle step.
            ValueError: If a field is not updatable.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update recording fields: {sorted(unknown)}")

        recording = await self.get_recording(recording_id)

        if "status" in fields and fields["status"] is not None:
            current = RecordingStatus(recording.status)
            requested = RecordingStatus(fields["status"])
            if not current.can_transition_to(requested):
                raise InvalidStatusTransitionError(current.value, requested.value)
            fields["status"] = requested.value

        for name, value in fields.items():
            setattr(recording, name, value)
        await self._session.flush()
        return recording

    async def delete_recording(self, recording_id: str) -> None:
        """Delete a recording."""
        recording = await self.get_recording(recording_id)
        await self._session.delete(recording)
        await self._session.flush()
