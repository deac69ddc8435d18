"""
SQLAlchemy ORM models for the Scribe schema.

Tables: ``recordings``.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scribe.services.storage.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Recording(Base):
    """The durable record of one recording session."""

    __tablename__ = "recordings"
    __table_args__ = (Index("ix_recordings_user_created", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str] = mapped_column(String(255), default="Untitled Recording")
    status: Mapped[str] = mapped_column(String(20), default="RECORDING", index=True)
    audio_source: Mapped[str] = mapped_column(String(20), default="MICROPHONE")
    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Recording id={self.id} status={self.status!r}>"
