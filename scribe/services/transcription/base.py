"""
Abstract base class for Speech-to-Text providers.

All STT implementations must implement this interface, enabling
provider-agnostic transcription in the service layer.
"""

from abc import ABC, abstractmethod

from scribe.core.models import TranscriptionResult


class BaseSTT(ABC):
    """Interface that every STT provider must implement."""

    @abstractmethod
    async def transcribe(self, audio: bytes, mime_type: str, **kwargs) -> TranscriptionResult:
        """Transcribe one complete in-memory audio object.

        Args:
            audio: Encoded audio (e.g. a WebM/Opus container) or raw PCM.
            mime_type: Content type of *audio*, e.g. ``audio/webm``.
            **kwargs: Provider-specific options (language, beam_size, etc.).

        Returns:
            The transcription with text, language and confidence.
        """
