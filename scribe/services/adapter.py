"""Boundary around the external transcription and summarization calls.

``SpeechAdapter`` is the only component the coordinator uses to reach the
AI providers. It validates inputs, applies an optional per-call timeout and
guarantees that every failure surfaces as one of the adapter error kinds:
``EmptyInputError``, ``ConfigurationError``, ``RateLimitError`` or
``ProviderError``. It never retries.
"""

import asyncio
import logging
from collections.abc import Awaitable

from scribe.core.config import get_settings
from scribe.core.exceptions import AdapterError, EmptyInputError, ProviderError
from scribe.core.utils import strip_code_fences
from scribe.services.llm import BaseLLM, create_llm
from scribe.services.transcription import BaseSTT, create_stt

logger = logging.getLogger(__name__)


class SpeechAdapter:
    """Fail-fast wrapper over an STT provider and an LLM provider.

    Args:
        stt: Speech-to-text provider.
        llm: Language model used for summaries.
        timeout: Seconds allowed per call; ``0`` or ``None`` disables it.
    """

    def __init__(self, stt: BaseSTT, llm: BaseLLM, timeout: float | None = None) -> None:
        self._stt = stt
        self._llm = llm
        self._timeout = timeout or None

    @classmethod
    def from_settings(cls) -> "SpeechAdapter":
        """Build the adapter from the configured providers."""
        settings = get_settings()
        return cls(
            stt=create_stt(provider=settings.whisper_provider),
            llm=create_llm(provider=settings.llm_provider),
            timeout=settings.ai_call_timeout,
        )

    async def _call(self, operation: str, call: Awaitable):
        try:
            if self._timeout:
                return await asyncio.wait_for(call, timeout=self._timeout)
            return await call
        except AdapterError:
            raise
        except TimeoutError as exc:
            raise ProviderError(f"{operation} timed out after {self._timeout}s") from exc
        except Exception as exc:
            logger.exception("Unexpected %s failure", operation)
            raise ProviderError(f"{operation} failed: {exc}") from exc

    async def transcribe(self, audio: bytes, mime_type: str = "audio/webm") -> str:
        """Return the transcript text of *audio*.

        Raises:
            EmptyInputError: If *audio* is zero-length or nothing was recognized.
            ConfigurationError, RateLimitError, ProviderError: On provider failure.
        """
        if not audio:
            raise EmptyInputError("Audio is empty - no data to transcribe")

        logger.info("Transcribing %d bytes of %s", len(audio), mime_type)
        result = await self._call("transcription", self._stt.transcribe(audio, mime_type))
        text = result.text.strip()
        if not text:
            raise EmptyInputError("No speech was recognized in the audio")

        logger.info(
            "Transcription received: %d characters (language=%s, confidence=%.2f)",
            len(text),
            result.language,
            result.confidence,
        )
        return text

    async def summarize(self, text: str) -> str:
        """Return a Markdown summary of *text*.

        Raises:
            EmptyInputError: If *text* is blank or the model returned nothing.
            ConfigurationError, RateLimitError, ProviderError: On provider failure.
        """
        if not text or not text.strip():
            raise EmptyInputError("Transcript is empty - nothing to summarize")

        logger.info("Generating summary for %d characters of transcript", len(text))
        raw = await self._call("summarization", self._llm.summarize(text))
        summary = strip_code_fences(raw or "")
        if not summary:
            raise ProviderError("Summarization returned an empty response")
        return summary
