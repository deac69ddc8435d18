"""faster-whisper speech-to-text for whole in-memory recordings.

Container formats (WebM, Ogg, WAV, MP4) go straight to faster-whisper as a
file object; raw 16-bit PCM is turned into a float32 array first. One
WhisperModel is shared by every WhisperSTT instance in the process.
"""

import asyncio
import io
import logging
import math
import threading

import numpy as np
from faster_whisper import WhisperModel

from scribe.core.config import get_settings
from scribe.core.exceptions import ProviderError
from scribe.core.models import TranscriptionResult, TranscriptionSegment
from scribe.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

_model_cache: WhisperModel | None = None
_model_lock = threading.Lock()

_PCM_MIME_TYPES = ("audio/pcm", "audio/l16", "audio/x-raw")


def pcm16_to_float32(data: bytes) -> np.ndarray:
    """Convert little-endian 16-bit mono PCM to normalized float32 samples."""
    usable = len(data) - (len(data) % 2)
    samples = np.frombuffer(data[:usable], dtype="<i2")
    return samples.astype(np.float32) / 32768.0


def _is_raw_pcm(mime_type: str) -> bool:
    return mime_type.split(";")[0].strip().lower() in _PCM_MIME_TYPES


def _build_result(segments, info) -> TranscriptionResult:
    kept = [
        TranscriptionSegment(
            text=text,
            start=seg.start,
            end=seg.end,
            avg_logprob=seg.avg_logprob,
            no_speech_prob=seg.no_speech_prob,
        )
        for seg in segments
        if (text := seg.text.strip())
    ]

    confidence = 0.0
    if kept:
        mean_logprob = sum(s.avg_logprob for s in kept) / len(kept)
        confidence = max(0.0, min(1.0, math.exp(mean_logprob)))

    return TranscriptionResult(
        text=" ".join(s.text for s in kept),
        language=info.language or "unknown",
        confidence=confidence,
        duration=info.duration,
        segments=kept,
    )


class WhisperSTT(BaseSTT):
    """Local transcription through faster-whisper (CTranslate2).

    Constructor arguments override the matching ``whisper_*`` settings.
    """

    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device or self._settings.whisper_device
        self._compute_type = compute_type or self._settings.whisper_compute_type

    def _get_model(self) -> WhisperModel:
        global _model_cache  # noqa: PLW0603
        # Runs on worker threads.
        with _model_lock:
            if _model_cache is None:
                logger.info(
                    "Loading Whisper model %s on %s (%s)",
                    self._model_size,
                    self._device,
                    self._compute_type,
                )
                _model_cache = WhisperModel(
                    self._model_size,
                    device=self._device,
                    compute_type=self._compute_type,
                )
            return _model_cache

    def _transcribe_blocking(self, source, language, beam_size, vad_filter) -> TranscriptionResult:
        # faster-whisper yields segments lazily; consume them on this worker thread.
        segments, info = self._get_model().transcribe(
            source,
            language=language,
            beam_size=beam_size,
            vad_filter=vad_filter,
        )
        return _build_result(list(segments), info)

    async def transcribe(self, audio: bytes, mime_type: str, **kwargs) -> TranscriptionResult:
        """Transcribe one complete recording.

        Args:
            audio: Encoded container bytes, or raw PCM for ``audio/pcm``.
            mime_type: Content type of *audio*.
            **kwargs: Optional keys: language, beam_size, vad_filter.
        """
        source = pcm16_to_float32(audio) if _is_raw_pcm(mime_type) else io.BytesIO(audio)
        language = kwargs.get("language") or self._settings.whisper_default_language or None

        try:
            return await asyncio.to_thread(
                self._transcribe_blocking,
                source,
                language,
                kwargs.get("beam_size", 5),
                kwargs.get("vad_filter", True),
            )
        except Exception as exc:
            raise ProviderError(f"Whisper transcription failed: {exc}") from exc
