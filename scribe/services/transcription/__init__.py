"""Speech-to-text providers behind the ``BaseSTT`` interface."""

from .base import BaseSTT

__all__ = ["BaseSTT", "create_stt"]

# "local" is the settings default; "whisper" is accepted as an alias.
_LOCAL_WHISPER = {"local", "whisper"}


def create_stt(provider: str, **kwargs) -> BaseSTT:
    """Build the STT provider named by *provider*.

    Raises:
        ValueError: If *provider* is not a known backend.
    """
    if provider not in _LOCAL_WHISPER:
        raise ValueError(f"Unknown STT provider: {provider}")

    from .whisper import WhisperSTT

    return WhisperSTT(**kwargs)
