"""
Scribe exception hierarchy.

All application-specific exceptions inherit from ScribeError, enabling
centralized error handling in the API middleware layer and in the
streaming coordinator, which converts them into ``recording-error`` events.
"""

from datetime import UTC, datetime


class ScribeError(Exception):
    """Base exception for all Scribe errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "SCRIBE_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class AuthenticationRequiredError(ScribeError):
    """Raised when a request carries no user identity."""

    def __init__(self) -> None:
        super().__init__(
            detail="Unauthorized",
            code="AUTH_REQUIRED",
            status_code=401,
        )


class RecordingNotFoundError(ScribeError):
    """Raised when a recording ID does not exist (or belongs to another user)."""

    def __init__(self, recording_id: str) -> None:
        super().__init__(
            detail=f"Recording not found: {recording_id}",
            code="RECORDING_NOT_FOUND",
            status_code=404,
        )


class InvalidStatusTransitionError(ScribeError):
    """Raised when a status change would violate the recording lifecycle."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            detail=f"Cannot move recording from {current} to {requested}",
            code="INVALID_STATUS_TRANSITION",
            status_code=409,
        )


# ---------------------------------------------------------------------------
# Transcription / summarization adapter errors
# ---------------------------------------------------------------------------


class AdapterError(ScribeError):
    """Base class for failures of the transcription/summarization adapter."""


class EmptyInputError(AdapterError):
    """Raised when there is no audio to transcribe or no text to summarize."""

    def __init__(self, detail: str = "Input is empty") -> None:
        super().__init__(detail=detail, code="EMPTY_INPUT", status_code=400)


class ConfigurationError(AdapterError):
    """Raised when provider credentials or settings are missing or invalid."""

    def __init__(self, detail: str = "AI provider is not configured") -> None:
        super().__init__(detail=detail, code="CONFIGURATION_ERROR", status_code=500)


class RateLimitError(AdapterError):
    """Raised when the AI provider rejects a call for rate or quota reasons."""

    def __init__(self, detail: str = "AI provider rate limit exceeded") -> None:
        super().__init__(detail=detail, code="RATE_LIMITED", status_code=429)


class ProviderError(AdapterError):
    """Raised for any other AI provider failure (network, timeout, bad response)."""

    def __init__(self, detail: str = "AI provider call failed") -> None:
        super().__init__(detail=detail, code="PROVIDER_ERROR", status_code=502)
