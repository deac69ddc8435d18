"""
Runtime settings for the Scribe service.

Every field can be set through an environment variable of the same name
(case-insensitive) or a ``.env`` file in the working directory.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration.

    The ``whisper_*`` fields configure the local faster-whisper model and the
    streaming-session fields (``sweep_interval``, ``session_max_age``,
    ``ai_call_timeout``, ``shutdown_grace_period``) are all in seconds.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- LLM Provider ---
    # "claude" (Anthropic API) or "ollama" (local server)
    llm_provider: str = "ollama"

    # Claude (Anthropic API) settings
    claude_api_key: str = ""  # Required when llm_provider="claude"
    claude_model: str = "claude-sonnet-4-20250514"

    # Ollama (local LLM) settings
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"

    # --- Whisper STT ---
    whisper_provider: str = "local"
    whisper_model: str = "base"  # Model size: tiny, base, small, medium, large-v3
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_default_language: str = ""  # Empty = auto-detect; ISO 639-1 code e.g. "en"

    # --- Streaming sessions ---
    default_mime_type: str = "audio/webm"  # MediaRecorder default container
    sweep_interval: float = 60.0
    session_max_age: float = 3600.0
    ai_call_timeout: float = 300.0  # 0 disables the per-call timeout
    shutdown_grace_period: float = 30.0

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 5000
    log_level: str = "INFO"  # Python logging level
    debug: bool = False  # Forward raw error details to clients (development only)
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    api_key: str = ""  # Shared Bearer key for /api/v1 routes; empty disables the check

    # --- Storage ---
    database_url: str = "sqlite+aiosqlite:///data/scribe.db"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings; call ``get_settings.cache_clear()`` to reload."""
    return Settings()
