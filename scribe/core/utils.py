"""Shared utility functions for Scribe."""

import logging
import re
from datetime import UTC, datetime


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapping an LLM response."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
    return text.strip()


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the server and CLI entry points."""
    logging.basicConfig(
        level=level.upper(),
        format="[%(levelname)s] %(asctime)s %(name)s - %(message)s",
    )
