"""Scribe - streaming recording service with transcription and summarization."""

__version__ = "0.1.0"
