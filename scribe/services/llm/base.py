"""
Abstract base class for LLM providers.

All LLM implementations (Claude, Ollama, etc.) must implement this interface,
enabling provider-agnostic summarization in the service layer.
"""

from abc import ABC, abstractmethod

SUMMARY_SYSTEM_PROMPT = (
    "You are an assistant that summarizes recorded conversations. "
    "Answer in Markdown only, without preamble."
)

SUMMARY_PROMPT_TEMPLATE = """Analyze and summarize the following transcript.

Transcript:
{transcript}

Please provide a structured summary with:

## Overview
[2-3 sentence overview of what was discussed]

## Key Points
- [Main point 1]
- [Main point 2]
[Continue as needed]

## Action Items
- [Any tasks, decisions, or follow-ups mentioned]
[If none, write "No specific action items mentioned"]

## Important Details
- [Any significant numbers, dates, names, or specific information]
[If none, write "No critical details to highlight"]

Keep it concise but comprehensive."""


class BaseLLM(ABC):
    """Interface that every LLM provider must implement.

    Implementations translate SDK failures into the adapter error kinds
    (``ConfigurationError``, ``RateLimitError``, ``ProviderError``) and
    never retry on their own.
    """

    @abstractmethod
    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate a free-form text response.

        Args:
            prompt: The user prompt to send to the model.
            **kwargs: Provider-specific options (system, temperature, max_tokens).

        Returns:
            The model's text response.
        """

    async def summarize(self, text: str, **kwargs) -> str:
        """Produce a Markdown summary of a full transcript.

        Args:
            text: The transcript to summarize.
            **kwargs: Provider-specific options.

        Returns:
            The summary as Markdown text.
        """
        return await self.generate(
            SUMMARY_PROMPT_TEMPLATE.format(transcript=text),
            system=SUMMARY_SYSTEM_PROMPT,
            temperature=kwargs.get("temperature", 0.3),
            max_tokens=kwargs.get("max_tokens"),
        )
