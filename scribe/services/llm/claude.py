"""Summaries through the Anthropic Messages API (``AsyncAnthropic``).

SDK failures map onto the adapter error kinds and are never retried here.
"""

import asyncio
import logging

from anthropic import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncAnthropic,
    AuthenticationError,
    PermissionDeniedError,
)
from anthropic import RateLimitError as AnthropicRateLimitError

from scribe.core.config import get_settings
from scribe.core.exceptions import ConfigurationError, ProviderError, RateLimitError
from scribe.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class ClaudeLLM(BaseLLM):
    """Claude provider. Without an API key every call raises ConfigurationError."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        max_concurrent: int = 5,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.claude_api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._client = AsyncAnthropic(api_key=self._api_key) if self._api_key else None

    def _request_params(self, prompt: str, **kwargs) -> dict:
        temperature = kwargs.get("temperature")
        params: dict = {
            "model": self._model,
            "max_tokens": kwargs.get("max_tokens") or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if kwargs.get("system"):
            params["system"] = kwargs["system"]
        return params

    async def generate(self, prompt: str, **kwargs) -> str:
        """Send one Messages API request and return the first text block.

        Only ``system``, ``temperature`` and ``max_tokens`` are read from
        *kwargs*. At most ``max_concurrent`` requests are in flight.
        """
        if self._client is None:
            raise ConfigurationError("CLAUDE_API_KEY is not configured")

        params = self._request_params(prompt, **kwargs)
        async with self._semaphore:
            try:
                response = await self._client.messages.create(**params)
            except (AuthenticationError, PermissionDeniedError) as exc:
                logger.error("Claude rejected the API key: %s", exc)
                raise ConfigurationError(f"Invalid Claude API key: {exc}") from exc
            except AnthropicRateLimitError as exc:
                logger.warning("Claude rate limited the request: %s", exc)
                raise RateLimitError(f"Claude API rate limit exceeded: {exc}") from exc
            except (APITimeoutError, APIConnectionError) as exc:
                logger.warning("Claude unreachable: %s", exc)
                raise ProviderError(f"Claude API unreachable: {exc}") from exc
            except APIStatusError as exc:
                logger.error("Claude returned HTTP %s: %s", exc.status_code, exc)
                raise ProviderError(f"Claude API error ({exc.status_code}): {exc}") from exc
        return response.content[0].text
