"""Summaries from a local Ollama server via ``ollama.AsyncClient``."""

import logging

from ollama import AsyncClient, ResponseError

from scribe.core.config import get_settings
from scribe.core.exceptions import ConfigurationError, ProviderError, RateLimitError
from scribe.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class OllamaLLM(BaseLLM):
    """Chat-completion provider backed by Ollama.

    Args:
        base_url: Ollama server URL. Defaults to ``settings.ollama_base_url``.
        model: Model tag, e.g. "llama3.2". Defaults to ``settings.ollama_model``.
        temperature: Default sampling temperature between 0.0 and 1.0.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
    ) -> None:
        settings = get_settings()
        self._base_url = base_url or settings.ollama_base_url
        self._model = model or settings.ollama_model
        self._temperature = temperature
        self._client = AsyncClient(host=self._base_url)

    def _translate(self, exc: ResponseError) -> Exception:
        if exc.status_code == 404:
            logger.error("Ollama has no model %s: %s", self._model, exc)
            return ConfigurationError(f"Ollama model not found: {self._model}")
        if exc.status_code == 429:
            logger.warning("Ollama rate limited the request: %s", exc)
            return RateLimitError(f"Ollama rate limit exceeded: {exc}")
        logger.error("Ollama returned %s: %s", exc.status_code, exc)
        return ProviderError(f"Ollama error: {exc}")

    async def generate(self, prompt: str, **kwargs) -> str:
        messages = [{"role": "user", "content": prompt}]
        if kwargs.get("system"):
            messages.insert(0, {"role": "system", "content": kwargs["system"]})
        temperature = kwargs.get("temperature")
        if temperature is None:
            temperature = self._temperature

        try:
            response = await self._client.chat(
                model=self._model,
                messages=messages,
                options={"temperature": temperature},
            )
        except ResponseError as exc:
            raise self._translate(exc) from exc
        except (ConnectionError, TimeoutError) as exc:
            logger.warning("Ollama at %s unreachable: %s", self._base_url, exc)
            raise ProviderError(f"Failed to reach Ollama at {self._base_url}: {exc}") from exc
        return response.message.content
