"""Summarization models behind the ``BaseLLM`` interface."""

from .base import BaseLLM

__all__ = ["BaseLLM", "create_llm"]


def create_llm(provider: str, **kwargs) -> BaseLLM:
    """Build the LLM provider named by *provider* ("claude" or "ollama").

    Provider modules are imported on demand so an unused SDK is never loaded.

    Raises:
        ValueError: If *provider* is not a known backend.
    """
    if provider == "claude":
        from .claude import ClaudeLLM as provider_cls
    elif provider == "ollama":
        from .ollama import OllamaLLM as provider_cls
    else:
        raise ValueError(f"Unknown LLM provider: {provider}")
    return provider_cls(**kwargs)
