"""Embedding providers usable as the resolver's ``embed_fn``."""

from typing import TYPE_CHECKING, Optional

from .base import EmbeddingClient, EmbeddingConfigError

if TYPE_CHECKING:
    from ..config import Config

__all__ = ["EmbeddingClient", "EmbeddingConfigError", "create_embedding_client"]


def create_embedding_client(config: "Config") -> Optional[EmbeddingClient]:
    """Build the client named by ``config.EMBEDDING_PROVIDER``.

    Returns ``None`` for provider ``"none"`` (fallback-only mode).
    """
    provider = (config.EMBEDDING_PROVIDER or "").lower()
    retry = {
        "max_retries": config.EMBEDDING_MAX_RETRIES,
        "retry_delay": config.EMBEDDING_RETRY_DELAY,
    }
    if provider == "none":
        return None
    if provider == "openai":
        from .openai_client import OpenAIEmbeddingClient
        return OpenAIEmbeddingClient(
            api_key=config.OPENAI_API_KEY,
            base_url=config.OPENAI_BASE_URL,
            model=config.EMBEDDING_MODEL,
            dimensions=config.EMBEDDING_DIMENSIONS or None,
            **retry,
        )
    if provider == "ollama":
        from .ollama import DEFAULT_MODEL, OllamaEmbeddingClient
        from .openai_client import DEFAULT_MODEL as OPENAI_DEFAULT_MODEL
        # the OpenAI default model name means "not configured" here
        model = config.EMBEDDING_MODEL
        if not model or model == OPENAI_DEFAULT_MODEL:
            model = DEFAULT_MODEL
        return OllamaEmbeddingClient(
            base_url=config.OLLAMA_BASE_URL,
            model=model,
            **retry,
        )
    raise ValueError(f"Unknown embedding provider: {provider!r}")
