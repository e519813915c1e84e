import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import List, Optional

logger = logging.getLogger(__name__)


class EmbeddingConfigError(ValueError):
    """Raised when an embedding client is missing required settings."""


class EmbeddingClient(ABC):
    """Async embedding function with retries.

    Instances are callables matching the resolver's ``embed_fn`` contract:
    the result always has one entry per input text, and provider failures
    become ``None`` entries instead of exceptions.
    """

    name = "embedding"

    def __init__(self, max_retries: int = 3, retry_delay: float = 1.0):
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    # ── Public entry point ──

    async def __call__(self, texts: List[str]) -> List[Optional[List[float]]]:
        if not texts:
            return []

        # Blank texts are never sent; they map to None in place.  The rest
        # go out unchanged so vectors match the stored search text.
        positions = [i for i, t in enumerate(texts) if t and t.strip()]
        result: List[Optional[List[float]]] = [None] * len(texts)
        if not positions:
            return result

        vectors = await self._embed_with_retry([texts[i] for i in positions])
        for pos, vec in zip(positions, vectors):
            result[pos] = vec if vec else None
        return result

    async def _embed_with_retry(self, texts: List[str]) -> List[Optional[List[float]]]:
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._embed(texts)
            except Exception as e:
                last_error = e
                logger.warning(
                    "[%s] Embedding error on attempt %d/%d: %s",
                    self.name, attempt, self.max_retries, e,
                )
                if attempt < self.max_retries:
                    # Jittered exponential backoff
                    wait = self.retry_delay * (2 ** (attempt - 1))
                    if "429" in str(e):
                        wait *= 2
                        logger.info("[%s] Rate limit detected (429). Backing off for %.1fs",
                                    self.name, wait)
                    await asyncio.sleep(wait + wait * 0.1 * random.random())

        logger.error("[%s] Embedding failed after %d attempts: %s",
                     self.name, self.max_retries, last_error)
        return [None] * len(texts)

    # ── Subclass hook ──

    @abstractmethod
    async def _embed(self, texts: List[str]) -> List[Optional[List[float]]]:
        """Embed non-blank *texts*; may raise, the caller retries."""
