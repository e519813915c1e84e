"""
Token-bounded batching of texts for an embedding provider.

Texts are packed greedily into batches whose estimated token total stays
within a limit.  Each batch costs one call to the injected embedding
function; results come back as an async stream of
:class:`EmbeddedText` pairs in input order.

The stream is an async generator and therefore single-pass: iterating it
a second time yields nothing.  Materialise it (``[x async for x in ...]``)
if the output is needed twice.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Types and constants
# ---------------------------------------------------------------------------

Embedding = list[float]
EmbedFn = Callable[[list[str]], Awaitable[list[Optional[Embedding]]]]
TokenCounter = Callable[[str], int]

DEFAULT_BATCH_TOKEN_LIMIT = 8000


@dataclass
class EmbeddedText:
    """One input text and its vector (``None`` when the provider failed it)."""

    text: str
    embedding: Optional[Embedding]


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per two characters."""
    return math.ceil(len(text) / 2) if text else 0


# ---------------------------------------------------------------------------
# Batcher
# ---------------------------------------------------------------------------

class EmbeddingBatcher:
    """Pack texts into token-bounded batches and embed each batch once.

    Parameters
    ----------
    embed_fn:
        ``async (texts) -> [vector | None, ...]``, same length as *texts*.
    batch_token_limit:
        Maximum estimated tokens per call.  A single text above the limit
        is sent alone, never split.
    token_counter:
        Token estimator, :func:`estimate_tokens` by default.
    """

    def __init__(
        self,
        embed_fn: EmbedFn,
        batch_token_limit: int = DEFAULT_BATCH_TOKEN_LIMIT,
        token_counter: TokenCounter = estimate_tokens,
    ) -> None:
        if batch_token_limit <= 0:
            raise ValueError("batch_token_limit must be positive")
        self._embed_fn = embed_fn
        self._limit = batch_token_limit
        self._count_tokens = token_counter

    def _plan(self, texts: Sequence[str]) -> list[list[str]]:
        batches: list[list[str]] = []
        current: list[str] = []
        total = 0
        for text in texts:
            tokens = self._count_tokens(text) or 0
            if tokens > self._limit:
                if current:
                    batches.append(current)
                    current, total = [], 0
                batches.append([text])
                continue
            if current and total + tokens > self._limit:
                batches.append(current)
                current, total = [], 0
            current.append(text)
            total += tokens
        if current:
            batches.append(current)
        return batches

    def batch_count(self, texts: Sequence[str]) -> int:
        """Number of embedding calls :meth:`batch` will make for *texts*."""
        return len(self._plan(texts))

    async def batch(self, texts: Sequence[str]) -> AsyncIterator[EmbeddedText]:
        """Yield an :class:`EmbeddedText` for every input text, in order.

        Exceptions raised by the embedding function propagate to the
        consumer and end the stream.
        """
        for chunk in self._plan(texts):
            logger.debug(
                "[EmbeddingBatcher] Embedding batch of %d text(s), ~%d tokens",
                len(chunk), sum(self._count_tokens(t) or 0 for t in chunk),
            )
            vectors = list(await self._embed_fn(chunk))
            if len(vectors) < len(chunk):
                logger.warning(
                    "[EmbeddingBatcher] Provider returned %d vectors for %d texts",
                    len(vectors), len(chunk),
                )
                vectors.extend([None] * (len(chunk) - len(vectors)))
            for text, vector in zip(chunk, vectors):
                if vector is not None and len(vector) == 0:
                    vector = None
                yield EmbeddedText(text=text, embedding=vector)
