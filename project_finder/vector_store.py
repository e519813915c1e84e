"""
Vector store interface for project variants, plus an in-memory backend.

A store holds one row per (project key, search text) with its embedding.
Search ranks projects by the cosine similarity of their best-matching row.

Scoring
-------
``threshold`` is the largest cosine *distance* (``1 - cos``) accepted.
Accepted rows are scored ``1 - min(distance, 2) / 2`` so that scores fall
in ``[0, 1]`` with 1 meaning an identical direction.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class EmbeddingVariantRecord:
    """One variant row: a project's search text and its embedding."""

    key: str
    name: str
    search_text: str
    embedding: Optional[list[float]]
    updated_at: float


@dataclass
class StoreMatch:
    """A project returned by :meth:`VectorStore.search`."""

    key: str
    name: str
    search_text: str
    score: float


# ---------------------------------------------------------------------------
# Similarity helpers
# ---------------------------------------------------------------------------

def _cosine_similarity_batch(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity between *query* (1-D) and each row of *matrix*."""
    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return np.zeros(matrix.shape[0])
    row_norms = np.linalg.norm(matrix, axis=1)
    row_norms[row_norms == 0] = 1.0
    return (matrix @ query) / (row_norms * query_norm)


def rank_matches(
    embedding: list[float],
    rows: Iterable[tuple[str, str, str, np.ndarray]],
    limit: int,
    threshold: float,
) -> list[StoreMatch]:
    """
    Rank projects against *embedding*.

    Parameters
    ----------
    embedding:
        Query vector.
    rows:
        ``(key, name, search_text, vector)`` tuples.  Rows whose dimension
        differs from the query are ignored.
    limit:
        Maximum number of projects returned.
    threshold:
        Maximum cosine distance for a row to count as a match.

    Returns
    -------
    list[StoreMatch]
        At most one match per key, best score first.
    """
    if limit <= 0:
        return []
    query = np.asarray(embedding, dtype=np.float32)
    usable = [r for r in rows if r[3].shape == query.shape]
    if not usable:
        return []

    matrix = np.stack([r[3] for r in usable])
    distances = 1.0 - _cosine_similarity_batch(query, matrix)

    best: dict[str, tuple[float, int]] = {}
    for idx, distance in enumerate(distances):
        distance = float(distance)
        if distance > threshold:
            continue
        key = usable[idx][0]
        if key not in best or distance < best[key][0]:
            best[key] = (distance, idx)

    matches = [
        StoreMatch(
            key=usable[idx][0],
            name=usable[idx][1],
            search_text=usable[idx][2],
            score=1.0 - min(distance, 2.0) / 2.0,
        )
        for distance, idx in best.values()
    ]
    matches.sort(key=lambda m: (-m.score, m.key))
    return matches[:limit]


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class VectorStore(ABC):
    """Storage backend for embedded project variants."""

    @abstractmethod
    async def upsert_records(self, records: list[EmbeddingVariantRecord]) -> None:
        """Insert or replace rows; rows without an embedding are ignored."""

    @abstractmethod
    async def search(
        self, embedding: list[float], limit: int, threshold: float
    ) -> list[StoreMatch]:
        """Return up to *limit* projects within *threshold* of *embedding*."""

    @abstractmethod
    async def get_all_project_keys(self) -> list[str]:
        """Distinct project keys currently stored."""

    @abstractmethod
    async def delete_by_keys(self, keys: list[str]) -> None:
        """Remove every row belonging to *keys*."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove all rows."""

    async def get_project_names(self) -> dict[str, str]:
        """Map of stored key to display name.

        Backends that cannot answer return ``{}``; the resolver then falls
        back to using the key as the name until the next full sync.
        """
        return {}

    async def close(self) -> None:
        """Release resources held by the backend."""


# ---------------------------------------------------------------------------
# InMemoryVectorStore
# ---------------------------------------------------------------------------

class InMemoryVectorStore(VectorStore):
    """Process-local store; contents are lost when the process exits."""

    def __init__(self) -> None:
        # key -> search_text -> (name, vector, updated_at)
        self._rows: dict[str, dict[str, tuple[str, np.ndarray, float]]] = {}

    async def upsert_records(self, records: list[EmbeddingVariantRecord]) -> None:
        count = 0
        for record in records:
            if record.embedding is None:
                continue
            vector = np.asarray(record.embedding, dtype=np.float32)
            self._rows.setdefault(record.key, {})[record.search_text] = (
                record.name, vector, record.updated_at,
            )
            count += 1
        logger.debug("[InMemoryVectorStore] Upserted %d rows", count)

    async def search(
        self, embedding: list[float], limit: int, threshold: float
    ) -> list[StoreMatch]:
        rows = (
            (key, name, text, vector)
            for key, variants in self._rows.items()
            for text, (name, vector, _) in variants.items()
        )
        return rank_matches(embedding, rows, limit, threshold)

    async def get_all_project_keys(self) -> list[str]:
        return list(self._rows)

    async def get_project_names(self) -> dict[str, str]:
        names: dict[str, str] = {}
        for key, variants in self._rows.items():
            latest = max(variants.values(), key=lambda row: row[2], default=None)
            if latest is not None:
                names[key] = latest[0]
        return names

    async def delete_by_keys(self, keys: list[str]) -> None:
        for key in keys:
            self._rows.pop(key, None)

    async def clear(self) -> None:
        self._rows.clear()

    @property
    def row_count(self) -> int:
        return sum(len(v) for v in self._rows.values())


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------

def create_vector_store(backend: str = "sqlite", path: Optional[str] = None) -> VectorStore:
    """Create a store for *backend* (``"sqlite"`` or ``"memory"``)."""
    backend = (backend or "").lower()
    if backend == "memory":
        return InMemoryVectorStore()
    if backend == "sqlite":
        from .sqlite_vector_store import SQLiteVectorStore
        return SQLiteVectorStore(path)
    raise ValueError(f"Unknown vector store backend: {backend!r}")
