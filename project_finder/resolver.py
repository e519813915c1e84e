"""
Fuzzy project resolver: an in-memory project cache kept in sync with a
vector store, searched exact → vector → substring.

Lifecycle
---------
On construction the resolver schedules a one-off restore of its cache from
the vector store.  Every reader (``search_projects``, ``get_all_projects``)
awaits that same task, so concurrent callers during startup never trigger
a second restore.  A caller cancelled while waiting leaves the restore
running for everyone else; if the restore itself is cancelled the
resolver starts with an empty cache.

Sync model
----------
``update_projects_cache`` is best-effort, not transactional: deletions
committed before a failing embedding or upsert call stay committed.  It is
not reentrant either; callers must not run two syncs at once on the same
instance.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from tqdm import tqdm

from .embeddings import (
    DEFAULT_BATCH_TOKEN_LIMIT,
    EmbedFn,
    EmbeddingBatcher,
    TokenCounter,
    estimate_tokens,
)
from .variants import ProjectLike, ProjectMatch, ProjectRecord, coerce_projects, derive_variants
from .vector_store import EmbeddingVariantRecord, VectorStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_CACHE_TTL = 60 * 60  # seconds
DEFAULT_LIMIT = 5
DEFAULT_THRESHOLD = 0.7

EXACT_SCORE = 1.0
KEY_SUBSTRING_SCORE = 0.9
NAME_SUBSTRING_SCORE = 0.8


def _round_score(score: float) -> float:
    """Round to 4 decimals, halves away from zero."""
    return math.floor(score * 10000 + 0.5) / 10000


@dataclass
class IndexUpdate:
    """What a call to :meth:`ProjectResolver.update_projects_cache` changed."""

    deleted: list[str]
    reindexed: list[str]
    records: int = 0
    skipped_variants: int = 0


# ---------------------------------------------------------------------------
# ProjectResolver
# ---------------------------------------------------------------------------

class ProjectResolver:
    """Resolve free-text queries to project keys.

    Parameters
    ----------
    vector_store:
        Backend holding embedded project variants.
    embed_fn:
        ``async (texts) -> [vector | None, ...]``.  ``None`` entries mark
        per-text failures.
    cache_ttl:
        Seconds a refreshed cache counts as valid (see :meth:`is_cache_valid`).
    batch_token_limit:
        Token budget per embedding call during a sync.
    token_counter:
        Token estimator used for batching.
    show_progress:
        Display a tqdm progress bar while embedding variants.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embed_fn: EmbedFn,
        *,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        batch_token_limit: int = DEFAULT_BATCH_TOKEN_LIMIT,
        token_counter: TokenCounter = estimate_tokens,
        show_progress: bool = False,
    ) -> None:
        self._store = vector_store
        self._embed_fn = embed_fn
        self._cache_ttl = cache_ttl
        self._batcher = EmbeddingBatcher(embed_fn, batch_token_limit, token_counter)
        self._show_progress = show_progress

        self._cache: dict[str, ProjectRecord] = {}
        self._expire_at = 0.0

        self._restore_started = False
        self._restore_task: Optional[asyncio.Future] = None
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # no loop yet: the first wait_for_restore() schedules it
            pass
        else:
            self._start_restore()

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def _start_restore(self) -> None:
        self._restore_started = True
        self._restore_task = asyncio.ensure_future(self._restore_from_store())

    async def wait_for_restore(self) -> None:
        """Wait for the startup restore; a no-op once it has completed."""
        if not self._restore_started:
            self._start_restore()
        task = self._restore_task
        if task is None:
            return
        try:
            # a cancelled caller must not cancel the restore shared by others
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.warning("[ProjectResolver] Cache restore was cancelled; starting empty")
        finally:
            if task.done():
                self._restore_task = None

    async def _restore_from_store(self) -> None:
        try:
            keys = await self._store.get_all_project_keys()
            if not keys:
                logger.debug("[ProjectResolver] Vector store is empty, nothing to restore")
                return
            names = await self._store.get_project_names()
            missing = [k for k in keys if k not in names]
            if missing:
                logger.info(
                    "[ProjectResolver] Store has no names for %d project(s); "
                    "using keys as names until the next sync", len(missing),
                )
            restored = {key: derive_variants(key, names.get(key) or key) for key in keys}
        except Exception as exc:
            logger.warning("[ProjectResolver] Could not restore cache from vector store: %s", exc)
            return
        self._cache = restored
        self._expire_at = time.time() + self._cache_ttl
        logger.info("[ProjectResolver] Restored %d project(s) from vector store", len(restored))

    # ------------------------------------------------------------------
    # Cache updates
    # ------------------------------------------------------------------

    def _replace_cache(self, projects: Iterable[ProjectLike]) -> dict[str, ProjectRecord]:
        """Swap in freshly derived records; return the previous cache."""
        previous = self._cache
        self._cache = {p.key: derive_variants(p.key, p.name) for p in coerce_projects(projects)}
        self._expire_at = time.time() + self._cache_ttl
        return previous

    async def update_cache_only_for_fallback(self, projects: Iterable[ProjectLike]) -> None:
        """Refresh the in-memory cache without touching the vector store.

        For when the embedding provider is down but exact and substring
        search should still see current projects.
        """
        await self.wait_for_restore()
        self._replace_cache(projects)
        logger.info(
            "[ProjectResolver] Fallback cache updated with %d project(s)", len(self._cache)
        )

    async def update_projects_cache(self, projects: Iterable[ProjectLike]) -> IndexUpdate:
        """
        Replace the cache with *projects* and bring the vector store in line.

        Only projects that are new to the store or were renamed are
        re-embedded; stored keys missing from *projects* are deleted.

        Parameters
        ----------
        projects:
            Authoritative ``{key, name}`` list from the ticketing system.

        Returns
        -------
        IndexUpdate
            Keys deleted and re-indexed, rows written, variants dropped
            because the provider returned no embedding.

        Raises
        ------
        Exception
            Whatever the store or embedding function raises.  Steps already
            committed are not rolled back.
        """
        await self.wait_for_restore()
        previous = self._replace_cache(projects)

        stored_keys = await self._store.get_all_project_keys()
        stored = set(stored_keys)
        to_delete = [k for k in stored_keys if k not in self._cache]
        to_reindex = [
            record
            for key, record in self._cache.items()
            if key not in stored
            or key not in previous
            or previous[key].name != record.name
        ]
        update = IndexUpdate(deleted=to_delete, reindexed=[r.key for r in to_reindex])

        if to_delete:
            logger.info("[ProjectResolver] Deleting %d obsolete project(s) from index", len(to_delete))
            await self._store.delete_by_keys(to_delete)

        if not to_reindex:
            logger.info(
                "[ProjectResolver] Vector index is up to date (%d projects)", len(self._cache)
            )
            return update

        owners: list[tuple[str, str]] = []
        texts: list[str] = []
        for record in to_reindex:
            if record.key in stored:
                await self._store.delete_by_keys([record.key])
            for text in record.search_texts():
                owners.append((record.key, record.name))
                texts.append(text)

        logger.info(
            "[ProjectResolver] Re-indexing %d project(s): %d variant(s) in %d batch(es)",
            len(to_reindex), len(texts), self._batcher.batch_count(texts),
        )

        updated_at = time.time()
        rows: list[EmbeddingVariantRecord] = []
        with tqdm(
            total=len(texts),
            desc="Embedding project variants",
            unit="variant",
            disable=not self._show_progress,
        ) as pbar:
            idx = 0
            async for item in self._batcher.batch(texts):
                key, name = owners[idx]
                idx += 1
                pbar.update(1)
                if item.embedding is None:
                    update.skipped_variants += 1
                    continue
                rows.append(EmbeddingVariantRecord(
                    key=key,
                    name=name,
                    search_text=item.text,
                    embedding=item.embedding,
                    updated_at=updated_at,
                ))

        if rows:
            await self._store.upsert_records(rows)
        update.records = len(rows)

        if update.skipped_variants:
            logger.warning(
                "[ProjectResolver] %d variant(s) had no embedding and were not stored",
                update.skipped_variants,
            )
        logger.info(
            "[ProjectResolver] Index updated: %d project(s), %d row(s) written",
            len(to_reindex), len(rows),
        )
        return update

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_projects(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[ProjectMatch]:
        """
        Resolve *query* to ranked projects.

        Tiers, first non-empty wins:

        1. exact: the query equals one of a project's variants (score 1.0)
        2. vector: embedding similarity via the store
        3. substring: query inside the key (0.9) or name (0.8)

        Never raises for backend failures; the worst case is a substring
        search over whatever the cache holds.
        """
        await self.wait_for_restore()

        if not query or not query.strip():
            return []
        normalized = query.strip().lower()

        exact = self._exact_search(normalized)
        if exact:
            return exact

        vector = await self._vector_search(query, limit, threshold)
        if vector:
            return vector

        return self._substring_search(normalized, limit)

    def _exact_search(self, normalized: str) -> list[ProjectMatch]:
        for record in self._cache.values():
            if normalized in record.match_variants():
                return [ProjectMatch(record.key, record.name, EXACT_SCORE)]
        return []

    async def _vector_search(
        self, query: str, limit: int, threshold: float
    ) -> list[ProjectMatch]:
        try:
            vectors = await self._embed_fn([query])
            embedding = vectors[0] if vectors else None
            if embedding is None or len(embedding) == 0:
                logger.debug("[ProjectResolver] No query embedding, using substring search")
                return []
            hits = await self._store.search(list(embedding), limit, threshold)
        except Exception as exc:
            logger.debug("[ProjectResolver] Vector search failed, using substring search: %s", exc)
            return []

        results: list[ProjectMatch] = []
        seen: set[str] = set()
        for hit in hits:
            if hit.key in seen:
                continue
            record = self._cache.get(hit.key)
            if record is None:
                continue
            seen.add(hit.key)
            results.append(ProjectMatch(record.key, record.name, _round_score(hit.score)))
        if not results:
            logger.debug("[ProjectResolver] Vector search found nothing, using substring search")
        return results

    def _substring_search(self, normalized: str, limit: int) -> list[ProjectMatch]:
        matches: list[ProjectMatch] = []
        for record in self._cache.values():
            if normalized in record.key_lowercase:
                matches.append(ProjectMatch(record.key, record.name, KEY_SUBSTRING_SCORE))
            elif normalized in record.name_lowercase:
                matches.append(ProjectMatch(record.key, record.name, NAME_SUBSTRING_SCORE))
        matches.sort(key=lambda m: (-m.score, m.key))
        return matches[:max(limit, 0)]

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    async def get_all_projects(self) -> list[ProjectMatch]:
        """Every cached project, sorted by key, with score 0."""
        await self.wait_for_restore()
        return [
            ProjectMatch(r.key, r.name, 0)
            for r in sorted(self._cache.values(), key=lambda r: r.key)
        ]

    def is_cache_valid(self) -> bool:
        return time.time() < self._expire_at and len(self._cache) > 0

    @property
    def project_count(self) -> int:
        return len(self._cache)

    async def clear(self) -> None:
        """Empty the cache and the backing store."""
        await self.wait_for_restore()
        self._cache = {}
        self._expire_at = 0.0
        await self._store.clear()
        logger.info("[ProjectResolver] Cache and vector store cleared")

    async def close(self) -> None:
        """Close the vector store."""
        await self._store.close()
