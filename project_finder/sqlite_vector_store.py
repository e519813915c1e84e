"""
SQLite-backed vector store for project variants.

Stores one row per (project key, search text) with its embedding as a
float32 blob and ranks with numpy cosine similarity.  Zero-config: no
external service required, and the index survives restarts so the
resolver can restore its cache on startup.

Storage: ``.project_finder/vectors.db`` unless a path is given.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sqlite3
import threading
from typing import Optional

import numpy as np

from .vector_store import EmbeddingVariantRecord, StoreMatch, VectorStore, rank_matches

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_DB_PATH = os.path.join(".project_finder", "vectors.db")

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS project_vectors (
    key          TEXT NOT NULL,
    search_text  TEXT NOT NULL,
    name         TEXT NOT NULL,
    vector       BLOB NOT NULL,
    updated_at   REAL NOT NULL,
    PRIMARY KEY (key, search_text)
);
"""


def _vec_to_bytes(vec: list[float]) -> bytes:
    return np.asarray(vec, dtype=np.float32).tobytes()


def _bytes_to_vec(buf: bytes) -> np.ndarray:
    return np.frombuffer(buf, dtype=np.float32).copy()


# ---------------------------------------------------------------------------
# SQLiteVectorStore
# ---------------------------------------------------------------------------

class SQLiteVectorStore(VectorStore):
    """Persistent vector store backed by SQLite + numpy cosine similarity.

    Blocking database work runs in a worker thread via
    :func:`asyncio.to_thread`; a lock serialises access to the shared
    connection.

    Parameters
    ----------
    db_path:
        Database file.  Parent directories are created when missing.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path or DEFAULT_DB_PATH
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None
        self._init_db()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _init_db(self) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self._db_path)), exist_ok=True)
        with self._lock:
            conn = self._get_conn()
            conn.executescript(_CREATE_TABLE)
            conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        return self._conn

    def _close_sync(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)

    @property
    def db_path(self) -> str:
        return self._db_path

    # ------------------------------------------------------------------
    # Synchronous implementations
    # ------------------------------------------------------------------

    def _upsert_sync(self, records: list[EmbeddingVariantRecord]) -> int:
        rows = [
            (r.key, r.search_text, r.name, _vec_to_bytes(r.embedding), r.updated_at)
            for r in records
            if r.embedding is not None
        ]
        if not rows:
            return 0
        with self._lock:
            conn = self._get_conn()
            conn.executemany(
                "INSERT OR REPLACE INTO project_vectors "
                "(key, search_text, name, vector, updated_at) VALUES (?, ?, ?, ?, ?)",
                rows,
            )
            conn.commit()
        return len(rows)

    def _search_sync(
        self, embedding: list[float], limit: int, threshold: float
    ) -> list[StoreMatch]:
        with self._lock:
            rows = self._get_conn().execute(
                "SELECT key, name, search_text, vector FROM project_vectors"
            ).fetchall()
        decoded = ((k, n, t, _bytes_to_vec(v)) for k, n, t, v in rows)
        return rank_matches(embedding, decoded, limit, threshold)

    def _keys_sync(self) -> list[str]:
        with self._lock:
            rows = self._get_conn().execute(
                "SELECT DISTINCT key FROM project_vectors ORDER BY key"
            ).fetchall()
        return [r[0] for r in rows]

    def _names_sync(self) -> dict[str, str]:
        # latest row per key wins
        with self._lock:
            rows = self._get_conn().execute(
                "SELECT key, name FROM project_vectors ORDER BY updated_at"
            ).fetchall()
        return {key: name for key, name in rows}

    def _delete_sync(self, keys: list[str]) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.executemany(
                "DELETE FROM project_vectors WHERE key = ?", [(k,) for k in keys]
            )
            conn.commit()

    def _clear_sync(self) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.execute("DELETE FROM project_vectors")
            conn.commit()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def upsert_records(self, records: list[EmbeddingVariantRecord]) -> None:
        if not records:
            return
        count = await asyncio.to_thread(self._upsert_sync, records)
        logger.debug("[SQLiteVectorStore] Upserted %d rows", count)

    async def search(
        self, embedding: list[float], limit: int, threshold: float
    ) -> list[StoreMatch]:
        return await asyncio.to_thread(self._search_sync, embedding, limit, threshold)

    async def get_all_project_keys(self) -> list[str]:
        return await asyncio.to_thread(self._keys_sync)

    async def get_project_names(self) -> dict[str, str]:
        return await asyncio.to_thread(self._names_sync)

    async def delete_by_keys(self, keys: list[str]) -> None:
        if not keys:
            return
        await asyncio.to_thread(self._delete_sync, list(keys))
        logger.debug("[SQLiteVectorStore] Deleted rows for %d key(s)", len(keys))

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear_sync)

    def collection_info(self) -> Optional[dict]:
        """Return row and project counts, or ``None`` if the database is unreadable.

        Returns
        -------
        Optional[dict]
            Keys: ``name``, ``points_count``, ``projects_count``.
        """
        try:
            with self._lock:
                conn = self._get_conn()
                points = conn.execute("SELECT COUNT(*) FROM project_vectors").fetchone()
                projects = conn.execute(
                    "SELECT COUNT(DISTINCT key) FROM project_vectors"
                ).fetchone()
        except sqlite3.Error:
            return None
        return {
            "name": os.path.basename(self._db_path),
            "points_count": points[0] if points else 0,
            "projects_count": projects[0] if projects else 0,
        }
