"""
project_finder: resolve fuzzy, misspelled or transliterated queries to
ticketing-system project keys.

Public API for library usage::

    from project_finder import ProjectResolver, InMemoryVectorStore

    resolver = ProjectResolver(InMemoryVectorStore(), embed_fn)
    await resolver.update_projects_cache([{"key": "FIN", "name": "Finance Platform"}])
    matches = await resolver.search_projects("фин")
"""

from .embeddings import EmbeddedText, EmbeddingBatcher, estimate_tokens
from .finder import FindResult, ProjectFinder
from .resolver import IndexUpdate, ProjectResolver
from .sqlite_vector_store import SQLiteVectorStore
from .variants import Project, ProjectMatch, ProjectRecord, derive_variants
from .vector_store import (
    EmbeddingVariantRecord,
    InMemoryVectorStore,
    StoreMatch,
    VectorStore,
    create_vector_store,
)

__version__ = "0.1.0"

__all__ = [
    "EmbeddedText",
    "EmbeddingBatcher",
    "EmbeddingVariantRecord",
    "FindResult",
    "InMemoryVectorStore",
    "IndexUpdate",
    "Project",
    "ProjectFinder",
    "ProjectMatch",
    "ProjectRecord",
    "ProjectResolver",
    "SQLiteVectorStore",
    "StoreMatch",
    "VectorStore",
    "create_vector_store",
    "derive_variants",
    "estimate_tokens",
]
