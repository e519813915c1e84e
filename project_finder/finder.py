"""
Throttled project lookup on top of :class:`~project_finder.resolver.ProjectResolver`.

``ProjectFinder`` is what a "find project" command talks to: it refreshes
the resolver from the ticketing system at most once per interval, handles
the ``"*"`` wildcard, and wraps matches with a human-readable message.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional

from .resolver import DEFAULT_THRESHOLD, ProjectResolver
from .variants import ProjectLike, ProjectMatch

logger = logging.getLogger(__name__)

DEFAULT_UPDATE_INTERVAL = 10 * 60  # seconds
DEFAULT_FIND_LIMIT = 50
WILDCARD = "*"

ProjectSource = Callable[[], Awaitable[Iterable[ProjectLike]]]


@dataclass
class FindResult:
    message: str
    matches: list[ProjectMatch] = field(default_factory=list)

    def to_dict(self, with_score: bool = True) -> dict:
        matches = [m.to_dict() for m in self.matches]
        if not with_score:
            for m in matches:
                m.pop("score", None)
        return {"message": self.message, "matches": matches}


class ProjectFinder:
    """Keep a resolver fresh and answer lookups.

    Parameters
    ----------
    resolver:
        The resolver to refresh and query.
    project_source:
        Optional ``async () -> [{key, name}, ...]`` returning the
        authoritative project list.
    update_interval:
        Minimum seconds between two non-forced refreshes.
    semantic_enabled:
        When false, refreshes only rebuild the in-memory cache (exact and
        substring search), never the vector index.
    """

    def __init__(
        self,
        resolver: ProjectResolver,
        project_source: Optional[ProjectSource] = None,
        *,
        update_interval: float = DEFAULT_UPDATE_INTERVAL,
        semantic_enabled: bool = True,
    ) -> None:
        self.resolver = resolver
        self._source = project_source
        self._interval = update_interval
        self._semantic = semantic_enabled
        self._last_update = 0.0
        self._initialized = False

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def should_update_index(self) -> bool:
        return time.time() - self._last_update >= self._interval

    def time_to_next_update(self) -> int:
        """Seconds until the next non-forced refresh is allowed."""
        remaining = self._interval - (time.time() - self._last_update)
        return max(0, math.ceil(remaining))

    async def update_index(self, projects: Iterable[ProjectLike], force: bool = False) -> bool:
        """Push *projects* into the resolver unless throttled.

        Returns True when the update ran and succeeded.  Failures are
        logged and reported as False; the next call retries.
        """
        if not force and not self.should_update_index():
            logger.debug(
                "[ProjectFinder] Skipping index update (next update in %ds)",
                self.time_to_next_update(),
            )
            return False

        projects = list(projects)
        started = time.time()
        try:
            if self._semantic:
                await self.resolver.update_projects_cache(projects)
            else:
                await self.resolver.update_cache_only_for_fallback(projects)
        except Exception as exc:
            logger.error("[ProjectFinder] Failed to update projects index: %s", exc)
            return False

        self._last_update = started
        logger.info(
            "[ProjectFinder] Index update of %d project(s) completed in %.1fs",
            len(projects), time.time() - started,
        )
        return True

    async def refresh(self, force: bool = False) -> bool:
        """Pull projects from the source and update the index if due."""
        if self._source is None:
            return False
        if not force and not self.should_update_index():
            return False
        try:
            projects = list(await self._source())
        except Exception as exc:
            logger.error("[ProjectFinder] Could not load projects from source: %s", exc)
            return False
        if not projects:
            logger.warning("[ProjectFinder] Project source returned no projects")
            return False
        return await self.update_index(projects, force=force)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def find(
        self,
        query: str,
        limit: int = DEFAULT_FIND_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> FindResult:
        """Look up *query*; ``"*"`` lists every project."""
        if not self._initialized:
            self._initialized = True
            await self.refresh(force=True)
        else:
            await self.refresh()

        query = (query or "").strip()
        if query == WILDCARD:
            projects = await self.resolver.get_all_projects()
            shown = projects[:limit]
            return FindResult(
                message=f"Showing {len(shown)} of {len(projects)} total projects",
                matches=shown,
            )

        matches = await self.resolver.search_projects(query, limit, threshold)
        if matches:
            message = f'Found {len(matches)} project(s) matching "{query}"'
        else:
            message = f'No projects found matching "{query}"'
        return FindResult(message=message, matches=matches)
