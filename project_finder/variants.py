"""
Project records and their derived search variants.

A :class:`ProjectRecord` carries a project's ``key`` and ``name`` plus six
precomputed spellings (lowercase and transliterated).  Records are only
ever produced by :func:`derive_variants`, so the variants can never drift
from the key/name they were computed from.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping, Union

from .transliterate import to_cyrillic, to_latin


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Project:
    """A ``{key, name}`` pair from the ticketing system."""

    key: str
    name: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Project":
        """Build a project from a mapping with ``key`` and ``name`` entries."""
        try:
            key = data["key"]
        except KeyError as exc:
            raise ValueError(f"Project entry has no 'key': {dict(data)!r}") from exc
        key = str(key).strip()
        if not key:
            raise ValueError("Project key must not be empty")
        name = data.get("name")
        return cls(key=key, name=str(name) if name else key)


@dataclass(frozen=True)
class ProjectRecord:
    """Cached project plus its six derived variants."""

    key: str
    name: str
    key_lowercase: str
    name_lowercase: str
    transliterated_key_lowercase: str
    transliterated_key_uppercase: str
    transliterated_name_lowercase: str
    transliterated_name_uppercase: str

    def variants(self) -> tuple[str, ...]:
        return (
            self.key_lowercase,
            self.name_lowercase,
            self.transliterated_key_lowercase,
            self.transliterated_key_uppercase,
            self.transliterated_name_lowercase,
            self.transliterated_name_uppercase,
        )

    def match_variants(self) -> tuple[str, ...]:
        """Variants folded to lowercase, for comparison with a normalized query."""
        return tuple(v.lower() for v in self.variants())

    def search_texts(self) -> list[str]:
        """Distinct, non-empty embedding inputs: key, name and every variant."""
        texts = (self.key, self.name) + self.variants()
        return [t for t in dict.fromkeys(texts) if t]

    def to_project(self) -> Project:
        return Project(key=self.key, name=self.name)


@dataclass
class ProjectMatch:
    """One search result. ``score`` is in ``[0, 1]``; higher is better."""

    key: str
    name: str
    score: float = field(default=0.0)

    def to_dict(self) -> dict:
        return asdict(self)


ProjectLike = Union[Project, ProjectRecord, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Deriver
# ---------------------------------------------------------------------------

def derive_variants(key: str, name: str) -> ProjectRecord:
    """
    Compute the :class:`ProjectRecord` for a project.

    Deterministic and side-effect free: identical input always yields an
    equal record, which the index diff relies on to detect "no change".
    """
    key_lc = key.lower()
    name_lc = name.lower()
    key_ru = to_cyrillic(key_lc)
    return ProjectRecord(
        key=key,
        name=name,
        key_lowercase=key_lc,
        name_lowercase=name_lc,
        transliterated_key_lowercase=key_ru,
        transliterated_key_uppercase=key_ru.upper(),
        transliterated_name_lowercase=to_cyrillic(name_lc),
        transliterated_name_uppercase=to_latin(name).upper(),
    )


def coerce_projects(projects: Iterable[ProjectLike]) -> list[Project]:
    """Normalise dicts / records / projects into a list of :class:`Project`."""
    result: list[Project] = []
    for item in projects:
        if isinstance(item, Project):
            result.append(item)
        elif isinstance(item, ProjectRecord):
            result.append(item.to_project())
        else:
            result.append(Project.from_dict(item))
    return result
