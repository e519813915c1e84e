"""
Russian <-> Latin transliteration helpers used to build project variants.

Project keys are Latin ("FIN"), users frequently type them in Cyrillic
("фин") or type Cyrillic names in Latin.  These helpers produce the
alternate spellings that the exact tier and the embedding index match on.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Maps
# ---------------------------------------------------------------------------

_RU_TO_LATIN: dict[str, str] = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e",
    "ё": "yo", "ж": "zh", "з": "z", "и": "i", "й": "y", "к": "k",
    "л": "l", "м": "m", "н": "n", "о": "o", "п": "p", "р": "r",
    "с": "s", "т": "t", "у": "u", "ф": "f", "х": "kh", "ц": "ts",
    "ч": "ch", "ш": "sh", "щ": "shch", "ъ": "", "ы": "y", "ь": "",
    "э": "e", "ю": "yu", "я": "ya",
}

_LATIN_TO_RU: dict[str, str] = {
    "a": "а", "b": "б", "v": "в", "g": "г", "d": "д", "e": "е",
    "z": "з", "i": "и", "y": "й", "k": "к", "l": "л", "m": "м",
    "n": "н", "o": "о", "p": "п", "r": "р", "s": "с", "t": "т",
    "u": "у", "f": "ф",
}

# Replaced before single letters, in this order ("shch" must beat "sh").
_LATIN_CLUSTERS: tuple[tuple[str, str], ...] = (
    ("shch", "щ"),
    ("kh", "х"),
    ("ts", "ц"),
    ("ch", "ч"),
    ("sh", "ш"),
    ("yo", "ё"),
    ("zh", "ж"),
    ("yu", "ю"),
    ("ya", "я"),
)

# Ambiguous renderings for en_to_ru_variants, most likely first.
_VARIANT_CLUSTERS: dict[str, list[str]] = {
    "shch": ["щ"],
    "sch": ["щ", "шч"],
    "yo": ["ё", "йо", "ио"],
    "yu": ["ю", "йу", "иу"],
    "ya": ["я", "йа", "иа"],
    "kh": ["х"],
    "ts": ["ц"],
    "ch": ["ч"],
    "sh": ["ш"],
}

_VARIANT_LETTERS: dict[str, list[str]] = {
    "a": ["а"], "b": ["б"], "v": ["в"], "g": ["г"], "d": ["д"],
    "e": ["е", "э"], "z": ["з"], "i": ["и", "ай", "й"],
    "y": ["й", "ы", "и"], "k": ["к"], "l": ["л"], "m": ["м"],
    "n": ["н"], "o": ["о"], "p": ["п"], "r": ["р"], "s": ["с"],
    "t": ["т"], "u": ["у", "ю"], "f": ["ф"], "h": ["х"],
    "c": ["к", "с"], "j": ["дж", "ж", "й"], "q": ["к"],
    "w": ["в", "у"], "x": ["кс", "з"],
}

_CLUSTERS_LONGEST_FIRST = sorted(_VARIANT_CLUSTERS, key=len, reverse=True)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def to_latin(text: str) -> str:
    """Transliterate Cyrillic letters in *text* to Latin (lowercased)."""
    return "".join(_RU_TO_LATIN.get(ch, ch) for ch in text.lower())


def to_cyrillic(text: str) -> str:
    """Transliterate Latin letters in *text* to Cyrillic (lowercased).

    Multi-letter clusters are resolved first, then single letters.  Latin
    letters with no Russian counterpart (``c``, ``h``, ``j``, ``q``, ``w``,
    ``x``) are left as they are.
    """
    result = text.lower()
    for cluster, replacement in _LATIN_CLUSTERS:
        result = result.replace(cluster, replacement)
    return "".join(_LATIN_TO_RU.get(ch, ch) for ch in result)


def en_to_ru_variants(text: str, max_results: int = 20) -> list[str]:
    """
    Enumerate plausible Cyrillic spellings of a Latin string.

    ``en_to_ru_variants("jira")`` includes ``"джира"`` and ``"жира"``.

    Parameters
    ----------
    text:
        Latin input; case is ignored.
    max_results:
        Upper bound on the number of spellings explored.

    Returns
    -------
    list[str]
        Unique spellings, shortest first, ties broken alphabetically.
    """
    source = text.lower()
    results: list[str] = []

    def _walk(idx: int, acc: str) -> None:
        if len(results) >= max_results:
            return
        if idx >= len(source):
            results.append(acc)
            return
        for cluster in _CLUSTERS_LONGEST_FIRST:
            if source.startswith(cluster, idx):
                for option in _VARIANT_CLUSTERS[cluster]:
                    _walk(idx + len(cluster), acc + option)
                    if len(results) >= max_results:
                        return
                # a matched cluster is never split into single letters
                return
        ch = source[idx]
        for option in _VARIANT_LETTERS.get(ch, [ch]):
            _walk(idx + 1, acc + option)
            if len(results) >= max_results:
                return

    _walk(0, "")
    unique = list(dict.fromkeys(results))
    unique.sort(key=lambda s: (len(s), s))
    return unique
