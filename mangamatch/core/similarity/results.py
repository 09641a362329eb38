"""Result builders for the similarity system.

Functions to pick the best-matching alternative title of a catalog entry
and to turn match scores into confidence values.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .config import SimilarityConfig
from .engine import SimilarityEngine, get_default_engine

TITLE_TYPE_PRIORITY: dict[str, int] = {
    "english": 100,
    "romaji": 90,
    "native": 80,
    "synonym": 70,
}
UNKNOWN_TITLE_PRIORITY = 60


@dataclass(frozen=True)
class TitleMatch:
    """Best alternative title of a catalog entry for a search title."""

    title: str | None
    title_type: str
    similarity: int

    @property
    def priority(self) -> int:
        return TITLE_TYPE_PRIORITY.get(self.title_type, UNKNOWN_TITLE_PRIORITY)


def iter_entry_titles(entry: Mapping[str, Any]) -> Iterator[tuple[str, str]]:
    """Yield (title_type, title) for every non-empty title of a catalog entry.

    Args:
        entry: Catalog entry with a "title" dict ("english", "romaji",
            "native") and an optional "synonyms" list

    Yields:
        Main titles in priority order, then synonyms
    """
    title_data = entry.get("title")
    if isinstance(title_data, Mapping):
        for title_type in ("english", "romaji", "native"):
            title = title_data.get(title_type)
            if title:
                yield title_type, str(title)

    synonyms = entry.get("synonyms")
    if isinstance(synonyms, list):
        for synonym in synonyms:
            if synonym:
                yield "synonym", str(synonym)


def best_title_match(
    search_title: str,
    entry: Mapping[str, Any],
    engine: SimilarityEngine | None = None,
    config: SimilarityConfig | Mapping[str, Any] | None = None,
) -> TitleMatch:
    """Score a search title against every title of a catalog entry.

    Args:
        search_title: Title from the user's reading list
        entry: Catalog entry (see ``iter_entry_titles``)
        engine: Engine to score with (defaults to the shared engine)
        config: Similarity config or overrides

    Returns:
        TitleMatch for the highest-scoring title. Ties keep the
        higher-priority title type. An entry with no titles yields a
        "synonym" match with similarity 0.
    """
    if engine is None:
        engine = get_default_engine()

    best = TitleMatch(title=None, title_type="synonym", similarity=0)
    for title_type, title in iter_entry_titles(entry):
        similarity = engine.score(search_title, title, config)
        if similarity > best.similarity:
            best = TitleMatch(title=title, title_type=title_type, similarity=similarity)
    return best


def confidence_from_match_score(score: float) -> int:
    """Convert a 0-1 match score to a confidence percentage.

    Uses a conservative piecewise scale: near-perfect matches are capped at
    99 and weak matches are compressed toward the low end.

    Args:
        score: Match score in [0, 1]

    Returns:
        Confidence between 0 and 99
    """
    if score <= 0:
        return 0
    if score >= 0.97:
        return 99
    if score >= 0.94:
        return round(90 + (score - 0.94) * 125)  # 90-96
    if score >= 0.87:
        return round(80 + (score - 0.87) * 143)  # 80-90
    if score >= 0.75:
        return round(65 + (score - 0.75) * 125)  # 65-80
    if score >= 0.6:
        return round(50 + (score - 0.6) * 100)  # 50-65
    if score >= 0.4:
        return round(30 + (score - 0.4) * 100)  # 30-50
    if score >= 0.2:
        return round(15 + (score - 0.2) * 75)  # 15-30
    return max(1, round(score * 75))
