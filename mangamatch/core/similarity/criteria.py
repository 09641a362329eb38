"""Title comparison criteria used alongside the weighted similarity score.

Each function evaluates a single aspect of how two titles relate (season
numbering, article usage, word order, containment). They are independent
of the engine's caches and cheap enough to run per candidate.
"""

from __future__ import annotations

import re

import structlog

from .normalizer import ARTICLES, simple_words

logger = structlog.get_logger("mangamatch.similarity.criteria")

SEASON_VARIANT_SCORE = 0.95

# Season / part / volume markers, Arabic or Roman numerals
SEASON_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bseason\s?(\d+)", re.IGNORECASE),
    re.compile(r"\bs(\d+)(?=\s|$)", re.IGNORECASE),
    re.compile(r"\bsaison\s?(\d+)", re.IGNORECASE),
    re.compile(r"\bpart\s?(\d+)", re.IGNORECASE),
    re.compile(r"\bpartie\s?(\d+)", re.IGNORECASE),
    re.compile(r"\bvol\.\s?(\d+)", re.IGNORECASE),
    re.compile(r"\bvolume\s?(\d+)", re.IGNORECASE),
    re.compile(r"\btome\s?(\d+)", re.IGNORECASE),
    re.compile(r"\b(?:season|part|tome|vol\.?|volume)\s?([IVX]+)\b", re.IGNORECASE),
    re.compile(r"\barc\s?(\d+)", re.IGNORECASE),
    re.compile(r"\bcour\s?(\d+)", re.IGNORECASE),
)

_SPACES = re.compile(r"\s+")


def _strip_season_markers(title: str) -> str:
    stripped = _SPACES.sub(" ", title)
    for pattern in SEASON_PATTERNS:
        stripped = pattern.sub("", stripped)
    return " ".join(simple_words(stripped))


def match_season_variant(title_a: str, title_b: str) -> tuple[float | None, str]:
    """Detect titles that differ only by season/part/volume numbering.

    Args:
        title_a: First title (e.g. from the import)
        title_b: Second title (e.g. from the catalog)

    Returns:
        Tuple of (score, reason). Score is 0.95 for a season variant and
        None when no season pattern applies.
    """
    has_marker = any(
        pattern.search(title) for pattern in SEASON_PATTERNS for title in (title_a, title_b)
    )
    if not has_marker:
        return None, "No season pattern"

    clean_a = _strip_season_markers(title_a)
    clean_b = _strip_season_markers(title_b)
    if clean_a and clean_a == clean_b:
        logger.debug(
            "Season pattern match found",
            title_a=title_a,
            title_b=title_b,
            score=SEASON_VARIANT_SCORE,
        )
        return SEASON_VARIANT_SCORE, f"Season variant: '{clean_a}' (+{SEASON_VARIANT_SCORE})"

    return None, f"Different titles after removing season markers: '{clean_a}' vs '{clean_b}'"


def differs_only_by_articles(title_a: str, title_b: str) -> bool:
    """Check whether two titles are identical except for "a", "an" and "the".

    Titles with the same number of words never count as article-only
    differences.
    """
    words_a = simple_words(title_a)
    words_b = simple_words(title_b)
    if len(words_a) == len(words_b):
        return False

    stripped_a = [word for word in words_a if word not in ARTICLES]
    stripped_b = [word for word in words_b if word not in ARTICLES]
    return stripped_a == stripped_b


def _lcs_length(words1: list[str], words2: list[str]) -> int:
    previous = [0] * (len(words2) + 1)
    for word in words1:
        current = [0] * (len(words2) + 1)
        for j, other in enumerate(words2, start=1):
            if word == other:
                current[j] = previous[j - 1] + 1
            else:
                current[j] = max(current[j - 1], previous[j])
        previous = current
    return previous[-1]


def word_sequence_similarity(words1: list[str], words2: list[str]) -> float:
    """Order-aware word similarity.

    Combines the longest common word subsequence (0.5), position proximity
    of shared words (0.3) and coverage of shared words (0.2).

    Args:
        words1: First title's words
        words2: Second title's words

    Returns:
        Score in [0, 1]; 0 when either list is empty or nothing is shared
    """
    if not words1 or not words2:
        return 0.0

    shared = [word for word in words1 if word in words2]
    if not shared:
        return 0.0

    max_length = max(len(words1), len(words2))
    lcs_score = _lcs_length(words1, words2) / max_length

    position_score = 0.0
    for i in range(min(len(words1), len(words2))):
        word = words1[i]
        if word == words2[i]:
            position_score += 1
        elif word in words2:
            distance = abs(i - words2.index(word))
            position_score += max(0.0, 1 - distance / max_length)
    position_score /= max_length

    coverage = len(shared) / max_length
    return lcs_score * 0.5 + position_score * 0.3 + coverage * 0.2


def contains_complete_title(normalized_title: str, normalized_search: str) -> float:
    """Share of the title taken up by the search term when it is fully contained.

    Args:
        normalized_title: Normalized candidate title
        normalized_search: Normalized search title

    Returns:
        len(search) / len(title) if the search is contained, else 0
    """
    if not normalized_title or not normalized_search:
        return 0.0
    if normalized_search in normalized_title:
        return len(normalized_search) / len(normalized_title)
    return 0.0


def word_match_score(title_words: list[str], search_words: list[str]) -> float | None:
    """Score how many significant words two titles share.

    Words of two characters or fewer are ignored. An exact shared word
    counts 1, a shared prefix of at least four characters counts 0.5.

    Args:
        title_words: Candidate title words
        search_words: Search title words

    Returns:
        Score of at least 0.75 when 75% or more of the words match, else None
    """
    matching = 0.0
    for word in title_words:
        if len(word) <= 2:
            continue
        if word in search_words:
            matching += 1
            continue
        for search_word in search_words:
            if (word.startswith(search_word) or search_word.startswith(word)) and min(
                len(word), len(search_word)
            ) >= 4:
                matching += 0.5
                break

    ratio = matching / max(2, min(len(title_words), len(search_words)))
    if ratio >= 0.75:
        return 0.75 + (ratio - 0.75) * 0.6
    return None
