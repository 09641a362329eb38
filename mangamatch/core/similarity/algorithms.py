"""Individual similarity algorithms.

Each algorithm scores one aspect of how alike two titles are and returns a
value in [0, 1]. This modular approach makes it easy to:
- Test each algorithm independently
- Adjust its weight in the combiner
- Add or remove algorithms without touching the combiner

Algorithms cache their results in the engine's per-algorithm LRU cache,
keyed by an order-independent pair key, and always compute on a canonical
ordering of the pair so that scores are symmetric.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Protocol

from rapidfuzz.distance import Levenshtein

from .cache import (
    CHARACTER_CACHE,
    EXACT_CACHE,
    JARO_WINKLER_CACHE,
    LEVENSHTEIN_CACHE,
    NGRAM_CACHE,
    SEMANTIC_CACHE,
    SUBSTRING_CACHE,
    WORD_ORDER_CACHE,
    pair_key,
)
from .stemmer import stem

if TYPE_CHECKING:
    from .cache import SimilarityCaches

NGRAM_SIZE = 3
JARO_WINKLER_PREFIX_SCALE = 0.1
JARO_WINKLER_MAX_PREFIX = 4

# Semantic word matching
EXACT_WORD_SCORE = 1.0
STEM_WORD_SCORE = 0.95
CHARACTER_WORD_THRESHOLD = 0.8
CHARACTER_WORD_SCALE = 0.9
WORD_MATCH_BLEND = 0.7
STEM_JACCARD_BLEND = 0.3


class TextSource(Protocol):
    """What an algorithm needs from its engine: cached text processing and caches."""

    caches: SimilarityCaches

    def extract_words(self, text: str) -> list[str]: ...


@dataclass(frozen=True)
class TitlePair:
    """Two raw titles together with their normalized forms."""

    title_a: str
    title_b: str
    normalized_a: str
    normalized_b: str

    def swapped(self) -> TitlePair:
        return TitlePair(self.title_b, self.title_a, self.normalized_b, self.normalized_a)


# ---------------------------------------------------------------------------
# Primitive measures
# ---------------------------------------------------------------------------


def dice_coefficient(first: str, second: str) -> float:
    """Sørensen-Dice coefficient over character bigrams (multiset).

    Whitespace is ignored. Identical strings score 1; strings shorter than
    two characters that are not identical score 0.
    """
    first = "".join(first.split())
    second = "".join(second.split())
    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i : i + 2] for i in range(len(first) - 1))
    second_bigrams = Counter(second[i : i + 2] for i in range(len(second) - 1))
    intersection = sum((first_bigrams & second_bigrams).values())
    return 2.0 * intersection / (len(first) + len(second) - 2)


def levenshtein_distance(first: str, second: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions."""
    return Levenshtein.distance(first, second)


def levenshtein_similarity(first: str, second: str) -> float:
    """1 - distance / longer length; 1 for two empty strings."""
    return Levenshtein.normalized_similarity(first, second)


def longest_common_substring(first: str, second: str) -> int:
    """Length of the longest contiguous run shared by both strings."""
    if not first or not second:
        return 0
    if len(first) < len(second):
        first, second = second, first

    best = 0
    previous = [0] * (len(second) + 1)
    for char in first:
        current = [0] * (len(second) + 1)
        for j, other in enumerate(second, start=1):
            if char == other:
                run = previous[j - 1] + 1
                current[j] = run
                if run > best:
                    best = run
        previous = current
    return best


def jaro_similarity(first: str, second: str) -> float:
    """Jaro character-alignment similarity."""
    if first == second:
        return 1.0
    len1, len2 = len(first), len(second)
    if not len1 or not len2:
        return 0.0

    window = max(max(len1, len2) // 2 - 1, 0)
    matched1 = [False] * len1
    matched2 = [False] * len2
    matches = 0
    for i, char in enumerate(first):
        start = max(0, i - window)
        end = min(i + window + 1, len2)
        for j in range(start, end):
            if not matched2[j] and second[j] == char:
                matched1[i] = matched2[j] = True
                matches += 1
                break

    if not matches:
        return 0.0

    transpositions = 0
    k = 0
    for i in range(len1):
        if not matched1[i]:
            continue
        while not matched2[k]:
            k += 1
        if first[i] != second[k]:
            transpositions += 1
        k += 1

    return (
        matches / len1 + matches / len2 + (matches - transpositions / 2) / matches
    ) / 3


def jaro_winkler_similarity(
    first: str,
    second: str,
    prefix_scale: float = JARO_WINKLER_PREFIX_SCALE,
    max_prefix: int = JARO_WINKLER_MAX_PREFIX,
) -> float:
    """Jaro similarity boosted by the length of the shared prefix.

    Args:
        first: First string
        second: Second string
        prefix_scale: Bonus per shared prefix character
        max_prefix: Longest prefix that earns a bonus

    Returns:
        Similarity in [0, 1]; 1 for identical strings, 0 if either is empty
    """
    if first == second:
        return 1.0
    if not first or not second:
        return 0.0

    jaro = jaro_similarity(first, second)
    prefix = 0
    for char1, char2 in zip(first[:max_prefix], second[:max_prefix]):
        if char1 != char2:
            break
        prefix += 1
    return jaro + prefix * prefix_scale * (1.0 - jaro)


def char_ngrams(text: str, size: int = NGRAM_SIZE) -> set[str]:
    """Set of contiguous character shingles of the given size."""
    return {text[i : i + size] for i in range(len(text) - size + 1)}


def jaccard_index(first: set[str], second: set[str]) -> float:
    """Intersection over union; 1 when both sets are empty."""
    if not first and not second:
        return 1.0
    union = first | second
    return len(first & second) / len(union)


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


# ---------------------------------------------------------------------------
# Algorithms
# ---------------------------------------------------------------------------


class SimilarityAlgorithm(ABC):
    """A single weighted similarity measure.

    Subclasses implement ``compute``; ``score`` adds caching and canonical
    argument ordering.

    Attributes:
        name: Algorithm name, also the name of its cache
        weight_field: SimilarityConfig field holding its weight
        uses_words: Whether the score depends on raw-title tokenization
            (cache keyed on raw titles) rather than normalized text only
        calls: Number of uncached computations performed
    """

    name: ClassVar[str]
    weight_field: ClassVar[str]
    uses_words: ClassVar[bool] = False

    def __init__(self, source: TextSource) -> None:
        self.source = source
        self.calls = 0

    def cache_key(self, pair: TitlePair) -> str:
        if self.uses_words:
            return pair_key(pair.title_a, pair.title_b)
        return pair_key(pair.normalized_a, pair.normalized_b)

    def _canonical(self, pair: TitlePair) -> TitlePair:
        if self.uses_words:
            in_order = pair.title_a <= pair.title_b
        else:
            in_order = pair.normalized_a <= pair.normalized_b
        return pair if in_order else pair.swapped()

    def score(self, pair: TitlePair) -> float:
        """Cached, order-independent score for a pair of titles in [0, 1]."""
        cache = self.source.caches[self.name]
        key = self.cache_key(pair)
        cached = cache.get(key)
        if cached is not None:
            return cached

        self.calls += 1
        value = _clamp_unit(self.compute(self._canonical(pair)))
        cache.set(key, value)
        return value

    @abstractmethod
    def compute(self, pair: TitlePair) -> float:
        """Score the pair without caching."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, calls={self.calls})"


class ExactMatchAlgorithm(SimilarityAlgorithm):
    """1 for identical normalized titles, shorter/longer when one contains the other."""

    name = EXACT_CACHE
    weight_field = "exact_match_weight"

    def compute(self, pair: TitlePair) -> float:
        norm1, norm2 = pair.normalized_a, pair.normalized_b
        if norm1 == norm2:
            return 1.0
        if norm1 in norm2 or norm2 in norm1:
            return min(len(norm1), len(norm2)) / max(len(norm1), len(norm2))
        return 0.0


class SubstringAlgorithm(SimilarityAlgorithm):
    """Longest common substring relative to the longer title."""

    name = SUBSTRING_CACHE
    weight_field = "substring_match_weight"

    def compute(self, pair: TitlePair) -> float:
        norm1, norm2 = pair.normalized_a, pair.normalized_b
        if not norm1 or not norm2:
            return 0.0
        shorter, longer = sorted((norm1, norm2), key=len)
        # The whole shorter title is the longest possible match
        if shorter in longer:
            return 1.0
        return longest_common_substring(norm1, norm2) / len(longer)


class WordOrderAlgorithm(SimilarityAlgorithm):
    """Order-insensitive Jaccard index over meaningful words."""

    name = WORD_ORDER_CACHE
    weight_field = "word_order_weight"
    uses_words = True

    def compute(self, pair: TitlePair) -> float:
        words1 = set(self.source.extract_words(pair.title_a))
        words2 = set(self.source.extract_words(pair.title_b))
        if not words1 and not words2:
            return 1.0
        if not words1 or not words2:
            return 0.0
        return jaccard_index(words1, words2)


class CharacterAlgorithm(SimilarityAlgorithm):
    """Average of Dice bigram similarity and normalized Levenshtein similarity."""

    name = CHARACTER_CACHE
    weight_field = "character_similarity_weight"

    def compute(self, pair: TitlePair) -> float:
        norm1, norm2 = pair.normalized_a, pair.normalized_b
        if norm1 == norm2:
            return 1.0
        if not norm1 or not norm2:
            return 0.0
        return (dice_coefficient(norm1, norm2) + self._levenshtein(norm1, norm2)) / 2

    def _levenshtein(self, norm1: str, norm2: str) -> float:
        cache = self.source.caches[LEVENSHTEIN_CACHE]
        key = pair_key(norm1, norm2)
        cached = cache.get(key)
        if cached is None:
            cached = levenshtein_similarity(norm1, norm2)
            cache.set(key, cached)
        return cached


class SemanticAlgorithm(SimilarityAlgorithm):
    """Stem-aware word matching blended with a Jaccard index over stems.

    Word matching is computed in both directions and averaged so the score
    does not depend on which title comes first.
    """

    name = SEMANTIC_CACHE
    weight_field = "semantic_weight"
    uses_words = True

    def compute(self, pair: TitlePair) -> float:
        words1 = self.source.extract_words(pair.title_a)
        words2 = self.source.extract_words(pair.title_b)
        if not words1 and not words2:
            return 1.0
        if not words1 or not words2:
            return 0.0

        stems = {word: stem(word) for word in {*words1, *words2}}
        word_score = (
            self._best_match_score(words1, words2, stems)
            + self._best_match_score(words2, words1, stems)
        ) / 2
        stem_score = jaccard_index({stems[w] for w in words1}, {stems[w] for w in words2})
        return word_score * WORD_MATCH_BLEND + stem_score * STEM_JACCARD_BLEND

    @staticmethod
    def _best_match_score(
        source_words: list[str],
        target_words: list[str],
        stems: dict[str, str],
    ) -> float:
        total = 0.0
        for word in source_words:
            best = 0.0
            for other in target_words:
                if word == other:
                    best = EXACT_WORD_SCORE
                    break
                if stems[word] == stems[other]:
                    best = max(best, STEM_WORD_SCORE)
                    continue
                similarity = dice_coefficient(word, other)
                if similarity > CHARACTER_WORD_THRESHOLD:
                    best = max(best, similarity * CHARACTER_WORD_SCALE)
            total += best
        return total / len(source_words)


class JaroWinklerAlgorithm(SimilarityAlgorithm):
    """Jaro-Winkler similarity of the normalized titles."""

    name = JARO_WINKLER_CACHE
    weight_field = "jaro_winkler_weight"

    def compute(self, pair: TitlePair) -> float:
        return jaro_winkler_similarity(pair.normalized_a, pair.normalized_b)


class NGramAlgorithm(SimilarityAlgorithm):
    """Jaccard index over character trigrams of the normalized titles."""

    name = NGRAM_CACHE
    weight_field = "ngram_weight"

    def __init__(self, source: TextSource, size: int = NGRAM_SIZE) -> None:
        super().__init__(source)
        self.size = size

    def cache_key(self, pair: TitlePair) -> str:
        return pair_key(pair.normalized_a, pair.normalized_b, discriminator=self.size)

    def compute(self, pair: TitlePair) -> float:
        norm1, norm2 = pair.normalized_a, pair.normalized_b
        # Too short to shingle: fall back to equality
        if len(norm1) < self.size or len(norm2) < self.size:
            return 1.0 if norm1 == norm2 else 0.0
        return jaccard_index(char_ngrams(norm1, self.size), char_ngrams(norm2, self.size))


DEFAULT_ALGORITHMS: tuple[type[SimilarityAlgorithm], ...] = (
    ExactMatchAlgorithm,
    SubstringAlgorithm,
    WordOrderAlgorithm,
    CharacterAlgorithm,
    SemanticAlgorithm,
    JaroWinklerAlgorithm,
    NGramAlgorithm,
)
