"""Similarity engine - combines all algorithms into one title score.

This module provides the high-level scoring entry points. A
``SimilarityEngine`` owns every bounded cache it uses, so independent
engines never share state; module-level helpers delegate to a lazily
created default engine.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from mangamatch.core.metrics import record_score

from .algorithms import (
    DEFAULT_ALGORITHMS,
    SimilarityAlgorithm,
    TitlePair,
    dice_coefficient,
)
from .cache import (
    NORMALIZED_CACHE,
    RESULT_CACHE,
    WORDS_CACHE,
    SimilarityCaches,
    pair_key,
)
from .config import SimilarityConfig, config_key, get_similarity_config, merge_config
from .normalizer import normalize_title, split_meaningful_words

logger = structlog.get_logger("mangamatch.similarity")

MAX_SCORE = 100

# Which branch of the combiner produced a score
PATH_IDENTICAL = "identical"
PATH_EMPTY = "empty"
PATH_LENGTH_GUARD = "length_guard"
PATH_WEIGHTED = "weighted"
PATH_CACHED = "cached"

ConfigOverrides = SimilarityConfig | Mapping[str, Any] | None


@dataclass(frozen=True)
class SimilarityBreakdown:
    """Per-algorithm detail behind a single similarity score.

    Attributes:
        title_a: First raw title
        title_b: Second raw title
        normalized_a: Normalized form of title_a
        normalized_b: Normalized form of title_b
        scores: Algorithm name -> sub-score in [0, 1]. On the length-guard
            path this holds only the "basic" Dice coefficient.
        final: Combined score in [0, 100]
        length_ratio: Shorter / longer normalized length (0 if either is empty)
        path: Which branch produced the score
    """

    title_a: str
    title_b: str
    normalized_a: str
    normalized_b: str
    final: int
    path: str
    length_ratio: float = 0.0
    scores: dict[str, float] = field(default_factory=dict)

    @property
    def length_penalty_applied(self) -> bool:
        return self.path == PATH_LENGTH_GUARD


Observer = Callable[[SimilarityBreakdown], None]


def log_breakdown(breakdown: SimilarityBreakdown) -> None:
    """Default debug observer: log the breakdown through structlog."""
    if breakdown.length_penalty_applied:
        logger.debug(
            "Length penalty applied",
            title_a=breakdown.title_a,
            title_b=breakdown.title_b,
            ratio=round(breakdown.length_ratio, 2),
            score=breakdown.final,
        )
        return

    logger.debug(
        "Similarity breakdown",
        title_a=breakdown.title_a,
        title_b=breakdown.title_b,
        path=breakdown.path,
        final=breakdown.final,
        **{name: round(value * 100, 1) for name, value in breakdown.scores.items()},
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp_score(value: int) -> int:
    return min(MAX_SCORE, max(0, value))


class SimilarityEngine:
    """Scores pairs of titles with a weighted set of similarity algorithms.

    Args:
        capacities: Optional per-cache capacity overrides, keyed by cache name
        observer: Called with a SimilarityBreakdown for every debug-mode score.
            Defaults to structlog debug logging.
        algorithms: Algorithm classes to combine. Defaults to all seven.
    """

    def __init__(
        self,
        capacities: Mapping[str, int] | None = None,
        observer: Observer | None = None,
        algorithms: Sequence[type[SimilarityAlgorithm]] | None = None,
    ) -> None:
        self.caches = SimilarityCaches(capacities)
        self.observer: Observer = observer or log_breakdown
        self.algorithms: list[SimilarityAlgorithm] = [
            algorithm(self) for algorithm in (algorithms or DEFAULT_ALGORITHMS)
        ]

    def normalize(self, text: str) -> str:
        """Cached ``normalize_title``."""
        cache = self.caches[NORMALIZED_CACHE]
        cached = cache.get(text)
        if cached is None:
            cached = normalize_title(text)
            cache.set(text, cached)
        return cached

    def extract_words(self, text: str) -> list[str]:
        """Cached ``split_meaningful_words``; returns a fresh list on every call."""
        cache = self.caches[WORDS_CACHE]
        cached = cache.get(text)
        if cached is None:
            cached = tuple(split_meaningful_words(text))
            cache.set(text, cached)
        return list(cached)

    def score(self, title_a: str, title_b: str, config: ConfigOverrides = None) -> int:
        """Similarity of two titles as an integer in [0, 100].

        Identical raw titles score 100 and an empty title scores 0. Otherwise
        the result is cached per (title pair, config) unless config.debug is
        set, in which case it is always recomputed and reported to the observer.

        Args:
            title_a: First title
            title_b: Second title
            config: Full config, partial mapping of overrides, or None for defaults

        Returns:
            Similarity score
        """
        resolved = merge_config(config)

        if not title_a or not title_b:
            record_score(PATH_EMPTY, 0)
            return 0
        if title_a == title_b:
            record_score(PATH_IDENTICAL, MAX_SCORE)
            return MAX_SCORE

        result_cache = self.caches[RESULT_CACHE]
        key = f"{pair_key(title_a, title_b)}\x1e{config_key(resolved)}"
        if not resolved.debug:
            cached = result_cache.get(key)
            if cached is not None:
                record_score(PATH_CACHED, cached)
                return cached

        breakdown = self._evaluate(title_a, title_b, resolved)
        if resolved.debug:
            self.observer(breakdown)
        else:
            result_cache.set(key, breakdown.final)

        record_score(breakdown.path, breakdown.final)
        return breakdown.final

    def breakdown(
        self,
        title_a: str,
        title_b: str,
        config: ConfigOverrides = None,
    ) -> SimilarityBreakdown:
        """Compute the full per-algorithm breakdown without using the result cache.

        Args:
            title_a: First title
            title_b: Second title
            config: Full config, partial mapping of overrides, or None for defaults

        Returns:
            SimilarityBreakdown whose ``final`` equals ``score`` for the same inputs
        """
        resolved = merge_config(config)
        if not title_a or not title_b:
            return SimilarityBreakdown(title_a, title_b, "", "", 0, PATH_EMPTY)
        if title_a == title_b:
            normalized = self.normalize(title_a)
            return SimilarityBreakdown(
                title_a, title_b, normalized, normalized, MAX_SCORE, PATH_IDENTICAL, 1.0
            )
        return self._evaluate(title_a, title_b, resolved)

    def _evaluate(
        self,
        title_a: str,
        title_b: str,
        config: SimilarityConfig,
    ) -> SimilarityBreakdown:
        norm_a = self.normalize(title_a)
        norm_b = self.normalize(title_b)

        if not norm_a or not norm_b:
            return SimilarityBreakdown(title_a, title_b, norm_a, norm_b, 0, PATH_EMPTY)
        if norm_a == norm_b:
            return SimilarityBreakdown(
                title_a, title_b, norm_a, norm_b, MAX_SCORE, PATH_IDENTICAL, 1.0
            )

        ratio = min(len(norm_a), len(norm_b)) / max(len(norm_a), len(norm_b))
        if ratio < config.length_difference_threshold:
            basic = dice_coefficient(norm_a, norm_b)
            final = _clamp_score(_round_half_up(basic * ratio * MAX_SCORE))
            return SimilarityBreakdown(
                title_a,
                title_b,
                norm_a,
                norm_b,
                final,
                PATH_LENGTH_GUARD,
                ratio,
                {"basic": basic},
            )

        pair = TitlePair(title_a, title_b, norm_a, norm_b)
        scores: dict[str, float] = {}
        weighted_sum = 0.0
        total_weight = 0.0
        for algorithm in self.algorithms:
            weight = getattr(config, algorithm.weight_field)
            value = algorithm.score(pair)
            scores[algorithm.name] = value
            weighted_sum += value * weight
            total_weight += weight

        combined = weighted_sum / total_weight if total_weight > 0 else 0.0
        final = _clamp_score(_round_half_up(combined * MAX_SCORE))
        return SimilarityBreakdown(
            title_a, title_b, norm_a, norm_b, final, PATH_WEIGHTED, ratio, scores
        )

    def clear_caches(self) -> None:
        """Drop every cached value (normalized text, words, sub-scores and results)."""
        self.caches.clear()
        for algorithm in self.algorithms:
            algorithm.calls = 0

    def cache_stats(self) -> dict[str, dict[str, int]]:
        return self.caches.stats()


# Default engine shared by the module-level helpers
_default_engine: SimilarityEngine | None = None
_default_engine_lock = threading.Lock()


def get_default_engine() -> SimilarityEngine:
    """Get the process-wide engine, creating it from settings on first use."""
    global _default_engine

    with _default_engine_lock:
        if _default_engine is None:
            from mangamatch.core.config import get_settings

            _default_engine = SimilarityEngine(capacities=get_settings().cache_capacities())
            logger.debug("Created default similarity engine")
        return _default_engine


def reset_default_engine() -> None:
    """Discard the default engine and all of its caches."""
    global _default_engine

    with _default_engine_lock:
        _default_engine = None


def calculate_similarity(title_a: str, title_b: str, config: ConfigOverrides = None) -> int:
    """Similarity of two titles as an integer in [0, 100].

    Partial overrides are merged over the configured similarity settings
    (``get_similarity_config``), which default to DEFAULT_SIMILARITY_CONFIG.

    Args:
        title_a: First title
        title_b: Second title
        config: Full config, partial mapping of overrides, or None

    Returns:
        Similarity score
    """
    resolved = merge_config(config, base=get_similarity_config())
    return get_default_engine().score(title_a, title_b, resolved)


def normalize(text: str) -> str:
    """Canonical comparison form of a title (cached in the default engine)."""
    return get_default_engine().normalize(text)


def extract_meaningful_words(text: str) -> list[str]:
    """Meaningful tokens of a title (cached in the default engine)."""
    return get_default_engine().extract_words(text)
