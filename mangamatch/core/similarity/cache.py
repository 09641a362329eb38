"""Bounded in-memory caches for the similarity engine.

Every computation kind (normalized text, extracted words, each pairwise
sub-score and the final combined score) gets its own fixed-capacity LRU
cache so that long review sessions cannot grow memory without bound.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Hashable, Iterator, Mapping
from typing import Any

import structlog

from mangamatch.core.metrics import (
    similarity_cache_evictions_total,
    similarity_cache_hits_total,
    similarity_cache_misses_total,
)

logger = structlog.get_logger("mangamatch.similarity.cache")

# Single-string caches
NORMALIZED_CACHE = "normalized"
WORDS_CACHE = "words"

# Pairwise caches
EXACT_CACHE = "exact"
SUBSTRING_CACHE = "substring"
WORD_ORDER_CACHE = "word_order"
CHARACTER_CACHE = "character"
LEVENSHTEIN_CACHE = "levenshtein"
SEMANTIC_CACHE = "semantic"
JARO_WINKLER_CACHE = "jaro_winkler"
NGRAM_CACHE = "ngram"

# Final combined score
RESULT_CACHE = "result"

SINGLE_STRING_CACHE_SIZE = 2000
PAIR_CACHE_SIZE = 3000

DEFAULT_CAPACITIES: dict[str, int] = {
    NORMALIZED_CACHE: SINGLE_STRING_CACHE_SIZE,
    WORDS_CACHE: SINGLE_STRING_CACHE_SIZE,
    EXACT_CACHE: PAIR_CACHE_SIZE,
    SUBSTRING_CACHE: PAIR_CACHE_SIZE,
    WORD_ORDER_CACHE: PAIR_CACHE_SIZE,
    CHARACTER_CACHE: PAIR_CACHE_SIZE,
    LEVENSHTEIN_CACHE: PAIR_CACHE_SIZE,
    SEMANTIC_CACHE: PAIR_CACHE_SIZE,
    JARO_WINKLER_CACHE: PAIR_CACHE_SIZE,
    NGRAM_CACHE: PAIR_CACHE_SIZE,
    RESULT_CACHE: PAIR_CACHE_SIZE,
}

_PAIR_SEPARATOR = "\x1f"


def pair_key(first: str, second: str, discriminator: str | int | None = None) -> str:
    """Build an order-independent key for an unordered pair of strings.

    Args:
        first: One string of the pair
        second: The other string of the pair
        discriminator: Optional suffix (e.g. n-gram size) for caches that
            store several variants per pair

    Returns:
        Key that is identical for (first, second) and (second, first)
    """
    low, high = (first, second) if first <= second else (second, first)
    key = f"{low}{_PAIR_SEPARATOR}{high}"
    if discriminator is not None:
        key = f"{key}{_PAIR_SEPARATOR}{discriminator}"
    return key


class LRUCache:
    """Thread-safe fixed-capacity least-recently-used cache.

    Reads reorder entries, so both ``get`` and ``set`` take the lock.
    ``None`` is reserved as the miss marker and is never stored.
    """

    def __init__(self, name: str, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Cache capacity must be at least 1, got {capacity} for '{name}'")
        self.name = name
        self.capacity = capacity
        self._store: OrderedDict[Hashable, Any] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable) -> Any | None:
        """Return the cached value and mark it most recently used, or None on a miss."""
        with self._lock:
            value = self._store.get(key)
            if value is None:
                self.misses += 1
                similarity_cache_misses_total.labels(cache=self.name).inc()
                return None
            self._store.move_to_end(key)
            self.hits += 1
        similarity_cache_hits_total.labels(cache=self.name).inc()
        return value

    def set(self, key: Hashable, value: Any) -> None:
        """Insert or refresh an entry, evicting the least recently used one at capacity."""
        if value is None:
            raise ValueError("LRUCache cannot store None")
        evicted = False
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            elif len(self._store) >= self.capacity:
                self._store.popitem(last=False)
                self.evictions += 1
                evicted = True
            self._store[key] = value
        if evicted:
            similarity_cache_evictions_total.labels(cache=self.name).inc()

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self.hits = 0
            self.misses = 0
            self.evictions = 0

    def keys(self) -> list[Hashable]:
        """Keys ordered from least to most recently used."""
        with self._lock:
            return list(self._store.keys())

    def __contains__(self, key: object) -> bool:
        # Membership checks do not count as a use.
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __repr__(self) -> str:
        return f"LRUCache(name={self.name!r}, size={len(self)}, capacity={self.capacity})"


class SimilarityCaches:
    """The set of sibling caches owned by one similarity engine."""

    def __init__(self, capacities: Mapping[str, int] | None = None) -> None:
        merged = dict(DEFAULT_CAPACITIES)
        if capacities:
            unknown = set(capacities) - set(merged)
            if unknown:
                logger.debug("Ignoring unknown cache names", caches=sorted(unknown))
            merged.update({name: size for name, size in capacities.items() if name in merged})
        self._caches = {name: LRUCache(name, size) for name, size in merged.items()}

    def __getitem__(self, name: str) -> LRUCache:
        return self._caches[name]

    def __iter__(self) -> Iterator[LRUCache]:
        return iter(self._caches.values())

    def clear(self) -> None:
        """Drop every cached entry in every cache."""
        for cache in self._caches.values():
            cache.clear()

    def stats(self) -> dict[str, dict[str, int]]:
        """Size and hit/miss/eviction counters for each cache.

        Returns:
            Dict keyed by cache name
        """
        return {
            name: {
                "size": len(cache),
                "capacity": cache.capacity,
                "hits": cache.hits,
                "misses": cache.misses,
                "evictions": cache.evictions,
            }
            for name, cache in self._caches.items()
        }
