"""Prometheus metrics for the similarity engine."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# Bounded cache metrics
similarity_cache_hits_total = Counter(
    "similarity_cache_hits_total",
    "Total number of similarity cache hits",
    ["cache"],
)
similarity_cache_misses_total = Counter(
    "similarity_cache_misses_total",
    "Total number of similarity cache misses",
    ["cache"],
)
similarity_cache_evictions_total = Counter(
    "similarity_cache_evictions_total",
    "Total number of least-recently-used entries evicted from a similarity cache",
    ["cache"],
)

# Scoring metrics
similarity_scores_total = Counter(
    "similarity_scores_total",
    "Total number of title similarity scores produced",
    ["path"],  # path: identical, empty, length_guard, weighted, cached
)
similarity_score_value = Histogram(
    "similarity_score_value",
    "Distribution of final title similarity scores (0-100)",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 95, 100),
)


def record_score(path: str, value: int) -> None:
    """Record a produced similarity score.

    Args:
        path: Which branch of the combiner produced the value
        value: Final score in [0, 100]
    """
    similarity_scores_total.labels(path=path).inc()
    similarity_score_value.observe(value)
