"""Similarity configuration - algorithm weights and the length-disparity threshold."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

import structlog

logger = structlog.get_logger("mangamatch.similarity.config")

WEIGHT_FIELDS: tuple[str, ...] = (
    "exact_match_weight",
    "substring_match_weight",
    "word_order_weight",
    "character_similarity_weight",
    "semantic_weight",
    "jaro_winkler_weight",
    "ngram_weight",
)


@dataclass(frozen=True)
class SimilarityConfig:
    """Configuration for title similarity scoring.

    Weights need not sum to 1; the combiner divides by their total at call
    time. Instances are immutable, derive variants with ``merge_config``.
    """

    # Algorithm weights
    exact_match_weight: float = 0.35
    substring_match_weight: float = 0.12
    word_order_weight: float = 0.08
    character_similarity_weight: float = 0.18
    semantic_weight: float = 0.10
    jaro_winkler_weight: float = 0.10
    ngram_weight: float = 0.07

    # Titles whose normalized length ratio falls below this skip the full suite
    length_difference_threshold: float = 0.7

    # Report per-algorithm breakdowns to the engine observer and skip the result cache
    debug: bool = False

    def __post_init__(self) -> None:
        for name in WEIGHT_FIELDS:
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite non-negative number, got {value}")
        if self.total_weight <= 0:
            raise ValueError("At least one similarity weight must be positive")
        threshold = self.length_difference_threshold
        if not math.isfinite(threshold) or not 0 < threshold <= 1:
            raise ValueError(f"length_difference_threshold must be in (0, 1], got {threshold}")

    @property
    def weights(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in WEIGHT_FIELDS}

    @property
    def total_weight(self) -> float:
        return sum(getattr(self, name) for name in WEIGHT_FIELDS)


# Default config instance
DEFAULT_SIMILARITY_CONFIG = SimilarityConfig()

_CONFIG_FIELDS = frozenset(field.name for field in fields(SimilarityConfig))
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _field_name(key: str) -> str:
    # Accept "exactMatchWeight" as well as "exact_match_weight"
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def merge_config(
    overrides: SimilarityConfig | Mapping[str, Any] | None = None,
    base: SimilarityConfig = DEFAULT_SIMILARITY_CONFIG,
) -> SimilarityConfig:
    """Merge a partial configuration over a base configuration.

    Args:
        overrides: Full config, mapping of field names (snake_case or
            camelCase) to values, or None. Unknown keys are ignored.
        base: Configuration supplying every missing field

    Returns:
        Merged SimilarityConfig

    Raises:
        TypeError: If overrides is neither a config nor a mapping
        ValueError: If the merged values are invalid
    """
    if overrides is None:
        return base
    if isinstance(overrides, SimilarityConfig):
        return overrides
    if not isinstance(overrides, Mapping):
        raise TypeError(f"Unsupported similarity config override: {type(overrides).__name__}")

    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        name = _field_name(str(key))
        if name in _CONFIG_FIELDS and value is not None:
            changes[name] = value
    if not changes:
        return base
    return replace(base, **changes)


def config_key(config: SimilarityConfig) -> str:
    """Fixed-precision signature of the numeric fields of a config.

    Two configs with different weights or thresholds never share a key;
    the debug flag is not part of the key.
    """
    values = [getattr(config, name) for name in WEIGHT_FIELDS]
    values.append(config.length_difference_threshold)
    return "|".join(f"{float(value):.6f}" for value in values)


# Cached config instance (loaded from settings file)
_cached_config: SimilarityConfig | None = None


def get_similarity_config() -> SimilarityConfig:
    """Get the current similarity configuration.

    Loads the "similarity" section of settings.json if available, otherwise
    returns defaults. Caches the result until ``reload_similarity_config``.

    Returns:
        SimilarityConfig instance with current settings
    """
    global _cached_config

    if _cached_config is not None:
        return _cached_config

    from mangamatch.core.config import get_settings

    settings_file = get_settings().settings_file
    config = DEFAULT_SIMILARITY_CONFIG
    if settings_file.exists():
        try:
            with settings_file.open("r", encoding="utf-8") as f:
                all_settings = json.load(f)
            section = all_settings.get("similarity") if isinstance(all_settings, dict) else None
            if section:
                config = merge_config(section)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(
                "Failed to load similarity settings, using defaults",
                settings_file=str(settings_file),
                error=str(e),
            )
            config = DEFAULT_SIMILARITY_CONFIG

    _cached_config = config
    return _cached_config


def reload_similarity_config() -> SimilarityConfig:
    """Reload similarity configuration from the settings file.

    Call this after updating settings to ensure new values are used.
    """
    global _cached_config
    _cached_config = None
    return get_similarity_config()
