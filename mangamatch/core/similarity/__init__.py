"""Title similarity scoring for manga catalog matching.

This module combines several string-similarity algorithms into a single
0-100 score with configurable weights, bounded caches and an optional
debug breakdown of every sub-score.
"""

from .algorithms import (
    DEFAULT_ALGORITHMS,
    CharacterAlgorithm,
    ExactMatchAlgorithm,
    JaroWinklerAlgorithm,
    NGramAlgorithm,
    SemanticAlgorithm,
    SimilarityAlgorithm,
    SubstringAlgorithm,
    TitlePair,
    WordOrderAlgorithm,
)
from .cache import LRUCache, SimilarityCaches, pair_key
from .config import (
    DEFAULT_SIMILARITY_CONFIG,
    SimilarityConfig,
    config_key,
    get_similarity_config,
    merge_config,
    reload_similarity_config,
)
from .criteria import (
    contains_complete_title,
    differs_only_by_articles,
    match_season_variant,
    word_match_score,
    word_sequence_similarity,
)
from .engine import (
    SimilarityBreakdown,
    SimilarityEngine,
    calculate_similarity,
    extract_meaningful_words,
    get_default_engine,
    normalize,
    reset_default_engine,
)
from .normalizer import replace_special_chars
from .results import TitleMatch, best_title_match, confidence_from_match_score
from .stemmer import stem

__all__ = [
    "SimilarityConfig",
    "DEFAULT_SIMILARITY_CONFIG",
    "merge_config",
    "config_key",
    "get_similarity_config",
    "reload_similarity_config",
    "LRUCache",
    "SimilarityCaches",
    "pair_key",
    "SimilarityAlgorithm",
    "TitlePair",
    "ExactMatchAlgorithm",
    "SubstringAlgorithm",
    "WordOrderAlgorithm",
    "CharacterAlgorithm",
    "SemanticAlgorithm",
    "JaroWinklerAlgorithm",
    "NGramAlgorithm",
    "DEFAULT_ALGORITHMS",
    "SimilarityEngine",
    "SimilarityBreakdown",
    "get_default_engine",
    "reset_default_engine",
    "calculate_similarity",
    "normalize",
    "extract_meaningful_words",
    "stem",
    "replace_special_chars",
    "match_season_variant",
    "differs_only_by_articles",
    "word_sequence_similarity",
    "contains_complete_title",
    "word_match_score",
    "TitleMatch",
    "best_title_match",
    "confidence_from_match_score",
]
