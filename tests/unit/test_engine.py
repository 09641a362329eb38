"""Tests for the similarity engine and module-level scoring helpers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import structlog
from prometheus_client import REGISTRY

from mangamatch.core.config import reload_settings
from mangamatch.core.similarity import (
    ExactMatchAlgorithm,
    SimilarityBreakdown,
    SimilarityConfig,
    SimilarityEngine,
    calculate_similarity,
    extract_meaningful_words,
    get_default_engine,
    normalize,
    reload_similarity_config,
    reset_default_engine,
)
from mangamatch.core.similarity.cache import RESULT_CACHE
from mangamatch.core.similarity.engine import (
    PATH_EMPTY,
    PATH_IDENTICAL,
    PATH_LENGTH_GUARD,
    PATH_WEIGHTED,
    _round_half_up,
)

TITLE_PAIRS = [
    ("Attack on Titan", "Shingeki no Kyojin"),
    ("Tokyo Ghoul", "Tokyo Revengers"),
    ("Naruto", "Naruto Shippuden"),
    ("Fullmetal Alchemist", "Full Metal Alchemist: Brotherhood"),
    ("Hunter x Hunter", "Hunter Hunter"),
    ("Kimetsu no Yaiba", "Demon Slayer"),
    ("One Piece", "One Piece Red"),
    ("The Promised Neverland", "Yakusoku no Neverland"),
]

ONLY_EXACT = {
    "exact_match_weight": 1.0,
    "substring_match_weight": 0.0,
    "word_order_weight": 0.0,
    "character_similarity_weight": 0.0,
    "semantic_weight": 0.0,
    "jaro_winkler_weight": 0.0,
    "ngram_weight": 0.0,
}


class TestScoreProperties:
    """Identity, symmetry, range and determinism."""

    @pytest.mark.parametrize("title", ["One Piece", "Berserk", "!!!", "[Tag]", "ж"])
    def test_identity(self, engine: SimilarityEngine, title: str):
        assert engine.score(title, title) == 100

    @pytest.mark.parametrize(("title_a", "title_b"), TITLE_PAIRS)
    def test_symmetry(self, title_a: str, title_b: str):
        forward = SimilarityEngine().score(title_a, title_b)
        backward = SimilarityEngine().score(title_b, title_a)
        assert forward == backward

    @pytest.mark.parametrize(("title_a", "title_b"), TITLE_PAIRS)
    def test_range(self, engine: SimilarityEngine, title_a: str, title_b: str):
        value = engine.score(title_a, title_b)
        assert isinstance(value, int)
        assert 0 <= value <= 100

    def test_empty_titles(self, engine: SimilarityEngine):
        assert engine.score("", "One Piece") == 0
        assert engine.score("One Piece", "") == 0
        assert engine.score("", "") == 0

    def test_punctuation_only_titles(self, engine: SimilarityEngine):
        """Distinct raw titles that normalize to nothing score 0."""
        assert engine.score("!!!", "???") == 0

    def test_deterministic_regardless_of_history(self):
        cold = SimilarityEngine()
        warm = SimilarityEngine()
        for title_a, title_b in TITLE_PAIRS:
            warm.score(title_b, title_a)

        for title_a, title_b in TITLE_PAIRS:
            assert cold.score(title_a, title_b) == warm.score(title_a, title_b)

    @pytest.mark.parametrize(
        "title",
        [
            "\x00",
            "((((",
            "[" * 1000,
            "vol. vol. vol. 1",
            "🙂🙂🙂",
            "a " * 2000,
            "進撃の巨人",
        ],
    )
    def test_never_raises(self, engine: SimilarityEngine, title: str):
        value = engine.score(title, "One Piece")
        assert 0 <= value <= 100


class TestScoreScenarios:
    def test_case_and_spacing(self, engine: SimilarityEngine):
        assert engine.score("One Piece", "ONE  PIECE") == 100

    def test_volume_marker_ignored(self, engine: SimilarityEngine):
        assert engine.score("One Piece Vol. 5", "One Piece") == 100

    def test_scanlator_tag_ignored(self, engine: SimilarityEngine):
        assert engine.score("[Group] Berserk", "Berserk") == 100

    def test_diacritics_and_full_width(self, engine: SimilarityEngine):
        assert engine.score("Pokémon Adventures", "Pokemon Adventures") == 100
        assert engine.score("ＯＮＥ ＰＩＥＣＥ", "One Piece") == 100

    def test_abbreviations(self, engine: SimilarityEngine):
        assert engine.score("Godzilla vs Kong", "Godzilla versus Kong") == 100
        assert engine.score("Re:Zero", "Re Zero") == 100

    def test_unrelated_translations_score_low(self, engine: SimilarityEngine):
        """Only incidental character overlap contributes; no token is shared."""
        breakdown = engine.breakdown("Attack on Titan", "Shingeki no Kyojin")

        assert breakdown.path == PATH_WEIGHTED
        assert breakdown.final == engine.score("Attack on Titan", "Shingeki no Kyojin") == 7
        for name in ("exact", "word_order", "semantic", "ngram"):
            assert breakdown.scores[name] == 0.0
        assert breakdown.scores["jaro_winkler"] == max(breakdown.scores.values())

    @pytest.mark.parametrize(
        ("title_a", "title_b"),
        [
            ("ガンダム", "カンタム"),
            ("ポケモン", "ホケモン"),
            ("किताब", "कताब"),
        ],
    )
    def test_distinct_non_latin_titles(
        self, engine: SimilarityEngine, title_a: str, title_b: str
    ):
        assert engine.score(title_a, title_b) < 100

    def test_near_match_scores_high(self, engine: SimilarityEngine):
        assert engine.score("One Piece", "One Piece Red") >= 70

    def test_related_titles_rank_above_unrelated(self, engine: SimilarityEngine):
        related = engine.score("Tokyo Ghoul", "Tokyo Ghoul:re")
        unrelated = engine.score("Tokyo Ghoul", "Vinland Saga")
        assert related > unrelated

    @pytest.mark.parametrize(
        "suffix",
        [" Red", ": Strong World", " Film Red Adventures", " Vol. 3", " [Scanlated]"],
    )
    def test_appended_text_never_raises_score(self, engine: SimilarityEngine, suffix: str):
        identical = engine.score("One Piece", "One Piece")
        assert identical == 100
        assert engine.score("One Piece", "One Piece" + suffix) <= identical

    def test_appended_text_triggers_length_guard(self, engine: SimilarityEngine):
        # dice = 14/31, ratio 8/25
        breakdown = engine.breakdown("One Piece", "One Piece Film Red Adventures")
        assert breakdown.path == PATH_LENGTH_GUARD
        assert breakdown.final == 14
        assert engine.score("One Piece", "One Piece Red") > breakdown.final

    def test_length_guard(self, engine: SimilarityEngine):
        # dice("naruto", "narutoshippuden") = 10/19, ratio 6/15
        assert engine.score("Naruto", "Naruto Shippuden") == 21
        assert engine.score("abc", "abcdefghijklmnopqrst") == 3

    def test_length_guard_threshold_override(self, engine: SimilarityEngine):
        guarded = engine.breakdown("Naruto", "Naruto Shippuden")
        relaxed = engine.breakdown(
            "Naruto", "Naruto Shippuden", {"length_difference_threshold": 0.3}
        )
        assert guarded.path == PATH_LENGTH_GUARD
        assert relaxed.path == PATH_WEIGHTED

    def test_weight_overrides(self, engine: SimilarityEngine):
        assert engine.score("Hunter x Hunter", "Hunter Hunter", ONLY_EXACT) == 0

    def test_camel_case_overrides(self, engine: SimilarityEngine):
        camel = {"exactMatchWeight": 1.0, "lengthDifferenceThreshold": 0.3}
        snake = {"exact_match_weight": 1.0, "length_difference_threshold": 0.3}
        assert engine.score("Naruto", "Naruto Shippuden", camel) == engine.score(
            "Naruto", "Naruto Shippuden", snake
        )

    def test_full_config_instance(self, engine: SimilarityEngine):
        config = SimilarityConfig(**ONLY_EXACT)
        assert engine.score("Hunter x Hunter", "Hunter Hunter", config) == 0

    def test_custom_algorithm_set(self):
        engine = SimilarityEngine(algorithms=[ExactMatchAlgorithm])
        # Exact-only: containment ratio 8/11
        assert engine.score("One Piece", "One Piece Red") == 73


class TestBreakdown:
    def test_weighted_breakdown(self, engine: SimilarityEngine):
        breakdown = engine.breakdown("Tokyo Ghoul", "Tokyo Revengers")

        assert breakdown.path == PATH_WEIGHTED
        assert set(breakdown.scores) == {algorithm.name for algorithm in engine.algorithms}
        assert all(0.0 <= value <= 1.0 for value in breakdown.scores.values())
        assert breakdown.final == engine.score("Tokyo Ghoul", "Tokyo Revengers")

    def test_length_guard_breakdown(self, engine: SimilarityEngine):
        breakdown = engine.breakdown("Naruto", "Naruto Shippuden")

        assert breakdown.length_penalty_applied
        assert breakdown.length_ratio == pytest.approx(6 / 15)
        assert set(breakdown.scores) == {"basic"}
        assert breakdown.final == 21

    def test_short_circuit_paths(self, engine: SimilarityEngine):
        assert engine.breakdown("", "One Piece").path == PATH_EMPTY
        assert engine.breakdown("One Piece", "One Piece").path == PATH_IDENTICAL
        assert engine.breakdown("One Piece Vol. 2", "One Piece").path == PATH_IDENTICAL
        assert engine.breakdown("!!!", "???").path == PATH_EMPTY


class TestDebugMode:
    def test_observer_called_every_time(self):
        seen: list[SimilarityBreakdown] = []
        engine = SimilarityEngine(observer=seen.append)

        first = engine.score("Tokyo Ghoul", "Tokyo Revengers", {"debug": True})
        second = engine.score("Tokyo Ghoul", "Tokyo Revengers", {"debug": True})

        assert first == second
        assert len(seen) == 2
        assert seen[0].final == first
        assert seen[0].path == PATH_WEIGHTED

    def test_debug_bypasses_result_cache(self):
        seen: list[SimilarityBreakdown] = []
        engine = SimilarityEngine(observer=seen.append)

        normal = engine.score("Tokyo Ghoul", "Tokyo Revengers")
        debug = engine.score("Tokyo Ghoul", "Tokyo Revengers", {"debug": True})

        assert normal == debug
        assert len(seen) == 1
        assert engine.cache_stats()[RESULT_CACHE]["size"] == 1

    def test_debug_does_not_populate_result_cache(self):
        engine = SimilarityEngine(observer=lambda breakdown: None)
        engine.score("Tokyo Ghoul", "Tokyo Revengers", {"debug": True})
        assert engine.cache_stats()[RESULT_CACHE]["size"] == 0

    def test_observer_not_called_outside_debug(self):
        seen: list[SimilarityBreakdown] = []
        engine = SimilarityEngine(observer=seen.append)
        engine.score("Tokyo Ghoul", "Tokyo Revengers")
        assert seen == []

    def test_default_observer_logs_breakdown(self, engine: SimilarityEngine):
        with structlog.testing.capture_logs() as logs:
            value = engine.score("Tokyo Ghoul", "Tokyo Revengers", {"debug": True})

        events = [log for log in logs if log["event"] == "Similarity breakdown"]
        assert len(events) == 1
        assert events[0]["final"] == value
        assert events[0]["log_level"] == "debug"
        assert "jaro_winkler" in events[0]

    def test_default_observer_logs_length_penalty(self, engine: SimilarityEngine):
        with structlog.testing.capture_logs() as logs:
            engine.score("Naruto", "Naruto Shippuden", {"debug": True})

        events = [log for log in logs if log["event"] == "Length penalty applied"]
        assert len(events) == 1
        assert events[0]["ratio"] == 0.4
        assert events[0]["score"] == 21


class TestEngineCaching:
    def test_result_cache_hit_on_reversed_pair(self, engine: SimilarityEngine):
        engine.score("Tokyo Ghoul", "Tokyo Revengers")
        engine.score("Tokyo Revengers", "Tokyo Ghoul")
        assert engine.cache_stats()[RESULT_CACHE]["hits"] == 1

    def test_sub_scores_reused_across_configs(self, engine: SimilarityEngine):
        engine.score("Tokyo Ghoul", "Tokyo Revengers")
        engine.score("Tokyo Ghoul", "Tokyo Revengers", {"semantic_weight": 0.5})

        assert [algorithm.calls for algorithm in engine.algorithms] == [1] * 7
        assert engine.cache_stats()[RESULT_CACHE]["size"] == 2

    def test_result_after_eviction_is_unchanged(self):
        engine = SimilarityEngine(capacities={RESULT_CACHE: 1})
        first = engine.score("Tokyo Ghoul", "Tokyo Revengers")
        engine.score("Hunter x Hunter", "Hunter Hunter")

        assert engine.cache_stats()[RESULT_CACHE]["evictions"] == 1
        assert engine.score("Tokyo Ghoul", "Tokyo Revengers") == first

    def test_normalize_and_extract_words_cached(self, engine: SimilarityEngine):
        assert engine.normalize("One Piece") == "onepiece"
        assert engine.normalize("One Piece") == "onepiece"
        words = engine.extract_words("Attack on Titan")
        words.append("mutated")
        assert engine.extract_words("Attack on Titan") == ["attack", "titan"]

        stats = engine.cache_stats()
        assert stats["normalized"]["hits"] == 1
        assert stats["words"]["hits"] == 1

    def test_clear_caches(self, engine: SimilarityEngine):
        engine.score("Tokyo Ghoul", "Tokyo Revengers")
        engine.clear_caches()

        assert all(stats["size"] == 0 for stats in engine.cache_stats().values())
        assert all(algorithm.calls == 0 for algorithm in engine.algorithms)

    def test_engines_do_not_share_caches(self):
        first = SimilarityEngine()
        second = SimilarityEngine()
        first.score("Tokyo Ghoul", "Tokyo Revengers")
        assert second.cache_stats()[RESULT_CACHE]["size"] == 0


class TestScoreMetrics:
    def test_paths_counted(self, engine: SimilarityEngine):
        def sample(path: str) -> float:
            return REGISTRY.get_sample_value("similarity_scores_total", {"path": path}) or 0.0

        identical_before = sample("identical")
        cached_before = sample("cached")

        engine.score("Berserk", "Berserk")
        engine.score("Tokyo Ghoul", "Tokyo Revengers")
        engine.score("Tokyo Ghoul", "Tokyo Revengers")

        assert sample("identical") == identical_before + 1
        assert sample("cached") == cached_before + 1


class TestRounding:
    def test_half_up(self):
        assert _round_half_up(2.5) == 3
        assert _round_half_up(0.5) == 1
        assert _round_half_up(72.49) == 72
        assert _round_half_up(0.0) == 0


class TestModuleHelpers:
    def test_calculate_similarity(self):
        assert calculate_similarity("One Piece", "One Piece Vol. 5") == 100
        assert calculate_similarity("", "One Piece") == 0
        assert calculate_similarity("Naruto", "Naruto Shippuden") == 21

    def test_calculate_similarity_overrides(self):
        assert calculate_similarity("Hunter x Hunter", "Hunter Hunter", ONLY_EXACT) == 0

    def test_normalize_and_extract_helpers(self):
        assert normalize("Attack on Titan") == "attackontitan"
        assert extract_meaningful_words("Attack on Titan") == ["attack", "titan"]

    def test_default_engine_is_shared(self):
        assert get_default_engine() is get_default_engine()
        engine = get_default_engine()
        reset_default_engine()
        assert get_default_engine() is not engine

    def test_default_engine_uses_settings_capacities(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MANGAMATCH_PAIR_CACHE_SIZE", "5")
        monkeypatch.setenv("MANGAMATCH_RESULT_CACHE_SIZE", "7")
        reload_settings()
        reset_default_engine()

        caches = get_default_engine().caches
        assert caches["exact"].capacity == 5
        assert caches[RESULT_CACHE].capacity == 7

    def test_configured_similarity_settings(self, isolated_settings: Path):
        (isolated_settings / "settings.json").write_text(
            json.dumps({"similarity": {"lengthDifferenceThreshold": 0.3}})
        )
        reload_similarity_config()

        assert calculate_similarity("Naruto", "Naruto Shippuden") != 21
        # Explicit overrides still win over the configured section
        assert (
            calculate_similarity(
                "Naruto", "Naruto Shippuden", {"length_difference_threshold": 0.7}
            )
            == 21
        )
