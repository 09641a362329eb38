"""Shared fixtures for the test suite."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from mangamatch.core.config import reload_settings
from mangamatch.core.similarity import (
    SimilarityEngine,
    reload_similarity_config,
    reset_default_engine,
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point settings at an empty per-test config dir and drop cached state."""
    for name in list(os.environ):
        if name.startswith("MANGAMATCH_"):
            monkeypatch.delenv(name, raising=False)

    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("MANGAMATCH_CONFIG_DIR", str(config_dir))

    reload_settings()
    reload_similarity_config()
    reset_default_engine()
    yield config_dir
    reset_default_engine()


@pytest.fixture
def engine() -> SimilarityEngine:
    """Fresh engine with its own empty caches."""
    return SimilarityEngine()
