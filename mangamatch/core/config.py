"""Application configuration using Pydantic Settings."""

from __future__ import annotations

import json
import os
from functools import lru_cache, partial
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from mangamatch.core.similarity.cache import (
    DEFAULT_CAPACITIES,
    NORMALIZED_CACHE,
    PAIR_CACHE_SIZE,
    RESULT_CACHE,
    SINGLE_STRING_CACHE_SIZE,
    WORDS_CACHE,
)

SETTINGS_FILENAME = "settings.json"

# Settings keys that are not flat Settings fields
_NESTED_SECTIONS = ("similarity",)


def _default_config_dir() -> Path:
    # MANGAMATCH_CONFIG_DIR wins, then a container mount, then ./data/config
    env_dir = os.environ.get("MANGAMATCH_CONFIG_DIR", "")
    if env_dir:
        return Path(env_dir)
    if Path("/config").exists():
        return Path("/config")
    return Path.cwd() / "data" / "config"


def json_config_settings_source(config_dir: Path | str | None = None) -> dict[str, Any]:
    """Read flat Settings values from settings.json in the config directory.

    ``config_dir`` is the directory passed to Settings(config_dir=...), if any.
    Without it the default directory (MANGAMATCH_CONFIG_DIR first) is used.

    Keys under a "cache" section are lifted to the top level. The "similarity"
    section belongs to get_similarity_config and is skipped here. A missing or
    unreadable file contributes nothing.
    """
    settings_file = Path(config_dir or _default_config_dir()) / SETTINGS_FILENAME
    if not settings_file.exists():
        return {}

    try:
        with settings_file.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}

    if not isinstance(data, dict):
        return {}

    # Support {"cache": {"pair_cache_size": ...}} as well as flat keys
    flattened: dict[str, Any] = {}
    cache_section = data.get("cache")
    if isinstance(cache_section, dict):
        flattened.update(cache_section)
    for key, value in data.items():
        if key == "cache" or key in _NESTED_SECTIONS:
            continue
        flattened[key] = value

    return {k.lower(): v for k, v in flattened.items()}


class Settings(BaseSettings):
    """Process-wide settings for logging and the similarity caches.

    Values come from MANGAMATCH_* environment variables, then a .env file,
    then settings.json. Keyword arguments passed to Settings() beat all three.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MANGAMATCH_",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Highest priority first; settings.json only fills what nothing else sets
        config_dir = getattr(init_settings, "init_kwargs", {}).get("config_dir")
        return (  # type: ignore[return-value]
            init_settings,
            env_settings,
            dotenv_settings,
            partial(json_config_settings_source, config_dir),
        )

    # Application
    env: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Application environment (development, production, testing)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    config_dir: Path = Field(
        default_factory=_default_config_dir,
        description="Directory holding settings.json",
    )

    logs_dir: Path | None = Field(
        default=None,
        description="Directory for JSON log files (stdout only when unset)",
    )

    # Bounded cache capacities
    normalized_cache_size: int = Field(
        default=SINGLE_STRING_CACHE_SIZE,
        ge=1,
        description="Capacity of the normalized-title cache",
    )
    words_cache_size: int = Field(
        default=SINGLE_STRING_CACHE_SIZE,
        ge=1,
        description="Capacity of the extracted-words cache",
    )
    pair_cache_size: int = Field(
        default=PAIR_CACHE_SIZE,
        ge=1,
        description="Capacity of each per-algorithm pair cache",
    )
    result_cache_size: int = Field(
        default=PAIR_CACHE_SIZE,
        ge=1,
        description="Capacity of the combined-score cache",
    )

    @property
    def settings_file(self) -> Path:
        """Path to settings.json."""
        return self.config_dir / SETTINGS_FILENAME

    @property
    def is_debug(self) -> bool:
        """Check if running in debug/development mode."""
        return self.env == "development" or self.log_level == "DEBUG"

    def cache_capacities(self) -> dict[str, int]:
        """Capacity for every named similarity cache.

        Returns:
            Mapping of cache name to capacity, suitable for SimilarityEngine
        """
        capacities = {name: self.pair_cache_size for name in DEFAULT_CAPACITIES}
        capacities[NORMALIZED_CACHE] = self.normalized_cache_size
        capacities[WORDS_CACHE] = self.words_cache_size
        capacities[RESULT_CACHE] = self.result_cache_size
        return capacities


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings instance shared until reload_settings() is called."""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached Settings and build a fresh one from every source."""
    get_settings.cache_clear()
    return get_settings()
