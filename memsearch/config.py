"""Configuration loading for memsearch.

Settings come from YAML files in precedence order (user config, then
project config) and are finally overridden by ``MEMSEARCH_*`` environment
variables.
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal

import msgspec
import yaml

logger = logging.getLogger(__name__)


class StoreSettings(msgspec.Struct, kw_only=True):
    """Which document store to use and where it lives."""

    backend: Literal["memory", "sqlite"] = "sqlite"
    path: str | None = None


class SearchSettings(msgspec.Struct, kw_only=True):
    default_limit: int = 20
    max_limit: int = 100
    max_relevance_candidates: int = 1000
    highlight_tag: str = "mark"
    snippet_length: int = 150
    fuzzy_threshold: float = 80.0


class AnalyticsSettings(msgspec.Struct, kw_only=True):
    enabled: bool = True


class Settings(msgspec.Struct, kw_only=True):
    """Validated application settings."""

    store: StoreSettings = msgspec.field(default_factory=StoreSettings)
    search: SearchSettings = msgspec.field(default_factory=SearchSettings)
    analytics: AnalyticsSettings = msgspec.field(default_factory=AnalyticsSettings)
    log_level: str | None = None

    @property
    def db_path(self) -> Path:
        """SQLite database location, defaulting to the XDG data directory."""
        if self.store.path:
            return Path(self.store.path).expanduser()
        return get_data_dir() / "memsearch.db"


class Config:
    """Configuration file helpers."""

    @staticmethod
    def from_file(path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ValueError(f"Error reading config file: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return data

    @staticmethod
    def get_config_paths() -> list[Path]:
        """Get the default configuration file paths to check."""
        paths = []

        # User config
        xdg_config_home = Path(
            os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        )
        paths.append(xdg_config_home / "memsearch" / "config.yaml")

        # Project config
        paths.append(Path(".memsearch.yaml"))
        paths.append(Path("memsearch.yaml"))

        return paths

    @staticmethod
    def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
        """Merge multiple configuration dictionaries."""
        result: dict[str, Any] = {}
        for config in configs:
            result = _deep_merge(result, config)
        return result


def get_data_dir() -> Path:
    xdg_data_home = Path(
        os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
    )
    return xdg_data_home / "memsearch"


def env_overrides() -> dict[str, Any]:
    """Collect overrides from ``MEMSEARCH_*`` environment variables."""
    overrides: dict[str, Any] = {}
    if backend := os.environ.get("MEMSEARCH_STORE"):
        overrides.setdefault("store", {})["backend"] = backend.lower()
    if db_path := os.environ.get("MEMSEARCH_DB_PATH"):
        overrides.setdefault("store", {})["path"] = db_path
    if log_level := os.environ.get("MEMSEARCH_LOG_LEVEL"):
        overrides["log_level"] = log_level.upper()
    return overrides


def load_config(path: Path | None = None) -> Settings:
    """Load settings from files and environment variables.

    Args:
        path: Explicit config file, read after the default locations

    Raises:
        ValueError: If the explicit file or the merged settings are invalid
    """
    config: dict[str, Any] = {}

    # Last one wins for conflicting keys
    for default_path in Config.get_config_paths():
        if default_path.exists():
            try:
                config = Config.merge_configs(config, Config.from_file(default_path))
            except ValueError as e:
                logger.warning("Skipping config file %s: %s", default_path, e)

    if path is not None:
        config = Config.merge_configs(config, Config.from_file(path))

    config = Config.merge_configs(config, env_overrides())
    return settings_from_dict(config)


def settings_from_dict(data: dict[str, Any]) -> Settings:
    """Validate a raw configuration mapping."""
    try:
        return msgspec.convert(data, Settings)
    except msgspec.ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
