"""Tests for configuration loading."""

from pathlib import Path

import pytest

from memsearch.config import (
    Config,
    Settings,
    _deep_merge,
    env_overrides,
    load_config,
    settings_from_dict,
)


@pytest.fixture
def user_config(tmp_path):
    """Write the per-user configuration file."""

    def write(text):
        path = tmp_path / "config" / "memsearch" / "config.yaml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return write


class TestDefaults:
    """Test settings without any configuration."""

    def test_defaults(self):
        settings = load_config()

        assert settings.store.backend == "sqlite"
        assert settings.search.default_limit == 20
        assert settings.search.max_limit == 100
        assert settings.search.highlight_tag == "mark"
        assert settings.analytics.enabled
        assert settings.log_level is None

    def test_default_db_path(self, tmp_path):
        assert Settings().db_path == tmp_path / "data" / "memsearch" / "memsearch.db"

    def test_explicit_db_path(self):
        settings = settings_from_dict({"store": {"path": "~/memorials.db"}})

        assert settings.db_path == Path.home() / "memorials.db"


class TestConfigFiles:
    """Test reading YAML configuration files."""

    def test_user_config(self, user_config):
        user_config("search:\n  default_limit: 5\n")

        assert load_config().search.default_limit == 5

    def test_project_config_overrides_user(self, user_config, tmp_path, monkeypatch):
        user_config("search:\n  default_limit: 5\n  max_limit: 50\n")
        project = tmp_path / "project"
        project.mkdir()
        (project / ".memsearch.yaml").write_text(
            "search:\n  default_limit: 7\n", encoding="utf-8"
        )
        monkeypatch.chdir(project)

        settings = load_config()

        assert settings.search.default_limit == 7
        assert settings.search.max_limit == 50

    def test_explicit_file_wins(self, user_config, tmp_path):
        user_config("store:\n  backend: sqlite\n")
        explicit = tmp_path / "explicit.yaml"
        explicit.write_text("store:\n  backend: memory\n", encoding="utf-8")

        assert load_config(explicit).store.backend == "memory"

    def test_broken_default_file_skipped(self, user_config, caplog):
        user_config("search: [unclosed")

        settings = load_config()

        assert settings.search.default_limit == 20
        assert "Skipping config file" in caplog.text

    def test_broken_explicit_file(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("search: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError, match="must contain a mapping"):
            Config.from_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert Config.from_file(path) == {}


class TestEnvironment:
    """Test MEMSEARCH_* overrides."""

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("MEMSEARCH_STORE", "Memory")
        monkeypatch.setenv("MEMSEARCH_DB_PATH", "/tmp/x.db")
        monkeypatch.setenv("MEMSEARCH_LOG_LEVEL", "debug")

        assert env_overrides() == {
            "store": {"backend": "memory", "path": "/tmp/x.db"},
            "log_level": "DEBUG",
        }

    def test_environment_beats_files(self, user_config, monkeypatch):
        user_config("store:\n  backend: sqlite\n")
        monkeypatch.setenv("MEMSEARCH_STORE", "memory")

        assert load_config().store.backend == "memory"

    def test_invalid_backend(self, monkeypatch):
        monkeypatch.setenv("MEMSEARCH_STORE", "postgres")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config()


class TestHelpers:
    """Test merging helpers."""

    def test_deep_merge(self):
        base = {"search": {"default_limit": 5, "max_limit": 50}, "log_level": "INFO"}
        override = {"search": {"default_limit": 10}, "store": {"backend": "memory"}}

        assert _deep_merge(base, override) == {
            "search": {"default_limit": 10, "max_limit": 50},
            "log_level": "INFO",
            "store": {"backend": "memory"},
        }
        assert base["search"]["default_limit"] == 5

    def test_merge_configs(self):
        merged = Config.merge_configs({"a": 1}, {"b": 2}, {"a": 3})

        assert merged == {"a": 3, "b": 2}

    def test_invalid_value_types(self):
        with pytest.raises(ValueError):
            settings_from_dict({"search": {"default_limit": "many"}})
