"""Tests for the configuration loader."""

import os
from unittest.mock import patch

import pytest

from pigeon.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULTS,
    ConfigError,
    deep_merge,
    get_format_config,
    get_tmux_config,
    get_value,
    load_config,
    read_legacy_target_override,
    resolve_config_path,
)


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_nested_override(self):
        base = {"tmux": {"binary": None, "subprocess_timeout": 5}}
        merged = deep_merge(base, {"tmux": {"subprocess_timeout": 2}})
        assert merged == {"tmux": {"binary": None, "subprocess_timeout": 2}}

    def test_base_not_mutated(self):
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}


class TestResolveConfigPath:
    """Tests for resolve_config_path."""

    def test_explicit_path(self, isolated_config, tmp_path):
        assert resolve_config_path(tmp_path / "x.yaml") == tmp_path / "x.yaml"

    def test_env_var(self, isolated_config):
        assert resolve_config_path() == isolated_config

    def test_default_location(self, isolated_config, monkeypatch):
        monkeypatch.delenv("PIGEON_CONFIG")
        assert resolve_config_path() == DEFAULT_CONFIG_PATH.expanduser()


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_gives_defaults(self, isolated_config):
        config = load_config()
        assert config == DEFAULTS

    def test_empty_file_gives_defaults(self, isolated_config):
        isolated_config.write_text("")
        assert load_config() == DEFAULTS

    def test_yaml_values_merged(self, isolated_config):
        isolated_config.write_text(
            "tmux:\n  binary: /opt/bin/tmux\nformat:\n  max_code_chars: 2000\n"
        )

        config = load_config()

        assert config["tmux"]["binary"] == "/opt/bin/tmux"
        assert config["tmux"]["subprocess_timeout"] == 5
        assert config["format"]["max_code_chars"] == 2000
        assert config["format"]["default_question"] == "Explain this code"

    def test_env_overrides_yaml(self, isolated_config, monkeypatch):
        isolated_config.write_text("logging:\n  level: INFO\n")
        monkeypatch.setenv("PIGEON_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("PIGEON_TMUX_TIMEOUT", "1.5")

        config = load_config()

        assert config["logging"]["level"] == "DEBUG"
        assert config["tmux"]["subprocess_timeout"] == 1.5

    def test_enter_delay_env_override(self, isolated_config, monkeypatch):
        monkeypatch.setenv("PIGEON_TMUX_ENTER_DELAY_MS", "250")
        assert load_config()["tmux"]["text_enter_delay_ms"] == 250

    def test_env_override_does_not_mutate_defaults(self, isolated_config, monkeypatch):
        monkeypatch.setenv("PIGEON_TMUX_BINARY", "/x/tmux")
        load_config()
        assert DEFAULTS["tmux"]["binary"] is None

    def test_invalid_env_value(self, isolated_config, monkeypatch):
        monkeypatch.setenv("PIGEON_TMUX_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            load_config()

    def test_invalid_yaml(self, isolated_config):
        isolated_config.write_text("tmux: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config()

    def test_non_mapping_yaml(self, isolated_config):
        isolated_config.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_config()

    def test_explicit_path_argument(self, isolated_config, tmp_path):
        other = tmp_path / "other.yaml"
        other.write_text("logging:\n  level: WARNING\n")
        assert load_config(str(other))["logging"]["level"] == "WARNING"


class TestGetters:
    """Tests for get_value and section helpers."""

    def test_get_value_nested(self):
        assert get_value({"a": {"b": {"c": 1}}}, "a", "b", "c") == 1

    def test_get_value_default(self):
        assert get_value({"a": {}}, "a", "missing", default="x") == "x"

    def test_tmux_config_defaults(self):
        assert get_tmux_config({}) == {
            "binary": None,
            "subprocess_timeout": 5,
            "text_enter_delay_ms": 120,
        }

    def test_format_config_defaults(self):
        assert get_format_config({}) == {
            "default_question": "Explain this code",
            "max_code_chars": None,
        }


class TestLegacyTargetOverride:
    """Tests for read_legacy_target_override."""

    def test_missing_file(self, tmp_path):
        assert read_legacy_target_override(tmp_path / "config") is None

    def test_reads_value(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("# tmux session name\ntmux_target = ignored\ntmux_target=claude\n")
        # "tmux_target = ignored" has a space before '=' so it is not the key
        assert read_legacy_target_override(path) == "claude"

    def test_commented_value_ignored(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("# tmux session name (default: claude)\n# tmux_target=claude\n")
        assert read_legacy_target_override(path) is None

    def test_empty_value_ignored(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("tmux_target=   \n")
        assert read_legacy_target_override(path) is None

    def test_default_location_uses_home(self, tmp_path):
        legacy = tmp_path / ".config" / "pigeon" / "config"
        legacy.parent.mkdir(parents=True)
        legacy.write_text("tmux_target=work\n")
        with patch.dict(os.environ, {"HOME": str(tmp_path)}):
            assert read_legacy_target_override() == "work"
