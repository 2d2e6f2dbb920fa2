"""Tests for validator configuration loading."""

import logging

import pytest

from microagent.config.validator_config import (
    WALK_DEPTH_MAX,
    ValidatorConfig,
    config_from_dict,
    get_config,
    load_config,
    reset_config,
)
from microagent.validator.errors import ConfigError


class TestBundledConfig:

    def test_defaults(self):
        config = get_config()

        assert config.default_level == "minimum"
        assert config.max_walk_depth == 8
        assert ".py" in config.script_extensions
        assert "uv run" in config.interpreters
        assert config.source.endswith("validator.yaml")

    def test_cached(self):
        assert get_config() is get_config()

    def test_reset(self):
        first = get_config()
        reset_config()
        assert get_config() is not first

    def test_interpreter_prefixes_longest_first(self):
        prefixes = get_config().interpreter_prefixes()

        assert prefixes.index(("bun", "run")) < prefixes.index(("bun",))
        assert all(len(a) >= len(b) for a, b in zip(prefixes, prefixes[1:]))


class TestEnvironmentOverrides:
    """Environment variables take precedence over YAML."""

    def test_level(self, monkeypatch):
        monkeypatch.setenv("MICROAGENT_LEVEL", "Complete")
        assert get_config().default_level == "complete"

    def test_invalid_level_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("MICROAGENT_LEVEL", "gold")

        with caplog.at_level(logging.WARNING, logger="microagent.config"):
            config = get_config()

        assert config.default_level == "minimum"
        assert "Ignoring MICROAGENT_LEVEL" in caplog.text

    def test_walk_depth(self, monkeypatch):
        monkeypatch.setenv("MICROAGENT_MAX_WALK_DEPTH", "3")
        assert get_config().max_walk_depth == 3

    @pytest.mark.parametrize(
        "raw, expected",
        [("0", 1), ("-5", 1), ("1000", WALK_DEPTH_MAX), ("deep", 8)],
    )
    def test_walk_depth_clamped(self, monkeypatch, caplog, raw, expected):
        monkeypatch.setenv("MICROAGENT_MAX_WALK_DEPTH", raw)

        with caplog.at_level(logging.WARNING, logger="microagent.config"):
            config = get_config()

        assert config.max_walk_depth == expected
        assert caplog.records


class TestAlternateConfig:

    def test_load_file(self, tmp_path):
        path = tmp_path / "validator.yaml"
        path.write_text(
            "defaults:\n  level: complete\n  max_walk_depth: 4\nscript_extensions: [py, .SH]\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.default_level == "complete"
        assert config.max_walk_depth == 4
        assert config.script_extensions == (".py", ".sh")
        assert config.interpreters == ValidatorConfig().interpreters
        assert config.source == str(path)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        config = load_config(path)

        assert config.default_level == "minimum"
        assert config.script_extensions == ValidatorConfig().script_extensions

    def test_none_path_returns_bundled(self):
        assert load_config(None) is get_config()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_yaml_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("defaults: {level: [\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_config_error_is_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(tmp_path / "missing.yaml")

    def test_string_value_becomes_tuple(self):
        config = config_from_dict({"interpreters": "python"})
        assert config.interpreters == ("python",)
