"""
Tests for configuration loading.

These tests verify:
- Environment variables map onto Config fields
- Per-kind toggles accept upper-case kind names
- Config files load, and broken ones raise ConfigurationError
- get_config() is cached until reset_config()
"""

from __future__ import annotations

import json
import os

import pytest

from fsprocessor.classify import READ_STREAM, WRITE_FILE
from fsprocessor.config import (
    Config,
    _parse_env_bool,
    get_config,
    load_config_from_env,
    load_config_from_file,
    reset_config,
)
from fsprocessor.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("FSPROCESSOR_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


# =============================================================================
# Environment
# =============================================================================


class TestEnvConfig:
    """Tests for load_config_from_env."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("1", True), ("YES", True), ("on", True), ("false", False), ("0", False)],
    )
    def test_parse_env_bool(self, raw, expected) -> None:
        assert _parse_env_bool(raw) is expected

    def test_parse_env_bool_default(self) -> None:
        assert _parse_env_bool(None, True) is True
        assert _parse_env_bool(None) is False

    def test_defaults(self) -> None:
        config = load_config_from_env()

        assert config == Config()
        assert config.separate_functions is True
        assert config.merge_functions is True
        assert config.include_activities is False
        assert config.signatures == "node-8"

    def test_global_settings(self, monkeypatch) -> None:
        monkeypatch.setenv("FSPROCESSOR_INCLUDE_ACTIVITIES", "true")
        monkeypatch.setenv("FSPROCESSOR_MERGE_FUNCTIONS", "false")
        monkeypatch.setenv("FSPROCESSOR_FAIL_FAST", "1")
        monkeypatch.setenv("FSPROCESSOR_TRACING_ENABLED", "yes")

        config = load_config_from_env()

        assert config.include_activities is True
        assert config.merge_functions is False
        assert config.fail_fast is True
        assert config.tracing_enabled is True

    def test_processor_toggles(self, monkeypatch) -> None:
        monkeypatch.setenv("FSPROCESSOR_PROCESSOR_WRITEFILE_ENABLED", "false")
        monkeypatch.setenv("FSPROCESSOR_PROCESSOR_CREATEREADSTREAM_ENABLED", "true")

        config = load_config_from_env()

        assert not config.is_kind_enabled(WRITE_FILE)
        assert config.is_kind_enabled(READ_STREAM)
        assert config.is_kind_enabled("fs.readFile")

    def test_unknown_processor_setting_ignored(self, monkeypatch, caplog) -> None:
        monkeypatch.setenv("FSPROCESSOR_PROCESSOR_WRITEFILE_COLOR", "blue")

        config = load_config_from_env()

        assert config.processors == {}
        assert "Unknown processor setting" in caplog.text


# =============================================================================
# Files
# =============================================================================


class TestFileConfig:
    """Tests for load_config_from_file."""

    def test_valid_file(self, tmp_path) -> None:
        path = tmp_path / "fsprocessor.json"
        path.write_text(json.dumps({
            "include_activities": True,
            "processors": {WRITE_FILE: {"enabled": False}},
        }))

        config = load_config_from_file(path)

        assert config.include_activities is True
        assert not config.is_kind_enabled(WRITE_FILE)

    def test_yaml_file(self, tmp_path) -> None:
        path = tmp_path / "fsprocessor.yaml"
        path.write_text(
            "merge_functions: false\n"
            "processors:\n"
            "  fs.createWriteStream:\n"
            "    enabled: false\n"
        )

        config = load_config_from_file(path)

        assert config.merge_functions is False
        assert not config.is_kind_enabled("fs.createWriteStream")

    def test_missing_file_falls_back_to_env(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("FSPROCESSOR_MERGE_FUNCTIONS", "false")

        config = load_config_from_file(tmp_path / "missing.json")

        assert config.merge_functions is False

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config_from_file(path)
        assert exc_info.value.config_key == "FSPROCESSOR_CONFIG_FILE"

    def test_not_an_object(self, tmp_path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[]")

        with pytest.raises(ConfigurationError):
            load_config_from_file(path)

    def test_invalid_values(self, tmp_path) -> None:
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps({"fail_fast": "sometimes"}))

        with pytest.raises(ConfigurationError, match="error"):
            load_config_from_file(path)


# =============================================================================
# Cache
# =============================================================================


class TestGetConfig:
    """Tests for the cached global configuration."""

    def test_cached(self) -> None:
        assert get_config() is get_config()

    def test_reset_reloads(self, monkeypatch) -> None:
        assert get_config().fail_fast is False

        monkeypatch.setenv("FSPROCESSOR_FAIL_FAST", "true")
        assert get_config().fail_fast is False

        reset_config()
        assert get_config().fail_fast is True

    def test_config_file_variable(self, tmp_path, monkeypatch) -> None:
        path = tmp_path / "fsprocessor.json"
        path.write_text(json.dumps({"signatures": "node-8", "tracing_enabled": True}))
        monkeypatch.setenv("FSPROCESSOR_CONFIG_FILE", str(path))

        assert get_config().tracing_enabled is True
