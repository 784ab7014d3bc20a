"""Unit tests for the TOML configuration loader."""

import tomllib
from pathlib import Path

import pytest

from retainer.config.loader import (
    deep_merge,
    get_config_dir,
    get_environment,
    load_config,
    load_toml,
)


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_nested_sections_merge(self) -> None:
        """Should merge tables key by key and keep untouched sections."""
        base = {
            "reasoning": {"near_tie_gap": 0.1, "fallback_confidence": 0.3},
            "learning": {"pattern_reinforce": 0.05},
        }
        override = {"reasoning": {"near_tie_gap": 0.2}, "log_level": "DEBUG"}

        assert deep_merge(base, override) == {
            "reasoning": {"near_tie_gap": 0.2, "fallback_confidence": 0.3},
            "learning": {"pattern_reinforce": 0.05},
            "log_level": "DEBUG",
        }

    def test_scalar_replaces_table(self) -> None:
        assert deep_merge({"providers": {"llm": {"model": "a"}}}, {"providers": "off"}) == {
            "providers": "off"
        }

    def test_inputs_not_mutated(self) -> None:
        base = {"providers": {"llm": {"model": "groq/llama"}}}
        override = {"providers": {"llm": {"model": "mock/test"}}}

        deep_merge(base, override)

        assert base == {"providers": {"llm": {"model": "groq/llama"}}}
        assert override == {"providers": {"llm": {"model": "mock/test"}}}

    @pytest.mark.parametrize(
        ("base", "override"), [({"a": 1}, {}), ({}, {"a": 1})]
    )
    def test_empty_side(self, base, override) -> None:
        assert deep_merge(base, override) == {"a": 1}


class TestLoadToml:
    """Tests for load_toml function."""

    def test_load_valid_toml(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "agents.toml"
        toml_file.write_text("[agents]\nshort_term_ttl_seconds = 60\n")

        assert load_toml(toml_file) == {"agents": {"short_term_ttl_seconds": 60}}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="nonexistent.toml"):
            load_toml(tmp_path / "nonexistent.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        invalid_file = tmp_path / "invalid.toml"
        invalid_file.write_text("fallback_models = [unclosed")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml(invalid_file)


class TestEnvironmentAndDirectory:
    """Tests for get_environment and get_config_dir."""

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("RETAINER_ENV", raising=False)
        assert get_environment() == "development"

        monkeypatch.setenv("RETAINER_ENV", "production")
        assert get_environment() == "production"

    def test_explicit_directory(self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RETAINER_CONFIG_DIR", str(test_config_dir))
        assert get_config_dir() == test_config_dir

    def test_explicit_directory_missing(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RETAINER_CONFIG_DIR", str(tmp_path / "missing"))

        with pytest.raises(FileNotFoundError, match="RETAINER_CONFIG_DIR"):
            get_config_dir()

    def test_found_walking_up(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should find config/ in a parent of the working directory."""
        (tmp_path / "config").mkdir()
        nested = tmp_path / "service" / "worker"
        nested.mkdir(parents=True)
        monkeypatch.delenv("RETAINER_CONFIG_DIR", raising=False)
        monkeypatch.chdir(nested)

        assert get_config_dir() == tmp_path / "config"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_default_only(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        mock_toml_files({"default.toml": "app_name = 'retainer'\ndebug = false"})
        monkeypatch.setenv("RETAINER_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("RETAINER_ENV", "staging")

        assert load_config() == {"app_name": "retainer", "debug": False}

    def test_environment_overlay(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should merge the overlay over default.toml."""
        mock_toml_files(
            {
                "default.toml": "[providers.llm]\nmodel = 'groq/llama'\ntimeout = 30.0",
                "test.toml": "[providers.llm]\nmodel = 'mock/test'",
            }
        )
        monkeypatch.setenv("RETAINER_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("RETAINER_ENV", "test")

        assert load_config() == {"providers": {"llm": {"model": "mock/test", "timeout": 30.0}}}

    def test_missing_default(self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RETAINER_CONFIG_DIR", str(test_config_dir))

        with pytest.raises(FileNotFoundError, match="default.toml"):
            load_config()
