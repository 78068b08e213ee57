"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from repocore.config import (
    CONFIG_FILE_NAME,
    Config,
    LogFormat,
    LogLevel,
    deep_merge,
    parse_env_vars,
    read_toml_file,
    safe_load_config,
)
from repocore.exceptions import ConfigLoadError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run each test in an empty directory without REPOCORE_ variables."""
    for key in list(os.environ):
        if key.startswith("REPOCORE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


class TestDeepMerge:
    def test_merges_nested_dicts(self) -> None:
        base = {"git": {"binary_path": "git", "remote_name": "origin"}}
        override = {"git": {"remote_name": "upstream"}}

        assert deep_merge(base, override) == {
            "git": {"binary_path": "git", "remote_name": "upstream"}
        }

    def test_replaces_lists_and_scalars(self) -> None:
        assert deep_merge({"a": [1, 2], "b": 1}, {"a": [3], "b": 2}) == {"a": [3], "b": 2}

    def test_does_not_mutate_inputs(self) -> None:
        base = {"a": {"b": 1}}
        override = {"a": {"c": 2}}

        result = deep_merge(base, override)
        result["a"]["b"] = 99

        assert base == {"a": {"b": 1}}
        assert override == {"a": {"c": 2}}


class TestReadTomlFile:
    def test_parses_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text('[git]\nbinary_path = "/usr/bin/git"\n')

        assert read_toml_file(path) == {"git": {"binary_path": "/usr/bin/git"}}

    def test_parse_error_has_location(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[git\n")

        with pytest.raises(ConfigLoadError) as exc_info:
            read_toml_file(path)

        assert exc_info.value.path == path
        assert "Failed to parse TOML file" in str(exc_info.value)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_toml_file(tmp_path / "missing.toml")


class TestParseEnvVars:
    def test_nested_keys_and_types(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REPOCORE_GIT__REMOTE_NAME", "upstream")
        monkeypatch.setenv("REPOCORE_LOGGING__LEVEL", "debug")
        monkeypatch.setenv("REPOCORE_EXTRA__FLAG", "true")
        monkeypatch.setenv("REPOCORE_EXTRA__COUNT", "3")
        monkeypatch.setenv("REPOCORE_EXTRA__ITEMS", '["a", "b"]')

        result = parse_env_vars()

        assert result["git"] == {"remote_name": "upstream"}
        assert result["logging"] == {"level": "debug"}
        assert result["extra"] == {"flag": True, "count": 3, "items": ["a", "b"]}

    def test_ignores_other_prefixes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTHER_GIT__REMOTE_NAME", "x")
        assert parse_env_vars() == {}


class TestConfig:
    def test_defaults(self) -> None:
        config = Config()

        assert config.git.binary_path == "git"
        assert config.git.remote_name == "origin"
        assert config.logging.level is LogLevel.INFO
        assert config.logging.format is LogFormat.TEXT
        assert config.logging.file == ""

    def test_frozen(self) -> None:
        config = Config()
        with pytest.raises(ValueError, match="frozen"):
            config.git = config.git  # pyright: ignore[reportAttributeAccessIssue]

    def test_from_dict_ignores_unknown_keys(self) -> None:
        config = Config.from_dict({"git": {"remote_name": "upstream"}, "unknown": 1})
        assert config.git.remote_name == "upstream"

    def test_from_dict_invalid_value(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError, match="Invalid configuration") as exc_info:
            Config.from_dict({"logging": {"level": "loud"}}, source=tmp_path / "x.toml")

        assert exc_info.value.path == tmp_path / "x.toml"

    def test_load_uses_file_in_cwd(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text('[logging]\nformat = "json"\n')

        assert Config.load().logging.format is LogFormat.JSON

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "custom.toml"
        path.write_text('[git]\nremote_name = "fork"\nbinary_path = "/opt/git"\n')
        monkeypatch.setenv("REPOCORE_GIT__REMOTE_NAME", "upstream")

        config = Config.load(path)

        assert config.git.remote_name == "upstream"
        assert config.git.binary_path == "/opt/git"

    def test_env_can_be_excluded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REPOCORE_GIT__REMOTE_NAME", "upstream")
        assert Config.load(include_env=False).git.remote_name == "origin"

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.toml"
        path.write_text('[logging]\nlevel = "error"\n')

        assert Config.from_file(path).logging.level is LogLevel.ERROR


class TestSafeLoadConfig:
    def test_success(self) -> None:
        config, error = safe_load_config()

        assert config == Config()
        assert error is None

    def test_missing_explicit_file_exits(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            safe_load_config(config_path=tmp_path / "missing.toml")

        assert exc_info.value.code == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_invalid_file_warns_and_uses_defaults(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("not = [valid\n")

        config, error = safe_load_config(config_path=path)

        assert config == Config()
        assert error is not None
        assert "Failed to load config" in error
        assert "Warning:" in capsys.readouterr().err

    def test_strict_mode_exits(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REPOCORE_STRICT_CONFIG", "1")
        path = tmp_path / "bad.toml"
        path.write_text("not = [valid\n")

        with pytest.raises(SystemExit) as exc_info:
            safe_load_config(config_path=path)

        assert exc_info.value.code == 1
