# pyright: reportAny=false
"""Configuration models.

This module defines the Pydantic models for repocore settings and the
Config container that loads them from TOML files and the environment.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Final, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from repocore.config._loader import deep_merge, parse_env_vars, read_toml_file
from repocore.exceptions import ConfigLoadError

# Config file looked up in the working directory when no path is given.
CONFIG_FILE_NAME: Final = ".repocore.toml"


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    file: str = ""


class GitConfig(BaseModel):
    """Git executable configuration section.

    Attributes:
        binary_path: Name or path of the git executable.
        remote_name: Remote whose URL is attached to blame results.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    binary_path: str = "git"
    remote_name: str = "origin"


class Config(BaseModel):
    """Configuration container with typed access.

    Use the factory methods rather than the constructor to apply file and
    environment sources.

    Example:
        >>> config = Config.from_dict({"git": {"remote_name": "upstream"}})
        >>> config.git.remote_name
        'upstream'
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    git: GitConfig = Field(default_factory=GitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
        *,
        source: Path | None = None,
    ) -> Self:
        """Create configuration from a dictionary.

        Args:
            data: Dictionary of configuration values.
            source: File the values came from, for error reporting.

        Raises:
            ConfigLoadError: If a value has the wrong type.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigLoadError(msg, path=source) from e

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a single TOML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed or validated.
        """
        return cls.from_dict(read_toml_file(path), source=path)

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        *,
        include_env: bool = True,
    ) -> Self:
        """Load merged configuration.

        Sources are merged in precedence order: defaults, then the TOML file,
        then ``REPOCORE_`` environment variables.

        Args:
            config_path: Explicit config file. When None, CONFIG_FILE_NAME in
                the current directory is used if present.
            include_env: Include environment variables as a source.

        Raises:
            FileNotFoundError: If an explicit config file does not exist.
            ConfigLoadError: If a source cannot be parsed or validated.
        """
        merged: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

        path = config_path
        if path is None and (Path.cwd() / CONFIG_FILE_NAME).is_file():
            path = Path.cwd() / CONFIG_FILE_NAME
        if path is not None:
            merged = deep_merge(merged, read_toml_file(path))

        if include_env:
            merged = deep_merge(merged, parse_env_vars())

        return cls.from_dict(merged, source=path)
