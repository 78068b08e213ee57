"""Configuration loading for repocore.

Settings come from a TOML file and ``REPOCORE_`` environment variables,
validated into frozen Pydantic models.
"""

from repocore.config._load import safe_load_config
from repocore.config._loader import deep_merge, parse_env_vars, read_toml_file
from repocore.config._models import (
    CONFIG_FILE_NAME,
    Config,
    GitConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "Config",
    "GitConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "deep_merge",
    "parse_env_vars",
    "read_toml_file",
    "safe_load_config",
]
