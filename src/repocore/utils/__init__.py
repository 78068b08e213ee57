"""Utility functions for repocore."""

from repocore.utils._exec import (
    CommandResult,
    GitCommand,
    creation_flags,
    run_command,
    truncate_output,
)
from repocore.utils._logging import LogFormatType, create_logger, create_null_logger

__all__ = [
    "CommandResult",
    "GitCommand",
    "LogFormatType",
    "create_logger",
    "create_null_logger",
    "creation_flags",
    "run_command",
    "truncate_output",
]
