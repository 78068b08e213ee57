"""Execution utilities for the git executable.

This module provides the command builder shared by every backend operation
that shells out to git, and a blocking runner with output capture and error
reporting. Network commands are spawned asynchronously by the remote engine
from the same builder.
"""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Self

from structlog.typing import FilteringBoundLogger

from repocore.exceptions import GitCommandError

# Maximum stderr size kept in log events, in bytes
MAX_LOGGED_OUTPUT_BYTES: int = 4096


def truncate_output(output: str, max_bytes: int = MAX_LOGGED_OUTPUT_BYTES) -> str:
    """Truncate output to max bytes, preserving valid UTF-8.

    Args:
        output: The string to truncate.
        max_bytes: Maximum size in bytes.

    Returns:
        Truncated string with indicator if truncated.
    """
    encoded = output.encode("utf-8")
    if len(encoded) <= max_bytes:
        return output
    return encoded[:max_bytes].decode("utf-8", errors="ignore") + "\n... [output truncated]"


def creation_flags() -> int:
    """Process creation flags that keep git from opening console windows."""
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


@dataclass(frozen=True, slots=True)
class GitCommand:
    """An invocation of the git executable.

    Attributes:
        args: Arguments after the binary, starting with the subcommand.
        cwd: Working directory; always the repository working directory.
        env: Variables overlaid on the inherited environment.
        stdin: Optional data piped to the process.
        binary: Path or name of the git executable.
    """

    args: tuple[str, ...]
    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict)
    stdin: bytes | None = None
    binary: str = "git"

    @classmethod
    def build(
        cls,
        binary: str,
        cwd: Path,
        *args: str,
        env: Mapping[str, str] | None = None,
        stdin: bytes | None = None,
    ) -> Self:
        """Create a command from positional arguments."""
        return cls(args=args, cwd=cwd, env=dict(env or {}), stdin=stdin, binary=binary)

    @property
    def argv(self) -> list[str]:
        return [self.binary, *self.args]

    def full_env(self) -> dict[str, str]:
        """Inherited environment with this command's overlay applied."""
        return {**os.environ, **self.env}

    def with_env(self, overlay: Mapping[str, str]) -> GitCommand:
        """Return a copy with additional environment variables."""
        return replace(self, env={**self.env, **overlay})

    def __str__(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured output of a successful command.

    Attributes:
        stdout: Decoded standard output.
        stderr: Decoded standard error.
    """

    stdout: str
    stderr: str


def run_command(
    command: GitCommand,
    *,
    error_message: str | None = None,
    logger: FilteringBoundLogger | None = None,
) -> CommandResult:
    """Run a git command to completion.

    Args:
        command: The command to run.
        error_message: Prefix for the error raised on failure. Defaults to a
            message naming the subcommand.
        logger: Optional logger for command tracing.

    Returns:
        CommandResult with decoded output.

    Raises:
        GitCommandError: If git cannot be started or exits with a non-zero status.
    """
    if logger is not None:
        logger.debug("git_command", argv=command.argv, cwd=str(command.cwd))

    try:
        completed = subprocess.run(  # noqa: S603
            command.argv,
            cwd=command.cwd,
            env=command.full_env(),
            input=command.stdin,
            stdin=subprocess.DEVNULL if command.stdin is None else None,
            capture_output=True,
            check=False,
            creationflags=creation_flags(),
        )
    except OSError as e:
        msg = f"Failed to run {command.binary}: {e}"
        raise GitCommandError(msg, command=command.argv) from e

    stdout = completed.stdout.decode("utf-8", errors="replace")
    stderr = completed.stderr.decode("utf-8", errors="replace")

    if completed.returncode != 0:
        subcommand = command.args[0] if command.args else command.binary
        prefix = error_message or f"git {subcommand} failed"
        if logger is not None:
            logger.error(
                "git_command_failed",
                argv=command.argv,
                exit_code=completed.returncode,
                stderr=truncate_output(stderr),
            )
        raise GitCommandError(
            f"{prefix}:\n{stderr}",
            command=command.argv,
            exit_code=completed.returncode,
            stderr=stderr,
        )

    return CommandResult(stdout=stdout, stderr=stderr)
