"""repocore exceptions."""

from collections.abc import Sequence
from pathlib import Path

from repocore.enums import RemoteOutcome, RepoPathViolation

# Error payload used whenever a remote operation is cancelled at the
# credential prompt. Callers match on it to skip error banners.
REMOTE_CANCELLED_BY_USER = "Operation cancelled by user"

REMOTE_TIMED_OUT = "Connecting to host timed out"


class RepoCoreError(Exception):
    """Base exception for repocore errors."""


# =============================================================================
# Path Exceptions
# =============================================================================


class RepoPathError(RepoCoreError, ValueError):
    """Raised when a string is not a valid repository-relative path.

    Attributes:
        path: The rejected input.
        violation: Which rule the input broke.
    """

    def __init__(
        self, message: str, *, path: str, violation: RepoPathViolation
    ) -> None:
        """Initialize with error message and path context.

        Args:
            message: Human-readable error message.
            path: The rejected input.
            violation: Which rule the input broke.
        """
        super().__init__(message)
        self.path: str = path
        self.violation: RepoPathViolation = violation


# =============================================================================
# Repository Exceptions
# =============================================================================


class RepositoryError(RepoCoreError):
    """Base exception for repository backend errors."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when no git repository exists at the requested location.

    Attributes:
        path: The directory that was searched.
    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialize with error message and path context.

        Args:
            message: Human-readable error message.
            path: The directory that was searched.
        """
        super().__init__(message)
        self.path: Path | None = path


class GitCommandError(RepositoryError):
    """Raised when the git executable exits with a non-zero status.

    Attributes:
        command: The argument vector that was run.
        exit_code: The process exit code, or None if it never started.
        stderr: Captured standard error, verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        """Initialize with error message and command context.

        Args:
            message: Human-readable error message.
            command: The argument vector that was run.
            exit_code: The process exit code, or None if it never started.
            stderr: Captured standard error, verbatim.
        """
        super().__init__(message)
        self.command: tuple[str, ...] = tuple(command)
        self.exit_code: int | None = exit_code
        self.stderr: str = stderr


class GitOutputParseError(RepositoryError):
    """Raised when git produces output that cannot be decoded.

    Attributes:
        line: The offending record.
        field: The field that was missing or malformed, if known.
    """

    def __init__(
        self, message: str, *, line: str | None = None, field: str | None = None
    ) -> None:
        """Initialize with error message and parse context.

        Args:
            message: Human-readable error message.
            line: The offending record.
            field: The field that was missing or malformed, if known.
        """
        super().__init__(message)
        self.line: str | None = line
        self.field: str | None = field


class GitObjectNotFoundError(RepositoryError, KeyError):
    """Raised when a revision does not name a commit.

    Attributes:
        revision: The revision that was requested.
    """

    def __init__(self, message: str, *, revision: str) -> None:
        """Initialize with error message and revision context.

        Args:
            message: Human-readable error message.
            revision: The revision that was requested.
        """
        super().__init__(message)
        self.revision: str = revision

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class RemoteOperationError(RepositoryError):
    """Raised when a push, pull or fetch does not succeed.

    Attributes:
        outcome: Whether the user cancelled, the prompt timed out, or git failed.
        stderr: Captured standard error when git failed, otherwise empty.
    """

    def __init__(
        self, message: str, *, outcome: RemoteOutcome, stderr: str = ""
    ) -> None:
        """Initialize with error message and outcome context.

        Args:
            message: Human-readable error message.
            outcome: Classification of the failure.
            stderr: Captured standard error when git failed.
        """
        super().__init__(message)
        self.outcome: RemoteOutcome = outcome
        self.stderr: str = stderr

    @property
    def cancelled_by_user(self) -> bool:
        """Whether the user dismissed the credential prompt."""
        return self.outcome is RemoteOutcome.CANCELLED_BY_USER


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(RepoCoreError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column
