"""repocore: a unified interface over a local git repository."""

from repocore.enums import AskPassResult, DiffType, PushOptions, RemoteOutcome, ResetMode
from repocore.exceptions import (
    REMOTE_CANCELLED_BY_USER,
    GitCommandError,
    GitObjectNotFoundError,
    GitOutputParseError,
    RemoteOperationError,
    RepoCoreError,
    RepoPathError,
    RepositoryError,
    RepositoryNotFoundError,
)

__all__ = [
    "REMOTE_CANCELLED_BY_USER",
    "AskPassResult",
    "DiffType",
    "GitCommandError",
    "GitObjectNotFoundError",
    "GitOutputParseError",
    "PushOptions",
    "RemoteOperationError",
    "RemoteOutcome",
    "RepoCoreError",
    "RepoPathError",
    "RepositoryError",
    "RepositoryNotFoundError",
    "ResetMode",
]
