"""Enumeration types for repocore."""

from enum import StrEnum


class RepoPathViolation(StrEnum):
    """Reasons a string is rejected as a repository-relative path."""

    EMPTY = "empty"
    ROOTED = "rooted"
    PREFIXED = "prefixed"
    CURRENT_DIR = "current_dir"
    PARENT_DIR = "parent_dir"


class PushOptions(StrEnum):
    """Mutually exclusive modifiers for ``git push``.

    The value is the flag passed to git.
    """

    SET_UPSTREAM = "--set-upstream"
    FORCE = "--force-with-lease"


class ResetMode(StrEnum):
    """Which parts of the repository ``git reset`` leaves untouched.

    SOFT moves the branch pointer and keeps index and worktree, so committed
    changes look staged. MIXED also resets the index and keeps the worktree,
    so committed changes look unstaged.
    """

    SOFT = "--soft"
    MIXED = "--mixed"


class DiffType(StrEnum):
    """Which pair of trees ``git diff`` compares."""

    HEAD_TO_INDEX = "head_to_index"
    HEAD_TO_WORKTREE = "head_to_worktree"


class AskPassResult(StrEnum):
    """Terminal states of an interactive credential prompt session."""

    CANCELLED_BY_USER = "cancelled_by_user"
    TIMED_OUT = "timed_out"


class RemoteOutcome(StrEnum):
    """Classification of a failed push, pull or fetch."""

    CANCELLED_BY_USER = "cancelled_by_user"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
