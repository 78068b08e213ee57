# ruff: noqa: TC003  # Path and model types needed at runtime for Protocol signatures
"""Repository protocol for type-safe dependency injection.

This module defines a runtime-checkable Protocol that both LocalGitRepository
and FakeGitRepository satisfy, so callers can be written once and tested
against the in-memory double.
"""

from collections.abc import Mapping, Sequence
from pathlib import Path
from types import TracebackType
from typing import Protocol, Self, runtime_checkable

from repocore.enums import DiffType, PushOptions, ResetMode
from repocore.repository._askpass import AskPassSession
from repocore.repository._models import (
    Blame,
    Branch,
    CommitDetails,
    GitStatus,
    Remote,
    RemoteCommandOutput,
)
from repocore.repository._paths import RepoPath


@runtime_checkable
class GitRepository(Protocol):
    """Capability interface of a git repository.

    Reads return synchronously. Operations that spawn git accept an ``env``
    overlay applied on top of the inherited environment. Push, pull and fetch
    additionally race an askpass session, see ``run_remote_command``.

    Content that does not exist (no index entry, no HEAD entry, a symlink) is
    reported as None, never as an error.

    Example:
        >>> def current_branch(repo: GitRepository) -> str | None:
        ...     for branch in repo.branches():
        ...         if branch.is_head:
        ...             return branch.name
        ...     return None
    """

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...

    def close(self) -> None:
        """Release file handles held by the repository."""
        ...

    def reload_index(self) -> None:
        """Drop any cached index so the next read sees the on-disk state."""
        ...

    # =========================================================================
    # Content
    # =========================================================================

    def load_index_text(self, path: RepoPath) -> str | None:
        """Staged text at a path.

        Returns:
            The content, or None when the path is not staged, is a symlink,
            is conflicted, or is not valid UTF-8.
        """
        ...

    def load_committed_text(self, path: RepoPath) -> str | None:
        """Text at a path in the HEAD commit.

        Returns:
            The content, or None when there is no HEAD, the path is missing,
            is a symlink or directory, or is not valid UTF-8.
        """
        ...

    def set_index_text(
        self, path: RepoPath, content: str | None, env: Mapping[str, str]
    ) -> None:
        """Stage content as a regular file at a path, or unstage it when None.

        Raises:
            GitCommandError: If git fails; the index is left unchanged.
        """
        ...

    # =========================================================================
    # Metadata
    # =========================================================================

    def remote_url(self, name: str) -> str | None:
        """URL of a configured remote, or None."""
        ...

    def head_sha(self) -> str | None:
        """SHA of the HEAD commit, or None for an unborn branch."""
        ...

    def merge_head_shas(self) -> list[str]:
        """SHAs from MERGE_HEAD followed by CHERRY_PICK_HEAD, best effort."""
        ...

    def path(self) -> Path:
        """Git directory of this worktree."""
        ...

    def main_repository_path(self) -> Path:
        """Git directory shared by all worktrees."""
        ...

    def status(self, path_prefixes: Sequence[RepoPath]) -> GitStatus:
        """Working tree status restricted to paths below any prefix.

        Args:
            path_prefixes: Ancestor paths. WORK_DIRECTORY_REPO_PATH selects
                everything; an empty sequence selects nothing.

        Returns:
            Status entries sorted by path.
        """
        ...

    # =========================================================================
    # Branches and commits
    # =========================================================================

    def branches(self) -> list[Branch]:
        """All local branches.

        An unborn repository yields a single HEAD branch named after the
        symbolic HEAD ref, with no upstream and no commit.

        Raises:
            GitOutputParseError: If git output is malformed.
        """
        ...

    def branch_exists(self, name: str) -> bool:
        """Whether a local branch exists."""
        ...

    def create_branch(self, name: str) -> None:
        """Create a local branch at HEAD."""
        ...

    def change_branch(self, name: str) -> None:
        """Check out a local branch."""
        ...

    def reset(self, commit: str, mode: ResetMode, env: Mapping[str, str]) -> None:
        """Move the current branch to a commit."""
        ...

    def checkout_files(
        self, commit: str, paths: Sequence[RepoPath], env: Mapping[str, str]
    ) -> None:
        """Restore paths in the index and worktree from a commit."""
        ...

    def show(self, commit: str) -> CommitDetails:
        """Details of a commit.

        Raises:
            GitObjectNotFoundError: If the revision does not name a commit.
        """
        ...

    def blame(self, path: RepoPath, content: str) -> Blame:
        """Attribute each line of ``content`` as if it were the file at ``path``."""
        ...

    def stage_paths(self, paths: Sequence[RepoPath], env: Mapping[str, str]) -> None:
        """Record worktree state of paths in the index, including deletions."""
        ...

    def unstage_paths(self, paths: Sequence[RepoPath], env: Mapping[str, str]) -> None:
        """Reset index entries of paths to HEAD."""
        ...

    def commit(
        self,
        message: str,
        name_and_email: tuple[str, str] | None,
        env: Mapping[str, str],
    ) -> None:
        """Commit the index, optionally overriding the author."""
        ...

    # =========================================================================
    # Remotes
    # =========================================================================

    def push(
        self,
        branch_name: str,
        remote_name: str,
        options: PushOptions | None,
        askpass: AskPassSession,
        env: Mapping[str, str],
    ) -> RemoteCommandOutput:
        """Push a branch to the same name on a remote.

        Raises:
            RemoteOperationError: If cancelled, timed out or git failed.
        """
        ...

    def pull(
        self,
        branch_name: str,
        remote_name: str,
        askpass: AskPassSession,
        env: Mapping[str, str],
    ) -> RemoteCommandOutput:
        """Pull a branch from a remote."""
        ...

    def fetch(
        self, askpass: AskPassSession, env: Mapping[str, str]
    ) -> RemoteCommandOutput:
        """Fetch all remotes."""
        ...

    def get_remotes(self, branch_name: str | None) -> list[Remote]:
        """The branch's configured remote if any, else all remotes."""
        ...

    def check_for_pushed_commit(self) -> list[str]:
        """Remote refs that already contain HEAD, e.g. ``origin/main``.

        Remote default branches come first in remote order, then the current
        branch's upstream if distinct.
        """
        ...

    def diff(self, diff_type: DiffType) -> str:
        """Unified diff of HEAD against the index or the worktree."""
        ...
