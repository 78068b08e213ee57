"""Common git utility functions.

This module provides shared helper functions used by the repository backends
for repository discovery, directory resolution, and byte/string conversion.
"""

from pathlib import Path

from dulwich.errors import NotGitRepository
from dulwich.repo import Repo

from repocore.exceptions import RepositoryNotFoundError


def decode_bytes(value: bytes | str) -> str:
    """Decode bytes to str if needed.

    Args:
        value: A bytes or str value.

    Returns:
        The value as a string.
    """
    if isinstance(value, bytes):
        return value.decode()
    return value


def resolve_repo(repo_path: Path | str | None = None, *, discover: bool = True) -> Repo:
    """Open a repository at a path, or discover it from a directory.

    Args:
        repo_path: Directory to open or start the search from. Defaults to
            the current directory.
        discover: Search parent directories when True.

    Returns:
        The opened Repo instance.

    Raises:
        RepositoryNotFoundError: If no git repository is found.
    """
    start = Path(repo_path) if repo_path is not None else Path.cwd()
    try:
        if discover:
            return Repo.discover(str(start))
        return Repo(str(start))
    except NotGitRepository as e:
        msg = f"Not inside a git repository: {start}"
        raise RepositoryNotFoundError(msg, path=start) from e


def get_worktree_dir(repo: Repo) -> Path:
    """Get the working directory of a repository.

    Args:
        repo: The repository instance.

    Returns:
        Path to the worktree directory.
    """
    path = Path(decode_bytes(repo.path))
    if path.name == ".git":
        return path.parent
    return path


def get_control_dir(repo: Repo) -> Path:
    """Get the git directory of a repository, per worktree."""
    return Path(decode_bytes(repo.controldir())).resolve()


def get_common_dir(repo: Repo) -> Path:
    """Get the git directory shared by all worktrees of a repository."""
    return Path(decode_bytes(repo.commondir())).resolve()


def strip_refs_heads(branch: bytes | str | None) -> str | None:
    """Strip refs/heads/ prefix from a branch reference.

    Args:
        branch: Branch reference (bytes or str), possibly with refs/heads/ prefix.

    Returns:
        Branch name without prefix, or None if input is None.
    """
    if branch is None:
        return None
    return decode_bytes(branch).removeprefix("refs/heads/")
