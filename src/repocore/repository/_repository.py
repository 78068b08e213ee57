# ruff: noqa: TC003  # Path and Mapping needed at runtime for method signatures
"""Library-backed git repository.

This module provides LocalGitRepository, which reads the object database,
index, refs and config directly through dulwich and runs the git executable
for writes, status, blame and network operations.
"""

import contextlib
import stat
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import TracebackType
from typing import Final, Self

from dulwich.errors import NotTreeError
from dulwich.index import ConflictedIndexEntry, Index
from dulwich.object_store import tree_lookup_path
from dulwich.objects import Blob, Commit
from dulwich.objectspec import parse_commit
from dulwich.repo import Repo
from structlog.typing import FilteringBoundLogger

from repocore.config import Config
from repocore.enums import DiffType, PushOptions, ResetMode
from repocore.exceptions import (
    GitCommandError,
    GitObjectNotFoundError,
    RepositoryError,
)
from repocore.repository._askpass import AskPassSession
from repocore.repository._models import (
    Blame,
    Branch,
    CommitDetails,
    GitStatus,
    Remote,
    RemoteCommandOutput,
)
from repocore.repository._parsing import (
    BRANCH_FORMAT,
    BRANCH_REF_PATTERN,
    COMMIT_MESSAGE_FORMAT,
    parse_blame_porcelain,
    parse_branch_input,
    parse_commit_messages,
    parse_remote_list,
    parse_status_output,
)
from repocore.repository._paths import RepoPath, descendants
from repocore.repository._remote import run_remote_command
from repocore.utils._exec import CommandResult, GitCommand, run_command
from repocore.utils._git import (
    decode_bytes,
    get_common_dir,
    get_control_dir,
    get_worktree_dir,
    resolve_repo,
    strip_refs_heads,
)
from repocore.utils._logging import create_null_logger

_REGULAR_FILE_MODE: Final = "100644"
_REMOTE_REF_PREFIX: Final = "refs/remotes/"
_UNCOMMITTED_SHA: Final = "0" * 40


def _decode_text(data: bytes) -> str | None:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def _split_identity(identity: bytes) -> tuple[str, str]:
    """Split a ``Name <email>`` identity line."""
    text = identity.decode("utf-8", errors="replace")
    name, _, rest = text.partition("<")
    return name.strip(), rest.rstrip().removesuffix(">")


class LocalGitRepository:
    """Git repository backed by dulwich and the git executable.

    One lock guards the dulwich handle and the cached index. Commands that
    spawn git hold it only while reading the metadata needed to build the
    command, never while the process runs.

    The class implements the context manager protocol; the dulwich Repo is
    closed when exiting the context.

    Example:
        >>> with LocalGitRepository(Path("/path/to/project")) as repo:
        ...     repo.load_committed_text(RepoPath("README.md"))
    """

    __slots__: Final = (
        "_git_binary",
        "_index",
        "_lock",
        "_logger",
        "_permalink_remote",
        "_repo",
        "_work_dir",
    )

    def __init__(
        self,
        working_dir: Path | None = None,
        *,
        git_binary: str = "git",
        permalink_remote: str = "origin",
        discover: bool = True,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Open the repository containing a directory.

        Args:
            working_dir: Directory inside the repository. Defaults to the
                current working directory.
            git_binary: Name or path of the git executable.
            permalink_remote: Remote whose URL is attached to blame results.
            discover: Search parent directories for the repository.
            logger: Logger for command tracing. Silent when omitted.

        Raises:
            RepositoryNotFoundError: If no repository is found.
            RepositoryError: If the repository is bare.
        """
        self._repo: Repo = resolve_repo(working_dir, discover=discover)
        if self._repo.bare:
            self._repo.close()
            msg = f"Bare repositories are not supported: {decode_bytes(self._repo.path)}"
            raise RepositoryError(msg)
        self._work_dir: Path = get_worktree_dir(self._repo).resolve()
        self._git_binary: str = git_binary
        self._permalink_remote: str = permalink_remote
        self._logger: FilteringBoundLogger = logger or create_null_logger()
        self._lock: threading.Lock = threading.Lock()
        self._index: Index | None = None

    # =========================================================================
    # Context Manager Protocol
    # =========================================================================

    def __enter__(self) -> Self:
        """Enter the context manager.

        Returns:
            The repository instance.
        """
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager and close the repository."""
        self.close()

    def close(self) -> None:
        """Close the underlying dulwich Repo."""
        with self._lock:
            self._index = None
            self._repo.close()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def work_directory(self) -> Path:
        """Absolute path of the working directory."""
        return self._work_dir

    def path(self) -> Path:
        with self._lock:
            return get_control_dir(self._repo)

    def main_repository_path(self) -> Path:
        with self._lock:
            return get_common_dir(self._repo)

    # =========================================================================
    # Command helpers
    # =========================================================================

    def _command(
        self,
        *args: str,
        env: Mapping[str, str] | None = None,
        stdin: bytes | None = None,
    ) -> GitCommand:
        return GitCommand.build(
            self._git_binary, self._work_dir, *args, env=env, stdin=stdin
        )

    def _git(
        self,
        *args: str,
        env: Mapping[str, str] | None = None,
        stdin: bytes | None = None,
        error_message: str | None = None,
    ) -> CommandResult:
        return run_command(
            self._command(*args, env=env, stdin=stdin),
            error_message=error_message,
            logger=self._logger,
        )

    def _try_git(self, *args: str) -> str | None:
        """Run git, returning trimmed stdout or None on a non-zero exit."""
        try:
            return run_command(self._command(*args)).stdout.strip()
        except GitCommandError as e:
            self._logger.debug("git_lookup_skipped", argv=e.command, exit_code=e.exit_code)
            return None

    # =========================================================================
    # Index and HEAD content
    # =========================================================================

    def _open_index(self) -> Index:
        if self._index is None:
            self._index = self._repo.open_index()
        return self._index

    def reload_index(self) -> None:
        with self._lock:
            self._index = None

    def load_index_text(self, path: RepoPath) -> str | None:
        if path.is_root:
            return None

        with self._lock:
            index = self._open_index()
            key = path.as_bytes()
            if key not in index:
                return None
            entry = index[key]
            if isinstance(entry, ConflictedIndexEntry):
                return None
            if not stat.S_ISREG(entry.mode):
                # Symlinks and submodules have no text.
                return None
            try:
                blob = self._repo[entry.sha]
            except KeyError:
                self._logger.warning("index_blob_missing", path=str(path))
                return None

        if not isinstance(blob, Blob):
            return None
        content = _decode_text(blob.data)
        if content is None:
            self._logger.warning("index_content_not_utf8", path=str(path))
        return content

    def load_committed_text(self, path: RepoPath) -> str | None:
        if path.is_root:
            return None

        with self._lock:
            try:
                head = self._repo[self._repo.head()]
            except KeyError:
                return None
            if not isinstance(head, Commit):
                return None
            try:
                mode, sha = tree_lookup_path(
                    self._repo.__getitem__, head.tree, path.as_bytes()
                )
            except (KeyError, NotTreeError):
                return None
            if not stat.S_ISREG(mode):
                # Symlinks, trees and submodules have no text.
                return None
            blob = self._repo[sha]

        if not isinstance(blob, Blob):
            return None
        content = _decode_text(blob.data)
        if content is None:
            self._logger.warning("committed_content_not_utf8", path=str(path))
        return content

    def set_index_text(
        self, path: RepoPath, content: str | None, env: Mapping[str, str]
    ) -> None:
        path = RepoPath.validated(path)
        try:
            if content is not None:
                sha = self._git(
                    "hash-object",
                    "-w",
                    "--stdin",
                    env=env,
                    stdin=content.encode("utf-8"),
                    error_message="Failed to write blob",
                ).stdout.strip()
                self._git(
                    "update-index",
                    "--add",
                    "--cacheinfo",
                    _REGULAR_FILE_MODE,
                    sha,
                    str(path),
                    env=env,
                    error_message="Failed to stage file",
                )
            else:
                self._git(
                    "update-index",
                    "--force-remove",
                    str(path),
                    env=env,
                    error_message="Failed to unstage file",
                )
        finally:
            self.reload_index()

    # =========================================================================
    # Metadata
    # =========================================================================

    def remote_url(self, name: str) -> str | None:
        with self._lock:
            config = self._repo.get_config()
            try:
                return decode_bytes(config.get((b"remote", name.encode()), b"url"))
            except KeyError:
                return None

    def head_sha(self) -> str | None:
        with self._lock:
            try:
                return decode_bytes(self._repo.head())
            except KeyError:
                return None

    def merge_head_shas(self) -> list[str]:
        shas: list[str] = []
        with self._lock:
            merge_head = self._repo.get_named_file("MERGE_HEAD")
            if merge_head is not None:
                with merge_head:
                    shas.extend(
                        line.decode().strip()
                        for line in merge_head.read().splitlines()
                        if line.strip()
                    )
            with contextlib.suppress(KeyError):
                shas.append(decode_bytes(self._repo.refs[b"CHERRY_PICK_HEAD"]))
        return shas

    def status(self, path_prefixes: Sequence[RepoPath]) -> GitStatus:
        if not path_prefixes:
            return GitStatus()

        pathspecs = [str(prefix) if not prefix.is_root else "." for prefix in path_prefixes]
        result = self._git(
            "--no-optional-locks",
            "status",
            "--porcelain=v1",
            "--untracked-files=all",
            "--no-renames",
            "-z",
            "--",
            *pathspecs,
            env={"GIT_LITERAL_PATHSPECS": "1"},
            error_message="Failed to get status",
        )
        status = parse_status_output(result.stdout)

        selected = {
            entry.repo_path: entry
            for prefix in path_prefixes
            for entry in descendants(status.entries, prefix, key=lambda e: e.repo_path)
        }
        return GitStatus(entries=tuple(selected[key] for key in sorted(selected)))

    # =========================================================================
    # Branches and commits
    # =========================================================================

    def branches(self) -> list[Branch]:
        result = self._git(
            "for-each-ref",
            BRANCH_REF_PATTERN,
            BRANCH_FORMAT,
            error_message="Failed to list branches",
        )
        branches = parse_branch_input(result.stdout)
        if branches:
            return branches

        with self._lock:
            head_ref = self._repo.refs.get_symrefs().get(b"HEAD")
        name = strip_refs_heads(head_ref)
        if name is None:
            return []
        return [Branch(is_head=True, name=name)]

    def branch_exists(self, name: str) -> bool:
        with self._lock:
            return f"refs/heads/{name}".encode() in self._repo.refs

    def create_branch(self, name: str) -> None:
        self._git("branch", name, error_message="Failed to create branch")

    def change_branch(self, name: str) -> None:
        try:
            self._git("checkout", name, error_message="Failed to change branch")
        finally:
            self.reload_index()

    def reset(self, commit: str, mode: ResetMode, env: Mapping[str, str]) -> None:
        try:
            self._git("reset", str(mode), commit, env=env, error_message="Failed to reset")
        finally:
            self.reload_index()

    def checkout_files(
        self, commit: str, paths: Sequence[RepoPath], env: Mapping[str, str]
    ) -> None:
        if not paths:
            return
        try:
            self._git(
                "checkout",
                commit,
                "--",
                *(str(path) for path in paths),
                env=env,
                error_message="Failed to checkout files",
            )
        finally:
            self.reload_index()

    def show(self, commit: str) -> CommitDetails:
        with self._lock:
            try:
                obj = parse_commit(self._repo, commit.encode())
            except (KeyError, ValueError) as e:
                msg = f"Unknown revision: {commit}"
                raise GitObjectNotFoundError(msg, revision=commit) from e

        committer_name, committer_email = _split_identity(obj.committer)
        return CommitDetails(
            sha=decode_bytes(obj.id),
            message=obj.message.decode("utf-8", errors="replace"),
            commit_timestamp=obj.commit_time,
            committer_email=committer_email,
            committer_name=committer_name,
        )

    def blame(self, path: RepoPath, content: str) -> Blame:
        path = RepoPath.validated(path)
        remote_url = self.remote_url(self._permalink_remote)

        output = self._git(
            "blame",
            "--porcelain",
            "--contents",
            "-",
            "--",
            str(path),
            stdin=content.encode("utf-8"),
            error_message="Failed to blame",
        )
        lines = parse_blame_porcelain(output.stdout)

        shas = sorted({line.sha for line in lines if line.sha != _UNCOMMITTED_SHA})
        messages: dict[str, str] = {}
        if shas:
            shown = self._git(
                "show",
                "-s",
                COMMIT_MESSAGE_FORMAT,
                *shas,
                error_message="Failed to read commit messages",
            )
            messages = parse_commit_messages(shown.stdout)

        return Blame(lines=tuple(lines), messages=messages, remote_url=remote_url)

    def stage_paths(self, paths: Sequence[RepoPath], env: Mapping[str, str]) -> None:
        if not paths:
            return
        try:
            self._git(
                "update-index",
                "--add",
                "--remove",
                "--",
                *(str(path) for path in paths),
                env=env,
                error_message="Failed to stage paths",
            )
        finally:
            self.reload_index()

    def unstage_paths(self, paths: Sequence[RepoPath], env: Mapping[str, str]) -> None:
        # An empty pathspec would reset the whole index.
        if not paths:
            return
        try:
            self._git(
                "reset",
                "--quiet",
                "--",
                *(str(path) for path in paths),
                env=env,
                error_message="Failed to unstage paths",
            )
        finally:
            self.reload_index()

    def commit(
        self,
        message: str,
        name_and_email: tuple[str, str] | None,
        env: Mapping[str, str],
    ) -> None:
        args = ["commit", "--quiet", "-m", message, "--cleanup=strip"]
        if name_and_email is not None:
            name, email = name_and_email
            args.extend(["--author", f"{name} <{email}>"])
        try:
            self._git(*args, env=env, error_message="Failed to commit")
        finally:
            self.reload_index()

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
        args = ["push"]
        if options is not None:
            args.append(str(options))
        args.extend([remote_name, f"{branch_name}:{branch_name}"])
        return run_remote_command(askpass, self._command(*args, env=env), logger=self._logger)

    def pull(
        self,
        branch_name: str,
        remote_name: str,
        askpass: AskPassSession,
        env: Mapping[str, str],
    ) -> RemoteCommandOutput:
        command = self._command("pull", remote_name, branch_name, env=env)
        try:
            return run_remote_command(askpass, command, logger=self._logger)
        finally:
            self.reload_index()

    def fetch(
        self, askpass: AskPassSession, env: Mapping[str, str]
    ) -> RemoteCommandOutput:
        command = self._command("fetch", "--all", env=env)
        return run_remote_command(askpass, command, logger=self._logger)

    def get_remotes(self, branch_name: str | None) -> list[Remote]:
        if branch_name is not None:
            with self._lock:
                config = self._repo.get_config()
                try:
                    configured = config.get((b"branch", branch_name.encode()), b"remote")
                except KeyError:
                    configured = None
            if configured:
                return [Remote(name=decode_bytes(configured))]

        result = self._git("remote", error_message="Failed to list remotes")
        return parse_remote_list(result.stdout)

    def check_for_pushed_commit(self) -> list[str]:
        head = self.head_sha()
        if head is None:
            return []

        candidates: list[str] = []
        for remote in parse_remote_list(self._git("remote").stdout):
            remote_head = self._try_git(
                "symbolic-ref", f"{_REMOTE_REF_PREFIX}{remote.name}/HEAD"
            )
            if remote_head:
                candidates.append(remote_head)

        upstream = self._try_git("rev-parse", "--symbolic-full-name", "@{u}")
        if upstream:
            candidates.append(upstream)

        pushed: list[str] = []
        for ref in candidates:
            if not ref.startswith(_REMOTE_REF_PREFIX):
                continue
            merge_base = self._try_git("merge-base", head, ref)
            if merge_base != head:
                continue
            short_name = ref.removeprefix(_REMOTE_REF_PREFIX)
            if short_name not in pushed:
                pushed.append(short_name)
        return pushed

    def diff(self, diff_type: DiffType) -> str:
        args = ["diff"]
        if diff_type is DiffType.HEAD_TO_INDEX:
            args.append("--staged")
        return self._git(*args, error_message="Failed to diff").stdout


def open_repository(
    path: Path | None = None,
    *,
    config: Config | None = None,
    logger: FilteringBoundLogger | None = None,
) -> LocalGitRepository:
    """Open the repository containing a directory, configured from Config.

    Args:
        path: Directory inside the repository. Defaults to the current directory.
        config: Loaded configuration. Defaults are used when omitted.
        logger: Logger for command tracing.

    Returns:
        An open LocalGitRepository.

    Raises:
        RepositoryNotFoundError: If no repository is found.
    """
    config = config or Config()
    return LocalGitRepository(
        path,
        git_binary=config.git.binary_path,
        permalink_remote=config.git.remote_name,
        logger=logger,
    )
