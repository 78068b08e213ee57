# ruff: noqa: TC003  # Path and Mapping needed at runtime for method signatures
"""Fake repository for testing.

This module provides FakeGitRepository, an in-memory implementation of
GitRepository for deterministic tests. Every operation that changes
observable state sends the repository path on a change stream so tests can
wait for convergence.
"""

import difflib
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Self

import anyio
from anyio.streams.memory import MemoryObjectSendStream

from repocore.enums import DiffType, PushOptions, ResetMode
from repocore.exceptions import GitCommandError, GitObjectNotFoundError, RemoteOperationError
from repocore.repository._askpass import AskPassSession
from repocore.repository._models import (
    Blame,
    Branch,
    CommitDetails,
    FileStatus,
    GitStatus,
    Remote,
    RemoteCommandOutput,
    StatusEntry,
)
from repocore.repository._paths import RepoPath, descendants

FAKE_COMMITTER = ("Fake Committer", "fake@example.com")


@dataclass(slots=True)
class FakeGitRepositoryState:
    """Mutable state behind a FakeGitRepository.

    Tests usually populate it through the ``set_*`` helpers on the fake.

    Attributes:
        path: Git directory reported by ``path()``; also the event payload.
        event_emitter: Stream receiving ``path`` after each mutation.
        head_contents: Committed text per path.
        index_contents: Staged text per path.
        worktree_contents: Working tree text per path, read by ``stage_paths``.
        blames: Canned blame results per path.
        statuses: Status per path.
        current_branch_name: Checked-out branch, None when detached.
        branches: Local branch names.
        remotes: Remote names in configuration order.
        branch_remotes: Configured remote per branch.
        remote_urls: URL per remote name.
        remote_refs: Commit SHA per remote-tracking ref, e.g. ``origin/main``.
        head_sha: SHA of HEAD, None when unborn.
        merge_heads: SHAs reported by ``merge_head_shas``.
        commits: Commit details by SHA.
        snapshots: Committed contents by commit SHA.
        remote_output: Output returned by successful push, pull and fetch.
        simulated_remote_error: Raised by push, pull and fetch when set.
        simulated_index_write_error_message: Makes ``set_index_text`` fail.
    """

    path: Path
    event_emitter: MemoryObjectSendStream[Path]
    head_contents: dict[RepoPath, str] = field(default_factory=dict)
    index_contents: dict[RepoPath, str] = field(default_factory=dict)
    worktree_contents: dict[RepoPath, str] = field(default_factory=dict)
    blames: dict[RepoPath, Blame] = field(default_factory=dict)
    statuses: dict[RepoPath, FileStatus] = field(default_factory=dict)
    current_branch_name: str | None = "main"
    branches: set[str] = field(default_factory=lambda: {"main"})
    remotes: list[str] = field(default_factory=list)
    branch_remotes: dict[str, str] = field(default_factory=dict)
    remote_urls: dict[str, str] = field(default_factory=dict)
    remote_refs: dict[str, str] = field(default_factory=dict)
    head_sha: str | None = None
    merge_heads: list[str] = field(default_factory=list)
    commits: dict[str, CommitDetails] = field(default_factory=dict)
    snapshots: dict[str, dict[RepoPath, str]] = field(default_factory=dict)
    remote_output: RemoteCommandOutput = field(default_factory=RemoteCommandOutput)
    simulated_remote_error: RemoteOperationError | None = None
    simulated_index_write_error_message: str | None = None
    commit_counter: int = 0


def _unified_diff(
    old: Mapping[RepoPath, str], new: Mapping[RepoPath, str]
) -> str:
    chunks: list[str] = []
    for path in sorted(old.keys() | new.keys()):
        before = old.get(path)
        after = new.get(path)
        if before == after:
            continue
        chunks.append(f"diff --git a/{path} b/{path}\n")
        chunks.extend(
            difflib.unified_diff(
                (before or "").splitlines(keepends=True),
                (after or "").splitlines(keepends=True),
                fromfile=f"a/{path}" if before is not None else "/dev/null",
                tofile=f"b/{path}" if after is not None else "/dev/null",
            )
        )
    return "".join(chunks)


class FakeGitRepository:
    """Fake git repository for testing.

    Implements GitRepository over plain dictionaries. One lock serializes
    access to the state. Operations that change observable state send
    exactly one event; the ``set_*`` helpers used for test setup send none.

    A full or closed event stream raises RuntimeError: tests must keep the
    receiving end open and drained.

    Example:
        >>> send, receive = anyio.create_memory_object_stream[Path](16)
        >>> repo = FakeGitRepository(Path("/fake/.git"), send)
        >>> repo.set_index_text(RepoPath("a.txt"), "hello", {})
        >>> receive.receive_nowait()
        PosixPath('/fake/.git')
    """

    __slots__ = ("_lock", "_state")

    def __init__(
        self, path: Path, event_emitter: MemoryObjectSendStream[Path]
    ) -> None:
        self._state = FakeGitRepositoryState(path=path, event_emitter=event_emitter)
        self._lock = threading.Lock()

    @property
    def state(self) -> FakeGitRepositoryState:
        """Direct access to the state, for assertions."""
        return self._state

    def _emit(self) -> None:
        try:
            self._state.event_emitter.send_nowait(self._state.path)
        except (anyio.WouldBlock, anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            msg = "Dropped repo change event"
            raise RuntimeError(msg) from e

    # =========================================================================
    # Context Manager Protocol
    # =========================================================================

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the repository (no-op for fake)."""

    def reload_index(self) -> None:
        """Reload the index (no-op for fake)."""

    # =========================================================================
    # Test Helper Methods
    # =========================================================================

    def set_head_contents(self, contents: Mapping[str | RepoPath, str]) -> None:
        with self._lock:
            self._state.head_contents = {RepoPath(k): v for k, v in contents.items()}

    def set_index_contents(self, contents: Mapping[str | RepoPath, str]) -> None:
        with self._lock:
            self._state.index_contents = {RepoPath(k): v for k, v in contents.items()}

    def set_worktree_contents(self, contents: Mapping[str | RepoPath, str]) -> None:
        with self._lock:
            self._state.worktree_contents = {RepoPath(k): v for k, v in contents.items()}

    def set_status(self, statuses: Mapping[str | RepoPath, str]) -> None:
        """Replace statuses from two-letter porcelain codes."""
        with self._lock:
            self._state.statuses = {
                RepoPath(k): FileStatus(code[0], code[1]) for k, code in statuses.items()
            }

    def set_blame(self, path: str | RepoPath, blame: Blame) -> None:
        with self._lock:
            self._state.blames[RepoPath(path)] = blame

    def set_branches(self, names: Sequence[str], current: str | None = None) -> None:
        with self._lock:
            self._state.branches = set(names)
            self._state.current_branch_name = current

    def set_remotes(
        self,
        urls: Mapping[str, str],
        branch_remotes: Mapping[str, str] | None = None,
    ) -> None:
        """Configure remotes, in mapping order, and per-branch remotes."""
        with self._lock:
            self._state.remotes = list(urls)
            self._state.remote_urls = dict(urls)
            self._state.branch_remotes = dict(branch_remotes or {})

    def set_remote_ref(self, ref: str, sha: str) -> None:
        """Point a remote-tracking ref such as ``origin/main`` at a commit."""
        with self._lock:
            self._state.remote_refs[ref] = sha

    def set_merge_heads(self, shas: Sequence[str]) -> None:
        with self._lock:
            self._state.merge_heads = list(shas)

    def set_remote_result(
        self,
        output: RemoteCommandOutput | None = None,
        error: RemoteOperationError | None = None,
    ) -> None:
        with self._lock:
            self._state.remote_output = output or RemoteCommandOutput()
            self._state.simulated_remote_error = error

    def set_index_write_error(self, message: str | None) -> None:
        with self._lock:
            self._state.simulated_index_write_error_message = message

    # =========================================================================
    # Content
    # =========================================================================

    def load_index_text(self, path: RepoPath) -> str | None:
        with self._lock:
            return self._state.index_contents.get(path)

    def load_committed_text(self, path: RepoPath) -> str | None:
        with self._lock:
            return self._state.head_contents.get(path)

    def set_index_text(
        self, path: RepoPath, content: str | None, env: Mapping[str, str]
    ) -> None:
        path = RepoPath.validated(path)
        with self._lock:
            if self._state.simulated_index_write_error_message is not None:
                message = self._state.simulated_index_write_error_message
                raise GitCommandError(message, stderr=message)
            if content is None:
                self._state.index_contents.pop(path, None)
            else:
                self._state.index_contents[path] = content
            self._emit()

    # =========================================================================
    # Metadata
    # =========================================================================

    def remote_url(self, name: str) -> str | None:
        with self._lock:
            return self._state.remote_urls.get(name)

    def head_sha(self) -> str | None:
        with self._lock:
            return self._state.head_sha

    def merge_head_shas(self) -> list[str]:
        with self._lock:
            return list(self._state.merge_heads)

    def path(self) -> Path:
        return self._state.path

    def main_repository_path(self) -> Path:
        return self._state.path

    def status(self, path_prefixes: Sequence[RepoPath]) -> GitStatus:
        with self._lock:
            entries = [
                StatusEntry(repo_path=path, status=status)
                for path, status in sorted(
                    self._state.statuses.items(), key=lambda item: item[0]
                )
            ]
        selected = {
            entry.repo_path: entry
            for prefix in path_prefixes
            for entry in descendants(entries, prefix, key=lambda e: e.repo_path)
        }
        return GitStatus(entries=tuple(selected[key] for key in sorted(selected)))

    # =========================================================================
    # Branches and commits
    # =========================================================================

    def branches(self) -> list[Branch]:
        with self._lock:
            current = self._state.current_branch_name
            return [
                Branch(is_head=name == current, name=name)
                for name in sorted(self._state.branches)
            ]

    def branch_exists(self, name: str) -> bool:
        with self._lock:
            return name in self._state.branches

    def create_branch(self, name: str) -> None:
        with self._lock:
            self._state.branches.add(name)
            self._emit()

    def change_branch(self, name: str) -> None:
        with self._lock:
            if name not in self._state.branches:
                msg = f"Failed to change branch:\nerror: pathspec '{name}' did not match"
                raise GitCommandError(msg)
            self._state.current_branch_name = name
            self._emit()

    def _snapshot(self, commit: str) -> dict[RepoPath, str]:
        try:
            return self._state.snapshots[commit]
        except KeyError as e:
            msg = f"Unknown revision: {commit}"
            raise GitObjectNotFoundError(msg, revision=commit) from e

    def reset(self, commit: str, mode: ResetMode, env: Mapping[str, str]) -> None:
        with self._lock:
            snapshot = self._snapshot(commit)
            self._state.head_sha = commit
            self._state.head_contents = dict(snapshot)
            if mode is ResetMode.MIXED:
                self._state.index_contents = dict(snapshot)
            self._emit()

    def checkout_files(
        self, commit: str, paths: Sequence[RepoPath], env: Mapping[str, str]
    ) -> None:
        if not paths:
            return
        with self._lock:
            snapshot = self._snapshot(commit)
            for path in paths:
                if path in snapshot:
                    self._state.index_contents[path] = snapshot[path]
                    self._state.worktree_contents[path] = snapshot[path]
                else:
                    self._state.index_contents.pop(path, None)
                    self._state.worktree_contents.pop(path, None)
            self._emit()

    def show(self, commit: str) -> CommitDetails:
        with self._lock:
            try:
                return self._state.commits[commit]
            except KeyError as e:
                msg = f"Unknown revision: {commit}"
                raise GitObjectNotFoundError(msg, revision=commit) from e

    def blame(self, path: RepoPath, content: str) -> Blame:
        with self._lock:
            try:
                return self._state.blames[path]
            except KeyError as e:
                msg = f"Failed to get blame for {path}"
                raise GitCommandError(msg) from e

    def stage_paths(self, paths: Sequence[RepoPath], env: Mapping[str, str]) -> None:
        if not paths:
            return
        with self._lock:
            for path in paths:
                if path in self._state.worktree_contents:
                    self._state.index_contents[path] = self._state.worktree_contents[path]
                else:
                    self._state.index_contents.pop(path, None)
            self._emit()

    def unstage_paths(self, paths: Sequence[RepoPath], env: Mapping[str, str]) -> None:
        if not paths:
            return
        with self._lock:
            for path in paths:
                if path in self._state.head_contents:
                    self._state.index_contents[path] = self._state.head_contents[path]
                else:
                    self._state.index_contents.pop(path, None)
            self._emit()

    def commit(
        self,
        message: str,
        name_and_email: tuple[str, str] | None,
        env: Mapping[str, str],
    ) -> None:
        with self._lock:
            self._state.commit_counter += 1
            sha = f"{self._state.commit_counter:040x}"
            name, email = FAKE_COMMITTER
            self._state.commits[sha] = CommitDetails(
                sha=sha,
                message=message.strip(),
                commit_timestamp=self._state.commit_counter,
                committer_email=email,
                committer_name=name,
            )
            self._state.snapshots[sha] = dict(self._state.index_contents)
            self._state.head_contents = dict(self._state.index_contents)
            self._state.head_sha = sha
            self._emit()

    # =========================================================================
    # Remotes
    # =========================================================================

    def _remote_result(self) -> RemoteCommandOutput:
        if self._state.simulated_remote_error is not None:
            raise self._state.simulated_remote_error
        return self._state.remote_output

    def push(
        self,
        branch_name: str,
        remote_name: str,
        options: PushOptions | None,
        askpass: AskPassSession,
        env: Mapping[str, str],
    ) -> RemoteCommandOutput:
        with self._lock:
            output = self._remote_result()
            if self._state.head_sha is not None:
                self._state.remote_refs[f"{remote_name}/{branch_name}"] = self._state.head_sha
            self._emit()
            return output

    def pull(
        self,
        branch_name: str,
        remote_name: str,
        askpass: AskPassSession,
        env: Mapping[str, str],
    ) -> RemoteCommandOutput:
        with self._lock:
            output = self._remote_result()
            self._emit()
            return output

    def fetch(
        self, askpass: AskPassSession, env: Mapping[str, str]
    ) -> RemoteCommandOutput:
        with self._lock:
            output = self._remote_result()
            self._emit()
            return output

    def get_remotes(self, branch_name: str | None) -> list[Remote]:
        with self._lock:
            if branch_name is not None and branch_name in self._state.branch_remotes:
                return [Remote(name=self._state.branch_remotes[branch_name])]
            return [Remote(name=name) for name in self._state.remotes]

    def check_for_pushed_commit(self) -> list[str]:
        with self._lock:
            head = self._state.head_sha
            if head is None:
                return []
            return [ref for ref, sha in self._state.remote_refs.items() if sha == head]

    def diff(self, diff_type: DiffType) -> str:
        with self._lock:
            if diff_type is DiffType.HEAD_TO_INDEX:
                return _unified_diff(self._state.head_contents, self._state.index_contents)
            return _unified_diff(self._state.index_contents, self._state.worktree_contents)
