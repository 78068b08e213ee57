"""Repository models.

This module defines the immutable snapshots returned by repository backends:
branches and their upstream tracking state, commits, remotes, working tree
status and blame annotations.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Final, TypeAlias

from repocore.repository._paths import RepoPath

SHORT_SHA_LENGTH: Final = 7

_REMOTE_REF_PREFIX: Final = "refs/remotes/"

_NO_TIMESTAMP: Final = -(2**63)


# =============================================================================
# Upstream tracking
# =============================================================================


@dataclass(frozen=True, slots=True)
class UpstreamTrackingStatus:
    """Commit counts between a branch and its upstream.

    Attributes:
        ahead: Commits present locally but not upstream.
        behind: Commits present upstream but not locally.
    """

    ahead: int
    behind: int


@dataclass(frozen=True, slots=True)
class UpstreamGone:
    """The upstream ref was deleted on the remote."""


@dataclass(frozen=True, slots=True)
class UpstreamTracked:
    """The upstream ref exists and has known ahead/behind counts."""

    status: UpstreamTrackingStatus


UpstreamTracking: TypeAlias = UpstreamGone | UpstreamTracked


@dataclass(frozen=True, slots=True)
class Upstream:
    """Remote-tracking ref a local branch compares against.

    Attributes:
        ref_name: Full ref name, e.g. ``refs/remotes/origin/main``.
        tracking: Whether the ref is gone or how far the branch has diverged.
    """

    ref_name: str
    tracking: UpstreamTracking

    @property
    def remote_name(self) -> str | None:
        """Short remote name, or None if the ref is not remote-tracking.

        Example:
            >>> Upstream("refs/remotes/origin/main", UpstreamGone()).remote_name
            'origin'
        """
        if not self.ref_name.startswith(_REMOTE_REF_PREFIX):
            return None
        remainder = self.ref_name.removeprefix(_REMOTE_REF_PREFIX)
        return remainder.split("/", 1)[0]

    @property
    def is_gone(self) -> bool:
        return isinstance(self.tracking, UpstreamGone)

    @property
    def tracking_status(self) -> UpstreamTrackingStatus | None:
        match self.tracking:
            case UpstreamTracked(status=status):
                return status
            case _:
                return None


# =============================================================================
# Commits and branches
# =============================================================================


@dataclass(frozen=True, slots=True)
class CommitSummary:
    """Most recent commit of a branch.

    Attributes:
        sha: Full commit SHA hex string.
        subject: First line of the commit message.
        commit_timestamp: Committer date as unix seconds.
        has_parent: False for a root commit.
    """

    sha: str
    subject: str
    commit_timestamp: int
    has_parent: bool


@dataclass(frozen=True, slots=True)
class CommitDetails:
    """Details of a single commit.

    Attributes:
        sha: Full commit SHA hex string.
        message: Complete commit message.
        commit_timestamp: Committer date as unix seconds.
        committer_email: Committer email address.
        committer_name: Committer display name.
    """

    sha: str
    message: str
    commit_timestamp: int
    committer_email: str
    committer_name: str

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]


@dataclass(frozen=True, slots=True)
class Branch:
    """A local branch.

    Attributes:
        is_head: True for the checked-out branch.
        name: Branch name without the ``refs/heads/`` prefix.
        upstream: Configured upstream, if any.
        most_recent_commit: Tip commit, None for a synthesized unborn branch.
    """

    is_head: bool
    name: str
    upstream: Upstream | None = None
    most_recent_commit: CommitSummary | None = None

    @property
    def tracking_status(self) -> UpstreamTrackingStatus | None:
        """Ahead/behind counts against the upstream, if tracked."""
        if self.upstream is None:
            return None
        return self.upstream.tracking_status

    @property
    def priority_key(self) -> tuple[bool, int]:
        """Sort key placing HEAD first, then the most recently committed.

        Sort descending with ``sorted(branches, key=..., reverse=True)``.
        Branches without commit metadata rank below any with a timestamp.
        """
        if self.most_recent_commit is None:
            return (self.is_head, _NO_TIMESTAMP)
        return (self.is_head, self.most_recent_commit.commit_timestamp)


# =============================================================================
# Remotes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Remote:
    """A configured remote."""

    name: str


@dataclass(frozen=True, slots=True)
class RemoteCommandOutput:
    """Captured output of a successful push, pull or fetch.

    Attributes:
        stdout: Decoded standard output.
        stderr: Decoded standard error; git reports progress here.
    """

    stdout: str = ""
    stderr: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.stdout and not self.stderr


# =============================================================================
# Status
# =============================================================================

_STATUS_CODES: Final = frozenset(" MTADRCU?!")


@dataclass(frozen=True, slots=True)
class FileStatus:
    """Two-letter porcelain status code of a path.

    Attributes:
        index_status: X column; state of the index relative to HEAD.
        worktree_status: Y column; state of the worktree relative to the index.
    """

    index_status: str
    worktree_status: str

    def __post_init__(self) -> None:
        for code in (self.index_status, self.worktree_status):
            if len(code) != 1 or code not in _STATUS_CODES:
                msg = f"Unknown status code: {code!r}"
                raise ValueError(msg)

    @property
    def code(self) -> str:
        return self.index_status + self.worktree_status

    @property
    def is_untracked(self) -> bool:
        return self.code == "??"

    @property
    def is_ignored(self) -> bool:
        return self.code == "!!"

    @property
    def is_conflicted(self) -> bool:
        # Unmerged states per git-status(1): DD, AU, UD, UA, DU, AA, UU.
        return "U" in self.code or self.code in {"DD", "AA"}

    @property
    def is_staged(self) -> bool:
        return (
            not self.is_conflicted
            and self.index_status not in {" ", "?", "!"}
        )

    @property
    def is_modified(self) -> bool:
        """True if the worktree differs from the index."""
        return not self.is_conflicted and self.worktree_status in {"M", "T", "D"}


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """Status of a single path."""

    repo_path: RepoPath
    status: FileStatus


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Working tree status snapshot.

    Attributes:
        entries: Per-path status, sorted by path.
    """

    entries: tuple[StatusEntry, ...] = ()

    def __iter__(self) -> Iterator[StatusEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, path: RepoPath) -> FileStatus | None:
        """Look up the status of one path."""
        for entry in self.entries:
            if entry.repo_path == path:
                return entry.status
        return None


# =============================================================================
# Blame
# =============================================================================


@dataclass(frozen=True, slots=True)
class BlameLine:
    """Attribution of a single line.

    Attributes:
        line_no: 1-based line number in the blamed content.
        content: Line text without the trailing newline.
        sha: Commit that last touched the line. All zeros for uncommitted lines.
        author_name: Author display name.
        author_email: Author email without angle brackets.
        timestamp: Author date as unix seconds.
    """

    line_no: int
    content: str
    sha: str
    author_name: str
    author_email: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class Blame:
    """Blame result for a file.

    Attributes:
        lines: One entry per line in the blamed content.
        messages: Commit message per attributed commit SHA.
        remote_url: URL of the configured permalink remote, if any.
    """

    lines: tuple[BlameLine, ...]
    messages: dict[str, str] = field(default_factory=dict)
    remote_url: str | None = None
