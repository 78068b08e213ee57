"""Git repository abstraction.

This package exposes one capability interface, GitRepository, with two
interchangeable backends: LocalGitRepository, which reads through dulwich
and writes through the git executable, and FakeGitRepository, an in-memory
double for tests.

Classes:
    GitRepository: Runtime-checkable protocol implemented by both backends.
    LocalGitRepository: dulwich and git CLI backed implementation.
    FakeGitRepository: In-memory implementation emitting change events.
    AskPassSession: Protocol of the credential prompt session used by
        push, pull and fetch.

Models:
    RepoPath: Validated repository-relative path.
    Branch, Upstream, UpstreamTracked, UpstreamGone: Branch listing.
    CommitSummary, CommitDetails: Commit metadata.
    Remote, RemoteCommandOutput: Remote listing and network output.
    GitStatus, StatusEntry, FileStatus: Working tree status.
    Blame, BlameLine: Line attribution.

Example:
    >>> from repocore.repository import RepoPath, open_repository
    >>> with open_repository() as repo:
    ...     text = repo.load_index_text(RepoPath("README.md"))
"""

from repocore.repository._askpass import AskPassSession, askpass_env
from repocore.repository._fake import FakeGitRepository, FakeGitRepositoryState
from repocore.repository._models import (
    SHORT_SHA_LENGTH,
    Blame,
    BlameLine,
    Branch,
    CommitDetails,
    CommitSummary,
    FileStatus,
    GitStatus,
    Remote,
    RemoteCommandOutput,
    StatusEntry,
    Upstream,
    UpstreamGone,
    UpstreamTracked,
    UpstreamTracking,
    UpstreamTrackingStatus,
)
from repocore.repository._parsing import (
    parse_blame_porcelain,
    parse_branch_input,
    parse_commit_messages,
    parse_remote_list,
    parse_status_output,
    parse_upstream_track,
)
from repocore.repository._paths import (
    WORK_DIRECTORY_REPO_PATH,
    Ordering,
    RepoPath,
    RepoPathDescendants,
    descendant_range,
    descendants,
)
from repocore.repository._protocol import GitRepository
from repocore.repository._remote import race_remote_command, run_remote_command
from repocore.repository._repository import LocalGitRepository, open_repository

__all__ = [
    "SHORT_SHA_LENGTH",
    "WORK_DIRECTORY_REPO_PATH",
    "AskPassSession",
    "Blame",
    "BlameLine",
    "Branch",
    "CommitDetails",
    "CommitSummary",
    "FakeGitRepository",
    "FakeGitRepositoryState",
    "FileStatus",
    "GitRepository",
    "GitStatus",
    "LocalGitRepository",
    "Ordering",
    "Remote",
    "RemoteCommandOutput",
    "RepoPath",
    "RepoPathDescendants",
    "StatusEntry",
    "Upstream",
    "UpstreamGone",
    "UpstreamTracked",
    "UpstreamTracking",
    "UpstreamTrackingStatus",
    "askpass_env",
    "descendant_range",
    "descendants",
    "open_repository",
    "parse_blame_porcelain",
    "parse_branch_input",
    "parse_commit_messages",
    "parse_remote_list",
    "parse_status_output",
    "parse_upstream_track",
    "race_remote_command",
    "run_remote_command",
]
