"""Parsers for machine-readable git output.

Each parser takes the decoded standard output of one git invocation and
returns typed models. Malformed output raises GitOutputParseError and aborts
the whole batch; partial results are never returned.
"""

from typing import Final

from repocore.exceptions import GitOutputParseError
from repocore.repository._models import (
    BlameLine,
    Branch,
    CommitSummary,
    FileStatus,
    GitStatus,
    Remote,
    StatusEntry,
    Upstream,
    UpstreamGone,
    UpstreamTracked,
    UpstreamTracking,
    UpstreamTrackingStatus,
)
from repocore.repository._paths import RepoPath

# Arguments for `git for-each-ref` producing input for parse_branch_input.
BRANCH_FORMAT: Final = (
    "--format=%(HEAD)%00%(objectname)%00%(parent)%00%(refname)%00"
    "%(upstream)%00%(upstream:track)%00%(committerdate:unix)%00"
    "%(contents:subject)"
)
BRANCH_REF_PATTERN: Final = "refs/heads/**/*"

# Arguments for `git show -s` producing input for parse_commit_messages.
COMMIT_MESSAGE_FORMAT: Final = "--format=%H%x00%B%x00"

_HEADS_PREFIX: Final = "refs/heads/"
_SHA_HEX_LENGTH: Final = 40
_MIN_BLAME_HEADER_PARTS: Final = 3
_HEX_DIGITS: Final = frozenset("0123456789abcdef")
_MAX_TRACK_COUNT: Final = 2**32 - 1


# =============================================================================
# Branches
# =============================================================================


def _next_field(fields: list[str], line: str, name: str) -> str:
    if not fields:
        msg = f"Missing {name} in branch record: {line!r}"
        raise GitOutputParseError(msg, line=line, field=name)
    return fields.pop(0)


def parse_upstream_track(token: str) -> UpstreamTracking:
    """Parse a ``%(upstream:track)`` token.

    Args:
        token: Token such as ``""``, ``"[gone]"`` or ``"[ahead 2, behind 1]"``.

    Returns:
        UpstreamGone if the token reports ``gone``, otherwise the counts.

    Raises:
        GitOutputParseError: If the brackets are missing or a count is not an
            unsigned decimal.

    Example:
        >>> parse_upstream_track("[ahead 2, behind 1]")
        UpstreamTracked(status=UpstreamTrackingStatus(ahead=2, behind=1))
    """
    if token == "":
        return UpstreamTracked(UpstreamTrackingStatus(ahead=0, behind=0))

    if not token.startswith("["):
        msg = f"Missing opening bracket in upstream tracking: {token!r}"
        raise GitOutputParseError(msg, line=token, field="upstream:track")
    if not token.endswith("]"):
        msg = f"Missing closing bracket in upstream tracking: {token!r}"
        raise GitOutputParseError(msg, line=token, field="upstream:track")

    ahead = 0
    behind = 0
    for component in token[1:-1].split(", "):
        if component == "gone":
            return UpstreamGone()
        if component.startswith("ahead "):
            ahead = _parse_count(component.removeprefix("ahead "), token)
        elif component.startswith("behind "):
            behind = _parse_count(component.removeprefix("behind "), token)
        # Unknown components are ignored.

    return UpstreamTracked(UpstreamTrackingStatus(ahead=ahead, behind=behind))


def _parse_count(value: str, token: str) -> int:
    if not value.isascii() or not value.isdigit():
        msg = f"Invalid count {value!r} in upstream tracking: {token!r}"
        raise GitOutputParseError(msg, line=token, field="upstream:track")
    count = int(value)
    if count > _MAX_TRACK_COUNT:
        msg = f"Count {value!r} out of range in upstream tracking: {token!r}"
        raise GitOutputParseError(msg, line=token, field="upstream:track")
    return count


def _parse_branch_line(line: str) -> Branch:
    fields = line.split("\0")
    head_marker = _next_field(fields, line, "HEAD")
    sha = _next_field(fields, line, "objectname")
    parent = _next_field(fields, line, "parent")
    ref_name = _next_field(fields, line, "refname")
    upstream_name = _next_field(fields, line, "upstream")
    upstream_track = _next_field(fields, line, "upstream:track")
    commit_date = _next_field(fields, line, "committerdate")
    subject = _next_field(fields, line, "subject")

    if not ref_name.startswith(_HEADS_PREFIX):
        msg = f"Expected branch ref to start with {_HEADS_PREFIX}: {ref_name!r}"
        raise GitOutputParseError(msg, line=line, field="refname")

    try:
        commit_timestamp = int(commit_date, 10)
    except ValueError as e:
        msg = f"Invalid committer date {commit_date!r} in branch record"
        raise GitOutputParseError(msg, line=line, field="committerdate") from e

    tracking = parse_upstream_track(upstream_track)
    upstream = None
    if upstream_name:
        upstream = Upstream(ref_name=upstream_name, tracking=tracking)

    return Branch(
        is_head=head_marker == "*",
        name=ref_name.removeprefix(_HEADS_PREFIX),
        upstream=upstream,
        most_recent_commit=CommitSummary(
            sha=sha,
            subject=subject,
            commit_timestamp=commit_timestamp,
            has_parent=bool(parent),
        ),
    )


def parse_branch_input(text: str) -> list[Branch]:
    """Parse ``git for-each-ref`` output in BRANCH_FORMAT.

    Args:
        text: One record per line, eight NUL-separated fields per record.

    Returns:
        Branches in the order git listed them.

    Raises:
        GitOutputParseError: On any malformed record.
    """
    return [_parse_branch_line(line) for line in text.split("\n") if line]


# =============================================================================
# Status
# =============================================================================


def parse_status_output(text: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 -z --no-renames`` output.

    Args:
        text: NUL-terminated ``XY path`` records.

    Returns:
        Status entries sorted by path.

    Raises:
        GitOutputParseError: If a record is truncated or carries an unknown code.
    """
    entries: list[StatusEntry] = []
    for record in text.split("\0"):
        if not record:
            continue
        if len(record) < 4 or record[2] != " ":  # noqa: PLR2004
            msg = f"Malformed status record: {record!r}"
            raise GitOutputParseError(msg, line=record)
        try:
            status = FileStatus(index_status=record[0], worktree_status=record[1])
        except ValueError as e:
            raise GitOutputParseError(str(e), line=record, field="XY") from e
        entries.append(StatusEntry(repo_path=RepoPath(record[3:]), status=status))

    entries.sort(key=lambda entry: entry.repo_path)
    return GitStatus(entries=tuple(entries))


# =============================================================================
# Remotes and commits
# =============================================================================


def parse_remote_list(text: str) -> list[Remote]:
    """Parse ``git remote`` output, preserving its order."""
    return [Remote(name=line.strip()) for line in text.splitlines() if line.strip()]


def parse_commit_messages(text: str) -> dict[str, str]:
    """Parse ``git show -s`` output in COMMIT_MESSAGE_FORMAT.

    Returns:
        Full commit message keyed by commit SHA.

    Raises:
        GitOutputParseError: If a SHA is not followed by a message.
    """
    fields = text.split("\0")
    # Every record is NUL-terminated, so only whitespace may follow the last one.
    trailing = fields.pop()
    if trailing.strip():
        msg = f"Missing message for commit {trailing.strip()!r}"
        raise GitOutputParseError(msg, line=trailing, field="message")
    if len(fields) % 2:
        msg = f"Missing message for commit {fields[-1].strip()!r}"
        raise GitOutputParseError(msg, line=fields[-1], field="message")

    messages: dict[str, str] = {}
    for sha, message in zip(fields[::2], fields[1::2], strict=True):
        if sha.strip():
            messages[sha.strip()] = message.rstrip("\n")
    return messages


# =============================================================================
# Blame
# =============================================================================


def _is_blame_header_line(line: str) -> bool:
    return len(line) >= _SHA_HEX_LENGTH and all(
        c in _HEX_DIGITS for c in line[:_SHA_HEX_LENGTH]
    )


def _extract_commit_header(header_line: str, commit_info: dict[str, str | int]) -> None:
    key, _, value = header_line.partition(" ")
    match key:
        case "author":
            commit_info["author_name"] = value
        case "author-mail":
            commit_info["author_email"] = value.strip().removeprefix("<").removesuffix(">")
        case "author-time":
            try:
                commit_info["author_time"] = int(value)
            except ValueError as e:
                msg = f"Invalid author-time in blame output: {value!r}"
                raise GitOutputParseError(msg, line=header_line, field=key) from e
        case _:
            pass


def parse_blame_porcelain(text: str) -> list[BlameLine]:
    """Parse ``git blame --porcelain`` output.

    The porcelain format is::

        <sha> <orig_line> <final_line> [<num_lines>]
        author <name>
        author-mail <<email>>
        author-time <timestamp>
        ... other headers ...
        filename <path>
        \t<content>

    Headers appear only the first time a commit is seen, so they are cached
    per SHA.

    Args:
        text: Raw porcelain output.

    Returns:
        BlameLine objects in file order.

    Raises:
        GitOutputParseError: If a header line is malformed.
    """
    lines = text.split("\n")
    result: list[BlameLine] = []
    commit_cache: dict[str, dict[str, str | int]] = {}

    i = 0
    while i < len(lines):
        line = lines[i]
        if not _is_blame_header_line(line):
            i += 1
            continue

        parts = line.split()
        if len(parts) < _MIN_BLAME_HEADER_PARTS:
            msg = f"Malformed blame header: {line!r}"
            raise GitOutputParseError(msg, line=line)
        sha = parts[0]
        try:
            final_line_no = int(parts[2])
        except ValueError as e:
            msg = f"Invalid line number in blame header: {line!r}"
            raise GitOutputParseError(msg, line=line, field="final_line") from e

        commit_info = commit_cache.setdefault(sha, {})
        i += 1
        while i < len(lines) and not lines[i].startswith("\t"):
            _extract_commit_header(lines[i], commit_info)
            i += 1

        if i < len(lines):
            result.append(
                BlameLine(
                    line_no=final_line_no,
                    content=lines[i][1:],
                    sha=sha,
                    author_name=str(commit_info.get("author_name", "")),
                    author_email=str(commit_info.get("author_email", "")),
                    timestamp=int(commit_info.get("author_time", 0)),
                )
            )
        i += 1

    return result
