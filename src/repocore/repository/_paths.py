"""Repository-relative path value type.

This module defines RepoPath, the canonical key for per-file repository
state, together with the seek helpers used to scan the contiguous run of
descendants of a path inside a sorted collection.
"""

from __future__ import annotations

import bisect
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from pathlib import PurePath, PureWindowsPath
from typing import Final, Self, TypeVar

from repocore.enums import RepoPathViolation
from repocore.exceptions import RepoPathError

T = TypeVar("T")


class Ordering(IntEnum):
    """Three-way comparison result."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


def _reject(raw: str, message: str, violation: RepoPathViolation) -> RepoPathError:
    return RepoPathError(message, path=raw, violation=violation)


def _split(raw: str) -> tuple[str, ...]:
    """Validate a raw path string and split it into components.

    Args:
        raw: Slash-separated relative path. The empty string is the root.

    Returns:
        Path components with empty and interior ``.`` segments removed.

    Raises:
        RepoPathError: If the path is rooted, carries a drive prefix, or
            starts with ``.`` or ``..``.
    """
    if not raw:
        return ()

    if sys.platform == "win32":
        if PureWindowsPath(raw).drive:
            msg = f"repo path `{raw}` should be relative, not a windows prefix"
            raise _reject(raw, msg, RepoPathViolation.PREFIXED)
        raw = raw.replace("\\", "/")

    if raw.startswith("/"):
        msg = f"repo path `{raw}` should be relative"
        raise _reject(raw, msg, RepoPathViolation.ROOTED)

    components = raw.split("/")
    if components[0] == ".":
        msg = f"repo path `{raw}` should not start with `.`"
        raise _reject(raw, msg, RepoPathViolation.CURRENT_DIR)
    if components[0] == "..":
        msg = f"repo path `{raw}` should not start with `..`"
        raise _reject(raw, msg, RepoPathViolation.PARENT_DIR)

    return tuple(c for c in components if c not in {"", "."})


@dataclass(frozen=True, slots=True, order=True, init=False)
class RepoPath:
    """An immutable path relative to the repository working directory.

    Paths are stored as a tuple of components, so ordering is lexicographic
    over components ("a/b" sorts before "a/c" and after "a"). The empty
    path denotes the working directory itself.

    Attributes:
        parts: Path components, never containing "", "." or a leading "..".

    Example:
        >>> path = RepoPath("src/main.py")
        >>> path.starts_with(RepoPath("src"))
        True
        >>> RepoPath("../escape")
        Traceback (most recent call last):
        ...
        repocore.exceptions.RepoPathError: repo path `../escape` should not start with `..`
    """

    parts: tuple[str, ...]

    def __init__(self, path: str | PurePath | RepoPath = "") -> None:
        """Create a path, validating it.

        Args:
            path: A relative path. The empty string is the working directory.

        Raises:
            RepoPathError: If the path is rooted, prefixed, or starts with
                ``.`` or ``..``.
        """
        if isinstance(path, RepoPath):
            parts = path.parts
        elif isinstance(path, PurePath):
            parts = _split(str(path) if str(path) != "." else "")
        else:
            parts = _split(path)
        object.__setattr__(self, "parts", parts)

    @classmethod
    def validated(cls, path: str | PurePath | RepoPath) -> Self:
        """Create a path that must name something below the working directory.

        Use this where a path crosses a trust boundary and the root is not a
        meaningful answer.

        Raises:
            RepoPathError: If the path is empty or otherwise invalid.
        """
        repo_path = cls(path)
        if not repo_path.parts:
            msg = "repo path should not be empty"
            raise RepoPathError(msg, path=str(path), violation=RepoPathViolation.EMPTY)
        return repo_path

    @classmethod
    def _from_parts(cls, parts: tuple[str, ...]) -> Self:
        repo_path = object.__new__(cls)
        object.__setattr__(repo_path, "parts", parts)
        return repo_path

    def __str__(self) -> str:
        return "/".join(self.parts)

    def __repr__(self) -> str:
        return f"RepoPath({str(self)!r})"

    def __fspath__(self) -> str:
        return str(self)

    def __truediv__(self, other: str | RepoPath) -> RepoPath:
        return self.joinpath(other)

    @property
    def is_root(self) -> bool:
        """Whether this path is the working directory itself."""
        return not self.parts

    @property
    def name(self) -> str:
        """Final component, or "" for the root."""
        return self.parts[-1] if self.parts else ""

    @property
    def parent(self) -> RepoPath:
        """Containing directory. The root is its own parent."""
        return self._from_parts(self.parts[:-1])

    def joinpath(self, *others: str | RepoPath) -> RepoPath:
        """Append relative components to this path."""
        parts = self.parts
        for other in others:
            parts += RepoPath(other).parts
        return self._from_parts(parts)

    def starts_with(self, prefix: RepoPath) -> bool:
        """Check whether ``prefix`` is this path or one of its ancestors.

        Every path starts with the root.
        """
        return self.parts[: len(prefix.parts)] == prefix.parts

    def as_bytes(self) -> bytes:
        """Encode for dulwich, which keys trees and the index by bytes."""
        return str(self).encode("utf-8")


WORK_DIRECTORY_REPO_PATH: Final = RepoPath()


def _compare(left: RepoPath, right: RepoPath) -> Ordering:
    if left < right:
        return Ordering.LESS
    if left > right:
        return Ordering.GREATER
    return Ordering.EQUAL


@dataclass(frozen=True, slots=True)
class RepoPathDescendants:
    """Seek target for the run of keys below a path.

    Any key that has ``prefix`` as an ancestor (including ``prefix``
    itself) compares as lying before the target; all other keys use the
    ordinary path ordering. Over a sorted key sequence the result of
    ``cmp_cursor`` is therefore GREATER up to the end of the descendant run
    and LESS afterwards.

    Attributes:
        prefix: The ancestor path.
    """

    prefix: RepoPath

    def cmp_cursor(self, key: RepoPath) -> Ordering:
        """Compare the target against a key."""
        if key.starts_with(self.prefix):
            return Ordering.GREATER
        return _compare(self.prefix, key)


def descendant_range(
    items: Sequence[T],
    prefix: RepoPath,
    *,
    key: Callable[[T], RepoPath] | None = None,
) -> tuple[int, int]:
    """Locate the contiguous run of items below ``prefix``.

    Args:
        items: Sequence sorted by path.
        prefix: Ancestor path to look for.
        key: Extracts the path from an item. Items must be RepoPaths when omitted.

    Returns:
        ``(start, end)`` slice bounds; equal when nothing matches.
    """

    def get_key(item: T) -> RepoPath:
        return key(item) if key is not None else item  # pyright: ignore[reportReturnType]

    target = RepoPathDescendants(prefix)
    start = bisect.bisect_left(items, prefix, key=get_key)
    end = bisect.bisect_left(
        items,
        True,  # noqa: FBT003
        lo=start,
        key=lambda item: target.cmp_cursor(get_key(item)) is not Ordering.GREATER,
    )
    return start, end


def descendants(
    items: Sequence[T],
    prefix: RepoPath,
    *,
    key: Callable[[T], RepoPath] | None = None,
) -> Sequence[T]:
    """Return the items whose path has ``prefix`` as an ancestor.

    Args:
        items: Sequence sorted by path.
        prefix: Ancestor path to look for.
        key: Extracts the path from an item.

    Returns:
        The matching slice of ``items``.
    """
    start, end = descendant_range(items, prefix, key=key)
    return items[start:end]
