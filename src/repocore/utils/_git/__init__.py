"""Git utilities for repocore.

This package provides helpers shared by the repository backends for opening
repositories and resolving their directories.
"""

from repocore.utils._git._common import (
    decode_bytes,
    get_common_dir,
    get_control_dir,
    get_worktree_dir,
    resolve_repo,
    strip_refs_heads,
)

__all__ = [
    "decode_bytes",
    "get_common_dir",
    "get_control_dir",
    "get_worktree_dir",
    "resolve_repo",
    "strip_refs_heads",
]
