"""Outside-directory guard for commands that lift protection."""

from __future__ import annotations

import os
from pathlib import Path

from donttouch.errors import InsideTargetError, TargetNotFoundError


def canonicalize(path: Path) -> Path:
    """Resolve symlinks, `.` and `..`; the path must exist."""
    return path.expanduser().resolve(strict=True)


def is_inside(path: Path, root: Path) -> bool:
    """True when canonical path equals root or lies below it."""
    path_key = Path(os.path.normcase(str(path)))
    root_key = Path(os.path.normcase(str(root)))
    return path_key == root_key or root_key in path_key.parents


def assert_outside(current_dir: Path, target_dir: Path) -> Path:
    """
    Fail unless current_dir is outside target_dir.

    Both paths are canonicalized first, so symlinks and relative segments
    cannot be used to sneak back into the target.

    Args:
        current_dir: Directory the command runs from
        target_dir: Protected tree the command would modify

    Returns:
        Canonical target directory

    Raises:
        TargetNotFoundError: If the target does not exist
        InsideTargetError: If current_dir is the target or one of its descendants
    """
    try:
        target = canonicalize(target_dir)
    except (OSError, RuntimeError) as e:
        raise TargetNotFoundError(target_dir, getattr(e, "strerror", None) or str(e)) from e
    if not target.is_dir():
        raise TargetNotFoundError(target_dir, "not a directory")

    try:
        current = canonicalize(current_dir)
    except (OSError, RuntimeError) as e:
        raise TargetNotFoundError(current_dir, getattr(e, "strerror", None) or str(e)) from e

    if is_inside(current, target):
        raise InsideTargetError(current, target)
    return target
