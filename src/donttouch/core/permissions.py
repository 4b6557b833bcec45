"""Read-only / writable permission flips for protected files."""

from __future__ import annotations

import logging
import os
import stat
from enum import Enum
from pathlib import Path

from donttouch.errors import FileSystemError

logger = logging.getLogger(__name__)

# Write bits for owner, group and other
WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


class Outcome(str, Enum):
    """Result of a single permission change."""

    NEWLY_LOCKED = "newly_locked"
    ALREADY_LOCKED = "already_locked"
    NEWLY_UNLOCKED = "newly_unlocked"
    ALREADY_UNLOCKED = "already_unlocked"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def changed(self) -> bool:
        return self in (Outcome.NEWLY_LOCKED, Outcome.NEWLY_UNLOCKED)


def _mode(path: Path) -> int | None:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return None
    except OSError as e:
        raise FileSystemError(path, f"Cannot read permissions ({e.strerror or e})") from e


def _chmod(path: Path, mode: int) -> None:
    try:
        os.chmod(path, mode)
    except FileNotFoundError:
        raise
    except OSError as e:
        raise FileSystemError(path, f"Cannot set permissions ({e.strerror or e})") from e


def is_locked(path: Path) -> bool:
    """True when no principal may write to the file."""
    mode = _mode(path)
    return mode is not None and not mode & WRITE_BITS


# On Windows, os.chmod only honours the owner write bit and maps it onto the
# read-only attribute, so the same bit arithmetic covers both platforms.


def lock(path: Path) -> Outcome:
    """
    Remove write permission for every principal, keeping execute bits.

    Returns:
        NEWLY_LOCKED, ALREADY_LOCKED, or SKIPPED if the file is gone

    Raises:
        FileSystemError: If the mode cannot be changed
    """
    mode = _mode(path)
    if mode is None:
        logger.debug("Skipping missing file: %s", path)
        return Outcome.SKIPPED
    if not mode & WRITE_BITS:
        return Outcome.ALREADY_LOCKED

    try:
        _chmod(path, mode & ~WRITE_BITS)
    except FileNotFoundError:
        return Outcome.SKIPPED
    logger.debug("Locked %s (%o -> %o)", path, mode, mode & ~WRITE_BITS)
    return Outcome.NEWLY_LOCKED


def unlock(path: Path) -> Outcome:
    """
    Restore owner write permission.

    Group and other write bits are not restored.

    Returns:
        NEWLY_UNLOCKED, ALREADY_UNLOCKED, or SKIPPED if the file is gone

    Raises:
        FileSystemError: If the mode cannot be changed
    """
    mode = _mode(path)
    if mode is None:
        logger.debug("Skipping missing file: %s", path)
        return Outcome.SKIPPED
    if mode & stat.S_IWUSR:
        return Outcome.ALREADY_UNLOCKED

    try:
        _chmod(path, mode | stat.S_IWUSR)
    except FileNotFoundError:
        return Outcome.SKIPPED
    logger.debug("Unlocked %s (%o -> %o)", path, mode, mode | stat.S_IWUSR)
    return Outcome.NEWLY_UNLOCKED
