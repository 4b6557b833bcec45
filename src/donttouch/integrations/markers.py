"""Idempotent upsert and removal of delimited text blocks in host files."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from donttouch.errors import MarkerBlockError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Markers:
    """Start and end delimiter lines of a block."""

    start: str
    end: str


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


class RemoveAction(str, Enum):
    REMOVED = "removed"
    DELETED_FILE = "deleted_file"
    NOOP = "noop"


def _find_block(
    lines: list[str], markers: Markers, path: Optional[Path] = None
) -> Optional[tuple[int, int]]:
    """Return (start index, end index) of the block, or None if absent."""
    try:
        start = lines.index(markers.start)
    except ValueError:
        return None
    try:
        end = lines.index(markers.end, start + 1)
    except ValueError:
        raise MarkerBlockError(path or Path("<text>"), markers.start) from None
    return start, end


def _split(text: str) -> list[str]:
    return [line.rstrip("\r") for line in text.splitlines()]


def _join(lines: list[str]) -> str:
    return "\n".join(lines) + "\n" if lines else ""


def has_block(text: str, markers: Markers) -> bool:
    """True when text contains the start marker line."""
    return markers.start in _split(text)


def render_block(markers: Markers, body: str) -> list[str]:
    return [markers.start, *_split(body), markers.end]


def plan_upsert(
    text: Optional[str],
    markers: Markers,
    body: str,
    create_if_missing: bool,
    preamble: str = "",
    path: Optional[Path] = None,
) -> tuple[UpsertAction, Optional[str]]:
    """
    Decide how a block upsert would change a host file.

    Args:
        text: Current file content, or None if the file does not exist
        markers: Block delimiters
        body: Desired content between the delimiters
        create_if_missing: Whether a missing file may be created
        preamble: Text placed before the block in a newly created file
        path: Host file path, used in error messages

    Returns:
        (action, new content) where new content is None when nothing changes
    """
    block = render_block(markers, body)

    if text is None:
        if not create_if_missing:
            return UpsertAction.SKIPPED, None
        head = _split(preamble)
        if head and head[-1] != "":
            head.append("")
        return UpsertAction.CREATED, _join(head + block)

    lines = _split(text)
    span = _find_block(lines, markers, path)

    if span is None:
        while lines and not lines[-1].strip():
            lines.pop()
        if lines:
            lines.append("")
        return UpsertAction.CREATED, _join(lines + block)

    start, end = span
    if lines[start + 1:end] == block[1:-1]:
        return UpsertAction.UNCHANGED, None
    return UpsertAction.UPDATED, _join(lines[:start] + block + lines[end + 1:])


def _read(path: Path) -> Optional[str]:
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


def upsert(
    path: Path,
    markers: Markers,
    body: str,
    create_if_missing: bool = False,
    preamble: str = "",
    dry_run: bool = False,
) -> UpsertAction:
    """
    Insert or refresh a block inside path.

    Raises:
        MarkerBlockError: If the file has a start marker but no end marker
        OSError: If the file cannot be read or written
    """
    action, new_text = plan_upsert(
        _read(path), markers, body, create_if_missing, preamble=preamble, path=path
    )
    if new_text is not None and not dry_run:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(new_text, encoding="utf-8")
        logger.debug("%s block in %s", action.value.capitalize(), path)
    return action


def plan_remove(
    text: str, markers: Markers, path: Optional[Path] = None
) -> Optional[str]:
    """Return text without the block, or None if there is no block."""
    lines = _split(text)
    span = _find_block(lines, markers, path)
    if span is None:
        return None

    start, end = span
    before = lines[:start]
    after = lines[end + 1:]
    # Drop the blank separator line inserted ahead of an appended block
    if before and not before[-1].strip():
        before.pop()
    return _join(before + after)


def remove(
    path: Path,
    markers: Markers,
    is_disposable: Optional[Callable[[str], bool]] = None,
) -> RemoveAction:
    """
    Strip a block from path.

    Args:
        path: Host file
        markers: Block delimiters
        is_disposable: Called with the remaining content; when it returns
            True the host file is deleted instead of rewritten

    Raises:
        MarkerBlockError: If the file has a start marker but no end marker
        OSError: If the file cannot be read, written or deleted
    """
    text = _read(path)
    if text is None:
        return RemoveAction.NOOP

    remaining = plan_remove(text, markers, path)
    if remaining is None:
        return RemoveAction.NOOP

    if is_disposable is not None and is_disposable(remaining):
        path.unlink()
        logger.debug("Deleted %s after removing its block", path)
        return RemoveAction.DELETED_FILE

    path.write_text(remaining, encoding="utf-8")
    logger.debug("Removed block from %s", path)
    return RemoveAction.REMOVED


def is_blank(text: str) -> bool:
    """Disposable check for files that only ever held the block."""
    return not text.strip()
