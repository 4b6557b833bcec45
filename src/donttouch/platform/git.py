"""Queries against the git index."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def staged_files(root: Path) -> set[Path]:
    """
    Return root-relative paths that are staged for the next commit.

    An unavailable git binary or a failing command yields an empty set and a
    warning, since the staged check is only an addition to the lock check.
    """
    try:
        result = subprocess.run(
            ["git", "diff", "--cached", "--name-only", "-z", "--relative"],
            cwd=root,
            capture_output=True,
            check=False,
        )
    except OSError as e:
        logger.warning("Cannot run git to list staged files: %s", e)
        return set()

    if result.returncode != 0:
        logger.warning(
            "git diff --cached failed (%d): %s",
            result.returncode,
            result.stderr.decode("utf-8", errors="replace").strip(),
        )
        return set()

    names = result.stdout.decode("utf-8", errors="surrogateescape").split("\0")
    return {Path(name) for name in names if name}
