"""Detection of the working-tree context (plain directory or git repository)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

GIT_DIRNAME = ".git"
HUSKY_DIRNAME = ".husky"
HOOK_NAMES: tuple[str, ...] = ("pre-commit", "pre-push")

# Line every donttouch hook block starts with; see integrations.hooks
HOOK_MARKER_PREFIX = "# >>> donttouch "


@dataclass(frozen=True)
class PlainContext:
    """A directory without version control (or with git ignored)."""

    @property
    def is_git(self) -> bool:
        return False

    @property
    def label(self) -> str:
        return "plain"


@dataclass(frozen=True)
class GitContext:
    """A git working tree."""

    has_husky: bool = False
    hooks_installed: bool = False

    @property
    def is_git(self) -> bool:
        return True

    @property
    def label(self) -> str:
        return "git (husky)" if self.has_husky else "git"


Context = Union[PlainContext, GitContext]


def resolve_git_dir(root: Path) -> Optional[Path]:
    """
    Locate the git metadata directory for root.

    Handles both a regular `.git` directory and the `.git` file used by
    worktrees and submodules (`gitdir: <path>`).
    """
    dot_git = root / GIT_DIRNAME
    if dot_git.is_dir():
        return dot_git
    if not dot_git.is_file():
        return None

    try:
        content = dot_git.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.warning("Cannot read %s: %s", dot_git, e)
        return None

    if not content.startswith("gitdir:"):
        return None
    git_dir = Path(content[len("gitdir:"):].strip())
    if not git_dir.is_absolute():
        git_dir = root / git_dir
    return git_dir


def hooks_dir(root: Path, context: Context) -> Optional[Path]:
    """Directory hook scripts live in: Husky's when present, else git's."""
    if not isinstance(context, GitContext):
        return None
    if context.has_husky:
        return root / HUSKY_DIRNAME
    git_dir = resolve_git_dir(root)
    return git_dir / "hooks" if git_dir else None


def _hook_has_marker(path: Path) -> bool:
    if not path.is_file():
        return False
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False
    return any(line.startswith(HOOK_MARKER_PREFIX) for line in text.splitlines())


def detect_context(root: Path, ignore_git: bool = False) -> Context:
    """
    Classify root as a plain directory or a git working tree.

    Args:
        root: Directory holding the policy file
        ignore_git: Treat the directory as plain even inside a repository

    Returns:
        PlainContext or GitContext with Husky and installed-hook flags
    """
    if ignore_git or resolve_git_dir(root) is None:
        return PlainContext()

    has_husky = (root / HUSKY_DIRNAME).is_dir()
    directory = hooks_dir(root, GitContext(has_husky=has_husky))
    installed = directory is not None and any(
        _hook_has_marker(directory / name) for name in HOOK_NAMES
    )
    return GitContext(has_husky=has_husky, hooks_installed=installed)
