"""Protection engine: derives state from disk and applies lock/unlock/check."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from donttouch.config import POLICY_FILENAME, Policy, load_policy, policy_path, save_policy
from donttouch.core import matcher, permissions
from donttouch.core.matcher import CompiledPattern
from donttouch.core.permissions import Outcome
from donttouch.errors import FileSystemError
from donttouch.platform import git
from donttouch.platform.context import Context, GitContext, detect_context

logger = logging.getLogger(__name__)

StagedLister = Callable[[Path], set[Path]]


class Origin(str, Enum):
    """Why a file is part of the protected set."""

    USER_PATTERN = "pattern"
    POLICY_FILE = "self-protected"


@dataclass
class FileStatus:
    """Current protection state of one matched file."""

    path: Path
    is_locked: bool
    patterns: tuple[str, ...] = ()
    origin: Origin = Origin.USER_PATTERN


@dataclass
class ProtectionState:
    """Snapshot derived from the policy and the filesystem. Never persisted."""

    root: Path
    enabled: bool
    context: Context
    patterns: list[str]
    files: list[FileStatus] = field(default_factory=list)


@dataclass
class FileOutcome:
    """Result of a permission change on one file."""

    path: Path
    outcome: Outcome
    error: Optional[FileSystemError] = None


@dataclass
class BatchResult:
    """Per-file outcomes of a lock or unlock batch."""

    outcomes: list[FileOutcome] = field(default_factory=list)
    files: list[FileStatus] = field(default_factory=list)

    @property
    def changed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.outcome.changed]

    @property
    def unchanged(self) -> list[FileOutcome]:
        return [
            o for o in self.outcomes
            if o.outcome in (Outcome.ALREADY_LOCKED, Outcome.ALREADY_UNLOCKED)
        ]

    @property
    def failures(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.outcome == Outcome.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class CheckResult:
    """Result of the protection check."""

    writable_files: list[Path] = field(default_factory=list)
    staged_files: list[Path] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.writable_files and not self.staged_files


class PushResult(str, Enum):
    PASS = "pass"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class PatternMatch:
    """A policy pattern that matches a queried file."""

    pattern: str
    line: Optional[int]


class ProtectionEngine:
    """Lock, unlock and check the files a policy protects."""

    def __init__(self, staged_lister: Optional[StagedLister] = None):
        self.staged_lister = staged_lister or git.staged_files

    # State derivation

    def _compile(self, policy: Policy) -> list[CompiledPattern]:
        return matcher.compile_patterns(policy.patterns, policy._lines)

    def _statuses(self, root: Path, compiled: list[CompiledPattern]) -> list[FileStatus]:
        statuses: dict[Path, FileStatus] = {}

        for rel in matcher.match(root, compiled):
            statuses[rel] = FileStatus(
                path=rel,
                is_locked=permissions.is_locked(root / rel),
                patterns=tuple(p.pattern for p in matcher.patterns_matching(rel, compiled)),
            )

        # The policy file always belongs to the protected set
        policy_rel = Path(POLICY_FILENAME)
        if policy_rel not in statuses:
            statuses[policy_rel] = FileStatus(
                path=policy_rel,
                is_locked=permissions.is_locked(root / policy_rel),
                origin=Origin.POLICY_FILE,
            )

        return [statuses[p] for p in sorted(statuses, key=lambda p: p.as_posix())]

    def derive_state(
        self,
        root: Path,
        ignore_git: bool = False,
        context: Optional[Context] = None,
    ) -> ProtectionState:
        """
        Build a fresh ProtectionState for root.

        Raises:
            ConfigError: If the policy file is missing or malformed
            PatternError: If any pattern is invalid
        """
        policy = load_policy(root)
        compiled = self._compile(policy)
        return ProtectionState(
            root=root,
            enabled=policy.enabled,
            context=context or detect_context(root, ignore_git=ignore_git),
            patterns=list(policy.patterns),
            files=self._statuses(root, compiled),
        )

    # Transitions

    def _apply(
        self,
        root: Path,
        files: list[FileStatus],
        action: Callable[[Path], Outcome],
    ) -> list[FileOutcome]:
        outcomes: list[FileOutcome] = []
        for status in files:
            try:
                outcome = action(root / status.path)
                outcomes.append(FileOutcome(status.path, outcome))
            except FileSystemError as e:
                logger.warning("%s", e)
                outcomes.append(FileOutcome(status.path, Outcome.FAILED, error=e))
        return outcomes

    def _persist_enabled(self, root: Path, policy: Policy, enabled: bool) -> None:
        path = policy_path(root)
        if permissions.is_locked(path):
            permissions.unlock(path)
        policy.enabled = enabled
        try:
            save_policy(root, policy)
        except OSError as e:
            raise FileSystemError(path, f"Cannot write policy ({e.strerror or e})") from e

    def lock(self, root: Path) -> BatchResult:
        """
        Enable protection and make every protected file read-only.

        Returns an empty outcome list when protection is already enabled and
        every file is locked.
        """
        policy = load_policy(root)
        compiled = self._compile(policy)
        files = self._statuses(root, compiled)

        if policy.enabled and all(f.is_locked for f in files):
            logger.debug("Nothing to lock under %s", root)
            return BatchResult(outcomes=[], files=files)

        if not policy.enabled:
            self._persist_enabled(root, policy, True)

        outcomes = self._apply(root, files, permissions.lock)
        return BatchResult(outcomes=outcomes, files=self._statuses(root, compiled))

    def unlock(self, root: Path) -> BatchResult:
        """Restore owner write permission on every protected file and disable protection."""
        policy = load_policy(root)
        compiled = self._compile(policy)
        files = self._statuses(root, compiled)

        outcomes = self._apply(root, files, permissions.unlock)
        if policy.enabled:
            try:
                self._persist_enabled(root, policy, False)
            except FileSystemError as e:
                logger.warning("%s", e)
                outcomes.append(FileOutcome(Path(POLICY_FILENAME), Outcome.FAILED, error=e))
        return BatchResult(outcomes=outcomes, files=self._statuses(root, compiled))

    # Checks

    def check(self, root: Path, context: Context) -> CheckResult:
        """
        Verify every protected file is read-only.

        In a git context protected files must also not be staged.
        """
        policy = load_policy(root)
        files = self._statuses(root, self._compile(policy))
        result = CheckResult(writable_files=[f.path for f in files if not f.is_locked])

        if isinstance(context, GitContext):
            staged = self.staged_lister(root)
            result.staged_files = [f.path for f in files if f.path in staged]
        return result

    def check_push(self, root: Path) -> PushResult:
        """Block pushes while protection is disabled."""
        policy = load_policy(root)
        return PushResult.PASS if policy.enabled else PushResult.BLOCKED

    def why(self, root: Path, file: Path) -> list[PatternMatch]:
        """
        List the policy patterns that match a file.

        Args:
            root: Protected tree
            file: Path relative to root, or absolute inside it
        """
        policy = load_policy(root)
        compiled = self._compile(policy)
        rel = relative_to_root(root, file)
        if rel is None:
            return []
        return [PatternMatch(p.pattern, p.line) for p in matcher.patterns_matching(rel, compiled)]


def relative_to_root(root: Path, file: Path) -> Optional[Path]:
    """Express file relative to root, or None when it lies outside."""
    candidate = file if file.is_absolute() else root / file
    try:
        return Path(os.path.abspath(candidate)).relative_to(os.path.abspath(root))
    except ValueError:
        pass
    try:
        return candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return None


def is_policy_file(root: Path, file: Path) -> bool:
    return relative_to_root(root, file) == Path(POLICY_FILENAME)
