"""Injection of protected-file instructions into AI agent config files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from donttouch.config import POLICY_FILENAME
from donttouch.errors import InjectError, MarkerBlockError
from donttouch.integrations import markers
from donttouch.integrations.markers import Markers, RemoveAction, UpsertAction

logger = logging.getLogger(__name__)

AGENT_MARKERS = Markers(start="<!-- donttouch:start -->", end="<!-- donttouch:end -->")

CURSOR_RULE_PREAMBLE = """\
---
description: Files protected by donttouch
alwaysApply: true
---
"""


@dataclass(frozen=True)
class AgentTarget:
    """An agent instruction file and its create policy."""

    name: str
    relative_path: str
    create_if_missing: bool = False
    preamble: str = ""

    def path(self, root: Path) -> Path:
        return root / self.relative_path

    def is_disposable(self, remaining: str) -> bool:
        """Only files this tool creates are deleted once empty."""
        if not self.create_if_missing:
            return False
        return markers.is_blank(_strip_front_matter(remaining))


AGENT_TARGETS: tuple[AgentTarget, ...] = (
    AgentTarget("Claude Code", "CLAUDE.md"),
    AgentTarget("AGENTS.md", "AGENTS.md"),
    AgentTarget(
        "Cursor",
        ".cursor/rules/donttouch.mdc",
        create_if_missing=True,
        preamble=CURSOR_RULE_PREAMBLE,
    ),
    AgentTarget("Gemini CLI", "GEMINI.md"),
    AgentTarget("GitHub Copilot", ".github/copilot-instructions.md"),
)


def _strip_front_matter(text: str) -> str:
    lines = text.splitlines()
    if lines and lines[0].strip() == "---":
        for index in range(1, len(lines)):
            if lines[index].strip() == "---":
                return "\n".join(lines[index + 1:])
    return text


def instructions_body(patterns: list[str]) -> str:
    """Markdown telling agents which files they must leave alone."""
    lines = [
        "## Protected files",
        "",
        "The following files are protected by donttouch and are read-only.",
        "Do not modify, move, or delete them, do not change their permissions,",
        "and do not run `donttouch unlock`, `donttouch disable` or `donttouch remove`.",
        "If a change to one of them is required, stop and ask the user.",
        "",
        f"- `{POLICY_FILENAME}`",
    ]
    lines.extend(f"- `{pattern}`" for pattern in patterns)
    return "\n".join(lines)


@dataclass
class InjectOutcome:
    """Result for one agent target."""

    target: AgentTarget
    path: Path
    action: Optional[Union[UpsertAction, RemoveAction]]
    dry_run: bool = False
    error: Optional[InjectError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def label(self) -> str:
        if self.error is not None or self.action is None:
            return "failed"
        words = {
            UpsertAction.CREATED: "added instructions",
            UpsertAction.UPDATED: "updated instructions",
            UpsertAction.UNCHANGED: "already has instructions",
            UpsertAction.SKIPPED: "skipped (file not found)",
            RemoveAction.REMOVED: "removed instructions",
            RemoveAction.DELETED_FILE: "deleted file",
            RemoveAction.NOOP: "nothing to remove",
        }
        if self.dry_run:
            words.update({
                UpsertAction.CREATED: "would add instructions",
                UpsertAction.UPDATED: "would update instructions",
                UpsertAction.UNCHANGED: "would skip (already has instructions)",
                UpsertAction.SKIPPED: "would skip (file not found)",
            })
        return words[self.action]


class AgentInjector:
    """Writes donttouch instructions into the known agent files of a tree."""

    def __init__(self, root: Path, targets: tuple[AgentTarget, ...] = AGENT_TARGETS):
        self.root = root
        self.targets = targets

    def inject(self, patterns: list[str], dry_run: bool = False) -> list[InjectOutcome]:
        """
        Upsert the instruction block into every target.

        Args:
            patterns: Currently protected patterns to list
            dry_run: Compute the same decisions without writing anything

        Returns:
            One outcome per target, in target order; failures are collected
        """
        body = instructions_body(patterns)
        outcomes: list[InjectOutcome] = []

        for target in self.targets:
            path = target.path(self.root)
            try:
                action = markers.upsert(
                    path,
                    AGENT_MARKERS,
                    body,
                    create_if_missing=target.create_if_missing,
                    preamble=target.preamble,
                    dry_run=dry_run,
                )
            except MarkerBlockError as e:
                outcomes.append(self._failure(target, path, str(e), dry_run))
                continue
            except UnicodeDecodeError:
                outcomes.append(self._failure(target, path, "Not valid UTF-8", dry_run))
                continue
            except OSError as e:
                outcomes.append(
                    self._failure(target, path, f"Cannot write ({e.strerror or e})", dry_run)
                )
                continue
            logger.debug("Inject %s: %s", target.relative_path, action.value)
            outcomes.append(InjectOutcome(target, path, action, dry_run=dry_run))

        return outcomes

    def remove(self) -> list[InjectOutcome]:
        """Strip the instruction block from every target that has one."""
        outcomes: list[InjectOutcome] = []

        for target in self.targets:
            path = target.path(self.root)
            try:
                action = markers.remove(
                    path, AGENT_MARKERS, is_disposable=target.is_disposable
                )
            except MarkerBlockError as e:
                outcomes.append(self._failure(target, path, str(e), False))
                continue
            except UnicodeDecodeError:
                outcomes.append(self._failure(target, path, "Not valid UTF-8", False))
                continue
            except OSError as e:
                outcomes.append(
                    self._failure(target, path, f"Cannot update ({e.strerror or e})", False)
                )
                continue
            if action == RemoveAction.DELETED_FILE:
                self._prune_empty_parents(path)
            outcomes.append(InjectOutcome(target, path, action))

        return outcomes

    def _prune_empty_parents(self, path: Path) -> None:
        """Remove directories left empty by deleting a created rule file."""
        parent = path.parent
        while parent != self.root and self.root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    @staticmethod
    def _failure(
        target: AgentTarget, path: Path, detail: str, dry_run: bool
    ) -> InjectOutcome:
        logger.warning("Inject failed for %s: %s", path, detail)
        return InjectOutcome(
            target, path, None, dry_run=dry_run, error=InjectError(path, detail)
        )
