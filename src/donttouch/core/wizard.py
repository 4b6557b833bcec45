"""The interactive `init` flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from donttouch.config import Policy, save_policy
from donttouch.core.engine import BatchResult, ProtectionEngine
from donttouch.core.matcher import compile_pattern
from donttouch.errors import PatternError
from donttouch.integrations.agents import AgentInjector, InjectOutcome
from donttouch.integrations.hooks import HookManager, HookOutcome
from donttouch.platform.context import Context, GitContext

logger = logging.getLogger(__name__)


class InitStep(str, Enum):
    """Sub-states of `init`, executed in this order."""

    COLLECT_PATTERNS = "collect_patterns"
    PERSIST_POLICY = "persist_policy"
    LOCK = "lock"
    INSTALL_HOOKS = "install_hooks"
    INJECT_AGENTS = "inject_agents"
    DONE = "done"


class InitPrompts(Protocol):
    """Questions the init flow asks. Implemented by ui.prompts for the console."""

    def ask_pattern(self) -> Optional[str]:
        """Return the next pattern, or None when the user is done."""
        ...

    def reject_pattern(self, pattern: str, reason: str) -> None:
        ...

    def accept_pattern(self, pattern: str) -> None:
        ...

    def confirm(self, question: str, default: bool = True) -> bool:
        ...


@dataclass
class InitResult:
    """What each completed step of `init` produced."""

    completed: list[InitStep] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    policy_file: Optional[Path] = None
    lock: Optional[BatchResult] = None
    hooks: list[HookOutcome] = field(default_factory=list)
    injected: list[InjectOutcome] = field(default_factory=list)


class InitWizard:
    """
    Drives `init` through its linear sequence of steps.

    Each step commits on its own. An interrupt during a step aborts that step
    only; everything completed before it stays on disk.
    """

    def __init__(
        self,
        root: Path,
        context: Context,
        prompts: InitPrompts,
        engine: Optional[ProtectionEngine] = None,
    ):
        self.root = root
        self.context = context
        self.prompts = prompts
        self.engine = engine or ProtectionEngine()
        self.result = InitResult()

    def steps(self) -> list[InitStep]:
        steps = [InitStep.COLLECT_PATTERNS, InitStep.PERSIST_POLICY, InitStep.LOCK]
        if isinstance(self.context, GitContext):
            steps.append(InitStep.INSTALL_HOOKS)
        steps.extend([InitStep.INJECT_AGENTS, InitStep.DONE])
        return steps

    def run(self) -> InitResult:
        handlers = {
            InitStep.COLLECT_PATTERNS: self._collect_patterns,
            InitStep.PERSIST_POLICY: self._persist_policy,
            InitStep.LOCK: self._lock,
            InitStep.INSTALL_HOOKS: self._install_hooks,
            InitStep.INJECT_AGENTS: self._inject_agents,
            InitStep.DONE: lambda: None,
        }
        for step in self.steps():
            logger.debug("init: %s", step.value)
            handlers[step]()
            self.result.completed.append(step)
        return self.result

    def _collect_patterns(self) -> None:
        patterns: list[str] = []
        while True:
            raw = self.prompts.ask_pattern()
            if raw is None or not raw.strip():
                break
            pattern = raw.strip()
            try:
                compile_pattern(pattern)
            except PatternError as e:
                self.prompts.reject_pattern(pattern, e.problems[0].reason)
                continue
            if pattern not in patterns:
                patterns.append(pattern)
            self.prompts.accept_pattern(pattern)
        self.result.patterns = patterns

    def _persist_policy(self) -> None:
        policy = Policy(enabled=True, patterns=list(self.result.patterns))
        self.result.policy_file = save_policy(self.root, policy)

    def _lock(self) -> None:
        if self.prompts.confirm("Lock protected files now?", default=True):
            self.result.lock = self.engine.lock(self.root)

    def _install_hooks(self) -> None:
        if not self.prompts.confirm("Install git pre-commit and pre-push hooks?", default=True):
            return
        self.result.hooks = HookManager(self.root, self.context).install_all()

    def _inject_agents(self) -> None:
        if self.prompts.confirm("Add donttouch instructions to AI agent files?", default=True):
            injector = AgentInjector(self.root)
            self.result.injected = injector.inject(self.result.patterns)
