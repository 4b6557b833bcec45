"""Command transition table over the persistent protection state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from donttouch.config import load_policy
from donttouch.errors import ConfigMissingError, StateError


class PolicyState(str, Enum):
    """Persistent state, resolved from disk on every invocation."""

    UNINITIALIZED = "uninitialized"
    ENABLED = "enabled"
    DISABLED = "disabled"


class Command(str, Enum):
    INIT = "init"
    LOCK = "lock"
    UNLOCK = "unlock"
    ENABLE = "enable"
    DISABLE = "disable"
    CHECK = "check"
    CHECK_PUSH = "check-push"
    STATUS = "status"
    INJECT = "inject"
    WHY = "why"
    REMOVE = "remove"


class Effect(str, Enum):
    RUN = "run"
    NOOP = "noop"
    REJECT = "reject"


@dataclass(frozen=True)
class Transition:
    effect: Effect
    message: Optional[str] = None


RUN = Transition(Effect.RUN)
NOT_INITIALIZED = Transition(
    Effect.REJECT, "No .donttouch.toml found. Run 'donttouch init' first."
)
ALREADY_INITIALIZED = Transition(
    Effect.REJECT, ".donttouch.toml already exists. Nothing to do."
)

TRANSITIONS: dict[tuple[PolicyState, Command], Transition] = {
    (PolicyState.UNINITIALIZED, Command.INIT): RUN,
    (PolicyState.ENABLED, Command.INIT): ALREADY_INITIALIZED,
    (PolicyState.DISABLED, Command.INIT): ALREADY_INITIALIZED,
    # Enabled
    (PolicyState.ENABLED, Command.LOCK): RUN,
    (PolicyState.ENABLED, Command.UNLOCK): RUN,
    (PolicyState.ENABLED, Command.ENABLE): Transition(
        Effect.NOOP, "Protection is already enabled."
    ),
    (PolicyState.ENABLED, Command.DISABLE): RUN,
    (PolicyState.ENABLED, Command.CHECK): RUN,
    (PolicyState.ENABLED, Command.CHECK_PUSH): RUN,
    (PolicyState.ENABLED, Command.STATUS): RUN,
    (PolicyState.ENABLED, Command.INJECT): RUN,
    (PolicyState.ENABLED, Command.WHY): RUN,
    (PolicyState.ENABLED, Command.REMOVE): RUN,
    # Disabled
    (PolicyState.DISABLED, Command.LOCK): Transition(
        Effect.REJECT, "Protection is disabled. Run 'donttouch enable' first."
    ),
    (PolicyState.DISABLED, Command.UNLOCK): RUN,
    (PolicyState.DISABLED, Command.ENABLE): RUN,
    (PolicyState.DISABLED, Command.DISABLE): Transition(
        Effect.NOOP, "Protection is already disabled."
    ),
    (PolicyState.DISABLED, Command.CHECK): Transition(
        Effect.NOOP, "Protection is disabled. Skipping check."
    ),
    (PolicyState.DISABLED, Command.CHECK_PUSH): RUN,
    (PolicyState.DISABLED, Command.STATUS): RUN,
    (PolicyState.DISABLED, Command.INJECT): RUN,
    (PolicyState.DISABLED, Command.WHY): RUN,
    (PolicyState.DISABLED, Command.REMOVE): RUN,
}
TRANSITIONS.update({
    (PolicyState.UNINITIALIZED, command): NOT_INITIALIZED
    for command in Command
    if command != Command.INIT
})


def resolve_state(root: Path) -> PolicyState:
    """
    Read the persistent state of root from its policy file.

    Raises:
        ConfigMalformedError: If the policy file cannot be parsed
    """
    try:
        policy = load_policy(root)
    except ConfigMissingError:
        return PolicyState.UNINITIALIZED
    return PolicyState.ENABLED if policy.enabled else PolicyState.DISABLED


def transition(state: PolicyState, command: Command) -> Transition:
    """
    Look up what a command does in a state.

    Raises:
        StateError: If the command is not allowed in that state
    """
    result = TRANSITIONS.get((state, command), NOT_INITIALIZED)
    if result.effect == Effect.REJECT:
        raise StateError(result.message or f"'{command.value}' is not allowed while {state.value}")
    return result
