"""Tests for the command transition table."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_policy

from donttouch.config import POLICY_FILENAME
from donttouch.core.state import (
    TRANSITIONS,
    Command,
    Effect,
    PolicyState,
    resolve_state,
    transition,
)
from donttouch.errors import ConfigMalformedError, StateError


class TestResolveState:
    """Tests for resolve_state."""

    def test_uninitialized(self, temp_dir: Path):
        assert resolve_state(temp_dir) == PolicyState.UNINITIALIZED

    def test_enabled_and_disabled(self, temp_dir: Path):
        write_policy(temp_dir, [".env"])
        assert resolve_state(temp_dir) == PolicyState.ENABLED
        write_policy(temp_dir, [".env"], enabled=False)
        assert resolve_state(temp_dir) == PolicyState.DISABLED

    def test_malformed_policy_raises(self, temp_dir: Path):
        (temp_dir / POLICY_FILENAME).write_text("not toml [")
        with pytest.raises(ConfigMalformedError):
            resolve_state(temp_dir)


class TestTransition:
    """Tests for transition."""

    def test_table_is_complete(self):
        for state in PolicyState:
            for command in Command:
                assert (state, command) in TRANSITIONS

    @pytest.mark.parametrize("command", [c for c in Command if c != Command.INIT])
    def test_uninitialized_rejects_everything_but_init(self, command: Command):
        with pytest.raises(StateError, match="donttouch init"):
            transition(PolicyState.UNINITIALIZED, command)

    def test_init_only_once(self):
        assert transition(PolicyState.UNINITIALIZED, Command.INIT).effect == Effect.RUN
        with pytest.raises(StateError, match="already exists"):
            transition(PolicyState.ENABLED, Command.INIT)
        with pytest.raises(StateError, match="already exists"):
            transition(PolicyState.DISABLED, Command.INIT)

    def test_lock_rejected_while_disabled(self):
        with pytest.raises(StateError, match="donttouch enable"):
            transition(PolicyState.DISABLED, Command.LOCK)

    def test_noops(self):
        enable = transition(PolicyState.ENABLED, Command.ENABLE)
        assert enable.effect == Effect.NOOP
        assert enable.message == "Protection is already enabled."

        disable = transition(PolicyState.DISABLED, Command.DISABLE)
        assert disable.effect == Effect.NOOP

        check = transition(PolicyState.DISABLED, Command.CHECK)
        assert check.effect == Effect.NOOP
        assert "Skipping check" in check.message

    @pytest.mark.parametrize(
        "command",
        [Command.UNLOCK, Command.CHECK_PUSH, Command.STATUS, Command.WHY, Command.REMOVE],
    )
    def test_runs_in_both_states(self, command: Command):
        assert transition(PolicyState.ENABLED, command).effect == Effect.RUN
        assert transition(PolicyState.DISABLED, command).effect == Effect.RUN
