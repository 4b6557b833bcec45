"""Tests for the command line interface."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from conftest import file_mode, posix_only, write_policy

from donttouch import __version__
from donttouch.cli import app
from donttouch.config import POLICY_FILENAME, load_policy
from donttouch.core import permissions
from donttouch.errors import FileSystemError

runner = CliRunner()


@pytest.fixture
def inside(project: Path, monkeypatch):
    """Run commands from inside the protected project."""
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def outside(project: Path, monkeypatch):
    """Run commands from the project's parent directory."""
    monkeypatch.chdir(project.parent)
    return project


class TestGlobalOptions:
    """Tests for the app callback."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"donttouch v{__version__}" in result.output

    def test_commands_listed_in_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("init", "lock", "unlock", "check-push", "inject", "why"):
            assert command in result.output


class TestUninitialized:
    """Commands run where no policy file exists."""

    @pytest.mark.parametrize("args", [["lock"], ["check"], ["status"], ["inject"], ["enable"]])
    def test_rejected(self, temp_dir: Path, monkeypatch, args: list[str]):
        monkeypatch.chdir(temp_dir)
        result = runner.invoke(app, args)
        assert result.exit_code == 1
        assert "donttouch init" in result.output


class TestInit:
    """Tests for `donttouch init`."""

    def test_creates_policy(self, temp_dir: Path, monkeypatch):
        monkeypatch.chdir(temp_dir)
        (temp_dir / ".env").write_text("SECRET=1\n")

        result = runner.invoke(app, ["init"], input=".env\n[oops\n\nn\nn\n")
        assert result.exit_code == 0, result.output
        assert "Invalid pattern" in result.output
        assert load_policy(temp_dir).patterns == [".env"]
        assert "donttouch lock" in result.output

    def test_refuses_second_run(self, inside: Path):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_abort_keeps_policy(self, temp_dir: Path, monkeypatch):
        monkeypatch.chdir(temp_dir)
        result = runner.invoke(app, ["init"], input=".env\n\n")

        assert result.exit_code == 1
        assert "Aborted" in result.output
        assert load_policy(temp_dir).patterns == [".env"]


@posix_only
class TestLockAndCheck:
    """Tests for lock, check and enable."""

    def test_lock_then_check(self, inside: Path):
        assert runner.invoke(app, ["check"]).exit_code == 1

        result = runner.invoke(app, ["lock"])
        assert result.exit_code == 0
        assert "Locked 2 file(s)" in result.output
        assert file_mode(inside / ".env") == 0o444

        result = runner.invoke(app, ["check"])
        assert result.exit_code == 0
        assert "All protected files are read-only" in result.output

    def test_lock_is_idempotent(self, inside: Path):
        runner.invoke(app, ["lock"])
        result = runner.invoke(app, ["lock"])
        assert result.exit_code == 0
        assert "already read-only" in result.output

    def test_check_lists_writable_files(self, inside: Path):
        result = runner.invoke(app, ["check"])
        assert result.exit_code == 1
        assert ".env" in result.output
        assert POLICY_FILENAME in result.output

    def test_check_skipped_when_disabled(self, inside: Path):
        write_policy(inside, [".env"], enabled=False)
        result = runner.invoke(app, ["check"])
        assert result.exit_code == 0
        assert "Skipping check" in result.output

    def test_lock_rejected_when_disabled(self, inside: Path):
        write_policy(inside, [".env"], enabled=False)
        result = runner.invoke(app, ["lock"])
        assert result.exit_code == 1
        assert "donttouch enable" in result.output

    def test_enable(self, inside: Path):
        write_policy(inside, [".env"], enabled=False)
        result = runner.invoke(app, ["enable"])
        assert result.exit_code == 0
        assert load_policy(inside).enabled is True
        assert file_mode(inside / ".env") == 0o444

        result = runner.invoke(app, ["enable"])
        assert result.exit_code == 0
        assert "already enabled" in result.output

    def test_lock_reports_single_failure(self, inside: Path):
        real_lock = permissions.lock

        def flaky_lock(path: Path):
            if path.name == ".env":
                raise FileSystemError(path, "Cannot set permissions (denied)")
            return real_lock(path)

        with patch("donttouch.core.permissions.lock", side_effect=flaky_lock):
            result = runner.invoke(app, ["lock"])

        assert result.exit_code == 1
        assert "Failed on 1 file(s)" in result.output
        assert file_mode(inside / POLICY_FILENAME) == 0o444

    def test_check_lists_bracketed_file_name(self, inside: Path):
        (inside / "[red]").write_text("x\n")
        write_policy(inside, [".env", "[[]red]"])

        result = runner.invoke(app, ["check"])
        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "- [red]" in result.output

    def test_non_utf8_policy_rejected(self, inside: Path):
        (inside / POLICY_FILENAME).write_bytes(b"[protect]\npatterns = [\"\xff\"]\n")
        result = runner.invoke(app, ["lock"])
        assert result.exit_code == 1
        assert "Invalid policy file" in result.output

    def test_invalid_pattern_reported(self, inside: Path):
        write_policy(inside, [".env", "[bad"])
        result = runner.invoke(app, ["lock"])
        assert result.exit_code == 1
        assert "[bad" in result.output
        assert file_mode(inside / ".env") == 0o644


@posix_only
class TestOutsideCommands:
    """Tests for unlock, disable and remove."""

    @pytest.mark.parametrize("command", ["unlock", "disable", "remove"])
    def test_refused_from_inside(self, inside: Path, command: str):
        runner.invoke(app, ["lock"])
        result = runner.invoke(app, [command, "."])

        assert result.exit_code == 1
        assert "OUTSIDE" in result.output
        assert file_mode(inside / ".env") == 0o444
        assert (inside / POLICY_FILENAME).exists()

    def test_refused_from_subdirectory(self, inside: Path, monkeypatch):
        (inside / "sub").mkdir()
        monkeypatch.chdir(inside / "sub")
        result = runner.invoke(app, ["unlock", ".."])
        assert result.exit_code == 1

    def test_missing_target(self, outside: Path):
        result = runner.invoke(app, ["unlock", "does-not-exist"])
        assert result.exit_code == 1
        assert "Cannot resolve target path" in result.output

    def test_lock_unlock_scenario(self, outside: Path, monkeypatch):
        monkeypatch.chdir(outside)
        runner.invoke(app, ["lock"])
        monkeypatch.chdir(outside.parent)

        result = runner.invoke(app, ["unlock", outside.name])
        assert result.exit_code == 0, result.output
        assert file_mode(outside / ".env") == 0o644
        assert load_policy(outside).enabled is False

        monkeypatch.chdir(outside)
        result = runner.invoke(app, ["check-push"])
        assert result.exit_code == 1
        assert "donttouch enable" in result.output

    def test_disable_then_enable(self, outside: Path, monkeypatch):
        result = runner.invoke(app, ["disable", outside.name])
        assert result.exit_code == 0
        assert "Protection disabled" in result.output

        result = runner.invoke(app, ["disable", outside.name])
        assert result.exit_code == 0
        assert "already disabled" in result.output

        monkeypatch.chdir(outside)
        assert runner.invoke(app, ["enable"]).exit_code == 0
        assert runner.invoke(app, ["check-push"]).exit_code == 0

    def test_remove(self, outside: Path, monkeypatch):
        (outside / "CLAUDE.md").write_text("# Notes\n")
        monkeypatch.chdir(outside)
        runner.invoke(app, ["lock"])
        runner.invoke(app, ["inject"])
        monkeypatch.chdir(outside.parent)

        result = runner.invoke(app, ["remove", str(outside)])
        assert result.exit_code == 0, result.output
        assert not (outside / POLICY_FILENAME).exists()
        assert file_mode(outside / ".env") == 0o644
        assert (outside / "CLAUDE.md").read_text() == "# Notes\n"
        assert not (outside / ".cursor").exists()

    def test_remove_reports_broken_hook(self, outside: Path):
        hooks = outside / ".git" / "hooks"
        hooks.mkdir(parents=True)
        (hooks / "pre-commit").write_text("#!/bin/sh\n# >>> donttouch pre-commit >>>\ndonttouch check\n")

        result = runner.invoke(app, ["remove", outside.name])
        assert result.exit_code == 1
        assert "pre-commit: failed" in result.output
        assert "pre-push: noop" in result.output
        assert not (outside / POLICY_FILENAME).exists()


class TestStatus:
    """Tests for `donttouch status`."""

    def test_table(self, inside: Path):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "self-protected" in result.output
        assert ".env" in result.output
        assert "plain" in result.output

    def test_json(self, inside: Path):
        result = runner.invoke(app, ["status", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["enabled"] is True
        assert [f["path"] for f in data["files"]] == [POLICY_FILENAME, ".env"]

    def test_ignoregit(self, inside: Path):
        (inside / ".git").mkdir()
        data = json.loads(runner.invoke(app, ["status", "--json"]).stdout)
        assert data["context"]["kind"] == "git"

        data = json.loads(runner.invoke(app, ["--ignoregit", "status", "--json"]).stdout)
        assert data["context"]["kind"] == "plain"


class TestInjectAndWhy:
    """Tests for inject and why."""

    def test_inject_dry_run(self, inside: Path):
        (inside / "AGENTS.md").write_text("# Agents\n")
        result = runner.invoke(app, ["inject", "--dry-run"])

        assert result.exit_code == 0
        assert "Dry run" in result.output
        assert (inside / "AGENTS.md").read_text() == "# Agents\n"

    def test_inject(self, inside: Path):
        (inside / "AGENTS.md").write_text("# Agents\n")
        assert runner.invoke(app, ["inject"]).exit_code == 0
        assert "- `.env`" in (inside / "AGENTS.md").read_text()

    def test_why_protected(self, inside: Path):
        result = runner.invoke(app, ["why", ".env"])
        assert result.exit_code == 0
        assert "line 7" in result.output

    def test_why_policy_file(self, inside: Path):
        result = runner.invoke(app, ["why", POLICY_FILENAME])
        assert result.exit_code == 0
        assert "always protected" in result.output

    def test_why_unprotected(self, inside: Path):
        result = runner.invoke(app, ["why", "notes.txt"])
        assert result.exit_code == 1
        assert "not protected" in result.output

    def test_why_markup_like_argument(self, inside: Path):
        result = runner.invoke(app, ["why", "[/x]"])
        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "[/x]" in result.output
