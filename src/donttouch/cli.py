"""donttouch CLI - Main entry point."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich.markup import escape

from donttouch import __version__
from donttouch.config import policy_path, load_policy
from donttouch.core.engine import ProtectionEngine, PushResult, is_policy_file
from donttouch.core.exporter import state_to_json
from donttouch.core.state import Command, Effect, Transition, resolve_state, transition
from donttouch.core.wizard import InitWizard
from donttouch.errors import DontTouchError, GuardError, InsideTargetError
from donttouch.integrations.agents import AgentInjector
from donttouch.integrations.hooks import HookManager
from donttouch.platform.context import detect_context
from donttouch.safety.guard import assert_outside
from donttouch.ui.console import (
    configure_logging,
    create_console,
    print_banner,
    print_error,
    print_success,
    print_warning,
)
from donttouch.ui.prompts import ConsolePrompts, print_pattern_help
from donttouch.ui.report import Reporter

app = typer.Typer(
    name="donttouch",
    help="Protect files from being modified by AI coding agents and accidental changes.",
    no_args_is_help=True,
)
console = create_console()


class State:
    """Global state container for CLI."""

    def __init__(self) -> None:
        self.ignore_git: bool = False


state = State()


def _fail(message: str) -> NoReturn:
    """Print an error and exit non-zero."""
    print_error(console, escape(message))
    raise typer.Exit(1)


def _allowed(root: Path, command: Command) -> Transition:
    """Resolve the persistent state of root and check the command against it."""
    try:
        return transition(resolve_state(root), command)
    except DontTouchError as e:
        _fail(str(e))


def _outside_target(target: Path, command: Command) -> Path:
    """Run the outside-directory guard for a command that lifts protection."""
    try:
        return assert_outside(Path.cwd(), target)
    except InsideTargetError as e:
        console.print(f"[red]{escape(str(e))}[/red]\n")
        console.print(
            "[dim]This restriction prevents AI coding agents from lifting protection\n"
            "while working inside the project.[/dim]"
        )
        console.print(escape(f"\nTry: cd {e.target.parent} && donttouch {command.value} {e.target}"))
        raise typer.Exit(1) from e
    except GuardError as e:
        _fail(str(e))


TARGET_ARGUMENT = typer.Argument(
    ...,
    help="Path to the directory containing .donttouch.toml",
)


@app.command()
def init() -> None:
    """Initialize donttouch in the current directory."""
    root = Path.cwd()
    _allowed(root, Command.INIT)

    print_banner(console)
    print_pattern_help(console)

    wizard = InitWizard(
        root,
        detect_context(root, ignore_git=state.ignore_git),
        ConsolePrompts(console),
    )
    reporter = Reporter(console)

    try:
        result = wizard.run()
    except typer.Abort:
        reporter.display_init(wizard.result, root)
        print_warning(console, "\nAborted. Steps completed so far were kept.")
        raise typer.Exit(1)
    except DontTouchError as e:
        reporter.display_init(wizard.result, root)
        _fail(str(e))

    reporter.display_init(result, root)

    failed = (
        (result.lock is not None and not result.lock.ok)
        or any(item.failed for item in result.hooks)
        or any(item.failed for item in result.injected)
    )
    if failed:
        raise typer.Exit(1)
    if result.lock is None:
        console.print("\n[dim]Ok. Run 'donttouch lock' when you're ready.[/dim]")


@app.command()
def lock() -> None:
    """Make all protected files read-only."""
    root = Path.cwd()
    _allowed(root, Command.LOCK)

    try:
        result = ProtectionEngine().lock(root)
    except DontTouchError as e:
        _fail(str(e))

    Reporter(console).display_batch(result, locking=True)
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def unlock(target: Path = TARGET_ARGUMENT) -> None:
    """Restore write permissions (must run from outside the target directory)."""
    root = _outside_target(target, Command.UNLOCK)
    _allowed(root, Command.UNLOCK)

    try:
        result = ProtectionEngine().unlock(root)
    except DontTouchError as e:
        _fail(str(e))

    Reporter(console).display_batch(result, locking=False)
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def enable() -> None:
    """Re-enable protection (lock files, resume checks)."""
    root = Path.cwd()
    allowed = _allowed(root, Command.ENABLE)
    if allowed.effect == Effect.NOOP:
        print_success(console, allowed.message or "")
        return

    try:
        result = ProtectionEngine().lock(root)
    except DontTouchError as e:
        _fail(str(e))

    Reporter(console).display_batch(result, locking=True)
    if not result.ok:
        raise typer.Exit(1)
    print_success(console, "Protection enabled.")


@app.command()
def disable(target: Path = TARGET_ARGUMENT) -> None:
    """Disable protection (must run from outside the target directory)."""
    root = _outside_target(target, Command.DISABLE)
    allowed = _allowed(root, Command.DISABLE)
    if allowed.effect == Effect.NOOP:
        print_warning(console, allowed.message or "")
        return

    try:
        result = ProtectionEngine().unlock(root)
    except DontTouchError as e:
        _fail(str(e))

    Reporter(console).display_batch(result, locking=False)
    if not result.ok:
        raise typer.Exit(1)
    print_warning(console, "Protection disabled.")
    console.print("[dim]You must run 'donttouch enable' before you can push.[/dim]")


@app.command()
def check() -> None:
    """Check that protected files are read-only (exits non-zero if not)."""
    root = Path.cwd()
    allowed = _allowed(root, Command.CHECK)
    if allowed.effect == Effect.NOOP:
        print_warning(console, allowed.message or "")
        return

    try:
        result = ProtectionEngine().check(
            root, detect_context(root, ignore_git=state.ignore_git)
        )
    except DontTouchError as e:
        _fail(str(e))

    Reporter(console).display_check(result)
    if not result.passed:
        raise typer.Exit(1)


@app.command("check-push")
def check_push() -> None:
    """Block pushes while protection is disabled."""
    root = Path.cwd()
    _allowed(root, Command.CHECK_PUSH)

    try:
        result = ProtectionEngine().check_push(root)
    except DontTouchError as e:
        _fail(str(e))

    if result == PushResult.BLOCKED:
        _fail("Protection is disabled. Run 'donttouch enable' before pushing.")
    print_success(console, "Protection is enabled.")


@app.command()
def status(
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the protection state as JSON",
    ),
) -> None:
    """List protected files and their current state."""
    root = Path.cwd()
    _allowed(root, Command.STATUS)

    try:
        current = ProtectionEngine().derive_state(root, ignore_git=state.ignore_git)
    except DontTouchError as e:
        _fail(str(e))

    if as_json:
        typer.echo(state_to_json(current))
        return
    Reporter(console).display_status(current)


@app.command()
def inject(
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would change without writing any file",
    ),
) -> None:
    """Add donttouch instructions to AI agent config files."""
    root = Path.cwd()
    _allowed(root, Command.INJECT)

    try:
        policy = load_policy(root)
    except DontTouchError as e:
        _fail(str(e))

    outcomes = AgentInjector(root).inject(policy.patterns, dry_run=dry_run)
    Reporter(console).display_inject(outcomes)

    if dry_run:
        console.print("\n[yellow]Dry run - no files were changed.[/yellow]")
    if any(item.failed for item in outcomes):
        raise typer.Exit(1)


@app.command()
def why(
    file: Path = typer.Argument(..., help="File to explain"),
) -> None:
    """Show which patterns protect a file."""
    root = Path.cwd()
    _allowed(root, Command.WHY)

    try:
        matches = ProtectionEngine().why(root, file)
    except DontTouchError as e:
        _fail(str(e))

    self_protected = is_policy_file(root, file)
    Reporter(console).display_why(file, matches, self_protected)
    if not matches and not self_protected:
        raise typer.Exit(1)


@app.command()
def remove(target: Path = TARGET_ARGUMENT) -> None:
    """Uninstall donttouch from a directory (must run from outside it)."""
    root = _outside_target(target, Command.REMOVE)
    _allowed(root, Command.REMOVE)
    reporter = Reporter(console)

    try:
        result = ProtectionEngine().unlock(root)
    except DontTouchError as e:
        _fail(str(e))
    reporter.display_batch(result, locking=False)
    if not result.ok:
        _fail("Some files could not be unlocked; nothing else was removed.")
    failed = False

    context = detect_context(root, ignore_git=state.ignore_git)
    if context.is_git:
        hooks = HookManager(root, context).remove_all()
        console.print("\n[bold]Git hooks:[/bold]")
        reporter.display_hooks(hooks, root)
        failed = any(item.failed for item in hooks)

    removed = AgentInjector(root).remove()
    console.print("\n[bold]Agent instructions:[/bold]")
    reporter.display_inject(removed)
    failed = failed or any(item.failed for item in removed)

    try:
        policy_path(root).unlink()
    except OSError as e:
        print_error(console, escape(f"Cannot delete {policy_path(root)}: {e}"))
        raise typer.Exit(1) from e

    if failed:
        raise typer.Exit(1)
    print_success(console, escape(f"\ndonttouch removed from {root}."))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        is_eager=True,
    ),
    ignore_git: bool = typer.Option(
        False,
        "--ignoregit",
        help="Ignore git integration (treat directory as a plain directory)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """donttouch - Protect files from AI coding agents and accidental changes."""
    if version:
        console.print(f"donttouch v{__version__}")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)

    configure_logging(verbose)
    state.ignore_git = ignore_git


if __name__ == "__main__":
    app()
