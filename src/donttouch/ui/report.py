"""Rendering of engine and integration results."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from donttouch.config import POLICY_FILENAME
from donttouch.core.engine import (
    BatchResult,
    CheckResult,
    Origin,
    PatternMatch,
    ProtectionState,
)
from donttouch.core.permissions import Outcome
from donttouch.core.wizard import InitResult
from donttouch.integrations.agents import InjectOutcome
from donttouch.integrations.hooks import HookOutcome
from donttouch.platform.context import GitContext

ICONS = {
    Outcome.NEWLY_LOCKED: "[green]locked[/green]",
    Outcome.ALREADY_LOCKED: "[dim]already read-only[/dim]",
    Outcome.NEWLY_UNLOCKED: "[yellow]unlocked[/yellow]",
    Outcome.ALREADY_UNLOCKED: "[dim]already writable[/dim]",
    Outcome.SKIPPED: "[dim]skipped (missing)[/dim]",
    Outcome.FAILED: "[red]failed[/red]",
}


class Reporter:
    """Prints results of donttouch operations."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_status(self, state: ProtectionState) -> None:
        """Display the derived protection state."""
        protection = (
            "[green]enabled[/green]" if state.enabled else "[yellow]disabled[/yellow]"
        )
        hooks = ""
        if isinstance(state.context, GitContext):
            installed = "installed" if state.context.hooks_installed else "not installed"
            hooks = f"\n[bold]Git hooks:[/bold] {installed}"

        self.console.print(
            Panel(
                f"[bold]Protection:[/bold] {protection}\n"
                f"[bold]Context:[/bold] {state.context.label}{hooks}",
                title="donttouch",
                border_style="blue",
            )
        )

        self.console.print("\n[bold]Patterns:[/bold]")
        if state.patterns:
            for pattern in state.patterns:
                self.console.print(f"   {escape(pattern)}")
        else:
            self.console.print("   [dim](none)[/dim]")

        table = Table(title="Protected files", show_header=True, header_style="bold magenta")
        table.add_column("State", width=10)
        table.add_column("Path", style="white")
        table.add_column("Matched by", style="cyan")

        for status in state.files:
            lock_state = "[green]read-only[/green]" if status.is_locked else "[red]writable[/red]"
            matched = (
                "self-protected"
                if status.origin == Origin.POLICY_FILE
                else escape(", ".join(status.patterns))
            )
            table.add_row(lock_state, escape(status.path.as_posix()), matched)

        self.console.print()
        self.console.print(table)

    def display_batch(self, result: BatchResult, locking: bool) -> None:
        """Display the outcome of a lock or unlock batch."""
        if not result.outcomes:
            self.console.print(
                f"[green]All {len(result.files)} protected file(s) are already read-only.[/green]"
            )
            return

        for item in result.outcomes:
            if item.outcome in (Outcome.ALREADY_LOCKED, Outcome.ALREADY_UNLOCKED):
                continue
            line = f"   {ICONS[item.outcome]}  {escape(item.path.as_posix())}"
            if item.error is not None:
                line += f" [red]({escape(item.error.detail)})[/red]"
            self.console.print(line)

        verb = "Locked" if locking else "Unlocked"
        state_word = "read-only" if locking else "writable"
        if result.changed:
            self.console.print(f"\n[green]{verb} {len(result.changed)} file(s).[/green]")
        if result.unchanged:
            self.console.print(f"[dim]({len(result.unchanged)} already {state_word})[/dim]")
        if not result.changed and not result.failures:
            self.console.print(f"[green]All files were already {state_word}.[/green]")
        if result.failures:
            self.console.print(f"[red]Failed on {len(result.failures)} file(s).[/red]")

    def display_check(self, result: CheckResult) -> None:
        """Display the outcome of `check`, listing every offending file."""
        if result.passed:
            self.console.print("[green]All protected files are read-only.[/green]")
            return

        if result.writable_files:
            self.console.print("[red]Protected files are writable![/red]\n")
            for path in result.writable_files:
                self.console.print(f"   - {escape(path.as_posix())}")
            self.console.print("\n[dim]Run 'donttouch lock' to make them read-only.[/dim]")

        if result.staged_files:
            self.console.print("[red]Protected files are staged for commit![/red]\n")
            for path in result.staged_files:
                self.console.print(f"   - {escape(path.as_posix())}")
            self.console.print("\n[dim]Unstage them with 'git restore --staged <file>'.[/dim]")

    def display_inject(self, outcomes: list[InjectOutcome]) -> None:
        """Display per-target injection results."""
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Agent", style="cyan")
        table.add_column("File", style="white")
        table.add_column("Result")

        for item in outcomes:
            result = item.label
            if item.error is not None:
                result = f"[red]failed ({escape(item.error.detail)})[/red]"
            table.add_row(item.target.name, item.target.relative_path, result)

        self.console.print(table)

    def display_hooks(self, outcomes: list[HookOutcome], root: Path) -> None:
        """Display per-hook results."""
        for item in outcomes:
            if item.failed:
                self.console.print(f"   {item.hook}: [red]failed ({escape(item.error.message)})[/red]")
                continue
            try:
                shown = item.path.relative_to(root).as_posix()
            except ValueError:
                shown = str(item.path)
            self.console.print(f"   {item.hook}: {item.action.value.replace('_', ' ')} ({escape(shown)})")

    def display_why(
        self, file: Path, matches: list[PatternMatch], self_protected: bool
    ) -> None:
        """Explain why a file is protected."""
        if self_protected:
            self.console.print(
                f"[bold]{escape(str(file))}[/bold] is the policy file ({POLICY_FILENAME}) "
                "and is always protected."
            )
        if matches:
            self.console.print(f"[bold]{escape(str(file))}[/bold] is matched by:")
            for match in matches:
                where = f"line {match.line}" if match.line else "line ?"
                self.console.print(f"   {escape(match.pattern)}  [dim]({POLICY_FILENAME}, {where})[/dim]")
        elif not self_protected:
            self.console.print(f"[dim]{escape(str(file))} is not protected by any pattern.[/dim]")

    def display_init(self, result: InitResult, root: Path) -> None:
        """Summarize what `init` did."""
        if result.policy_file is not None:
            count = len(result.patterns)
            if count:
                self.console.print(f"\n[green]Saved {count} pattern(s) to {POLICY_FILENAME}[/green]")
            else:
                self.console.print(
                    f"\n[yellow]No patterns added. You can edit {POLICY_FILENAME} later.[/yellow]"
                )
        if result.lock is not None:
            self.display_batch(result.lock, locking=True)
        if result.hooks:
            self.console.print("\n[bold]Git hooks:[/bold]")
            self.display_hooks(result.hooks, root)
        if result.injected:
            self.console.print("\n[bold]Agent instructions:[/bold]")
            self.display_inject(result.injected)
