"""Interactive prompts for user input."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape


class ConsolePrompts:
    """Terminal implementation of the questions asked by `init`."""

    def __init__(self, console: Console):
        self.console = console

    def ask_pattern(self) -> Optional[str]:
        """
        Read one glob pattern.

        Returns:
            The entered pattern, or None on an empty line
        """
        value = typer.prompt("pattern", default="", show_default=False)
        return value.strip() or None

    def accept_pattern(self, pattern: str) -> None:
        self.console.print(f"   [green]Added:[/green] {escape(pattern)}")

    def reject_pattern(self, pattern: str, reason: str) -> None:
        self.console.print(f"   [red]Invalid pattern '{escape(pattern)}': {reason}. Try again.[/red]")

    def confirm(self, question: str, default: bool = True) -> bool:
        return typer.confirm(f"\n{question}", default=default)


def print_pattern_help(console: Console) -> None:
    """Explain how to enter patterns during `init`."""
    console.print("Add file patterns to protect (glob syntax, one per line).")
    console.print("[dim]Examples: .env, secrets/**, docker-compose.prod.yml[/dim]")
    console.print("[dim]Press Enter on an empty line when done.[/dim]\n")
