"""Rich console utilities for output formatting."""

from __future__ import annotations

import logging
import platform

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from donttouch import __version__


def create_console(stderr: bool = False) -> Console:
    """Create a configured Rich console."""
    # Windows-specific console settings
    if platform.system() == "Windows":
        return Console(legacy_windows=True, emoji=False, stderr=stderr)
    return Console(stderr=stderr)


def configure_logging(verbose: bool) -> None:
    """Route donttouch log records through Rich on stderr."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=create_console(stderr=True), show_path=False)
    logger = logging.getLogger("donttouch")
    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False


def print_banner(console: Console) -> None:
    """Print the donttouch banner."""
    banner_text = Text()
    banner_text.append("DONT", style="bold red")
    banner_text.append("TOUCH", style="bold yellow")

    tagline = Text("Keep AI agents away from the files that matter", style="dim italic")

    panel = Panel(
        Text.assemble(banner_text, "\n", tagline),
        border_style="blue",
        padding=(0, 2),
        subtitle=f"v{__version__}",
        subtitle_align="right",
    )

    console.print(panel)
    console.print()


def print_success(console: Console, message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_warning(console: Console, message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]{message}[/yellow]")


def print_error(console: Console, message: str) -> None:
    """Print an error message."""
    console.print(f"[red]{message}[/red]")
