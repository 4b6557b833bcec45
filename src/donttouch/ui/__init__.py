"""UI components for console output and prompts."""

from __future__ import annotations

from .console import create_console, print_banner
from .prompts import ConsolePrompts

__all__ = ["create_console", "print_banner", "ConsolePrompts"]
