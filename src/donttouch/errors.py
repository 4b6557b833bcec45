"""Error types raised by donttouch."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class DontTouchError(Exception):
    """Base user-facing application error."""


class ConfigError(DontTouchError):
    """The policy document could not be used."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class ConfigMissingError(ConfigError):
    def __init__(self, path: Path) -> None:
        super().__init__(path=path, message="No policy file found")


class ConfigMalformedError(ConfigError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid policy file ({detail})")


@dataclass(frozen=True)
class PatternProblem:
    """One glob pattern that failed to compile."""

    pattern: str
    line: Optional[int]
    reason: str

    def __str__(self) -> str:
        where = f"line {self.line}" if self.line else "unknown line"
        return f"'{self.pattern}' ({where}): {self.reason}"


class PatternError(DontTouchError):
    """One or more glob patterns are invalid."""

    def __init__(self, problems: list[PatternProblem]) -> None:
        self.problems = problems
        details = "; ".join(str(p) for p in problems)
        super().__init__(f"Invalid pattern(s): {details}")


class FileSystemError(DontTouchError):
    """A filesystem operation on a single path failed."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"{detail}: {path}")


class GuardError(DontTouchError):
    """The outside-directory precondition failed."""


class TargetNotFoundError(GuardError):
    def __init__(self, target: Path, detail: str) -> None:
        self.target = target
        super().__init__(f"Cannot resolve target path '{target}': {detail}")


class InsideTargetError(GuardError):
    def __init__(self, current_dir: Path, target: Path) -> None:
        self.current_dir = current_dir
        self.target = target
        super().__init__(
            "This command must be run from OUTSIDE the target directory.\n"
            f"Current directory: {current_dir}\n"
            f"Target directory:  {target}"
        )


class MarkerBlockError(DontTouchError):
    """A host file contains a start marker without its end marker."""

    def __init__(self, path: Path, marker: str) -> None:
        self.path = path
        self.marker = marker
        super().__init__(f"Unterminated block starting with '{marker}': {path}")


class HookError(DontTouchError):
    """A git hook could not be installed or removed."""

    def __init__(self, path: Optional[Path], message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}" if path else message)


class InjectError(DontTouchError):
    """An agent instruction file could not be written."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"{detail}: {path}")


class StateError(DontTouchError):
    """A command is not allowed in the current protection state."""
