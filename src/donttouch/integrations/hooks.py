"""Git hook installation for donttouch checks."""

from __future__ import annotations

import logging
import stat
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from donttouch.errors import HookError, MarkerBlockError
from donttouch.integrations import markers
from donttouch.integrations.markers import Markers, RemoveAction, UpsertAction
from donttouch.platform.context import (
    HOOK_MARKER_PREFIX,
    HOOK_NAMES,
    Context,
    GitContext,
    hooks_dir,
)

logger = logging.getLogger(__name__)

SHEBANG = "#!/bin/sh"

# Command each hook runs
HOOK_COMMANDS: dict[str, str] = {
    "pre-commit": "check",
    "pre-push": "check-push",
}


def hook_markers(hook_name: str) -> Markers:
    return Markers(
        start=f"{HOOK_MARKER_PREFIX}{hook_name} >>>",
        end=f"# <<< donttouch {hook_name} <<<",
    )


def hook_body(hook_name: str) -> str:
    command = HOOK_COMMANDS[hook_name]
    return f"donttouch {command} || exit 1"


def has_operative_lines(text: str) -> bool:
    """True when a script still has lines other than blanks and comments."""
    return any(
        line.strip() and not line.strip().startswith("#") for line in text.splitlines()
    )


@dataclass
class HookOutcome:
    """Result of installing or removing one hook."""

    hook: str
    path: Optional[Path]
    action: Optional[Union[UpsertAction, RemoveAction]]
    error: Optional[HookError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class HookManager:
    """Installs and removes donttouch blocks in git hook scripts."""

    def __init__(self, root: Path, context: Context):
        self.root = root
        self.context = context

    def hook_path(self, hook_name: str) -> Path:
        """Path of the script a hook is installed into."""
        if hook_name not in HOOK_COMMANDS:
            raise HookError(None, f"Unknown hook '{hook_name}'")
        if not isinstance(self.context, GitContext):
            raise HookError(self.root, "Not a git repository")
        directory = hooks_dir(self.root, self.context)
        if directory is None:
            raise HookError(self.root, "Cannot locate the git hooks directory")
        return directory / hook_name

    def install(self, hook_name: str) -> HookOutcome:
        """
        Install the donttouch block into a hook script.

        A missing script is created with a shebang and made executable. An
        existing script keeps its content and gets the block appended.

        Raises:
            HookError: If not in a git repository or the script cannot be written
        """
        path = self.hook_path(hook_name)
        existed = path.exists()

        try:
            action = markers.upsert(
                path,
                hook_markers(hook_name),
                hook_body(hook_name),
                create_if_missing=True,
                preamble=SHEBANG,
            )
            if not existed:
                mode = path.stat().st_mode
                path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except MarkerBlockError as e:
            raise HookError(path, "Conflicting donttouch block (missing end marker)") from e
        except UnicodeDecodeError as e:
            raise HookError(path, "Hook script is not valid UTF-8") from e
        except OSError as e:
            raise HookError(path, f"Cannot write hook ({e.strerror or e})") from e

        logger.debug("Hook %s: %s", hook_name, action.value)
        return HookOutcome(hook=hook_name, path=path, action=action)

    def remove(self, hook_name: str) -> HookOutcome:
        """
        Strip the donttouch block from a hook script.

        The script is deleted when nothing operative remains.

        Raises:
            HookError: If the script cannot be rewritten or deleted
        """
        path = self.hook_path(hook_name)
        try:
            action = markers.remove(
                path,
                hook_markers(hook_name),
                is_disposable=lambda rest: not has_operative_lines(rest),
            )
        except MarkerBlockError as e:
            raise HookError(path, "Conflicting donttouch block (missing end marker)") from e
        except UnicodeDecodeError as e:
            raise HookError(path, "Hook script is not valid UTF-8") from e
        except OSError as e:
            raise HookError(path, f"Cannot update hook ({e.strerror or e})") from e

        logger.debug("Hook %s: %s", hook_name, action.value)
        return HookOutcome(hook=hook_name, path=path, action=action)

    def install_all(self) -> list[HookOutcome]:
        """Install every hook, recording a failure per hook instead of stopping."""
        return [self._collect(self.install, name) for name in HOOK_NAMES]

    def remove_all(self) -> list[HookOutcome]:
        """Remove every hook, recording a failure per hook instead of stopping."""
        return [self._collect(self.remove, name) for name in HOOK_NAMES]

    def _collect(
        self, action: Callable[[str], HookOutcome], hook_name: str
    ) -> HookOutcome:
        try:
            return action(hook_name)
        except HookError as e:
            logger.warning("%s", e)
            return HookOutcome(hook=hook_name, path=e.path, action=None, error=e)
