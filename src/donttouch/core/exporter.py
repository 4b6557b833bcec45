"""Export protection state as JSON."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from donttouch.platform.context import GitContext

if TYPE_CHECKING:
    from donttouch.core.engine import FileStatus, ProtectionState


def _file_to_dict(status: FileStatus) -> dict[str, Any]:
    """Convert FileStatus to serializable dict."""
    return {
        "path": status.path.as_posix(),
        "locked": status.is_locked,
        "origin": status.origin.value,
        "patterns": list(status.patterns),
    }


def state_to_dict(state: ProtectionState) -> dict[str, Any]:
    """Convert ProtectionState to serializable dict."""
    context: dict[str, Any] = {"kind": "git" if state.context.is_git else "plain"}
    if isinstance(state.context, GitContext):
        context["has_husky"] = state.context.has_husky
        context["hooks_installed"] = state.context.hooks_installed

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "root": str(state.root),
        "enabled": state.enabled,
        "context": context,
        "patterns": list(state.patterns),
        "files": [_file_to_dict(f) for f in state.files],
    }


def state_to_json(state: ProtectionState) -> str:
    return json.dumps(state_to_dict(state), indent=2)
