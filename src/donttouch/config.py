"""Policy document management for donttouch."""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

# Conditional import for Python 3.10 compatibility
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

from donttouch.errors import ConfigMalformedError, ConfigMissingError

logger = logging.getLogger(__name__)

POLICY_FILENAME = ".donttouch.toml"
SECTION = "protect"

POLICY_HEADER = """\
# donttouch configuration
# Protect files from being modified by AI coding agents and accidental changes.
"""

# Basic ("...") and literal ('...') TOML strings on a single line, or a comment start
_LINE_TOKEN = re.compile(r'"(?:[^"\\]|\\.)*"|\'[^\']*\'|#')


@dataclass
class Policy:
    """The persisted protection policy."""

    enabled: bool = True
    patterns: list[str] = field(default_factory=list)

    # Metadata (not from TOML)
    _source: Optional[Path] = field(default=None, repr=False, compare=False)
    _lines: dict[str, int] = field(default_factory=dict, repr=False, compare=False)

    def line_of(self, pattern: str) -> Optional[int]:
        """Return the 1-based line where a pattern is declared, if known."""
        return self._lines.get(pattern)


def policy_path(root: Path) -> Path:
    """Path of the policy document for a protected tree."""
    return root / POLICY_FILENAME


def _dump_toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_policy(policy: Policy) -> str:
    """Serialize a policy to a complete TOML document."""
    lines = [POLICY_HEADER, f"[{SECTION}]", f"enabled = {_dump_toml_value(policy.enabled)}"]
    if policy.patterns:
        lines.append("patterns = [")
        for pattern in policy.patterns:
            lines.append(f"    {_dump_toml_value(pattern)},")
        lines.append("]")
    else:
        lines.append("patterns = []")
    return "\n".join(lines) + "\n"


def _decode_string_token(token: str) -> Optional[str]:
    """Decode a single TOML string literal, or None if it is not one."""
    try:
        value = tomllib.loads(f"v = {token}")["v"]
    except tomllib.TOMLDecodeError:
        return None
    return value if isinstance(value, str) else None


def _locate_pattern_lines(text: str, patterns: list[str]) -> dict[str, int]:
    """Find the line number of each pattern inside the [protect] section."""
    wanted = set(patterns)
    found: dict[str, int] = {}
    in_section = False

    for number, raw in enumerate(text.splitlines(), 1):
        stripped = raw.strip()
        if stripped.startswith("["):
            header = stripped.split("#", 1)[0].strip()
            if header.startswith("[") and not header.startswith("[["):
                in_section = header == f"[{SECTION}]"
                continue
        if not in_section:
            continue
        for match in _LINE_TOKEN.finditer(raw):
            if match.group(0) == "#":
                break
            value = _decode_string_token(match.group(0))
            if value in wanted and value not in found:
                found[value] = number

    return found


def _parse_policy(data: dict[str, Any], path: Path) -> Policy:
    """Convert a parsed TOML tree into a Policy, ignoring unknown keys."""
    section = data.get(SECTION, {})
    if not isinstance(section, dict):
        raise ConfigMalformedError(path, f"'{SECTION}' must be a table")

    enabled = section.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigMalformedError(path, f"{SECTION}.enabled must be true or false")

    patterns = section.get("patterns", [])
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise ConfigMalformedError(path, f"{SECTION}.patterns must be a list of strings")

    return Policy(enabled=enabled, patterns=list(patterns), _source=path)


def load_policy(root: Path) -> Policy:
    """
    Load the policy document stored at the root of a protected tree.

    Raises:
        ConfigMissingError: If no policy file exists
        ConfigMalformedError: If the TOML is invalid or has wrongly typed values
    """
    path = policy_path(root)
    if not path.is_file():
        raise ConfigMissingError(path)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigMalformedError(path, f"unreadable: {e}") from e

    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigMalformedError(path, str(e)) from e

    policy = _parse_policy(data, path)
    policy._lines = _locate_pattern_lines(text, policy.patterns)
    logger.debug("Loaded %s: enabled=%s, %d pattern(s)", path, policy.enabled, len(policy.patterns))
    return policy


def save_policy(root: Path, policy: Policy) -> Path:
    """Rewrite the policy document in full. Returns the written path."""
    path = policy_path(root)
    path.write_text(render_policy(policy), encoding="utf-8")
    policy._source = path
    logger.debug("Wrote %s (enabled=%s)", path, policy.enabled)
    return path

