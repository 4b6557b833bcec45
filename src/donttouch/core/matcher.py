"""Glob pattern matching against a protected directory tree."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Optional, Union

from donttouch.errors import PatternError, PatternProblem

logger = logging.getLogger(__name__)

# Directories never descended while scanning
SKIPPED_DIRS: frozenset[str] = frozenset({".git", "node_modules"})


@dataclass(frozen=True)
class CompiledPattern:
    """A validated glob pattern and its anchored regular expression."""

    pattern: str
    regex: re.Pattern[str]
    line: Optional[int] = None

    def matches(self, relative_path: Union[str, PurePosixPath]) -> bool:
        """
        Check a root-relative path against this pattern.

        A path also matches when one of its parent directories matches, so a
        pattern naming a directory covers every file below it.
        """
        for candidate in _candidates(PurePosixPath(relative_path)):
            if self.regex.fullmatch(candidate):
                return True
        return False


def _candidates(path: PurePosixPath) -> Iterator[str]:
    parts = path.parts
    for end in range(len(parts), 0, -1):
        yield "/".join(parts[:end])


def _translate_class(segment: str, start: int) -> tuple[str, int]:
    """Translate a [...] class starting at segment[start]. Returns (regex, next index)."""
    i = start + 1
    negate = False
    if i < len(segment) and segment[i] in "!^":
        negate = True
        i += 1
    body_start = i
    # A ']' right after the opening bracket is a literal member
    if i < len(segment) and segment[i] == "]":
        i += 1
    while i < len(segment) and segment[i] != "]":
        i += 1
    if i >= len(segment):
        raise ValueError("unclosed character class")

    body = segment[body_start:i].replace("\\", "\\\\")
    # Nested '[' and set-operation characters are literal members
    body = re.sub(r"([\[&~|])", r"\\\1", body)
    if not body:
        raise ValueError("empty character class")
    if body.startswith("^"):
        body = "\\" + body
    if negate:
        return f"[^/{body}]", i + 1
    return f"[{body}]", i + 1


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(segment):
        char = segment[i]
        if char == "*":
            if segment.startswith("**", i):
                raise ValueError("'**' must be a whole path segment")
            out.append("[^/]*")
            i += 1
        elif char == "?":
            out.append("[^/]")
            i += 1
        elif char == "[":
            translated, i = _translate_class(segment, i)
            out.append(translated)
        else:
            out.append(re.escape(char))
            i += 1
    return "".join(out)


def _translate(pattern: str) -> str:
    """Translate a glob into a regex body (no anchors)."""
    if not pattern.strip():
        raise ValueError("pattern is empty")
    if pattern.startswith("/") or PureWindowsPath(pattern).drive:
        raise ValueError("pattern must be relative to the policy directory")

    segments = [s for s in pattern.strip("/").split("/") if s and s != "."]
    if not segments:
        raise ValueError("pattern does not name anything")
    if ".." in segments:
        raise ValueError("pattern must not leave the policy directory")

    regex = ""
    last = len(segments) - 1
    for index, segment in enumerate(segments):
        if segment == "**":
            regex += ".*" if index == last else "(?:[^/]+/)*"
        else:
            regex += _translate_segment(segment)
            if index != last:
                regex += "/"
    return regex


def compile_pattern(pattern: str, line: Optional[int] = None) -> CompiledPattern:
    """Compile a single glob pattern, raising PatternError if it is invalid."""
    try:
        regex = re.compile(_translate(pattern))
    except (ValueError, re.error) as e:
        raise PatternError([PatternProblem(pattern, line, str(e))]) from e
    return CompiledPattern(pattern=pattern, regex=regex, line=line)


def compile_patterns(
    patterns: Sequence[str], lines: Optional[dict[str, int]] = None
) -> list[CompiledPattern]:
    """
    Compile every pattern, reporting all invalid ones together.

    Args:
        patterns: Glob strings in declaration order
        lines: Optional mapping of pattern to its line in the policy file

    Raises:
        PatternError: Listing every pattern that failed to compile
    """
    lines = lines or {}
    compiled: list[CompiledPattern] = []
    problems: list[PatternProblem] = []

    for pattern in patterns:
        try:
            compiled.append(compile_pattern(pattern, lines.get(pattern)))
        except PatternError as e:
            problems.extend(e.problems)

    if problems:
        raise PatternError(problems)
    return compiled


def _resolves_inside(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
        return True
    except (OSError, ValueError):
        return False


def iter_files(root: Path) -> Iterator[Path]:
    """
    Yield every regular file under root as a root-relative path.

    Directory symlinks are never followed and file symlinks pointing outside
    root are skipped.
    """
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        current = Path(dirpath)
        for name in sorted(filenames):
            full = current / name
            if full.is_symlink() and not _resolves_inside(full, root):
                logger.debug("Skipping symlink leaving the tree: %s", full)
                continue
            if not full.is_file():
                continue
            yield full.relative_to(root)


def patterns_matching(
    relative_path: Union[str, Path], compiled: Iterable[CompiledPattern]
) -> list[CompiledPattern]:
    """Return the patterns that match a root-relative path."""
    posix = PurePosixPath(Path(relative_path).as_posix())
    return [p for p in compiled if p.matches(posix)]


def match(root: Path, patterns: Sequence[Union[str, CompiledPattern]]) -> list[Path]:
    """
    Resolve glob patterns against root.

    Args:
        root: Directory the patterns are relative to
        patterns: Glob strings or already compiled patterns

    Returns:
        Deduplicated root-relative file paths in lexicographic order
    """
    compiled = [
        p if isinstance(p, CompiledPattern) else compile_pattern(p) for p in patterns
    ]
    if not compiled:
        return []

    matched = {
        rel for rel in iter_files(root) if patterns_matching(rel, compiled)
    }
    return sorted(matched, key=lambda p: p.as_posix())
