"""Protection engine, pattern matching and permission handling."""

from __future__ import annotations

from .matcher import CompiledPattern, compile_pattern, compile_patterns, match
from .permissions import Outcome
from .engine import ProtectionEngine, ProtectionState

__all__ = [
    "CompiledPattern",
    "compile_pattern",
    "compile_patterns",
    "match",
    "Outcome",
    "ProtectionEngine",
    "ProtectionState",
]
