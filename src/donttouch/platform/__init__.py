"""Working-tree context detection."""

from __future__ import annotations

from .context import Context, GitContext, PlainContext, detect_context

__all__ = ["detect_context", "Context", "GitContext", "PlainContext"]
