"""Safety checks guarding commands that lift protection."""

from __future__ import annotations

from .guard import assert_outside, is_inside

__all__ = ["assert_outside", "is_inside"]
