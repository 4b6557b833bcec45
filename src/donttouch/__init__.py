"""donttouch - Protect files from AI coding agents and accidental changes."""

from __future__ import annotations

__version__ = "0.1.0"
