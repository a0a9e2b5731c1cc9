"""Utility helpers for reusable functionality."""

from .datetime import (
    SystemClock,
    ensure_utc,
    now_utc,
    parse_rfc3339,
    system_clock,
    to_rfc3339,
)

__all__ = [
    "SystemClock",
    "ensure_utc",
    "now_utc",
    "parse_rfc3339",
    "system_clock",
    "to_rfc3339",
]
