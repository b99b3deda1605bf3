"""Time utilities."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return an aware UTC datetime."""
    return datetime.now(timezone.utc)


def hours_between(earlier: float, later: float) -> float:
    """Hours elapsed between two epoch-second timestamps."""
    return (later - earlier) / 3600.0
