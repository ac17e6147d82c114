"""Quiet-hours check used to blank the display overnight."""

from __future__ import annotations

from datetime import datetime


def in_night_mode(now: datetime, start: int, end: int) -> bool:
    """Return True when ``now.hour`` falls inside the ``[start, end)`` window.

    A window with ``start > end`` wraps past midnight, so ``(23, 5)`` covers
    23:00 through 04:59.
    """
    if start <= end:
        return start <= now.hour < end
    return now.hour >= start or now.hour < end


__all__ = ["in_night_mode"]
