"""Clock helpers shared by models, stores, and the board controller."""

from __future__ import annotations

from datetime import UTC, date, datetime


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def local_today() -> date:
    """Return today's calendar date in server-local time (time truncated to midnight)."""
    return datetime.now().date()
