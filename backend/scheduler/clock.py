# backend/scheduler/clock.py
"""Time sources for the scheduler.

Everything that needs "now" takes a clock instead of calling
``datetime.now()`` inline, so a request sees one consistent instant and tests
can pin time.
"""
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs) -> datetime:
        self._instant += timedelta(**kwargs)
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
