# backend/scheduler/conflicts.py
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class Interval:
    """Half-open time range ``[start, end)`` optionally tied to an appointment."""

    start: datetime
    end: datetime
    appointment_id: Optional[str] = None

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Interval end {self.end} must be after start {self.start}")

    @classmethod
    def from_booking(cls, start: datetime, duration_minutes: int, appointment_id: Optional[str] = None):
        try:
            end = start + timedelta(minutes=duration_minutes)
        except OverflowError:
            raise ValueError(f"Booking of {duration_minutes} minutes from {start} is out of range") from None
        return cls(start, end, appointment_id)

    def overlaps(self, other: "Interval") -> bool:
        # Touching endpoints do not overlap.
        return self.start < other.end and other.start < self.end


def conflicting(
    existing: Iterable[Interval],
    candidate: Interval,
    exclude_id: Optional[str] = None,
) -> List[Interval]:
    """Return the intervals in ``existing`` that overlap ``candidate``.

    ``existing`` must already be narrowed to one veterinarian and to blocking
    statuses. An interval whose ``appointment_id`` equals ``exclude_id`` is
    ignored, which lets a reschedule be checked against every *other* booking.
    """
    return [
        booking
        for booking in existing
        if not (exclude_id is not None and booking.appointment_id == exclude_id)
        and booking.overlaps(candidate)
    ]


def has_conflict(
    existing: Iterable[Interval],
    candidate: Interval,
    exclude_id: Optional[str] = None,
) -> bool:
    return any(
        booking.overlaps(candidate)
        for booking in existing
        if exclude_id is None or booking.appointment_id != exclude_id
    )
