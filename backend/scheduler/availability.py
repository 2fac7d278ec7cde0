# backend/scheduler/availability.py
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Iterator, Tuple

from .conflicts import Interval

# --- Defaults ---
# Working hours: 9:00 AM to 5:00 PM, offered in 30-minute slots.
DEFAULT_WORK_START = time(9, 0)
DEFAULT_WORK_END = time(17, 0)
DEFAULT_SLOT_MINUTES = 30


@dataclass(frozen=True)
class WorkingHours:
    start: time = DEFAULT_WORK_START
    end: time = DEFAULT_WORK_END
    slot_minutes: int = DEFAULT_SLOT_MINUTES

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError("Working hours must start before they end")
        if self.slot_minutes <= 0:
            raise ValueError("Slot granularity must be a positive number of minutes")


class AvailableSlots:
    """Lazy, restartable sequence of free slot start instants for one day.

    Nothing is computed until the object is iterated, and every iteration
    starts over from the beginning of the working day.
    """

    def __init__(
        self,
        day: date,
        hours: WorkingHours,
        bookings: Iterable[Interval],
        now: datetime,
        tz: tzinfo = timezone.utc,
    ):
        self.day = day
        self.hours = hours
        self.now = now
        self.tz = tz
        # Materialized once so a one-shot iterator can't make later passes empty.
        self._bookings: Tuple[Interval, ...] = tuple(bookings)

    def __iter__(self) -> Iterator[datetime]:
        step = timedelta(minutes=self.hours.slot_minutes)
        current = datetime.combine(self.day, self.hours.start, tzinfo=self.tz)
        day_end = datetime.combine(self.day, self.hours.end, tzinfo=self.tz)

        while current < day_end:
            slot_start = current.astimezone(timezone.utc)
            current += step

            if slot_start <= self.now:
                continue
            slot = Interval(slot_start, slot_start + step)
            if any(booking.overlaps(slot) for booking in self._bookings):
                continue
            yield slot_start

    def __repr__(self):
        return f"AvailableSlots(day={self.day.isoformat()}, hours={self.hours!r})"


def compute_available_slots(
    day: date,
    existing_bookings: Iterable[Interval],
    now: datetime,
    work_start: time = DEFAULT_WORK_START,
    work_end: time = DEFAULT_WORK_END,
    granularity_minutes: int = DEFAULT_SLOT_MINUTES,
    tz: tzinfo = timezone.utc,
) -> AvailableSlots:
    """
    Find the free appointment start times for a veterinarian on ``day``.

    Args:
        day (date): The calendar day to search. Must already be validated
            by the caller (parseable, not in the past).
        work_start (time): Start of the working window, inclusive.
        work_end (time): End of the working window, exclusive.
        granularity_minutes (int): Spacing between candidate slots and the
            length each slot is checked for.
        existing_bookings (iterable of Interval): The veterinarian's blocking
            bookings. Each one blocks its own duration, not the slot length.
        now (datetime): Current instant. Slots at or before it are skipped.
        tz (tzinfo): Timezone the working hours are expressed in.

    Returns:
        AvailableSlots: Chronologically ascending UTC instants. May be empty.
    """
    hours = WorkingHours(work_start, work_end, granularity_minutes)
    return AvailableSlots(day, hours, existing_bookings, now, tz)
