"""Calendar helpers for the booking wizard.

Nights are half-open: a booked interval ``[start, end)`` blocks the nights
``start .. end - 1``, so its ``end`` day is free for another check-in.
A night is blocked on the calendar only when every room is taken.
"""

from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class BookedInterval:
    start: date
    end: date
    room_type: str | None = None

    def covers_night(self, night: date) -> bool:
        return self.start <= night < self.end


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def is_night_booked(night: date, intervals: list[BookedInterval], room_ids: list[str] | None = None) -> bool:
    """True when no room is free for ``night``.

    Without ``room_ids`` (or with property-wide intervals) any covering
    interval blocks the night.
    """
    covering = [i for i in intervals if i.covers_night(night)]
    if not covering:
        return False
    if not room_ids or any(i.room_type is None for i in covering):
        return True
    taken = {i.room_type for i in covering}
    return all(room_id in taken for room_id in room_ids)


def is_day_disabled(
    day: date,
    intervals: list[BookedInterval],
    room_ids: list[str] | None = None,
    today: date | None = None,
) -> bool:
    """Whether ``day`` can start a stay."""
    today = today or date.today()
    return day < today or is_night_booked(day, intervals, room_ids)


def range_is_free(
    check_in: date,
    check_out: date,
    intervals: list[BookedInterval],
    room_ids: list[str] | None = None,
) -> bool:
    """True when every night of ``[check_in, check_out)`` has a free room."""
    night = check_in
    while night < check_out:
        if is_night_booked(night, intervals, room_ids):
            return False
        night += timedelta(days=1)
    return True
