"""Availability service — booked intervals per room and priced availability checks.

Stays are half-open intervals ``[check_in, check_out)``: the check-out day
of one stay is free for the next guest's check-in.
"""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.errors import InvalidDateRange
from guesthouse.models.booking import ACTIVE_STATUSES, Booking
from guesthouse.services.rate_table import get_room, list_room_types, price_for_night

logger = logging.getLogger(__name__)


def ranges_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    return start1 < end2 and start2 < end1


def validate_stay(check_in: date, check_out: date, today: date | None = None) -> int:
    """Return the number of nights, rejecting empty, inverted or past stays."""
    today = today or date.today()
    if check_in >= check_out:
        raise InvalidDateRange("Check-out must be after check-in")
    if check_in < today:
        raise InvalidDateRange("Check-in cannot be in the past")
    return (check_out - check_in).days


class AvailabilityService:
    """Answers which rooms are free for a stay and what they cost."""

    async def list_booked_ranges(self, db: AsyncSession, today: date | None = None) -> list[dict]:
        """Booked intervals that still matter for the calendar; no guest data."""
        today = today or date.today()
        result = await db.execute(
            select(Booking.room_type, Booking.check_in, Booking.check_out)
            .where(
                Booking.payment_status.in_(ACTIVE_STATUSES),
                Booking.check_out > today,
            )
            .order_by(Booking.check_in)
        )
        return [
            {"start": row.check_in, "end": row.check_out, "room_type": row.room_type}
            for row in result.all()
        ]

    async def booked_room_ids(
        self,
        db: AsyncSession,
        check_in: date,
        check_out: date,
        room_ids: list[str] | None = None,
    ) -> set[str]:
        """Room ids holding at least one active booking that overlaps the stay."""
        query = select(Booking.room_type).where(
            Booking.payment_status.in_(ACTIVE_STATUSES),
            Booking.check_in < check_out,
            Booking.check_out > check_in,
        )
        if room_ids is not None:
            query = query.where(Booking.room_type.in_(room_ids))
        result = await db.execute(query.distinct())
        return set(result.scalars().all())

    async def check_availability(
        self,
        db: AsyncSession,
        check_in: date,
        check_out: date,
        guests: int,
        breakfast: bool,
        today: date | None = None,
    ) -> dict:
        """Price every room that can seat the party and has no overlapping booking."""
        nights = validate_stay(check_in, check_out, today)
        candidates = [room for room in list_room_types() if room.can_seat(guests)]
        booked = await self.booked_room_ids(db, check_in, check_out, [r.id for r in candidates])

        rooms = []
        for room in candidates:
            if room.id in booked:
                continue
            nightly = price_for_night(room.id, guests, breakfast)
            rooms.append({
                "id": room.id,
                "name": room.name,
                "nightly_rate": nightly,
                "total": nightly * nights,
            })

        logger.info(
            "Availability %s..%s for %d guests: %d/%d rooms free",
            check_in, check_out, guests, len(rooms), len(candidates),
        )
        return {"available": bool(rooms), "nights": nights, "rooms": rooms}

    async def check_room(
        self,
        db: AsyncSession,
        room_id: str,
        check_in: date,
        check_out: date,
        guests: int,
        breakfast: bool,
        today: date | None = None,
    ) -> dict:
        """Confirm a single room for the stay and quote its total."""
        room = get_room(room_id)
        nights = validate_stay(check_in, check_out, today)
        nightly = price_for_night(room.id, guests, breakfast)
        booked = await self.booked_room_ids(db, check_in, check_out, [room.id])
        return {
            "available": room.id not in booked,
            "nights": nights,
            "total": nightly * nights,
            "room_name": room.name,
        }


availability_service = AvailabilityService()
