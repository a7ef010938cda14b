"""Booking service — pending bookings, payment confirmation and expiry.

A booking is created ``pending`` once the guest has entered their details,
moves exactly once to ``paid`` when the payment provider confirms, or to
``expired`` when the payment window lapses. Both ``paid`` and ``expired``
are terminal.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.config import settings
from guesthouse.database import utcnow
from guesthouse.errors import (
    BookingExpired,
    BookingNotPaid,
    RoomNoLongerAvailable,
    UnknownBooking,
    UpstreamUnavailable,
)
from guesthouse.models.booking import Booking, PaymentStatus
from guesthouse.services.availability_service import availability_service, validate_stay
from guesthouse.services.email_client import EmailClient, email_client
from guesthouse.services.payment_client import PaymentClient, payment_client
from guesthouse.services.rate_table import get_room, price_for_night

logger = logging.getLogger(__name__)


class BookingService:
    """Owns the booking record lifecycle."""

    def __init__(
        self,
        payments: PaymentClient | None = None,
        mailer: EmailClient | None = None,
    ):
        self.payment_client = payments or payment_client
        self.email_client = mailer or email_client
        # Serializes the overlap re-check and insert within this process
        self._reserve_lock = asyncio.Lock()

    async def get_booking(self, db: AsyncSession, booking_id: uuid.UUID) -> Booking:
        booking = await db.get(Booking, booking_id)
        if booking is None:
            raise UnknownBooking(f"Booking {booking_id} not found")
        return booking

    async def create_pending_booking(
        self,
        db: AsyncSession,
        room_id: str,
        check_in: date,
        check_out: date,
        guests: int,
        breakfast: bool,
        customer: dict,
        today: date | None = None,
    ) -> Booking:
        """Reserve the room for the stay and open a payment session for it.

        Raises RoomNoLongerAvailable when another booking took the room
        after the guest's availability check.
        """
        room = get_room(room_id)
        nights = validate_stay(check_in, check_out, today)
        nightly = price_for_night(room.id, guests, breakfast)

        async with self._reserve_lock:
            booked = await availability_service.booked_room_ids(db, check_in, check_out, [room.id])
            if booked:
                raise RoomNoLongerAvailable(
                    f"{room.name} is no longer available from {check_in} to {check_out}"
                )

            booking = Booking(
                room_type=room.id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                breakfast=breakfast,
                nights=nights,
                nightly_rate=nightly,
                total_price=nightly * nights,
                currency=settings.currency,
                customer_name=customer["name"],
                customer_email=customer["email"],
                customer_phone=customer["phone"],
                payment_status=PaymentStatus.PENDING.value,
            )
            db.add(booking)
            try:
                await db.commit()
            except IntegrityError as e:
                # Overlap exclusion constraint: another process won the race
                await db.rollback()
                raise RoomNoLongerAvailable(
                    f"{room.name} is no longer available from {check_in} to {check_out}"
                ) from e

        logger.info(
            f"Booking {booking.id} pending: {room.id} {check_in}..{check_out}, "
            f"{guests} guests, {booking.total_price} {booking.currency}"
        )

        try:
            session = await self.payment_client.initiate_payment(
                booking.total_price,
                booking.id,
                description=f"{room.name}, {nights} night(s) from {check_in}",
                customer_email=booking.customer_email,
            )
        except UpstreamUnavailable:
            # Release the dates; the guest can retry from the details step
            booking.payment_status = PaymentStatus.EXPIRED.value
            await db.commit()
            logger.error(f"Payment session for booking {booking.id} failed; booking released")
            raise

        booking.payment_reference = session.reference
        booking.payment_url = session.url
        await db.commit()
        return booking

    async def mark_paid(self, db: AsyncSession, booking_id: uuid.UUID) -> Booking:
        """Move a pending booking to paid. Repeated calls are no-ops."""
        booking = await self.get_booking(db, booking_id)
        if booking.payment_status == PaymentStatus.PAID.value:
            return booking
        if booking.payment_status == PaymentStatus.EXPIRED.value:
            logger.error(
                f"Payment confirmed for expired booking {booking.id} "
                f"(reference {booking.payment_reference}); needs manual reconciliation"
            )
            raise BookingExpired(f"Booking {booking.id} expired before payment was confirmed")

        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.payment_status == PaymentStatus.PENDING.value)
            .values(payment_status=PaymentStatus.PAID.value, paid_at=utcnow())
        )
        await db.commit()
        await db.refresh(booking)

        if result.rowcount == 1:
            logger.info(f"Booking {booking.id} paid")
            await self.send_confirmation(db, booking.id)
        elif booking.payment_status != PaymentStatus.PAID.value:
            # Lost a race against the expiry sweep
            raise BookingExpired(f"Booking {booking.id} expired before payment was confirmed")
        return booking

    async def refresh_payment_status(self, db: AsyncSession, booking_id: uuid.UUID) -> Booking:
        """Return the booking, first asking the provider whether a pending one has been paid."""
        booking = await self.get_booking(db, booking_id)
        if booking.payment_status != PaymentStatus.PENDING.value or not booking.payment_reference:
            return booking

        try:
            state = await self.payment_client.get_payment_status(booking.payment_reference)
        except UpstreamUnavailable as e:
            logger.warning(f"Payment status lookup for booking {booking.id} failed: {e}")
            return booking

        if state == PaymentStatus.PAID.value:
            return await self.mark_paid(db, booking.id)
        return booking

    async def send_confirmation(self, db: AsyncSession, booking_id: uuid.UUID) -> bool:
        """Email the confirmation at most once per booking.

        Returns True when this call sent it. Delivery failures are logged and
        leave the booking eligible for another attempt; they never touch the
        payment state.
        """
        booking = await self.get_booking(db, booking_id)
        if booking.payment_status != PaymentStatus.PAID.value:
            raise BookingNotPaid(f"Booking {booking.id} is not paid")

        claimed = await db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.confirmation_sent_at.is_(None))
            .values(confirmation_sent_at=utcnow())
        )
        await db.commit()
        if claimed.rowcount != 1:
            return False

        sent = await self.email_client.send_booking_confirmation(booking)
        if not sent:
            await db.execute(
                update(Booking).where(Booking.id == booking.id).values(confirmation_sent_at=None)
            )
            await db.commit()
            return False

        logger.info(f"Confirmation sent for booking {booking.id}")
        return True

    async def expire_stale_bookings(self, db: AsyncSession, now: datetime | None = None) -> int:
        """Release pending bookings whose payment window has lapsed."""
        now = now or utcnow()
        cutoff = now - timedelta(minutes=settings.pending_booking_ttl_minutes)
        result = await db.execute(
            update(Booking)
            .where(
                Booking.payment_status == PaymentStatus.PENDING.value,
                Booking.created_at < cutoff,
            )
            .values(payment_status=PaymentStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount or 0


booking_service = BookingService()
