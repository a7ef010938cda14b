"""Booking wizard — the guest-facing booking flow as a state machine.

    calendar -> selection -> details -> payment -> confirmation
                                           \\-> error (payment timed out)

Any step can be closed, which cancels payment polling and drops all
state; responses to requests still in flight are then ignored. Failures
the guest can recover from are reported in ``error`` without leaving the
current step; an unexpected fault moves the wizard to
``crashed`` with a generic reload prompt.
"""

import asyncio
import functools
import logging
import webbrowser
from collections.abc import Awaitable, Callable
from datetime import date
from enum import Enum

from guesthouse.client.api_client import GuesthouseClient
from guesthouse.client.calendar import BookedInterval, is_day_disabled, nights_between, range_is_free
from guesthouse.errors import (
    GuesthouseError,
    PaymentTimeout,
    RoomNoLongerAvailable,
    ValidationError,
)
from guesthouse.services.rate_table import RoomType, get_room, list_room_types, total_price

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 10
MAX_POLL_ATTEMPTS = 30  # 5 minutes at 10 s

CRASH_MESSAGE = "Something went wrong. Please refresh the page and try again."


class WizardStep(str, Enum):
    CALENDAR = "calendar"
    SELECTION = "selection"
    DETAILS = "details"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"
    ERROR = "error"
    CLOSED = "closed"
    CRASHED = "crashed"


class InvalidTransition(GuesthouseError):
    """The action is not available in the wizard's current step."""


class _WizardClosed(Exception):
    """The wizard was closed while a request was in flight."""


def _boundary(method):
    """Contain unexpected faults: log them and swap the wizard for a reload prompt."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except _WizardClosed:
            logger.info(f"Booking wizard closed during {method.__name__}; response dropped")
            return None
        except (GuesthouseError, asyncio.CancelledError):
            raise
        except Exception:
            logger.exception(f"Booking wizard fault in {method.__name__}")
            self.step = WizardStep.CRASHED
            self.error = CRASH_MESSAGE

    return wrapper


class BookingWizard:
    """Drives one guest through picking dates, a room, their details and payment."""

    def __init__(
        self,
        api: GuesthouseClient,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        open_url: Callable[[str], object] = webbrowser.open,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        today: date | None = None,
    ):
        self.api = api
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self._open_url = open_url
        self._sleep = sleep
        self._today = today
        self._poll_task: asyncio.Task | None = None
        self._generation = 0
        self._reset()

    def _reset(self):
        self.step = WizardStep.CALENDAR
        self.booked: list[BookedInterval] = []
        self.check_in: date | None = None
        self.check_out: date | None = None
        self.guests = 2
        self.breakfast = True
        self.available_rooms: list[RoomType] = []
        self.selected_room: str | None = None
        self.quote: dict | None = None
        self.customer = {"name": "", "email": "", "phone": ""}
        self.booking: dict | None = None
        self.payment_url: str | None = None
        self.error = ""
        self.loading = False

    @property
    def today(self) -> date:
        return self._today or date.today()

    @property
    def nights(self) -> int:
        if self.check_in and self.check_out:
            return nights_between(self.check_in, self.check_out)
        return 0

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def _require(self, *steps: WizardStep):
        if self.step not in steps:
            raise InvalidTransition(f"Not available in the {self.step.value} step")

    async def _request(self, call: Awaitable):
        """Await an API call, dropping its outcome if the wizard was closed meanwhile."""
        generation = self._generation
        try:
            result = await call
        except Exception:
            if generation != self._generation:
                raise _WizardClosed from None
            raise
        if generation != self._generation:
            raise _WizardClosed
        return result

    # Calendar

    def _room_ids(self) -> list[str]:
        return [room.id for room in list_room_types()]

    def is_day_disabled(self, day: date) -> bool:
        return is_day_disabled(day, self.booked, self._room_ids(), self.today)

    @_boundary
    async def load_booked_dates(self):
        """Fetch booked intervals once, when the wizard opens."""
        try:
            self.booked = await self._request(self.api.booked_dates())
        except GuesthouseError as e:
            logger.error(f"Error fetching booked dates: {e}")
            self.error = "Failed to load booking calendar. Please refresh the page."

    @_boundary
    async def click_day(self, day: date):
        """First click picks check-in, a later free day picks check-out and searches rooms."""
        self._require(WizardStep.CALENDAR)

        if self.check_in and not self.check_out and day > self.check_in:
            if not range_is_free(self.check_in, day, self.booked, self._room_ids()):
                self.check_in = None
                self.check_out = None
                self.error = "Selected dates include booked periods. Please choose different dates."
                return
            self.check_out = day
            self.error = ""
            await self._search_rooms()
            return

        if self.is_day_disabled(day):
            return
        self.check_in = day
        self.check_out = None
        self.error = ""

    async def _search_rooms(self):
        self.loading = True
        try:
            result = await self._request(
                self.api.check_availability(self.check_in, self.check_out, self.guests, self.breakfast)
            )
        except ValidationError as e:
            self.error = str(e)
            return
        except GuesthouseError as e:
            logger.error(f"Availability check failed: {e}")
            self.error = "Failed to check availability. Please try again."
            return
        finally:
            self.loading = False

        free_ids = {room["id"] for room in result.get("rooms") or []}
        self.available_rooms = [room for room in list_room_types() if room.id in free_ids]
        if result.get("available") and self.available_rooms:
            self.step = WizardStep.SELECTION
        else:
            self.error = "No rooms available for selected dates"

    # Selection

    def set_guests(self, guests: int):
        self._require(WizardStep.CALENDAR, WizardStep.SELECTION)
        if guests < 1:
            raise ValidationError("At least one guest is required")
        self.guests = guests

    def set_breakfast(self, breakfast: bool):
        self._require(WizardStep.CALENDAR, WizardStep.SELECTION)
        self.breakfast = breakfast

    def room_quotes(self) -> list[dict]:
        """Live prices for the free rooms that seat the current party."""
        return [
            {
                "id": room.id,
                "name": room.name,
                "total": total_price(room.id, self.guests, self.breakfast, self.nights),
            }
            for room in self.available_rooms
            if room.can_seat(self.guests)
        ]

    def back_to_calendar(self):
        self._require(WizardStep.SELECTION, WizardStep.DETAILS)
        self.step = WizardStep.CALENDAR
        self.check_in = None
        self.check_out = None
        self.selected_room = None
        self.quote = None
        self.error = ""

    @_boundary
    async def choose_room(self, room_id: str):
        """Confirm the chosen room is still free and move on to guest details."""
        self._require(WizardStep.SELECTION)
        if room_id not in {q["id"] for q in self.room_quotes()}:
            raise ValidationError(f"{get_room(room_id).name} cannot be booked for {self.guests} guests")

        self.loading = True
        try:
            result = await self._request(
                self.api.check_availability(
                    self.check_in, self.check_out, self.guests, self.breakfast, room_type=room_id
                )
            )
        except GuesthouseError as e:
            logger.error(f"Room availability check failed: {e}")
            self.error = "Error checking availability. Please try again."
            return
        finally:
            self.loading = False

        if not result.get("available"):
            self.available_rooms = [r for r in self.available_rooms if r.id != room_id]
            self.error = "This room is no longer available for your dates."
            return

        self.selected_room = room_id
        self.quote = result
        self.error = ""
        self.step = WizardStep.DETAILS

    # Details

    def update_customer(self, **fields: str):
        self._require(WizardStep.DETAILS)
        for key, value in fields.items():
            if key not in self.customer:
                raise ValidationError(f"Unknown customer field '{key}'")
            self.customer[key] = value

    @_boundary
    async def submit_details(self):
        """Create the pending booking, open the payment page and start polling."""
        self._require(WizardStep.DETAILS)
        if not all(value.strip() for value in self.customer.values()):
            self.error = "Please fill in all customer details"
            return

        self.loading = True
        try:
            result = await self._request(
                self.api.create_payment(
                    self.selected_room,
                    self.check_in,
                    self.check_out,
                    self.guests,
                    self.breakfast,
                    {key: value.strip() for key, value in self.customer.items()},
                )
            )
        except RoomNoLongerAvailable:
            self.available_rooms = [r for r in self.available_rooms if r.id != self.selected_room]
            self.selected_room = None
            self.step = WizardStep.SELECTION
            self.error = "Sorry, this room was just booked. Please choose another room."
            return
        except GuesthouseError as e:
            logger.error(f"Payment creation failed: {e}")
            self.error = "Error creating payment. Please try again."
            return
        finally:
            self.loading = False

        self.booking = result["booking"]
        self.payment_url = result["paymentUrl"]
        self.error = ""
        self.step = WizardStep.PAYMENT
        try:
            self._open_url(self.payment_url)
        except Exception as e:
            logger.warning(f"Could not open payment page {self.payment_url}: {e}")
        self._poll_task = asyncio.create_task(self._run_polling())

    # Payment

    async def _run_polling(self):
        try:
            await self.wait_for_payment()
        except PaymentTimeout:
            pass  # recorded on the wizard by wait_for_payment

    @_boundary
    async def wait_for_payment(self):
        """Poll the booking until it is paid, up to ``max_poll_attempts`` checks.

        Sleeps ``poll_interval`` before every check. Raises PaymentTimeout
        once the attempts run out; the booking stays pending server-side.
        """
        self._require(WizardStep.PAYMENT)
        booking_id = self.booking["id"]

        for attempt in range(1, self.max_poll_attempts + 1):
            await self._sleep(self.poll_interval)
            if self.step is not WizardStep.PAYMENT:
                return

            try:
                booking = await self._request(self.api.booking_status(booking_id))
            except GuesthouseError as e:
                logger.warning(f"Payment status check {attempt}/{self.max_poll_attempts} failed: {e}")
                continue

            self.booking = booking
            status = booking.get("paymentStatus")
            if status == "paid":
                try:
                    await self._request(self.api.send_confirmation(booking_id))
                except GuesthouseError as e:
                    logger.warning(f"Confirmation request for booking {booking_id} failed: {e}")
                self.step = WizardStep.CONFIRMATION
                return
            if status == "expired":
                self.step = WizardStep.ERROR
                self.error = "Your booking expired before payment was received. Please contact support."
                return

        self.step = WizardStep.ERROR
        self.error = "Payment processing timed out. Please contact support."
        raise PaymentTimeout(
            f"Booking {booking_id} still unpaid after {self.max_poll_attempts} checks"
        )

    async def wait_until_settled(self):
        """Wait for the background payment poll, if any, to finish."""
        if self._poll_task is not None:
            await asyncio.shield(self._poll_task)

    # Closing

    def close(self):
        """Close the wizard: stop polling and discard everything entered."""
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = None
        self._generation += 1
        self._reset()
        self.step = WizardStep.CLOSED
