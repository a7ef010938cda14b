"""Transactional email client — booking confirmations."""

import logging

import httpx

from guesthouse.config import settings
from guesthouse.models.booking import Booking

logger = logging.getLogger(__name__)


def render_confirmation(booking: Booking) -> tuple[str, str]:
    """Subject and plain-text body of the confirmation email."""
    subject = f"Your stay at {settings.property_name} is confirmed"
    breakfast = "included" if booking.breakfast else "not included"
    body = (
        f"Dear {booking.customer_name},\n\n"
        f"Thank you for your booking. Here are the details:\n\n"
        f"Booking reference: {booking.id}\n"
        f"Room: {booking.room_type}\n"
        f"Check-in: {booking.check_in:%A %d %B %Y}\n"
        f"Check-out: {booking.check_out:%A %d %B %Y}\n"
        f"Nights: {booking.nights}\n"
        f"Guests: {booking.guests}\n"
        f"Breakfast: {breakfast}\n"
        f"Total paid: {booking.total_price} {booking.currency}\n\n"
        f"We look forward to welcoming you.\n"
        f"{settings.property_name}\n"
    )
    return subject, body


class EmailClient:
    """Sends mail through the provider's HTTP API; log-only without an API key."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = settings.email_api_key if api_key is None else api_key
        self._base_url = base_url or settings.email_base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._use_mock = not self._api_key

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=15.0,
                transport=self._transport,
            )
        return self._client

    async def send_booking_confirmation(self, booking: Booking) -> bool:
        """Send the confirmation. Returns False on any delivery failure."""
        subject, body = render_confirmation(booking)

        if self._use_mock:
            logger.info(f"Mock email to {booking.customer_email}: {subject}")
            return True

        try:
            client = await self._get_client()
            resp = await client.post(
                "/v1/messages",
                json={
                    "from": settings.email_sender,
                    "to": [booking.customer_email],
                    "subject": subject,
                    "text": body,
                },
            )
            resp.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Confirmation email for booking {booking.id} failed: {e}")
            return False

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


email_client = EmailClient()
