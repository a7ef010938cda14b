"""Payment provider client — hosted checkout sessions over HTTPS.

Only two provider capabilities are used: opening a checkout session for a
booking (which yields the redirect URL) and reading a session's state.
Without an API key the client runs in mock mode and never leaves the
process.
"""

import asyncio
import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

import httpx

from guesthouse.config import settings
from guesthouse.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

# Provider session states that mean the money has been captured
PAID_STATES = {"paid", "complete", "succeeded"}

MAX_ATTEMPTS = 3


@dataclass
class PaymentSession:
    reference: str
    url: str


def verify_signature(body: bytes, signature: str | None, secret: str | None = None) -> bool:
    """Check a webhook's HMAC-SHA256 hex signature. Always true when no secret is configured."""
    secret = settings.payment_webhook_secret if secret is None else secret
    if not secret:
        return True
    if not signature:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


class PaymentClient:
    """Adapter for the hosted-checkout payment provider."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = settings.payment_api_key if api_key is None else api_key
        self._base_url = base_url or settings.payment_base_url
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

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        client = await self._get_client()
        for attempt in range(MAX_ATTEMPTS):
            try:
                resp = await client.request(method, url, **kwargs)
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as e:
                if (e.response.status_code == 429 or e.response.status_code >= 500) and attempt < MAX_ATTEMPTS - 1:
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise UpstreamUnavailable(
                    f"Payment provider answered {e.response.status_code}"
                ) from e
            except httpx.RequestError as e:
                if attempt < MAX_ATTEMPTS - 1:
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise UpstreamUnavailable(f"Payment provider unreachable: {e}") from e
        raise UpstreamUnavailable("Payment provider unreachable")

    async def initiate_payment(
        self,
        amount: Decimal,
        booking_id: uuid.UUID,
        description: str = "",
        customer_email: str | None = None,
    ) -> PaymentSession:
        """Open a checkout session and return its reference and redirect URL."""
        if self._use_mock:
            logger.info(f"Mock payment session for booking {booking_id}: {amount} {settings.currency}")
            return PaymentSession(
                reference=f"mock_{booking_id.hex}",
                url=f"{settings.public_base_url}/payment/mock?booking={booking_id}",
            )

        data = await self._request(
            "POST",
            "/v1/checkout/sessions",
            json={
                "amount": int((amount * 100).to_integral_value()),
                "currency": settings.currency.lower(),
                "client_reference_id": str(booking_id),
                "description": description,
                "customer_email": customer_email,
                "success_url": f"{settings.public_base_url}/booking/{booking_id}/success",
                "cancel_url": f"{settings.public_base_url}/booking/{booking_id}/cancel",
            },
        )
        return PaymentSession(reference=data["id"], url=data["url"])

    async def get_payment_status(self, reference: str) -> str:
        """Return ``"paid"`` once the provider reports the session captured, else ``"pending"``."""
        if self._use_mock:
            return "pending"

        data = await self._request("GET", f"/v1/checkout/sessions/{reference}")
        state = str(data.get("payment_status") or data.get("status") or "").lower()
        return "paid" if state in PAID_STATES else "pending"

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


payment_client = PaymentClient()
