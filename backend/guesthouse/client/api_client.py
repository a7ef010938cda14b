"""REST client for the guesthouse API.

HTTP failures come back as the same domain errors the server raised:
the server names the error class in ``X-Error-Code``, and plain status
codes are mapped when it does not.
"""

import logging
import uuid
from datetime import date
from typing import Any

import httpx

from guesthouse import errors
from guesthouse.client.calendar import BookedInterval
from guesthouse.errors import (
    GuesthouseError,
    RoomNoLongerAvailable,
    UnknownResource,
    UpstreamUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_ERRORS: dict[int, type[GuesthouseError]] = {
    400: ValidationError,
    404: UnknownResource,
    409: RoomNoLongerAvailable,
}


def _error_for(resp: httpx.Response) -> GuesthouseError:
    try:
        body = resp.json()
    except ValueError:
        body = resp.text
    detail = body.get("detail", body) if isinstance(body, dict) else body
    message = detail if isinstance(detail, str) else str(detail)

    code = resp.headers.get("X-Error-Code")
    error_cls = getattr(errors, code, None) if code else None
    if not (isinstance(error_cls, type) and issubclass(error_cls, GuesthouseError)):
        if resp.status_code >= 500:
            error_cls = UpstreamUnavailable
        else:
            error_cls = STATUS_ERRORS.get(resp.status_code, GuesthouseError)
    return error_cls(message)


class GuesthouseClient:
    """Async client for the reviews and booking endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise UpstreamUnavailable(f"{method} {path} failed: {e}") from e
        if resp.status_code >= 400:
            raise _error_for(resp)
        return resp.json()

    # Reviews

    async def list_reviews(self) -> list[dict]:
        return await self._request("GET", "/api/reviews")

    async def post_review(self, name: str, country: str, comment: str, rating: int) -> dict:
        return await self._request(
            "POST",
            "/api/reviews",
            json={"name": name, "country": country, "comment": comment, "rating": rating},
        )

    # Booking

    async def list_rooms(self) -> list[dict]:
        return await self._request("GET", "/api/rooms")

    async def booked_dates(self) -> list[BookedInterval]:
        data = await self._request("GET", "/api/booked-dates")
        intervals = []
        for item in data:
            if not item.get("start") or not item.get("end"):
                continue
            intervals.append(BookedInterval(
                start=date.fromisoformat(item["start"]),
                end=date.fromisoformat(item["end"]),
                room_type=item.get("roomType"),
            ))
        return intervals

    async def check_availability(
        self,
        check_in: date,
        check_out: date,
        guests: int,
        breakfast: bool,
        room_type: str | None = None,
    ) -> dict:
        body = {
            "checkIn": check_in.isoformat(),
            "checkOut": check_out.isoformat(),
            "guests": guests,
            "breakfast": breakfast,
        }
        if room_type:
            body["roomType"] = room_type
        return await self._request("POST", "/api/check-availability", json=body)

    async def create_payment(
        self,
        room_type: str,
        check_in: date,
        check_out: date,
        guests: int,
        breakfast: bool,
        customer_info: dict,
    ) -> dict:
        return await self._request(
            "POST",
            "/api/create-payment",
            json={
                "roomType": room_type,
                "checkIn": check_in.isoformat(),
                "checkOut": check_out.isoformat(),
                "guests": guests,
                "breakfast": breakfast,
                "customerInfo": customer_info,
            },
        )

    async def booking_status(self, booking_id: str | uuid.UUID) -> dict:
        return await self._request("GET", f"/api/booking-status/{booking_id}")

    async def send_confirmation(self, booking_id: str | uuid.UUID) -> dict:
        return await self._request(
            "POST", "/api/send-confirmation", json={"bookingId": str(booking_id)}
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "GuesthouseClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
