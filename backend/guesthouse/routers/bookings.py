"""Bookings router — room catalogue, availability, booking creation and status."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.database import get_db
from guesthouse.errors import (
    BookingExpired,
    BookingNotPaid,
    GuesthouseError,
    RoomNoLongerAvailable,
    UnknownResource,
    UpstreamUnavailable,
    ValidationError,
)
from guesthouse.schemas.booking import (
    AvailabilityRequest,
    AvailabilityResponse,
    BookedRange,
    BookingResponse,
    CreatePaymentRequest,
    CreatePaymentResponse,
    PaymentWebhook,
    SendConfirmationRequest,
)
from guesthouse.services.availability_service import availability_service
from guesthouse.services.booking_service import booking_service
from guesthouse.services.payment_client import verify_signature
from guesthouse.services.rate_table import list_room_types

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_for(e: GuesthouseError) -> int:
    if isinstance(e, ValidationError):
        return 400
    if isinstance(e, UnknownResource):
        return 404
    if isinstance(e, (RoomNoLongerAvailable, BookingExpired, BookingNotPaid)):
        return 409
    if isinstance(e, UpstreamUnavailable):
        return 502
    return 500


def _http_error(e: GuesthouseError) -> HTTPException:
    """Map a domain error to its HTTP status; the error class travels in X-Error-Code."""
    return HTTPException(
        status_code=_status_for(e),
        detail=str(e),
        headers={"X-Error-Code": type(e).__name__},
    )


@router.get("/rooms")
async def list_rooms():
    """Room catalogue with capacity tiers and nightly rates."""
    return [room.to_dict() for room in list_room_types()]


@router.get("/booked-dates", response_model=list[BookedRange])
async def booked_dates(db: AsyncSession = Depends(get_db)):
    """Booked intervals per room, for greying out the calendar."""
    ranges = await availability_service.list_booked_ranges(db)
    return [BookedRange(**r) for r in ranges]


@router.post(
    "/check-availability",
    response_model=AvailabilityResponse,
    response_model_exclude_none=True,
)
async def check_availability(req: AvailabilityRequest, db: AsyncSession = Depends(get_db)):
    """Without ``roomType``: every free room priced. With it: confirm that room."""
    try:
        if req.room_type:
            result = await availability_service.check_room(
                db, req.room_type, req.check_in, req.check_out, req.guests, req.breakfast
            )
        else:
            result = await availability_service.check_availability(
                db, req.check_in, req.check_out, req.guests, req.breakfast
            )
    except GuesthouseError as e:
        raise _http_error(e)
    return AvailabilityResponse(**result)


@router.post("/create-payment", status_code=201, response_model=CreatePaymentResponse)
async def create_payment(req: CreatePaymentRequest, db: AsyncSession = Depends(get_db)):
    """Hold the room as a pending booking and return the payment redirect URL."""
    try:
        booking = await booking_service.create_pending_booking(
            db,
            room_id=req.room_type,
            check_in=req.check_in,
            check_out=req.check_out,
            guests=req.guests,
            breakfast=req.breakfast,
            customer=req.customer_info.model_dump(),
        )
    except GuesthouseError as e:
        raise _http_error(e)
    return CreatePaymentResponse(
        booking=BookingResponse.model_validate(booking),
        payment_url=booking.payment_url,
    )


@router.get("/booking-status/{booking_id}", response_model=BookingResponse)
async def booking_status(booking_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Current booking state; a pending booking is re-checked with the payment provider."""
    try:
        booking = await booking_service.refresh_payment_status(db, booking_id)
    except GuesthouseError as e:
        raise _http_error(e)
    return BookingResponse.model_validate(booking)


@router.post("/send-confirmation")
async def send_confirmation(req: SendConfirmationRequest, db: AsyncSession = Depends(get_db)):
    """Send the confirmation email unless it already went out."""
    try:
        sent = await booking_service.send_confirmation(db, req.booking_id)
    except GuesthouseError as e:
        raise _http_error(e)
    return {"ok": True, "sent": sent}


@router.post("/payments/webhook")
async def payment_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Payment provider callback. Body is signed with the shared webhook secret."""
    body = await request.body()
    if not verify_signature(body, request.headers.get("X-Payment-Signature")):
        logger.warning("Payment webhook with bad signature rejected")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = PaymentWebhook.model_validate_json(body)
    except PydanticValidationError:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    if event.status.lower() != "paid":
        logger.info(f"Payment webhook for booking {event.booking_id}: status {event.status} ignored")
        return {"ok": True, "paymentStatus": None}

    try:
        booking = await booking_service.mark_paid(db, event.booking_id)
    except GuesthouseError as e:
        raise _http_error(e)
    return {"ok": True, "paymentStatus": booking.payment_status}
