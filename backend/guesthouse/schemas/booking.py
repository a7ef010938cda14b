import uuid
from datetime import date, datetime

from pydantic import Field, field_validator

from guesthouse.schemas.common import CamelModel, StayDate


class BookedRange(CamelModel):
    start: date
    end: date
    room_type: str


class AvailabilityRequest(CamelModel):
    check_in: StayDate
    check_out: StayDate
    guests: int = Field(2, ge=1)
    breakfast: bool = False
    room_type: str | None = None


class PricedRoom(CamelModel):
    id: str
    name: str
    nightly_rate: float
    total: float


class AvailabilityResponse(CamelModel):
    """Multi-room answer carries ``rooms``; single-room answer carries ``total``/``room_name``."""

    available: bool
    nights: int
    rooms: list[PricedRoom] | None = None
    total: float | None = None
    room_name: str | None = None


class CustomerInfo(CamelModel):
    name: str
    email: str
    phone: str

    @field_validator("name", "email", "phone")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class CreatePaymentRequest(CamelModel):
    room_type: str
    check_in: StayDate
    check_out: StayDate
    guests: int = Field(ge=1)
    breakfast: bool = False
    customer_info: CustomerInfo


class BookingResponse(CamelModel):
    id: uuid.UUID
    room_type: str
    check_in: date
    check_out: date
    guests: int
    breakfast: bool
    nights: int
    nightly_rate: float
    total_price: float
    currency: str
    customer_name: str
    customer_email: str
    customer_phone: str
    payment_status: str
    paid_at: datetime | None = None
    created_at: datetime


class CreatePaymentResponse(CamelModel):
    booking: BookingResponse
    payment_url: str


class SendConfirmationRequest(CamelModel):
    booking_id: uuid.UUID


class PaymentWebhook(CamelModel):
    booking_id: uuid.UUID
    status: str
    reference: str | None = None
