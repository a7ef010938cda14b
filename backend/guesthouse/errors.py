"""Domain errors shared by the API and the client.

Services raise these; routers turn them into HTTP responses and the
client turns HTTP responses back into them.
"""


class GuesthouseError(Exception):
    """Base class for every booking/review failure."""


class ValidationError(GuesthouseError, ValueError):
    """Bad input (HTTP 400)."""


class InvalidDateRange(ValidationError):
    pass


class InvalidNights(ValidationError):
    pass


class CapacityExceeded(ValidationError):
    pass


class UnknownResource(GuesthouseError, LookupError):
    """Referenced entity does not exist (HTTP 404)."""


class UnknownRoom(UnknownResource):
    pass


class UnknownBooking(UnknownResource):
    pass


class RoomNoLongerAvailable(GuesthouseError):
    """The room was booked by someone else in the meantime (HTTP 409)."""


class BookingExpired(GuesthouseError):
    """The pending booking was released before payment was confirmed (HTTP 409)."""


class PaymentTimeout(GuesthouseError):
    """The client gave up polling for payment confirmation."""


class UpstreamUnavailable(GuesthouseError):
    """A remote service (API, payment provider) could not be reached."""


class BookingNotPaid(GuesthouseError):
    """An action that needs a paid booking was asked for an unpaid one (HTTP 409)."""
