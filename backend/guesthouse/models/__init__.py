from guesthouse.models.booking import Booking, PaymentStatus
from guesthouse.models.review import Review

__all__ = [
    "Booking",
    "PaymentStatus",
    "Review",
]
