"""Async client for the guesthouse API: review board and booking wizard."""

from guesthouse.client.api_client import GuesthouseClient
from guesthouse.client.review_board import ReviewBoard, ReviewListing
from guesthouse.client.wizard import BookingWizard, WizardStep

__all__ = [
    "BookingWizard",
    "GuesthouseClient",
    "ReviewBoard",
    "ReviewListing",
    "WizardStep",
]
