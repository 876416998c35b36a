"""Booking lifecycle, live feeds and creation events."""

from .events import BookingEventBus
from .feed import BookingFeed, BookingSubscription
from .lifecycle import BookingLifecycle
from .pricing import booking_amount, rental_days, rental_total

__all__ = [
    "BookingEventBus",
    "BookingFeed",
    "BookingLifecycle",
    "BookingSubscription",
    "booking_amount",
    "rental_days",
    "rental_total",
]
