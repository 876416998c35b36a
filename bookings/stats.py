"""Booking counts and revenue over trailing windows."""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List

from bookings.pricing import booking_amount
from models.booking import Booking, BookingStatus
from utils.constants import STATS_MONTH_DAYS, STATS_WEEK_DAYS


def summarize_bookings(bookings: Iterable[Booking], since: datetime) -> Dict[str, Any]:
    """Counts per status plus revenue from confirmed bookings created since a time."""
    window: List[Booking] = [b for b in bookings if b.created_at >= since]
    counts = {status.value: 0 for status in BookingStatus}
    revenue = 0
    for booking in window:
        counts[booking.status] = counts.get(booking.status, 0) + 1
        if booking.status == BookingStatus.CONFIRMED.value:
            revenue += booking_amount(booking)

    return {
        "since": since.isoformat(),
        "total": len(window),
        "by_status": counts,
        "revenue": revenue,
    }


def booking_stats(bookings: List[Booking], now: datetime) -> Dict[str, Any]:
    return {
        "generated_at": now.isoformat(),
        "week": summarize_bookings(bookings, now - timedelta(days=STATS_WEEK_DAYS)),
        "month": summarize_bookings(bookings, now - timedelta(days=STATS_MONTH_DAYS)),
    }
