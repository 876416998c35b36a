"""
Redelivery of booking-created events using APScheduler.

Stands in for the event system's retry policy: bookings the owner has not
heard about are published again until they age out. The payment handler may
already have moved such a booking to pending_payment or error, so the
selection covers every status an admin has not acted on yet.
"""

from datetime import timedelta
from typing import Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from bookings.events import BookingEventBus
from bookings.lifecycle import BookingLifecycle
from models.booking import BookingStatus
from utils.datetime_utils import utc_now
from utils.exceptions import StoreError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="scheduler.log")

# Statuses set before an admin acts on a booking
REDELIVERY_STATUSES: Tuple[str, ...] = (
    BookingStatus.PENDING.value,
    BookingStatus.PENDING_PAYMENT.value,
    BookingStatus.ERROR.value,
)


async def redeliver_unnotified(
    lifecycle: BookingLifecycle,
    events: BookingEventBus,
    max_age_hours: int,
) -> int:
    """
    Republish booking-created events for bookings without owner_notified_at.

    Returns:
        Number of bookings republished
    """
    cutoff = utc_now() - timedelta(hours=max_age_hours)
    try:
        bookings = await lifecycle.store.query_bookings(created_since=cutoff)
    except StoreError as e:
        logger.error(f"Redelivery query failed: {e}", exc_info=True)
        return 0

    stale = [
        b for b in bookings
        if b.owner_notified_at is None and b.status in REDELIVERY_STATUSES
    ]
    if not stale:
        logger.debug("No bookings need redelivery")
        return 0

    for booking in stale:
        events.publish_created(booking)

    logger.info(f"Redelivered booking-created events for {len(stale)} bookings")
    return len(stale)


def create_scheduler(
    lifecycle: BookingLifecycle,
    events: BookingEventBus,
    interval_minutes: int,
    max_age_hours: int,
    scheduler: Optional[AsyncIOScheduler] = None,
) -> AsyncIOScheduler:
    """Build the scheduler with the redelivery job registered (not started)."""
    scheduler = scheduler or AsyncIOScheduler()
    scheduler.add_job(
        redeliver_unnotified,
        trigger=IntervalTrigger(minutes=interval_minutes),
        kwargs={
            "lifecycle": lifecycle,
            "events": events,
            "max_age_hours": max_age_hours,
        },
        id="redeliver_booking_events",
        name="Redeliver booking-created events",
        replace_existing=True,
    )
    return scheduler
