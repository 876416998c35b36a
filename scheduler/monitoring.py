"""
Payment success rate monitor.

Every few minutes the share of recent bookings that reached confirmed is
compared with an alert threshold. A low rate is logged as an error and
recorded in the alerts table.
"""

from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from db.store import BookingStore
from models.booking import BookingStatus
from utils.datetime_utils import utc_now
from utils.exceptions import StoreError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="scheduler.log")


async def check_payment_success_rate(
    store: BookingStore,
    window_hours: int,
    alert_percent: float,
) -> Optional[float]:
    """
    Check confirmed bookings against all bookings created in the window.

    Returns:
        Success rate in percent, or None when there was nothing to measure
    """
    since = utc_now() - timedelta(hours=window_hours)
    try:
        bookings = await store.query_bookings(created_since=since)
    except StoreError as e:
        logger.error(f"Payment monitor query failed: {e}", exc_info=True)
        return None

    if not bookings:
        logger.debug("No bookings in the monitoring window")
        return None

    confirmed = sum(1 for b in bookings if b.status == BookingStatus.CONFIRMED.value)
    rate = confirmed / len(bookings) * 100

    if rate >= alert_percent:
        logger.info(f"Payment success rate {rate:.2f}% over {len(bookings)} bookings")
        return rate

    logger.error(f"Payment success rate alert: {rate:.2f}% (threshold {alert_percent}%)")
    try:
        await store.add_alert(
            {
                "type": "payment_success_rate",
                "value": round(rate, 2),
                "threshold": alert_percent,
                "severity": "critical",
            }
        )
    except StoreError as e:
        logger.error(f"Failed to record payment alert: {e}", exc_info=True)
    return rate


def add_payment_monitor(
    scheduler: AsyncIOScheduler,
    store: BookingStore,
    interval_minutes: int,
    window_hours: int,
    alert_percent: float,
) -> AsyncIOScheduler:
    scheduler.add_job(
        check_payment_success_rate,
        trigger=IntervalTrigger(minutes=interval_minutes),
        kwargs={
            "store": store,
            "window_hours": window_hours,
            "alert_percent": alert_percent,
        },
        id="payment_success_monitor",
        name="Monitor payment success rate",
        replace_existing=True,
    )
    return scheduler
