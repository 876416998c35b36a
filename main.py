"""
Main entry point for the tour and rental booking server.

Serves the public booking API, the Stripe webhook and the admin endpoints,
and runs the event redelivery and payment monitor jobs.
"""

import sys

from aiohttp import web

from api import create_app
from config import load_settings
from container import build_services
from scheduler import add_payment_monitor, create_scheduler
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="server.log")


def main() -> None:
    settings = load_settings()

    # Validate configuration
    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    services = build_services(settings)
    scheduler = create_scheduler(
        services.lifecycle,
        services.events,
        interval_minutes=settings.redelivery_interval_minutes,
        max_age_hours=settings.redelivery_max_age_hours,
    )
    add_payment_monitor(
        scheduler,
        services.store,
        interval_minutes=settings.monitor_interval_minutes,
        window_hours=settings.monitor_window_hours,
        alert_percent=settings.payment_success_alert_percent,
    )
    app = create_app(services, scheduler=scheduler)

    if not services.payments.configured:
        logger.warning("Stripe is not configured; bookings will wait for manual payment")
    if not any(channel.configured for channel in services.dispatcher.channels):
        logger.warning("No notification channel configured; owners will not be alerted")

    logger.info(
        f"Booking server starting on {settings.host}:{settings.port} "
        f"(store={settings.store_backend}, environment={settings.environment})"
    )
    web.run_app(app, host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
