"""HTTP application: public booking API, Stripe webhook and admin endpoints."""

from typing import Optional

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from api import admin, public, webhooks
from api.keys import SCHEDULER, SERVICES
from api.middleware import error_middleware, security_headers_middleware
from container import Services
from utils.constants import MAX_REQUEST_BODY_SIZE
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="api.log")


async def _start_scheduler(app: web.Application) -> None:
    scheduler = app[SCHEDULER]
    scheduler.start()
    logger.info("Scheduler started")


async def _close_feeds(app: web.Application) -> None:
    # Ends open event streams so the server can stop waiting on them
    app[SERVICES].feed.close_all()


async def _cleanup(app: web.Application) -> None:
    services = app[SERVICES]
    if SCHEDULER in app:
        app[SCHEDULER].shutdown(wait=False)
    await services.events.drain()
    logger.info("Booking services shut down")


def create_app(services: Services, scheduler: Optional[AsyncIOScheduler] = None) -> web.Application:
    """
    Build the aiohttp application.

    When a scheduler is given it is started with the app and shut down on
    cleanup.
    """
    app = web.Application(
        middlewares=[security_headers_middleware, error_middleware],
        client_max_size=MAX_REQUEST_BODY_SIZE,
    )
    app[SERVICES] = services
    if scheduler is not None:
        app[SCHEDULER] = scheduler
        app.on_startup.append(_start_scheduler)
    app.on_shutdown.append(_close_feeds)
    app.on_cleanup.append(_cleanup)

    app.router.add_get("/health", public.health_handler)
    app.router.add_get("/api/services", public.list_services_handler)
    app.router.add_post("/api/bookings", public.create_booking_handler)
    app.router.add_post("/api/assistant", public.assistant_handler)

    app.router.add_post("/webhook/stripe", webhooks.stripe_webhook_handler)

    app.router.add_route("*", "/api/admin/confirm", admin.confirm_booking_handler)
    app.router.add_get("/api/admin/stats", admin.stats_handler)
    app.router.add_get("/api/admin/bookings", admin.list_bookings_handler)
    app.router.add_get("/api/admin/bookings/stream", admin.booking_stream_handler)
    app.router.add_post("/api/admin/bookings/{booking_id}/status", admin.update_status_handler)
    app.router.add_get("/api/admin/permissions", admin.permissions_handler)
    app.router.add_get("/api/admin/users", admin.list_admins_handler)
    app.router.add_post("/api/admin/roles", admin.assign_role_handler)
    app.router.add_delete("/api/admin/roles/{uid}", admin.remove_role_handler)
    app.router.add_post("/api/admin/role-requests", admin.request_role_handler)
    app.router.add_get("/api/admin/role-requests", admin.pending_role_requests_handler)
    app.router.add_post(
        "/api/admin/role-requests/{request_id}/decision", admin.decide_role_request_handler
    )
    app.router.add_post("/api/admin/emergency/payments", admin.emergency_payments_handler)
    app.router.add_get("/api/admin/emergency/status", admin.emergency_status_handler)
    app.router.add_post("/api/admin/emergency/backup", admin.emergency_backup_handler)

    return app


__all__ = ["create_app", "SERVICES", "SCHEDULER"]
