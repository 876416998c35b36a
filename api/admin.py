"""
Admin endpoints.

Every handler re-verifies the bearer token through the authorization gate;
nothing the dashboard caches is trusted.
"""

import asyncio
import json
from datetime import timedelta
from typing import Any, Dict, List

from aiohttp import web
from aiohttp.web import Request, Response, StreamResponse

from api.keys import SERVICES, json_dumps, read_json
from api.middleware import error_response
from auth.gate import bearer_token
from bookings.stats import booking_stats
from models.admin import Permission
from models.booking import Booking, BookingStatus
from utils.constants import STATS_MONTH_DAYS
from utils.datetime_utils import utc_now
from utils.exceptions import ValidationError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="api.log")

SSE_HEARTBEAT_SECONDS = 25


def _token(request: Request):
    return bearer_token(request.headers.get("Authorization"))


def _serialize(bookings: List[Booking]) -> List[Dict[str, Any]]:
    return [booking.model_dump(mode="json", exclude_none=True) for booking in bookings]


def _parse_status(value: Any) -> BookingStatus:
    try:
        return BookingStatus.parse(value)
    except ValueError as e:
        raise ValidationError(f"Unknown booking status: {value}") from e


# ========== Bookings ==========


async def confirm_booking_handler(request: Request) -> Response:
    """
    Confirm a booking on behalf of an admin.

    405 for anything but POST, 400 without bookingId/adminId, 403 without
    the confirm permission, 404 for an unknown booking.
    """
    if request.method != "POST":
        return web.json_response(
            {"status": "error", "error": "method_not_allowed", "message": "Method not allowed"},
            status=405,
            headers={"Allow": "POST"},
        )

    body = await read_json(request)
    booking_id = body.get("bookingId") or body.get("booking_id")
    admin_id = body.get("adminId") or body.get("admin_id")
    if not booking_id or not admin_id:
        return error_response(400, "validation_failed", "bookingId and adminId are required")

    services = request.app[SERVICES]
    claims = await services.gate.require_permission(_token(request), Permission.CONFIRM_BOOKINGS)
    if claims.uid != admin_id:
        logger.warning(f"adminId {admin_id} does not match caller {claims.uid}")
        return error_response(403, "forbidden", "Insufficient permissions")

    await services.lifecycle.update_status(booking_id, BookingStatus.CONFIRMED)
    await services.store.add_audit_log(
        {"action": "booking_confirmed", "booking_id": booking_id, "performed_by": claims.uid}
    )
    logger.info(f"Booking {booking_id} confirmed by admin {claims.uid}")

    return web.json_response({"success": True, "message": "Booking confirmed successfully"})


async def list_bookings_handler(request: Request) -> Response:
    services = request.app[SERVICES]
    await services.gate.require_permission(_token(request), Permission.VIEW_BOOKINGS)

    status = request.query.get("status")
    bookings = await services.lifecycle.get_bookings(status or None)
    return web.json_response({"bookings": _serialize(bookings)})


async def booking_stream_handler(request: Request) -> StreamResponse:
    """Server-sent events: one `bookings` event per change to the list."""
    services = request.app[SERVICES]
    await services.gate.require_permission(_token(request), Permission.VIEW_BOOKINGS)

    status = request.query.get("status")
    if status:
        subscription = services.lifecycle.list_bookings_by_status(status)
    else:
        subscription = services.lifecycle.list_bookings()

    response = web.StreamResponse(
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )
    await response.prepare(request)

    async with subscription:
        iterator = subscription.__aiter__()
        while True:
            try:
                snapshot = await asyncio.wait_for(
                    iterator.__anext__(), timeout=SSE_HEARTBEAT_SECONDS
                )
            except asyncio.TimeoutError:
                try:
                    await response.write(b": keep-alive\n\n")
                except ConnectionResetError:
                    logger.info("Booking stream client disconnected")
                    break
                continue
            except StopAsyncIteration:
                break

            data = json.dumps({"bookings": _serialize(snapshot)})
            try:
                await response.write(f"event: bookings\ndata: {data}\n\n".encode("utf-8"))
            except ConnectionResetError:
                logger.info("Booking stream client disconnected")
                break

    return response


async def update_status_handler(request: Request) -> Response:
    services = request.app[SERVICES]
    booking_id = request.match_info["booking_id"]
    body = await read_json(request)
    status = _parse_status(body.get("status"))

    # Confirming is a separate permission from general edits
    permission = (
        Permission.CONFIRM_BOOKINGS if status == BookingStatus.CONFIRMED else Permission.EDIT_BOOKINGS
    )
    claims = await services.gate.require_permission(_token(request), permission)

    booking = await services.lifecycle.update_status(booking_id, status)
    await services.store.add_audit_log(
        {
            "action": "booking_status_changed",
            "booking_id": booking_id,
            "status": status.value,
            "performed_by": claims.uid,
        }
    )
    return web.json_response({"booking": booking.model_dump(mode="json", exclude_none=True)})


async def stats_handler(request: Request) -> Response:
    services = request.app[SERVICES]
    await services.gate.require_permission(_token(request), Permission.VIEW_ANALYTICS)

    now = utc_now()
    bookings = await services.store.query_bookings(
        created_since=now - timedelta(days=STATS_MONTH_DAYS)
    )
    return web.json_response(booking_stats(bookings, now))


# ========== Roles ==========


async def permissions_handler(request: Request) -> Response:
    claims = await request.app[SERVICES].roles.get_permissions(_token(request))
    return web.json_response(claims.model_dump(mode="json"))


async def list_admins_handler(request: Request) -> Response:
    users = await request.app[SERVICES].roles.list_admin_users(_token(request))
    return web.json_response({"users": [user.model_dump(mode="json") for user in users]})


async def assign_role_handler(request: Request) -> Response:
    body = await read_json(request)
    result = await request.app[SERVICES].roles.assign_role(
        _token(request), body.get("targetUid") or "", body.get("role") or ""
    )
    return web.json_response(result)


async def remove_role_handler(request: Request) -> Response:
    result = await request.app[SERVICES].roles.remove_role(
        _token(request), request.match_info["uid"]
    )
    return web.json_response(result)


async def request_role_handler(request: Request) -> Response:
    body = await read_json(request)
    result = await request.app[SERVICES].roles.request_role_assignment(
        _token(request),
        body.get("targetUid") or "",
        body.get("role") or "",
        (body.get("businessJustification") or "").strip(),
        manager_approval=bool(body.get("managerApproval", False)),
    )
    return web.json_response(result, status=201)


async def pending_role_requests_handler(request: Request) -> Response:
    requests = await request.app[SERVICES].roles.get_pending_role_requests(_token(request))
    return web.json_response(
        {"requests": [r.model_dump(mode="json", exclude_none=True) for r in requests]}
    )


async def decide_role_request_handler(request: Request) -> Response:
    """Approve or reject a role request ({"action": "approve"|"reject", "reason": ...})."""
    body = await read_json(request)
    result = await request.app[SERVICES].roles.approve_role_assignment(
        _token(request),
        request.match_info["request_id"],
        body.get("action") or "",
        (body.get("reason") or "").strip(),
    )
    return web.json_response(result)


# ========== Emergency ==========


async def emergency_payments_handler(request: Request) -> Response:
    """Pause or resume automatic payment links ({"action": "disable"|"enable"})."""
    services = request.app[SERVICES]
    body = await read_json(request)
    action = body.get("action")
    reason = (body.get("reason") or "").strip()

    if action not in ("disable", "enable"):
        raise ValidationError("action must be 'disable' or 'enable'")
    if action == "disable" and not reason:
        raise ValidationError("A reason is required to disable payments")

    claims = await services.gate.require_emergency_access(_token(request))
    if action == "disable":
        status = await services.payments_switch.disable(claims.uid, reason)
    else:
        status = await services.payments_switch.enable(claims.uid, reason)
    return web.json_response({"success": True, "payments": status}, dumps=json_dumps)


async def emergency_status_handler(request: Request) -> Response:
    services = request.app[SERVICES]
    await services.gate.require_admin(_token(request))
    status = await services.payments_switch.status()
    return web.json_response({"payments": status}, dumps=json_dumps)


async def emergency_backup_handler(request: Request) -> Response:
    services = request.app[SERVICES]
    body = await read_json(request)
    incident_id = (body.get("incidentId") or "").strip()
    severity = (body.get("severity") or "").strip()
    justification = (body.get("justification") or "").strip()

    if not incident_id or not severity or not justification:
        raise ValidationError("Missing required fields: incidentId, severity, justification")

    claims = await services.gate.require_emergency_access(_token(request))
    record = await services.payments_switch.create_backup(
        claims.uid, incident_id, severity, justification
    )
    return web.json_response(
        {
            "success": True,
            "message": "Emergency database backup initiated",
            "backupId": record["backup_id"],
            "incidentId": incident_id,
        }
    )
