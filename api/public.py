"""Public endpoints: health, service catalog, booking form and travel assistant."""

from aiohttp import web
from aiohttp.web import Request, Response
from pydantic import ValidationError as PydanticValidationError

from api.keys import SERVICES, json_dumps, read_json
from assistant.travel import ChatMessage
from bookings.pricing import rental_days, rental_total
from models.service import find_service, get_all_services
from utils.datetime_utils import utc_now
from utils.exceptions import ValidationError


async def health_handler(request: Request) -> Response:
    """Liveness plus which integrations are configured."""
    services = request.app[SERVICES]
    settings = services.settings

    return web.json_response(
        {
            "status": "healthy",
            "timestamp": utc_now().isoformat(),
            "environment": settings.environment,
            "integrations": {
                "store": settings.store_backend,
                "payments": services.payments.configured,
                "email": settings.has_email_channel(),
                "telegram": settings.has_telegram_channel(),
                "chat_webhook": settings.has_chat_webhook_channel(),
                "assistant": services.assistant.configured,
            },
            "feeds": {"open_subscriptions": services.feed.open_subscriptions},
            "events": {"pending_tasks": services.events.pending_tasks},
        }
    )


async def list_services_handler(request: Request) -> Response:
    return web.json_response(
        {"services": [service.model_dump() for service in get_all_services()]}
    )


async def create_booking_handler(request: Request) -> Response:
    """
    Submit the booking form.

    Responds 201 with the new id; rentals also get the day count and total
    so the form can show the quote.
    """
    services = request.app[SERVICES]
    body = await read_json(request)
    form = services.lifecycle.parse_form(body)

    booking_id = await services.lifecycle.create_booking(form)

    payload = {"status": "success", "id": booking_id}
    service = find_service(form.service_name or "")
    if service and service.rental and (form.start_date or form.end_date):
        payload["rental_days"] = rental_days(form.start_date, form.end_date)
        payload["rental_total"] = rental_total(form.start_date, form.end_date, service.price)

    return web.json_response(payload, status=201)


async def assistant_handler(request: Request) -> Response:
    services = request.app[SERVICES]
    body = await read_json(request)

    raw_history = body.get("history") or []
    if not isinstance(raw_history, list):
        raise ValidationError("history must be a list")
    try:
        history = [ChatMessage.model_validate(item) for item in raw_history if isinstance(item, dict)]
    except PydanticValidationError as e:
        raise ValidationError("history entries need role and text") from e

    reply = await services.assistant.reply(body.get("message") or "", history)
    return web.json_response({"reply": reply}, dumps=json_dumps)
