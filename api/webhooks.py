"""
Stripe webhook endpoint.

- Signature verification before any state change
- Request size limits
- Duplicate deliveries are no-ops (the booking status is the idempotency key)
"""

from typing import Any, Dict

from aiohttp import web
from aiohttp.web import Request, Response

from api.keys import SERVICES
from api.middleware import error_response
from utils.constants import MAX_REQUEST_BODY_SIZE
from utils.exceptions import SignatureError, ValidationError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="webhook.log")


def _validate_webhook_payload(payload: Dict[str, Any]) -> None:
    """
    Validate webhook payload structure.

    Raises:
        ValidationError: If payload structure is invalid
    """
    if not isinstance(payload, dict):
        raise ValidationError("Webhook payload must be a JSON object")

    event_type = payload.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise ValidationError("Webhook 'type' must be a non-empty string")

    if not isinstance(payload.get("data", {}), dict):
        raise ValidationError("Webhook payload 'data' field must be an object")


def _too_large() -> Response:
    return error_response(
        413,
        "request_too_large",
        f"Request body exceeds maximum size of {MAX_REQUEST_BODY_SIZE} bytes",
    )


async def stripe_webhook_handler(request: Request) -> Response:
    """
    Handle a Stripe webhook delivery.

    503 when Stripe is not configured, 400 on a bad signature or payload,
    200 once the event has been applied or ignored.
    """
    orchestrator = request.app[SERVICES].payments
    if not orchestrator.configured:
        logger.warning("Stripe webhook received but Stripe is not configured")
        return error_response(503, "not_configured", "Stripe is not configured")

    content_length = request.headers.get("Content-Length")
    if content_length:
        try:
            if int(content_length) > MAX_REQUEST_BODY_SIZE:
                logger.warning(f"Request body too large: {content_length} bytes")
                return _too_large()
        except ValueError:
            pass  # Invalid Content-Length, the body check below still applies

    raw_body = await request.read()
    if len(raw_body) > MAX_REQUEST_BODY_SIZE:
        logger.warning(f"Request body too large: {len(raw_body)} bytes")
        return _too_large()

    if not raw_body:
        logger.warning("Received empty webhook payload")
        return error_response(400, "empty_payload", "Empty payload")

    try:
        event = orchestrator.provider.construct_event(
            raw_body, request.headers.get("Stripe-Signature")
        )
    except SignatureError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return error_response(400, "verification_failed", "Invalid webhook signature")

    _validate_webhook_payload(event)
    event_id = event.get("id", "unknown")
    event_type = event["type"]
    logger.info(f"Received Stripe webhook: event_id={event_id}, type={event_type}")

    result = await orchestrator.handle_webhook_event(event)

    return web.json_response(
        {
            "status": "success",
            "event_id": event_id,
            "event_type": event_type,
            "result": result,
        }
    )
