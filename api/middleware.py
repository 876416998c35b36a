"""HTTP middleware: security headers and error mapping."""

from aiohttp import web
from aiohttp.web import Request

from utils.exceptions import (
    AssistantUnavailableError,
    AuthError,
    NotFoundError,
    RateLimitExceededError,
    SignatureError,
    StoreError,
    ValidationError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="api.log")


def error_response(status: int, error: str, message: str, **extra) -> web.Response:
    return web.json_response(
        {"status": "error", "error": error, "message": message, **extra},
        status=status,
    )


@web.middleware
async def security_headers_middleware(request: Request, handler):
    """
    Add security headers to all responses.

    - Prevents MIME type sniffing
    - Prevents clickjacking
    - Enforces HTTPS in production
    """
    response = await handler(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = (
        "max-age=31536000; includeSubDomains"
    )

    if request.path.startswith("/webhook/"):
        response.headers["Allow"] = "POST"

    return response


@web.middleware
async def error_middleware(request: Request, handler):
    """Map the error taxonomy to HTTP responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValidationError as e:
        return error_response(400, "validation_failed", str(e), errors=e.errors)
    except SignatureError as e:
        logger.warning(f"Signature rejected on {request.path}: {e}")
        return error_response(400, "verification_failed", "Invalid webhook signature")
    except AuthError as e:
        return error_response(403, "forbidden", str(e))
    except RateLimitExceededError as e:
        logger.warning(f"Rate limit hit on {request.path}: {e}")
        return error_response(429, "rate_limited", str(e))
    except NotFoundError as e:
        return error_response(404, "not_found", str(e))
    except StoreError as e:
        logger.error(f"Store error on {request.method} {request.path}: {e}", exc_info=True)
        return error_response(503, "store_unavailable", "Booking store unavailable, please retry")
    except AssistantUnavailableError as e:
        return error_response(503, "assistant_unavailable", str(e))
    except Exception as e:
        logger.error(f"Unexpected error on {request.method} {request.path}: {e}", exc_info=True)
        return error_response(500, "internal_error", "Internal server error")
