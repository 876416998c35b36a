"""Typed application keys and request helpers."""

import json
from typing import Any, Dict

from aiohttp import web
from aiohttp.web import Request
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from container import Services
from utils.exceptions import ValidationError

SERVICES = web.AppKey("services", Services)
SCHEDULER = web.AppKey("scheduler", AsyncIOScheduler)


async def read_json(request: Request) -> Dict[str, Any]:
    """Parse a JSON object body, raising ValidationError otherwise."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def json_dumps(data: Any) -> str:
    # Datetimes from the store are rendered as ISO strings
    return json.dumps(data, default=lambda value: value.isoformat() if hasattr(value, "isoformat") else str(value))
