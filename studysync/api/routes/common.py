"""Request parsing helpers shared by the route modules."""

from __future__ import annotations

import datetime
from typing import Any

from aiohttp import web


class BadRequest(Exception):
    """Raised by helpers when a request cannot be served; carries the 400 message."""


def error_response(message: str, status: int = 400, **extra: Any) -> web.Response:
    return web.json_response({"error": message, **extra}, status=status)


async def read_json_object(request: web.Request) -> dict[str, Any]:
    """Return the request body as a JSON object.

    Raises:
        BadRequest: If the body is not JSON or not an object
    """
    try:
        data = await request.json()
    except ValueError as e:
        raise BadRequest("invalid json") from e
    if not isinstance(data, dict):
        raise BadRequest("expected a JSON object")
    return data


def parse_date(value: Any, field: str = "date") -> datetime.date:
    """Parse a ``YYYY-MM-DD`` value.

    Raises:
        BadRequest: If the value is missing or not an ISO date
    """
    if not value or not isinstance(value, str):
        raise BadRequest(f"missing or invalid {field}")
    try:
        return datetime.date.fromisoformat(value)
    except ValueError as e:
        raise BadRequest(f"invalid {field}: {value!r} (expected YYYY-MM-DD)") from e


def parse_duration(value: Any, default: int) -> int:
    """Parse an optional positive duration in minutes."""
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise BadRequest("duration_minutes must be a positive integer")
    return value
