"""Calendar import routes."""

from __future__ import annotations

import logging

from aiohttp import web

from studysync.api.routes.common import BadRequest, error_response, read_json_object
from studysync.calendar.fetcher import validate_calendar_url
from studysync.calendar.models import EventSource, ImportResult
from studysync.domain.import_service import ImportService

logger = logging.getLogger(__name__)


def _result_response(result: ImportResult) -> web.Response:
    # Upstream failures (fetch, relay, provider) surface as 502
    return web.json_response(result.to_api_dict(), status=200 if result.success else 502)


def register_import_routes(app: web.Application, import_service: ImportService) -> None:
    """Register ICS and provider import routes.

    Args:
        app: aiohttp web application
        import_service: Service that fetches, parses and stores calendars
    """

    async def import_calendar(request: web.Request) -> web.Response:
        """Import from ``{"url": ...}`` or pasted ``{"content": ...}``."""
        try:
            data = await read_json_object(request)
        except BadRequest as e:
            return error_response(str(e))

        try:
            source = EventSource(data.get("source") or EventSource.IMPORTED.value)
        except ValueError:
            allowed = ", ".join(s.value for s in EventSource)
            return error_response(f"invalid source; expected one of: {allowed}")

        url = data.get("url")
        content = data.get("content")
        if isinstance(url, str) and url.strip():
            if not validate_calendar_url(url):
                return error_response("url must be an http(s) link to an .ics file")
            logger.info("Importing %s calendar from URL", source.value)
            result = await import_service.import_from_url(url, source)
        elif isinstance(content, str) and content.strip():
            logger.info("Importing %s calendar from pasted content", source.value)
            result = import_service.import_from_text(content, source)
        else:
            return error_response("provide a calendar url or content")

        return _result_response(result)

    async def import_google(request: web.Request) -> web.Response:
        try:
            data = await read_json_object(request)
        except BadRequest as e:
            return error_response(str(e))

        token = data.get("access_token")
        if not token or not isinstance(token, str):
            return error_response("missing or invalid access_token")

        result = await import_service.import_from_provider(token)
        return _result_response(result)

    app.router.add_post("/api/import", import_calendar)
    app.router.add_post("/api/import/google", import_google)

    logger.debug("Import routes registered")
