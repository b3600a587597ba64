"""Event listing, editing, conflict and slot routes."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from studysync import __version__
from studysync.api.routes.common import (
    BadRequest,
    error_response,
    parse_date,
    parse_duration,
    read_json_object,
)
from studysync.calendar.models import CalendarEvent
from studysync.core.config_manager import StudySyncSettings
from studysync.domain.conflicts import find_conflicts
from studysync.domain.event_store import UPDATABLE_FIELDS, EventStore
from studysync.domain.slot_finder import find_available_slots
from studysync.exceptions import EventValidationError

logger = logging.getLogger(__name__)

DEFAULT_UPCOMING_LIMIT = 10


def _serialize(events: list[CalendarEvent]) -> list[dict[str, Any]]:
    return [event.to_api_dict() for event in events]


def register_event_routes(
    app: web.Application,
    settings: StudySyncSettings,
    store: EventStore,
    today_provider: Callable[[], datetime.date],
) -> None:
    """Register event, conflict and slot routes.

    Args:
        app: aiohttp web application
        settings: Validated settings
        store: Event store for the configured user
        today_provider: Callable returning the current local date
    """

    async def health_check(_request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "ok",
                "version": __version__,
                "user_id": store.user_id,
                "event_count": len(store),
                "theme": settings.theme,
            }
        )

    async def list_events(request: web.Request) -> web.Response:
        date_param = request.query.get("date")
        if date_param is None:
            events = store.all()
        else:
            try:
                events = store.events_on(parse_date(date_param))
            except BadRequest as e:
                return error_response(str(e))
        return web.json_response({"events": _serialize(events), "count": len(events)})

    async def upcoming_events(request: web.Request) -> web.Response:
        try:
            limit = int(request.query.get("limit", DEFAULT_UPCOMING_LIMIT))
        except ValueError:
            return error_response("limit must be an integer")
        if limit <= 0:
            return error_response("limit must be positive")
        events = store.upcoming(today_provider(), limit)
        return web.json_response({"events": _serialize(events), "count": len(events)})

    async def create_event(request: web.Request) -> web.Response:
        try:
            data = await read_json_object(request)
            duration = parse_duration(
                data.pop("duration_minutes", None), settings.default_duration_minutes
            )
        except BadRequest as e:
            return error_response(str(e))

        force = bool(data.pop("force", False))
        data.pop("id", None)
        if "date" not in data:
            return error_response("missing or invalid date")

        try:
            event = CalendarEvent.model_validate(data)
        except ValidationError as e:
            details = [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            return error_response("invalid event", details=details)

        conflicts = find_conflicts(event.date, event.time, store.all(), duration_minutes=duration)
        if conflicts and not force:
            logger.info("Rejected new event %r: %d conflict(s)", event.title, len(conflicts))
            return web.json_response(
                {
                    "error": "conflict",
                    "conflicts": _serialize(conflicts),
                    "suggested_slots": find_available_slots(event.date, store.all()),
                },
                status=409,
            )

        store.add(event)
        return web.json_response({"event": event.to_api_dict()}, status=201)

    async def update_event(request: web.Request) -> web.Response:
        event_id = request.match_info["event_id"]
        try:
            data = await read_json_object(request)
        except BadRequest as e:
            return error_response(str(e))

        changes = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
        if not changes:
            allowed = ", ".join(UPDATABLE_FIELDS)
            return error_response(f"nothing to update; allowed fields: {allowed}")

        try:
            updated = store.update(event_id, **changes)
        except EventValidationError as e:
            return error_response(str(e))
        if updated is None:
            return error_response("event not found", status=404)
        return web.json_response({"event": updated.to_api_dict()})

    async def delete_event(request: web.Request) -> web.Response:
        event_id = request.match_info["event_id"]
        if not store.remove(event_id):
            return error_response("event not found", status=404)
        return web.json_response({"deleted": True, "id": event_id})

    async def clear_events(_request: web.Request) -> web.Response:
        count = store.clear()
        return web.json_response({"cleared": True, "count": count})

    async def check_conflicts(request: web.Request) -> web.Response:
        try:
            data = await read_json_object(request)
            day = parse_date(data.get("date"))
            duration = parse_duration(
                data.get("duration_minutes"), settings.default_duration_minutes
            )
            conflicts = find_conflicts(
                day,
                str(data.get("time", "All Day")),
                store.all(),
                duration_minutes=duration,
                exclude_id=data.get("exclude_id"),
            )
        except (BadRequest, ValueError) as e:
            return error_response(str(e))

        body: dict[str, Any] = {
            "has_conflict": bool(conflicts),
            "conflicts": _serialize(conflicts),
            "suggested_slots": [],
        }
        if conflicts:
            body["suggested_slots"] = find_available_slots(day, store.all())
        return web.json_response(body)

    async def available_slots(request: web.Request) -> web.Response:
        try:
            day = parse_date(request.query.get("date"))
        except BadRequest as e:
            return error_response(str(e))
        slots = find_available_slots(day, store.all())
        return web.json_response(
            {"date": day.isoformat(), "slots": slots, "available": bool(slots)}
        )

    app.router.add_get("/api/health", health_check)
    app.router.add_get("/api/events", list_events)
    app.router.add_get("/api/events/upcoming", upcoming_events)
    app.router.add_post("/api/events", create_event)
    app.router.add_delete("/api/events", clear_events)
    app.router.add_patch("/api/events/{event_id}", update_event)
    app.router.add_delete("/api/events/{event_id}", delete_event)
    app.router.add_post("/api/conflicts", check_conflicts)
    app.router.add_get("/api/slots", available_slots)

    logger.debug("Event routes registered")
