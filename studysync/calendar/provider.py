"""Calendar provider (Google Calendar API) client and event conversion.

Provider events arrive already structured, so the ICS normalizer is bypassed;
only the provider's start date-time string is converted to a local ``HH:MM``.
"""

import datetime
import logging
from typing import Any, Optional

import httpx
from dateutil import parser as dateutil_parser

from studysync.calendar.models import ALL_DAY, CalendarEvent, EventSource
from studysync.core.config_manager import get_config_value
from studysync.core.http_client import build_timeout, get_shared_client, request_headers
from studysync.core.timezone_utils import get_zone, now_utc
from studysync.exceptions import ProviderAuthError, ProviderError

logger = logging.getLogger(__name__)

GOOGLE_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
NO_TITLE = "No Title"
MAX_RESULTS = 50


def provider_item_to_event(item: dict[str, Any], tz_name: Optional[str] = None) -> CalendarEvent:
    """Convert one provider event item into a CalendarEvent.

    Args:
        item: Event resource with ``id``, ``summary``, ``start`` and optional
            ``description`` / ``location``
        tz_name: Timezone the display time is expressed in

    Returns:
        CalendarEvent tagged ``google``

    Raises:
        ValueError: If the item has no usable start
    """
    start = item.get("start") or {}
    date_time = start.get("dateTime")
    date_only = start.get("date")

    if date_time:
        parsed = dateutil_parser.isoparse(date_time)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(get_zone(tz_name))
        date_value = parsed.date()
        time_value = parsed.strftime("%H:%M")
    elif date_only:
        date_value = datetime.date.fromisoformat(date_only)
        time_value = ALL_DAY
    else:
        raise ValueError(f"provider event {item.get('id')!r} has no start")

    fields: dict[str, Any] = {
        "title": item.get("summary") or NO_TITLE,
        "date": date_value,
        "time": time_value,
        "description": item.get("description") or "",
        "location": item.get("location") or "",
        "source": EventSource.GOOGLE,
    }
    if item.get("id"):
        fields["id"] = str(item["id"])
    return CalendarEvent(**fields)


def provider_items_to_events(
    items: list[dict[str, Any]], tz_name: Optional[str] = None
) -> list[CalendarEvent]:
    """Convert provider items, skipping ones without a usable start."""
    events = []
    for item in items:
        try:
            events.append(provider_item_to_event(item, tz_name))
        except ValueError as e:
            logger.warning("Skipping provider event: %s", e)
    return events


class GoogleCalendarClient:
    """Reads upcoming events from the user's primary Google calendar."""

    def __init__(self, settings: Any, client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self._client = client
        self.api_key: Optional[str] = get_config_value(settings, "google_api_key")
        self.timezone: Optional[str] = get_config_value(settings, "default_timezone")
        self.timeout = int(get_config_value(settings, "request_timeout", 30))

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client("provider", timeout=build_timeout(self.timeout))

    async def list_events(self, access_token: str) -> list[CalendarEvent]:
        """Fetch upcoming events with an OAuth access token.

        Raises:
            ProviderAuthError: The token was rejected (401/403)
            ProviderError: Any other failure
        """
        params: dict[str, str] = {
            "timeMin": now_utc().isoformat().replace("+00:00", "Z"),
            "maxResults": str(MAX_RESULTS),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if self.api_key:
            params["key"] = self.api_key

        client = await self._get_client()
        try:
            response = await client.get(
                GOOGLE_EVENTS_URL,
                params=params,
                headers={**request_headers(), "Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("Calendar API request failed: %s", e)
            raise ProviderError(f"Calendar API request failed: {e}") from e

        if response.status_code == 401:
            raise ProviderAuthError(
                "Authentication failed. Please try signing in again.", response.status_code
            )
        if response.status_code == 403:
            raise ProviderAuthError(
                "Access forbidden. Make sure the Calendar API is enabled and you have "
                "the correct permissions.",
                response.status_code,
            )
        if not response.is_success:
            raise ProviderError(
                f"Calendar API request failed: {response.status_code} {response.reason_phrase}",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Calendar API returned invalid JSON") from e

        items = (data.get("items") or []) if isinstance(data, dict) else []
        events = provider_items_to_events(items, self.timezone)
        logger.info("Fetched %d provider events", len(events))
        return events
