"""Calendar import pipeline: fetch, decode, parse, tag and store."""

from __future__ import annotations

import logging
from typing import Any

from studysync.calendar.fetcher import ICSFetcher, decode_calendar_payload
from studysync.calendar.ics_parser import ICSParser
from studysync.calendar.models import CalendarEvent, EventSource, ImportResult
from studysync.calendar.provider import GoogleCalendarClient
from studysync.core.config_manager import get_config_value
from studysync.domain.event_store import EventStore
from studysync.exceptions import ICSFetchError, ProviderError

logger = logging.getLogger(__name__)

URL_HINT = "Please make sure the URL is a direct link to an .ics file."

_SOURCE_LABELS = {
    EventSource.CANVAS: "Canvas calendar",
    EventSource.GOOGLE: "Google Calendar",
    EventSource.IMPORTED: "calendar",
}


def _label(source: EventSource) -> str:
    return _SOURCE_LABELS.get(source, "calendar")


def _success_message(count: int, source: EventSource) -> str:
    noun = "event" if count == 1 else "events"
    origin = "Canvas" if source is EventSource.CANVAS else _label(source)
    return f"Successfully imported {count} {noun} from {origin}!"


class ImportService:
    """Runs calendar imports and appends the results to an EventStore.

    Every entry point returns an ImportResult; fetch and provider failures are
    reported through ``success=False`` and a message meant for the user.
    """

    def __init__(
        self,
        store: EventStore,
        settings: Any,
        fetcher: ICSFetcher | None = None,
        provider: GoogleCalendarClient | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.fetcher = fetcher or ICSFetcher(settings)
        self.provider = provider or GoogleCalendarClient(settings)
        self.timezone: str | None = get_config_value(settings, "default_timezone")

    async def import_from_url(
        self, url: str, source: EventSource = EventSource.IMPORTED
    ) -> ImportResult:
        """Fetch an ICS calendar by URL and store its events."""
        if not url or not url.strip():
            return ImportResult(
                success=False,
                source=source,
                message=f"Please enter a {_label(source)} URL",
            )

        try:
            response = await self.fetcher.fetch(url)
        except ICSFetchError as e:
            logger.warning("Calendar import from %s failed: %s", url, e)
            return self._failure(str(e), source)

        if not response.success or response.content is None:
            return self._failure(response.error_message or "Unknown error occurred", source)

        return self._store_parsed(response.content, source)

    def import_from_text(
        self, text: str, source: EventSource = EventSource.IMPORTED
    ) -> ImportResult:
        """Parse pasted ICS text (plain or a base64 data URL) and store its events."""
        return self._store_parsed(decode_calendar_payload(text or ""), source)

    async def import_from_provider(self, access_token: str) -> ImportResult:
        """Read upcoming events from the calendar provider and store them."""
        source = EventSource.GOOGLE
        if not access_token:
            return ImportResult(success=False, source=source, message="Missing access token")

        try:
            events = await self.provider.list_events(access_token)
        except ProviderError as e:
            logger.warning("Provider import failed: %s", e)
            return ImportResult(
                success=False,
                source=source,
                message=f"Error connecting to Google Calendar: {e}",
            )

        return self._store(events, source)

    def _store_parsed(self, content: str, source: EventSource) -> ImportResult:
        result = ICSParser(source=source, timezone=self.timezone).parse(content)
        for warning in result.warnings:
            logger.warning("ICS import: %s", warning)
        return self._store(result.events, source)

    def _store(self, events: list[CalendarEvent], source: EventSource) -> ImportResult:
        count = self.store.add_many(events)
        logger.info("Imported %d %s events", count, source.value)
        return ImportResult(
            success=True,
            source=source,
            count=count,
            message=_success_message(count, source),
            events=events,
        )

    @staticmethod
    def _failure(reason: str, source: EventSource) -> ImportResult:
        return ImportResult(
            success=False,
            source=source,
            message=f"Error importing {_label(source)}: {reason}\n\n{URL_HINT}",
        )
