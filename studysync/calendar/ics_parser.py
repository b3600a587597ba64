"""Line-scanning iCalendar parser.

Only ``VEVENT`` blocks are read and only four properties are kept: SUMMARY,
DTSTART, DESCRIPTION and LOCATION. Property names are matched by prefix so
parameterized forms such as ``DTSTART;TZID=Europe/Paris`` are accepted. Values
are stored verbatim; ICS backslash escapes are not undone.
"""

import datetime
import logging
import re
from collections.abc import Callable, Iterable
from typing import Optional

from studysync.calendar.datetime_utils import normalize_ics_datetime
from studysync.calendar.models import (
    ALL_DAY,
    UNTITLED_EVENT,
    CalendarEvent,
    EventSource,
    ICSParseResult,
)
from studysync.core.timezone_utils import today_local

logger = logging.getLogger(__name__)

BEGIN_EVENT = "BEGIN:VEVENT"
END_EVENT = "END:VEVENT"
LINE_BREAK = re.compile(r"\r?\n")

# Upper-cased property prefix -> accumulator key
TRACKED_PROPERTIES: tuple[tuple[str, str], ...] = (
    ("SUMMARY", "summary"),
    ("DTSTART", "dtstart"),
    ("DESCRIPTION", "description"),
    ("LOCATION", "location"),
)


def _match_property(name: str) -> Optional[str]:
    upper = name.upper()
    for prefix, key in TRACKED_PROPERTIES:
        if upper.startswith(prefix):
            return key
    return None


class ICSParser:
    """Single-pass VEVENT scanner producing CalendarEvents in document order."""

    def __init__(
        self,
        source: EventSource = EventSource.IMPORTED,
        today: Optional[Callable[[], datetime.date]] = None,
        timezone: Optional[str] = None,
    ) -> None:
        """Initialize parser.

        Args:
            source: Provenance tag given to every emitted event
            today: Callable returning the fallback date for blocks without DTSTART
            timezone: Timezone used for the default ``today`` callable
        """
        self.source = source
        self._today = today or (lambda: today_local(timezone))

    def parse(self, content: str) -> ICSParseResult:
        """Parse raw iCalendar text.

        Malformed input never raises; the worst case is an empty result.

        Args:
            content: ICS text with CRLF or LF line endings

        Returns:
            Parse result holding the events and any warnings
        """
        if not content:
            return ICSParseResult(success=True)
        return self.parse_lines(LINE_BREAK.split(content))

    def parse_lines(self, lines: Iterable[str]) -> ICSParseResult:
        """Parse an iterable of ICS lines."""
        events: list[CalendarEvent] = []
        warnings: list[str] = []
        total_blocks = 0

        in_event = False
        entry: dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()

            if line == BEGIN_EVENT:
                in_event = True
                entry = {}
                continue

            if line == END_EVENT and in_event:
                total_blocks += 1
                in_event = False
                if "summary" in entry or "dtstart" in entry:
                    events.append(self._build_event(entry, warnings))
                else:
                    logger.debug("Dropping VEVENT block without SUMMARY or DTSTART")
                continue

            if in_event and ":" in line:
                name, value = line.split(":", 1)
                key = _match_property(name)
                if key is not None:
                    entry[key] = value

        if in_event:
            logger.debug("Ignoring unterminated VEVENT block at end of input")

        logger.debug(
            "Parsed %d events from %d VEVENT blocks (%d warnings)",
            len(events),
            total_blocks,
            len(warnings),
        )
        return ICSParseResult(
            success=True,
            events=events,
            event_count=len(events),
            total_blocks=total_blocks,
            warnings=warnings,
        )

    def _build_event(self, entry: dict[str, str], warnings: list[str]) -> CalendarEvent:
        title = entry.get("summary") or UNTITLED_EVENT
        date_value = self._today()
        time_value = ALL_DAY

        dtstart = entry.get("dtstart")
        if dtstart:
            normalized = normalize_ics_datetime(dtstart)
            if normalized is None:
                warnings.append(f"Malformed DTSTART {dtstart!r} for {title!r}; using today")
            else:
                date_value, time_value = normalized

        return CalendarEvent(
            title=title,
            date=date_value,
            time=time_value,
            description=entry.get("description", ""),
            location=entry.get("location", ""),
            source=self.source,
        )


def parse_ics(
    content: str,
    source: EventSource = EventSource.IMPORTED,
    timezone: Optional[str] = None,
) -> list[CalendarEvent]:
    """Parse ICS text and return just the events."""
    return ICSParser(source=source, timezone=timezone).parse(content).events
