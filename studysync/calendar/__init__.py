"""ICS parsing, date normalization, fetching and provider conversion."""

from studysync.calendar.datetime_utils import parse_ics_date, parse_ics_time
from studysync.calendar.ics_parser import ICSParser, parse_ics
from studysync.calendar.models import (
    ALL_DAY,
    CalendarEvent,
    EventSource,
    ICSParseResult,
    ICSResponse,
    ImportResult,
)

__all__ = [
    "ALL_DAY",
    "CalendarEvent",
    "EventSource",
    "ICSParseResult",
    "ICSParser",
    "ICSResponse",
    "ImportResult",
    "parse_ics",
    "parse_ics_date",
    "parse_ics_time",
]
