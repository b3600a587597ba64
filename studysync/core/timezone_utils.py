"""Clock and timezone helpers for studysync."""

from __future__ import annotations

import datetime
import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"


def _test_time_override() -> datetime.datetime | None:
    """Return the frozen time from STUDYSYNC_TEST_TIME, if set and valid."""
    raw = os.environ.get("STUDYSYNC_TEST_TIME")
    if not raw:
        return None
    try:
        value = raw.strip()
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring invalid STUDYSYNC_TEST_TIME=%r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def now_utc() -> datetime.datetime:
    """Return the current time as an aware UTC datetime.

    Honors STUDYSYNC_TEST_TIME so tests can freeze "now".
    """
    override = _test_time_override()
    if override is not None:
        return override.astimezone(datetime.timezone.utc)
    return datetime.datetime.now(datetime.timezone.utc)


def get_zone(tz_name: str | None) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to UTC."""
    try:
        return ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to %s", tz_name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_local(tz_name: str | None = None) -> datetime.datetime:
    """Return the current time in the given timezone."""
    return now_utc().astimezone(get_zone(tz_name))


def today_local(tz_name: str | None = None) -> datetime.date:
    """Return today's calendar date in the given timezone."""
    return now_local(tz_name).date()
