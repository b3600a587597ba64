"""Date/time normalization for ICS DTSTART tokens.

Two token shapes are recognized:

- date-only ``YYYYMMDD`` -> the date, time ``"All Day"``
- date-time ``YYYYMMDDTHHMMSS`` with an optional trailing ``Z``

The ``Z`` suffix is ignored: the digits are taken as local wall-clock values,
no timezone conversion happens. Tokens whose digits do not form a real date or
clock time are reported as malformed by returning ``None``; nothing here raises.
"""

import datetime
import logging
from typing import Optional

from studysync.calendar.models import ALL_DAY

logger = logging.getLogger(__name__)


def _date_digits(token: str) -> str:
    return token.strip().replace("T", "").replace("Z", "")[:8]


def parse_ics_date(token: str) -> Optional[datetime.date]:
    """Return the local calendar date encoded in an ICS token.

    Args:
        token: DTSTART value such as ``20250805`` or ``20250805T140000Z``

    Returns:
        The date, or None when the token is malformed

    Examples:
        >>> parse_ics_date("20250805T140000Z")
        datetime.date(2025, 8, 5)
        >>> parse_ics_date("20251305") is None
        True
    """
    digits = _date_digits(token)
    if len(digits) != 8 or not digits.isdigit():
        logger.debug("Malformed ICS date token: %r", token)
        return None
    try:
        return datetime.date(int(digits[0:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError:
        logger.debug("Out-of-range ICS date token: %r", token)
        return None


def parse_ics_time(token: str) -> Optional[str]:
    """Return ``HH:MM`` for a date-time token or ``"All Day"`` for a date-only one.

    Args:
        token: DTSTART value

    Returns:
        Zero-padded 24-hour clock string, the all-day sentinel, or None when the
        time portion is malformed
    """
    text = token.strip()
    if "T" not in text:
        return ALL_DAY

    time_part = text.split("T", 1)[1].replace("Z", "")
    hour_digits, minute_digits = time_part[0:2], time_part[2:4]
    if len(minute_digits) != 2 or not (hour_digits + minute_digits).isdigit():
        logger.debug("Malformed ICS time token: %r", token)
        return None

    hour, minute = int(hour_digits), int(minute_digits)
    if hour > 23 or minute > 59:
        logger.debug("Out-of-range ICS time token: %r", token)
        return None
    return f"{hour:02d}:{minute:02d}"


def normalize_ics_datetime(token: str) -> Optional[tuple[datetime.date, str]]:
    """Return ``(date, time)`` for a DTSTART token, or None if either part is malformed."""
    date_value = parse_ics_date(token)
    time_value = parse_ics_time(token)
    if date_value is None or time_value is None:
        return None
    return date_value, time_value
