"""Free on-the-hour slots within the working day."""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from studysync.calendar.models import CalendarEvent

# Lunch hour (12) is never offered.
WORKING_HOURS: tuple[int, ...] = (9, 10, 11, 13, 14, 15, 16, 17)


def find_available_slots(day: datetime.date, events: Iterable[CalendarEvent]) -> list[str]:
    """Return working hours on ``day`` not occupied by a timed event.

    An hour is occupied when some event on the date starts within it (minutes
    are truncated, so 10:30 occupies 10:00). All-day events occupy no hour.

    >>> find_available_slots(datetime.date(2025, 8, 5), [])[:3]
    ['09:00', '10:00', '11:00']
    """
    busy = {
        event.start_hour
        for event in events
        if event.date == day and event.start_hour is not None
    }
    return [f"{hour:02d}:00" for hour in WORKING_HOURS if hour not in busy]
