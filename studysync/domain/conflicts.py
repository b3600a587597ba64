"""Time-window overlap detection between a candidate event and existing events."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable

from studysync.calendar.models import ALL_DAY, CalendarEvent, normalize_clock

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
# Existing events carry no end time; each is assumed to last this long.
EXISTING_EVENT_DURATION = datetime.timedelta(minutes=60)


def _window(
    day: datetime.date, clock: str, duration: datetime.timedelta
) -> tuple[datetime.datetime, datetime.datetime]:
    hour, minute = (int(part) for part in clock.split(":"))
    start = datetime.datetime.combine(day, datetime.time(hour, minute))
    return start, start + duration


def find_conflicts(
    day: datetime.date,
    time: str,
    events: Iterable[CalendarEvent],
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
    exclude_id: str | None = None,
) -> list[CalendarEvent]:
    """Return existing events whose window overlaps the candidate's.

    Two windows ``[s1, e1)`` and ``[s2, e2)`` overlap when ``s1 < e2`` and
    ``e1 > s2``, so back-to-back events do not conflict. All-day events are
    never compared: an all-day candidate has no conflicts and all-day
    existing events are skipped.

    Args:
        day: Candidate date
        time: Candidate ``HH:MM`` or ``"All Day"``
        events: Existing events, in store order
        duration_minutes: Candidate duration
        exclude_id: Event id to ignore (the event being moved)

    Returns:
        Conflicting events in the order they were given

    Raises:
        ValueError: If ``time`` is not a valid clock value or the duration is not positive
    """
    clock = normalize_clock(time)
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")
    if clock == ALL_DAY:
        return []

    cand_start, cand_end = _window(day, clock, datetime.timedelta(minutes=duration_minutes))

    conflicts = []
    for event in events:
        if event.date != day or event.is_all_day:
            continue
        if exclude_id is not None and event.id == exclude_id:
            continue
        start, end = _window(event.date, event.time, EXISTING_EVENT_DURATION)
        if cand_start < end and cand_end > start:
            conflicts.append(event)

    if conflicts:
        logger.debug(
            "Candidate %s %s (%d min) conflicts with %d event(s)",
            day,
            clock,
            duration_minutes,
            len(conflicts),
        )
    return conflicts
