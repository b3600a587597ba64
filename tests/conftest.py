from collections.abc import AsyncIterator, Generator
from types import SimpleNamespace
from typing import Any

import pytest

from studysync.core.http_client import close_all_clients


@pytest.fixture
def simple_settings() -> SimpleNamespace:
    """Lightweight settings object used across tests.

    Fields:
      - relay_url: empty so fetches go straight to the calendar URL
      - request_timeout: HTTP read timeout in seconds
      - default_timezone: zone for "today" and provider times
      - google_api_key: none
    """
    return SimpleNamespace(
        relay_url="",
        request_timeout=5,
        default_timezone="UTC",
        google_api_key=None,
    )


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear STUDYSYNC_* variables that tests may set to freeze time or tweak config."""
    for key in ("STUDYSYNC_TEST_TIME", "STUDYSYNC_DEBUG", "STUDYSYNC_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    yield
    monkeypatch.delenv("STUDYSYNC_TEST_TIME", raising=False)


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test."""
    yield
    await close_all_clients()


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_simple() -> str:
    """One timed event on 2025-08-05 at 14:00 with location and description."""
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "PRODID:-//StudySync Test//EN\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:test-event-001@studysync.test\r\n"
        "DTSTART:20250805T140000Z\r\n"
        "DTEND:20250805T150000Z\r\n"
        "SUMMARY:Physics Lecture\r\n"
        "LOCATION:Hall B\r\n"
        "DESCRIPTION:Chapter 4 review\r\n"
        "END:VEVENT\r\n"
        "END:VCALENDAR\r\n"
    )


@pytest.fixture
def sample_ics_mixed() -> str:
    """Three events: a timed one, an all-day one and one with a TZID parameter."""
    return """BEGIN:VCALENDAR
VERSION:2.0
BEGIN:VEVENT
SUMMARY:Math Study Group
DTSTART:20250806T090000
END:VEVENT
BEGIN:VEVENT
SUMMARY:Essay Due
DTSTART;VALUE=DATE:20250807
END:VEVENT
BEGIN:VEVENT
SUMMARY:Office Hours
DTSTART;TZID=America/New_York:20250806T103000
LOCATION:Room 12
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def sample_ics_canvas() -> str:
    """Canvas-style export with two assignment deadlines."""
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Instructure//Canvas//EN
BEGIN:VEVENT
SUMMARY:Homework 3 [CS 101]
DTSTART:20250810T235900Z
DESCRIPTION:Submit via Canvas
END:VEVENT
BEGIN:VEVENT
SUMMARY:Quiz 2 [CS 101]
DTSTART;VALUE=DATE:20250812
END:VEVENT
END:VCALENDAR
"""
