"""Data models for calendar import and scheduling."""

import datetime
import re
import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

ALL_DAY = "All Day"
UNTITLED_EVENT = "Untitled Event"

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def new_event_id() -> str:
    """Generate an opaque event id."""
    return uuid.uuid4().hex[:12]


def normalize_clock(value: str) -> str:
    """Normalize a clock string to ``HH:MM`` or the all-day sentinel.

    Raises:
        ValueError: If the value is neither ``All Day`` nor a valid clock time
    """
    text = value.strip()
    if text.lower() == ALL_DAY.lower():
        return ALL_DAY
    match = _CLOCK_RE.match(text)
    if not match:
        raise ValueError(f"time must be HH:MM or {ALL_DAY!r}, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"time out of range: {value!r}")
    return f"{hour:02d}:{minute:02d}"


class EventSource(str, Enum):
    """Where an event came from."""

    GOOGLE = "google"
    CANVAS = "canvas"
    IMPORTED = "imported"


class CalendarEvent(BaseModel):
    """A single calendar entry.

    ``date`` and ``time`` are always present together; ``time`` is either a
    zero-padded 24-hour ``HH:MM`` or ``"All Day"``. Instances are immutable,
    edits go through ``EventStore.update``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=new_event_id, description="Event ID")
    title: str = Field(default=UNTITLED_EVENT, description="Display title")
    date: datetime.date = Field(..., description="Local calendar date")
    time: str = Field(default=ALL_DAY, description="HH:MM or 'All Day'")
    description: str = Field(default="", description="Free-text description")
    location: str = Field(default="", description="Free-text location")
    source: EventSource = Field(
        default=EventSource.IMPORTED,
        validation_alias=AliasChoices("source", "type"),
        description="Provenance of the event",
    )

    @field_validator("time")
    @classmethod
    def _validate_time(cls, value: str) -> str:
        return normalize_clock(value)

    @field_validator("description", "location", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_all_day(self) -> bool:
        """True when the event has no clock time."""
        return self.time == ALL_DAY

    @property
    def start(self) -> Optional[datetime.datetime]:
        """Naive local start datetime, or None for all-day events."""
        if self.is_all_day:
            return None
        hour, minute = (int(part) for part in self.time.split(":"))
        return datetime.datetime.combine(self.date, datetime.time(hour, minute))

    @property
    def start_hour(self) -> Optional[int]:
        """Start hour (minutes truncated), or None for all-day events."""
        if self.is_all_day:
            return None
        return int(self.time[:2])

    def to_api_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses (``type`` mirrors ``source``)."""
        data = self.model_dump(mode="json")
        data["type"] = data["source"]
        return data


class ICSParseResult(BaseModel):
    """Result of an ICS parse."""

    success: bool = True
    events: list[CalendarEvent] = Field(default_factory=list)
    event_count: int = 0
    total_blocks: int = Field(default=0, description="VEVENT blocks seen, including dropped ones")
    warnings: list[str] = Field(default_factory=list)


class ICSResponse(BaseModel):
    """Response from an ICS fetch."""

    success: bool
    content: Optional[str] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    via_relay: bool = False

    @property
    def content_length(self) -> Optional[int]:
        """Size of the decoded payload in bytes."""
        if self.content is None:
            return None
        return len(self.content.encode("utf-8"))


class ImportResult(BaseModel):
    """Outcome of a calendar import, ready to show to the user."""

    success: bool
    source: EventSource
    count: int = 0
    message: str = ""
    events: list[CalendarEvent] = Field(default_factory=list)

    def to_api_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "success": self.success,
            "source": self.source.value,
            "count": self.count,
            "message": self.message,
            "events": [event.to_api_dict() for event in self.events],
        }
