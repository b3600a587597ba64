"""Calendar assistant: executes structured calendar actions against the event store.

The language model that turns a chat message into an action is not part of
this package. The assistant accepts either an already-structured action or a
model reply containing one as JSON, runs it with conflict checking, and
reports an explicit outcome instead of raising for scheduling problems.
"""

from __future__ import annotations

import datetime
import json
import logging
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from studysync.calendar.models import (
    ALL_DAY,
    UNTITLED_EVENT,
    CalendarEvent,
    EventSource,
    normalize_clock,
)
from studysync.domain.conflicts import DEFAULT_DURATION_MINUTES, find_conflicts
from studysync.domain.event_store import EventStore
from studysync.domain.slot_finder import find_available_slots
from studysync.exceptions import AssistantActionError, EventValidationError

logger = logging.getLogger(__name__)

ADD_EVENT = "add_event"
DELETE_EVENTS = "delete_events"
MOVE_EVENT = "move_event"

# Checked in order; the first matching keyword group wins.
INTENT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (ADD_EVENT, ("add", "schedule", "book")),
    (DELETE_EVENTS, ("delete", "remove", "cancel")),
    (MOVE_EVENT, ("move", "reschedule", "change")),
)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class OutcomeStatus(str, Enum):
    ADDED = "added"
    CONFLICT = "conflict"
    NO_AVAILABILITY = "no_availability"
    MOVED = "moved"
    DELETED = "deleted"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"


class ConflictChoice(str, Enum):
    """What to do with an add_event that hit a conflict."""

    PROCEED = "proceed"
    RESCHEDULE = "reschedule"
    CANCEL = "cancel"


class AssistantAction(BaseModel):
    """Structured calendar action as produced by the assistant model."""

    action: str
    title: Optional[str] = None
    date: Optional[datetime.date] = None
    time: Optional[str] = None
    new_date: Optional[datetime.date] = None
    new_time: Optional[str] = None
    event_id: Optional[str] = None
    category: Optional[str] = None
    description: str = ""
    location: str = ""
    duration_minutes: int = Field(default=DEFAULT_DURATION_MINUTES, gt=0)

    @field_validator("time", "new_time")
    @classmethod
    def _validate_clock(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else normalize_clock(value)

    @field_validator("action")
    @classmethod
    def _normalize_action(cls, value: str) -> str:
        return value.strip().lower()


class AssistantOutcome(BaseModel):
    """Result of executing an AssistantAction."""

    status: OutcomeStatus
    message: str
    event: Optional[CalendarEvent] = None
    conflicts: list[CalendarEvent] = Field(default_factory=list)
    suggested_slots: list[str] = Field(default_factory=list)
    removed: int = 0
    intent: Optional[str] = None

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "event": self.event.to_api_dict() if self.event else None,
            "conflicts": [event.to_api_dict() for event in self.conflicts],
            "suggested_slots": list(self.suggested_slots),
            "removed": self.removed,
            "intent": self.intent,
        }


def detect_intent(text: str) -> Optional[str]:
    """Guess the calendar action a plain-text request asks for.

    Keywords are matched as whole words, so "reschedule" is a move and not an add.

    >>> detect_intent("add meeting tomorrow at 2pm")
    'add_event'
    >>> detect_intent("move my appointment to next week")
    'move_event'
    >>> detect_intent("what's the weather") is None
    True
    """
    words = set(re.findall(r"[a-z]+", text.lower()))
    for action, keywords in INTENT_KEYWORDS:
        if words.intersection(keywords):
            return action
    return None


def parse_action(reply: str) -> AssistantAction:
    """Extract and validate the JSON action in an assistant reply.

    The JSON may be bare or wrapped in a Markdown code fence.

    Raises:
        AssistantActionError: If no valid action object can be read
    """
    text = reply.strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise AssistantActionError("Assistant reply does not contain a JSON object")

    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise AssistantActionError(f"Assistant reply is not valid JSON: {e.msg}") from e

    try:
        return AssistantAction.model_validate(data)
    except ValidationError as e:
        raise AssistantActionError(f"Invalid assistant action: {e.error_count()} error(s)") from e


def _when(day: datetime.date, clock: str) -> str:
    return f"{day.isoformat()} (all day)" if clock == ALL_DAY else f"{day.isoformat()} at {clock}"


class CalendarAssistant:
    """Executes assistant actions against an EventStore."""

    def __init__(self, store: EventStore, default_duration_minutes: int = DEFAULT_DURATION_MINUTES):
        self.store = store
        self.default_duration_minutes = default_duration_minutes

    def handle_reply(self, reply: str) -> AssistantOutcome:
        """Run the action in a model reply, or report the detected intent if there is none."""
        try:
            action = parse_action(reply)
        except AssistantActionError as e:
            intent = detect_intent(reply)
            logger.debug("No structured action in reply (%s); intent=%s", e, intent)
            return AssistantOutcome(
                status=OutcomeStatus.UNSUPPORTED,
                message="I can help you add, move or delete calendar events.",
                intent=intent,
            )
        return self.execute(action)

    def execute(self, action: AssistantAction) -> AssistantOutcome:
        """Run one action.

        Raises:
            EventValidationError: If an add_event action has no date
        """
        logger.info("Executing assistant action %s", action.action)
        if action.action == ADD_EVENT:
            return self._add_event(action)
        if action.action == MOVE_EVENT:
            return self._move_event(action)
        if action.action == DELETE_EVENTS:
            return self._delete_events(action)
        return AssistantOutcome(
            status=OutcomeStatus.UNSUPPORTED,
            message=f"Unsupported action: {action.action}",
            intent=action.action,
        )

    def resolve(self, action: AssistantAction, choice: ConflictChoice | str) -> AssistantOutcome:
        """Settle an add_event that was reported as a conflict.

        Raises:
            AssistantActionError: If the choice is not proceed, reschedule or cancel
        """
        try:
            choice = ConflictChoice(choice)
        except ValueError as e:
            raise AssistantActionError(f"Unknown conflict choice: {choice!r}") from e

        if choice is ConflictChoice.CANCEL:
            return AssistantOutcome(status=OutcomeStatus.CANCELLED, message="Event not added.")

        day, clock = self._require_slot(action)
        if choice is ConflictChoice.PROCEED:
            return self._added(self._build_event(action, day, clock))

        slots = find_available_slots(day, self.store.all())
        if not slots:
            return AssistantOutcome(
                status=OutcomeStatus.NO_AVAILABILITY,
                message=f"No available slots on {day.isoformat()}.",
            )
        return self._added(self._build_event(action, day, slots[0]))

    def _duration(self, action: AssistantAction) -> int:
        if "duration_minutes" in action.model_fields_set:
            return action.duration_minutes
        return self.default_duration_minutes

    def _require_slot(self, action: AssistantAction) -> tuple[datetime.date, str]:
        if action.date is None:
            raise EventValidationError("add_event requires a date")
        return action.date, action.time or ALL_DAY

    def _build_event(
        self, action: AssistantAction, day: datetime.date, clock: str
    ) -> CalendarEvent:
        return CalendarEvent(
            title=action.title or UNTITLED_EVENT,
            date=day,
            time=clock,
            description=action.description,
            location=action.location,
            source=EventSource.IMPORTED,
        )

    def _added(self, event: CalendarEvent) -> AssistantOutcome:
        self.store.add(event)
        return AssistantOutcome(
            status=OutcomeStatus.ADDED,
            message=f"Added '{event.title}' on {_when(event.date, event.time)}.",
            event=event,
        )

    def _conflict(
        self, day: datetime.date, conflicts: list[CalendarEvent], verb: str
    ) -> AssistantOutcome:
        slots = find_available_slots(day, self.store.all())
        names = ", ".join(event.title for event in conflicts)
        if not slots:
            return AssistantOutcome(
                status=OutcomeStatus.NO_AVAILABILITY,
                message=f"Cannot {verb}: conflicts with {names} and no other slots are free.",
                conflicts=conflicts,
            )
        return AssistantOutcome(
            status=OutcomeStatus.CONFLICT,
            message=f"Cannot {verb}: conflicts with {names}. Available: {', '.join(slots)}.",
            conflicts=conflicts,
            suggested_slots=slots,
        )

    def _add_event(self, action: AssistantAction) -> AssistantOutcome:
        day, clock = self._require_slot(action)
        conflicts = find_conflicts(
            day, clock, self.store.all(), duration_minutes=self._duration(action)
        )
        if conflicts:
            return self._conflict(day, conflicts, "add event")
        return self._added(self._build_event(action, day, clock))

    def _find_target(self, action: AssistantAction) -> Optional[CalendarEvent]:
        if action.event_id:
            return self.store.get(action.event_id)
        if action.title:
            wanted = action.title.strip().lower()
            for event in self.store.all():
                if event.title.lower() == wanted:
                    return event
        return None

    def _move_event(self, action: AssistantAction) -> AssistantOutcome:
        target = self._find_target(action)
        if target is None:
            return AssistantOutcome(
                status=OutcomeStatus.NOT_FOUND,
                message="Could not find the event to move.",
            )

        day = action.new_date or action.date or target.date
        clock = action.new_time or action.time or target.time
        conflicts = find_conflicts(
            day,
            clock,
            self.store.all(),
            duration_minutes=self._duration(action),
            exclude_id=target.id,
        )
        if conflicts:
            return self._conflict(day, conflicts, f"move '{target.title}'")

        moved = self.store.update(target.id, date=day, time=clock)
        if moved is None:
            return AssistantOutcome(
                status=OutcomeStatus.NOT_FOUND,
                message="Could not find the event to move.",
            )
        return AssistantOutcome(
            status=OutcomeStatus.MOVED,
            message=f"Moved '{moved.title}' to {_when(day, clock)}.",
            event=moved,
        )

    def _delete_events(self, action: AssistantAction) -> AssistantOutcome:
        if action.event_id:
            ids = [action.event_id] if self.store.get(action.event_id) else []
        elif action.title:
            wanted = action.title.strip().lower()
            ids = [event.id for event in self.store.all() if event.title.lower() == wanted]
        elif action.date:
            ids = [event.id for event in self.store.events_on(action.date)]
        else:
            ids = []

        removed = self.store.remove_many(ids)
        if not removed:
            return AssistantOutcome(
                status=OutcomeStatus.NOT_FOUND, message="No matching events to delete."
            )
        noun = "event" if removed == 1 else "events"
        return AssistantOutcome(
            status=OutcomeStatus.DELETED,
            message=f"Deleted {removed} {noun}.",
            removed=removed,
        )
