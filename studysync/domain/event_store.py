"""Per-user event collection with optional JSON persistence and atomic writes."""

from __future__ import annotations

import contextlib
import datetime
import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from studysync.calendar.models import CalendarEvent
from studysync.exceptions import EventValidationError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "date", "time", "description", "location")


class EventStore:
    """Ordered in-memory collection of CalendarEvents for one user.

    The on-disk format is ``{"user_id": ..., "events": [...]}``. A file that
    belongs to another user, or that cannot be read, loads as empty. Writers
    are serialized by a process-local lock only; across processes the last
    writer wins.
    """

    def __init__(self, user_id: str, path: str | Path | None = None) -> None:
        """Create an EventStore.

        Args:
            user_id: Owner of the collection
            path: Optional JSON file; without one the store is memory-only
        """
        self.user_id = user_id
        self._path = Path(path) if path else None
        self._lock = threading.Lock()
        self._events: list[CalendarEvent] = []

        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self.load()

    @property
    def path(self) -> Path | None:
        return self._path

    def load(self) -> None:
        """Load events from disk, replacing the in-memory collection."""
        if self._path is None:
            return

        with self._lock:
            if not self._path.exists():
                logger.debug("Event store file not found; starting empty: %s", self._path)
                self._events = []
                return

            try:
                with self._path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("Failed to read event store %s: %s", self._path, exc)
                self._events = []
                return

            if not isinstance(data, dict) or data.get("user_id") != self.user_id:
                logger.warning(
                    "Event store %s does not belong to user %s; starting empty",
                    self._path,
                    self.user_id,
                )
                self._events = []
                return

            events: list[CalendarEvent] = []
            for raw in data.get("events") or []:
                try:
                    events.append(CalendarEvent.model_validate(raw))
                except ValidationError:
                    logger.debug("Skipping malformed stored event: %r", raw)
                    continue

            self._events = events
            logger.debug("Loaded event store %s (%d events)", self._path, len(events))

    def _persist_locked(self) -> None:
        """Write the collection atomically. Called with lock held."""
        if self._path is None:
            return

        data = {
            "user_id": self.user_id,
            "events": [event.model_dump(mode="json") for event in self._events],
        }

        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(data, tf, ensure_ascii=False)
                tf.flush()
                os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            logger.warning("Failed to persist event store to %s: %s", self._path, exc)
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise

    def _commit_locked(self, events: list[CalendarEvent]) -> None:
        """Swap in a new event list and persist it, keeping the old list if the write fails."""
        previous = self._events
        self._events = events
        try:
            self._persist_locked()
        except OSError:
            self._events = previous
            raise

    def add(self, event: CalendarEvent) -> CalendarEvent:
        """Append one event."""
        with self._lock:
            self._commit_locked([*self._events, event])
        logger.debug("Added event %s (%s on %s %s)", event.id, event.title, event.date, event.time)
        return event

    def add_many(self, events: Iterable[CalendarEvent]) -> int:
        """Append events in order and return how many were added."""
        new_events = list(events)
        with self._lock:
            self._commit_locked([*self._events, *new_events])
        logger.info("Added %d events for user %s", len(new_events), self.user_id)
        return len(new_events)

    def get(self, event_id: str) -> CalendarEvent | None:
        with self._lock:
            for event in self._events:
                if event.id == event_id:
                    return event
        return None

    def remove(self, event_id: str) -> bool:
        """Remove an event by id. Returns False when no such event exists."""
        with self._lock:
            remaining = [event for event in self._events if event.id != event_id]
            if len(remaining) == len(self._events):
                return False
            self._commit_locked(remaining)
        logger.debug("Removed event %s", event_id)
        return True

    def remove_many(self, event_ids: Iterable[str]) -> int:
        """Remove several events by id and return how many were removed."""
        ids = set(event_ids)
        with self._lock:
            remaining = [event for event in self._events if event.id not in ids]
            removed = len(self._events) - len(remaining)
            if removed:
                self._commit_locked(remaining)
        return removed

    def clear(self) -> int:
        """Remove all events and return how many were removed."""
        with self._lock:
            count = len(self._events)
            self._commit_locked([])
        logger.info("Cleared %d events for user %s", count, self.user_id)
        return count

    def update(self, event_id: str, **changes: Any) -> CalendarEvent | None:
        """Replace an event with an edited copy.

        Only title, date, time, description and location may change.

        Returns:
            The updated event, or None when no such event exists

        Raises:
            EventValidationError: If a change names another field or fails validation
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise EventValidationError(f"cannot update fields: {', '.join(sorted(unknown))}")

        with self._lock:
            for index, event in enumerate(self._events):
                if event.id != event_id:
                    continue
                try:
                    updated = CalendarEvent.model_validate({**event.model_dump(), **changes})
                except ValidationError as exc:
                    raise EventValidationError(str(exc)) from exc
                events = list(self._events)
                events[index] = updated
                self._commit_locked(events)
                logger.debug("Updated event %s: %s", event_id, sorted(changes))
                return updated
        return None

    def all(self) -> list[CalendarEvent]:
        with self._lock:
            return list(self._events)

    def events_on(self, day: datetime.date) -> list[CalendarEvent]:
        """Events on a calendar date, in store order."""
        with self._lock:
            return [event for event in self._events if event.date == day]

    def upcoming(self, from_date: datetime.date, limit: int = 10) -> list[CalendarEvent]:
        """Events on or after ``from_date`` sorted by date then time (all-day first)."""
        with self._lock:
            future = [event for event in self._events if event.date >= from_date]
        future.sort(key=lambda e: (e.date, "" if e.is_all_day else e.time))
        return future[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
