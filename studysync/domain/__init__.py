"""Event storage and scheduling logic."""

from studysync.domain.conflicts import find_conflicts
from studysync.domain.event_store import EventStore
from studysync.domain.slot_finder import WORKING_HOURS, find_available_slots

__all__ = [
    "WORKING_HOURS",
    "EventStore",
    "find_available_slots",
    "find_conflicts",
]
