"""Unit tests for conflict detection and free-slot lookup."""

import datetime

import pytest

from studysync.calendar.models import ALL_DAY, CalendarEvent
from studysync.domain.conflicts import find_conflicts
from studysync.domain.slot_finder import WORKING_HOURS, find_available_slots

pytestmark = [pytest.mark.unit, pytest.mark.fast]

DAY = datetime.date(2025, 8, 5)


def _event(title: str, time: str, day: datetime.date = DAY) -> CalendarEvent:
    return CalendarEvent(title=title, date=day, time=time)


class TestFindConflicts:
    def test_find_conflicts_when_same_start_then_conflict(self) -> None:
        existing = [_event("Meeting", "14:00"), _event("Lunch", "12:00")]

        conflicts = find_conflicts(DAY, "14:00", existing)

        assert [e.title for e in conflicts] == ["Meeting"]

    def test_find_conflicts_when_later_free_time_then_none(self) -> None:
        existing = [_event("Meeting", "14:00"), _event("Lunch", "12:00")]

        assert find_conflicts(DAY, "16:00", existing) == []

    def test_find_conflicts_when_back_to_back_then_no_conflict(self) -> None:
        """Half-open windows: an event ending at 15:00 does not clash with one starting at 15:00."""
        existing = [_event("Meeting", "14:00")]

        assert find_conflicts(DAY, "15:00", existing) == []
        assert find_conflicts(DAY, "13:00", existing) == []

    def test_find_conflicts_when_partial_overlap_then_conflict(self) -> None:
        existing = [_event("Meeting", "14:00")]

        assert len(find_conflicts(DAY, "14:30", existing)) == 1
        assert len(find_conflicts(DAY, "13:30", existing)) == 1

    def test_find_conflicts_when_long_candidate_then_spans_several(self) -> None:
        existing = [_event("A", "09:00"), _event("B", "10:00"), _event("C", "12:00")]

        conflicts = find_conflicts(DAY, "09:30", existing, duration_minutes=120)

        assert [e.title for e in conflicts] == ["A", "B"]

    def test_find_conflicts_when_other_day_then_ignored(self) -> None:
        existing = [_event("Tomorrow", "14:00", DAY + datetime.timedelta(days=1))]

        assert find_conflicts(DAY, "14:00", existing) == []

    def test_find_conflicts_when_all_day_existing_then_ignored(self) -> None:
        existing = [_event("Holiday", ALL_DAY), _event("Class", "14:00")]

        assert [e.title for e in find_conflicts(DAY, "14:00", existing)] == ["Class"]

    def test_find_conflicts_when_all_day_candidate_then_empty(self) -> None:
        existing = [_event("Class", "14:00"), _event("Holiday", ALL_DAY)]

        assert find_conflicts(DAY, ALL_DAY, existing) == []

    def test_find_conflicts_when_exclude_id_then_skipped(self) -> None:
        moving = _event("Moving", "14:00")
        existing = [moving, _event("Other", "14:00")]

        conflicts = find_conflicts(DAY, "14:00", existing, exclude_id=moving.id)

        assert [e.title for e in conflicts] == ["Other"]

    def test_find_conflicts_preserves_input_order(self) -> None:
        existing = [_event("Second", "14:30"), _event("First", "14:00")]

        titles = [e.title for e in find_conflicts(DAY, "14:00", existing, duration_minutes=90)]

        assert titles == ["Second", "First"]

    def test_find_conflicts_when_invalid_time_then_value_error(self) -> None:
        with pytest.raises(ValueError):
            find_conflicts(DAY, "25:00", [])

    def test_find_conflicts_when_nonpositive_duration_then_value_error(self) -> None:
        with pytest.raises(ValueError):
            find_conflicts(DAY, "10:00", [], duration_minutes=0)


class TestFindAvailableSlots:
    def test_find_available_slots_when_morning_busy_then_afternoon_only(self) -> None:
        events = [_event("A", "09:00"), _event("B", "10:00"), _event("C", "11:00")]

        assert find_available_slots(DAY, events) == ["13:00", "14:00", "15:00", "16:00", "17:00"]

    def test_find_available_slots_when_empty_day_then_all_working_hours(self) -> None:
        slots = find_available_slots(DAY, [])

        assert slots == [f"{h:02d}:00" for h in WORKING_HOURS]
        assert "12:00" not in slots

    def test_find_available_slots_when_minutes_set_then_hour_truncated(self) -> None:
        assert "10:00" not in find_available_slots(DAY, [_event("Late start", "10:45")])

    def test_find_available_slots_when_all_day_event_then_no_hour_taken(self) -> None:
        assert find_available_slots(DAY, [_event("Holiday", ALL_DAY)]) == find_available_slots(
            DAY, []
        )

    def test_find_available_slots_when_fully_booked_then_empty(self) -> None:
        events = [_event(f"Busy {h}", f"{h:02d}:00") for h in WORKING_HOURS]

        assert find_available_slots(DAY, events) == []

    def test_find_available_slots_ignores_other_dates(self) -> None:
        other = _event("Elsewhere", "09:00", DAY + datetime.timedelta(days=1))

        assert find_available_slots(DAY, [other])[0] == "09:00"
