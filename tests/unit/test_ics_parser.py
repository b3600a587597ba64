"""Unit tests for studysync.calendar.ics_parser."""

import base64
import datetime

import pytest

from studysync.calendar.fetcher import decode_calendar_payload
from studysync.calendar.ics_parser import ICSParser, parse_ics
from studysync.calendar.models import ALL_DAY, UNTITLED_EVENT, EventSource

pytestmark = [pytest.mark.unit, pytest.mark.fast]

FIXED_TODAY = datetime.date(2025, 1, 1)


def _parser(**kwargs):
    return ICSParser(today=lambda: FIXED_TODAY, **kwargs)


def _shape(events):
    return [(e.title, e.date, e.time, e.description, e.location, e.source) for e in events]


def test_parse_when_simple_event_then_fields_extracted(sample_ics_simple: str) -> None:
    """A single VEVENT yields one event with normalized date/time and verbatim text fields."""
    result = _parser().parse(sample_ics_simple)

    assert result.success is True
    assert result.event_count == 1
    event = result.events[0]
    assert event.title == "Physics Lecture"
    assert event.date == datetime.date(2025, 8, 5)
    assert event.time == "14:00"
    assert event.location == "Hall B"
    assert event.description == "Chapter 4 review"
    assert event.source is EventSource.IMPORTED


def test_parse_when_n_blocks_then_n_events_in_source_order(sample_ics_mixed: str) -> None:
    """Every VEVENT with SUMMARY or DTSTART is emitted, preserving document order."""
    events = _parser().parse(sample_ics_mixed).events

    assert [e.title for e in events] == ["Math Study Group", "Essay Due", "Office Hours"]
    assert events[0].time == "09:00"
    assert events[1].time == ALL_DAY
    assert events[1].date == datetime.date(2025, 8, 7)


def test_parse_when_property_has_parameters_then_prefix_matches(sample_ics_mixed: str) -> None:
    """DTSTART;TZID=... is matched by prefix and the value is read after the first colon."""
    office_hours = _parser().parse(sample_ics_mixed).events[2]

    assert office_hours.date == datetime.date(2025, 8, 6)
    assert office_hours.time == "10:30"
    assert office_hours.location == "Room 12"


def test_parse_when_block_has_neither_summary_nor_dtstart_then_dropped() -> None:
    """A block carrying only untracked properties produces no event."""
    ics = (
        "BEGIN:VEVENT\nSUMMARY:Kept\nDTSTART:20250805\nEND:VEVENT\n"
        "BEGIN:VEVENT\nLOCATION:Nowhere\nUID:abc\nEND:VEVENT\n"
        "BEGIN:VEVENT\nSUMMARY:Also kept\nEND:VEVENT\n"
    )
    result = _parser().parse(ics)

    assert [e.title for e in result.events] == ["Kept", "Also kept"]
    assert result.total_blocks == 3


def test_parse_when_summary_missing_then_untitled() -> None:
    events = _parser().parse("BEGIN:VEVENT\nDTSTART:20250805T080000\nEND:VEVENT").events

    assert events[0].title == UNTITLED_EVENT
    assert events[0].time == "08:00"


def test_parse_when_dtstart_missing_then_today_all_day() -> None:
    """Without DTSTART the event falls on the injected 'today' as an all-day event."""
    events = _parser().parse("BEGIN:VEVENT\nSUMMARY:Someday\nEND:VEVENT").events

    assert events[0].date == FIXED_TODAY
    assert events[0].time == ALL_DAY


def test_parse_when_dtstart_malformed_then_warning_and_fallback() -> None:
    """Out-of-range date digits never raise; the block falls back to today and warns."""
    result = _parser().parse("BEGIN:VEVENT\nSUMMARY:Bad\nDTSTART:20251345T990000\nEND:VEVENT")

    assert result.event_count == 1
    assert result.events[0].date == FIXED_TODAY
    assert result.events[0].time == ALL_DAY
    assert len(result.warnings) == 1
    assert "20251345T990000" in result.warnings[0]


def test_parse_when_property_repeated_then_last_write_wins() -> None:
    ics = "BEGIN:VEVENT\nSUMMARY:First\nSUMMARY:Second\nEND:VEVENT"

    assert _parser().parse(ics).events[0].title == "Second"


def test_parse_when_value_contains_colons_then_split_on_first_only() -> None:
    ics = "BEGIN:VEVENT\nSUMMARY:Meeting: planning 10:00\nLOCATION:https://meet.example/x\nEND:VEVENT"
    event = _parser().parse(ics).events[0]

    assert event.title == "Meeting: planning 10:00"
    assert event.location == "https://meet.example/x"


def test_parse_when_escapes_present_then_stored_verbatim() -> None:
    ics = "BEGIN:VEVENT\nSUMMARY:Lab\\, part 2\nDESCRIPTION:line1\\nline2\nEND:VEVENT"
    event = _parser().parse(ics).events[0]

    assert event.title == "Lab\\, part 2"
    assert event.description == "line1\\nline2"


def test_parse_when_value_has_unicode_separators_then_kept_in_value() -> None:
    ics = "BEGIN:VEVENT\r\nSUMMARY:Lab\u2028Section 2\r\nLOCATION:Room\x0cB\r\nEND:VEVENT\r\n"
    event = _parser().parse(ics).events[0]

    assert event.title == "Lab\u2028Section 2"
    assert event.location == "Room\x0cB"


def test_parse_when_block_unterminated_then_ignored() -> None:
    ics = "BEGIN:VEVENT\nSUMMARY:Done\nEND:VEVENT\nBEGIN:VEVENT\nSUMMARY:Dangling\n"

    assert [e.title for e in _parser().parse(ics).events] == ["Done"]


def test_parse_when_lines_outside_blocks_then_ignored() -> None:
    ics = "SUMMARY:Stray\nBEGIN:VEVENT\nSUMMARY:Inside\nEND:VEVENT\nDTSTART:20250101"

    assert [e.title for e in _parser().parse(ics).events] == ["Inside"]


def test_parse_when_lines_indented_then_trimmed() -> None:
    ics = "  BEGIN:VEVENT  \n  SUMMARY:Indented  \n  END:VEVENT  "

    assert [e.title for e in _parser().parse(ics).events] == ["Indented"]


def test_parse_when_empty_or_garbage_then_zero_events() -> None:
    assert _parser().parse("").events == []
    assert _parser().parse("not a calendar at all\n:::\n").events == []


def test_parse_when_source_given_then_every_event_tagged(sample_ics_canvas: str) -> None:
    events = _parser(source=EventSource.CANVAS).parse(sample_ics_canvas).events

    assert len(events) == 2
    assert all(e.source is EventSource.CANVAS for e in events)


def test_parse_when_same_text_twice_then_identical_except_ids(sample_ics_mixed: str) -> None:
    """Parsing is idempotent apart from freshly generated ids."""
    first = _parser().parse(sample_ics_mixed).events
    second = _parser().parse(sample_ics_mixed).events

    assert _shape(first) == _shape(second)
    assert {e.id for e in first}.isdisjoint({e.id for e in second})


def test_parse_when_base64_payload_then_same_as_plain(sample_ics_mixed: str) -> None:
    encoded = base64.b64encode(sample_ics_mixed.encode("utf-8")).decode("ascii")
    payload = f"data:text/calendar;charset=utf8;base64,{encoded}"

    plain = _parser().parse(sample_ics_mixed).events
    decoded = _parser().parse(decode_calendar_payload(payload)).events

    assert _shape(decoded) == _shape(plain)


def test_parse_ics_helper_returns_events(sample_ics_simple: str) -> None:
    events = parse_ics(sample_ics_simple, source=EventSource.CANVAS)

    assert len(events) == 1
    assert events[0].source is EventSource.CANVAS
