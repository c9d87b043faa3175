"""
Tests for the conflict detector and free-slot search.
"""

from datetime import UTC, datetime

import pytest

from kiteschool.scheduling import (
    BusyInterval,
    ConflictDetector,
    EventStatus,
    OperatingWindow,
    TimelineEntry,
    check_conflict,
    find_available_slots,
    find_next_available_slot,
)
from kiteschool.scheduling.models import Event
from kiteschool.scheduling.timeutil import InvalidTimeFormat


def at(hhmm: str) -> datetime:
    h, m = hhmm.split(":")
    return datetime(2024, 7, 10, int(h), int(m), tzinfo=UTC)


def lesson(event_id, start, duration, status=EventStatus.PLANNED, location="Los Lances"):
    return TimelineEntry(
        id=event_id,
        lesson_id=f"l_{event_id}",
        recorded_start=at(start),
        duration_minutes=duration,
        location=location,
        status=status,
    )


@pytest.fixture
def ana_day():
    """Ana on 2024-07-10: A 10:00-12:00, B 14:00-15:30."""
    return [lesson("A", "10:00", 120), lesson("B", "14:00", 90)]


class TestCheckConflict:
    def test_free_slot_between_lessons(self, ana_day):
        report = check_conflict("12:00", 60, ana_day, OperatingWindow("09:00", "21:00"))
        assert report.has_conflict is False
        assert report.conflicting_entries == []
        assert report.suggested_alternatives == []

    def test_overlap_reports_conflict_and_alternative(self, ana_day):
        report = check_conflict("13:30", 60, ana_day, OperatingWindow("09:00", "21:00"))
        assert report.has_conflict is True
        assert [e.id for e in report.conflicting_entries] == ["B"]
        first = report.suggested_alternatives[0]
        assert (first.start, first.end) == ("15:30", "16:30")

    def test_touching_intervals_do_not_conflict(self, ana_day):
        assert check_conflict("15:30", 60, ana_day).has_conflict is False
        assert check_conflict("09:00", 60, ana_day).has_conflict is False

    def test_containing_interval_conflicts_with_both(self, ana_day):
        report = check_conflict("09:00", 480, ana_day)
        assert [e.id for e in report.conflicting_entries] == ["A", "B"]

    def test_alternatives_start_after_latest_conflict(self, ana_day):
        report = check_conflict("11:00", 240, ana_day)
        assert report.first_alternative.start == "15:30"

    def test_alternatives_are_free_and_inside_window(self, ana_day):
        window = OperatingWindow("09:00", "21:00")
        report = ConflictDetector(window, max_alternatives=5).check("13:30", 60, ana_day)
        assert len(report.suggested_alternatives) == 5
        for slot in report.suggested_alternatives:
            assert check_conflict(slot.start, 60, ana_day).has_conflict is False
            assert slot.start >= "09:00" and slot.end <= "21:00"

    def test_default_three_alternatives_do_not_overlap_each_other(self, ana_day):
        report = check_conflict("13:30", 60, ana_day)
        starts = [s.start for s in report.suggested_alternatives]
        assert starts == ["15:30", "16:30", "17:30"]

    def test_no_room_left_gives_no_alternatives(self):
        day = [lesson("A", "10:00", 120), lesson("late", "19:00", 120)]
        report = check_conflict("19:30", 60, day, OperatingWindow("09:00", "21:00"))
        assert report.has_conflict is True
        assert report.suggested_alternatives == []

    def test_cancelled_entries_never_block(self):
        day = [lesson("X", "10:00", 120, status=EventStatus.CANCELLED)]
        assert check_conflict("10:30", 60, day).has_conflict is False

    def test_entries_without_location_never_block(self):
        day = [lesson("X", "10:00", 120, location=None)]
        assert check_conflict("10:30", 60, day).has_conflict is False

    def test_busy_interval_blocks(self, ana_day):
        lunch = BusyInterval(start="12:00", duration_minutes=60, label="lunch")
        report = check_conflict("12:30", 30, ana_day + [lunch])
        assert report.has_conflict is True
        assert report.to_dict()["conflicting_entries"][0]["label"] == "lunch"

    def test_persisted_events_block(self):
        event = Event(id="e1", lesson_id="l1", date=at("10:00"), duration=60, location="Palmones", status=EventStatus.TBC)
        assert check_conflict("10:30", 30, [event]).has_conflict is True

    def test_incomplete_event_is_ignored(self):
        event = Event(id="e1", lesson_id="l1", date=at("10:00"), duration=None, location="Palmones", status=EventStatus.PLANNED)
        assert check_conflict("10:30", 30, [event]).has_conflict is False

    def test_accepts_datetime_candidate(self, ana_day):
        assert check_conflict(at("14:15"), 30, ana_day).has_conflict is True

    def test_outside_window_flagged(self):
        report = check_conflict("20:30", 60, [], OperatingWindow("09:00", "21:00"))
        assert report.has_conflict is False
        assert report.within_window is False

    @pytest.mark.parametrize("duration", [0, -15])
    def test_rejects_non_positive_duration(self, duration):
        with pytest.raises(ValueError):
            check_conflict("10:00", duration, [])

    def test_rejects_malformed_start(self):
        with pytest.raises(InvalidTimeFormat):
            check_conflict("25:00", 60, [])

    def test_rejects_unknown_location(self):
        with pytest.raises(ValueError, match="Unknown location"):
            check_conflict("10:00", 60, [], location="Tarifa Pier")

    def test_known_location_accepted(self):
        assert check_conflict("10:00", 60, [], location="Palmones").has_conflict is False

    def test_to_dict(self, ana_day):
        d = check_conflict("13:30", 60, ana_day).to_dict()
        assert d["has_conflict"] is True
        assert d["candidate"] == {"start": "13:30", "end": "14:30", "duration_minutes": 60}
        assert d["conflicting_entries"][0]["id"] == "B"
        assert d["suggested_alternatives"][0]["start"] == "15:30"


class TestOperatingWindow:
    def test_rejects_inverted_window(self):
        with pytest.raises(ValueError):
            OperatingWindow("21:00", "09:00")

    def test_rejects_malformed_window(self):
        with pytest.raises(ValueError):
            OperatingWindow("9am", "21:00")

    def test_detector_rejects_bad_settings(self):
        with pytest.raises(ValueError):
            ConflictDetector(step_minutes=0)
        with pytest.raises(ValueError):
            ConflictDetector(max_alternatives=0)


class TestFreeSlots:
    def test_lists_free_intervals(self, ana_day):
        slots = find_available_slots(ana_day, OperatingWindow("09:00", "21:00"), minimum_duration=60)
        assert [(s.start, s.end) for s in slots] == [
            ("09:00", "10:00"),
            ("12:00", "14:00"),
            ("15:30", "21:00"),
        ]

    def test_minimum_duration_filters(self, ana_day):
        slots = find_available_slots(ana_day, OperatingWindow("09:00", "21:00"), minimum_duration=90)
        assert [s.start for s in slots] == ["12:00", "15:30"]

    def test_empty_day_is_one_slot(self):
        slots = find_available_slots([], OperatingWindow("09:00", "21:00"))
        assert [(s.start, s.end, s.duration_minutes) for s in slots] == [("09:00", "21:00", 720)]

    def test_next_slot_after_last_lesson(self, ana_day):
        slot = find_next_available_slot(ana_day, 120)
        assert (slot.start, slot.end) == ("15:30", "17:30")

    def test_next_slot_on_empty_day(self):
        slot = find_next_available_slot([], 60, default_start="10:00")
        assert (slot.start, slot.end) == ("10:00", "11:00")
