"""
Conflict Detector - checks a proposed lesson against a teacher's day.

Intervals are half-open [start, end) in minutes since midnight: a lesson
ending at 12:00 and one starting at 12:00 do not conflict.

What blocks time:
- Timeline entries, persisted events and synthetic busy intervals
- Cancelled items never block
- Items missing a start, a duration or (for lessons) a location are not
  concrete yet and are ignored

Preconditions (ValueError otherwise):
- candidate duration is positive
- candidate location, when given, is one of the window's locations

A conflict is a normal outcome, reported through ConflictReport. An empty
suggested_alternatives on a conflicting report means no slot is left before
the end of the operating window.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from .models import BusyInterval, Event, EventStatus, OperatingWindow, Slot, TimelineEntry
from .timeutil import minutes_of_day, minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_STEP_MINUTES = 15
DEFAULT_MAX_ALTERNATIVES = 3

Blocker = TimelineEntry | Event | BusyInterval


@dataclass
class ConflictReport:
    candidate: Slot
    has_conflict: bool
    conflicting_entries: list[Blocker] = field(default_factory=list)
    suggested_alternatives: list[Slot] = field(default_factory=list)
    within_window: bool = True

    @property
    def first_alternative(self) -> Slot | None:
        return self.suggested_alternatives[0] if self.suggested_alternatives else None

    def to_dict(self) -> dict:
        return {
            "candidate": self.candidate.to_dict(),
            "has_conflict": self.has_conflict,
            "within_window": self.within_window,
            "conflicting_entries": [_describe(item) for item in self.conflicting_entries],
            "suggested_alternatives": [s.to_dict() for s in self.suggested_alternatives],
        }


def _describe(item: Blocker) -> dict:
    start, end = blocking_interval(item)
    if isinstance(item, BusyInterval):
        return {"id": None, "label": item.label, "start": minutes_to_time(start), "end": minutes_to_time(end)}
    return {
        "id": item.id,
        "lesson_id": item.lesson_id,
        "start": minutes_to_time(start),
        "end": minutes_to_time(end),
    }


def blocking_interval(item: Blocker) -> tuple[int, int] | None:
    """[start, end) minutes an item blocks, or None if it blocks nothing."""
    if item.status == EventStatus.CANCELLED:
        return None

    if isinstance(item, TimelineEntry):
        if not item.is_concrete:
            return None
        return item.start_minutes, item.end_minutes

    if isinstance(item, Event):
        if not item.is_concrete:
            return None
        start = minutes_of_day(item.date)
        return start, start + item.duration

    if not item.start or not item.duration_minutes or item.duration_minutes <= 0:
        return None
    start = time_to_minutes(item.start)
    return start, start + item.duration_minutes


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end


def _to_minutes(candidate_start: str | datetime) -> int:
    if isinstance(candidate_start, datetime):
        return minutes_of_day(candidate_start)
    return time_to_minutes(candidate_start)


def _slot(start: int, duration: int) -> Slot:
    return Slot(start=minutes_to_time(start), end=minutes_to_time(start + duration), duration_minutes=duration)


class ConflictDetector:
    """
    Conflict checks against one operating window.

    Usage:
        detector = ConflictDetector(OperatingWindow("09:00", "21:00"))
        report = detector.check("13:30", 60, queue.get_entries())
        if report.has_conflict:
            slot = report.first_alternative
    """

    def __init__(
        self,
        window: OperatingWindow | None = None,
        step_minutes: int = DEFAULT_SEARCH_STEP_MINUTES,
        max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
    ):
        if step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {step_minutes}")
        if max_alternatives < 1:
            raise ValueError(f"max_alternatives must be at least 1, got {max_alternatives}")
        self.window = window or OperatingWindow()
        self.step_minutes = step_minutes
        self.max_alternatives = max_alternatives

    def check(
        self,
        candidate_start: str | datetime,
        candidate_duration: int,
        existing: Iterable[Blocker],
        location: str | None = None,
    ) -> ConflictReport:
        if candidate_duration <= 0:
            raise ValueError(f"Candidate duration must be positive, got {candidate_duration}")
        if location is not None and not self.window.is_valid_location(location):
            raise ValueError(f"Unknown location: {location!r}")

        start = _to_minutes(candidate_start)
        end = start + candidate_duration

        busy: list[tuple[int, int]] = []
        conflicting: list[Blocker] = []
        for item in existing:
            interval = blocking_interval(item)
            if interval is None:
                continue
            busy.append(interval)
            if overlaps(start, end, *interval):
                conflicting.append(item)

        report = ConflictReport(
            candidate=_slot(start, candidate_duration),
            has_conflict=bool(conflicting),
            conflicting_entries=conflicting,
            within_window=self.window.contains(start, end),
        )

        if conflicting:
            search_from = max(blocking_interval(item)[1] for item in conflicting)
            report.suggested_alternatives = self._search(search_from, candidate_duration, busy)
            logger.debug(
                "conflict at %s (%d min): %d overlapping, %d alternatives",
                report.candidate.start,
                candidate_duration,
                len(conflicting),
                len(report.suggested_alternatives),
            )

        return report

    def _search(self, search_from: int, duration: int, busy: Sequence[tuple[int, int]]) -> list[Slot]:
        """Earliest free windows of `duration` minutes from search_from, stepping forward."""
        found: list[Slot] = []
        t = max(search_from, self.window.start_minutes)

        while t + duration <= self.window.end_minutes and len(found) < self.max_alternatives:
            if any(overlaps(t, t + duration, b_start, b_end) for b_start, b_end in busy):
                t += self.step_minutes
                continue
            found.append(_slot(t, duration))
            t += duration

        return found

    def available_slots(self, existing: Iterable[Blocker], minimum_duration: int = 60) -> list[Slot]:
        """Every free interval inside the window at least minimum_duration long."""
        busy = sorted(i for i in (blocking_interval(item) for item in existing) if i is not None)

        slots = []
        cursor = self.window.start_minutes
        for b_start, b_end in busy:
            free_end = min(b_start, self.window.end_minutes)
            if free_end - cursor >= minimum_duration:
                slots.append(_slot(cursor, free_end - cursor))
            cursor = max(cursor, b_end)

        if self.window.end_minutes - cursor >= minimum_duration:
            slots.append(_slot(cursor, self.window.end_minutes - cursor))

        return slots


def check_conflict(
    candidate_start: str | datetime,
    candidate_duration: int,
    existing_entries: Iterable[Blocker],
    operating_window: OperatingWindow | None = None,
    location: str | None = None,
) -> ConflictReport:
    """One-shot conflict check with default search settings."""
    return ConflictDetector(operating_window).check(
        candidate_start, candidate_duration, existing_entries, location=location
    )


def find_available_slots(
    existing_entries: Iterable[Blocker],
    operating_window: OperatingWindow | None = None,
    minimum_duration: int = 60,
) -> list[Slot]:
    return ConflictDetector(operating_window).available_slots(existing_entries, minimum_duration)


def find_next_available_slot(
    existing_entries: Iterable[Blocker],
    duration: int,
    default_start: str = "10:00",
) -> Slot:
    """Slot right after the latest lesson of the day, or at default_start on an empty day."""
    ends = [i[1] for i in (blocking_interval(item) for item in existing_entries) if i is not None]
    start = max(ends) if ends else time_to_minutes(default_start)
    return _slot(start, duration)
