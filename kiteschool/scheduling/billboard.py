"""
Billboard aggregation - from bookings to per-teacher day queues.

BookingView is the read-only helper the timeline works through: package
allowance, event minutes by status, student names and teachers.

build_teacher_queues() flattens every booking's lessons and events, keeps
the concrete events on the selected date, groups them by the lesson's
teacher and loads each group into a TeacherDayQueue in start order.

The day flag is the earliest first-lesson time across teachers;
align_all() moves every selected teacher's first lesson to one time.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date

from .models import Booking, Event, EventStatus, Lesson, Package, Teacher, TimelineEntry
from .queue import DEFAULT_MIN_DURATION_MINUTES, DEFAULT_STEP_MINUTES, TeacherDayQueue
from .stats import hourly_rate_per_student
from .timeutil import add_minutes, parse_date, time_to_minutes

logger = logging.getLogger(__name__)


@dataclass
class PackageUsage:
    total_minutes: int
    total_price: float
    price_per_student: float

    def to_dict(self) -> dict:
        return {
            "total_minutes": self.total_minutes,
            "total_price": self.total_price,
            "price_per_student": self.price_per_student,
        }


class BookingView:
    """Read-only booking helper shared by every entry of the booking."""

    def __init__(self, booking: Booking):
        self.booking = booking
        self.package: Package | None = booking.package
        self.lessons: list[Lesson] = booking.lessons or []

    def __repr__(self) -> str:
        return f"BookingView(booking={self.booking.id!r})"

    def all_events(self) -> list[Event]:
        return [event for lesson in self.lessons for event in lesson.events]

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    def get_event_minutes(self) -> dict[str, int]:
        """Minutes of event time per status."""
        minutes = {status.value: 0 for status in EventStatus}
        for event in self.all_events():
            if event.status is not None:
                minutes[event.status.value] += event.duration or 0
        return minutes

    def get_used_minutes(self) -> int:
        minutes = self.get_event_minutes()
        return sum(minutes[s.value] for s in EventStatus if s.uses_package_time)

    def get_remaining_minutes(self) -> int:
        """Package minutes not yet planned, taught or awaiting confirmation."""
        package_minutes = self.package.duration if self.package else 0
        return package_minutes - self.get_used_minutes()

    def get_package_minutes(self) -> dict[str, PackageUsage]:
        """What the package sold ("expected") against what was taught ("spent")."""
        package = self.package
        package_minutes = package.duration if package else 0
        price_per_student = package.price_per_student if package else 0.0
        rate = hourly_rate_per_student(package)
        students = self.student_count
        completed = self.get_event_minutes()[EventStatus.COMPLETED.value]

        return {
            "expected": PackageUsage(
                total_minutes=package_minutes,
                total_price=price_per_student * students,
                price_per_student=price_per_student,
            ),
            "spent": PackageUsage(
                total_minutes=completed,
                total_price=completed / 60 * rate * students,
                price_per_student=completed / 60 * rate,
            ),
        }

    @property
    def student_count(self) -> int:
        return len(self.booking.students)

    def student_names(self) -> list[str]:
        return [s.name for s in self.booking.students]

    def get_teachers(self) -> list[Teacher]:
        """Distinct teachers across the booking's lessons, first occurrence wins."""
        seen: dict[str, Teacher] = {}
        for lesson in self.lessons:
            if lesson.teacher is not None and lesson.teacher.id not in seen:
                seen[lesson.teacher.id] = lesson.teacher
        return list(seen.values())

    def has_teacher(self, teacher_id: str) -> bool:
        return any(t.id == teacher_id for t in self.get_teachers())

    def needs_teacher_assignment(self) -> bool:
        return not self.lessons or any(lesson.teacher is None for lesson in self.lessons)

    def events_for_teacher_and_date(self, teacher_id: str, day: date | str) -> list[Event]:
        day = parse_date(day)
        return [
            event
            for lesson in self.lessons
            if lesson.teacher is not None and lesson.teacher.id == teacher_id
            for event in lesson.events
            if event.date is not None and event.date.date() == day
        ]


def bookings_on_date(bookings: Iterable[Booking], selected_date: date | str) -> list[Booking]:
    """
    Copies of the bookings whose lessons keep only the events on selected_date.

    Day statistics run on these, so other days of a package never count.
    The originals are left untouched.
    """
    day = parse_date(selected_date)
    return [
        replace(
            booking,
            lessons=[
                replace(
                    lesson,
                    events=[e for e in lesson.events if e.date is not None and e.date.date() == day],
                )
                for lesson in booking.lessons
            ],
        )
        for booking in bookings
    ]


def build_teacher_queues(
    teachers: Iterable[Teacher],
    bookings: Iterable[Booking],
    selected_date: date | str,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    min_duration_minutes: int = DEFAULT_MIN_DURATION_MINUTES,
) -> dict[str, TeacherDayQueue]:
    """
    One queue per roster teacher for selected_date, in roster order.

    Teachers with no lessons that day get an empty queue. Events that miss
    a date, duration, location or status are skipped, as are events whose
    lesson has no teacher or a teacher outside the roster.

    Each entry's manual offset is seeded with its recorded gap, so the
    loaded queue reproduces the stored start times.
    """
    day = parse_date(selected_date)
    queues = {
        t.id: TeacherDayQueue(t, day, step_minutes=step_minutes, min_duration_minutes=min_duration_minutes)
        for t in teachers
    }

    grouped: dict[str, list[TimelineEntry]] = {}
    skipped = 0
    for booking in bookings:
        view = BookingView(booking)
        for lesson in view.lessons:
            for event in lesson.events:
                if not event.is_concrete:
                    skipped += 1
                    continue
                if event.date.date() != day:
                    continue
                if lesson.teacher is None or lesson.teacher.id not in queues:
                    skipped += 1
                    continue
                entry = TimelineEntry.from_event(event, view)
                entry.lesson_id = lesson.id
                grouped.setdefault(lesson.teacher.id, []).append(entry)

    for teacher_id, entries in grouped.items():
        entries.sort(key=lambda e: e.recorded_start)
        queue = queues[teacher_id]
        previous: TimelineEntry | None = None
        for entry in entries:
            if previous is not None:
                recorded_end = add_minutes(previous.recorded_start, previous.duration_minutes)
                gap = int((entry.recorded_start - recorded_end).total_seconds() // 60)
                entry.recorded_gap_minutes = gap
                entry.manual_offset_minutes = gap
            queue.add_entry(entry)
            previous = entry

    if skipped:
        logger.debug("billboard %s: skipped %d events that cannot be placed", day, skipped)
    logger.info(
        "billboard %s: %d teachers, %d entries",
        day,
        len(queues),
        sum(len(q) for q in queues.values()),
    )
    return queues


def earliest_flag_time(queues: Iterable[TeacherDayQueue]) -> str | None:
    """Earliest first-lesson time across teachers, or None when nobody teaches."""
    flags = [q.get_flag_time() for q in queues]
    flags = [f for f in flags if f is not None]
    if not flags:
        return None
    return min(flags, key=time_to_minutes)


def align_all(
    queues: dict[str, TeacherDayQueue],
    hhmm: str,
    teacher_ids: Iterable[str] | None = None,
) -> dict[str, bool]:
    """
    Move the first lesson of each selected teacher to hhmm; the rest of each
    day follows. All teachers are selected when teacher_ids is None.

    Returns per-teacher whether the queue changed. Raises KeyError for a
    teacher id without a queue and InvalidTimeFormat for a bad hhmm.
    """
    time_to_minutes(hhmm)
    selected = list(queues) if teacher_ids is None else list(teacher_ids)
    missing = [tid for tid in selected if tid not in queues]
    if missing:
        raise KeyError(", ".join(missing))

    applied = {tid: queues[tid].align_to(hhmm) for tid in selected}
    logger.info(
        "billboard: aligned %d of %d teachers to %s",
        sum(applied.values()),
        len(applied),
        hhmm,
    )
    return applied
