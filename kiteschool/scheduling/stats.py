"""
Billboard statistics.

- teacher_stats: minutes, hours and earnings for one teacher's timeline
- calc_lesson_revenue: expected revenue and teacher/school split for bookings
- calc_lesson_stats: lesson hours by class size (private, semi-private, group)

Records with missing package or commission data contribute zero rather than
failing the whole computation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Booking, Lesson, Package, TimelineEntry


def round_hours(hours: float) -> float:
    return round(hours * 10) / 10


def hourly_rate_per_student(package: Package | None) -> float:
    """Package price per student spread over the package's hours."""
    if package is None or package.duration <= 0:
        return 0.0
    return package.price_per_student / (package.duration / 60)


@dataclass
class TeacherStats:
    event_count: int = 0
    total_duration: int = 0
    total_hours: float = 0.0
    teacher_earnings: float = 0.0
    school_revenue: float = 0.0

    @property
    def total_earnings(self) -> float:
        return self.teacher_earnings + self.school_revenue

    def to_dict(self) -> dict:
        d = asdict(self)
        d["total_earnings"] = self.total_earnings
        return d


def teacher_stats(entries: Iterable[TimelineEntry]) -> TeacherStats:
    """
    Totals for a teacher's timeline.

    Teacher earnings use the lesson's commission per hour. School revenue is
    the package's hourly rate per student times the package capacity.
    """
    stats = TeacherStats()

    for entry in entries:
        stats.event_count += 1
        stats.total_duration += entry.duration_minutes
        hours = entry.duration_minutes / 60

        view = entry.booking
        if view is None:
            continue

        lesson = view.get_lesson(entry.lesson_id)
        if lesson is not None and lesson.commission_per_hour:
            stats.teacher_earnings += lesson.commission_per_hour * hours

        package = view.package
        if package is not None and package.price_per_student and package.capacity_students:
            stats.school_revenue += (
                hourly_rate_per_student(package) * package.capacity_students * hours
            )

    stats.total_hours = round_hours(stats.total_duration / 60)
    return stats


@dataclass
class LessonRevenue:
    revenue: float = 0.0  # expected, from every booking sold
    teacher: float = 0.0  # commission on taught hours
    school: float = 0.0  # taught-hours revenue minus commission

    @property
    def money_made(self) -> float:
        return self.teacher + self.school

    def to_dict(self) -> dict:
        d = asdict(self)
        d["money_made"] = self.money_made
        return d


def _lesson_minutes(lesson: Lesson) -> int:
    return sum(e.duration or 0 for e in lesson.events)


def calc_lesson_revenue(bookings: Iterable[Booking]) -> LessonRevenue:
    result = LessonRevenue()

    for booking in bookings:
        student_count = len(booking.students)
        package = booking.package
        if package is not None:
            result.revenue += student_count * package.price_per_student

        rate = hourly_rate_per_student(package)
        for lesson in booking.lessons:
            if lesson.commission_per_hour is None:
                continue
            hours = _lesson_minutes(lesson) / 60
            commission = hours * lesson.commission_per_hour
            result.teacher += commission
            if lesson.events:
                result.school += student_count * rate * hours - commission

    return result


@dataclass
class LessonStats:
    total_hours: float = 0.0
    private_hours: float = 0.0
    semi_private_hours: float = 0.0
    group_hours: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def calc_lesson_stats(bookings: Iterable[Booking]) -> LessonStats:
    """Hours taught, split by how many students the booking has."""
    total = private = semi = group = 0.0

    for booking in bookings:
        student_count = len(booking.students)
        for lesson in booking.lessons:
            if not lesson.events:
                continue
            hours = _lesson_minutes(lesson) / 60
            total += hours
            if student_count == 1:
                private += hours
            elif student_count == 2:
                semi += hours
            elif student_count >= 3:
                group += hours

    return LessonStats(
        total_hours=round_hours(total),
        private_hours=round_hours(private),
        semi_private_hours=round_hours(semi),
        group_hours=round_hours(group),
    )
