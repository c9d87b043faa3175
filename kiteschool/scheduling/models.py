"""
Scheduling records.

Two families live here:
- Booking records (Booking -> Lesson -> Event, plus Package, Teacher,
  Student) as fetched from storage. The scheduling core only reads them.
- Timeline values (TimelineEntry, OperatingWindow, Slot) that the queue and
  the conflict detector work on.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .timeutil import (
    add_minutes,
    extract_time,
    minutes_of_day,
    parse_datetime,
    time_to_minutes,
)

if TYPE_CHECKING:
    from .billboard import BookingView


class EventStatus(StrEnum):
    PLANNED = "planned"
    COMPLETED = "completed"
    TBC = "tbc"
    CANCELLED = "cancelled"

    @property
    def uses_package_time(self) -> bool:
        """Planned, completed and tbc events all consume package minutes."""
        return self is not EventStatus.CANCELLED


class Location(StrEnum):
    LOS_LANCES = "Los Lances"
    VALDEVAQUEROS = "Valdevaqueros"
    PALMONES = "Palmones"


DEFAULT_LOCATIONS: tuple[str, ...] = tuple(loc.value for loc in Location)


# =============================================================================
# Booking records
# =============================================================================


@dataclass
class Teacher:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> Teacher:
        return cls(id=str(data["id"]), name=data.get("name") or "")


@dataclass
class Student:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> Student:
        # Booking payloads wrap students as {"student": {...}}
        data = data.get("student", data)
        return cls(id=str(data["id"]), name=data.get("name") or "")


@dataclass
class Package:
    id: str
    duration: int = 0  # minutes of tuition sold
    price_per_student: float = 0.0
    capacity_students: int = 1
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Package:
        return cls(
            id=str(data["id"]),
            duration=int(data.get("duration") or 0),
            price_per_student=float(data.get("price_per_student") or 0),
            capacity_students=int(data.get("capacity_students") or 1),
            description=data.get("description") or "",
        )


@dataclass
class Event:
    """A persisted lesson event. Any field may be missing on legacy rows."""

    id: str
    lesson_id: str
    date: datetime | None = None
    duration: int | None = None
    location: str | None = None
    status: EventStatus | None = None

    @classmethod
    def from_dict(cls, data: dict, lesson_id: str | None = None) -> Event:
        raw_date = data.get("date")
        raw_status = data.get("status")
        return cls(
            id=str(data["id"]),
            lesson_id=str(data.get("lesson_id") or lesson_id or ""),
            date=parse_datetime(raw_date) if raw_date else None,
            duration=int(data["duration"]) if data.get("duration") is not None else None,
            location=data.get("location") or None,
            status=EventStatus(raw_status) if raw_status else None,
        )

    @property
    def is_concrete(self) -> bool:
        """True when every field needed to place the event on a timeline is set."""
        return bool(self.date and self.duration and self.location and self.status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lesson_id": self.lesson_id,
            "date": self.date.isoformat() if self.date else None,
            "duration": self.duration,
            "location": self.location,
            "status": self.status.value if self.status else None,
        }


@dataclass
class Lesson:
    id: str
    teacher: Teacher | None = None
    events: list[Event] = field(default_factory=list)
    commission_per_hour: float | None = None
    status: str = "planned"

    @classmethod
    def from_dict(cls, data: dict) -> Lesson:
        lesson_id = str(data["id"])
        teacher = data.get("teacher")
        commission = data.get("commission") or {}
        rate = data.get("commission_per_hour", commission.get("price_per_hour"))
        return cls(
            id=lesson_id,
            teacher=Teacher.from_dict(teacher) if teacher else None,
            events=[Event.from_dict(e, lesson_id) for e in data.get("events") or []],
            commission_per_hour=float(rate) if rate is not None else None,
            status=data.get("status") or "planned",
        )


@dataclass
class Booking:
    id: str
    package: Package | None = None
    students: list[Student] = field(default_factory=list)
    lessons: list[Lesson] = field(default_factory=list)
    status: str = "active"

    @classmethod
    def from_dict(cls, data: dict) -> Booking:
        package = data.get("package")
        return cls(
            id=str(data["id"]),
            package=Package.from_dict(package) if package else None,
            students=[Student.from_dict(s) for s in data.get("students") or []],
            lessons=[Lesson.from_dict(lesson) for lesson in data.get("lessons") or []],
            status=data.get("status") or "active",
        )


# =============================================================================
# Timeline values
# =============================================================================


@dataclass(frozen=True)
class OperatingWindow:
    """Bookable hours of the school day and the sites lessons can run at."""

    start: str = "09:00"
    end: str = "21:00"
    locations: tuple[str, ...] = DEFAULT_LOCATIONS

    def __post_init__(self):
        if self.start_minutes >= self.end_minutes:
            raise ValueError(f"Operating window must start before it ends: {self.start}-{self.end}")
        object.__setattr__(self, "locations", tuple(self.locations))

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    def contains(self, start_minutes: int, end_minutes: int) -> bool:
        return self.start_minutes <= start_minutes and end_minutes <= self.end_minutes

    def is_valid_location(self, location: str) -> bool:
        return location in self.locations


@dataclass(frozen=True)
class Slot:
    """A free [start, end) interval on one day."""

    start: str
    end: str
    duration_minutes: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BusyInterval:
    """A synthetic blocked interval, e.g. a break, checked like an entry."""

    start: str
    duration_minutes: int
    label: str = ""
    status: EventStatus = EventStatus.PLANNED


@dataclass
class TimelineEntry:
    """
    One lesson event placed on a teacher's day.

    recorded_start is the time the event was stored with (or proposed at,
    for a new entry). scheduled_start and has_gap are derived by the owning
    queue and overwritten on every recomputation.
    """

    lesson_id: str
    recorded_start: datetime
    duration_minutes: int
    location: str | None = None
    status: EventStatus = EventStatus.PLANNED
    id: str | None = None
    manual_offset_minutes: int = 0
    recorded_gap_minutes: int = 0
    scheduled_start: datetime | None = None
    has_gap: bool = False
    booking: BookingView | None = field(default=None, repr=False, compare=False)
    persisted_start: datetime | None = field(default=None, repr=False)
    persisted_duration: int | None = field(default=None, repr=False)

    def __post_init__(self):
        self.recorded_start = parse_datetime(self.recorded_start)
        self.status = EventStatus(self.status)
        if self.id is not None:
            if self.persisted_start is None:
                self.persisted_start = self.recorded_start
            if self.persisted_duration is None:
                self.persisted_duration = self.duration_minutes

    @classmethod
    def from_event(cls, event: Event, booking: BookingView | None = None) -> TimelineEntry:
        return cls(
            id=event.id,
            lesson_id=event.lesson_id,
            recorded_start=event.date,
            duration_minutes=event.duration,
            location=event.location,
            status=event.status or EventStatus.PLANNED,
            booking=booking,
        )

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @property
    def is_concrete(self) -> bool:
        return bool(self.duration_minutes and self.duration_minutes > 0 and self.location)

    @property
    def start(self) -> datetime:
        return self.scheduled_start or self.recorded_start

    @property
    def end(self) -> datetime:
        return add_minutes(self.start, self.duration_minutes)

    @property
    def start_time(self) -> str:
        return extract_time(self.start)

    @property
    def end_time(self) -> str:
        return extract_time(self.end)

    @property
    def start_minutes(self) -> int:
        return minutes_of_day(self.start)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "lesson_id": self.lesson_id,
            "start": self.start.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_minutes": self.duration_minutes,
            "location": self.location,
            "status": self.status.value,
            "manual_offset_minutes": self.manual_offset_minutes,
            "has_gap": self.has_gap,
            "recorded_gap_minutes": self.recorded_gap_minutes,
            "students": self.booking.student_names() if self.booking else [],
        }
