"""
Scheduling Core

Builds and edits each teacher's lesson timeline for one day.

Objects:
- TimelineEntry (one lesson event placed on a day)
- TeacherDayQueue (ordered entries for one teacher and date)
- ConflictDetector (overlap checks and alternative slots)
- BookingView (read-only booking helper)

Invariants:
- Start times are always derived from queue order, offsets and durations
- The first entry of a day never reports a gap
- Cancelled and incomplete events never block time
- Overlap is half-open: back-to-back lessons do not conflict
"""

from .billboard import (
    BookingView,
    align_all,
    bookings_on_date,
    build_teacher_queues,
    earliest_flag_time,
)
from .conflicts import (
    ConflictDetector,
    ConflictReport,
    check_conflict,
    find_available_slots,
    find_next_available_slot,
)
from .editor import EventController, QueueEditor
from .models import (
    Booking,
    BusyInterval,
    Event,
    EventStatus,
    Lesson,
    Location,
    OperatingWindow,
    Package,
    Slot,
    Student,
    Teacher,
    TimelineEntry,
)
from .queue import TeacherDayQueue
from .stats import calc_lesson_revenue, calc_lesson_stats
from .timeutil import InvalidTimeFormat, add_minutes_to_time, minutes_to_time, time_to_minutes

__all__ = [
    "Booking",
    "BookingView",
    "BusyInterval",
    "ConflictDetector",
    "ConflictReport",
    "Event",
    "EventController",
    "EventStatus",
    "InvalidTimeFormat",
    "Lesson",
    "Location",
    "OperatingWindow",
    "Package",
    "QueueEditor",
    "Slot",
    "Student",
    "Teacher",
    "TeacherDayQueue",
    "TimelineEntry",
    "add_minutes_to_time",
    "align_all",
    "bookings_on_date",
    "build_teacher_queues",
    "calc_lesson_revenue",
    "calc_lesson_stats",
    "check_conflict",
    "earliest_flag_time",
    "find_available_slots",
    "find_next_available_slot",
    "minutes_to_time",
    "time_to_minutes",
]
