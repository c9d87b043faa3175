"""
Event Store - persistence boundary for bookings and lesson events.

Reads assemble Booking records (package, students, lessons, events) for the
billboard. Writes create, update and delete single events.

Write methods return (value, message) tuples and never raise for bad input
or storage errors; sqlite3 errors are logged and returned as failures.
"""

import logging
import sqlite3
import uuid
from collections.abc import Iterable
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from kiteschool import db
from kiteschool.scheduling.models import (
    DEFAULT_LOCATIONS,
    Booking,
    Event,
    EventStatus,
    Lesson,
    Package,
    Student,
    Teacher,
)
from kiteschool.scheduling.timeutil import (
    InvalidTimeFormat,
    combine_date_and_time,
    parse_date,
    parse_datetime,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("date", "duration", "location", "status")


class EventStore:
    """
    SQLite-backed store for the billboard.

    Usage:
        store = EventStore()
        bookings = store.fetch_bookings_for_date("2026-07-14")
        event, msg = store.create_event("lesson_1", "2026-07-14", "10:00", 120, "Los Lances")
    """

    def __init__(self, db_path: Path | str | None = None, locations: Iterable[str] | None = None):
        self.db_path = db_path
        self.locations = tuple(locations or DEFAULT_LOCATIONS)

    # ==================== Reads ====================

    def list_teachers(self) -> list[Teacher]:
        with db.get_connection(self.db_path) as conn:
            rows = conn.execute("SELECT id, name FROM teachers WHERE active = 1 ORDER BY name").fetchall()
        return [Teacher(id=row["id"], name=row["name"]) for row in rows]

    def get_teacher(self, teacher_id: str) -> Teacher | None:
        with db.get_connection(self.db_path) as conn:
            row = conn.execute("SELECT id, name FROM teachers WHERE id = ?", (teacher_id,)).fetchone()
        return Teacher(id=row["id"], name=row["name"]) if row else None

    def get_event(self, event_id: str) -> Event | None:
        with db.get_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        return Event.from_dict(dict(row)) if row else None

    def fetch_bookings_for_date(self, day: date | str) -> list[Booking]:
        """Every booking with at least one event on the day, fully loaded."""
        day = parse_date(day)
        with db.get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT l.booking_id
                FROM events e JOIN lessons l ON l.id = e.lesson_id
                WHERE substr(e.date, 1, 10) = ?
                ORDER BY l.booking_id
                """,
                (day.isoformat(),),
            ).fetchall()
            return self._load_bookings(conn, [row["booking_id"] for row in rows])

    def fetch_booking(self, booking_id: str) -> Booking | None:
        with db.get_connection(self.db_path) as conn:
            bookings = self._load_bookings(conn, [booking_id])
        return bookings[0] if bookings else None

    def fetch_booking_for_lesson(self, lesson_id: str) -> Booking | None:
        with db.get_connection(self.db_path) as conn:
            row = conn.execute("SELECT booking_id FROM lessons WHERE id = ?", (lesson_id,)).fetchone()
            if row is None:
                return None
            bookings = self._load_bookings(conn, [row["booking_id"]])
        return bookings[0] if bookings else None

    def _load_bookings(self, conn: sqlite3.Connection, booking_ids: list[str]) -> list[Booking]:
        if not booking_ids:
            return []
        marks = ",".join("?" * len(booking_ids))

        booking_rows = conn.execute(
            f"""
            SELECT b.id, b.status, p.id AS package_id, p.duration, p.price_per_student,
                   p.capacity_students, p.description
            FROM bookings b LEFT JOIN packages p ON p.id = b.package_id
            WHERE b.id IN ({marks})
            ORDER BY b.id
            """,  # nosec B608
            booking_ids,
        ).fetchall()

        student_rows = conn.execute(
            f"""
            SELECT bs.booking_id, s.id, s.name
            FROM booking_students bs JOIN students s ON s.id = bs.student_id
            WHERE bs.booking_id IN ({marks})
            ORDER BY s.name
            """,  # nosec B608
            booking_ids,
        ).fetchall()

        lesson_rows = conn.execute(
            f"""
            SELECT l.id, l.booking_id, l.commission_per_hour, l.status,
                   t.id AS teacher_id, t.name AS teacher_name
            FROM lessons l LEFT JOIN teachers t ON t.id = l.teacher_id
            WHERE l.booking_id IN ({marks})
            ORDER BY l.id
            """,  # nosec B608
            booking_ids,
        ).fetchall()

        lesson_ids = [row["id"] for row in lesson_rows]
        event_rows = []
        if lesson_ids:
            lesson_marks = ",".join("?" * len(lesson_ids))
            event_rows = conn.execute(
                f"SELECT * FROM events WHERE lesson_id IN ({lesson_marks}) ORDER BY date",  # nosec B608
                lesson_ids,
            ).fetchall()

        events_by_lesson: dict[str, list[Event]] = {}
        for row in event_rows:
            events_by_lesson.setdefault(row["lesson_id"], []).append(Event.from_dict(dict(row)))

        lessons_by_booking: dict[str, list[Lesson]] = {}
        for row in lesson_rows:
            teacher = Teacher(id=row["teacher_id"], name=row["teacher_name"]) if row["teacher_id"] else None
            lessons_by_booking.setdefault(row["booking_id"], []).append(
                Lesson(
                    id=row["id"],
                    teacher=teacher,
                    events=events_by_lesson.get(row["id"], []),
                    commission_per_hour=row["commission_per_hour"],
                    status=row["status"],
                )
            )

        students_by_booking: dict[str, list[Student]] = {}
        for row in student_rows:
            students_by_booking.setdefault(row["booking_id"], []).append(
                Student(id=row["id"], name=row["name"])
            )

        bookings = []
        for row in booking_rows:
            package = None
            if row["package_id"]:
                package = Package(
                    id=row["package_id"],
                    duration=row["duration"] or 0,
                    price_per_student=row["price_per_student"] or 0.0,
                    capacity_students=row["capacity_students"] or 1,
                    description=row["description"] or "",
                )
            bookings.append(
                Booking(
                    id=row["id"],
                    package=package,
                    students=students_by_booking.get(row["id"], []),
                    lessons=lessons_by_booking.get(row["id"], []),
                    status=row["status"],
                )
            )
        return bookings

    # ==================== Writes ====================

    def create_event(
        self,
        lesson_id: str,
        date: date | str,
        start_time: str,
        duration_minutes: int,
        location: str,
        status: str = "planned",
    ) -> tuple[Event | None, str]:
        """
        Create a lesson event.

        Validates:
        - Lesson exists
        - Valid date and time format
        - Positive duration
        - Known location and status

        Returns:
            (Event or None, message)
        """
        try:
            start = combine_date_and_time(date, start_time)
        except InvalidTimeFormat:
            return None, "Invalid time format (use HH:MM)"
        except ValueError:
            return None, "Invalid date (use YYYY-MM-DD)"

        error = self._validate(duration=duration_minutes, location=location, status=status)
        if error:
            return None, error

        event = Event(
            id=f"evt_{uuid.uuid4().hex[:12]}",
            lesson_id=lesson_id,
            date=start,
            duration=int(duration_minutes),
            location=location,
            status=EventStatus(status),
        )

        try:
            with db.get_connection(self.db_path) as conn:
                if conn.execute("SELECT 1 FROM lessons WHERE id = ?", (lesson_id,)).fetchone() is None:
                    return None, f"Lesson not found: {lesson_id}"
                conn.execute(
                    """
                    INSERT INTO events (id, lesson_id, date, duration, location, status, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event.id,
                        event.lesson_id,
                        event.date.isoformat(),
                        event.duration,
                        event.location,
                        event.status.value,
                        datetime.now(UTC).isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            logger.error("create_event failed for lesson %s: %s", lesson_id, e)
            return None, f"Database error: {e}"

        logger.info("Created event %s for lesson %s at %s", event.id, lesson_id, event.date.isoformat())
        return event, "Event created"

    def update_event(self, event_id: str, fields: dict[str, Any]) -> tuple[bool, str]:
        """
        Update date, duration, location or status of an event.

        Returns:
            (success, message)
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            return False, f"Cannot update fields: {', '.join(sorted(unknown))}"
        if not fields:
            return False, "Nothing to update"

        values = dict(fields)
        if "date" in values:
            try:
                values["date"] = parse_datetime(values["date"]).isoformat()
            except (TypeError, ValueError):
                return False, f"Invalid datetime: {fields['date']!r}"

        error = self._validate(
            duration=values.get("duration"),
            location=values.get("location"),
            status=values.get("status"),
        )
        if error:
            return False, error
        if "duration" in values:
            values["duration"] = int(values["duration"])

        columns = [db.validate_identifier(c) for c in values]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        params = [values[c] for c in columns] + [datetime.now(UTC).isoformat(), event_id]

        try:
            with db.get_connection(self.db_path) as conn:
                cursor = conn.execute(
                    f"UPDATE events SET {assignments}, updated_at = ? WHERE id = ?",  # nosec B608
                    params,
                )
                if cursor.rowcount == 0:
                    return False, f"Event not found: {event_id}"
        except sqlite3.Error as e:
            logger.error("update_event failed for %s: %s", event_id, e)
            return False, f"Database error: {e}"

        logger.info("Updated event %s: %s", event_id, ", ".join(columns))
        return True, "Event updated"

    def delete_event(self, event_id: str) -> tuple[bool, str]:
        try:
            with db.get_connection(self.db_path) as conn:
                cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
                if cursor.rowcount == 0:
                    return False, f"Event not found: {event_id}"
        except sqlite3.Error as e:
            logger.error("delete_event failed for %s: %s", event_id, e)
            return False, f"Database error: {e}"

        logger.info("Deleted event %s", event_id)
        return True, "Event deleted"

    def _validate(
        self,
        duration: int | None = None,
        location: str | None = None,
        status: str | None = None,
    ) -> str | None:
        if duration is not None:
            try:
                if int(duration) <= 0:
                    return f"Duration must be positive, got {duration}"
            except (TypeError, ValueError):
                return f"Invalid duration: {duration!r}"
        if location is not None and location not in self.locations:
            return f"Unknown location: {location}"
        if status is not None and status not in {s.value for s in EventStatus}:
            return f"Unknown status: {status}"
        return None
