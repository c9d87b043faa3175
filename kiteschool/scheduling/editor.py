"""
Queue editing sessions.

A QueueEditor wraps one teacher-day queue while a user edits it. Queue
mutations stay in memory until submit(); discard() returns the queue to
the state it had when the session started (or was last submitted).

Adding a lesson is the exception: add_event() persists the new event
immediately, the way the billboard's "add to teacher" action does.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from .billboard import BookingView
from .conflicts import ConflictDetector, ConflictReport
from .models import Event, EventStatus, Lesson, TimelineEntry
from .queue import TeacherDayQueue

logger = logging.getLogger(__name__)

DEFAULT_DURATION_BY_CAPACITY = {1: 120, 2: 180, 3: 240}


class EventPersistence(Protocol):
    def create_event(
        self,
        lesson_id: str,
        date: Any,
        start_time: str,
        duration_minutes: int,
        location: str,
        status: str = "planned",
    ) -> tuple[Event | None, str]: ...

    def update_event(self, event_id: str, fields: dict[str, Any]) -> tuple[bool, str]: ...

    def delete_event(self, event_id: str) -> tuple[bool, str]: ...


@dataclass
class EventController:
    """Defaults the billboard applies to newly added lessons."""

    submit_time: str = "10:00"
    location: str = "Los Lances"
    duration_by_capacity: dict[int, int] = field(
        default_factory=lambda: dict(DEFAULT_DURATION_BY_CAPACITY)
    )

    def duration_for(self, capacity: int) -> int:
        """Duration for a package capacity; larger groups use the biggest configured capacity."""
        table = {int(k): int(v) for k, v in self.duration_by_capacity.items()}
        if capacity in table:
            return table[capacity]
        fitting = [k for k in table if k <= capacity]
        return table[max(fitting)] if fitting else table[min(table)]


@dataclass
class PendingChange:
    entry_id: str
    fields: dict[str, Any]


@dataclass
class SubmitResult:
    entry_id: str
    action: str  # "update" or "delete"
    success: bool
    message: str

    def to_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "action": self.action,
            "success": self.success,
            "message": self.message,
        }


class QueueEditor:
    def __init__(self, queue: TeacherDayQueue, detector: ConflictDetector | None = None):
        self.queue = queue
        self.detector = detector or ConflictDetector()
        self._baseline = queue.snapshot()
        self._deleted: list[str] = []

    def check(self, start_time: str, duration: int, location: str | None = None) -> ConflictReport:
        return self.detector.check(start_time, duration, self.queue.get_entries(), location=location)

    def add_event(
        self,
        view: BookingView,
        controller: EventController,
        store: EventPersistence,
    ) -> tuple[TimelineEntry | None, str]:
        """
        Create and append the next lesson event of a booking for this teacher.

        Start is the controller's submit time on an empty day, otherwise the
        end of the last lesson. Duration comes from the package capacity.

        Returns:
            (entry, message) - entry is None when nothing was created
        """
        lesson = self._lesson_for_teacher(view)
        if lesson is None:
            return None, f"Booking {view.booking.id} has no lesson for teacher {self.queue.teacher.id}"

        capacity = view.package.capacity_students if view.package else 1
        duration = controller.duration_for(capacity)
        remaining = view.get_remaining_minutes()
        if duration > remaining:
            return None, f"Only {remaining} package minutes left, {duration} needed"

        start_time = self.queue.next_start_time(default_start=controller.submit_time)
        report = self.check(start_time, duration, location=controller.location)
        if report.has_conflict:
            alt = report.first_alternative
            hint = f", next free slot {alt.start}" if alt else ""
            return None, f"{start_time} for {duration} min conflicts with an existing lesson{hint}"
        if not report.within_window:
            return None, f"{start_time} for {duration} min falls outside operating hours"

        event, msg = store.create_event(
            lesson.id,
            self.queue.date,
            start_time,
            duration,
            controller.location,
            EventStatus.PLANNED.value,
        )
        if event is None:
            logger.error("add_event: could not persist lesson %s: %s", lesson.id, msg)
            return None, msg

        lesson.events.append(event)
        entry = TimelineEntry.from_event(event, view)
        self.queue.add_entry(entry)
        # The new event is stored; discard() must keep it.
        self._baseline = self.queue.snapshot()
        return entry, f"Added lesson at {start_time} ({duration} min)"

    def remove(self, entry_id: str) -> bool:
        """Take an entry off the day; a stored event is deleted on submit()."""
        persisted_id = next(
            (e.id for e in self.queue.get_entries() if e.id == entry_id),
            None,
        )
        if not self.queue.remove_entry(entry_id):
            return False
        if persisted_id is not None:
            self._deleted.append(persisted_id)
        return True

    def pending_changes(self) -> list[PendingChange]:
        """Stored entries whose start or duration differs from what is stored."""
        changes = []
        for entry in self.queue.get_entries():
            if not entry.is_persisted:
                continue
            fields: dict[str, Any] = {}
            if entry.persisted_start != entry.start:
                fields["date"] = entry.start.isoformat()
            if entry.persisted_duration != entry.duration_minutes:
                fields["duration"] = entry.duration_minutes
            if fields:
                changes.append(PendingChange(entry_id=entry.id, fields=fields))
        return changes

    @property
    def pending_deletions(self) -> list[str]:
        return list(self._deleted)

    def has_changes(self) -> bool:
        return bool(self._deleted) or bool(self.pending_changes())

    def submit(self, store: EventPersistence) -> list[SubmitResult]:
        """
        Persist deletions and changed entries. Every change is attempted and
        reported; a failed one stays pending.
        """
        results = []

        still_deleted = []
        for event_id in self._deleted:
            ok, msg = store.delete_event(event_id)
            results.append(SubmitResult(event_id, "delete", ok, msg))
            if not ok:
                still_deleted.append(event_id)
        self._deleted = still_deleted

        for change in self.pending_changes():
            ok, msg = store.update_event(change.entry_id, change.fields)
            results.append(SubmitResult(change.entry_id, "update", ok, msg))
            if ok:
                self.queue.mark_saved(change.entry_id)

        failed = [r for r in results if not r.success]
        if failed:
            logger.error(
                "submit %s/%s: %d of %d changes failed",
                self.queue.teacher.id,
                self.queue.date,
                len(failed),
                len(results),
            )
        else:
            logger.info("submit %s/%s: %d changes saved", self.queue.teacher.id, self.queue.date, len(results))

        self._baseline = self.queue.snapshot()
        return results

    def discard(self) -> None:
        self.queue.restore(self._baseline)
        self._deleted = []

    def _lesson_for_teacher(self, view: BookingView) -> Lesson | None:
        for lesson in view.lessons:
            if lesson.teacher is not None and lesson.teacher.id == self.queue.teacher.id:
                return lesson
        return None
