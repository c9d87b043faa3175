"""
Teacher Day Queue - one teacher's ordered lessons for one calendar day.

The queue owns the order of its entries and derives every start time from
that order:

- head:      start = anchor + head.manual_offset
- any other: start = (previous start + previous duration) + manual_offset

The anchor is the recorded start of the first entry placed on an empty
queue. Reordering keeps it, so the first slot of the day keeps its time
whichever lesson occupies it.

Invariants:
- Start times are recomputed from head to tail after every mutation
- The head never reports a gap
- Unknown ids are a no-op (mutators return False), never an error
- Overlaps caused by negative offsets are allowed here; preventing them at
  insertion time is the conflict detector's job
"""

import copy
import logging
from dataclasses import dataclass
from datetime import date, datetime

from .models import Teacher, TimelineEntry
from .stats import TeacherStats, teacher_stats
from .timeutil import add_minutes, combine_date_and_time, parse_date

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 15
DEFAULT_MIN_DURATION_MINUTES = 15


@dataclass
class Gap:
    """Slack between two consecutive entries."""

    after_id: str | None
    before_id: str | None
    start: str
    minutes: int


@dataclass
class QueueSnapshot:
    anchor: datetime | None
    entries: list[TimelineEntry]


class TeacherDayQueue:
    """
    Ordered lesson timeline for one teacher on one date.

    Entries are looked up by event id; an entry that is not persisted yet
    can be addressed by its lesson id instead.
    """

    def __init__(
        self,
        teacher: Teacher,
        day: date | str,
        step_minutes: int = DEFAULT_STEP_MINUTES,
        min_duration_minutes: int = DEFAULT_MIN_DURATION_MINUTES,
    ):
        if step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {step_minutes}")
        self.teacher = teacher
        self.date = parse_date(day)
        self.step_minutes = step_minutes
        self.min_duration_minutes = min_duration_minutes
        self._entries: list[TimelineEntry] = []
        self._anchor: datetime | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"TeacherDayQueue(teacher={self.teacher.id!r}, date={self.date}, entries={len(self)})"

    # ==================== Reads ====================

    def get_entries(self) -> list[TimelineEntry]:
        """Ordered copies of the entries; mutating them does not touch the queue."""
        return [copy.copy(e) for e in self._entries]

    def get_total_duration(self) -> int:
        return sum(e.duration_minutes for e in self._entries)

    def can_move_up(self, entry_id: str) -> bool:
        index = self._index(entry_id)
        return index is not None and index > 0

    def can_move_down(self, entry_id: str) -> bool:
        index = self._index(entry_id)
        return index is not None and index < len(self._entries) - 1

    def get_last_entry(self) -> TimelineEntry | None:
        return copy.copy(self._entries[-1]) if self._entries else None

    def get_flag_time(self) -> str | None:
        """Start time of the day's first lesson, or None for an idle teacher."""
        if not self._entries:
            return None
        return self._entries[0].start_time

    def next_start_time(self, default_start: str = "10:00") -> str:
        """Where an appended lesson would start: right after the last one."""
        if not self._entries:
            return default_start
        return self._entries[-1].end_time

    def get_gaps(self) -> list[Gap]:
        gaps = []
        for prev, entry in zip(self._entries, self._entries[1:]):
            if entry.has_gap:
                gaps.append(
                    Gap(
                        after_id=prev.id,
                        before_id=entry.id,
                        start=prev.end_time,
                        minutes=entry.manual_offset_minutes,
                    )
                )
        return gaps

    def get_total_gap_minutes(self) -> int:
        return sum(g.minutes for g in self.get_gaps())

    def get_teacher_stats(self) -> TeacherStats:
        return teacher_stats(self._entries)

    # ==================== Mutations ====================

    def add_entry(self, entry: TimelineEntry) -> None:
        """Append an entry. On an empty queue it becomes the head and sets the anchor."""
        if not self._entries:
            self._anchor = entry.recorded_start
        self._entries.append(entry)
        self._recompute()
        logger.debug(
            "queue %s/%s: added lesson %s (%d min)",
            self.teacher.id,
            self.date,
            entry.lesson_id,
            entry.duration_minutes,
        )

    def remove_entry(self, entry_id: str) -> bool:
        """
        Splice an entry out. The lessons after it keep their start times:
        the freed time becomes slack in front of the successor.
        """
        index = self._index(entry_id)
        if index is None:
            return False

        removed = self._entries.pop(index)
        freed = removed.manual_offset_minutes + removed.duration_minutes

        if not self._entries:
            self._anchor = None
        elif index == 0:
            self._anchor = add_minutes(self._anchor, freed)
        elif index < len(self._entries):
            self._entries[index].manual_offset_minutes += freed

        self._recompute()
        logger.debug("queue %s/%s: removed %s", self.teacher.id, self.date, entry_id)
        return True

    def move_up(self, entry_id: str) -> bool:
        index = self._index(entry_id)
        if index is None or index == 0:
            return False
        self._swap(index - 1, index)
        return True

    def move_down(self, entry_id: str) -> bool:
        index = self._index(entry_id)
        if index is None or index >= len(self._entries) - 1:
            return False
        self._swap(index, index + 1)
        return True

    def adjust_duration(self, entry_id: str, delta_minutes: int) -> bool:
        """
        Lengthen or shorten an entry by a multiple of the step.

        Never goes below min_duration_minutes, and a shortening never makes
        an entry longer. A lengthening that would use more than the
        booking's remaining package minutes is refused.

        Returns True when the duration changed.
        """
        self._check_step(delta_minutes)
        index = self._index(entry_id)
        if index is None or delta_minutes == 0:
            return False

        entry = self._entries[index]
        new_duration = max(self.min_duration_minutes, entry.duration_minutes + delta_minutes)
        if delta_minutes < 0:
            # entries stored below the minimum stay as they are
            new_duration = min(new_duration, entry.duration_minutes)
        if new_duration == entry.duration_minutes:
            return False

        extra = new_duration - entry.duration_minutes
        if extra > 0 and not self._within_package_allowance(entry, extra):
            logger.warning(
                "queue %s/%s: duration +%d for %s exceeds package allowance, unchanged",
                self.teacher.id,
                self.date,
                extra,
                entry_id,
            )
            return False

        entry.duration_minutes = new_duration
        self._recompute()
        return True

    def adjust_manual_offset(self, entry_id: str, delta_minutes: int) -> bool:
        """Nudge an entry (and everything after it) by a multiple of the step."""
        self._check_step(delta_minutes)
        index = self._index(entry_id)
        if index is None or delta_minutes == 0:
            return False

        self._entries[index].manual_offset_minutes += delta_minutes
        self._recompute()
        return True

    def close_gap(self, entry_id: str) -> bool:
        """Pull an entry back against its predecessor, removing the slack before it."""
        index = self._index(entry_id)
        if index is None or index == 0:
            return False

        entry = self._entries[index]
        if entry.manual_offset_minutes <= 0:
            return False

        entry.manual_offset_minutes = 0
        self._recompute()
        return True

    def compact(self) -> bool:
        """Make the day contiguous from the current first start time."""
        if not self._entries:
            return False

        head = self._entries[0]
        self._anchor = add_minutes(self._anchor, head.manual_offset_minutes)
        changed = any(e.manual_offset_minutes for e in self._entries)
        for entry in self._entries:
            entry.manual_offset_minutes = 0
        self._recompute()
        return changed

    def apply_global_offset(self, delta_minutes: int) -> bool:
        """Shift the whole day by delta_minutes."""
        if not self._entries or delta_minutes == 0:
            return False
        self._anchor = add_minutes(self._anchor, delta_minutes)
        self._recompute()
        return True

    def align_to(self, hhmm: str) -> bool:
        """Move the first lesson to start at hhmm; the rest follow."""
        if not self._entries:
            return False
        target = combine_date_and_time(self._anchor, hhmm)
        delta = int((target - self._entries[0].start).total_seconds() // 60)
        return self.apply_global_offset(delta)

    def mark_saved(self, entry_id: str) -> bool:
        """Record an entry's current start and duration as the stored ones."""
        index = self._index(entry_id)
        if index is None:
            return False
        entry = self._entries[index]
        entry.persisted_start = entry.start
        entry.persisted_duration = entry.duration_minutes
        return True

    # ==================== Snapshots ====================

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(anchor=self._anchor, entries=[copy.copy(e) for e in self._entries])

    def restore(self, snapshot: QueueSnapshot) -> None:
        self._anchor = snapshot.anchor
        self._entries = [copy.copy(e) for e in snapshot.entries]
        self._recompute()

    def to_dict(self) -> dict:
        return {
            "teacher": {"id": self.teacher.id, "name": self.teacher.name},
            "date": self.date.isoformat(),
            "flag_time": self.get_flag_time(),
            "total_duration": self.get_total_duration(),
            "total_gap_minutes": self.get_total_gap_minutes(),
            "entries": [e.to_dict() for e in self._entries],
            "stats": self.get_teacher_stats().to_dict(),
        }

    # ==================== Internals ====================

    def _index(self, entry_id: str) -> int | None:
        for i, entry in enumerate(self._entries):
            if entry.id is not None and entry.id == entry_id:
                return i
        for i, entry in enumerate(self._entries):
            if entry.id is None and entry.lesson_id == entry_id:
                return i
        return None

    def _swap(self, upper: int, lower: int) -> None:
        # Entries trade places; the offset (slack) belongs to the position.
        a, b = self._entries[upper], self._entries[lower]
        a.manual_offset_minutes, b.manual_offset_minutes = (
            b.manual_offset_minutes,
            a.manual_offset_minutes,
        )
        self._entries[upper], self._entries[lower] = b, a
        self._recompute()

    def _check_step(self, delta_minutes: int) -> None:
        if delta_minutes % self.step_minutes:
            raise ValueError(
                f"Adjustment of {delta_minutes} min is not a multiple of {self.step_minutes} min"
            )

    def _within_package_allowance(self, entry: TimelineEntry, extra: int) -> bool:
        view = entry.booking
        if view is None or view.package is None or view.package.duration <= 0:
            return True

        unsaved = 0
        for other in self._entries:
            if other.booking is None or other.booking.booking.id != view.booking.id:
                continue
            if not other.status.uses_package_time:
                continue
            unsaved += other.duration_minutes - (other.persisted_duration or 0)

        return unsaved + extra <= view.get_remaining_minutes()

    def _recompute(self) -> None:
        previous_end: datetime | None = None
        for position, entry in enumerate(self._entries):
            natural = self._anchor if position == 0 else previous_end
            entry.scheduled_start = add_minutes(natural, entry.manual_offset_minutes)
            entry.has_gap = position > 0 and entry.scheduled_start > natural
            previous_end = add_minutes(entry.scheduled_start, entry.duration_minutes)

