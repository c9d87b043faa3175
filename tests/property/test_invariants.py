"""
Property-based tests for the teacher-day queue and the conflict detector.

Hypothesis drives random timelines and mutation sequences through the
scheduling core and checks the timeline invariants after every step.
"""

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from kiteschool.scheduling import (
    Booking,
    BookingView,
    Event,
    EventStatus,
    Lesson,
    OperatingWindow,
    Package,
    Student,
    Teacher,
    TeacherDayQueue,
    TimelineEntry,
    check_conflict,
)
from kiteschool.scheduling.timeutil import (
    add_minutes,
    combine_date_and_time,
    minutes_to_time,
    time_to_minutes,
)

DAY = "2026-07-14"
TEACHER = Teacher(id="t_ana", name="Ana")
WINDOW = OperatingWindow("09:00", "21:00")

# Quarter-hour clock times between 06:00 and 20:00
quarter_starts = st.integers(min_value=24, max_value=80).map(lambda q: q * 15)
durations = st.integers(min_value=1, max_value=12).map(lambda q: q * 15)
steps = st.integers(min_value=-8, max_value=8).map(lambda q: q * 15)


def _entry(index: int, start_minutes: int, duration: int) -> TimelineEntry:
    return TimelineEntry(
        id=f"e{index}",
        lesson_id=f"l{index}",
        recorded_start=combine_date_and_time(DAY, minutes_to_time(start_minutes)),
        duration_minutes=duration,
        location="Los Lances",
    )


def _queue(specs) -> TeacherDayQueue:
    queue = TeacherDayQueue(TEACHER, DAY)
    for i, (start, duration) in enumerate(specs):
        queue.add_entry(_entry(i, start, duration))
    return queue


def _shape(queue: TeacherDayQueue):
    return [(e.id, e.duration_minutes, e.start) for e in queue.get_entries()]


timelines = st.lists(st.tuples(quarter_starts, durations), min_size=1, max_size=6)

operations = st.lists(
    st.tuples(
        st.sampled_from(
            ["move_up", "move_down", "remove", "adjust_duration", "adjust_offset", "close_gap", "compact", "shift"]
        ),
        st.integers(min_value=0, max_value=7),
        steps,
    ),
    max_size=12,
)


def _apply(queue: TeacherDayQueue, op: str, index: int, delta: int) -> None:
    entry_id = f"e{index}"
    if op == "move_up":
        queue.move_up(entry_id)
    elif op == "move_down":
        queue.move_down(entry_id)
    elif op == "remove":
        queue.remove_entry(entry_id)
    elif op == "adjust_duration":
        queue.adjust_duration(entry_id, delta)
    elif op == "adjust_offset":
        queue.adjust_manual_offset(entry_id, delta)
    elif op == "close_gap":
        queue.close_gap(entry_id)
    elif op == "compact":
        queue.compact()
    else:
        queue.apply_global_offset(delta)


# ============================================================================
# Queue recomputation
# ============================================================================


@given(timelines)
def test_appended_entries_are_back_to_back(specs):
    """With zero offsets every entry starts where the previous one ends."""
    entries = _queue(specs).get_entries()
    for prev, entry in zip(entries, entries[1:]):
        assert entry.start == prev.end


@given(timelines, operations)
@settings(max_examples=200)
def test_head_never_has_gap(specs, ops):
    queue = _queue(specs)
    for op, index, delta in ops:
        _apply(queue, op, index, delta)
        entries = queue.get_entries()
        if entries:
            assert entries[0].has_gap is False
        for prev, entry in zip(entries, entries[1:]):
            assert entry.start == add_minutes(prev.end, entry.manual_offset_minutes)


@given(timelines, operations)
def test_durations_never_drop_below_minimum(specs, ops):
    queue = _queue(specs)
    for op, index, delta in ops:
        _apply(queue, op, index, delta)
    assert all(e.duration_minutes >= 15 for e in queue.get_entries())


@given(timelines, st.text(min_size=1, max_size=10))
def test_removing_unknown_id_changes_nothing(specs, unknown):
    assume(not unknown.startswith("e") and not unknown.startswith("l"))
    queue = _queue(specs)
    before = _shape(queue)
    assert queue.remove_entry(unknown) is False
    assert _shape(queue) == before


@given(timelines)
def test_moves_past_the_ends_are_noops(specs):
    queue = _queue(specs)
    before = _shape(queue)
    entries = queue.get_entries()

    assert queue.move_up(entries[0].id) is False
    assert queue.move_down(entries[-1].id) is False
    assert _shape(queue) == before


# ============================================================================
# Package allowance
# ============================================================================


@given(
    durations,
    st.integers(min_value=0, max_value=16).map(lambda q: q * 15),
    st.lists(steps, max_size=10),
)
def test_duration_stays_within_package(stored, headroom, deltas):
    package_minutes = stored + headroom
    event = Event(
        id="e0",
        lesson_id="l0",
        date=combine_date_and_time(DAY, "10:00"),
        duration=stored,
        location="Los Lances",
        status=EventStatus.PLANNED,
    )
    booking = Booking(
        id="b0",
        package=Package(id="p0", duration=package_minutes, price_per_student=300.0),
        students=[Student(id="s0", name="Lucia")],
        lessons=[Lesson(id="l0", teacher=TEACHER, events=[event])],
    )
    queue = TeacherDayQueue(TEACHER, DAY)
    queue.add_entry(TimelineEntry.from_event(event, BookingView(booking)))

    for delta in deltas:
        queue.adjust_duration("e0", delta)
        duration = queue.get_entries()[0].duration_minutes
        assert duration >= 15
        assert duration <= package_minutes


# ============================================================================
# Conflict detection
# ============================================================================


@given(quarter_starts, durations, quarter_starts, durations)
def test_conflict_is_symmetric(a_start, a_duration, b_start, b_duration):
    a = _entry(0, a_start, a_duration)
    b = _entry(1, b_start, b_duration)

    forward = check_conflict(minutes_to_time(a_start), a_duration, [b], WINDOW).has_conflict
    backward = check_conflict(minutes_to_time(b_start), b_duration, [a], WINDOW).has_conflict
    assert forward == backward


@given(quarter_starts, durations, st.integers(min_value=1, max_value=3).map(lambda q: q * 15))
def test_touching_intervals_do_not_conflict(start, duration, candidate_duration):
    existing = _entry(0, start, duration)
    report = check_conflict(minutes_to_time(start + duration), candidate_duration, [existing], WINDOW)
    assert report.has_conflict is False


@given(timelines, quarter_starts, durations)
@settings(max_examples=200)
def test_suggested_alternatives_are_free_and_inside_window(specs, start, duration):
    existing = [_entry(i, s, d) for i, (s, d) in enumerate(specs)]
    report = check_conflict(minutes_to_time(start), duration, existing, WINDOW)

    for slot in report.suggested_alternatives:
        slot_start = time_to_minutes(slot.start)
        assert WINDOW.contains(slot_start, slot_start + duration)
        assert check_conflict(slot.start, duration, existing, WINDOW).has_conflict is False
