"""
Billboard API Router - teacher timelines, conflict checks and event writes.

Endpoints:
- GET /api/billboard/{day} - every teacher's queue for the day
- GET /api/billboard/{day}/stats - revenue and lesson-hour statistics
- POST /api/billboard/{day}/teachers/{teacher_id}/conflicts - check a proposed lesson
- POST /api/billboard/{day}/teachers/{teacher_id}/plan - apply queue edits, optionally save
- POST /api/billboard/{day}/flag - move every selected teacher's first lesson to one time
- POST /api/events - create an event (409 on conflict, 422 outside hours, unless force)
- PATCH /api/events/{event_id} - update an event
- DELETE /api/events/{event_id} - delete an event
"""

import logging
from datetime import date

from fastapi import APIRouter, HTTPException

from api.response_models import (
    BillboardResponse,
    ConflictCheckRequest,
    CreateEventRequest,
    FlagRequest,
    FlagResponse,
    MutationResponse,
    PlanRequest,
    PlanResponse,
    QueueOperation,
    StatsResponse,
    UpdateEventRequest,
)
from kiteschool import config_store
from kiteschool.event_store import EventStore
from kiteschool.scheduling import (
    BookingView,
    ConflictDetector,
    QueueEditor,
    TeacherDayQueue,
    align_all,
    bookings_on_date,
    build_teacher_queues,
    calc_lesson_revenue,
    calc_lesson_stats,
    earliest_flag_time,
)
from kiteschool.scheduling.models import Teacher
from kiteschool.scheduling.timeutil import InvalidTimeFormat, parse_date

logger = logging.getLogger(__name__)

router = APIRouter(tags=["billboard"])


def get_event_store() -> EventStore:
    return EventStore(locations=config_store.get("locations"))


def get_detector() -> ConflictDetector:
    return ConflictDetector(
        config_store.get_operating_window(),
        step_minutes=config_store.get("scheduling.step_minutes", 15),
        max_alternatives=config_store.get("scheduling.max_alternatives", 3),
    )


def _parse_day(day: str) -> date:
    try:
        return parse_date(day)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _queues_for(day: date, store: EventStore, teacher_id: str | None = None):
    roster = store.list_teachers()
    if teacher_id is not None:
        roster = [t for t in roster if t.id == teacher_id]
        if not roster:
            raise HTTPException(status_code=404, detail=f"Teacher not found: {teacher_id}")
    return _build_queues(day, store, roster)


def _build_queues(day: date, store: EventStore, roster: list[Teacher]):
    bookings = store.fetch_bookings_for_date(day)
    queues = build_teacher_queues(
        roster,
        bookings,
        day,
        step_minutes=config_store.get("scheduling.step_minutes", 15),
        min_duration_minutes=config_store.get("scheduling.min_duration_minutes", 15),
    )
    return queues, bookings


def _raise_for_store_failure(message: str):
    if message.startswith("Database error"):
        raise HTTPException(status_code=500, detail=message)
    if "not found" in message.lower():
        raise HTTPException(status_code=404, detail=message)
    raise HTTPException(status_code=400, detail=message)


# ==== Billboard ====


@router.get("/billboard/{day}", response_model=BillboardResponse)
async def get_billboard(day: str):
    """Every teacher's lessons for the day, with gaps and stats."""
    selected = _parse_day(day)
    queues, bookings = _queues_for(selected, get_event_store())
    return BillboardResponse(
        date=selected.isoformat(),
        teachers=[q.to_dict() for q in queues.values()],
        flag_time=earliest_flag_time(queues.values()),
        unassigned_bookings=[b.id for b in bookings if BookingView(b).needs_teacher_assignment()],
    )


@router.get("/billboard/{day}/stats", response_model=StatsResponse)
async def get_billboard_stats(day: str):
    """Revenue and lesson hours from the day's events only."""
    selected = _parse_day(day)
    queues, bookings = _queues_for(selected, get_event_store())
    day_bookings = bookings_on_date(bookings, selected)
    return StatsResponse(
        date=selected.isoformat(),
        revenue=calc_lesson_revenue(day_bookings).to_dict(),
        lessons=calc_lesson_stats(day_bookings).to_dict(),
        teachers={tid: q.get_teacher_stats().to_dict() for tid, q in queues.items()},
    )


@router.post("/billboard/{day}/teachers/{teacher_id}/conflicts")
async def check_conflicts(day: str, teacher_id: str, body: ConflictCheckRequest):
    """Conflict report for a proposed lesson on the teacher's day."""
    selected = _parse_day(day)
    queues, _ = _queues_for(selected, get_event_store(), teacher_id)
    try:
        report = get_detector().check(
            body.start_time,
            body.duration_minutes,
            queues[teacher_id].get_entries(),
            location=body.location,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return report.to_dict()


def _apply(editor: QueueEditor, queue: TeacherDayQueue, op: QueueOperation) -> bool:
    if op.op == "compact":
        return queue.compact()
    if op.op == "shift":
        return queue.apply_global_offset(op.delta_minutes)
    if op.op == "align":
        if not op.time:
            raise ValueError("align needs a time")
        return queue.align_to(op.time)

    if not op.entry_id:
        raise ValueError(f"{op.op} needs an entry_id")
    if op.op == "move_up":
        return queue.move_up(op.entry_id)
    if op.op == "move_down":
        return queue.move_down(op.entry_id)
    if op.op == "remove":
        return editor.remove(op.entry_id)
    if op.op == "adjust_duration":
        return queue.adjust_duration(op.entry_id, op.delta_minutes)
    if op.op == "adjust_offset":
        return queue.adjust_manual_offset(op.entry_id, op.delta_minutes)
    return queue.close_gap(op.entry_id)


@router.post("/billboard/{day}/teachers/{teacher_id}/plan", response_model=PlanResponse)
async def plan_teacher_day(day: str, teacher_id: str, body: PlanRequest):
    """
    Apply queue operations in order to a freshly loaded day.

    Without commit the result is a preview. With commit every changed and
    removed entry is saved, and the per-change results are returned.
    """
    selected = _parse_day(day)
    store = get_event_store()
    queues, _ = _queues_for(selected, store, teacher_id)
    queue = queues[teacher_id]
    editor = QueueEditor(queue, get_detector())

    applied = []
    for op in body.operations:
        try:
            applied.append(_apply(editor, queue, op))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    pending = [{"entry_id": c.entry_id, "fields": c.fields} for c in editor.pending_changes()]
    deletions = editor.pending_deletions

    submitted = []
    if body.commit:
        submitted = [r.to_dict() for r in editor.submit(store)]

    return PlanResponse(
        queue=queue.to_dict(),
        applied=applied,
        pending_changes=pending,
        pending_deletions=deletions,
        submitted=submitted,
    )


@router.post("/billboard/{day}/flag", response_model=FlagResponse)
async def flag_day(day: str, body: FlagRequest):
    """
    Move the first lesson of every selected teacher to body.time.

    Each queue shifts as a whole, so gaps and durations are kept. Teachers
    with no lessons report False. Without commit the result is a preview.
    """
    selected = _parse_day(day)
    store = get_event_store()
    queues, _ = _queues_for(selected, store)
    editors = {tid: QueueEditor(q, get_detector()) for tid, q in queues.items()}

    try:
        applied = align_all(queues, body.time, body.teacher_ids)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Teacher not found: {e.args[0]}")
    except (InvalidTimeFormat, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    selected_ids = list(applied)
    pending = [
        {"entry_id": c.entry_id, "fields": c.fields}
        for tid in selected_ids
        for c in editors[tid].pending_changes()
    ]

    submitted = []
    if body.commit:
        for tid in selected_ids:
            submitted.extend(r.to_dict() for r in editors[tid].submit(store))

    return FlagResponse(
        date=selected.isoformat(),
        flag_time=earliest_flag_time(queues.values()),
        applied=applied,
        teachers=[queues[tid].to_dict() for tid in selected_ids],
        pending_changes=pending,
        submitted=submitted,
    )


# ==== Events ====


@router.post("/events", response_model=MutationResponse, status_code=201)
async def create_event(body: CreateEventRequest):
    """Create a lesson event after checking the teacher's day and operating hours."""
    store = get_event_store()
    selected = _parse_day(body.date)

    booking = store.fetch_booking_for_lesson(body.lesson_id)
    if booking is None:
        raise HTTPException(status_code=404, detail=f"Lesson not found: {body.lesson_id}")
    lesson = BookingView(booking).get_lesson(body.lesson_id)

    if not body.force:
        entries = []
        if lesson.teacher is not None:
            # the lesson's own teacher, whether or not still on the roster
            queues, _ = _build_queues(selected, store, [lesson.teacher])
            entries = queues[lesson.teacher.id].get_entries()
        try:
            report = get_detector().check(
                body.start_time,
                body.duration_minutes,
                entries,
                location=body.location,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if report.has_conflict:
            raise HTTPException(status_code=409, detail=report.to_dict())
        if not report.within_window:
            raise HTTPException(status_code=422, detail=report.to_dict())

    event, msg = store.create_event(
        body.lesson_id,
        selected,
        body.start_time,
        body.duration_minutes,
        body.location,
        body.status,
    )
    if event is None:
        _raise_for_store_failure(msg)
    return MutationResponse(success=True, message=msg, event=event.to_dict())


@router.patch("/events/{event_id}", response_model=MutationResponse)
async def update_event(event_id: str, body: UpdateEventRequest):
    fields = body.model_dump(exclude_none=True)
    ok, msg = get_event_store().update_event(event_id, fields)
    if not ok:
        _raise_for_store_failure(msg)
    return MutationResponse(success=True, message=msg)


@router.delete("/events/{event_id}", response_model=MutationResponse)
async def delete_event(event_id: str):
    ok, msg = get_event_store().delete_event(event_id)
    if not ok:
        _raise_for_store_failure(msg)
    return MutationResponse(success=True, message=msg)
