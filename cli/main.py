#!/usr/bin/env python3
"""
Kite School CLI - the billboard from a terminal.

Commands:
- init-db                                  create or converge the database
- billboard DATE                           every teacher's lessons for a day
- check TEACHER_ID DATE START DURATION     would a lesson fit?
- serve                                    run the API server
"""

import argparse
import sys

from kiteschool import config_store, db
from kiteschool.event_store import EventStore
from kiteschool.observability import configure_logging
from kiteschool.scheduling import ConflictDetector, build_teacher_queues, earliest_flag_time
from kiteschool.scheduling.timeutil import format_duration, parse_date


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def _store() -> EventStore:
    return EventStore(locations=config_store.get("locations"))


def _queues(day, teacher_id=None):
    store = _store()
    roster = store.list_teachers()
    if teacher_id is not None:
        roster = [t for t in roster if t.id == teacher_id]
    return build_teacher_queues(
        roster,
        store.fetch_bookings_for_date(day),
        day,
        step_minutes=config_store.get("scheduling.step_minutes", 15),
        min_duration_minutes=config_store.get("scheduling.min_duration_minutes", 15),
    )


def cmd_init_db(args) -> int:
    result = db.run_startup_migrations()
    print(f"OK: schema version {result['schema_version']} at {db.get_db_path()}")
    return 0


def cmd_billboard(args) -> int:
    """Show each teacher's day."""
    day = parse_date(args.date)
    queues = _queues(day)

    print_header(f"BILLBOARD: {day.isoformat()}")

    if not queues:
        print("No teachers on the roster.")
        return 0

    print(f"Day flag: {earliest_flag_time(queues.values()) or '-'}")

    for queue in queues.values():
        stats = queue.get_teacher_stats()
        flag = queue.get_flag_time() or "-"
        print(f"\n🪁 {queue.teacher.name}  (first lesson {flag}, {format_duration(stats.total_duration)})")
        if not len(queue):
            print("  No lessons")
            continue

        rows = []
        for entry in queue.get_entries():
            students = ", ".join(entry.booking.student_names()) if entry.booking else ""
            rows.append(
                [
                    f"{entry.start_time}-{entry.end_time}",
                    entry.duration_minutes,
                    entry.location or "-",
                    entry.status.value,
                    f"+{entry.manual_offset_minutes}" if entry.has_gap else "",
                    students,
                ]
            )
        print_table(["Time", "Min", "Location", "Status", "Gap", "Students"], rows, [11, 4, 13, 9, 5, 30])

        if stats.teacher_earnings or stats.school_revenue:
            print(f"  Teacher €{stats.teacher_earnings:.2f} │ School €{stats.school_revenue:.2f}")
    return 0


def cmd_check(args) -> int:
    """Check a proposed lesson. Exit status 1 on conflict."""
    day = parse_date(args.date)
    queues = _queues(day, args.teacher_id)
    if args.teacher_id not in queues:
        print(f"Unknown teacher: {args.teacher_id}")
        return 2

    detector = ConflictDetector(
        config_store.get_operating_window(),
        step_minutes=config_store.get("scheduling.step_minutes", 15),
        max_alternatives=config_store.get("scheduling.max_alternatives", 3),
    )
    try:
        report = detector.check(
            args.start, args.duration, queues[args.teacher_id].get_entries(), location=args.location
        )
    except ValueError as e:
        print(f"Invalid request: {e}")
        return 2

    slot = report.candidate
    if not report.has_conflict:
        note = "" if report.within_window else " (outside operating hours)"
        print(f"✓ {slot.start}-{slot.end} is free{note}")
        return 0

    print(f"✗ {slot.start}-{slot.end} overlaps {len(report.conflicting_entries)} lesson(s)")
    if report.suggested_alternatives:
        print("Free instead:")
        for alt in report.suggested_alternatives:
            print(f"  {alt.start}-{alt.end}")
    else:
        print("No free slot left today.")
    return 1


def cmd_serve(args) -> int:
    from api.server import main as serve

    serve(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="kiteschool", description="Kite school billboard")
    p.add_argument("--log-level", default="WARNING")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db").set_defaults(func=cmd_init_db)

    b = sub.add_parser("billboard", help="Show every teacher's day")
    b.add_argument("date", help="YYYY-MM-DD")
    b.set_defaults(func=cmd_billboard)

    c = sub.add_parser("check", help="Check a proposed lesson for conflicts")
    c.add_argument("teacher_id")
    c.add_argument("date", help="YYYY-MM-DD")
    c.add_argument("start", help="HH:MM")
    c.add_argument("duration", type=int, help="minutes")
    c.add_argument("--location", default=None)
    c.set_defaults(func=cmd_check)

    s = sub.add_parser("serve", help="Run the API server")
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=8420)
    s.set_defaults(func=cmd_serve)

    return p


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_format=False)
    try:
        return args.func(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
