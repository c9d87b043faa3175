"""
Declarative schema for the kite school database.

Every table and index lives here; kiteschool.db converges any database to
match. Adding a column means adding one line to its table.

Column definitions use CREATE TABLE syntax.
"""

from collections import OrderedDict

# Bump when this file changes
SCHEMA_VERSION = 3

# TABLES[name] = {"columns": [(col_name, col_ddl), ...]}
TABLES: dict[str, dict] = OrderedDict()

TABLES["teachers"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("name", "TEXT NOT NULL"),
        ("active", "INTEGER NOT NULL DEFAULT 1"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ]
}

TABLES["students"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("name", "TEXT NOT NULL"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ]
}

TABLES["packages"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("description", "TEXT"),
        ("duration", "INTEGER NOT NULL"),  # minutes of tuition
        ("price_per_student", "REAL NOT NULL DEFAULT 0"),
        ("capacity_students", "INTEGER NOT NULL DEFAULT 1"),
    ]
}

TABLES["bookings"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("package_id", "TEXT REFERENCES packages(id)"),
        ("status", "TEXT NOT NULL DEFAULT 'active'"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ]
}

TABLES["booking_students"] = {
    "columns": [
        ("booking_id", "TEXT NOT NULL REFERENCES bookings(id) ON DELETE CASCADE"),
        ("student_id", "TEXT NOT NULL REFERENCES students(id)"),
    ],
    "unique": [("booking_id", "student_id")],
}

TABLES["lessons"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("booking_id", "TEXT NOT NULL REFERENCES bookings(id) ON DELETE CASCADE"),
        ("teacher_id", "TEXT REFERENCES teachers(id)"),
        ("commission_per_hour", "REAL"),
        ("status", "TEXT NOT NULL DEFAULT 'planned'"),
    ]
}

TABLES["events"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("lesson_id", "TEXT NOT NULL REFERENCES lessons(id) ON DELETE CASCADE"),
        ("date", "TEXT"),  # ISO datetime, UTC
        ("duration", "INTEGER"),
        ("location", "TEXT"),
        ("status", "TEXT"),
        ("updated_at", "TEXT"),
    ]
}

# (index_name, table, columns, where)
INDEXES: list[tuple[str, str, str, str | None]] = [
    ("idx_events_date", "events", "date", None),
    ("idx_events_lesson", "events", "lesson_id", None),
    ("idx_lessons_booking", "lessons", "booking_id", None),
    ("idx_lessons_teacher", "lessons", "teacher_id", None),
    ("idx_booking_students_booking", "booking_students", "booking_id", None),
    ("idx_teachers_active", "teachers", "active", "active = 1"),
]
