"""
Database access for the kite school.

- Connection factory (get_connection)
- SQL identifier validation
- Schema convergence against kiteschool.schema
- Startup entry point

No direct sqlite3.connect() outside this module.
"""

import logging
import re
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from kiteschool import paths, schema

logger = logging.getLogger(__name__)

_SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Clauses SQLite refuses in ALTER TABLE ADD COLUMN
_ALTER_UNSAFE = [
    re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE),
    re.compile(r"\bUNIQUE\b", re.IGNORECASE),
    re.compile(r"\bREFERENCES\s+\w+\s*\([^)]*\)(\s+ON\s+DELETE\s+\w+)?", re.IGNORECASE),
]


def validate_identifier(name: str) -> str:
    """Return name if it is a safe SQL identifier, else raise ValueError."""
    if not _SAFE_IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def get_db_path() -> Path:
    return paths.db_path()


@contextmanager
def get_connection(
    db_path: Path | str | None = None,
    row_factory: bool = True,
) -> Generator[sqlite3.Connection, None, None]:
    """
    Database connection that commits on success and always closes.

    Usage:
        with get_connection() as conn:
            conn.execute(...)
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    if row_factory:
        conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return cursor.fetchone() is not None


def get_table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    validate_identifier(table)
    cursor = conn.execute(f"PRAGMA table_info([{table}])")  # nosec B608
    return {row[1] for row in cursor.fetchall()}


def get_schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    if not isinstance(version, int) or version < 0:
        raise ValueError(f"Invalid schema version: {version!r}")
    conn.execute(f"PRAGMA user_version = {version}")


def _create_table_sql(table: str, table_def: dict) -> str:
    parts = [f"    {name} {ddl}" for name, ddl in table_def["columns"]]
    for unique_cols in table_def.get("unique", []):
        parts.append(f"    UNIQUE({', '.join(unique_cols)})")
    body = ",\n".join(parts)
    return f"CREATE TABLE IF NOT EXISTS [{table}] (\n{body}\n)"


def _alter_safe(ddl: str) -> str:
    for pattern in _ALTER_UNSAFE:
        ddl = pattern.sub("", ddl)
    ddl = re.sub(r"\s{2,}", " ", ddl).strip()
    if re.search(r"\bNOT\s+NULL\b", ddl, re.IGNORECASE) and not re.search(
        r"\bDEFAULT\b", ddl, re.IGNORECASE
    ):
        ddl += " DEFAULT ''"
    return ddl


def converge(conn: sqlite3.Connection) -> dict:
    """
    Bring a database in line with schema.TABLES and schema.INDEXES.

    Creates missing tables, adds missing columns, creates missing indexes
    and sets PRAGMA user_version. Never drops anything.
    """
    results = {"tables_created": [], "columns_added": [], "indexes_created": [], "errors": []}

    for table, table_def in schema.TABLES.items():
        validate_identifier(table)
        if not table_exists(conn, table):
            conn.execute(_create_table_sql(table, table_def))
            results["tables_created"].append(table)
            continue

        existing = get_table_columns(conn, table)
        for column, ddl in table_def["columns"]:
            if column in existing:
                continue
            validate_identifier(column)
            try:
                conn.execute(f"ALTER TABLE [{table}] ADD COLUMN [{column}] {_alter_safe(ddl)}")  # nosec B608
                results["columns_added"].append(f"{table}.{column}")
            except sqlite3.OperationalError as e:
                results["errors"].append(f"ADD COLUMN {table}.{column}: {e}")
                logger.warning("converge: ADD COLUMN %s.%s failed: %s", table, column, e)

    for name, table, columns, where in schema.INDEXES:
        where_clause = f" WHERE {where}" if where else ""
        cursor = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type='index' AND name=?", (name,)
        )
        if cursor.fetchone():
            continue
        conn.execute(f"CREATE INDEX IF NOT EXISTS [{name}] ON [{table}]({columns}){where_clause}")  # nosec B608
        results["indexes_created"].append(name)

    set_schema_version(conn, schema.SCHEMA_VERSION)
    results["schema_version"] = schema.SCHEMA_VERSION
    return results


def run_startup_migrations(db_path: Path | str | None = None) -> dict:
    """Converge the schema. Safe to call on every start."""
    path = Path(db_path) if db_path else get_db_path()
    logger.info("Database: %s (exists: %s)", path, path.exists())

    with get_connection(path) as conn:
        before = get_schema_version(conn)
        results = converge(conn)
        results["previous_version"] = before

    if results["tables_created"]:
        logger.info("Tables created: %s", results["tables_created"])
    if results["columns_added"]:
        logger.info("Columns added: %s", results["columns_added"])
    if results["errors"]:
        logger.warning("Convergence errors: %s", results["errors"])
    logger.info("Schema version %s -> %s", before, results["schema_version"])
    return results
