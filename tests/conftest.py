"""
Test configuration - repo root on sys.path + live database guard.

Tests must never open the user's real billboard database. Every test gets
KITESCHOOL_HOME pointed at a temp directory, and sqlite3.connect refuses
the default live DB path.
"""

import sqlite3
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# =============================================================================
# DETERMINISM GUARD: Block live database access
# =============================================================================

LIVE_DB_ABSOLUTE = Path.home() / ".kiteschool" / "data" / "kiteschool.db"
_FORBIDDEN_DB_PATTERNS = [str(LIVE_DB_ABSOLUTE), ".kiteschool/data/kiteschool.db"]

_original_sqlite_connect = sqlite3.connect


def _guarded_sqlite_connect(database, *args, **kwargs):
    """Intercept sqlite3.connect to block live DB access."""
    db_str = str(database)
    for pattern in _FORBIDDEN_DB_PATTERNS:
        if pattern in db_str:
            raise RuntimeError(
                f"DETERMINISM VIOLATION: Test attempted to access live DB at {database}.\n"
                "Tests must use tests/fixtures/fixture_db.py."
            )
    return _original_sqlite_connect(database, *args, **kwargs)


@pytest.fixture(autouse=True)
def guard_live_db_access(monkeypatch, tmp_path):
    """Automatically guard all tests against live DB access."""
    monkeypatch.setattr(sqlite3, "connect", _guarded_sqlite_connect)
    monkeypatch.setenv("KITESCHOOL_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("KITESCHOOL_DB", raising=False)
    monkeypatch.delenv("KITESCHOOL_CONFIG", raising=False)


@pytest.fixture(autouse=True)
def fresh_config_cache():
    """Config is cached per process; start and end every test uncached."""
    from kiteschool import config_store

    config_store._cache = None
    yield
    config_store._cache = None


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def fixture_db_path(tmp_path, monkeypatch):
    """Seeded fixture DB, installed as the app's database."""
    from kiteschool import paths
    from tests.fixtures import create_fixture_db

    db_path = tmp_path / "fixture.db"
    conn = create_fixture_db(db_path)
    conn.close()
    monkeypatch.setattr(paths, "db_path", lambda: db_path)
    return db_path


@pytest.fixture
def store(fixture_db_path):
    from kiteschool.event_store import EventStore

    return EventStore(fixture_db_path)
