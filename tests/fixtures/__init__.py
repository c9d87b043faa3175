"""
Test fixtures for deterministic testing.

This module provides:
- fixture_db: temp SQLite databases seeded with pinned data
- seed.json: the pinned billboard day (2026-07-14)
"""

from .fixture_db import FIXTURE_DATE, create_fixture_db, load_seed_data

__all__ = ["FIXTURE_DATE", "create_fixture_db", "load_seed_data"]
