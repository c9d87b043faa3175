"""
Tests for the kiteschool CLI.
"""

import logging

import pytest

from cli.main import build_parser, main
from tests.fixtures import FIXTURE_DATE


@pytest.fixture(autouse=True)
def restore_root_logging():
    """main() reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestBillboardCommand:
    def test_prints_every_teacher(self, fixture_db_path, capsys):
        assert main(["billboard", FIXTURE_DATE]) == 0
        out = capsys.readouterr().out
        assert f"BILLBOARD: {FIXTURE_DATE}" in out
        assert "Ana" in out and "Ben" in out and "Carla" in out
        assert "Zoe" not in out
        assert "10:00-12:00" in out
        assert "+120" in out
        assert "No lessons" in out
        assert "Day flag: 10:00" in out

    def test_bad_date(self, fixture_db_path, capsys):
        assert main(["billboard", "tomorrow"]) == 2
        assert "Error" in capsys.readouterr().out


class TestCheckCommand:
    def test_free(self, fixture_db_path, capsys):
        assert main(["check", "t_ana", FIXTURE_DATE, "12:00", "120"]) == 0
        assert "12:00-14:00 is free" in capsys.readouterr().out

    def test_conflict_lists_alternatives(self, fixture_db_path, capsys):
        assert main(["check", "t_ana", FIXTURE_DATE, "13:30", "60"]) == 1
        out = capsys.readouterr().out
        assert "overlaps 1 lesson" in out
        assert "15:30-16:30" in out

    def test_outside_hours(self, fixture_db_path, capsys):
        assert main(["check", "t_carla", FIXTURE_DATE, "20:30", "60"]) == 0
        assert "outside operating hours" in capsys.readouterr().out

    def test_unknown_teacher(self, fixture_db_path, capsys):
        assert main(["check", "t_nobody", FIXTURE_DATE, "12:00", "60"]) == 2

    def test_unknown_location(self, fixture_db_path, capsys):
        assert main(["check", "t_ana", FIXTURE_DATE, "12:00", "60", "--location", "Atlantis"]) == 2
        assert "Invalid request" in capsys.readouterr().out


class TestInitDb:
    def test_creates_schema(self, tmp_path, monkeypatch, capsys):
        from kiteschool import paths

        target = tmp_path / "new.db"
        monkeypatch.setattr(paths, "db_path", lambda: target)
        assert main(["init-db"]) == 0
        assert "schema version" in capsys.readouterr().out
        assert target.exists()


def test_parser_requires_command():
    parser = build_parser()
    args = parser.parse_args(["check", "t_ana", FIXTURE_DATE, "10:00", "90", "--location", "Palmones"])
    assert args.duration == 90
    assert args.location == "Palmones"
