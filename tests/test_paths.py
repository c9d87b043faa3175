"""
Tests for path resolution. conftest points KITESCHOOL_HOME at a temp dir.
"""

from pathlib import Path

from kiteschool import paths


class TestPaths:
    def test_home_from_env(self, tmp_path):
        assert paths.app_home() == (tmp_path / "home").resolve()

    def test_default_db_lives_in_data_dir(self, tmp_path):
        assert paths.db_path() == (tmp_path / "home" / "data" / "kiteschool.db").resolve()
        # only the data dir is created under the app home
        assert [p.name for p in paths.app_home().iterdir()] == ["data"]

    def test_db_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KITESCHOOL_DB", str(tmp_path / "other.db"))
        assert paths.db_path() == (tmp_path / "other.db").resolve()

    def test_config_defaults_to_shipped_file(self):
        assert paths.config_path() == paths.project_root() / "config" / "school.yaml"
        assert paths.config_path().exists()

    def test_config_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KITESCHOOL_CONFIG", str(tmp_path / "school.yaml"))
        assert paths.config_path() == Path(tmp_path / "school.yaml").resolve()
