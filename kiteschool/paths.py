from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "KITESCHOOL_HOME"
APP_ENV_DB = "KITESCHOOL_DB"
APP_ENV_CONFIG = "KITESCHOOL_CONFIG"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains kiteschool/, api/, cli/, config/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for the billboard.
    Override with KITESCHOOL_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".kiteschool").resolve()


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical DB path.

    Resolution order:
    1. KITESCHOOL_DB env var (explicit override)
    2. ~/.kiteschool/data/kiteschool.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "kiteschool.db"


def config_path() -> Path:
    """
    School configuration file.

    Resolution order:
    1. KITESCHOOL_CONFIG env var
    2. <project_root>/config/school.yaml
    """
    if os.environ.get(APP_ENV_CONFIG):
        return Path(os.environ[APP_ENV_CONFIG]).expanduser().resolve()
    return project_root() / "config" / "school.yaml"
