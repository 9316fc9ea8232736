from __future__ import annotations
import sqlite3
from pathlib import Path
from typing import Optional, Union

APP_NAME = "RoutineTracker"
DB_NAME = "routine.sqlite3"


def data_dir(app_name: str = APP_NAME) -> Path:
    # Cross-platform local app data dir
    # macOS: ~/Library/Application Support/RoutineTracker
    # Windows: %APPDATA%\RoutineTracker
    home = Path.home()
    if _is_macos():
        base = home / "Library" / "Application Support"
    elif _is_windows():
        base = Path(_get_env("APPDATA", str(home)))
    else:
        base = home / ".local" / "share"
    d = base / app_name
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    return data_dir() / DB_NAME


def connect(path: Optional[Union[str, Path]] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(str(path) if path is not None else db_path())
    conn.row_factory = sqlite3.Row
    return conn


def migrate(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value BLOB NOT NULL -- UTF-8 JSON
        );

        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )

    # Defaults if missing
    if conn.execute("SELECT value FROM settings WHERE key='poll_interval_seconds'").fetchone() is None:
        conn.execute("INSERT INTO settings(key,value) VALUES('poll_interval_seconds','60')")

    # Empty means <data dir>/backups
    if conn.execute("SELECT value FROM settings WHERE key='backup_dir'").fetchone() is None:
        conn.execute("INSERT INTO settings(key,value) VALUES('backup_dir','')")

    conn.commit()


def _is_windows() -> bool:
    import sys
    return sys.platform.startswith("win")


def _is_macos() -> bool:
    import sys
    return sys.platform == "darwin"


def _get_env(k: str, default: str) -> str:
    import os
    return os.environ.get(k, default)
