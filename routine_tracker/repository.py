from __future__ import annotations
import json
import logging
import sqlite3
from typing import Any, Callable, Dict, Iterable, Optional

from .errors import ShapeMismatch, StoreError
from .models import AppState, AppSettings
from .serialization import (
    task_to_dict, record_to_dict,
    decode_routine, decode_streak, decode_history, decode_last_rollover_date,
)

logger = logging.getLogger(__name__)

# AppState attribute -> store key
STATE_KEYS: Dict[str, str] = {
    "routine": "dailyRoutine",
    "streak": "dailyStreak",
    "history": "routineStats",
    "last_rollover_date": "lastResetDate",
}

MIN_POLL_INTERVAL_SECONDS = 5


def _encode_field(state: AppState, name: str) -> bytes:
    if name == "routine":
        value: Any = [task_to_dict(t) for t in state.routine]
    elif name == "streak":
        value = state.streak
    elif name == "history":
        value = [record_to_dict(r) for r in state.history]
    elif name == "last_rollover_date":
        value = state.last_rollover_date.isoformat() if state.last_rollover_date else None
    else:
        raise KeyError(name)
    return json.dumps(value).encode("utf-8")


_DECODERS: Dict[str, Callable[[Any], Any]] = {
    "routine": decode_routine,
    "streak": decode_streak,
    "history": decode_history,
    "last_rollover_date": decode_last_rollover_date,
}


class Repository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---------- Key-value store ----------
    def get(self, key: str) -> Optional[bytes]:
        try:
            row = self.conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"read {key!r} failed: {e}") from e
        if row is None:
            return None
        value = row["value"]
        return value.encode("utf-8") if isinstance(value, str) else bytes(value)

    def set(self, key: str, value: bytes) -> None:
        self.set_many({key: value})

    def set_many(self, items: Dict[str, bytes]) -> None:
        """Write all items in one transaction: either every key is updated or none is."""
        try:
            with self.conn:
                self.conn.executemany(
                    "INSERT INTO kv(key,value) VALUES(?,?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                    [(k, sqlite3.Binary(v)) for k, v in items.items()],
                )
        except sqlite3.Error as e:
            raise StoreError(f"write {sorted(items)} failed: {e}") from e

    # ---------- App state mirror ----------
    def load_state(self) -> AppState:
        """
        Build an AppState from the mirror. Absent keys fall back to defaults;
        an unreadable value is logged and treated as absent.
        """
        state = AppState()
        for name, key in STATE_KEYS.items():
            raw = self.get(key)
            if raw is None:
                continue
            try:
                value = json.loads(raw.decode("utf-8"))
                if value is None:
                    continue
                setattr(state, name, _DECODERS[name](value))
            except (ValueError, RecursionError, ShapeMismatch) as e:
                logger.warning("Ignoring stored %s: %s", key, e)
        return state

    def save_state(self, state: AppState, fields: Optional[Iterable[str]] = None) -> None:
        names = list(STATE_KEYS) if fields is None else list(fields)
        self.set_many({STATE_KEYS[n]: _encode_field(state, n) for n in names})

    # ---------- Settings ----------
    def get_settings(self) -> AppSettings:
        try:
            poll = int(self._get_setting("poll_interval_seconds", "60"))
        except ValueError:
            poll = 60
        return AppSettings(
            poll_interval_seconds=max(MIN_POLL_INTERVAL_SECONDS, poll),
            backup_dir=self._get_setting("backup_dir", ""),
        )

    def set_poll_interval_seconds(self, seconds: int) -> None:
        self._set_setting("poll_interval_seconds", str(max(MIN_POLL_INTERVAL_SECONDS, int(seconds))))

    def set_backup_dir(self, path: str) -> None:
        self._set_setting("backup_dir", path)

    def _get_setting(self, key: str, default: str) -> str:
        try:
            row = self.conn.execute("SELECT value FROM settings WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"read setting {key!r} failed: {e}") from e
        return row["value"] if row else default

    def _set_setting(self, key: str, value: str) -> None:
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO settings(key,value) VALUES(?,?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                    (key, value),
                )
        except sqlite3.Error as e:
            raise StoreError(f"write setting {key!r} failed: {e}") from e
