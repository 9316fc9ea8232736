from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .errors import ParseError, ShapeMismatch
from .models import AppState, Task, DailyStatRecord
from .serialization import (
    task_to_dict, record_to_dict,
    decode_routine, decode_streak, decode_history, decode_last_rollover_date,
)

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "routine-tracker-backup-"

# wire key -> (AppState attribute, decoder), in merge order
SNAPSHOT_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "routine": ("routine", decode_routine),
    "streak": ("streak", decode_streak),
    "stats": ("history", decode_history),
    "lastResetDate": ("last_rollover_date", decode_last_rollover_date),
}


@dataclass(frozen=True)
class Snapshot:
    routine: Tuple[Task, ...]
    streak: int
    history: Tuple[DailyStatRecord, ...]
    last_rollover_date: Optional[date]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "routine": [task_to_dict(t) for t in self.routine],
            "streak": self.streak,
            "stats": [record_to_dict(r) for r in self.history],
        }
        # no day tracked yet: leave the key out rather than writing null
        if self.last_rollover_date is not None:
            data["lastResetDate"] = self.last_rollover_date.isoformat()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def export_snapshot(state: AppState) -> Snapshot:
    # Tasks and records are frozen, so copying the containers is enough
    return Snapshot(
        routine=tuple(state.routine),
        streak=state.streak,
        history=tuple(state.history),
        last_rollover_date=state.last_rollover_date,
    )


def backup_filename(today: date) -> str:
    return f"{BACKUP_PREFIX}{today.isoformat()}.json"


def write_backup(snapshot: Snapshot, directory: Union[str, Path], today: date) -> Path:
    d = Path(directory)
    d.mkdir(parents=True, exist_ok=True)
    p = d / backup_filename(today)
    p.write_text(snapshot.to_json(), encoding="utf-8")
    return p


def decode_snapshot_text(text: Union[str, bytes]) -> Dict[str, Any]:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(f"backup is not UTF-8 text: {e}") from e
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError is a ValueError; deep nesting and huge integers raise the others
        raise ParseError(f"backup is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"backup must be a JSON object, got {type(data).__name__}")
    return data


def merge_snapshot(state: AppState, candidate: Dict[str, Any]) -> List[str]:
    """
    Overwrite each AppState field whose wire key is present (and not null) and
    well-formed in `candidate`. Malformed fields are logged and skipped without
    affecting the others. Returns the AppState attribute names that changed hands.
    """
    applied: List[str] = []
    for key, (attr, decode) in SNAPSHOT_FIELDS.items():
        if candidate.get(key) is None:
            continue
        try:
            value = decode(candidate[key])
        except ShapeMismatch as e:
            logger.warning("Import skipped %s: %s", key, e.reason)
            continue
        setattr(state, attr, value)
        applied.append(attr)
    return applied
