"""
Conversion between model objects and their JSON-ready form.

The same dict shapes are used for the store mirror and for backup snapshots.
Field names follow the established backup format:

    task:   {id, title, time, category, days, reminder, completed, skipped}
    record: {date, completed, total, streak}

Decoders raise ShapeMismatch; they never raise anything else for bad input.
"""
from __future__ import annotations
from datetime import date
from typing import Any, Dict, List, Optional

from .errors import ShapeMismatch
from .models import Task, TaskStatus, DailyStatRecord, WEEKDAY_TAGS, HISTORY_CAPACITY
from .periods import parse_day


def task_to_dict(task: Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "time": task.scheduled_time,
        "category": task.category,
        "days": list(task.days_of_week) if task.days_of_week is not None else None,
        "reminder": task.reminder_time,
        "completed": task.status == TaskStatus.COMPLETED,
        "skipped": task.status == TaskStatus.SKIPPED,
    }


def record_to_dict(record: DailyStatRecord) -> Dict[str, Any]:
    return {
        "date": record.date.isoformat(),
        "completed": record.completed_count,
        "total": record.total_count,
        "streak": record.streak_at_recording,
    }


def _status_from(raw: Dict[str, Any]) -> TaskStatus:
    s = raw.get("status")
    if isinstance(s, str):
        try:
            return TaskStatus(s.lower())
        except ValueError:
            pass
    # Two-flag form; "completed" wins if both are set
    if raw.get("completed") is True:
        return TaskStatus.COMPLETED
    if raw.get("skipped") is True:
        return TaskStatus.SKIPPED
    return TaskStatus.PENDING


def _days_from(value: Any) -> Optional[tuple]:
    if not isinstance(value, list):
        return None
    tags = {str(v).strip().lower()[:3] for v in value if isinstance(v, str)}
    return tuple(t for t in WEEKDAY_TAGS if t in tags)


def _opt_str(raw: Dict[str, Any], key: str, default: str = "") -> str:
    v = raw.get(key)
    return v if isinstance(v, str) else default


def task_from_dict(raw: Any) -> Task:
    if not isinstance(raw, dict):
        raise ShapeMismatch("routine", f"task entry is {type(raw).__name__}, not an object")
    tid = raw.get("id")
    if isinstance(tid, bool) or not isinstance(tid, (str, int)) or tid == "":
        raise ShapeMismatch("routine", "task entry without a usable id")
    return Task(
        id=str(tid),
        title=_opt_str(raw, "title"),
        scheduled_time=_opt_str(raw, "time"),
        category=_opt_str(raw, "category", "other"),
        reminder_time=_opt_str(raw, "reminder"),
        days_of_week=_days_from(raw.get("days")),
        status=_status_from(raw),
    )


def _count(raw: Dict[str, Any], key: str) -> int:
    v = raw.get(key)
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise ShapeMismatch("stats", f"record field {key!r} is not a non-negative integer")
    return v


def record_from_dict(raw: Any) -> DailyStatRecord:
    if not isinstance(raw, dict):
        raise ShapeMismatch("stats", f"record is {type(raw).__name__}, not an object")
    d = raw.get("date")
    if not isinstance(d, str):
        raise ShapeMismatch("stats", "record without a date string")
    try:
        day = parse_day(d)
    except ValueError:
        raise ShapeMismatch("stats", f"unparseable record date {d!r}") from None

    total = _count(raw, "total")
    completed = min(_count(raw, "completed"), total)
    streak = _count(raw, "streak") if "streak" in raw else 0
    return DailyStatRecord(
        date=day,
        completed_count=completed,
        total_count=total,
        streak_at_recording=streak,
    )


def decode_routine(value: Any) -> List[Task]:
    if not isinstance(value, list):
        raise ShapeMismatch("routine", f"expected a list, got {type(value).__name__}")
    return [task_from_dict(t) for t in value]


def decode_streak(value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ShapeMismatch("streak", f"expected an integer, got {type(value).__name__}")
    if value < 0:
        raise ShapeMismatch("streak", "negative streak")
    return value


def decode_history(value: Any) -> List[DailyStatRecord]:
    """Decode, order by date, keep the last record per date and the newest entries."""
    if not isinstance(value, list):
        raise ShapeMismatch("stats", f"expected a list, got {type(value).__name__}")
    by_date: Dict[date, DailyStatRecord] = {}
    for raw in value:
        rec = record_from_dict(raw)
        by_date[rec.date] = rec
    ordered = [by_date[d] for d in sorted(by_date)]
    return ordered[-HISTORY_CAPACITY:]


def decode_last_rollover_date(value: Any) -> date:
    if not isinstance(value, str):
        raise ShapeMismatch("lastResetDate", f"expected a date string, got {type(value).__name__}")
    try:
        return parse_day(value)
    except ValueError:
        raise ShapeMismatch("lastResetDate", f"unparseable date {value!r}") from None
