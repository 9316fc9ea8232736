from __future__ import annotations
from datetime import datetime, timedelta, date, timezone, tzinfo
from typing import Optional

from .models import WEEKDAY_TAGS


def local_tz() -> tzinfo:
    return datetime.now().astimezone().tzinfo  # type: ignore

def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_local(dt_utc: datetime) -> datetime:
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    return dt_utc.astimezone(local_tz())


def now_local() -> datetime:
    return to_local(now_utc())


def calendar_day(dt: datetime) -> date:
    """Local calendar day of `dt`. Naive datetimes are taken as already local."""
    if dt.tzinfo is None:
        return dt.date()
    return dt.astimezone(local_tz()).date()


def needs_rollover(now: datetime, last_rollover_date: Optional[date]) -> bool:
    """True on first run or once the local day of `now` is past the last rollover day."""
    if last_rollover_date is None:
        return True
    return last_rollover_date < calendar_day(now)


def week_start(d: date) -> date:
    # ISO week, Monday first
    return d - timedelta(days=d.weekday())


def is_same_iso_week(d: date, ref: date) -> bool:
    return week_start(d) == week_start(ref)


def is_same_month(d: date, ref: date) -> bool:
    return (d.year, d.month) == (ref.year, ref.month)


def weekday_tag(d: date) -> str:
    return WEEKDAY_TAGS[d.weekday()]


def parse_day(value: str) -> date:
    """
    Parse `YYYY-MM-DD`, or a full ISO datetime (older backups stored the
    start-of-day timestamp), keeping only the calendar day.
    """
    value = value.strip()
    if len(value) == 10:
        return date.fromisoformat(value)
    # fromisoformat does not accept a trailing "Z" before 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is not None:
        return calendar_day(dt)
    return dt.date()


def chart_label(d: date) -> str:
    """Short axis label, e.g. "Feb 3"."""
    return f"{d.strftime('%b')} {d.day}"
