from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, List, Tuple

HISTORY_CAPACITY = 30

# Order matches date.weekday(): 0=Mon ... 6=Sun
WEEKDAY_TAGS: Tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Task:
    id: str
    title: str

    # Descriptive metadata, never interpreted by the engine
    scheduled_time: str = ""  # HH:MM or empty
    category: str = "other"
    reminder_time: str = ""   # HH:MM or empty

    # None means "never scheduled": shown on no day, still counted in totals
    days_of_week: Optional[Tuple[str, ...]] = None

    # Current day only
    status: TaskStatus = TaskStatus.PENDING

    def is_scheduled_on(self, day: date) -> bool:
        if self.days_of_week is None:
            return False
        return WEEKDAY_TAGS[day.weekday()] in self.days_of_week


@dataclass(frozen=True)
class DailyStatRecord:
    date: date
    completed_count: int
    total_count: int
    streak_at_recording: int

    @property
    def is_perfect(self) -> bool:
        return self.total_count > 0 and self.completed_count == self.total_count


@dataclass
class AppState:
    routine: List[Task] = field(default_factory=list)
    streak: int = 0
    history: List[DailyStatRecord] = field(default_factory=list)
    last_rollover_date: Optional[date] = None


@dataclass(frozen=True)
class AppSettings:
    poll_interval_seconds: int  # how often the rollover detector runs
    backup_dir: str             # empty -> <data dir>/backups


def append_history(
    history: List[DailyStatRecord],
    record: DailyStatRecord,
    capacity: int = HISTORY_CAPACITY,
) -> List[DailyStatRecord]:
    """
    Return a new history with `record` appended, keeping ascending dates and
    at most `capacity` entries (oldest evicted first).

    Records dated on or after `record.date` are dropped before appending so a
    history replaced by an import can never end up out of order.
    """
    kept = [r for r in history if r.date < record.date]
    kept.append(record)
    return kept[-capacity:]
