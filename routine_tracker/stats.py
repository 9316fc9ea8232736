from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import Task, TaskStatus, DailyStatRecord
from .periods import is_same_iso_week, is_same_month, chart_label


@dataclass(frozen=True)
class StatsSummary:
    weekly_rate: int
    monthly_rate: int
    current_streak: int  # from history, may lag the live streak by one rollover
    perfect_days: int
    categories: Dict[str, int]
    completion_series: List[Tuple[str, float]]
    streak_series: List[Tuple[str, int]]


def completion_rate(records: Iterable[DailyStatRecord]) -> int:
    """
    Percentage of completed tasks over the given records, 0..100.
    Records with a zero total are ignored; no counted tasks gives 0.
    """
    completed = 0
    total = 0
    for r in records:
        if r.total_count <= 0:
            continue
        completed += r.completed_count
        total += r.total_count
    if total == 0:
        return 0
    # half up, not banker's rounding
    return int(math.floor(100 * completed / total + 0.5))


def weekly_rate(history: Sequence[DailyStatRecord], today: date) -> int:
    return completion_rate(r for r in history if is_same_iso_week(r.date, today))


def monthly_rate(history: Sequence[DailyStatRecord], today: date) -> int:
    return completion_rate(r for r in history if is_same_month(r.date, today))


def current_streak_display(history: Sequence[DailyStatRecord]) -> int:
    return history[-1].streak_at_recording if history else 0


def perfect_day_count(history: Iterable[DailyStatRecord]) -> int:
    return sum(1 for r in history if r.is_perfect)


def category_distribution(routine: Iterable[Task]) -> Dict[str, int]:
    """Tasks per category over the live routine, in first-seen order."""
    out: Dict[str, int] = {}
    for t in routine:
        out[t.category] = out.get(t.category, 0) + 1
    return out


def completion_series(history: Iterable[DailyStatRecord]) -> List[Tuple[str, float]]:
    return [
        (chart_label(r.date), (r.completed_count / r.total_count) * 100 if r.total_count > 0 else 0.0)
        for r in history
    ]


def streak_series(history: Iterable[DailyStatRecord]) -> List[Tuple[str, int]]:
    return [(chart_label(r.date), r.streak_at_recording) for r in history]


def today_progress(routine: Iterable[Task], today: date) -> Tuple[int, int]:
    """(completed, scheduled) over the tasks scheduled for `today`."""
    scheduled = [t for t in routine if t.is_scheduled_on(today)]
    done = sum(1 for t in scheduled if t.status == TaskStatus.COMPLETED)
    return done, len(scheduled)


def summarize(history: Sequence[DailyStatRecord], routine: Sequence[Task], today: date) -> StatsSummary:
    return StatsSummary(
        weekly_rate=weekly_rate(history, today),
        monthly_rate=monthly_rate(history, today),
        current_streak=current_streak_display(history),
        perfect_days=perfect_day_count(history),
        categories=category_distribution(routine),
        completion_series=completion_series(history),
        streak_series=streak_series(history),
    )
