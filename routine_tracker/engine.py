from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .errors import StoreError
from .models import AppState, Task, TaskStatus, DailyStatRecord, append_history
from .periods import calendar_day, needs_rollover, now_local
from .repository import Repository, STATE_KEYS
from .snapshot import Snapshot, export_snapshot, decode_snapshot_text, merge_snapshot

logger = logging.getLogger(__name__)


def next_status_on_done(status: TaskStatus) -> TaskStatus:
    return TaskStatus.PENDING if status == TaskStatus.COMPLETED else TaskStatus.COMPLETED


def next_status_on_skip(status: TaskStatus) -> TaskStatus:
    return TaskStatus.PENDING if status == TaskStatus.SKIPPED else TaskStatus.SKIPPED


@dataclass(frozen=True)
class DayOutcome:
    completed_count: int
    total_count: int

    @property
    def all_completed(self) -> bool:
        return self.total_count > 0 and self.completed_count == self.total_count


def compute_outcome(routine: Iterable[Task]) -> DayOutcome:
    """
    Outcome of the day being closed. The total is the whole routine, including
    tasks not scheduled on that day.
    """
    tasks = list(routine)
    done = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    return DayOutcome(completed_count=done, total_count=len(tasks))


class RoutineEngine:
    """
    Single owner of AppState. Every public operation runs under one lock,
    mutates the state in place and mirrors the touched fields to the store
    before returning.
    """

    def __init__(self, repo: Repository, state: Optional[AppState] = None):
        self.repo = repo
        self.state = state if state is not None else AppState()
        self._lock = threading.RLock()
        # set when a persist failed; the next persist then writes every field
        self._dirty = False

    @classmethod
    def load(cls, repo: Repository) -> "RoutineEngine":
        return cls(repo, repo.load_state())

    # ---------- Persistence ----------
    def _persist(self, fields: Iterable[str]) -> None:
        names = list(STATE_KEYS) if self._dirty else list(fields)
        if not names:
            return
        try:
            self.repo.save_state(self.state, names)
        except StoreError:
            self._dirty = True
            raise
        self._dirty = False

    # ---------- Task status ----------
    def mark_done(self, task_id: str) -> AppState:
        return self._transition(task_id, next_status_on_done)

    def mark_skipped(self, task_id: str) -> AppState:
        return self._transition(task_id, next_status_on_skip)

    def _transition(self, task_id: str, rule) -> AppState:
        with self._lock:
            for i, t in enumerate(self.state.routine):
                if t.id == task_id:
                    self.state.routine[i] = replace(t, status=rule(t.status))
                    self._persist(["routine"])
                    break
            return self.state

    def tasks_for_day(self, day: date) -> List[Task]:
        with self._lock:
            return [t for t in self.state.routine if t.is_scheduled_on(day)]

    def save_routine(self, tasks: Iterable[Task]) -> AppState:
        """Replace the routine with an edited list; order is kept as given."""
        with self._lock:
            self.state.routine = list(tasks)
            self._persist(["routine"])
            return self.state

    # ---------- Rollover ----------
    def check_and_rollover(self, now: Optional[datetime] = None) -> Optional[DailyStatRecord]:
        """
        Run the day-boundary check for `now` (local time when omitted).

        First run only records today as the last rollover day. A crossed
        boundary closes the tracked day and returns its record. Repeated
        calls within one day do nothing and return None.
        """
        now = now if now is not None else now_local()
        with self._lock:
            today = calendar_day(now)
            last = self.state.last_rollover_date
            if not needs_rollover(now, last):
                return None
            if last is None:
                logger.info("First run: tracking starts %s", today.isoformat())
                self.state.last_rollover_date = today
                self._persist(["last_rollover_date"])
                return None
            return self._rollover(closed_day=last, today=today)

    def poll(self, now: Optional[datetime] = None) -> Optional[DailyStatRecord]:
        """Like check_and_rollover, but skips the tick when another operation is running."""
        if not self._lock.acquire(blocking=False):
            logger.debug("Rollover check skipped: engine busy")
            return None
        try:
            return self.check_and_rollover(now)
        finally:
            self._lock.release()

    def _rollover(self, closed_day: date, today: date) -> DailyStatRecord:
        s = self.state
        outcome = compute_outcome(s.routine)
        s.streak = s.streak + 1 if outcome.all_completed else 0

        record = DailyStatRecord(
            date=closed_day,
            completed_count=outcome.completed_count,
            total_count=outcome.total_count,
            streak_at_recording=s.streak,
        )
        s.history = append_history(s.history, record)
        s.routine = [replace(t, status=TaskStatus.PENDING) for t in s.routine]
        s.last_rollover_date = today

        logger.info(
            "Rolled over %s -> %s: %d/%d done, streak %d",
            closed_day.isoformat(), today.isoformat(),
            outcome.completed_count, outcome.total_count, s.streak,
        )
        self._persist(STATE_KEYS)
        return record

    # ---------- Import / export ----------
    def export_snapshot(self) -> Snapshot:
        with self._lock:
            return export_snapshot(self.state)

    def import_snapshot(self, text: Union[str, bytes]) -> List[str]:
        """
        Merge a backup into live state. Raises ParseError (nothing merged) when
        the text is not a JSON object; otherwise returns the fields applied.
        """
        candidate = decode_snapshot_text(text)
        with self._lock:
            applied = merge_snapshot(self.state, candidate)
            logger.info("Imported fields: %s", ", ".join(applied) or "none")
            self._persist(applied)
            return applied

    def import_snapshot_file(self, path: Union[str, Path]) -> List[str]:
        return self.import_snapshot(Path(path).read_bytes())

