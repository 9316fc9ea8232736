from __future__ import annotations
from typing import Iterable, List, Optional

from .models import Task


def task_problem(title: str, days: Iterable[str]) -> Optional[str]:
    """Reason the editor refuses to save a task, or None when it is fine."""
    if not title.strip():
        return "Enter a title for the task."
    if not tuple(days):
        # would count toward every day's total but never show up
        return "Pick at least one day for the task."
    return None


def upsert_task(routine: Iterable[Task], task: Task) -> List[Task]:
    """Replace the task with the same id in place, or append it."""
    out = list(routine)
    for i, t in enumerate(out):
        if t.id == task.id:
            out[i] = task
            return out
    out.append(task)
    return out


def remove_task(routine: Iterable[Task], task_id: str) -> List[Task]:
    return [t for t in routine if t.id != task_id]
