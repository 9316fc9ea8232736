from __future__ import annotations
import uuid
from dataclasses import replace
from typing import Optional, List
from PySide6.QtCore import QTime
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QPushButton,
    QCheckBox, QTimeEdit, QComboBox, QMessageBox
)

from ..editing import task_problem
from ..models import Task, WEEKDAY_TAGS


WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

CATEGORIES = [
    ("health", "Health"),
    ("work", "Work"),
    ("study", "Study"),
    ("personal", "Personal"),
    ("other", "Other"),
]


def _qtime(hhmm: str) -> Optional[QTime]:
    t = QTime.fromString(hhmm, "HH:mm")
    return t if t.isValid() else None


class TaskEditor(QDialog):
    """Edits one task. The result is read with `task()` after exec() accepts."""

    def __init__(self, task: Optional[Task] = None, parent=None):
        super().__init__(parent)
        self._original = task
        self._result: Optional[Task] = None
        self.setWindowTitle("Edit Task" if task else "Add Task")
        self.setMinimumWidth(420)

        layout = QVBoxLayout(self)

        self.title = QLineEdit()
        layout.addWidget(QLabel("Title"))
        layout.addWidget(self.title)

        self.category = QComboBox()
        for key, label in CATEGORIES:
            self.category.addItem(label, key)
        layout.addWidget(QLabel("Category"))
        layout.addWidget(self.category)

        # Optional times; unchecked -> stored as empty string
        self.use_time = QCheckBox("Scheduled time")
        self.time = QTimeEdit()
        self.time.setDisplayFormat("HH:mm")
        self.use_reminder = QCheckBox("Reminder")
        self.reminder = QTimeEdit()
        self.reminder.setDisplayFormat("HH:mm")
        for cb, edit in ((self.use_time, self.time), (self.use_reminder, self.reminder)):
            row = QHBoxLayout()
            row.addWidget(cb)
            row.addWidget(edit)
            cb.toggled.connect(edit.setEnabled)
            edit.setEnabled(False)
            layout.addLayout(row)

        layout.addWidget(QLabel("Days"))
        wd_row = QHBoxLayout()
        self.weekday_checks: List[QCheckBox] = []
        for lab in WEEKDAY_LABELS:
            cb = QCheckBox(lab)
            cb.setChecked(True)  # default every day
            self.weekday_checks.append(cb)
            wd_row.addWidget(cb)
        layout.addLayout(wd_row)

        btns = QHBoxLayout()
        self.btn_cancel = QPushButton("Cancel")
        self.btn_cancel.clicked.connect(self.reject)
        btns.addWidget(self.btn_cancel)

        self.btn_save = QPushButton("Save")
        self.btn_save.clicked.connect(self.save)
        btns.addWidget(self.btn_save)
        layout.addLayout(btns)

        if task is not None:
            self._load(task)

    def _load(self, t: Task) -> None:
        self.title.setText(t.title)
        idx = self.category.findData(t.category)
        self.category.setCurrentIndex(idx if idx >= 0 else self.category.count() - 1)

        for cb, edit, value in (
            (self.use_time, self.time, t.scheduled_time),
            (self.use_reminder, self.reminder, t.reminder_time),
        ):
            qt = _qtime(value)
            cb.setChecked(qt is not None)
            if qt is not None:
                edit.setTime(qt)

        days = t.days_of_week or ()
        for tag, cb in zip(WEEKDAY_TAGS, self.weekday_checks):
            cb.setChecked(tag in days)

    def task(self) -> Optional[Task]:
        return self._result

    def save(self) -> None:
        title = self.title.text().strip()
        days = tuple(tag for tag, cb in zip(WEEKDAY_TAGS, self.weekday_checks) if cb.isChecked())
        problem = task_problem(title, days)
        if problem:
            QMessageBox.information(self, "Cannot save task", problem)
            return

        hhmm = self.time.time().toString("HH:mm") if self.use_time.isChecked() else ""
        reminder = self.reminder.time().toString("HH:mm") if self.use_reminder.isChecked() else ""
        fields = dict(
            title=title,
            category=self.category.currentData(),
            scheduled_time=hhmm,
            reminder_time=reminder,
            days_of_week=days,
        )

        if self._original is None:
            self._result = Task(id=uuid.uuid4().hex, **fields)
        else:
            # editing keeps id and today's status
            self._result = replace(self._original, **fields)
        self.accept()
