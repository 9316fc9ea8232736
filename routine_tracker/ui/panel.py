from __future__ import annotations
from pathlib import Path
from typing import Optional, Callable

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QListWidget, QListWidgetItem,
    QMessageBox, QMenu, QTabWidget, QWidget, QPlainTextEdit, QFileDialog, QProgressBar,
    QFormLayout
)

from ..db import data_dir
from ..editing import upsert_task, remove_task
from ..engine import RoutineEngine
from ..errors import ParseError, StoreError
from ..models import TaskStatus
from ..periods import now_local, calendar_day
from ..repository import Repository
from ..snapshot import write_backup
from ..stats import summarize, today_progress
from .task_editor import TaskEditor, CATEGORIES

STATUS_TEXT = {
    TaskStatus.PENDING: "",
    TaskStatus.COMPLETED: "DONE",
    TaskStatus.SKIPPED: "skipped",
}

CATEGORY_LABELS = dict(CATEGORIES)


class TrackerPanel(QDialog):
    def __init__(self, engine: RoutineEngine, repo: Repository, parent=None):
        super().__init__(parent)
        self.engine = engine
        self.repo = repo
        self.setWindowTitle("Daily Routine")
        self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)
        self.setMinimumWidth(520)
        self.setAttribute(Qt.WA_DeleteOnClose, False)

        self.layout = QVBoxLayout(self)
        self.header = QLabel()
        self.layout.addWidget(self.header)

        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_today_tab(), "Today")
        self.tabs.addTab(self._build_routine_tab(), "All tasks")
        self.tabs.addTab(self._build_stats_tab(), "Stats")
        self.tabs.addTab(self._build_backup_tab(), "Backup")
        self.tabs.currentChanged.connect(lambda _: self.refresh())
        self.layout.addWidget(self.tabs)

        self.refresh()

    # -------- layout ----------
    def _build_today_tab(self) -> QWidget:
        w = QWidget()
        v = QVBoxLayout(w)

        self.progress = QProgressBar()
        self.progress.setTextVisible(True)
        v.addWidget(self.progress)

        self.list = QListWidget()
        self.list.setContextMenuPolicy(Qt.CustomContextMenu)
        self.list.customContextMenuRequested.connect(self._show_task_menu_at)
        self.list.itemDoubleClicked.connect(lambda it: self._done(str(it.data(Qt.UserRole))))
        v.addWidget(self.list)

        status_row = QHBoxLayout()
        btn_done = QPushButton("Done")
        btn_done.clicked.connect(lambda: self._with_selected(self._done))
        status_row.addWidget(btn_done)
        btn_skip = QPushButton("Skip")
        btn_skip.clicked.connect(lambda: self._with_selected(self._skip))
        status_row.addWidget(btn_skip)
        v.addLayout(status_row)

        self.footer = QLabel("Double-click to mark done, right-click for more options")
        self.footer.setStyleSheet("""
            QLabel {
                color: #888;
                font-size: 11px;
                padding-top: 6px;
            }
        """)
        self.footer.setAlignment(Qt.AlignCenter)
        v.addWidget(self.footer)
        return w

    def _build_routine_tab(self) -> QWidget:
        # Every task, including ones not scheduled today
        w = QWidget()
        v = QVBoxLayout(w)

        self.routine_list = QListWidget()
        self.routine_list.itemDoubleClicked.connect(lambda it: self.edit_task(str(it.data(Qt.UserRole))))
        v.addWidget(self.routine_list)

        # --- Manage tasks row ---
        manage_row = QHBoxLayout()

        self.btn_add_task = QPushButton("Add task…")
        self.btn_add_task.clicked.connect(self.add_task)
        manage_row.addWidget(self.btn_add_task)

        self.btn_edit_task = QPushButton("Edit task…")
        self.btn_edit_task.clicked.connect(lambda: self.edit_task())
        manage_row.addWidget(self.btn_edit_task)

        self.btn_delete_task = QPushButton("Delete task")
        self.btn_delete_task.clicked.connect(self.delete_task)
        manage_row.addWidget(self.btn_delete_task)

        v.addLayout(manage_row)

        note = QLabel("Every task counts toward the daily total, scheduled today or not")
        note.setStyleSheet("QLabel { color: #888; font-size: 11px; }")
        note.setAlignment(Qt.AlignCenter)
        v.addWidget(note)
        return w

    def _build_stats_tab(self) -> QWidget:
        w = QWidget()
        v = QVBoxLayout(w)
        form = QFormLayout()
        self.lbl_week = QLabel()
        self.lbl_month = QLabel()
        self.lbl_streak = QLabel()
        self.lbl_perfect = QLabel()
        form.addRow("This week", self.lbl_week)
        form.addRow("This month", self.lbl_month)
        form.addRow("Current streak", self.lbl_streak)
        form.addRow("Perfect days", self.lbl_perfect)
        v.addLayout(form)

        v.addWidget(QLabel("Last 30 days"))
        self.history_list = QListWidget()
        v.addWidget(self.history_list)

        v.addWidget(QLabel("Tasks by category"))
        self.category_list = QListWidget()
        v.addWidget(self.category_list)
        return w

    def _build_backup_tab(self) -> QWidget:
        w = QWidget()
        v = QVBoxLayout(w)

        v.addWidget(QLabel("Save a backup of your routine, streak and statistics"))
        btn_export = QPushButton("Download backup")
        btn_export.clicked.connect(self.export_backup)
        v.addWidget(btn_export)

        v.addWidget(QLabel("Paste backup data below or load a backup file"))
        self.import_text = QPlainTextEdit()
        self.import_text.setPlaceholderText("Paste your backup data here…")
        v.addWidget(self.import_text)

        row = QHBoxLayout()
        btn_import = QPushButton("Import data")
        btn_import.clicked.connect(self.import_pasted)
        row.addWidget(btn_import)
        btn_file = QPushButton("Load backup file…")
        btn_file.clicked.connect(self.import_file)
        row.addWidget(btn_file)
        v.addLayout(row)
        return w

    # -------- refresh ----------
    def selected_task_id(self) -> Optional[str]:
        item = self.list.currentItem()
        if not item:
            return None
        return str(item.data(Qt.UserRole))

    def selected_routine_task_id(self) -> Optional[str]:
        item = self.routine_list.currentItem()
        if not item:
            return None
        return str(item.data(Qt.UserRole))

    def refresh(self) -> None:
        selected_id = self.selected_task_id()

        state = self.engine.state
        today = calendar_day(now_local())
        self.header.setText(f"{today.strftime('%A, %B %d, %Y')}    Streak: {state.streak} days")

        done, scheduled = today_progress(state.routine, today)
        self.progress.setRange(0, max(scheduled, 1))
        self.progress.setValue(done)
        self.progress.setFormat(f"{done} of {scheduled} tasks completed")

        self.list.blockSignals(True)
        try:
            self.list.clear()
            selected_row = None

            for idx, t in enumerate(self.engine.tasks_for_day(today)):
                parts = [t.title]
                if t.scheduled_time:
                    parts.insert(0, t.scheduled_time)
                text = "  ".join(parts)
                text += f"  [{CATEGORY_LABELS.get(t.category, 'Other')}]"
                status = STATUS_TEXT[t.status]
                if status:
                    text += f"  ({status})"

                it = QListWidgetItem(text)
                it.setData(Qt.UserRole, t.id)
                self.list.addItem(it)

                if selected_id is not None and t.id == selected_id:
                    selected_row = idx

            if selected_row is not None:
                self.list.setCurrentRow(selected_row)
        finally:
            self.list.blockSignals(False)

        self._refresh_routine()
        self._refresh_stats(today)

    def _refresh_routine(self) -> None:
        selected_id = self.selected_routine_task_id()
        self.routine_list.blockSignals(True)
        try:
            self.routine_list.clear()
            for idx, t in enumerate(self.engine.state.routine):
                days = ", ".join(d.capitalize() for d in t.days_of_week or ()) or "never scheduled"
                it = QListWidgetItem(f"{t.title}  [{CATEGORY_LABELS.get(t.category, 'Other')}]  {days}")
                it.setData(Qt.UserRole, t.id)
                self.routine_list.addItem(it)
                if t.id == selected_id:
                    self.routine_list.setCurrentRow(idx)
        finally:
            self.routine_list.blockSignals(False)

    def _refresh_stats(self, today) -> None:
        state = self.engine.state
        s = summarize(state.history, state.routine, today)
        self.lbl_week.setText(f"{s.weekly_rate}%")
        self.lbl_month.setText(f"{s.monthly_rate}%")
        self.lbl_streak.setText(str(s.current_streak))
        self.lbl_perfect.setText(str(s.perfect_days))

        self.history_list.clear()
        for (label, pct), (_, streak) in zip(reversed(s.completion_series), reversed(s.streak_series)):
            self.history_list.addItem(f"{label}: {pct:.0f}% done, streak {streak}")

        self.category_list.clear()
        for cat, n in s.categories.items():
            self.category_list.addItem(f"{CATEGORY_LABELS.get(cat, cat)}: {n}")

    # -------- task menu ----------
    def _show_task_menu_at(self, pos) -> None:
        item = self.list.itemAt(pos)
        if item is None:
            return

        # Ensure the right-clicked item becomes selected
        self.list.setCurrentItem(item)

        tid = str(item.data(Qt.UserRole))
        menu = QMenu(self)
        menu.addAction("Mark done / undo").triggered.connect(lambda: self._done(tid))
        menu.addAction("Skip today / undo").triggered.connect(lambda: self._skip(tid))
        menu.addSeparator()
        menu.addAction("Edit…").triggered.connect(lambda: self.edit_task(tid))
        menu.exec(self.list.mapToGlobal(pos))

    def _with_selected(self, action: Callable[[str], None]) -> None:
        tid = self.selected_task_id()
        if tid is None:
            return
        action(tid)

    def _done(self, task_id: str) -> None:
        self._run(lambda: self.engine.mark_done(task_id))

    def _skip(self, task_id: str) -> None:
        self._run(lambda: self.engine.mark_skipped(task_id))

    def _run(self, op: Callable[[], object]) -> bool:
        try:
            op()
        except StoreError as e:
            QMessageBox.warning(self, "Not saved", f"Could not save your changes:\n\n{e}")
            return False
        finally:
            self.refresh()
        return True

    # -------- routine editing ----------
    def add_task(self) -> None:
        dlg = TaskEditor(parent=self)
        if dlg.exec() and dlg.task() is not None:
            routine = upsert_task(self.engine.state.routine, dlg.task())
            self._run(lambda: self.engine.save_routine(routine))

    def edit_task(self, tid: Optional[str] = None) -> None:
        tid = tid or self.selected_routine_task_id()
        if tid is None:
            QMessageBox.information(self, "No selection", "Select a task in All tasks first.")
            return
        current = next((t for t in self.engine.state.routine if t.id == tid), None)
        if current is None:
            return
        dlg = TaskEditor(current, parent=self)
        if dlg.exec() and dlg.task() is not None:
            routine = upsert_task(self.engine.state.routine, dlg.task())
            self._run(lambda: self.engine.save_routine(routine))

    def delete_task(self) -> None:
        tid = self.selected_routine_task_id()
        if tid is None:
            QMessageBox.information(self, "No selection", "Select a task in All tasks first.")
            return

        confirm = QMessageBox.question(self, "Delete task", "Delete the selected task from your routine?")
        if confirm == QMessageBox.StandardButton.Yes:
            routine = remove_task(self.engine.state.routine, tid)
            self._run(lambda: self.engine.save_routine(routine))

    # -------- backup ----------
    def export_backup(self) -> None:
        settings = self.repo.get_settings()
        directory = Path(settings.backup_dir) if settings.backup_dir else data_dir() / "backups"
        try:
            path = write_backup(self.engine.export_snapshot(), directory, calendar_day(now_local()))
        except OSError as e:
            QMessageBox.warning(self, "Backup failed", str(e))
            return
        QMessageBox.information(self, "Backup saved", f"Backup written to:\n{path}")

    def import_pasted(self) -> None:
        text = self.import_text.toPlainText()
        if not text.strip():
            return
        if self._import(lambda: self.engine.import_snapshot(text)):
            self.import_text.clear()

    def import_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Load backup", "", "Backup (*.json)")
        if path:
            self._import(lambda: self.engine.import_snapshot_file(path))

    def _import(self, op: Callable[[], list]) -> bool:
        try:
            applied = op()
        except ParseError as e:
            QMessageBox.warning(self, "Import failed", f"Error importing data. Please check the format.\n\n{e}")
            return False
        except (StoreError, OSError) as e:
            QMessageBox.warning(self, "Import failed", str(e))
            return False
        finally:
            self.refresh()
        if applied:
            QMessageBox.information(self, "Imported", "Data imported successfully.")
        else:
            QMessageBox.information(self, "Nothing imported", "The backup had no usable fields.")
        return True

    def closeEvent(self, event):
        event.ignore()
        self.hide()

    def showEvent(self, event) -> None:
        super().showEvent(event)
        self.refresh()  # immediate refresh on open
