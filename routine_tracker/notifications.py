from __future__ import annotations
from PySide6.QtWidgets import QSystemTrayIcon

from .models import DailyStatRecord


class Notifier:
    def __init__(self, tray: QSystemTrayIcon):
        self.tray = tray

    def day_closed(self, record: DailyStatRecord) -> None:
        if record.is_perfect:
            title = f"Perfect day! Streak: {record.streak_at_recording}"
        else:
            title = "New day started"
        message = f"{record.date.isoformat()}: {record.completed_count}/{record.total_count} tasks done."
        self.tray.showMessage(title, message, QSystemTrayIcon.MessageIcon.Information, 10_000)

    def error(self, title: str, message: str) -> None:
        self.tray.showMessage(title, message, QSystemTrayIcon.MessageIcon.Warning, 10_000)
