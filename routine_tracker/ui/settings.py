from __future__ import annotations
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QLabel, QHBoxLayout, QPushButton, QSpinBox, QLineEdit, QFileDialog
)
from ..repository import Repository, MIN_POLL_INTERVAL_SECONDS


class SettingsDialog(QDialog):
    def __init__(self, repo: Repository, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.setWindowTitle("Settings")
        self.setMinimumWidth(360)

        settings = self.repo.get_settings()
        layout = QVBoxLayout(self)

        layout.addWidget(QLabel("Check for a new day every (seconds)"))
        self.poll_seconds = QSpinBox()
        self.poll_seconds.setRange(MIN_POLL_INTERVAL_SECONDS, 60 * 60)
        self.poll_seconds.setValue(settings.poll_interval_seconds)
        layout.addWidget(self.poll_seconds)

        layout.addWidget(QLabel("Backup folder (empty = app data folder)"))
        dir_row = QHBoxLayout()
        self.backup_dir = QLineEdit(settings.backup_dir)
        dir_row.addWidget(self.backup_dir)
        browse = QPushButton("Browse…")
        browse.clicked.connect(self._browse)
        dir_row.addWidget(browse)
        layout.addLayout(dir_row)

        btns = QHBoxLayout()
        save = QPushButton("Save")
        save.clicked.connect(self.save)
        btns.addWidget(save)

        cancel = QPushButton("Cancel")
        cancel.clicked.connect(self.reject)
        btns.addWidget(cancel)

        layout.addLayout(btns)

    def _browse(self) -> None:
        d = QFileDialog.getExistingDirectory(self, "Backup folder", self.backup_dir.text())
        if d:
            self.backup_dir.setText(d)

    def save(self) -> None:
        self.repo.set_poll_interval_seconds(int(self.poll_seconds.value()))
        self.repo.set_backup_dir(self.backup_dir.text().strip())
        self.accept()
