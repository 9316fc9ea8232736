from __future__ import annotations
import logging
import sys
import signal

from PySide6.QtWidgets import QApplication, QSystemTrayIcon, QMenu, QStyle
from PySide6.QtGui import QAction, QCursor
from PySide6.QtCore import QTimer

from .db import connect, migrate, data_dir
from .engine import RoutineEngine
from .models import DailyStatRecord
from .repository import Repository
from .scheduler import RolloverScheduler
from .notifications import Notifier
from .ui.panel import TrackerPanel
from .ui.settings import SettingsDialog

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    log_file = data_dir() / "app.log"

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def main() -> int:
    setup_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("Routine Tracker")
    icon = app.style().standardIcon(QStyle.StandardPixmap.SP_DialogApplyButton)
    app.setWindowIcon(icon)
    app.setQuitOnLastWindowClosed(False)

    # --- Dev convenience: allow Ctrl-C to quit without ugly tracebacks ---
    # Qt's event loop eats SIGINT unless we pump it. This makes Ctrl-C behave.
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    _sig_timer = QTimer()
    _sig_timer.start(250)
    _sig_timer.timeout.connect(lambda: None)

    conn = connect()
    migrate(conn)
    repo = Repository(conn)
    engine = RoutineEngine.load(repo)
    settings = repo.get_settings()
    logger.info(
        "Loaded %d tasks, streak %d, %d history records",
        len(engine.state.routine), engine.state.streak, len(engine.state.history),
    )

    tray = QSystemTrayIcon()
    tray.setIcon(icon)
    tray.setToolTip("Routine Tracker")

    panel = TrackerPanel(engine, repo)

    tray.messageClicked.connect(lambda: _show_panel(panel))

    menu = QMenu()

    act_open = QAction("Open")
    act_open.triggered.connect(lambda: _show_panel(panel))
    menu.addAction(act_open)

    menu.addSeparator()

    scheduler = RolloverScheduler(engine, settings.poll_interval_seconds)

    act_settings = QAction("Settings…")
    act_settings.triggered.connect(lambda: _open_settings(repo, panel, scheduler))
    menu.addAction(act_settings)

    menu.addSeparator()

    def quit_cleanly():
        # Ensure tray icon disappears immediately; avoids some Qt shutdown warnings.
        scheduler.stop()
        tray.hide()
        panel.close()
        app.quit()

    act_quit = QAction("Quit")
    act_quit.triggered.connect(quit_cleanly)
    menu.addAction(act_quit)

    tray.setContextMenu(menu)

    if sys.platform.startswith("win"):
        def _show_menu_on_left_click(reason: QSystemTrayIcon.ActivationReason):
            if reason == QSystemTrayIcon.ActivationReason.Trigger:
                cm = tray.contextMenu()
                if cm is not None:
                    cm.popup(QCursor.pos())

        tray.activated.connect(_show_menu_on_left_click)

    notifier = Notifier(tray)

    scheduler.rolled_over.connect(lambda rec: _on_rollover(rec, notifier, panel))
    scheduler.store_failed.connect(lambda msg: notifier.error("Could not save", msg))

    tray.show()
    scheduler.start()
    return app.exec()


def _show_panel(panel: TrackerPanel) -> None:
    panel.refresh()
    panel.show()
    panel.raise_()
    panel.activateWindow()


def _on_rollover(record: DailyStatRecord, notifier: Notifier, panel: TrackerPanel) -> None:
    notifier.day_closed(record)
    panel.refresh()


def _open_settings(repo: Repository, panel: TrackerPanel, scheduler: RolloverScheduler) -> None:
    dlg = SettingsDialog(repo, parent=panel)
    if dlg.exec():
        scheduler.set_interval_seconds(repo.get_settings().poll_interval_seconds)
        panel.refresh()


if __name__ == "__main__":
    sys.exit(main())
