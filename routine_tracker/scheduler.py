from __future__ import annotations
import logging
from typing import Optional
from PySide6.QtCore import QObject, QTimer, Signal

from .engine import RoutineEngine
from .errors import StoreError
from .periods import now_local

logger = logging.getLogger(__name__)


class RolloverScheduler(QObject):
    rolled_over = Signal(object)  # DailyStatRecord
    store_failed = Signal(str)

    def __init__(self, engine: RoutineEngine, interval_seconds: int = 60, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.engine = engine
        self.timer = QTimer(self)
        self.timer.setInterval(interval_seconds * 1000)
        self.timer.timeout.connect(self.tick)

    def start(self) -> None:
        self.timer.start()
        # first check right away, before the first interval elapses
        self.tick()

    def stop(self) -> None:
        self.timer.stop()

    def set_interval_seconds(self, seconds: int) -> None:
        self.timer.setInterval(seconds * 1000)

    def tick(self) -> None:
        try:
            record = self.engine.poll(now_local())
        except StoreError as e:
            # State already moved on in memory; the next successful write catches the store up
            logger.exception("Rollover could not be persisted")
            self.store_failed.emit(str(e))
            return
        if record is not None:
            self.rolled_over.emit(record)
