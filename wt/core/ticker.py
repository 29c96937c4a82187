from PySide6.QtCore import QObject, QTimer, Signal

from wt.common.logger import log

# Default tick period. The store works from wall-clock deltas, so a late or skipped timeout only delays the update,
# it never loses time.
TICK_INTERVAL_MS = 1000


# Drives TimerStore.tick() from a QTimer on the Qt event loop. Single threaded by construction: the timeout handler
# runs on the same thread as every user action, so the two never interleave mid-mutation.
class Ticker(QObject):

    # Re-emitted after every timeout, changed or not. Handy for displays that want a 1 Hz heartbeat.
    ticked = Signal()

    def __init__(self, store, interval_ms=TICK_INTERVAL_MS, parent=None):
        super().__init__(parent)
        self._store = store
        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_ms))
        self._timer.timeout.connect(self._on_timeout)
        self.tick_count = 0

    @property
    def interval_ms(self):
        return self._timer.interval()

    def is_active(self):
        return self._timer.isActive()

    def start(self):
        if not self._timer.isActive():
            self._timer.start()
            log.debug(f"Ticker started at {self._timer.interval()}ms")

    def stop(self):
        if self._timer.isActive():
            self._timer.stop()
            log.debug(f"Ticker stopped after {self.tick_count} ticks")

    def _on_timeout(self):
        self.tick_count += 1
        self._store.tick()
        self.ticked.emit()
