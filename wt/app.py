"""Application wiring: storage, catch-up, store and ticker in one place."""

from PySide6.QtCore import QCoreApplication

from wt.common.logger import log
from wt.core import config
from wt.core.reconcile import catch_up
from wt.core.store import TimerStore
from wt.core.ticker import Ticker
from wt.storage.strategy import build_strategy
from wt.util.misc import now_ms


# Makes sure a Qt application object exists. Presentations that bring their own (a QApplication for widgets) create
# it first and this just reuses it.
def ensure_qt_app():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


class WeekTimeApp:
    """Owns one running session of the tracker.

    Load order matters: stored state is read, fast-forwarded to the current
    time, and only then handed to the store and wired to the strategy, so the
    catch-up itself isn't treated as a user action.
    """

    def __init__(self, settings=None, identity=None, strategy=None, clock=now_ms):
        self.qt_app = ensure_qt_app()
        self.settings = settings if settings is not None else config.load_settings()
        self.identity = identity
        self.strategy = strategy or build_strategy(identity)
        self._clock = clock

        timers, history = self.strategy.load()
        timers = catch_up(timers, clock())

        self.store = TimerStore(timers, history, persistence=self.strategy, clock=clock)
        self.strategy.attach(self.store)
        self.ticker = Ticker(self.store, self.settings.get("tick_interval_ms", 1000))
        self._closed = False
        log.info(f"Session ready with {len(timers)} timers ({getattr(self.strategy, 'name', 'custom')} storage)")

    @classmethod
    def from_environment(cls):
        config.load_environment()
        return cls(settings=config.load_settings(), identity=config.load_identity())

    def start(self):
        self.ticker.start()

    # Stops ticking and lets the strategy finish up: pending remote writes are waited on, local state gets a final
    # save. Safe to call more than once.
    def close(self):
        if self._closed:
            return
        self._closed = True
        self.ticker.stop()
        self.strategy.close()
        log.info("Session closed")
