"""Persistence strategies.

The store calls the same action-level hooks whichever strategy is active:

* ``LocalStrategy`` ignores the hooks and instead watches the store's change
  signals, rewriting the whole state file on every change (ticks included).
* ``RemoteStrategy`` never watches ticks.  Each hook turns the action's
  result into one field-level write and queues it on a ``BackgroundWriter``.
  Because every toggle writes ``last_tick_at``, any other reader can rebuild
  running time with the catch-up step instead of needing 1 Hz writes.
"""

from abc import ABC, abstractmethod

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

from wt.common.logger import log
from wt.core.config import load_remote_settings
from wt.core.timer import COUNTER_FIELDS
from wt.storage import local
from wt.storage.client import get_supabase_client
from wt.storage.mapping import (
    fields_to_row,
    history_to_row,
    running_state_row,
    timer_to_row,
)
from wt.storage.remote import RepositoryFactory


#region === Background writer ===

class _WriteJob(QRunnable):

    def __init__(self, writer, label, fn):
        super().__init__()
        self._writer = writer
        self._label = label
        self._fn = fn
        self.setAutoDelete(True)

    def run(self):
        self._writer._run(self._label, self._fn)


# Runs remote writes off the event loop thread. One worker thread, so writes reach the server in the order the
# actions happened. Failures are logged and announced through write_failed; local state is never touched.
class BackgroundWriter(QObject):

    write_failed = Signal(str, str)

    def __init__(self, inline=False, parent=None):
        super().__init__(parent)
        self._inline = inline
        self._pool = None
        if not inline:
            self._pool = QThreadPool(self)
            self._pool.setMaxThreadCount(1)
        self.failures = 0

    def submit(self, label, fn):
        if self._inline:
            self._run(label, fn)
        else:
            self._pool.start(_WriteJob(self, label, fn))

    def _run(self, label, fn):
        try:
            fn()
            log.debug(f"Remote write '{label}' succeeded")
        except Exception as e:
            # Remote write errors come from several layers (HTTP, PostgREST, auth). None of them may undo local state.
            self.failures += 1
            log.exception(f"Remote write '{label}' failed, local state kept")
            self.write_failed.emit(label, str(e))

    # Blocks until every queued write has finished (or msecs runs out). Returns False on timeout.
    def wait(self, msecs=-1):
        if self._pool is None:
            return True
        return self._pool.waitForDone(msecs)

#endregion === Background writer ===

#region === Strategies ===

class PersistenceStrategy(ABC):

    # Returns (timers, history) exactly as stored. Catch-up happens in the caller.
    @abstractmethod
    def load(self):
        ...

    def attach(self, store):
        pass

    def timer_added(self, timer):
        pass

    def timer_updated(self, timer, fields):
        pass

    def timer_deleted(self, timer_id):
        pass

    def timers_toggled(self, timers):
        pass

    def time_logged(self, timer):
        pass

    def week_archived(self, record, timers):
        pass

    def close(self):
        pass


class LocalStrategy(PersistenceStrategy):

    name = "local"

    def __init__(self):
        self._store = None

    def load(self):
        state = local.load_state()
        return state["timers"], state["history"]

    def attach(self, store):
        self._store = store
        store.timers_changed.connect(self._save)
        store.history_changed.connect(self._save)

    def _save(self):
        if self._store is None:
            return
        try:
            local.save_state(self._store.timers, self._store.history)
        except OSError:
            log.exception("Failed to write local state.json")

    def close(self):
        self._save()


class RemoteStrategy(PersistenceStrategy):

    name = "remote"

    def __init__(self, repositories: RepositoryFactory, writer: BackgroundWriter):
        self._repos = repositories
        self._writer = writer

    @property
    def writer(self):
        return self._writer

    # Each half degrades to empty on its own; nothing is retried.
    def load(self):
        try:
            timers = self._repos.timers.find_all()
        except Exception:
            log.exception("Failed to load timers from the remote store, starting this session empty")
            timers = []
        try:
            history = self._repos.history.find_all()
        except Exception:
            log.exception("Failed to load week history from the remote store, starting this session empty")
            history = []
        log.info(f"Loaded {len(timers)} timers and {len(history)} weeks for user {self._repos.timers.user_id}")
        return timers, history

    # Rows are built right away from the values passed in, the queued job only ships them.
    def timer_added(self, timer):
        row = timer_to_row(timer, self._repos.timers.user_id)
        self._writer.submit(f"insert timer {timer.id}", lambda: self._repos.timers.insert(row))

    # A counter edit ships with the running state, so remote readers never pair the new count with a stale stamp.
    def timer_updated(self, timer, fields):
        patch = fields_to_row(fields)
        if COUNTER_FIELDS & set(fields):
            patch.update(running_state_row(timer))
        self._writer.submit(f"update timer {timer.id}", lambda: self._repos.timers.update(timer.id, patch))

    def timer_deleted(self, timer_id):
        self._writer.submit(f"delete timer {timer_id}", lambda: self._repos.timers.delete(timer_id))

    def timers_toggled(self, timers):
        for timer in timers:
            self._queue_running_state(f"toggle timer {timer.id}", timer)

    def time_logged(self, timer):
        self._queue_running_state(f"log time on timer {timer.id}", timer)

    # The history insert and every timer reset are separate jobs, so one failing doesn't stop the rest.
    def week_archived(self, record, timers):
        row = history_to_row(record, self._repos.history.user_id)
        self._writer.submit(f"insert week {record.id}", lambda: self._repos.history.insert(row))
        for timer in timers:
            self._queue_running_state(f"reset timer {timer.id}", timer)

    def _queue_running_state(self, label, timer):
        patch = running_state_row(timer)
        timer_id = timer.id
        self._writer.submit(label, lambda: self._repos.timers.update(timer_id, patch))

    def close(self):
        if not self._writer.wait(30_000):
            log.warning("Timed out waiting for queued remote writes to finish")


def build_strategy(identity=None, remote=None, writer=None, client=None):
    """Local storage when nobody is signed in, the remote store otherwise."""
    if identity is None:
        log.info("No signed-in identity, using local-only storage")
        return LocalStrategy()
    if client is None:
        client = get_supabase_client(remote or load_remote_settings(), identity)
    log.info(f"Signed in as {identity.user_id}, using remote storage")
    return RemoteStrategy(RepositoryFactory(client, identity.user_id), writer or BackgroundWriter())

#endregion === Strategies ===
