"""One-shot timers used for question deadlines and session expiry."""
import threading
from typing import Callable


class ScheduledTask:
    """Handle for a callback that fires once after ``delay`` seconds.

    ``cancel()`` is idempotent and guarantees the callback will not start
    afterwards. A task that has already started running is left alone.
    """

    def __init__(self, delay: float, callback: Callable[[], None], label: str = ''):
        self.delay = delay
        self.label = label
        self._callback = callback
        self._lock = threading.Lock()
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> bool:
        with self._lock:
            if self._fired:
                return False
            self._cancelled = True
            return True

    def fire(self) -> bool:
        """Run the callback unless cancelled or already run."""
        with self._lock:
            if self._cancelled or self._fired:
                return False
            self._fired = True
        self._callback()
        return True

    def __repr__(self):
        state = 'cancelled' if self._cancelled else 'fired' if self._fired else 'pending'
        return f'<ScheduledTask {self.label or "?"} delay={self.delay}s {state}>'


class BackgroundTimers:
    """Timer factory backed by Socket.IO background tasks.

    Using the Socket.IO server's own sleep keeps the timers cooperative
    under eventlet/gevent and plain threads under the threading mode.
    """

    def __init__(self, socketio, logger=None):
        self.socketio = socketio
        self.logger = logger

    def schedule(self, delay: float, callback: Callable[[], None], label: str = '') -> ScheduledTask:
        task = ScheduledTask(delay, callback, label)
        self.socketio.start_background_task(self._run, task)
        return task

    def _run(self, task: ScheduledTask) -> None:
        self.socketio.sleep(task.delay)
        try:
            task.fire()
        except Exception:
            if self.logger is not None:
                self.logger.exception(f"[timer-error] task={task.label}")
