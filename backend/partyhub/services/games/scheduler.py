import logging
import threading
import time
from typing import Callable, Dict, Optional


class TimerHandle:
    """A scheduled callback that can be cancelled until it fires."""

    def __init__(self, name: str, deadline: float):
        self.name = name
        self.deadline = deadline
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def __repr__(self):
        state = 'cancelled' if self.cancelled else 'fired' if self.fired else 'pending'
        return f'<TimerHandle {self.name} {state}>'


class SocketIOScheduler:
    """Runs deferred callbacks as Socket.IO background tasks.

    Every callback executes while holding ``lock``, the same lock inbound
    event handlers take, so callbacks and handlers never interleave. A handle
    cancelled before its callback acquires the lock never fires.
    """

    def __init__(self, socketio, logger: Optional[logging.Logger] = None, heartbeat_sec: float = 0):
        self.socketio = socketio
        self.lock = threading.RLock()
        self.log = logger or logging.getLogger(__name__)
        self.heartbeat_sec = heartbeat_sec

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable, *args, name: str = 'timer') -> TimerHandle:
        delay = max(0.0, float(delay))
        handle = TimerHandle(name, self.now() + delay)
        self.log.info(f"[timer-set] name={name} delay={delay}s deadline={handle.deadline}")
        self.socketio.start_background_task(self._worker, handle, delay, callback, args)
        return handle

    def _worker(self, handle: TimerHandle, delay: float, callback: Callable, args) -> None:
        if self.heartbeat_sec and self.heartbeat_sec > 0:
            slept = 0.0
            while slept < delay and not handle.cancelled:
                step = min(self.heartbeat_sec, delay - slept)
                self.socketio.sleep(step)
                slept += step
                self.log.info(f"[timer-heartbeat] name={handle.name} remaining={max(0.0, delay - slept)}s")
        else:
            self.socketio.sleep(delay)
        with self.lock:
            if handle.cancelled:
                self.log.info(f"[timer-abort] name={handle.name} cancelled")
                return
            handle.fired = True
            self.log.info(f"[timer-fire] name={handle.name}")
            try:
                callback(*args)
            except Exception:
                self.log.exception(f"[timer-error] name={handle.name}")


class TimerSet:
    """The named timers owned by one round.

    Scheduling a name that is already pending replaces the old timer, and
    ``cancel_all`` is called on every exit from the round so no timer can
    fire against a round that has been replaced.
    """

    def __init__(self, scheduler):
        self._scheduler = scheduler
        self._handles: Dict[str, TimerHandle] = {}

    def schedule(self, name: str, delay: float, callback: Callable, *args) -> TimerHandle:
        self.cancel(name)

        def _fire():
            if self._handles.get(name) is handle:
                del self._handles[name]
            callback(*args)

        handle = self._scheduler.call_later(delay, _fire, name=name)
        self._handles[name] = handle
        return handle

    def cancel(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for name in list(self._handles):
            self.cancel(name)

    def __len__(self):
        return len(self._handles)
