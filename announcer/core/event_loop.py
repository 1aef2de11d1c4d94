"""Single-threaded timer loop driving the announcement scheduler.

Every timer callback and every controller call runs on one worker thread.
Flask request threads hand work over with :meth:`EventLoop.run_sync` and
wait for the result, so the scheduling state never needs its own locks.
"""

from __future__ import annotations

import datetime as _dt
import heapq
import itertools
import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ..utils.timezone import get_local_timezone

_logger = logging.getLogger("event_loop")


class SystemClock:
    """Wall clock in the facility timezone plus a monotonic clock."""

    def __init__(self, tz: Optional[ZoneInfo] = None):
        self.tz = tz or get_local_timezone()

    def now(self) -> _dt.datetime:
        return _dt.datetime.now(tz=self.tz)

    def monotonic(self) -> float:
        return time.monotonic()


class TimerHandle:
    """Handle returned by ``call_later``/``call_repeating``."""

    __slots__ = ("due", "callback", "args", "interval", "cancelled")

    def __init__(self, due: float, callback: Callable[..., Any], args: Tuple[Any, ...],
                 interval: Optional[float] = None):
        self.due = due
        self.callback = callback
        self.args = args
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "armed"
        return f"<TimerHandle {getattr(self.callback, '__name__', self.callback)} due={self.due:.3f} {state}>"


class TimerQueue:
    """Heap of pending timers shared by the threaded loop and test doubles.

    Subclasses provide :meth:`time` and may override :meth:`_wakeup`.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        raise NotImplementedError

    def _wakeup(self) -> None:
        pass

    def _push(self, handle: TimerHandle) -> None:
        with self._lock:
            heapq.heappush(self._heap, (handle.due, next(self._seq), handle))
        self._wakeup()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self.time() + max(0.0, delay), callback, args)
        self._push(handle)
        return handle

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return self.call_later(0.0, callback, *args)

    def call_repeating(self, interval: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds until the handle is cancelled.

        Each run is re-armed from the previous due time so ticks do not drift.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(self.time() + interval, callback, args, interval)
        self._push(handle)
        return handle

    def _next_due(self) -> Optional[float]:
        with self._lock:
            while self._heap and self._heap[0][2].cancelled:
                heapq.heappop(self._heap)
            return self._heap[0][0] if self._heap else None

    def _pop_due(self, now: float) -> Optional[TimerHandle]:
        with self._lock:
            while self._heap:
                due, _, handle = self._heap[0]
                if handle.cancelled:
                    heapq.heappop(self._heap)
                    continue
                if due > now:
                    return None
                heapq.heappop(self._heap)
                return handle
            return None

    def _run_handle(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            return
        if handle.interval is not None:
            handle.due += handle.interval
            with self._lock:
                heapq.heappush(self._heap, (handle.due, next(self._seq), handle))
        try:
            handle.callback(*handle.args)
        except Exception:
            _logger.exception("Timer callback %r failed", handle.callback)

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for _, _, handle in self._heap if not handle.cancelled)


class EventLoop(TimerQueue):
    """Timer loop running on a dedicated daemon thread."""

    def __init__(self, clock: Optional[SystemClock] = None, name: str = "AnnouncerLoop"):
        super().__init__()
        self.clock = clock or SystemClock()
        self._name = name
        self._cond = threading.Condition(self._lock)
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    def time(self) -> float:
        return self.clock.monotonic()

    def _wakeup(self) -> None:
        with self._cond:
            self._cond.notify()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def in_loop_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()
        _logger.info("🔁 Event loop started")

    def stop(self, timeout: float = 5.0) -> None:
        with self._cond:
            self._stopping = True
            self._cond.notify()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        _logger.info("🛑 Event loop stopped")

    def _run(self) -> None:
        while True:
            with self._cond:
                handle = None
                while not self._stopping:
                    handle = self._pop_due(self.time())
                    if handle is not None:
                        break
                    next_due = self._next_due()
                    timeout = None if next_due is None else max(0.0, next_due - self.time())
                    self._cond.wait(timeout)
                if self._stopping:
                    return
            self._run_handle(handle)

    def run_sync(self, fn: Callable[..., Any], *args: Any, timeout: Optional[float] = 10.0) -> Any:
        """Execute ``fn`` on the loop thread and return its result.

        Exceptions raised by ``fn`` are re-raised in the calling thread.
        """
        if self.in_loop_thread():
            return fn(*args)
        if not self.running:
            raise RuntimeError("Event loop is not running")

        future: Future = Future()

        def _runner() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn(*args))
            except BaseException as exc:
                future.set_exception(exc)

        self.call_soon(_runner)
        return future.result(timeout)
