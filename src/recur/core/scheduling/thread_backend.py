"""Threading-based timer backend.

This is the DEFAULT backend for recur. It uses Python's stdlib threading
and ``concurrent.futures`` modules and has no external dependencies.

┌──────────────────────────────────────────────────────────────────────────────┐
│  THREAD BACKEND ARCHITECTURE                                                  │
│                                                                               │
│   create_timer()                                                              │
│      │                                                                        │
│      ▼                                                                        │
│   ┌──────────────────────────────────────────┐                               │
│   │  Daemon timer thread (one per operation) │                               │
│   │                                          │                               │
│   │  while not disposed:                     │                               │
│   │      cond.wait(until next_fire)          │                               │
│   │      next_fire += period                 │                               │
│   │      previous fire unfinished? on_skip() │                               │
│   │      else executor.submit(callback) ─────┼──► ThreadPoolExecutor         │
│   └──────────────────────────────────────────┘    (shared, max_workers)      │
│                                                                               │
│  Each timer has at most one fire queued or running in the pool. A fire that  │
│  lands while the previous one is unfinished is dropped and reported through  │
│  on_skip, so a saturated pool never builds a backlog. A timer thread that    │
│  wakes up late drops the fires it missed.                                    │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any

from recur.core.settings import RecurSettings, get_settings
from recur.core.timestamps import to_iso8601, utc_now

from .protocol import BackendHealth, SkipCallback, TimerCallback

logger = logging.getLogger(__name__)


class _ThreadTimer:
    """Re-armable periodic timer driven by its own daemon thread."""

    def __init__(
        self,
        backend: ThreadTimerBackend,
        callback: TimerCallback,
        due_seconds: float | None,
        period_seconds: float | None,
        name: str,
        on_skip: SkipCallback | None = None,
    ) -> None:
        self._backend = backend
        self._callback = callback
        self._on_skip = on_skip
        self._name = name
        self._pending: Future | None = None
        self._cond = threading.Condition()
        self._next_fire: float | None = None
        self._period: float | None = None
        self._disposed = False
        self._arm(due_seconds, period_seconds)
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"recur-timer-{name}"
        )
        self._thread.start()

    def _arm(self, due_seconds: float | None, period_seconds: float | None) -> None:
        if due_seconds is None:
            self._next_fire = None
        else:
            self._next_fire = time.monotonic() + max(due_seconds, 0.0)
        self._period = period_seconds

    def change(self, due_seconds: float | None, period_seconds: float | None) -> None:
        with self._cond:
            if self._disposed:
                return
            self._arm(due_seconds, period_seconds)
            self._cond.notify()

    def dispose(self) -> None:
        with self._cond:
            self._disposed = True
            self._next_fire = None
            self._cond.notify()

    @property
    def is_armed(self) -> bool:
        return not self._disposed and self._next_fire is not None

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the timer thread to exit. Returns True if it did."""
        if self._thread is threading.current_thread():
            return False
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _following_fire(self, fired_at: float) -> float | None:
        if self._period is None:
            return None
        now = time.monotonic()
        following = fired_at + self._period
        if following <= now:
            missed = int((now - fired_at) // self._period)
            following = fired_at + (missed + 1) * self._period
            logger.debug(f"Timer {self._name!r} dropped {missed} late fire(s)")
        return following

    def _run(self) -> None:
        with self._cond:
            while not self._disposed:
                if self._next_fire is None:
                    self._cond.wait()
                    continue
                remaining = self._next_fire - time.monotonic()
                if remaining > 0:
                    self._cond.wait(remaining)
                    continue
                self._next_fire = self._following_fire(self._next_fire)
                if self._pending is not None and not self._pending.done():
                    self._backend._drop(self._on_skip, self._name)
                    continue
                self._pending = self._backend._dispatch(self._callback, self._name)
        self._backend._forget(self)


class ThreadTimerBackend:
    """Threading-based timer backend.

    Example:
        >>> backend = ThreadTimerBackend(max_workers=4)
        >>> timer = backend.create_timer(lambda: print("tick"), 0.0, 5.0, name="demo")
        >>> # ... later ...
        >>> timer.dispose()
        >>> backend.shutdown()
    """

    name = "thread"

    def __init__(
        self,
        max_workers: int | None = None,
        settings: RecurSettings | None = None,
    ) -> None:
        """Initialize thread backend.

        Args:
            max_workers: Worker threads for callbacks (default from settings).
            settings: Settings to read defaults from (default: process settings).
        """
        settings = settings or get_settings()
        self._max_workers = max_workers or settings.max_workers
        self._shutdown_timeout = settings.shutdown_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="recur-tick"
        )
        self._timers: set[_ThreadTimer] = set()
        self._lock = threading.Lock()
        self._fire_count = 0
        self._skip_count = 0
        self._last_fire: datetime | None = None
        self._closed = False

    def create_timer(
        self,
        callback: TimerCallback,
        due_seconds: float | None,
        period_seconds: float | None,
        name: str = "",
        on_skip: SkipCallback | None = None,
    ) -> _ThreadTimer:
        with self._lock:
            if self._closed:
                raise RuntimeError("ThreadTimerBackend has been shut down")
            timer = _ThreadTimer(
                self, callback, due_seconds, period_seconds, name, on_skip
            )
            self._timers.add(timer)
        return timer

    def now(self) -> datetime:
        return utc_now()

    def _dispatch(self, callback: TimerCallback, name: str) -> Future | None:
        with self._lock:
            if self._closed:
                return None
            self._fire_count += 1
            self._last_fire = utc_now()
            return self._executor.submit(self._invoke, callback, name)

    def _drop(self, on_skip: SkipCallback | None, name: str) -> None:
        with self._lock:
            if self._closed:
                return
            self._skip_count += 1
        logger.debug(f"Timer {name!r} dropped a fire, previous one still pending")
        if on_skip is not None:
            self._invoke(on_skip, name)

    @staticmethod
    def _invoke(callback: TimerCallback, name: str) -> None:
        try:
            callback()
        except Exception as e:
            logger.exception(f"Timer callback for {name!r} failed: {e}")

    def _forget(self, timer: _ThreadTimer) -> None:
        with self._lock:
            self._timers.discard(timer)

    def shutdown(self, wait: bool = True) -> None:
        """Dispose every timer and stop the worker pool.

        With ``wait`` the call blocks until running callbacks finish; callbacks
        that were queued but not started are dropped.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            timers = list(self._timers)

        for timer in timers:
            timer.dispose()
        if wait:
            for timer in timers:
                if not timer.join(self._shutdown_timeout):
                    logger.warning(f"Timer thread {timer._name!r} did not stop cleanly")

        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.info("ThreadTimerBackend shutdown complete")

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        """Return structured health status."""
        with self._lock:
            timers = len(self._timers)
            pending = sum(
                1 for t in self._timers
                if t._pending is not None and not t._pending.done()
            )
        return BackendHealth(
            healthy=not self._closed,
            backend=self.name,
            timers=timers,
            fire_count=self._fire_count,
            skipped_fires=self._skip_count,
            extra={
                "max_workers": self._max_workers,
                "pending": pending,
                "last_fire": to_iso8601(self._last_fire),
            },
        )

    @property
    def is_running(self) -> bool:
        return not self._closed

    @property
    def fire_count(self) -> int:
        return self._fire_count

    @property
    def skip_count(self) -> int:
        return self._skip_count
