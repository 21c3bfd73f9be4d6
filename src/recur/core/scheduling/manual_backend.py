"""Simulated-clock timer backend.

Time only moves when the caller says so. ``advance(seconds)`` walks the
simulated clock forward and runs every timer fire that falls inside the
window, in time order, on the calling thread. This makes interval behavior
deterministic in tests: no wall-clock sleeps, no thread scheduling noise.

Work functions can model their own duration with ``backend.sleep(seconds)``.
That advances the clock from inside the running tick, so fires that land
during the "sleep" arrive while the tick still holds its execution guard,
exactly like a slow job on the thread backend.

Example:
    >>> backend = ManualTimerBackend()
    >>> fired = []
    >>> timer = backend.create_timer(lambda: fired.append(backend.elapsed), 0.1, 0.1)
    >>> backend.advance(0.35)
    >>> fired
    [0.1, 0.2, 0.3]
"""

from __future__ import annotations

import itertools
import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import Any

from .protocol import BackendHealth, SkipCallback, TimerCallback

logger = logging.getLogger(__name__)

_MICROS = 1_000_000


def _to_micros(seconds: float) -> int:
    return round(seconds * _MICROS)


class _ManualTimer:
    """Periodic timer on a ManualTimerBackend clock."""

    def __init__(
        self,
        backend: ManualTimerBackend,
        callback: TimerCallback,
        due_seconds: float | None,
        period_seconds: float | None,
        name: str,
        seq: int,
    ) -> None:
        self._backend = backend
        self._callback = callback
        self._name = name
        self._seq = seq
        self._next_fire: int | None = None
        self._period: int | None = None
        self._disposed = False
        self._arm(due_seconds, period_seconds)

    def _arm(self, due_seconds: float | None, period_seconds: float | None) -> None:
        if due_seconds is None:
            self._next_fire = None
        else:
            self._next_fire = self._backend._now + max(_to_micros(due_seconds), 0)
        self._period = None if period_seconds is None else _to_micros(period_seconds)

    def change(self, due_seconds: float | None, period_seconds: float | None) -> None:
        with self._backend._lock:
            if self._disposed:
                return
            self._arm(due_seconds, period_seconds)

    def dispose(self) -> None:
        with self._backend._lock:
            self._disposed = True
            self._next_fire = None
            self._backend._forget(self)

    @property
    def is_armed(self) -> bool:
        return not self._disposed and self._next_fire is not None

    @property
    def next_fire_in(self) -> float | None:
        """Seconds until the next fire, ``None`` when suspended."""
        if self._next_fire is None:
            return None
        return (self._next_fire - self._backend._now) / _MICROS


class ManualTimerBackend:
    """Timer backend driven by an explicitly advanced clock."""

    name = "manual"

    def __init__(self, start: datetime | None = None) -> None:
        """Initialize the simulated clock.

        Args:
            start: Wall-clock datetime that corresponds to elapsed time zero.
        """
        self._epoch = start or datetime(2025, 1, 1, tzinfo=UTC)
        self._now = 0
        self._lock = threading.RLock()
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()
        self._fire_count = 0
        self._closed = False

    def create_timer(
        self,
        callback: TimerCallback,
        due_seconds: float | None,
        period_seconds: float | None,
        name: str = "",
        on_skip: SkipCallback | None = None,
    ) -> _ManualTimer:
        """Create a timer on the simulated clock.

        Fires run inline, so a fire that lands during a nested ``advance``
        reaches ``callback`` and the callback decides what to do with it;
        ``on_skip`` is accepted for protocol compatibility and never called.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("ManualTimerBackend has been shut down")
            timer = _ManualTimer(
                self, callback, due_seconds, period_seconds, name, next(self._seq)
            )
            self._timers.append(timer)
        return timer

    def _forget(self, timer: _ManualTimer) -> None:
        if timer in self._timers:
            self._timers.remove(timer)

    # === Clock ===

    def now(self) -> datetime:
        return self._epoch + timedelta(microseconds=self._now)

    @property
    def elapsed(self) -> float:
        """Simulated seconds since the backend was created."""
        return self._now / _MICROS

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every fire that becomes due.

        Safe to call from inside a timer callback; the nested call runs the
        fires that fall inside its own window and returns.

        Returns:
            Number of fires this call ran itself. Fires run by a nested
            ``advance`` inside a callback are counted by that call.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance the clock backwards ({seconds})")
        with self._lock:
            target = self._now + _to_micros(seconds)
        return self._run_until(target)

    def sleep(self, seconds: float) -> None:
        """Simulated blocking work: advances the clock by ``seconds``."""
        self.advance(seconds)

    def run_pending(self) -> int:
        """Run fires that are due at the current instant."""
        return self.advance(0)

    def _next_due(self, target: int) -> _ManualTimer | None:
        due = [
            t for t in self._timers
            if t._next_fire is not None and t._next_fire <= target
        ]
        if not due:
            return None
        return min(due, key=lambda t: (t._next_fire, t._seq))

    def _run_until(self, target: int) -> int:
        fired = 0
        while True:
            with self._lock:
                timer = self._next_due(target)
                if timer is None:
                    self._now = max(self._now, target)
                    return fired
                self._now = max(self._now, timer._next_fire)
                if timer._period is None:
                    timer._next_fire = None
                else:
                    timer._next_fire += timer._period
                self._fire_count += 1
                callback = timer._callback
                name = timer._name

            fired += 1
            try:
                callback()
            except Exception as e:
                logger.exception(f"Timer callback for {name!r} failed: {e}")

    # === Lifecycle ===

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
            timers = list(self._timers)
        for timer in timers:
            timer.dispose()

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        with self._lock:
            return BackendHealth(
                healthy=not self._closed,
                backend=self.name,
                timers=len(self._timers),
                fire_count=self._fire_count,
                extra={"elapsed_seconds": self.elapsed},
            )

    @property
    def fire_count(self) -> int:
        return self._fire_count

    @property
    def timer_count(self) -> int:
        return len(self._timers)
