"""Timer backend protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TIMER BACKEND PROTOCOL                                                       │
│                                                                               │
│  Backends control WHEN a recurring operation fires. The OperationManager     │
│  and TickExecutor control WHAT happens on each fire.                         │
│                                                                               │
│   ┌─────────────────┐  create_timer()  ┌──────────────────┐                  │
│   │ OperationManager│ ───────────────► │  TimerBackend    │                  │
│   └─────────────────┘                  │                  │                  │
│            ▲                           │  PeriodicTimer   │                  │
│            │ change()/dispose()        │  per operation   │                  │
│            └────────────────────────── │                  │                  │
│                                        └────────┬─────────┘                  │
│                                                 │ fire                       │
│                                                 ▼                            │
│                                        ┌──────────────────┐                  │
│                                        │  TickExecutor    │                  │
│                                        └──────────────────┘                  │
│                                                                               │
│  Implementations:                                                             │
│  - ThreadTimerBackend: timer threads + worker pool (default)                 │
│  - ManualTimerBackend: simulated clock, advanced explicitly (tests)          │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

TimerCallback = Callable[[], None]
SkipCallback = Callable[[], None]


@runtime_checkable
class PeriodicTimer(Protocol):
    """One repeating timer, owned by a single registry entry.

    Mirrors a re-armable timer: ``change(due, period)`` re-arms it,
    ``change(None, None)`` suspends it, ``dispose()`` stops it for good.
    """

    def change(self, due_seconds: float | None, period_seconds: float | None) -> None:
        """Re-arm the timer.

        Args:
            due_seconds: Delay before the next fire, ``None`` to suspend.
            period_seconds: Delay between subsequent fires, ``None`` for one-shot.
        """
        ...

    def dispose(self) -> None:
        """Stop the timer permanently. Fires already handed off still run."""
        ...

    @property
    def is_armed(self) -> bool:
        """True while a future fire is scheduled."""
        ...


@runtime_checkable
class TimerBackend(Protocol):
    """Protocol for pluggable timer backends.

    Example (custom backend):
        >>> class MyBackend:
        ...     name = "custom"
        ...
        ...     def create_timer(self, callback, due_seconds, period_seconds, name=""):
        ...         return my_loop.call_every(period_seconds, callback, delay=due_seconds)
        ...
        ...     def now(self):
        ...         return datetime.now(UTC)
        ...
        ...     def shutdown(self, wait=True):
        ...         my_loop.stop()
        ...
        ...     def health(self) -> dict:
        ...         return {"healthy": True, "backend": "custom"}
    """

    name: str

    def create_timer(
        self,
        callback: TimerCallback,
        due_seconds: float | None,
        period_seconds: float | None,
        name: str = "",
        on_skip: SkipCallback | None = None,
    ) -> PeriodicTimer:
        """Create and arm a timer that calls ``callback`` on every fire.

        Args:
            on_skip: Called instead of ``callback`` when the backend drops a
                fire because the previous one has not finished yet.
        """
        ...

    def now(self) -> datetime:
        """Current time according to this backend's clock (timezone-aware UTC)."""
        ...

    def shutdown(self, wait: bool = True) -> None:
        """Dispose every timer and release backend resources."""
        ...

    def health(self) -> dict[str, Any]:
        """Return backend health status.

        Returns:
            dict with at least:
                - healthy: bool
                - backend: str
                - timers: int - number of live timers
                - fire_count: int - number of fires handed to callbacks
                - skipped_fires: int - fires dropped by the backend itself
        """
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    timers: int = 0
    fire_count: int = 0
    skipped_fires: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "timers": self.timers,
            "fire_count": self.fire_count,
            "skipped_fires": self.skipped_fires,
            **self.extra,
        }
