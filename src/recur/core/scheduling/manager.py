"""Operation manager - the registry of recurring operations.

Manifesto:
    One table per process maps operation names to live timers. Names are
    unique while registered, every lifecycle command resolves through the
    table, and the handle's status only changes under its own state lock,
    whether the change comes from a command or from a tick.

┌──────────────────────────────────────────────────────────────────────────────┐
│  OPERATION MANAGER                                                            │
│                                                                               │
│   start(op, interval, work)                                                   │
│      ├── validate handle, work, interval, name uniqueness                    │
│      ├── _entries[name] = _RegistryEntry(timer=backend.create_timer(...))    │
│      └── status = IDLE                                                        │
│                                                                               │
│   pause(op)    timer.change(None, None)             status = PAUSED          │
│   resume(op)   timer.change(0 | interval, interval) status = IDLE            │
│   cancel(op)   timer.dispose(), del _entries[name]  status = CANCELLED       │
│                                                                               │
│   Lock order: registry lock ──► handle state lock.                           │
│   Notifications are published after both are released.                      │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    recur, scheduling, registry, lifecycle, concurrency

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from recur.core.errors import (
    ActionAlreadySpecifiedError,
    CancelledOperationResumeError,
    DuplicateOperationNameError,
    InvalidIntervalError,
    MissingWorkError,
    UninitializedOperationError,
)
from recur.core.logging import get_logger
from recur.core.settings import RecurSettings, get_settings

from .executor import ManagerStats, TickExecutor
from .operation import OperationStatus, RecurringOperation, WorkFunction
from .protocol import BackendHealth, PeriodicTimer, TimerBackend
from .thread_backend import ThreadTimerBackend

logger = get_logger(__name__)

Interval = float | int | timedelta


@dataclass(eq=False)
class _RegistryEntry:
    """Binds a registered name to its handle, work function and live timer."""

    name: str
    interval: float
    handle: RecurringOperation
    work: WorkFunction
    timer: PeriodicTimer | None = None
    active: bool = True


@dataclass
class ManagerHealth:
    """Health status for an operation manager."""

    healthy: bool
    backend: BackendHealth | dict
    operations: int = 0
    paused: int = 0
    executing: int = 0
    stats: ManagerStats = field(default_factory=ManagerStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend.to_dict() if isinstance(self.backend, BackendHealth) else self.backend,
            "operations": self.operations,
            "paused": self.paused,
            "executing": self.executing,
            "stats": self.stats.to_dict(),
        }


def _interval_seconds(name: str, interval: Interval) -> float:
    if isinstance(interval, timedelta):
        seconds = interval.total_seconds()
    elif isinstance(interval, (int, float)) and not isinstance(interval, bool):
        seconds = float(interval)
    else:
        raise InvalidIntervalError(name, interval)
    if seconds <= 0:
        raise InvalidIntervalError(name, interval)
    return seconds


def _resolve_name(operation: RecurringOperation | None) -> str:
    if operation is None:
        raise UninitializedOperationError()
    return operation.get_name()


class OperationManager:
    """Registry and lifecycle controller for recurring operations.

    Example:
        >>> manager = OperationManager()
        >>> op = RecurringOperation("refresh-cache")
        >>> manager.start(op, interval=30.0, work=refresh_cache)
        >>> manager.pause(op)
        >>> manager.resume(op, start_immediately=True)
        >>> manager.cancel(op)
        >>> manager.shutdown()
    """

    def __init__(
        self,
        backend: TimerBackend | None = None,
        settings: RecurSettings | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            backend: Timer backend (default: ThreadTimerBackend)
            settings: Runtime settings (default: process settings)
        """
        self.settings = settings or get_settings()
        self.backend = backend or ThreadTimerBackend(settings=self.settings)
        self._entries: dict[str, _RegistryEntry] = {}
        self._lock = threading.Lock()
        self._stats = ManagerStats()
        self._closed = False

    # === Lifecycle commands ===

    def start(
        self,
        operation: RecurringOperation | None,
        interval: Interval,
        work: WorkFunction | None = None,
        start_immediately: bool = False,
    ) -> None:
        """Register ``operation`` and begin firing it every ``interval``.

        Args:
            operation: Handle to register
            interval: Seconds (or a timedelta) between fires
            work: Work function; omit when the handle carries its own
            start_immediately: First fire now instead of after one interval

        Raises:
            UninitializedOperationError: Handle is None or unnamed
            ActionAlreadySpecifiedError: Work given for a handle that has work
            MissingWorkError: No work function anywhere
            InvalidIntervalError: Interval is not a positive duration
            DuplicateOperationNameError: Name already registered
        """
        name = _resolve_name(operation)
        if work is not None and operation.work is not None:
            raise ActionAlreadySpecifiedError(name)
        work = work if work is not None else operation.work
        if work is None:
            raise MissingWorkError(name)
        if not callable(work):
            raise TypeError(f"work must be callable, got {work!r}")
        seconds = _interval_seconds(name, interval)

        with self._lock:
            if self._closed:
                raise RuntimeError("OperationManager has been shut down")
            existing = self._entries.get(name)
            if existing is not None:
                raise DuplicateOperationNameError(name).with_context(
                    interval_seconds=existing.interval
                )
            if operation._registered:
                # Same handle still registered with another manager
                raise DuplicateOperationNameError(name)

            entry = _RegistryEntry(name=name, interval=seconds, handle=operation, work=work)
            executor = TickExecutor(entry, self.backend.now, self._stats)
            entry.timer = self.backend.create_timer(
                executor,
                None,
                None,
                name=name,
                on_skip=executor.skip,
            )
            with operation._state_lock:
                operation._status = OperationStatus.IDLE
                operation._registered = True
            self._entries[name] = entry

        self._stats.record("operations_started")
        operation._emit_status_changed()

        # Armed only after the IDLE notification so no tick can overtake it
        with operation._state_lock:
            if entry.active and operation._status is OperationStatus.IDLE:
                entry.timer.change(0.0 if start_immediately else seconds, seconds)

        logger.info(
            "operation_started",
            operation=name,
            interval_seconds=seconds,
            start_immediately=start_immediately,
            backend=self.backend.name,
        )

    def pause(self, operation: RecurringOperation | None) -> bool:
        """Suspend an operation's timer.

        A tick that is already running finishes normally.

        Returns:
            True if paused, False if the name is not registered
        """
        name = _resolve_name(operation)
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                return False
            handle = entry.handle
            with handle._state_lock:
                entry.timer.change(None, None)
                handle._status = OperationStatus.PAUSED

        handle._emit_status_changed()
        logger.info("operation_paused", operation=name)
        return True

    def resume(
        self,
        operation: RecurringOperation | None,
        start_immediately: bool = False,
    ) -> bool:
        """Re-arm an operation's timer.

        Args:
            operation: Handle to resume
            start_immediately: Fire now instead of after one full interval

        Returns:
            True if resumed, False if the name is not registered

        Raises:
            CancelledOperationResumeError: The handle has been cancelled
        """
        name = _resolve_name(operation)
        if operation.is_cancelled:
            raise CancelledOperationResumeError(name)

        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                return False
            handle = entry.handle
            with handle._state_lock:
                if handle._status is OperationStatus.CANCELLED:
                    raise CancelledOperationResumeError(name)
                entry.timer.change(
                    0.0 if start_immediately else entry.interval, entry.interval
                )
                # A running tick moves EXECUTING -> IDLE itself
                changed = handle._status is not OperationStatus.EXECUTING
                if changed:
                    handle._status = OperationStatus.IDLE

        if changed:
            handle._emit_status_changed()
        logger.info("operation_resumed", operation=name, start_immediately=start_immediately)
        return True

    def cancel(self, operation: RecurringOperation | None) -> bool:
        """Stop an operation for good and free its name.

        A tick that is already running finishes; the handle stays CANCELLED.

        Returns:
            True if cancelled, False if the name is not registered
        """
        name = _resolve_name(operation)
        with self._lock:
            entry = self._entries.pop(name, None)
            if entry is None:
                return False
            handle = self._retire(entry)

        self._stats.record("operations_cancelled")
        handle._emit_status_changed()
        logger.info("operation_cancelled", operation=name)
        return True

    def _retire(self, entry: _RegistryEntry) -> RecurringOperation:
        """Dispose an entry's timer and mark its handle CANCELLED (registry lock held)."""
        entry.active = False
        entry.timer.dispose()
        handle = entry.handle
        with handle._state_lock:
            handle._status = OperationStatus.CANCELLED
            handle._registered = False
        return handle

    # === Queries ===

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def names(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def get_operation(self, name: str) -> RecurringOperation | None:
        """Return the handle registered under ``name``, if any."""
        with self._lock:
            entry = self._entries.get(name)
            return entry.handle if entry else None

    def get_interval(self, name: str) -> float | None:
        with self._lock:
            entry = self._entries.get(name)
            return entry.interval if entry else None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_registered(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # === Shutdown ===

    def shutdown(self, wait: bool = True) -> None:
        """Cancel every registered operation and stop the timer backend."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            entries = list(self._entries.values())
            self._entries.clear()
            handles = [self._retire(entry) for entry in entries]

        for handle in handles:
            self._stats.record("operations_cancelled")
            handle._emit_status_changed()
        self.backend.shutdown(wait=wait)
        logger.info("operation_manager_shutdown", cancelled=len(handles))

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> OperationManager:
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()

    # === Health & Stats ===

    def health(self) -> ManagerHealth:
        with self._lock:
            statuses = [entry.handle.status for entry in self._entries.values()]
        backend_health = self.backend.health()
        return ManagerHealth(
            healthy=not self._closed and backend_health.get("healthy", False),
            backend=backend_health,
            operations=len(statuses),
            paused=statuses.count(OperationStatus.PAUSED),
            executing=statuses.count(OperationStatus.EXECUTING),
            stats=self._stats,
        )

    def get_stats(self) -> ManagerStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats.reset()


# ---------------------------------------------------------------------------
# Process-wide default manager
# ---------------------------------------------------------------------------

_default_manager: OperationManager | None = None
_default_lock = threading.Lock()


def get_manager() -> OperationManager:
    """Get the process-wide manager, creating it on first use.

    Prefer constructing an ``OperationManager`` and passing it to the code
    that needs it; this accessor is for callers that want one shared table.
    """
    global _default_manager
    with _default_lock:
        if _default_manager is None or _default_manager.is_closed:
            _default_manager = OperationManager()
        return _default_manager


def set_manager(manager: OperationManager) -> None:
    """Replace the process-wide manager."""
    global _default_manager
    with _default_lock:
        _default_manager = manager


def reset_manager(wait: bool = True) -> None:
    """Shut the process-wide manager down and forget it."""
    global _default_manager
    with _default_lock:
        manager, _default_manager = _default_manager, None
    if manager is not None:
        manager.shutdown(wait=wait)
