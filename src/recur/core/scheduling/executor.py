"""Tick executor - what happens each time an operation's timer fires.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TICK                                                                         │
│                                                                               │
│   backend drops fire (previous one unfinished) ──► skip()                    │
│   fire ──► execution_guard.acquire(blocking=False)                           │
│               │ busy ───────────────────────────────► skip (no queue, no err)│
│               ▼                                                               │
│            state_lock: entry live and status not PAUSED/CANCELLED?           │
│               │ no ─────────────────────────────────► skip                   │
│               ▼                                                               │
│            last_run_start = now, status = EXECUTING                          │
│               ▼                                                               │
│            work() in LogContext(operation=name)                              │
│               │ raises ──► last_fault = exc, publish fault                   │
│               ▼                                                               │
│            last_run_finish = now                                             │
│            state_lock: EXECUTING -> IDLE (a CANCELLED/PAUSED that landed     │
│                        mid-run is kept)                                      │
│               ▼                                                               │
│            execution_guard.release()                                         │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from recur.core.errors import CallbackFault
from recur.core.logging import LogContext, get_logger
from recur.core.timestamps import to_iso8601

from .operation import OperationStatus, RecurringOperation

if TYPE_CHECKING:
    from .manager import _RegistryEntry

logger = get_logger(__name__)


@dataclass
class ManagerStats:
    """Counters shared by a manager and all of its tick executors."""

    ticks_executed: int = 0
    ticks_skipped: int = 0
    ticks_faulted: int = 0
    operations_started: int = 0
    operations_cancelled: int = 0
    last_tick: datetime | None = None
    last_fault: str | None = None
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record(self, counter: str, *, at: datetime | None = None, fault: str | None = None) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + 1)
            if at is not None:
                self.last_tick = at
            if fault is not None:
                self.last_fault = fault

    def reset(self) -> None:
        """Zero every counter in place; executors keep their reference."""
        with self._lock:
            self.ticks_executed = 0
            self.ticks_skipped = 0
            self.ticks_faulted = 0
            self.operations_started = 0
            self.operations_cancelled = 0
            self.last_tick = None
            self.last_fault = None

    def to_dict(self) -> dict[str, int | str | None]:
        return {
            "ticks_executed": self.ticks_executed,
            "ticks_skipped": self.ticks_skipped,
            "ticks_faulted": self.ticks_faulted,
            "operations_started": self.operations_started,
            "operations_cancelled": self.operations_cancelled,
            "last_tick": to_iso8601(self.last_tick),
            "last_fault": self.last_fault,
        }


class TickExecutor:
    """Timer callback bound to one registry entry.

    Never raises: work faults are recorded on the handle and published on
    its fault stream.
    """

    def __init__(
        self,
        entry: _RegistryEntry,
        clock: Callable[[], datetime],
        stats: ManagerStats,
    ) -> None:
        self.entry = entry
        self.clock = clock
        self.stats = stats

    def __call__(self) -> None:
        handle = self.entry.handle
        if not handle._execution_guard.acquire(blocking=False):
            self.skip("overlap")
            return
        try:
            self._run(handle)
        finally:
            handle._execution_guard.release()

    def skip(self, reason: str = "pending") -> None:
        """Count a fire that never reached the work function."""
        self.stats.record("ticks_skipped")
        logger.debug("tick_skipped", operation=self.entry.name, reason=reason)

    def _begin(self, handle: RecurringOperation) -> bool:
        with handle._state_lock:
            if not self.entry.active or handle._status in (
                OperationStatus.PAUSED,
                OperationStatus.CANCELLED,
            ):
                return False
            handle._last_run_start = self.clock()
            handle._status = OperationStatus.EXECUTING
        handle._emit_status_changed()
        return True

    def _run(self, handle: RecurringOperation) -> None:
        if not self._begin(handle):
            self.skip(handle.status.value)
            return

        fault: Exception | None = None
        try:
            with LogContext(operation=self.entry.name):
                self.entry.work()
        except Exception as exc:
            fault = exc
            self._capture_fault(handle, exc)
        finally:
            self._finish(handle, fault)

    def _capture_fault(self, handle: RecurringOperation, exc: Exception) -> None:
        with handle._state_lock:
            handle._last_fault = exc
        record = CallbackFault.from_exception(self.entry.name, exc)
        self.stats.record("ticks_faulted", fault=record.message)
        logger.warning("operation_faulted", **record.to_dict())
        handle._emit_fault(exc)

    def _finish(self, handle: RecurringOperation, fault: Exception | None) -> None:
        finished_at = self.clock()
        with handle._state_lock:
            handle._last_run_finish = finished_at
            if fault is None:
                handle._last_fault = None
            returned_to_idle = handle._status is OperationStatus.EXECUTING
            if returned_to_idle:
                handle._status = OperationStatus.IDLE
        self.stats.record("ticks_executed", at=finished_at)
        if returned_to_idle:
            handle._emit_status_changed()
