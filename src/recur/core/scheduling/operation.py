"""Recurring operation handle.

A ``RecurringOperation`` is the caller-held record for one recurring task:
its name, live status, last run timestamps, last fault and the two
notification streams. Callers only read it and subscribe to it. Every write
goes through the ``OperationManager`` or the ``TickExecutor``.

Status model::

              start / resume                 tick begins
     ┌──────┐ ───────────────► ┌──────┐ ──────────────────► ┌───────────┐
     │PAUSED│                  │ IDLE │                     │ EXECUTING │
     └──────┘ ◄─────────────── └──────┘ ◄────────────────── └───────────┘
                    pause                   tick finishes
         │              │                          │
         └──────────────┴──────── cancel ──────────┴──────► CANCELLED (terminal)

All boolean flags (``is_paused``, ``is_recurring`` ...) are computed from
``status`` on every read, so they cannot drift out of step with it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from recur.core.errors import UninitializedOperationError, UnnamedOperationError

from .notifications import Notifier

WorkFunction = Callable[[], Any]
StatusChangedHandler = Callable[[], Any]
FaultHandler = Callable[[BaseException], Any]


class OperationStatus(str, Enum):
    """Lifecycle state of a recurring operation."""

    IDLE = "IDLE"            # Recurring (or not yet started), not running work
    EXECUTING = "EXECUTING"  # Work function is running
    PAUSED = "PAUSED"        # Timer suspended, can be resumed
    CANCELLED = "CANCELLED"  # Terminal, can only be started again


class RecurringOperation:
    """Handle for one named recurring operation.

    Example:
        >>> op = RecurringOperation("refresh-cache")
        >>> op.status
        <OperationStatus.IDLE: 'IDLE'>
        >>> op.can_be_started
        True
        >>> str(op)
        'refresh-cache'
    """

    def __init__(self, name: str | None = None, work: WorkFunction | None = None) -> None:
        """Create an idle handle.

        Args:
            name: Unique operation name. A UUID string is generated if omitted.
            work: Optional work function carried by the handle itself. When
                set, ``OperationManager.start`` must be called without one.

        Raises:
            UnnamedOperationError: If ``name`` is empty or whitespace.
        """
        if name is None:
            name = str(uuid4())
        elif not isinstance(name, str) or not name.strip():
            raise UnnamedOperationError(name)
        if work is not None and not callable(work):
            raise TypeError(f"work must be callable, got {work!r}")

        self._name = name
        self._work = work
        self._status = OperationStatus.IDLE
        self._registered = False
        self._last_run_start: datetime | None = None
        self._last_run_finish: datetime | None = None
        self._last_fault: BaseException | None = None

        # Held by a tick for the whole run; acquired non-blocking only
        self._execution_guard = threading.Lock()
        # Held briefly around every status read-modify-write
        self._state_lock = threading.RLock()

        self._status_changed = Notifier("status_changed")
        self._faulted = Notifier("faulted")

    # === Identity ===

    def get_name(self) -> str:
        """Return the operation name.

        Raises:
            UninitializedOperationError: If the handle carries no name.
        """
        if not self._name or not self._name.strip():
            raise UninitializedOperationError()
        return self._name

    @property
    def name(self) -> str:
        return self.get_name()

    @property
    def work(self) -> WorkFunction | None:
        """Work function attached at construction, if any."""
        return self._work

    # === Status ===

    @property
    def status(self) -> OperationStatus:
        return self._status

    @property
    def is_idle(self) -> bool:
        return self._status is OperationStatus.IDLE

    @property
    def is_executing(self) -> bool:
        return self._status is OperationStatus.EXECUTING

    @property
    def is_paused(self) -> bool:
        return self._status is OperationStatus.PAUSED

    @property
    def is_cancelled(self) -> bool:
        return self._status is OperationStatus.CANCELLED

    @property
    def is_not_cancelled(self) -> bool:
        return not self.is_cancelled

    @property
    def is_recurring(self) -> bool:
        """True while registered with a manager and not paused."""
        return self._registered and self._status in (
            OperationStatus.IDLE,
            OperationStatus.EXECUTING,
        )

    @property
    def is_not_recurring(self) -> bool:
        return not self.is_recurring

    @property
    def can_be_started(self) -> bool:
        """True when no manager currently holds this handle."""
        return not self._registered

    # === Run history ===

    @property
    def last_run_start(self) -> datetime | None:
        return self._last_run_start

    @property
    def last_run_finish(self) -> datetime | None:
        return self._last_run_finish

    @property
    def last_fault(self) -> BaseException | None:
        """Exception raised by the most recent completed tick, if it raised."""
        return self._last_fault

    # === Notifications ===

    def subscribe_status_changed(self, handler: StatusChangedHandler) -> str:
        """Call ``handler()`` after every status assignment."""
        return self._status_changed.subscribe(handler)

    def subscribe_faulted(self, handler: FaultHandler) -> str:
        """Call ``handler(exc)`` whenever the work function raises."""
        return self._faulted.subscribe(handler)

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription from either stream."""
        return self._status_changed.unsubscribe(subscription_id) or self._faulted.unsubscribe(
            subscription_id
        )

    def _emit_status_changed(self) -> None:
        self._status_changed.publish()

    def _emit_fault(self, exc: BaseException) -> None:
        self._faulted.publish(exc)

    # === Dunder ===

    def __str__(self) -> str:
        return self.get_name()

    def __repr__(self) -> str:
        return f"RecurringOperation(name={self._name!r}, status={self._status.value})"
