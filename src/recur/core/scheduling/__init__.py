"""Recurring operation scheduling for recur.

┌──────────────────────────────────────────────────────────────────────────────┐
│  RECURRING OPERATIONS                                                         │
│                                                                               │
│  Quick Start:                                                                 │
│  ┌──────────────────────────────────────────────────────────────────────┐   │
│  │   from recur.core.scheduling import OperationManager,                │   │
│  │                                     RecurringOperation               │   │
│  │                                                                      │   │
│  │   manager = OperationManager()                                       │   │
│  │   op = RecurringOperation("poll-inbox")                              │   │
│  │   manager.start(op, interval=10.0, work=poll_inbox)                  │   │
│  │   manager.pause(op)                                                  │   │
│  │   manager.resume(op)                                                 │   │
│  │   manager.cancel(op)          # terminal, frees the name             │   │
│  └──────────────────────────────────────────────────────────────────────┘   │
│                                                                               │
│  Architecture:                                                                │
│   ┌──────────────┐ create_timer ┌──────────────┐  fire  ┌──────────────┐    │
│   │ Operation    │ ───────────► │ TimerBackend │ ─────► │ TickExecutor │    │
│   │ Manager      │              │ thread/manual│        │ (per entry)  │    │
│   └──────┬───────┘              └──────────────┘        └──────┬───────┘    │
│          │ status (state lock)                                  │            │
│          └──────────────────► RecurringOperation ◄──────────────┘            │
└──────────────────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ Running the same operation's work twice at once
    ✅ Overlapping fires are skipped, never queued
    ❌ Letting a work exception reach the timer thread
    ✅ Faults land on ``last_fault`` and the fault stream
    ❌ Resuming a cancelled operation
    ✅ ``start()`` it again under the same (now free) name
"""

from __future__ import annotations

from .executor import ManagerStats, TickExecutor
from .manager import (
    ManagerHealth,
    OperationManager,
    get_manager,
    reset_manager,
    set_manager,
)
from .manual_backend import ManualTimerBackend
from .notifications import Notifier
from .operation import OperationStatus, RecurringOperation
from .protocol import BackendHealth, PeriodicTimer, TimerBackend
from .thread_backend import ThreadTimerBackend

__all__ = [
    # Protocol
    "TimerBackend",
    "PeriodicTimer",
    "BackendHealth",
    # Backends
    "ThreadTimerBackend",
    "ManualTimerBackend",
    # Handle
    "RecurringOperation",
    "OperationStatus",
    "Notifier",
    # Manager
    "OperationManager",
    "ManagerHealth",
    "ManagerStats",
    "TickExecutor",
    "get_manager",
    "set_manager",
    "reset_manager",
]
