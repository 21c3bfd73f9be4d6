"""recur - in-process recurring operations with pause, resume and cancel.

Quick start::

    from recur import OperationManager, RecurringOperation

    manager = OperationManager()
    op = RecurringOperation("refresh-cache")
    op.subscribe_faulted(lambda exc: print(f"refresh failed: {exc}"))
    manager.start(op, interval=30.0, work=refresh_cache)
"""

from recur.core.errors import (
    CancelledOperationResumeError,
    DuplicateOperationNameError,
    RecurError,
    UninitializedOperationError,
)
from recur.core.scheduling import (
    ManualTimerBackend,
    OperationManager,
    OperationStatus,
    RecurringOperation,
    ThreadTimerBackend,
    get_manager,
)

__version__ = "0.1.0"

__all__ = [
    "OperationManager",
    "RecurringOperation",
    "OperationStatus",
    "ThreadTimerBackend",
    "ManualTimerBackend",
    "get_manager",
    "RecurError",
    "UninitializedOperationError",
    "DuplicateOperationNameError",
    "CancelledOperationResumeError",
]
