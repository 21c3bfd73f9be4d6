"""Pytest fixtures for scheduling tests."""

import threading
import time

import pytest

from recur.core.settings import RecurSettings


class StatusRecorder:
    """Records the handle's status each time it publishes a status change."""

    def __init__(self, operation):
        self.operation = operation
        self.statuses = []
        self.faults = []
        self.status_sub = operation.subscribe_status_changed(self._on_status)
        self.fault_sub = operation.subscribe_faulted(self.faults.append)

    def _on_status(self):
        self.statuses.append(self.operation.status)


class WorkCounter:
    """Work function that counts runs and tracks concurrent executions."""

    def __init__(self, body=None):
        self.body = body
        self.runs = 0
        self.active = 0
        self.max_active = 0
        self.starts = []
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.active += 1
            self.starts.append(time.monotonic())
            self.max_active = max(self.max_active, self.active)
        try:
            if self.body is not None:
                self.body()
        finally:
            with self._lock:
                self.active -= 1
                self.runs += 1


@pytest.fixture
def settings():
    """Settings independent of the developer's environment."""
    return RecurSettings(max_workers=4, shutdown_timeout_seconds=2.0, _env_file=None)


@pytest.fixture
def manual_backend():
    """Create a ManualTimerBackend."""
    from recur.core.scheduling import ManualTimerBackend
    return ManualTimerBackend()


@pytest.fixture
def manager(manual_backend, settings):
    """Create an OperationManager on the simulated clock."""
    from recur.core.scheduling import OperationManager
    mgr = OperationManager(backend=manual_backend, settings=settings)
    yield mgr
    mgr.shutdown()


@pytest.fixture
def thread_manager(settings):
    """Create an OperationManager on real timer threads."""
    from recur.core.scheduling import OperationManager, ThreadTimerBackend
    mgr = OperationManager(backend=ThreadTimerBackend(settings=settings), settings=settings)
    yield mgr
    mgr.shutdown()


@pytest.fixture
def recorder_factory():
    return StatusRecorder


@pytest.fixture
def work_counter():
    return WorkCounter
