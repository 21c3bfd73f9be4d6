"""
Shared pytest fixtures and configuration for recur tests.

This module provides:
- Default-manager cleanup for test isolation
- Auto-marking of tests by location
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from recur.core.scheduling import reset_manager


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their markers."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Registry Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_default_manager_fixture() -> Generator[None, None, None]:
    """
    Shut down the process-wide manager before and after each test.

    No test can leave recurring operations registered for the next one.
    """
    reset_manager()
    yield
    reset_manager()


@pytest.fixture
def tests_dir() -> Path:
    return Path(__file__).parent
