"""
Synchronous observer list for operation notifications.

Handlers run in subscription order on whichever thread published the
notification. A handler that raises is logged and skipped; the remaining
handlers still run and the publisher never sees the error.

Tags:
    recur, notifications, observer, in-process
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from recur.core.logging import get_logger

__all__ = ["Notifier", "Subscription"]

logger = get_logger("recur.notifications")


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    handler: Callable[..., Any]


class Notifier:
    """Ordered list of handlers for one notification stream.

    Example::

        changed = Notifier("status_changed")
        sub_id = changed.subscribe(lambda: print("changed"))
        changed.publish()
        changed.unsubscribe(sub_id)
    """

    def __init__(self, stream: str) -> None:
        self.stream = stream
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, handler: Callable[..., Any]) -> str:
        """Register a handler.

        Returns:
            Subscription ID
        """
        if not callable(handler):
            raise TypeError(f"{self.stream} handler must be callable, got {handler!r}")
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        with self._lock:
            self._subscriptions[sub_id] = Subscription(id=sub_id, handler=handler)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription. Returns False if it was not registered."""
        with self._lock:
            return self._subscriptions.pop(subscription_id, None) is not None

    def publish(self, *args: Any) -> None:
        """Call every handler with ``args``."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        for sub in subscriptions:
            try:
                sub.handler(*args)
            except Exception as e:
                logger.warning(
                    "notification_handler_error",
                    stream=self.stream,
                    subscription_id=sub.id,
                    error=str(e),
                )

    def clear(self) -> None:
        with self._lock:
            self._subscriptions.clear()

    def __contains__(self, subscription_id: object) -> bool:
        with self._lock:
            return subscription_id in self._subscriptions

    @property
    def subscription_count(self) -> int:
        """Number of active subscriptions."""
        with self._lock:
            return len(self._subscriptions)
