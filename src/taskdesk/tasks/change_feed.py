# src/taskdesk/tasks/change_feed.py

from __future__ import annotations

"""
In-process change feed.

Writers publish a content-free ChangeEvent per table after commit; consumers
re-fetch whatever they need. Handlers run synchronously in the publisher's
thread, right after the write is visible.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

ChangeHandler = Callable[["ChangeEvent"], None]


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """Something changed in `table`. `kind` is informational (insert/update/delete)."""

    table: str
    kind: str = "*"
    at: float = field(default_factory=time.time)


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[str, list[ChangeHandler]] = {}

    def subscribe(self, table: str, handler: ChangeHandler) -> Callable[[], None]:
        """Register handler for table; returns an idempotent unsubscribe callable."""
        with self._lock:
            self._handlers.setdefault(table, []).append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(table, [])
                if handler in handlers:
                    handlers.remove(handler)

        return _unsubscribe

    def listener_count(self, table: str) -> int:
        with self._lock:
            return len(self._handlers.get(table, []))

    def publish(self, table: str, kind: str = "*") -> None:
        event = ChangeEvent(table=table, kind=kind)
        with self._lock:
            handlers = list(self._handlers.get(table, []))

        logger.debug("change table=%s kind=%s listeners=%d", table, kind, len(handlers))

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Change handler failed table=%s", table)

