from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Generic, TypeVar

from .canonical import to_canonical_json
from .errors import PublishError

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT")


@dataclass(frozen=True)
class ScheduledEvent(Generic[EventT]):
    event: EventT
    delay: timedelta | None = None


class InMemoryPublisher(Generic[EventT]):
    """Publisher that records every scheduled event in order.

    ``fail_next`` makes the following calls raise ``PublishError`` with the
    given retry classification, for exercising failure handling.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scheduled: list[ScheduledEvent[EventT]] = []
        self._failures_remaining = 0
        self._failure_should_retry = False

    def publish(self, event: EventT, delay: timedelta | None = None) -> None:
        with self._lock:
            if self._failures_remaining > 0:
                self._failures_remaining -= 1
                raise PublishError(f"Failed to publish: {event}", should_retry=self._failure_should_retry)
            self._scheduled.append(ScheduledEvent(event, delay))
        logger.debug("Scheduled %s after %s", type(event).__name__, delay)

    def fail_next(self, count: int = 1, *, should_retry: bool = True) -> None:
        if count < 0:
            raise ValueError(f"count must be >= 0, got: {count}")
        with self._lock:
            self._failures_remaining = count
            self._failure_should_retry = should_retry

    @property
    def scheduled(self) -> list[ScheduledEvent[EventT]]:
        with self._lock:
            return list(self._scheduled)

    def bodies(self) -> list[str]:
        """Canonical JSON queue body of every recorded event."""
        return [to_canonical_json(entry.event) for entry in self.scheduled]

    def __len__(self) -> int:
        with self._lock:
            return len(self._scheduled)
