"""Change notification shared by planner sessions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

_logger = logging.getLogger(__name__)


@dataclass
class SyncSignal:
    """Counter bumped whenever a plan is persisted.

    Listeners receive no payload and are expected to re-fetch.
    """

    counter: int
    _listeners: list[Callable[[], None]]

    def __init__(self) -> None:
        self.counter = 0
        self._listeners = []

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def trigger(self) -> int:
        """Bump the counter, notify listeners and return the new value."""
        self.counter += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                _logger.exception("Sync listener failed")
        return self.counter

    @property
    def listener_count(self) -> int:
        """Number of registered listeners."""
        return len(self._listeners)
