"""Event fan-out to subscribers."""

import logging
import threading
from typing import Callable, Iterable, List

from battery_monitor.core.types import DeviceEvent

log = logging.getLogger(__name__)

Subscriber = Callable[[DeviceEvent], None]


class EventDispatcher:
    """Delivers every event to every subscriber, in order, fire-and-forget.

    A subscriber that raises is logged and skipped for that event only.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

    def dispatch(self, events: Iterable[DeviceEvent]) -> None:
        events = list(events)
        if not events:
            return
        with self._lock:
            subscribers = list(self._subscribers)

        for event in events:
            for callback in subscribers:
                try:
                    callback(event)
                except Exception:
                    log.exception("Subscriber %r failed on %s", callback, type(event).__name__)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
