"""Holding area for events accepted before a profile id is known."""

from __future__ import annotations

import threading
from typing import Callable, List

from openpanel.models import Event


class PendingQueue:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[Event] = []

    def enqueue(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)

    def offer(self, event: Event, hold: Callable[[], bool]) -> bool:
        """Append ``event`` only if ``hold()`` is true, as one step.

        ``hold`` runs under the queue lock, so it cannot interleave with a
        concurrent ``drain_all``: an event is either drained by it or not held.
        """
        with self._lock:
            if not hold():
                return False
            self._events.append(event)
            return True

    def drain_all(self) -> List[Event]:
        """Remove and return every held event, oldest first."""
        with self._lock:
            events, self._events = self._events, []
        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
