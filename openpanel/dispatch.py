"""
OpenPanel SDK Dispatch
======================

The send path between the client facade and the transport.

``EventPipeline`` decides what happens to an accepted event (drop, hold until
a profile id is known, or deliver). ``DeliveryWorker`` owns a background
thread with its own event loop and a single consumer task, so exactly one
request is in flight at a time and events reach the API in the order they
were accepted.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from functools import partial
from typing import Callable, Optional

from openpanel.exceptions import OpenPanelError
from openpanel.models import Event, with_profile_id
from openpanel.pending import PendingQueue
from openpanel.state import ProfileState
from openpanel.transport import Transport


logger = logging.getLogger(__name__)

EventFilter = Callable[[Event], bool]

_STOP = object()


class DeliveryWorker:
    """Single-consumer FIFO of events bound for ``Transport.send``."""

    def __init__(self, transport: Transport, *, path: str = "/track", name: str = "openpanel-delivery"):
        self._transport = transport
        self._path = path
        self._loop = asyncio.new_event_loop()
        self._queue: Optional[asyncio.Queue] = None
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending = 0
        self._closed = False

    @property
    def pending(self) -> int:
        """Events accepted but not yet finished (delivered or failed)."""
        with self._lock:
            return self._pending

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def submit(self, event: Event) -> bool:
        """Queue an event for delivery. Returns False if the worker is closed."""
        with self._lock:
            if self._closed:
                logger.warning("Delivery worker is closed, dropping %s event", event.type)
                return False
            if not self._thread.is_alive():
                self._thread.start()
                self._ready.wait()
            self._pending += 1
            # Scheduled under the lock so loop order matches acceptance order.
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted event has been processed."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Finish queued deliveries, then stop the worker and close the transport."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            running = self._thread.is_alive()
            if running:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, _STOP)

        if running:
            self._thread.join(timeout)
        else:
            self._loop.close()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._queue = asyncio.Queue()
        self._ready.set()
        try:
            self._loop.run_until_complete(self._consume())
            self._loop.run_until_complete(self._transport.aclose())
        finally:
            self._loop.close()

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            if item is _STOP:
                return
            try:
                await self._deliver(item)
            finally:
                with self._idle:
                    self._pending -= 1
                    self._idle.notify_all()

    async def _deliver(self, event: Event) -> None:
        try:
            await self._transport.send(self._path, event)
        except OpenPanelError as e:
            logger.error("Error sending %s event: %s", event.type, e)
        except Exception:
            logger.exception("Unexpected error sending %s event", event.type)
        else:
            logger.debug("Delivered %s event", event.type)


class EventPipeline:
    """Applies disabled/filter/wait rules and stamps profile ids before delivery."""

    def __init__(
        self,
        worker: DeliveryWorker,
        state: ProfileState,
        pending: PendingQueue,
        *,
        disabled: bool = False,
        filter: Optional[EventFilter] = None,
        wait_for_profile: bool = False,
    ):
        self._worker = worker
        self._state = state
        self._pending = pending
        self._disabled = disabled
        self._filter = filter
        self._wait_for_profile = wait_for_profile
        # Serializes hand-off to the worker against release(), so held events
        # always go out before anything accepted after the identity change.
        self._release_lock = threading.RLock()

    @property
    def wait_for_profile(self) -> bool:
        return self._wait_for_profile

    @wait_for_profile.setter
    def wait_for_profile(self, value: bool) -> None:
        self._wait_for_profile = value

    def submit(self, event: Event, *, from_queue: bool = False) -> bool:
        """
        Push one event down the send path.

        Args:
            event: The event to send
            from_queue: True when re-submitting a held event; skips the wait check

        Returns:
            bool: True if the event was handed to the delivery worker
        """
        if self._disabled:
            return False

        if self._filter is not None and not self._allows(event):
            logger.debug("Filter rejected %s event", event.type)
            return False

        with self._release_lock:
            if not from_queue and self._pending.offer(event, self._should_hold):
                logger.debug("Holding %s event until a profile id is known", event.type)
                return False

            event = with_profile_id(event, self._state.profile_id)
            return self._worker.submit(event)

    def release(self, update: Optional[Callable[[], None]] = None) -> int:
        """
        Re-submit every held event, oldest first.

        Args:
            update: Run first, under the same lock, e.g. to set the profile id
                or stop waiting. No event can slip ahead of the held ones.

        Returns:
            int: Number of held events re-submitted
        """
        with self._release_lock:
            if update is not None:
                update()
            events = self._pending.drain_all()
            for event in events:
                self.submit(event, from_queue=True)
        return len(events)

    def stop_waiting(self) -> int:
        """Turn off wait-for-profile and release everything held."""
        return self.release(partial(setattr, self, "wait_for_profile", False))

    def _should_hold(self) -> bool:
        return self._wait_for_profile and self._state.profile_id is None

    def _allows(self, event: Event) -> bool:
        try:
            return bool(self._filter(event))
        except Exception:
            logger.exception("Event filter raised, dropping %s event", event.type)
            return False
