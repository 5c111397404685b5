"""
Progress hub: fans progress events out to callbacks and async subscribers.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from typing import AsyncIterator, Callable, Dict, List, Optional

from ..models.progress import ProgressEvent

ProgressCallback = Callable[[ProgressEvent], None]


class ProgressSubscription:
    """Async iterator over the progress events of one batch."""

    def __init__(self, hub: "ProgressHub", batch_id: int):
        self._hub = hub
        self.batch_id = batch_id
        self._queue: "asyncio.Queue[Optional[ProgressEvent]]" = asyncio.Queue()
        self._loop = asyncio.get_running_loop()
        self._closed = False

    def _put(self, event: Optional[ProgressEvent]) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._queue.put_nowait(event)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self

    async def __anext__(self) -> ProgressEvent:
        if self._closed:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is None:
            self._closed = True
            raise StopAsyncIteration
        if event.is_final:
            self._closed = True
            self._hub._unsubscribe(self)
        return event

    def close(self) -> None:
        """Stop receiving events; pending iteration ends."""
        if not self._closed:
            self._hub._unsubscribe(self)
            self._put(None)


class ProgressHub:
    """
    Progress emitter for the orchestrator.

    Consumers either register a callback or iterate a subscription; both see
    the same events in emission order. A batch's listeners are dropped after
    its final ``complete`` event.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._callbacks: Dict[int, List[ProgressCallback]] = defaultdict(list)
        self._subscriptions: Dict[int, List[ProgressSubscription]] = defaultdict(list)

    def add_listener(self, batch_id: int, callback: ProgressCallback) -> None:
        with self._lock:
            self._callbacks[batch_id].append(callback)

    def subscribe(self, batch_id: int) -> ProgressSubscription:
        """Subscribe to a batch; must be called from within the event loop."""
        subscription = ProgressSubscription(self, batch_id)
        with self._lock:
            self._subscriptions[batch_id].append(subscription)
        return subscription

    def _unsubscribe(self, subscription: ProgressSubscription) -> None:
        with self._lock:
            subscribers = self._subscriptions.get(subscription.batch_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscriptions.pop(subscription.batch_id, None)

    def emit(self, event: ProgressEvent) -> None:
        """Deliver an event to every listener of its batch."""
        with self._lock:
            callbacks = list(self._callbacks.get(event.batch_id, []))
            subscriptions = list(self._subscriptions.get(event.batch_id, []))
            if event.is_final:
                self._callbacks.pop(event.batch_id, None)
                self._subscriptions.pop(event.batch_id, None)

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                self.logger.error(f"Progress callback failed for batch {event.batch_id}: {e}",
                                  exc_info=True)

        for subscription in subscriptions:
            subscription._put(event)
