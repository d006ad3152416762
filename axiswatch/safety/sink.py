"""
Fan-out of safety events to any number of subscribers.

``publish()`` never blocks the monitor's processing path.  Each subscriber
owns a bounded queue; when it is full the oldest queued event is discarded
and counted as dropped.

Subscribers either pull (``Subscription.get()`` / ``drain()``) or register a
callback, which is then invoked on a dedicated daemon thread so a slow or
failing callback only affects its own queue.
"""

from __future__ import annotations

import collections
import logging
import queue
import threading
from typing import Callable, List, Optional

from axiswatch.safety.events import SafetyEvent

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIBER_QUEUE_SIZE = 256

EventCallback = Callable[[SafetyEvent], None]


class Subscription:
    """One subscriber's bounded event queue."""

    def __init__(
        self,
        sink: SafetyEventSink,
        maxsize: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE,
        callback: Optional[EventCallback] = None,
        name: str = "subscriber",
    ):
        if maxsize < 1:
            raise ValueError(f"Subscriber queue size must be >= 1, got {maxsize}")
        self.name = name
        self._sink = sink
        self._queue: queue.Queue[SafetyEvent] = queue.Queue(maxsize=maxsize)
        self._put_lock = threading.Lock()
        self._dropped = 0
        self._closed = threading.Event()
        self._callback = callback
        self._thread: Optional[threading.Thread] = None

        if callback is not None:
            self._thread = threading.Thread(
                target=self._dispatch, name=f"SafetyEventDispatch-{name}", daemon=True
            )
            self._thread.start()

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, event: SafetyEvent) -> None:
        """Enqueue without blocking, evicting the oldest event if full."""
        if self._closed.is_set():
            return
        with self._put_lock:
            while True:
                try:
                    self._queue.put_nowait(event)
                    return
                except queue.Full:
                    try:
                        self._queue.get_nowait()
                        self._dropped += 1
                    except queue.Empty:
                        pass

    def get(self, timeout: Optional[float] = None) -> Optional[SafetyEvent]:
        """Next event, or None if none arrived within ``timeout`` seconds."""
        try:
            return self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[SafetyEvent]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None
        self._sink.unsubscribe(self)

    def _dispatch(self) -> None:
        while not self._closed.is_set():
            try:
                event = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self._callback(event)
            except Exception:
                logger.exception("Safety event subscriber %s failed", self.name)


class SafetyEventSink:
    """Broadcasts SafetyEvents to subscribers and keeps a short history."""

    def __init__(self, history_size: int = 100, default_queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE):
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []
        self._history: collections.deque[SafetyEvent] = collections.deque(maxlen=history_size)
        self._default_queue_size = default_queue_size
        self._published = 0

    @property
    def published_count(self) -> int:
        return self._published

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(
        self,
        callback: Optional[EventCallback] = None,
        maxsize: Optional[int] = None,
        name: str = "subscriber",
    ) -> Subscription:
        sub = Subscription(
            self,
            maxsize=maxsize or self._default_queue_size,
            callback=callback,
            name=name,
        )
        with self._lock:
            self._subscriptions.append(sub)
        logger.debug("Safety event subscriber %s added", name)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        if not subscription.closed:
            subscription.close()

    def publish(self, event: SafetyEvent) -> None:
        with self._lock:
            self._history.append(event)
            self._published += 1
            subscribers = list(self._subscriptions)
        for sub in subscribers:
            sub.offer(event)

    def recent(self, n: Optional[int] = None) -> List[SafetyEvent]:
        with self._lock:
            events = list(self._history)
        return events if n is None else events[-n:]

    def close(self) -> None:
        with self._lock:
            subscribers = list(self._subscriptions)
        for sub in subscribers:
            sub.close()
