# ports.py
# Collaborator contracts the tracker is driven by, plus two in-process
# location sources.
#
#   LocationSource  push source of fixes; subscribe once per tracking session
#   RouteProvider   calculates routes and reroutes
#
# QueuedLocationFeed accepts fixes from any thread but delivers them from
# the single thread that calls pump(), so one fix is fully processed
# before the next one reaches the tracker.

import logging
import queue
import threading
from typing import Callable, List, Optional, Protocol, Sequence

from .models import Coord, RouteDeviation
from .route import Route

logger = logging.getLogger(__name__)

LocationCallback = Callable[[Coord], None]


class Subscription(Protocol):
    def cancel(self) -> None: ...


class LocationSource(Protocol):
    def subscribe(self, callback: LocationCallback) -> Subscription: ...


class RouteProvider(Protocol):
    def calculate(self, origin: Coord, destination: Coord, waypoints: Sequence[Coord] = ()) -> Route: ...

    def reroute(self, current_location: Coord, deviation: RouteDeviation, original_route: Route) -> Route: ...


# ---------------------------------------------------------------------------
# In-process sources
# ---------------------------------------------------------------------------

class _FeedSubscription:
    def __init__(self, feed: "LocationFeed", callback: LocationCallback) -> None:
        self._feed = feed
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._feed._unsubscribe(self._callback)


class LocationFeed:
    """
    Synchronous location source: push() calls every subscriber in order
    on the caller's thread.
    """

    def __init__(self) -> None:
        self._callbacks: List[LocationCallback] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def subscribe(self, callback: LocationCallback) -> _FeedSubscription:
        with self._lock:
            self._callbacks.append(callback)
        return _FeedSubscription(self, callback)

    def push(self, location: Coord) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(location)

    def _unsubscribe(self, callback: LocationCallback) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


class QueuedLocationFeed(LocationFeed):
    """
    Thread-safe producer side with a single consumer.

    Producers call push() from any thread; the consumer thread calls
    pump() to deliver the queued fixes one by one.
    """

    def __init__(self, maxsize: int = 0) -> None:
        super().__init__()
        self._queue: "queue.Queue[Coord]" = queue.Queue(maxsize=maxsize)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def push(self, location: Coord) -> None:
        self._queue.put(location)

    def pump(self, max_items: Optional[int] = None, timeout: Optional[float] = None) -> int:
        """
        Deliver queued fixes to the subscribers on the calling thread.

        Args:
            max_items: Stop after this many fixes (None = drain the queue).
            timeout:   Wait this long for the first fix if the queue is empty.

        Returns:
            Number of fixes delivered.
        """
        delivered = 0
        block = timeout is not None
        while max_items is None or delivered < max_items:
            try:
                location = self._queue.get(block=block, timeout=timeout)
            except queue.Empty:
                break
            block = False
            super().push(location)
            delivered += 1
        return delivered
