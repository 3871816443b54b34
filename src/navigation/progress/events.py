# events.py
# Events emitted by the tracker and the navigation facade, and the
# in-process bus that delivers them.
#
# Within one processed fix the tracker publishes in this order:
#   ProgressUpdated → UpcomingManeuver → RouteDeviated → Arrived

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Optional, Type, Union

from .models import AnnouncementKind, Maneuver, RoadType, RouteDeviation
from .route import Route
from .snapshot import ProgressSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressUpdated:
    snapshot: ProgressSnapshot


@dataclass(frozen=True)
class UpcomingManeuver:
    maneuver: Maneuver
    distance: float                 # metres to the maneuver
    kind: AnnouncementKind
    road_type: RoadType


@dataclass(frozen=True)
class RouteDeviated:
    deviation: RouteDeviation


@dataclass(frozen=True)
class Arrived:
    route: Route
    snapshot: ProgressSnapshot


@dataclass(frozen=True)
class RerouteCompleted:
    old_route: Route
    new_route: Route
    deviation: RouteDeviation


@dataclass(frozen=True)
class RerouteFailed:
    deviation: RouteDeviation
    error: Exception


TrackerEvent = Union[ProgressUpdated, UpcomingManeuver, RouteDeviated, Arrived, RerouteCompleted, RerouteFailed]

EventHandler = Callable[[TrackerEvent], None]


class EventBus:
    """
    Synchronous publish/subscribe by event class.

    A handler that raises is logged and skipped; the remaining handlers
    still receive the event.

    Usage:
        bus = EventBus()
        bus.subscribe(Arrived, lambda event: print("arrived"))
        bus.publish(Arrived(route, snapshot))
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[type, List[EventHandler]] = defaultdict(list)
        self._catch_all: List[EventHandler] = []

    def subscribe(self, event_type: Type, handler: EventHandler) -> Callable[[], None]:
        """
        Register handler for one event class.

        Returns:
            A function that removes the handler again.
        """
        self._handlers[event_type].append(handler)
        return lambda: self._remove(self._handlers[event_type], handler)

    def subscribe_all(self, handler: EventHandler) -> Callable[[], None]:
        self._catch_all.append(handler)
        return lambda: self._remove(self._catch_all, handler)

    def publish(self, event: TrackerEvent) -> None:
        # Copy so handlers may (un)subscribe while being called.
        handlers = list(self._handlers.get(type(event), ())) + list(self._catch_all)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler {handler!r} failed on {type(event).__name__}.")

    def clear(self, event_type: Optional[Type] = None) -> None:
        if event_type is None:
            self._handlers.clear()
            self._catch_all.clear()
        else:
            self._handlers.pop(event_type, None)

    @staticmethod
    def _remove(handlers: List[EventHandler], handler: EventHandler) -> None:
        if handler in handlers:
            handlers.remove(handler)
