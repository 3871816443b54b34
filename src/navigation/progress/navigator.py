# navigator.py
# Public entry point for the navigation system.
# Owns no progress logic: asks the RouteProvider for routes, hands them to
# the RouteTracker and turns RouteDeviated events into reroute requests.

import logging
from typing import Optional, Sequence, Tuple

from .events import EventBus, RerouteCompleted, RerouteFailed, RouteDeviated
from .models import Coord
from .nav_config import NavConfig
from .ports import LocationSource, RouteProvider
from .route import Route
from .route_tracker import RouteTracker
from .snapshot import ProgressSnapshot

logger = logging.getLogger(__name__)


class RerouteError(RuntimeError):
    """The route provider could not produce a new route."""


class NavigationSystem:
    """
    High-level navigation facade.

    RouteDeviated is level-triggered; this class sends at most one reroute
    request at a time and no more often than reroute_min_interval_s
    (fix clock). Deviations in between are dropped.

    Typical lifecycle:
        nav = NavigationSystem(provider)
        nav.events.subscribe(UpcomingManeuver, speak)
        nav.start_navigation(origin, destination, gps_feed)
        ...
        nav.stop_navigation()

    Args:
        route_provider: Calculates routes and reroutes.
        config:         Optional NavConfig; defaults to NavConfig().
    """

    def __init__(
        self,
        route_provider: RouteProvider,
        config: Optional[NavConfig] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.config = config or NavConfig()
        self._provider = route_provider
        self._tracker = RouteTracker(self.config, events)
        self._reroute_in_flight = False
        self._last_reroute_at: Optional[float] = None

        self._tracker.events.subscribe(RouteDeviated, self._on_deviation)

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(
        self,
        origin: Coord,
        destination: Coord,
        location_source: Optional[LocationSource] = None,
        waypoints: Sequence[Coord] = (),
    ) -> Tuple[bool, str]:
        """
        Calculate a route and begin tracking.

        Args:
            origin:          Starting coordinate.
            destination:     Target coordinate.
            location_source: Where fixes come from; None to call update() by hand.
            waypoints:       Intermediate stops.

        Returns:
            (success, message)
        """
        logger.info(f"Calculating route: ({origin.lat:.5f}, {origin.lon:.5f}) → ({destination.lat:.5f}, {destination.lon:.5f})")
        try:
            route = self._provider.calculate(origin, destination, tuple(waypoints))
        except Exception as exc:
            logger.warning(f"Route calculation failed: {exc}")
            return False, f"Route calculation failed: {exc}"

        self.start_with_route(route, location_source)
        return True, f"Route ready. {sum(len(leg.steps) for leg in route.legs)} steps, {route.distance:.0f} m."

    def start_with_route(self, route: Route, location_source: Optional[LocationSource] = None) -> None:
        """Begin tracking a route calculated elsewhere."""
        self._reroute_in_flight = False
        self._last_reroute_at = None
        self._tracker.start_tracking(route, location_source)

    def stop_navigation(self) -> None:
        """End the current navigation session (no-op when idle)."""
        self._tracker.stop_tracking()
        logger.info("Navigation stopped by user.")

    # ------------------------------------------------------------------
    # GPS update (only needed without a location source)
    # ------------------------------------------------------------------

    def update(self, location: Coord) -> Optional[ProgressSnapshot]:
        return self._tracker.update(location)

    def tick(self, now: float) -> bool:
        return self._tracker.tick(now)

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def events(self) -> EventBus:
        return self._tracker.events

    @property
    def tracker(self) -> RouteTracker:
        return self._tracker

    @property
    def is_active(self) -> bool:
        return self._tracker.is_tracking

    @property
    def current_route(self) -> Optional[Route]:
        return self._tracker.current_route

    @property
    def current_progress(self) -> Optional[ProgressSnapshot]:
        return self._tracker.current_progress

    # ------------------------------------------------------------------
    # Rerouting
    # ------------------------------------------------------------------

    def _on_deviation(self, event: RouteDeviated) -> None:
        deviation = event.deviation
        route = self._tracker.current_route
        if route is None:
            return
        if self._reroute_in_flight:
            logger.debug("Reroute already in progress; deviation dropped.")
            return
        if (
            self._last_reroute_at is not None
            and deviation.timestamp - self._last_reroute_at < self.config.reroute_min_interval_s
        ):
            logger.debug("Reroute requested too recently; deviation dropped.")
            return

        self._reroute_in_flight = True
        self._last_reroute_at = deviation.timestamp
        logger.info(f"Requesting reroute ({deviation.distance_from_route:.0f} m off route).")
        try:
            try:
                new_route = self._provider.reroute(deviation.current_location, deviation, route)
            except Exception as exc:
                raise RerouteError(f"Reroute failed: {exc}") from exc
        except RerouteError as error:
            logger.error(f"{error}; keeping route {route.route_id}.")
            self.events.publish(RerouteFailed(deviation, error))
            return
        finally:
            self._reroute_in_flight = False

        if not self._tracker.is_tracking:
            logger.info("Navigation stopped during reroute; new route discarded.")
            return
        self._tracker.replace_route(new_route)
        self.events.publish(RerouteCompleted(route, new_route, deviation))
