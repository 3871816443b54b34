# route_tracker.py
# State machine that tracks a moving agent against an active route.
# Call start_tracking() once, then feed fixes through the location source
# or update(); call tick() periodically if fixes may stall.
#
# States: Idle → Tracking → Idle. One fix is processed to completion
# (speed → snapshot → deviation → arrival → announcement → progress)
# before its events are published.

import logging
from typing import List, Optional

from .announcer import ManeuverAnnouncer
from .arrival import check_arrival
from .deviation import DeviationPolicy
from .events import (
    Arrived,
    EventBus,
    ProgressUpdated,
    RouteDeviated,
    TrackerEvent,
    UpcomingManeuver,
)
from .models import Coord, DeviationLevel
from .nav_config import NavConfig
from .ports import LocationSource
from .route import Route
from .session import TrackingSession
from .snapshot import ProgressSnapshot, build_snapshot
from .speed_estimator import classify_road_type

logger = logging.getLogger(__name__)


class TrackingStateError(RuntimeError):
    """A tracking-dependent operation was called while no session is active."""


_EVENT_ORDER = (ProgressUpdated, UpcomingManeuver, RouteDeviated, Arrived)


class RouteTracker:
    """
    Stateful progress tracker for one navigation session at a time.

    Usage:
        tracker = RouteTracker(config)
        tracker.events.subscribe(UpcomingManeuver, speak)
        tracker.start_tracking(route, location_feed)

        # Periodically, from the same thread that delivers fixes:
        tracker.tick(now)
    """

    def __init__(self, config: Optional[NavConfig] = None, events: Optional[EventBus] = None) -> None:
        self.config = config or NavConfig()
        self.events = events or EventBus()
        self._policy = DeviationPolicy(self.config)
        self._announcer = ManeuverAnnouncer(self.config)
        self._session: Optional[TrackingSession] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def start_tracking(
        self,
        route: Route,
        location_source: Optional[LocationSource] = None,
        start_time: Optional[float] = None,
    ) -> None:
        """
        Begin a new session on route, stopping any active one first.

        Args:
            route:           Route to follow.
            location_source: Subscribed to for fixes; None to drive update() by hand.
            start_time:      Session start on the fix clock; defaults to the first fix.
        """
        if self._session is not None:
            logger.info("Tracking restarted; stopping the previous session.")
            self.stop_tracking()

        session = TrackingSession(route=route, start_time=start_time, config=self.config)
        self._session = session
        if location_source is not None:
            session.subscription = location_source.subscribe(self._on_location)
        logger.info(f"Tracking started: {route!r}")

    def stop_tracking(self) -> None:
        """End the session. Safe to call when idle and from inside an event handler."""
        session = self._session
        if session is None:
            return
        self._session = None
        if session.subscription is not None:
            session.subscription.cancel()
        logger.info("Tracking stopped.")

    def replace_route(self, route: Route) -> None:
        """Substitute a new route (after a reroute) without ending the session."""
        session = self._require_session("replace_route")
        old = session.route
        session.swap_route(route)
        logger.info(f"Route replaced: {old.route_id} → {route.route_id}")

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def is_tracking(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> TrackingSession:
        return self._require_session("session")

    @property
    def current_route(self) -> Optional[Route]:
        return self._session.route if self._session is not None else None

    @property
    def current_progress(self) -> Optional[ProgressSnapshot]:
        return self._session.current_snapshot if self._session is not None else None

    @property
    def deviation_level(self) -> DeviationLevel:
        return self._session.deviation_level if self._session is not None else DeviationLevel.ON_ROUTE

    @property
    def has_arrived(self) -> bool:
        return self._session is not None and self._session.arrived

    @property
    def current_speed(self) -> float:
        return self._session.speed.current_speed if self._session is not None else 0.0

    @property
    def deviation_threshold(self) -> float:
        return self._policy.reroute_threshold

    @deviation_threshold.setter
    def deviation_threshold(self, threshold_m: float) -> None:
        self._policy.reroute_threshold = threshold_m
        self.config = self._policy.config
        logger.info(
            f"Deviation thresholds: warning {self._policy.warning_threshold:.1f} m, "
            f"return {self._policy.return_guidance_threshold:.1f} m, reroute {threshold_m:.1f} m"
        )

    # ------------------------------------------------------------------
    # Core method, call on every GPS update
    # ------------------------------------------------------------------

    def update(self, location: Coord) -> Optional[ProgressSnapshot]:
        """
        Process one fix and publish the resulting events.

        Args:
            location: Current fix; its timestamp is the clock for this cycle.

        Returns:
            The snapshot for this fix, or None if the fix was throttled or
            older than the last processed one.

        Raises:
            TrackingStateError: no session is active.
        """
        session = self._require_session("update")
        events = self._process(session, location)
        self._dispatch(events)
        return session.current_snapshot if events is not None else None

    def tick(self, now: float) -> bool:
        """
        Periodic re-check, independent of fix arrival.

        Rebuilds the snapshot from the last seen fix (throttled fixes
        included) and publishes ProgressUpdated if route progress drifted
        by at least periodic_progress_ratio since the last emission.

        Returns:
            True if ProgressUpdated was published.
        """
        session = self._require_session("tick")
        location = session.last_location
        if location is None:
            return False

        start = session.start_time if session.start_time is not None else location.timestamp
        snapshot = build_snapshot(session.route, location, start, now=now, config=self.config)
        session.current_snapshot = snapshot

        last = session.last_emitted
        if last is not None and abs(snapshot.route_progress - last.route_progress) < self.config.periodic_progress_ratio:
            return False

        session.last_emitted = snapshot
        self._dispatch([ProgressUpdated(snapshot)])
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_location(self, location: Coord) -> None:
        if self._session is None:
            logger.debug("Fix ignored: not tracking.")
            return
        self.update(location)

    def _require_session(self, operation: str) -> TrackingSession:
        if self._session is None:
            raise TrackingStateError(f"{operation}() requires an active tracking session.")
        return self._session

    def _process(self, session: TrackingSession, location: Coord) -> Optional[List[TrackerEvent]]:
        cfg = self.config
        previous = session.last_processed
        if previous is not None and location.timestamp < previous.timestamp:
            # Late delivery; tick() must not rebuild from it either.
            age = previous.timestamp - location.timestamp
            logger.debug(f"Stale fix ignored ({age:.2f}s older than the last processed one).")
            return None

        session.last_location = location
        if session.start_time is None:
            session.start_time = location.timestamp

        if previous is not None:
            since_last = location.timestamp - previous.timestamp
            if since_last < cfg.location_throttle_s:
                logger.debug(f"Fix throttled ({since_last:.2f}s after the last processed one).")
                return None

        # 1. Speed
        speed = session.speed.update(location)

        # 2. Snapshot
        snapshot = build_snapshot(session.route, location, session.start_time, config=cfg)
        session.current_snapshot = snapshot
        session.last_processed = location

        collected: List[TrackerEvent] = []

        # 3. Deviation
        result = self._policy.evaluate(snapshot, session.known_good)
        if result.level is not session.deviation_level:
            self._log_deviation_change(session.deviation_level, result.level, snapshot)
            session.deviation_level = result.level
        if result.deviation is not None:
            collected.append(RouteDeviated(result.deviation))

        # 4. Arrival (sticky)
        if not session.arrived and check_arrival(snapshot, session.route.destination, previous, cfg):
            session.arrived = True
            logger.info(f"Arrived at destination ({snapshot.distance_remaining:.1f} m remaining).")
            collected.append(Arrived(session.route, snapshot))

        # 5. Announcement (not while a reroute is pending or after arrival)
        maneuver = snapshot.upcoming_maneuver
        if maneuver is not None and not session.arrived and result.level is not DeviationLevel.REROUTE:
            road_type = classify_road_type(speed, snapshot.current_road_name, cfg)
            kind = self._announcer.evaluate(
                session.announcements,
                maneuver,
                snapshot.distance_to_next_maneuver,
                road_type,
                speed,
                snapshot.timestamp,
            )
            if kind is not None:
                collected.append(UpcomingManeuver(maneuver, snapshot.distance_to_next_maneuver, kind, road_type))

        # 6. Progress
        if self._is_significant(session.last_emitted, snapshot):
            session.last_emitted = snapshot
            collected.append(ProgressUpdated(snapshot))

        collected.sort(key=lambda event: _EVENT_ORDER.index(type(event)))
        return collected

    def _is_significant(self, last: Optional[ProgressSnapshot], snapshot: ProgressSnapshot) -> bool:
        if last is None:
            return True
        moved = last.current_location.distance_to(snapshot.current_location)
        if moved > self.config.significant_move_m:
            return True
        return abs(snapshot.route_progress - last.route_progress) > self.config.significant_progress_ratio

    def _dispatch(self, events: Optional[List[TrackerEvent]]) -> None:
        # Events already collected are delivered even if a handler stops tracking.
        for event in events or ():
            self.events.publish(event)

    def _log_deviation_change(self, old: DeviationLevel, new: DeviationLevel, snapshot: ProgressSnapshot) -> None:
        offset = snapshot.route_offset_m
        if new is DeviationLevel.ON_ROUTE:
            logger.info(f"Back on route (offset {offset:.1f} m).")
        elif new is DeviationLevel.WARNING:
            logger.info(f"Drifting from route: {offset:.1f} m.")
        elif new is DeviationLevel.RETURN_GUIDANCE:
            logger.warning(f"Off route by {offset:.1f} m, guiding back.")
        else:
            logger.warning(f"Off route by {offset:.1f} m (was {old.name}), reroute needed.")
