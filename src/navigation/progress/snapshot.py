# snapshot.py
# Immutable progress state for one instant, built fresh on every processed fix.
# build_snapshot() is pure: it never mutates the Route and is safe to call
# from several threads with the same Route.

import time
from dataclasses import dataclass
from typing import Optional

from .models import Coord, Maneuver
from .nav_config import NavConfig
from .route import Leg, Route, Step, remaining_distance_after, remaining_duration_after


def format_distance(distance_m: float) -> str:
    if distance_m < 1000:
        return f"{round(distance_m)} m"
    return f"{distance_m / 1000:.1f} km"


def format_duration(duration_s: float) -> str:
    minutes = int(round(duration_s / 60.0))
    if minutes < 1:
        return "<1 min"
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours} h {rest} min" if rest else f"{hours} h"


@dataclass(frozen=True)
class ProgressSnapshot:
    """Fully derived progress along a route for one location fix."""
    current_location: Coord
    route: Route
    current_leg_index: int
    current_step_index: int
    upcoming_step_index: int

    distance_traveled: float
    distance_remaining: float
    distance_traveled_in_leg: float
    distance_remaining_in_leg: float
    distance_traveled_in_step: float
    distance_remaining_in_step: float

    duration_traveled: float
    duration_remaining: float
    duration_remaining_in_leg: float
    duration_remaining_in_step: float

    distance_to_next_maneuver: float
    is_on_route: bool
    distance_from_route: float      # 0 while on route
    route_offset_m: float           # raw perpendicular distance, always set
    timestamp: float

    # ------------------------------------------------------------------
    # Route lookups
    # ------------------------------------------------------------------

    @property
    def current_leg(self) -> Optional[Leg]:
        if 0 <= self.current_leg_index < len(self.route.legs):
            return self.route.legs[self.current_leg_index]
        return None

    @property
    def current_step(self) -> Optional[Step]:
        leg = self.current_leg
        if leg is not None and 0 <= self.current_step_index < len(leg.steps):
            return leg.steps[self.current_step_index]
        return None

    @property
    def upcoming_step(self) -> Optional[Step]:
        leg = self.current_leg
        if leg is not None and 0 <= self.upcoming_step_index < len(leg.steps):
            return leg.steps[self.upcoming_step_index]
        return None

    @property
    def upcoming_maneuver(self) -> Optional[Maneuver]:
        step = self.upcoming_step
        return step.maneuver if step is not None else None

    # ------------------------------------------------------------------
    # Ratios
    # ------------------------------------------------------------------

    @property
    def route_progress(self) -> float:
        return self.distance_traveled / self.route.distance if self.route.distance > 0 else 0.0

    @property
    def leg_progress(self) -> float:
        leg = self.current_leg
        if leg is None or leg.distance <= 0:
            return 0.0
        return self.distance_traveled_in_leg / leg.distance

    @property
    def step_progress(self) -> float:
        step = self.current_step
        if step is None or step.distance <= 0:
            return 0.0
        return self.distance_traveled_in_step / step.distance

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------

    @property
    def current_road_name(self) -> str:
        step = self.current_step
        if step is not None and step.name:
            return step.name
        leg = self.current_leg
        return leg.summary if leg is not None else ""

    def eta(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return now + self.duration_remaining

    @property
    def current_instruction(self) -> str:
        maneuver = self.upcoming_maneuver
        if self.distance_to_next_maneuver < 50.0:
            return maneuver.instruction if maneuver else "Continue"
        return f"Continue on {self.current_road_name}"

    @property
    def short_instruction(self) -> str:
        maneuver = self.upcoming_maneuver
        if self.distance_to_next_maneuver < 200.0:
            return maneuver.short_instruction if maneuver else "Continue"
        return self.current_road_name

    def __str__(self) -> str:
        leg = self.current_leg
        step_count = len(leg.steps) if leg is not None else 0
        return (
            f"Progress {self.route_progress * 100:.1f}% | "
            f"remaining {format_distance(self.distance_remaining)} "
            f"({format_duration(self.duration_remaining)}) | "
            f"step {self.current_step_index}/{step_count} | "
            f"next maneuver in {format_distance(self.distance_to_next_maneuver)}"
        )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def _leg_offset(leg: Leg, location: Coord) -> float:
    if not leg.steps:
        return float("inf")
    return min(step.distance_from(location) for step in leg.steps)


def _nearest_index(distances) -> int:
    best = 0
    for i, dist in enumerate(distances):
        if dist < distances[best]:
            best = i
    return best


def build_snapshot(
    route: Route,
    location: Coord,
    session_start: float,
    now: Optional[float] = None,
    config: Optional[NavConfig] = None,
) -> ProgressSnapshot:
    """
    Derive progress for location along route.

    Args:
        route:         The immutable route being followed.
        location:      Current fix.
        session_start: Timestamp tracking started at (seconds).
        now:           Clock for duration traveled; defaults to the fix timestamp.
        config:        Tolerances; defaults to NavConfig().

    Returns:
        A new ProgressSnapshot.
    """
    cfg = config or NavConfig()
    now = location.timestamp if now is None else now
    step_tol = cfg.step_tolerance_m
    route_tol = cfg.route_tolerance_m

    route_offset = route.distance_from_route(location)
    is_on_route = route_offset <= route_tol

    leg_index = route.locate_leg(location, route_tol)
    located = leg_index is not None
    if leg_index is None:
        # Off every leg: report the closest one instead of jumping back to leg 0.
        leg_index = _nearest_index([_leg_offset(leg, location) for leg in route.legs]) if route.legs else 0

    leg = route.legs[leg_index] if route.legs else None
    step_index = 0
    step = None
    found = None
    if leg is not None and leg.steps:
        found = leg.locate_step(location, step_tol, route_tol)
        step_index = found if found is not None else _nearest_index(
            [s.distance_from(location) for s in leg.steps]
        )
        step = leg.steps[step_index]

    # Locate once, then derive every level from the step's traveled distance.
    traveled_in_step = step.distance_traveled(location, route_tol) if step is not None else 0.0
    if leg is None:
        traveled_in_leg = 0.0
    elif found is None:
        traveled_in_leg = leg.distance if leg.steps else 0.0
    else:
        prior_steps = sum(s.distance for s in leg.steps[:step_index])
        traveled_in_leg = min(max(prior_steps + traveled_in_step, 0.0), leg.distance)

    if not route.legs:
        traveled = 0.0
    elif not located:
        traveled = route.distance
    else:
        prior_legs = sum(other.distance for other in route.legs[:leg_index])
        traveled = min(max(prior_legs + traveled_in_leg, 0.0), route.distance)

    upcoming_index = step_index
    if step is not None:
        remaining_in_step = remaining_distance_after(step, traveled_in_step)
        duration_in_step = remaining_duration_after(step, traveled_in_step)

        upcoming = leg.upcoming_step(step_index, remaining_in_step, cfg.near_maneuver_threshold_m)
        if upcoming is step:
            to_next_maneuver = remaining_in_step
        else:
            upcoming_index = step_index + 1
            to_next_maneuver = remaining_in_step + upcoming.maneuver.distance_to_maneuver
    else:
        remaining_in_step = duration_in_step = 0.0
        to_next_maneuver = 0.0

    return ProgressSnapshot(
        current_location=location,
        route=route,
        current_leg_index=leg_index,
        current_step_index=step_index,
        upcoming_step_index=upcoming_index,
        distance_traveled=traveled,
        distance_remaining=remaining_distance_after(route, traveled),
        distance_traveled_in_leg=traveled_in_leg,
        distance_remaining_in_leg=remaining_distance_after(leg, traveled_in_leg) if leg is not None else 0.0,
        distance_traveled_in_step=traveled_in_step,
        distance_remaining_in_step=remaining_in_step,
        duration_traveled=max(0.0, now - session_start),
        duration_remaining=remaining_duration_after(route, traveled),
        duration_remaining_in_leg=remaining_duration_after(leg, traveled_in_leg) if leg is not None else 0.0,
        duration_remaining_in_step=duration_in_step,
        distance_to_next_maneuver=to_next_maneuver,
        is_on_route=is_on_route,
        distance_from_route=0.0 if is_on_route else route_offset,
        route_offset_m=route_offset,
        timestamp=now,
    )
