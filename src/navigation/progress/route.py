# route.py
# Immutable route hierarchy: Route → Legs → Steps → geometry points.
# Every level answers "how far along am I / how much is left" for a location.
# Nothing here mutates a route; a reroute substitutes a whole new Route.

import logging
import time
import uuid
from dataclasses import dataclass, field
from functools import cached_property
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .geo_utils import (
    distance_between,
    nearest_segment,
    point_to_polyline_distance,
    segment_lengths,
)
from .models import Coord, Maneuver, VoiceInstruction

logger = logging.getLogger(__name__)


DEFAULT_STEP_TOLERANCE_M = 20.0
DEFAULT_ROUTE_TOLERANCE_M = 50.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _check_non_negative(name: str, distance: float, duration: float) -> None:
    if distance < 0:
        raise ValueError(f"{name} distance must be >= 0, got {distance}")
    if duration < 0:
        raise ValueError(f"{name} duration must be >= 0, got {duration}")


def remaining_distance_after(unit, traveled: float) -> float:
    """Distance left in a step, leg or route once traveled metres are covered."""
    return _clamp(unit.distance - traveled, 0.0, unit.distance)


def remaining_duration_after(unit, traveled: float) -> float:
    """Linear duration model: the same share of time as of distance is left."""
    if unit.distance <= 0:
        return 0.0
    return _clamp(unit.duration * (1.0 - traveled / unit.distance), 0.0, unit.duration)


# ---------------------------------------------------------------------------
# Step
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Step:
    """
    An atomic navigable unit within a leg, ending at one maneuver.

    Distances along the geometry are scaled to the declared step distance,
    so traveled + remaining always adds up to `distance`.
    """
    geometry: Tuple[Coord, ...]
    distance: float                 # metres
    duration: float                 # seconds
    maneuver: Maneuver
    index: int
    name: str = ""                  # road name
    voice_instructions: Tuple[VoiceInstruction, ...] = ()
    mode: str = "driving"
    speed_limit: Optional[float] = None

    def __post_init__(self) -> None:
        _check_non_negative("Step", self.distance, self.duration)
        object.__setattr__(self, "geometry", tuple(self.geometry))
        object.__setattr__(self, "voice_instructions", tuple(self.voice_instructions))

    @property
    def start_point(self) -> Coord:
        return self.geometry[0] if self.geometry else self.maneuver.location

    @property
    def end_point(self) -> Coord:
        return self.geometry[-1] if self.geometry else self.maneuver.location

    @cached_property
    def _cumulative(self) -> np.ndarray:
        return np.concatenate(([0.0], np.cumsum(segment_lengths(self.geometry))))

    @property
    def geometry_length(self) -> float:
        """Length of the geometry polyline in metres (may differ from distance)."""
        return float(self._cumulative[-1])

    def distance_from(self, location: Coord) -> float:
        """Perpendicular distance from the step geometry in metres."""
        return point_to_polyline_distance(location, self.geometry, fallback=self.maneuver.location)

    def is_location_on_step(self, location: Coord, tolerance: float = DEFAULT_STEP_TOLERANCE_M) -> bool:
        return self.distance_from(location) <= tolerance

    def distance_traveled(self, location: Coord, tolerance: float = DEFAULT_STEP_TOLERANCE_M) -> float:
        """
        Distance covered along this step, in metres.

        A location farther than tolerance from the geometry counts as having
        completed the step.
        """
        if len(self.geometry) < 2:
            return 0.0 if self.is_location_on_step(location, tolerance) else self.distance

        nearest = nearest_segment(location, self.geometry)
        if nearest.distance_m > tolerance:
            return self.distance

        seg_start = float(self._cumulative[nearest.index])
        seg_len = float(self._cumulative[nearest.index + 1]) - seg_start
        along = seg_start + nearest.projection.t * seg_len
        if self.geometry_length <= 0:
            return 0.0
        return _clamp(along * self.distance / self.geometry_length, 0.0, self.distance)

    def remaining_distance(self, location: Coord, tolerance: float = DEFAULT_STEP_TOLERANCE_M) -> float:
        return remaining_distance_after(self, self.distance_traveled(location, tolerance))

    def remaining_duration(self, location: Coord, tolerance: float = DEFAULT_STEP_TOLERANCE_M) -> float:
        return remaining_duration_after(self, self.distance_traveled(location, tolerance))

    def __repr__(self) -> str:
        return f"Step(index={self.index}, name={self.name!r}, distance={self.distance:.0f}m, maneuver={self.maneuver.type.value})"


# ---------------------------------------------------------------------------
# Leg
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Leg:
    """The part of a route between two consecutive waypoints."""
    steps: Tuple[Step, ...]
    distance: float
    duration: float
    start_location: Coord
    end_location: Coord
    index: int
    summary: str = ""

    def __post_init__(self) -> None:
        _check_non_negative("Leg", self.distance, self.duration)
        object.__setattr__(self, "steps", tuple(self.steps))

    @classmethod
    def from_steps(cls, steps: Sequence[Step], index: int, summary: str = "") -> "Leg":
        """Build a leg whose totals are the sums of its steps."""
        if not steps:
            raise ValueError("A leg built from steps needs at least one step.")
        return cls(
            steps=tuple(steps),
            distance=sum(s.distance for s in steps),
            duration=sum(s.duration for s in steps),
            start_location=steps[0].start_point,
            end_location=steps[-1].end_point,
            index=index,
            summary=summary,
        )

    @cached_property
    def geometry(self) -> Tuple[Coord, ...]:
        points = []
        for step in self.steps:
            points.extend(step.geometry)
        return tuple(points)

    def locate_step(
        self,
        location: Coord,
        step_tolerance: float = DEFAULT_STEP_TOLERANCE_M,
        tolerance: float = DEFAULT_ROUTE_TOLERANCE_M,
    ) -> Optional[int]:
        """
        Index of the step containing location.

        The first step within step_tolerance wins; failing that, the first
        step within the looser leg tolerance. None if the location is on no
        step at all.
        """
        distances = [step.distance_from(location) for step in self.steps]
        for limit in (step_tolerance, tolerance):
            for i, dist in enumerate(distances):
                if dist <= limit:
                    return i
        return None

    def is_location_on_leg(self, location: Coord, tolerance: float = DEFAULT_ROUTE_TOLERANCE_M) -> bool:
        return any(step.is_location_on_step(location, tolerance) for step in self.steps)

    def distance_traveled(
        self,
        location: Coord,
        step_tolerance: float = DEFAULT_STEP_TOLERANCE_M,
        tolerance: float = DEFAULT_ROUTE_TOLERANCE_M,
    ) -> float:
        """Distance covered in this leg; a location on no step counts as leg completed."""
        if not self.steps:
            return 0.0
        idx = self.locate_step(location, step_tolerance, tolerance)
        if idx is None:
            return self.distance
        prior = sum(step.distance for step in self.steps[:idx])
        traveled = prior + self.steps[idx].distance_traveled(location, tolerance)
        return _clamp(traveled, 0.0, self.distance)

    def remaining_distance(self, location: Coord, **tolerances: float) -> float:
        return remaining_distance_after(self, self.distance_traveled(location, **tolerances))

    def remaining_duration(self, location: Coord, **tolerances: float) -> float:
        return remaining_duration_after(self, self.distance_traveled(location, **tolerances))

    def get_current_step(self, distance_traveled_in_leg: float) -> Optional[Step]:
        """Step whose cumulative distance range contains the traveled distance."""
        if not self.steps:
            return None
        accumulated = 0.0
        for step in self.steps:
            if distance_traveled_in_leg <= accumulated + step.distance:
                return step
            accumulated += step.distance
        return self.steps[-1]

    def get_next_step(self, step: Step) -> Optional[Step]:
        for i, candidate in enumerate(self.steps):
            if candidate is step:
                return self.steps[i + 1] if i + 1 < len(self.steps) else None
        return None

    def upcoming_step(self, step_index: int, remaining_in_step: float, near_threshold_m: float) -> Step:
        """
        The step whose maneuver should be announced next.

        Once less than near_threshold_m remains in the current step, look
        ahead to the following one (if any).
        """
        current = self.steps[step_index]
        if remaining_in_step < near_threshold_m and step_index + 1 < len(self.steps):
            return self.steps[step_index + 1]
        return current

    def __repr__(self) -> str:
        return f"Leg(index={self.index}, summary={self.summary!r}, distance={self.distance:.0f}m, steps={len(self.steps)})"


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

def _new_route_id() -> str:
    return f"route_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Route:
    """
    A calculated multi-leg route. Equality is by route_id only.
    """
    legs: Tuple[Leg, ...] = field(compare=False)
    distance: float = field(compare=False)
    duration: float = field(compare=False)
    geometry: Tuple[Coord, ...] = field(compare=False)
    origin: Coord = field(compare=False)
    destination: Coord = field(compare=False)
    waypoints: Tuple[Coord, ...] = field(default=(), compare=False)
    summary: str = field(default="", compare=False)
    weight: Optional[float] = field(default=None, compare=False)
    created_at: float = field(default_factory=time.time, compare=False)
    route_id: str = field(default_factory=_new_route_id)

    def __post_init__(self) -> None:
        _check_non_negative("Route", self.distance, self.duration)
        object.__setattr__(self, "legs", tuple(self.legs))
        object.__setattr__(self, "geometry", tuple(self.geometry))
        object.__setattr__(self, "waypoints", tuple(self.waypoints))

    @classmethod
    def from_legs(
        cls,
        legs: Sequence[Leg],
        waypoints: Iterable[Coord] = (),
        summary: str = "",
        route_id: Optional[str] = None,
        contiguity_tolerance_m: float = DEFAULT_ROUTE_TOLERANCE_M,
    ) -> "Route":
        """
        Build a route whose totals and geometry come from its legs.

        Raises:
            ValueError: no legs given.
        """
        if not legs:
            raise ValueError("A route needs at least one leg.")
        for prev, nxt in zip(legs, legs[1:]):
            gap = distance_between(prev.end_location, nxt.start_location)
            if gap > contiguity_tolerance_m:
                logger.warning(f"Legs {prev.index} and {nxt.index} are {gap:.0f} m apart.")

        geometry = []
        for leg in legs:
            geometry.extend(leg.geometry)

        kwargs = {} if route_id is None else {"route_id": route_id}
        return cls(
            legs=tuple(legs),
            distance=sum(leg.distance for leg in legs),
            duration=sum(leg.duration for leg in legs),
            geometry=tuple(geometry),
            origin=legs[0].start_location,
            destination=legs[-1].end_location,
            waypoints=tuple(waypoints),
            summary=summary,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Location queries
    # ------------------------------------------------------------------

    def locate_leg(
        self,
        location: Coord,
        tolerance: float = DEFAULT_ROUTE_TOLERANCE_M,
    ) -> Optional[int]:
        """Index of the first leg whose geometry contains location, else None."""
        for i, leg in enumerate(self.legs):
            if leg.is_location_on_leg(location, tolerance):
                return i
        return None

    def distance_traveled(
        self,
        location: Coord,
        step_tolerance: float = DEFAULT_STEP_TOLERANCE_M,
        tolerance: float = DEFAULT_ROUTE_TOLERANCE_M,
    ) -> float:
        """
        Distance covered along the whole route.

        A location that matches no leg is treated as the route being fully
        traversed, never as having regressed.
        """
        if not self.legs:
            return 0.0
        idx = self.locate_leg(location, tolerance)
        if idx is None:
            return self.distance
        prior = sum(leg.distance for leg in self.legs[:idx])
        traveled = prior + self.legs[idx].distance_traveled(location, step_tolerance, tolerance)
        return _clamp(traveled, 0.0, self.distance)

    def remaining_distance(self, location: Coord, **tolerances: float) -> float:
        return remaining_distance_after(self, self.distance_traveled(location, **tolerances))

    def remaining_duration(self, location: Coord, **tolerances: float) -> float:
        return remaining_duration_after(self, self.distance_traveled(location, **tolerances))

    def eta(self, location: Coord, now: Optional[float] = None) -> float:
        """Estimated arrival as a unix timestamp."""
        now = time.time() if now is None else now
        return now + self.remaining_duration(location)

    def distance_from_route(self, location: Coord) -> float:
        return point_to_polyline_distance(location, self.geometry, fallback=self.origin)

    def is_location_on_route(self, location: Coord, tolerance: float = DEFAULT_ROUTE_TOLERANCE_M) -> bool:
        return self.distance_from_route(location) <= tolerance

    def closest_point(self, location: Coord) -> Coord:
        """Projection of location onto the route geometry."""
        if len(self.geometry) < 2:
            return self.geometry[0] if self.geometry else self.origin
        proj = nearest_segment(location, self.geometry).projection
        return Coord(proj.lat, proj.lon, timestamp=location.timestamp)

    def get_current_leg(self, distance_traveled: float) -> Optional[Leg]:
        """Leg whose cumulative distance range contains the traveled distance."""
        if not self.legs:
            return None
        accumulated = 0.0
        for leg in self.legs:
            if distance_traveled <= accumulated + leg.distance:
                return leg
            accumulated += leg.distance
        return self.legs[-1]

    def get_next_step(self, step: Step) -> Optional[Step]:
        """Step after the given one, continuing into the next leg."""
        steps = [s for leg in self.legs for s in leg.steps]
        for i, candidate in enumerate(steps):
            if candidate is step:
                return steps[i + 1] if i + 1 < len(steps) else None
        return None

    def __repr__(self) -> str:
        return (
            f"Route(id={self.route_id}, distance={self.distance:.0f}m, "
            f"duration={self.duration / 60:.1f}min, legs={len(self.legs)})"
        )
