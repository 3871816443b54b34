# main.py
# Entry point: replays simulated GPS fixes along a route through the tracker.
# In production, replace the simulated feed with your real GPS source.
#
# Usage:
#   nav-progress-sim                      # built-in demo walk (Kızılay, Ankara)
#   nav-progress-sim directions.json      # route from a directions API response
#   nav-progress-sim --offset 80          # walk 80 m beside the route to see deviation events

import argparse
import json
import logging
import math
from typing import Iterator, List, Optional, Sequence

import numpy as np

from .directions import route_from_directions
from .events import Arrived, ProgressUpdated, RouteDeviated, TrackerEvent, UpcomingManeuver
from .geo_utils import EARTH_RADIUS_M, distance_between, interpolate, segment_lengths, turn_modifier
from .models import Coord, Maneuver, ManeuverModifier, ManeuverType
from .nav_config import NavConfig
from .ports import LocationFeed
from .route import Leg, Route, Step
from .route_tracker import RouteTracker
from .snapshot import format_distance

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Demo route coordinates (Kızılay, Ankara)
# ------------------------------------------------------------------
DEMO_POINTS = [
    Coord(39.92077, 32.85411),   # Start
    Coord(39.92520, 32.85411),
    Coord(39.92520, 32.85900),
    Coord(39.92900, 32.85900),
    Coord(39.92900, 32.86300),   # Destination
]

WALKING_SPEED_MPS = 1.4


def demo_route(points: Sequence[Coord] = DEMO_POINTS, speed_mps: float = WALKING_SPEED_MPS) -> Route:
    """One-leg walking route with one step per segment of points."""
    steps: List[Step] = []
    for i in range(len(points) - 1):
        start, end = points[i], points[i + 1]
        distance = distance_between(start, end)
        bearing_after = start.bearing_to(end)
        if i == 0:
            maneuver_type, modifier, text = ManeuverType.DEPART, None, "Head out"
        else:
            bearing_before = points[i - 1].bearing_to(start)
            modifier = ManeuverModifier.from_wire(turn_modifier(bearing_after - bearing_before))
            maneuver_type = ManeuverType.TURN
            if modifier is ManeuverModifier.STRAIGHT:
                text = "Continue straight"
            elif modifier is ManeuverModifier.U_TURN:
                text = "Make a U-turn"
            else:
                text = f"Turn {modifier.value}"
        steps.append(Step(
            geometry=(start, end),
            distance=distance,
            duration=distance / speed_mps,
            maneuver=Maneuver(maneuver_type, text, start, i, 0, modifier=modifier, bearing_after=bearing_after),
            index=i,
            name=f"Segment {i + 1}",
            mode="walking",
        ))

    last = points[-1]
    steps.append(Step(
        geometry=(last,),
        distance=0.0,
        duration=0.0,
        maneuver=Maneuver(ManeuverType.ARRIVE, "You have arrived", last, len(steps), 0),
        index=len(steps),
        mode="walking",
    ))
    return Route.from_legs([Leg.from_steps(steps, 0, summary="Demo walk")], summary="Demo walk")


def load_route(path: str, polyline_precision: int = 5) -> Route:
    with open(path, "r", encoding="utf-8") as f:
        return route_from_directions(json.load(f), polyline_precision=polyline_precision)


def simulate_fixes(
    route: Route,
    speed_mps: float,
    interval_s: float = 1.0,
    start_time: float = 0.0,
    offset_m: float = 0.0,
) -> Iterator[Coord]:
    """
    Fixes moving along the route geometry at a constant speed.

    Args:
        route:      Route to follow.
        speed_mps:  Simulated speed.
        interval_s: Time between fixes.
        start_time: Timestamp of the first fix.
        offset_m:   Shift every fix this far north of the geometry.

    Yields:
        Coord with timestamp and speed set.
    """
    points = [p for i, p in enumerate(route.geometry) if i == 0 or p != route.geometry[i - 1]]
    if not points:
        return
    if speed_mps <= 0 or interval_s <= 0:
        raise ValueError("speed_mps and interval_s must be positive.")

    d_lat = math.degrees(offset_m / EARTH_RADIUS_M)
    cumulative = np.concatenate(([0.0], np.cumsum(segment_lengths(points))))
    total = float(cumulative[-1])
    along = [s for s in np.arange(0.0, total, speed_mps * interval_s).tolist() if total - s > 1e-6] + [total]

    for k, s in enumerate(along):
        i = min(int(np.searchsorted(cumulative, s, side="right")) - 1, len(points) - 2)
        if i < 0:
            lat, lon = points[0].lat, points[0].lon
        else:
            seg_len = cumulative[i + 1] - cumulative[i]
            fraction = (s - cumulative[i]) / seg_len if seg_len > 0 else 1.0
            lat, lon = interpolate(points[i], points[i + 1], min(1.0, fraction))
        yield Coord(lat + d_lat, lon, timestamp=start_time + k * interval_s, speed=speed_mps)


def describe(event: TrackerEvent) -> str:
    if isinstance(event, ProgressUpdated):
        return str(event.snapshot)
    if isinstance(event, UpcomingManeuver):
        return f"[{event.kind.value}] {event.maneuver.instruction} in {format_distance(event.distance)}"
    if isinstance(event, RouteDeviated):
        return f"Off route by {format_distance(event.deviation.distance_from_route)}"
    if isinstance(event, Arrived):
        return "Destination reached."
    return repr(event)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay simulated GPS fixes along a route.")
    parser.add_argument("directions", nargs="?", help="Directions API response (JSON). Default: demo route.")
    parser.add_argument("--speed", type=float, default=None, help="Simulated speed in m/s.")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between fixes.")
    parser.add_argument("--offset", type=float, default=0.0, help="Walk this many metres beside the route.")
    parser.add_argument("--reroute-threshold", type=float, default=50.0, help="Reroute threshold R in metres.")
    parser.add_argument("--precision", type=int, default=5, choices=(5, 6), help="Encoded polyline precision.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # ------------------------------------------------------------------
    # Logging setup. Configure once here, all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = NavConfig(reroute_threshold_m=args.reroute_threshold)

    if args.directions:
        try:
            route = load_route(args.directions, args.precision)
        except (OSError, ValueError) as exc:
            logger.error(f"Could not load route from {args.directions}: {exc}")
            return 1
        speed = args.speed if args.speed is not None else 10.0
    else:
        route = demo_route()
        speed = args.speed if args.speed is not None else WALKING_SPEED_MPS

    feed = LocationFeed()
    tracker = RouteTracker(config)
    tracker.events.subscribe_all(lambda event: print(f"  {describe(event)}"))
    arrivals: List[Arrived] = []
    tracker.events.subscribe(Arrived, arrivals.append)

    print(f"\n--- Replaying {route!r} at {speed:.1f} m/s ---")
    tracker.start_tracking(route, feed)
    for location in simulate_fixes(route, speed, args.interval, offset_m=args.offset):
        feed.push(location)
        if arrivals:
            break

    tracker.stop_tracking()
    print("\n--- Session complete ---")
    return 0 if arrivals else 2


if __name__ == "__main__":
    raise SystemExit(main())
