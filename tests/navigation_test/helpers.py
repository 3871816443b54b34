"""Route builders for the navigation tests.

Routes run east along the equator, where metres convert to longitude
exactly, so expected distances can be written down directly.
"""
import math
from pathlib import Path
import sys
from typing import Optional, Sequence

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from navigation.progress.geo_utils import EARTH_RADIUS_M
from navigation.progress.models import Coord, Maneuver, ManeuverModifier, ManeuverType
from navigation.progress.route import Leg, Route, Step

SECONDS_PER_METRE = 0.6     # 500 m legs take 300 s


def at(x_m: float, north_m: float = 0.0, t: float = 0.0, speed: Optional[float] = None) -> Coord:
    """Point x_m east of (0, 0) and north_m north of the equator."""
    return Coord(
        lat=math.degrees(north_m / EARTH_RADIUS_M),
        lon=math.degrees(x_m / EARTH_RADIUS_M),
        timestamp=t,
        speed=speed,
    )


def make_step(
    start_x: float,
    end_x: float,
    index: int,
    leg_index: int = 0,
    maneuver_type: ManeuverType = ManeuverType.TURN,
    modifier: Optional[ManeuverModifier] = ManeuverModifier.RIGHT,
    distance: Optional[float] = None,
    name: str = "",
) -> Step:
    length = end_x - start_x if distance is None else distance
    return Step(
        geometry=(at(start_x), at(end_x)),
        distance=length,
        duration=length * SECONDS_PER_METRE,
        maneuver=Maneuver(
            type=maneuver_type,
            instruction=f"{maneuver_type.value} {index}",
            location=at(start_x),
            step_index=index,
            leg_index=leg_index,
            modifier=modifier,
        ),
        index=index,
        name=name or f"Road {leg_index}-{index}",
    )


def make_route(leg_lengths: Sequence[float] = (1000.0,), steps_per_leg: int = 1) -> Route:
    """Contiguous legs along the equator, each split into equal steps."""
    legs = []
    x = 0.0
    for leg_index, length in enumerate(leg_lengths):
        step_len = length / steps_per_leg
        steps = []
        for i in range(steps_per_leg):
            maneuver_type = ManeuverType.DEPART if leg_index == 0 and i == 0 else ManeuverType.TURN
            steps.append(make_step(x, x + step_len, i, leg_index, maneuver_type))
            x += step_len
        legs.append(Leg.from_steps(steps, leg_index, summary=f"Leg {leg_index}"))
    return Route.from_legs(legs)
