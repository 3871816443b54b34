# arrival.py
# Arrival detection with a speed-aware confirmation.

from typing import Optional

from .models import Coord
from .nav_config import NavConfig
from .snapshot import ProgressSnapshot


def check_arrival(
    snapshot: ProgressSnapshot,
    destination: Coord,
    previous_fix: Optional[Coord] = None,
    config: Optional[NavConfig] = None,
) -> bool:
    """
    True if the snapshot's location counts as having arrived at destination.

    Only considered on route (or close to it). Both the route distance left
    and the straight-line distance must be small; how small depends on what
    is known about the movement:
      - previous fix, time elapsed: close enough, or slow and fairly close
      - previous fix, no time elapsed: 12 m left / 18 m direct
      - no previous fix: 10 m left / 15 m direct

    The caller keeps arrival sticky; this function has no memory.
    """
    cfg = config or NavConfig()
    if not snapshot.is_on_route and snapshot.route_offset_m > cfg.arrival_max_route_offset_m:
        return False

    location = snapshot.current_location
    remaining = snapshot.distance_remaining
    direct = location.distance_to(destination)
    if remaining > cfg.arrival_remaining_m or direct > cfg.arrival_direct_max_m:
        return False

    if previous_fix is None:
        return remaining <= cfg.arrival_first_fix_remaining_m and direct <= cfg.arrival_first_fix_direct_m

    elapsed = location.timestamp - previous_fix.timestamp
    if elapsed <= 0:
        return remaining <= cfg.arrival_stationary_remaining_m and direct <= cfg.arrival_stationary_direct_m

    if remaining <= cfg.arrival_immediate_remaining_m and direct <= cfg.arrival_immediate_direct_m:
        return True

    speed = location.speed if location.speed is not None else previous_fix.distance_to(location) / elapsed
    return speed < cfg.arrival_slow_speed_mps and direct <= cfg.arrival_slow_direct_m
