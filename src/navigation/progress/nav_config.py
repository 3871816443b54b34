# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

from dataclasses import dataclass, field, replace
from typing import Dict, Tuple

from .models import RoadType


# ---------------------------------------------------------------------------
# Road type constants (used by the speed estimator and the announcer)
# ---------------------------------------------------------------------------

URBAN_SPEED_THRESHOLD_MPS: float = 15.6     # ~35 mph
HIGHWAY_SPEED_THRESHOLD_MPS: float = 24.6   # ~55 mph

HIGHWAY_NAME_HINTS: Tuple[str, ...] = (
    "highway", "freeway", "interstate", "i-", "us ", "route ", "exit",
)

URBAN_NAME_HINTS: Tuple[str, ...] = (
    "street", "st ", "avenue", "rd ", "boulevard", "dr ",
)

SPEED_WEIGHTS: Tuple[float, ...] = (0.1, 0.15, 0.25, 0.25, 0.25)


@dataclass(frozen=True)
class RoadTypeProfile:
    """Announcement timing for one road type."""
    warning_time_s: float       # base lead time before a maneuver
    cooldown_s: float           # minimum gap between primary announcements
    reminder_distance_m: float
    urgent_distance_m: float


def _default_profiles() -> Dict[RoadType, RoadTypeProfile]:
    return {
        RoadType.URBAN:    RoadTypeProfile(15.0, 10.0, 30.0, 15.0),
        RoadType.SUBURBAN: RoadTypeProfile(20.0, 15.0, 60.0, 30.0),
        RoadType.HIGHWAY:  RoadTypeProfile(35.0, 20.0, 100.0, 50.0),
    }


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Geometry tolerances
    step_tolerance_m: float = 20.0          # location counts as "on this step"
    route_tolerance_m: float = 50.0         # location counts as "on this leg / route"
    near_maneuver_threshold_m: float = 50.0  # look ahead to the next step below this

    # Deviation (warning and return-guidance are derived from this)
    reroute_threshold_m: float = 50.0

    # Speed estimation
    speed_history_size: int = 5
    speed_weights: Tuple[float, ...] = SPEED_WEIGHTS
    min_history_for_weighted: int = 3
    speed_window_s: float = 5.0
    speed_history_blend: float = 0.6        # share of the previous estimate (weighted mode)
    speed_simple_blend: float = 0.7         # share of the previous estimate (simple mode)

    # Road type classification
    urban_speed_threshold_mps: float = URBAN_SPEED_THRESHOLD_MPS
    highway_speed_threshold_mps: float = HIGHWAY_SPEED_THRESHOLD_MPS
    highway_name_hints: Tuple[str, ...] = HIGHWAY_NAME_HINTS
    urban_name_hints: Tuple[str, ...] = URBAN_NAME_HINTS
    road_profiles: Dict[RoadType, RoadTypeProfile] = field(default_factory=_default_profiles)

    # Maneuver announcements
    complex_extra_time_s: float = 10.0
    safety_buffer_m: float = 50.0
    min_announcement_distance_m: float = 100.0
    max_announcement_distance_m: float = 1000.0
    same_maneuver_suppress_s: float = 30.0
    urgent_min_gap_s: float = 5.0
    final_reminder_gap_s: float = 25.0

    # Arrival
    arrival_max_route_offset_m: float = 25.0
    arrival_remaining_m: float = 15.0
    arrival_direct_max_m: float = 30.0
    arrival_immediate_remaining_m: float = 8.0
    arrival_immediate_direct_m: float = 15.0
    arrival_slow_speed_mps: float = 2.0
    arrival_slow_direct_m: float = 20.0
    arrival_stationary_remaining_m: float = 12.0
    arrival_stationary_direct_m: float = 18.0
    arrival_first_fix_remaining_m: float = 10.0
    arrival_first_fix_direct_m: float = 15.0

    # Progress emission
    location_throttle_s: float = 0.5
    significant_move_m: float = 10.0
    significant_progress_ratio: float = 0.01
    periodic_progress_ratio: float = 0.005
    progress_check_interval_s: float = 5.0

    # Rerouting
    reroute_min_interval_s: float = 10.0

    def __post_init__(self) -> None:
        if self.reroute_threshold_m <= 0:
            raise ValueError("reroute_threshold_m must be positive.")
        if len(self.speed_weights) < self.speed_history_size:
            raise ValueError("speed_weights needs one weight per history slot.")

    @property
    def warning_threshold_m(self) -> float:
        return self.reroute_threshold_m * 0.3

    @property
    def return_guidance_threshold_m(self) -> float:
        return self.reroute_threshold_m * 0.5

    def profile(self, road_type: RoadType) -> RoadTypeProfile:
        return self.road_profiles[road_type]

    def with_reroute_threshold(self, threshold_m: float) -> "NavConfig":
        """Copy of this config with a new reroute threshold (R)."""
        return replace(self, reroute_threshold_m=threshold_m)
