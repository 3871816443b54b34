# announcer.py
# Decides when the upcoming maneuver should be announced.
#
# The lead distance grows with speed and with maneuver complexity:
#   distance = speed * warning_time(road, complex) + safety_buffer + complexity_buffer
# clamped to [min, max]. Cooldowns and repeat suppression come from the
# per-road-type profile in NavConfig.

import logging
from typing import Optional

from .models import AnnouncementKind, Maneuver, ManeuverType, RoadType
from .nav_config import NavConfig
from .session import AnnouncementState

logger = logging.getLogger(__name__)


_RAMP_TYPES = frozenset({ManeuverType.OFF_RAMP, ManeuverType.FORK})
_ROUNDABOUT_TYPES = frozenset({
    ManeuverType.ROUNDABOUT,
    ManeuverType.EXIT_ROUNDABOUT,
    ManeuverType.EXIT_ROTARY,
})
_TURN_TYPES = frozenset({ManeuverType.TURN, ManeuverType.MERGE})

# (highway, other roads) extra metres of lead distance
_RAMP_BUFFER_M = (100.0, 50.0)
_ROUNDABOUT_BUFFER_M = (75.0, 25.0)
_SHARP_TURN_BUFFER_M = (50.0, 20.0)


class ManeuverAnnouncer:
    """
    Decides when the upcoming maneuver should be announced, and how.

    The lead distance grows with speed, road type and maneuver complexity;
    repeats of the same maneuver are suppressed unless a reminder is due.

    Usage:
        announcer = ManeuverAnnouncer(config)
        kind = announcer.evaluate(state, maneuver, distance, road_type, speed, now)
        if kind is not None:
            speak(maneuver.instruction)

    Args:
        config: Optional NavConfig; defaults to NavConfig().
    """

    def __init__(self, config: Optional[NavConfig] = None):
        self.config = config or NavConfig()

    # ------------------------------------------------------------------
    # Maneuver complexity
    # ------------------------------------------------------------------

    def is_complex_maneuver(self, maneuver: Maneuver, road_type: RoadType) -> bool:
        """
        Complex maneuvers get extra warning time.
        Highways treat every ramp, fork, roundabout and merge as complex.
        """
        if road_type is RoadType.HIGHWAY:
            if maneuver.type in _RAMP_TYPES or maneuver.type in _ROUNDABOUT_TYPES:
                return True
            if maneuver.type is ManeuverType.MERGE:
                return True
            return maneuver.type is ManeuverType.TURN and maneuver.is_sharp

        if maneuver.type in _ROUNDABOUT_TYPES:
            return True
        if maneuver.type in _RAMP_TYPES:
            return road_type is RoadType.SUBURBAN
        return maneuver.type in _TURN_TYPES and maneuver.is_sharp

    def complexity_buffer(self, maneuver: Maneuver, road_type: RoadType) -> float:
        slot = 0 if road_type is RoadType.HIGHWAY else 1
        if maneuver.type in _RAMP_TYPES:
            return _RAMP_BUFFER_M[slot]
        if maneuver.type in _ROUNDABOUT_TYPES:
            return _ROUNDABOUT_BUFFER_M[slot]
        if maneuver.type in _TURN_TYPES and maneuver.is_sharp:
            return _SHARP_TURN_BUFFER_M[slot]
        return 0.0

    def warning_time(self, maneuver: Maneuver, road_type: RoadType) -> float:
        base = self.config.profile(road_type).warning_time_s
        if self.is_complex_maneuver(maneuver, road_type):
            base += self.config.complex_extra_time_s
        return base

    def announcement_distance(self, maneuver: Maneuver, road_type: RoadType, speed_mps: float) -> float:
        """
        Adaptive lead distance for announcing maneuver, in metres.

        Args:
            maneuver:  Upcoming maneuver.
            road_type: Current road classification.
            speed_mps: Smoothed speed.

        Returns:
            Distance clamped to [min_announcement_distance_m, max_announcement_distance_m].
        """
        cfg = self.config
        distance = (
            speed_mps * self.warning_time(maneuver, road_type)
            + cfg.safety_buffer_m
            + self.complexity_buffer(maneuver, road_type)
        )
        return max(cfg.min_announcement_distance_m, min(cfg.max_announcement_distance_m, distance))

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def evaluate(
        self,
        state: AnnouncementState,
        maneuver: Maneuver,
        distance_to_maneuver: float,
        road_type: RoadType,
        speed_mps: float,
        now: float,
    ) -> Optional[AnnouncementKind]:
        """
        Decide whether to announce maneuver now. The first matching rule wins.

        On announce, state is updated with the maneuver and now.

        Returns:
            The kind of announcement, or None to stay silent.
        """
        kind = self._decide(state, maneuver, distance_to_maneuver, road_type, speed_mps, now)
        if kind is not None:
            state.record(maneuver, now)
            logger.info(
                f"Announcing {kind.value}: {maneuver.instruction!r} in {distance_to_maneuver:.0f} m "
                f"({road_type.value})"
            )
        return kind

    def _decide(self, state, maneuver, distance, road_type, speed_mps, now) -> Optional[AnnouncementKind]:
        cfg = self.config
        profile = cfg.profile(road_type)
        lead = self.announcement_distance(maneuver, road_type, speed_mps)

        if not state.has_announced:
            return AnnouncementKind.INITIAL if distance <= lead else None

        elapsed = now - state.last_time
        same = maneuver.is_same_as(state.last_maneuver)

        if same and elapsed < cfg.same_maneuver_suppress_s:
            return None
        if distance <= lead and elapsed > profile.cooldown_s:
            return AnnouncementKind.PRIMARY
        if distance <= profile.reminder_distance_m and elapsed > profile.cooldown_s / 2 and not same:
            return AnnouncementKind.REMINDER
        if distance <= profile.urgent_distance_m and elapsed > cfg.urgent_min_gap_s and not same:
            return AnnouncementKind.URGENT
        if distance <= profile.urgent_distance_m and same and elapsed > cfg.final_reminder_gap_s:
            return AnnouncementKind.FINAL_REMINDER
        return None
