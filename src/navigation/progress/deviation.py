# deviation.py
# Graduated off-route classification.
#
# All three thresholds come from one reroute threshold R:
#   ON_ROUTE         d <= 0.3R
#   WARNING          0.3R < d <= 0.5R
#   RETURN_GUIDANCE  0.5R < d <  R
#   REROUTE          d >= R          -> RouteDeviation, on every such fix
#
# Classification depends on the current distance only (no hysteresis).

import logging
from typing import NamedTuple, Optional

from .models import DeviationLevel, RouteDeviation
from .nav_config import NavConfig
from .session import KnownGoodPosition
from .snapshot import ProgressSnapshot

logger = logging.getLogger(__name__)


class DeviationResult(NamedTuple):
    level: DeviationLevel
    deviation: Optional[RouteDeviation]     # set only at REROUTE


class DeviationPolicy:
    """
    Graduated off-route levels derived from one reroute threshold R.

    Warning above 0.3R, return guidance above 0.5R, reroute from R on.

    Usage:
        policy = DeviationPolicy(config)
        result = policy.evaluate(snapshot, session.known_good)
        if result.deviation is not None:
            request_reroute(result.deviation)

    Args:
        config: Optional NavConfig; defaults to NavConfig().
    """

    def __init__(self, config: Optional[NavConfig] = None):
        self.config = config or NavConfig()

    # ------------------------------------------------------------------
    # Thresholds
    # ------------------------------------------------------------------

    @property
    def reroute_threshold(self) -> float:
        return self.config.reroute_threshold_m

    @reroute_threshold.setter
    def reroute_threshold(self, threshold_m: float) -> None:
        # NavConfig validates; the derived thresholds follow automatically.
        self.config = self.config.with_reroute_threshold(threshold_m)

    @property
    def warning_threshold(self) -> float:
        return self.config.warning_threshold_m

    @property
    def return_guidance_threshold(self) -> float:
        return self.config.return_guidance_threshold_m

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def classify(self, distance_from_route: float) -> DeviationLevel:
        if distance_from_route >= self.reroute_threshold:
            return DeviationLevel.REROUTE
        if distance_from_route > self.return_guidance_threshold:
            return DeviationLevel.RETURN_GUIDANCE
        if distance_from_route > self.warning_threshold:
            return DeviationLevel.WARNING
        return DeviationLevel.ON_ROUTE

    def evaluate(self, snapshot: ProgressSnapshot, known_good: KnownGoodPosition) -> DeviationResult:
        """
        Classify the snapshot's offset from the route and maintain the anchor.

        The last-known-good anchor is refreshed while on route and, so that a
        session starting adrift still gets one, at RETURN_GUIDANCE too.

        Args:
            snapshot:   Snapshot of the current fix.
            known_good: Session anchor, updated in place.

        Returns:
            DeviationResult; deviation is set only at REROUTE.
        """
        distance = snapshot.route_offset_m
        level = self.classify(distance)

        if level in (DeviationLevel.ON_ROUTE, DeviationLevel.RETURN_GUIDANCE):
            known_good.record(snapshot)

        if level is not DeviationLevel.REROUTE:
            return DeviationResult(level, None)

        logger.debug(f"Off route by {distance:.1f} m (reroute threshold {self.reroute_threshold:.1f} m).")
        deviation = RouteDeviation(
            current_location=snapshot.current_location,
            distance_from_route=distance,
            timestamp=snapshot.timestamp,
            last_known_good_maneuver=known_good.maneuver,
            last_known_good_step_index=known_good.step_index,
            last_known_good_leg_index=known_good.leg_index,
            last_known_good_location=known_good.location,
        )
        return DeviationResult(level, deviation)
