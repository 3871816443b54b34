# speed_estimator.py
# Smoothed speed from consecutive GPS fixes, plus a best-effort road type guess.
#
# Two damping stages:
#   1. a short weighted window over the last few instantaneous speeds
#   2. exponential smoothing of the windowed value against the previous estimate
# The window is cleared every few seconds so stale samples cannot pile up.

import logging
from collections import deque
from typing import Deque, Optional

import numpy as np

from .models import Coord, RoadType
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class SpeedEstimator:
    """
    Smoothed ground speed from a stream of fixes.

    Keeps the instantaneous speeds of the last few seconds and blends their
    weighted average with the previous estimate.

    Usage:
        estimator = SpeedEstimator(config)
        speed = estimator.update(location)     # m/s
        estimator.road_type(snapshot.current_road_name)

    Args:
        config: Optional NavConfig; defaults to NavConfig().
    """

    def __init__(self, config: Optional[NavConfig] = None):
        self.config = config or NavConfig()
        self._history: Deque[float] = deque(maxlen=self.config.speed_history_size)
        self._speed: float = 0.0
        self._last_fix: Optional[Coord] = None
        self._window_start: Optional[float] = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def current_speed(self) -> float:
        """Smoothed speed in m/s (0 until two usable fixes were seen)."""
        return self._speed

    @property
    def history(self) -> tuple:
        return tuple(self._history)

    # ------------------------------------------------------------------
    # Core method
    # ------------------------------------------------------------------

    def update(self, location: Coord) -> float:
        """
        Feed one fix and return the new smoothed speed.

        Fixes that are not strictly newer than the previous one are skipped;
        the estimate stays unchanged for that update.
        """
        cfg = self.config
        if self._last_fix is None:
            self._last_fix = location
            self._window_start = location.timestamp
            return self._speed

        elapsed = location.timestamp - self._last_fix.timestamp
        if elapsed <= 0:
            logger.debug(f"Skipping speed update: non-increasing timestamp (elapsed {elapsed:.3f}s).")
            return self._speed

        if location.timestamp - self._window_start >= cfg.speed_window_s:
            self._history.clear()
            self._window_start = location.timestamp

        instantaneous = self._last_fix.distance_to(location) / elapsed
        self._history.append(instantaneous)
        self._last_fix = location

        if self._speed == 0.0:
            self._speed = instantaneous
        elif len(self._history) >= cfg.min_history_for_weighted:
            n = len(self._history)
            weights = np.asarray(cfg.speed_weights[-n:], dtype=float)
            weighted = float(np.average(np.asarray(self._history, dtype=float), weights=weights))
            blend = cfg.speed_history_blend
            self._speed = blend * self._speed + (1.0 - blend) * weighted
        else:
            blend = cfg.speed_simple_blend
            self._speed = blend * self._speed + (1.0 - blend) * instantaneous

        return self._speed

    def road_type(self, road_name: str = "") -> RoadType:
        return classify_road_type(self._speed, road_name, self.config)

    def reset(self) -> None:
        self._history.clear()
        self._speed = 0.0
        self._last_fix = None
        self._window_start = None


def classify_road_type(speed_mps: float, road_name: str = "", config: Optional[NavConfig] = None) -> RoadType:
    """
    Guess the road type from speed, falling back on the road name for
    speeds between the urban and highway thresholds. Heuristic only.

    Args:
        speed_mps: Smoothed speed in m/s.
        road_name: Current road name, may be empty.
        config:    Thresholds and name hints.

    Returns:
        RoadType.
    """
    cfg = config or NavConfig()
    if speed_mps >= cfg.highway_speed_threshold_mps:
        return RoadType.HIGHWAY
    if speed_mps <= cfg.urban_speed_threshold_mps:
        return RoadType.URBAN

    name = f"{road_name.lower()} "
    if any(hint in name for hint in cfg.highway_name_hints):
        return RoadType.HIGHWAY
    if any(hint in name for hint in cfg.urban_name_hints):
        return RoadType.URBAN
    return RoadType.SUBURBAN
