# session.py
# Mutable per-session state owned by the RouteTracker.
# The evaluation components receive the pieces they need explicitly;
# nothing here is shared between sessions.

from dataclasses import dataclass, field
from typing import Optional

from .models import Coord, DeviationLevel, Maneuver
from .nav_config import NavConfig
from .route import Route
from .snapshot import ProgressSnapshot
from .speed_estimator import SpeedEstimator


@dataclass
class AnnouncementState:
    """Last maneuver announced and when (fix clock, seconds)."""
    last_maneuver: Optional[Maneuver] = None
    last_time: Optional[float] = None

    @property
    def has_announced(self) -> bool:
        return self.last_maneuver is not None and self.last_time is not None

    def record(self, maneuver: Maneuver, now: float) -> None:
        self.last_maneuver = maneuver
        self.last_time = now

    def clear(self) -> None:
        self.last_maneuver = None
        self.last_time = None


@dataclass
class KnownGoodPosition:
    """Most recent confirmed-on-route position, kept as a reroute anchor."""
    maneuver: Optional[Maneuver] = None
    step_index: Optional[int] = None
    leg_index: Optional[int] = None
    location: Optional[Coord] = None
    timestamp: Optional[float] = None

    @property
    def is_set(self) -> bool:
        return self.location is not None

    def record(self, snapshot: ProgressSnapshot) -> None:
        self.maneuver = snapshot.upcoming_maneuver
        self.step_index = snapshot.current_step_index
        self.leg_index = snapshot.current_leg_index
        self.location = snapshot.current_location
        self.timestamp = snapshot.timestamp

    def clear(self) -> None:
        self.maneuver = None
        self.step_index = None
        self.leg_index = None
        self.location = None
        self.timestamp = None


@dataclass
class TrackingSession:
    """Everything the tracker remembers between two fixes of one session."""
    route: Route
    start_time: Optional[float] = None              # fix clock; first fix if not given
    config: NavConfig = field(default_factory=NavConfig)
    subscription: Optional[object] = None

    last_location: Optional[Coord] = None           # raw, including throttled fixes
    last_processed: Optional[Coord] = None
    current_snapshot: Optional[ProgressSnapshot] = None
    last_emitted: Optional[ProgressSnapshot] = None
    deviation_level: DeviationLevel = DeviationLevel.ON_ROUTE
    arrived: bool = False

    speed: SpeedEstimator = field(init=False)
    announcements: AnnouncementState = field(default_factory=AnnouncementState)
    known_good: KnownGoodPosition = field(default_factory=KnownGoodPosition)

    def __post_init__(self) -> None:
        self.speed = SpeedEstimator(self.config)

    @property
    def last_processed_time(self) -> Optional[float]:
        return self.last_processed.timestamp if self.last_processed is not None else None

    def swap_route(self, route: Route) -> None:
        """Follow a new route; per-route state is dropped, speed history is kept."""
        self.route = route
        self.current_snapshot = None
        self.last_emitted = None
        self.deviation_level = DeviationLevel.ON_ROUTE
        self.announcements.clear()
        self.known_good.clear()
