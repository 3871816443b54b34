# navigation.progress
# Route progress tracking for turn-by-turn guidance.

from .announcer import ManeuverAnnouncer
from .arrival import check_arrival
from .deviation import DeviationPolicy, DeviationResult
from .directions import decode_polyline, encode_polyline, route_from_directions
from .events import (
    Arrived,
    EventBus,
    ProgressUpdated,
    RerouteCompleted,
    RerouteFailed,
    RouteDeviated,
    TrackerEvent,
    UpcomingManeuver,
)
from .models import (
    AnnouncementKind,
    Coord,
    DeviationLevel,
    Maneuver,
    ManeuverModifier,
    ManeuverType,
    RoadType,
    RouteDeviation,
    VoiceInstruction,
)
from .nav_config import NavConfig, RoadTypeProfile
from .navigator import NavigationSystem, RerouteError
from .ports import LocationFeed, LocationSource, QueuedLocationFeed, RouteProvider, Subscription
from .route import Leg, Route, Step
from .route_tracker import RouteTracker, TrackingStateError
from .session import AnnouncementState, KnownGoodPosition, TrackingSession
from .snapshot import ProgressSnapshot, build_snapshot, format_distance, format_duration
from .speed_estimator import SpeedEstimator, classify_road_type

__all__ = [
    "AnnouncementKind",
    "AnnouncementState",
    "Arrived",
    "Coord",
    "DeviationLevel",
    "DeviationPolicy",
    "DeviationResult",
    "EventBus",
    "KnownGoodPosition",
    "Leg",
    "LocationFeed",
    "LocationSource",
    "Maneuver",
    "ManeuverAnnouncer",
    "ManeuverModifier",
    "ManeuverType",
    "NavConfig",
    "NavigationSystem",
    "ProgressSnapshot",
    "ProgressUpdated",
    "QueuedLocationFeed",
    "RerouteCompleted",
    "RerouteError",
    "RerouteFailed",
    "RoadType",
    "RoadTypeProfile",
    "Route",
    "RouteDeviated",
    "RouteDeviation",
    "RouteProvider",
    "RouteTracker",
    "SpeedEstimator",
    "Step",
    "Subscription",
    "TrackerEvent",
    "TrackingSession",
    "TrackingStateError",
    "UpcomingManeuver",
    "VoiceInstruction",
    "build_snapshot",
    "check_arrival",
    "classify_road_type",
    "decode_polyline",
    "encode_polyline",
    "format_distance",
    "format_duration",
    "route_from_directions",
]
