# models.py
# Shared data structures and enums used across all modules.

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .geo_utils import calculate_bearing, haversine_distance


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """
    Immutable geographic coordinate, optionally carrying GPS fix metadata.

    Equality only looks at the position; timestamp, accuracy and the other
    fix attributes do not take part in it.
    """
    lat: float
    lon: float
    timestamp: float = field(default_factory=time.time, compare=False)
    altitude: Optional[float] = field(default=None, compare=False)
    accuracy: Optional[float] = field(default=None, compare=False)   # metres
    speed: Optional[float] = field(default=None, compare=False)      # m/s
    heading: Optional[float] = field(default=None, compare=False)    # degrees

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")

    def distance_to(self, other: "Coord") -> float:
        """Great-circle distance to another coordinate in metres."""
        return haversine_distance(self.lat, self.lon, other.lat, other.lon)

    def bearing_to(self, other: "Coord") -> float:
        """Initial bearing towards another coordinate, degrees [0, 360)."""
        return calculate_bearing(self.lat, self.lon, other.lat, other.lon)

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "timestamp": self.timestamp,
            "altitude": self.altitude,
            "accuracy": self.accuracy,
            "speed": self.speed,
            "heading": self.heading,
        }


# ---------------------------------------------------------------------------
# Maneuvers
# ---------------------------------------------------------------------------

class ManeuverType(Enum):
    TURN            = "turn"
    NEW_NAME        = "new name"
    DEPART          = "depart"
    ARRIVE          = "arrive"
    MERGE           = "merge"
    ON_RAMP         = "on ramp"
    OFF_RAMP        = "off ramp"
    FORK            = "fork"
    ROUNDABOUT      = "roundabout"
    ROUNDABOUT_TURN = "roundabout turn"
    ROUNDABOUT_EXIT = "roundabout exit"
    NOTIFICATION    = "notification"
    EXIT_ROUNDABOUT = "exit roundabout"
    EXIT_ROTARY     = "exit rotary"

    @classmethod
    def from_wire(cls, value: str) -> "ManeuverType":
        """Parse a directions API type string; unknown types become TURN."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.TURN

    @property
    def label(self) -> str:
        if self is ManeuverType.NEW_NAME:
            return "Continue"
        return self.value.capitalize()

    @property
    def slug(self) -> str:
        return self.value.replace(" ", "_")


class ManeuverModifier(Enum):
    U_TURN       = "uturn"
    SHARP_RIGHT  = "sharp right"
    RIGHT        = "right"
    SLIGHT_RIGHT = "slight right"
    STRAIGHT     = "straight"
    SLIGHT_LEFT  = "slight left"
    LEFT         = "left"
    SHARP_LEFT   = "sharp left"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> Optional["ManeuverModifier"]:
        """Parse a directions API modifier string; unknown modifiers become None."""
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def label(self) -> str:
        if self is ManeuverModifier.U_TURN:
            return "U-turn"
        return self.value.capitalize()

    @property
    def slug(self) -> str:
        return self.value.replace(" ", "_")


SHARP_MODIFIERS = frozenset({
    ManeuverModifier.U_TURN,
    ManeuverModifier.SHARP_LEFT,
    ManeuverModifier.SHARP_RIGHT,
})


@dataclass(frozen=True)
class Maneuver:
    """A discrete driving action located at a step boundary."""
    type: ManeuverType
    instruction: str
    location: Coord
    step_index: int
    leg_index: int
    modifier: Optional[ManeuverModifier] = None
    distance_to_maneuver: float = 0.0      # metres from the start of its step
    bearing_before: Optional[float] = None
    bearing_after: Optional[float] = None

    def is_same_as(self, other: Optional["Maneuver"]) -> bool:
        """Repeat-suppression key: same step, leg, type and modifier."""
        if other is None:
            return False
        return (
            self.step_index == other.step_index
            and self.leg_index == other.leg_index
            and self.type is other.type
            and self.modifier is other.modifier
        )

    @property
    def is_sharp(self) -> bool:
        return self.modifier in SHARP_MODIFIERS

    @property
    def short_instruction(self) -> str:
        """e.g. "Sharp left Turn"."""
        if self.modifier is not None:
            return f"{self.modifier.label} {self.type.label}"
        return self.type.label

    @property
    def icon_name(self) -> str:
        if self.modifier is not None:
            return f"{self.modifier.slug}_{self.type.slug}"
        return self.type.slug

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "modifier": self.modifier.value if self.modifier else None,
            "instruction": self.instruction,
            "location": {"lat": self.location.lat, "lon": self.location.lon},
            "step_index": self.step_index,
            "leg_index": self.leg_index,
            "distance_to_maneuver": self.distance_to_maneuver,
        }


_SSML_TAG = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class VoiceInstruction:
    """Voice hint shipped with a step by the directions provider."""
    announcement: str
    distance_along_geometry: float
    ssml: Optional[str] = None
    language: str = "en"
    is_pre_maneuver: bool = True
    trigger_distance: float = 200.0

    @property
    def display_text(self) -> str:
        if self.ssml is not None:
            return _SSML_TAG.sub("", self.ssml)
        return self.announcement

    def should_speak_at(self, distance_to_maneuver: float) -> bool:
        return distance_to_maneuver <= self.trigger_distance


# ---------------------------------------------------------------------------
# Classifications
# ---------------------------------------------------------------------------

class RoadType(Enum):
    URBAN    = "urban"
    SUBURBAN = "suburban"
    HIGHWAY  = "highway"


class DeviationLevel(Enum):
    ON_ROUTE        = 0
    WARNING         = 1
    RETURN_GUIDANCE = 2
    REROUTE         = 3


class AnnouncementKind(Enum):
    INITIAL        = "initial"
    PRIMARY        = "primary"
    REMINDER       = "reminder"
    URGENT         = "urgent"
    FINAL_REMINDER = "final_reminder"


# ---------------------------------------------------------------------------
# Deviation payload
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteDeviation:
    """Emitted when the agent is far enough off the route to need a new one."""
    current_location: Coord
    distance_from_route: float
    timestamp: float
    last_known_good_maneuver: Optional[Maneuver] = None
    last_known_good_step_index: Optional[int] = None
    last_known_good_leg_index: Optional[int] = None
    last_known_good_location: Optional[Coord] = None

    @property
    def has_anchor(self) -> bool:
        return self.last_known_good_location is not None
