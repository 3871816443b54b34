# directions.py
# Builds an immutable Route from a directions API response.
#
# Expected shape (Mapbox Directions style, coordinates are [lon, lat]):
#   {"routes": [{"legs": [{"steps": [{"geometry": ..., "maneuver": {...}}]}]}],
#    "waypoints": [{"location": [lon, lat]}, ...]}
# Step geometry may be GeoJSON LineString or an encoded polyline string.

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .geo_utils import turn_modifier
from .models import Coord, Maneuver, ManeuverModifier, ManeuverType, VoiceInstruction
from .route import Leg, Route, Step

logger = logging.getLogger(__name__)


# Types whose missing modifier can be inferred from the bearings
_DIRECTIONAL_TYPES = frozenset({
    ManeuverType.TURN,
    ManeuverType.FORK,
    ManeuverType.MERGE,
    ManeuverType.ON_RAMP,
    ManeuverType.OFF_RAMP,
})


# ---------------------------------------------------------------------------
# Encoded polylines
# ---------------------------------------------------------------------------

def decode_polyline(encoded: str, precision: int = 5) -> List[Tuple[float, float]]:
    """
    Decode an encoded polyline string.

    Args:
        encoded:   Encoded string.
        precision: 5 for "polyline", 6 for "polyline6".

    Returns:
        List of (lat, lon).

    Raises:
        ValueError: the string ends in the middle of a value.
    """
    factor = 10 ** precision
    points: List[Tuple[float, float]] = []
    index, lat, lon = 0, 0, 0
    length = len(encoded)

    while index < length:
        deltas = []
        for _ in range(2):
            result, shift = 0, 0
            while True:
                if index >= length:
                    raise ValueError("Truncated polyline string.")
                byte = ord(encoded[index]) - 63
                index += 1
                result |= (byte & 0x1F) << shift
                shift += 5
                if byte < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        lat += deltas[0]
        lon += deltas[1]
        points.append((lat / factor, lon / factor))
    return points


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode_polyline(points: Sequence, precision: int = 5) -> str:
    """
    Encode points as a polyline string.

    Args:
        points:    (lat, lon) tuples or objects with .lat / .lon.
        precision: 5 or 6.
    """
    factor = 10 ** precision
    out = []
    prev_lat, prev_lon = 0, 0
    for point in points:
        lat, lon = (point.lat, point.lon) if hasattr(point, "lat") else point
        ilat, ilon = round(lat * factor), round(lon * factor)
        out.append(_encode_value(ilat - prev_lat))
        out.append(_encode_value(ilon - prev_lon))
        prev_lat, prev_lon = ilat, ilon
    return "".join(out)


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def _coord(pair: Sequence[float]) -> Coord:
    if not isinstance(pair, (list, tuple)) or len(pair) < 2:
        raise ValueError(f"Expected [lon, lat], got {pair!r}")
    return Coord(lat=float(pair[1]), lon=float(pair[0]))


def _parse_geometry(geometry: Any, precision: int) -> Tuple[Coord, ...]:
    if geometry is None:
        return ()
    if isinstance(geometry, str):
        return tuple(Coord(lat, lon) for lat, lon in decode_polyline(geometry, precision))
    if isinstance(geometry, dict):
        return tuple(_coord(pair) for pair in geometry.get("coordinates") or ())
    raise ValueError(f"Unsupported geometry: {type(geometry).__name__}")


def _parse_maneuver(step_json: Dict[str, Any], step_index: int, leg_index: int) -> Maneuver:
    data = step_json.get("maneuver")
    if not isinstance(data, dict) or "location" not in data:
        raise ValueError(f"Step {step_index} of leg {leg_index} has no maneuver location.")

    maneuver_type = ManeuverType.from_wire(data.get("type", "turn"))
    modifier = ManeuverModifier.from_wire(data.get("modifier"))
    before = data.get("bearing_before")
    after = data.get("bearing_after")
    if modifier is None and maneuver_type in _DIRECTIONAL_TYPES and before is not None and after is not None:
        modifier = ManeuverModifier.from_wire(turn_modifier(float(after) - float(before)))

    return Maneuver(
        type=maneuver_type,
        instruction=data.get("instruction") or "",
        location=_coord(data["location"]),
        step_index=step_index,
        leg_index=leg_index,
        modifier=modifier,
        bearing_before=float(before) if before is not None else None,
        bearing_after=float(after) if after is not None else None,
    )


def _parse_voice_instructions(items: Optional[list]) -> Tuple[VoiceInstruction, ...]:
    return tuple(
        VoiceInstruction(
            announcement=item.get("announcement") or "",
            distance_along_geometry=float(item.get("distanceAlongGeometry", 0.0)),
            ssml=item.get("ssmlAnnouncement") or item.get("ssml"),
            language=item.get("language") or "en",
        )
        for item in items or ()
    )


def _parse_step(step_json: Dict[str, Any], step_index: int, leg_index: int, precision: int) -> Step:
    speed_limit = step_json.get("speedLimit")
    return Step(
        geometry=_parse_geometry(step_json.get("geometry"), precision),
        distance=float(step_json.get("distance", 0.0)),
        duration=float(step_json.get("duration", 0.0)),
        maneuver=_parse_maneuver(step_json, step_index, leg_index),
        index=step_index,
        name=step_json.get("name") or "",
        voice_instructions=_parse_voice_instructions(step_json.get("voiceInstructions")),
        mode=step_json.get("mode") or "driving",
        speed_limit=float(speed_limit) if speed_limit is not None else None,
    )


def _parse_leg(leg_json: Dict[str, Any], leg_index: int, precision: int) -> Leg:
    steps = [
        _parse_step(step_json, i, leg_index, precision)
        for i, step_json in enumerate(leg_json.get("steps") or ())
    ]
    if not steps:
        raise ValueError(f"Leg {leg_index} has no steps.")

    start = leg_json.get("start")
    end = leg_json.get("end")
    return Leg(
        steps=tuple(steps),
        distance=float(leg_json.get("distance", sum(s.distance for s in steps))),
        duration=float(leg_json.get("duration", sum(s.duration for s in steps))),
        start_location=_coord(start) if start is not None else steps[0].start_point,
        end_location=_coord(end) if end is not None else steps[-1].end_point,
        index=leg_index,
        summary=leg_json.get("summary") or "",
    )


def route_from_directions(
    payload: Dict[str, Any],
    route_index: int = 0,
    polyline_precision: int = 5,
    route_id: Optional[str] = None,
) -> Route:
    """
    Build a Route from a directions API response.

    Args:
        payload:            Full response ({"routes": [...]}) or a single route object.
        route_index:        Which alternative to use.
        polyline_precision: 5 or 6, for encoded step geometries.
        route_id:           Identifier to use; a fresh one is generated if None.

    Returns:
        Route.

    Raises:
        ValueError: the payload lacks routes, legs, steps or maneuver locations.
    """
    if "routes" in payload:
        routes = payload.get("routes") or []
        if route_index >= len(routes):
            raise ValueError(f"Payload has {len(routes)} route(s); index {route_index} requested.")
        route_json = routes[route_index]
    else:
        route_json = payload

    legs = [_parse_leg(leg_json, i, polyline_precision) for i, leg_json in enumerate(route_json.get("legs") or ())]
    if not legs:
        raise ValueError("Route has no legs.")

    waypoints = tuple(_coord(w["location"]) for w in payload.get("waypoints") or () if "location" in w)
    summary = route_json.get("summary") or " / ".join(leg.summary for leg in legs if leg.summary)

    route = Route.from_legs(legs, waypoints=waypoints, summary=summary, route_id=route_id)
    logger.info(f"Parsed {route!r} with {sum(len(leg.steps) for leg in legs)} steps.")
    return route
