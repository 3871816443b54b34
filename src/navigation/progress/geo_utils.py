# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules.
#
# Point arguments are any objects exposing .lat and .lon in decimal degrees.

import math
from typing import List, NamedTuple, Optional, Sequence, Tuple


EARTH_RADIUS_M = 6_371_000.0


class SegmentProjection(NamedTuple):
    """Closest point on a finite segment and its position t in [0, 1]."""
    lat: float
    lon: float
    t: float


class NearestSegment(NamedTuple):
    index: int                      # index of the segment start in the polyline
    projection: SegmentProjection
    distance_m: float


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    a = min(1.0, a)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Forward azimuth (bearing) from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def distance_between(a, b) -> float:
    """Haversine distance between two points in metres."""
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def bearing_between(origin, target) -> float:
    """Initial bearing from origin towards target, degrees [0, 360)."""
    return calculate_bearing(origin.lat, origin.lon, target.lat, target.lon)


# ---------------------------------------------------------------------------
# Segment / polyline geometry
# ---------------------------------------------------------------------------

def _wrap_lon(d_lon: float) -> float:
    return (d_lon + 180.0) % 360.0 - 180.0


def _to_local_xy(lat: float, lon: float, lat0: float, lon0: float) -> Tuple[float, float]:
    """
    Equirectangular projection around (lat0, lon0).
    Fast and accurate enough at route-segment scale.
    """
    x = EARTH_RADIUS_M * math.radians(_wrap_lon(lon - lon0)) * math.cos(math.radians(lat0))
    y = EARTH_RADIUS_M * math.radians(lat - lat0)
    return x, y


def project_onto_segment(point, seg_start, seg_end) -> SegmentProjection:
    """
    Closest point on the finite segment seg_start → seg_end.

    The perpendicular foot is clamped to the endpoints when it falls outside
    the segment. A degenerate segment (start == end) returns the start with
    t = 0.

    Returns:
        SegmentProjection(lat, lon, t).
    """
    bx, by = _to_local_xy(seg_end.lat, seg_end.lon, seg_start.lat, seg_start.lon)
    length_sq = bx * bx + by * by
    if length_sq <= 1e-12:
        return SegmentProjection(seg_start.lat, seg_start.lon, 0.0)

    px, py = _to_local_xy(point.lat, point.lon, seg_start.lat, seg_start.lon)
    t = (px * bx + py * by) / length_sq
    t = max(0.0, min(1.0, t))
    lat, lon = interpolate(seg_start, seg_end, t)
    return SegmentProjection(lat, lon, t)


def point_to_segment_distance(point, seg_start, seg_end) -> float:
    """Distance in metres from point to the closest point of a segment."""
    proj = project_onto_segment(point, seg_start, seg_end)
    return haversine_distance(point.lat, point.lon, proj.lat, proj.lon)


def nearest_segment(point, polyline: Sequence) -> Optional[NearestSegment]:
    """
    Segment of polyline closest to point. Ties go to the earlier segment.

    Returns:
        NearestSegment, or None if the polyline has fewer than two points.
    """
    best: Optional[NearestSegment] = None
    for i in range(len(polyline) - 1):
        proj = project_onto_segment(point, polyline[i], polyline[i + 1])
        dist = haversine_distance(point.lat, point.lon, proj.lat, proj.lon)
        if best is None or dist < best.distance_m:
            best = NearestSegment(i, proj, dist)
    return best


def point_to_polyline_distance(point, polyline: Sequence, fallback=None) -> float:
    """
    Minimum distance from point to any segment of polyline.

    Args:
        point:    Query point.
        polyline: Ordered points.
        fallback: Point measured against when polyline is empty
                  (callers pass the route origin).

    Returns:
        Distance in metres.

    Raises:
        ValueError: polyline is empty and no fallback was given.
    """
    if len(polyline) >= 2:
        return nearest_segment(point, polyline).distance_m
    if len(polyline) == 1:
        return distance_between(point, polyline[0])
    if fallback is None:
        raise ValueError("Cannot measure distance to an empty polyline without a fallback point.")
    return distance_between(point, fallback)


def segment_lengths(polyline: Sequence) -> List[float]:
    """Length in metres of every consecutive segment."""
    return [distance_between(polyline[i], polyline[i + 1]) for i in range(len(polyline) - 1)]


def interpolate(start, end, fraction: float) -> Tuple[float, float]:
    """
    Linear interpolation between two points.

    Returns:
        (lat, lon) at the given fraction of the way from start to end.
    """
    lat = start.lat + (end.lat - start.lat) * fraction
    lon = start.lon + _wrap_lon(end.lon - start.lon) * fraction
    return lat, _wrap_lon(lon)


# ---------------------------------------------------------------------------
# Angles
# ---------------------------------------------------------------------------

def normalize_angle(angle: float) -> float:
    """Map any angle onto [0, 360)."""
    return angle % 360.0


def angle_difference(angle1: float, angle2: float) -> float:
    """Smallest absolute difference between two bearings, [0, 180]."""
    diff = abs(normalize_angle(angle1) - normalize_angle(angle2))
    return 360.0 - diff if diff > 180.0 else diff


def is_within_radius(point, center, radius_m: float) -> bool:
    return distance_between(point, center) <= radius_m


def turn_modifier(bearing_diff: float) -> str:
    """
    Directions-API modifier string derived from the change in bearing.

    Args:
        bearing_diff: Bearing after minus bearing before, in degrees.

    Returns:
        One of "uturn", "sharp right", "right", "slight right", "straight",
        "slight left", "left", "sharp left".
    """
    diff = (bearing_diff + 180) % 360 - 180
    if abs(diff) > 170:
        return "uturn"
    if diff > 120:
        return "sharp right"
    elif diff > 45:
        return "right"
    elif diff > 10:
        return "slight right"
    elif diff < -120:
        return "sharp left"
    elif diff < -45:
        return "left"
    elif diff < -10:
        return "slight left"
    return "straight"
