import pytest

from helpers import at

from navigation.progress.directions import decode_polyline, encode_polyline, route_from_directions
from navigation.progress.models import Coord, ManeuverModifier, ManeuverType

# Reference vector from the encoded polyline format description.
GOOGLE_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
GOOGLE_ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def lonlat(x_m):
    point = at(x_m)
    return [point.lon, point.lat]


def payload():
    return {
        "code": "Ok",
        "routes": [{
            "distance": 300.0,
            "duration": 60.0,
            "legs": [{
                "summary": "Atatürk Blv",
                "distance": 300.0,
                "duration": 60.0,
                "steps": [
                    {
                        "distance": 100.0,
                        "duration": 20.0,
                        "name": "Atatürk Blv",
                        "geometry": {"type": "LineString", "coordinates": [lonlat(0), lonlat(100)]},
                        "maneuver": {"type": "depart", "instruction": "Head east", "location": lonlat(0),
                                     "bearing_before": 0, "bearing_after": 90},
                        "voiceInstructions": [{
                            "announcement": "Head east",
                            "distanceAlongGeometry": 100.0,
                            "ssmlAnnouncement": "<speak>Head east</speak>",
                        }],
                    },
                    {
                        "distance": 200.0,
                        "duration": 40.0,
                        "name": "Ziya Gökalp Cd",
                        "speedLimit": 13.9,
                        "geometry": encode_polyline([at(100), at(300)]),
                        "maneuver": {"type": "turn", "instruction": "Continue", "location": lonlat(100),
                                     "bearing_before": 90, "bearing_after": 180},
                    },
                    {
                        "distance": 0.0,
                        "duration": 0.0,
                        "geometry": {"type": "LineString", "coordinates": [lonlat(300)]},
                        "maneuver": {"type": "arrive", "modifier": "left", "instruction": "Arrive",
                                     "location": lonlat(300)},
                    },
                ],
            }],
        }],
        "waypoints": [{"location": lonlat(0)}, {"location": lonlat(300)}],
    }


def test_decode_reference_polyline():
    decoded = decode_polyline(GOOGLE_ENCODED)
    assert len(decoded) == 3
    for (lat, lon), (exp_lat, exp_lon) in zip(decoded, GOOGLE_POINTS):
        assert lat == pytest.approx(exp_lat)
        assert lon == pytest.approx(exp_lon)


def test_encode_reference_polyline():
    assert encode_polyline(GOOGLE_POINTS) == GOOGLE_ENCODED
    assert encode_polyline([Coord(lat, lon) for lat, lon in GOOGLE_POINTS]) == GOOGLE_ENCODED


def test_precision_six():
    decoded = decode_polyline(encode_polyline(GOOGLE_POINTS, precision=6), precision=6)
    assert decoded[2] == pytest.approx((43.252, -126.453))


def test_truncated_polyline_raises():
    with pytest.raises(ValueError):
        decode_polyline(GOOGLE_ENCODED[:-1])


def test_route_from_directions():
    route = route_from_directions(payload(), route_id="r1")

    assert route.route_id == "r1"
    assert route.distance == pytest.approx(300.0)
    assert route.duration == pytest.approx(60.0)
    assert len(route.waypoints) == 2
    assert route.summary == "Atatürk Blv"

    leg = route.legs[0]
    assert leg.start_location == at(0)
    assert leg.end_location == at(300)

    depart, turn, arrive = leg.steps
    assert depart.maneuver.type is ManeuverType.DEPART
    assert depart.maneuver.modifier is None
    assert depart.voice_instructions[0].display_text == "Head east"
    assert turn.maneuver.modifier is ManeuverModifier.RIGHT      # inferred from bearings
    assert turn.speed_limit == pytest.approx(13.9)
    assert turn.geometry_length == pytest.approx(200.0, abs=0.5)
    assert turn.maneuver.step_index == 1
    assert arrive.maneuver.modifier is ManeuverModifier.LEFT
    assert arrive.geometry == (at(300),)


def test_progress_on_parsed_route():
    route = route_from_directions(payload())
    assert route.distance_traveled(at(200)) == pytest.approx(200.0, abs=0.5)


def test_unknown_maneuver_type_becomes_turn():
    data = payload()
    data["routes"][0]["legs"][0]["steps"][1]["maneuver"]["type"] = "teleport"
    route = route_from_directions(data)
    assert route.legs[0].steps[1].maneuver.type is ManeuverType.TURN


def test_single_route_object_is_accepted():
    route = route_from_directions(payload()["routes"][0])
    assert len(route.legs[0].steps) == 3


def test_malformed_payloads():
    with pytest.raises(ValueError):
        route_from_directions({"routes": []})
    with pytest.raises(ValueError):
        route_from_directions({"routes": [{"legs": []}]})
    with pytest.raises(ValueError):
        route_from_directions(payload(), route_index=3)

    data = payload()
    del data["routes"][0]["legs"][0]["steps"][0]["maneuver"]["location"]
    with pytest.raises(ValueError):
        route_from_directions(data)
