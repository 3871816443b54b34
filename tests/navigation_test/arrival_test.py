from helpers import at, make_route

from navigation.progress.arrival import check_arrival
from navigation.progress.nav_config import NavConfig
from navigation.progress.snapshot import build_snapshot

ROUTE = make_route((1000.0,))
DESTINATION = ROUTE.destination


def arrived(location, previous=None, config=None):
    snapshot = build_snapshot(ROUTE, location, session_start=0.0, config=config)
    return check_arrival(snapshot, DESTINATION, previous, config)


def test_close_with_moving_previous_fix():
    assert arrived(at(995, t=1.0), previous=at(994, t=0.0))


def test_slow_approach_within_twenty_metres():
    assert arrived(at(990, t=1.0), previous=at(989.5, t=0.0))
    assert not arrived(at(990, t=1.0), previous=at(980, t=0.0))


def test_reported_speed_is_preferred():
    assert not arrived(at(990, t=1.0, speed=5.0), previous=at(989.5, t=0.0))


def test_first_fix_thresholds():
    assert arrived(at(991, t=0.0))
    assert not arrived(at(988, t=0.0))


def test_zero_elapsed_thresholds():
    assert arrived(at(989, t=3.0), previous=at(989, t=3.0))
    assert not arrived(at(986, t=3.0), previous=at(986, t=3.0))


def test_too_far_from_destination():
    assert not arrived(at(980, t=1.0), previous=at(979.9, t=0.0))


def test_far_off_route_never_arrives():
    loose = NavConfig(route_tolerance_m=3.0)
    strict = NavConfig(route_tolerance_m=3.0, arrival_max_route_offset_m=5.0)
    beside_destination = at(1000, north_m=10, t=0.0)
    assert arrived(beside_destination, config=loose)
    assert not arrived(beside_destination, config=strict)
