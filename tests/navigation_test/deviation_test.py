import pytest

from helpers import at, make_route

from navigation.progress.deviation import DeviationPolicy
from navigation.progress.models import DeviationLevel
from navigation.progress.session import KnownGoodPosition
from navigation.progress.snapshot import build_snapshot


def test_thresholds_follow_reroute_threshold():
    policy = DeviationPolicy()
    assert policy.reroute_threshold == 50.0
    assert policy.warning_threshold == pytest.approx(15.0)
    assert policy.return_guidance_threshold == pytest.approx(25.0)

    policy.reroute_threshold = 100.0
    assert policy.warning_threshold == pytest.approx(30.0)
    assert policy.return_guidance_threshold == pytest.approx(50.0)


def test_non_positive_threshold_is_rejected():
    policy = DeviationPolicy()
    with pytest.raises(ValueError):
        policy.reroute_threshold = 0.0


@pytest.mark.parametrize("distance, level", [
    (0.0, DeviationLevel.ON_ROUTE),
    (15.0, DeviationLevel.ON_ROUTE),
    (15.1, DeviationLevel.WARNING),
    (25.0, DeviationLevel.WARNING),
    (25.1, DeviationLevel.RETURN_GUIDANCE),
    (49.9, DeviationLevel.RETURN_GUIDANCE),
    (50.0, DeviationLevel.REROUTE),
    (80.0, DeviationLevel.REROUTE),
])
def test_classify(distance, level):
    assert DeviationPolicy().classify(distance) is level


def test_reroute_carries_last_known_good_anchor():
    route = make_route((1000.0,))
    policy = DeviationPolicy()
    anchor = KnownGoodPosition()

    on_route = build_snapshot(route, at(100, t=0.0), session_start=0.0)
    result = policy.evaluate(on_route, anchor)
    assert result.level is DeviationLevel.ON_ROUTE
    assert result.deviation is None
    assert anchor.location == at(100)

    drifting = build_snapshot(route, at(200, north_m=20, t=5.0), session_start=0.0)
    assert policy.evaluate(drifting, anchor).level is DeviationLevel.WARNING
    assert anchor.location == at(100)

    off = build_snapshot(route, at(300, north_m=80, t=10.0), session_start=0.0)
    result = policy.evaluate(off, anchor)
    assert result.level is DeviationLevel.REROUTE
    deviation = result.deviation
    assert deviation.distance_from_route == pytest.approx(80.0, abs=1e-6)
    assert deviation.timestamp == 10.0
    assert deviation.last_known_good_location == at(100)
    assert deviation.last_known_good_step_index == 0
    assert deviation.last_known_good_maneuver is route.legs[0].steps[0].maneuver
    assert deviation.has_anchor


def test_return_guidance_refreshes_anchor():
    route = make_route((1000.0,))
    policy = DeviationPolicy()
    anchor = KnownGoodPosition()

    snap = build_snapshot(route, at(500, north_m=40), session_start=0.0)
    assert policy.evaluate(snap, anchor).level is DeviationLevel.RETURN_GUIDANCE
    assert anchor.is_set


def test_reroute_without_anchor():
    route = make_route((1000.0,))
    snap = build_snapshot(route, at(300, north_m=80), session_start=0.0)
    result = DeviationPolicy().evaluate(snap, KnownGoodPosition())
    assert result.deviation is not None
    assert not result.deviation.has_anchor
