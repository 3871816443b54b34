import pytest

from helpers import at

from navigation.progress.announcer import ManeuverAnnouncer
from navigation.progress.deviation import DeviationPolicy
from navigation.progress.models import AnnouncementKind, Maneuver, ManeuverModifier, ManeuverType, RoadType
from navigation.progress.nav_config import NavConfig, RoadTypeProfile
from navigation.progress.session import AnnouncementState
from navigation.progress.speed_estimator import SpeedEstimator


def maneuver(step_index=1, kind=ManeuverType.TURN, modifier=ManeuverModifier.RIGHT):
    return Maneuver(kind, f"{kind.value} at step {step_index}", at(100.0 * step_index), step_index, 0, modifier=modifier)


# ---------------------------------------------------------------------------
# Complexity and lead distance
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("kind, modifier, road, expected", [
    (ManeuverType.OFF_RAMP, None, RoadType.HIGHWAY, True),
    (ManeuverType.MERGE, None, RoadType.HIGHWAY, True),
    (ManeuverType.TURN, ManeuverModifier.RIGHT, RoadType.HIGHWAY, False),
    (ManeuverType.TURN, ManeuverModifier.U_TURN, RoadType.HIGHWAY, True),
    (ManeuverType.FORK, None, RoadType.URBAN, False),
    (ManeuverType.FORK, None, RoadType.SUBURBAN, True),
    (ManeuverType.ROUNDABOUT, None, RoadType.URBAN, True),
    (ManeuverType.MERGE, None, RoadType.URBAN, False),
    (ManeuverType.TURN, ManeuverModifier.SHARP_LEFT, RoadType.URBAN, True),
])
def test_is_complex_maneuver(kind, modifier, road, expected):
    assert ManeuverAnnouncer().is_complex_maneuver(maneuver(kind=kind, modifier=modifier), road) is expected


def test_announcement_distance():
    announcer = ManeuverAnnouncer()
    # 10 m/s * 15 s + 50 m
    assert announcer.announcement_distance(maneuver(), RoadType.URBAN, 10.0) == pytest.approx(200.0)
    # complex: 10 m/s * (15 + 10) s + 50 m + 20 m
    sharp = maneuver(modifier=ManeuverModifier.SHARP_LEFT)
    assert announcer.announcement_distance(sharp, RoadType.URBAN, 10.0) == pytest.approx(320.0)
    # clamped
    ramp = maneuver(kind=ManeuverType.OFF_RAMP, modifier=None)
    assert announcer.announcement_distance(ramp, RoadType.HIGHWAY, 30.0) == 1000.0
    assert announcer.announcement_distance(maneuver(), RoadType.URBAN, 0.0) == 100.0


def test_complexity_buffer():
    announcer = ManeuverAnnouncer()
    ramp = maneuver(kind=ManeuverType.OFF_RAMP, modifier=None)
    assert announcer.complexity_buffer(ramp, RoadType.HIGHWAY) == 100.0
    assert announcer.complexity_buffer(ramp, RoadType.URBAN) == 50.0
    roundabout = maneuver(kind=ManeuverType.EXIT_ROUNDABOUT, modifier=None)
    assert announcer.complexity_buffer(roundabout, RoadType.HIGHWAY) == 75.0
    assert announcer.complexity_buffer(maneuver(), RoadType.URBAN) == 0.0


# ---------------------------------------------------------------------------
# Decision table
# ---------------------------------------------------------------------------

def test_first_announcement_needs_to_be_within_lead_distance():
    announcer, state = ManeuverAnnouncer(), AnnouncementState()
    assert announcer.evaluate(state, maneuver(), 300.0, RoadType.URBAN, 10.0, now=0.0) is None
    assert not state.has_announced
    assert announcer.evaluate(state, maneuver(), 150.0, RoadType.URBAN, 10.0, now=1.0) is AnnouncementKind.INITIAL
    assert state.last_time == 1.0


def test_same_maneuver_is_suppressed_for_thirty_seconds():
    announcer, state = ManeuverAnnouncer(), AnnouncementState()
    first = maneuver()
    assert announcer.evaluate(state, first, 150.0, RoadType.URBAN, 10.0, now=0.0) is AnnouncementKind.INITIAL
    assert announcer.evaluate(state, maneuver(), 100.0, RoadType.URBAN, 10.0, now=10.0) is None
    assert announcer.evaluate(state, maneuver(), 20.0, RoadType.URBAN, 10.0, now=29.9) is None
    assert announcer.evaluate(state, maneuver(), 20.0, RoadType.URBAN, 10.0, now=31.0) is AnnouncementKind.PRIMARY


def test_primary_after_cooldown():
    announcer, state = ManeuverAnnouncer(), AnnouncementState()
    announcer.evaluate(state, maneuver(1), 150.0, RoadType.URBAN, 10.0, now=0.0)
    assert announcer.evaluate(state, maneuver(2), 150.0, RoadType.URBAN, 10.0, now=12.0) is AnnouncementKind.PRIMARY
    assert state.last_maneuver.step_index == 2


def test_reminder_inside_cooldown():
    announcer, state = ManeuverAnnouncer(), AnnouncementState()
    announcer.evaluate(state, maneuver(1), 150.0, RoadType.URBAN, 10.0, now=0.0)
    assert announcer.evaluate(state, maneuver(2), 150.0, RoadType.URBAN, 10.0, now=6.0) is None
    assert announcer.evaluate(state, maneuver(2), 25.0, RoadType.URBAN, 10.0, now=6.0) is AnnouncementKind.REMINDER


def test_urgent_on_highway():
    announcer, state = ManeuverAnnouncer(), AnnouncementState()
    assert announcer.evaluate(state, maneuver(1), 90.0, RoadType.HIGHWAY, 0.0, now=0.0) is AnnouncementKind.INITIAL
    # 7 s: past the 5 s urgent gap, not yet past half the 20 s highway cooldown
    assert announcer.evaluate(state, maneuver(2), 40.0, RoadType.HIGHWAY, 0.0, now=7.0) is AnnouncementKind.URGENT


def test_final_reminder_for_a_slow_maneuver():
    config = NavConfig(
        same_maneuver_suppress_s=0.0,
        road_profiles={RoadType.URBAN: RoadTypeProfile(15.0, 100.0, 30.0, 15.0)},
    )
    announcer, state = ManeuverAnnouncer(config), AnnouncementState()
    announcer.evaluate(state, maneuver(), 50.0, RoadType.URBAN, 0.0, now=0.0)
    assert announcer.evaluate(state, maneuver(), 10.0, RoadType.URBAN, 0.0, now=20.0) is None
    assert announcer.evaluate(state, maneuver(), 10.0, RoadType.URBAN, 0.0, now=26.0) is AnnouncementKind.FINAL_REMINDER


@pytest.mark.parametrize("component", [ManeuverAnnouncer, DeviationPolicy, SpeedEstimator])
def test_components_document_their_usage(component):
    assert "Usage:" in component.__doc__
    assert "Args:" in component.__doc__
