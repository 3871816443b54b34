import pytest

from helpers import at, make_route

from navigation.progress.events import RerouteCompleted, RerouteFailed, RouteDeviated
from navigation.progress.navigator import NavigationSystem, RerouteError
from navigation.progress.ports import LocationFeed


class FakeProvider:
    """Route provider returning fresh straight routes, optionally failing."""

    def __init__(self, fail_calculate=False, fail_reroute=False):
        self.fail_calculate = fail_calculate
        self.fail_reroute = fail_reroute
        self.reroute_calls = []

    def calculate(self, origin, destination, waypoints=()):
        if self.fail_calculate:
            raise ConnectionError("directions service unreachable")
        return make_route((1000.0,))

    def reroute(self, current_location, deviation, original_route):
        self.reroute_calls.append((current_location, deviation, original_route))
        if self.fail_reroute:
            raise ConnectionError("directions service unreachable")
        return make_route((1000.0,))


def recorder(nav):
    events = []
    nav.events.subscribe_all(events.append)
    return events


def test_start_navigation_success():
    nav = NavigationSystem(FakeProvider())
    ok, message = nav.start_navigation(at(0), at(1000), LocationFeed())
    assert ok
    assert "1 steps" in message
    assert nav.is_active
    nav.stop_navigation()
    assert not nav.is_active


def test_start_navigation_failure_is_reported():
    nav = NavigationSystem(FakeProvider(fail_calculate=True))
    ok, message = nav.start_navigation(at(0), at(1000))
    assert not ok
    assert "unreachable" in message
    assert not nav.is_active


def test_reroutes_are_debounced():
    provider = FakeProvider()
    nav = NavigationSystem(provider)
    events = recorder(nav)
    feed = LocationFeed()
    nav.start_navigation(at(0), at(1000), feed)
    first_route = nav.current_route

    feed.push(at(100, t=0.0))
    feed.push(at(300, north_m=80, t=1.0))
    feed.push(at(310, north_m=80, t=2.0))

    assert len(provider.reroute_calls) == 1
    location, deviation, original = provider.reroute_calls[0]
    assert original is first_route
    assert deviation.last_known_good_location == at(100)

    [completed] = [e for e in events if isinstance(e, RerouteCompleted)]
    assert completed.old_route is first_route
    assert nav.current_route is completed.new_route
    assert len([e for e in events if isinstance(e, RouteDeviated)]) == 2

    feed.push(at(320, north_m=80, t=12.0))
    assert len(provider.reroute_calls) == 2


def test_failed_reroute_keeps_tracking_on_old_route():
    provider = FakeProvider(fail_reroute=True)
    nav = NavigationSystem(provider)
    events = recorder(nav)
    nav.start_navigation(at(0), at(1000))
    route = nav.current_route

    nav.update(at(300, north_m=80, t=0.0))

    [failed] = [e for e in events if isinstance(e, RerouteFailed)]
    assert isinstance(failed.error, RerouteError)
    assert isinstance(failed.error.__cause__, ConnectionError)
    assert nav.is_active
    assert nav.current_route is route


def test_stop_navigation_when_idle():
    nav = NavigationSystem(FakeProvider())
    nav.stop_navigation()
    assert not nav.is_active
    with pytest.raises(RuntimeError):
        nav.update(at(0))
