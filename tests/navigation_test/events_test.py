import threading

from helpers import at, make_route

from navigation.progress.events import Arrived, EventBus, ProgressUpdated
from navigation.progress.ports import LocationFeed, QueuedLocationFeed
from navigation.progress.snapshot import build_snapshot


def progress_event():
    route = make_route((100.0,))
    return ProgressUpdated(build_snapshot(route, at(10), session_start=0.0))


def test_handlers_receive_only_their_type():
    bus = EventBus()
    seen, everything = [], []
    bus.subscribe(ProgressUpdated, seen.append)
    bus.subscribe_all(everything.append)

    event = progress_event()
    bus.publish(event)
    bus.publish(Arrived(event.snapshot.route, event.snapshot))

    assert seen == [event]
    assert len(everything) == 2


def test_failing_handler_does_not_stop_delivery(caplog):
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(ProgressUpdated, broken)
    bus.subscribe(ProgressUpdated, seen.append)
    with caplog.at_level("ERROR"):
        bus.publish(progress_event())

    assert len(seen) == 1
    assert "failed on ProgressUpdated" in caplog.text


def test_unsubscribe():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(ProgressUpdated, seen.append)
    unsubscribe()
    unsubscribe()
    bus.publish(progress_event())
    assert seen == []


def test_location_feed_subscription_cancel():
    feed = LocationFeed()
    seen = []
    subscription = feed.subscribe(seen.append)
    feed.push(at(1))
    subscription.cancel()
    subscription.cancel()
    feed.push(at(2))
    assert seen == [at(1)]
    assert feed.subscriber_count == 0


def test_queued_feed_delivers_on_pumping_thread():
    feed = QueuedLocationFeed()
    delivered_on = []
    feed.subscribe(lambda location: delivered_on.append(threading.get_ident()))

    producers = [threading.Thread(target=feed.push, args=(at(i),)) for i in range(5)]
    for thread in producers:
        thread.start()
    for thread in producers:
        thread.join()

    assert delivered_on == []
    assert feed.pending == 5
    assert feed.pump(max_items=2) == 2
    assert feed.pump() == 3
    assert delivered_on == [threading.get_ident()] * 5
    assert feed.pump() == 0
