import threading

import pytest

from channel_pubsub import InvalidAddress, Subscription
from channel_pubsub.lifecycle import SubscriptionManager
from channel_pubsub.registry import Registry

from conftest import CHANNEL_ORDERS, CHANNEL_USERS, TOPIC_CREATED, TOPIC_UPDATED, Recorder


def test_subscribe_adds_exactly_one_entry(pubsub, recorder):
    pubsub.subscribe(Subscription(CHANNEL_USERS, TOPIC_CREATED, recorder))
    before = pubsub.subscribers(CHANNEL_USERS, TOPIC_CREATED).count(recorder)

    pubsub.subscribe(Subscription(CHANNEL_USERS, TOPIC_CREATED, recorder))

    assert pubsub.subscribers(CHANNEL_USERS, TOPIC_CREATED).count(recorder) == before + 1


def test_subscribe_accepts_mappings(pubsub, recorder):
    pubsub.subscribe({"channel": CHANNEL_USERS, "topic": TOPIC_CREATED, "callback": recorder})
    pubsub.subscribe({"channel": CHANNEL_USERS, "topic": TOPIC_UPDATED, "listener": recorder, "once": True})

    assert pubsub.subscribers(CHANNEL_USERS) == [recorder, recorder]


@pytest.mark.parametrize(
    "channel,topic,expected",
    [
        (None, None, "Invalid channel name"),
        (None, TOPIC_CREATED, "Invalid channel name"),
        (CHANNEL_USERS, None, "Invalid topic name"),
    ],
)
def test_subscribe_rejects_missing_address(pubsub, recorder, channel, topic, expected):
    with pytest.raises(InvalidAddress, match=expected):
        pubsub.subscribe(Subscription(channel, topic, recorder))

    assert pubsub.channels() == []


def test_subscribe_rejects_non_callable(pubsub):
    with pytest.raises(TypeError):
        pubsub.subscribe({"channel": CHANNEL_USERS, "topic": TOPIC_CREATED, "listener": "nope"})


def test_subscription_spec_rejects_non_callable(pubsub):
    with pytest.raises(TypeError):
        Subscription(CHANNEL_USERS, TOPIC_CREATED, None)
    with pytest.raises(TypeError):
        pubsub.subscribe({"channel": CHANNEL_USERS, "topic": TOPIC_CREATED})

    assert pubsub.channels() == []


def test_unsubscribe_unknown_is_noop(populated):
    pubsub, _ = populated
    before = pubsub.subscribers("*", "*")

    pubsub.unsubscribe(Subscription(CHANNEL_USERS, "Blah", lambda m, md: None))
    pubsub.unsubscribe(Subscription("ghosts", TOPIC_CREATED, lambda m, md: None))
    pubsub.unsubscribe(Subscription(CHANNEL_USERS, TOPIC_CREATED, lambda m, md: None))

    assert pubsub.subscribers("*", "*") == before


def test_unsubscribe_rejects_missing_address(pubsub, recorder):
    with pytest.raises(InvalidAddress):
        pubsub.unsubscribe(Subscription(CHANNEL_USERS, None, recorder))


def test_unsubscribe_removes_only_first_duplicate(pubsub, recorder):
    spec = Subscription(CHANNEL_USERS, TOPIC_CREATED, recorder)
    pubsub.subscribe(spec, spec)

    pubsub.unsubscribe(spec)

    assert pubsub.subscribers(CHANNEL_USERS, TOPIC_CREATED) == [recorder]


def test_unsubscribe_specific_listener(populated):
    pubsub, subscriptions = populated

    pubsub.unsubscribe(subscriptions[0])

    remaining = pubsub.subscribers(CHANNEL_USERS, TOPIC_CREATED)
    assert len(remaining) == 5
    assert subscriptions[0].listener not in remaining


def test_unsubscribe_all_under_topic(populated):
    pubsub, _ = populated

    pubsub.unsubscribe_all(CHANNEL_USERS, TOPIC_CREATED)

    assert pubsub.subscribers(CHANNEL_USERS, TOPIC_CREATED) == []
    assert len(pubsub.subscribers(CHANNEL_USERS, TOPIC_UPDATED)) == 6
    assert pubsub.topics(CHANNEL_USERS) == [TOPIC_UPDATED]


def test_unsubscribe_all_topics_in_channel(populated):
    pubsub, _ = populated

    pubsub.unsubscribe_all(CHANNEL_ORDERS, "*")

    assert pubsub.subscribers(CHANNEL_ORDERS, "*") == []
    assert pubsub.topics(CHANNEL_ORDERS) == []
    assert len(pubsub.subscribers(CHANNEL_USERS)) == 12


def test_unsubscribe_all_one_topic_in_every_channel(populated):
    pubsub, _ = populated

    pubsub.unsubscribe_all("*", TOPIC_UPDATED)

    assert pubsub.subscribers("*", TOPIC_UPDATED) == []
    assert len(pubsub.subscribers("*", TOPIC_CREATED)) == 12


def test_unsubscribe_all_everything(populated):
    pubsub, _ = populated

    pubsub.unsubscribe_all("*", "*")

    assert pubsub.subscribers("*", "*") == []
    assert pubsub.channels() == []


def test_unsubscribe_all_unknown_channel_is_noop(populated):
    pubsub, _ = populated

    pubsub.unsubscribe_all("users-a", "*")
    pubsub.unsubscribe_all(CHANNEL_USERS, "missing")

    assert len(pubsub.subscribers("*")) == 24


def test_unsubscribe_all_rejects_missing_topic(pubsub):
    with pytest.raises(InvalidAddress):
        pubsub.unsubscribe_all(CHANNEL_USERS, None)
    with pytest.raises(InvalidAddress):
        pubsub.unsubscribe_all("*", None)


def test_once_listener_fires_once_and_is_removed(pubsub, recorder):
    pubsub.subscribe(Subscription("Group", "Added", recorder, once=True))
    assert pubsub.subscribers("Group", "Added") == [recorder]

    pubsub.publish("Group", "Added", {"id": "G1", "count": 120})

    assert recorder.messages == [{"id": "G1", "count": 120}]
    assert pubsub.subscribers("Group", "Added") == []

    pubsub.publish("Group", "Added", {"id": "G2"})
    assert len(recorder.calls) == 1


def test_once_listener_survives_reentrant_publish(pubsub):
    calls = []

    def listener(message, metadata):
        calls.append(message)
        if message == 1:
            pubsub.publish("c", "t", 2)

    pubsub.subscribe(Subscription("c", "t", listener, once=True))
    pubsub.publish("c", "t", 1)

    assert calls == [1]


def test_once_removal_leaves_plain_duplicate_in_place(pubsub, recorder):
    pubsub.subscribe(
        Subscription("c", "t", recorder),
        Subscription("c", "t", recorder, once=True),
    )

    pubsub.publish("c", "t", "first")
    pubsub.publish("c", "t", "second")

    assert recorder.messages == ["first", "first", "second"]
    assert pubsub.subscribers("c", "t") == [recorder]


def test_once_listener_removed_even_when_it_raises(pubsub):
    def boom(message, metadata):
        raise RuntimeError("boom")

    pubsub.subscribe(Subscription("c", "t", boom, once=True))
    pubsub.publish("c", "t", None)

    assert pubsub.subscribers("c", "t") == []


def test_unsubscribing_once_listener_before_publish(pubsub, recorder):
    spec = Subscription("c", "t", recorder, once=True)
    pubsub.subscribe(spec)
    pubsub.subscribe(Subscription("c", "other", Recorder()))

    pubsub.unsubscribe(spec)
    pubsub.publish("c", "t", "x")

    assert recorder.calls == []


def test_subscription_gauge_tracks_registry(pubsub, recorder):
    pubsub.subscribe(
        Subscription("c", "t", recorder),
        Subscription("c", "u", recorder, once=True),
    )
    assert pubsub.metrics().get_gauge("subscriptions") == 2

    pubsub.publish("c", "u", None)
    assert pubsub.metrics().get_gauge("subscriptions") == 1

    pubsub.unsubscribe_all("*", "*")
    assert pubsub.metrics().get_gauge("subscriptions") == 0


def test_subscribe_returns_registration_flagged_once(recorder):
    manager = SubscriptionManager(Registry())

    plain = manager.subscribe(Subscription("c", "t", recorder))
    once = manager.subscribe(Subscription("c", "t", recorder, once=True))

    assert plain.once is False
    assert once.once is True
    assert once.listener is recorder
    assert once.handler is not recorder


@pytest.mark.parametrize("round_", range(20))
def test_once_listener_fires_once_under_threaded_publishes(pubsub, round_):
    workers = 8
    calls = []
    lock = threading.Lock()
    barrier = threading.Barrier(workers)

    def listener(message, metadata):
        with lock:
            calls.append(message)

    pubsub.subscribe(Subscription("c", "t", listener, once=True))

    def publisher(n):
        barrier.wait()
        pubsub.publish("c", "t", n)

    threads = [threading.Thread(target=publisher, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5.0)

    assert len(calls) == 1
    assert pubsub.subscribers("c", "t") == []
