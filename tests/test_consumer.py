import json
import time

import pytest

from shared.libs.events.consumer import ConsumerRunner, EventConsumer
from shared.libs.events.exceptions import ConsumerBindingError
from shared.libs.events.idempotency import ProcessedEvent, ProcessedEventLedger
from shared.libs.events.registry import ConsumerRegistry
from shared.libs.events.schemas import UserDeleted, encode_event
from shared.libs.events.topics import (
    ANALYTICS_GROUP,
    CART_UPDATED,
    MEDIA_SERVICE_GROUP,
    ORDER_CREATED,
    PRODUCT_EVENTS,
    PRODUCT_SERVICE_GROUP,
    PROFILE_UPDATE_GROUP,
    USER_EVENTS,
    dead_letter_topic,
)
from tests.support.builders import item, order
from tests.support.fakes import FakeConsumer, drain


class Recorder:
    """Handler that records events and can fail a number of times first."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls = 0
        self.events = []

    def __call__(self, event):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"boom #{self.calls}")
        self.events.append(event)


def make_consumer(broker, producer, registry, group, **kwargs):
    kwargs.setdefault("backoff_seconds", 0)
    return EventConsumer(
        group, registry, FakeConsumer(broker, group), producer, **kwargs
    )


def dead_letters(broker, group):
    return [json.loads(msg.value()) for msg in broker.messages(dead_letter_topic(group))]


class TestConsumerRegistry:
    def test_rejects_duplicate_binding(self):
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, Recorder())
        with pytest.raises(ConsumerBindingError):
            registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, Recorder())

    def test_rejects_unknown_topic(self):
        with pytest.raises(ConsumerBindingError):
            ConsumerRegistry().register("orders", PROFILE_UPDATE_GROUP, Recorder())

    def test_rejects_group_not_declared_for_topic(self):
        with pytest.raises(ConsumerBindingError):
            ConsumerRegistry().register(ORDER_CREATED, ANALYTICS_GROUP, Recorder())

    def test_same_topic_for_two_groups(self):
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, Recorder(), name="products")
        registry.register(USER_EVENTS, MEDIA_SERVICE_GROUP, Recorder(), name="media")
        registry.register(PRODUCT_EVENTS, MEDIA_SERVICE_GROUP, Recorder())

        assert len(registry) == 3
        assert registry.lookup(USER_EVENTS, MEDIA_SERVICE_GROUP).name == "media"
        assert registry.lookup(ORDER_CREATED, MEDIA_SERVICE_GROUP) is None
        assert registry.groups() == [PRODUCT_SERVICE_GROUP, MEDIA_SERVICE_GROUP]
        assert set(registry.topics_for(MEDIA_SERVICE_GROUP)) == {USER_EVENTS, PRODUCT_EVENTS}

    def test_service_registries_match_catalog(self, producer):
        from services.media_service.events.registry import build_registry as media
        from services.order_service.events.registry import build_registry as orders
        from services.product_service.events.registry import build_registry as products

        order_registry = orders(Recorder(), Recorder(), Recorder())
        assert {(b.topic, b.group) for b in order_registry.bindings()} == {
            (ORDER_CREATED, PROFILE_UPDATE_GROUP),
            ("order-status-changed", "status-change-group"),
            (CART_UPDATED, ANALYTICS_GROUP),
        }
        assert [(b.topic, b.group) for b in products(Recorder()).bindings()] == [
            (USER_EVENTS, PRODUCT_SERVICE_GROUP)
        ]
        assert {(b.topic, b.group) for b in media(Recorder(), Recorder()).bindings()} == {
            (PRODUCT_EVENTS, MEDIA_SERVICE_GROUP),
            (USER_EVENTS, MEDIA_SERVICE_GROUP),
        }


class TestProcessMessage:
    def test_dispatches_and_commits(self, broker, producer):
        handler = Recorder()
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, handler)
        consumer = make_consumer(broker, producer, registry, PRODUCT_SERVICE_GROUP)
        broker.append(USER_EVENTS, encode_event(UserDeleted(user_id="U1")), b"U1")

        assert drain(consumer) == 1

        assert [e.user_id for e in handler.events] == ["U1"]
        assert broker.committed[(PRODUCT_SERVICE_GROUP, USER_EVENTS)] == 1

    def test_poison_message_goes_to_dead_letter(self, broker, producer):
        handler = Recorder()
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, handler)
        consumer = make_consumer(broker, producer, registry, PRODUCT_SERVICE_GROUP)
        broker.append(USER_EVENTS, b"{not json", b"U1")
        broker.append(USER_EVENTS, encode_event(UserDeleted(user_id="U2")), b"U2")

        drain(consumer)

        [letter] = dead_letters(broker, PRODUCT_SERVICE_GROUP)
        assert letter["original_topic"] == USER_EVENTS
        assert letter["original_message"] == "{not json"
        assert letter["consumer_group"] == PRODUCT_SERVICE_GROUP
        assert letter["error"].startswith("Schema validation")
        # The stream keeps flowing past the poison message
        assert [e.user_id for e in handler.events] == ["U2"]
        assert broker.committed[(PRODUCT_SERVICE_GROUP, USER_EVENTS)] == 2

    def test_kind_not_carried_by_topic_goes_to_dead_letter(self, broker, producer):
        handler = Recorder()
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, handler)
        consumer = make_consumer(broker, producer, registry, PRODUCT_SERVICE_GROUP)
        event = order("O1", "B1", item("P1", "S1", 1, "1"))
        broker.append(USER_EVENTS, encode_event(event), b"O1")

        drain(consumer)

        assert handler.calls == 0
        [letter] = dead_letters(broker, PRODUCT_SERVICE_GROUP)
        assert "does not accept OrderCreated" in letter["error"]

    def test_unbound_topic_is_committed_without_dispatch(self, broker, producer):
        registry = ConsumerRegistry()
        registry.register(PRODUCT_EVENTS, MEDIA_SERVICE_GROUP, Recorder())
        consumer = make_consumer(broker, producer, registry, MEDIA_SERVICE_GROUP)
        msg = broker.append(USER_EVENTS, encode_event(UserDeleted(user_id="U1")), b"U1")

        assert consumer.process_message(msg) is False
        assert consumer.consumer.commits == [msg]
        assert dead_letters(broker, MEDIA_SERVICE_GROUP) == []

    def test_transient_failure_is_redelivered(self, broker, producer):
        handler = Recorder(failures=2)
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, handler)
        consumer = make_consumer(
            broker, producer, registry, PRODUCT_SERVICE_GROUP, max_attempts=3
        )
        msg = broker.append(USER_EVENTS, encode_event(UserDeleted(user_id="U1")), b"U1")

        assert consumer.process_message(msg) is True
        assert handler.calls == 3
        assert dead_letters(broker, PRODUCT_SERVICE_GROUP) == []

    def test_exhausted_redelivery_goes_to_dead_letter(self, broker, producer):
        handler = Recorder(failures=10)
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, handler)
        consumer = make_consumer(
            broker, producer, registry, PRODUCT_SERVICE_GROUP, max_attempts=3
        )
        msg = broker.append(USER_EVENTS, encode_event(UserDeleted(user_id="U1")), b"U1")

        assert consumer.process_message(msg) is False
        assert handler.calls == 3
        [letter] = dead_letters(broker, PRODUCT_SERVICE_GROUP)
        assert letter["key"] == "U1"
        assert "boom #3" in letter["error"]
        assert consumer.consumer.commits == [msg]

    def test_ledger_skips_already_processed_event(self, broker, producer, make_database):
        db = make_database(ProcessedEvent, name="ledger.db")
        ledger = ProcessedEventLedger(db.session)
        handler = Recorder()
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, handler)
        consumer = make_consumer(
            broker, producer, registry, PRODUCT_SERVICE_GROUP, ledger=ledger
        )
        payload = encode_event(UserDeleted(user_id="U1"))
        first = broker.append(USER_EVENTS, payload, b"U1")
        again = broker.append(USER_EVENTS, payload, b"U1")

        assert consumer.process_message(first) is True
        assert consumer.process_message(again) is True

        assert handler.calls == 1
        assert consumer.consumer.commits == [first, again]

    def test_ledger_is_scoped_per_group(self, make_database):
        db = make_database(ProcessedEvent, name="ledger.db")
        ledger = ProcessedEventLedger(db.session)

        ledger.record("E1", PRODUCT_SERVICE_GROUP, "UserDeleted")
        ledger.record("E1", PRODUCT_SERVICE_GROUP, "UserDeleted")

        assert ledger.seen("E1", PRODUCT_SERVICE_GROUP)
        assert not ledger.seen("E1", MEDIA_SERVICE_GROUP)


class TestConsumerRunner:
    def test_runs_one_worker_per_group_until_stopped(self, broker, producer):
        products, media = Recorder(), Recorder()
        registry = ConsumerRegistry()
        registry.register(USER_EVENTS, PRODUCT_SERVICE_GROUP, products)
        registry.register(USER_EVENTS, MEDIA_SERVICE_GROUP, media)
        created = {}

        def factory(group):
            created[group] = FakeConsumer(broker, group)
            return created[group]

        runner = ConsumerRunner(
            registry, factory, producer, backoff_seconds=0, poll_timeout=0.01
        )
        broker.append(USER_EVENTS, encode_event(UserDeleted(user_id="U1")), b"U1")

        runner.start()
        try:
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline and not (products.events and media.events):
                time.sleep(0.01)
        finally:
            runner.stop()

        assert products.events[0].user_id == "U1"
        assert media.events[0].user_id == "U1"
        assert set(created) == {PRODUCT_SERVICE_GROUP, MEDIA_SERVICE_GROUP}
        assert all(consumer.closed for consumer in created.values())
        assert not runner.is_running()
