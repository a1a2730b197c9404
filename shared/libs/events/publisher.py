"""
Fire-and-forget event publisher.

`publish` validates the event against the topic catalog and hands it to the
Kafka producer. Broker acknowledgement arrives later on the delivery callback,
which only logs; there is no outbox and no retry beyond the producer's own.
"""

from typing import NamedTuple

from confluent_kafka import KafkaException

from shared.libs.events.exceptions import (
    EventPublishError,
    InvalidEventKeyError,
    SchemaValidationError,
)
from shared.libs.events.schemas import BaseEvent, encode_event, partition_key
from shared.libs.events.topics import CATALOG, accepted_kinds
from shared.libs.observability.logger_config import log
from shared.libs.observability.metrics import EVENTS_PUBLISHED


class PublishOutcome(NamedTuple):
    """What was handed to the producer. Not a delivery guarantee."""

    topic: str
    key: str
    event_id: str
    kind: str


class EventPublisher:
    """Publishes catalog events on behalf of one service."""

    def __init__(self, producer, service_name: str):
        """
        Args:
            producer: confluent_kafka.Producer (or anything with produce/poll).
            service_name: Stamped on the envelope `source` and checked
                against the topic's owning service.
        """
        self.producer = producer
        self.service_name = service_name

    def publish(self, topic: str, key: str, event: BaseEvent) -> PublishOutcome:
        """
        Enqueue `event` on `topic` keyed by its aggregate id.

        Raises:
            InvalidEventKeyError: If key is empty or not the event's aggregate id.
            SchemaValidationError: If the topic does not carry this event kind.
            EventPublishError: If the topic belongs to another service or the
                producer refuses the message synchronously.
        """
        expected_key = partition_key(event)
        if not key or key != expected_key:
            raise InvalidEventKeyError(expected_key, key)

        if event.kind not in accepted_kinds(topic):
            raise SchemaValidationError(
                f"Topic {topic} does not accept {event.kind} events"
            )

        owner = CATALOG[topic].producer
        if owner != self.service_name:
            raise EventPublishError(topic, f"topic is owned by {owner}")

        if event.source is None:
            event = event.model_copy(update={"source": self.service_name})

        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8"),
                value=encode_event(event),
                headers=[
                    ("kind", event.kind.encode("utf-8")),
                    ("event_id", event.event_id.encode("utf-8")),
                ],
                on_delivery=self._delivery_report(event),
            )
        except (BufferError, KafkaException) as e:
            EVENTS_PUBLISHED.labels(topic=topic, status="rejected").inc()
            log.error(
                "Producer rejected event",
                topic=topic,
                key=key,
                event_id=event.event_id,
                error=str(e),
            )
            raise EventPublishError(topic, str(e)) from e

        # Serve delivery callbacks without blocking
        self.producer.poll(0)
        EVENTS_PUBLISHED.labels(topic=topic, status="enqueued").inc()
        log.info(
            "Event published",
            topic=topic,
            key=key,
            kind=event.kind,
            event_id=event.event_id,
        )
        return PublishOutcome(topic, key, event.event_id, event.kind)

    def flush(self, timeout: float = 10.0) -> int:
        """Block until queued events are delivered; returns how many remain."""
        return self.producer.flush(timeout)

    @staticmethod
    def _delivery_report(event: BaseEvent):
        def report(err, msg):
            if err is not None:
                EVENTS_PUBLISHED.labels(topic=msg.topic(), status="failed").inc()
                log.error(
                    "Event delivery failed",
                    topic=msg.topic(),
                    kind=event.kind,
                    event_id=event.event_id,
                    error=str(err),
                )
                return
            EVENTS_PUBLISHED.labels(topic=msg.topic(), status="delivered").inc()
            log.debug(
                "Event delivered",
                topic=msg.topic(),
                partition=msg.partition(),
                offset=msg.offset(),
                event_id=event.event_id,
            )

        return report
