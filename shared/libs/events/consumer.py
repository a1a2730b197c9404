"""
Consumer-group workers.

Each EventConsumer polls the topics its group is bound to in the registry,
decodes messages into typed events and dispatches them to the bound handler.
Offsets are committed manually once a message is settled: handled, skipped,
or dead-lettered. A handler that keeps failing is redelivered in-process a
bounded number of times before the message goes to `<group>-dlq`.
"""

import threading
from typing import Callable, List, Optional

from confluent_kafka import KafkaError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.libs.events.exceptions import SchemaValidationError
from shared.libs.events.idempotency import ProcessedEventLedger
from shared.libs.events.kafka_client import KafkaClient, send_to_dead_letter
from shared.libs.events.registry import Binding, ConsumerRegistry
from shared.libs.events.schemas import BaseEvent, decode_event
from shared.libs.events.topics import accepted_kinds
from shared.libs.observability.logger_config import log
from shared.libs.observability.metrics import (
    ACTIVE_CONSUMERS,
    EVENTS_PROCESSED,
    HANDLER_DURATION,
)


class EventConsumer:
    """One polling worker for a consumer group."""

    def __init__(
        self,
        group: str,
        registry: ConsumerRegistry,
        consumer,
        dlq_producer,
        ledger: Optional[ProcessedEventLedger] = None,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        poll_timeout: float = 1.0,
    ):
        """
        Args:
            group: Consumer group this worker belongs to.
            registry: Bindings to dispatch through.
            consumer: confluent_kafka.Consumer already configured for `group`.
            dlq_producer: Producer used for dead-lettering.
            ledger: Processed-event ledger; None disables de-duplication.
            max_attempts: Handler invocations per message before dead-lettering.
            backoff_seconds: Exponential backoff multiplier between attempts.
            poll_timeout: Seconds to block in each poll.
        """
        self.group = group
        self.registry = registry
        self.consumer = consumer
        self.dlq_producer = dlq_producer
        self.ledger = ledger
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.poll_timeout = poll_timeout
        self._stopped = threading.Event()

    @property
    def topics(self) -> List[str]:
        return self.registry.topics_for(self.group)

    def start(self) -> None:
        """Subscribe and run the blocking poll loop until `stop()` is called."""
        topics = self.topics
        if not topics:
            log.warning("No bindings for consumer group", group=self.group)
            return

        self.consumer.subscribe(topics)
        ACTIVE_CONSUMERS.labels(group=self.group).inc()
        log.info("Event consumer started", group=self.group, topics=topics)
        try:
            while not self._stopped.is_set():
                msg = self.consumer.poll(timeout=self.poll_timeout)
                if msg is None:
                    continue
                if msg.error():
                    self._handle_kafka_error(msg.error())
                    continue
                try:
                    self.process_message(msg)
                except Exception as e:
                    # Offset stays uncommitted; the message is seen again after rebalance
                    log.critical(
                        "Unexpected error in consumer loop",
                        group=self.group,
                        topic=msg.topic(),
                        offset=msg.offset(),
                        error=str(e),
                    )
        finally:
            ACTIVE_CONSUMERS.labels(group=self.group).dec()
            self.consumer.close()
            log.info("Event consumer stopped", group=self.group)

    def stop(self) -> None:
        self._stopped.set()

    def process_message(self, msg) -> bool:
        """
        Settle a single message.

        Returns:
            True if the handler applied the event (or it was already applied),
            False if the message was skipped or dead-lettered.
        """
        topic = msg.topic()
        try:
            event = decode_event(msg.value())
        except SchemaValidationError as e:
            log.warning(
                "Schema validation failed",
                group=self.group,
                topic=topic,
                offset=msg.offset(),
                error=str(e),
            )
            return self._dead_letter(msg, "unknown", f"Schema validation: {e}")

        if event.kind not in accepted_kinds(topic):
            log.warning(
                "Event kind not accepted on topic",
                group=self.group,
                topic=topic,
                kind=event.kind,
                event_id=event.event_id,
            )
            return self._dead_letter(
                msg, event.kind, f"Topic {topic} does not accept {event.kind}"
            )

        binding = self.registry.lookup(topic, self.group)
        if binding is None:
            log.warning("No handler bound", group=self.group, topic=topic)
            self._commit(msg)
            EVENTS_PROCESSED.labels(
                event_type=event.kind, group=self.group, status="unhandled"
            ).inc()
            return False

        if self.ledger is not None and self.ledger.seen(event.event_id, self.group):
            log.info(
                "Duplicate event ignored",
                group=self.group,
                kind=event.kind,
                event_id=event.event_id,
            )
            self._commit(msg)
            EVENTS_PROCESSED.labels(
                event_type=event.kind, group=self.group, status="duplicate"
            ).inc()
            return True

        try:
            with HANDLER_DURATION.labels(group=self.group).time():
                self._invoke(binding, event)
        except Exception as e:
            log.critical(
                "Handler failed after redelivery",
                group=self.group,
                handler=binding.name,
                kind=event.kind,
                event_id=event.event_id,
                attempts=self.max_attempts,
                error=str(e),
            )
            return self._dead_letter(msg, event.kind, f"Handler failed: {e}")

        if self.ledger is not None:
            self.ledger.record(event.event_id, self.group, event.kind)
        self._commit(msg)
        EVENTS_PROCESSED.labels(
            event_type=event.kind, group=self.group, status="success"
        ).inc()
        log.info(
            "Event processed successfully",
            group=self.group,
            handler=binding.name,
            kind=event.kind,
            event_id=event.event_id,
        )
        return True

    def _invoke(self, binding: Binding, event: BaseEvent) -> None:
        """Run the handler, redelivering on any exception until attempts run out."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=10),
            retry=retry_if_exception_type(Exception),
            before_sleep=lambda state: log.warning(
                "Redelivering event",
                group=self.group,
                event_id=event.event_id,
                attempt=state.attempt_number,
                error=str(state.outcome.exception()),
            ),
            reraise=True,
        )
        retrying(binding.handler, event)

    def _dead_letter(self, msg, kind: str, error: str) -> bool:
        send_to_dead_letter(self.dlq_producer, self.group, msg, error)
        self._commit(msg)
        EVENTS_PROCESSED.labels(
            event_type=kind, group=self.group, status="dead_lettered"
        ).inc()
        return False

    def _commit(self, msg) -> None:
        self.consumer.commit(message=msg, asynchronous=False)

    def _handle_kafka_error(self, error) -> None:
        """Handle Kafka-specific errors"""
        # pylint: disable=protected-access
        if error.code() == KafkaError._PARTITION_EOF:
            log.debug("End of partition reached", group=self.group)
        elif error.code() == KafkaError._TIMED_OUT:
            log.warning("Kafka poll timeout", group=self.group, error=str(error))
        else:
            log.error("Kafka error", group=self.group, error=str(error))


class ConsumerRunner:
    """Runs `workers_per_group` EventConsumer threads for every registered group."""

    def __init__(
        self,
        registry: ConsumerRegistry,
        consumer_factory: Callable[[str], object],
        dlq_producer,
        ledger: Optional[ProcessedEventLedger] = None,
        workers_per_group: int = 1,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        poll_timeout: float = 1.0,
        shutdown_grace_seconds: float = 10.0,
    ):
        self.registry = registry
        self.consumer_factory = consumer_factory
        self.dlq_producer = dlq_producer
        self.ledger = ledger
        self.workers_per_group = workers_per_group
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.poll_timeout = poll_timeout
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.consumers: List[EventConsumer] = []
        self._threads: List[threading.Thread] = []

    @classmethod
    def for_client(
        cls,
        registry: ConsumerRegistry,
        kafka_client: KafkaClient,
        ledger: Optional[ProcessedEventLedger] = None,
    ) -> "ConsumerRunner":
        """Runner wired to a connected KafkaClient and its KafkaConfig settings."""
        settings = kafka_client.config
        return cls(
            registry,
            kafka_client.create_consumer,
            kafka_client.producer,
            ledger=ledger,
            workers_per_group=settings.workers_per_group,
            max_attempts=settings.max_delivery_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
            poll_timeout=settings.poll_timeout_seconds,
        )

    def start(self) -> None:
        for group in self.registry.groups():
            for index in range(self.workers_per_group):
                consumer = EventConsumer(
                    group,
                    self.registry,
                    self.consumer_factory(group),
                    self.dlq_producer,
                    ledger=self.ledger,
                    max_attempts=self.max_attempts,
                    backoff_seconds=self.backoff_seconds,
                    poll_timeout=self.poll_timeout,
                )
                thread = threading.Thread(
                    target=consumer.start, name=f"{group}-{index}", daemon=True
                )
                self.consumers.append(consumer)
                self._threads.append(thread)
                thread.start()
        log.info(
            "Consumer workers started",
            groups=self.registry.groups(),
            workers=len(self._threads),
        )

    def stop(self) -> None:
        for consumer in self.consumers:
            consumer.stop()
        for thread in self._threads:
            thread.join(self.shutdown_grace_seconds)
            if thread.is_alive():
                log.warning("Consumer worker did not stop in time", thread=thread.name)
        self.consumers = []
        self._threads = []
        log.info("Consumer workers stopped")

    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)
