"""
Reusable Kafka client for the marketplace services.
Handles connection lifecycle and error management.
"""

import json
from datetime import datetime, timezone
from typing import List, Optional

from confluent_kafka import Consumer, KafkaError, KafkaException, Producer

from shared.libs.events.exceptions import (
    KafkaAuthenticationError,
    KafkaConnectionError,
    KafkaTimeoutError,
)
from shared.libs.events.kafka_config import KafkaConfig
from shared.libs.events.topics import dead_letter_topic
from shared.libs.observability.logger_config import log


def _translate(e: KafkaException) -> KafkaConnectionError:
    code = e.args[0].code() if e.args and isinstance(e.args[0], KafkaError) else None
    if code == KafkaError._ALL_BROKERS_DOWN:
        return KafkaConnectionError(f"All brokers down: {e}")
    if code == KafkaError._AUTHENTICATION:
        return KafkaAuthenticationError(f"Authentication failed: {e}")
    if code in (KafkaError._TIMED_OUT, KafkaError._TRANSPORT):
        return KafkaTimeoutError(f"Connection timeout: {e}")
    return KafkaConnectionError(f"Kafka connection failed: {e}")


class KafkaClient:
    """
    Owns the service's shared producer and hands out consumers per group.
    One instance is created per process and shared by publishers and consumers.
    """

    def __init__(self, config: KafkaConfig):
        self.config = config
        self.producer: Optional[Producer] = None
        self._consumers: List[Consumer] = []
        self._connected = False

    def connect(self) -> None:
        """
        Create the producer and verify the brokers are reachable.

        Raises:
            KafkaConnectionError: If bootstrap servers are missing or connection fails
            KafkaAuthenticationError: If authentication fails
            KafkaTimeoutError: If connection times out
        """
        if not self.config.bootstrap_servers:
            raise KafkaConnectionError("KAFKA_BOOTSTRAP_SERVERS is required")

        try:
            producer_config = self.config.to_producer_dict()
            log.debug("Initializing producer", producer_config=producer_config)
            self.producer = Producer(producer_config)
            self.producer.list_topics(timeout=5)
            self._connected = True
            log.info(
                "Kafka client connected",
                bootstrap_servers=self.config.bootstrap_servers,
            )
        except KafkaException as e:
            log.error("Kafka exception during connection", error=str(e))
            self.producer = None
            self._connected = False
            raise _translate(e) from e

    def create_consumer(self, group_id: str) -> Consumer:
        """
        Create a consumer joined to `group_id` with manual offset commits.

        Raises:
            KafkaConnectionError: If the consumer cannot be created
        """
        try:
            consumer = Consumer(self.config.to_consumer_dict(group_id))
        except KafkaException as e:
            log.error("Failed to create Kafka consumer", group=group_id, error=str(e))
            raise _translate(e) from e
        self._consumers.append(consumer)
        log.debug("Kafka consumer created", group=group_id)
        return consumer

    def close(self) -> None:
        """Safely close Kafka connections"""
        for consumer in self._consumers:
            try:
                consumer.close()
            except (KafkaException, RuntimeError) as e:
                # RuntimeError: consumer already closed by its worker thread
                log.debug("Kafka consumer already closed", error=str(e))
        self._consumers = []

        if self.producer:
            remaining = self.producer.flush(10)
            if remaining:
                log.warning("Producer closed with undelivered messages", count=remaining)
            else:
                log.info("Kafka producer flushed and closed")
            self.producer = None

        self._connected = False

    def is_healthy(self) -> bool:
        """
        Check if Kafka is responsive by listing topics.

        Returns:
            bool: True if Kafka is connected and responsive, False otherwise
        """
        if not self._connected or not self.producer:
            log.debug("Healthcheck failed: producer not connected")
            return False
        try:
            self.producer.list_topics(timeout=5)
            return True
        except KafkaException as e:
            log.error("Kafka healthcheck failed", error=str(e))
            return False


def send_to_dead_letter(producer, group: str, msg, error: str) -> None:
    """
    Produce the raw message with its origin and failure reason to `<group>-dlq`.
    The original payload is kept as text so undecodable messages survive.
    """
    value = msg.value() or b""
    key = msg.key()
    dlq_message = {
        "original_topic": msg.topic(),
        "partition": msg.partition(),
        "offset": msg.offset(),
        "key": key.decode("utf-8", errors="replace") if key else None,
        "original_message": value.decode("utf-8", errors="replace"),
        "error": error,
        "consumer_group": group,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    topic = dead_letter_topic(group)
    try:
        producer.produce(
            topic=topic,
            key=key,
            value=json.dumps(dlq_message).encode("utf-8"),
            on_delivery=_delivery_report,
        )
        producer.flush(10)
    except (BufferError, KafkaException) as e:
        log.critical("Failed to produce to DLQ", topic=topic, error=str(e))
        raise
    log.warning(
        "Message dead-lettered",
        dlq_topic=topic,
        original_topic=msg.topic(),
        offset=msg.offset(),
        error=error,
    )


def _delivery_report(err, msg):
    """Callback for Kafka produce delivery"""
    if err is not None:
        log.error(
            "Message delivery failed",
            topic=msg.topic() if msg else None,
            error=str(err),
        )
    else:
        log.debug(
            "Message delivered",
            topic=msg.topic(),
            partition=msg.partition(),
            offset=msg.offset(),
        )
