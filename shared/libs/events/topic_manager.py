"""
Provisions the Kafka topics a service touches on startup.
Creates catalog topics and dead-letter topics that don't exist yet.
"""

import time
from typing import Iterable, List

from confluent_kafka import KafkaException
from confluent_kafka.admin import AdminClient, NewTopic

from shared.libs.events.kafka_config import KafkaConfig
from shared.libs.events.topics import (
    dead_letter_topic,
    topics_for_group,
    topics_produced_by,
)
from shared.libs.observability.logger_config import log


def required_topics(service: str, groups: Iterable[str]) -> List[str]:
    """Topics a service produces to, consumes from, and dead-letters into."""
    topics: List[str] = list(topics_produced_by(service))
    for group in groups:
        for topic in topics_for_group(group) + [dead_letter_topic(group)]:
            if topic not in topics:
                topics.append(topic)
    return topics


class TopicManager:
    """Creates required topics if they don't exist and waits for leaders."""

    def __init__(self, config: KafkaConfig, topics: List[str]):
        self.admin_client = AdminClient(config.to_admin_dict())
        self.required_topics = topics
        self.num_partitions = config.num_partitions
        self.replication_factor = config.topic_replication_factor
        self.topic_config = {
            "cleanup.policy": "delete",
            "retention.ms": "604800000",  # 7 days
            "min.insync.replicas": "1",
        }

    def create_topics(self, timeout: int = 30) -> bool:
        """
        Create all required topics if they don't exist.

        Returns:
            True if all topics exist (created or already existed) and have leaders
        """
        try:
            metadata = self.admin_client.list_topics(timeout=timeout)
            existing_topics = set(metadata.topics.keys())

            topics_to_create = [
                topic for topic in self.required_topics if topic not in existing_topics
            ]
            if not topics_to_create:
                log.info("All required topics already exist")
                return True

            log.info(
                "Creating missing topics",
                topics=topics_to_create,
                total=len(topics_to_create),
            )
            new_topics = [
                NewTopic(
                    topic=topic,
                    num_partitions=self.num_partitions,
                    replication_factor=self.replication_factor,
                    config=self.topic_config,
                )
                for topic in topics_to_create
            ]
            fs = self.admin_client.create_topics(
                new_topics, validate_only=False, operation_timeout=timeout
            )
            for topic, f in fs.items():
                try:
                    f.result()
                    log.info("Topic created successfully", topic=topic)
                except KafkaException as e:
                    # TOPIC_ALREADY_EXISTS when another service raced us
                    log.warning("Topic not created", topic=topic, error=str(e))

            return self._wait_for_topics_ready(timeout=timeout)

        except KafkaException as e:
            log.critical("Kafka admin operation failed", error=str(e))
            return False

    def _wait_for_topics_ready(self, timeout: int = 30) -> bool:
        """Poll metadata until every required topic has a leader on each partition."""
        start_time = time.time()
        last_log = 0.0

        while time.time() - start_time < timeout:
            try:
                metadata = self.admin_client.list_topics(timeout=10)
            except KafkaException as e:
                log.warning("Error checking topic readiness", error=str(e))
                time.sleep(2)
                continue

            not_ready = []
            for topic in self.required_topics:
                topic_metadata = metadata.topics.get(topic)
                if topic_metadata is None or not topic_metadata.partitions:
                    not_ready.append(topic)
                elif any(p.leader == -1 for p in topic_metadata.partitions.values()):
                    not_ready.append(f"{topic} (leader -1)")

            if not not_ready:
                log.info("All topics are ready", topics=self.required_topics)
                return True

            if time.time() - last_log > 5:
                log.warning("Waiting for topics to be ready", not_ready=not_ready)
                last_log = time.time()
            time.sleep(2)

        log.error("Timeout waiting for topics to be ready", topics=self.required_topics)
        return False
