"""
In-memory stand-ins for the Kafka producer/consumer and the media object store.

The broker keeps an append-only log per topic and a read cursor per
(group, topic), which is enough to drive EventConsumer.process_message
deterministically from tests.
"""

import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Set, Tuple

from services.media_service.core.exceptions import MediaStorageError


class FakeMessage:
    """Mimics confluent_kafka.Message accessors."""

    def __init__(
        self,
        topic: str,
        value: Optional[bytes],
        key: Optional[bytes] = None,
        partition: int = 0,
        offset: int = 0,
        headers: Optional[list] = None,
    ):
        self._topic = topic
        self._value = value
        self._key = key
        self._partition = partition
        self._offset = offset
        self._headers = headers or []

    def topic(self) -> str:
        return self._topic

    def value(self) -> Optional[bytes]:
        return self._value

    def key(self) -> Optional[bytes]:
        return self._key

    def partition(self) -> int:
        return self._partition

    def offset(self) -> int:
        return self._offset

    def headers(self) -> list:
        return self._headers

    def error(self):
        return None


class InMemoryBroker:
    def __init__(self):
        self.log: Dict[str, List[FakeMessage]] = defaultdict(list)
        self.cursors: Dict[Tuple[str, str], int] = defaultdict(int)
        self.committed: Dict[Tuple[str, str], int] = {}

    def append(
        self, topic: str, value: bytes, key: Optional[bytes] = None, headers=None
    ) -> FakeMessage:
        msg = FakeMessage(topic, value, key, offset=len(self.log[topic]), headers=headers)
        self.log[topic].append(msg)
        return msg

    def messages(self, topic: str) -> List[FakeMessage]:
        return list(self.log[topic])


class FakeProducer:
    """Records produced messages; delivery callbacks fire on poll/flush."""

    def __init__(
        self,
        broker: InMemoryBroker,
        produce_error: Optional[Exception] = None,
        delivery_error: Optional[str] = None,
    ):
        self.broker = broker
        self.produce_error = produce_error
        self.delivery_error = delivery_error
        self._pending: List[Tuple[Callable, FakeMessage]] = []

    def produce(self, topic, value=None, key=None, headers=None, on_delivery=None):
        if self.produce_error is not None:
            raise self.produce_error
        msg = self.broker.append(topic, value, key, headers)
        if on_delivery is not None:
            self._pending.append((on_delivery, msg))

    def poll(self, timeout=None) -> int:
        served = 0
        while self._pending:
            callback, msg = self._pending.pop(0)
            callback(self.delivery_error, msg)
            served += 1
        return served

    def flush(self, timeout=None) -> int:
        self.poll(0)
        return 0


class FakeConsumer:
    """Reads the broker log for one consumer group."""

    def __init__(self, broker: InMemoryBroker, group: str):
        self.broker = broker
        self.group = group
        self.topics: List[str] = []
        self.commits: List[FakeMessage] = []
        self.closed = False

    def subscribe(self, topics: List[str]) -> None:
        self.topics = list(topics)

    def poll(self, timeout=None) -> Optional[FakeMessage]:
        for topic in self.topics:
            cursor = self.broker.cursors[(self.group, topic)]
            if cursor < len(self.broker.log[topic]):
                self.broker.cursors[(self.group, topic)] = cursor + 1
                return self.broker.log[topic][cursor]
        if timeout:
            time.sleep(timeout)
        return None

    def commit(self, message=None, asynchronous=True) -> None:
        self.commits.append(message)
        self.broker.committed[(self.group, message.topic())] = message.offset() + 1

    def close(self) -> None:
        self.closed = True


def drain(event_consumer) -> int:
    """Process every pending message for the consumer's group; returns the count."""
    fake = event_consumer.consumer
    if not fake.topics:
        fake.subscribe(event_consumer.topics)
    processed = 0
    while True:
        msg = fake.poll(0)
        if msg is None:
            return processed
        event_consumer.process_message(msg)
        processed += 1


class FakeStorage:
    """Object store keyed by storage key with injectable failures."""

    def __init__(self, keys=(), failing: Set[str] = frozenset()):
        self.objects: Set[str] = set(keys)
        self.failing: Set[str] = set(failing)
        self.removed: List[str] = []

    def remove_file(self, storage_key: str) -> bool:
        if storage_key in self.failing:
            raise MediaStorageError(storage_key, "simulated I/O failure")
        if storage_key not in self.objects:
            return False
        self.objects.discard(storage_key)
        self.removed.append(storage_key)
        return True
