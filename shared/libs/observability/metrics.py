"""
Shared Prometheus metrics for the marketplace services.
Covers the event-driven consistency layer: publishing, consuming, cascades
and profile writes.
"""

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# === PUBLISHER METRICS ===
EVENTS_PUBLISHED = Counter(
    "kafka_events_published_total",
    "Events handed to the Kafka producer, by topic and outcome",
    ["topic", "status"],
)

# === CONSUMER METRICS ===
EVENTS_PROCESSED = Counter(
    "kafka_events_processed_total",
    "Kafka events processed by consumer group",
    ["event_type", "group", "status"],
)

HANDLER_DURATION = Histogram(
    "kafka_handler_duration_seconds",
    "Time spent inside an event handler, including redeliveries",
    ["group"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_CONSUMERS = Gauge(
    "kafka_active_consumers", "Consumer worker threads currently polling", ["group"]
)

# === CONSISTENCY METRICS ===
CASCADE_ITEMS = Counter(
    "cascade_items_total",
    "Items touched by cascade deletion handlers",
    ["resource", "outcome"],
)

PROFILE_WRITE_CONFLICTS = Counter(
    "profile_write_conflicts_total",
    "Optimistic-lock conflicts detected on profile writes",
    ["profile"],
)


def create_metrics_endpoint():
    """Create a /metrics endpoint for Prometheus."""

    async def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return metrics
