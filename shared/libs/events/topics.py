"""
Topic catalog shared by every service.

Each topic has exactly one producing service, a fixed set of consumer groups
and the event kinds it may carry. Consumers reject anything else.
"""

from typing import Dict, FrozenSet, List, NamedTuple, Tuple

# Topics
ORDER_CREATED = "order-created"
ORDER_STATUS_CHANGED = "order-status-changed"
CART_UPDATED = "cart-updated"
PRODUCT_EVENTS = "product-events"
USER_EVENTS = "user-events"

# Consumer groups
PROFILE_UPDATE_GROUP = "profile-update-group"
STATUS_CHANGE_GROUP = "status-change-group"
ANALYTICS_GROUP = "analytics-group"
PRODUCT_SERVICE_GROUP = "product-service-group"
MEDIA_SERVICE_GROUP = "media-service-group"

# Producing services
ORDER_SERVICE = "order-service"
PRODUCT_SERVICE = "product-service"
USER_SERVICE = "user-service"
MEDIA_SERVICE = "media-service"


class TopicSpec(NamedTuple):
    name: str
    producer: str
    consumer_groups: Tuple[str, ...]
    kinds: FrozenSet[str]


CATALOG: Dict[str, TopicSpec] = {
    spec.name: spec
    for spec in (
        TopicSpec(
            ORDER_CREATED,
            ORDER_SERVICE,
            (PROFILE_UPDATE_GROUP,),
            frozenset({"OrderCreated"}),
        ),
        TopicSpec(
            ORDER_STATUS_CHANGED,
            ORDER_SERVICE,
            (STATUS_CHANGE_GROUP,),
            frozenset({"OrderStatusChanged"}),
        ),
        TopicSpec(
            CART_UPDATED,
            ORDER_SERVICE,
            (ANALYTICS_GROUP,),
            frozenset({"CartUpdated"}),
        ),
        TopicSpec(
            PRODUCT_EVENTS,
            PRODUCT_SERVICE,
            (MEDIA_SERVICE_GROUP,),
            frozenset({"ProductEvent"}),
        ),
        TopicSpec(
            USER_EVENTS,
            USER_SERVICE,
            (PRODUCT_SERVICE_GROUP, MEDIA_SERVICE_GROUP),
            frozenset({"UserDeleted"}),
        ),
    )
}

TOPIC_FOR_KIND: Dict[str, str] = {
    kind: spec.name for spec in CATALOG.values() for kind in spec.kinds
}


def accepted_kinds(topic: str) -> FrozenSet[str]:
    """Event kinds a topic may carry; empty for topics outside the catalog."""
    spec = CATALOG.get(topic)
    return spec.kinds if spec else frozenset()


def groups_for(topic: str) -> Tuple[str, ...]:
    spec = CATALOG.get(topic)
    return spec.consumer_groups if spec else ()


def topics_for_group(group: str) -> List[str]:
    return [spec.name for spec in CATALOG.values() if group in spec.consumer_groups]


def topics_produced_by(service: str) -> List[str]:
    return [spec.name for spec in CATALOG.values() if spec.producer == service]


def all_groups() -> List[str]:
    groups: List[str] = []
    for spec in CATALOG.values():
        for group in spec.consumer_groups:
            if group not in groups:
                groups.append(group)
    return groups


def dead_letter_topic(group: str) -> str:
    """Name of the dead-letter topic for a consumer group."""
    return f"{group}-dlq"


def topic_for(event) -> str:
    """Catalog topic that carries this event's kind."""
    return TOPIC_FOR_KIND[event.kind]
