from services.media_service.events.handlers import (
    ProductEventHandler,
    UserDeletedHandler,
)
from shared.libs.events.registry import ConsumerRegistry
from shared.libs.events.topics import MEDIA_SERVICE_GROUP, PRODUCT_EVENTS, USER_EVENTS


def build_registry(
    product_events: ProductEventHandler, user_deleted: UserDeletedHandler
) -> ConsumerRegistry:
    registry = ConsumerRegistry()
    registry.register(
        PRODUCT_EVENTS, MEDIA_SERVICE_GROUP, product_events, "product-event-handler"
    )
    registry.register(
        USER_EVENTS, MEDIA_SERVICE_GROUP, user_deleted, "user-deleted-handler"
    )
    return registry
