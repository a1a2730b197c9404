from services.order_service.events.handlers import (
    CartUpdatedHandler,
    OrderCreatedHandler,
    OrderStatusChangedHandler,
)
from shared.libs.events.registry import ConsumerRegistry
from shared.libs.events.topics import (
    ANALYTICS_GROUP,
    CART_UPDATED,
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    PROFILE_UPDATE_GROUP,
    STATUS_CHANGE_GROUP,
)


def build_registry(
    order_created: OrderCreatedHandler,
    status_changed: OrderStatusChangedHandler,
    cart_updated: CartUpdatedHandler,
) -> ConsumerRegistry:
    registry = ConsumerRegistry()
    registry.register(
        ORDER_CREATED, PROFILE_UPDATE_GROUP, order_created, "order-created-handler"
    )
    registry.register(
        ORDER_STATUS_CHANGED,
        STATUS_CHANGE_GROUP,
        status_changed,
        "order-status-changed-handler",
    )
    registry.register(
        CART_UPDATED, ANALYTICS_GROUP, cart_updated, "cart-updated-handler"
    )
    return registry
