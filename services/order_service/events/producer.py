from shared.libs.events.publisher import EventPublisher, PublishOutcome
from shared.libs.events.schemas import CartUpdated, OrderCreated, OrderStatusChanged
from shared.libs.events.topics import (
    CART_UPDATED,
    ORDER_CREATED,
    ORDER_SERVICE,
    ORDER_STATUS_CHANGED,
)


class OrderEventProducer:
    """Publishes order-service events, keyed by order id or cart id."""

    def __init__(self, producer):
        self.publisher = EventPublisher(producer, ORDER_SERVICE)

    def publish_order_created(self, event: OrderCreated) -> PublishOutcome:
        return self.publisher.publish(ORDER_CREATED, event.order_id, event)

    def publish_order_status_changed(self, event: OrderStatusChanged) -> PublishOutcome:
        return self.publisher.publish(ORDER_STATUS_CHANGED, event.order_id, event)

    def publish_cart_updated(self, event: CartUpdated) -> PublishOutcome:
        return self.publisher.publish(CART_UPDATED, event.cart_id, event)
