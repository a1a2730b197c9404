"""
Order-service event handlers.

OrderCreated and OrderStatusChanged are on the strict path: failures are
rethrown as EventProcessingError so the message is redelivered. CartUpdated
is analytics only and never fails the consumer.
"""

from services.order_service.application.seller_profile_service import (
    SellerProfileService,
)
from services.order_service.application.user_profile_service import (
    UserProfileService,
)
from shared.libs.events.exceptions import EventProcessingError
from shared.libs.events.schemas import (
    CartAction,
    CartUpdated,
    OrderCreated,
    OrderStatus,
    OrderStatusChanged,
)
from shared.libs.observability.logger_config import log


class OrderCreatedHandler:
    """
    Fans an order out into the buyer's profile and one sale per item on the
    sellers' profiles. Each profile write commits independently, so a failure
    part-way leaves earlier writes in place and a redelivery applies them again.
    """

    def __init__(
        self,
        user_profiles: UserProfileService,
        seller_profiles: SellerProfileService,
    ):
        self.user_profiles = user_profiles
        self.seller_profiles = seller_profiles

    def __call__(self, event: OrderCreated) -> None:
        log.info(
            "Processing order created event",
            order_id=event.order_id,
            buyer_id=event.buyer_id,
            items=len(event.items),
        )
        try:
            self.user_profiles.record_new_order(
                event.buyer_id, event.total_price, event.items, event.created_at
            )
            for item in event.items:
                self.seller_profiles.record_sale(
                    item.seller_id,
                    item.quantity,
                    item.subtotal,
                    item.product_id,
                    event.created_at,
                )
        except Exception as e:
            log.error(
                "Failed to process order created event",
                order_id=event.order_id,
                event_id=event.event_id,
                error=str(e),
            )
            raise EventProcessingError(event.kind, str(e)) from e


class CartUpdatedHandler:
    """Best-effort cart analytics. Errors are logged and swallowed."""

    def __init__(self):
        self._hooks = {
            CartAction.ITEM_ADDED: self.on_item_added,
            CartAction.ITEM_REMOVED: self.on_item_removed,
            CartAction.QUANTITY_CHANGED: self.on_quantity_changed,
            CartAction.CLEARED: self.on_cart_cleared,
        }

    def __call__(self, event: CartUpdated) -> None:
        try:
            hook = self._hooks.get(event.action)
            if hook is None:
                log.warning("Unknown cart action", action=event.action, cart_id=event.cart_id)
                return
            hook(event)
        except Exception as e:
            log.error(
                "Cart analytics failed",
                cart_id=event.cart_id,
                event_id=event.event_id,
                error=str(e),
            )

    def on_item_added(self, event: CartUpdated) -> None:
        log.debug(
            "Cart item added",
            cart_id=event.cart_id,
            user_id=event.user_id,
            product_id=event.product_id,
            quantity=event.quantity,
        )

    def on_item_removed(self, event: CartUpdated) -> None:
        log.debug(
            "Cart item removed",
            cart_id=event.cart_id,
            user_id=event.user_id,
            product_id=event.product_id,
        )

    def on_quantity_changed(self, event: CartUpdated) -> None:
        log.debug(
            "Cart quantity changed",
            cart_id=event.cart_id,
            product_id=event.product_id,
            quantity=event.quantity,
        )

    def on_cart_cleared(self, event: CartUpdated) -> None:
        log.debug("Cart cleared", cart_id=event.cart_id, user_id=event.user_id)


class OrderStatusChangedHandler:
    def __init__(self):
        self._hooks = {
            OrderStatus.SHIPPED: self.on_shipped,
            OrderStatus.DELIVERED: self.on_delivered,
            OrderStatus.CANCELLED: self.on_cancelled,
        }

    def __call__(self, event: OrderStatusChanged) -> None:
        log.info(
            "Processing order status change",
            order_id=event.order_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )
        try:
            hook = self._hooks.get(event.new_status)
            if hook is None:
                log.debug("No action for order status", new_status=event.new_status)
                return
            hook(event)
        except Exception as e:
            log.error(
                "Failed to process order status change",
                order_id=event.order_id,
                event_id=event.event_id,
                error=str(e),
            )
            raise EventProcessingError(event.kind, str(e)) from e

    def on_shipped(self, event: OrderStatusChanged) -> None:
        log.info("Order shipped", order_id=event.order_id, buyer_id=event.buyer_id)

    def on_delivered(self, event: OrderStatusChanged) -> None:
        log.info("Order delivered", order_id=event.order_id, buyer_id=event.buyer_id)

    def on_cancelled(self, event: OrderStatusChanged) -> None:
        log.info(
            "Order cancelled",
            order_id=event.order_id,
            buyer_id=event.buyer_id,
            reason=event.reason,
        )
