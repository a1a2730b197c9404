from services.product_service.domain.models import Product
from shared.libs.events.publisher import EventPublisher, PublishOutcome
from shared.libs.events.schemas import ProductEvent, ProductEventType
from shared.libs.events.topics import PRODUCT_EVENTS, PRODUCT_SERVICE


class ProductEventProducer:
    """Publishes product lifecycle events keyed by product id."""

    def __init__(self, producer):
        self.publisher = EventPublisher(producer, PRODUCT_SERVICE)

    def publish_product_created(self, product: Product) -> PublishOutcome:
        return self._publish_details(ProductEventType.CREATED, product)

    def publish_product_updated(self, product: Product) -> PublishOutcome:
        return self._publish_details(ProductEventType.UPDATED, product)

    def publish_product_deleted(self, product_id: str, seller_id: str) -> PublishOutcome:
        event = ProductEvent(
            event_type=ProductEventType.DELETED,
            product_id=product_id,
            seller_id=seller_id,
        )
        return self.publisher.publish(PRODUCT_EVENTS, product_id, event)

    def _publish_details(
        self, event_type: ProductEventType, product: Product
    ) -> PublishOutcome:
        event = ProductEvent(
            event_type=event_type,
            product_id=product.id,
            seller_id=product.owner_id,
            name=product.name,
            description=product.description,
            price=product.price,
            quantity=product.quantity,
        )
        return self.publisher.publish(PRODUCT_EVENTS, product.id, event)
