from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from services.product_service.core.exceptions import (
    DatabaseError,
    InvalidInputError,
    ProductAccessDeniedError,
    ProductNotFoundError,
)
from services.product_service.domain.models import (
    Product,
    ProductCreate,
    ProductUpdate,
    utcnow,
)
from services.product_service.events.producer import ProductEventProducer
from shared.libs.observability.logger_config import log
from shared.libs.observability.metrics import CASCADE_ITEMS


class ProductService:
    """
    Service class for handling product-related business logic.

    Every write publishes a ProductEvent. Creates and updates publish after the
    commit; deletes publish before the row is removed, so downstream media
    cleanup can start even if the local delete then fails.
    """

    def __init__(self, session: Session, event_producer: ProductEventProducer):
        """
        Initialize the service with a database session and event producer.
        Args:
            session: SQLModel session for database operations.
            event_producer: Publishes product events.
        """
        self.session = session
        self.event_producer = event_producer

    def create_product(self, product_create: ProductCreate, owner_id: str) -> Product:
        """
        Create a product owned by `owner_id` and publish CREATED.
        Raises:
            InvalidInputError: If owner_id is blank.
            DatabaseError: If the insert fails.
        """
        if not owner_id:
            raise InvalidInputError("Product owner is required")

        product = Product(
            owner_id=owner_id,
            name=product_create.name,
            description=product_create.description,
            price=product_create.price,
            quantity=product_create.quantity,
        )
        self._save(product, "create")
        log.info("Product created successfully", product_id=product.id, owner_id=owner_id)

        self.event_producer.publish_product_created(product)
        return product

    def get_product_by_id(self, product_id: str) -> Product:
        product = self.session.get(Product, product_id)
        if not product:
            log.warning("Product not found", product_id=product_id)
            raise ProductNotFoundError(f"Product with ID {product_id} not found")
        return product

    def list_products_for_owner(self, owner_id: str) -> List[Product]:
        return list(
            self.session.exec(select(Product).where(Product.owner_id == owner_id)).all()
        )

    def update_product(
        self, product_id: str, product_update: ProductUpdate, actor_id: str
    ) -> Product:
        """
        Update a product the actor owns and publish UPDATED.
        Raises:
            ProductNotFoundError: If product does not exist.
            ProductAccessDeniedError: If the actor is not the owner.
        """
        product = self.get_product_by_id(product_id)
        self._ensure_owner(product, actor_id)

        update_data = product_update.model_dump(exclude_unset=True)
        if not update_data:
            log.debug("No fields to update", product_id=product_id)
            return product

        for field, value in update_data.items():
            setattr(product, field, value)
        product.updated_at = utcnow()
        self._save(product, "update")
        log.info("Product updated successfully", product_id=product_id)

        self.event_producer.publish_product_updated(product)
        return product

    def delete_product(self, product_id: str, actor_id: str) -> None:
        """
        Delete a product the actor owns.
        DELETED is published first; the row is removed afterwards.
        Raises:
            ProductNotFoundError: If product does not exist.
            ProductAccessDeniedError: If the actor is not the owner.
            DatabaseError: If the delete fails after the event was published.
        """
        product = self.get_product_by_id(product_id)
        self._ensure_owner(product, actor_id)

        self.event_producer.publish_product_deleted(product.id, product.owner_id)
        self._remove(product)
        log.info("Product deleted", product_id=product_id, actor_id=actor_id)

    def delete_products_for_owner(self, owner_id: str) -> int:
        """
        Remove every product owned by a deleted user, publishing DELETED for
        each before its row goes. Safe to re-run: deleted products are not
        found again.

        Returns:
            Number of products deleted.
        """
        products = self.list_products_for_owner(owner_id)
        if not products:
            log.info("No products found for deleted user", user_id=owner_id)
            return 0

        log.info("Deleting products for user", user_id=owner_id, count=len(products))
        for product in products:
            self.event_producer.publish_product_deleted(product.id, owner_id)
            self._remove(product)
            CASCADE_ITEMS.labels(resource="product", outcome="deleted").inc()
            log.info("Product deleted", product_id=product.id, user_id=owner_id)
        return len(products)

    def _ensure_owner(self, product: Product, actor_id: str) -> None:
        if product.owner_id != actor_id:
            log.warning(
                "Product access denied", product_id=product.id, actor_id=actor_id
            )
            raise ProductAccessDeniedError(
                f"User {actor_id} does not own product {product.id}"
            )

    def _save(self, product: Product, action: str) -> None:
        try:
            self.session.add(product)
            self.session.commit()
            self.session.refresh(product)
        except SQLAlchemyError as e:
            self.session.rollback()
            log.exception(
                f"Unexpected error during product {action}",
                product_id=product.id,
                error=str(e),
            )
            raise DatabaseError(f"Failed to {action} product", e) from e

    def _remove(self, product: Product) -> None:
        try:
            self.session.delete(product)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.exception(
                "Unexpected error during product delete",
                product_id=product.id,
                error=str(e),
            )
            raise DatabaseError("Failed to delete product", e) from e
