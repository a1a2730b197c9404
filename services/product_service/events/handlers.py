from typing import Callable, ContextManager

from sqlmodel import Session

from services.product_service.application.product_service import ProductService
from services.product_service.events.producer import ProductEventProducer
from shared.libs.events.schemas import UserDeleted
from shared.libs.observability.logger_config import log


class UserDeletedHandler:
    """
    First hop of the deletion cascade: a deleted user's products are removed,
    each announced as ProductEvent DELETED so media-service follows.
    Errors propagate so the message is redelivered.
    """

    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]],
        event_producer: ProductEventProducer,
    ):
        self.session_factory = session_factory
        self.event_producer = event_producer

    def __call__(self, event: UserDeleted) -> None:
        log.info(
            "Received user deleted event",
            user_id=event.user_id,
            user_role=event.user_role,
            event_id=event.event_id,
        )
        with self.session_factory() as session:
            ProductService(session, self.event_producer).delete_products_for_owner(
                event.user_id
            )
