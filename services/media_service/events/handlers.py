from typing import Callable, ContextManager

from sqlmodel import Session

from services.media_service.application.media_cleanup_service import (
    MediaCleanupService,
)
from services.media_service.infrastructure.storage.minio import MinioClient
from shared.libs.events.schemas import ProductEvent, ProductEventType, UserDeleted
from shared.libs.observability.logger_config import log


class _CleanupHandler:
    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]],
        storage: MinioClient,
    ):
        self.session_factory = session_factory
        self.storage = storage


class ProductEventHandler(_CleanupHandler):
    """Removes a deleted product's media. CREATED and UPDATED are ignored."""

    def __call__(self, event: ProductEvent) -> None:
        if event.event_type is not ProductEventType.DELETED:
            log.debug(
                "Ignoring product event",
                event_type=event.event_type,
                product_id=event.product_id,
            )
            return

        log.info("Received product deleted event", product_id=event.product_id)
        with self.session_factory() as session:
            result = MediaCleanupService(session, self.storage).delete_media_for_product(
                event.product_id
            )
        log.info(
            "Product media cleanup finished",
            product_id=event.product_id,
            deleted=result.deleted,
            missing_files=result.missing_files,
            failed=result.failed,
        )


class UserDeletedHandler(_CleanupHandler):
    """Removes every media item uploaded by a deleted user."""

    def __call__(self, event: UserDeleted) -> None:
        log.info("Received user deleted event", user_id=event.user_id)
        with self.session_factory() as session:
            result = MediaCleanupService(session, self.storage).delete_media_for_owner(
                event.user_id
            )
        log.info(
            "User media cleanup finished",
            user_id=event.user_id,
            deleted=result.deleted,
            missing_files=result.missing_files,
            failed=result.failed,
        )
