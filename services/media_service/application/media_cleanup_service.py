from typing import List, NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from services.media_service.core.exceptions import (
    MediaDeletionError,
    MediaStorageError,
)
from services.media_service.domain.models import Media
from services.media_service.infrastructure.storage.minio import MinioClient
from shared.libs.observability.logger_config import log
from shared.libs.observability.metrics import CASCADE_ITEMS


class CleanupResult(NamedTuple):
    deleted: int
    missing_files: int
    failed: int


class MediaCleanupService:
    """
    Last hop of the deletion cascade: removes media objects and their metadata.

    Per item the object is deleted first, then the row. A missing object is
    only a warning and the row still goes. A storage failure keeps the row and
    moves on to the next item. Database failures abort the batch.
    """

    def __init__(self, session: Session, storage: MinioClient):
        self.session = session
        self.storage = storage

    def delete_media_for_product(self, product_id: str) -> CleanupResult:
        items = list(
            self.session.exec(select(Media).where(Media.product_id == product_id)).all()
        )
        log.info("Deleting media for product", product_id=product_id, count=len(items))
        return self._delete_items(items)

    def delete_media_for_owner(self, owner_id: str) -> CleanupResult:
        items = list(
            self.session.exec(select(Media).where(Media.owner_id == owner_id)).all()
        )
        log.info("Deleting media for user", user_id=owner_id, count=len(items))
        return self._delete_items(items)

    def _delete_items(self, items: List[Media]) -> CleanupResult:
        deleted = missing = failed = 0
        for media in items:
            try:
                removed = self.storage.remove_file(media.storage_key)
            except MediaStorageError as e:
                failed += 1
                CASCADE_ITEMS.labels(resource="media", outcome="storage_failed").inc()
                log.error(
                    "Failed to delete media file, keeping metadata",
                    media_id=media.id,
                    storage_key=media.storage_key,
                    error=str(e),
                )
                continue

            if not removed:
                missing += 1
                log.warning(
                    "File not found in storage",
                    media_id=media.id,
                    storage_key=media.storage_key,
                )

            self._delete_row(media)
            deleted += 1
            CASCADE_ITEMS.labels(resource="media", outcome="deleted").inc()
            log.info("Deleted media", media_id=media.id, filename=media.filename)

        return CleanupResult(deleted, missing, failed)

    def _delete_row(self, media: Media) -> None:
        try:
            self.session.delete(media)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.critical(
                "Database error while deleting media", media_id=media.id, error=str(e)
            )
            raise MediaDeletionError(media.id, str(e)) from e
