from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError

from services.media_service.core.exceptions import (
    ExternalServiceError,
    MediaStorageError,
)
from shared.libs.observability.logger_config import log

# S3 error codes meaning the object is already gone
MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject")


class MinioClient:
    """
    Client for interacting with MinIO.
    Uses synchronous minio-py (no async support).
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        secure: bool = False,
    ):
        self.client = Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,  # Set to False for local development
        )
        self.bucket_name = bucket_name

    def ensure_bucket(self) -> None:
        """
        Ensure the target bucket exists.
        Creates it if it doesn't.
        """
        try:
            if not self.client.bucket_exists(self.bucket_name):
                log.info("Creating MinIO bucket", bucket=self.bucket_name)
                self.client.make_bucket(self.bucket_name)
            else:
                log.debug("MinIO bucket already exists", bucket=self.bucket_name)
        except (S3Error, HTTPError) as e:
            log.critical(
                "Failed to ensure MinIO bucket exists",
                bucket=self.bucket_name,
                error=str(e),
            )
            raise ExternalServiceError(
                service_name="minio", message="Failed to connect to storage service"
            ) from e

    def remove_file(self, storage_key: str) -> bool:
        """
        Delete an object from the media bucket.
        Args:
            storage_key: Object key recorded on the Media row.
        Returns:
            True if the object existed and was removed, False if it was missing.
        Raises:
            MediaStorageError: If MinIO fails or is unreachable.
        """
        try:
            self.client.stat_object(self.bucket_name, storage_key)
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                return False
            log.warning(
                "S3Error during file lookup", object_name=storage_key, error=str(e)
            )
            raise MediaStorageError(storage_key, str(e)) from e
        except HTTPError as e:
            raise MediaStorageError(storage_key, str(e)) from e

        try:
            self.client.remove_object(self.bucket_name, storage_key)
        except (S3Error, HTTPError) as e:
            log.warning(
                "Failed to remove file from MinIO",
                object_name=storage_key,
                error=str(e),
            )
            raise MediaStorageError(storage_key, str(e)) from e

        log.info("File removed from MinIO", bucket=self.bucket_name, object_name=storage_key)
        return True
