# ------------------------
# Base Media Exception
# ------------------------


class MediaError(Exception):
    """Base exception for media-related errors."""

    pass


class MediaStorageError(MediaError):
    """Raised when the object store fails to stat or remove a file."""

    def __init__(self, storage_key: str, reason: str = "Unknown reason"):
        super().__init__(f"Storage operation failed for {storage_key}: {reason}")
        self.storage_key = storage_key
        self.reason = reason


class MediaDeletionError(MediaError):
    """Raised when media metadata cannot be deleted."""

    def __init__(self, media_id: str, reason: str = "Unknown reason"):
        super().__init__(f"Failed to delete media {media_id}: {reason}")
        self.media_id = media_id
        self.reason = reason


# ------------------------
# Infrastructure Errors
# ------------------------


class ExternalServiceError(Exception):
    """
    Raised when there is an unexpected error from an external service.
    """

    def __init__(self, service_name: str, message: str = "Service call failed"):
        super().__init__(f"{service_name} error: {message}")
        self.service_name = service_name
        self.message = message
