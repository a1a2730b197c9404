from typing import Optional


class ProfileError(Exception):
    """
    Base class for profile aggregation errors in the order service.
    Should not be exposed directly to the client; convert to HTTPException.
    """

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class ProfileConcurrencyError(ProfileError):
    """
    Raised when a versioned profile write keeps losing to concurrent writers.
    Only raised with optimistic locking enabled.
    """

    def __init__(self, profile: str, key: str, attempts: int):
        super().__init__(
            f"{profile} profile {key} changed concurrently {attempts} times"
        )
        self.profile = profile
        self.key = key
        self.attempts = attempts


class StaleProfileError(ProfileError):
    """Raised internally when a conditional update matched no row."""

    pass

