from typing import Optional


class UserError(Exception):
    """
    Base class for all User errors in the user service.
    Should not be exposed directly to the client; convert to HTTPException.
    """

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class UserNotFoundError(UserError):
    """Raised when a user with the given ID does not exist."""

    pass


class DatabaseError(UserError):
    """
    Raised when a there is a database error.
    """

    pass
