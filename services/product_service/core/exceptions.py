from typing import Optional


class ProductError(Exception):
    """
    Base class for all Product errors in the product service.
    Should not be exposed directly to the client; convert to HTTPException.
    """

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class ProductNotFoundError(ProductError):
    """Raised when a product with the given ID does not exist."""

    pass


class ProductAccessDeniedError(ProductError):
    """Raised when the acting user does not own the product."""

    pass


class InvalidInputError(ProductError):
    """
    Raised when a invalid input is passed.
    """

    pass


class DatabaseError(ProductError):
    """
    Raised when a there is a database error.
    """

    pass
