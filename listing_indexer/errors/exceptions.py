"""Custom exception hierarchy for listing price indexing errors."""
from typing import Optional
from uuid import UUID


class ListingIndexError(Exception):
    """Base exception for all listing price indexing errors."""

    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class InvalidProductIdError(ListingIndexError):
    """Raised when a product identifier is not a valid UUID/hex string."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid product id: {value!r}")


class PricePayloadError(ListingIndexError):
    """Raised when a stored price payload cannot be decoded."""

    def __init__(self, message: str, quote_id: Optional[UUID] = None):
        self.quote_id = quote_id
        super().__init__(message)


class ListingPriceFormatError(ListingIndexError):
    """Raised when a cached listing price value cannot be read back."""
    pass


class DatabaseError(ListingIndexError):
    """Raised when database operations fail."""
    pass
