"""Error handling module."""
from listing_indexer.errors.exceptions import (
    ListingIndexError,
    InvalidProductIdError,
    PricePayloadError,
    ListingPriceFormatError,
    DatabaseError,
)

__all__ = [
    "ListingIndexError",
    "InvalidProductIdError",
    "PricePayloadError",
    "ListingPriceFormatError",
    "DatabaseError",
]
