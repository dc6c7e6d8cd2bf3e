"""Pydantic validation models."""
from listing_indexer.models.pricing import (
    Price,
    PriceQuote,
    ListingPrice,
)
from listing_indexer.models.results import (
    UpdateStatus,
    ListingPriceUpdateResult,
    ListingPriceUpdateReport,
)
from listing_indexer.models.queue_message import ListingPriceUpdateMessage

__all__ = [
    "Price",
    "PriceQuote",
    "ListingPrice",
    "UpdateStatus",
    "ListingPriceUpdateResult",
    "ListingPriceUpdateReport",
    "ListingPriceUpdateMessage",
]
