"""Business logic services for the listing price indexer.

Available Services:
    - listing_price: Cheapest price per pricing rule, cached on canonical products
"""
from listing_indexer.services.listing_price import (
    ListingPriceIndexer,
    update_listing_prices,
    get_listing_prices,
    reindex_all,
)

__all__: list[str] = [
    "ListingPriceIndexer",
    "update_listing_prices",
    "get_listing_prices",
    "reindex_all",
]
