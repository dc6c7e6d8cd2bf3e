"""Listing price indexing service.

Maintains ``products.listing_prices``: the cheapest open-ended quote per
pricing rule across a canonical product and all of its variants.

Key Components:
    - ListingPriceIndexer: Resolve, load, select and persist for a batch of ids
    - build_listing_prices: Pure cheapest-per-rule selection
    - encode_listing_prices / decode_listing_prices: Cached column codec
    - reindex_all: Batched reindex of every canonical product
"""
from listing_indexer.services.listing_price.codec import (
    LISTING_PRICE_CLASS,
    SCHEMA_VERSION,
    decode_listing_prices,
    decode_price_payload,
    encode_listing_prices,
    load_price_payload,
)
from listing_indexer.services.listing_price.selection import (
    build_listing_prices,
    group_by_rule,
    select_cheapest,
)
from listing_indexer.services.listing_price.indexer import (
    ListingPriceIndexer,
    get_listing_prices,
    parse_product_id,
    parse_product_ids,
    update_listing_prices,
)
from listing_indexer.services.listing_price.reindex import (
    fetch_canonical_id_batch,
    reindex_all,
)

__all__ = [
    "LISTING_PRICE_CLASS",
    "SCHEMA_VERSION",
    "decode_listing_prices",
    "decode_price_payload",
    "encode_listing_prices",
    "load_price_payload",
    "build_listing_prices",
    "group_by_rule",
    "select_cheapest",
    "ListingPriceIndexer",
    "get_listing_prices",
    "parse_product_id",
    "parse_product_ids",
    "update_listing_prices",
    "fetch_canonical_id_batch",
    "reindex_all",
]
