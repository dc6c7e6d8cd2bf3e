"""arq tasks for listing price indexing."""
from listing_indexer.tasks.listing_price_tasks import (
    update_listing_prices_task,
    reindex_listing_prices_task,
    enqueue_listing_price_update,
)

__all__ = [
    "update_listing_prices_task",
    "reindex_listing_prices_task",
    "enqueue_listing_price_update",
]
