"""Full reindex of listing prices over every canonical product."""
from typing import Callable, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from listing_indexer.config import IndexerSettings, indexer_settings
from listing_indexer.db.base import async_session_maker
from listing_indexer.db.models import Product
from listing_indexer.errors.exceptions import DatabaseError
from listing_indexer.models.results import ListingPriceUpdateReport
from listing_indexer.services.listing_price.indexer import ListingPriceIndexer

logger = structlog.get_logger(__name__)


async def fetch_canonical_id_batch(
    session: AsyncSession,
    batch_size: int,
    after: Optional[UUID] = None,
) -> List[UUID]:
    """Next ``batch_size`` canonical product ids ordered by id (keyset pagination)."""
    stmt = (
        select(Product.id)
        .where(Product.parent_id.is_(None))
        .order_by(Product.id)
        .limit(batch_size)
    )
    if after is not None:
        stmt = stmt.where(Product.id > after)

    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to page canonical products: {e}") from e
    return list(result.scalars().all())


async def reindex_all(
    session_factory: Callable[[], AsyncSession] = async_session_maker,
    config: Optional[IndexerSettings] = None,
) -> ListingPriceUpdateReport:
    """Recompute listing prices for all canonical products.

    Each batch runs in its own session and transaction, so a failed batch
    leaves earlier batches committed.

    Args:
        session_factory: Factory returning a new AsyncSession
        config: Indexer settings; ``batch_size`` sets the page size

    Returns:
        Report merged over all batches
    """
    config = config or indexer_settings
    total = ListingPriceUpdateReport()
    last_id: Optional[UUID] = None
    batch_number = 0

    log = logger.bind(batch_size=config.batch_size)
    log.info("listing_prices_reindex_started")

    while True:
        async with session_factory() as session:
            async with session.begin():
                product_ids = await fetch_canonical_id_batch(session, config.batch_size, last_id)
                if not product_ids:
                    break
                report = await ListingPriceIndexer(session, config).update(product_ids)

        batch_number += 1
        total.merge(report)
        last_id = product_ids[-1]
        log.info("listing_prices_reindex_batch_completed", batch=batch_number, **report.to_dict())

        if len(product_ids) < config.batch_size:
            break

    log.info("listing_prices_reindex_completed", batches=batch_number, **total.to_dict())
    return total
