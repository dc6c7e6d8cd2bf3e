"""Listing price indexer.

Recomputes ``products.listing_prices`` (cheapest quote per pricing rule) for a
batch of product ids:

    1. Resolve every input id to its canonical product id
    2. Load all open-ended quotes of the resolved families in one query
    3. Group each family's quotes by pricing rule
    4. Select the cheapest quote per rule (ties keep load order)
    5. Write the encoded entries to each canonical product

The indexer holds nothing but the session and its settings; every call
recomputes from scratch.
"""
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from listing_indexer.config import IndexerSettings, MalformedPricePolicy, indexer_settings
from listing_indexer.db.models import Product, ProductPrice
from listing_indexer.errors.exceptions import (
    DatabaseError,
    InvalidProductIdError,
    PricePayloadError,
)
from listing_indexer.models.pricing import ListingPrice, PriceQuote
from listing_indexer.models.results import (
    ListingPriceUpdateReport,
    ListingPriceUpdateResult,
    UpdateStatus,
)
from listing_indexer.services.listing_price.codec import (
    decode_listing_prices,
    decode_price_payload,
    encode_listing_prices,
    load_price_payload,
)
from listing_indexer.services.listing_price.selection import build_listing_prices

logger = structlog.get_logger(__name__)

ProductIdInput = Union[str, bytes, UUID]


def parse_product_id(value: ProductIdInput) -> UUID:
    """Parse a product id given as UUID, hex text (dashes optional) or 16 raw bytes."""
    if isinstance(value, UUID):
        return value
    try:
        if isinstance(value, (bytes, bytearray)):
            return UUID(bytes=bytes(value))
        if isinstance(value, str):
            return UUID(value.strip())
    except ValueError as e:
        raise InvalidProductIdError(value) from e
    raise InvalidProductIdError(value)


def parse_product_ids(values: Iterable[ProductIdInput]) -> List[UUID]:
    """Parse and de-duplicate product ids, keeping first-seen order."""
    parsed: Dict[UUID, None] = {}
    for value in values:
        parsed.setdefault(parse_product_id(value), None)
    return list(parsed)


class ListingPriceIndexer:
    """Recomputes cached listing prices for canonical products.

    Args:
        session: AsyncSession used for reads and writes; the caller owns the
            surrounding transaction
        config: Indexer settings (defaults to the LISTING_* environment)
    """

    def __init__(self, session: AsyncSession, config: Optional[IndexerSettings] = None):
        self.session = session
        self.config = config or indexer_settings

    async def update(self, product_ids: Iterable[ProductIdInput]) -> ListingPriceUpdateReport:
        """Recompute listing prices for every family touched by ``product_ids``.

        Canonical and variant ids are both accepted; a variant id selects its
        whole family. Families without open-ended quotes are not written
        unless ``clear_without_prices`` is enabled.

        Returns:
            Report with one result per attempted write

        Raises:
            InvalidProductIdError: If an id cannot be parsed
            PricePayloadError: On a malformed payload with the ``abort`` policy
                (raised before anything is written)
            DatabaseError: If the store cannot be read, or becomes unavailable
                while writing
        """
        ids = parse_product_ids(product_ids)
        report = ListingPriceUpdateReport(requested=len(ids))
        if not ids:
            logger.debug("listing_prices_update_skipped_empty")
            return report

        log = logger.bind(product_count=len(ids))
        log.info("listing_prices_update_started")

        canonical_by_input = await self.resolve_canonical_ids(ids)
        report.unresolved_ids = [pid for pid in ids if pid not in canonical_by_input]
        if report.unresolved_ids:
            log.warning(
                "product_ids_unresolved",
                product_ids=[str(pid) for pid in report.unresolved_ids],
            )

        canonical_ids = list(dict.fromkeys(
            canonical_by_input[pid] for pid in ids if pid in canonical_by_input
        ))
        families = await self.load_quotes(canonical_ids, report)

        for canonical_id in canonical_ids:
            quotes = families.get(canonical_id)
            if quotes:
                listing_prices = build_listing_prices(quotes)
            elif self.config.clear_without_prices:
                listing_prices = []
            else:
                log.debug("product_without_quotes", product_id=str(canonical_id))
                continue
            report.results.append(await self._write(canonical_id, listing_prices))

        log.info("listing_prices_update_completed", **report.to_dict())
        return report

    async def resolve_canonical_ids(self, product_ids: List[UUID]) -> Dict[UUID, UUID]:
        """Map each existing product id to its canonical id (itself, or its parent)."""
        if not product_ids:
            return {}

        stmt = select(
            Product.id,
            func.coalesce(Product.parent_id, Product.id),
        ).where(Product.id.in_(product_ids))

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to resolve canonical product ids: {e}") from e

        return {product_id: canonical_id for product_id, canonical_id in result.all()}

    async def load_quotes(
        self,
        canonical_ids: List[UUID],
        report: Optional[ListingPriceUpdateReport] = None,
    ) -> Dict[UUID, List[PriceQuote]]:
        """Load the open-ended quotes of all given families in one query.

        Quotes are grouped by canonical id and kept in load order, which is
        fixed by the quotes' creation time and id.
        """
        if not canonical_ids:
            return {}

        stmt = (
            select(
                func.coalesce(Product.parent_id, Product.id).label("canonical_id"),
                ProductPrice.id,
                ProductPrice.product_id,
                ProductPrice.rule_id,
                ProductPrice.currency_id,
                ProductPrice.price,
            )
            .select_from(Product)
            .join(ProductPrice, ProductPrice.product_id == Product.id)
            .where(
                or_(
                    Product.id.in_(canonical_ids),
                    Product.parent_id.in_(canonical_ids),
                ),
                ProductPrice.quantity_end.is_(None),
            )
            .order_by(ProductPrice.created_at, ProductPrice.id)
        )

        try:
            result = await self.session.execute(stmt)
            rows = result.all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to load price quotes: {e}") from e

        families: Dict[UUID, List[PriceQuote]] = {}
        for canonical_id, quote_id, variant_id, rule_id, currency_id, payload in rows:
            try:
                fields = load_price_payload(payload, quote_id=quote_id)
                price = decode_price_payload(fields, quote_id=quote_id)
            except PricePayloadError as e:
                if self.config.on_malformed_price == MalformedPricePolicy.ABORT:
                    logger.error(
                        "malformed_price_payload",
                        quote_id=str(quote_id),
                        product_id=str(canonical_id),
                        error=e.message,
                    )
                    raise
                logger.warning(
                    "malformed_price_payload_skipped",
                    quote_id=str(quote_id),
                    product_id=str(canonical_id),
                    error=e.message,
                )
                if report is not None:
                    report.skipped_quote_ids.append(quote_id)
                continue

            families.setdefault(canonical_id, []).append(PriceQuote(
                id=quote_id,
                variant_id=variant_id,
                rule_id=rule_id,
                currency_id=currency_id,
                payload=fields,
                price=price,
            ))

        return families

    async def _write(
        self,
        canonical_id: UUID,
        listing_prices: List[ListingPrice],
    ) -> ListingPriceUpdateResult:
        """Replace one canonical product's listing prices inside a savepoint."""
        stmt = (
            update(Product)
            .where(Product.id == canonical_id)
            .values(listing_prices=encode_listing_prices(listing_prices))
            .execution_options(synchronize_session=False)
        )

        try:
            async with self.session.begin_nested():
                result = await self.session.execute(stmt)
        except (OperationalError, InterfaceError) as e:
            raise DatabaseError(f"Database unavailable while writing listing prices: {e}") from e
        except SQLAlchemyError as e:
            logger.error(
                "listing_prices_write_failed",
                product_id=str(canonical_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return ListingPriceUpdateResult(
                product_id=canonical_id,
                status=UpdateStatus.FAILED,
                error=str(e),
            )

        if result.rowcount == 0:
            logger.warning("listing_prices_product_not_found", product_id=str(canonical_id))
            return ListingPriceUpdateResult(product_id=canonical_id, status=UpdateStatus.NOT_FOUND)

        return ListingPriceUpdateResult(
            product_id=canonical_id,
            status=UpdateStatus.UPDATED if listing_prices else UpdateStatus.CLEARED,
            rule_count=len(listing_prices),
        )


async def update_listing_prices(
    session: AsyncSession,
    product_ids: Iterable[ProductIdInput],
    config: Optional[IndexerSettings] = None,
) -> ListingPriceUpdateReport:
    """Recompute listing prices for a batch of product ids."""
    return await ListingPriceIndexer(session, config).update(product_ids)


async def get_listing_prices(session: AsyncSession, product_id: ProductIdInput) -> List[ListingPrice]:
    """Read and decode the cached listing prices of one product.

    Variant ids are not folded here; pass the canonical id.
    """
    stmt = select(Product.listing_prices).where(Product.id == parse_product_id(product_id))
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to read listing prices: {e}") from e
    raw: Any = result.scalar_one_or_none()
    return decode_listing_prices(raw)
