"""Unit tests for the listing price indexer.

Tests cover:
    - ListingPriceIndexer.update: resolve, load, select and write per family
    - Variant folding and idempotent output
    - Malformed payload policies, missing quotes, partial write failures
    - get_listing_prices: reading the cached column back
"""
import json
import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, OperationalError

from listing_indexer.config import IndexerSettings, MalformedPricePolicy
from listing_indexer.errors.exceptions import DatabaseError, InvalidProductIdError, PricePayloadError
from listing_indexer.models.pricing import Price, PriceQuote
from listing_indexer.models.results import UpdateStatus
from listing_indexer.services.listing_price.codec import encode_listing_prices
from listing_indexer.services.listing_price.indexer import (
    ListingPriceIndexer,
    get_listing_prices,
    parse_product_id,
    parse_product_ids,
    update_listing_prices,
)
from listing_indexer.services.listing_price.selection import build_listing_prices

from tests.helpers import compiled_params, compiled_sql, make_result, quote_row

PRODUCT_P = uuid4()
VARIANT_1 = uuid4()
VARIANT_2 = uuid4()
RULE_A = uuid4()
RULE_B = uuid4()


def family_rows():
    """Family P: V1 (A, 10.00), V2 (A, 8.00), V2 (B, 20.00)."""
    return [
        quote_row(PRODUCT_P, VARIANT_1, RULE_A, 10.0),
        quote_row(PRODUCT_P, VARIANT_2, RULE_A, 8.0),
        quote_row(PRODUCT_P, VARIANT_2, RULE_B, 20.0),
    ]


def written(mock_session, call_index):
    """(product id, listing prices) written by the n-th execute() call."""
    statement = mock_session.execute.call_args_list[call_index].args[0]
    params = compiled_params(statement)
    return params["id_1"], params["listing_prices"]


def indexer_config(**overrides) -> IndexerSettings:
    return IndexerSettings(**overrides)


class TestParseProductIds:
    """Tests for product id parsing."""

    def test_accepts_hex_dashed_uuid_and_bytes(self):
        product_id = uuid4()

        assert parse_product_id(product_id.hex) == product_id
        assert parse_product_id(str(product_id)) == product_id
        assert parse_product_id(product_id) == product_id
        assert parse_product_id(product_id.bytes) == product_id

    @pytest.mark.parametrize("value", ["", "xyz", b"short", 42])
    def test_rejects_invalid_ids(self, value):
        with pytest.raises(InvalidProductIdError):
            parse_product_id(value)

    def test_deduplicates_keeping_first_seen_order(self):
        a, b = uuid4(), uuid4()

        assert parse_product_ids([b.hex, a, str(b), a.hex]) == [b, a]


class TestListingPriceIndexerUpdate:
    """Tests for ListingPriceIndexer.update."""

    @pytest.mark.asyncio
    async def test_empty_input_is_noop(self, mock_session):
        report = await ListingPriceIndexer(mock_session, indexer_config()).update([])

        assert report.results == []
        assert report.requested == 0
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_writes_cheapest_quote_per_rule(self, mock_session):
        rows = family_rows()
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=rows),
            make_result(rowcount=1),
        ])

        report = await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P.hex])

        assert mock_session.execute.await_count == 3
        product_id, listing_prices = written(mock_session, 2)
        assert product_id == PRODUCT_P
        assert [(lp["ruleId"], lp["price"]["gross"], lp["variantId"]) for lp in listing_prices] == [
            (RULE_A.hex, 8.0, VARIANT_2.hex),
            (RULE_B.hex, 20.0, VARIANT_2.hex),
        ]
        assert listing_prices[0]["id"] == rows[1][1].hex
        assert [(r.product_id, r.status, r.rule_count) for r in report.results] == [
            (PRODUCT_P, UpdateStatus.UPDATED, 2),
        ]

    @pytest.mark.asyncio
    async def test_tie_selects_first_loaded_quote(self, mock_session):
        q1, q2 = uuid4(), uuid4()
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=[
                quote_row(PRODUCT_P, VARIANT_1, RULE_A, 5.0, quote_id=q1),
                quote_row(PRODUCT_P, VARIANT_2, RULE_A, 5.0, quote_id=q2),
            ]),
            make_result(),
        ])

        await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P])

        _, listing_prices = written(mock_session, 2)
        assert [lp["id"] for lp in listing_prices] == [q1.hex]

    @pytest.mark.asyncio
    async def test_winning_payload_is_written_as_stored(self, mock_session):
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=[
                quote_row(PRODUCT_P, VARIANT_1, RULE_A, 5, net=4.2, linked=True, listPrice=None,
                          _class="Shopware\\PriceStruct"),
            ]),
            make_result(),
        ])

        await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P])

        _, listing_prices = written(mock_session, 2)
        assert listing_prices[0]["price"] == {"gross": 5, "net": 4.2, "linked": True, "listPrice": None}

    @pytest.mark.asyncio
    async def test_variant_id_and_parent_id_write_identical_content(self, mock_session):
        rows = family_rows()
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(VARIANT_1, PRODUCT_P)]),
            make_result(rows=rows),
            make_result(),
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=rows),
            make_result(),
        ])
        indexer = ListingPriceIndexer(mock_session, indexer_config())

        await indexer.update([VARIANT_1])
        await indexer.update([PRODUCT_P])

        via_variant = written(mock_session, 2)
        via_parent = written(mock_session, 5)
        assert via_variant[0] == via_parent[0] == PRODUCT_P
        assert json.dumps(via_variant[1]) == json.dumps(via_parent[1])

    @pytest.mark.asyncio
    async def test_rerun_is_byte_identical(self, mock_session):
        rows = family_rows()
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]), make_result(rows=rows), make_result(),
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]), make_result(rows=rows), make_result(),
        ])
        indexer = ListingPriceIndexer(mock_session, indexer_config())

        await indexer.update([PRODUCT_P])
        await indexer.update([PRODUCT_P])

        assert json.dumps(written(mock_session, 2)[1]) == json.dumps(written(mock_session, 5)[1])

    @pytest.mark.asyncio
    async def test_family_requested_twice_is_written_once(self, mock_session):
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(VARIANT_1, PRODUCT_P), (VARIANT_2, PRODUCT_P), (PRODUCT_P, PRODUCT_P)]),
            make_result(rows=family_rows()),
            make_result(),
        ])

        report = await ListingPriceIndexer(mock_session, indexer_config()).update(
            [VARIANT_1, VARIANT_2, PRODUCT_P]
        )

        assert mock_session.execute.await_count == 3
        assert len(report.results) == 1

    @pytest.mark.asyncio
    async def test_loads_all_families_in_one_query(self, mock_session):
        other = uuid4()
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P), (other, other)]),
            make_result(rows=family_rows() + [quote_row(other, other, RULE_A, 3.0)]),
            make_result(),
            make_result(),
        ])

        report = await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P, other])

        load_sql = compiled_sql(mock_session.execute.call_args_list[1].args[0])
        assert "product_prices.quantity_end IS NULL" in load_sql
        assert "products.parent_id IN" in load_sql
        assert "ORDER BY product_prices.created_at, product_prices.id" in load_sql
        assert [r.product_id for r in report.results] == [PRODUCT_P, other]
        assert written(mock_session, 3)[1][0]["price"]["gross"] == 3.0

    @pytest.mark.asyncio
    async def test_family_without_quotes_is_not_written(self, mock_session):
        """Volume-tier-only families load no rows and keep their cached value."""
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=[]),
        ])

        report = await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P])

        assert mock_session.execute.await_count == 2
        assert report.results == []

    @pytest.mark.asyncio
    async def test_family_without_quotes_is_cleared_when_enabled(self, mock_session):
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=[]),
            make_result(),
        ])

        report = await ListingPriceIndexer(
            mock_session, indexer_config(clear_without_prices=True)
        ).update([PRODUCT_P])

        assert written(mock_session, 2) == (PRODUCT_P, [])
        assert report.results[0].status == UpdateStatus.CLEARED
        assert report.updated_count == 1

    @pytest.mark.asyncio
    async def test_unknown_ids_are_reported_unresolved(self, mock_session):
        unknown = uuid4()
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[]),
        ])

        report = await ListingPriceIndexer(mock_session, indexer_config()).update([unknown])

        assert report.unresolved_ids == [unknown]
        assert report.results == []
        assert mock_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_malformed_payload_aborts_before_any_write(self, mock_session):
        bad_quote = uuid4()
        rows = family_rows()
        rows[1] = (PRODUCT_P, bad_quote, VARIANT_2, RULE_A, rows[1][4], "{broken")
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=rows),
        ])

        with pytest.raises(PricePayloadError) as exc_info:
            await ListingPriceIndexer(
                mock_session, indexer_config(on_malformed_price=MalformedPricePolicy.ABORT)
            ).update([PRODUCT_P])

        assert exc_info.value.quote_id == bad_quote
        assert mock_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_malformed_payload_skipped_and_reported(self, mock_session):
        bad_quote = uuid4()
        rows = family_rows()
        rows[1] = (PRODUCT_P, bad_quote, VARIANT_2, RULE_A, rows[1][4], {"net": 1.0})
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=rows),
            make_result(),
        ])

        report = await ListingPriceIndexer(
            mock_session, indexer_config(on_malformed_price="skip")
        ).update([PRODUCT_P])

        _, listing_prices = written(mock_session, 2)
        assert [(lp["ruleId"], lp["price"]["gross"]) for lp in listing_prices] == [
            (RULE_A.hex, 10.0),
            (RULE_B.hex, 20.0),
        ]
        assert report.skipped_quote_ids == [bad_quote]

    @pytest.mark.asyncio
    async def test_write_failure_does_not_stop_other_products(self, mock_session):
        other = uuid4()
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P), (other, other)]),
            make_result(rows=family_rows() + [quote_row(other, other, RULE_A, 3.0)]),
            IntegrityError("UPDATE products", {}, Exception("constraint violated")),
            make_result(),
        ])

        report = await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P, other])

        assert [(r.product_id, r.status) for r in report.results] == [
            (PRODUCT_P, UpdateStatus.FAILED),
            (other, UpdateStatus.UPDATED),
        ]
        assert "constraint violated" in report.results[0].error
        assert report.failed_count == 1
        assert mock_session.begin_nested.call_count == 2

    @pytest.mark.asyncio
    async def test_lost_connection_while_writing_aborts(self, mock_session):
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=family_rows()),
            OperationalError("UPDATE products", {}, Exception("server closed the connection")),
        ])

        with pytest.raises(DatabaseError):
            await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P])

    @pytest.mark.asyncio
    async def test_read_failure_raises_database_error(self, mock_session):
        mock_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )

        with pytest.raises(DatabaseError):
            await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P])

    @pytest.mark.asyncio
    async def test_deleted_product_reported_not_found(self, mock_session):
        mock_session.execute = AsyncMock(side_effect=[
            make_result(rows=[(PRODUCT_P, PRODUCT_P)]),
            make_result(rows=family_rows()),
            make_result(rowcount=0),
        ])

        report = await ListingPriceIndexer(mock_session, indexer_config()).update([PRODUCT_P])

        assert report.results[0].status == UpdateStatus.NOT_FOUND
        assert report.updated_count == 0

    @pytest.mark.asyncio
    async def test_invalid_id_raises(self, mock_session):
        with pytest.raises(InvalidProductIdError):
            await update_listing_prices(mock_session, ["not-a-uuid"], indexer_config())

        mock_session.execute.assert_not_called()


class TestGetListingPrices:
    """Tests for get_listing_prices function."""

    @pytest.mark.asyncio
    async def test_decodes_stored_column(self, mock_session):
        quotes = [
            PriceQuote(
                id=r[1], variant_id=r[2], rule_id=r[3], currency_id=r[4], payload=r[5], price=Price(**r[5])
            )
            for r in family_rows()
        ]
        stored = encode_listing_prices(build_listing_prices(quotes))
        result = make_result()
        result.scalar_one_or_none.return_value = stored
        mock_session.execute = AsyncMock(return_value=result)

        listing_prices = await get_listing_prices(mock_session, PRODUCT_P.hex)

        assert [(lp.rule_id, lp.variant_id) for lp in listing_prices] == [
            (RULE_A, VARIANT_2),
            (RULE_B, VARIANT_2),
        ]

    @pytest.mark.asyncio
    async def test_missing_product_reads_empty(self, mock_session):
        result = make_result()
        result.scalar_one_or_none.return_value = None
        mock_session.execute = AsyncMock(return_value=result)

        assert await get_listing_prices(mock_session, PRODUCT_P) == []
