"""Storage codec for price payloads and the cached listing price column.

Stored record layout (one per pricing rule)::

    {
        "_class": "listing_price",
        "_version": 1,
        "id": "<quote id hex>",
        "variantId": "<variant id hex>",
        "ruleId": "<rule id hex>",
        "currencyId": "<currency id hex>",
        "price": {"gross": 8.0, "net": 6.72, "linked": true, ...}  (stored payload, unchanged)
    }

``_class`` and ``_version`` only exist in storage; in memory entries are
plain ``ListingPrice`` values.
"""
import json
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from listing_indexer.errors.exceptions import ListingPriceFormatError, PricePayloadError
from listing_indexer.models.pricing import ListingPrice, Price

logger = structlog.get_logger(__name__)

TYPE_TAG = "_class"
VERSION_TAG = "_version"
LISTING_PRICE_CLASS = "listing_price"
SCHEMA_VERSION = 1


def load_price_payload(raw: Any, quote_id: Optional[UUID] = None) -> Dict[str, Any]:
    """Parse a stored price payload (JSONB mapping or JSON text) into a plain mapping.

    The mapping is returned as stored, minus a legacy ``_class`` tag, so it
    can be written back unchanged.

    Raises:
        PricePayloadError: If the payload is not valid JSON, not an object, or
            holds a value JSON cannot represent (NaN, infinity)
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise PricePayloadError(
                f"Price payload of quote {quote_id} is not valid JSON: {e}",
                quote_id=quote_id,
            ) from e

    if not isinstance(raw, dict):
        raise PricePayloadError(
            f"Price payload of quote {quote_id} must be an object, got {type(raw).__name__}",
            quote_id=quote_id,
        )

    # Legacy payloads may carry a storage type tag of their own
    fields = {key: value for key, value in raw.items() if key != TYPE_TAG}
    try:
        json.dumps(fields, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise PricePayloadError(
            f"Price payload of quote {quote_id} cannot be stored as JSON: {e}",
            quote_id=quote_id,
        ) from e
    return fields


def decode_price_payload(raw: Any, quote_id: Optional[UUID] = None) -> Price:
    """Decode a stored price payload into a Price.

    Raises:
        PricePayloadError: If the payload cannot be loaded, or has no finite
            numeric ``gross`` amount
    """
    fields = load_price_payload(raw, quote_id)
    try:
        price = Price.model_validate(fields)
    except ValidationError as e:
        raise PricePayloadError(
            f"Price payload of quote {quote_id} is invalid: {e.error_count()} error(s)",
            quote_id=quote_id,
        ) from e

    for amount in (price.gross, price.net):
        if amount is not None and not amount.is_finite():
            raise PricePayloadError(
                f"Price payload of quote {quote_id} has a non-finite amount: {amount}",
                quote_id=quote_id,
            )
    return price


def encode_listing_price(entry: ListingPrice) -> Dict[str, Any]:
    return {
        TYPE_TAG: LISTING_PRICE_CLASS,
        VERSION_TAG: SCHEMA_VERSION,
        "id": entry.id.hex,
        "variantId": entry.variant_id.hex,
        "ruleId": entry.rule_id.hex,
        "currencyId": entry.currency_id.hex,
        "price": dict(entry.payload),
    }


def encode_listing_prices(entries: Iterable[ListingPrice]) -> List[Dict[str, Any]]:
    """Convert listing prices into the JSON-ready list stored on the product."""
    return [encode_listing_price(entry) for entry in entries]


def decode_listing_prices(raw: Any) -> List[ListingPrice]:
    """Read a stored listing price column back into ListingPrice values.

    Records tagged with an unknown ``_class`` are skipped so older readers keep
    working when new record types are introduced. A record written with a
    newer schema version than this reader understands is an error.

    Args:
        raw: Column value as returned by the driver (list, JSON text or None)

    Returns:
        Listing prices in stored order (empty list for NULL)

    Raises:
        ListingPriceFormatError: If the value or one of its records cannot be read
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise ListingPriceFormatError(f"Listing prices are not valid JSON: {e}") from e
    if not isinstance(raw, list):
        raise ListingPriceFormatError(
            f"Listing prices must be a list, got {type(raw).__name__}"
        )

    entries = []
    for position, record in enumerate(raw):
        if not isinstance(record, dict):
            raise ListingPriceFormatError(f"Listing price record {position} is not an object")

        record_class = record.get(TYPE_TAG)
        if record_class != LISTING_PRICE_CLASS:
            logger.debug("listing_price_record_skipped", position=position, record_class=record_class)
            continue

        version = record.get(VERSION_TAG, SCHEMA_VERSION)
        if not isinstance(version, int) or version > SCHEMA_VERSION:
            raise ListingPriceFormatError(
                f"Listing price record {position} has unsupported schema version {version!r}"
            )

        try:
            payload = load_price_payload(record["price"])
            entries.append(ListingPrice(
                id=UUID(record["id"]),
                variant_id=UUID(record["variantId"]),
                rule_id=UUID(record["ruleId"]),
                currency_id=UUID(record["currencyId"]),
                payload=payload,
                price=decode_price_payload(payload),
            ))
        except (KeyError, AttributeError, TypeError, ValueError, PricePayloadError) as e:
            raise ListingPriceFormatError(
                f"Listing price record {position} is malformed: {e}"
            ) from e

    return entries
