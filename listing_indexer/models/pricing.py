"""Pydantic value types for price quotes and listing prices.

Price quotes are read-only inputs decoded from ``product_prices`` rows.
Listing prices are the per-rule winners written to ``products.listing_prices``.

Both keep the stored payload mapping as ``payload`` next to the validated
``price``: ``price`` is only used for comparison, ``payload`` is what gets
written back.
"""
from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID


class Price(BaseModel):
    """Validated view of a price payload.

    Only ``gross`` is required and used for comparison.

    Attributes:
        gross: Gross amount, compared when selecting the cheapest quote
        net: Net amount (optional)
        linked: Whether gross and net are linked through the tax rate
    """

    gross: Decimal = Field(..., description="Gross amount")
    net: Optional[Decimal] = Field(default=None, description="Net amount")
    linked: Optional[bool] = Field(default=None, description="Gross/net linked via tax rate")

    model_config = ConfigDict(extra="allow", frozen=True)


class PriceQuote(BaseModel):
    """One stored price for one variant under one pricing rule and currency.

    Only quotes of the open-ended quantity tier are ever loaded as PriceQuote.

    Attributes:
        payload: Stored payload mapping (without a legacy ``_class`` tag)
        price: Validated amounts of ``payload``
    """

    id: UUID
    variant_id: UUID
    rule_id: UUID
    currency_id: UUID
    payload: Dict[str, Any]
    price: Price

    model_config = ConfigDict(frozen=True)

    @property
    def gross(self) -> Decimal:
        return self.price.gross


class ListingPrice(BaseModel):
    """Cheapest quote of a canonical product under one pricing rule.

    Attributes:
        id: Winning quote id
        variant_id: Variant that offers the advertised price
        rule_id: Pricing rule this entry applies to
        currency_id: Currency of the price
        payload: Payload of the winning quote, written back as stored
        price: Validated amounts of ``payload``
    """

    id: UUID
    variant_id: UUID
    rule_id: UUID
    currency_id: UUID
    payload: Dict[str, Any]
    price: Price

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_quote(cls, quote: PriceQuote) -> "ListingPrice":
        return cls(
            id=quote.id,
            variant_id=quote.variant_id,
            rule_id=quote.rule_id,
            currency_id=quote.currency_id,
            payload=quote.payload,
            price=quote.price,
        )
