"""Cheapest-price-per-rule selection over one product family's quotes."""
from typing import Dict, Iterable, List, Sequence
from uuid import UUID

from listing_indexer.models.pricing import ListingPrice, PriceQuote


def group_by_rule(quotes: Iterable[PriceQuote]) -> Dict[UUID, List[PriceQuote]]:
    """Partition quotes by pricing rule.

    Keys are exactly the rule ids present, in first-seen order; each group
    keeps the quotes in load order.
    """
    groups: Dict[UUID, List[PriceQuote]] = {}
    for quote in quotes:
        groups.setdefault(quote.rule_id, []).append(quote)
    return groups


def select_cheapest(quotes: Sequence[PriceQuote]) -> PriceQuote:
    """Return the quote with the lowest gross amount.

    min() returns the first of several equal minima, so ties go to the quote
    loaded earliest.
    """
    if not quotes:
        raise ValueError("Cannot select the cheapest quote of an empty group")
    return min(quotes, key=lambda quote: quote.gross)


def build_listing_prices(quotes: Iterable[PriceQuote]) -> List[ListingPrice]:
    """One listing price per pricing rule present in ``quotes``."""
    return [
        ListingPrice.from_quote(select_cheapest(group))
        for group in group_by_rule(quotes).values()
    ]
