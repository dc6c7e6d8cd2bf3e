"""Listing price indexer service.

Recomputes the denormalized cheapest-price-per-rule column on canonical
products from their variants' price quotes.
"""

__version__ = "0.1.0"
