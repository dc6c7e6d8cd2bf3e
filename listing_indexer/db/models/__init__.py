"""Database models for listing price indexing."""
from listing_indexer.db.models.pricing_rule import PricingRule
from listing_indexer.db.models.currency import Currency
from listing_indexer.db.models.product import Product
from listing_indexer.db.models.product_price import ProductPrice

__all__ = [
    "PricingRule",
    "Currency",
    "Product",
    "ProductPrice",
]
