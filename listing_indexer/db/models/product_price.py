"""ProductPrice ORM model: one price quote per product, rule, currency and quantity tier."""
from sqlalchemy import ForeignKey, Integer, CheckConstraint, Index, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column, relationship
from listing_indexer.db.base import Base, UUIDMixin, TimestampMixin
from typing import Any, Dict, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from listing_indexer.db.models.product import Product
    from listing_indexer.db.models.pricing_rule import PricingRule
    from listing_indexer.db.models.currency import Currency


class ProductPrice(Base, UUIDMixin, TimestampMixin):
    """Price quote for one product under one pricing rule and currency.

    Attributes:
        product_id: Owning product (usually a variant)
        rule_id: Pricing rule that selects this price
        currency_id: Currency of the amounts in ``price``
        quantity_start: First quantity this tier applies to
        quantity_end: Last quantity of a volume tier; NULL for the open-ended base tier
        price: JSONB payload, at least ``{"gross": ...}``, usually also ``net`` and ``linked``
    """

    __tablename__ = "product_prices"
    __table_args__ = (
        CheckConstraint('quantity_start >= 1', name='check_quantity_start_positive'),
        CheckConstraint(
            'quantity_end IS NULL OR quantity_end >= quantity_start',
            name='check_quantity_range'
        ),
        Index('idx_product_prices_open_tier', 'product_id', postgresql_where='quantity_end IS NULL'),
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    rule_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pricing_rules.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    currency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("currencies.id", ondelete="RESTRICT"),
        nullable=False
    )
    quantity_start: Mapped[int] = mapped_column(Integer, nullable=False, server_default='1')
    quantity_end: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price: Mapped[Dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text),
        nullable=False
    )

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="prices")
    rule: Mapped["PricingRule"] = relationship()
    currency: Mapped["Currency"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<ProductPrice(id={self.id}, product_id={self.product_id}, "
            f"rule_id={self.rule_id}, quantity_end={self.quantity_end})>"
        )
