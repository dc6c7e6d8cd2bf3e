"""Product ORM model with parent/variant hierarchy and cached listing prices.

A product without a parent is canonical. Products with a parent are variants
and fold into their parent's identity when listing prices are indexed.
"""
from sqlalchemy import String, ForeignKey, CheckConstraint, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column, relationship
from listing_indexer.db.base import Base, UUIDMixin, TimestampMixin
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from listing_indexer.db.models.product_price import ProductPrice


class Product(Base, UUIDMixin, TimestampMixin):
    """Product model for canonical products and their variants.

    Attributes:
        parent_id: Canonical product this variant belongs to (NULL for canonical products)
        product_number: Unique product number
        name: Product display name
        listing_prices: Cached cheapest price per pricing rule, written only on
            canonical products by the listing price indexer

    Relationships:
        parent: Canonical product (variants only)
        variants: Variants of this product (canonical products only)
        prices: Price quotes stored for this product
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint('id != parent_id', name='chk_product_no_self_parent'),
    )

    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    product_number: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    listing_prices: Mapped[List[Dict[str, Any]] | None] = mapped_column(
        postgresql.JSONB(astext_type=Text),
        nullable=True,
        doc="Cheapest price per pricing rule across all variants"
    )

    # Relationships
    parent: Mapped[Optional["Product"]] = relationship(
        remote_side="Product.id",
        back_populates="variants",
        foreign_keys=[parent_id]
    )
    variants: Mapped[List["Product"]] = relationship(
        back_populates="parent",
        foreign_keys=[parent_id]
    )
    prices: Mapped[List["ProductPrice"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan"
    )

    @property
    def is_canonical(self) -> bool:
        return self.parent_id is None

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, number='{self.product_number}', parent_id={self.parent_id})>"
