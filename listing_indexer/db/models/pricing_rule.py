"""PricingRule ORM model."""
from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column
from listing_indexer.db.base import Base, UUIDMixin, TimestampMixin


class PricingRule(Base, UUIDMixin, TimestampMixin):
    """Rule selecting which customer/context specific price applies (customer group, country, ...)."""

    __tablename__ = "pricing_rules"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, server_default='0')

    def __repr__(self) -> str:
        return f"<PricingRule(id={self.id}, name='{self.name}', priority={self.priority})>"
