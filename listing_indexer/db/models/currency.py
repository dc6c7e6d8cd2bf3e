"""Currency ORM model."""
from sqlalchemy import String, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from listing_indexer.db.base import Base, UUIDMixin, TimestampMixin
from decimal import Decimal


class Currency(Base, UUIDMixin, TimestampMixin):
    """Currency a price quote is stored in."""

    __tablename__ = "currencies"
    __table_args__ = (
        CheckConstraint('factor > 0', name='check_currency_factor_positive'),
    )

    iso_code: Mapped[str] = mapped_column(String(3), unique=True, nullable=False)
    factor: Mapped[Decimal] = mapped_column(
        Numeric(12, 6),
        nullable=False,
        server_default='1',
        doc="Conversion factor relative to the default currency"
    )

    def __repr__(self) -> str:
        return f"<Currency(id={self.id}, iso_code='{self.iso_code}')>"
