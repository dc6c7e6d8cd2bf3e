"""Result types returned by the listing price indexer."""
from dataclasses import dataclass, field
from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from uuid import UUID


class UpdateStatus(str, Enum):
    """Outcome of writing one canonical product's listing prices.

    - updated: listing prices were written
    - cleared: product has no quotes left and an empty list was written
    - not_found: the UPDATE matched no row (product deleted meanwhile)
    - failed: the write raised and its savepoint was rolled back
    """
    UPDATED = "updated"
    CLEARED = "cleared"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ListingPriceUpdateResult(BaseModel):
    """Per-product outcome of a listing price update."""

    product_id: UUID
    status: UpdateStatus
    rule_count: int = Field(default=0, ge=0, description="Number of listing price entries written")
    error: Optional[str] = None


@dataclass
class ListingPriceUpdateReport:
    """Summary of one indexer run over a batch of product ids."""
    requested: int = 0
    results: List[ListingPriceUpdateResult] = field(default_factory=list)
    unresolved_ids: List[UUID] = field(default_factory=list)
    skipped_quote_ids: List[UUID] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return sum(
            1 for r in self.results
            if r.status in (UpdateStatus.UPDATED, UpdateStatus.CLEARED)
        )

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.status == UpdateStatus.FAILED)

    def merge(self, other: "ListingPriceUpdateReport") -> None:
        """Fold another report into this one (used by full reindex)."""
        self.requested += other.requested
        self.results.extend(other.results)
        self.unresolved_ids.extend(other.unresolved_ids)
        self.skipped_quote_ids.extend(other.skipped_quote_ids)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/response."""
        return {
            "products_requested": self.requested,
            "products_updated": self.updated_count,
            "products_failed": self.failed_count,
            "unresolved_ids": len(self.unresolved_ids),
            "quotes_skipped": len(self.skipped_quote_ids),
        }
