"""Pydantic models for queue messages."""
from pydantic import BaseModel, Field, field_validator
from typing import List, Literal
from uuid import UUID
from datetime import datetime, timezone


class ListingPriceUpdateMessage(BaseModel):
    """Queue message for recomputing listing prices of a batch of products.

    Attributes:
        task_id: Unique task identifier
        product_ids: Canonical or variant product ids to reindex
        trigger: Event that caused the update
        enqueued_at: Timestamp when task was enqueued
    """

    task_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Unique identifier for this update task"
    )
    product_ids: List[UUID] = Field(..., min_length=1, max_length=500)
    trigger: Literal["price_change", "variant_change", "product_import", "manual"] = Field(
        default="manual",
        description="Event that triggered the update"
    )
    enqueued_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="ISO 8601 timestamp when task was enqueued"
    )

    @field_validator('task_id')
    @classmethod
    def validate_task_id(cls, v: str) -> str:
        """Validate task_id format."""
        if not v.strip():
            raise ValueError('task_id cannot be empty or whitespace')
        return v.strip()

    def to_task_kwargs(self) -> dict:
        """Keyword arguments for ``update_listing_prices_task``."""
        return {
            "task_id": self.task_id,
            "product_ids": [product_id.hex for product_id in self.product_ids],
            "trigger": self.trigger,
        }

    model_config = {
        "json_schema_extra": {
            "example": {
                "task_id": "listing-2025-11-30-001",
                "product_ids": ["550e8400e29b41d4a716446655440000"],
                "trigger": "price_change",
            }
        }
    }
