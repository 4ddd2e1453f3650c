"""Pydantic schemas for Order API."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer, field_validator

# Prices travel as JSON numbers, not strings
Price = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


# ── Request Schemas ───────────────────────────


class OrderCreate(BaseModel):
    """Payload for creating a new order."""

    customer_id: str = Field(..., min_length=1, max_length=255)
    product_id: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., gt=0, strict=True, examples=[2])
    total_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, examples=[100.50])
    order_time: datetime | None = None
    idempotency_key: str = Field(..., min_length=1, max_length=255)

    @field_validator("order_time")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# ── Response Schemas ──────────────────────────


class OrderResponse(BaseModel):
    """Order as returned to clients and cached for idempotent replay."""

    id: str
    customer_id: str
    product_id: str
    quantity: int
    total_price: Price
    status: str
    order_time: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    error: str
    details: list | str | None = None
