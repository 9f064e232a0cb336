"""
Stock ledger Pydantic schemas.

This module contains schemas for inventory items, the append-only movement
log, derived alerts and the outcome of stock reconciliation.
"""

import datetime as dt
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from ..models.stock import AlertSeverity, AlertType, MovementType, StockCategory


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockItemBase(BaseModel):
    """Base stock item schema with common fields."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    name: str = Field(..., description="Product name", min_length=1, max_length=200)
    category: StockCategory = Field(..., description="Inventory category")
    unit: str = Field("unité", description="Counting unit")
    current_stock: int = Field(0, ge=0)
    minimum_stock: int = Field(0, ge=0)
    maximum_stock: Optional[int] = Field(None, ge=0)
    purchase_price: Decimal = Field(Decimal("0"), ge=0)
    selling_price: Decimal = Field(Decimal("0"), ge=0)
    expiration_date: Optional[date] = None
    supplier: Optional[str] = None
    manufacturer: Optional[str] = None
    batch_number: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def validate_bounds(self):
        """Maximum stock, when set, cannot be below the minimum."""
        if self.maximum_stock is not None and self.maximum_stock < self.minimum_stock:
            raise ValueError("maximum_stock cannot be below minimum_stock")
        return self


class StockItemCreate(StockItemBase):
    """Schema for creating a stock item."""

    pass


class StockItemUpdate(BaseModel):
    """Schema for updating a stock item. ``total_value`` is derived, not settable."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[StockCategory] = None
    unit: Optional[str] = None
    current_stock: Optional[int] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    maximum_stock: Optional[int] = Field(None, ge=0)
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    expiration_date: Optional[date] = None
    supplier: Optional[str] = None
    manufacturer: Optional[str] = None
    batch_number: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class StockItem(StockItemBase):
    """A stored stock item."""

    id: UUID = Field(default_factory=uuid4)
    is_active: bool = True
    last_updated: datetime = Field(default_factory=_utcnow)
    last_restocked: Optional[datetime] = None

    @computed_field  # type: ignore[misc]
    @property
    def total_value(self) -> Decimal:
        """Stock valued at purchase price."""
        return self.purchase_price * self.current_stock


class StockMovement(BaseModel):
    """
    An immutable stock movement.

    ``quantity`` is positive for in/out/transfer; for adjustments it is the
    signed change applied to the item.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    item_id: UUID
    item_name: str
    type: MovementType
    quantity: int
    reason: str
    reference: Optional[str] = None
    source_id: Optional[UUID] = Field(
        None, description="Record that triggered the movement"
    )
    date: dt.date
    performed_by: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_quantity(self):
        """Only adjustments may carry a negative quantity; none may be zero."""
        if self.quantity == 0:
            raise ValueError("Movement quantity cannot be zero")
        if self.type is not MovementType.ADJUSTMENT and self.quantity < 0:
            raise ValueError("Movement quantity must be positive")
        return self

    @property
    def stock_delta(self) -> int:
        """Change this movement applies to the item's stock."""
        if self.type is MovementType.IN:
            return self.quantity
        if self.type is MovementType.ADJUSTMENT:
            return self.quantity
        return -self.quantity


class StockMovementCreate(BaseModel):
    """Payload for a manual stock movement."""

    model_config = ConfigDict(str_strip_whitespace=True)

    item_id: UUID
    type: MovementType
    quantity: int
    reason: str = Field(..., min_length=1)
    reference: Optional[str] = None
    date: Optional[dt.date] = None
    performed_by: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_quantity(self):
        """Same quantity rules as :class:`StockMovement`."""
        if self.quantity == 0:
            raise ValueError("Movement quantity cannot be zero")
        if self.type is not MovementType.ADJUSTMENT and self.quantity < 0:
            raise ValueError("Movement quantity must be positive")
        return self


class StockAlert(BaseModel):
    """A derived stock alert. Never persisted."""

    item_id: UUID
    item_name: str
    type: AlertType
    severity: AlertSeverity
    message: str
    current_stock: int
    minimum_stock: int
    expiration_date: Optional[date] = None


class StockReconciliation(BaseModel):
    """Outcome of matching a product to stock at administration time."""

    model_config = ConfigDict(frozen=True)

    stock_item_id: Optional[UUID] = None
    is_in_stock: bool = False
    stock_quantity: int = 0
    deducted: bool = False
