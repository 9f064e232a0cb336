"""
Accounting Pydantic schemas.

This module contains schemas for accounting entries (automatic and manual),
the clinical events they are derived from, and period summaries.
"""

import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.accounting import (
    EntryCategory,
    EntryFrequency,
    EntrySource,
    EntryType,
    SummaryPeriod,
)


# Fields that tie an automatic entry to its clinical event
AUTOMATIC_IDENTITY_FIELDS = ("type", "amount", "date", "source")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountingEntryBase(BaseModel):
    """Base accounting entry schema with common fields."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    type: EntryType
    frequency: EntryFrequency = EntryFrequency.OCCASIONAL
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0)
    date: dt.date
    reference: Optional[str] = None
    source: Optional[EntrySource] = None
    notes: str = ""
    created_by: Optional[str] = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        """Validate the entry description."""
        if not v or not v.strip():
            raise ValueError("Description is required")
        return v.strip()


class AccountingEntryCreate(AccountingEntryBase):
    """Schema for a manual accounting entry."""

    pass


class AccountingEntryUpdate(BaseModel):
    """Schema for updating an accounting entry."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    type: Optional[EntryType] = None
    frequency: Optional[EntryFrequency] = None
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    amount: Optional[Decimal] = Field(None, ge=0)
    date: Optional[dt.date] = None
    reference: Optional[str] = None
    source: Optional[EntrySource] = None
    notes: Optional[str] = None


class AccountingEntry(AccountingEntryBase):
    """A stored accounting entry."""

    id: UUID = Field(default_factory=uuid4)
    category: EntryCategory = EntryCategory.MANUAL
    source_id: Optional[UUID] = Field(
        None, description="Clinical event that produced an automatic entry"
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_automatic(self) -> bool:
        return self.category is EntryCategory.AUTOMATIC

    @property
    def dedup_key(self) -> Optional[tuple]:
        """``(source, source_id)`` for automatic entries, None otherwise."""
        if not self.is_automatic or self.source is None or self.source_id is None:
            return None
        return (self.source, self.source_id)


class ClinicalEvent(BaseModel):
    """A billable event that may produce one automatic entry."""

    model_config = ConfigDict(frozen=True)

    source: EntrySource
    source_id: UUID
    entry_type: EntryType
    amount: Decimal
    date: dt.date
    description: str
    reference: Optional[str] = None

    @property
    def dedup_key(self) -> tuple:
        return (self.source, self.source_id)


class AccountingSummary(BaseModel):
    """Totals for a period."""

    period: SummaryPeriod
    start_date: dt.date
    end_date: dt.date
    total_revenue: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_income: Decimal = Decimal("0")
    manual_revenue: Decimal = Decimal("0")
    manual_expenses: Decimal = Decimal("0")
    revenue_breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    expense_breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    manual_breakdown: Dict[str, Decimal] = Field(
        default_factory=dict, description="Manual entries by source"
    )
    new_entries: int = Field(0, description="Automatic entries created by this run")
