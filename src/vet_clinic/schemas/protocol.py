"""
Protocol Pydantic schemas.

This module contains the schemas describing species-scoped treatment
protocols and their ordered day-offset intervals, including create and update
payloads.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.validation import names_match, require_text


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ordered_intervals(intervals: List["ProtocolInterval"]) -> List["ProtocolInterval"]:
    ordered = sorted(intervals, key=lambda interval: interval.offset_days)
    offsets = [interval.offset_days for interval in ordered]
    if len(offsets) != len(set(offsets)):
        raise ValueError("Interval offsets must be unique")
    return ordered


class ProtocolInterval(BaseModel):
    """One step of a protocol schedule."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    offset_days: int = Field(..., description="Days after the first dose", ge=0)
    label: str = Field(..., description="Display label, e.g. 'J0'", min_length=1)


class ProtocolBase(BaseModel):
    """Base protocol schema with common fields."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    name: str = Field(..., description="Protocol name", min_length=1, max_length=200)
    species: str = Field(..., description="Species label, e.g. 'Chien'", min_length=1)
    product_type: Optional[str] = Field(None, description="Vaccine or product type")
    target_description: Optional[str] = Field(
        None, description="Diseases or parasites targeted"
    )
    manufacturer: Optional[str] = Field(None, description="Product manufacturer")
    description: Optional[str] = Field(None, description="Free-form description")
    intervals: List[ProtocolInterval] = Field(
        default_factory=list, description="Schedule, sorted by offset_days"
    )
    is_active: bool = Field(True, description="Whether the protocol can be matched")

    @field_validator("name", "species")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        """Reject blank names."""
        return require_text(v, "Field")

    @field_validator("intervals")
    @classmethod
    def sort_intervals(cls, v: List[ProtocolInterval]) -> List[ProtocolInterval]:
        """Order intervals by offset and reject duplicate offsets."""
        return _ordered_intervals(v)


class ProtocolCreate(ProtocolBase):
    """Schema for creating a protocol."""

    pass


class ProtocolUpdate(BaseModel):
    """Schema for updating a protocol; every field is optional."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    species: Optional[str] = Field(None, min_length=1)
    product_type: Optional[str] = None
    target_description: Optional[str] = None
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    intervals: Optional[List[ProtocolInterval]] = None
    is_active: Optional[bool] = None

    @field_validator("intervals")
    @classmethod
    def sort_intervals(
        cls, v: Optional[List[ProtocolInterval]]
    ) -> Optional[List[ProtocolInterval]]:
        """Apply the same ordering rules as on creation."""
        if v is None:
            return v
        return _ordered_intervals(v)


class Protocol(ProtocolBase):
    """A stored protocol."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def last_interval(self) -> Optional[ProtocolInterval]:
        """The long-term recurrence interval, if any."""
        return self.intervals[-1] if self.intervals else None

    @property
    def initial_interval(self) -> Optional[ProtocolInterval]:
        """The zero-offset interval that anchors a reminder chain."""
        for interval in self.intervals:
            if interval.offset_days == 0:
                return interval
        return None

    def matches(self, product_name: str, species: str, normalized: bool = False) -> bool:
        """Check whether this protocol applies to a product and species."""
        return names_match(self.name, product_name, normalized) and names_match(
            self.species, species, normalized
        )

    def dose_name(self, interval: ProtocolInterval) -> str:
        """Record name for a dose given at ``interval``."""
        return f"{self.name} ({interval.label})"
