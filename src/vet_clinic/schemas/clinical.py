"""
Consultation and prescription Pydantic schemas.

Consultations and prescriptions are clinical events recorded by the
surrounding application; the engine bills them and reconciles the stock that
prescriptions consume.
"""

import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.accounting import PrescriptionStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConsultationBase(BaseModel):
    """Base consultation schema with common fields."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    patient_id: UUID
    owner_id: UUID
    patient_name: Optional[str] = None
    date: dt.date
    reason: Optional[str] = Field(None, description="Reason for the visit")
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    veterinarian: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class ConsultationCreate(ConsultationBase):
    """Schema for recording a consultation."""

    pass


class ConsultationUpdate(BaseModel):
    """Schema for updating a consultation."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    patient_name: Optional[str] = None
    date: Optional[dt.date] = None
    reason: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    veterinarian: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class Consultation(ConsultationBase):
    """A stored consultation."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=_utcnow)


class PrescriptionMedicationCreate(BaseModel):
    """One prescribed medication line."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    quantity: int = Field(..., gt=0)
    unit: str = "unité"
    cost: Optional[Decimal] = Field(None, ge=0, description="Unit price")
    instructions: Optional[str] = None


class PrescriptionMedication(PrescriptionMedicationCreate):
    """A stored medication line with its stock reconciliation outcome."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    stock_item_id: Optional[UUID] = None
    is_in_stock: bool = False
    stock_quantity: int = Field(0, ge=0)
    stock_deducted: bool = False

    @property
    def line_total(self) -> Decimal:
        return (self.cost or Decimal("0")) * self.quantity


class PrescriptionBase(BaseModel):
    """Base prescription schema with common fields."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    consultation_id: Optional[UUID] = None
    patient_id: UUID
    owner_id: UUID
    patient_name: Optional[str] = None
    date: dt.date
    prescribed_by: str = Field(..., min_length=1)
    diagnosis: str = Field(..., min_length=1)
    instructions: Optional[str] = None
    valid_until: Optional[dt.date] = None
    status: PrescriptionStatus = PrescriptionStatus.ACTIVE
    notes: Optional[str] = None

    @field_validator("prescribed_by", "diagnosis")
    @classmethod
    def validate_required_fields(cls, v: str) -> str:
        """Validate required string fields."""
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()


class PrescriptionCreate(PrescriptionBase):
    """Schema for issuing a prescription."""

    medications: List[PrescriptionMedicationCreate] = Field(..., min_length=1)


class PrescriptionUpdate(BaseModel):
    """Schema for updating a prescription. Medication lines are fixed once issued."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    patient_name: Optional[str] = None
    date: Optional[dt.date] = None
    diagnosis: Optional[str] = Field(None, min_length=1)
    instructions: Optional[str] = None
    valid_until: Optional[dt.date] = None
    status: Optional[PrescriptionStatus] = None
    notes: Optional[str] = None


class Prescription(PrescriptionBase):
    """A stored prescription."""

    id: UUID = Field(default_factory=uuid4)
    medications: List[PrescriptionMedication] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def total_cost(self) -> Decimal:
        """Sum of ``cost * quantity`` over every medication line."""
        return sum((line.line_total for line in self.medications), Decimal("0"))
