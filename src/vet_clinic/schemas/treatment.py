"""
Treatment record Pydantic schemas.

Vaccinations and antiparasitic treatments share one record shape, modelled
as a tagged union discriminated on ``category``: a ``new`` record is the
actual administration, a ``reminder`` record is a follow-up linked to the
``new`` record that anchors its chain.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Dict, List, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from ..models.treatment import TreatmentCategory, TreatmentStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TreatmentRecordBase(BaseModel):
    """Fields shared by both treatment record variants."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    patient_id: UUID = Field(..., description="Treated patient")
    owner_id: UUID = Field(..., description="Patient's owner")
    patient_name: Optional[str] = Field(None, description="Denormalised patient name")
    product_name: str = Field(..., description="Administered product", min_length=1)
    protocol_name: Optional[str] = Field(
        None, description="Protocol a labelled chain dose was expanded from"
    )
    product_type: Optional[str] = Field(None, description="Vaccine or product type")
    date_given: date = Field(..., description="Administration or planned date")
    next_due_date: date = Field(..., description="Next due date")
    calculated_due_date: Optional[date] = Field(
        None, description="Protocol-suggested due date; never edited manually"
    )
    status: TreatmentStatus = Field(TreatmentStatus.COMPLETED)
    stock_item_id: Optional[UUID] = Field(None, description="Matched stock item")
    is_in_stock: bool = Field(False)
    stock_quantity: int = Field(0, ge=0, description="Stock seen at administration")
    stock_deducted: bool = Field(False)
    cost: Optional[Decimal] = Field(None, ge=0)
    batch_number: Optional[str] = None
    manufacturer: Optional[str] = None
    veterinarian: Optional[str] = None
    notes: Optional[str] = None
    reminder_appointment_id: Optional[str] = Field(
        None, description="Pending appointment linked to this record"
    )
    confirmed_by_id: Optional[UUID] = Field(
        None, description="Completed reminder that recorded this dose"
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_completed(self) -> bool:
        return self.status is TreatmentStatus.COMPLETED

    @property
    def is_reminder(self) -> bool:
        return self.category == TreatmentCategory.REMINDER.value

    @property
    def stock_product_name(self) -> str:
        """Name matched against inventory; labelled doses use their protocol."""
        return self.protocol_name or self.product_name

    @property
    def chain_root_id(self) -> UUID:
        """Id of the ``new`` record anchoring this record's chain."""
        return self.id


class NewTreatment(TreatmentRecordBase):
    """The administered dose."""

    category: Literal["new"] = "new"


class ReminderTreatment(TreatmentRecordBase):
    """A follow-up dose linked to the ``new`` record of its chain."""

    category: Literal["reminder"] = "reminder"
    original_treatment_id: UUID = Field(..., description="Chain root record")

    @property
    def chain_root_id(self) -> UUID:
        return self.original_treatment_id


TreatmentRecord = Annotated[
    Union[NewTreatment, ReminderTreatment], Field(discriminator="category")
]

TreatmentRecordList = TypeAdapter(List[TreatmentRecord])


class ProtocolSelection(BaseModel):
    """A protocol chosen for multi-interval expansion."""

    protocol_id: UUID
    reminder_dates: Dict[int, date] = Field(
        default_factory=dict,
        description="Date overrides keyed by interval offset_days",
    )


class TreatmentCreate(BaseModel):
    """
    Payload for recording a treatment.

    Either ``product_name`` (single record) or ``protocols`` (one reminder
    chain per selected protocol) must be supplied. Giving
    ``original_treatment_id`` records a reminder in an existing chain.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    patient_id: UUID
    owner_id: UUID
    patient_name: Optional[str] = None
    species: Optional[str] = Field(None, description="Patient species")
    product_name: Optional[str] = None
    product_type: Optional[str] = None
    date_given: date
    next_due_date: Optional[date] = None
    status: Optional[TreatmentStatus] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    batch_number: Optional[str] = None
    manufacturer: Optional[str] = None
    veterinarian: Optional[str] = None
    notes: Optional[str] = None
    original_treatment_id: Optional[UUID] = None
    reminder_appointment_id: Optional[str] = None
    protocols: List[ProtocolSelection] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_target(self) -> "TreatmentCreate":
        """Require a product or a protocol selection, but not a chain link with protocols."""
        if not self.protocols and not self.product_name:
            raise ValueError("Either product_name or protocols must be provided")
        if self.protocols and self.original_treatment_id is not None:
            raise ValueError("Protocol expansion cannot extend an existing chain")
        if self.protocols and not self.species:
            raise ValueError("Species is required when protocols are selected")
        if self.next_due_date and self.next_due_date < self.date_given:
            raise ValueError("next_due_date cannot be before date_given")
        return self


class TreatmentUpdate(BaseModel):
    """Editable treatment fields. Links, category and stock data are fixed."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    patient_name: Optional[str] = None
    product_name: Optional[str] = Field(None, min_length=1)
    product_type: Optional[str] = None
    date_given: Optional[date] = None
    next_due_date: Optional[date] = None
    status: Optional[TreatmentStatus] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    batch_number: Optional[str] = None
    manufacturer: Optional[str] = None
    veterinarian: Optional[str] = None
    notes: Optional[str] = None
    reminder_appointment_id: Optional[str] = None


class ReminderConfirmation(BaseModel):
    """Payload confirming that a scheduled reminder was performed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    date_performed: date
    performed_by: str = Field(..., min_length=1)
    batch_number: Optional[str] = None
    notes: Optional[str] = None
    new_next_due_date: Optional[date] = None

    @field_validator("performed_by")
    @classmethod
    def validate_performed_by(cls, v: str) -> str:
        """Validate the administering veterinarian."""
        if not v or not v.strip():
            raise ValueError("Veterinarian name is required")
        return v.strip()

    @model_validator(mode="after")
    def validate_dates(self) -> "ReminderConfirmation":
        """The new due date cannot precede the performed dose."""
        if self.new_next_due_date and self.new_next_due_date < self.date_performed:
            raise ValueError("new_next_due_date cannot be before date_performed")
        return self


class TreatmentPlanResult(BaseModel):
    """Outcome of :meth:`ClinicService.add_treatment`."""

    primary_id: Optional[UUID] = Field(None, description="First created record")
    created_ids: List[UUID] = Field(default_factory=list)
    errors: List[str] = Field(
        default_factory=list, description="Local errors that skipped a record"
    )

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
