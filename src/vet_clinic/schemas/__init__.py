"""
Pydantic schemas for the vet clinic package.

This module contains the record types owned by the clinic service and the
request payloads used to create and update them.
"""

from .accounting import (
    AUTOMATIC_IDENTITY_FIELDS,
    AccountingEntry,
    AccountingEntryCreate,
    AccountingEntryUpdate,
    AccountingSummary,
    ClinicalEvent,
)
from .clinical import (
    Consultation,
    ConsultationCreate,
    ConsultationUpdate,
    Prescription,
    PrescriptionCreate,
    PrescriptionMedication,
    PrescriptionMedicationCreate,
    PrescriptionUpdate,
)
from .protocol import Protocol, ProtocolCreate, ProtocolInterval, ProtocolUpdate
from .stock import (
    StockAlert,
    StockItem,
    StockItemCreate,
    StockItemUpdate,
    StockMovement,
    StockMovementCreate,
    StockReconciliation,
)
from .treatment import (
    NewTreatment,
    ProtocolSelection,
    ReminderConfirmation,
    ReminderTreatment,
    TreatmentCreate,
    TreatmentPlanResult,
    TreatmentRecord,
    TreatmentRecordList,
    TreatmentUpdate,
)

__all__ = [
    # Protocol schemas
    "Protocol",
    "ProtocolCreate",
    "ProtocolInterval",
    "ProtocolUpdate",
    # Treatment schemas
    "NewTreatment",
    "ReminderTreatment",
    "TreatmentRecord",
    "TreatmentRecordList",
    "TreatmentCreate",
    "TreatmentUpdate",
    "ProtocolSelection",
    "ReminderConfirmation",
    "TreatmentPlanResult",
    # Stock schemas
    "StockItem",
    "StockItemCreate",
    "StockItemUpdate",
    "StockMovement",
    "StockMovementCreate",
    "StockAlert",
    "StockReconciliation",
    # Clinical event schemas
    "Consultation",
    "ConsultationCreate",
    "ConsultationUpdate",
    "Prescription",
    "PrescriptionCreate",
    "PrescriptionMedication",
    "PrescriptionMedicationCreate",
    "PrescriptionUpdate",
    # Accounting schemas
    "AUTOMATIC_IDENTITY_FIELDS",
    "AccountingEntry",
    "AccountingEntryCreate",
    "AccountingEntryUpdate",
    "AccountingSummary",
    "ClinicalEvent",
]
