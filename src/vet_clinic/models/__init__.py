"""
Models for the vet clinic package.

This module contains the SQLAlchemy tables backing the SQL state store and
the domain enumerations shared by schemas and the engine.
"""

from .accounting import (
    EntryCategory,
    EntryFrequency,
    EntrySource,
    EntryType,
    PrescriptionStatus,
    SummaryPeriod,
)

# Base model will be imported by all other models
from .base import Base, BaseModel
from .collection import StoredCollection
from .stock import (
    PRESCRIPTION_REASON,
    SUPPLIER_PURCHASE_REASON,
    AlertSeverity,
    AlertType,
    MovementType,
    StockCategory,
)
from .treatment import (
    AntiparasiticType,
    Species,
    TreatmentCategory,
    TreatmentKind,
    TreatmentStatus,
)

__all__ = [
    "Base",
    "BaseModel",
    "StoredCollection",
    "TreatmentKind",
    "TreatmentCategory",
    "TreatmentStatus",
    "AntiparasiticType",
    "Species",
    "StockCategory",
    "MovementType",
    "AlertType",
    "AlertSeverity",
    "SUPPLIER_PURCHASE_REASON",
    "PRESCRIPTION_REASON",
    "EntryType",
    "EntryCategory",
    "EntryFrequency",
    "EntrySource",
    "SummaryPeriod",
    "PrescriptionStatus",
]
