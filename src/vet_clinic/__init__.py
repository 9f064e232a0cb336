"""
Vet Clinic Engine

Treatment lifecycle and inventory reconciliation for a veterinary clinic.

The package tracks vaccinations and antiparasitic treatments, expands
species-scoped protocols into reminder chains, deducts stock when a dose is
administered, re-derives treatment statuses over time, and derives
accounting entries from clinical events without ever duplicating them. It
includes:

- Pydantic schemas for treatment records, protocols, stock, consultations,
  prescriptions and accounting entries
- A pure reconciliation engine (protocol resolution, stock matching, status
  sweep, reminder chains, accounting derivation)
- ClinicService, the single owner of the clinic state, writing every change
  through to a key-value state store
- In-memory and SQL (async SQLAlchemy) state stores
- Configuration, logging and feature-flag helpers

Quick Start:
    >>> from vet_clinic import ClinicService, InMemoryStateStore, TreatmentKind
    >>> service = await ClinicService.open(InMemoryStateStore())
    >>> result = await service.add_treatment(
    ...     TreatmentKind.VACCINATION,
    ...     {
    ...         "patient_id": pet_id,
    ...         "owner_id": owner_id,
    ...         "species": "Chien",
    ...         "product_name": "Rage (Rabies)",
    ...         "date_given": "2024-01-15",
    ...     },
    ... )

Requirements:
    - Python 3.11+
    - SQLAlchemy 2.0+
    - Pydantic 2.5+
"""

__version__ = "0.1.0"
__author__ = "Vet Clinic Platform Team"
__license__ = "MIT"

from . import catalog, engine, exceptions, models, schemas, store, utils

# Convenience imports for common usage patterns
from .exceptions import (
    BusinessRuleException,
    PersistenceException,
    RecordNotFoundException,
    ValidationException,
    VetClinicException,
)
from .models import TreatmentKind, TreatmentStatus
from .service import NAMESPACES, ClinicService, ClinicState
from .store import InMemoryStateStore, SqlStateStore, StateStore
from .utils import EngineSettings

__all__ = [
    # Version and metadata
    "__version__",
    "__author__",
    "__license__",
    # Core modules
    "catalog",
    "engine",
    "exceptions",
    "models",
    "schemas",
    "store",
    "utils",
    # Service
    "ClinicService",
    "ClinicState",
    "NAMESPACES",
    "EngineSettings",
    # Stores
    "StateStore",
    "InMemoryStateStore",
    "SqlStateStore",
    # Convenience imports
    "TreatmentKind",
    "TreatmentStatus",
    "VetClinicException",
    "ValidationException",
    "BusinessRuleException",
    "RecordNotFoundException",
    "PersistenceException",
]
