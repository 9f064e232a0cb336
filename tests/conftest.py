"""
Pytest configuration and fixtures for vet-clinic tests.

This module provides a fixed clinic clock, isolated settings and feature
flags, in-memory and failing state stores, and small factory classes for
the records most tests need.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio

from vet_clinic.exceptions import PersistenceException
from vet_clinic.models import StockCategory, TreatmentKind
from vet_clinic.schemas import Protocol, ProtocolInterval, StockItem
from vet_clinic.service import ClinicService
from vet_clinic.store import InMemoryStateStore
from vet_clinic.store.base import Payload
from vet_clinic.utils.config import EngineSettings, FeatureFlagManager

TODAY = date(2024, 6, 1)

PATIENT_ID = uuid.UUID("11111111-1111-4111-8111-111111111111")
OWNER_ID = uuid.UUID("22222222-2222-4222-8222-222222222222")


class FailingStateStore(InMemoryStateStore):
    """In-memory store whose writes can be made to fail on demand."""

    def __init__(self, initial: Optional[Dict[str, Payload]] = None):
        super().__init__(initial)
        self.fail_writes = False
        self.error: Exception = PersistenceException("Simulated store outage")

    async def save_many(self, collections: Dict[str, Payload]) -> None:
        if self.fail_writes:
            raise self.error
        await super().save_many(collections)


class ProtocolFactory:
    """Factory for creating test Protocol instances."""

    @staticmethod
    def build(offsets: Optional[List[int]] = None, **kwargs) -> Protocol:
        offsets = [0, 365] if offsets is None else offsets
        defaults = {
            "name": "DHPP",
            "species": "Chien",
            "product_type": "Core",
            "manufacturer": "Zoetis",
            "intervals": [
                ProtocolInterval(offset_days=offset, label=f"J{offset}")
                for offset in offsets
            ],
        }
        defaults.update(kwargs)
        return Protocol(**defaults)


class StockItemFactory:
    """Factory for creating test StockItem instances."""

    @staticmethod
    def build(**kwargs) -> StockItem:
        defaults = {
            "name": "Rage (Rabies)",
            "category": StockCategory.VACCINE,
            "current_stock": 10,
            "minimum_stock": 2,
            "purchase_price": Decimal("12.50"),
            "selling_price": Decimal("25.00"),
        }
        defaults.update(kwargs)
        return StockItem(**defaults)


def treatment_payload(**kwargs) -> dict:
    """Minimal add_treatment payload for the shared test patient."""
    payload = {
        "patient_id": PATIENT_ID,
        "owner_id": OWNER_ID,
        "patient_name": "Rex",
        "species": "Chien",
        "product_name": "DHPP",
        "date_given": date(2024, 1, 15),
    }
    payload.update(kwargs)
    return payload


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def clock(today):
    return lambda: today


@pytest.fixture
def settings() -> EngineSettings:
    """Settings with an empty protocol catalog so tests control it."""
    return EngineSettings(seed_protocols=False)


@pytest.fixture
def feature_flags() -> FeatureFlagManager:
    """Flags isolated from FEATURE_FLAG_* variables of the test environment."""
    return FeatureFlagManager({})


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def failing_store() -> FailingStateStore:
    return FailingStateStore()


@pytest_asyncio.fixture
async def service(store, settings, clock, feature_flags) -> AsyncGenerator[ClinicService, None]:
    """A service over an empty in-memory store."""
    clinic = await ClinicService.open(
        store, settings=settings, clock=clock, feature_flags=feature_flags
    )
    yield clinic
    await clinic.close()


@pytest_asyncio.fixture
async def failing_service(
    failing_store, settings, clock, feature_flags
) -> AsyncGenerator[ClinicService, None]:
    clinic = await ClinicService.open(
        failing_store, settings=settings, clock=clock, feature_flags=feature_flags
    )
    yield clinic
    await clinic.close()


@pytest_asyncio.fixture
async def dhpp_protocol(service) -> Protocol:
    """DHPP for dogs with a day-0 dose and a yearly booster."""
    protocol = ProtocolFactory.build()
    return await service.add_protocol(
        TreatmentKind.VACCINATION, protocol.model_dump(exclude={"id", "created_at", "updated_at"})
    )
