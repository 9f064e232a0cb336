"""
Tests for the clinic service state container: loading, seeding,
write-through, rollback, reset and import/export.
"""

from datetime import date

import pytest

from vet_clinic.exceptions import (
    PersistenceException,
    RecordNotFoundException,
    SchemaValidationException,
    TransactionException,
    ValidationException,
)
from vet_clinic.models import TreatmentKind
from vet_clinic.service import NAMESPACES, ClinicService
from vet_clinic.store import InMemoryStateStore
from vet_clinic.utils.config import EngineSettings

from .conftest import treatment_payload


class TestOpen:
    """Test cases for loading state."""

    @pytest.mark.asyncio
    async def test_seeds_default_catalogs(self, clock, feature_flags):
        store = InMemoryStateStore()

        service = await ClinicService.open(
            store, settings=EngineSettings(), clock=clock, feature_flags=feature_flags
        )

        assert service.get_active_protocols(TreatmentKind.VACCINATION)
        assert service.get_active_protocols(TreatmentKind.ANTIPARASITIC)
        assert set(await store.keys()) == {
            "vetpro_vaccination_protocols",
            "vetpro_antiparasitic_protocols",
        }

    @pytest.mark.asyncio
    async def test_existing_catalog_is_not_reseeded(self, clock, feature_flags):
        store = InMemoryStateStore({"vetpro_vaccination_protocols": []})

        service = await ClinicService.open(
            store, settings=EngineSettings(), clock=clock, feature_flags=feature_flags
        )

        assert service.get_active_protocols(TreatmentKind.VACCINATION) == []
        assert service.get_active_protocols(TreatmentKind.ANTIPARASITIC)

    @pytest.mark.asyncio
    async def test_namespace_prefix(self, clock, feature_flags):
        store = InMemoryStateStore()
        settings = EngineSettings(namespace_prefix="clinic42", seed_protocols=False)
        service = await ClinicService.open(
            store, settings=settings, clock=clock, feature_flags=feature_flags
        )

        await service.add_treatment(
            TreatmentKind.VACCINATION, treatment_payload(next_due_date=date(2025, 1, 15))
        )

        assert "clinic42_vaccinations" in await store.keys()
        assert len(await store.keys()) == len(NAMESPACES)

    @pytest.mark.asyncio
    async def test_state_survives_reopen(self, service, store, settings, clock, feature_flags):
        result = await service.add_treatment(
            TreatmentKind.VACCINATION,
            treatment_payload(next_due_date=date(2025, 1, 15), cost="45.00"),
        )

        reopened = await ClinicService.open(
            store, settings=settings, clock=clock, feature_flags=feature_flags
        )

        record = reopened.get_treatment(TreatmentKind.VACCINATION, result.primary_id)
        assert record.category == "new"
        assert str(record.cost) == "45.00"

    @pytest.mark.asyncio
    async def test_malformed_store(self, settings, clock, feature_flags):
        store = InMemoryStateStore({"vetpro_vaccinations": [{"category": "bogus"}]})

        with pytest.raises(SchemaValidationException):
            await ClinicService.open(
                store, settings=settings, clock=clock, feature_flags=feature_flags
            )


class TestWriteThrough:
    """Test cases for atomic commits."""

    @pytest.mark.asyncio
    async def test_every_mutation_writes_once(self, service, store):
        writes = store.write_count

        await service.add_treatment(
            TreatmentKind.VACCINATION, treatment_payload(next_due_date=date(2025, 1, 15))
        )

        assert store.write_count == writes + 1

    @pytest.mark.asyncio
    async def test_failed_write_leaves_state_untouched(self, failing_service, failing_store):
        item = await failing_service.add_stock_item(
            {"name": "Rage", "category": "vaccine", "current_stock": 1}
        )
        failing_store.fail_writes = True

        with pytest.raises(PersistenceException):
            await failing_service.add_treatment(
                TreatmentKind.VACCINATION,
                treatment_payload(product_name="Rage", next_due_date=date(2025, 1, 15)),
            )

        assert failing_service.get_treatments(TreatmentKind.VACCINATION) == []
        assert failing_service.get_stock_item(item.id).current_stock == 1
        assert failing_service.get_stock_movements() == []

    @pytest.mark.asyncio
    async def test_unexpected_store_error_is_wrapped(self, failing_service, failing_store):
        failing_store.fail_writes = True
        failing_store.error = RuntimeError("disk full")

        with pytest.raises(TransactionException) as exc_info:
            await failing_service.add_consultation(
                {
                    "patient_id": "11111111-1111-4111-8111-111111111111",
                    "owner_id": "22222222-2222-4222-8222-222222222222",
                    "date": date(2024, 6, 1),
                }
            )

        assert exc_info.value.details["operation"] == "add_consultation"
        assert failing_service.get_consultations() == []

    @pytest.mark.asyncio
    async def test_service_recovers_after_failure(self, failing_service, failing_store):
        failing_store.fail_writes = True
        with pytest.raises(PersistenceException):
            await failing_service.add_treatment(
                TreatmentKind.VACCINATION, treatment_payload(next_due_date=date(2025, 1, 15))
            )

        failing_store.fail_writes = False
        result = await failing_service.add_treatment(
            TreatmentKind.VACCINATION, treatment_payload(next_due_date=date(2025, 1, 15))
        )

        assert [r.id for r in failing_service.get_treatments(TreatmentKind.VACCINATION)] == [
            result.primary_id
        ]

    @pytest.mark.asyncio
    async def test_rule_violation_does_not_write(self, service, store):
        writes = store.write_count

        with pytest.raises(RecordNotFoundException):
            await service.delete_treatment(
                TreatmentKind.VACCINATION, "00000000-0000-4000-8000-000000000000"
            )

        assert store.write_count == writes

    @pytest.mark.asyncio
    async def test_schema_errors_are_converted(self, service):
        with pytest.raises(SchemaValidationException) as exc_info:
            await service.add_treatment(TreatmentKind.VACCINATION, {"product_name": "DHPP"})

        errors = exc_info.value.details["validation_errors"]
        assert "patient_id" in errors
        assert errors["patient_id"] == ["This field is required"]


class TestResetAndTransfer:
    """Test cases for whole-state operations."""

    @pytest.mark.asyncio
    async def test_partial_reset(self, service):
        await service.add_treatment(
            TreatmentKind.VACCINATION, treatment_payload(next_due_date=date(2025, 1, 15))
        )
        await service.add_stock_item({"name": "Rage", "category": "vaccine"})

        await service.reset("vaccinations")

        assert service.get_treatments(TreatmentKind.VACCINATION) == []
        assert len(service.get_stock_items()) == 1

    @pytest.mark.asyncio
    async def test_reset_reseeds_protocols(self, clock, feature_flags):
        service = await ClinicService.open(
            InMemoryStateStore(),
            settings=EngineSettings(),
            clock=clock,
            feature_flags=feature_flags,
        )
        seeded = len(service.get_active_protocols(TreatmentKind.VACCINATION))
        for protocol in service.get_active_protocols(TreatmentKind.VACCINATION):
            await service.delete_protocol(TreatmentKind.VACCINATION, protocol.id)

        await service.reset("vaccination_protocols")

        assert len(service.get_active_protocols(TreatmentKind.VACCINATION)) == seeded

    @pytest.mark.asyncio
    async def test_reset_unknown_namespace(self, service):
        with pytest.raises(ValidationException):
            await service.reset("patients")

    @pytest.mark.asyncio
    async def test_full_reset(self, service):
        await service.add_stock_item({"name": "Rage", "category": "vaccine"})

        await service.reset()

        assert service.export_state() == {namespace: [] for namespace in NAMESPACES}

    @pytest.mark.asyncio
    async def test_export_import_round_trip(self, service, settings, clock, feature_flags):
        await service.add_treatment(
            TreatmentKind.VACCINATION, treatment_payload(next_due_date=date(2025, 1, 15))
        )
        exported = service.export_state()

        other = await ClinicService.open(
            InMemoryStateStore(), settings=settings, clock=clock, feature_flags=feature_flags
        )
        await other.import_state({"vaccinations": exported["vaccinations"]})

        assert other.export_state()["vaccinations"] == exported["vaccinations"]

    @pytest.mark.asyncio
    async def test_import_rejects_unknown_namespace(self, service):
        with pytest.raises(ValidationException):
            await service.import_state({"patients": []})
