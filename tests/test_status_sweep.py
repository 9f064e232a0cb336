"""
Tests for the treatment status sweep and date-window queries.
"""

from datetime import date

import pytest

from vet_clinic.engine import (
    overdue_records,
    records_by_patient,
    sweep_status,
    sweep_statuses,
    upcoming_records,
)
from vet_clinic.models import TreatmentKind, TreatmentStatus
from vet_clinic.schemas import NewTreatment

from .conftest import OWNER_ID, PATIENT_ID, TODAY, treatment_payload


def build_record(next_due: date, status=TreatmentStatus.SCHEDULED, **kwargs) -> NewTreatment:
    defaults = {
        "patient_id": PATIENT_ID,
        "owner_id": OWNER_ID,
        "product_name": "DHPP",
        "date_given": date(2023, 1, 1),
        "next_due_date": next_due,
        "status": status,
    }
    defaults.update(kwargs)
    return NewTreatment(**defaults)


class TestSweepStatus:
    """Test cases for the pure status sweep."""

    def test_past_due_becomes_overdue(self):
        """A record due 2024-01-01 swept on 2024-06-01 is overdue."""
        record = build_record(date(2024, 1, 1))

        swept = sweep_status(record, TODAY)

        assert swept.status is TreatmentStatus.OVERDUE
        assert record.status is TreatmentStatus.SCHEDULED

    def test_completed_is_terminal(self):
        """The same record once completed is left alone."""
        record = build_record(date(2024, 1, 1), status=TreatmentStatus.COMPLETED)

        assert sweep_status(record, TODAY) is record

    def test_due_today_is_scheduled(self):
        record = build_record(TODAY, status=TreatmentStatus.OVERDUE)

        assert sweep_status(record, TODAY).status is TreatmentStatus.SCHEDULED

    def test_unchanged_record_is_same_object(self):
        record = build_record(date(2024, 12, 1))

        assert sweep_status(record, TODAY) is record

    def test_missed_is_re_derived(self):
        record = build_record(date(2024, 1, 1), status=TreatmentStatus.MISSED)

        assert sweep_status(record, TODAY).status is TreatmentStatus.OVERDUE

    def test_sweep_is_idempotent(self):
        records = [build_record(date(2024, 1, 1)), build_record(date(2024, 9, 1))]

        once = sweep_statuses(records, TODAY)
        twice = sweep_statuses(once, TODAY)

        assert [r.status for r in once] == [r.status for r in twice]
        assert all(a is b for a, b in zip(once, twice))


class TestWindowQueries:
    """Test cases for overdue and upcoming selections."""

    def test_overdue_excludes_completed(self):
        open_record = build_record(date(2024, 1, 1))
        done = build_record(date(2024, 1, 1), status=TreatmentStatus.COMPLETED)

        assert overdue_records([open_record, done], TODAY) == [open_record]

    def test_upcoming_window_is_inclusive_and_sorted(self):
        later = build_record(date(2024, 7, 1))
        today = build_record(TODAY)
        outside = build_record(date(2024, 7, 2))
        past = build_record(date(2024, 5, 31))

        selected = upcoming_records([later, outside, today, past], TODAY, 30)

        assert selected == [today, later]

    def test_records_by_patient_newest_first(self):
        old = build_record(date(2024, 1, 1), date_given=date(2022, 1, 1))
        new = build_record(date(2024, 1, 1), date_given=date(2023, 6, 1))
        other = build_record(date(2024, 1, 1), patient_id=OWNER_ID)

        assert records_by_patient([old, other, new], PATIENT_ID) == [new, old]


class TestServiceSweep:
    """Test cases for sweeping through the clinic service."""

    @pytest.mark.asyncio
    async def test_open_treatments_persists_sweep(self, service, store):
        result = await service.add_treatment(
            TreatmentKind.VACCINATION,
            treatment_payload(
                date_given=date(2023, 1, 1),
                next_due_date=date(2024, 1, 1),
                status="scheduled",
            ),
        )
        writes = store.write_count

        records = await service.open_treatments(TreatmentKind.VACCINATION)

        assert records[0].status is TreatmentStatus.OVERDUE
        assert store.write_count == writes + 1
        stored = await store.load("vetpro_vaccinations")
        assert stored[0]["status"] == "overdue"
        assert service.get_overdue_treatments(TreatmentKind.VACCINATION)[0].id == result.primary_id

    @pytest.mark.asyncio
    async def test_sweep_without_changes_does_not_write(self, service, store):
        await service.add_treatment(
            TreatmentKind.VACCINATION,
            treatment_payload(next_due_date=date(2025, 1, 15)),
        )
        writes = store.write_count

        assert await service.refresh_statuses() == 0
        assert store.write_count == writes

    @pytest.mark.asyncio
    async def test_refresh_covers_both_kinds(self, service):
        for kind in TreatmentKind:
            await service.add_treatment(
                kind,
                treatment_payload(
                    date_given=date(2023, 1, 1),
                    next_due_date=date(2024, 1, 1),
                    status="scheduled",
                ),
            )

        assert await service.refresh_statuses() == 2
        assert len(service.get_treatments_by_status(TreatmentKind.ANTIPARASITIC, TreatmentStatus.OVERDUE)) == 1

    @pytest.mark.asyncio
    async def test_upcoming_uses_settings_window(self, service):
        await service.add_treatment(
            TreatmentKind.VACCINATION,
            treatment_payload(
                date_given=date(2024, 5, 1),
                next_due_date=date(2024, 6, 20),
                status="scheduled",
            ),
        )

        assert len(service.get_upcoming_treatments(TreatmentKind.VACCINATION)) == 1
        assert service.get_upcoming_treatments(TreatmentKind.VACCINATION, days=7) == []
