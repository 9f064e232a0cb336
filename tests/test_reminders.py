"""
Tests for reminder chains: scheduling, confirmation and deletion cascade.
"""

from datetime import date
from uuid import uuid4

import pytest

from vet_clinic.engine import cascade_delete, chain_root
from vet_clinic.exceptions import (
    BusinessRuleException,
    RecordNotFoundException,
    ValidationException,
)
from vet_clinic.models import TreatmentKind, TreatmentStatus
from vet_clinic.schemas import NewTreatment, ReminderTreatment

from .conftest import OWNER_ID, PATIENT_ID, treatment_payload

KIND = TreatmentKind.VACCINATION


async def add_root(service, **kwargs):
    result = await service.add_treatment(
        KIND,
        treatment_payload(next_due_date=date(2025, 1, 15), **kwargs),
    )
    return service.get_treatment(KIND, result.primary_id)


async def add_reminder(service, root, due: date, **kwargs):
    result = await service.add_treatment(
        KIND,
        treatment_payload(
            date_given=due,
            next_due_date=due,
            original_treatment_id=root.id,
            **kwargs,
        ),
    )
    return service.get_treatment(KIND, result.primary_id)


class TestChainHelpers:
    """Test cases for the pure chain helpers."""

    def test_chain_root_of_reminder(self):
        root = NewTreatment(
            patient_id=PATIENT_ID,
            owner_id=OWNER_ID,
            product_name="DHPP",
            date_given=date(2024, 1, 1),
            next_due_date=date(2025, 1, 1),
        )
        reminder = ReminderTreatment(
            patient_id=PATIENT_ID,
            owner_id=OWNER_ID,
            product_name="DHPP",
            date_given=date(2025, 1, 1),
            next_due_date=date(2025, 1, 1),
            original_treatment_id=root.id,
        )

        assert chain_root([root, reminder], reminder, "Vaccination") is root
        assert chain_root([root, reminder], root, "Vaccination") is root

    def test_dangling_link(self):
        reminder = ReminderTreatment(
            patient_id=PATIENT_ID,
            owner_id=OWNER_ID,
            product_name="DHPP",
            date_given=date(2025, 1, 1),
            next_due_date=date(2025, 1, 1),
            original_treatment_id=uuid4(),
        )

        with pytest.raises(ValidationException):
            chain_root([reminder], reminder, "Vaccination")

    def test_reminder_requires_original(self):
        with pytest.raises(ValueError):
            ReminderTreatment(
                patient_id=PATIENT_ID,
                owner_id=OWNER_ID,
                product_name="DHPP",
                date_given=date(2025, 1, 1),
                next_due_date=date(2025, 1, 1),
            )

    def test_cascade_leaves_other_chains(self):
        root = NewTreatment(
            patient_id=PATIENT_ID,
            owner_id=OWNER_ID,
            product_name="DHPP",
            date_given=date(2024, 1, 1),
            next_due_date=date(2025, 1, 1),
        )
        other = root.model_copy(update={"id": uuid4()})
        linked = ReminderTreatment(
            patient_id=PATIENT_ID,
            owner_id=OWNER_ID,
            product_name="DHPP",
            date_given=date(2025, 1, 1),
            next_due_date=date(2025, 1, 1),
            original_treatment_id=root.id,
        )

        remaining, removed = cascade_delete([root, other, linked], root)

        assert remaining == [other]
        assert set(removed) == {root.id, linked.id}


class TestReminderLinks:
    """Test cases for chain validation when adding reminders."""

    @pytest.mark.asyncio
    async def test_reminder_links_to_root(self, service):
        root = await add_root(service)
        reminder = await add_reminder(service, root, date(2025, 1, 15))

        assert reminder.category == "reminder"
        assert reminder.original_treatment_id == root.id
        assert reminder.status is TreatmentStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_reminder_to_unknown_record(self, service):
        with pytest.raises(ValidationException):
            await service.add_treatment(
                KIND,
                treatment_payload(
                    next_due_date=date(2025, 1, 15), original_treatment_id=uuid4()
                ),
            )

    @pytest.mark.asyncio
    async def test_reminder_cannot_link_to_reminder(self, service):
        root = await add_root(service)
        reminder = await add_reminder(service, root, date(2025, 1, 15))

        with pytest.raises(ValidationException):
            await add_reminder(service, reminder, date(2026, 1, 15))

    @pytest.mark.asyncio
    async def test_reminder_must_share_patient(self, service):
        root = await add_root(service)

        with pytest.raises(ValidationException):
            await service.add_treatment(
                KIND,
                treatment_payload(
                    patient_id=uuid4(),
                    next_due_date=date(2025, 1, 15),
                    original_treatment_id=root.id,
                ),
            )


class TestConfirmReminder:
    """Test cases for the confirmation flow."""

    @pytest.mark.asyncio
    async def test_confirm_reminder(self, service):
        item = await service.add_stock_item(
            {"name": "DHPP", "category": "vaccine", "current_stock": 2}
        )
        root = await add_root(service, cost="45.00", manufacturer="Zoetis")
        reminder = await add_reminder(
            service, root, date(2025, 1, 15), cost="45.00", manufacturer="Zoetis"
        )

        performed = await service.confirm_reminder(
            KIND,
            reminder.id,
            {
                "date_performed": date(2025, 1, 20),
                "performed_by": "Dr. Martin",
                "batch_number": "LOT-42",
                "new_next_due_date": date(2026, 1, 20),
            },
        )

        assert performed.status is TreatmentStatus.COMPLETED
        assert performed.original_treatment_id == root.id
        assert performed.date_given == date(2025, 1, 20)
        assert performed.next_due_date == date(2026, 1, 20)
        assert performed.manufacturer == "Zoetis"
        assert str(performed.cost) == "45.00"
        assert performed.veterinarian == "Dr. Martin"
        assert performed.stock_deducted

        confirmed = service.get_treatment(KIND, reminder.id)
        assert confirmed.status is TreatmentStatus.COMPLETED
        assert confirmed.next_due_date == date(2026, 1, 20)
        assert confirmed.reminder_appointment_id is None
        assert confirmed.confirmed_by_id == performed.id
        # One unit for the root dose, one for the confirmed dose
        assert service.get_stock_item(item.id).current_stock == 0

    @pytest.mark.asyncio
    async def test_confirm_completed_is_rejected(self, service):
        root = await add_root(service)

        with pytest.raises(BusinessRuleException):
            await service.confirm_reminder(
                KIND,
                root.id,
                {"date_performed": date(2025, 1, 20), "performed_by": "Dr. Martin"},
            )

        assert len(service.get_treatments(KIND)) == 1

    @pytest.mark.asyncio
    async def test_confirm_overdue_root(self, service):
        root = await add_root(service, status="overdue")

        performed = await service.confirm_reminder(
            KIND,
            root.id,
            {"date_performed": date(2025, 2, 1), "performed_by": "Dr. Martin"},
        )

        assert performed.original_treatment_id == root.id
        assert performed.next_due_date == root.next_due_date
        assert service.get_treatment(KIND, root.id).status is TreatmentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_confirm_unknown(self, service):
        with pytest.raises(RecordNotFoundException):
            await service.confirm_reminder(
                KIND,
                uuid4(),
                {"date_performed": date(2025, 2, 1), "performed_by": "Dr. Martin"},
            )

    @pytest.mark.asyncio
    async def test_schedule_then_confirm_clears_appointment(self, service):
        root = await add_root(service, status="overdue")

        reminder = await service.schedule_reminder(
            KIND, root.id, date(2025, 1, 20), appointment_id="apt-7"
        )

        assert reminder.reminder_appointment_id == "apt-7"
        assert reminder.status is TreatmentStatus.SCHEDULED
        assert service.get_treatment(KIND, root.id).reminder_appointment_id == "apt-7"

        await service.confirm_reminder(
            KIND,
            root.id,
            {"date_performed": date(2025, 1, 20), "performed_by": "Dr. Martin"},
        )

        assert service.get_treatment(KIND, root.id).reminder_appointment_id is None

    @pytest.mark.asyncio
    async def test_schedule_before_treatment_rejected(self, service):
        root = await add_root(service)

        with pytest.raises(ValidationException):
            await service.schedule_reminder(KIND, root.id, date(2023, 1, 1))


class TestUpdateAndDelete:
    """Test cases for record edits and the deletion cascade."""

    @pytest.mark.asyncio
    async def test_forced_completion_leaves_stock_alone(self, service):
        item = await service.add_stock_item(
            {"name": "DHPP", "category": "vaccine", "current_stock": 3}
        )
        root = await add_root(service)
        reminder = await add_reminder(service, root, date(2025, 1, 15))

        closed = await service.update_treatment(KIND, reminder.id, {"status": "completed"})

        assert closed.status is TreatmentStatus.COMPLETED
        assert not closed.stock_deducted
        assert closed.confirmed_by_id is None
        assert service.get_stock_item(item.id).current_stock == 2

    @pytest.mark.asyncio
    async def test_completed_cannot_be_reopened(self, service):
        root = await add_root(service)

        with pytest.raises(BusinessRuleException):
            await service.update_treatment(KIND, root.id, {"status": "scheduled"})

        assert service.get_treatment(KIND, root.id).status is TreatmentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_update_keeps_calculated_due_date(self, service, dhpp_protocol):
        result = await service.add_treatment(KIND, treatment_payload())

        updated = await service.update_treatment(
            KIND, result.primary_id, {"next_due_date": date(2024, 10, 1), "notes": "avancé"}
        )

        assert updated.next_due_date == date(2024, 10, 1)
        assert updated.calculated_due_date == date(2025, 1, 15)
        assert updated.notes == "avancé"

    @pytest.mark.asyncio
    async def test_update_rejects_calculated_due_date(self, service):
        root = await add_root(service)

        with pytest.raises(ValidationException):
            await service.update_treatment(
                KIND, root.id, {"calculated_due_date": date(2030, 1, 1)}
            )

    @pytest.mark.asyncio
    async def test_delete_root_removes_chain(self, service):
        """A new record with two reminders removes three records."""
        root = await add_root(service)
        await add_reminder(service, root, date(2025, 1, 15))
        await add_reminder(service, root, date(2026, 1, 15))
        unrelated = await add_root(service)

        removed = await service.delete_treatment(KIND, root.id)

        assert removed == 3
        assert [r.id for r in service.get_treatments(KIND)] == [unrelated.id]

    @pytest.mark.asyncio
    async def test_delete_reminder_alone(self, service):
        root = await add_root(service)
        reminder = await add_reminder(service, root, date(2025, 1, 15))

        assert await service.delete_treatment(KIND, reminder.id) == 1
        assert service.get_treatment(KIND, root.id).id == root.id
