"""
Tests for Pydantic schemas: payload validation, stored record shapes and
the treatment record discriminator.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from vet_clinic.models import MovementType, StockCategory
from vet_clinic.schemas import (
    NewTreatment,
    PrescriptionCreate,
    ProtocolCreate,
    ReminderConfirmation,
    ReminderTreatment,
    StockItem,
    StockItemUpdate,
    StockMovement,
    TreatmentCreate,
    TreatmentRecordList,
    TreatmentUpdate,
)

from .conftest import OWNER_ID, PATIENT_ID, treatment_payload


class TestTreatmentCreate:
    """Test cases for the treatment payload."""

    def test_valid_single_product(self):
        request = TreatmentCreate(**treatment_payload(product_name="  DHPP "))

        assert request.product_name == "DHPP"
        assert request.protocols == []

    def test_product_or_protocols_required(self):
        with pytest.raises(ValidationError) as exc_info:
            TreatmentCreate(**treatment_payload(product_name=None))

        assert "Either product_name or protocols" in str(exc_info.value)

    def test_protocols_need_species(self):
        with pytest.raises(ValidationError):
            TreatmentCreate(
                **treatment_payload(
                    species=None, protocols=[{"protocol_id": uuid4()}]
                )
            )

    def test_protocols_cannot_extend_chain(self):
        with pytest.raises(ValidationError):
            TreatmentCreate(
                **treatment_payload(
                    protocols=[{"protocol_id": uuid4()}],
                    original_treatment_id=uuid4(),
                )
            )

    def test_due_date_before_given(self):
        with pytest.raises(ValidationError):
            TreatmentCreate(**treatment_payload(next_due_date=date(2023, 12, 31)))

    def test_update_forbids_unknown_fields(self):
        with pytest.raises(ValidationError):
            TreatmentUpdate(original_treatment_id=uuid4())


class TestTreatmentRecords:
    """Test cases for stored treatment records."""

    def test_discriminator_picks_variant(self):
        root_id = uuid4()
        common = {
            "patient_id": str(PATIENT_ID),
            "owner_id": str(OWNER_ID),
            "product_name": "DHPP",
            "date_given": "2024-01-15",
            "next_due_date": "2025-01-15",
        }

        records = TreatmentRecordList.validate_python(
            [
                {**common, "id": str(root_id), "category": "new"},
                {**common, "category": "reminder", "original_treatment_id": str(root_id)},
            ]
        )

        assert isinstance(records[0], NewTreatment)
        assert isinstance(records[1], ReminderTreatment)
        assert records[1].chain_root_id == root_id
        assert records[0].chain_root_id == root_id

    def test_unknown_category(self):
        with pytest.raises(ValidationError):
            TreatmentRecordList.validate_python(
                [
                    {
                        "category": "booster",
                        "patient_id": str(PATIENT_ID),
                        "owner_id": str(OWNER_ID),
                        "product_name": "DHPP",
                        "date_given": "2024-01-15",
                        "next_due_date": "2025-01-15",
                    }
                ]
            )

    def test_stock_product_name_prefers_protocol(self):
        record = NewTreatment(
            patient_id=PATIENT_ID,
            owner_id=OWNER_ID,
            product_name="DHPP - J21",
            protocol_name="DHPP",
            date_given=date(2024, 1, 22),
            next_due_date=date(2024, 1, 22),
        )

        assert record.stock_product_name == "DHPP"

    def test_confirmation_requires_veterinarian(self):
        with pytest.raises(ValidationError):
            ReminderConfirmation(date_performed=date(2025, 1, 1), performed_by="   ")


class TestProtocolSchemas:
    """Test cases for protocol payloads."""

    def test_intervals_are_sorted(self):
        protocol = ProtocolCreate(
            name="DHPP",
            species="Chien",
            intervals=[
                {"offset_days": 365, "label": "Rappel annuel"},
                {"offset_days": 0, "label": "J0"},
            ],
        )

        assert [i.offset_days for i in protocol.intervals] == [0, 365]

    def test_duplicate_offsets_rejected(self):
        with pytest.raises(ValidationError):
            ProtocolCreate(
                name="DHPP",
                species="Chien",
                intervals=[
                    {"offset_days": 21, "label": "J21"},
                    {"offset_days": 21, "label": "Rappel"},
                ],
            )

    def test_blank_species_rejected(self):
        with pytest.raises(ValidationError):
            ProtocolCreate(name="DHPP", species="   ")


class TestStockSchemas:
    """Test cases for stock items and movements."""

    def test_total_value_is_derived(self):
        item = StockItem(
            name="Rage",
            category=StockCategory.VACCINE,
            current_stock=4,
            purchase_price=Decimal("12.50"),
        )

        assert item.total_value == Decimal("50.00")
        assert item.model_dump(mode="json")["total_value"] == "50.00"

    def test_total_value_is_not_settable(self):
        with pytest.raises(ValidationError):
            StockItemUpdate(total_value="1000")

    def test_maximum_below_minimum(self):
        with pytest.raises(ValidationError):
            StockItem(
                name="Rage",
                category=StockCategory.VACCINE,
                minimum_stock=5,
                maximum_stock=2,
            )

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            StockItem(name="Rage", category=StockCategory.VACCINE, current_stock=-1)

    @pytest.mark.parametrize(
        "movement_type,quantity,delta",
        [
            (MovementType.IN, 5, 5),
            (MovementType.OUT, 2, -2),
            (MovementType.ADJUSTMENT, -3, -3),
        ],
    )
    def test_movement_delta(self, movement_type, quantity, delta):
        movement = StockMovement(
            item_id=uuid4(),
            item_name="Rage",
            type=movement_type,
            quantity=quantity,
            reason="Test",
            date=date(2024, 6, 1),
        )

        assert movement.stock_delta == delta

    @pytest.mark.parametrize(
        "movement_type,quantity",
        [(MovementType.OUT, -1), (MovementType.IN, 0), (MovementType.ADJUSTMENT, 0)],
    )
    def test_invalid_movement_quantity(self, movement_type, quantity):
        with pytest.raises(ValidationError):
            StockMovement(
                item_id=uuid4(),
                item_name="Rage",
                type=movement_type,
                quantity=quantity,
                reason="Test",
                date=date(2024, 6, 1),
            )


class TestPrescriptionSchemas:
    """Test cases for prescription payloads."""

    def test_at_least_one_medication(self):
        with pytest.raises(ValidationError):
            PrescriptionCreate(
                patient_id=PATIENT_ID,
                owner_id=OWNER_ID,
                date=date(2024, 6, 1),
                prescribed_by="Dr. Martin",
                diagnosis="Otite",
                medications=[],
            )

    def test_medication_quantity_positive(self):
        with pytest.raises(ValidationError):
            PrescriptionCreate(
                patient_id=PATIENT_ID,
                owner_id=OWNER_ID,
                date=date(2024, 6, 1),
                prescribed_by="Dr. Martin",
                diagnosis="Otite",
                medications=[{"name": "Otomax", "quantity": 0}],
            )
