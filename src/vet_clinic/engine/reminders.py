"""
Reminder chain bookkeeping.

A chain is one ``new`` record plus every ``reminder`` whose
``original_treatment_id`` points at it.
"""

from typing import List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from ..exceptions import RecordNotFoundException, ValidationException
from ..models.treatment import TreatmentStatus
from ..schemas.stock import StockReconciliation
from ..schemas.treatment import (
    NewTreatment,
    ReminderConfirmation,
    ReminderTreatment,
    TreatmentRecordBase,
)


def find_record(records: Sequence[TreatmentRecordBase], record_id: UUID, label: str):
    """
    Look up a treatment record by id.

    Raises:
        RecordNotFoundException: If no record has this id
    """
    for record in records:
        if record.id == record_id:
            return record
    raise RecordNotFoundException(label, record_id)


def chain_root(
    records: Sequence[TreatmentRecordBase], record: TreatmentRecordBase, label: str
) -> NewTreatment:
    """
    Return the ``new`` record anchoring ``record``'s chain.

    Raises:
        ValidationException: If the link is dangling or does not point at a new record
    """
    if isinstance(record, NewTreatment):
        return record

    try:
        root = find_record(records, record.chain_root_id, label)
    except RecordNotFoundException:
        raise ValidationException(
            "Reminder references a missing treatment",
            field="original_treatment_id",
            value=record.chain_root_id,
        )
    if not isinstance(root, NewTreatment):
        raise ValidationException(
            "Reminder must reference a new treatment",
            field="original_treatment_id",
            value=record.chain_root_id,
        )
    return root


def validate_chain_link(
    records: Sequence[TreatmentRecordBase],
    original_id: UUID,
    patient_id: UUID,
    label: str,
) -> NewTreatment:
    """
    Check that a reminder may hang off ``original_id``.

    Raises:
        ValidationException: If the target is missing, not a new record, or
            belongs to another patient
    """
    try:
        original = find_record(records, original_id, label)
    except RecordNotFoundException:
        raise ValidationException(
            "Reminder references a missing treatment",
            field="original_treatment_id",
            value=original_id,
        )
    if not isinstance(original, NewTreatment):
        raise ValidationException(
            "Reminder must reference a new treatment",
            field="original_treatment_id",
            value=original_id,
        )
    if original.patient_id != patient_id:
        raise ValidationException(
            "Reminder must belong to the same patient as its original treatment",
            field="patient_id",
            value=patient_id,
        )
    return original


def cascade_delete(
    records: Sequence[TreatmentRecordBase], target: TreatmentRecordBase
) -> Tuple[List[TreatmentRecordBase], List[UUID]]:
    """
    Remove ``target`` and, for a new record, its whole reminder chain.

    Returns:
        The remaining records and the ids that were removed
    """
    if isinstance(target, NewTreatment):
        doomed = {
            record.id
            for record in records
            if record.id == target.id
            or (
                isinstance(record, ReminderTreatment)
                and record.original_treatment_id == target.id
            )
        }
    else:
        doomed = {target.id}

    remaining = [record for record in records if record.id not in doomed]
    removed = [record.id for record in records if record.id in doomed]
    return remaining, removed


def build_confirmation(
    target: TreatmentRecordBase,
    root: NewTreatment,
    confirmation: ReminderConfirmation,
    reconciliation: StockReconciliation,
    record_id: Optional[UUID] = None,
) -> Tuple[ReminderTreatment, TreatmentRecordBase]:
    """
    Build both halves of a reminder confirmation.

    Returns:
        The completed reminder recording the dose, and ``target`` marked
        completed, linked to that reminder, with its pending appointment
        cleared
    """
    performed = ReminderTreatment(
        id=record_id or uuid4(),
        patient_id=target.patient_id,
        owner_id=target.owner_id,
        patient_name=target.patient_name,
        product_name=target.product_name,
        protocol_name=target.protocol_name,
        product_type=target.product_type,
        date_given=confirmation.date_performed,
        next_due_date=confirmation.new_next_due_date or target.next_due_date,
        calculated_due_date=target.calculated_due_date,
        status=TreatmentStatus.COMPLETED,
        stock_item_id=reconciliation.stock_item_id,
        is_in_stock=reconciliation.is_in_stock,
        stock_quantity=reconciliation.stock_quantity,
        stock_deducted=reconciliation.deducted,
        cost=target.cost,
        batch_number=confirmation.batch_number or target.batch_number,
        manufacturer=target.manufacturer,
        veterinarian=confirmation.performed_by,
        notes=confirmation.notes,
        original_treatment_id=root.id,
    )

    changes = {
        "status": TreatmentStatus.COMPLETED,
        "reminder_appointment_id": None,
        "confirmed_by_id": performed.id,
    }
    if confirmation.new_next_due_date is not None:
        changes["next_due_date"] = confirmation.new_next_due_date

    return performed, target.model_copy(update=changes)
