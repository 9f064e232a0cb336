"""
Treatment status sweep and date-window queries.
"""

from datetime import date
from typing import List, Sequence, TypeVar
from uuid import UUID

from ..models.treatment import TreatmentStatus
from ..schemas.treatment import TreatmentRecordBase
from ..utils.datetime_utils import add_days, is_within_range

R = TypeVar("R", bound=TreatmentRecordBase)


def sweep_status(record: R, today: date) -> R:
    """
    Re-derive the status of one record.

    Completed records are returned untouched. Otherwise a past due date
    means ``overdue`` and a current or future one means ``scheduled``. The
    same object is returned when nothing changes.
    """
    if record.status is TreatmentStatus.COMPLETED:
        return record

    expected = (
        TreatmentStatus.OVERDUE
        if record.next_due_date < today
        else TreatmentStatus.SCHEDULED
    )
    if record.status is expected:
        return record
    return record.model_copy(update={"status": expected})


def sweep_statuses(records: Sequence[R], today: date) -> List[R]:
    """Single pass of :func:`sweep_status` over ``records``."""
    return [sweep_status(record, today) for record in records]


def overdue_records(records: Sequence[R], today: date) -> List[R]:
    """Records past their due date that were not completed."""
    return [
        record
        for record in records
        if record.next_due_date < today
        and record.status is not TreatmentStatus.COMPLETED
    ]


def upcoming_records(records: Sequence[R], today: date, days: int) -> List[R]:
    """Open records due between today and ``today + days`` inclusive, soonest first."""
    horizon = add_days(today, days)
    selected = [
        record
        for record in records
        if record.status is not TreatmentStatus.COMPLETED
        and is_within_range(record.next_due_date, today, horizon)
    ]
    return sorted(selected, key=lambda record: record.next_due_date)


def records_by_status(records: Sequence[R], status: TreatmentStatus) -> List[R]:
    return [record for record in records if record.status is status]


def records_by_patient(records: Sequence[R], patient_id: UUID) -> List[R]:
    """A patient's records, most recent administration first."""
    selected = [record for record in records if record.patient_id == patient_id]
    return sorted(selected, key=lambda record: record.date_given, reverse=True)
