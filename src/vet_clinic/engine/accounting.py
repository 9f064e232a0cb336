"""
Accounting derivation.

Clinical events are adapted into :class:`ClinicalEvent` values, and
:func:`derive_entries` turns the in-range events that have no automatic entry
yet into new ones. ``(source, source_id)`` is the only deduplication key, so
derivation can be re-run on every state change.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from ..models.accounting import (
    EntryCategory,
    EntryFrequency,
    EntrySource,
    EntryType,
    SummaryPeriod,
)
from ..models.stock import SUPPLIER_PURCHASE_REASON, MovementType
from ..models.treatment import TreatmentKind
from ..schemas.accounting import AccountingEntry, AccountingSummary, ClinicalEvent
from ..schemas.clinical import Consultation, Prescription
from ..schemas.stock import StockItem, StockMovement
from ..schemas.treatment import TreatmentRecordBase
from ..utils.datetime_utils import is_within_range

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

REVENUE_BUCKETS = {
    EntrySource.CONSULTATION: "consultations",
    EntrySource.VACCINATION: "vaccinations",
    EntrySource.ANTIPARASITIC: "antiparasitics",
    EntrySource.PRESCRIPTION: "prescriptions",
    EntrySource.STOCK_SALE: "stock_sales",
}

EXPENSE_BUCKETS = {
    EntrySource.STOCK_PURCHASE: "stock_purchases",
    EntrySource.SALARY: "salaries",
    EntrySource.RENT: "rent",
    EntrySource.TAX: "taxes",
    EntrySource.INSURANCE: "insurance",
    EntrySource.OTHER: "other",
}

MANUAL_BUCKET = "manual_entries"

_TREATMENT_SOURCES = {
    TreatmentKind.VACCINATION: EntrySource.VACCINATION,
    TreatmentKind.ANTIPARASITIC: EntrySource.ANTIPARASITIC,
}


def consultation_events(consultations: Iterable[Consultation]) -> Iterator[ClinicalEvent]:
    for consultation in consultations:
        if not consultation.cost:
            continue
        label = consultation.patient_name or str(consultation.patient_id)
        yield ClinicalEvent(
            source=EntrySource.CONSULTATION,
            source_id=consultation.id,
            entry_type=EntryType.REVENUE,
            amount=consultation.cost,
            date=consultation.date,
            description=f"Consultation - {label}",
            reference=f"Consultation #{consultation.id}",
        )


def treatment_events(
    records: Iterable[TreatmentRecordBase], kind: TreatmentKind
) -> Iterator[ClinicalEvent]:
    """
    Completed, priced treatment records; scheduled doses are not billable.

    A record closed by a confirmation is billed through the reminder holding
    the dose, never on its own.
    """
    for record in records:
        if not record.is_completed or not record.cost:
            continue
        if record.confirmed_by_id is not None:
            continue
        yield ClinicalEvent(
            source=_TREATMENT_SOURCES[kind],
            source_id=record.id,
            entry_type=EntryType.REVENUE,
            amount=record.cost,
            date=record.date_given,
            description=f"{kind.label} - {record.product_name}",
            reference=f"{kind.label} #{record.id}",
        )


def prescription_events(prescriptions: Iterable[Prescription]) -> Iterator[ClinicalEvent]:
    for prescription in prescriptions:
        total = prescription.total_cost
        if total <= ZERO:
            continue
        label = prescription.patient_name or str(prescription.patient_id)
        yield ClinicalEvent(
            source=EntrySource.PRESCRIPTION,
            source_id=prescription.id,
            entry_type=EntryType.REVENUE,
            amount=total,
            date=prescription.date,
            description=f"Prescription - {label}",
            reference=f"Prescription #{prescription.id}",
        )


def stock_purchase_events(
    movements: Iterable[StockMovement], items: Sequence[StockItem]
) -> Iterator[ClinicalEvent]:
    """Supplier restocks, valued at the item's purchase price."""
    prices = {item.id: item.purchase_price for item in items}
    for movement in movements:
        if movement.type is not MovementType.IN:
            continue
        if movement.reason != SUPPLIER_PURCHASE_REASON:
            continue
        price = prices.get(movement.item_id)
        if price is None:
            logger.warning(f"Skipping purchase of unknown stock item {movement.item_id}")
            continue
        amount = price * movement.quantity
        if amount <= ZERO:
            continue
        yield ClinicalEvent(
            source=EntrySource.STOCK_PURCHASE,
            source_id=movement.id,
            entry_type=EntryType.EXPENSE,
            amount=amount,
            date=movement.date,
            description=f"Achat stock - {movement.item_name} (x{movement.quantity})",
            reference=movement.reference,
        )


def derive_entries(
    events: Iterable[ClinicalEvent],
    existing_entries: Sequence[AccountingEntry],
    start: Optional[date] = None,
    end: Optional[date] = None,
    created_by: Optional[str] = None,
) -> List[AccountingEntry]:
    """
    Create automatic entries for in-range events not yet recorded.

    Manual entries are never read or modified. Running this twice over the
    same events yields nothing the second time.
    """
    seen = {entry.dedup_key for entry in existing_entries if entry.dedup_key}
    new_entries: List[AccountingEntry] = []

    for event in events:
        if not is_within_range(event.date, start, end):
            continue
        if event.dedup_key in seen:
            continue
        seen.add(event.dedup_key)
        new_entries.append(
            AccountingEntry(
                type=event.entry_type,
                category=EntryCategory.AUTOMATIC,
                frequency=EntryFrequency.OCCASIONAL,
                description=event.description,
                amount=event.amount,
                date=event.date,
                reference=event.reference,
                source=event.source,
                source_id=event.source_id,
                notes="",
                created_by=created_by,
            )
        )

    if new_entries:
        logger.info(f"Derived {len(new_entries)} automatic accounting entries")
    return new_entries


def _bucket_for(entry: AccountingEntry) -> str:
    buckets = REVENUE_BUCKETS if entry.type is EntryType.REVENUE else EXPENSE_BUCKETS
    if entry.is_automatic:
        return buckets.get(entry.source, MANUAL_BUCKET)
    # Manual revenue always lands in the manual bucket; manual expenses keep
    # their overhead category (salaries, rent, ...) when they have one
    if entry.type is EntryType.EXPENSE and entry.source in EXPENSE_BUCKETS:
        if entry.source is not EntrySource.STOCK_PURCHASE:
            return EXPENSE_BUCKETS[entry.source]
    return MANUAL_BUCKET


def build_summary(
    entries: Sequence[AccountingEntry],
    period: SummaryPeriod,
    start: date,
    end: date,
    new_entries: int = 0,
) -> AccountingSummary:
    """Total every entry dated within ``[start, end]``."""
    revenue: Dict[str, Decimal] = {name: ZERO for name in REVENUE_BUCKETS.values()}
    revenue[MANUAL_BUCKET] = ZERO
    expenses: Dict[str, Decimal] = {name: ZERO for name in EXPENSE_BUCKETS.values()}
    expenses[MANUAL_BUCKET] = ZERO
    manual_breakdown: Dict[str, Decimal] = {}
    manual_revenue = ZERO
    manual_expenses = ZERO

    for entry in entries:
        if not is_within_range(entry.date, start, end):
            continue

        bucket = _bucket_for(entry)
        if entry.type is EntryType.REVENUE:
            revenue[bucket] += entry.amount
        else:
            expenses[bucket] += entry.amount

        if not entry.is_automatic:
            key = entry.source.value if entry.source else "unspecified"
            manual_breakdown[key] = manual_breakdown.get(key, ZERO) + entry.amount
            if entry.type is EntryType.REVENUE:
                manual_revenue += entry.amount
            else:
                manual_expenses += entry.amount

    total_revenue = sum(revenue.values(), ZERO)
    total_expenses = sum(expenses.values(), ZERO)

    return AccountingSummary(
        period=period,
        start_date=start,
        end_date=end,
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_income=total_revenue - total_expenses,
        manual_revenue=manual_revenue,
        manual_expenses=manual_expenses,
        revenue_breakdown=revenue,
        expense_breakdown=expenses,
        manual_breakdown=manual_breakdown,
        new_entries=new_entries,
    )
