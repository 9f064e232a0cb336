"""
Reconciliation engine.

Pure functions and the stock ledger used by the clinic service: protocol
resolution and expansion, stock reconciliation and alerts, the status
sweep, reminder chains and accounting derivation.
"""

from .accounting import (
    build_summary,
    consultation_events,
    derive_entries,
    prescription_events,
    stock_purchase_events,
    treatment_events,
)
from .protocols import (
    PlannedDose,
    ProtocolExpansion,
    expand_protocol,
    find_protocol,
    resolve_due_date,
)
from .reminders import (
    build_confirmation,
    cascade_delete,
    chain_root,
    find_record,
    validate_chain_link,
)
from .status import (
    overdue_records,
    records_by_patient,
    records_by_status,
    sweep_status,
    sweep_statuses,
    upcoming_records,
)
from .stock import StockLedger, stock_alerts

__all__ = [
    # Protocols
    "PlannedDose",
    "ProtocolExpansion",
    "expand_protocol",
    "find_protocol",
    "resolve_due_date",
    # Stock
    "StockLedger",
    "stock_alerts",
    # Status
    "overdue_records",
    "records_by_patient",
    "records_by_status",
    "sweep_status",
    "sweep_statuses",
    "upcoming_records",
    # Reminder chains
    "build_confirmation",
    "cascade_delete",
    "chain_root",
    "find_record",
    "validate_chain_link",
    # Accounting
    "build_summary",
    "consultation_events",
    "derive_entries",
    "prescription_events",
    "stock_purchase_events",
    "treatment_events",
]
