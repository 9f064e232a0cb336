"""
Accounting and clinical event enumerations.
"""

import enum


class EntryType(enum.Enum):
    """Direction of an accounting entry."""

    REVENUE = "revenue"
    EXPENSE = "expense"


class EntryCategory(enum.Enum):
    """Whether an entry was derived from a clinical event or entered by hand."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"


class EntryFrequency(enum.Enum):
    """Recurrence of an accounting entry."""

    MONTHLY = "monthly"
    ANNUAL = "annual"
    OCCASIONAL = "occasional"


class EntrySource(enum.Enum):
    """Origin of an accounting entry."""

    CONSULTATION = "consultation"
    VACCINATION = "vaccination"
    ANTIPARASITIC = "antiparasitic"
    PRESCRIPTION = "prescription"
    STOCK_SALE = "stock_sale"
    STOCK_PURCHASE = "stock_purchase"
    SALARY = "salary"
    RENT = "rent"
    TAX = "tax"
    INSURANCE = "insurance"
    OTHER = "other"


class SummaryPeriod(enum.Enum):
    """Granularity label of an accounting summary."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class PrescriptionStatus(enum.Enum):
    """Lifecycle status of a prescription."""

    ACTIVE = "active"
    COMPLETED = "completed"
    DISCONTINUED = "discontinued"
