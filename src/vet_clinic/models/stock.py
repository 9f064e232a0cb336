"""
Stock ledger enumerations and constants.
"""

import enum

# Reason recorded on restock movements that count as supplier purchases
SUPPLIER_PURCHASE_REASON = "Achat fournisseur"
PRESCRIPTION_REASON = "Prescription médicale"


class StockCategory(enum.Enum):
    """Inventory item categories."""

    MEDICATION = "medication"
    VACCINE = "vaccine"
    CONSUMABLE = "consumable"
    EQUIPMENT = "equipment"
    SUPPLEMENT = "supplement"


class MovementType(enum.Enum):
    """Kinds of stock movement."""

    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"


class AlertType(enum.Enum):
    """Derived stock alert kinds."""

    LOW_STOCK = "low_stock"
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"


class AlertSeverity(enum.Enum):
    """Stock alert severities."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
