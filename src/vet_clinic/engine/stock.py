"""
Stock ledger operations.

The ledger works on the item and movement lists of a staged clinic state.
Every quantity change goes through :meth:`StockLedger.apply_movement`, which
updates the item and appends its movement in the same step.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from ..exceptions import BusinessRuleException, RecordNotFoundException
from ..models.stock import AlertSeverity, AlertType, MovementType, StockCategory
from ..schemas.stock import StockAlert, StockItem, StockMovement, StockReconciliation
from ..utils.datetime_utils import add_days
from ..utils.validation import names_match_ignore_case

logger = logging.getLogger(__name__)


class StockLedger:
    """Inventory items and their append-only movement log."""

    def __init__(self, items: List[StockItem], movements: List[StockMovement]):
        self.items = items
        self.movements = movements

    def get_item(self, item_id: UUID) -> StockItem:
        """
        Look up an item by id.

        Raises:
            RecordNotFoundException: If no item has this id
        """
        for item in self.items:
            if item.id == item_id:
                return item
        raise RecordNotFoundException("Stock item", item_id)

    def _replace(self, updated: StockItem) -> None:
        for index, item in enumerate(self.items):
            if item.id == updated.id:
                self.items[index] = updated
                return
        raise RecordNotFoundException("Stock item", updated.id)

    def match(self, product_name: str, category: StockCategory) -> Optional[StockItem]:
        """Find the active item of ``category`` named ``product_name`` (any case)."""
        for item in self.items:
            if (
                item.is_active
                and item.category is category
                and names_match_ignore_case(item.name, product_name)
            ):
                return item
        return None

    def apply_movement(
        self,
        item_id: UUID,
        movement_type: MovementType,
        quantity: int,
        reason: str,
        on_date: date,
        reference: Optional[str] = None,
        source_id: Optional[UUID] = None,
        performed_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """
        Change an item's stock and log the movement.

        Raises:
            RecordNotFoundException: If the item does not exist
            BusinessRuleException: If the movement would drive stock negative
        """
        item = self.get_item(item_id)
        movement = StockMovement(
            item_id=item.id,
            item_name=item.name,
            type=movement_type,
            quantity=quantity,
            reason=reason,
            reference=reference,
            source_id=source_id,
            date=on_date,
            performed_by=performed_by,
            notes=notes,
        )

        new_stock = item.current_stock + movement.stock_delta
        if new_stock < 0:
            raise BusinessRuleException(
                f"Insufficient stock for '{item.name}'",
                rule_name="non_negative_stock",
                context={
                    "item_id": str(item.id),
                    "current_stock": item.current_stock,
                    "requested": quantity,
                },
            )

        now = datetime.now(timezone.utc)
        changes = {"current_stock": new_stock, "last_updated": now}
        if movement_type is MovementType.IN:
            changes["last_restocked"] = now

        self._replace(item.model_copy(update=changes))
        self.movements.append(movement)
        logger.info(
            f"Stock movement {movement_type.value} x{quantity} on '{item.name}': "
            f"{item.current_stock} -> {new_stock}"
        )
        return movement

    def reconcile(
        self,
        product_name: str,
        category: StockCategory,
        required_qty: int,
        on_date: date,
        reason: str,
        reference: str,
        source_id: UUID,
        performed_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockReconciliation:
        """
        Match a product to stock and deduct it when there is enough.

        No matching active item, or a matched item at zero, means the dose
        came from outside supply. With enough stock ``required_qty`` is
        deducted and one ``out`` movement referencing ``source_id`` is
        logged. With some but not enough stock nothing is deducted.
        """
        item = self.match(product_name, category)
        if item is None:
            return StockReconciliation()

        if item.current_stock <= 0:
            return StockReconciliation(stock_item_id=item.id)

        if item.current_stock < required_qty:
            logger.warning(
                f"Not enough '{item.name}' to deduct {required_qty} "
                f"(have {item.current_stock})"
            )
            return StockReconciliation(
                stock_item_id=item.id,
                is_in_stock=True,
                stock_quantity=item.current_stock,
                deducted=False,
            )

        self.apply_movement(
            item.id,
            MovementType.OUT,
            required_qty,
            reason=reason,
            on_date=on_date,
            reference=reference,
            source_id=source_id,
            performed_by=performed_by,
            notes=notes,
        )
        return StockReconciliation(
            stock_item_id=item.id,
            is_in_stock=True,
            stock_quantity=item.current_stock,
            deducted=True,
        )

    def movements_for(self, item_id: Optional[UUID] = None) -> List[StockMovement]:
        """Movements, newest first, optionally for one item."""
        selected = [
            movement
            for movement in self.movements
            if item_id is None or movement.item_id == item_id
        ]
        return sorted(selected, key=lambda movement: movement.date, reverse=True)


def stock_alerts(
    items: Sequence[StockItem], today: date, warning_days: int = 30
) -> List[StockAlert]:
    """
    Derive alerts for active items.

    ``low_stock`` when stock is at or below minimum (critical at zero, high
    otherwise), ``expired`` when the expiration date is past (critical), and
    ``expiring_soon`` when it falls within ``warning_days`` (medium).
    """
    alerts: List[StockAlert] = []
    horizon = add_days(today, warning_days)

    for item in items:
        if not item.is_active:
            continue

        common = {
            "item_id": item.id,
            "item_name": item.name,
            "current_stock": item.current_stock,
            "minimum_stock": item.minimum_stock,
            "expiration_date": item.expiration_date,
        }

        if item.current_stock <= item.minimum_stock:
            out_of_stock = item.current_stock == 0
            alerts.append(
                StockAlert(
                    type=AlertType.LOW_STOCK,
                    severity=AlertSeverity.CRITICAL if out_of_stock else AlertSeverity.HIGH,
                    message=(
                        f"{item.name} is out of stock"
                        if out_of_stock
                        else f"{item.name} is low on stock ({item.current_stock} {item.unit})"
                    ),
                    **common,
                )
            )

        if item.expiration_date is None:
            continue

        if item.expiration_date < today:
            alerts.append(
                StockAlert(
                    type=AlertType.EXPIRED,
                    severity=AlertSeverity.CRITICAL,
                    message=f"{item.name} expired on {item.expiration_date.isoformat()}",
                    **common,
                )
            )
        elif item.expiration_date <= horizon:
            alerts.append(
                StockAlert(
                    type=AlertType.EXPIRING_SOON,
                    severity=AlertSeverity.MEDIUM,
                    message=f"{item.name} expires on {item.expiration_date.isoformat()}",
                    **common,
                )
            )

    return alerts
