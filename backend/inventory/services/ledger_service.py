"""
Stock Ledger Service

Append-only record of stock movements.

Business Rules:
- Quantity must be numeric, >= 0 and have at most 2 decimal places
- Movement type must be IN or OUT; item type MATERIAL or PRODUCT
- value defaults to qty x unit_cost
- Recording a movement never touches monthly summaries
- Recorded movements are never edited; they can only be soft-deleted
"""

import logging
from datetime import date as date_cls, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.utils import timezone

from inventory.models import ItemType, StockMovement
from utils.exceptions import InvalidMovementType, InvalidQuantity

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def to_decimal(value, default=None) -> Optional[Decimal]:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise InvalidOperation(value)
    return Decimal(str(value))


def to_datetime(value):
    """
    Accept a datetime, date or ISO string and return an aware datetime.

    Bare dates mean midnight (start of day) in the current time zone.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        try:
            value = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            raise ValueError(f'Invalid date: {value}')
    if isinstance(value, date_cls) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


class LedgerService:
    """Service for recording and reading stock movements."""

    @staticmethod
    def record(
        item_type: str,
        fk_id: int,
        movement_type: str,
        qty,
        sku: str = None,
        value=None,
        date=None,
        unit_cost=None,
        source: str = StockMovement.Source.ADJUSTMENT,
        status: str = StockMovement.Status.ACTIVE,
        variant_id: str = None,
        item_name: str = None,
        unit: str = None,
        batch_number: str = None,
        description: str = None,
        created_by: int = None,
    ) -> StockMovement:
        """
        Append one movement to the ledger.

        Args:
            item_type: MATERIAL or PRODUCT
            fk_id: material/product id
            movement_type: IN or OUT
            qty: quantity moved, >= 0
            value: total value; qty x unit_cost when omitted
            date: when the event happened (defaults to now)

        Returns:
            The created StockMovement

        Raises:
            InvalidQuantity: qty negative, not a number or finer than 0.01
            InvalidMovementType: movement_type/item_type/source/status unknown
        """
        movement_type = (movement_type or '').upper()
        if movement_type not in StockMovement.MovementType.values:
            raise InvalidMovementType(f"Movement type must be IN or OUT, got '{movement_type}'")

        item_type = (item_type or '').upper()
        if item_type not in ItemType.values:
            raise InvalidMovementType(f"Item type must be MATERIAL or PRODUCT, got '{item_type}'")

        if source not in StockMovement.Source.values:
            raise InvalidMovementType(f"Unknown movement source '{source}'")
        if status not in StockMovement.Status.values or status == StockMovement.Status.DELETED:
            raise InvalidMovementType(f"Invalid movement status '{status}'")

        try:
            qty = to_decimal(qty)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidQuantity(f"Quantity must be a number, got '{qty}'")
        if qty is None or not qty.is_finite():
            raise InvalidQuantity('Quantity is required')
        if qty < 0:
            raise InvalidQuantity(f'Quantity cannot be negative ({qty})')
        if qty != qty.quantize(TWO_PLACES):
            raise InvalidQuantity(f'Quantity {qty} has more than 2 decimal places')

        try:
            unit_cost = to_decimal(unit_cost, Decimal('0'))
            value = to_decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidQuantity('Value and unit cost must be numbers')

        if value is None:
            value = qty * unit_cost
        elif not unit_cost and qty:
            unit_cost = value / qty

        movement = StockMovement.objects.create(
            item_type=item_type,
            fk_id=fk_id,
            sku=sku,
            variant_id=variant_id,
            item_name=item_name,
            unit=unit,
            batch_number=batch_number,
            description=description,
            movement_type=movement_type,
            source=source,
            qty=qty,
            unit_cost=unit_cost.quantize(TWO_PLACES),
            value=value.quantize(TWO_PLACES),
            date=to_datetime(date) or timezone.now(),
            status=status,
            created_by=created_by,
        )

        logger.info(
            f"Recorded {movement.movement_type} {movement.qty} of {movement.item_type}#{movement.fk_id} "
            f"(id={movement.id}, source={movement.source})"
        )
        return movement

    @staticmethod
    def list_movements(item_type: str, fk_id: int, start=None, end=None):
        """
        Posted movements of one item with start <= date < end.

        Either bound may be omitted. Ordered by date, then insertion order.
        """
        queryset = StockMovement.objects.posted().for_item(item_type, fk_id)
        if start is not None:
            queryset = queryset.filter(date__gte=to_datetime(start))
        if end is not None:
            queryset = queryset.filter(date__lt=to_datetime(end))
        return queryset.order_by('date', 'id')

    @staticmethod
    def soft_delete(movement_id: int, deleted_by: int = None) -> StockMovement:
        movement = StockMovement.objects.alive().get(id=movement_id)
        movement.soft_delete(deleted_by=deleted_by)
        logger.info(f"Soft-deleted stock movement {movement_id} (by user {deleted_by})")
        return movement
