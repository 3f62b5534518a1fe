"""
Balance resolution over the stock ledger.

Opening balances, on-hand quantities and per-item statements are all
folded from posted movements (ACTIVE/COMPLETED, not soft-deleted). When a
monthly summary exists for the month before the requested date it is used
as the starting point instead of replaying the whole history.
"""

import logging
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db.models import Max, Q, Sum
from django.utils import timezone

from inventory.models import MonthlySummary, StockMovement
from inventory.services.ledger_service import to_datetime
from utils.exceptions import InvalidPeriod

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
IN = StockMovement.MovementType.IN
OUT = StockMovement.MovementType.OUT


def validate_period(year, month):
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise InvalidPeriod(f'Invalid year/month: {year}/{month}')
    if not 1 <= month <= 12:
        raise InvalidPeriod(f'Month must be between 1 and 12, got {month}')
    if not 1900 <= year <= 9999:
        raise InvalidPeriod(f'Invalid year: {year}')
    return year, month


def previous_month(year, month):
    return (year - 1, 12) if month == 1 else (year, month - 1)


def next_month(year, month):
    return (year + 1, 1) if month == 12 else (year, month + 1)


def month_start(year, month):
    """Midnight of the 1st of the month, in the current time zone."""
    return timezone.make_aware(datetime(year, month, 1))


def month_bounds(year, month):
    """(start, end) datetimes of a month; end is exclusive."""
    return month_start(year, month), month_start(*next_month(year, month))


def fold(queryset):
    """
    Sum IN and OUT quantity/value of a movement queryset.

    Returns dict with in_qty, in_value, out_qty, out_value (Decimals).
    """
    totals = queryset.aggregate(
        in_qty=Sum('qty', filter=Q(movement_type=IN)),
        in_value=Sum('value', filter=Q(movement_type=IN)),
        out_qty=Sum('qty', filter=Q(movement_type=OUT)),
        out_value=Sum('value', filter=Q(movement_type=OUT)),
    )
    return {key: value if value is not None else ZERO for key, value in totals.items()}


class BalanceService:
    """Read-only balance queries. Nothing here writes to the database."""

    @staticmethod
    def opening_balance(item_type: str, fk_id: int, as_of):
        """
        Quantity and value of an item at ``as_of`` (exclusive).

        Args:
            item_type: MATERIAL or PRODUCT
            fk_id: material/product id
            as_of: date or datetime cutoff

        Returns:
            (qty, value) tuple of Decimals; (0, 0) when nothing is known
        """
        as_of = to_datetime(as_of)
        local = timezone.localtime(as_of)
        start = month_start(local.year, local.month)
        prev_year, prev_month = previous_month(local.year, local.month)

        movements = StockMovement.objects.posted().for_item(item_type, fk_id)

        summary = MonthlySummary.objects.filter(
            year=prev_year, month=prev_month, item_type=item_type, fk_id=fk_id
        ).first()

        if summary is not None:
            qty, value = summary.closing_qty, summary.closing_value
            totals = fold(movements.filter(date__gte=start, date__lt=as_of))
        else:
            qty, value = ZERO, ZERO
            totals = fold(movements.filter(date__lt=as_of))

        qty = qty + totals['in_qty'] - totals['out_qty']
        value = value + totals['in_value'] - totals['out_value']
        return qty, value

    @staticmethod
    def has_history(item_type: str, fk_id: int, before=None) -> bool:
        movements = StockMovement.objects.posted().for_item(item_type, fk_id)
        if before is not None:
            movements = movements.filter(date__lt=to_datetime(before))
        return movements.exists()

    @staticmethod
    def available_qty(item_type: str, fk_id: int) -> Decimal:
        totals = fold(StockMovement.objects.posted().for_item(item_type, fk_id))
        return totals['in_qty'] - totals['out_qty']

    @staticmethod
    def average_unit_cost(item_type: str, fk_id: int) -> Decimal:
        """Current stock value divided by current quantity."""
        totals = fold(StockMovement.objects.posted().for_item(item_type, fk_id))
        qty = totals['in_qty'] - totals['out_qty']
        value = totals['in_value'] - totals['out_value']
        if qty <= 0:
            # Out of stock: average purchase cost
            if totals['in_qty'] > 0:
                return totals['in_value'] / totals['in_qty']
            return ZERO
        return value / qty

    @staticmethod
    def current_balances(item_type: str = None, fk_id: int = None, sku: str = None):
        """
        On-hand quantity and value per item.

        Returns:
            list of dicts ordered by item_type, fk_id
        """
        queryset = StockMovement.objects.posted()
        if item_type:
            queryset = queryset.filter(item_type=item_type)
        if fk_id is not None:
            queryset = queryset.filter(fk_id=fk_id)
        if sku:
            queryset = queryset.filter(sku=sku)

        rows = queryset.values('item_type', 'fk_id').annotate(
            in_qty=Sum('qty', filter=Q(movement_type=IN)),
            in_value=Sum('value', filter=Q(movement_type=IN)),
            out_qty=Sum('qty', filter=Q(movement_type=OUT)),
            out_value=Sum('value', filter=Q(movement_type=OUT)),
            last_movement_date=Max('date'),
            last_id=Max('id'),
        ).order_by('item_type', 'fk_id')

        latest = {
            row.id: row for row in StockMovement.objects.filter(id__in=[r['last_id'] for r in rows])
        }

        balances = []
        for row in rows:
            qty = (row['in_qty'] or ZERO) - (row['out_qty'] or ZERO)
            value = (row['in_value'] or ZERO) - (row['out_value'] or ZERO)
            meta = latest.get(row['last_id'])
            balances.append({
                'item_type': row['item_type'],
                'fk_id': row['fk_id'],
                'sku': meta.sku if meta else None,
                'variant_id': meta.variant_id if meta else None,
                'item_name': meta.item_name if meta else None,
                'unit': meta.unit if meta else None,
                'current_qty': qty,
                'current_value': value,
                'avg_unit_cost': (value / qty).quantize(Decimal('0.01')) if qty > 0 else ZERO,
                'last_movement_date': row['last_movement_date'],
            })
        return balances

    @staticmethod
    def item_statement(item_type: str, fk_id: int, start=None, end=None):
        """
        Opening balance at ``start`` followed by every movement in
        [start, end) with a running balance.
        """
        start = to_datetime(start)
        end = to_datetime(end)
        if start is not None:
            opening_qty, opening_value = BalanceService.opening_balance(item_type, fk_id, start)
        else:
            opening_qty, opening_value = ZERO, ZERO

        movements = StockMovement.objects.posted().for_item(item_type, fk_id)
        if start is not None:
            movements = movements.filter(date__gte=start)
        if end is not None:
            movements = movements.filter(date__lt=end)

        qty, value = opening_qty, opening_value
        lines = []
        for movement in movements.order_by('date', 'id'):
            sign = 1 if movement.movement_type == IN else -1
            qty += sign * movement.qty
            value += sign * movement.value
            lines.append({
                'id': movement.id,
                'date': movement.date,
                'movement_type': movement.movement_type,
                'source': movement.source,
                'qty': movement.qty,
                'value': movement.value,
                'balance_qty': qty,
                'balance_value': value,
                'description': movement.description,
            })

        return {
            'item_type': item_type,
            'fk_id': fk_id,
            'opening_qty': opening_qty,
            'opening_value': opening_value,
            'movements': lines,
            'closing_qty': qty,
            'closing_value': value,
        }


def end_of_day(value):
    """Exclusive upper bound for a date given as an inclusive end date."""
    value = to_datetime(value)
    if value is None:
        return None
    local = timezone.localtime(value)
    if local.time() == time.min:
        return value + timedelta(days=1)
    return value
