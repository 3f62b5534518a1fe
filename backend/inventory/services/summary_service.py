"""
Monthly Summary Service

Builds and reads per-item monthly stock summaries.

Business Rules:
- opening = balance at the first instant of the month
- closing = opening + in - out, for quantity and value
- A month run overwrites every row it covers, so re-running with no ledger
  changes produces the same rows
- created_by is set when a row is first created; regeneration keeps it
- A month-to-date run counts in/out up to an inclusive as_of date
- Generating month M never writes rows of any other month
- Runs for the same (year, month) are serialized on SummaryPeriodLock
- Negative closing balances are stored as they are
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.utils import timezone

from inventory.models import ItemType, MonthlySummary, StockMovement, SummaryPeriodLock
from inventory.services.balance_service import (
    BalanceService, end_of_day, fold, month_bounds, month_start, previous_month, validate_period,
)
from inventory.services.ledger_service import to_datetime
from utils.exceptions import ConcurrentRegenerationConflict, InvalidPeriod, ItemNotFound

logger = logging.getLogger(__name__)

META_FIELDS = ('sku', 'variant_id', 'item_name', 'unit')


def _lock_period(year, month, nowait=False):
    SummaryPeriodLock.objects.get_or_create(year=year, month=month)
    try:
        return SummaryPeriodLock.objects.select_for_update(nowait=nowait).get(year=year, month=month)
    except DatabaseError:
        if nowait:
            raise ConcurrentRegenerationConflict(
                f'Summaries for {year}-{month:02d} are already being generated.'
            )
        raise


def _item_metadata(item_type, fk_id, end, fallback=None):
    """sku/variant/name/unit from the item's latest movement before ``end``."""
    movement = StockMovement.objects.posted().for_item(item_type, fk_id).filter(
        date__lt=end
    ).order_by('-date', '-id').first()
    source = movement or fallback
    if source is None:
        return {field: None for field in META_FIELDS}
    return {field: getattr(source, field) for field in META_FIELDS}


def _build_row(year, month, item_type, fk_id, created_by=None, fallback=None, cutoff=None):
    start, end = month_bounds(year, month)
    if cutoff is not None:
        end = min(end, cutoff)
    opening_qty, opening_value = BalanceService.opening_balance(item_type, fk_id, start)

    totals = fold(
        StockMovement.objects.posted().for_item(item_type, fk_id).filter(date__gte=start, date__lt=end)
    )

    defaults = {
        **_item_metadata(item_type, fk_id, end, fallback),
        'opening_qty': opening_qty,
        'in_qty': totals['in_qty'],
        'out_qty': totals['out_qty'],
        'closing_qty': opening_qty + totals['in_qty'] - totals['out_qty'],
        'opening_value': opening_value,
        'in_value': totals['in_value'],
        'out_value': totals['out_value'],
        'closing_value': opening_value + totals['in_value'] - totals['out_value'],
    }

    summary, _ = MonthlySummary.objects.update_or_create(
        year=year, month=month, item_type=item_type, fk_id=fk_id,
        defaults=defaults,
        create_defaults={**defaults, 'created_by': created_by},
    )
    return summary


class SummaryService:
    """Service for generating and querying monthly stock summaries."""

    @staticmethod
    def generate(year, month, created_by: int = None, carry_forward: bool = False, nowait: bool = False):
        """
        Generate (or regenerate) summaries for every item of a month.

        Items covered: items with posted movements in the month and items
        that already have a row for the month. With ``carry_forward`` every
        item summarized in the previous month is included too, so items
        with no activity keep their balance.

        Args:
            year: calendar year
            month: 1-12
            created_by: acting user id
            carry_forward: include last month's items
            nowait: fail with ConcurrentRegenerationConflict instead of
                waiting when another run holds the month

        Returns:
            dict: {'count': int, 'items': [MonthlySummary, ...]}

        Raises:
            InvalidPeriod, ConcurrentRegenerationConflict
        """
        year, month = validate_period(year, month)
        start, end = month_bounds(year, month)

        with transaction.atomic():
            lock = _lock_period(year, month, nowait=nowait)

            items = {}
            for summary in MonthlySummary.objects.filter(year=year, month=month):
                items[(summary.item_type, summary.fk_id)] = summary

            if carry_forward:
                prev_year, prev_month = previous_month(year, month)
                for summary in MonthlySummary.objects.filter(year=prev_year, month=prev_month):
                    items.setdefault((summary.item_type, summary.fk_id), summary)

            active = StockMovement.objects.posted().filter(
                date__gte=start, date__lt=end
            ).values_list('item_type', 'fk_id').distinct()
            for key in active:
                items.setdefault(tuple(key), None)

            rows = [
                _build_row(year, month, item_type, fk_id, created_by=created_by, fallback=fallback)
                for (item_type, fk_id), fallback in sorted(items.items(), key=lambda pair: pair[0])
            ]

            lock.last_generated_at = timezone.now()
            lock.save(update_fields=['last_generated_at'])

        logger.info(f"Generated {len(rows)} monthly summaries for {year}-{month:02d} (carry_forward={carry_forward})")
        return {'count': len(rows), 'items': rows}

    @staticmethod
    def generate_from_last_month(year, month, created_by: int = None, nowait: bool = False):
        """Generate a month, carrying forward every item summarized in the previous month."""
        return SummaryService.generate(year, month, created_by=created_by, carry_forward=True, nowait=nowait)

    @staticmethod
    def generate_for_item(year, month, item_type: str, fk_id: int, created_by: int = None,
                          carry_forward: bool = False):
        """
        Generate the summary row of a single item.

        Raises:
            InvalidPeriod: bad year/month
            ItemNotFound: the item has no ledger history up to the end of the
                month and no summary for the previous month (unless
                ``carry_forward`` is set, in which case a zero row is written)
        """
        year, month = validate_period(year, month)
        item_type = (item_type or '').upper()
        if item_type not in ItemType.values:
            raise ItemNotFound(f"Unknown item type '{item_type}'")
        _, end = month_bounds(year, month)
        prev_year, prev_month = previous_month(year, month)

        has_prior = MonthlySummary.objects.filter(
            year=prev_year, month=prev_month, item_type=item_type, fk_id=fk_id
        ).exists()
        if not has_prior and not carry_forward and not BalanceService.has_history(item_type, fk_id, before=end):
            raise ItemNotFound(f'{item_type} {fk_id} has no stock records up to {year}-{month:02d}')

        with transaction.atomic():
            _lock_period(year, month)
            summary = _build_row(year, month, item_type, fk_id, created_by=created_by)

        logger.info(f"Generated monthly summary for {item_type}#{fk_id} {year}-{month:02d}")
        return summary

    @staticmethod
    def generate_month_to_date(year=None, month=None, as_of=None, created_by: int = None, nowait: bool = False):
        """
        Write the rows of a month with in/out counted up to ``as_of``.

        ``as_of`` is an inclusive date and defaults to today; a date outside
        the month is clamped to the month's last day. Without year/month the
        current month is used. Every item with posted history up to ``as_of``
        is covered, along with items that already have a row for the month.
        A later full ``generate`` of the month overwrites these rows.

        Returns:
            dict: {'count', 'items': [MonthlySummary, ...], 'year', 'month', 'as_of': date}

        Raises:
            InvalidPeriod, ConcurrentRegenerationConflict
        """
        today = timezone.localdate()
        if year is None or month is None:
            year, month = today.year, today.month
        year, month = validate_period(year, month)
        start, end = month_bounds(year, month)

        try:
            as_of = timezone.localtime(to_datetime(as_of)).date() if as_of else today
        except ValueError as e:
            raise InvalidPeriod(str(e))
        last_day = timezone.localtime(end - timedelta(days=1)).date()
        if not start.date() <= as_of <= last_day:
            as_of = last_day
        cutoff = end_of_day(as_of)

        with transaction.atomic():
            lock = _lock_period(year, month, nowait=nowait)

            items = {}
            for summary in MonthlySummary.objects.filter(year=year, month=month):
                items[(summary.item_type, summary.fk_id)] = summary
            known = StockMovement.objects.posted().filter(
                date__lt=cutoff
            ).values_list('item_type', 'fk_id').distinct()
            for key in known:
                items.setdefault(tuple(key), None)

            rows = [
                _build_row(year, month, item_type, fk_id, created_by=created_by, fallback=fallback, cutoff=cutoff)
                for (item_type, fk_id), fallback in sorted(items.items(), key=lambda pair: pair[0])
            ]

            lock.last_generated_at = timezone.now()
            lock.save(update_fields=['last_generated_at'])

        logger.info(f"Generated {len(rows)} month-to-date summaries for {year}-{month:02d} as of {as_of}")
        return {'count': len(rows), 'items': rows, 'year': year, 'month': month, 'as_of': as_of}

    @staticmethod
    def range_view(start_year, start_month, end_year, end_month, item_type: str = None,
                   fk_id: int = None, sku: str = None):
        """
        Per-item statements over a range of whole months.

        Each block opens with the item's balance at the first instant of the
        start month and lists the item's movements up to the end of the end
        month with a running balance. Items are those with posted history
        before the end of the range, narrowed by item_type/fk_id/sku.

        Returns:
            dict: {'period': {'start', 'end'}, 'items': [block, ...]}
            where ``end`` is exclusive

        Raises:
            InvalidPeriod: bad months, or the start month is after the end month
        """
        start_year, start_month = validate_period(start_year, start_month)
        end_year, end_month = validate_period(end_year, end_month)
        if (start_year, start_month) > (end_year, end_month):
            raise InvalidPeriod(
                f'Start month {start_year}-{start_month:02d} is after end month {end_year}-{end_month:02d}'
            )
        start = month_start(start_year, start_month)
        _, end = month_bounds(end_year, end_month)

        movements = StockMovement.objects.posted().filter(date__lt=end)
        if item_type:
            movements = movements.filter(item_type=item_type.upper())
        if fk_id is not None:
            movements = movements.filter(fk_id=fk_id)
        if sku:
            movements = movements.filter(sku=sku)
        keys = sorted(tuple(key) for key in movements.values_list('item_type', 'fk_id').distinct())

        blocks = []
        for key_type, key_id in keys:
            statement = BalanceService.item_statement(key_type, key_id, start=start, end=end)
            blocks.append({
                'item': {'item_type': key_type, 'fk_id': key_id, **_item_metadata(key_type, key_id, end)},
                'opening_qty': statement['opening_qty'],
                'opening_value': statement['opening_value'],
                'movements': statement['movements'],
                'closing_qty': statement['closing_qty'],
                'closing_value': statement['closing_value'],
            })

        return {'period': {'start': start.date(), 'end': end.date()}, 'items': blocks}

    @staticmethod
    def query(year, month, item_type: str = None, fk_id: int = None, sku: str = None):
        """
        Persisted summaries of a month ordered by item_type then fk_id.

        Returns an empty queryset when nothing was generated.
        """
        year, month = validate_period(year, month)
        queryset = MonthlySummary.objects.filter(year=year, month=month)
        if item_type:
            queryset = queryset.filter(item_type=item_type.upper())
        if fk_id is not None:
            queryset = queryset.filter(fk_id=fk_id)
        if sku:
            queryset = queryset.filter(sku=sku)
        return queryset.order_by('item_type', 'fk_id')

    @staticmethod
    def grouped(year, month):
        """
        Summaries of a month split into MATERIAL and PRODUCT blocks with totals.

        Returns:
            list of {'item_type', 'rows', 'totals'} in MATERIAL, PRODUCT order
        """
        summaries = list(SummaryService.query(year, month))
        blocks = []
        for item_type in ItemType.values:
            rows = sorted(
                (s for s in summaries if s.item_type == item_type),
                key=lambda s: ((s.item_name or '').lower(), s.fk_id),
            )
            totals = {
                field: sum((getattr(s, field) for s in rows), Decimal('0.00'))
                for field in ('opening_qty', 'in_qty', 'out_qty', 'closing_qty',
                              'opening_value', 'in_value', 'out_value', 'closing_value')
            }
            blocks.append({'item_type': item_type, 'rows': rows, 'totals': totals})
        return blocks
