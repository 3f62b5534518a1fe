"""
Unit tests for monthly summary generation and queries.
"""

from datetime import date, datetime
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from inventory.models import MonthlySummary, SummaryPeriodLock
from inventory.services.ledger_service import LedgerService
from inventory.services.summary_service import SummaryService
from utils.exceptions import ConcurrentRegenerationConflict, InvalidPeriod, ItemNotFound


def at(year, month, day, hour=12):
    return timezone.make_aware(datetime(year, month, day, hour, 0))


def record(movement_type, qty, value, when, fk_id=1, item_type='MATERIAL', **kwargs):
    return LedgerService.record(
        item_type=item_type, fk_id=fk_id, movement_type=movement_type,
        qty=qty, value=value, date=when, **kwargs
    )


def snapshot(year, month):
    return [
        (s.item_type, s.fk_id, s.opening_qty, s.in_qty, s.out_qty, s.closing_qty,
         s.opening_value, s.in_value, s.out_value, s.closing_value)
        for s in SummaryService.query(year, month)
    ]


class GenerateSummaryTests(TestCase):

    def setUp(self):
        record('IN', 100, '904', at(2025, 9, 5), sku='MAT-001', item_name='Sugar', unit='kg')
        record('OUT', 20, '180.8', at(2025, 9, 20), sku='MAT-001', item_name='Sugar', unit='kg')

    def test_single_month(self):
        """Test a month with one purchase and one issue"""
        result = SummaryService.generate(2025, 9)

        self.assertEqual(result['count'], 1)
        summary = MonthlySummary.objects.get(year=2025, month=9, item_type='MATERIAL', fk_id=1)
        self.assertEqual(
            (summary.opening_qty, summary.in_qty, summary.out_qty, summary.closing_qty),
            (Decimal('0'), Decimal('100'), Decimal('20'), Decimal('80')),
        )
        self.assertEqual(
            (summary.opening_value, summary.in_value, summary.out_value, summary.closing_value),
            (Decimal('0'), Decimal('904'), Decimal('180.80'), Decimal('723.20')),
        )
        self.assertEqual(summary.sku, 'MAT-001')
        self.assertEqual(summary.item_name, 'Sugar')

    def test_closing_equation_holds(self):
        record('IN', 7, '3.33', at(2025, 9, 21), fk_id=2)
        record('OUT', 9, '1.11', at(2025, 9, 22), fk_id=2)
        SummaryService.generate(2025, 9)
        for summary in MonthlySummary.objects.all():
            summary.full_clean()
            self.assertEqual(summary.closing_qty, summary.opening_qty + summary.in_qty - summary.out_qty)
            self.assertEqual(summary.closing_value, summary.opening_value + summary.in_value - summary.out_value)

    def test_regeneration_is_idempotent(self):
        """Test running the same month twice yields identical rows"""
        SummaryService.generate(2025, 9)
        first = snapshot(2025, 9)
        SummaryService.generate(2025, 9)

        self.assertEqual(snapshot(2025, 9), first)
        self.assertEqual(MonthlySummary.objects.count(), 1)

    def test_next_month_chains_from_closing(self):
        """Test next month's opening equals this month's closing"""
        record('IN', 10, '90.4', at(2025, 10, 3))
        SummaryService.generate(2025, 9)
        SummaryService.generate(2025, 10)

        october = MonthlySummary.objects.get(year=2025, month=10, fk_id=1)
        self.assertEqual(october.opening_qty, Decimal('80'))
        self.assertEqual(october.opening_value, Decimal('723.20'))
        self.assertEqual(october.closing_qty, Decimal('90'))
        self.assertEqual(october.closing_value, Decimal('813.60'))

    def test_regeneration_does_not_touch_other_months(self):
        record('IN', 5, '50', at(2025, 8, 10))
        SummaryService.generate(2025, 8)
        august = snapshot(2025, 8)

        SummaryService.generate(2025, 9)
        record('OUT', 10, '90.4', at(2025, 9, 25))
        SummaryService.generate(2025, 9)

        self.assertEqual(snapshot(2025, 8), august)
        september = MonthlySummary.objects.get(year=2025, month=9, fk_id=1)
        self.assertEqual(september.opening_qty, Decimal('5'))
        self.assertEqual(september.out_qty, Decimal('30'))
        self.assertEqual(september.closing_qty, Decimal('75'))

    def test_regeneration_reflects_soft_deletes(self):
        """Test rows of items whose movements were removed are recomputed"""
        only = record('IN', 3, '30', at(2025, 9, 9), fk_id=5)
        SummaryService.generate(2025, 9)
        LedgerService.soft_delete(only.id)

        SummaryService.generate(2025, 9)

        summary = MonthlySummary.objects.get(year=2025, month=9, fk_id=5)
        self.assertEqual(summary.in_qty, Decimal('0'))
        self.assertEqual(summary.closing_qty, Decimal('0'))

    def test_negative_closing_is_stored(self):
        record('OUT', 5, '10', at(2025, 9, 1), fk_id=9, item_type='PRODUCT')
        SummaryService.generate(2025, 9)
        summary = MonthlySummary.objects.get(item_type='PRODUCT', fk_id=9)
        self.assertEqual(summary.closing_qty, Decimal('-5'))
        self.assertEqual(summary.closing_value, Decimal('-10'))

    def test_pending_movements_are_excluded(self):
        record('IN', 50, '50', at(2025, 9, 6), status='PENDING')
        SummaryService.generate(2025, 9)
        self.assertEqual(MonthlySummary.objects.get(fk_id=1).in_qty, Decimal('100'))

    def test_lock_row_is_stamped(self):
        SummaryService.generate(2025, 9)
        lock = SummaryPeriodLock.objects.get(year=2025, month=9)
        self.assertIsNotNone(lock.last_generated_at)

    def test_created_by_is_recorded(self):
        SummaryService.generate(2025, 9, created_by=42)
        self.assertEqual(MonthlySummary.objects.get(fk_id=1).created_by, 42)

    def test_regeneration_keeps_created_by(self):
        """Test regenerating a month leaves the row's creator as it was"""
        SummaryService.generate(2025, 9, created_by=42)
        before = snapshot(2025, 9)
        SummaryService.generate(2025, 9, created_by=7)

        self.assertEqual(MonthlySummary.objects.get(fk_id=1).created_by, 42)
        self.assertEqual(snapshot(2025, 9), before)


class CarryForwardTests(TestCase):

    def setUp(self):
        record('IN', 10, '100', at(2025, 8, 5), fk_id=1, item_name='Idle')
        record('IN', 4, '40', at(2025, 8, 5), fk_id=2, item_name='Busy')
        record('OUT', 1, '10', at(2025, 9, 5), fk_id=2, item_name='Busy')
        SummaryService.generate(2025, 8)

    def test_plain_generate_skips_idle_items(self):
        result = SummaryService.generate(2025, 9)
        self.assertEqual([s.fk_id for s in result['items']], [2])

    def test_generate_from_last_month_keeps_idle_items(self):
        """Test idle items are carried with their previous closing balance"""
        result = SummaryService.generate_from_last_month(2025, 9)

        self.assertEqual(result['count'], 2)
        idle = MonthlySummary.objects.get(year=2025, month=9, fk_id=1)
        self.assertEqual(idle.opening_qty, Decimal('10'))
        self.assertEqual(idle.closing_qty, Decimal('10'))
        self.assertEqual(idle.closing_value, Decimal('100'))
        self.assertEqual(idle.item_name, 'Idle')

    def test_january_carries_from_december(self):
        record('IN', 2, '20', at(2024, 12, 5), fk_id=3)
        SummaryService.generate(2024, 12)
        SummaryService.generate_from_last_month(2025, 1)
        self.assertTrue(MonthlySummary.objects.filter(year=2025, month=1, fk_id=3).exists())


class GenerateForItemTests(TestCase):

    def test_item_with_history(self):
        record('IN', 100, '904', at(2025, 9, 5))
        summary = SummaryService.generate_for_item(2025, 9, 'MATERIAL', 1)
        self.assertEqual(summary.closing_qty, Decimal('100'))

    def test_item_with_earlier_history_only(self):
        record('IN', 6, '60', at(2025, 7, 5))
        summary = SummaryService.generate_for_item(2025, 9, 'material', 1)
        self.assertEqual(summary.opening_qty, Decimal('6'))
        self.assertEqual(summary.in_qty, Decimal('0'))

    def test_unknown_item(self):
        """Test an item with no history raises ItemNotFound"""
        with self.assertRaises(ItemNotFound):
            SummaryService.generate_for_item(2025, 9, 'MATERIAL', 404)
        self.assertFalse(MonthlySummary.objects.exists())

    def test_unknown_item_with_carry_forward_writes_zero_row(self):
        summary = SummaryService.generate_for_item(2025, 9, 'MATERIAL', 404, carry_forward=True)
        self.assertEqual(summary.closing_qty, Decimal('0'))
        self.assertIsNone(summary.sku)

    def test_unknown_item_type(self):
        with self.assertRaises(ItemNotFound):
            SummaryService.generate_for_item(2025, 9, 'SERVICE', 1)


class MonthToDateTests(TestCase):

    def setUp(self):
        record('IN', 10, '100', at(2025, 8, 10), fk_id=2, item_name='Salt')
        record('IN', 100, '904', at(2025, 9, 5), sku='MAT-001', item_name='Sugar')
        record('OUT', 20, '180.8', at(2025, 9, 20), sku='MAT-001', item_name='Sugar')

    def test_counts_movements_up_to_as_of(self):
        result = SummaryService.generate_month_to_date(2025, 9, as_of=date(2025, 9, 10))

        self.assertEqual(result['as_of'], date(2025, 9, 10))
        sugar = MonthlySummary.objects.get(year=2025, month=9, fk_id=1)
        self.assertEqual((sugar.in_qty, sugar.out_qty, sugar.closing_qty),
                         (Decimal('100'), Decimal('0'), Decimal('100')))

    def test_as_of_is_inclusive(self):
        SummaryService.generate_month_to_date(2025, 9, as_of='2025-09-20')
        self.assertEqual(MonthlySummary.objects.get(year=2025, month=9, fk_id=1).out_qty, Decimal('20'))

    def test_as_of_outside_month_is_clamped_to_last_day(self):
        """Test a date outside the month means the whole month"""
        for as_of in (date(2025, 10, 3), date(2025, 8, 1)):
            result = SummaryService.generate_month_to_date(2025, 9, as_of=as_of)
            self.assertEqual(result['as_of'], date(2025, 9, 30))
            self.assertEqual(MonthlySummary.objects.get(year=2025, month=9, fk_id=1).closing_qty, Decimal('80'))

    def test_items_with_earlier_history_are_included(self):
        result = SummaryService.generate_month_to_date(2025, 9, as_of=date(2025, 9, 1))

        self.assertEqual([s.fk_id for s in result['items']], [2])
        salt = result['items'][0]
        self.assertEqual((salt.opening_qty, salt.closing_qty), (Decimal('10'), Decimal('10')))
        self.assertEqual(salt.item_name, 'Salt')

    def test_full_generation_overwrites_partial_rows(self):
        SummaryService.generate_month_to_date(2025, 9, as_of=date(2025, 9, 10))
        SummaryService.generate(2025, 9)
        self.assertEqual(MonthlySummary.objects.get(year=2025, month=9, fk_id=1).out_qty, Decimal('20'))

    def test_defaults_to_current_month(self):
        today = timezone.localdate()
        result = SummaryService.generate_month_to_date()
        self.assertEqual((result['year'], result['month'], result['as_of']), (today.year, today.month, today))

    def test_invalid_as_of(self):
        with self.assertRaises(InvalidPeriod):
            SummaryService.generate_month_to_date(2025, 9, as_of='not-a-date')


class RangeViewTests(TestCase):

    def setUp(self):
        record('IN', 10, '100', at(2025, 8, 10), sku='MAT-001', item_name='Sugar')
        record('IN', 100, '904', at(2025, 9, 5), sku='MAT-001', item_name='Sugar')
        record('OUT', 20, '180.8', at(2025, 9, 20), sku='MAT-001', item_name='Sugar')
        record('IN', 5, '45', at(2025, 10, 2), sku='MAT-001', item_name='Sugar')
        record('IN', 3, '30', at(2025, 9, 7), item_type='PRODUCT', fk_id=1, sku='PRD-001', item_name='Bread')

    def test_single_month_of_one_item(self):
        """Test the block opens with the balance before the range"""
        view = SummaryService.range_view(2025, 9, 2025, 9, item_type='MATERIAL', fk_id=1)

        self.assertEqual(view['period'], {'start': date(2025, 9, 1), 'end': date(2025, 10, 1)})
        block = view['items'][0]
        self.assertEqual(block['item']['sku'], 'MAT-001')
        self.assertEqual((block['opening_qty'], block['opening_value']), (Decimal('10'), Decimal('100')))
        self.assertEqual([m['qty'] for m in block['movements']], [Decimal('100'), Decimal('20')])
        self.assertEqual(block['closing_qty'], Decimal('90'))

    def test_stacked_range_covers_every_item(self):
        view = SummaryService.range_view(2025, 9, 2025, 10)

        self.assertEqual([(b['item']['item_type'], b['item']['fk_id']) for b in view['items']],
                         [('MATERIAL', 1), ('PRODUCT', 1)])
        self.assertEqual(len(view['items'][0]['movements']), 3)
        self.assertEqual(view['items'][0]['closing_qty'], Decimal('95'))

    def test_opening_comes_from_previous_summary(self):
        SummaryService.generate(2025, 8)
        view = SummaryService.range_view(2025, 9, 2025, 9, sku='MAT-001')
        self.assertEqual(len(view['items']), 1)
        self.assertEqual(view['items'][0]['opening_qty'], Decimal('10'))

    def test_start_after_end(self):
        with self.assertRaises(InvalidPeriod):
            SummaryService.range_view(2025, 10, 2025, 9)


class PeriodValidationTests(TestCase):

    def test_invalid_months(self):
        for month in (0, 13, 'x'):
            with self.assertRaises(InvalidPeriod):
                SummaryService.generate(2025, month)

    def test_invalid_year(self):
        with self.assertRaises(InvalidPeriod):
            SummaryService.query(0, 1)

    def test_empty_month(self):
        """Test a month with no activity has nothing to generate or read"""
        self.assertEqual(SummaryService.generate(2030, 1)['count'], 0)
        self.assertEqual(list(SummaryService.query(2030, 1)), [])


class ConcurrentGenerationTests(TestCase):

    def test_busy_period_conflicts_with_nowait(self):
        """Test a locked month fails fast when nowait is requested"""
        with mock.patch.object(SummaryPeriodLock.objects, 'select_for_update',
                               side_effect=DatabaseError('could not obtain lock on row')):
            with self.assertRaises(ConcurrentRegenerationConflict):
                SummaryService.generate(2025, 9, nowait=True)

    def test_database_errors_propagate_without_nowait(self):
        with mock.patch.object(SummaryPeriodLock.objects, 'select_for_update',
                               side_effect=DatabaseError('connection lost')):
            with self.assertRaises(DatabaseError):
                SummaryService.generate(2025, 9)


class QueryTests(TestCase):

    def setUp(self):
        record('IN', 1, '1', at(2025, 9, 1), fk_id=2, item_type='PRODUCT', sku='P-2', item_name='Bread')
        record('IN', 1, '1', at(2025, 9, 1), fk_id=3, sku='M-3', item_name='Yeast')
        record('IN', 1, '1', at(2025, 9, 1), fk_id=1, sku='M-1', item_name='Flour')
        SummaryService.generate(2025, 9)

    def test_ordering(self):
        keys = [(s.item_type, s.fk_id) for s in SummaryService.query(2025, 9)]
        self.assertEqual(keys, [('MATERIAL', 1), ('MATERIAL', 3), ('PRODUCT', 2)])

    def test_filters(self):
        self.assertEqual([s.fk_id for s in SummaryService.query(2025, 9, item_type='product')], [2])
        self.assertEqual([s.fk_id for s in SummaryService.query(2025, 9, sku='M-3')], [3])
        self.assertEqual([s.fk_id for s in SummaryService.query(2025, 9, fk_id=1)], [1])

    def test_grouped_blocks(self):
        blocks = SummaryService.grouped(2025, 9)
        self.assertEqual([b['item_type'] for b in blocks], ['MATERIAL', 'PRODUCT'])
        self.assertEqual([s.item_name for s in blocks[0]['rows']], ['Flour', 'Yeast'])
        self.assertEqual(blocks[0]['totals']['closing_qty'], Decimal('2'))
