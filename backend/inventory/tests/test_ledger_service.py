"""
Unit tests for the stock ledger service.
"""

from datetime import datetime
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from inventory.models import MonthlySummary, StockMovement
from inventory.services.ledger_service import LedgerService
from utils.exceptions import InvalidMovementType, InvalidQuantity, LedgerImmutableError


def at(year, month, day, hour=12):
    return timezone.make_aware(datetime(year, month, day, hour, 0))


class LedgerRecordTests(TestCase):

    def test_record_in_movement(self):
        """Test recording an IN movement computes value from unit cost"""
        movement = LedgerService.record(
            item_type='MATERIAL', fk_id=1, sku='MAT-001', movement_type='IN',
            qty=100, unit_cost=Decimal('9.04'), date=at(2025, 9, 5),
            source=StockMovement.Source.PURCHASE,
        )

        self.assertEqual(movement.qty, Decimal('100'))
        self.assertEqual(movement.value, Decimal('904.00'))
        self.assertEqual(movement.movement_type, 'IN')
        self.assertEqual(movement.status, StockMovement.Status.ACTIVE)
        self.assertEqual(movement.date, at(2025, 9, 5))

    def test_explicit_value_is_kept(self):
        """Test an explicit value wins over qty x unit cost"""
        movement = LedgerService.record(
            item_type='MATERIAL', fk_id=1, movement_type='OUT', qty=20, value='180.8',
        )
        self.assertEqual(movement.value, Decimal('180.80'))
        self.assertEqual(movement.unit_cost, Decimal('9.04'))

    def test_lowercase_types_are_normalized(self):
        movement = LedgerService.record(item_type='product', fk_id=3, movement_type='out', qty='2.5')
        self.assertEqual(movement.item_type, 'PRODUCT')
        self.assertEqual(movement.movement_type, 'OUT')
        self.assertEqual(movement.qty, Decimal('2.50'))

    def test_zero_quantity_allowed(self):
        movement = LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='IN', qty=0)
        self.assertEqual(movement.qty, Decimal('0'))

    def test_negative_quantity_rejected(self):
        """Test negative quantities raise InvalidQuantity and write nothing"""
        with self.assertRaises(InvalidQuantity):
            LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='IN', qty=-1)
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_non_numeric_quantity_rejected(self):
        for qty in ('abc', None, 'NaN', True):
            with self.assertRaises(InvalidQuantity):
                LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='IN', qty=qty)

    def test_quantity_finer_than_a_cent_rejected(self):
        """Test quantities are refused rather than rounded to 2 decimal places"""
        for qty in ('0.004', '0.125', Decimal('99.875')):
            with self.assertRaises(InvalidQuantity) as context:
                LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='OUT', qty=qty)
            self.assertIn('2 decimal places', str(context.exception.detail))
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_unknown_movement_type_rejected(self):
        with self.assertRaises(InvalidMovementType) as context:
            LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='MOVE', qty=1)
        self.assertIn('IN or OUT', str(context.exception.detail))

    def test_unknown_item_type_rejected(self):
        with self.assertRaises(InvalidMovementType):
            LedgerService.record(item_type='SERVICE', fk_id=1, movement_type='IN', qty=1)

    def test_recording_does_not_touch_summaries(self):
        LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='IN', qty=5, date=at(2025, 9, 1))
        self.assertFalse(MonthlySummary.objects.exists())


class LedgerImmutabilityTests(TestCase):

    def setUp(self):
        self.movement = LedgerService.record(
            item_type='MATERIAL', fk_id=1, movement_type='IN', qty=10, unit_cost=2, date=at(2025, 9, 1)
        )

    def test_saved_movement_cannot_be_modified(self):
        """Test editing a recorded movement is refused"""
        self.movement.qty = Decimal('5')
        with self.assertRaises(LedgerImmutableError):
            self.movement.save()
        self.movement.refresh_from_db()
        self.assertEqual(self.movement.qty, Decimal('10'))

    def test_soft_delete(self):
        """Test soft delete marks the row and removes it from the ledger"""
        LedgerService.soft_delete(self.movement.id, deleted_by=7)

        self.movement.refresh_from_db()
        self.assertEqual(self.movement.status, StockMovement.Status.DELETED)
        self.assertIsNotNone(self.movement.deleted_at)
        self.assertEqual(self.movement.deleted_by, 7)
        self.assertFalse(self.movement.is_posted)
        self.assertEqual(list(LedgerService.list_movements('MATERIAL', 1)), [])

    def test_soft_delete_twice_fails(self):
        LedgerService.soft_delete(self.movement.id)
        with self.assertRaises(StockMovement.DoesNotExist):
            LedgerService.soft_delete(self.movement.id)


class ListMovementsTests(TestCase):

    def setUp(self):
        self.first = LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='IN', qty=1, date=at(2025, 8, 31))
        self.second = LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='IN', qty=2, date=at(2025, 9, 10))
        self.third = LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='OUT', qty=1, date=at(2025, 9, 10))
        self.late = LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='OUT', qty=1, date=at(2025, 10, 1, 0))
        LedgerService.record(item_type='MATERIAL', fk_id=2, movement_type='IN', qty=9, date=at(2025, 9, 10))
        LedgerService.record(item_type='MATERIAL', fk_id=1, movement_type='IN', qty=9, date=at(2025, 9, 11),
                             status=StockMovement.Status.PENDING)

    def test_ordered_by_date_then_insertion(self):
        movements = list(LedgerService.list_movements('MATERIAL', 1))
        self.assertEqual(movements, [self.first, self.second, self.third, self.late])

    def test_window_is_half_open(self):
        movements = list(LedgerService.list_movements('MATERIAL', 1, start=at(2025, 9, 1, 0), end=at(2025, 10, 1, 0)))
        self.assertEqual(movements, [self.second, self.third])

    def test_open_ended_windows(self):
        self.assertEqual(list(LedgerService.list_movements('MATERIAL', 1, end=at(2025, 9, 1, 0))), [self.first])
        self.assertEqual(list(LedgerService.list_movements('MATERIAL', 1, start=at(2025, 10, 1, 0))), [self.late])

    def test_pending_movements_are_not_posted(self):
        quantities = [m.qty for m in LedgerService.list_movements('MATERIAL', 1)]
        self.assertNotIn(Decimal('9'), quantities)
