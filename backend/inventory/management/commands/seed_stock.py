"""
Django management command to seed stock movements for trying out monthly summaries.

Creates three months of IN/OUT movements (ending with the current month)
for a handful of materials and products.

Usage:
    python manage.py seed_stock
    python manage.py seed_stock --clear   # Remove previously seeded movements first
"""

import random
from datetime import datetime
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from inventory.models import ItemType, StockMovement
from inventory.services.balance_service import previous_month
from inventory.services.ledger_service import LedgerService

SEED_BATCH = 'SEED'

MATERIALS = [
    {'fk_id': 1, 'sku': 'MAT-FLOUR', 'item_name': 'Wheat Flour', 'unit': 'kg', 'cost': '9.04'},
    {'fk_id': 2, 'sku': 'MAT-SUGAR', 'item_name': 'Sugar', 'unit': 'kg', 'cost': '12.50'},
    {'fk_id': 3, 'sku': 'MAT-BUTTER', 'item_name': 'Butter', 'unit': 'kg', 'cost': '48.00'},
    {'fk_id': 4, 'sku': 'MAT-EGG', 'item_name': 'Eggs', 'unit': 'pcs', 'cost': '1.20'},
    {'fk_id': 5, 'sku': 'MAT-BOX', 'item_name': 'Packing Box', 'unit': 'pcs', 'cost': '0.75'},
]

PRODUCTS = [
    {'fk_id': 1, 'sku': 'PRD-BREAD', 'item_name': 'Bread Loaf', 'unit': 'pcs', 'cost': '3.10'},
    {'fk_id': 2, 'sku': 'PRD-CAKE', 'item_name': 'Butter Cake', 'unit': 'pcs', 'cost': '14.60'},
    {'fk_id': 3, 'sku': 'PRD-COOKIE', 'item_name': 'Cookie Pack', 'unit': 'pack', 'cost': '5.25'},
]


class Command(BaseCommand):
    help = 'Seed three months of stock movements for 5 materials and 3 products'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Soft-delete previously seeded movements before seeding',
        )
        parser.add_argument('--seed', type=int, default=None, help='Random seed for repeatable data')

    def handle(self, *args, **options):
        rng = random.Random(options['seed'])

        if options['clear']:
            seeded = StockMovement.objects.alive().filter(batch_number=SEED_BATCH)
            count = 0
            for movement in seeded:
                movement.soft_delete()
                count += 1
            self.stdout.write(self.style.WARNING(f'Removed {count} seeded movements'))

        today = timezone.localdate()
        months = [(today.year, today.month)]
        for _ in range(2):
            months.insert(0, previous_month(*months[0]))

        created = 0
        with transaction.atomic():
            for year, month in months:
                for item_type, items in ((ItemType.MATERIAL, MATERIALS), (ItemType.PRODUCT, PRODUCTS)):
                    for item in items:
                        created += self._seed_item_month(rng, item_type, item, year, month)

        self.stdout.write(self.style.SUCCESS(
            f'Created {created} movements for {", ".join(f"{y}-{m:02d}" for y, m in months)}'
        ))

    def _seed_item_month(self, rng, item_type, item, year, month):
        cost = Decimal(item['cost'])
        in_qty = rng.randint(50, 200)
        out_qty = rng.randint(10, in_qty // 2)
        movements = [
            (StockMovement.MovementType.IN, StockMovement.Source.PURCHASE, in_qty, rng.randint(1, 10)),
            (StockMovement.MovementType.OUT, StockMovement.Source.SALES, out_qty, rng.randint(11, 28)),
        ]
        for movement_type, source, qty, day in movements:
            LedgerService.record(
                item_type=item_type,
                fk_id=item['fk_id'],
                movement_type=movement_type,
                qty=qty,
                unit_cost=cost,
                date=timezone.make_aware(datetime(year, month, day, 10, 0)),
                source=source,
                sku=item['sku'],
                item_name=item['item_name'],
                unit=item['unit'],
                batch_number=SEED_BATCH,
                description='Seeded test data',
            )
        return len(movements)
