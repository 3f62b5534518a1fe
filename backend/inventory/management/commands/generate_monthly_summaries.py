"""
Django management command to generate monthly stock summaries.

Usage:
    python manage.py generate_monthly_summaries                      # previous month, carried forward
    python manage.py generate_monthly_summaries --year 2025 --month 9
    python manage.py generate_monthly_summaries --year 2025 --month 9 --no-carry-forward
    python manage.py generate_monthly_summaries --year 2025 --month 9 --item-type MATERIAL --fk-id 1
    python manage.py generate_monthly_summaries --year 2025 --month 9 --export
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from rest_framework.exceptions import APIException

from inventory.services.balance_service import previous_month
from inventory.services.export_service import StockExportService
from inventory.services.summary_service import SummaryService


class Command(BaseCommand):
    help = 'Generate (or regenerate) monthly stock summaries'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, help='Calendar year (defaults to the previous month)')
        parser.add_argument('--month', type=int, help='Month 1-12 (defaults to the previous month)')
        parser.add_argument(
            '--no-carry-forward',
            action='store_true',
            help="Only summarize items with activity or an existing row in the month",
        )
        parser.add_argument('--item-type', help='Generate a single item (MATERIAL or PRODUCT)')
        parser.add_argument('--fk-id', type=int, help='Item id, with --item-type')
        parser.add_argument('--export', action='store_true', help='Also write an XLSX export to EXPORT_DIR')

    def handle(self, *args, **options):
        year, month = options['year'], options['month']
        if year is None or month is None:
            today = timezone.localdate()
            year, month = previous_month(today.year, today.month)

        try:
            if options['item_type']:
                if options['fk_id'] is None:
                    raise CommandError('--fk-id is required with --item-type')
                summary = SummaryService.generate_for_item(year, month, options['item_type'], options['fk_id'])
                self.stdout.write(self.style.SUCCESS(
                    f'{summary.item_type}#{summary.fk_id} {year}-{month:02d}: '
                    f'opening {summary.opening_qty}, in {summary.in_qty}, '
                    f'out {summary.out_qty}, closing {summary.closing_qty}'
                ))
                return

            if options['no_carry_forward']:
                result = SummaryService.generate(year, month)
            else:
                result = SummaryService.generate_from_last_month(year, month)
        except APIException as e:
            raise CommandError(str(e.detail))

        self.stdout.write(self.style.SUCCESS(
            f'Generated {result["count"]} summaries for {year}-{month:02d}'
        ))

        if options['export']:
            buffer = StockExportService.export_summaries_to_xlsx(result['items'], year, month)
            path = StockExportService.save_to_export_dir(buffer, f'{year}-{month:02d}.xlsx', prefix='stock-summary-')
            self.stdout.write(f'Export written to {path}')
