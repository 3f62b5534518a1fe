"""
Stock Export Service

Generates CSV and XLSX exports of monthly summaries and stock movements.
Spreadsheets are described by a column model:

    {'header': 'Opening Qty', 'key': 'opening_qty', 'datatype': 'number', 'width': 14}

``datatype`` picks the cell number format (date, datetime, time, number,
currency, or plain text).
"""

import csv
import logging
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO, StringIO
from pathlib import Path

from django.conf import settings
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

DATE_TYPES = ('date',)
DATETIME_TYPES = ('datetime', 'timestamp')
NUMBER_TYPES = ('number', 'decimal', 'integer', 'float')
CURRENCY_TYPES = ('currency', 'money')

NUMBER_FORMATS = {
    'date': 'yyyy-mm-dd',
    'datetime': 'yyyy-mm-dd hh:mm:ss',
    'time': 'hh:mm:ss',
    'number': '#,##0.00',
    'currency': '"KES" #,##0.00',
}

SUMMARY_COLUMNS = [
    {'header': 'Item Type', 'key': 'item_type', 'datatype': 'string', 'width': 12},
    {'header': 'Item ID', 'key': 'fk_id', 'datatype': 'integer', 'width': 10},
    {'header': 'SKU', 'key': 'sku', 'datatype': 'string', 'width': 18},
    {'header': 'Item Name', 'key': 'item_name', 'datatype': 'string', 'width': 30},
    {'header': 'Unit', 'key': 'unit', 'datatype': 'string', 'width': 8},
    {'header': 'Opening Qty', 'key': 'opening_qty', 'datatype': 'number', 'width': 14},
    {'header': 'In Qty', 'key': 'in_qty', 'datatype': 'number', 'width': 12},
    {'header': 'Out Qty', 'key': 'out_qty', 'datatype': 'number', 'width': 12},
    {'header': 'Closing Qty', 'key': 'closing_qty', 'datatype': 'number', 'width': 14},
    {'header': 'Opening Value', 'key': 'opening_value', 'datatype': 'currency', 'width': 16},
    {'header': 'In Value', 'key': 'in_value', 'datatype': 'currency', 'width': 16},
    {'header': 'Out Value', 'key': 'out_value', 'datatype': 'currency', 'width': 16},
    {'header': 'Closing Value', 'key': 'closing_value', 'datatype': 'currency', 'width': 16},
]

MOVEMENT_COLUMNS = [
    {'header': 'ID', 'key': 'id', 'datatype': 'integer', 'width': 8},
    {'header': 'Date', 'key': 'date', 'datatype': 'datetime', 'width': 20},
    {'header': 'Item Type', 'key': 'item_type', 'datatype': 'string', 'width': 12},
    {'header': 'Item ID', 'key': 'fk_id', 'datatype': 'integer', 'width': 10},
    {'header': 'SKU', 'key': 'sku', 'datatype': 'string', 'width': 18},
    {'header': 'Item Name', 'key': 'item_name', 'datatype': 'string', 'width': 30},
    {'header': 'Movement', 'key': 'movement_type', 'datatype': 'string', 'width': 10},
    {'header': 'Source', 'key': 'source', 'datatype': 'string', 'width': 16},
    {'header': 'Qty', 'key': 'qty', 'datatype': 'number', 'width': 12},
    {'header': 'Unit', 'key': 'unit', 'datatype': 'string', 'width': 8},
    {'header': 'Unit Cost', 'key': 'unit_cost', 'datatype': 'currency', 'width': 14},
    {'header': 'Value', 'key': 'value', 'datatype': 'currency', 'width': 16},
    {'header': 'Batch', 'key': 'batch_number', 'datatype': 'string', 'width': 24},
    {'header': 'Status', 'key': 'status', 'datatype': 'string', 'width': 12},
    {'header': 'Description', 'key': 'description', 'datatype': 'string', 'width': 40},
]


def _format_for(datatype):
    datatype = (datatype or '').lower()
    if datatype in DATE_TYPES:
        return NUMBER_FORMATS['date']
    if datatype in DATETIME_TYPES:
        return NUMBER_FORMATS['datetime']
    if datatype == 'time':
        return NUMBER_FORMATS['time']
    if datatype in NUMBER_TYPES:
        return NUMBER_FORMATS['number']
    if datatype in CURRENCY_TYPES:
        return NUMBER_FORMATS['currency']
    return None


def _cell_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        # Excel has no time zones
        return timezone.localtime(value).replace(tzinfo=None) if timezone.is_aware(value) else value
    return value


def _get(row, key):
    if isinstance(row, dict):
        return row.get(key)
    return getattr(row, key, None)


class StockExportService:
    """Service for exporting stock data to CSV and XLSX."""

    @staticmethod
    def create_excel_file(columns, rows, sheet_name='Sheet1') -> BytesIO:
        """
        Build an XLSX workbook from a column model and rows (dicts or objects).

        Returns:
            BytesIO containing the workbook
        """
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name[:31]
        wb.properties.creator = 'IMS Backend'

        header_font = Font(name='Calibri', size=11, bold=True, color='FFFFFF')
        header_fill = PatternFill(start_color='2C5282', end_color='2C5282', fill_type='solid')
        header_alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
        number_alignment = Alignment(horizontal='right', vertical='center')
        border = Border(
            left=Side(style='thin', color='BEE3F8'),
            right=Side(style='thin', color='BEE3F8'),
            top=Side(style='thin', color='BEE3F8'),
            bottom=Side(style='thin', color='BEE3F8')
        )

        for col_num, column in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col_num, value=column.get('header') or column['key'])
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = border
            ws.column_dimensions[get_column_letter(col_num)].width = column.get('width') or 15

        formats = [_format_for(column.get('datatype')) for column in columns]

        row_count = 0
        for row_num, row in enumerate(rows, 2):
            for col_num, column in enumerate(columns, 1):
                cell = ws.cell(row=row_num, column=col_num, value=_cell_value(_get(row, column['key'])))
                cell.border = border
                if formats[col_num - 1]:
                    cell.number_format = formats[col_num - 1]
                    if formats[col_num - 1] in (NUMBER_FORMATS['number'], NUMBER_FORMATS['currency']):
                        cell.alignment = number_alignment
            row_count += 1

        ws.freeze_panes = 'A2'

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        logger.info(f"XLSX export '{sheet_name}' completed with {row_count} rows")
        return output

    @staticmethod
    def create_csv_file(columns, rows) -> StringIO:
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow([column.get('header') or column['key'] for column in columns])
        for row in rows:
            values = []
            for column in columns:
                value = _get(row, column['key'])
                if isinstance(value, datetime):
                    value = timezone.localtime(value).strftime('%Y-%m-%d %H:%M:%S') if timezone.is_aware(value) \
                        else value.strftime('%Y-%m-%d %H:%M:%S')
                elif isinstance(value, date):
                    value = value.isoformat()
                values.append('' if value is None else value)
            writer.writerow(values)
        output.seek(0)
        return output

    @staticmethod
    def export_summaries_to_xlsx(summaries, year, month) -> BytesIO:
        return StockExportService.create_excel_file(
            SUMMARY_COLUMNS, summaries, sheet_name=f'Summary {year}-{month:02d}'
        )

    @staticmethod
    def export_summaries_to_csv(summaries) -> StringIO:
        return StockExportService.create_csv_file(SUMMARY_COLUMNS, summaries)

    @staticmethod
    def export_movements_to_xlsx(movements) -> BytesIO:
        return StockExportService.create_excel_file(MOVEMENT_COLUMNS, movements, sheet_name='Stock Movements')

    @staticmethod
    def save_to_export_dir(buffer, filename, prefix='') -> Path:
        """Write an export buffer under settings.EXPORT_DIR and return the path."""
        export_dir = Path(settings.EXPORT_DIR)
        export_dir.mkdir(parents=True, exist_ok=True)
        path = export_dir / f"{prefix}{Path(filename).name}"
        data = buffer.getvalue()
        if isinstance(data, str):
            path.write_text(data, encoding='utf-8')
        else:
            path.write_bytes(data)
        logger.info(f"Export written to {path}")
        return path
