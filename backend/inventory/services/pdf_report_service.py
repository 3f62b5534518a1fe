"""
Monthly stock summary as a printable PDF (ReportLab).

One table per item type, each closed by a totals row.
"""

import calendar
import logging
from decimal import Decimal
from io import BytesIO

from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from inventory.services.summary_service import SummaryService
from utils.constants import ITEM_TYPE_LABELS

logger = logging.getLogger(__name__)

TABLE_HEADER = [
    'Item', 'SKU', 'Unit',
    'Opening Qty', 'In Qty', 'Out Qty', 'Closing Qty',
    'Opening Value', 'In Value', 'Out Value', 'Closing Value',
]
NUMERIC_FIELDS = (
    'opening_qty', 'in_qty', 'out_qty', 'closing_qty',
    'opening_value', 'in_value', 'out_value', 'closing_value',
)


class PDFReportService:

    @staticmethod
    def generate_monthly_summary_pdf(year: int, month: int) -> BytesIO:
        """
        Generate the monthly stock summary PDF.

        Args:
            year: calendar year
            month: 1-12

        Returns:
            PDF bytes in a BytesIO, rewound
        """
        logger.info(f"Generating PDF stock summary for {year}-{month:02d}")

        blocks = SummaryService.grouped(year, month)

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=36,
            leftMargin=36,
            topMargin=36,
            bottomMargin=18,
        )

        elements = []
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'CustomTitle',
            parent=styles['Heading1'],
            fontSize=20,
            textColor=colors.HexColor('#1a365d'),
            spaceAfter=20,
            alignment=TA_CENTER
        )
        heading_style = ParagraphStyle(
            'CustomHeading',
            parent=styles['Heading2'],
            fontSize=14,
            textColor=colors.HexColor('#2a4365'),
            spaceAfter=8,
            spaceBefore=12
        )
        normal_style = styles['Normal']

        elements.append(Paragraph(
            f"Monthly Stock Summary<br/>{calendar.month_name[month]} {year}",
            title_style
        ))

        for block in blocks:
            label = ITEM_TYPE_LABELS.get(block['item_type'], block['item_type'])
            elements.append(Paragraph(label, heading_style))

            if not block['rows']:
                elements.append(Paragraph("<i>No records for this period.</i>", normal_style))
                continue

            data = [TABLE_HEADER]
            for row in block['rows']:
                data.append([
                    row.item_name or f"#{row.fk_id}",
                    row.sku or '',
                    row.unit or '',
                    *[PDFReportService._format_number(getattr(row, field)) for field in NUMERIC_FIELDS],
                ])
            data.append([
                'Total', '', '',
                *[PDFReportService._format_number(block['totals'][field]) for field in NUMERIC_FIELDS],
            ])

            table = Table(data, colWidths=[2.2*inch, 1*inch, 0.5*inch] + [0.8*inch] * 8, repeatRows=1)
            table.setStyle(TableStyle([
                ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2c5282')),
                ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
                ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
                ('FONTSIZE', (0, 0), (-1, -1), 8),
                ('ALIGN', (3, 0), (-1, -1), 'RIGHT'),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
                ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#bee3f8')),
                ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#ebf8ff')),
                ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ]))
            elements.append(table)
            elements.append(Spacer(1, 12))

        elements.append(Spacer(1, 24))
        elements.append(Paragraph(
            f"<i>Report generated by IMS on {timezone.localtime().strftime('%Y-%m-%d %H:%M:%S')}</i>",
            ParagraphStyle('Footer', parent=normal_style, fontSize=8, textColor=colors.grey, alignment=TA_CENTER)
        ))

        doc.build(elements)
        buffer.seek(0)
        logger.info(f"Successfully generated stock summary PDF for {year}-{month:02d}")
        return buffer

    @staticmethod
    def _format_number(value) -> str:
        return f"{Decimal(value or 0):,.2f}"
