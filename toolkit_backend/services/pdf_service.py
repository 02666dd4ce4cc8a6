"""
PDF generation service for inventory reports and exports.
"""
from collections import Counter
from datetime import datetime, timezone
from io import BytesIO
import logging

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from toolkit_backend.models.toolkit import Toolkit
from toolkit_backend.models.variant import StockStatus

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    StockStatus.AVAILABLE: colors.HexColor('#e8f6f3'),
    StockStatus.LOW: colors.HexColor('#fdf2e9'),
    StockStatus.OUT: colors.HexColor('#fdedec'),
}


class PDFService:
    """Service for generating PDF reports."""

    def generate_stock_report(self, toolkits: list[Toolkit]) -> BytesIO:
        """
        Generate a PDF stock report covering every toolkit and variant.

        Args:
            toolkits: Toolkits to include, in display order

        Returns:
            BytesIO buffer containing the PDF
        """
        logger.info("Generating stock PDF report for %s toolkits", len(toolkits))

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(letter),
            rightMargin=0.5 * inch,
            leftMargin=0.5 * inch,
            topMargin=0.5 * inch,
            bottomMargin=0.5 * inch,
            title="Toolkit Stock Report",
        )

        elements = []
        styles = getSampleStyleSheet()
        title_style = styles['Heading1']
        subtitle_style = styles['Heading2']
        normal_style = styles['Normal']

        elements.append(Paragraph("Toolkit Stock Report", title_style))
        elements.append(Spacer(1, 0.2 * inch))
        generated_at = datetime.now(tz=timezone.utc).strftime('%Y-%m-%d %H:%M UTC')
        elements.append(Paragraph(f"Generated: {generated_at}", normal_style))
        elements.append(Spacer(1, 0.3 * inch))

        if not toolkits:
            elements.append(Paragraph("No toolkits are currently in stock.", normal_style))
        else:
            for toolkit in toolkits:
                elements.append(
                    Paragraph(
                        f"{toolkit.name} ({toolkit.type}) - {toolkit.overall_status.value.upper()}",
                        subtitle_style,
                    )
                )
                elements.append(Spacer(1, 0.1 * inch))
                elements.append(self._variant_table(toolkit))
                elements.append(Spacer(1, 0.2 * inch))

            elements.append(Spacer(1, 0.2 * inch))
            elements.append(Paragraph("Summary", subtitle_style))
            elements.append(Spacer(1, 0.1 * inch))
            elements.append(self._summary_table(toolkits))

        doc.build(elements)
        buffer.seek(0)

        logger.info("Stock PDF report generated successfully")
        return buffer

    def _variant_table(self, toolkit: Toolkit) -> Table:
        table_data = [['Size', 'Color', 'Stock', 'Min Level', 'Status', 'In Use', 'Last Updated']]
        for variant in toolkit.variants:
            table_data.append([
                variant.size,
                variant.color,
                str(variant.stock_count),
                str(variant.min_stock_level),
                variant.status.value,
                'yes' if variant.inuse else 'no',
                variant.last_updated_date.strftime('%Y-%m-%d'),
            ])
        table_data.append(['Total', '', str(toolkit.total_stock), '', '', '', ''])

        table = Table(table_data, repeatRows=1, hAlign='LEFT')
        style = TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2c3e50')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),

            ('ALIGN', (2, 1), (3, -1), 'RIGHT'),
            ('FONTNAME', (0, 1), (-1, -2), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -2), 8),
            ('BOTTOMPADDING', (0, 1), (-1, -2), 6),

            ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#ecf0f1')),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, -1), (-1, -1), 9),

            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ])
        for row, variant in enumerate(toolkit.variants, start=1):
            style.add('BACKGROUND', (0, row), (-1, row), STATUS_COLORS[variant.status])
        table.setStyle(style)
        return table

    def _summary_table(self, toolkits: list[Toolkit]) -> Table:
        status_counts = Counter(toolkit.overall_status for toolkit in toolkits)
        variant_count = sum(len(toolkit.variants) for toolkit in toolkits)
        summary_data = [
            ['Metric', 'Value'],
            ['Toolkits', str(len(toolkits))],
            ['Variants', str(variant_count)],
            ['Items In Stock', str(sum(toolkit.total_stock for toolkit in toolkits))],
            ['Available', str(status_counts[StockStatus.AVAILABLE])],
            ['Low Stock', str(status_counts[StockStatus.LOW])],
            ['Out Of Stock', str(status_counts[StockStatus.OUT])],
        ]

        table = Table(summary_data, colWidths=[3 * inch, 2 * inch])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498db')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 10),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 12),

            ('ALIGN', (0, 1), (0, -1), 'LEFT'),
            ('ALIGN', (1, 1), (1, -1), 'RIGHT'),
            ('FONTNAME', (0, 1), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (1, 1), (1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 1), (-1, -1), 8),

            ('GRID', (0, 0), (-1, -1), 1, colors.grey),
        ]))
        return table
