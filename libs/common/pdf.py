"""
PDF generation utilities using ReportLab.
"""

import io
from datetime import datetime
from typing import Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BRAND_COLOR = colors.HexColor("#b45309")
MUTED_COLOR = colors.HexColor("#64748b")
GRID_COLOR = colors.HexColor("#e2e8f0")


def generate_table_report_pdf(
    title: str,
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    summary: Optional[Sequence[tuple[str, str]]] = None,
    subtitle: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """
    Render a landscape A4 report: title, optional summary block, data table.

    ``rows`` must already be formatted strings, one list per table row.
    Returns the PDF as bytes for download.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        rightMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
        title=title,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=20,
        textColor=BRAND_COLOR,
        spaceAfter=6,
    )
    muted_style = ParagraphStyle(
        "Muted", parent=styles["Normal"], fontSize=9, textColor=MUTED_COLOR
    )

    generated_str = (generated_at or datetime.now()).strftime("%B %d, %Y %H:%M")
    elements = [Paragraph(title, title_style)]
    if subtitle:
        elements.append(Paragraph(subtitle, styles["Heading3"]))
    elements.append(Paragraph(f"Generated {generated_str}", muted_style))
    elements.append(Spacer(1, 14))

    if summary:
        summary_table = Table(
            [[label, value] for label, value in summary],
            colWidths=[2 * inch, 2.5 * inch],
        )
        summary_table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 10),
                    ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f8fafc")),
                    ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                    ("PADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        elements.append(summary_table)
        elements.append(Spacer(1, 14))

    if rows:
        data_table = Table([list(headers)] + [list(row) for row in rows], repeatRows=1)
        data_table.setStyle(
            TableStyle(
                [
                    # Header
                    ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 9),
                    # Body
                    ("FONTSIZE", (0, 1), (-1, -1), 8),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#fafaf9")]),
                    ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                    ("PADDING", (0, 0), (-1, -1), 5),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        elements.append(data_table)
    else:
        elements.append(Paragraph("No records for this period.", styles["Normal"]))

    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()
