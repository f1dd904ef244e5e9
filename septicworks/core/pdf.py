"""Shared reportlab building blocks for the documents the office prints"""
import io
from decimal import Decimal
from xml.sax.saxutils import escape

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

HEADER_BG = colors.HexColor("#1e3a5f")
MUTED = colors.HexColor("#475569")
GRID = colors.HexColor("#cbd5e1")


def money(value):
    amount = Decimal(value or 0).quantize(Decimal('0.01'))
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):,.2f}"


def text(value):
    """Escape user text for Paragraph markup"""
    return escape(str(value)) if value not in (None, '') else '-'


def build_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="Muted", parent=styles["Normal"], textColor=MUTED, fontSize=9))
    styles.add(ParagraphStyle(name="BodySmall", parent=styles["Normal"], fontSize=10, leading=13))
    styles.add(ParagraphStyle(name="DocTitle", parent=styles["Heading1"], fontSize=18, textColor=HEADER_BG))
    return styles


def company_header(styles, title, reference=None, date_value=None):
    """Company block on the left, document title/reference on the right"""
    company_lines = [
        f"<b>{text(settings.COMPANY_NAME)}</b>",
        text(settings.COMPANY_ADDRESS) if settings.COMPANY_ADDRESS else '',
        text(settings.COMPANY_PHONE) if settings.COMPANY_PHONE else '',
        text(settings.COMPANY_EMAIL) if settings.COMPANY_EMAIL else '',
    ]
    right_lines = [f"<b>{text(title)}</b>"]
    if reference:
        right_lines.append(f"No. {text(reference)}")
    if date_value:
        right_lines.append(f"Date: {text(date_value)}")

    table = Table(
        [[Paragraph("<br/>".join(filter(None, company_lines)), styles["BodySmall"]),
          Paragraph("<br/>".join(right_lines), styles["BodySmall"])]],
        colWidths=[110 * mm, 65 * mm],
    )
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (1, 0), (1, 0), "RIGHT"),
    ]))
    return table


def line_items_table(rows, headers, col_widths):
    """Grid table with a dark header row; numeric columns right aligned"""
    table = Table([headers] + rows, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.5, GRID),
        ("ALIGN", (-2, 1), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    return table


def totals_table(rows):
    """Right-aligned label/amount pairs; the last row is emphasised"""
    table = Table(rows, colWidths=[120 * mm, 55 * mm])
    table.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("LINEABOVE", (0, -1), (-1, -1), 1, HEADER_BG),
    ]))
    return table


def render(story):
    """Lay out the flowables on US Letter and return the PDF bytes"""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=LETTER,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=16 * mm,
        bottomMargin=16 * mm,
    )
    doc.build(story)
    return buffer.getvalue()


def spacer(height=6):
    return Spacer(1, height)
