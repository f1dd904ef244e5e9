"""Printable maintenance report for a completed visit"""
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph

from septicworks.core.pdf import build_styles, company_header, line_items_table, render, spacer, text
from .models import INSPECTION_CHECKS


def _answer(value):
    if value is None:
        return 'N/A'
    return 'YES' if value else 'NO'


def render_visit_pdf(visit):
    styles = build_styles()
    work = visit.work
    story = [
        company_header(styles, 'MAINTENANCE REPORT', reference=f"{work.pk}-{visit.visit_number}",
                       date_value=visit.actual_visit_date or visit.scheduled_date),
        spacer(12),
        Paragraph(
            f"<b>Property:</b> {text(work.property_address)}<br/>"
            f"<b>Owner:</b> {text(work.applicant_name)}<br/>"
            f"<b>Visit:</b> {visit.visit_number} - {text(visit.get_status_display())}<br/>"
            f"<b>Technician:</b> {text(visit.completed_by_staff or visit.staff)}",
            styles["BodySmall"],
        ),
        spacer(10),
    ]

    if visit.level_inlet is not None or visit.level_outlet is not None:
        story.append(Paragraph(
            f"Inlet level: {text(visit.level_inlet)} - Outlet level: {text(visit.level_outlet)}", styles["BodySmall"],
        ))
        story.append(spacer(6))

    rows = []
    for check in INSPECTION_CHECKS:
        label = check.replace('_', ' ').capitalize()
        notes = getattr(visit, f"{check}_notes")
        rows.append([label, _answer(getattr(visit, check)), Paragraph(text(notes) if notes else '', styles["BodySmall"])])
    story.append(line_items_table(rows, headers=['Check', 'Result', 'Notes'],
                                  col_widths=[65 * mm, 20 * mm, 90 * mm]))

    if visit.general_notes:
        story.append(spacer(10))
        story.append(Paragraph(f"<b>General notes</b><br/>{text(visit.general_notes)}", styles["BodySmall"]))

    photos = [m for m in visit.media.all() if m.media_type == 'image']
    if photos:
        story.append(spacer(10))
        story.append(Paragraph(f"{len(photos)} photo(s) attached to this visit", styles["Muted"]))

    if visit.signature:
        story.append(spacer(12))
        story.append(Paragraph("<b>Signature</b>", styles["BodySmall"]))
        story.append(Image(visit.signature.path, width=60 * mm, height=25 * mm, kind='proportional'))

    return render(story)
