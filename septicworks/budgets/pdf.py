"""PDF rendering for budgets and final invoices"""
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph

from septicworks.core.pdf import (
    build_styles, company_header, line_items_table, money, render, spacer, text, totals_table
)


def _client_block(styles, name, email, address):
    lines = [f"<b>Bill to:</b> {text(name)}", text(address)]
    if email:
        lines.append(text(email))
    return Paragraph("<br/>".join(lines), styles["BodySmall"])


def render_budget_pdf(budget):
    styles = build_styles()
    story = [
        company_header(styles, 'BUDGET', reference=budget.invoice_number or budget.pk, date_value=budget.date),
        spacer(12),
        _client_block(styles, budget.applicant_name, budget.applicant_email, budget.property_address),
        Paragraph(f"Valid until: {text(budget.expiration_date)}", styles["Muted"]),
        spacer(10),
    ]

    if budget.permit_id:
        permit = budget.permit
        story.append(Paragraph(
            f"Permit {text(permit.permit_number)} - System: {text(permit.get_system_type_display() if permit.system_type else '')}"
            f" - GPD: {text(permit.gpd_capacity)}",
            styles["BodySmall"],
        ))
        story.append(spacer(6))

    rows = [
        [text(item.category), Paragraph(text(item.name) + (f"<br/><font size=8>{text(item.description)}</font>"
                                                           if item.description else ''), styles["BodySmall"]),
         f"{item.quantity:g}", money(item.unit_price), money(item.line_total)]
        for item in budget.line_items.all()
    ]
    story.append(line_items_table(
        rows,
        headers=['Category', 'Item', 'Qty', 'Unit Price', 'Total'],
        col_widths=[30 * mm, 75 * mm, 15 * mm, 27 * mm, 28 * mm],
    ))
    story.append(spacer(10))

    totals = [['Subtotal', money(budget.subtotal_price)]]
    if budget.discount_amount:
        label = f"Discount ({budget.discount_description})" if budget.discount_description else 'Discount'
        totals.append([label, money(-budget.discount_amount)])
    totals.append([f"Initial payment ({budget.initial_payment_percentage:g}%)", money(budget.initial_payment)])
    totals.append(['Total', money(budget.total_price)])
    story.append(totals_table(totals))

    if budget.general_notes:
        story.append(spacer(12))
        story.append(Paragraph(f"<b>Notes</b><br/>{text(budget.general_notes)}", styles["BodySmall"]))

    return render(story)


def render_final_invoice_pdf(invoice):
    styles = build_styles()
    work = invoice.work
    story = [
        company_header(styles, 'FINAL INVOICE', reference=invoice.invoice_number or invoice.pk,
                       date_value=invoice.invoice_date),
        spacer(12),
        _client_block(styles, work.applicant_name, work.applicant_email, work.property_address),
        spacer(10),
    ]

    rows = [['-', 'Original budget total', '1', money(invoice.original_budget_total), money(invoice.original_budget_total)]]
    for item in invoice.extra_items.all():
        rows.append([
            item.change_order.change_order_number if item.change_order_id else '-',
            Paragraph(text(item.description), styles["BodySmall"]),
            f"{item.quantity:g}", money(item.unit_price), money(item.line_total),
        ])
    story.append(line_items_table(
        rows,
        headers=['Ref', 'Description', 'Qty', 'Unit Price', 'Total'],
        col_widths=[25 * mm, 80 * mm, 15 * mm, 27 * mm, 28 * mm],
    ))
    story.append(spacer(10))

    totals = [
        ['Budget total', money(invoice.original_budget_total)],
        ['Extras', money(invoice.subtotal_extras)],
    ]
    if invoice.discount:
        label = f"Discount ({invoice.discount_reason})" if invoice.discount_reason else 'Discount'
        totals.append([label, money(-invoice.discount)])
    totals.append(['Initial payment received', money(-invoice.initial_payment_made)])
    totals.append(['Amount due', money(invoice.final_amount_due)])
    story.append(totals_table(totals))

    if invoice.status == 'paid':
        story.append(spacer(8))
        story.append(Paragraph(f"<b>PAID</b> on {text(invoice.payment_date)}", styles["DocTitle"]))
    if invoice.notes:
        story.append(spacer(12))
        story.append(Paragraph(f"<b>Notes</b><br/>{text(invoice.notes)}", styles["BodySmall"]))

    return render(story)
