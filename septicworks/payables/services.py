"""
Supplier invoice bookkeeping

Invoice lines settle Expenses: an existing unpaid expense is linked and
flagged paid_via_invoice, otherwise an expense is created for the line.
Payments withdraw from the bank account the payment method maps to.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from septicworks.banking.services import create_withdrawal_for_supplier_payment
from septicworks.core.utils import create_audit_log
from septicworks.finance.models import Expense
from .models import SupplierInvoice, SupplierInvoiceItem

logger = logging.getLogger(__name__)


class PayablesError(Exception):
    """A supplier invoice operation was rejected"""


def add_items(invoice, items, user=None):
    """
    Create invoice lines from validated item dicts.

    Each dict carries description, category, amount, notes, work and an
    optional expense (unpaid Expense instance).
    """
    created_by = user if user and user.is_authenticated else None
    for item in items:
        expense = item.get('expense')
        auto_created = False
        if expense is not None:
            expense = Expense.objects.select_for_update().get(pk=expense.pk)
            if expense.payment_status != 'unpaid':
                raise PayablesError(f"Expense {expense.pk} is already {expense.payment_status}")
            expense.payment_status = 'paid_via_invoice'
            expense.vendor = expense.vendor or invoice.vendor
            expense.save(update_fields=['payment_status', 'vendor', 'updated_at'])
        else:
            expense = Expense.objects.create(
                work=item.get('work'),
                amount=item['amount'],
                date=invoice.issue_date,
                type_expense=item.get('category') or 'Materiales',
                vendor=invoice.vendor,
                payment_status='paid_via_invoice',
                notes=f"{item['description']} (invoice {invoice.invoice_number})",
                staff=created_by,
            )
            auto_created = True

        SupplierInvoiceItem.objects.create(
            supplier_invoice=invoice,
            work=item.get('work') or expense.work,
            description=item['description'],
            category=item.get('category') or expense.type_expense,
            amount=item.get('amount') or expense.amount,
            related_expense=expense,
            expense_auto_created=auto_created,
            notes=item.get('notes', ''),
        )


def release_items(invoice):
    """Detach all lines: linked expenses go back to unpaid, auto-created ones are deleted"""
    for item in invoice.items.select_related('related_expense'):
        expense = item.related_expense
        if expense is None:
            continue
        if item.expense_auto_created:
            expense.delete()
        else:
            expense.payment_status = 'unpaid'
            expense.save(update_fields=['payment_status', 'updated_at'])
    invoice.items.all().delete()


def apply_payment_status(invoice, payment_method=None):
    """Derive payment_status from paid_amount; a settled invoice marks its expenses paid"""
    if invoice.total_amount > 0 and invoice.paid_amount >= invoice.total_amount:
        invoice.payment_status = 'paid'
    elif invoice.is_overdue:
        invoice.payment_status = 'overdue'
    elif invoice.paid_amount > 0:
        invoice.payment_status = 'partial'
    else:
        invoice.payment_status = 'pending'
    invoice.save(update_fields=['payment_status', 'updated_at'])

    if invoice.payment_status == 'paid':
        Expense.objects.filter(supplier_invoice_items__supplier_invoice=invoice).update(
            payment_status='paid', payment_method=payment_method or invoice.payment_method,
        )
    return invoice.payment_status


def create_invoice(validated_data, items, user=None):
    with transaction.atomic():
        invoice = SupplierInvoice.objects.create(
            created_by=user if user and user.is_authenticated else None,
            **validated_data,
        )
        add_items(invoice, items, user=user)
        invoice.recalculate_total()
    logger.info(f"Supplier invoice {invoice.invoice_number} from {invoice.vendor} created: ${invoice.total_amount}")
    return invoice


def update_invoice(invoice, validated_data, items=None, user=None):
    if invoice.payment_status == 'paid':
        raise PayablesError('A paid invoice cannot be modified')
    with transaction.atomic():
        for field, value in validated_data.items():
            setattr(invoice, field, value)
        invoice.save()
        if items is not None:
            release_items(invoice)
            add_items(invoice, items, user=user)
        invoice.recalculate_total()
        if invoice.paid_amount > invoice.total_amount:
            raise PayablesError('Invoice total cannot be lower than the amount already paid')
        apply_payment_status(invoice)
    return invoice


def delete_invoice(invoice):
    if invoice.payment_status == 'paid':
        raise PayablesError('A paid invoice cannot be deleted')
    if invoice.paid_amount > 0:
        raise PayablesError('Invoice has payments recorded and cannot be deleted')
    with transaction.atomic():
        release_items(invoice)
        invoice.delete()


def register_payment(invoice, amount, payment_method, payment_date=None, payment_details='', notes='', user=None):
    """
    Pay (part of) an invoice.

    Raises PayablesError when the amount is not positive or exceeds the
    outstanding balance; BankingError propagates from the withdrawal.
    """
    amount = Decimal(str(amount)).quantize(Decimal('0.01'))
    with transaction.atomic():
        invoice = SupplierInvoice.objects.select_for_update().get(pk=invoice.pk)
        if invoice.payment_status == 'paid':
            raise PayablesError('Invoice is already paid')
        if amount <= 0:
            raise PayablesError('Payment amount must be greater than zero')
        if amount > invoice.outstanding_amount:
            raise PayablesError(
                f"Payment ${amount:,.2f} exceeds the outstanding balance ${invoice.outstanding_amount:,.2f}"
            )

        invoice.paid_amount += amount
        invoice.payment_method = payment_method
        invoice.payment_date = payment_date or timezone.localdate()
        invoice.payment_details = payment_details or invoice.payment_details
        invoice.notes = notes or invoice.notes
        invoice.save()

        bank_transaction = create_withdrawal_for_supplier_payment(
            invoice, amount, payment_method, date=invoice.payment_date, user=user,
        )

        apply_payment_status(invoice, payment_method)

    create_audit_log(user=user, action='payment_add', model_name='SupplierInvoice', object_id=invoice.pk,
                     object_name=invoice.vendor, object_reference=invoice.invoice_number,
                     changes={'amount': str(amount), 'payment_method': payment_method,
                              'status': invoice.payment_status,
                              'bank_transaction': bank_transaction.pk if bank_transaction else None})
    logger.info(f"Payment ${amount} registered on supplier invoice {invoice.invoice_number} ({invoice.payment_status})")
    return invoice, bank_transaction


def mark_overdue(today=None, dry_run=False):
    """Flag open invoices past their due date; returns the affected queryset count"""
    today = today or timezone.localdate()
    queryset = SupplierInvoice.objects.filter(payment_status__in=('pending', 'partial'), due_date__lt=today)
    count = queryset.count()
    if not dry_run and count:
        queryset.update(payment_status='overdue', updated_at=timezone.now())
    return count
