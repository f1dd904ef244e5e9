"""
Invoice numbering shared by budgets and final invoices.

Both tables draw from one sequence so an invoice number is never reused
across document types.
"""
import logging

from django.db import transaction
from django.db.models import Max

from septicworks.core.models import Setting
from .models import Budget, FinalInvoice

logger = logging.getLogger(__name__)

LOCK_KEY = 'invoice_number_lock'


def current_max_invoice_number():
    budget_max = Budget.objects.aggregate(value=Max('invoice_number'))['value'] or 0
    invoice_max = FinalInvoice.objects.aggregate(value=Max('invoice_number'))['value'] or 0
    return max(budget_max, invoice_max)


def get_next_invoice_number():
    """
    Next free invoice number.

    Must be called inside transaction.atomic(); the lock row serialises
    concurrent callers until the caller's transaction commits.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError('get_next_invoice_number() must run inside a transaction')
    lock, _ = Setting.objects.get_or_create(key=LOCK_KEY, defaults={'value': '0'})
    Setting.objects.select_for_update().get(pk=lock.pk)
    next_number = current_max_invoice_number() + 1
    logger.debug(f"Next invoice number: {next_number}")
    return next_number


def invoice_number_stats():
    budgets = Budget.objects.filter(invoice_number__isnull=False)
    invoices = FinalInvoice.objects.filter(invoice_number__isnull=False)
    current = current_max_invoice_number()
    return {
        'budget_invoices': budgets.count(),
        'final_invoices': invoices.count(),
        'current_max': current,
        'next_number': current + 1,
    }
