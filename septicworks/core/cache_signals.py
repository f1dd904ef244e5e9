"""
Cache invalidation signals
Automatically invalidate report caches when financial data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_finance_caches

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

FINANCE_MODELS = {
    'Income', 'Expense', 'BankAccount', 'BankTransaction',
    'SupplierInvoice', 'SupplierInvoiceItem', 'FinalInvoice', 'Budget', 'Work',
    'FixedExpense', 'FixedExpensePayment',
}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations (balance repair, imports).
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_finance_cache(sender, instance, **kwargs):
    """Invalidate dashboard/receivable caches when money-related rows change"""
    if is_suspended():
        return

    if sender.__name__ not in FINANCE_MODELS:
        return

    try:
        # Invalidate after commit so the cache is not repopulated with stale data
        transaction.on_commit(invalidate_finance_caches)
    except Exception as e:
        logger.warning(f"Error in invalidate_finance_cache signal: {e}")
