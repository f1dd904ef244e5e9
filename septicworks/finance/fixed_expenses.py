"""
Recurring fixed expenses

A fixed expense owes total_amount once per period. Payments (partial or
full) are booked as paid 'Gasto Fijo' Expenses and withdrawn from the
account their payment method maps to. When a period is fully paid the due
date moves on by one period and paid_amount starts again from zero.

With auto_create_expense set, a due period also gets an unpaid placeholder
Expense for whatever is still owed; payments shrink it and the last one
removes it.
"""
import logging
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from septicworks.banking.services import create_withdrawal_for_expense, reverse_transactions_for_expense
from septicworks.core.utils import create_audit_log
from .models import Expense, FixedExpense, FixedExpensePayment

logger = logging.getLogger(__name__)

FIXED_EXPENSE_TYPE = 'Gasto Fijo'

PERIODS = {
    'weekly': relativedelta(weeks=1),
    'biweekly': relativedelta(weeks=2),
    'monthly': relativedelta(months=1),
    'quarterly': relativedelta(months=3),
    'semiannual': relativedelta(months=6),
    'annual': relativedelta(years=1),
}

# Periods per month, used for the monthly commitment
MONTHLY_FACTORS = {
    'weekly': Decimal('52') / Decimal('12'),
    'biweekly': Decimal('26') / Decimal('12'),
    'monthly': Decimal('1'),
    'quarterly': Decimal('1') / Decimal('3'),
    'semiannual': Decimal('1') / Decimal('6'),
    'annual': Decimal('1') / Decimal('12'),
    'one_time': Decimal('0'),
}


class FixedExpenseError(Exception):
    """A fixed expense operation was rejected"""


def _is_month_end(day):
    return (day + relativedelta(days=1)).month != day.month


def add_period(day, frequency):
    """Due date one period after `day`; month-end dates stay on the month end"""
    step = PERIODS.get(frequency)
    if step is None:
        return None
    if step.months or step.years:
        if _is_month_end(day):
            return day + step + relativedelta(day=31)
    return day + step


def first_due_date(start_date, frequency):
    if frequency == 'one_time':
        return start_date
    return add_period(start_date, frequency)


def monthly_equivalent(fixed_expense):
    amount = fixed_expense.total_amount * MONTHLY_FACTORS.get(fixed_expense.frequency, Decimal('0'))
    return amount.quantize(Decimal('0.01'))


def period_paid(fixed_expense, period_due_date):
    return fixed_expense.payments.filter(period_due_date=period_due_date).aggregate(
        total=Sum('amount'))['total'] or Decimal('0.00')


def _set_open_status(fixed_expense):
    fixed_expense.payment_status = 'partial' if fixed_expense.paid_amount > 0 else 'unpaid'


def _close_period(fixed_expense, paid_on):
    """Advance a fully paid fixed expense to its next period"""
    fixed_expense.paid_date = paid_on
    if fixed_expense.frequency == 'one_time':
        fixed_expense.payment_status = 'paid'
        return
    next_due = add_period(fixed_expense.next_due_date, fixed_expense.frequency)
    if fixed_expense.end_date and next_due > fixed_expense.end_date:
        fixed_expense.payment_status = 'paid'
        fixed_expense.is_active = False
        fixed_expense.next_due_date = None
        logger.info(f"Fixed expense {fixed_expense.id} ({fixed_expense.name}) reached its end date")
        return
    fixed_expense.next_due_date = next_due
    fixed_expense.paid_amount = Decimal('0.00')
    fixed_expense.payment_status = 'unpaid'


def sync_accrual(fixed_expense, period_due_date, today=None):
    """
    Keep the unpaid placeholder of a period equal to what is still owed.

    Returns the placeholder Expense, or None when nothing is owed or no
    placeholder is wanted.
    """
    if period_due_date is None:
        return None
    today = today or timezone.localdate()
    placeholder = fixed_expense.expenses.filter(payment_status='unpaid', date=period_due_date).first()
    remaining = fixed_expense.total_amount - period_paid(fixed_expense, period_due_date)

    if remaining <= 0:
        if placeholder is not None:
            placeholder.delete()
        return None
    if placeholder is not None:
        if placeholder.amount != remaining:
            placeholder.amount = remaining
            placeholder.save(update_fields=['amount', 'updated_at'])
        return placeholder
    if fixed_expense.auto_create_expense and fixed_expense.is_active and period_due_date <= today:
        return Expense.objects.create(
            amount=remaining,
            date=period_due_date,
            type_expense=FIXED_EXPENSE_TYPE,
            payment_method=fixed_expense.payment_method,
            payment_status='unpaid',
            vendor=fixed_expense.vendor or fixed_expense.name,
            notes=f"{fixed_expense.name} - due {period_due_date.isoformat()}",
            staff=fixed_expense.staff,
            related_fixed_expense=fixed_expense,
        )
    return None


def create_fixed_expense(validated_data, user=None):
    data = dict(validated_data)
    if data.get('category') != 'Salarios':
        data['staff'] = None
    fixed_expense = FixedExpense.objects.create(
        next_due_date=first_due_date(data['start_date'], data.get('frequency', 'monthly')),
        created_by=user if user and user.is_authenticated else None,
        **data
    )
    logger.info(f"Fixed expense {fixed_expense.name} created: ${fixed_expense.total_amount} "
                f"{fixed_expense.frequency}, first due {fixed_expense.next_due_date}")
    return fixed_expense


@transaction.atomic
def update_fixed_expense(fixed_expense, validated_data):
    fixed_expense = FixedExpense.objects.select_for_update().get(pk=fixed_expense.pk)
    schedule_changed = any(
        field in validated_data and validated_data[field] != getattr(fixed_expense, field)
        for field in ('frequency', 'start_date')
    )
    if schedule_changed and fixed_expense.payments.exists():
        raise FixedExpenseError('Frequency and start date cannot change once payments are recorded')

    total = validated_data.get('total_amount', fixed_expense.total_amount)
    if total < fixed_expense.paid_amount:
        raise FixedExpenseError('Total amount cannot be lower than the amount already paid this period')

    for field, value in validated_data.items():
        setattr(fixed_expense, field, value)
    if fixed_expense.category != 'Salarios':
        fixed_expense.staff = None
    if schedule_changed:
        fixed_expense.next_due_date = first_due_date(fixed_expense.start_date, fixed_expense.frequency)
        fixed_expense.expenses.filter(payment_status='unpaid').delete()

    period = fixed_expense.next_due_date
    if fixed_expense.payment_status != 'paid':
        if fixed_expense.paid_amount > 0 and fixed_expense.paid_amount >= fixed_expense.total_amount:
            _close_period(fixed_expense, timezone.localdate())
        else:
            _set_open_status(fixed_expense)
    fixed_expense.save()
    sync_accrual(fixed_expense, period)
    return fixed_expense


def delete_fixed_expense(fixed_expense):
    if fixed_expense.payments.exists() or fixed_expense.expenses.exclude(payment_status='unpaid').exists():
        raise FixedExpenseError('Fixed expense has payments recorded; deactivate it instead')
    with transaction.atomic():
        fixed_expense.expenses.filter(payment_status='unpaid').delete()
        fixed_expense.delete()


def register_payment(fixed_expense, amount, payment_method=None, payment_date=None, notes='',
                     receipt=None, user=None):
    """
    Pay (part of) the current period.

    Returns (payment, bank_transaction); bank_transaction is None when the
    payment method does not map to a company account.
    """
    payment_date = payment_date or timezone.localdate()
    created_by = user if user and user.is_authenticated else None

    with transaction.atomic():
        fixed_expense = FixedExpense.objects.select_for_update().get(pk=fixed_expense.pk)
        if fixed_expense.payment_status == 'paid':
            raise FixedExpenseError('Fixed expense is already paid')
        if amount <= 0:
            raise FixedExpenseError('Payment amount must be greater than zero')
        if amount > fixed_expense.remaining_amount:
            raise FixedExpenseError(
                f"Payment of ${amount} exceeds the remaining ${fixed_expense.remaining_amount}"
            )
        payment_method = payment_method or fixed_expense.payment_method
        if not payment_method:
            raise FixedExpenseError('A payment method is required')

        period = fixed_expense.next_due_date
        expense = Expense.objects.create(
            amount=amount,
            date=payment_date,
            type_expense=FIXED_EXPENSE_TYPE,
            payment_method=payment_method,
            payment_status='paid',
            vendor=fixed_expense.vendor or fixed_expense.name,
            notes=notes or f"{fixed_expense.name} - due {period.isoformat() if period else payment_date.isoformat()}",
            staff=fixed_expense.staff if fixed_expense.category == 'Salarios' and fixed_expense.staff else created_by,
            related_fixed_expense=fixed_expense,
        )
        bank_transaction = create_withdrawal_for_expense(expense, user=user)
        payment = FixedExpensePayment.objects.create(
            fixed_expense=fixed_expense,
            amount=amount,
            payment_date=payment_date,
            payment_method=payment_method,
            period_due_date=period,
            notes=notes,
            receipt=receipt,
            expense=expense,
            created_by=created_by,
        )

        fixed_expense.paid_amount += amount
        if fixed_expense.paid_amount >= fixed_expense.total_amount:
            _close_period(fixed_expense, payment_date)
        else:
            _set_open_status(fixed_expense)
        fixed_expense.save()
        sync_accrual(fixed_expense, period)

    logger.info(f"Payment ${amount} registered on fixed expense {fixed_expense.name} "
                f"(period {period}, {fixed_expense.payment_status})")
    create_audit_log(user=user, action='fixed_expense_payment', model_name='FixedExpense',
                     object_id=fixed_expense.id, object_name=fixed_expense.name,
                     changes={'amount': str(amount), 'payment_method': payment_method,
                              'period_due_date': period.isoformat() if period else None})
    return payment, bank_transaction


def pay_remaining(fixed_expense, payment_method=None, payment_date=None, notes='', user=None):
    """Settle whatever is still owed on the current period"""
    if fixed_expense.payment_status == 'paid':
        raise FixedExpenseError('Fixed expense is already paid')
    return register_payment(fixed_expense, fixed_expense.remaining_amount, payment_method=payment_method,
                            payment_date=payment_date, notes=notes, user=user)


def delete_payment(payment, user=None):
    """
    Delete a payment, its Expense and bank movement.

    Only payments of the open period can be deleted, or those of the last
    closed period while nothing has been paid on the open one; the latter
    reopens that period.
    """
    with transaction.atomic():
        fixed_expense = FixedExpense.objects.select_for_update().get(pk=payment.fixed_expense_id)
        period = payment.period_due_date
        current_period_open = (
            fixed_expense.next_due_date == period and fixed_expense.payment_status != 'paid'
        ) or (fixed_expense.frequency == 'one_time' and fixed_expense.next_due_date == period)

        if current_period_open:
            fixed_expense.paid_amount -= payment.amount
        else:
            latest = fixed_expense.payments.order_by('-period_due_date').values_list(
                'period_due_date', flat=True).first()
            nothing_paid_now = fixed_expense.next_due_date is None or fixed_expense.paid_amount == 0
            if latest != period or not nothing_paid_now:
                raise FixedExpenseError('Only payments of the current period can be deleted')
            if fixed_expense.next_due_date is None:
                fixed_expense.is_active = True
            else:
                fixed_expense.expenses.filter(payment_status='unpaid', date=fixed_expense.next_due_date).delete()
            fixed_expense.next_due_date = period
            fixed_expense.paid_amount = period_paid(fixed_expense, period) - payment.amount

        payment_id = payment.id
        expense = payment.expense
        payment.delete()
        if expense is not None:
            reverse_transactions_for_expense(expense, user=user)
            expense.delete()

        fixed_expense.paid_date = None
        _set_open_status(fixed_expense)
        fixed_expense.save()
        sync_accrual(fixed_expense, period)

    logger.info(f"Payment ${payment.amount} removed from fixed expense {fixed_expense.name} (period {period})")
    create_audit_log(user=user, action='delete', model_name='FixedExpensePayment', object_id=payment_id,
                     object_name=fixed_expense.name, changes={'amount': str(payment.amount)})
    return fixed_expense


def accrue_due_expenses(today=None, dry_run=False):
    """
    Create unpaid placeholders for auto-created fixed expenses now due.

    Only the open period is accrued. Returns the number of placeholders
    created (or that would be).
    """
    today = today or timezone.localdate()
    due = FixedExpense.objects.filter(
        is_active=True, auto_create_expense=True, next_due_date__lte=today,
    ).exclude(payment_status='paid')

    created = 0
    for fixed_expense in due:
        if fixed_expense.expenses.filter(payment_status='unpaid', date=fixed_expense.next_due_date).exists():
            continue
        if fixed_expense.remaining_amount <= 0:
            continue
        created += 1
        if dry_run:
            continue
        sync_accrual(fixed_expense, fixed_expense.next_due_date, today=today)
        logger.info(f"Accrued fixed expense {fixed_expense.name} due {fixed_expense.next_due_date}")
    return created


def upcoming(days=30, today=None):
    today = today or timezone.localdate()
    return (
        FixedExpense.objects.filter(is_active=True, next_due_date__gte=today,
                                    next_due_date__lte=today + relativedelta(days=days))
        .exclude(payment_status='paid')
        .order_by('next_due_date', 'name')
    )


def build_summary(today=None):
    """Monthly commitment, category totals, due-soon and overdue entries"""
    today = today or timezone.localdate()
    active = list(FixedExpense.objects.filter(is_active=True).order_by('next_due_date', 'name'))

    by_category = {}
    for fixed_expense in active:
        group = by_category.setdefault(fixed_expense.category, {
            'category': fixed_expense.category, 'count': 0, 'monthly_amount': Decimal('0.00'),
        })
        group['count'] += 1
        group['monthly_amount'] += monthly_equivalent(fixed_expense)

    open_entries = [f for f in active if f.payment_status != 'paid' and f.next_due_date]
    due_soon = [f for f in open_entries if today <= f.next_due_date <= today + relativedelta(days=7)]
    overdue = [f for f in open_entries if f.next_due_date < today]
    return {
        'active_count': len(active),
        'monthly_commitment': sum((monthly_equivalent(f) for f in active), Decimal('0.00')),
        'total_remaining': sum((f.remaining_amount for f in open_entries), Decimal('0.00')),
        'by_category': sorted(by_category.values(), key=lambda g: g['monthly_amount'], reverse=True),
        'due_this_week': due_soon,
        'overdue': overdue,
        'overdue_amount': sum((f.remaining_amount for f in overdue), Decimal('0.00')),
    }
