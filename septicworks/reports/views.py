import calendar
import logging
import math
from datetime import date, datetime
from decimal import Decimal

from django.db.models import Sum, Count, DecimalField, Q
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from septicworks.banking.models import BankAccount
from septicworks.budgets.models import Budget, FinalInvoice
from septicworks.core.cache_utils import (
    cached_query, FINANCIAL_DASHBOARD_CACHE_TTL, RECEIVABLES_CACHE_TTL, REPORTS_CACHE_TTL,
)
from septicworks.core.permissions import IsFinanceStaff, IsOfficeStaff
from septicworks.finance.models import Income, Expense, FixedExpense
from septicworks.payables.models import SupplierInvoice
from septicworks.works.models import Work

logger = logging.getLogger(__name__)


def _period(params):
    """Resolve date_from/date_to, or month/year, into a date range (default: current month)"""
    today = timezone.localdate()
    date_from = params.get('date_from')
    date_to = params.get('date_to')
    if date_from or date_to:
        start = datetime.strptime(date_from, '%Y-%m-%d').date() if date_from else date(today.year, 1, 1)
        end = datetime.strptime(date_to, '%Y-%m-%d').date() if date_to else today
        return start, end

    year = int(params.get('year', today.year))
    if params.get('month'):
        month = int(params['month'])
        return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])
    if params.get('year'):
        return date(year, 1, 1), date(year, 12, 31)
    return today.replace(day=1), today


def _sum(queryset, field='amount'):
    return queryset.aggregate(total=Sum(field, output_field=DecimalField()))['total'] or Decimal('0.00')


@cached_query(cache_ttl=FINANCIAL_DASHBOARD_CACHE_TTL, key_prefix="financial_dashboard")
def build_financial_dashboard(date_from, date_to):
    incomes = Income.objects.filter(date__gte=date_from, date__lte=date_to)
    # paid_via_invoice expenses are counted once the supplier invoice is paid
    expenses = Expense.objects.filter(date__gte=date_from, date__lte=date_to).exclude(payment_status='paid_via_invoice')

    total_income = _sum(incomes)
    total_expense = _sum(expenses)

    income_by_method = [
        {'payment_method': row['payment_method'] or 'unspecified', 'total': float(row['total']), 'count': row['count']}
        for row in incomes.values('payment_method').annotate(total=Sum('amount'), count=Count('id')).order_by('-total')
    ]
    expense_by_type = [
        {'type_expense': row['type_expense'], 'total': float(row['total']), 'count': row['count']}
        for row in expenses.values('type_expense').annotate(total=Sum('amount'), count=Count('id')).order_by('-total')
    ]

    accounts = BankAccount.objects.filter(is_active=True).order_by('account_name')
    open_invoices = SupplierInvoice.objects.filter(payment_status__in=SupplierInvoice.OPEN_STATUSES)
    payables_total = _sum(open_invoices, 'total_amount') - _sum(open_invoices, 'paid_amount')

    return {
        'date_from': date_from.isoformat(),
        'date_to': date_to.isoformat(),
        'total_income': float(total_income),
        'total_expense': float(total_expense),
        'net': float(total_income - total_expense),
        'income_by_payment_method': income_by_method,
        'expense_by_type': expense_by_type,
        'bank_accounts': [
            {'id': a.id, 'account_name': a.account_name, 'account_type': a.account_type,
             'current_balance': float(a.current_balance)}
            for a in accounts
        ],
        'total_bank_balance': float(_sum(accounts, 'current_balance')),
        'supplier_payables': {
            'total': float(payables_total),
            'invoice_count': open_invoices.count(),
            'overdue_count': open_invoices.filter(payment_status='overdue').count(),
        },
    }


@cached_query(cache_ttl=RECEIVABLES_CACHE_TTL, key_prefix="accounts_receivable")
def build_accounts_receivable():
    pending_budgets = (
        Budget.objects.filter(status__in=Budget.ACCEPTED_STATUSES)
        .filter(payment_proof_amount__isnull=True)
        .order_by('approved_at', 'id')
    )
    open_final_invoices = (
        FinalInvoice.objects.filter(status__in=('pending', 'partially_paid'))
        .select_related('work')
        .order_by('invoice_date', 'id')
    )

    budgets = [
        {'id': b.id, 'invoice_number': b.invoice_number, 'applicant_name': b.applicant_name,
         'property_address': b.property_address, 'status': b.status,
         'amount_due': float(b.initial_payment), 'total_price': float(b.total_price)}
        for b in pending_budgets
    ]
    invoices = [
        {'id': i.id, 'invoice_number': i.invoice_number, 'work_id': i.work_id,
         'property_address': i.work.property_address, 'status': i.status,
         'invoice_date': i.invoice_date.isoformat() if i.invoice_date else None,
         'amount_due': float(i.final_amount_due)}
        for i in open_final_invoices
    ]
    initial_total = sum(b['amount_due'] for b in budgets)
    final_total = sum(i['amount_due'] for i in invoices)
    return {
        'pending_initial_payments': budgets,
        'pending_final_invoices': invoices,
        'total_initial_pending': initial_total,
        'total_final_pending': final_total,
        'total_receivable': initial_total + final_total,
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="monthly_installations")
def build_monthly_installations(year):
    rows = (
        Work.objects.filter(installation_start_date__year=year)
        .annotate(month=TruncMonth('installation_start_date'))
        .values('month')
        .annotate(count=Count('id'))
        .order_by('month')
    )
    counts = {row['month'].month: row['count'] for row in rows}
    months = [
        {'month': month, 'label': calendar.month_abbr[month], 'count': counts.get(month, 0)}
        for month in range(1, 13)
    ]
    return {'year': year, 'total': sum(counts.values()), 'months': months}


QUARTER_MONTHS = (1, 4, 7, 10)
HALF_YEAR_MONTHS = (1, 7)


def _general_expenses():
    """General expenses not already carried by a supplier invoice"""
    return Expense.objects.filter(type_expense='Gastos Generales', supplier_invoice_items__isnull=True)


def times_in_month(fixed_expense, year, month):
    """How many times a fixed expense falls due in a calendar month (0 when it does not apply)"""
    first_weekday, days = calendar.monthrange(year, month)
    month_start, month_end = date(year, month, 1), date(year, month, days)
    start = fixed_expense.start_date
    frequency = fixed_expense.frequency

    if frequency == 'one_time':
        return 1 if (start.year, start.month) == (year, month) else 0
    if start > month_end or (fixed_expense.end_date and fixed_expense.end_date < month_start):
        return 0

    if frequency == 'weekly':
        # calendar weeks touched by the month, weeks starting on Sunday
        return math.ceil((days + (first_weekday + 1) % 7) / 7)
    if frequency == 'biweekly':
        return 2
    if frequency == 'quarterly':
        return 1 if month in QUARTER_MONTHS else 0
    if frequency == 'semiannual':
        return 1 if month in HALF_YEAR_MONTHS else 0
    if frequency == 'annual':
        return 1 if month == start.month else 0
    return 1


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="monthly_expenses")
def build_monthly_expenses(year, month=None):
    """Expenses accrued per month: general expenses by date plus fixed expenses by schedule"""
    months = [month] if month else list(range(1, 13))
    general = _general_expenses().filter(date__year=year).order_by('date', 'id')
    if month:
        general = general.filter(date__month=month)
    fixed = list(
        FixedExpense.objects.filter(is_active=True)
        .filter(Q(end_date__isnull=True) | Q(end_date__gte=date(year, 1, 1)))
        .order_by('name')
    )

    data = {
        m: {
            'month': m,
            'label': calendar.month_name[m],
            'year': year,
            'general_expenses': {'count': 0, 'total': 0.0, 'paid': 0.0, 'unpaid': 0.0, 'items': []},
            'fixed_expenses': {'count': 0, 'total': 0.0, 'items': []},
            'total_month': 0.0,
        }
        for m in months
    }

    general = list(general)
    for expense in general:
        bucket = data[expense.date.month]['general_expenses']
        amount = float(expense.amount)
        bucket['count'] += 1
        bucket['total'] += amount
        bucket['paid' if expense.payment_status in ('paid', 'paid_via_invoice') else 'unpaid'] += amount
        bucket['items'].append({
            'id': expense.id, 'date': expense.date.isoformat(), 'amount': amount,
            'payment_status': expense.payment_status, 'payment_method': expense.payment_method,
            'vendor': expense.vendor, 'notes': expense.notes,
        })

    for fixed_expense in fixed:
        base_amount = float(fixed_expense.total_amount)
        for m in months:
            times = times_in_month(fixed_expense, year, m)
            if not times:
                continue
            bucket = data[m]['fixed_expenses']
            bucket['count'] += 1
            bucket['total'] += base_amount * times
            bucket['items'].append({
                'id': fixed_expense.id, 'name': fixed_expense.name, 'category': fixed_expense.category,
                'frequency': fixed_expense.frequency, 'base_amount': base_amount, 'times_in_month': times,
                'amount': base_amount * times,
            })

    for month_data in data.values():
        month_data['total_month'] = month_data['general_expenses']['total'] + month_data['fixed_expenses']['total']

    year_totals = None
    if not month:
        general_total = sum(d['general_expenses']['total'] for d in data.values())
        fixed_total = sum(d['fixed_expenses']['total'] for d in data.values())
        year_totals = {
            'general_expenses': general_total,
            'fixed_expenses': fixed_total,
            'total_year': general_total + fixed_total,
        }

    return {
        'year': year,
        'month': month,
        'months': list(data.values()),
        'year_totals': year_totals,
        'general_expenses_found': len(general),
        'fixed_expenses_active': len(fixed),
    }


def _expense_line(expense):
    work = expense.work
    return {
        'id': expense.id,
        'date': expense.date.isoformat(),
        'amount': float(expense.amount),
        'payment_status': expense.payment_status,
        'type_expense': expense.type_expense,
        'notes': expense.notes,
        'work_id': expense.work_id,
        'client_name': work.applicant_name if work else None,
        'property_address': work.property_address if work else None,
        'fixed_expense': {
            'id': expense.related_fixed_expense_id,
            'name': expense.related_fixed_expense.name,
            'category': expense.related_fixed_expense.category,
        } if expense.related_fixed_expense_id else None,
    }


def _group(expenses, key_name, key_func):
    groups = {}
    for expense in expenses:
        key = key_func(expense)
        group = groups.setdefault(key, {
            key_name: key, 'total_amount': 0.0, 'total_count': 0,
            'paid_amount': 0.0, 'paid_count': 0, 'unpaid_amount': 0.0, 'unpaid_count': 0,
            'expenses': [],
        })
        amount = float(expense.amount)
        group['total_amount'] += amount
        group['total_count'] += 1
        prefix = 'paid' if expense.payment_status == 'paid' else 'unpaid'
        group[f'{prefix}_amount'] += amount
        group[f'{prefix}_count'] += 1
        group['expenses'].append(_expense_line(expense))
    return sorted(groups.values(), key=lambda g: g['total_amount'], reverse=True)


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="balance_detail")
def build_balance_detail(date_from, date_to):
    """Expenses of a period broken down by payment method and by expense type"""
    expenses = list(
        Expense.objects.filter(date__gte=date_from, date__lte=date_to)
        .select_related('work__budget', 'work__permit', 'related_fixed_expense')
        .order_by('-date', '-amount')
    )
    total = sum(float(e.amount) for e in expenses)
    paid = sum(float(e.amount) for e in expenses if e.payment_status == 'paid')
    return {
        'date_from': date_from.isoformat(),
        'date_to': date_to.isoformat(),
        'by_payment_method': _group(expenses, 'payment_method', lambda e: e.payment_method or 'unspecified'),
        'by_expense_type': _group(expenses, 'type_expense', lambda e: e.type_expense),
        'totals': {
            'count': len(expenses),
            'total_amount': total,
            'paid_amount': paid,
            'unpaid_amount': total - paid,
        },
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def financial_dashboard(request):
    """Income, expenses, bank balances and payables for a period"""
    try:
        date_from, date_to = _period(request.query_params)
    except ValueError as e:
        return Response({'error': f"Invalid period: {str(e)}"}, status=status.HTTP_400_BAD_REQUEST)
    if date_from > date_to:
        return Response({'error': 'date_from must be before date_to'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(build_financial_dashboard(date_from, date_to))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def accounts_receivable(request):
    """Initial payments and final invoices still owed by clients"""
    return Response(build_accounts_receivable())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def monthly_installations(request):
    try:
        year = int(request.query_params.get('year', timezone.localdate().year))
    except ValueError:
        return Response({'error': 'year must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(build_monthly_installations(year))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def monthly_expenses(request):
    """Accrued general and fixed expenses per month of a year"""
    try:
        year = int(request.query_params.get('year', timezone.localdate().year))
        month = int(request.query_params['month']) if request.query_params.get('month') else None
    except ValueError:
        return Response({'error': 'year and month must be numbers'}, status=status.HTTP_400_BAD_REQUEST)
    if month is not None and not 1 <= month <= 12:
        return Response({'error': 'month must be between 1 and 12'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(build_monthly_expenses(year, month))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def monthly_expenses_years(request):
    years = {d.year for d in _general_expenses().dates('date', 'year')}
    for start_date, end_date in FixedExpense.objects.filter(is_active=True).values_list('start_date', 'end_date'):
        years.add(start_date.year)
        if end_date:
            years.add(end_date.year)
    current_year = timezone.localdate().year
    available = sorted(years, reverse=True)
    return Response({
        'available_years': available,
        'current_year': current_year,
        'recommended_year': available[0] if available else current_year,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def balance_detail(request):
    """Expenses of a period grouped by payment method and expense type"""
    if not request.query_params.get('date_from') or not request.query_params.get('date_to'):
        return Response({'error': 'date_from and date_to are required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        date_from, date_to = _period(request.query_params)
    except ValueError as e:
        return Response({'error': f"Invalid period: {str(e)}"}, status=status.HTTP_400_BAD_REQUEST)
    if date_from > date_to:
        return Response({'error': 'date_from must be before date_to'}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"Balance detail requested for {date_from} - {date_to} by {request.user.username}")
    return Response(build_balance_detail(date_from, date_to))
