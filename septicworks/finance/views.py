import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from septicworks.banking.services import (
    BankingError, create_deposit_for_income, create_withdrawal_for_expense,
    reverse_transactions_for_expense, reverse_transactions_for_income, is_bank_payment_method,
)
from septicworks.core.permissions import IsOfficeStaff, IsFinanceStaff
from septicworks.core.utils import create_audit_log, paginate_queryset
from septicworks.works.models import Work
from .constants import PAYMENT_METHODS, INCOME_TYPES, EXPENSE_TYPES
from . import fixed_expenses
from .filters import IncomeFilter, ExpenseFilter, FixedExpenseFilter
from .models import Income, Expense, FixedExpense, FixedExpensePayment
from .serializers import (
    IncomeSerializer, ExpenseSerializer, FixedExpenseSerializer, FixedExpensePaymentSerializer,
    FixedExpensePaymentCreateSerializer, PayRemainingSerializer,
)

logger = logging.getLogger(__name__)

# Changing any of these on a booked movement re-books it in the ledger
LEDGER_FIELDS = ('amount', 'date', 'payment_method')


def _ledger_changed(instance, validated_data):
    return any(
        field in validated_data and validated_data[field] != getattr(instance, field)
        for field in LEDGER_FIELDS
    )


# Income views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def income_list_create(request):
    """List incomes or record a new one (deposited to its mapped bank account)"""
    if request.method == 'GET':
        queryset = Income.objects.select_related('work', 'staff').prefetch_related('bank_transactions')
        filterset = IncomeFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-date', '-id')
        response = paginate_queryset(request, queryset, IncomeSerializer)
        response['total_amount'] = filterset.qs.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
        return Response(response)

    serializer = IncomeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            income = serializer.save(staff=request.user)
            create_deposit_for_income(income, user=request.user)
    except BankingError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='create', model_name='Income', object_id=income.id,
                     object_name=income.type_income, changes={'amount': str(income.amount),
                                                              'payment_method': income.payment_method})
    return Response(IncomeSerializer(income).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def income_detail(request, pk):
    income = get_object_or_404(Income.objects.select_related('work', 'staff'), pk=pk)

    if request.method == 'GET':
        return Response(IncomeSerializer(income).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = IncomeSerializer(income, data=request.data, partial=(request.method == 'PATCH'))
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        rebook = _ledger_changed(income, serializer.validated_data)
        try:
            with transaction.atomic():
                if rebook:
                    reverse_transactions_for_income(income, user=request.user)
                income = serializer.save()
                if rebook:
                    create_deposit_for_income(income, user=request.user)
        except BankingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='update', model_name='Income', object_id=income.id,
                         object_name=income.type_income, changes={'rebooked': rebook})
        return Response(IncomeSerializer(income).data)
    else:  # DELETE
        try:
            with transaction.atomic():
                reverse_transactions_for_income(income, user=request.user)
                create_audit_log(request=request, action='delete', model_name='Income', object_id=income.id,
                                 object_name=income.type_income, changes={'amount': str(income.amount)})
                income.delete()
        except BankingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Expense views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def expense_list_create(request):
    """List expenses or record a new one (paid expenses are withdrawn from their mapped account)"""
    if request.method == 'GET':
        queryset = Expense.objects.select_related('work', 'staff')
        filterset = ExpenseFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-date', '-id')
        response = paginate_queryset(request, queryset, ExpenseSerializer)
        response['total_amount'] = filterset.qs.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
        return Response(response)

    serializer = ExpenseSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            expense = serializer.save(staff=request.user)
            if expense.payment_status == 'paid':
                create_withdrawal_for_expense(expense, user=request.user)
    except BankingError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='create', model_name='Expense', object_id=expense.id,
                     object_name=expense.type_expense, changes={'amount': str(expense.amount),
                                                                'payment_method': expense.payment_method})
    return Response(ExpenseSerializer(expense).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def expense_detail(request, pk):
    expense = get_object_or_404(Expense.objects.select_related('work', 'staff'), pk=pk)

    if request.method == 'GET':
        return Response(ExpenseSerializer(expense).data)
    elif request.method in ('PUT', 'PATCH'):
        if expense.payment_status == 'paid_via_invoice' or expense.supplier_invoice_items.exists():
            return Response({'error': 'Expense belongs to a supplier invoice; edit the invoice instead.'},
                            status=status.HTTP_400_BAD_REQUEST)
        if expense.related_fixed_expense_id:
            return Response({'error': 'Expense belongs to a fixed expense; register payments on the fixed expense instead.'},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer = ExpenseSerializer(expense, data=request.data, partial=(request.method == 'PATCH'))
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        was_paid = expense.payment_status == 'paid'
        will_be_paid = serializer.validated_data.get('payment_status', expense.payment_status) == 'paid'
        rebook = was_paid and will_be_paid and _ledger_changed(expense, serializer.validated_data)
        try:
            with transaction.atomic():
                if was_paid and (not will_be_paid or rebook):
                    reverse_transactions_for_expense(expense, user=request.user)
                expense = serializer.save()
                if will_be_paid and (not was_paid or rebook):
                    create_withdrawal_for_expense(expense, user=request.user)
        except BankingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='update', model_name='Expense', object_id=expense.id,
                         object_name=expense.type_expense,
                         changes={'payment_status': expense.payment_status, 'rebooked': rebook})
        return Response(ExpenseSerializer(expense).data)
    else:  # DELETE
        if expense.payment_status == 'paid_via_invoice' or expense.supplier_invoice_items.exists():
            return Response({'error': 'Expense belongs to a supplier invoice; delete the invoice instead.'},
                            status=status.HTTP_400_BAD_REQUEST)
        if FixedExpensePayment.objects.filter(expense=expense).exists():
            return Response({'error': 'Expense is a fixed expense payment; delete the payment instead.'},
                            status=status.HTTP_400_BAD_REQUEST)
        try:
            with transaction.atomic():
                reverse_transactions_for_expense(expense, user=request.user)
                create_audit_log(request=request, action='delete', model_name='Expense', object_id=expense.id,
                                 object_name=expense.type_expense, changes={'amount': str(expense.amount)})
                expense.delete()
        except BankingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_balance(request, pk):
    """Income, expenses and resulting balance for a single work"""
    work = get_object_or_404(Work, pk=pk)
    incomes = work.incomes.select_related('staff').order_by('-date', '-id')
    expenses = work.expenses.select_related('staff').order_by('-date', '-id')

    total_income = incomes.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
    total_expense = expenses.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')

    return Response({
        'work_id': work.id,
        'property_address': work.property_address,
        'status': work.status,
        'total_income': total_income,
        'total_expense': total_expense,
        'balance': total_income - total_expense,
        'incomes': IncomeSerializer(incomes, many=True).data,
        'expenses': ExpenseSerializer(expenses, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_methods(request):
    methods = [dict(method, uses_bank_account=is_bank_payment_method(method['value'])) for method in PAYMENT_METHODS]
    return Response({
        'payment_methods': methods,
        'income_types': [{'value': value, 'label': label} for value, label in INCOME_TYPES],
        'expense_types': [{'value': value, 'label': label} for value, label in EXPENSE_TYPES],
    })


# Fixed expense views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def fixed_expense_list_create(request):
    """List fixed expenses or create one (its first due date is derived from start date and frequency)"""
    if request.method == 'GET':
        queryset = FixedExpense.objects.select_related('staff', 'created_by')
        filterset = FixedExpenseFilter(request.query_params, queryset=queryset)
        return Response(paginate_queryset(request, filterset.qs.order_by('next_due_date', 'name'),
                                          FixedExpenseSerializer))

    serializer = FixedExpenseSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    fixed_expense = fixed_expenses.create_fixed_expense(serializer.validated_data, user=request.user)
    create_audit_log(request=request, action='create', model_name='FixedExpense', object_id=fixed_expense.id,
                     object_name=fixed_expense.name, changes={'total_amount': str(fixed_expense.total_amount),
                                                              'frequency': fixed_expense.frequency})
    return Response(FixedExpenseSerializer(fixed_expense).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def fixed_expense_detail(request, pk):
    fixed_expense = get_object_or_404(FixedExpense.objects.select_related('staff', 'created_by'), pk=pk)

    if request.method == 'GET':
        data = FixedExpenseSerializer(fixed_expense).data
        data['monthly_equivalent'] = fixed_expenses.monthly_equivalent(fixed_expense)
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = FixedExpenseSerializer(fixed_expense, data=request.data, partial=(request.method == 'PATCH'))
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            fixed_expense = fixed_expenses.update_fixed_expense(fixed_expense, serializer.validated_data)
        except fixed_expenses.FixedExpenseError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='update', model_name='FixedExpense', object_id=fixed_expense.id,
                         object_name=fixed_expense.name,
                         changes={key: str(value) for key, value in serializer.validated_data.items()})
        return Response(FixedExpenseSerializer(fixed_expense).data)
    else:  # DELETE
        fixed_expense_id = fixed_expense.id
        try:
            fixed_expenses.delete_fixed_expense(fixed_expense)
        except fixed_expenses.FixedExpenseError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
        create_audit_log(request=request, action='delete', model_name='FixedExpense', object_id=fixed_expense_id,
                         object_name=fixed_expense.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def fixed_expense_toggle(request, pk):
    """Activate or deactivate a fixed expense"""
    fixed_expense = get_object_or_404(FixedExpense, pk=pk)
    fixed_expense.is_active = not fixed_expense.is_active
    fixed_expense.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Fixed expense {fixed_expense.name} {'activated' if fixed_expense.is_active else 'deactivated'}")
    create_audit_log(request=request, action='update', model_name='FixedExpense', object_id=fixed_expense.id,
                     object_name=fixed_expense.name, changes={'is_active': fixed_expense.is_active})
    return Response(FixedExpenseSerializer(fixed_expense).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def fixed_expense_upcoming(request):
    try:
        days = int(request.query_params.get('days', 30))
    except ValueError:
        return Response({'error': 'days must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    queryset = fixed_expenses.upcoming(days=days)
    return Response({
        'days': days,
        'count': queryset.count(),
        'total_remaining': sum((f.remaining_amount for f in queryset), Decimal('0.00')),
        'results': FixedExpenseSerializer(queryset, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def fixed_expense_summary(request):
    """Monthly commitment with category totals, entries due this week and overdue entries"""
    summary = fixed_expenses.build_summary(today=timezone.localdate())
    summary['due_this_week'] = FixedExpenseSerializer(summary['due_this_week'], many=True).data
    summary['overdue'] = FixedExpenseSerializer(summary['overdue'], many=True).data
    return Response(summary)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def fixed_expense_payments(request, pk):
    """Payment history, or register a (partial) payment with an optional receipt"""
    fixed_expense = get_object_or_404(FixedExpense, pk=pk)

    if request.method == 'GET':
        payments = fixed_expense.payments.select_related('expense', 'created_by').order_by('-payment_date', '-id')
        total_paid = payments.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
        return Response({
            'fixed_expense': FixedExpenseSerializer(fixed_expense).data,
            'payment_count': payments.count(),
            'total_paid': total_paid,
            'payments': FixedExpensePaymentSerializer(payments, many=True).data,
        })

    serializer = FixedExpensePaymentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        payment, bank_transaction = fixed_expenses.register_payment(
            fixed_expense, data['amount'], payment_method=data.get('payment_method'),
            payment_date=data.get('payment_date'), notes=data.get('notes', ''), receipt=data.get('receipt'),
            user=request.user,
        )
    except (fixed_expenses.FixedExpenseError, BankingError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    fixed_expense.refresh_from_db()
    return Response({
        'message': 'Payment registered',
        'payment': FixedExpensePaymentSerializer(payment).data,
        'fixed_expense': FixedExpenseSerializer(fixed_expense).data,
        'bank_transaction_id': bank_transaction.id if bank_transaction else None,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def fixed_expense_pay_remaining(request, pk):
    """Pay whatever is still owed on the current period in one go"""
    fixed_expense = get_object_or_404(FixedExpense, pk=pk)
    serializer = PayRemainingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        payment, bank_transaction = fixed_expenses.pay_remaining(
            fixed_expense, payment_method=data.get('payment_method'), payment_date=data.get('payment_date'),
            notes=data.get('notes', ''), user=request.user,
        )
    except (fixed_expenses.FixedExpenseError, BankingError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    fixed_expense.refresh_from_db()
    return Response({
        'message': 'Period paid',
        'payment': FixedExpensePaymentSerializer(payment).data,
        'fixed_expense': FixedExpenseSerializer(fixed_expense).data,
        'bank_transaction_id': bank_transaction.id if bank_transaction else None,
    }, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def fixed_expense_payment_delete(request, pk):
    payment = get_object_or_404(FixedExpensePayment.objects.select_related('fixed_expense', 'expense'), pk=pk)
    try:
        fixed_expense = fixed_expenses.delete_payment(payment, user=request.user)
    except (fixed_expenses.FixedExpenseError, BankingError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'message': 'Payment deleted', 'fixed_expense': FixedExpenseSerializer(fixed_expense).data})
