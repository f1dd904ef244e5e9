import logging
from decimal import Decimal

from django.db.models import Sum, Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from septicworks.core.permissions import IsFinanceStaff
from septicworks.core.utils import create_audit_log, paginate_queryset
from . import services
from .filters import BankTransactionFilter
from .models import BankAccount, BankTransaction
from .serializers import (
    BankAccountSerializer, BankTransactionSerializer, MovementSerializer, TransferSerializer
)

logger = logging.getLogger(__name__)


def _error_response(error):
    return Response({'error': str(error)}, status=status.HTTP_400_BAD_REQUEST)


# Bank account views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_account_list_create(request):
    """List accounts (active only unless include_inactive=true) or open a new one"""
    if request.method == 'GET':
        accounts = BankAccount.objects.all().annotate(transaction_count=Count('transactions'))
        if request.query_params.get('include_inactive', 'false').lower() != 'true':
            accounts = accounts.filter(is_active=True)

        total_balance = BankAccount.objects.filter(is_active=True).aggregate(
            total=Sum('current_balance'))['total'] or Decimal('0.00')

        data = []
        for account in accounts.order_by('account_name'):
            item = BankAccountSerializer(account).data
            item['transaction_count'] = account.transaction_count
            data.append(item)

        return Response({
            'accounts': data,
            'count': len(data),
            'total_balance': total_balance,
            'formatted_total_balance': f"${total_balance:,.2f}",
        })

    serializer = BankAccountSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    initial_balance = serializer.validated_data.pop('initial_balance', None) or Decimal('0.00')
    account = serializer.save()
    if initial_balance > 0:
        # Opening balance is recorded as a transaction so the ledger reconciles
        services.deposit(account, initial_balance, description='Opening balance', category='manual',
                         user=request.user)
        account.refresh_from_db()

    create_audit_log(request=request, action='create', model_name='BankAccount', object_id=account.id,
                     object_name=account.account_name, changes={'initial_balance': str(initial_balance)})
    return Response(BankAccountSerializer(account).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_account_detail(request, pk):
    """Retrieve (with per-type stats), update or deactivate an account"""
    account = get_object_or_404(BankAccount, pk=pk)

    if request.method == 'GET':
        data = BankAccountSerializer(account).data
        stats = account.transactions.values('transaction_type').annotate(
            count=Count('id'), total=Sum('amount')
        ).order_by('transaction_type')
        data['stats'] = {
            row['transaction_type']: {'count': row['count'], 'total': row['total']}
            for row in stats
        }
        recent = account.transactions.select_related('created_by').order_by('-date', '-id')[:10]
        data['recent_transactions'] = BankTransactionSerializer(recent, many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BankAccountSerializer(account, data=request.data, partial=(request.method == 'PATCH'))
        if serializer.is_valid():
            serializer.validated_data.pop('initial_balance', None)
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if account.transactions.exists():
            account.is_active = False
            account.save(update_fields=['is_active', 'updated_at'])
            create_audit_log(request=request, action='update', model_name='BankAccount', object_id=account.id,
                             object_name=account.account_name, changes={'is_active': False})
            return Response({'message': 'Account has transactions and was deactivated.', 'deactivated': True})
        create_audit_log(request=request, action='delete', model_name='BankAccount', object_id=account.id,
                         object_name=account.account_name)
        account.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_account_balance(request, pk):
    account = get_object_or_404(BankAccount, pk=pk)
    last_transaction = account.transactions.order_by('-date', '-id').first()
    return Response({
        'id': account.id,
        'account_name': account.account_name,
        'current_balance': account.current_balance,
        'formatted_balance': account.formatted_balance,
        'currency': account.currency,
        'transaction_count': account.transactions.count(),
        'last_transaction': BankTransactionSerializer(last_transaction).data if last_transaction else None,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_account_summary(request):
    """Balances grouped by account type plus this month's movement"""
    today = timezone.localdate()
    accounts = BankAccount.objects.filter(is_active=True)

    by_type = {}
    for row in accounts.values('account_type').annotate(total=Sum('current_balance'), count=Count('id')):
        by_type[row['account_type']] = {'total': row['total'], 'count': row['count']}

    month_transactions = BankTransaction.objects.filter(date__year=today.year, date__month=today.month)
    month_totals = month_transactions.aggregate(
        deposits=Sum('amount', filter=Q(transaction_type='deposit')),
        withdrawals=Sum('amount', filter=Q(transaction_type='withdrawal')),
    )

    return Response({
        'total_balance': accounts.aggregate(total=Sum('current_balance'))['total'] or Decimal('0.00'),
        'by_type': by_type,
        'month': {
            'year': today.year,
            'month': today.month,
            'deposits': month_totals['deposits'] or Decimal('0.00'),
            'withdrawals': month_totals['withdrawals'] or Decimal('0.00'),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_account_statement(request, pk):
    """Transactions in a date range with opening and closing balances"""
    account = get_object_or_404(BankAccount, pk=pk)
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')

    transactions = account.transactions.select_related('created_by')
    before = BankTransaction.objects.none()
    if date_from:
        before = transactions.filter(date__lt=date_from)
        transactions = transactions.filter(date__gte=date_from)
    if date_to:
        transactions = transactions.filter(date__lte=date_to)

    opening_balance = sum((t.signed_amount for t in before), Decimal('0.00'))
    transactions = list(transactions.order_by('date', 'id'))
    closing_balance = opening_balance + sum((t.signed_amount for t in transactions), Decimal('0.00'))

    return Response({
        'account': BankAccountSerializer(account).data,
        'date_from': date_from,
        'date_to': date_to,
        'opening_balance': opening_balance,
        'closing_balance': closing_balance,
        'total_in': sum((t.amount for t in transactions if t.is_credit), Decimal('0.00')),
        'total_out': sum((t.amount for t in transactions if not t.is_credit), Decimal('0.00')),
        'transactions': BankTransactionSerializer(transactions, many=True).data,
    })


# Bank transaction views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_transaction_list(request):
    queryset = BankTransaction.objects.select_related(
        'bank_account', 'transfer_to_account', 'transfer_from_account', 'created_by'
    )
    filterset = BankTransactionFilter(request.query_params, queryset=queryset)
    queryset = filterset.qs.order_by('-date', '-id')
    return Response(paginate_queryset(request, queryset, BankTransactionSerializer, default_limit=50))


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_transaction_detail(request, pk):
    """Retrieve or delete (reverse) a transaction"""
    bank_transaction = get_object_or_404(BankTransaction.objects.select_related('bank_account'), pk=pk)

    if request.method == 'GET':
        return Response(BankTransactionSerializer(bank_transaction).data)

    try:
        summary = services.delete_transaction(bank_transaction, user=request.user)
    except services.BankingError as e:
        return _error_response(e)
    return Response({'message': 'Transaction deleted and balance reversed', 'reversed': summary})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_deposit(request):
    serializer = MovementSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    related_income = None
    if data.get('related_income'):
        from septicworks.finance.models import Income
        related_income = get_object_or_404(Income, pk=data['related_income'])
    work = None
    if data.get('work'):
        from septicworks.works.models import Work
        work = get_object_or_404(Work, pk=data['work'])

    try:
        bank_transaction = services.deposit(
            data['bank_account'], data['amount'], date=data.get('date'),
            description=data.get('description', ''), category=data.get('category', 'income'),
            user=request.user, related_income=related_income, notes=data.get('notes', ''),
            reference_number=data.get('reference_number', ''), work=work,
        )
    except services.BankingError as e:
        return _error_response(e)

    bank_transaction.refresh_from_db()
    return Response({
        'message': 'Deposit recorded',
        'transaction': BankTransactionSerializer(bank_transaction).data,
        'new_balance': bank_transaction.balance_after,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_withdrawal(request):
    serializer = MovementSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    related_expense = None
    if data.get('related_expense'):
        from septicworks.finance.models import Expense
        related_expense = get_object_or_404(Expense, pk=data['related_expense'])

    try:
        bank_transaction = services.withdraw(
            data['bank_account'], data['amount'], date=data.get('date'),
            description=data.get('description', ''), category=data.get('category', 'expense'),
            user=request.user, related_expense=related_expense, notes=data.get('notes', ''),
            reference_number=data.get('reference_number', ''),
        )
    except services.BankingError as e:
        return _error_response(e)

    return Response({
        'message': 'Withdrawal recorded',
        'transaction': BankTransactionSerializer(bank_transaction).data,
        'new_balance': bank_transaction.balance_after,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def bank_transfer(request):
    serializer = TransferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        transfer_out, transfer_in = services.transfer(
            data['from_account'], data['to_account'], data['amount'], date=data.get('date'),
            description=data.get('description', ''), user=request.user, notes=data.get('notes', ''),
        )
    except services.BankingError as e:
        return _error_response(e)

    transfer_out.refresh_from_db()
    return Response({
        'message': 'Transfer recorded',
        'transfer_out': BankTransactionSerializer(transfer_out).data,
        'transfer_in': BankTransactionSerializer(transfer_in).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def credit_card_payment(request):
    """Pay a credit card account from a bank account"""
    serializer = TransferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        transfer_out, transfer_in = services.create_credit_card_payment(
            data['from_account'], data['to_account'], data['amount'], date=data.get('date'),
            user=request.user, notes=data.get('notes', ''),
        )
    except services.BankingError as e:
        return _error_response(e)

    transfer_out.refresh_from_db()
    return Response({
        'message': 'Credit card payment recorded',
        'transfer_out': BankTransactionSerializer(transfer_out).data,
        'transfer_in': BankTransactionSerializer(transfer_in).data,
    }, status=status.HTTP_201_CREATED)
