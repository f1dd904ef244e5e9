from decimal import Decimal
from rest_framework import serializers
from .models import BankAccount, BankTransaction


class BankAccountSerializer(serializers.ModelSerializer):
    formatted_balance = serializers.CharField(read_only=True)
    initial_balance = serializers.DecimalField(max_digits=14, decimal_places=2, write_only=True,
                                               required=False, min_value=Decimal('0'))

    class Meta:
        model = BankAccount
        fields = [
            'id', 'account_name', 'account_type', 'bank_name', 'account_number', 'current_balance',
            'formatted_balance', 'initial_balance', 'currency', 'is_active', 'notes', 'created_at', 'updated_at'
        ]
        # Balance only changes through transactions
        read_only_fields = ['current_balance', 'created_at', 'updated_at']

    def validate_account_name(self, value):
        value = (value or '').strip()
        queryset = BankAccount.objects.filter(account_name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('An account with this name already exists.')
        return value

    def validate_currency(self, value):
        return (value or 'USD').upper()


class BankTransactionSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source='bank_account.account_name', read_only=True)
    formatted_amount = serializers.CharField(read_only=True)
    transfer_to_account_name = serializers.CharField(source='transfer_to_account.account_name', read_only=True, default=None)
    transfer_from_account_name = serializers.CharField(source='transfer_from_account.account_name', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True, default=None)

    class Meta:
        model = BankTransaction
        fields = [
            'id', 'bank_account', 'account_name', 'transaction_type', 'amount', 'formatted_amount',
            'date', 'description', 'category', 'balance_after', 'related_income', 'related_expense',
            'related_supplier_invoice', 'transfer_to_account', 'transfer_to_account_name',
            'transfer_from_account', 'transfer_from_account_name', 'related_transfer',
            'reference_number', 'notes', 'created_by', 'created_by_name', 'created_at'
        ]
        read_only_fields = fields


class MovementSerializer(serializers.Serializer):
    """Input for deposits and withdrawals"""
    bank_account = serializers.PrimaryKeyRelatedField(queryset=BankAccount.objects.all())
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    date = serializers.DateField(required=False)
    description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    category = serializers.ChoiceField(choices=BankTransaction.CATEGORY_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    related_income = serializers.IntegerField(required=False, allow_null=True)
    related_expense = serializers.IntegerField(required=False, allow_null=True)
    work = serializers.IntegerField(required=False, allow_null=True)


class TransferSerializer(serializers.Serializer):
    from_account = serializers.PrimaryKeyRelatedField(queryset=BankAccount.objects.all())
    to_account = serializers.PrimaryKeyRelatedField(queryset=BankAccount.objects.all())
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    date = serializers.DateField(required=False)
    description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['from_account'].pk == attrs['to_account'].pk:
            raise serializers.ValidationError('Source and destination accounts must be different')
        return attrs
