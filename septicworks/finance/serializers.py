from decimal import Decimal

from rest_framework import serializers
from .constants import PAYMENT_METHOD_VALUES
from .models import Income, Expense, FixedExpense, FixedExpensePayment


class IncomeSerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    work_address = serializers.CharField(source='work.property_address', read_only=True, default=None)
    bank_transaction_id = serializers.SerializerMethodField()

    class Meta:
        model = Income
        fields = [
            'id', 'work', 'work_address', 'amount', 'date', 'type_income', 'payment_method',
            'payment_details', 'notes', 'staff', 'staff_name', 'verified', 'bank_transaction_id',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['staff', 'created_at', 'updated_at']

    def get_bank_transaction_id(self, obj):
        bank_transaction = obj.bank_transactions.first()
        return bank_transaction.id if bank_transaction else None


class ExpenseSerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    work_address = serializers.CharField(source='work.property_address', read_only=True, default=None)
    supplier_invoice = serializers.SerializerMethodField()
    fixed_expense_name = serializers.CharField(source='related_fixed_expense.name', read_only=True, default=None)

    class Meta:
        model = Expense
        fields = [
            'id', 'work', 'work_address', 'amount', 'date', 'type_expense', 'payment_method',
            'payment_details', 'payment_status', 'vendor', 'notes', 'staff', 'staff_name', 'verified',
            'supplier_invoice', 'related_fixed_expense', 'fixed_expense_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['staff', 'related_fixed_expense', 'created_at', 'updated_at']

    def get_supplier_invoice(self, obj):
        item = obj.supplier_invoice_items.select_related('supplier_invoice').first()
        if item is None:
            return None
        return {'id': item.supplier_invoice_id, 'invoice_number': item.supplier_invoice.invoice_number}

    def validate_payment_status(self, value):
        # paid_via_invoice is set by the supplier invoice flow only
        current = self.instance.payment_status if self.instance else None
        if value == 'paid_via_invoice' and current != 'paid_via_invoice':
            raise serializers.ValidationError('Expenses are marked paid via invoice from a supplier invoice.')
        return value


class FixedExpensePaymentSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True, default=None)
    bank_transaction_id = serializers.SerializerMethodField()

    class Meta:
        model = FixedExpensePayment
        fields = [
            'id', 'fixed_expense', 'amount', 'payment_date', 'payment_method', 'period_due_date', 'notes',
            'receipt', 'expense', 'bank_transaction_id', 'created_by', 'created_by_name', 'created_at'
        ]
        read_only_fields = fields

    def get_bank_transaction_id(self, obj):
        if obj.expense_id is None:
            return None
        bank_transaction = obj.expense.bank_transactions.first()
        return bank_transaction.id if bank_transaction else None


class FixedExpenseSerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True, default=None)
    remaining_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = FixedExpense
        fields = [
            'id', 'name', 'description', 'total_amount', 'paid_amount', 'remaining_amount', 'frequency',
            'category', 'payment_method', 'start_date', 'end_date', 'next_due_date', 'payment_status',
            'paid_date', 'is_overdue', 'is_active', 'auto_create_expense', 'vendor', 'account_number', 'notes',
            'staff', 'staff_name', 'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['paid_amount', 'next_due_date', 'payment_status', 'paid_date', 'created_by',
                            'created_at', 'updated_at']

    def validate(self, data):
        start_date = data.get('start_date', self.instance.start_date if self.instance else None)
        end_date = data.get('end_date', self.instance.end_date if self.instance else None)
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({'end_date': 'End date cannot be before the start date.'})
        return data


class FixedExpensePaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True)
    payment_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    receipt = serializers.FileField(required=False)

    def validate_payment_method(self, value):
        if value and value not in PAYMENT_METHOD_VALUES:
            raise serializers.ValidationError(f"Unknown payment method: {value}")
        return value


class PayRemainingSerializer(serializers.Serializer):
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True)
    payment_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_payment_method(self, value):
        if value and value not in PAYMENT_METHOD_VALUES:
            raise serializers.ValidationError(f"Unknown payment method: {value}")
        return value
