from decimal import Decimal

from rest_framework import serializers

from septicworks.finance.constants import PAYMENT_METHOD_VALUES, EXPENSE_TYPES
from septicworks.finance.models import Expense
from septicworks.works.models import Work
from .models import SupplierInvoice, SupplierInvoiceItem


class SupplierInvoiceItemSerializer(serializers.ModelSerializer):
    work_address = serializers.CharField(source='work.property_address', read_only=True, default=None)
    expense_status = serializers.CharField(source='related_expense.payment_status', read_only=True, default=None)

    class Meta:
        model = SupplierInvoiceItem
        fields = ['id', 'work', 'work_address', 'description', 'category', 'amount', 'related_expense',
                  'expense_status', 'expense_auto_created', 'notes', 'created_at']
        read_only_fields = fields


class SupplierInvoiceItemInputSerializer(serializers.Serializer):
    """Line as submitted: either an existing unpaid expense or a new one"""
    expense_id = serializers.PrimaryKeyRelatedField(queryset=Expense.objects.all(), required=False,
                                                    allow_null=True, source='expense')
    work = serializers.PrimaryKeyRelatedField(queryset=Work.objects.all(), required=False, allow_null=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=EXPENSE_TYPES, required=False)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'), required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        expense = attrs.get('expense')
        if expense is not None:
            if expense.payment_status != 'unpaid':
                raise serializers.ValidationError({'expense_id': f"Expense {expense.pk} is already {expense.payment_status}"})
            attrs.setdefault('amount', expense.amount)
            attrs.setdefault('work', expense.work)
            attrs.setdefault('category', expense.type_expense)
            if not attrs.get('description'):
                attrs['description'] = expense.notes or expense.get_type_expense_display()
        else:
            if not attrs.get('amount'):
                raise serializers.ValidationError({'amount': 'Amount is required when no expense_id is given.'})
            if not attrs.get('description'):
                raise serializers.ValidationError({'description': 'This field is required.'})
        return attrs


class SupplierInvoiceSerializer(serializers.ModelSerializer):
    items = SupplierInvoiceItemSerializer(many=True, read_only=True)
    outstanding_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True, default=None)

    class Meta:
        model = SupplierInvoice
        fields = [
            'id', 'invoice_number', 'vendor', 'vendor_email', 'vendor_phone', 'vendor_address', 'issue_date',
            'due_date', 'total_amount', 'paid_amount', 'outstanding_amount', 'payment_status', 'is_overdue',
            'payment_method', 'payment_date', 'payment_details', 'notes', 'verified', 'invoice_file',
            'items', 'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'total_amount', 'paid_amount', 'payment_status', 'payment_method', 'payment_date',
            'invoice_file', 'created_by', 'created_at', 'updated_at'
        ]
        # Duplicate (vendor, invoice_number) is reported by the view as 409
        validators = []

    def validate_invoice_number(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('This field is required.')
        return value

    def validate_vendor(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('This field is required.')
        return value

    def validate(self, attrs):
        issue_date = attrs.get('issue_date', getattr(self.instance, 'issue_date', None))
        due_date = attrs.get('due_date', getattr(self.instance, 'due_date', None))
        if issue_date and due_date and due_date < issue_date:
            raise serializers.ValidationError({'due_date': 'Due date cannot be before the issue date.'})
        return attrs


class PaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.CharField(max_length=50)
    payment_date = serializers.DateField(required=False)
    payment_details = serializers.CharField(required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_payment_method(self, value):
        if value not in PAYMENT_METHOD_VALUES:
            raise serializers.ValidationError(f"Unknown payment method: {value}")
        return value
