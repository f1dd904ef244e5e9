from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from rest_framework import serializers

from septicworks.core.cache_utils import invalidate_finance_caches
from septicworks.core.cache_signals import suspend_cache_signals
from .models import Budget, BudgetItem, BudgetLineItem, BudgetNote, FinalInvoice, WorkExtraItem


class BudgetItemSerializer(serializers.ModelSerializer):
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))

    class Meta:
        model = BudgetItem
        fields = [
            'id', 'name', 'description', 'category', 'brand', 'capacity', 'unit_price', 'unit',
            'supplier_name', 'supplier_location', 'image', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']


class BudgetLineItemSerializer(serializers.ModelSerializer):
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False)
    budget_item = serializers.PrimaryKeyRelatedField(queryset=BudgetItem.objects.all(), required=False, allow_null=True)

    class Meta:
        model = BudgetLineItem
        fields = ['id', 'budget_item', 'category', 'name', 'description', 'quantity', 'unit_price', 'line_total']
        read_only_fields = ['line_total']
        extra_kwargs = {'name': {'required': False}}

    def validate(self, attrs):
        # Catalog lines take name, category, description and price from the item unless given
        item = attrs.get('budget_item')
        if item is not None:
            if not item.is_active:
                raise serializers.ValidationError({'budget_item': f"Budget item {item.name} is inactive."})
            attrs.setdefault('name', item.name)
            attrs.setdefault('category', item.category)
            attrs.setdefault('description', item.description)
            attrs.setdefault('unit_price', item.unit_price)
        if not attrs.get('name'):
            raise serializers.ValidationError({'name': 'This field is required.'})
        if 'unit_price' not in attrs:
            raise serializers.ValidationError({'unit_price': 'This field is required.'})
        return attrs


class BudgetSerializer(serializers.ModelSerializer):
    line_items = BudgetLineItemSerializer(many=True, read_only=True)
    permit_number = serializers.CharField(source='permit.permit_number', read_only=True, default=None)
    work_id = serializers.SerializerMethodField()
    initial_payment_received = serializers.BooleanField(read_only=True)

    class Meta:
        model = Budget
        fields = [
            'id', 'permit', 'permit_number', 'applicant_name', 'applicant_email', 'property_address',
            'date', 'expiration_date', 'status', 'discount_description', 'discount_amount',
            'subtotal_price', 'total_price', 'initial_payment_percentage', 'initial_payment',
            'payment_proof_amount', 'payment_proof_method', 'payment_proof_date', 'initial_payment_received',
            'invoice_number', 'general_notes', 'is_legacy', 'sent_at', 'approved_at', 'work_id',
            'line_items', 'created_by', 'created_at', 'updated_at'
        ]
        # Totals and workflow fields are maintained by the budget endpoints
        read_only_fields = [
            'subtotal_price', 'total_price', 'initial_payment', 'payment_proof_amount',
            'payment_proof_method', 'payment_proof_date', 'invoice_number', 'sent_at', 'approved_at',
            'created_by', 'created_at', 'updated_at'
        ]

    def get_work_id(self, obj):
        work = getattr(obj, 'work', None)
        return work.id if work else None

    def validate_status(self, value):
        # Accepted budgets are reached through the approve endpoint
        if value in Budget.ACCEPTED_STATUSES and (self.instance is None or self.instance.status != value):
            raise serializers.ValidationError('Use the approve endpoint to accept a budget.')
        return value

    def validate(self, attrs):
        permit = attrs.get('permit')
        if permit is not None:
            attrs.setdefault('property_address', permit.property_address)
            attrs.setdefault('applicant_name', permit.applicant_name)
            if not attrs.get('applicant_email') and permit.applicant_email:
                attrs['applicant_email'] = permit.applicant_email
        if self.instance is None:
            if not attrs.get('property_address'):
                raise serializers.ValidationError({'property_address': 'This field is required.'})
            if not attrs.get('applicant_name'):
                raise serializers.ValidationError({'applicant_name': 'This field is required.'})
        return attrs

    def _validated_items(self):
        items_data = self.context.get('items_data')
        if items_data is None:
            return None
        item_serializer = BudgetLineItemSerializer(data=items_data, many=True)
        if not item_serializer.is_valid():
            raise serializers.ValidationError({'line_items': item_serializer.errors})
        return item_serializer.validated_data

    def _replace_items(self, budget, items):
        budget.line_items.all().delete()
        for item in items:
            BudgetLineItem.objects.create(budget=budget, **item)

    def create(self, validated_data):
        items = self._validated_items() or []
        with suspend_cache_signals(), transaction.atomic():
            budget = super().create(validated_data)
            self._replace_items(budget, items)
            budget.recalculate_totals()
            transaction.on_commit(invalidate_finance_caches)
        return budget

    def update(self, instance, validated_data):
        items = self._validated_items()
        with suspend_cache_signals(), transaction.atomic():
            budget = super().update(instance, validated_data)
            if items is not None:
                self._replace_items(budget, items)
            budget.recalculate_totals()
            transaction.on_commit(invalidate_finance_caches)
        return budget


class BudgetListSerializer(serializers.ModelSerializer):
    permit_number = serializers.CharField(source='permit.permit_number', read_only=True, default=None)

    class Meta:
        model = Budget
        fields = [
            'id', 'permit', 'permit_number', 'applicant_name', 'property_address', 'date', 'expiration_date',
            'status', 'total_price', 'initial_payment', 'payment_proof_amount', 'invoice_number', 'is_legacy',
            'created_at'
        ]


class PaymentProofSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.CharField(max_length=50)
    date = serializers.DateField(required=False)
    payment_details = serializers.CharField(required=False, allow_blank=True, max_length=255)

    def validate_payment_method(self, value):
        from septicworks.finance.constants import PAYMENT_METHOD_VALUES
        if value not in PAYMENT_METHOD_VALUES:
            raise serializers.ValidationError(f"Unknown payment method: {value}")
        return value


class WorkExtraItemSerializer(serializers.ModelSerializer):
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))
    change_order_number = serializers.CharField(source='change_order.change_order_number', read_only=True, default=None)

    class Meta:
        model = WorkExtraItem
        fields = ['id', 'description', 'quantity', 'unit_price', 'line_total', 'change_order',
                  'change_order_number', 'created_at']
        read_only_fields = ['line_total', 'change_order', 'created_at']


class FinalInvoiceSerializer(serializers.ModelSerializer):
    extra_items = WorkExtraItemSerializer(many=True, read_only=True)
    property_address = serializers.CharField(source='work.property_address', read_only=True)
    applicant_name = serializers.CharField(source='work.applicant_name', read_only=True)
    applicant_email = serializers.CharField(source='work.applicant_email', read_only=True)
    work_status = serializers.CharField(source='work.status', read_only=True)

    class Meta:
        model = FinalInvoice
        fields = [
            'id', 'work', 'budget', 'invoice_number', 'invoice_date', 'property_address', 'applicant_name',
            'applicant_email', 'work_status', 'original_budget_total', 'initial_payment_made',
            'subtotal_extras', 'discount', 'discount_reason', 'final_amount_due', 'status', 'payment_date',
            'payment_notes', 'notes', 'email_sent_at', 'extra_items', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'work', 'budget', 'invoice_number', 'original_budget_total', 'initial_payment_made',
            'subtotal_extras', 'final_amount_due', 'payment_date', 'email_sent_at', 'created_at', 'updated_at'
        ]


class FinalInvoiceCreateSerializer(serializers.Serializer):
    invoice_date = serializers.DateField(required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'),
                                        default=Decimal('0.00'))
    discount_reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class FinalInvoiceUpdateSerializer(serializers.Serializer):
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False)
    discount_reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=FinalInvoice.STATUS_CHOICES, required=False)
    payment_date = serializers.DateField(required=False)
    payment_notes = serializers.CharField(required=False, allow_blank=True)
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_payment_method(self, value):
        from septicworks.finance.constants import PAYMENT_METHOD_VALUES
        if value and value not in PAYMENT_METHOD_VALUES:
            raise serializers.ValidationError(f"Unknown payment method: {value}")
        return value


class BudgetNoteSerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    mentioned_staff_names = serializers.SerializerMethodField()

    class Meta:
        model = BudgetNote
        fields = [
            'id', 'budget', 'staff', 'staff_name', 'message', 'note_type', 'priority', 'related_status',
            'is_resolved', 'resolved_at', 'mentioned_staff', 'mentioned_staff_names', 'created_at', 'updated_at'
        ]
        read_only_fields = ['budget', 'staff', 'related_status', 'resolved_at', 'mentioned_staff',
                            'created_at', 'updated_at']

    def get_mentioned_staff_names(self, obj):
        return [user.display_name for user in obj.mentioned_staff.all()]

    def update(self, instance, validated_data):
        if validated_data.get('is_resolved') and not instance.is_resolved:
            instance.resolved_at = timezone.now()
        elif validated_data.get('is_resolved') is False:
            instance.resolved_at = None
        return super().update(instance, validated_data)
