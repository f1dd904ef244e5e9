from rest_framework import serializers
from django.utils import timezone
from .models import (
    Permit, Work, WorkStateHistory, WorkNote, Inspection, ChangeOrder, WorkChecklist, validate_email_list,
)


class PermitSerializer(serializers.ModelSerializer):
    works_count = serializers.IntegerField(source='works.count', read_only=True)

    class Meta:
        model = Permit
        fields = [
            'id', 'permit_number', 'application_number', 'applicant_name', 'applicant_email',
            'applicant_phone', 'property_address', 'lot', 'block', 'system_type', 'is_pbts',
            'gpd_capacity', 'drainfield_depth', 'excavation_required', 'expiration_date',
            'notification_emails', 'notes', 'permit_file', 'is_legacy', 'works_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']
        # Uniqueness is reported as 409 by the views
        extra_kwargs = {
            'permit_number': {'validators': []},
            'property_address': {'validators': []},
        }

    def validate_permit_number(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Permit number is required.')
        return value

    def validate_property_address(self, value):
        return (value or '').strip()

    def validate_notification_emails(self, value):
        if isinstance(value, str):
            value = [e.strip() for e in value.replace(';', ',').split(',') if e.strip()]
        try:
            validate_email_list(value)
        except Exception as e:
            raise serializers.ValidationError(getattr(e, 'messages', [str(e)]))
        return [e.strip() for e in value]


class WorkNoteSerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    property_address = serializers.CharField(source='work.property_address', read_only=True)

    class Meta:
        model = WorkNote
        fields = [
            'id', 'work', 'property_address', 'staff', 'staff_name', 'message', 'note_type',
            'priority', 'is_resolved', 'resolved_at', 'mentioned_staff', 'created_at', 'updated_at'
        ]
        read_only_fields = ['work', 'staff', 'resolved_at', 'created_at', 'updated_at']

    def update(self, instance, validated_data):
        if validated_data.get('is_resolved') and not instance.is_resolved:
            instance.resolved_at = timezone.now()
        elif validated_data.get('is_resolved') is False:
            instance.resolved_at = None
        return super().update(instance, validated_data)


class WorkStateHistorySerializer(serializers.ModelSerializer):
    changed_by_name = serializers.CharField(source='changed_by.display_name', read_only=True, default=None)

    class Meta:
        model = WorkStateHistory
        fields = ['id', 'work', 'from_status', 'to_status', 'changed_by', 'changed_by_name',
                  'reason', 'forced', 'rolled_back', 'created_at']


class InspectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Inspection
        fields = ['id', 'work', 'type', 'final_status', 'date_requested', 'date_result', 'notes',
                  'created_by', 'created_at']
        read_only_fields = ['work', 'final_status', 'date_result', 'created_by', 'created_at']


class ChangeOrderSerializer(serializers.ModelSerializer):
    property_address = serializers.CharField(source='work.property_address', read_only=True)

    class Meta:
        model = ChangeOrder
        fields = [
            'id', 'work', 'property_address', 'change_order_number', 'description', 'item_description',
            'hours', 'unit_cost', 'total_cost', 'status', 'client_message', 'admin_notes',
            'requested_at', 'responded_at', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['work', 'change_order_number', 'status', 'requested_at', 'responded_at',
                            'created_by', 'created_at', 'updated_at']

    def validate(self, attrs):
        hours = attrs.get('hours', getattr(self.instance, 'hours', None))
        unit_cost = attrs.get('unit_cost', getattr(self.instance, 'unit_cost', None))
        total_cost = attrs.get('total_cost', getattr(self.instance, 'total_cost', None))
        for name, value in (('hours', hours), ('unit_cost', unit_cost), ('total_cost', total_cost)):
            if value is not None and value < 0:
                raise serializers.ValidationError({name: 'Must not be negative.'})
        if (hours is None or unit_cost is None) and not total_cost:
            raise serializers.ValidationError(
                {'total_cost': 'Provide total_cost or both hours and unit_cost.'}
            )
        return attrs


class WorkListSerializer(serializers.ModelSerializer):
    permit_number = serializers.CharField(source='permit.permit_number', read_only=True, default=None)
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    applicant_name = serializers.CharField(read_only=True)

    class Meta:
        model = Work
        fields = [
            'id', 'property_address', 'permit', 'permit_number', 'budget', 'staff', 'staff_name',
            'status', 'status_display', 'applicant_name', 'start_date', 'installation_start_date',
            'maintenance_start_date', 'is_legacy', 'created_at', 'updated_at'
        ]


class WorkSerializer(WorkListSerializer):
    permit_detail = PermitSerializer(source='permit', read_only=True)
    open_notes_count = serializers.SerializerMethodField()

    class Meta(WorkListSerializer.Meta):
        fields = WorkListSerializer.Meta.fields + [
            'permit_detail', 'end_date', 'stone_extraction_co_needed', 'notes',
            'notice_to_owner_required', 'notice_to_owner_filed', 'notice_to_owner_filed_date',
            'lien_required', 'lien_filed', 'lien_filed_date',
            'operating_permit_file', 'maintenance_service_file', 'open_notes_count'
        ]
        # Status only moves through the status endpoint
        read_only_fields = ['status', 'created_at', 'updated_at']

    def get_open_notes_count(self, obj):
        return obj.work_notes.filter(is_resolved=False).count()

    def validate(self, attrs):
        permit = attrs.get('permit')
        if permit and not attrs.get('property_address') and not getattr(self.instance, 'property_address', None):
            attrs['property_address'] = permit.property_address
        if not attrs.get('property_address') and not getattr(self.instance, 'property_address', None):
            raise serializers.ValidationError({'property_address': 'Property address is required.'})

        today = timezone.localdate()
        if attrs.get('notice_to_owner_filed') and not attrs.get('notice_to_owner_filed_date'):
            if not getattr(self.instance, 'notice_to_owner_filed_date', None):
                attrs['notice_to_owner_filed_date'] = today
        if attrs.get('lien_filed') and not attrs.get('lien_filed_date'):
            if not getattr(self.instance, 'lien_filed_date', None):
                attrs['lien_filed_date'] = today
        return attrs


class WorkChecklistSerializer(serializers.ModelSerializer):
    property_address = serializers.CharField(source='work.property_address', read_only=True)
    work_status = serializers.CharField(source='work.status', read_only=True)
    reviewed_by_name = serializers.CharField(source='reviewed_by.display_name', read_only=True, default=None)
    completed_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = WorkChecklist
        fields = ['id', 'work', 'property_address', 'work_status', *WorkChecklist.CHECK_FIELDS,
                  'completed_count', 'reviewed_by', 'reviewed_by_name', 'reviewed_at', 'notes',
                  'created_at', 'updated_at']
        read_only_fields = ['work', 'reviewed_by', 'reviewed_at', 'created_at', 'updated_at']

    def update(self, instance, validated_data):
        completed = validated_data.get('final_review_completed')
        if completed and not instance.final_review_completed:
            instance.reviewed_by = self.context['request'].user
            instance.reviewed_at = timezone.now()
        elif completed is False:
            instance.reviewed_by = None
            instance.reviewed_at = None
        return super().update(instance, validated_data)
