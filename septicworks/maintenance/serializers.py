from rest_framework import serializers
from septicworks.core.models import User
from .models import MaintenanceVisit, MaintenanceMedia, INSPECTION_CHECKS


class MaintenanceMediaSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()

    class Meta:
        model = MaintenanceMedia
        fields = ['id', 'visit', 'file', 'url', 'media_type', 'original_name', 'field_name', 'uploaded_by', 'created_at']
        read_only_fields = fields

    def get_url(self, obj):
        if not obj.file:
            return None
        request = self.context.get('request')
        return request.build_absolute_uri(obj.file.url) if request else obj.file.url


class MaintenanceVisitListSerializer(serializers.ModelSerializer):
    property_address = serializers.CharField(source='work.property_address', read_only=True)
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    media_count = serializers.SerializerMethodField()

    class Meta:
        model = MaintenanceVisit
        fields = ['id', 'work', 'property_address', 'visit_number', 'scheduled_date', 'actual_visit_date',
                  'staff', 'staff_name', 'status', 'media_count', 'completed_at']

    def get_media_count(self, obj):
        return obj.media.count()


class MaintenanceVisitSerializer(serializers.ModelSerializer):
    property_address = serializers.CharField(source='work.property_address', read_only=True)
    permit_number = serializers.CharField(source='work.permit.permit_number', read_only=True, default=None)
    system_type = serializers.CharField(source='work.permit.system_type', read_only=True, default=None)
    staff_name = serializers.CharField(source='staff.display_name', read_only=True, default=None)
    completed_by_name = serializers.CharField(source='completed_by_staff.display_name', read_only=True, default=None)
    media = MaintenanceMediaSerializer(many=True, read_only=True)

    class Meta:
        model = MaintenanceVisit
        fields = [
            'id', 'work', 'property_address', 'permit_number', 'system_type', 'visit_number', 'scheduled_date',
            'actual_visit_date', 'staff', 'staff_name', 'status', 'notes', 'level_inlet', 'level_outlet',
        ] + [name for check in INSPECTION_CHECKS for name in (check, f"{check}_notes")] + [
            'well_samples', 'general_notes', 'signature', 'completed_by_staff', 'completed_by_name',
            'submission_id', 'completed_at', 'media', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class MaintenanceVisitUpdateSerializer(serializers.ModelSerializer):
    """Office edits: dates, notes, status and assignment"""
    staff = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True), required=False,
                                               allow_null=True)

    class Meta:
        model = MaintenanceVisit
        fields = ['actual_visit_date', 'scheduled_date', 'notes', 'status', 'staff']

    def validate_status(self, value):
        # Completion goes through the form submission
        if value == 'completed' and (self.instance is None or self.instance.status != 'completed'):
            raise serializers.ValidationError('Submit the maintenance form to complete a visit.')
        return value

    def update(self, instance, validated_data):
        staff_given = 'staff' in validated_data
        visit = super().update(instance, validated_data)
        if staff_given and 'status' not in validated_data and visit.status in MaintenanceVisit.OPEN_STATUSES:
            visit.status = 'assigned' if visit.staff_id else 'scheduled'
            visit.save(update_fields=['status', 'updated_at'])
        return visit


class ScheduleSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    force_reschedule = serializers.BooleanField(required=False, default=False)


class HistoricalScheduleSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    generate_past_visits = serializers.BooleanField(required=False, default=True)
