from django.contrib import admin
from .models import MaintenanceVisit, MaintenanceMedia


class MaintenanceMediaInline(admin.TabularInline):
    model = MaintenanceMedia
    extra = 0
    readonly_fields = ['media_type', 'original_name', 'field_name', 'uploaded_by', 'created_at']


@admin.register(MaintenanceVisit)
class MaintenanceVisitAdmin(admin.ModelAdmin):
    list_display = ['work', 'visit_number', 'scheduled_date', 'actual_visit_date', 'staff', 'status']
    list_filter = ['status', 'scheduled_date']
    search_fields = ['work__property_address', 'work__permit__permit_number']
    raw_id_fields = ['work', 'staff', 'completed_by_staff']
    readonly_fields = ['submission_id', 'completed_at', 'created_at', 'updated_at']
    inlines = [MaintenanceMediaInline]


@admin.register(MaintenanceMedia)
class MaintenanceMediaAdmin(admin.ModelAdmin):
    list_display = ['visit', 'media_type', 'original_name', 'field_name', 'uploaded_by', 'created_at']
    list_filter = ['media_type']
