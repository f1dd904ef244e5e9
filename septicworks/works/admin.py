from django.contrib import admin
from .models import Permit, Work, WorkStateHistory, WorkNote, Inspection, ChangeOrder, WorkChecklist


class WorkNoteInline(admin.TabularInline):
    model = WorkNote
    extra = 0
    fields = ['note_type', 'priority', 'message', 'staff', 'is_resolved']
    readonly_fields = ['staff']


class WorkStateHistoryInline(admin.TabularInline):
    model = WorkStateHistory
    extra = 0
    fields = ['from_status', 'to_status', 'changed_by', 'reason', 'forced', 'created_at']
    readonly_fields = fields
    can_delete = False


@admin.register(Permit)
class PermitAdmin(admin.ModelAdmin):
    list_display = ['permit_number', 'applicant_name', 'property_address', 'system_type', 'expiration_date']
    list_filter = ['system_type', 'is_pbts', 'is_legacy']
    search_fields = ['permit_number', 'application_number', 'applicant_name', 'property_address']
    ordering = ['-created_at']


@admin.register(Work)
class WorkAdmin(admin.ModelAdmin):
    list_display = ['property_address', 'status', 'staff', 'installation_start_date', 'maintenance_start_date']
    list_filter = ['status', 'is_legacy', 'notice_to_owner_filed']
    search_fields = ['property_address', 'permit__permit_number']
    raw_id_fields = ['permit', 'budget', 'staff']
    inlines = [WorkNoteInline, WorkStateHistoryInline]


@admin.register(Inspection)
class InspectionAdmin(admin.ModelAdmin):
    list_display = ['work', 'type', 'final_status', 'date_requested', 'date_result']
    list_filter = ['type', 'final_status']


@admin.register(ChangeOrder)
class ChangeOrderAdmin(admin.ModelAdmin):
    list_display = ['change_order_number', 'work', 'total_cost', 'status', 'requested_at', 'responded_at']
    list_filter = ['status']
    search_fields = ['change_order_number', 'work__property_address', 'description']
    readonly_fields = ['approval_token']


@admin.register(WorkChecklist)
class WorkChecklistAdmin(admin.ModelAdmin):
    list_display = ['work', 'final_invoice_sent', 'final_inspection_paid', 'final_review_completed',
                    'reviewed_by', 'reviewed_at']
    list_filter = ['final_review_completed', 'final_invoice_sent']
    search_fields = ['work__property_address']
    readonly_fields = ['reviewed_by', 'reviewed_at']
