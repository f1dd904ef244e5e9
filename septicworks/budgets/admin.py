from django.contrib import admin
from .models import Budget, BudgetItem, BudgetLineItem, BudgetNote, FinalInvoice, WorkExtraItem


class BudgetLineItemInline(admin.TabularInline):
    model = BudgetLineItem
    extra = 0
    readonly_fields = ['line_total']


@admin.register(Budget)
class BudgetAdmin(admin.ModelAdmin):
    list_display = ['id', 'invoice_number', 'applicant_name', 'property_address', 'status', 'total_price', 'date']
    list_filter = ['status', 'is_legacy']
    search_fields = ['applicant_name', 'applicant_email', 'property_address', 'permit__permit_number']
    readonly_fields = ['subtotal_price', 'total_price', 'initial_payment', 'created_at', 'updated_at']
    inlines = [BudgetLineItemInline]


class WorkExtraItemInline(admin.TabularInline):
    model = WorkExtraItem
    extra = 0
    readonly_fields = ['line_total']


@admin.register(FinalInvoice)
class FinalInvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'work', 'invoice_date', 'final_amount_due', 'status', 'payment_date']
    list_filter = ['status']
    search_fields = ['work__property_address']
    readonly_fields = ['subtotal_extras', 'final_amount_due', 'created_at', 'updated_at']
    inlines = [WorkExtraItemInline]


@admin.register(BudgetItem)
class BudgetItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'brand', 'capacity', 'unit_price', 'unit', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['name', 'description', 'brand', 'supplier_name']


@admin.register(BudgetNote)
class BudgetNoteAdmin(admin.ModelAdmin):
    list_display = ['budget', 'note_type', 'priority', 'staff', 'is_resolved', 'created_at']
    list_filter = ['note_type', 'priority', 'is_resolved']
    search_fields = ['message', 'budget__applicant_name', 'budget__property_address']
