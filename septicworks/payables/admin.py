from django.contrib import admin
from .models import SupplierInvoice, SupplierInvoiceItem


class SupplierInvoiceItemInline(admin.TabularInline):
    model = SupplierInvoiceItem
    extra = 0
    raw_id_fields = ['work', 'related_expense']


@admin.register(SupplierInvoice)
class SupplierInvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'vendor', 'issue_date', 'due_date', 'total_amount', 'paid_amount', 'payment_status']
    list_filter = ['payment_status', 'verified']
    search_fields = ['invoice_number', 'vendor']
    readonly_fields = ['total_amount', 'paid_amount', 'created_at', 'updated_at']
    inlines = [SupplierInvoiceItemInline]
