from django.contrib import admin
from .models import Income, Expense, FixedExpense, FixedExpensePayment


@admin.register(Income)
class IncomeAdmin(admin.ModelAdmin):
    list_display = ['date', 'type_income', 'amount', 'payment_method', 'work', 'staff', 'verified']
    list_filter = ['type_income', 'payment_method', 'verified']
    search_fields = ['notes', 'payment_details', 'work__property_address']
    date_hierarchy = 'date'


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['date', 'type_expense', 'amount', 'payment_method', 'payment_status', 'vendor', 'work']
    list_filter = ['type_expense', 'payment_method', 'payment_status', 'verified']
    search_fields = ['notes', 'vendor', 'work__property_address']
    date_hierarchy = 'date'


class FixedExpensePaymentInline(admin.TabularInline):
    model = FixedExpensePayment
    extra = 0
    readonly_fields = ['amount', 'payment_date', 'payment_method', 'period_due_date', 'expense', 'created_by']


@admin.register(FixedExpense)
class FixedExpenseAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'frequency', 'total_amount', 'paid_amount', 'next_due_date',
                    'payment_status', 'is_active']
    list_filter = ['category', 'frequency', 'payment_status', 'is_active', 'auto_create_expense']
    search_fields = ['name', 'vendor', 'description']
    inlines = [FixedExpensePaymentInline]
