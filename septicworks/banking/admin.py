from django.contrib import admin
from .models import BankAccount, BankTransaction


@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    list_display = ['account_name', 'account_type', 'bank_name', 'current_balance', 'currency', 'is_active']
    list_filter = ['account_type', 'is_active']
    search_fields = ['account_name', 'bank_name']
    # Balance changes only through transactions
    readonly_fields = ['current_balance', 'created_at', 'updated_at']


@admin.register(BankTransaction)
class BankTransactionAdmin(admin.ModelAdmin):
    list_display = ['date', 'bank_account', 'transaction_type', 'amount', 'category', 'balance_after', 'description']
    list_filter = ['transaction_type', 'category', 'bank_account']
    search_fields = ['description', 'reference_number', 'notes']
    ordering = ['-date', '-id']
    readonly_fields = [f.name for f in BankTransaction._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
