from django.db import models
from decimal import Decimal
from django.core.validators import MinValueValidator
from septicworks.core.models import User


class BankAccount(models.Model):
    """Company bank account, credit card or cash box"""
    ACCOUNT_TYPE_CHOICES = [
        ('checking', 'Checking'),
        ('savings', 'Savings'),
        ('credit_card', 'Credit Card'),
        ('cash', 'Cash'),
    ]

    account_name = models.CharField(max_length=100, unique=True)
    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPE_CHOICES, default='checking')
    bank_name = models.CharField(max_length=100, blank=True)
    account_number = models.CharField(max_length=20, blank=True, help_text="Last digits only")
    current_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='USD')
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.account_name

    @property
    def allows_negative_balance(self):
        # Credit card balances are debt and go below zero as charges accumulate
        return self.account_type == 'credit_card'

    @property
    def formatted_balance(self):
        balance = self.current_balance or Decimal('0.00')
        sign = '-' if balance < 0 else ''
        return f"{sign}${abs(balance):,.2f}"

    class Meta:
        db_table = 'bank_accounts'
        ordering = ['account_name']


class BankTransaction(models.Model):
    """Movement on a bank account; balance_after is the running balance"""
    TRANSACTION_TYPE_CHOICES = [
        ('deposit', 'Deposit'),
        ('withdrawal', 'Withdrawal'),
        ('transfer_in', 'Transfer In'),
        ('transfer_out', 'Transfer Out'),
    ]
    CATEGORY_CHOICES = [
        ('income', 'Income'),
        ('expense', 'Expense'),
        ('transfer', 'Transfer'),
        ('credit_card_payment', 'Credit Card Payment'),
        ('manual', 'Manual'),
    ]
    CREDIT_TYPES = ('deposit', 'transfer_in')

    bank_account = models.ForeignKey(BankAccount, on_delete=models.PROTECT, related_name='transactions')
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    date = models.DateField()
    description = models.CharField(max_length=255, blank=True)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default='manual')
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)
    related_income = models.ForeignKey('finance.Income', on_delete=models.SET_NULL, null=True, blank=True, related_name='bank_transactions')
    related_expense = models.ForeignKey('finance.Expense', on_delete=models.SET_NULL, null=True, blank=True, related_name='bank_transactions')
    related_supplier_invoice = models.ForeignKey('payables.SupplierInvoice', on_delete=models.SET_NULL, null=True, blank=True, related_name='bank_transactions')
    transfer_to_account = models.ForeignKey(BankAccount, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    transfer_from_account = models.ForeignKey(BankAccount, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    related_transfer = models.OneToOneField('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    reference_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='bank_transactions')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_transaction_type_display()} {self.formatted_amount} - {self.bank_account}"

    @property
    def is_credit(self):
        return self.transaction_type in self.CREDIT_TYPES

    @property
    def signed_amount(self):
        return self.amount if self.is_credit else -self.amount

    @property
    def formatted_amount(self):
        sign = '+' if self.is_credit else '-'
        return f"{sign}${self.amount:,.2f}"

    class Meta:
        db_table = 'bank_transactions'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['bank_account', 'date']),
            models.Index(fields=['transaction_type']),
            models.Index(fields=['category']),
        ]
