from django.db import models
from decimal import Decimal
from django.core.validators import MinValueValidator
from django.utils import timezone
from septicworks.core.models import User
from .constants import (
    PAYMENT_METHOD_CHOICES, INCOME_TYPES, EXPENSE_TYPES, FIXED_EXPENSE_FREQUENCIES, FIXED_EXPENSE_CATEGORIES,
)


class Income(models.Model):
    """Money received, usually against a work"""
    work = models.ForeignKey('works.Work', on_delete=models.SET_NULL, null=True, blank=True, related_name='incomes')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    date = models.DateField()
    type_income = models.CharField(max_length=50, choices=INCOME_TYPES, default='Comprobante Ingreso')
    payment_method = models.CharField(max_length=50, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_details = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='incomes')
    verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.type_income} {self.amount} ({self.date})"

    class Meta:
        db_table = 'incomes'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['date']),
            models.Index(fields=['type_income']),
            models.Index(fields=['payment_method']),
        ]


class Expense(models.Model):
    """Money spent, optionally charged to a work"""
    PAYMENT_STATUS_CHOICES = [
        ('unpaid', 'Unpaid'),
        ('paid', 'Paid'),
        ('paid_via_invoice', 'Paid via Supplier Invoice'),
    ]

    work = models.ForeignKey('works.Work', on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    date = models.DateField()
    type_expense = models.CharField(max_length=50, choices=EXPENSE_TYPES, default='Gastos Generales')
    payment_method = models.CharField(max_length=50, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_details = models.CharField(max_length=255, blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    vendor = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    related_fixed_expense = models.ForeignKey('FixedExpense', on_delete=models.SET_NULL, null=True, blank=True,
                                              related_name='expenses')
    verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.type_expense} {self.amount} ({self.date})"

    class Meta:
        db_table = 'expenses'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['date']),
            models.Index(fields=['type_expense']),
            models.Index(fields=['payment_status']),
        ]


class FixedExpense(models.Model):
    """
    A recurring commitment (rent, insurance, salaries...).

    total_amount is owed once per period; paid_amount is what has been paid
    against the period that falls due on next_due_date.
    """
    PAYMENT_STATUS_CHOICES = [
        ('unpaid', 'Unpaid'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
    ]

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2,
                                       validators=[MinValueValidator(Decimal('0.01'))])
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    frequency = models.CharField(max_length=20, choices=FIXED_EXPENSE_FREQUENCIES, default='monthly')
    category = models.CharField(max_length=50, choices=FIXED_EXPENSE_CATEGORIES, default='Otros')
    payment_method = models.CharField(max_length=50, choices=PAYMENT_METHOD_CHOICES, blank=True)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    next_due_date = models.DateField(null=True, blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    paid_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    auto_create_expense = models.BooleanField(default=False)
    vendor = models.CharField(max_length=200, blank=True)
    account_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    # Only kept for the Salarios category
    staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                              related_name='salary_fixed_expenses')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='created_fixed_expenses')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.get_frequency_display()})"

    @property
    def remaining_amount(self):
        return max(self.total_amount - self.paid_amount, Decimal('0.00'))

    @property
    def is_overdue(self):
        return (
            self.is_active and self.payment_status != 'paid' and self.next_due_date is not None
            and self.next_due_date < timezone.localdate()
        )

    class Meta:
        db_table = 'fixed_expenses'
        ordering = ['next_due_date', 'name']
        indexes = [
            models.Index(fields=['next_due_date']),
            models.Index(fields=['category']),
            models.Index(fields=['is_active']),
        ]


class FixedExpensePayment(models.Model):
    """One (partial) payment of a fixed expense period, booked as a paid Expense"""
    fixed_expense = models.ForeignKey(FixedExpense, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    payment_date = models.DateField()
    payment_method = models.CharField(max_length=50, choices=PAYMENT_METHOD_CHOICES, blank=True)
    period_due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    receipt = models.FileField(upload_to='fixed_expense_receipts/', null=True, blank=True)
    expense = models.OneToOneField(Expense, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='fixed_expense_payment')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='fixed_expense_payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.fixed_expense.name} {self.amount} ({self.payment_date})"

    class Meta:
        db_table = 'fixed_expense_payments'
        ordering = ['-payment_date', '-id']
