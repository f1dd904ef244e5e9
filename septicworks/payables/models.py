from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from septicworks.core.models import User
from septicworks.finance.constants import PAYMENT_METHOD_CHOICES, EXPENSE_TYPES


class SupplierInvoice(models.Model):
    """Bill received from a vendor, paid in one or more instalments"""
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
        ('overdue', 'Overdue'),
    ]
    OPEN_STATUSES = ('pending', 'partial', 'overdue')

    invoice_number = models.CharField(max_length=100)
    vendor = models.CharField(max_length=200)
    vendor_email = models.EmailField(blank=True)
    vendor_phone = models.CharField(max_length=30, blank=True)
    vendor_address = models.CharField(max_length=300, blank=True)
    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=50, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_date = models.DateField(null=True, blank=True)
    payment_details = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    verified = models.BooleanField(default=False)
    invoice_file = models.FileField(upload_to='supplier_invoices/', null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='supplier_invoices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.vendor} #{self.invoice_number}"

    @property
    def outstanding_amount(self):
        return max(self.total_amount - self.paid_amount, Decimal('0.00'))

    @property
    def is_overdue(self):
        return (
            self.payment_status in self.OPEN_STATUSES
            and self.due_date is not None
            and self.due_date < timezone.localdate()
        )

    def recalculate_total(self, save=True):
        self.total_amount = self.items.aggregate(total=models.Sum('amount'))['total'] or Decimal('0.00')
        if save:
            self.save(update_fields=['total_amount', 'updated_at'])
        return self.total_amount

    class Meta:
        db_table = 'supplier_invoices'
        ordering = ['-issue_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['vendor', 'invoice_number'], name='unique_vendor_invoice_number'),
        ]
        indexes = [
            models.Index(fields=['payment_status']),
            models.Index(fields=['vendor']),
            models.Index(fields=['due_date']),
        ]


class SupplierInvoiceItem(models.Model):
    """Invoice line, tied to the Expense it settles"""
    supplier_invoice = models.ForeignKey(SupplierInvoice, on_delete=models.CASCADE, related_name='items')
    work = models.ForeignKey('works.Work', on_delete=models.SET_NULL, null=True, blank=True, related_name='supplier_invoice_items')
    description = models.CharField(max_length=255)
    category = models.CharField(max_length=50, choices=EXPENSE_TYPES, default='Materiales')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    related_expense = models.ForeignKey('finance.Expense', on_delete=models.SET_NULL, null=True, blank=True,
                                        related_name='supplier_invoice_items')
    # True when the expense was created for this line and must go with it
    expense_auto_created = models.BooleanField(default=False)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.description} ({self.amount})"

    class Meta:
        db_table = 'supplier_invoice_items'
        ordering = ['id']
