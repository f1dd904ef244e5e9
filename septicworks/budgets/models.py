from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from septicworks.core.models import User

CENTS = Decimal('0.01')


def default_expiration_date():
    return timezone.localdate() + timedelta(days=getattr(settings, 'BUDGET_VALIDITY_DAYS', 30))


class Budget(models.Model):
    """Quote sent to the applicant before a work is created"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('created', 'Created'),
        ('send', 'Sent'),
        ('approved', 'Approved'),
        ('signed', 'Signed'),
        ('rejected', 'Rejected'),
        ('notResponded', 'Not Responded'),
    ]
    ACCEPTED_STATUSES = ('approved', 'signed')

    permit = models.ForeignKey('works.Permit', on_delete=models.SET_NULL, null=True, blank=True, related_name='budgets')
    applicant_name = models.CharField(max_length=200)
    applicant_email = models.EmailField(blank=True)
    property_address = models.CharField(max_length=300)
    date = models.DateField(default=timezone.localdate)
    expiration_date = models.DateField(default=default_expiration_date)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='created')
    discount_description = models.CharField(max_length=255, blank=True)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                          validators=[MinValueValidator(Decimal('0.00'))])
    subtotal_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    initial_payment_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('60.00'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    initial_payment = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_proof_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    payment_proof_method = models.CharField(max_length=50, blank=True)
    payment_proof_date = models.DateField(null=True, blank=True)
    invoice_number = models.PositiveIntegerField(null=True, blank=True, unique=True)
    general_notes = models.TextField(blank=True)
    is_legacy = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='budgets')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Budget #{self.pk} - {self.property_address}"

    @property
    def is_accepted(self):
        return self.status in self.ACCEPTED_STATUSES

    @property
    def initial_payment_received(self):
        return self.payment_proof_amount is not None and self.payment_proof_amount > 0

    def recalculate_totals(self, save=True):
        """subtotal = sum of line totals, total = subtotal - discount, initial = total x percentage"""
        subtotal = sum((item.line_total for item in self.line_items.all()), Decimal('0.00'))
        self.subtotal_price = subtotal
        self.total_price = max(subtotal - (self.discount_amount or Decimal('0.00')), Decimal('0.00'))
        self.initial_payment = (self.total_price * self.initial_payment_percentage / Decimal('100')).quantize(CENTS)
        if save:
            self.save(update_fields=['subtotal_price', 'total_price', 'initial_payment', 'updated_at'])
        return self.total_price

    class Meta:
        db_table = 'budgets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['date']),
            models.Index(fields=['property_address']),
        ]


class BudgetItem(models.Model):
    """Catalog entry (system, tank, material, labor) that budget lines are priced from"""
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100)
    brand = models.CharField(max_length=100, blank=True)
    capacity = models.CharField(max_length=100, blank=True)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                     validators=[MinValueValidator(Decimal('0.00'))])
    unit = models.CharField(max_length=30, default='unit')
    supplier_name = models.CharField(max_length=200, blank=True)
    supplier_location = models.CharField(max_length=200, blank=True)
    image = models.ImageField(upload_to='budget_items/', null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.category}: {self.name}"

    class Meta:
        db_table = 'budget_items'
        ordering = ['category', 'name']
        indexes = [
            models.Index(fields=['category']),
            models.Index(fields=['is_active']),
        ]


class BudgetLineItem(models.Model):
    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name='line_items')
    budget_item = models.ForeignKey(BudgetItem, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='line_items')
    category = models.CharField(max_length=100, blank=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1.00'),
                                   validators=[MinValueValidator(Decimal('0.01'))])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                     validators=[MinValueValidator(Decimal('0.00'))])
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.name} x {self.quantity}"

    def save(self, *args, **kwargs):
        self.line_total = (Decimal(self.quantity) * Decimal(self.unit_price)).quantize(CENTS)
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'budget_line_items'
        ordering = ['id']


class FinalInvoice(models.Model):
    """Closing invoice for a work: budget balance plus extras minus discount"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('partially_paid', 'Partially Paid'),
        ('cancelled', 'Cancelled'),
    ]

    work = models.OneToOneField('works.Work', on_delete=models.CASCADE, related_name='final_invoice')
    budget = models.ForeignKey(Budget, on_delete=models.SET_NULL, null=True, blank=True, related_name='final_invoices')
    invoice_number = models.PositiveIntegerField(null=True, blank=True, unique=True)
    invoice_date = models.DateField(default=timezone.localdate)
    original_budget_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    initial_payment_made = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    subtotal_extras = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                   validators=[MinValueValidator(Decimal('0.00'))])
    discount_reason = models.CharField(max_length=255, blank=True)
    final_amount_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_date = models.DateField(null=True, blank=True)
    payment_notes = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    pdf_file = models.FileField(upload_to='final_invoices/', null=True, blank=True)
    email_sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Invoice #{self.invoice_number or self.pk} - {self.work}"

    def recalculate(self, save=True):
        self.subtotal_extras = sum((item.line_total for item in self.extra_items.all()), Decimal('0.00'))
        self.final_amount_due = (
            self.original_budget_total + self.subtotal_extras - (self.discount or Decimal('0.00'))
            - self.initial_payment_made
        )
        if save:
            self.save(update_fields=['subtotal_extras', 'final_amount_due', 'updated_at'])
        return self.final_amount_due

    class Meta:
        db_table = 'final_invoices'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['invoice_date']),
        ]


class WorkExtraItem(models.Model):
    """Line billed on top of the budget (change orders, extra materials)"""
    final_invoice = models.ForeignKey(FinalInvoice, on_delete=models.CASCADE, related_name='extra_items')
    description = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1.00'),
                                   validators=[MinValueValidator(Decimal('0.01'))])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                     validators=[MinValueValidator(Decimal('0.00'))])
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    change_order = models.ForeignKey('works.ChangeOrder', on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='extra_items')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.description

    def save(self, *args, **kwargs):
        self.line_total = (Decimal(self.quantity) * Decimal(self.unit_price)).quantize(CENTS)
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'work_extra_items'
        ordering = ['id']


class BudgetNote(models.Model):
    """Follow-up note on a budget; @name mentions link staff members"""
    NOTE_TYPE_CHOICES = [
        ('follow_up', 'Follow Up'),
        ('client_contact', 'Client Contact'),
        ('no_response', 'No Response'),
        ('status_change', 'Status Change'),
        ('problem', 'Problem'),
        ('general', 'General'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name='notes')
    staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='budget_notes')
    message = models.TextField()
    note_type = models.CharField(max_length=20, choices=NOTE_TYPE_CHOICES, default='follow_up')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    related_status = models.CharField(max_length=20, blank=True)
    is_resolved = models.BooleanField(default=False)
    resolved_at = models.DateTimeField(null=True, blank=True)
    mentioned_staff = models.ManyToManyField(User, blank=True, related_name='mentioned_in_budget_notes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_note_type_display()} - budget {self.budget_id}"

    class Meta:
        db_table = 'budget_notes'
        ordering = ['-created_at', '-id']
