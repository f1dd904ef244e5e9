from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from decimal import Decimal
from septicworks.core.models import User


def validate_email_list(value):
    """notification_emails must be a list of valid addresses"""
    if value in (None, ''):
        return
    if not isinstance(value, list):
        raise ValidationError('Must be a list of email addresses.')
    invalid = []
    for email in value:
        try:
            validate_email(str(email).strip())
        except ValidationError:
            invalid.append(email)
    if invalid:
        raise ValidationError(f"Invalid email address(es): {', '.join(str(e) for e in invalid)}")


class Permit(models.Model):
    """Health-department permit for a septic system at a property"""
    SYSTEM_TYPE_CHOICES = [
        ('conventional', 'Conventional'),
        ('atu', 'ATU'),
        ('pbts', 'PBTS'),
        ('mound', 'Mound'),
        ('other', 'Other'),
    ]

    permit_number = models.CharField(max_length=100, unique=True)
    application_number = models.CharField(max_length=100, blank=True)
    applicant_name = models.CharField(max_length=200)
    applicant_email = models.EmailField(blank=True)
    applicant_phone = models.CharField(max_length=30, blank=True)
    property_address = models.CharField(max_length=300, unique=True)
    lot = models.CharField(max_length=50, blank=True)
    block = models.CharField(max_length=50, blank=True)
    system_type = models.CharField(max_length=30, choices=SYSTEM_TYPE_CHOICES, blank=True)
    is_pbts = models.BooleanField(default=False)
    gpd_capacity = models.CharField(max_length=50, blank=True)
    drainfield_depth = models.CharField(max_length=50, blank=True)
    excavation_required = models.CharField(max_length=100, blank=True)
    expiration_date = models.DateField(null=True, blank=True)
    notification_emails = models.JSONField(default=list, blank=True, validators=[validate_email_list])
    notes = models.TextField(blank=True)
    permit_file = models.FileField(upload_to='permits/', null=True, blank=True)
    is_legacy = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.permit_number

    def get_notification_recipients(self):
        """Applicant plus any additional notification addresses, de-duplicated"""
        recipients = []
        for email in [self.applicant_email] + list(self.notification_emails or []):
            email = (email or '').strip()
            if email and email.lower() not in [r.lower() for r in recipients]:
                recipients.append(email)
        return recipients

    class Meta:
        db_table = 'permits'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['applicant_name']),
            models.Index(fields=['expiration_date']),
        ]


class Work(models.Model):
    """Installation job for a property, tracked through its lifecycle"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('assigned', 'Assigned'),
        ('inProgress', 'In Progress'),
        ('installed', 'Installed'),
        ('firstInspectionPending', 'First Inspection Pending'),
        ('approvedInspection', 'Inspection Approved'),
        ('rejectedInspection', 'Inspection Rejected'),
        ('coverPending', 'Cover Pending'),
        ('covered', 'Covered'),
        ('finalInspectionPending', 'Final Inspection Pending'),
        ('finalApproved', 'Final Inspection Approved'),
        ('finalRejected', 'Final Inspection Rejected'),
        ('invoiceFinal', 'Final Invoice'),
        ('paymentReceived', 'Payment Received'),
        ('maintenance', 'Maintenance'),
        ('cancelled', 'Cancelled'),
    ]

    property_address = models.CharField(max_length=300)
    permit = models.ForeignKey(Permit, on_delete=models.SET_NULL, null=True, blank=True, related_name='works')
    budget = models.OneToOneField('budgets.Budget', on_delete=models.SET_NULL, null=True, blank=True, related_name='work')
    staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_works')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='pending')
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    installation_start_date = models.DateField(null=True, blank=True)
    maintenance_start_date = models.DateField(null=True, blank=True)
    stone_extraction_co_needed = models.BooleanField(default=False)
    notes = models.TextField(blank=True)
    is_legacy = models.BooleanField(default=False)

    # Notice to owner / lien tracking
    notice_to_owner_required = models.BooleanField(default=True)
    notice_to_owner_filed = models.BooleanField(default=False)
    notice_to_owner_filed_date = models.DateField(null=True, blank=True)
    lien_required = models.BooleanField(default=False)
    lien_filed = models.BooleanField(default=False)
    lien_filed_date = models.DateField(null=True, blank=True)

    operating_permit_file = models.FileField(upload_to='works/operating_permits/', null=True, blank=True)
    maintenance_service_file = models.FileField(upload_to='works/maintenance_service/', null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.property_address

    @property
    def applicant_name(self):
        if self.budget_id and self.budget.applicant_name:
            return self.budget.applicant_name
        if self.permit_id:
            return self.permit.applicant_name
        return ''

    @property
    def applicant_email(self):
        if self.budget_id and self.budget.applicant_email:
            return self.budget.applicant_email
        if self.permit_id:
            return self.permit.applicant_email
        return ''

    class Meta:
        db_table = 'works'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['property_address']),
            models.Index(fields=['installation_start_date']),
        ]


class WorkStateHistory(models.Model):
    """One row per status change of a work"""
    work = models.ForeignKey(Work, on_delete=models.CASCADE, related_name='state_history')
    from_status = models.CharField(max_length=30, blank=True)
    to_status = models.CharField(max_length=30)
    changed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='work_status_changes')
    reason = models.TextField(blank=True)
    forced = models.BooleanField(default=False)
    rolled_back = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.work_id}: {self.from_status} -> {self.to_status}"

    class Meta:
        db_table = 'work_state_history'
        ordering = ['-created_at', '-id']


class WorkNote(models.Model):
    """Follow-up note on a work"""
    NOTE_TYPE_CHOICES = [
        ('follow_up', 'Follow Up'),
        ('problem', 'Problem'),
        ('client_contact', 'Client Contact'),
        ('status_change', 'Status Change'),
        ('payment', 'Payment'),
        ('inspection', 'Inspection'),
        ('general', 'General'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    work = models.ForeignKey(Work, on_delete=models.CASCADE, related_name='work_notes')
    staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='work_notes')
    message = models.TextField()
    note_type = models.CharField(max_length=20, choices=NOTE_TYPE_CHOICES, default='general')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    is_resolved = models.BooleanField(default=False)
    resolved_at = models.DateTimeField(null=True, blank=True)
    mentioned_staff = models.ManyToManyField(User, blank=True, related_name='mentioned_in_work_notes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_note_type_display()} - {self.work}"

    class Meta:
        db_table = 'work_notes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['work', 'is_resolved']),
            models.Index(fields=['priority']),
        ]


class Inspection(models.Model):
    """First (pre-cover) or final inspection requested for a work"""
    TYPE_CHOICES = [
        ('first', 'First'),
        ('final', 'Final'),
    ]
    RESULT_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    work = models.ForeignKey(Work, on_delete=models.CASCADE, related_name='inspections')
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    final_status = models.CharField(max_length=10, choices=RESULT_CHOICES, default='pending')
    date_requested = models.DateField(null=True, blank=True)
    date_result = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='inspections')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_type_display()} inspection - {self.work}"

    class Meta:
        db_table = 'inspections'
        ordering = ['-created_at']


class ChangeOrder(models.Model):
    """Additional work requested during a job (e.g. stone extraction)"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pendingAdminReview', 'Pending Admin Review'),
        ('pendingClientApproval', 'Pending Client Approval'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('invoiced', 'Invoiced'),
        ('cancelled', 'Cancelled'),
    ]
    EDITABLE_STATUSES = ('draft', 'pendingAdminReview')

    work = models.ForeignKey(Work, on_delete=models.CASCADE, related_name='change_orders')
    change_order_number = models.CharField(max_length=50, blank=True)
    description = models.TextField()
    item_description = models.CharField(max_length=255, blank=True)
    hours = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    unit_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='draft')
    client_message = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    requested_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    approval_token = models.CharField(max_length=64, blank=True, db_index=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='change_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.change_order_number or f"CO-{self.pk}"

    def calculate_total(self):
        """hours x unit cost when both are known, otherwise the entered total"""
        if self.hours is not None and self.unit_cost is not None:
            return (Decimal(self.hours) * Decimal(self.unit_cost)).quantize(Decimal('0.01'))
        return self.total_cost or Decimal('0.00')

    def save(self, *args, **kwargs):
        self.total_cost = self.calculate_total()
        super().save(*args, **kwargs)
        if not self.change_order_number:
            sequence = ChangeOrder.objects.filter(work_id=self.work_id, pk__lte=self.pk).count()
            self.change_order_number = f"CO-{self.work_id}-{sequence:02d}"
            ChangeOrder.objects.filter(pk=self.pk).update(change_order_number=self.change_order_number)

    class Meta:
        db_table = 'change_orders'
        ordering = ['-created_at']


class WorkChecklist(models.Model):
    """Office review checklist of a work; the final review records who signed it off"""
    CHECK_FIELDS = (
        'arena_expense_reviewed', 'final_invoice_sent', 'initial_materials_uploaded',
        'fee_inspection_paid', 'initial_inspection_paid', 'final_inspection_paid', 'final_review_completed',
    )

    work = models.OneToOneField(Work, on_delete=models.CASCADE, related_name='checklist')
    arena_expense_reviewed = models.BooleanField(default=False)
    final_invoice_sent = models.BooleanField(default=False)
    initial_materials_uploaded = models.BooleanField(default=False)
    fee_inspection_paid = models.BooleanField(default=False)
    initial_inspection_paid = models.BooleanField(default=False)
    final_inspection_paid = models.BooleanField(default=False)
    final_review_completed = models.BooleanField(default=False)
    reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='reviewed_checklists')
    reviewed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Checklist - {self.work}"

    @property
    def completed_count(self):
        return sum(1 for field in self.CHECK_FIELDS if getattr(self, field))

    class Meta:
        db_table = 'work_checklists'
