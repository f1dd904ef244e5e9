import os

from django.db import models

from septicworks.core.models import User

# Yes/no checks on the inspection form; each has a matching <field>_notes column
INSPECTION_CHECKS = [
    'strong_odors',
    'water_level_ok',
    'visible_leaks',
    'area_around_dry',
    'cap_green_inspected',
    'needs_pumping',
    'blower_working',
    'blower_filter_clean',
    'diffusers_bubbling',
    'discharge_pump_ok',
    'clarified_water_outlet',
    'alarm_panel_working',
    'pump_working',
    'float_switch_good',
]


class MaintenanceVisit(models.Model):
    """One of the post-installation service visits of a work"""
    STATUS_CHOICES = [
        ('pending_scheduling', 'Pending Scheduling'),
        ('scheduled', 'Scheduled'),
        ('assigned', 'Assigned'),
        ('completed', 'Completed'),
        ('skipped', 'Skipped'),
        ('overdue', 'Overdue'),
    ]
    OPEN_STATUSES = ('pending_scheduling', 'scheduled', 'assigned')

    work = models.ForeignKey('works.Work', on_delete=models.CASCADE, related_name='maintenance_visits')
    visit_number = models.PositiveSmallIntegerField()
    scheduled_date = models.DateField(null=True, blank=True)
    actual_visit_date = models.DateField(null=True, blank=True)
    staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='maintenance_visits')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='pending_scheduling')
    notes = models.TextField(blank=True)

    # Tank levels
    level_inlet = models.FloatField(null=True, blank=True)
    level_outlet = models.FloatField(null=True, blank=True)

    strong_odors = models.BooleanField(null=True, blank=True)
    strong_odors_notes = models.TextField(blank=True)
    water_level_ok = models.BooleanField(null=True, blank=True)
    water_level_ok_notes = models.TextField(blank=True)
    visible_leaks = models.BooleanField(null=True, blank=True)
    visible_leaks_notes = models.TextField(blank=True)
    area_around_dry = models.BooleanField(null=True, blank=True)
    area_around_dry_notes = models.TextField(blank=True)
    cap_green_inspected = models.BooleanField(null=True, blank=True)
    cap_green_inspected_notes = models.TextField(blank=True)
    needs_pumping = models.BooleanField(null=True, blank=True)
    needs_pumping_notes = models.TextField(blank=True)

    # ATU / PBTS components
    blower_working = models.BooleanField(null=True, blank=True)
    blower_working_notes = models.TextField(blank=True)
    blower_filter_clean = models.BooleanField(null=True, blank=True)
    blower_filter_clean_notes = models.TextField(blank=True)
    diffusers_bubbling = models.BooleanField(null=True, blank=True)
    diffusers_bubbling_notes = models.TextField(blank=True)
    discharge_pump_ok = models.BooleanField(null=True, blank=True)
    discharge_pump_ok_notes = models.TextField(blank=True)
    clarified_water_outlet = models.BooleanField(null=True, blank=True)
    clarified_water_outlet_notes = models.TextField(blank=True)

    # Lift station
    alarm_panel_working = models.BooleanField(null=True, blank=True)
    alarm_panel_working_notes = models.TextField(blank=True)
    pump_working = models.BooleanField(null=True, blank=True)
    pump_working_notes = models.TextField(blank=True)
    float_switch_good = models.BooleanField(null=True, blank=True)
    float_switch_good_notes = models.TextField(blank=True)

    well_samples = models.JSONField(default=list, blank=True)
    general_notes = models.TextField(blank=True)
    signature = models.ImageField(upload_to='maintenance/signatures/', null=True, blank=True)

    completed_by_staff = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                           related_name='completed_maintenance_visits')
    submission_id = models.CharField(max_length=64, null=True, blank=True, unique=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Visit {self.visit_number} - {self.work}"

    class Meta:
        db_table = 'maintenance_visits'
        ordering = ['work_id', 'visit_number']
        unique_together = ['work', 'visit_number']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['scheduled_date']),
        ]


def media_upload_path(instance, filename):
    return f"maintenance/{instance.visit.work_id}/visit_{instance.visit.visit_number}/{filename}"


class MaintenanceMedia(models.Model):
    MEDIA_TYPE_CHOICES = [
        ('image', 'Image'),
        ('video', 'Video'),
        ('document', 'Document'),
    ]

    visit = models.ForeignKey(MaintenanceVisit, on_delete=models.CASCADE, related_name='media')
    file = models.FileField(upload_to=media_upload_path)
    media_type = models.CharField(max_length=10, choices=MEDIA_TYPE_CHOICES, default='image')
    original_name = models.CharField(max_length=255, blank=True)
    field_name = models.CharField(max_length=100, blank=True, help_text="Form field the file documents")
    uploaded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='maintenance_media')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.original_name or os.path.basename(self.file.name)

    class Meta:
        db_table = 'maintenance_media'
        ordering = ['created_at', 'id']
