# Generated manually for maintenance visits and their media

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models
import septicworks.maintenance.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('works', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='MaintenanceVisit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('visit_number', models.PositiveSmallIntegerField()),
                ('scheduled_date', models.DateField(blank=True, null=True)),
                ('actual_visit_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending_scheduling', 'Pending Scheduling'), ('scheduled', 'Scheduled'), ('assigned', 'Assigned'), ('completed', 'Completed'), ('skipped', 'Skipped'), ('overdue', 'Overdue')], default='pending_scheduling', max_length=30)),
                ('notes', models.TextField(blank=True)),
                ('level_inlet', models.FloatField(blank=True, null=True)),
                ('level_outlet', models.FloatField(blank=True, null=True)),
                ('strong_odors', models.BooleanField(blank=True, null=True)),
                ('strong_odors_notes', models.TextField(blank=True)),
                ('water_level_ok', models.BooleanField(blank=True, null=True)),
                ('water_level_ok_notes', models.TextField(blank=True)),
                ('visible_leaks', models.BooleanField(blank=True, null=True)),
                ('visible_leaks_notes', models.TextField(blank=True)),
                ('area_around_dry', models.BooleanField(blank=True, null=True)),
                ('area_around_dry_notes', models.TextField(blank=True)),
                ('cap_green_inspected', models.BooleanField(blank=True, null=True)),
                ('cap_green_inspected_notes', models.TextField(blank=True)),
                ('needs_pumping', models.BooleanField(blank=True, null=True)),
                ('needs_pumping_notes', models.TextField(blank=True)),
                ('blower_working', models.BooleanField(blank=True, null=True)),
                ('blower_working_notes', models.TextField(blank=True)),
                ('blower_filter_clean', models.BooleanField(blank=True, null=True)),
                ('blower_filter_clean_notes', models.TextField(blank=True)),
                ('diffusers_bubbling', models.BooleanField(blank=True, null=True)),
                ('diffusers_bubbling_notes', models.TextField(blank=True)),
                ('discharge_pump_ok', models.BooleanField(blank=True, null=True)),
                ('discharge_pump_ok_notes', models.TextField(blank=True)),
                ('clarified_water_outlet', models.BooleanField(blank=True, null=True)),
                ('clarified_water_outlet_notes', models.TextField(blank=True)),
                ('alarm_panel_working', models.BooleanField(blank=True, null=True)),
                ('alarm_panel_working_notes', models.TextField(blank=True)),
                ('pump_working', models.BooleanField(blank=True, null=True)),
                ('pump_working_notes', models.TextField(blank=True)),
                ('float_switch_good', models.BooleanField(blank=True, null=True)),
                ('float_switch_good_notes', models.TextField(blank=True)),
                ('well_samples', models.JSONField(blank=True, default=list)),
                ('general_notes', models.TextField(blank=True)),
                ('signature', models.ImageField(blank=True, null=True, upload_to='maintenance/signatures/')),
                ('submission_id', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('completed_by_staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='completed_maintenance_visits', to=settings.AUTH_USER_MODEL)),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='maintenance_visits', to=settings.AUTH_USER_MODEL)),
                ('work', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='maintenance_visits', to='works.work')),
            ],
            options={
                'db_table': 'maintenance_visits',
                'ordering': ['work_id', 'visit_number'],
                'indexes': [models.Index(fields=['status'], name='maintenance_status_3b8e2f_idx'), models.Index(fields=['scheduled_date'], name='maintenance_schedul_a61c0d_idx')],
                'unique_together': {('work', 'visit_number')},
            },
        ),
        migrations.CreateModel(
            name='MaintenanceMedia',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file', models.FileField(upload_to=septicworks.maintenance.models.media_upload_path)),
                ('media_type', models.CharField(choices=[('image', 'Image'), ('video', 'Video'), ('document', 'Document')], default='image', max_length=10)),
                ('original_name', models.CharField(blank=True, max_length=255)),
                ('field_name', models.CharField(blank=True, help_text='Form field the file documents', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='maintenance_media', to=settings.AUTH_USER_MODEL)),
                ('visit', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='media', to='maintenance.maintenancevisit')),
            ],
            options={
                'db_table': 'maintenance_media',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
