# Generated manually for the permit and work lifecycle schema

import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
import septicworks.works.models


WORK_STATUS_CHOICES = [
    ('pending', 'Pending'), ('assigned', 'Assigned'), ('inProgress', 'In Progress'), ('installed', 'Installed'),
    ('firstInspectionPending', 'First Inspection Pending'), ('approvedInspection', 'Inspection Approved'),
    ('rejectedInspection', 'Inspection Rejected'), ('coverPending', 'Cover Pending'), ('covered', 'Covered'),
    ('finalInspectionPending', 'Final Inspection Pending'), ('finalApproved', 'Final Inspection Approved'),
    ('finalRejected', 'Final Inspection Rejected'), ('invoiceFinal', 'Final Invoice'),
    ('paymentReceived', 'Payment Received'), ('maintenance', 'Maintenance'), ('cancelled', 'Cancelled'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Permit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('permit_number', models.CharField(max_length=100, unique=True)),
                ('application_number', models.CharField(blank=True, max_length=100)),
                ('applicant_name', models.CharField(max_length=200)),
                ('applicant_email', models.EmailField(blank=True, max_length=254)),
                ('applicant_phone', models.CharField(blank=True, max_length=30)),
                ('property_address', models.CharField(max_length=300, unique=True)),
                ('lot', models.CharField(blank=True, max_length=50)),
                ('block', models.CharField(blank=True, max_length=50)),
                ('system_type', models.CharField(blank=True, choices=[('conventional', 'Conventional'), ('atu', 'ATU'), ('pbts', 'PBTS'), ('mound', 'Mound'), ('other', 'Other')], max_length=30)),
                ('is_pbts', models.BooleanField(default=False)),
                ('gpd_capacity', models.CharField(blank=True, max_length=50)),
                ('drainfield_depth', models.CharField(blank=True, max_length=50)),
                ('excavation_required', models.CharField(blank=True, max_length=100)),
                ('expiration_date', models.DateField(blank=True, null=True)),
                ('notification_emails', models.JSONField(blank=True, default=list, validators=[septicworks.works.models.validate_email_list])),
                ('notes', models.TextField(blank=True)),
                ('permit_file', models.FileField(blank=True, null=True, upload_to='permits/')),
                ('is_legacy', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'permits',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['applicant_name'], name='permits_applica_6f1e2d_idx'), models.Index(fields=['expiration_date'], name='permits_expirat_b3c9a0_idx')],
            },
        ),
        migrations.CreateModel(
            name='Work',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('property_address', models.CharField(max_length=300)),
                ('status', models.CharField(choices=WORK_STATUS_CHOICES, default='pending', max_length=30)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('installation_start_date', models.DateField(blank=True, null=True)),
                ('maintenance_start_date', models.DateField(blank=True, null=True)),
                ('stone_extraction_co_needed', models.BooleanField(default=False)),
                ('notes', models.TextField(blank=True)),
                ('is_legacy', models.BooleanField(default=False)),
                ('notice_to_owner_required', models.BooleanField(default=True)),
                ('notice_to_owner_filed', models.BooleanField(default=False)),
                ('notice_to_owner_filed_date', models.DateField(blank=True, null=True)),
                ('lien_required', models.BooleanField(default=False)),
                ('lien_filed', models.BooleanField(default=False)),
                ('lien_filed_date', models.DateField(blank=True, null=True)),
                ('operating_permit_file', models.FileField(blank=True, null=True, upload_to='works/operating_permits/')),
                ('maintenance_service_file', models.FileField(blank=True, null=True, upload_to='works/maintenance_service/')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('permit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='works', to='works.permit')),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_works', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'works',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='works_status_2d8e41_idx'), models.Index(fields=['property_address'], name='works_propert_7a5c13_idx'), models.Index(fields=['installation_start_date'], name='works_install_c4e0f9_idx')],
            },
        ),
        migrations.CreateModel(
            name='WorkStateHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_status', models.CharField(blank=True, max_length=30)),
                ('to_status', models.CharField(max_length=30)),
                ('reason', models.TextField(blank=True)),
                ('forced', models.BooleanField(default=False)),
                ('rolled_back', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('changed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='work_status_changes', to=settings.AUTH_USER_MODEL)),
                ('work', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='state_history', to='works.work')),
            ],
            options={
                'db_table': 'work_state_history',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='WorkNote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('message', models.TextField()),
                ('note_type', models.CharField(choices=[('follow_up', 'Follow Up'), ('problem', 'Problem'), ('client_contact', 'Client Contact'), ('status_change', 'Status Change'), ('payment', 'Payment'), ('inspection', 'Inspection'), ('general', 'General')], default='general', max_length=20)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('is_resolved', models.BooleanField(default=False)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('mentioned_staff', models.ManyToManyField(blank=True, related_name='mentioned_in_work_notes', to=settings.AUTH_USER_MODEL)),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='work_notes', to=settings.AUTH_USER_MODEL)),
                ('work', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='work_notes', to='works.work')),
            ],
            options={
                'db_table': 'work_notes',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['work', 'is_resolved'], name='work_notes_work_id_1b9f3e_idx'), models.Index(fields=['priority'], name='work_notes_priorit_e6a2d8_idx')],
            },
        ),
        migrations.CreateModel(
            name='Inspection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('first', 'First'), ('final', 'Final')], max_length=10)),
                ('final_status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=10)),
                ('date_requested', models.DateField(blank=True, null=True)),
                ('date_result', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inspections', to=settings.AUTH_USER_MODEL)),
                ('work', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='inspections', to='works.work')),
            ],
            options={
                'db_table': 'inspections',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ChangeOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('change_order_number', models.CharField(blank=True, max_length=50)),
                ('description', models.TextField()),
                ('item_description', models.CharField(blank=True, max_length=255)),
                ('hours', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('total_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pendingAdminReview', 'Pending Admin Review'), ('pendingClientApproval', 'Pending Client Approval'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('invoiced', 'Invoiced'), ('cancelled', 'Cancelled')], default='draft', max_length=30)),
                ('client_message', models.TextField(blank=True)),
                ('admin_notes', models.TextField(blank=True)),
                ('requested_at', models.DateTimeField(blank=True, null=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('approval_token', models.CharField(blank=True, db_index=True, max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='change_orders', to=settings.AUTH_USER_MODEL)),
                ('work', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='change_orders', to='works.work')),
            ],
            options={
                'db_table': 'change_orders',
                'ordering': ['-created_at'],
            },
        ),
    ]
