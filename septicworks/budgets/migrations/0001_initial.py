# Generated manually for budgets and final invoices

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
import septicworks.budgets.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('works', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Budget',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('applicant_name', models.CharField(max_length=200)),
                ('applicant_email', models.EmailField(blank=True, max_length=254)),
                ('property_address', models.CharField(max_length=300)),
                ('date', models.DateField(default=django.utils.timezone.localdate)),
                ('expiration_date', models.DateField(default=septicworks.budgets.models.default_expiration_date)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('created', 'Created'), ('send', 'Sent'), ('approved', 'Approved'), ('signed', 'Signed'), ('rejected', 'Rejected'), ('notResponded', 'Not Responded')], default='created', max_length=20)),
                ('discount_description', models.CharField(blank=True, max_length=255)),
                ('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('subtotal_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('initial_payment_percentage', models.DecimalField(decimal_places=2, default=Decimal('60.00'), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))])),
                ('initial_payment', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('payment_proof_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('payment_proof_method', models.CharField(blank=True, max_length=50)),
                ('payment_proof_date', models.DateField(blank=True, null=True)),
                ('invoice_number', models.PositiveIntegerField(blank=True, null=True, unique=True)),
                ('general_notes', models.TextField(blank=True)),
                ('is_legacy', models.BooleanField(default=False)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='budgets', to=settings.AUTH_USER_MODEL)),
                ('permit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='budgets', to='works.permit')),
            ],
            options={
                'db_table': 'budgets',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='budgets_status_8e2f1a_idx'), models.Index(fields=['date'], name='budgets_date_4c7b93_idx'), models.Index(fields=['property_address'], name='budgets_propert_d1a6e5_idx')],
            },
        ),
        migrations.CreateModel(
            name='BudgetLineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(blank=True, max_length=100)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('quantity', models.DecimalField(decimal_places=2, default=Decimal('1.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('line_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('budget', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='budgets.budget')),
            ],
            options={
                'db_table': 'budget_line_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='FinalInvoice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.PositiveIntegerField(blank=True, null=True, unique=True)),
                ('invoice_date', models.DateField(default=django.utils.timezone.localdate)),
                ('original_budget_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('initial_payment_made', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('subtotal_extras', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('discount_reason', models.CharField(blank=True, max_length=255)),
                ('final_amount_due', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('partially_paid', 'Partially Paid'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('payment_date', models.DateField(blank=True, null=True)),
                ('payment_notes', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('pdf_file', models.FileField(blank=True, null=True, upload_to='final_invoices/')),
                ('email_sent_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('budget', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='final_invoices', to='budgets.budget')),
                ('work', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='final_invoice', to='works.work')),
            ],
            options={
                'db_table': 'final_invoices',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='final_invoi_status_5f3c2b_idx'), models.Index(fields=['invoice_date'], name='final_invoi_invoice_a8d4e7_idx')],
            },
        ),
        migrations.CreateModel(
            name='WorkExtraItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('description', models.CharField(max_length=255)),
                ('quantity', models.DecimalField(decimal_places=2, default=Decimal('1.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('line_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('change_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='extra_items', to='works.changeorder')),
                ('final_invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='extra_items', to='budgets.finalinvoice')),
            ],
            options={
                'db_table': 'work_extra_items',
                'ordering': ['id'],
            },
        ),
    ]
