# Generated manually for supplier invoices (accounts payable)

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
from septicworks.finance.constants import PAYMENT_METHOD_CHOICES, EXPENSE_TYPES


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('works', '0001_initial'),
        ('finance', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SupplierInvoice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.CharField(max_length=100)),
                ('vendor', models.CharField(max_length=200)),
                ('vendor_email', models.EmailField(blank=True, max_length=254)),
                ('vendor_phone', models.CharField(blank=True, max_length=30)),
                ('vendor_address', models.CharField(blank=True, max_length=300)),
                ('issue_date', models.DateField(default=django.utils.timezone.localdate)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partially Paid'), ('paid', 'Paid'), ('overdue', 'Overdue')], default='pending', max_length=20)),
                ('payment_method', models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=50)),
                ('payment_date', models.DateField(blank=True, null=True)),
                ('payment_details', models.CharField(blank=True, max_length=255)),
                ('notes', models.TextField(blank=True)),
                ('verified', models.BooleanField(default=False)),
                ('invoice_file', models.FileField(blank=True, null=True, upload_to='supplier_invoices/')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='supplier_invoices', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'supplier_invoices',
                'ordering': ['-issue_date', '-id'],
                'indexes': [models.Index(fields=['payment_status'], name='supplier_in_payment_4e1a8c_idx'), models.Index(fields=['vendor'], name='supplier_in_vendor_b7d2f3_idx'), models.Index(fields=['due_date'], name='supplier_in_due_dat_0c9e6a_idx')],
                'constraints': [models.UniqueConstraint(fields=('vendor', 'invoice_number'), name='unique_vendor_invoice_number')],
            },
        ),
        migrations.CreateModel(
            name='SupplierInvoiceItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('description', models.CharField(max_length=255)),
                ('category', models.CharField(choices=EXPENSE_TYPES, default='Materiales', max_length=50)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('expense_auto_created', models.BooleanField(default=False)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('related_expense', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='supplier_invoice_items', to='finance.expense')),
                ('supplier_invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='payables.supplierinvoice')),
                ('work', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='supplier_invoice_items', to='works.work')),
            ],
            options={
                'db_table': 'supplier_invoice_items',
                'ordering': ['id'],
            },
        ),
    ]
