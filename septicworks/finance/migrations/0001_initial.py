# Generated manually for incomes and expenses

import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
from septicworks.finance.constants import PAYMENT_METHOD_CHOICES, INCOME_TYPES, EXPENSE_TYPES


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('works', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Income',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('date', models.DateField()),
                ('type_income', models.CharField(choices=INCOME_TYPES, default='Comprobante Ingreso', max_length=50)),
                ('payment_method', models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=50)),
                ('payment_details', models.CharField(blank=True, max_length=255)),
                ('notes', models.TextField(blank=True)),
                ('verified', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='incomes', to=settings.AUTH_USER_MODEL)),
                ('work', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='incomes', to='works.work')),
            ],
            options={
                'db_table': 'incomes',
                'ordering': ['-date', '-id'],
                'indexes': [models.Index(fields=['date'], name='incomes_date_7b1e4c_idx'), models.Index(fields=['type_income'], name='incomes_type_in_2f8a9d_idx'), models.Index(fields=['payment_method'], name='incomes_payment_c5d3e0_idx')],
            },
        ),
        migrations.CreateModel(
            name='Expense',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('date', models.DateField()),
                ('type_expense', models.CharField(choices=EXPENSE_TYPES, default='Gastos Generales', max_length=50)),
                ('payment_method', models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=50)),
                ('payment_details', models.CharField(blank=True, max_length=255)),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('paid', 'Paid'), ('paid_via_invoice', 'Paid via Supplier Invoice')], default='unpaid', max_length=20)),
                ('vendor', models.CharField(blank=True, max_length=200)),
                ('notes', models.TextField(blank=True)),
                ('verified', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='expenses', to=settings.AUTH_USER_MODEL)),
                ('work', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='expenses', to='works.work')),
            ],
            options={
                'db_table': 'expenses',
                'ordering': ['-date', '-id'],
                'indexes': [models.Index(fields=['date'], name='expenses_date_9a4f2b_idx'), models.Index(fields=['type_expense'], name='expenses_type_ex_6e0c71_idx'), models.Index(fields=['payment_status'], name='expenses_payment_3d8b5a_idx')],
            },
        ),
    ]
