# Generated manually for recurring fixed expenses and their payments

import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
from septicworks.finance.constants import (
    PAYMENT_METHOD_CHOICES, FIXED_EXPENSE_FREQUENCIES, FIXED_EXPENSE_CATEGORIES,
)


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('finance', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='FixedExpense',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('frequency', models.CharField(choices=FIXED_EXPENSE_FREQUENCIES, default='monthly', max_length=20)),
                ('category', models.CharField(choices=FIXED_EXPENSE_CATEGORIES, default='Otros', max_length=50)),
                ('payment_method', models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=50)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField(blank=True, null=True)),
                ('next_due_date', models.DateField(blank=True, null=True)),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('partial', 'Partially Paid'), ('paid', 'Paid')], default='unpaid', max_length=20)),
                ('paid_date', models.DateField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('auto_create_expense', models.BooleanField(default=False)),
                ('vendor', models.CharField(blank=True, max_length=200)),
                ('account_number', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_fixed_expenses', to=settings.AUTH_USER_MODEL)),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='salary_fixed_expenses', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'fixed_expenses',
                'ordering': ['next_due_date', 'name'],
                'indexes': [models.Index(fields=['next_due_date'], name='fixed_expen_next_du_4c2e19_idx'), models.Index(fields=['category'], name='fixed_expen_categor_8f1a63_idx'), models.Index(fields=['is_active'], name='fixed_expen_is_acti_b07d52_idx')],
            },
        ),
        migrations.AddField(
            model_name='expense',
            name='related_fixed_expense',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='expenses', to='finance.fixedexpense'),
        ),
        migrations.CreateModel(
            name='FixedExpensePayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('payment_date', models.DateField()),
                ('payment_method', models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=50)),
                ('period_due_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('receipt', models.FileField(blank=True, null=True, upload_to='fixed_expense_receipts/')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='fixed_expense_payments', to=settings.AUTH_USER_MODEL)),
                ('expense', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='fixed_expense_payment', to='finance.expense')),
                ('fixed_expense', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='finance.fixedexpense')),
            ],
            options={
                'db_table': 'fixed_expense_payments',
                'ordering': ['-payment_date', '-id'],
            },
        ),
    ]
