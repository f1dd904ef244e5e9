# Generated manually for the budget item catalog and budget follow-up notes

import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('budgets', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BudgetItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('category', models.CharField(max_length=100)),
                ('brand', models.CharField(blank=True, max_length=100)),
                ('capacity', models.CharField(blank=True, max_length=100)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('unit', models.CharField(default='unit', max_length=30)),
                ('supplier_name', models.CharField(blank=True, max_length=200)),
                ('supplier_location', models.CharField(blank=True, max_length=200)),
                ('image', models.ImageField(blank=True, null=True, upload_to='budget_items/')),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'budget_items',
                'ordering': ['category', 'name'],
                'indexes': [models.Index(fields=['category'], name='budget_item_categor_5e7a21_idx'), models.Index(fields=['is_active'], name='budget_item_is_acti_c93d08_idx')],
            },
        ),
        migrations.AddField(
            model_name='budgetlineitem',
            name='budget_item',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='line_items', to='budgets.budgetitem'),
        ),
        migrations.CreateModel(
            name='BudgetNote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('message', models.TextField()),
                ('note_type', models.CharField(choices=[('follow_up', 'Follow Up'), ('client_contact', 'Client Contact'), ('no_response', 'No Response'), ('status_change', 'Status Change'), ('problem', 'Problem'), ('general', 'General')], default='follow_up', max_length=20)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('related_status', models.CharField(blank=True, max_length=20)),
                ('is_resolved', models.BooleanField(default=False)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('budget', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notes', to='budgets.budget')),
                ('mentioned_staff', models.ManyToManyField(blank=True, related_name='mentioned_in_budget_notes', to=settings.AUTH_USER_MODEL)),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='budget_notes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'budget_notes',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
