# Generated manually for the office review checklist of works

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('works', '0002_work_budget'),
    ]

    operations = [
        migrations.CreateModel(
            name='WorkChecklist',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('arena_expense_reviewed', models.BooleanField(default=False)),
                ('final_invoice_sent', models.BooleanField(default=False)),
                ('initial_materials_uploaded', models.BooleanField(default=False)),
                ('fee_inspection_paid', models.BooleanField(default=False)),
                ('initial_inspection_paid', models.BooleanField(default=False)),
                ('final_inspection_paid', models.BooleanField(default=False)),
                ('final_review_completed', models.BooleanField(default=False)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_checklists', to=settings.AUTH_USER_MODEL)),
                ('work', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='checklist', to='works.work')),
            ],
            options={
                'db_table': 'work_checklists',
            },
        ),
    ]
