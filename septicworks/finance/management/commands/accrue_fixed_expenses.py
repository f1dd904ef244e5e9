from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from septicworks.finance import fixed_expenses


class Command(BaseCommand):
    help = 'Creates unpaid expenses for auto-created fixed expenses that have fallen due'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would be created without saving',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        today = timezone.localdate()
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        with transaction.atomic():
            created = fixed_expenses.accrue_due_expenses(today=today, dry_run=dry_run)

        verb = 'Would create' if dry_run else 'Created'
        self.stdout.write(f"{verb} {created} fixed expense accrual(s)")
        self.stdout.write(self.style.SUCCESS(f"Fixed expense accrual for {today} finished"))
