from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from septicworks.maintenance import services as maintenance_services
from septicworks.payables import services as payables_services


class Command(BaseCommand):
    help = 'Flags supplier invoices past their due date and maintenance visits past their scheduled date as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would change without saving',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        today = timezone.localdate()
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        with transaction.atomic():
            invoices = payables_services.mark_overdue(today=today, dry_run=dry_run)
            visits = maintenance_services.mark_overdue(today=today, dry_run=dry_run)

        verb = 'Would mark' if dry_run else 'Marked'
        self.stdout.write(f"{verb} {invoices} supplier invoice(s) overdue")
        self.stdout.write(f"{verb} {visits} maintenance visit(s) overdue")
        self.stdout.write(self.style.SUCCESS(f"Overdue check for {today} finished"))
