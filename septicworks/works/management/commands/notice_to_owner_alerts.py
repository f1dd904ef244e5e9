from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from septicworks.core.notifications import notify_office
from septicworks.works.models import Work


class Command(BaseCommand):
    help = 'Emails the office the works whose notice-to-owner deadline is close or already passed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=7,
            help='Warn about deadlines within this many days (default 7)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the works without sending the email',
        )

    def handle(self, *args, **options):
        deadline_days = getattr(settings, 'NOTICE_TO_OWNER_DAYS', 45)
        today = timezone.localdate()
        works = (
            Work.objects.filter(installation_start_date__isnull=False, notice_to_owner_required=True,
                                notice_to_owner_filed=False)
            .exclude(status='cancelled')
            .order_by('installation_start_date')
        )

        lines = []
        for work in works:
            deadline = work.installation_start_date + timedelta(days=deadline_days)
            remaining = (deadline - today).days
            if remaining > options['days']:
                continue
            state = f"OVERDUE by {-remaining} day(s)" if remaining < 0 else f"due in {remaining} day(s)"
            lines.append(f"- {work.property_address} (work {work.pk}): deadline {deadline}, {state}")

        if not lines:
            self.stdout.write(self.style.SUCCESS("No notice-to-owner deadlines to report"))
            return

        body = "Notice to owner pending for:\n\n" + "\n".join(lines)
        self.stdout.write(body)
        if options['dry_run']:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: email not sent."))
            return

        if notify_office(f"Notice to owner: {len(lines)} work(s) need attention", body):
            self.stdout.write(self.style.SUCCESS(f"Alert sent for {len(lines)} work(s)"))
        else:
            self.stdout.write(self.style.NOTICE("Alert could not be sent; see the log"))
