"""
Maintenance visit scheduling and form submission
"""
import json
import logging
import mimetypes

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from septicworks.core.utils import create_audit_log, parse_bool
from .models import MaintenanceVisit, MaintenanceMedia, INSPECTION_CHECKS

logger = logging.getLogger(__name__)

# Upload names the field form sends; each maps to the form field it documents
NAMED_UPLOADS = {
    'systemVideo': 'system_video',
    'finalSystemImage': 'final_system_image',
    'wellSample1': 'well_sample_1',
    'wellSample2': 'well_sample_2',
    'wellSample3': 'well_sample_3',
}
GENERIC_UPLOAD = 'maintenanceFiles'
TEXT_FIELDS = ['notes', 'general_notes'] + [f"{check}_notes" for check in INSPECTION_CHECKS]
LEVEL_FIELDS = ['level_inlet', 'level_outlet']


class SchedulingError(Exception):
    """Visits already exist or the schedule request is invalid"""


class SubmissionConflict(Exception):
    """The visit was already completed by a different submission"""


def interval_months():
    return int(getattr(settings, 'MAINTENANCE_INTERVAL_MONTHS', 6))


def visit_count():
    return int(getattr(settings, 'MAINTENANCE_VISIT_COUNT', 4))


def visit_dates(start_date):
    """Scheduled dates of the visit cycle starting at start_date"""
    return [start_date + relativedelta(months=interval_months() * n) for n in range(1, visit_count() + 1)]


def _create_visits(work, start_date, past_status=None, today=None, include_past=True):
    today = today or timezone.localdate()
    visits = []
    for number, scheduled in enumerate(visit_dates(start_date), start=1):
        status = 'pending_scheduling'
        if past_status and scheduled < today:
            if not include_past:
                continue
            status = past_status
        visits.append(MaintenanceVisit(work=work, visit_number=number, scheduled_date=scheduled, status=status))
    return MaintenanceVisit.objects.bulk_create(visits)


def schedule_initial_visits(work):
    """
    Create the visit cycle when a work enters maintenance.

    No-op when the work already has visits. Returns the created visits.
    """
    if work.maintenance_visits.exists():
        logger.info(f"Work {work.pk} already has maintenance visits, skipping initial schedule")
        return []
    if not work.maintenance_start_date:
        work.maintenance_start_date = timezone.localdate()
        work.save(update_fields=['maintenance_start_date', 'updated_at'])
    visits = _create_visits(work, work.maintenance_start_date)
    logger.info(f"Scheduled {len(visits)} maintenance visits for work {work.pk} from {work.maintenance_start_date}")
    return visits


def schedule_visits(work, start_date=None, force_reschedule=False, user=None):
    """Manual (re)schedule from start_date (default today)"""
    start_date = start_date or timezone.localdate()
    with transaction.atomic():
        existing = work.maintenance_visits.count()
        if existing:
            if not force_reschedule:
                raise SchedulingError(
                    f"Work already has {existing} maintenance visit(s). Use force_reschedule to replace them."
                )
            work.maintenance_visits.all().delete()
        visits = _create_visits(work, start_date)
        if not work.maintenance_start_date:
            work.maintenance_start_date = start_date
            work.save(update_fields=['maintenance_start_date', 'updated_at'])

    create_audit_log(user=user, action='maintenance_schedule', model_name='Work', object_id=work.pk,
                     object_name=work.property_address,
                     changes={'start_date': str(start_date), 'rescheduled': bool(existing)})
    return visits, bool(existing)


def initialize_historical(work, start_date, generate_past_visits=True, user=None, today=None):
    """
    Build the visit cycle for a legacy work installed long ago.

    Visits whose date has passed become overdue (or are skipped entirely when
    generate_past_visits is false); later ones are pending scheduling.
    """
    today = today or timezone.localdate()
    with transaction.atomic():
        if work.maintenance_visits.exists():
            raise SchedulingError('Work already has maintenance visits. Reschedule them instead.')
        visits = _create_visits(work, start_date, past_status='overdue', today=today,
                                include_past=generate_past_visits)
        work.maintenance_start_date = start_date
        work.save(update_fields=['maintenance_start_date', 'updated_at'])

    overdue = sum(1 for v in visits if v.status == 'overdue')
    create_audit_log(user=user, action='maintenance_schedule', model_name='Work', object_id=work.pk,
                     object_name=work.property_address,
                     changes={'start_date': str(start_date), 'historical': True, 'overdue': overdue})
    return visits, overdue


def media_type_for(upload):
    content_type = getattr(upload, 'content_type', None) or mimetypes.guess_type(upload.name)[0] or ''
    if content_type.startswith('image/'):
        return 'image'
    if content_type.startswith('video/'):
        return 'video'
    return 'document'


def store_media(visit, uploads, user=None):
    """
    Save uploaded files on the visit.

    uploads is a list of (file, field_name) pairs.
    """
    created = []
    for upload, field_name in uploads:
        created.append(MaintenanceMedia.objects.create(
            visit=visit,
            file=upload,
            media_type=media_type_for(upload),
            original_name=upload.name,
            field_name=field_name or '',
            uploaded_by=user if user and user.is_authenticated else None,
        ))
    return created


def parse_form(data):
    """Convert submitted form values: SI/NO checks to booleans, levels to floats, dates to date objects"""
    values = {}
    for check in INSPECTION_CHECKS:
        if check in data:
            values[check] = parse_bool(data.get(check))
    for field in TEXT_FIELDS:
        if field in data:
            values[field] = data.get(field) or ''
    for field in LEVEL_FIELDS:
        raw = data.get(field)
        if raw not in (None, ''):
            try:
                values[field] = float(raw)
            except (TypeError, ValueError):
                raise ValueError(f"{field} must be a number")
    if data.get('well_samples'):
        samples = data.get('well_samples')
        if isinstance(samples, str):
            try:
                samples = json.loads(samples)
            except ValueError:
                raise ValueError('well_samples must be JSON')
        values['well_samples'] = samples

    actual = data.get('actual_visit_date') or data.get('actualVisitDate')
    if actual:
        try:
            parsed = parse_date(str(actual))
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValueError('actual_visit_date must be a date in YYYY-MM-DD format')
        values['actual_visit_date'] = parsed
    return values


def collect_uploads(files, file_field_mapping=None):
    """Pair each uploaded file with the form field it belongs to"""
    mapping = file_field_mapping or {}
    uploads = []
    for upload_name, field_name in NAMED_UPLOADS.items():
        for upload in files.getlist(upload_name):
            uploads.append((upload, field_name))
    for upload in files.getlist(GENERIC_UPLOAD) + files.getlist(f"{GENERIC_UPLOAD}[]"):
        uploads.append((upload, mapping.get(upload.name, '')))
    return uploads


def complete_visit(visit, data, files, user=None, submission_id=None):
    """
    Store a completed maintenance form.

    Returns (visit, replayed). A replay of the submission that completed the
    visit returns the stored visit untouched; a different submission on a
    completed visit raises SubmissionConflict.
    """
    mapping = data.get('fileFieldMapping') or {}
    if isinstance(mapping, str):
        try:
            mapping = json.loads(mapping)
        except ValueError:
            raise ValueError('fileFieldMapping must be JSON')
    values = parse_form(data)

    with transaction.atomic():
        visit = MaintenanceVisit.objects.select_for_update().get(pk=visit.pk)
        if visit.status == 'completed':
            if submission_id and visit.submission_id == submission_id:
                logger.info(f"Replay of submission {submission_id} for visit {visit.pk}")
                return visit, True
            raise SubmissionConflict(f"Visit {visit.pk} was already completed")

        for field, value in values.items():
            setattr(visit, field, value)
        visit.actual_visit_date = values.get('actual_visit_date') or timezone.localdate()
        visit.status = 'completed'
        visit.completed_at = timezone.now()
        visit.completed_by_staff = user if user and user.is_authenticated else None
        if visit.staff_id is None and visit.completed_by_staff is not None:
            visit.staff = visit.completed_by_staff
        visit.submission_id = submission_id or None
        signature = files.get('signature')
        if signature is not None:
            visit.signature = signature
        visit.save()

        media = store_media(visit, collect_uploads(files, mapping), user=user)

    logger.info(f"Maintenance visit {visit.pk} completed with {len(media)} file(s)")
    create_audit_log(user=user, action='maintenance_complete', model_name='MaintenanceVisit', object_id=visit.pk,
                     object_name=str(visit.work), object_reference=submission_id,
                     changes={'files': len(media), 'visit_number': visit.visit_number})
    return visit, False


def mark_overdue(today=None, dry_run=False):
    """Flag open visits whose scheduled date has passed"""
    today = today or timezone.localdate()
    queryset = MaintenanceVisit.objects.filter(status__in=MaintenanceVisit.OPEN_STATUSES, scheduled_date__lt=today)
    count = queryset.count()
    if not dry_run and count:
        queryset.update(status='overdue', updated_at=timezone.now())
    return count
