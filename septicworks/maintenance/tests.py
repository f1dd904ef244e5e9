"""
Test suite for Maintenance module
Tests: visit scheduling, historical initialization, form submission, replays, overdue command
"""
import json
import shutil
import tempfile
from io import StringIO

from dateutil.relativedelta import relativedelta
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.maintenance import services
from septicworks.maintenance.models import MaintenanceVisit, MaintenanceMedia

MEDIA_ROOT = tempfile.mkdtemp()


class ScheduleTests(TestCase):
    """Test visit cycle creation"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work(status='maintenance')

    def test_schedule_creates_cycle(self):
        response = self.client.post(f'/api/v1/works/{self.work.id}/maintenance/schedule/',
                                    {'start_date': '2026-01-15'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['rescheduled'])
        dates = [visit['scheduled_date'] for visit in response.data['visits']]
        self.assertEqual(dates, ['2026-07-15', '2027-01-15', '2027-07-15', '2028-01-15'])
        self.work.refresh_from_db()
        self.assertEqual(str(self.work.maintenance_start_date), '2026-01-15')

    def test_second_schedule_requires_force(self):
        url = f'/api/v1/works/{self.work.id}/maintenance/schedule/'
        self.client.post(url, {}, format='json')
        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post(url, {'force_reschedule': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['rescheduled'])
        self.assertEqual(MaintenanceVisit.objects.filter(work=self.work).count(), 4)

    def test_initialize_historical(self):
        """Test past visits of a legacy work come back overdue"""
        start = timezone.localdate() - relativedelta(months=13)
        response = self.client.post(f'/api/v1/works/{self.work.id}/maintenance/initialize-historical/',
                                    {'start_date': start.isoformat()}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['overdue_count'], 2)
        statuses = [visit['status'] for visit in response.data['visits']]
        self.assertEqual(statuses, ['overdue', 'overdue', 'pending_scheduling', 'pending_scheduling'])

    def test_initialize_historical_without_past_visits(self):
        start = timezone.localdate() - relativedelta(months=13)
        visits, overdue = services.initialize_historical(self.work, start, generate_past_visits=False)
        self.assertEqual(overdue, 0)
        self.assertEqual([visit.visit_number for visit in visits], [3, 4])

    def test_initialize_historical_rejects_existing_cycle(self):
        services.schedule_visits(self.work)
        response = self.client.post(f'/api/v1/works/{self.work.id}/maintenance/initialize-historical/',
                                    {'start_date': '2020-01-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_work_maintenance_list(self):
        services.schedule_visits(self.work)
        response = self.client.get(f'/api/v1/works/{self.work.id}/maintenance/')
        self.assertEqual(len(response.data['visits']), 4)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class VisitCompletionTests(TestCase):
    """Test the field form submission"""

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.worker = TestDataFactory.create_user(role='maintenance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.worker)
        self.work = TestDataFactory.create_work(status='maintenance')
        services.schedule_visits(self.work)
        self.visit = MaintenanceVisit.objects.get(work=self.work, visit_number=1)
        self.visit.staff = self.worker
        self.visit.status = 'assigned'
        self.visit.save()
        self.url = f'/api/v1/maintenance/{self.visit.id}/complete/'

    def form(self, submission_id='sub-0001', **extra):
        data = {
            'submission_id': submission_id,
            'strong_odors': 'NO',
            'needs_pumping': 'SI',
            'needs_pumping_notes': 'Sludge near outlet',
            'level_inlet': '12.5',
            'finalSystemImage': SimpleUploadedFile('final.jpg', b'jpeg-bytes', content_type='image/jpeg'),
            'maintenanceFiles': SimpleUploadedFile('tank.jpg', b'jpeg-bytes', content_type='image/jpeg'),
            'fileFieldMapping': json.dumps({'tank.jpg': 'needs_pumping'}),
        }
        data.update(extra)
        return data

    def test_complete_visit(self):
        response = self.client.post(self.url, self.form(), format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['replayed'])
        visit = response.data['visit']
        self.assertEqual(visit['status'], 'completed')
        self.assertFalse(visit['strong_odors'])
        self.assertTrue(visit['needs_pumping'])
        self.assertEqual(visit['needs_pumping_notes'], 'Sludge near outlet')
        self.assertEqual(visit['level_inlet'], 12.5)
        self.assertEqual(visit['completed_by_staff'], self.worker.id)
        self.assertEqual(visit['actual_visit_date'], timezone.localdate().isoformat())
        field_names = sorted(m['field_name'] for m in visit['media'])
        self.assertEqual(field_names, ['final_system_image', 'needs_pumping'])

    def test_replay_returns_stored_visit(self):
        """Test resending the same submission does not duplicate media"""
        self.client.post(self.url, self.form(), format='multipart')
        response = self.client.post(self.url, self.form(), format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['replayed'])
        self.assertEqual(MaintenanceMedia.objects.filter(visit=self.visit).count(), 2)

    def test_different_submission_conflicts(self):
        self.client.post(self.url, self.form(), format='multipart')
        response = self.client.post(self.url, self.form(submission_id='sub-0002'), format='multipart')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_invalid_level(self):
        response = self.client.post(self.url, self.form(level_inlet='deep'), format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.visit.refresh_from_db()
        self.assertEqual(self.visit.status, 'assigned')

    def test_actual_visit_date(self):
        response = self.client.post(self.url, self.form(actual_visit_date='2026-01-20'), format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['visit']['actual_visit_date'], '2026-01-20')

    def test_malformed_visit_date_rejected(self):
        """Test a bad date is a client error and leaves the visit open"""
        for value in ('15/01/2026', '2026-02-30'):
            response = self.client.post(self.url, self.form(actual_visit_date=value), format='multipart')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, value)
        self.visit.refresh_from_db()
        self.assertEqual(self.visit.status, 'assigned')
        self.assertFalse(MaintenanceMedia.objects.filter(visit=self.visit).exists())

    def test_unassigned_completion_takes_the_visit(self):
        office = TestDataFactory.create_user(role='recept')
        client = AuthenticatedAPIClient().authenticate_user(office)
        other = MaintenanceVisit.objects.get(work=self.work, visit_number=2)
        response = client.post(f'/api/v1/maintenance/{other.id}/complete/', {'general_notes': 'ok'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        other.refresh_from_db()
        self.assertEqual(other.staff, office)

    def test_media_upload(self):
        response = self.client.post(f'/api/v1/maintenance/{self.visit.id}/media/', {
            'file': SimpleUploadedFile('clip.mp4', b'mp4-bytes', content_type='video/mp4'),
            'field_name': 'system_video',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data[0]['media_type'], 'video')

    def test_pdf(self):
        self.client.post(self.url, self.form(), format='multipart')
        response = self.client.get(f'/api/v1/maintenance/{self.visit.id}/pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))


class VisitAccessTests(TestCase):
    def setUp(self):
        self.worker = TestDataFactory.create_user(role='worker')
        self.other_worker = TestDataFactory.create_user(role='worker')
        self.office = TestDataFactory.create_user(role='admin')
        work = TestDataFactory.create_work(status='maintenance')
        services.schedule_visits(work)
        self.mine, self.theirs = MaintenanceVisit.objects.filter(work=work)[:2]
        MaintenanceVisit.objects.filter(pk=self.mine.pk).update(staff=self.worker, status='assigned')
        MaintenanceVisit.objects.filter(pk=self.theirs.pk).update(staff=self.other_worker, status='assigned')

    def test_field_user_sees_own_visits(self):
        client = AuthenticatedAPIClient().authenticate_user(self.worker)
        response = client.get('/api/v1/maintenance/')
        self.assertEqual(response.data['count'], 1)
        response = client.get(f'/api/v1/maintenance/{self.theirs.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_field_user_cannot_edit(self):
        client = AuthenticatedAPIClient().authenticate_user(self.worker)
        response = client.patch(f'/api/v1/maintenance/{self.mine.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_assigning_staff_sets_status(self):
        client = AuthenticatedAPIClient().authenticate_user(self.office)
        visit = MaintenanceVisit.objects.filter(status='pending_scheduling').first()
        response = client.patch(f'/api/v1/maintenance/{visit.id}/', {'staff': self.worker.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'assigned')

        response = client.patch(f'/api/v1/maintenance/{visit.id}/', {'staff': None}, format='json')
        self.assertEqual(response.data['status'], 'scheduled')

    def test_cannot_complete_by_patch(self):
        client = AuthenticatedAPIClient().authenticate_user(self.office)
        response = client.patch(f'/api/v1/maintenance/{self.mine.id}/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_filter(self):
        client = AuthenticatedAPIClient().authenticate_user(self.office)
        response = client.get('/api/v1/maintenance/?status=assigned')
        self.assertEqual(response.data['count'], 2)


class OverdueCommandTests(TestCase):
    def setUp(self):
        work = TestDataFactory.create_work(status='maintenance')
        services.schedule_visits(work, start_date=timezone.localdate() - relativedelta(months=7))

    def test_dry_run(self):
        out = StringIO()
        call_command('mark_overdue_items', '--dry-run', stdout=out)
        self.assertIn('Would mark 1 maintenance visit(s) overdue', out.getvalue())
        self.assertFalse(MaintenanceVisit.objects.filter(status='overdue').exists())

    def test_marks_past_visits(self):
        out = StringIO()
        call_command('mark_overdue_items', stdout=out)
        self.assertIn('Marked 1 maintenance visit(s) overdue', out.getvalue())
        self.assertEqual(MaintenanceVisit.objects.filter(status='overdue').count(), 1)
