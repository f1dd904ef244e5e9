"""
Test suite for core module
Tests: authentication, staff administration, settings, audit logs, attendance, permissions
"""
from datetime import date

from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.test import APIClient

from septicworks.core.models import AuditLog, Setting, StaffAttendance
from septicworks.core.permissions import has_role, is_admin_user, is_field_user
from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.core.utils import create_audit_log, get_client_ip, parse_bool


class AuthTests(TestCase):
    """Login, refresh and the current-user endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='office', password='secret-pass-1', role='recept')
        self.client = APIClient()

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'office', 'password': 'secret-pass-1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'recept')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'office', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_flags(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['can_access_works'])
        self.assertFalse(response.data['can_access_finance'])

    def test_me_requires_auth(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_health_is_public(self):
        response = self.client.get('/api/v1/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ok')


class StaffAdministrationTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_create_staff(self):
        response = self.client.post('/api/v1/staff/', {
            'username': 'newworker',
            'email': 'worker@test.com',
            'password': 'long-enough-pass',
            'role': 'worker',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'worker')
        self.assertTrue(AuditLog.objects.filter(model_name='User', action='create').exists())

    def test_password_mismatch(self):
        response = self.client.post('/api/v1/staff/', {
            'username': 'x', 'password': 'long-enough-pass', 'password_confirm': 'other-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_role(self):
        TestDataFactory.create_user(role='worker')
        response = self.client.get('/api/v1/staff/?role=worker')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(all(user['role'] == 'worker' for user in response.data))

    def test_non_admin_cannot_manage_staff(self):
        worker = TestDataFactory.create_user(role='worker')
        client = AuthenticatedAPIClient().authenticate_user(worker)
        response = client.get('/api/v1/staff/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_staff_without_history(self):
        worker = TestDataFactory.create_user(role='worker')
        response = self.client.delete(f'/api/v1/staff/{worker.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_delete_staff_with_work_deactivates(self):
        worker = TestDataFactory.create_user(role='worker')
        TestDataFactory.create_work(staff=worker)
        response = self.client.delete(f'/api/v1/staff/{worker.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['deactivated'])
        worker.refresh_from_db()
        self.assertFalse(worker.is_active)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/staff/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_password(self):
        worker = TestDataFactory.create_user(role='worker')
        response = self.client.patch(f'/api/v1/staff/{worker.id}/', {'password': 'brand-new-pass'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        worker.refresh_from_db()
        self.assertTrue(worker.check_password('brand-new-pass'))


class SettingAndAuditTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_setting_crud(self):
        response = self.client.post('/api/v1/settings/', {'key': 'tax_rate', 'value': '7'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        setting_id = response.data['id']
        response = self.client.patch(f'/api/v1/settings/{setting_id}/', {'value': '8'}, format='json')
        self.assertEqual(response.data['value'], '8')
        response = self.client.delete(f'/api/v1/settings/{setting_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Setting.objects.filter(key='tax_rate').exists())

    def test_audit_log_visibility(self):
        worker = TestDataFactory.create_user(role='worker')
        create_audit_log(user=self.admin, action='create', model_name='Work', object_id=1)
        create_audit_log(user=worker, action='update', model_name='Work', object_id=1)

        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 2)

        worker_client = AuthenticatedAPIClient().authenticate_user(worker)
        response = worker_client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 1)
        other = AuditLog.objects.get(user=self.admin)
        response = worker_client.get(f'/api/v1/audit-logs/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(user=self.admin, action='create'))


class AttendanceTests(TestCase):
    def setUp(self):
        self.office = TestDataFactory.create_user(role='recept')
        self.worker = TestDataFactory.create_user(role='worker')
        self.client = AuthenticatedAPIClient().authenticate_user(self.office)

    def test_mark_attendance_twice_updates(self):
        payload = {'staff': self.worker.id, 'date': '2026-03-02', 'is_present': True}
        response = self.client.post('/api/v1/attendance/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        payload['is_present'] = False
        response = self.client.post('/api/v1/attendance/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(StaffAttendance.objects.count(), 1)
        self.assertFalse(StaffAttendance.objects.get().is_present)

    def test_summary(self):
        StaffAttendance.objects.create(staff=self.worker, date=date(2026, 3, 2), is_present=True)
        StaffAttendance.objects.create(staff=self.worker, date=date(2026, 3, 3), is_present=False)
        response = self.client.get('/api/v1/attendance/summary/?month=3&year=2026')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        row = response.data['staff'][0]
        self.assertEqual(row['present_days'], 1)
        self.assertEqual(row['absent_days'], 1)

    def test_summary_invalid_month(self):
        response = self.client.get('/api/v1/attendance/summary/?month=13')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class HelperTests(TestCase):
    def test_parse_bool(self):
        self.assertTrue(parse_bool('SI'))
        self.assertFalse(parse_bool('NO'))
        self.assertTrue(parse_bool('true'))
        self.assertIsNone(parse_bool(''))
        self.assertEqual(parse_bool(None, default=False), False)

    def test_client_ip_prefers_forwarded_for(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '10.0.0.1')

    def test_roles(self):
        worker = TestDataFactory.create_user(role='worker')
        owner = TestDataFactory.create_user(role='owner')
        superuser = TestDataFactory.create_user(role='worker', is_superuser=True)
        self.assertTrue(is_field_user(worker))
        self.assertFalse(is_field_user(superuser))
        self.assertTrue(is_admin_user(owner))
        self.assertTrue(has_role(superuser, 'finance'))
        self.assertFalse(has_role(worker, 'finance'))
