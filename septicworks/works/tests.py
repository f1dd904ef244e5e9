"""
Test suite for Works module
Tests: permits, status lifecycle with rollback, inspections, change orders, notice to owner,
notes with mentions, review checklists
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.finance.models import Expense
from septicworks.maintenance.models import MaintenanceVisit
from septicworks.works.models import (
    Permit, Work, WorkNote, WorkStateHistory, Inspection, ChangeOrder, WorkChecklist,
)
from septicworks.works.status_manager import (
    is_backward, is_forward, statuses_to_roll_back, check_status_conflicts,
)


class PermitAPITests(TestCase):
    """Test permit endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_permit(self):
        """Test creating a permit"""
        response = self.client.post('/api/v1/permits/', {
            'permit_number': ' 36-SF-123 ',
            'applicant_name': 'Jane Owner',
            'property_address': '12 Lake Rd',
            'notification_emails': 'a@test.com; b@test.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['permit_number'], '36-SF-123')
        self.assertEqual(response.data['notification_emails'], ['a@test.com', 'b@test.com'])

    def test_duplicate_permit_number_conflicts(self):
        """Test a permit number can only be registered once (case-insensitive)"""
        TestDataFactory.create_permit(permit_number='PRM-1')
        response = self.client.post('/api/v1/permits/', {
            'permit_number': 'prm-1', 'applicant_name': 'X', 'property_address': 'Other address',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_duplicate_address_conflicts(self):
        TestDataFactory.create_permit(property_address='1 Main St')
        response = self.client.post('/api/v1/permits/', {
            'permit_number': 'NEW-1', 'applicant_name': 'X', 'property_address': '1 MAIN ST',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_invalid_notification_email(self):
        response = self.client.post('/api/v1/permits/', {
            'permit_number': 'NEW-2', 'applicant_name': 'X', 'property_address': '2 Main St',
            'notification_emails': ['not-an-email'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_permit_check(self):
        permit = TestDataFactory.create_permit(permit_number='PRM-CHK')
        response = self.client.get('/api/v1/permits/check/?permit_number=prm-chk')
        self.assertTrue(response.data['permit_number_exists'])
        self.assertEqual(response.data['permit']['id'], permit.id)

    def test_cannot_delete_permit_with_works(self):
        """Test permits linked to works are protected"""
        work = TestDataFactory.create_work()
        response = self.client.delete(f'/api/v1/permits/{work.permit_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Permit.objects.filter(pk=work.permit_id).exists())

    def test_recipients_deduplicated(self):
        permit = TestDataFactory.create_permit(applicant_email='Owner@test.com',
                                               notification_emails=['owner@test.com', 'agent@test.com'])
        self.assertEqual(permit.get_notification_recipients(), ['Owner@test.com', 'agent@test.com'])


class StatusOrderTests(TestCase):
    def test_direction(self):
        self.assertTrue(is_forward('pending', 'inProgress'))
        self.assertTrue(is_backward('covered', 'installed'))
        self.assertFalse(is_backward('covered', 'cancelled'))
        self.assertTrue(is_forward('cancelled', 'pending'))

    def test_statuses_to_roll_back(self):
        self.assertEqual(statuses_to_roll_back('installed', 'assigned'), ['installed', 'inProgress'])

    def test_expense_conflict_ignores_supplier_invoice_expenses(self):
        """Test expenses settled by a supplier invoice are not counted"""
        work = TestDataFactory.create_work(status='inProgress')
        TestDataFactory.create_supplier_invoice(work=work)
        self.assertEqual(check_status_conflicts(work, 'inProgress'), [])


class WorkStatusTests(TestCase):
    """Test the status endpoint, forward side effects and rollback"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work()

    def change(self, target, **extra):
        return self.client.post(f'/api/v1/works/{self.work.id}/status/', {'status': target, **extra}, format='json')

    def test_forward_sets_dates_and_history(self):
        """Test moving to inProgress sets the start dates and records history"""
        response = self.change('inProgress', reason='Crew on site')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.work.refresh_from_db()
        today = timezone.localdate()
        self.assertEqual(self.work.start_date, today)
        self.assertEqual(self.work.installation_start_date, today)
        history = WorkStateHistory.objects.get(work=self.work)
        self.assertEqual((history.from_status, history.to_status), ('pending', 'inProgress'))
        self.assertTrue(WorkNote.objects.filter(work=self.work, note_type='status_change').exists())

    def test_same_status_rejected(self):
        response = self.change('pending')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_status_rejected(self):
        response = self.change('finished')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_requires_staff(self):
        response = self.change('assigned')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        worker = TestDataFactory.create_user(role='worker')
        response = self.change('assigned', staff=worker.id)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.work.refresh_from_db()
        self.assertEqual(self.work.staff, worker)

    def test_backward_without_force_returns_conflicts(self):
        """Test rollback that would delete data is refused without force"""
        self.change('inProgress')
        TestDataFactory.create_expense(work=self.work)
        response = self.change('pending')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(response.data['requires_force'])
        types = {c['type'] for c in response.data['conflicts']}
        self.assertIn('Expense', types)
        self.assertIn('StartDate', types)
        self.work.refresh_from_db()
        self.assertEqual(self.work.status, 'inProgress')

    def test_forced_rollback_deletes_expenses_but_keeps_invoice_expenses(self):
        """Test forced rollback removes work expenses except those paid via supplier invoice"""
        self.change('inProgress')
        TestDataFactory.create_expense(work=self.work)
        TestDataFactory.create_supplier_invoice(work=self.work, amounts=[Decimal('150.00')])

        response = self.change('pending', force=True)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['rolled_back'])

        self.work.refresh_from_db()
        self.assertIsNone(self.work.start_date)
        self.assertIsNotNone(self.work.installation_start_date)
        remaining = Expense.objects.filter(work=self.work)
        self.assertEqual(remaining.count(), 1)
        self.assertEqual(remaining.get().payment_status, 'paid_via_invoice')
        history = WorkStateHistory.objects.filter(work=self.work).first()
        self.assertTrue(history.forced)

    def test_entering_maintenance_schedules_visits(self):
        """Test the maintenance status creates the visit cycle"""
        self.work.status = 'paymentReceived'
        self.work.save()
        response = self.change('maintenance')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        visits = MaintenanceVisit.objects.filter(work=self.work).order_by('visit_number')
        self.assertEqual(visits.count(), 4)
        self.work.refresh_from_db()
        self.assertEqual(self.work.maintenance_start_date, timezone.localdate())

    def test_leaving_maintenance_deletes_visits(self):
        self.work.status = 'paymentReceived'
        self.work.save()
        self.change('maintenance')
        response = self.change('paymentReceived')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        response = self.change('paymentReceived', force=True)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(MaintenanceVisit.objects.filter(work=self.work).exists())
        self.work.refresh_from_db()
        self.assertIsNone(self.work.maintenance_start_date)

    def test_cancel_has_no_side_effects(self):
        self.change('inProgress')
        TestDataFactory.create_expense(work=self.work)
        response = self.change('cancelled')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Expense.objects.filter(work=self.work).count(), 1)

    def test_history_endpoint(self):
        self.change('inProgress')
        response = self.client.get(f'/api/v1/works/{self.work.id}/history/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['to_status'], 'inProgress')


class WorkAccessTests(TestCase):
    def setUp(self):
        self.worker = TestDataFactory.create_user(role='worker')
        self.mine = TestDataFactory.create_work(staff=self.worker)
        self.other = TestDataFactory.create_work()
        self.client = AuthenticatedAPIClient().authenticate_user(self.worker)

    def test_field_user_sees_assigned_works_only(self):
        response = self.client.get('/api/v1/works/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], self.mine.id)

    def test_field_user_cannot_open_other_work(self):
        response = self.client.get(f'/api/v1/works/{self.other.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_field_user_cannot_edit(self):
        response = self.client.patch(f'/api/v1/works/{self.mine.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_status_is_read_only_on_update(self):
        office = TestDataFactory.create_user(role='recept')
        client = AuthenticatedAPIClient().authenticate_user(office)
        response = client.patch(f'/api/v1/works/{self.mine.id}/', {'status': 'covered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.mine.refresh_from_db()
        self.assertEqual(self.mine.status, 'pending')


class InspectionTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work(status='installed')

    def test_request_and_approve_first_inspection(self):
        """Test requesting then approving the first inspection advances the work"""
        response = self.client.post(f'/api/v1/works/{self.work.id}/inspections/', {'type': 'first'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.work.refresh_from_db()
        self.assertEqual(self.work.status, 'firstInspectionPending')

        inspection_id = response.data['id']
        response = self.client.post(f'/api/v1/inspections/{inspection_id}/result/', {'result': 'approved'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['final_status'], 'approved')
        self.work.refresh_from_db()
        self.assertEqual(self.work.status, 'approvedInspection')

    def test_invalid_result(self):
        inspection = Inspection.objects.create(work=self.work, type='final')
        response = self.client.post(f'/api/v1/inspections/{inspection.id}/result/', {'result': 'maybe'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ChangeOrderTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work(status='inProgress')

    def test_create_computes_total_and_number(self):
        """Test hours x unit cost and sequential numbering"""
        response = self.client.post(f'/api/v1/works/{self.work.id}/change-orders/', {
            'description': 'Stone extraction', 'hours': '4', 'unit_cost': '125.50',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        change_order = ChangeOrder.objects.get(pk=response.data['id'])
        self.assertEqual(change_order.total_cost, Decimal('502.00'))
        self.assertEqual(change_order.change_order_number, f'CO-{self.work.id}-01')

    def test_amount_required(self):
        response = self.client.post(f'/api/v1/works/{self.work.id}/change-orders/', {
            'description': 'Missing amount',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_send_and_client_approval(self):
        """Test the emailed approval round trip"""
        change_order = ChangeOrder.objects.create(work=self.work, description='Extra pipe',
                                                  total_cost=Decimal('80.00'))
        response = self.client.post(f'/api/v1/change-orders/{change_order.id}/send/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.work.permit.applicant_email])

        change_order.refresh_from_db()
        self.assertEqual(change_order.status, 'pendingClientApproval')

        anonymous = AuthenticatedAPIClient()
        response = anonymous.post(f'/api/v1/change-orders/{change_order.id}/respond/',
                                  {'token': 'wrong', 'decision': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = anonymous.post(f'/api/v1/change-orders/{change_order.id}/respond/',
                                  {'token': change_order.approval_token, 'decision': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        change_order.refresh_from_db()
        self.assertEqual(change_order.status, 'approved')
        self.assertEqual(change_order.approval_token, '')

    def test_approved_change_order_is_locked(self):
        change_order = ChangeOrder.objects.create(work=self.work, description='Done', total_cost=Decimal('10.00'),
                                                  status='approved')
        response = self.client.patch(f'/api/v1/change-orders/{change_order.id}/', {'description': 'x'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class WorkNoteTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work()

    def test_resolve_sets_timestamp(self):
        response = self.client.post(f'/api/v1/works/{self.work.id}/notes/', {
            'message': 'Client called', 'priority': 'urgent',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        note_id = response.data['id']

        response = self.client.get('/api/v1/notes/alerts/')
        self.assertEqual([n['id'] for n in response.data], [note_id])

        response = self.client.patch(f'/api/v1/notes/{note_id}/', {'is_resolved': True}, format='json')
        self.assertIsNotNone(response.data['resolved_at'])
        response = self.client.get('/api/v1/notes/alerts/')
        self.assertEqual(response.data, [])

    def test_mentions_from_message(self):
        crew = TestDataFactory.create_user(username='mrivera', first_name='Marco', role='worker')
        response = self.client.post(f'/api/v1/works/{self.work.id}/notes/', {
            'message': '@marco bring the pump',
        }, format='json')
        self.assertEqual(response.data['mentioned_staff'], [crew.id])

        response = self.client.post(f'/api/v1/works/{self.work.id}/notes/', {
            'message': '@marco bring the pump', 'mentioned_staff': [],
        }, format='json')
        self.assertEqual(response.data['mentioned_staff'], [])


class NoticeToOwnerTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        today = timezone.localdate()
        self.late = TestDataFactory.create_work(status='inProgress',
                                                installation_start_date=today - timedelta(days=50))
        self.soon = TestDataFactory.create_work(status='inProgress',
                                                installation_start_date=today - timedelta(days=40))
        self.later = TestDataFactory.create_work(status='inProgress', installation_start_date=today)
        TestDataFactory.create_work(status='inProgress', installation_start_date=today - timedelta(days=50),
                                    notice_to_owner_filed=True)

    def test_list(self):
        """Test deadlines are counted from the installation start date"""
        response = self.client.get('/api/v1/works/notice-to-owner/')
        self.assertEqual(response.data['count'], 3)
        first = response.data['results'][0]
        self.assertEqual(first['id'], self.late.id)
        self.assertEqual(first['days_remaining'], -5)
        self.assertTrue(first['is_overdue'])

    @override_settings(OFFICE_NOTIFICATION_EMAILS=['office@test.com'])
    def test_alert_command_emails_office(self):
        out = StringIO()
        call_command('notice_to_owner_alerts', stdout=out)
        self.assertEqual(len(mail.outbox), 1)
        body = mail.outbox[0].body
        self.assertIn(self.late.property_address, body)
        self.assertIn(self.soon.property_address, body)
        self.assertNotIn(self.later.property_address, body)
        self.assertIn('Alert sent for 2 work(s)', out.getvalue())

    @override_settings(OFFICE_NOTIFICATION_EMAILS=['office@test.com'])
    def test_alert_command_dry_run(self):
        out = StringIO()
        call_command('notice_to_owner_alerts', '--dry-run', stdout=out)
        self.assertEqual(len(mail.outbox), 0)
        self.assertIn('DRY RUN MODE', out.getvalue())


class WorkChecklistTests(TestCase):
    """Test the office review checklist"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work(status='paymentReceived')

    def test_created_on_first_access(self):
        response = self.client.get(f'/api/v1/works/{self.work.id}/checklist/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['final_review_completed'])
        self.assertEqual(response.data['completed_count'], 0)
        self.assertTrue(WorkChecklist.objects.filter(work=self.work).exists())

    def test_final_review_records_reviewer(self):
        url = f'/api/v1/works/{self.work.id}/checklist/'
        response = self.client.patch(url, {'final_invoice_sent': True, 'final_review_completed': True},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reviewed_by'], self.user.id)
        self.assertIsNotNone(response.data['reviewed_at'])
        self.assertEqual(response.data['completed_count'], 2)

        response = self.client.patch(url, {'final_review_completed': False}, format='json')
        self.assertIsNone(response.data['reviewed_by'])
        self.assertIsNone(response.data['reviewed_at'])
        self.assertTrue(response.data['final_invoice_sent'])

    def test_stats(self):
        TestDataFactory.create_work()
        WorkChecklist.objects.create(work=self.work, final_review_completed=True)
        response = self.client.get('/api/v1/works/checklists/stats/')
        self.assertEqual(response.data['total_works'], 2)
        self.assertEqual(response.data['completed'], 1)
        self.assertEqual(response.data['completion_rate'], 50.0)

    def test_batch(self):
        other = TestDataFactory.create_work()
        WorkChecklist.objects.create(work=self.work, fee_inspection_paid=True)
        response = self.client.post('/api/v1/works/checklists/batch/', {'work_ids': [self.work.id, other.id]},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data[str(self.work.id)]['fee_inspection_paid'])
        self.assertIsNone(response.data[str(other.id)]['id'])
        self.assertFalse(WorkChecklist.objects.filter(work=other).exists())

        response = self.client.post('/api/v1/works/checklists/batch/', {'work_ids': 'all'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
