"""
Test suite for Budgets module
Tests: totals, approval and invoice numbering, initial payment proof, final invoices,
budget item catalog, follow-up notes with mentions
"""
import shutil
import tempfile
from decimal import Decimal
from io import BytesIO

from PIL import Image
from django.core import mail
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import transaction
from django.test import TestCase, override_settings
from rest_framework import status

from septicworks.banking.models import BankTransaction
from septicworks.budgets.invoice_numbers import get_next_invoice_number, invoice_number_stats
from septicworks.budgets.models import Budget, BudgetItem, BudgetNote, FinalInvoice, WorkExtraItem
from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.finance.models import Income
from septicworks.works.models import Work, ChangeOrder

MEDIA_ROOT = tempfile.mkdtemp()


def png_upload(name='atu.png'):
    buffer = BytesIO()
    Image.new('RGB', (4, 4), color='white').save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class BudgetModelTests(TestCase):
    """Test budget total calculation"""

    def test_totals(self):
        """Test subtotal, discount and initial payment"""
        budget = TestDataFactory.create_budget(items=[
            {'name': 'Tank', 'quantity': Decimal('1'), 'unit_price': Decimal('4000.00')},
            {'name': 'Pipe', 'quantity': Decimal('3'), 'unit_price': Decimal('333.33')},
        ])
        self.assertEqual(budget.subtotal_price, Decimal('4999.99'))
        budget.discount_amount = Decimal('999.99')
        budget.initial_payment_percentage = Decimal('50')
        budget.save()
        budget.recalculate_totals()
        self.assertEqual(budget.total_price, Decimal('4000.00'))
        self.assertEqual(budget.initial_payment, Decimal('2000.00'))

    def test_discount_larger_than_subtotal(self):
        budget = TestDataFactory.create_budget(discount_amount=Decimal('20000.00'))
        self.assertEqual(budget.total_price, Decimal('0.00'))

    def test_invoice_numbers_shared_between_documents(self):
        """Test budgets and final invoices draw from one sequence"""
        TestDataFactory.create_budget(invoice_number=7)
        work = TestDataFactory.create_work()
        FinalInvoice.objects.create(work=work, invoice_number=9)
        with transaction.atomic():
            self.assertEqual(get_next_invoice_number(), 10)
        self.assertEqual(invoice_number_stats()['current_max'], 9)


class BudgetAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.permit = TestDataFactory.create_permit()

    def test_create_from_permit(self):
        """Test a budget created from a permit inherits its applicant and address"""
        response = self.client.post('/api/v1/budgets/', {
            'permit': self.permit.id,
            'line_items': [
                {'name': 'ATU', 'quantity': '1', 'unit_price': '9000.00'},
                {'name': 'Labor', 'quantity': '2', 'unit_price': '500.00'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['property_address'], self.permit.property_address)
        self.assertEqual(response.data['applicant_email'], self.permit.applicant_email)
        self.assertEqual(Decimal(response.data['total_price']), Decimal('10000.00'))
        self.assertEqual(Decimal(response.data['initial_payment']), Decimal('6000.00'))
        self.assertEqual(len(response.data['line_items']), 2)

    def test_create_requires_address(self):
        response = self.client.post('/api/v1/budgets/', {'applicant_name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_line_item(self):
        response = self.client.post('/api/v1/budgets/', {
            'permit': self.permit.id,
            'line_items': [{'name': 'Bad', 'quantity': '0', 'unit_price': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_set_approved_status_directly(self):
        budget = TestDataFactory.create_budget(permit=self.permit)
        response = self.client.patch(f'/api/v1/budgets/{budget.id}/', {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_line_items(self):
        budget = TestDataFactory.create_budget(permit=self.permit)
        response = self.client.patch(f'/api/v1/budgets/{budget.id}/', {
            'line_items': [{'name': 'Smaller system', 'quantity': '1', 'unit_price': '5000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_price']), Decimal('5000.00'))
        self.assertEqual(budget.line_items.count(), 1)

    def test_send_emails_pdf(self):
        """Test sending a budget attaches its PDF and marks it sent"""
        budget = TestDataFactory.create_budget(permit=self.permit)
        response = self.client.post(f'/api/v1/budgets/{budget.id}/send/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'send')
        self.assertEqual(len(mail.outbox), 1)
        filename, content, mimetype = mail.outbox[0].attachments[0]
        self.assertEqual(mimetype, 'application/pdf')
        self.assertTrue(content.startswith(b'%PDF'))

    def test_send_without_email(self):
        budget = TestDataFactory.create_budget(permit=self.permit)
        Budget.objects.filter(pk=budget.pk).update(applicant_email='')
        response = self.client.post(f'/api/v1/budgets/{budget.id}/send/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_numbers_budget_and_creates_work(self):
        """Test approval assigns the next invoice number and opens a work"""
        TestDataFactory.create_budget(invoice_number=41)
        budget = TestDataFactory.create_budget(permit=self.permit)
        response = self.client.post(f'/api/v1/budgets/{budget.id}/approve/', {'signed': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['work_created'])
        self.assertEqual(response.data['budget']['status'], 'signed')
        self.assertEqual(response.data['budget']['invoice_number'], 42)

        work = Work.objects.get(pk=response.data['work_id'])
        self.assertEqual(work.budget_id, budget.id)
        self.assertEqual(work.permit_id, self.permit.id)

        # Approving again keeps the number and the work
        response = self.client.post(f'/api/v1/budgets/{budget.id}/approve/', {}, format='json')
        self.assertFalse(response.data['work_created'])
        self.assertEqual(response.data['budget']['invoice_number'], 42)
        self.assertEqual(Work.objects.filter(budget=budget).count(), 1)

    def test_rejected_cannot_be_approved(self):
        budget = TestDataFactory.create_budget(permit=self.permit, status='rejected')
        response = self.client.post(f'/api/v1/budgets/{budget.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_accepted_cannot_be_rejected(self):
        budget = TestDataFactory.create_budget(permit=self.permit, status='approved')
        response = self.client.post(f'/api/v1/budgets/{budget.id}/reject/', {'reason': 'Too late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_budget_with_work(self):
        budget = TestDataFactory.create_budget(permit=self.permit, status='approved')
        TestDataFactory.create_work(budget=budget)
        response = self.client.delete(f'/api/v1/budgets/{budget.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class BudgetCacheTests(TestCase):
    """Test budget edits refresh the cached receivables report"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.budget = TestDataFactory.create_budget(status='approved')

    def test_line_item_edit_invalidates_receivables(self):
        url = '/api/v1/reports/accounts-receivable/'
        self.assertEqual(self.client.get(url).data['total_initial_pending'], 6000.0)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(f'/api/v1/budgets/{self.budget.id}/', {
                'line_items': [{'name': 'Smaller system', 'quantity': '1', 'unit_price': '5000'}],
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get(url).data['total_initial_pending'], 3000.0)


class PaymentProofTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.budget = TestDataFactory.create_budget(status='approved')
        self.work = TestDataFactory.create_work(budget=self.budget)
        self.account = TestDataFactory.create_bank_account(account_name='Chase Bank', balance=Decimal('100.00'))

    def test_payment_proof_creates_income_and_deposit(self):
        """Test the initial payment is booked as income and deposited"""
        response = self.client.post(f'/api/v1/budgets/{self.budget.id}/payment-proof/', {
            'amount': '6000.00', 'payment_method': 'Chase Bank',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['budget']['initial_payment_received'])

        income = Income.objects.get(pk=response.data['income_id'])
        self.assertEqual(income.work, self.work)
        self.assertEqual(income.type_income, 'Factura Pago Inicial Budget')
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('6100.00'))
        self.assertTrue(BankTransaction.objects.filter(related_income=income).exists())

    def test_second_payment_proof_conflicts(self):
        payload = {'amount': '10.00', 'payment_method': 'Zelle'}
        self.client.post(f'/api/v1/budgets/{self.budget.id}/payment-proof/', payload, format='json')
        response = self.client.post(f'/api/v1/budgets/{self.budget.id}/payment-proof/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Income.objects.count(), 1)

    def test_unknown_payment_method(self):
        response = self.client.post(f'/api/v1/budgets/{self.budget.id}/payment-proof/', {
            'amount': '10.00', 'payment_method': 'Bitcoin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_bank_method_has_no_deposit(self):
        self.client.post(f'/api/v1/budgets/{self.budget.id}/payment-proof/', {
            'amount': '10.00', 'payment_method': 'Zelle',
        }, format='json')
        self.assertEqual(BankTransaction.objects.count(), 0)


class FinalInvoiceTests(TestCase):
    """Test final invoice creation, extras and payment"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.budget = TestDataFactory.create_budget(status='approved')
        self.work = TestDataFactory.create_work(budget=self.budget, status='invoiceFinal')
        self.change_order = ChangeOrder.objects.create(work=self.work, description='Stone extraction',
                                                       total_cost=Decimal('500.00'), status='approved')

    def create_invoice(self, **data):
        return self.client.post(f'/api/v1/works/{self.work.id}/final-invoice/', data, format='json')

    def test_create_includes_approved_change_orders(self):
        """Test amount due = budget + extras - discount - initial payment"""
        response = self.create_invoice(discount='100.00')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['original_budget_total']), Decimal('10000.00'))
        self.assertEqual(Decimal(response.data['initial_payment_made']), Decimal('6000.00'))
        self.assertEqual(Decimal(response.data['subtotal_extras']), Decimal('500.00'))
        self.assertEqual(Decimal(response.data['final_amount_due']), Decimal('4400.00'))
        self.assertEqual(len(response.data['extra_items']), 1)
        self.change_order.refresh_from_db()
        self.assertEqual(self.change_order.status, 'invoiced')
        self.work.refresh_from_db()
        self.assertEqual(self.work.status, 'invoiceFinal')

    def test_uses_recorded_payment_proof(self):
        self.budget.payment_proof_amount = Decimal('5000.00')
        self.budget.save()
        response = self.create_invoice()
        self.assertEqual(Decimal(response.data['initial_payment_made']), Decimal('5000.00'))

    def test_invalid_discount(self):
        for discount in ('abc', '-5'):
            response = self.create_invoice(discount=discount)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, discount)
            self.assertIn('discount', response.data)
        self.assertFalse(FinalInvoice.objects.filter(work=self.work).exists())

    def test_second_invoice_conflicts(self):
        self.create_invoice()
        response = self.create_invoice()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_requires_accepted_budget(self):
        self.budget.status = 'send'
        self.budget.save()
        response = self.create_invoice()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_extra_items_recalculate(self):
        invoice_id = self.create_invoice().data['id']
        response = self.client.post(f'/api/v1/final-invoices/{invoice_id}/extra-items/', {
            'description': 'Extra riser', 'quantity': '2', 'unit_price': '75.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['invoice']['final_amount_due']), Decimal('4650.00'))

        item = WorkExtraItem.objects.get(change_order=self.change_order)
        response = self.client.delete(f'/api/v1/final-invoices/extra-items/{item.id}/')
        self.assertEqual(Decimal(response.data['invoice']['final_amount_due']), Decimal('4150.00'))
        self.change_order.refresh_from_db()
        self.assertEqual(self.change_order.status, 'approved')

    def test_mark_paid_books_income_and_advances_work(self):
        """Test paying the invoice books income and moves the work to paymentReceived"""
        invoice_id = self.create_invoice().data['id']
        response = self.client.patch(f'/api/v1/final-invoices/{invoice_id}/', {
            'status': 'paid', 'payment_method': 'Zelle',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['work_status'], 'paymentReceived')
        income = Income.objects.get(pk=response.data['income_id'])
        self.assertEqual(income.amount, Decimal('4500.00'))
        self.assertEqual(income.type_income, 'Factura Pago Final Budget')

        response = self.client.patch(f'/api/v1/final-invoices/{invoice_id}/', {'discount': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rollback_from_invoice_deletes_it(self):
        self.create_invoice()
        response = self.client.post(f'/api/v1/works/{self.work.id}/status/',
                                    {'status': 'finalApproved', 'force': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(FinalInvoice.objects.filter(work=self.work).exists())
        self.change_order.refresh_from_db()
        self.assertEqual(self.change_order.status, 'approved')

    def test_pdf(self):
        invoice_id = self.create_invoice().data['id']
        response = self.client.get(f'/api/v1/final-invoices/{invoice_id}/pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')

    def test_email_to_extra_recipients(self):
        invoice_id = self.create_invoice().data['id']
        response = self.client.post(f'/api/v1/final-invoices/{invoice_id}/email/',
                                    {'recipients': 'agent@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('agent@test.com', response.data['recipients'])
        self.assertIsNotNone(FinalInvoice.objects.get(pk=invoice_id).email_sent_at)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class BudgetItemCatalogTests(TestCase):
    """Test the catalog budget lines are priced from"""

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.permit = TestDataFactory.create_permit()
        self.atu = BudgetItem.objects.create(name='ATU 500 GPD', category='System', brand='Fuji',
                                             capacity='500 GPD', unit_price=Decimal('9000.00'))

    def test_create_with_image(self):
        response = self.client.post('/api/v1/budget-items/', {
            'name': 'Concrete tank', 'category': 'Tank', 'unit_price': '4500.00', 'image': png_upload(),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(response.data['image'])
        self.assertTrue(BudgetItem.objects.get(pk=response.data['id']).image)

    def test_invalid_image_rejected(self):
        response = self.client.post('/api/v1/budget-items/', {
            'name': 'Concrete tank', 'category': 'Tank', 'unit_price': '4500.00',
            'image': SimpleUploadedFile('tank.png', b'not-an-image', content_type='image/png'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image', response.data)

    def test_filters(self):
        BudgetItem.objects.create(name='Old tank', category='Tank', unit_price=Decimal('100.00'), is_active=False)
        BudgetItem.objects.create(name='New tank', category='Tank', unit_price=Decimal('200.00'))
        response = self.client.get('/api/v1/budget-items/?active=true&category=tank')
        self.assertEqual([item['name'] for item in response.data], ['New tank'])
        response = self.client.get('/api/v1/budget-items/?search=fuji')
        self.assertEqual([item['name'] for item in response.data], ['ATU 500 GPD'])

    def test_line_item_from_catalog(self):
        """Test a line referencing the catalog takes its name and price"""
        response = self.client.post('/api/v1/budgets/', {
            'permit': self.permit.id,
            'line_items': [{'budget_item': self.atu.id, 'quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        line = response.data['line_items'][0]
        self.assertEqual(line['name'], 'ATU 500 GPD')
        self.assertEqual(line['category'], 'System')
        self.assertEqual(line['budget_item'], self.atu.id)
        self.assertEqual(Decimal(response.data['total_price']), Decimal('9000.00'))

    def test_line_item_price_override(self):
        response = self.client.post('/api/v1/budgets/', {
            'permit': self.permit.id,
            'line_items': [{'budget_item': self.atu.id, 'quantity': '2', 'unit_price': '8000.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_price']), Decimal('16000.00'))

    def test_inactive_item_rejected(self):
        self.client.post(f'/api/v1/budget-items/{self.atu.id}/toggle/')
        response = self.client.post('/api/v1/budgets/', {
            'permit': self.permit.id,
            'line_items': [{'budget_item': self.atu.id, 'quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('line_items', response.data)

    def test_free_line_needs_name_and_price(self):
        response = self.client.post('/api/v1/budgets/', {
            'permit': self.permit.id,
            'line_items': [{'quantity': '1', 'unit_price': '5.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/budgets/', {
            'permit': self.permit.id,
            'line_items': [{'name': 'Labor', 'quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_used_item_conflicts(self):
        budget = TestDataFactory.create_budget(permit=self.permit)
        budget.line_items.update(budget_item=self.atu)
        response = self.client.delete(f'/api/v1/budget-items/{self.atu.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        unused = BudgetItem.objects.create(name='Gravel', category='Material', unit_price=Decimal('40.00'))
        response = self.client.delete(f'/api/v1/budget-items/{unused.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_categories(self):
        BudgetItem.objects.create(name='Old ATU', category='System', unit_price=Decimal('1.00'), is_active=False)
        response = self.client.get('/api/v1/budget-items/categories/')
        self.assertEqual(response.data, [{'category': 'System', 'count': 2, 'active_count': 1}])


class BudgetNoteTests(TestCase):
    """Test follow-up notes and @mentions"""

    def setUp(self):
        self.author = TestDataFactory.create_user(username='ana', first_name='Ana', role='recept')
        self.luis = TestDataFactory.create_user(username='lgarcia', first_name='Luis', role='recept')
        self.gone = TestDataFactory.create_user(username='pedro', role='recept', is_active=False)
        self.client = AuthenticatedAPIClient().authenticate_user(self.author)
        self.budget = TestDataFactory.create_budget(status='send')

    def post_note(self, message, **data):
        payload = {'message': message}
        payload.update(data)
        return self.client.post(f'/api/v1/budgets/{self.budget.id}/notes/', payload, format='json')

    def test_mentions_resolve_active_staff(self):
        """Test @first_name and @username match active staff, case-insensitively, excluding the author"""
        response = self.post_note('Called client, @luis please follow up. cc @PEDRO @ana @nobody')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['mentioned_staff'], [self.luis.id])
        self.assertEqual(response.data['related_status'], 'send')
        self.assertEqual(response.data['note_type'], 'follow_up')

        response = self.post_note('@lgarcia any news?')
        self.assertEqual(response.data['mentioned_staff'], [self.luis.id])

    def test_filters(self):
        self.post_note('No answer', note_type='no_response')
        self.post_note('Client wants a smaller tank', note_type='problem', priority='high')
        response = self.client.get(f'/api/v1/budgets/{self.budget.id}/notes/?note_type=problem')
        self.assertEqual(len(response.data), 1)
        response = self.client.get(f'/api/v1/budgets/{self.budget.id}/notes/?priority=high&unresolved=true')
        self.assertEqual(len(response.data), 1)

    def test_only_author_or_admin_can_edit(self):
        note_id = self.post_note('Waiting for the permit').data['id']
        other = AuthenticatedAPIClient().authenticate_user(self.luis)
        response = other.patch(f'/api/v1/budget-notes/{note_id}/', {'is_resolved': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = other.delete(f'/api/v1/budget-notes/{note_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        admin = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='admin'))
        response = admin.patch(f'/api/v1/budget-notes/{note_id}/', {'is_resolved': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['resolved_at'])

    def test_editing_message_updates_mentions(self):
        note_id = self.post_note('Ask @luis').data['id']
        response = self.client.patch(f'/api/v1/budget-notes/{note_id}/', {'message': 'No one needed'},
                                     format='json')
        self.assertEqual(response.data['mentioned_staff'], [])

    def test_stats_and_alerts(self):
        self.post_note('Price objection', note_type='problem')
        self.post_note('@luis call back', note_type='client_contact')
        response = self.client.get(f'/api/v1/budgets/{self.budget.id}/notes/stats/')
        self.assertEqual(response.data['total_notes'], 2)
        self.assertEqual(response.data['by_type'], {'problem': 1, 'client_contact': 1})
        self.assertEqual(response.data['unresolved_problems'], 1)
        self.assertEqual(response.data['last_note']['note_type'], 'client_contact')

        luis = AuthenticatedAPIClient().authenticate_user(self.luis)
        response = luis.get('/api/v1/budget-notes/alerts/')
        self.assertEqual([n['message'] for n in response.data], ['@luis call back'])
        self.assertTrue(BudgetNote.objects.filter(mentioned_staff=self.luis).exists())
