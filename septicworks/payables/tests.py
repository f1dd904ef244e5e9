"""
Test suite for Payables module
Tests: supplier invoices, expense linking, payments, accounts payable, vendors
"""
from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from septicworks.banking.models import BankTransaction
from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.finance.models import Expense
from septicworks.payables import services
from septicworks.payables.models import SupplierInvoice


class SupplierInvoiceAPITests(TestCase):
    """Test creating, editing and deleting supplier invoices"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work()

    def post_invoice(self, items, **data):
        payload = {'vendor': 'Ferguson Supply', 'invoice_number': 'F-1001', 'issue_date': '2026-05-01',
                   'items': items}
        payload.update(data)
        return self.client.post('/api/v1/supplier-invoices/', payload, format='json')

    def test_create_auto_creates_expenses(self):
        """Test lines without an expense get one flagged paid_via_invoice"""
        response = self.post_invoice([
            {'work': self.work.id, 'description': 'Tank 1000 gal', 'amount': '1200.00'},
            {'description': 'Pipe', 'amount': '80.50', 'category': 'Materiales'},
        ])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('1280.50'))
        self.assertEqual(response.data['payment_status'], 'pending')
        self.assertEqual(len(response.data['items']), 2)
        expenses = Expense.objects.filter(vendor='Ferguson Supply')
        self.assertEqual(expenses.count(), 2)
        self.assertTrue(all(e.payment_status == 'paid_via_invoice' for e in expenses))
        self.assertTrue(all(item['expense_auto_created'] for item in response.data['items']))

    def test_link_existing_unpaid_expense(self):
        expense = TestDataFactory.create_expense(work=self.work, amount=Decimal('350.00'))
        response = self.post_invoice([{'expense_id': expense.id}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('350.00'))
        self.assertFalse(response.data['items'][0]['expense_auto_created'])
        expense.refresh_from_db()
        self.assertEqual(expense.payment_status, 'paid_via_invoice')

    def test_cannot_link_paid_expense(self):
        expense = TestDataFactory.create_expense(payment_status='paid')
        response = self.post_invoice([{'expense_id': expense.id}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(SupplierInvoice.objects.exists())

    def test_items_required(self):
        response = self.post_invoice([])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.post_invoice([{'description': 'No amount'}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_vendor_and_number(self):
        self.post_invoice([{'description': 'Gravel', 'amount': '10.00'}])
        response = self.post_invoice([{'description': 'Gravel', 'amount': '10.00'}],
                                     vendor='ferguson supply', invoice_number='f-1001')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_due_date_before_issue_date(self):
        response = self.post_invoice([{'description': 'Gravel', 'amount': '10.00'}], due_date='2026-04-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_replacing_items_releases_old_expenses(self):
        """Test new lines replace old ones: auto expenses go, linked ones return to unpaid"""
        linked = TestDataFactory.create_expense(amount=Decimal('40.00'))
        invoice_id = self.post_invoice([
            {'expense_id': linked.id},
            {'description': 'Pipe', 'amount': '60.00'},
        ]).data['id']
        auto_expense_id = Expense.objects.get(amount=Decimal('60.00')).id

        response = self.client.patch(f'/api/v1/supplier-invoices/{invoice_id}/', {
            'items': [{'description': 'Riser', 'amount': '25.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('25.00'))
        linked.refresh_from_db()
        self.assertEqual(linked.payment_status, 'unpaid')
        self.assertFalse(Expense.objects.filter(pk=auto_expense_id).exists())

    def test_delete_releases_expenses(self):
        linked = TestDataFactory.create_expense(amount=Decimal('40.00'))
        invoice_id = self.post_invoice([{'expense_id': linked.id}]).data['id']
        response = self.client.delete(f'/api/v1/supplier-invoices/{invoice_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        linked.refresh_from_db()
        self.assertEqual(linked.payment_status, 'unpaid')

    def test_filter_by_status(self):
        TestDataFactory.create_supplier_invoice()
        TestDataFactory.create_supplier_invoice(payment_status='paid')
        response = self.client.get('/api/v1/supplier-invoices/?status=pending,partial')
        self.assertEqual(response.data['count'], 1)

    def test_office_user_forbidden(self):
        office = TestDataFactory.create_user(role='recept')
        client = AuthenticatedAPIClient().authenticate_user(office)
        response = client.get('/api/v1/supplier-invoices/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SupplierPaymentTests(TestCase):
    """Test partial and full payments"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.account = TestDataFactory.create_bank_account(account_name='Chase Bank', balance=Decimal('2000.00'))
        self.invoice = TestDataFactory.create_supplier_invoice(amounts=[Decimal('300.00'), Decimal('200.00')])

    def pay(self, amount, method='Chase Bank'):
        return self.client.post(f'/api/v1/supplier-invoices/{self.invoice.id}/pay/',
                                {'amount': amount, 'payment_method': method}, format='json')

    def test_partial_then_full_payment(self):
        response = self.pay('100.00')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['invoice']['payment_status'], 'partial')
        self.assertIsNotNone(response.data['bank_transaction_id'])
        self.assertTrue(all(e.payment_status == 'paid_via_invoice'
                            for e in Expense.objects.filter(supplier_invoice_items__supplier_invoice=self.invoice)))

        response = self.pay('400.00')
        self.assertEqual(response.data['invoice']['payment_status'], 'paid')
        self.assertEqual(Decimal(response.data['invoice']['outstanding_amount']), Decimal('0.00'))
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('1500.00'))
        self.assertEqual(BankTransaction.objects.filter(related_supplier_invoice=self.invoice).count(), 2)
        expenses = Expense.objects.filter(supplier_invoice_items__supplier_invoice=self.invoice)
        self.assertTrue(all(e.payment_status == 'paid' and e.payment_method == 'Chase Bank' for e in expenses))

    def test_overpayment_rejected(self):
        response = self.pay('500.01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_amount, Decimal('0.00'))

    def test_non_bank_method_has_no_transaction(self):
        response = self.pay('500.00', method='Zelle')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['bank_transaction_id'])

    def test_insufficient_funds_keeps_invoice_unpaid(self):
        self.account.current_balance = Decimal('10.00')
        self.account.save()
        response = self.pay('500.00')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'pending')

    def test_paid_invoice_is_locked(self):
        self.pay('500.00')
        response = self.client.patch(f'/api/v1/supplier-invoices/{self.invoice.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/supplier-invoices/{self.invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_partially_paid_invoice_cannot_be_deleted(self):
        self.pay('50.00')
        with self.assertRaises(services.PayablesError):
            services.delete_invoice(SupplierInvoice.objects.get(pk=self.invoice.pk))

    def test_total_cannot_drop_below_paid(self):
        self.pay('400.00')
        invoice = SupplierInvoice.objects.get(pk=self.invoice.pk)
        with self.assertRaises(services.PayablesError):
            services.update_invoice(invoice, {}, items=[{'description': 'Smaller', 'amount': Decimal('100.00')}])

    def test_replacing_items_down_to_paid_amount_settles_invoice(self):
        """Test an invoice whose new total equals the amount paid becomes paid"""
        self.pay('40.00', method='Efectivo')
        response = self.client.patch(f'/api/v1/supplier-invoices/{self.invoice.id}/', {
            'items': [{'description': 'Single fitting', 'amount': '40.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertEqual(Decimal(response.data['outstanding_amount']), Decimal('0.00'))
        expenses = Expense.objects.filter(supplier_invoice_items__supplier_invoice=self.invoice)
        self.assertEqual([e.payment_status for e in expenses], ['paid'])
        self.assertEqual(expenses[0].payment_method, 'Efectivo')

    def test_replacing_items_keeps_partial_status(self):
        self.pay('40.00', method='Efectivo')
        response = self.client.patch(f'/api/v1/supplier-invoices/{self.invoice.id}/', {
            'items': [{'description': 'Tank', 'amount': '90.00'}],
        }, format='json')
        self.assertEqual(response.data['payment_status'], 'partial')
        response = self.pay('50.00', method='Efectivo')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['invoice']['payment_status'], 'paid')


class PayablesReportTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        today = timezone.localdate()
        self.late = TestDataFactory.create_supplier_invoice(vendor='Acme Pumps', amounts=[Decimal('100.00')],
                                                            due_date=today - timedelta(days=3))
        self.open = TestDataFactory.create_supplier_invoice(vendor='Acme Pumps', amounts=[Decimal('50.00')],
                                                            due_date=today + timedelta(days=10))
        self.paid = TestDataFactory.create_supplier_invoice(vendor='Gravel Co', amounts=[Decimal('75.00')])
        services.register_payment(self.paid, Decimal('75.00'), 'Zelle', payment_date=date(2026, 3, 15))

    def test_accounts_payable(self):
        response = self.client.get('/api/v1/supplier-invoices/accounts-payable/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_payable'], Decimal('150.00'))
        self.assertEqual(response.data['total_invoices'], 2)
        self.assertEqual(response.data['overdue_count'], 1)
        self.assertEqual(response.data['overdue_amount'], Decimal('100.00'))
        self.assertEqual(response.data['by_vendor'][0]['vendor'], 'Acme Pumps')

    def test_payment_history(self):
        response = self.client.get('/api/v1/supplier-invoices/payment-history/?date_from=2026-03-01')
        self.assertEqual(response.data['invoice_count'], 1)
        self.assertEqual(response.data['total_paid'], Decimal('75.00'))
        response = self.client.get('/api/v1/supplier-invoices/payment-history/?vendor=acme')
        self.assertEqual(response.data['invoice_count'], 0)

    def test_vendors(self):
        response = self.client.get('/api/v1/supplier-invoices/vendors/')
        vendors = {row['vendor']: row for row in response.data['vendors']}
        self.assertEqual(vendors['Acme Pumps']['invoice_count'], 2)
        self.assertEqual(vendors['Acme Pumps']['outstanding'], Decimal('150.00'))
        self.assertEqual(vendors['Gravel Co']['outstanding'], Decimal('0.00'))

    def test_mark_overdue(self):
        """Test only open invoices past due are flagged"""
        self.assertEqual(services.mark_overdue(dry_run=True), 1)
        self.late.refresh_from_db()
        self.assertEqual(self.late.payment_status, 'pending')

        self.assertEqual(services.mark_overdue(), 1)
        self.late.refresh_from_db()
        self.open.refresh_from_db()
        self.assertEqual(self.late.payment_status, 'overdue')
        self.assertEqual(self.open.payment_status, 'pending')
