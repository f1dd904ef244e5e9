"""
Test suite for Reports module
Tests: financial dashboard, accounts receivable, monthly installations, monthly expenses,
balance detail, report caching
"""
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from septicworks.budgets.models import FinalInvoice
from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.finance.models import Expense, FixedExpense
from septicworks.reports.views import times_in_month


class FinancialDashboardTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        TestDataFactory.create_bank_account(account_name='Chase Bank', balance=Decimal('250.00'))
        TestDataFactory.create_income(amount=Decimal('1000.00'), payment_method='Zelle', date=date(2026, 4, 3))
        TestDataFactory.create_income(amount=Decimal('500.00'), payment_method='Chase Bank', date=date(2026, 4, 20))
        TestDataFactory.create_income(amount=Decimal('999.00'), date=date(2026, 5, 1))
        TestDataFactory.create_expense(amount=Decimal('200.00'), date=date(2026, 4, 8))
        TestDataFactory.create_supplier_invoice(amounts=[Decimal('300.00')], issue_date=date(2026, 4, 10))

    def test_period_totals(self):
        """Test supplier invoice expenses stay out of the expense total"""
        response = self.client.get('/api/v1/reports/financial-dashboard/?date_from=2026-04-01&date_to=2026-04-30')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_income'], 1500.0)
        self.assertEqual(response.data['total_expense'], 200.0)
        self.assertEqual(response.data['net'], 1300.0)
        self.assertEqual(response.data['income_by_payment_method'][0]['payment_method'], 'Zelle')
        self.assertEqual(response.data['total_bank_balance'], 250.0)
        self.assertEqual(response.data['supplier_payables']['total'], 300.0)
        self.assertEqual(response.data['supplier_payables']['invoice_count'], 1)

    def test_month_and_year(self):
        response = self.client.get('/api/v1/reports/financial-dashboard/?month=5&year=2026')
        self.assertEqual(response.data['date_from'], '2026-05-01')
        self.assertEqual(response.data['date_to'], '2026-05-31')
        self.assertEqual(response.data['total_income'], 999.0)

    def test_invalid_period(self):
        for query in ('date_from=04-01-2026', 'month=13&year=2026', 'date_from=2026-05-01&date_to=2026-04-01'):
            response = self.client.get(f'/api/v1/reports/financial-dashboard/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)

    def test_office_user_forbidden(self):
        office = TestDataFactory.create_user(role='recept')
        client = AuthenticatedAPIClient().authenticate_user(office)
        response = client.get('/api/v1/reports/financial-dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cache_invalidated_after_commit(self):
        url = '/api/v1/reports/financial-dashboard/?date_from=2026-04-01&date_to=2026-04-30'
        self.client.get(url)
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_income(amount=Decimal('10.00'), date=date(2026, 4, 25))
        response = self.client.get(url)
        self.assertEqual(response.data['total_income'], 1510.0)


class AccountsReceivableTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_pending_initial_and_final(self):
        TestDataFactory.create_budget(status='approved')
        TestDataFactory.create_budget(status='approved', payment_proof_amount=Decimal('6000.00'))
        TestDataFactory.create_budget(status='send')
        work = TestDataFactory.create_work(status='invoiceFinal')
        FinalInvoice.objects.create(work=work, invoice_number=77, final_amount_due=Decimal('4000.00'))
        paid_work = TestDataFactory.create_work(status='paymentReceived')
        FinalInvoice.objects.create(work=paid_work, invoice_number=78, final_amount_due=Decimal('100.00'),
                                    status='paid')

        response = self.client.get('/api/v1/reports/accounts-receivable/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['pending_initial_payments']), 1)
        self.assertEqual(response.data['total_initial_pending'], 6000.0)
        self.assertEqual(response.data['pending_final_invoices'][0]['invoice_number'], 77)
        self.assertEqual(response.data['total_receivable'], 10000.0)


class MonthlyInstallationsTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_counts_by_month(self):
        TestDataFactory.create_work(installation_start_date=date(2026, 3, 2))
        TestDataFactory.create_work(installation_start_date=date(2026, 3, 20))
        TestDataFactory.create_work(installation_start_date=date(2026, 7, 1))
        TestDataFactory.create_work(installation_start_date=date(2025, 3, 1))
        TestDataFactory.create_work()

        response = self.client.get('/api/v1/reports/monthly-installations/?year=2026')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(len(response.data['months']), 12)
        self.assertEqual(response.data['months'][2]['count'], 2)
        self.assertEqual(response.data['months'][6]['count'], 1)

    def test_invalid_year(self):
        response = self.client.get('/api/v1/reports/monthly-installations/?year=last')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_field_user_forbidden(self):
        worker = TestDataFactory.create_user(role='worker')
        client = AuthenticatedAPIClient().authenticate_user(worker)
        response = client.get('/api/v1/reports/monthly-installations/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MonthlyExpensesTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def create_schedule(self):
        TestDataFactory.create_fixed_expense(name='Rent', total_amount=Decimal('100.00'), start_date=date(2026, 3, 15))
        TestDataFactory.create_fixed_expense(name='Insurance', total_amount=Decimal('300.00'), frequency='quarterly',
                                             start_date=date(2026, 1, 10))
        TestDataFactory.create_fixed_expense(name='License', total_amount=Decimal('1000.00'), frequency='annual',
                                             start_date=date(2025, 6, 1))
        TestDataFactory.create_fixed_expense(name='Sign', total_amount=Decimal('80.00'), frequency='one_time',
                                             start_date=date(2026, 5, 5))
        TestDataFactory.create_fixed_expense(name='Old phone', start_date=date(2026, 1, 1), is_active=False)
        TestDataFactory.create_fixed_expense(name='Ended lease', start_date=date(2025, 1, 1),
                                             end_date=date(2025, 12, 31))

    def test_times_in_month(self):
        weekly = FixedExpense(frequency='weekly', start_date=date(2026, 1, 1))
        self.assertEqual(times_in_month(weekly, 2026, 2), 4)
        self.assertEqual(times_in_month(weekly, 2026, 3), 5)
        self.assertEqual(times_in_month(weekly, 2025, 12), 0)
        biweekly = FixedExpense(frequency='biweekly', start_date=date(2026, 1, 1), end_date=date(2026, 2, 10))
        self.assertEqual(times_in_month(biweekly, 2026, 2), 2)
        self.assertEqual(times_in_month(biweekly, 2026, 3), 0)

    def test_general_expenses_by_month(self):
        """Test only general expenses outside supplier invoices are counted"""
        TestDataFactory.create_expense(amount=Decimal('200.00'), date=date(2026, 3, 10), payment_status='paid')
        TestDataFactory.create_expense(amount=Decimal('50.00'), date=date(2026, 3, 20))
        TestDataFactory.create_expense(amount=Decimal('999.00'), date=date(2026, 3, 11), type_expense='Materiales')
        invoice = TestDataFactory.create_supplier_invoice(issue_date=date(2026, 3, 5))
        Expense.objects.filter(supplier_invoice_items__supplier_invoice=invoice).update(type_expense='Gastos Generales')

        response = self.client.get('/api/v1/reports/monthly-expenses/?year=2026')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        march = response.data['months'][2]['general_expenses']
        self.assertEqual(march['count'], 2)
        self.assertEqual(march['total'], 250.0)
        self.assertEqual(march['paid'], 200.0)
        self.assertEqual(march['unpaid'], 50.0)
        self.assertEqual(response.data['year_totals']['general_expenses'], 250.0)

    def test_fixed_expenses_follow_schedule(self):
        self.create_schedule()
        response = self.client.get('/api/v1/reports/monthly-expenses/?year=2026')
        totals = [m['fixed_expenses']['total'] for m in response.data['months']]
        self.assertEqual(totals[:7], [300.0, 0.0, 100.0, 400.0, 180.0, 1100.0, 400.0])
        self.assertEqual(response.data['year_totals']['fixed_expenses'], 3280.0)
        self.assertEqual(response.data['year_totals']['total_year'], 3280.0)
        self.assertEqual(response.data['fixed_expenses_active'], 4)

    def test_single_month(self):
        self.create_schedule()
        response = self.client.get('/api/v1/reports/monthly-expenses/?year=2026&month=6')
        self.assertEqual(len(response.data['months']), 1)
        self.assertIsNone(response.data['year_totals'])
        self.assertEqual(response.data['months'][0]['total_month'], 1100.0)
        names = [item['name'] for item in response.data['months'][0]['fixed_expenses']['items']]
        self.assertEqual(names, ['License', 'Rent'])

    def test_invalid_month(self):
        for query in ('month=13', 'year=next'):
            response = self.client.get(f'/api/v1/reports/monthly-expenses/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)

    def test_available_years(self):
        TestDataFactory.create_expense(date=date(2024, 5, 1))
        TestDataFactory.create_fixed_expense(start_date=date(2025, 2, 1), end_date=date(2027, 1, 31))
        response = self.client.get('/api/v1/reports/monthly-expenses/years/')
        self.assertEqual(response.data['available_years'], [2027, 2025, 2024])
        self.assertEqual(response.data['recommended_year'], 2027)


class BalanceDetailTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.work = TestDataFactory.create_work()
        self.rent = TestDataFactory.create_fixed_expense(name='Yard rent')
        TestDataFactory.create_expense(amount=Decimal('200.00'), date=date(2026, 4, 2), payment_method='Zelle',
                                       payment_status='paid', type_expense='Gasto Fijo',
                                       related_fixed_expense=self.rent)
        TestDataFactory.create_expense(work=self.work, amount=Decimal('300.00'), date=date(2026, 4, 9),
                                       payment_method='Zelle', type_expense='Materiales')
        TestDataFactory.create_expense(amount=Decimal('50.00'), date=date(2026, 4, 15), payment_status='paid',
                                       type_expense='Materiales')
        TestDataFactory.create_expense(amount=Decimal('75.00'), date=date(2026, 5, 1))

    def test_grouped_by_method_and_type(self):
        response = self.client.get('/api/v1/reports/balance-detail/?date_from=2026-04-01&date_to=2026-04-30')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        zelle, unspecified = response.data['by_payment_method']
        self.assertEqual(zelle['payment_method'], 'Zelle')
        self.assertEqual((zelle['total_amount'], zelle['total_count']), (500.0, 2))
        self.assertEqual((zelle['paid_amount'], zelle['unpaid_amount'], zelle['unpaid_count']), (200.0, 300.0, 1))
        self.assertEqual(unspecified['payment_method'], 'unspecified')

        types = {group['type_expense']: group['total_amount'] for group in response.data['by_expense_type']}
        self.assertEqual(types, {'Materiales': 350.0, 'Gasto Fijo': 200.0})
        self.assertEqual(response.data['totals'], {
            'count': 3, 'total_amount': 550.0, 'paid_amount': 250.0, 'unpaid_amount': 300.0,
        })

    def test_expense_lines_carry_work_and_fixed_expense(self):
        response = self.client.get('/api/v1/reports/balance-detail/?date_from=2026-04-01&date_to=2026-04-30')
        lines = {line['amount']: line for line in response.data['by_payment_method'][0]['expenses']}
        self.assertEqual(lines[300.0]['client_name'], self.work.applicant_name)
        self.assertEqual(lines[300.0]['property_address'], self.work.property_address)
        self.assertEqual(lines[200.0]['fixed_expense']['name'], 'Yard rent')
        self.assertIsNone(lines[300.0]['fixed_expense'])

    def test_dates_required(self):
        for query in ('', 'date_from=2026-04-01', 'date_from=2026-04-30&date_to=2026-04-01'):
            response = self.client.get(f'/api/v1/reports/balance-detail/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)

    def test_recept_forbidden(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='recept'))
        response = client.get('/api/v1/reports/balance-detail/?date_from=2026-04-01&date_to=2026-04-30')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
