"""
Test suite for Finance module
Tests: incomes and expenses with their bank movements, work balance,
fixed expenses with their payments and accruals
"""
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from septicworks.banking.models import BankTransaction
from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.finance import fixed_expenses
from septicworks.finance.models import Income, Expense, FixedExpense, FixedExpensePayment


class IncomeAPITests(TestCase):
    """Test incomes and their deposits"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.account = TestDataFactory.create_bank_account(account_name='Chase Bank')
        self.work = TestDataFactory.create_work()

    def test_bank_income_is_deposited(self):
        """Test an income paid into a company account updates its balance"""
        response = self.client.post('/api/v1/incomes/', {
            'work': self.work.id, 'amount': '250.00', 'date': '2026-04-01', 'payment_method': 'Chase Bank',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(response.data['bank_transaction_id'])
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('250.00'))

    def test_non_bank_income_has_no_transaction(self):
        response = self.client.post('/api/v1/incomes/', {
            'amount': '40.00', 'date': '2026-04-01', 'payment_method': 'Zelle',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['bank_transaction_id'])

    def test_zero_amount_rejected(self):
        response = self.client.post('/api/v1/incomes/', {'amount': '0', 'date': '2026-04-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_changing_amount_rebooks_deposit(self):
        """Test editing the amount replaces the bank movement"""
        income_id = self.client.post('/api/v1/incomes/', {
            'amount': '100.00', 'date': '2026-04-01', 'payment_method': 'Chase Bank',
        }, format='json').data['id']
        response = self.client.patch(f'/api/v1/incomes/{income_id}/', {'amount': '80.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('80.00'))
        self.assertEqual(BankTransaction.objects.filter(related_income_id=income_id).count(), 1)

    def test_notes_change_does_not_rebook(self):
        income_id = self.client.post('/api/v1/incomes/', {
            'amount': '100.00', 'date': '2026-04-01', 'payment_method': 'Chase Bank',
        }, format='json').data['id']
        transaction_id = BankTransaction.objects.get(related_income_id=income_id).id
        self.client.patch(f'/api/v1/incomes/{income_id}/', {'notes': 'checked'}, format='json')
        self.assertTrue(BankTransaction.objects.filter(pk=transaction_id).exists())

    def test_delete_reverses_deposit(self):
        income_id = self.client.post('/api/v1/incomes/', {
            'amount': '100.00', 'date': '2026-04-01', 'payment_method': 'Chase Bank',
        }, format='json').data['id']
        response = self.client.delete(f'/api/v1/incomes/{income_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('0.00'))
        self.assertFalse(Income.objects.filter(pk=income_id).exists())

    def test_list_total(self):
        TestDataFactory.create_income(amount=Decimal('10.00'))
        TestDataFactory.create_income(amount=Decimal('15.50'))
        response = self.client.get('/api/v1/incomes/')
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['total_amount'], Decimal('25.50'))

    def test_field_user_forbidden(self):
        worker = TestDataFactory.create_user(role='worker')
        client = AuthenticatedAPIClient().authenticate_user(worker)
        response = client.get('/api/v1/incomes/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ExpenseAPITests(TestCase):
    """Test expenses and their withdrawals"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.account = TestDataFactory.create_bank_account(account_name='Chase Bank', balance=Decimal('500.00'))

    def post_expense(self, **data):
        payload = {'amount': '120.00', 'date': '2026-04-02', 'type_expense': 'Materiales'}
        payload.update(data)
        return self.client.post('/api/v1/expenses/', payload, format='json')

    def test_paid_expense_is_withdrawn(self):
        response = self.post_expense(payment_status='paid', payment_method='Chase Bank')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('380.00'))

    def test_unpaid_expense_not_withdrawn(self):
        self.post_expense(payment_method='Chase Bank')
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('500.00'))

    def test_insufficient_funds_rolls_back(self):
        """Test a rejected withdrawal leaves no expense behind"""
        response = self.post_expense(amount='900.00', payment_status='paid', payment_method='Chase Bank')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient funds', response.data['error'])
        self.assertEqual(Expense.objects.count(), 0)

    def test_credit_card_can_go_negative(self):
        card = TestDataFactory.create_bank_account(account_name='AMEX', account_type='credit_card')
        response = self.post_expense(amount='75.00', payment_status='paid', payment_method='AMEX')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        card.refresh_from_db()
        self.assertEqual(card.current_balance, Decimal('-75.00'))

    def test_marking_paid_then_unpaid(self):
        expense_id = self.post_expense(payment_method='Chase Bank').data['id']
        self.client.patch(f'/api/v1/expenses/{expense_id}/', {'payment_status': 'paid'}, format='json')
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('380.00'))

        self.client.patch(f'/api/v1/expenses/{expense_id}/', {'payment_status': 'unpaid'}, format='json')
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('500.00'))

    def test_cannot_set_paid_via_invoice(self):
        response = self.post_expense(payment_status='paid_via_invoice')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supplier_invoice_expense_is_protected(self):
        """Test expenses owned by a supplier invoice cannot be edited or deleted here"""
        invoice = TestDataFactory.create_supplier_invoice()
        expense = invoice.items.first().related_expense
        response = self.client.patch(f'/api/v1/expenses/{expense.id}/', {'amount': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/expenses/{expense.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Expense.objects.filter(pk=expense.id).exists())

    def test_filter_by_work(self):
        work = TestDataFactory.create_work()
        TestDataFactory.create_expense(work=work)
        TestDataFactory.create_expense()
        response = self.client.get(f'/api/v1/expenses/?work={work.id}')
        self.assertEqual(response.data['count'], 1)


class WorkBalanceTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='recept')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_balance(self):
        work = TestDataFactory.create_work()
        TestDataFactory.create_income(work=work, amount=Decimal('1000.00'))
        TestDataFactory.create_expense(work=work, amount=Decimal('300.00'))
        TestDataFactory.create_expense(work=work, amount=Decimal('150.25'))
        response = self.client.get(f'/api/v1/works/{work.id}/balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_income'], Decimal('1000.00'))
        self.assertEqual(response.data['total_expense'], Decimal('450.25'))
        self.assertEqual(response.data['balance'], Decimal('549.75'))
        self.assertEqual(len(response.data['expenses']), 2)

    def test_payment_methods(self):
        response = self.client.get('/api/v1/payment-methods/')
        methods = {m['value']: m for m in response.data['payment_methods']}
        self.assertTrue(methods['Chase Bank']['uses_bank_account'])
        self.assertFalse(methods['Zelle']['uses_bank_account'])


class FixedExpenseScheduleTests(TestCase):
    def test_due_dates(self):
        self.assertEqual(fixed_expenses.add_period(date(2026, 1, 15), 'monthly'), date(2026, 2, 15))
        self.assertEqual(fixed_expenses.add_period(date(2026, 1, 15), 'quarterly'), date(2026, 4, 15))
        self.assertEqual(fixed_expenses.add_period(date(2026, 1, 1), 'weekly'), date(2026, 1, 8))
        self.assertEqual(fixed_expenses.add_period(date(2026, 1, 1), 'biweekly'), date(2026, 1, 15))
        self.assertIsNone(fixed_expenses.add_period(date(2026, 1, 1), 'one_time'))
        self.assertEqual(fixed_expenses.first_due_date(date(2026, 3, 1), 'one_time'), date(2026, 3, 1))

    def test_month_end_is_sticky(self):
        """Test a month-end due date keeps landing on the month end"""
        self.assertEqual(fixed_expenses.add_period(date(2026, 1, 31), 'monthly'), date(2026, 2, 28))
        self.assertEqual(fixed_expenses.add_period(date(2026, 2, 28), 'monthly'), date(2026, 3, 31))
        self.assertEqual(fixed_expenses.add_period(date(2026, 6, 30), 'semiannual'), date(2026, 12, 31))

    def test_monthly_equivalent(self):
        weekly = FixedExpense(total_amount=Decimal('120.00'), frequency='weekly')
        annual = FixedExpense(total_amount=Decimal('1200.00'), frequency='annual')
        one_time = FixedExpense(total_amount=Decimal('500.00'), frequency='one_time')
        self.assertEqual(fixed_expenses.monthly_equivalent(weekly), Decimal('520.00'))
        self.assertEqual(fixed_expenses.monthly_equivalent(annual), Decimal('100.00'))
        self.assertEqual(fixed_expenses.monthly_equivalent(one_time), Decimal('0.00'))


class FixedExpenseAPITests(TestCase):
    """Test fixed expenses, their partial payments and period rollover"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.account = TestDataFactory.create_bank_account(account_name='Chase Bank', balance=Decimal('5000.00'))
        self.fixed = TestDataFactory.create_fixed_expense(
            name='Yard rent', start_date=date(2026, 1, 10), payment_method='Chase Bank',
        )

    def pay(self, amount, fixed=None, **data):
        fixed = fixed or self.fixed
        payload = {'amount': amount}
        payload.update(data)
        return self.client.post(f'/api/v1/fixed-expenses/{fixed.id}/payments/', payload, format='json')

    def test_create_sets_first_due_date(self):
        response = self.client.post('/api/v1/fixed-expenses/', {
            'name': 'Office rent', 'total_amount': '1500.00', 'frequency': 'monthly', 'category': 'Renta',
            'start_date': '2026-01-31', 'payment_method': 'Chase Bank', 'staff': self.user.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['next_due_date'], '2026-02-28')
        self.assertEqual(response.data['payment_status'], 'unpaid')
        self.assertEqual(response.data['created_by'], self.user.id)
        # staff is only kept for salaries
        self.assertIsNone(response.data['staff'])

    def test_salary_keeps_staff(self):
        response = self.client.post('/api/v1/fixed-expenses/', {
            'name': 'Crew salary', 'total_amount': '800.00', 'frequency': 'biweekly', 'category': 'Salarios',
            'start_date': '2026-01-01', 'staff': self.user.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['staff'], self.user.id)
        self.assertEqual(response.data['next_due_date'], '2026-01-15')

    def test_end_before_start_rejected(self):
        response = self.client.post('/api/v1/fixed-expenses/', {
            'name': 'Insurance', 'total_amount': '300.00', 'start_date': '2026-05-01', 'end_date': '2026-04-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.data)

    def test_field_user_forbidden(self):
        recept = TestDataFactory.create_user(role='recept')
        client = AuthenticatedAPIClient().authenticate_user(recept)
        response = client.get('/api/v1/fixed-expenses/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_partial_payments_close_the_period(self):
        """Test payments accumulate until the period is paid, then the due date moves on"""
        response = self.pay('400.00')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(response.data['bank_transaction_id'])
        self.assertEqual(response.data['fixed_expense']['payment_status'], 'partial')
        self.assertEqual(response.data['fixed_expense']['paid_amount'], '400.00')
        self.assertEqual(response.data['payment']['period_due_date'], '2026-02-10')

        response = self.pay('700.00')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('exceeds', response.data['error'])

        response = self.pay('600.00')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.fixed.refresh_from_db()
        self.assertEqual(self.fixed.next_due_date, date(2026, 3, 10))
        self.assertEqual(self.fixed.paid_amount, Decimal('0.00'))
        self.assertEqual(self.fixed.payment_status, 'unpaid')
        self.assertIsNotNone(self.fixed.paid_date)

        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('4000.00'))
        expenses = Expense.objects.filter(related_fixed_expense=self.fixed)
        self.assertEqual(expenses.count(), 2)
        self.assertTrue(all(e.type_expense == 'Gasto Fijo' and e.payment_status == 'paid' for e in expenses))

        history = self.client.get(f'/api/v1/fixed-expenses/{self.fixed.id}/payments/')
        self.assertEqual(history.data['payment_count'], 2)
        self.assertEqual(history.data['total_paid'], Decimal('1000.00'))

    def test_payment_method_required(self):
        fixed = TestDataFactory.create_fixed_expense(start_date=date(2026, 1, 10))
        response = self.pay('100.00', fixed=fixed)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment method', response.data['error'])

    def test_insufficient_funds_rolls_back(self):
        fixed = TestDataFactory.create_fixed_expense(
            total_amount=Decimal('9000.00'), start_date=date(2026, 1, 10), payment_method='Chase Bank',
        )
        response = self.pay('6000.00', fixed=fixed)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient funds', response.data['error'])
        fixed.refresh_from_db()
        self.assertEqual(fixed.paid_amount, Decimal('0.00'))
        self.assertEqual(FixedExpensePayment.objects.count(), 0)
        self.assertEqual(Expense.objects.count(), 0)

    def test_one_time_is_paid_once(self):
        fixed = TestDataFactory.create_fixed_expense(
            frequency='one_time', start_date=date(2026, 3, 1), payment_method='Zelle',
        )
        response = self.client.post(f'/api/v1/fixed-expenses/{fixed.id}/pay-remaining/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment']['amount'], '1000.00')
        self.assertEqual(response.data['fixed_expense']['payment_status'], 'paid')
        self.assertIsNone(response.data['bank_transaction_id'])

        response = self.client.post(f'/api/v1/fixed-expenses/{fixed.id}/pay-remaining/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_end_date_deactivates(self):
        fixed = TestDataFactory.create_fixed_expense(
            start_date=date(2026, 1, 1), end_date=date(2026, 2, 15), payment_method='Chase Bank',
        )
        self.client.post(f'/api/v1/fixed-expenses/{fixed.id}/pay-remaining/', {}, format='json')
        fixed.refresh_from_db()
        self.assertFalse(fixed.is_active)
        self.assertEqual(fixed.payment_status, 'paid')
        self.assertIsNone(fixed.next_due_date)

    def test_delete_payment_of_open_period(self):
        payment_id = self.pay('300.00').data['payment']['id']
        response = self.client.delete(f'/api/v1/fixed-expense-payments/{payment_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['fixed_expense']['payment_status'], 'unpaid')
        self.assertEqual(response.data['fixed_expense']['paid_amount'], '0.00')
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('5000.00'))
        self.assertFalse(Expense.objects.filter(related_fixed_expense=self.fixed).exists())

    def test_delete_payment_reopens_last_period(self):
        payment_id = self.pay('1000.00').data['payment']['id']
        response = self.client.delete(f'/api/v1/fixed-expense-payments/{payment_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.fixed.refresh_from_db()
        self.assertEqual(self.fixed.next_due_date, date(2026, 2, 10))
        self.assertEqual(self.fixed.payment_status, 'unpaid')

    def test_older_period_payment_cannot_be_deleted(self):
        """Test a closed period stays closed once the next one has payments"""
        first_id = self.pay('1000.00').data['payment']['id']
        self.pay('100.00')
        response = self.client.delete(f'/api/v1/fixed-expense-payments/{first_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(FixedExpensePayment.objects.filter(pk=first_id).exists())

    def test_payment_expenses_are_protected(self):
        self.pay('200.00')
        expense = Expense.objects.get(related_fixed_expense=self.fixed)
        response = self.client.patch(f'/api/v1/expenses/{expense.id}/', {'amount': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/expenses/{expense.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Expense.objects.filter(pk=expense.id).exists())

    def test_delete_with_payments_conflicts(self):
        self.pay('200.00')
        response = self.client.delete(f'/api/v1/fixed-expenses/{self.fixed.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        unused = TestDataFactory.create_fixed_expense()
        response = self.client.delete(f'/api/v1/fixed-expenses/{unused.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(FixedExpense.objects.filter(pk=unused.id).exists())

    def test_schedule_change(self):
        response = self.client.patch(f'/api/v1/fixed-expenses/{self.fixed.id}/', {'frequency': 'quarterly'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['next_due_date'], '2026-04-10')

        self.pay('100.00')
        response = self.client.patch(f'/api/v1/fixed-expenses/{self.fixed.id}/', {'frequency': 'annual'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_total_cannot_drop_below_paid(self):
        self.pay('400.00')
        response = self.client.patch(f'/api/v1/fixed-expenses/{self.fixed.id}/', {'total_amount': '300.00'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/v1/fixed-expenses/{self.fixed.id}/', {'total_amount': '400.00'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['next_due_date'], '2026-03-10')
        self.assertEqual(response.data['payment_status'], 'unpaid')

    def test_toggle(self):
        response = self.client.post(f'/api/v1/fixed-expenses/{self.fixed.id}/toggle/')
        self.assertFalse(response.data['is_active'])
        response = self.client.get('/api/v1/fixed-expenses/?is_active=true')
        self.assertEqual(response.data['count'], 0)

    def test_upcoming_and_summary(self):
        today = timezone.localdate()
        self.fixed.delete()
        TestDataFactory.create_fixed_expense(name='Soon', next_due_date=today + timedelta(days=3))
        TestDataFactory.create_fixed_expense(name='Late', next_due_date=today - timedelta(days=5))
        TestDataFactory.create_fixed_expense(name='Later', next_due_date=today + timedelta(days=40))

        response = self.client.get('/api/v1/fixed-expenses/upcoming/?days=30')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Soon')

        response = self.client.get('/api/v1/fixed-expenses/summary/')
        self.assertEqual(response.data['active_count'], 3)
        self.assertEqual(response.data['monthly_commitment'], Decimal('3000.00'))
        self.assertEqual([f['name'] for f in response.data['due_this_week']], ['Soon'])
        self.assertEqual([f['name'] for f in response.data['overdue']], ['Late'])
        self.assertEqual(response.data['overdue_amount'], Decimal('1000.00'))


class FixedExpenseAccrualTests(TestCase):
    """Test unpaid placeholders created for auto-created fixed expenses"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.due = timezone.localdate() - timedelta(days=2)
        self.fixed = TestDataFactory.create_fixed_expense(
            name='Phone plan', payment_method='Zelle', auto_create_expense=True, next_due_date=self.due,
        )

    def test_command_accrues_due_periods(self):
        out = StringIO()
        call_command('accrue_fixed_expenses', '--dry-run', stdout=out)
        self.assertIn('Would create 1', out.getvalue())
        self.assertFalse(Expense.objects.exists())

        out = StringIO()
        call_command('accrue_fixed_expenses', stdout=out)
        self.assertIn('Created 1', out.getvalue())
        placeholder = Expense.objects.get(related_fixed_expense=self.fixed)
        self.assertEqual(placeholder.payment_status, 'unpaid')
        self.assertEqual(placeholder.amount, Decimal('1000.00'))
        self.assertEqual(placeholder.date, self.due)

        out = StringIO()
        call_command('accrue_fixed_expenses', stdout=out)
        self.assertIn('Created 0', out.getvalue())

    def test_not_yet_due_is_skipped(self):
        TestDataFactory.create_fixed_expense(
            auto_create_expense=True, next_due_date=timezone.localdate() + timedelta(days=5),
        )
        self.assertEqual(fixed_expenses.accrue_due_expenses(), 1)

    def test_payments_shrink_the_placeholder(self):
        fixed_expenses.accrue_due_expenses()
        fixed_expenses.register_payment(self.fixed, Decimal('400.00'), user=self.user)
        placeholder = Expense.objects.get(related_fixed_expense=self.fixed, payment_status='unpaid')
        self.assertEqual(placeholder.amount, Decimal('600.00'))

        self.fixed.refresh_from_db()
        fixed_expenses.register_payment(self.fixed, Decimal('600.00'), user=self.user)
        self.assertFalse(Expense.objects.filter(related_fixed_expense=self.fixed, payment_status='unpaid').exists())
        self.assertEqual(Expense.objects.filter(related_fixed_expense=self.fixed, payment_status='paid').count(), 2)

    def test_total_change_resizes_placeholder(self):
        fixed_expenses.accrue_due_expenses()
        fixed_expenses.update_fixed_expense(self.fixed, {'total_amount': Decimal('1200.00')})
        placeholder = Expense.objects.get(related_fixed_expense=self.fixed, payment_status='unpaid')
        self.assertEqual(placeholder.amount, Decimal('1200.00'))

    def test_placeholder_cannot_be_edited(self):
        fixed_expenses.accrue_due_expenses()
        placeholder = Expense.objects.get(related_fixed_expense=self.fixed)
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.patch(f'/api/v1/expenses/{placeholder.id}/', {'payment_status': 'paid'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
