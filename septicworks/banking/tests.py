"""
Test suite for Banking module
Tests: accounts, deposits, withdrawals, transfers, reversals, statements, balance repair
"""
from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from septicworks.banking import services
from septicworks.banking.models import BankAccount, BankTransaction
from septicworks.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from septicworks.finance.models import Income


class BankingServiceTests(TestCase):
    """Test ledger operations directly"""

    def setUp(self):
        self.checking = TestDataFactory.create_bank_account(account_name='Cap Trabajos Septic')
        self.savings = TestDataFactory.create_bank_account(account_name='Savings', account_type='savings')

    def test_deposit_records_running_balance(self):
        first = services.deposit(self.checking, '100.00', category='manual')
        second = services.deposit(self.checking, Decimal('50.25'), category='manual')
        self.assertEqual(first.balance_after, Decimal('100.00'))
        self.assertEqual(second.balance_after, Decimal('150.25'))
        self.checking.refresh_from_db()
        self.assertEqual(self.checking.current_balance, Decimal('150.25'))

    def test_income_deposit_creates_income(self):
        """Test an income-category deposit without income row books one"""
        bank_transaction = services.deposit(self.checking, '75.00', category='income', description='Walk-in')
        self.assertIsNotNone(bank_transaction.related_income)
        self.assertEqual(Income.objects.get().payment_method, 'Cap Trabajos Septic')

    def test_invalid_amounts(self):
        for value in ('0', '-5', 'abc', None):
            with self.assertRaises(services.BankingError):
                services.deposit(self.checking, value)

    def test_withdraw_insufficient_funds(self):
        with self.assertRaises(services.InsufficientFundsError):
            services.withdraw(self.checking, '1.00')
        self.assertFalse(BankTransaction.objects.exists())

    def test_inactive_account(self):
        self.checking.is_active = False
        self.checking.save()
        with self.assertRaises(services.InactiveAccountError):
            services.deposit(self.checking, '10.00')

    def test_transfer_links_both_sides(self):
        """Test a transfer moves money and pairs the two transactions"""
        services.deposit(self.checking, '300.00')
        transfer_out, transfer_in = services.transfer(self.checking, self.savings, '120.00')
        transfer_out.refresh_from_db()
        self.assertEqual(transfer_out.related_transfer, transfer_in)
        self.assertEqual(transfer_in.related_transfer, transfer_out)
        self.checking.refresh_from_db()
        self.savings.refresh_from_db()
        self.assertEqual(self.checking.current_balance, Decimal('180.00'))
        self.assertEqual(self.savings.current_balance, Decimal('120.00'))

    def test_transfer_to_same_account(self):
        with self.assertRaises(services.BankingError):
            services.transfer(self.checking, self.checking, '1.00')

    def test_deleting_transfer_reverses_both(self):
        services.deposit(self.checking, '300.00')
        transfer_out, _ = services.transfer(self.checking, self.savings, '120.00')
        summary = services.delete_transaction(transfer_out)
        self.assertIsNotNone(summary['paired_transaction'])
        self.checking.refresh_from_db()
        self.savings.refresh_from_db()
        self.assertEqual(self.checking.current_balance, Decimal('300.00'))
        self.assertEqual(self.savings.current_balance, Decimal('0.00'))
        self.assertEqual(BankTransaction.objects.count(), 1)

    def test_reversal_cannot_make_balance_negative(self):
        deposit = services.deposit(self.checking, '100.00')
        services.withdraw(self.checking, '80.00')
        with self.assertRaises(services.BankingError):
            services.delete_transaction(deposit)

    def test_credit_card_payment_requires_card(self):
        services.deposit(self.checking, '100.00')
        with self.assertRaises(services.BankingError):
            services.create_credit_card_payment(self.checking, self.savings, '10.00')

    def test_payment_method_mapping(self):
        cash = TestDataFactory.create_bank_account(account_name=services.CASH_ACCOUNT_NAME, account_type='cash')
        self.assertEqual(services.get_account_for_payment_method('Efectivo'), cash)
        self.assertIsNone(services.get_account_for_payment_method('Zelle'))
        self.assertIsNone(services.get_account_for_payment_method('Chase Bank'))


class BankAccountAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='finance')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_with_opening_balance(self):
        """Test the opening balance is booked as a transaction"""
        response = self.client.post('/api/v1/bank-accounts/', {
            'account_name': 'Chase Bank', 'account_type': 'checking', 'initial_balance': '1000.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['current_balance']), Decimal('1000.00'))
        account = BankAccount.objects.get(pk=response.data['id'])
        self.assertEqual(account.transactions.count(), 1)

    def test_duplicate_name(self):
        TestDataFactory.create_bank_account(account_name='Chase Bank')
        response = self.client.post('/api/v1/bank-accounts/', {'account_name': 'chase bank'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_balance_is_read_only(self):
        account = TestDataFactory.create_bank_account()
        self.client.patch(f'/api/v1/bank-accounts/{account.id}/', {'current_balance': '999.00'}, format='json')
        account.refresh_from_db()
        self.assertEqual(account.current_balance, Decimal('0.00'))

    def test_delete_with_transactions_deactivates(self):
        account = TestDataFactory.create_bank_account()
        services.deposit(account, '10.00')
        response = self.client.delete(f'/api/v1/bank-accounts/{account.id}/')
        self.assertTrue(response.data['deactivated'])
        response = self.client.get('/api/v1/bank-accounts/')
        self.assertEqual(response.data['count'], 0)

    def test_office_user_forbidden(self):
        office = TestDataFactory.create_user(role='recept')
        client = AuthenticatedAPIClient().authenticate_user(office)
        response = client.get('/api/v1/bank-accounts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_statement_opening_and_closing(self):
        account = TestDataFactory.create_bank_account()
        services.deposit(account, '100.00', date=date(2026, 1, 10))
        services.deposit(account, '50.00', date=date(2026, 2, 5))
        services.withdraw(account, '30.00', date=date(2026, 2, 20))
        response = self.client.get(f'/api/v1/bank-accounts/{account.id}/statement/'
                                   '?date_from=2026-02-01&date_to=2026-02-28')
        self.assertEqual(response.data['opening_balance'], Decimal('100.00'))
        self.assertEqual(response.data['closing_balance'], Decimal('120.00'))
        self.assertEqual(response.data['total_in'], Decimal('50.00'))
        self.assertEqual(response.data['total_out'], Decimal('30.00'))
        self.assertEqual(len(response.data['transactions']), 2)


class BankTransactionAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.checking = TestDataFactory.create_bank_account(account_name='Chase Bank')
        self.card = TestDataFactory.create_bank_account(account_name='AMEX', account_type='credit_card')

    def test_deposit_and_withdrawal(self):
        response = self.client.post('/api/v1/bank-transactions/deposit/', {
            'bank_account': self.checking.id, 'amount': '200.00', 'category': 'manual',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['new_balance'], Decimal('200.00'))

        response = self.client.post('/api/v1/bank-transactions/withdrawal/', {
            'bank_account': self.checking.id, 'amount': '500.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_credit_card_payment(self):
        """Test paying down a card moves its balance toward zero"""
        services.deposit(self.checking, '500.00')
        services.withdraw(self.card, '200.00')
        response = self.client.post('/api/v1/bank-transactions/credit-card-payment/', {
            'from_account': self.checking.id, 'to_account': self.card.id, 'amount': '150.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.card.refresh_from_db()
        self.assertEqual(self.card.current_balance, Decimal('-50.00'))
        self.assertEqual(response.data['transfer_out']['category'], 'credit_card_payment')

    def test_delete_reverses(self):
        bank_transaction = services.deposit(self.checking, '40.00')
        response = self.client.delete(f'/api/v1/bank-transactions/{bank_transaction.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.checking.refresh_from_db()
        self.assertEqual(self.checking.current_balance, Decimal('0.00'))


class RepairBalancesCommandTests(TestCase):
    def setUp(self):
        self.account = TestDataFactory.create_bank_account()
        services.deposit(self.account, '100.00')
        services.withdraw(self.account, '25.00')
        BankAccount.objects.filter(pk=self.account.pk).update(current_balance=Decimal('999.00'))

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command('repair_bank_balances', '--dry-run', stdout=out)
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('999.00'))
        self.assertIn('1 account(s) would change', out.getvalue())

    def test_repair(self):
        out = StringIO()
        call_command('repair_bank_balances', stdout=out)
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('75.00'))
