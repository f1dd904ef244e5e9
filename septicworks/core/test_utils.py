"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from septicworks.banking.models import BankAccount
from septicworks.budgets.models import Budget, BudgetLineItem
from septicworks.finance.fixed_expenses import first_due_date
from septicworks.finance.models import Income, Expense, FixedExpense
from septicworks.maintenance.models import MaintenanceVisit
from septicworks.payables.models import SupplierInvoice, SupplierInvoiceItem
from septicworks.works.models import Permit, Work
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='admin', is_staff=False,
                    is_superuser=False, **extra):
        """Create a test staff member (office admin by default)"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser,
            **extra
        )

    @staticmethod
    def create_permit(permit_number=None, property_address=None, **extra):
        """Create a test permit"""
        suffix = TestDataFactory.random_string(6)
        defaults = {
            'applicant_name': f'Applicant {suffix}',
            'applicant_email': f'applicant_{suffix.lower()}@test.com',
            'system_type': 'atu',
            'gpd_capacity': '300',
        }
        defaults.update(extra)
        return Permit.objects.create(
            permit_number=permit_number or f'PRM-{suffix.upper()}',
            property_address=property_address or f'{random.randint(100, 9999)} Test St {suffix}',
            **defaults
        )

    @staticmethod
    def create_budget(permit=None, items=None, status='created', **extra):
        """Create a budget with line items; totals are recalculated"""
        if permit is None:
            permit = TestDataFactory.create_permit()
        budget = Budget.objects.create(
            permit=permit,
            applicant_name=permit.applicant_name,
            applicant_email=permit.applicant_email,
            property_address=permit.property_address,
            status=status,
            **extra
        )
        if items is None:
            items = [{'name': 'ATU system', 'category': 'System', 'quantity': Decimal('1'),
                      'unit_price': Decimal('10000.00')}]
        for item in items:
            BudgetLineItem.objects.create(budget=budget, **item)
        budget.recalculate_totals()
        return budget

    @staticmethod
    def create_work(permit=None, budget=None, status='pending', **extra):
        """Create a test work"""
        if permit is None:
            permit = budget.permit if budget is not None and budget.permit_id else TestDataFactory.create_permit()
        return Work.objects.create(
            property_address=permit.property_address,
            permit=permit,
            budget=budget,
            status=status,
            **extra
        )

    @staticmethod
    def create_bank_account(account_name=None, account_type='checking', balance=None):
        """Create a bank account; the balance is set directly without a ledger entry"""
        return BankAccount.objects.create(
            account_name=account_name or f'Account {TestDataFactory.random_string(6)}',
            account_type=account_type,
            current_balance=balance if balance is not None else Decimal('0.00'),
        )

    @staticmethod
    def create_income(work=None, amount=None, payment_method='', **extra):
        """Create an income row (no bank movement)"""
        return Income.objects.create(
            work=work,
            amount=amount if amount is not None else Decimal('500.00'),
            date=extra.pop('date', timezone.localdate()),
            payment_method=payment_method,
            **extra
        )

    @staticmethod
    def create_expense(work=None, amount=None, payment_status='unpaid', payment_method='', **extra):
        """Create an expense row (no bank movement)"""
        return Expense.objects.create(
            work=work,
            amount=amount if amount is not None else Decimal('200.00'),
            date=extra.pop('date', timezone.localdate()),
            payment_status=payment_status,
            payment_method=payment_method,
            **extra
        )

    @staticmethod
    def create_supplier_invoice(vendor=None, invoice_number=None, amounts=None, work=None, **extra):
        """Create a supplier invoice whose lines have auto-created expenses"""
        invoice = SupplierInvoice.objects.create(
            vendor=vendor or f'Vendor {TestDataFactory.random_string(5)}',
            invoice_number=invoice_number or f'INV-{TestDataFactory.random_string(6).upper()}',
            **extra
        )
        for amount in amounts or [Decimal('300.00')]:
            expense = Expense.objects.create(
                work=work, amount=amount, date=invoice.issue_date, type_expense='Materiales',
                vendor=invoice.vendor, payment_status='paid_via_invoice',
            )
            SupplierInvoiceItem.objects.create(
                supplier_invoice=invoice, work=work, description='Materials', amount=amount,
                related_expense=expense, expense_auto_created=True,
            )
        invoice.recalculate_total()
        return invoice

    @staticmethod
    def create_visit(work=None, visit_number=1, scheduled_date=None, status='pending_scheduling', **extra):
        """Create a maintenance visit"""
        if work is None:
            work = TestDataFactory.create_work(status='maintenance')
        return MaintenanceVisit.objects.create(
            work=work,
            visit_number=visit_number,
            scheduled_date=scheduled_date or timezone.localdate(),
            status=status,
            **extra
        )

    @staticmethod
    def create_fixed_expense(name=None, total_amount=None, frequency='monthly', start_date=None, **extra):
        """Create a fixed expense with its first due date set"""
        start_date = start_date or timezone.localdate()
        return FixedExpense.objects.create(
            name=name or f'Fixed {TestDataFactory.random_string(5)}',
            total_amount=total_amount if total_amount is not None else Decimal('1000.00'),
            frequency=frequency,
            start_date=start_date,
            next_due_date=extra.pop('next_due_date', first_due_date(start_date, frequency)),
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
