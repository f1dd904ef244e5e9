"""
Bank ledger operations

Every movement locks the affected account rows, updates current_balance and
records a BankTransaction carrying the resulting balance. Incomes, expenses
and supplier payments reach the ledger through the payment-method helpers at
the bottom of this module.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from septicworks.core.utils import create_audit_log
from septicworks.finance import constants
from .models import BankAccount, BankTransaction

logger = logging.getLogger(__name__)

MIN_AMOUNT = Decimal('0.01')
CASH_ACCOUNT_NAME = 'Caja Chica'

# Payment methods that move money in one of the company's own accounts
PAYMENT_METHOD_TO_ACCOUNT = {
    constants.CAP_TRABAJOS: constants.CAP_TRABAJOS,
    constants.CAP_PROYECTOS: constants.CAP_PROYECTOS,
    constants.CHASE_BANK: constants.CHASE_BANK,
    constants.AMEX: constants.AMEX,
    constants.CHASE_CREDIT: constants.CHASE_CREDIT,
    constants.EFECTIVO: CASH_ACCOUNT_NAME,
}


class BankingError(Exception):
    """A ledger operation was rejected"""


class InactiveAccountError(BankingError):
    pass


class InsufficientFundsError(BankingError):
    pass


def is_bank_payment_method(payment_method):
    return payment_method in PAYMENT_METHOD_TO_ACCOUNT


def get_account_name(payment_method):
    return PAYMENT_METHOD_TO_ACCOUNT.get(payment_method)


def get_payment_method_for_account(account):
    for method, account_name in PAYMENT_METHOD_TO_ACCOUNT.items():
        if account_name == account.account_name:
            return method
    return constants.OTRO


def to_amount(value):
    """Parse and validate a money amount (>= 0.01), rounded to cents"""
    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, TypeError, ValueError):
        raise BankingError(f"Invalid amount: {value}")
    if amount < MIN_AMOUNT:
        raise BankingError('Amount must be at least 0.01')
    return amount


def _lock(account):
    pk = account.pk if isinstance(account, BankAccount) else account
    return BankAccount.objects.select_for_update().get(pk=pk)


def _check_active(account):
    if not account.is_active:
        raise InactiveAccountError(f"Bank account {account.account_name} is not active")


def _check_funds(account, amount):
    if account.allows_negative_balance:
        return
    if account.current_balance < amount:
        raise InsufficientFundsError(
            f"Insufficient funds in {account.account_name}. "
            f"Current balance: ${account.current_balance:,.2f}, requested: ${amount:,.2f}"
        )


def deposit(account, amount, date=None, description='', category='manual', user=None,
            related_income=None, notes='', reference_number='', work=None, auto_income=True):
    """
    Add money to an account.

    With category 'income' and no related income, an Income row is created so
    the deposit shows up in the work/finance reports.
    """
    amount = to_amount(amount)
    date = date or timezone.localdate()

    with transaction.atomic():
        account = _lock(account)
        _check_active(account)

        if category == 'income' and related_income is None and auto_income:
            from septicworks.finance.models import Income
            related_income = Income.objects.create(
                work=work,
                amount=amount,
                date=date,
                type_income='Comprobante Ingreso',
                payment_method=get_payment_method_for_account(account),
                notes=notes or description,
                staff=user if user and user.is_authenticated else None,
            )

        account.current_balance += amount
        account.save(update_fields=['current_balance', 'updated_at'])

        bank_transaction = BankTransaction.objects.create(
            bank_account=account,
            transaction_type='deposit',
            amount=amount,
            date=date,
            description=description or 'Deposit',
            category=category,
            balance_after=account.current_balance,
            related_income=related_income,
            reference_number=reference_number,
            notes=notes,
            created_by=user if user and user.is_authenticated else None,
        )

    logger.info(f"Deposit {account.account_name} +${amount} -> balance ${account.current_balance}")
    create_audit_log(user=user, action='bank_deposit', model_name='BankTransaction',
                     object_id=bank_transaction.pk, object_name=account.account_name,
                     changes={'amount': str(amount), 'balance_after': str(account.current_balance)})
    return bank_transaction


def withdraw(account, amount, date=None, description='', category='manual', user=None,
             related_expense=None, related_supplier_invoice=None, notes='', reference_number='',
             skip_balance_check=False):
    """Take money from an account; non-credit accounts cannot go below zero"""
    amount = to_amount(amount)
    date = date or timezone.localdate()

    with transaction.atomic():
        account = _lock(account)
        _check_active(account)
        if not skip_balance_check:
            _check_funds(account, amount)

        account.current_balance -= amount
        account.save(update_fields=['current_balance', 'updated_at'])

        bank_transaction = BankTransaction.objects.create(
            bank_account=account,
            transaction_type='withdrawal',
            amount=amount,
            date=date,
            description=description or 'Withdrawal',
            category=category,
            balance_after=account.current_balance,
            related_expense=related_expense,
            related_supplier_invoice=related_supplier_invoice,
            reference_number=reference_number,
            notes=notes,
            created_by=user if user and user.is_authenticated else None,
        )

    logger.info(f"Withdrawal {account.account_name} -${amount} -> balance ${account.current_balance}")
    create_audit_log(user=user, action='bank_withdrawal', model_name='BankTransaction',
                     object_id=bank_transaction.pk, object_name=account.account_name,
                     changes={'amount': str(amount), 'balance_after': str(account.current_balance)})
    return bank_transaction


def transfer(from_account, to_account, amount, date=None, description='', user=None, notes='',
             category='transfer'):
    """
    Move money between two accounts.

    Returns (transfer_out, transfer_in); each references the other through
    related_transfer.
    """
    amount = to_amount(amount)
    date = date or timezone.localdate()

    from_pk = from_account.pk if isinstance(from_account, BankAccount) else from_account
    to_pk = to_account.pk if isinstance(to_account, BankAccount) else to_account
    if from_pk == to_pk:
        raise BankingError('Source and destination accounts must be different')

    with transaction.atomic():
        # Lock in id order so concurrent opposite transfers cannot deadlock
        locked = {a.pk: a for a in BankAccount.objects.select_for_update().filter(pk__in=[from_pk, to_pk]).order_by('pk')}
        if from_pk not in locked or to_pk not in locked:
            raise BankingError('Bank account not found')
        source, destination = locked[from_pk], locked[to_pk]
        _check_active(source)
        _check_active(destination)
        _check_funds(source, amount)

        created_by = user if user and user.is_authenticated else None
        description = description or f"Transfer {source.account_name} -> {destination.account_name}"

        source.current_balance -= amount
        source.save(update_fields=['current_balance', 'updated_at'])
        transfer_out = BankTransaction.objects.create(
            bank_account=source,
            transaction_type='transfer_out',
            amount=amount,
            date=date,
            description=description,
            category=category,
            balance_after=source.current_balance,
            transfer_to_account=destination,
            notes=notes,
            created_by=created_by,
        )

        destination.current_balance += amount
        destination.save(update_fields=['current_balance', 'updated_at'])
        transfer_in = BankTransaction.objects.create(
            bank_account=destination,
            transaction_type='transfer_in',
            amount=amount,
            date=date,
            description=description,
            category=category,
            balance_after=destination.current_balance,
            transfer_from_account=source,
            related_transfer=transfer_out,
            notes=notes,
            created_by=created_by,
        )
        transfer_out.related_transfer = transfer_in
        transfer_out.save(update_fields=['related_transfer'])

    logger.info(f"Transfer ${amount} {source.account_name} -> {destination.account_name}")
    create_audit_log(user=user, action='bank_transfer', model_name='BankTransaction',
                     object_id=transfer_out.pk, object_name=source.account_name,
                     object_reference=destination.account_name, changes={'amount': str(amount)})
    return transfer_out, transfer_in


def _reversed_balance(account, bank_transaction):
    new_balance = account.current_balance - bank_transaction.signed_amount
    if new_balance < 0 and not account.allows_negative_balance:
        raise BankingError(
            f"Cannot delete: balance of {account.account_name} would become negative (${new_balance:,.2f})"
        )
    return new_balance


def delete_transaction(bank_transaction, user=None):
    """
    Delete a transaction and undo its effect on the balance.

    A transfer takes its counterpart with it.
    """
    with transaction.atomic():
        bank_transaction = BankTransaction.objects.select_for_update().get(pk=bank_transaction.pk)
        pair = bank_transaction.related_transfer
        if pair is None:
            pair = BankTransaction.objects.filter(related_transfer=bank_transaction).first()

        account_ids = sorted({bank_transaction.bank_account_id} | ({pair.bank_account_id} if pair else set()))
        accounts = {a.pk: a for a in BankAccount.objects.select_for_update().filter(pk__in=account_ids).order_by('pk')}

        to_reverse = [bank_transaction] + ([pair] if pair else [])
        for item in to_reverse:
            account = accounts[item.bank_account_id]
            account.current_balance = _reversed_balance(account, item)

        for account in accounts.values():
            account.save(update_fields=['current_balance', 'updated_at'])

        summary = {
            'amount': str(bank_transaction.amount),
            'transaction_type': bank_transaction.transaction_type,
            'account': bank_transaction.bank_account.account_name,
            'paired_transaction': pair.pk if pair else None,
        }
        transaction_id = bank_transaction.pk
        # Break the one-to-one links before deleting either half
        BankTransaction.objects.filter(pk__in=[t.pk for t in to_reverse]).update(related_transfer=None)
        BankTransaction.objects.filter(pk__in=[t.pk for t in to_reverse]).delete()

    logger.info(f"Reversed bank transaction {transaction_id}: {summary}")
    create_audit_log(user=user, action='bank_reversal', model_name='BankTransaction',
                     object_id=transaction_id, object_name=summary['account'], changes=summary)
    return summary


def reverse_transactions_for_expense(expense, user=None):
    for bank_transaction in list(BankTransaction.objects.filter(related_expense=expense)):
        delete_transaction(bank_transaction, user=user)


def reverse_transactions_for_income(income, user=None):
    for bank_transaction in list(BankTransaction.objects.filter(related_income=income)):
        delete_transaction(bank_transaction, user=user)


def get_account_for_payment_method(payment_method):
    """Active account a payment method maps to, or None"""
    account_name = get_account_name(payment_method)
    if not account_name:
        return None
    account = BankAccount.objects.filter(account_name=account_name, is_active=True).first()
    if account is None:
        logger.warning(f"Payment method {payment_method} maps to account {account_name}, which does not exist or is inactive")
    return account


def create_deposit_for_income(income, user=None):
    """Deposit an income into the account its payment method maps to"""
    account = get_account_for_payment_method(income.payment_method)
    if account is None:
        return None
    description = f"{income.get_type_income_display()}"
    if income.work_id:
        description += f" - {income.work.property_address}"
    return deposit(
        account, income.amount, date=income.date, description=description, category='income',
        user=user, related_income=income, notes=income.notes,
    )


def create_withdrawal_for_expense(expense, user=None, skip_balance_check=False):
    """Withdraw an expense from the account its payment method maps to"""
    account = get_account_for_payment_method(expense.payment_method)
    if account is None:
        return None
    description = f"{expense.get_type_expense_display()}"
    if expense.vendor:
        description += f" - {expense.vendor}"
    elif expense.work_id:
        description += f" - {expense.work.property_address}"
    return withdraw(
        account, expense.amount, date=expense.date, description=description, category='expense',
        user=user, related_expense=expense, notes=expense.notes, skip_balance_check=skip_balance_check,
    )


def create_withdrawal_for_supplier_payment(supplier_invoice, amount, payment_method, date=None, user=None):
    account = get_account_for_payment_method(payment_method)
    if account is None:
        return None
    return withdraw(
        account, amount, date=date,
        description=f"Supplier invoice {supplier_invoice.invoice_number} - {supplier_invoice.vendor}",
        category='expense', user=user, related_supplier_invoice=supplier_invoice,
    )


def create_credit_card_payment(bank_account, card_account, amount, date=None, user=None, notes=''):
    """Pay down a credit card from a bank account"""
    card = card_account if isinstance(card_account, BankAccount) else BankAccount.objects.get(pk=card_account)
    if card.account_type != 'credit_card':
        raise BankingError(f"{card.account_name} is not a credit card account")
    return transfer(
        bank_account, card, amount, date=date, user=user, notes=notes,
        description=f"Credit card payment - {card.account_name}", category='credit_card_payment',
    )


def recalculate_balance(account):
    """Balance implied by the account's transactions"""
    total = Decimal('0.00')
    for bank_transaction in account.transactions.all().only('transaction_type', 'amount'):
        total += bank_transaction.signed_amount
    return total
