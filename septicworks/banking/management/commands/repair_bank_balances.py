from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from septicworks.banking.models import BankAccount
from septicworks.banking.services import recalculate_balance
from septicworks.core.cache_signals import suspend_cache_signals
from septicworks.core.cache_utils import invalidate_finance_caches


class Command(BaseCommand):
    help = 'Recomputes bank account balances and running balances from their transactions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Perform a dry run without saving changes',
        )
        parser.add_argument(
            '--account',
            type=int,
            help='Only repair the account with this id',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        accounts = BankAccount.objects.all().order_by('id')
        if options.get('account'):
            accounts = accounts.filter(pk=options['account'])
        self.stdout.write(f"Starting balance repair for {accounts.count()} accounts...")

        repaired = 0
        with suspend_cache_signals(), transaction.atomic():
            for account in accounts.select_for_update():
                self.stdout.write(f"\nProcessing account: {account.account_name} (ID: {account.id})")

                running = Decimal("0.00")
                fixed_rows = 0
                for bank_transaction in account.transactions.order_by('date', 'id'):
                    running += bank_transaction.signed_amount
                    if bank_transaction.balance_after != running:
                        fixed_rows += 1
                        if not dry_run:
                            bank_transaction.balance_after = running
                            bank_transaction.save(update_fields=['balance_after'])
                if fixed_rows:
                    self.stdout.write(self.style.NOTICE(f"  - Running balance corrected on {fixed_rows} transaction(s)"))

                new_balance = recalculate_balance(account)
                if account.current_balance != new_balance:
                    repaired += 1
                    self.stdout.write(self.style.SUCCESS(f"  - Balance Update: {account.current_balance} -> {new_balance}"))
                    if not dry_run:
                        account.current_balance = new_balance
                        account.save(update_fields=['current_balance', 'updated_at'])
                else:
                    self.stdout.write(f"  - Balance Correct: {new_balance}")

            if dry_run:
                self.stdout.write(self.style.WARNING(f"\nDry run complete. {repaired} account(s) would change. Rolling back."))
                transaction.set_rollback(True)
            else:
                self.stdout.write(self.style.SUCCESS(f"\nBalance repair complete. {repaired} account(s) updated."))

        if not dry_run:
            invalidate_finance_caches()
