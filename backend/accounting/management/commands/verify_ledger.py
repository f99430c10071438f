# accounting/management/commands/verify_ledger.py
"""
Verify ledger integrity.

Checks, per tenant:
- every voucher balances (sum of debits == sum of credits)
- voucher numbers per type are 1..n with no gaps, and the counter sits at n+1
- the trial balance balances
- the balance sheet balances under the configured earnings policy

Usage:
    # All active tenants
    python manage.py verify_ledger

    # One tenant, balance sheet as of a date
    python manage.py verify_ledger --tenant green-valley --as-of 2025-06-30
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Max, Count, Sum
from django.utils import timezone

from accounting.exceptions import LedgerIntegrityError
from accounting.models import Voucher, VoucherLine, VoucherSequence
from accounting.reports import balance_sheet, trial_balance
from tenant.context import tenant_context
from tenant.models import Tenant


class Command(BaseCommand):
    help = "Verify voucher balance, numbering and report totals"

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant",
            type=str,
            help="Tenant slug to verify (default: all active tenants)",
        )
        parser.add_argument(
            "--as-of",
            type=date.fromisoformat,
            help="Balance sheet date (default: today)",
        )

    def handle(self, *args, **options):
        tenants = Tenant.objects.filter(is_active=True)
        if options.get("tenant"):
            tenants = tenants.filter(slug=options["tenant"])
            if not tenants.exists():
                raise CommandError(f"Tenant not found or inactive: {options['tenant']}")

        as_of = options.get("as_of") or timezone.localdate()
        failed = []

        for tenant in tenants:
            self.stdout.write(f"\nVerifying tenant: {tenant.slug}")
            with tenant_context(tenant):
                problems = self._verify_tenant(tenant, as_of)
            if problems:
                failed.append(tenant.slug)
                for problem in problems:
                    self.stdout.write(self.style.ERROR(f"  {problem}"))
            else:
                self.stdout.write(self.style.SUCCESS("  OK"))

        if failed:
            raise CommandError(f"Ledger verification failed for: {', '.join(failed)}")
        self.stdout.write(self.style.SUCCESS("\nAll ledgers verified."))

    def _verify_tenant(self, tenant, as_of) -> list[str]:
        problems = []

        unbalanced = (
            VoucherLine.objects.filter(tenant=tenant)
            .order_by()
            .values("voucher__voucher_no")
            .annotate(debit=Sum("debit"), credit=Sum("credit"))
        )
        for row in unbalanced:
            if row["debit"] != row["credit"]:
                problems.append(
                    f"Voucher {row['voucher__voucher_no']} unbalanced: "
                    f"debit {row['debit']} != credit {row['credit']}"
                )

        numbering = (
            Voucher.objects.filter(tenant=tenant)
            .order_by()
            .values("voucher_type")
            .annotate(count=Count("id"), highest=Max("sequence_number"))
        )
        counters = dict(
            VoucherSequence.objects.filter(tenant=tenant).values_list("voucher_type", "next_value")
        )
        for row in numbering:
            voucher_type = row["voucher_type"]
            if row["count"] != row["highest"]:
                problems.append(
                    f"{voucher_type} numbering has gaps: {row['count']} vouchers, highest number {row['highest']}"
                )
            if counters.get(voucher_type) != row["highest"] + 1:
                problems.append(
                    f"{voucher_type} counter at {counters.get(voucher_type)}, expected {row['highest'] + 1}"
                )

        for label, check in (
            ("Trial balance", lambda: trial_balance(tenant)),
            ("Balance sheet", lambda: balance_sheet(tenant, as_of)),
        ):
            try:
                check()
            except LedgerIntegrityError as e:
                problems.append(f"{label}: {e} {e.details}")

        return problems
