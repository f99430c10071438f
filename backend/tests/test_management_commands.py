# tests/test_management_commands.py
"""
Tests for setup_default_accounts and verify_ledger.
"""

from datetime import date
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from accounting.models import Account, VoucherLine, VoucherSequence
from accounting.registry import DEFAULT_CHART
from accounting.write_barrier import ledger_writes_allowed


def run(*args):
    out = StringIO()
    call_command(*args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestSetupDefaultAccountsCommand:

    def test_seeds_chart(self, tenant):
        output = run("setup_default_accounts", tenant.slug)

        assert Account.objects.filter(tenant=tenant).count() == len(DEFAULT_CHART)
        assert f"Created {len(DEFAULT_CHART)} default accounts" in output

    def test_second_run_fails(self, tenant):
        run("setup_default_accounts", tenant.slug)
        with pytest.raises(CommandError):
            run("setup_default_accounts", tenant.slug)

    def test_unknown_tenant(self, db):
        with pytest.raises(CommandError, match="Tenant not found"):
            run("setup_default_accounts", "nowhere")


@pytest.mark.django_db
class TestVerifyLedgerCommand:

    def test_clean_ledger_passes(self, tenant, second_tenant, post, cash_account, tuition_account):
        post("CRV", date(2024, 1, 5), (cash_account, 100, 0), (tuition_account, 0, 100))
        post("CRV", date(2024, 1, 6), (cash_account, 200, 0), (tuition_account, 0, 200))

        output = run("verify_ledger", "--as-of", "2024-01-31")

        assert "Verifying tenant: green-valley" in output
        assert "Verifying tenant: river-side" in output
        assert "All ledgers verified." in output

    def test_unbalanced_voucher_reported(self, tenant, cash_account, tuition_received):
        with ledger_writes_allowed():
            VoucherLine.objects.create(
                voucher=tuition_received,
                tenant=tenant,
                line_no=3,
                account=cash_account,
                debit=100,
            )

        out = StringIO()
        with pytest.raises(CommandError, match="green-valley"):
            call_command("verify_ledger", "--tenant", tenant.slug, stdout=out)

        output = out.getvalue()
        assert "Voucher JV-000001 unbalanced" in output
        assert "Trial balance" in output

    def test_counter_drift_reported(self, tenant, tuition_received):
        with ledger_writes_allowed():
            VoucherSequence.objects.filter(tenant=tenant, voucher_type="JV").update(next_value=5)

        out = StringIO()
        with pytest.raises(CommandError):
            call_command("verify_ledger", "--tenant", tenant.slug, stdout=out)
        assert "JV counter at 5, expected 2" in out.getvalue()

    def test_unknown_tenant(self, db):
        with pytest.raises(CommandError, match="Tenant not found"):
            run("verify_ledger", "--tenant", "nowhere")
