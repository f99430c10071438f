# tests/test_reports.py
"""
Tests for the aggregation engine: trial balance, balance sheet, P&L.
"""

from datetime import date

import pytest

from accounting.exceptions import InvalidDateRange, LedgerIntegrityError
from accounting.models import Account, VoucherLine
from accounting.registry import create_account, setup_defaults
from accounting.reports import balance_sheet, profit_and_loss, trial_balance
from accounting.vouchers import void_voucher
from accounting.write_barrier import ledger_writes_allowed


@pytest.fixture
def school_books(post, cash_account, payable_account, capital_account, tuition_account, salary_account):
    """
    January books:
    - Capital 10,000 into cash
    - Tuition 5,000 received in cash
    - Salary 2,000 paid in cash, 500 accrued
    """
    post("JV", date(2024, 1, 1), (cash_account, 10000, 0), (capital_account, 0, 10000))
    post("CRV", date(2024, 1, 5), (cash_account, 5000, 0), (tuition_account, 0, 5000))
    post("CPV", date(2024, 1, 25), (salary_account, 2000, 0), (cash_account, 0, 2000))
    post("JV", date(2024, 1, 31), (salary_account, 500, 0), (payable_account, 0, 500))


def _corrupt(voucher, account, debit):
    """Append an unbalanced line straight to the table."""
    with ledger_writes_allowed():
        VoucherLine.objects.create(
            voucher=voucher,
            tenant=voucher.tenant,
            line_no=99,
            account=account,
            debit=debit,
        )


# =============================================================================
# Trial Balance
# =============================================================================

@pytest.mark.django_db
class TestTrialBalance:

    def test_single_receipt_scenario(self, tenant, tuition_received):
        tb = trial_balance(tenant)

        rows = {r.code: (r.debit, r.credit) for r in tb.rows}
        assert rows == {"1000": (5000, 0), "4000": (0, 5000)}
        assert tb.total_debit == tb.total_credit == 5000
        assert tb.is_balanced

    def test_columns_always_equal(self, tenant, school_books):
        tb = trial_balance(tenant)
        assert tb.total_debit == tb.total_credit
        assert [r.code for r in tb.rows] == ["1000", "2000", "3000", "4000", "5000"]

    def test_abnormal_balance_reported_in_opposite_column(self, tenant, post, cash_account, salary_account):
        post("CPV", date(2024, 1, 5), (salary_account, 300, 0), (cash_account, 0, 300))

        rows = {r.code: r for r in trial_balance(tenant).rows}
        assert (rows["1000"].debit, rows["1000"].credit, rows["1000"].abnormal) == (0, 300, True)
        assert (rows["5000"].debit, rows["5000"].credit, rows["5000"].abnormal) == (300, 0, False)

    def test_as_of_date_excludes_later_postings(self, tenant, school_books):
        tb = trial_balance(tenant, date(2024, 1, 1))
        rows = {r.code: (r.debit, r.credit) for r in tb.rows}
        assert rows == {"1000": (10000, 0), "3000": (0, 10000)}

    def test_accounts_without_postings_omitted(self, tenant, tuition_received, salary_account):
        assert "5000" not in {r.code for r in trial_balance(tenant).rows}

    def test_parent_rows_carry_only_direct_postings(self, tenant, post, tuition_account):
        group = create_account(tenant, "1000", "Cash Group", Account.AccountType.ASSET)
        till = create_account(tenant, "1001", "Till", Account.AccountType.ASSET, parent_id=group.id)
        safe = create_account(tenant, "1101", "Safe", Account.AccountType.ASSET, parent_id=group.id)

        post("JV", date(2024, 1, 5), (group, 100, 0), (tuition_account, 0, 100))
        post("JV", date(2024, 1, 5), (till, 50, 0), (tuition_account, 0, 50))

        tb = trial_balance(tenant)
        rows = {r.code: (r.debit, r.credit) for r in tb.rows}
        assert rows == {"1000": (100, 0), "1001": (50, 0), "4000": (0, 150)}
        assert safe.code not in rows
        assert tb.total_debit == tb.total_credit == 150

    def test_voided_pair_nets_to_zero(self, tenant, tuition_received):
        void_voucher(tenant, tuition_received.id, "Mistake")
        tb = trial_balance(tenant)
        assert tb.total_debit == tb.total_credit == 0

    def test_corrupted_ledger_raises_integrity_error(self, tenant, cash_account, tuition_received):
        _corrupt(tuition_received, cash_account, 100)

        with pytest.raises(LedgerIntegrityError) as exc:
            trial_balance(tenant)
        assert exc.value.details["difference"] == 100


# =============================================================================
# Balance Sheet
# =============================================================================

@pytest.mark.django_db
class TestBalanceSheet:

    def test_folds_current_earnings_into_equity(self, tenant, school_books):
        sheet = balance_sheet(tenant, date(2024, 1, 31))

        assert sheet.total_assets == 13000
        assert sheet.total_liabilities == 500
        assert sheet.net_income == 2500
        assert sheet.total_equity == 12500
        assert sheet.is_balanced
        assert sheet.warning is None

        earnings = [line for line in sheet.equity if line.synthetic]
        assert [(line.name, line.balance) for line in earnings] == [("Current Period Earnings", 2500)]

    def test_excluding_earnings_reports_warning(self, settings, tenant, school_books):
        settings.LEDGER_FOLD_NET_INCOME_INTO_EQUITY = False
        sheet = balance_sheet(tenant, date(2024, 1, 31))

        assert sheet.total_equity == 10000
        assert not any(line.synthetic for line in sheet.equity)
        assert not sheet.is_balanced
        assert sheet.warning is not None
        assert "2500" in sheet.warning

    def test_as_of_date_excludes_later_postings(self, tenant, school_books):
        sheet = balance_sheet(tenant, date(2024, 1, 5))
        assert sheet.total_assets == 15000
        assert sheet.total_liabilities == 0
        assert sheet.total_equity == 15000

    def test_hierarchical_rollup(self, tenant, post):
        setup_defaults(tenant)
        accounts = {a.code: a for a in Account.objects.filter(tenant=tenant)}

        post("CRV", date(2024, 1, 5), (accounts["1001"], 4000, 0), (accounts["4001"], 0, 4000))
        post("BRV", date(2024, 1, 6), (accounts["1002"], 6000, 0), (accounts["4002"], 0, 6000))

        sheet = balance_sheet(tenant, date(2024, 1, 31))
        assets = {line.code: line for line in sheet.assets}

        assert assets["1000"].balance == 10000
        assert assets["1000"].depth == 0
        assert assets["1001"].balance == 4000
        assert assets["1001"].depth == 1
        assert assets["1002"].balance == 6000
        assert "1003" not in assets
        # Parents are displayed rolled up, but totals count each posting once.
        assert sheet.total_assets == 10000
        assert sheet.is_balanced

    def test_rollup_includes_parent_own_postings(self, tenant, post, tuition_account):
        group = create_account(tenant, "1000", "Cash Group", Account.AccountType.ASSET)
        till = create_account(tenant, "1001", "Till", Account.AccountType.ASSET, parent_id=group.id)

        post("JV", date(2024, 1, 5), (group, 100, 0), (tuition_account, 0, 100))
        post("JV", date(2024, 1, 5), (till, 50, 0), (tuition_account, 0, 50))

        assets = {line.code: line.balance for line in balance_sheet(tenant, date(2024, 1, 31)).assets}
        assert assets == {"1000": 150, "1001": 50}

    def test_mixed_side_child_rolls_up_with_correct_sign(self, tenant, post, cash_account, capital_account):
        loan = create_account(
            tenant, "3100", "Trustee Loan", Account.AccountType.LIABILITY, parent_id=capital_account.id,
        )
        post("JV", date(2024, 1, 1), (cash_account, 1000, 0), (capital_account, 0, 1000))
        post("JV", date(2024, 1, 2), (cash_account, 400, 0), (loan, 0, 400))

        sheet = balance_sheet(tenant, date(2024, 1, 31))
        equity = {line.code: line.balance for line in sheet.equity if not line.synthetic}
        liabilities = {line.code: line.balance for line in sheet.liabilities}

        assert equity["3000"] == 1400
        assert liabilities == {"3100": 400}
        assert sheet.total_liabilities + sheet.total_equity == sheet.total_assets == 1400

    def test_corrupted_ledger_raises_integrity_error(self, tenant, cash_account, tuition_received):
        _corrupt(tuition_received, cash_account, 100)
        with pytest.raises(LedgerIntegrityError):
            balance_sheet(tenant, date(2024, 1, 31))


# =============================================================================
# Profit and Loss
# =============================================================================

@pytest.mark.django_db
class TestProfitAndLoss:

    def test_income_expense_and_net_profit(self, tenant, school_books):
        pnl = profit_and_loss(tenant, date(2024, 1, 1), date(2024, 1, 31))

        assert [(line.code, line.balance) for line in pnl.income] == [("4000", 5000)]
        assert [(line.code, line.balance) for line in pnl.expense] == [("5000", 2500)]
        assert pnl.total_income == 5000
        assert pnl.total_expense == 2500
        assert pnl.net_profit == 2500

    def test_range_is_inclusive(self, tenant, school_books):
        pnl = profit_and_loss(tenant, date(2024, 1, 5), date(2024, 1, 25))
        assert (pnl.total_income, pnl.total_expense) == (5000, 2000)

    def test_inverted_range_rejected(self, tenant):
        with pytest.raises(InvalidDateRange):
            profit_and_loss(tenant, date(2024, 2, 1), date(2024, 1, 1))
