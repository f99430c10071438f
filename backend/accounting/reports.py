# accounting/reports.py
"""
Aggregation engine: trial balance, balance sheet, profit and loss.

All figures are integer minor units computed from persisted voucher
lines at call time.

Hierarchical rollup works on the raw (debit - credit) net so that a
child whose normal side differs from its parent's (a LIABILITY under an
EQUITY group, say) still adds up correctly; the account's own sign rule
is applied only when a figure is displayed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from django.conf import settings

from accounting.exceptions import InvalidDateRange, LedgerIntegrityError, ValidationError
from accounting.ledger import account_totals
from accounting.models import Account, signed_balance
from accounting.periods import fiscal_year_for
from accounting.registry import resolve_hierarchy

logger = logging.getLogger(__name__)

T = Account.AccountType


# =============================================================================
# Result types
# =============================================================================

@dataclass
class TrialBalanceRow:
    account_id: int
    code: str
    name: str
    account_type: str
    debit: int
    credit: int
    abnormal: bool = False


@dataclass
class TrialBalance:
    as_of_date: date | None
    rows: list[TrialBalanceRow]
    total_debit: int
    total_credit: int

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass
class ReportLine:
    """One account in a statement section; balance includes descendants."""

    account_id: int | None
    code: str
    name: str
    account_type: str
    balance: int
    depth: int = 0
    parent_id: int | None = None
    abnormal: bool = False
    synthetic: bool = False


@dataclass
class BalanceSheet:
    as_of_date: date
    assets: list[ReportLine] = field(default_factory=list)
    liabilities: list[ReportLine] = field(default_factory=list)
    equity: list[ReportLine] = field(default_factory=list)
    total_assets: int = 0
    total_liabilities: int = 0
    total_equity: int = 0
    net_income: int = 0
    warning: str | None = None

    @property
    def is_balanced(self) -> bool:
        return self.total_assets == self.total_liabilities + self.total_equity


@dataclass
class ProfitAndLoss:
    start_date: date
    end_date: date
    income: list[ReportLine] = field(default_factory=list)
    expense: list[ReportLine] = field(default_factory=list)
    total_income: int = 0
    total_expense: int = 0
    net_profit: int = 0


# =============================================================================
# Helpers
# =============================================================================

def _raw_nets(totals: dict[int, tuple[int, int]]) -> dict[int, int]:
    return {account_id: debit - credit for account_id, (debit, credit) in totals.items()}


def _display(account_type: str, raw: int) -> int:
    """Apply the sign rule to a raw debit-minus-credit figure."""
    return signed_balance(account_type, raw, 0)


def _rollup(tree, raw: dict[int, int]) -> tuple[dict[int, int], set[int]]:
    """
    Bottom-up rollup over the account tree.

    Returns (rolled raw net per account, ids of accounts that have postings
    themselves or below them).
    """
    rolled = {}
    active = set()
    for node in tree.post_order():
        account_id = node.account.id
        total = raw.get(account_id, 0)
        has_activity = account_id in raw
        for child in node.children:
            total += rolled[child.account.id]
            has_activity = has_activity or child.account.id in active
        rolled[account_id] = total
        if has_activity:
            active.add(account_id)
    return rolled, active


def _section(tree, rolled, active, account_types) -> list[ReportLine]:
    """Accounts of the given types with activity, in tree (pre-)order."""
    lines = []
    stack = list(reversed(tree.roots))
    while stack:
        node = stack.pop()
        account = node.account
        if account.id in active and account.account_type in account_types:
            balance = _display(account.account_type, rolled[account.id])
            lines.append(
                ReportLine(
                    account_id=account.id,
                    code=account.code,
                    name=account.name,
                    account_type=account.account_type,
                    balance=balance,
                    depth=tree.depth(account.id),
                    parent_id=account.parent_id,
                    abnormal=balance < 0,
                )
            )
        stack.extend(reversed(node.children))
    return lines


def _type_total(tree, raw, account_type) -> int:
    """Sum of own (non-rolled) balances so nested accounts are not counted twice."""
    return sum(
        _display(account_type, net)
        for account_id, net in raw.items()
        if tree.node(account_id).account.account_type == account_type
    )


# =============================================================================
# Trial balance
# =============================================================================

def trial_balance(tenant, as_of_date: date = None) -> TrialBalance:
    """
    Net balance of every account with direct postings, placed in its Debit
    or Credit column per the sign rule. Abnormal balances land in the
    opposite column and are flagged.

    Rows are not limited to leaf accounts and nothing is rolled up: a
    parent appears only when lines were posted to it directly, and then
    with its own postings alone, so each amount is counted once.

    Raises:
        LedgerIntegrityError: the column totals differ
    """
    totals = account_totals(tenant, end_date=as_of_date)
    accounts = Account.objects.filter(tenant=tenant, pk__in=list(totals)).order_by("code")

    rows = []
    total_debit = total_credit = 0
    for account in accounts:
        debit, credit = totals[account.id]
        net = account.signed_balance(debit, credit)
        abnormal = net < 0
        if account.is_debit_normal != abnormal:
            row_debit, row_credit = abs(net), 0
        else:
            row_debit, row_credit = 0, abs(net)

        rows.append(
            TrialBalanceRow(
                account_id=account.id,
                code=account.code,
                name=account.name,
                account_type=account.account_type,
                debit=row_debit,
                credit=row_credit,
                abnormal=abnormal,
            )
        )
        total_debit += row_debit
        total_credit += row_credit

    if total_debit != total_credit:
        logger.critical(
            "Trial balance out of balance",
            extra={
                "tenant_id": tenant.pk,
                "as_of_date": str(as_of_date) if as_of_date else None,
                "total_debit": total_debit,
                "total_credit": total_credit,
            },
        )
        raise LedgerIntegrityError(
            "Trial balance debit and credit totals differ.",
            {
                "total_debit": total_debit,
                "total_credit": total_credit,
                "difference": total_debit - total_credit,
            },
        )

    return TrialBalance(
        as_of_date=as_of_date,
        rows=rows,
        total_debit=total_debit,
        total_credit=total_credit,
    )


# =============================================================================
# Balance sheet
# =============================================================================

def _earnings_lines(tenant, as_of_date, raw_by_account, tree) -> tuple[list[ReportLine], int]:
    """
    Unclosed income minus expense as synthetic equity lines.

    Activity before the current fiscal year is shown as Retained Earnings,
    activity inside it as Current Period Earnings.
    """
    def net_income(raw):
        # Income is credit-normal and expense debit-normal, so both reduce to -raw.
        return -sum(
            net for account_id, net in raw.items()
            if tree.node(account_id).account.account_type in (T.INCOME, T.EXPENSE)
        )

    total = net_income(raw_by_account)
    fiscal_year = fiscal_year_for(tenant, as_of_date)
    retained = 0
    if fiscal_year is not None:
        prior = _raw_nets(account_totals(tenant, end_date=fiscal_year.start_date - timedelta(days=1)))
        retained = net_income(prior)

    lines = []
    if retained:
        lines.append(ReportLine(
            account_id=None, code="", name="Retained Earnings",
            account_type=T.EQUITY, balance=retained, synthetic=True, abnormal=retained < 0,
        ))
    current = total - retained
    if current or not lines:
        lines.append(ReportLine(
            account_id=None, code="", name="Current Period Earnings",
            account_type=T.EQUITY, balance=current, synthetic=True, abnormal=current < 0,
        ))
    return lines, total


def balance_sheet(tenant, as_of_date: date) -> BalanceSheet:
    """
    Assets, liabilities and equity as of a date (inclusive).

    With LEDGER_FOLD_NET_INCOME_INTO_EQUITY (default) unclosed income and
    expense are carried into equity and the statement must balance. With
    folding off they are left out and the resulting gap is reported in
    `warning`.

    Raises:
        LedgerIntegrityError: totals disagree beyond what the folding
        policy explains
    """
    if as_of_date is None:
        raise ValidationError("as_of_date is required.")

    tree = resolve_hierarchy(tenant)
    raw = _raw_nets(account_totals(tenant, end_date=as_of_date))
    rolled, active = _rollup(tree, raw)

    sheet = BalanceSheet(
        as_of_date=as_of_date,
        assets=_section(tree, rolled, active, {T.ASSET}),
        liabilities=_section(tree, rolled, active, {T.LIABILITY}),
        equity=_section(tree, rolled, active, {T.EQUITY}),
        total_assets=_type_total(tree, raw, T.ASSET),
        total_liabilities=_type_total(tree, raw, T.LIABILITY),
        total_equity=_type_total(tree, raw, T.EQUITY),
    )

    earnings, net_income = _earnings_lines(tenant, as_of_date, raw, tree)
    sheet.net_income = net_income

    if settings.LEDGER_FOLD_NET_INCOME_INTO_EQUITY:
        sheet.equity.extend(earnings)
        sheet.total_equity += net_income
        expected_gap = 0
    else:
        expected_gap = net_income

    gap = sheet.total_assets - (sheet.total_liabilities + sheet.total_equity)
    if gap != expected_gap:
        logger.critical(
            "Balance sheet out of balance",
            extra={
                "tenant_id": tenant.pk,
                "as_of_date": str(as_of_date),
                "total_assets": sheet.total_assets,
                "total_liabilities": sheet.total_liabilities,
                "total_equity": sheet.total_equity,
                "net_income": net_income,
            },
        )
        raise LedgerIntegrityError(
            "Assets do not equal liabilities plus equity.",
            {
                "total_assets": sheet.total_assets,
                "total_liabilities": sheet.total_liabilities,
                "total_equity": sheet.total_equity,
                "net_income": net_income,
                "difference": gap,
            },
        )

    if gap:
        sheet.warning = (
            f"Current period earnings of {net_income} are not included in equity; "
            f"assets differ from liabilities plus equity by {gap}."
        )
    return sheet


# =============================================================================
# Profit and loss
# =============================================================================

def profit_and_loss(tenant, start_date: date, end_date: date) -> ProfitAndLoss:
    """Income and expense activity over an inclusive date range."""
    if start_date is None or end_date is None:
        raise ValidationError("Both start_date and end_date are required.")
    if start_date > end_date:
        raise InvalidDateRange(
            "Start date is after end date.",
            {"start_date": str(start_date), "end_date": str(end_date)},
        )

    tree = resolve_hierarchy(tenant)
    raw = _raw_nets(account_totals(tenant, start_date=start_date, end_date=end_date))
    rolled, active = _rollup(tree, raw)

    total_income = _type_total(tree, raw, T.INCOME)
    total_expense = _type_total(tree, raw, T.EXPENSE)
    return ProfitAndLoss(
        start_date=start_date,
        end_date=end_date,
        income=_section(tree, rolled, active, {T.INCOME}),
        expense=_section(tree, rolled, active, {T.EXPENSE}),
        total_income=total_income,
        total_expense=total_expense,
        net_profit=total_income - total_expense,
    )
