# accounting/ledger.py
"""
Ledger query engine.

Balances are computed on demand from persisted voucher lines; there is no
stored balance to drift. Every line counts, including the lines of voided
vouchers, because each void posts a reversal that cancels them.

Sign rule: see accounting.models.signed_balance.
"""

from dataclasses import dataclass, field
from datetime import date

from django.db.models import Sum, Value
from django.db.models.functions import Coalesce

from accounting.exceptions import InvalidDateRange, ValidationError
from accounting.models import VoucherLine, signed_balance
from accounting.registry import get_account


@dataclass
class LedgerRow:
    date: date
    voucher_no: str
    voucher_type: str
    description: str
    debit: int
    credit: int
    balance: int
    voucher_id: int = None
    voucher_status: str = ""


@dataclass
class LedgerReport:
    account_id: int
    account_code: str
    account_name: str
    start_date: date
    end_date: date
    opening_balance: int
    transactions: list[LedgerRow] = field(default_factory=list)
    closing_balance: int = 0

    @property
    def total_debit(self) -> int:
        return sum(row.debit for row in self.transactions)

    @property
    def total_credit(self) -> int:
        return sum(row.credit for row in self.transactions)


def _totals(qs) -> tuple[int, int]:
    totals = qs.aggregate(
        debit=Coalesce(Sum("debit"), Value(0)),
        credit=Coalesce(Sum("credit"), Value(0)),
    )
    return totals["debit"], totals["credit"]


def account_totals(tenant, start_date=None, end_date=None) -> dict[int, tuple[int, int]]:
    """
    Raw (debit, credit) sums per account over an inclusive date range.

    Accounts without lines in the range are absent.
    """
    qs = VoucherLine.objects.filter(tenant=tenant)
    if start_date is not None:
        qs = qs.filter(voucher__date__gte=start_date)
    if end_date is not None:
        qs = qs.filter(voucher__date__lte=end_date)

    rows = (
        qs.order_by()
        .values("account_id")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
    )
    return {row["account_id"]: (row["debit"] or 0, row["credit"] or 0) for row in rows}


def opening_balance(tenant, account_id: int, as_of_date_exclusive: date) -> int:
    """Signed balance of all postings dated strictly before the given date."""
    account = get_account(tenant, account_id)
    debit, credit = _totals(
        VoucherLine.objects.filter(
            tenant=tenant,
            account=account,
            voucher__date__lt=as_of_date_exclusive,
        )
    )
    return signed_balance(account.account_type, debit, credit)


def account_balance(tenant, account_id: int, as_of_date: date = None) -> int:
    """Signed balance including postings on as_of_date (all time when None)."""
    account = get_account(tenant, account_id)
    qs = VoucherLine.objects.filter(tenant=tenant, account=account)
    if as_of_date is not None:
        qs = qs.filter(voucher__date__lte=as_of_date)
    debit, credit = _totals(qs)
    return signed_balance(account.account_type, debit, credit)


def get_ledger(tenant, account_id: int, start_date: date, end_date: date) -> LedgerReport:
    """
    Account ledger for an inclusive date range.

    Rows are ordered by date, voucher number and line number. Each row's
    balance is the opening balance plus the signed effect of every row up
    to and including it.

    The opening balance and the rows come from one read of the lines, so
    a post committed mid-report cannot make them disagree.
    """
    if start_date is None or end_date is None:
        raise ValidationError("Both start_date and end_date are required.")
    if start_date > end_date:
        raise InvalidDateRange(
            "Start date is after end date.",
            {"start_date": str(start_date), "end_date": str(end_date)},
        )

    account = get_account(tenant, account_id)

    lines = (
        VoucherLine.objects.filter(
            tenant=tenant,
            account=account,
            voucher__date__lte=end_date,
        )
        .order_by("voucher__date", "voucher__voucher_type", "voucher__sequence_number", "line_no")
        .values_list(
            "voucher__date",
            "voucher__voucher_no",
            "voucher__voucher_type",
            "voucher__description",
            "voucher__status",
            "voucher_id",
            "description",
            "debit",
            "credit",
        )
    )

    opening_debit = opening_credit = 0
    in_range = []
    for row in lines:
        if row[0] < start_date:
            opening_debit += row[7]
            opening_credit += row[8]
        else:
            in_range.append(row)

    opening = signed_balance(account.account_type, opening_debit, opening_credit)
    report = LedgerReport(
        account_id=account.id,
        account_code=account.code,
        account_name=account.name,
        start_date=start_date,
        end_date=end_date,
        opening_balance=opening,
        closing_balance=opening,
    )

    running = opening
    for (value_date, voucher_no, voucher_type, voucher_description, status,
         voucher_id, line_description, debit, credit) in in_range:
        running += signed_balance(account.account_type, debit, credit)
        report.transactions.append(
            LedgerRow(
                date=value_date,
                voucher_no=voucher_no,
                voucher_type=voucher_type,
                description=line_description or voucher_description,
                debit=debit,
                credit=credit,
                balance=running,
                voucher_id=voucher_id,
                voucher_status=status,
            )
        )

    report.closing_balance = running
    return report
