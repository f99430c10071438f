# accounting/vouchers.py
"""
Voucher store.

Posting is all-or-nothing: lines are validated against the registry and
the balance rule, the number is allocated, and header and lines are
written in one transaction. Nothing here ever updates or deletes a line.

Voiding keeps the audit trail intact. The original is flagged VOIDED
and a reversing voucher of the same type with debit/credit swapped is
posted, so the pair nets to zero in every balance.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date as date_type

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounting.exceptions import (
    AlreadyVoided,
    CannotVoidReversal,
    ClosedPeriod,
    InvalidDateRange,
    InvalidLine,
    NotFound,
    UnbalancedVoucher,
    UnknownAccount,
    ValidationError,
)
from accounting.models import Account, Voucher, VoucherLine
from accounting.periods import fiscal_year_for
from accounting.policies import can_post_to_account, can_post_to_date, can_void_voucher
from accounting.sequences import format_voucher_no, next_number
from accounting.write_barrier import ledger_writes_allowed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoucherLineInput:
    """One requested line. Amounts are integer minor units."""

    account_id: int
    debit: int = 0
    credit: int = 0
    description: str = ""


@dataclass
class VoucherDetail:
    voucher: Voucher
    lines: list[VoucherLine]

    @property
    def total_debit(self) -> int:
        return sum(line.debit for line in self.lines)

    @property
    def total_credit(self) -> int:
        return sum(line.credit for line in self.lines)


# =============================================================================
# Validation
# =============================================================================

def _is_amount(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_lines(lines) -> None:
    if len(lines) < 2:
        raise InvalidLine("A voucher needs at least two lines.", {"line_count": len(lines)})

    for i, line in enumerate(lines, start=1):
        if not _is_amount(line.debit) or not _is_amount(line.credit):
            raise InvalidLine(
                f"Line {i}: amounts must be integer minor units.",
                {"line": i},
            )
        if line.debit < 0 or line.credit < 0:
            raise InvalidLine(f"Line {i}: negative debit/credit is not allowed.", {"line": i})
        if line.debit > 0 and line.credit > 0:
            raise InvalidLine(f"Line {i}: cannot have both debit and credit > 0.", {"line": i})
        if line.debit == 0 and line.credit == 0:
            raise InvalidLine(f"Line {i}: either debit or credit must be > 0.", {"line": i})
        limit = VoucherLine._meta.get_field("description").max_length
        if line.description and len(line.description) > limit:
            raise InvalidLine(f"Line {i}: description exceeds {limit} characters.", {"line": i})

    total_debit = sum(line.debit for line in lines)
    total_credit = sum(line.credit for line in lines)
    if total_debit != total_credit:
        raise UnbalancedVoucher(
            f"Voucher is not balanced. Debit: {total_debit}, Credit: {total_credit}",
            {
                "total_debit": total_debit,
                "total_credit": total_credit,
                "difference": total_debit - total_credit,
            },
        )


def _load_accounts(tenant, lines, require_active: bool = True) -> dict[int, Account]:
    account_ids = {line.account_id for line in lines}
    accounts = {a.id: a for a in Account.objects.filter(tenant=tenant, pk__in=account_ids)}

    for i, line in enumerate(lines, start=1):
        account = accounts.get(line.account_id)
        if account is None:
            raise UnknownAccount(
                f"Line {i}: account {line.account_id} not found.",
                {"line": i, "account_id": line.account_id},
            )
        if require_active:
            allowed, reason = can_post_to_account(account)
            if not allowed:
                raise InvalidLine(f"Line {i}: {reason}", {"line": i, "account_id": account.id})
    return accounts


def _check_period(tenant, value):
    fiscal_year = fiscal_year_for(tenant, value)
    allowed, reason = can_post_to_date(fiscal_year)
    if not allowed:
        raise ClosedPeriod(reason, {"date": str(value), "fiscal_year": fiscal_year.name})
    return fiscal_year


def _persist(tenant, voucher_type, value_date, description, lines, fiscal_year, **header) -> Voucher:
    """Allocate the number and write header + lines. Caller holds the transaction."""
    number = next_number(tenant, voucher_type)

    with ledger_writes_allowed():
        voucher = Voucher.objects.create(
            tenant=tenant,
            voucher_type=voucher_type,
            sequence_number=number,
            voucher_no=format_voucher_no(voucher_type, number),
            date=value_date,
            description=description,
            fiscal_year=fiscal_year,
            **header,
        )
        VoucherLine.objects.bulk_create([
            VoucherLine(
                voucher=voucher,
                tenant=tenant,
                line_no=i,
                account_id=line.account_id,
                description=line.description,
                debit=line.debit,
                credit=line.credit,
            )
            for i, line in enumerate(lines, start=1)
        ])
    return voucher


def _check_length(model, field_name: str, value: str) -> None:
    limit = model._meta.get_field(field_name).max_length
    if value and len(value) > limit:
        raise ValidationError(
            f"{field_name} exceeds {limit} characters.",
            {"field": field_name, "max_length": limit, "length": len(value)},
        )


def _fit(model, field_name: str, text: str) -> str:
    """Clip generated text to the column width."""
    return text[: model._meta.get_field(field_name).max_length]


def _voucher_filter(voucher_id) -> dict:
    """Vouchers are addressed by primary key or by public UUID."""
    if isinstance(voucher_id, uuid.UUID):
        return {"public_id": voucher_id}
    if isinstance(voucher_id, str) and not voucher_id.isdigit():
        try:
            return {"public_id": uuid.UUID(voucher_id)}
        except ValueError:
            raise NotFound("Voucher not found.", {"voucher_id": voucher_id})
    return {"pk": int(voucher_id)}


# =============================================================================
# Posting
# =============================================================================

@transaction.atomic
def post_voucher(
    tenant,
    voucher_type: str,
    date: date_type,
    description: str,
    lines,
    *,
    reference: str = "",
    source_module: str = "",
    source_id: str = "",
    created_by: str = "",
) -> Voucher:
    """
    Validate and persist a balanced voucher.

    Args:
        tenant: The owning tenant
        voucher_type: One of Voucher.VoucherType (CPV, CRV, BPV, BRV, JV)
        date: Value date
        description: Narration
        lines: Sequence of VoucherLineInput (at least two)
        reference: Cheque/invoice/receipt number
        source_module: Originating module for auto-posted vouchers (FEE, PAYROLL, ...)
        source_id: Record id within the originating module
        created_by: Who posted it

    Returns:
        The persisted Voucher

    Raises:
        ValidationError subclasses (UnbalancedVoucher, InvalidLine,
        UnknownAccount, ClosedPeriod); SequenceConflict
    """
    if voucher_type not in Voucher.VoucherType.values:
        raise ValidationError(
            f"Unknown voucher type: {voucher_type}",
            {"voucher_type": voucher_type, "allowed": list(Voucher.VoucherType.values)},
        )
    if not isinstance(date, date_type):
        raise ValidationError("Voucher date is required.", {"date": str(date)})

    for field_name, value in (
        ("description", description),
        ("reference", reference),
        ("source_module", source_module),
        ("source_id", source_id),
        ("created_by", created_by),
    ):
        _check_length(Voucher, field_name, value)

    lines = list(lines)
    _validate_lines(lines)
    _load_accounts(tenant, lines)
    fiscal_year = _check_period(tenant, date)

    voucher = _persist(
        tenant,
        voucher_type,
        date,
        description,
        lines,
        fiscal_year,
        reference=reference,
        source_module=source_module,
        source_id=source_id,
        created_by=created_by,
    )

    logger.info(
        "Voucher posted",
        extra={
            "tenant_id": tenant.pk,
            "voucher_no": voucher.voucher_no,
            "voucher_type": voucher_type,
            "amount": sum(line.debit for line in lines),
            "line_count": len(lines),
        },
    )
    return voucher


@transaction.atomic
def void_voucher(
    tenant,
    voucher_id,
    reason: str,
    *,
    reversal_date: date_type = None,
    voided_by: str = "",
) -> Voucher:
    """
    Void a posted voucher by posting its reversal.

    The original keeps its lines and is flagged VOIDED; a new voucher of
    the same type with debit/credit swapped is posted and linked back to
    it. Returns the reversing voucher.

    Raises:
        NotFound, AlreadyVoided, CannotVoidReversal, ClosedPeriod
    """
    if not reason or not reason.strip():
        raise ValidationError("A reason is required to void a voucher.")
    _check_length(Voucher, "void_reason", reason)

    try:
        original = Voucher.objects.select_for_update().get(tenant=tenant, **_voucher_filter(voucher_id))
    except Voucher.DoesNotExist:
        raise NotFound("Voucher not found.", {"voucher_id": str(voucher_id)})

    allowed, message = can_void_voucher(original)
    if not allowed:
        if original.is_voided:
            raise AlreadyVoided(message, {"voucher_no": original.voucher_no})
        raise CannotVoidReversal(message, {"voucher_no": original.voucher_no})

    if reversal_date is None:
        if settings.LEDGER_REVERSAL_DATE_POLICY == "void_date":
            reversal_date = timezone.localdate()
        else:
            reversal_date = original.date

    fiscal_year = _check_period(tenant, reversal_date)

    # Swap debit/credit; inactive accounts still accept their own reversal.
    reversed_lines = [
        VoucherLineInput(
            account_id=line.account_id,
            debit=line.credit,
            credit=line.debit,
            description=_fit(VoucherLine, "description", f"Reversal: {line.description}") if line.description else "",
        )
        for line in original.lines.order_by("line_no")
    ]

    reversal = _persist(
        tenant,
        original.voucher_type,
        reversal_date,
        _fit(Voucher, "description", f"Reversal of {original.voucher_no}: {reason}"),
        reversed_lines,
        fiscal_year,
        reference=original.reference,
        source_module=original.source_module,
        source_id=original.source_id,
        created_by=voided_by,
        reverses=original,
    )

    original.status = Voucher.Status.VOIDED
    original.void_reason = reason
    original.voided_at = timezone.now()
    original.voided_by = voided_by
    with ledger_writes_allowed():
        original.save(update_fields=["status", "void_reason", "voided_at", "voided_by"])

    logger.info(
        "Voucher voided",
        extra={
            "tenant_id": tenant.pk,
            "voucher_no": original.voucher_no,
            "reversal_no": reversal.voucher_no,
            "reason": reason,
        },
    )
    return reversal


# =============================================================================
# Reads
# =============================================================================

def get_voucher(tenant, voucher_id) -> VoucherDetail:
    try:
        voucher = Voucher.objects.select_related("reverses").get(tenant=tenant, **_voucher_filter(voucher_id))
    except Voucher.DoesNotExist:
        raise NotFound("Voucher not found.", {"voucher_id": str(voucher_id)})

    lines = list(voucher.lines.select_related("account").order_by("line_no"))
    return VoucherDetail(voucher=voucher, lines=lines)


def list_vouchers(tenant, start_date=None, end_date=None, voucher_type=None, status=None) -> list[Voucher]:
    """Vouchers ordered by date, then type and numeric sequence."""
    if start_date and end_date and start_date > end_date:
        raise InvalidDateRange(
            "Start date is after end date.",
            {"start_date": str(start_date), "end_date": str(end_date)},
        )

    qs = Voucher.objects.filter(tenant=tenant)
    if start_date:
        qs = qs.filter(date__gte=start_date)
    if end_date:
        qs = qs.filter(date__lte=end_date)
    if voucher_type:
        qs = qs.filter(voucher_type=voucher_type)
    if status:
        qs = qs.filter(status=status)
    return list(qs.order_by("date", "voucher_type", "sequence_number"))
