# accounting/models.py
"""
Ledger models for the school accounting core.

Ownership
=========
Every table here has exactly one writer:

- Account: the account registry (accounting/registry.py)
- Voucher, VoucherLine, VoucherSequence: the voucher store
  (accounting/vouchers.py, accounting/sequences.py)
- FiscalYear: accounting/periods.py

Saves, updates and deletes outside the owner's write context raise
RuntimeError (see accounting/write_barrier.py).

Amounts
=======
VoucherLine.debit and VoucherLine.credit are integer MINOR units
(paisa/cents). Decimal presentation is the caller's concern.

Models:
- Account: Chart of Accounts (hierarchical, arena-style parent references)
- Voucher: One balanced journal entry (CPV/CRV/BPV/BRV/JV)
- VoucherLine: One debit or credit against one account
- VoucherSequence: Per-tenant, per-voucher-type number counter
- FiscalYear: Tenant fiscal years (closed years reject postings)
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.write_barrier import write_context_allowed
from tenant.models import Tenant


class LedgerQuerySet(models.QuerySet):
    """
    QuerySet that applies the owning model's write barrier to bulk
    operations, which bypass Model.save()/delete().
    """

    def _assert_writable(self, operation: str) -> None:
        if not write_context_allowed(self.model.WRITE_CONTEXTS):
            raise RuntimeError(
                f"{self.model.__name__}.{operation} is only allowed within "
                f"{'/'.join(sorted(self.model.WRITE_CONTEXTS))} write context."
            )

    def bulk_create(self, objs, *args, **kwargs):
        self._assert_writable("bulk_create")
        return super().bulk_create(objs, *args, **kwargs)

    def update(self, **kwargs):
        self._assert_writable("update")
        if self.model.APPEND_ONLY:
            raise RuntimeError(f"{self.model.__name__} rows are append-only.")
        return super().update(**kwargs)

    def delete(self):
        self._assert_writable("delete")
        if self.model.APPEND_ONLY:
            raise RuntimeError(f"{self.model.__name__} rows are append-only.")
        return super().delete()


class LedgerModel(models.Model):
    """Abstract base that enforces the write barrier on save/delete."""

    WRITE_CONTEXTS: set[str] = set()
    APPEND_ONLY = False

    objects = LedgerQuerySet.as_manager()

    class Meta:
        abstract = True

    def _assert_writable(self, operation: str) -> None:
        if not write_context_allowed(self.WRITE_CONTEXTS):
            raise RuntimeError(
                f"{self.__class__.__name__} is owned by the ledger core. "
                f"Direct {operation} is only allowed within "
                f"{'/'.join(sorted(self.WRITE_CONTEXTS))} write context."
            )

    def save(self, *args, **kwargs):
        self._assert_writable("save")
        if self.APPEND_ONLY and not self._state.adding:
            raise RuntimeError(f"{self.__class__.__name__} rows are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        self._assert_writable("delete")
        if self.APPEND_ONLY:
            raise RuntimeError(f"{self.__class__.__name__} rows are append-only.")
        return super().delete(*args, **kwargs)


# =============================================================================
# Chart of Accounts
# =============================================================================

class Account(LedgerModel):
    """
    Chart of Accounts entry.

    Supports:
    - Hierarchical structure (parent/child, same tenant, acyclic)
    - Account types with normal balance rules
    - System accounts seeded by setup_defaults (never deleted)
    - Soft status (ACTIVE/INACTIVE); accounts with postings are
      deactivated rather than deleted
    """

    WRITE_CONTEXTS = {"registry"}

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        INCOME = "INCOME", "Income"
        EXPENSE = "EXPENSE", "Expense"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"

    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.INCOME: NormalBalance.CREDIT,
    }

    # A child must stay within its parent's statement family.
    BALANCE_SHEET_TYPES = frozenset({AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY})
    INCOME_STATEMENT_TYPES = frozenset({AccountType.INCOME, AccountType.EXPENSE})

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="accounts",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )

    normal_balance = models.CharField(
        max_length=10,
        choices=NormalBalance.choices,
        editable=False,
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
    )

    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )

    is_system = models.BooleanField(
        default=False,
        help_text="Seeded default account; cannot be deleted.",
    )

    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "code"],
                name="uniq_account_code_per_tenant",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["tenant", "account_type"], name="acct_tenant_type_idx"),
            models.Index(fields=["tenant", "parent"], name="acct_tenant_parent_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @classmethod
    def statement_family(cls, account_type: str) -> frozenset:
        if account_type in cls.BALANCE_SHEET_TYPES:
            return cls.BALANCE_SHEET_TYPES
        return cls.INCOME_STATEMENT_TYPES

    @classmethod
    def types_compatible(cls, parent_type: str, child_type: str) -> bool:
        return child_type in cls.statement_family(parent_type)

    @property
    def is_debit_normal(self) -> bool:
        return self.NORMAL_BALANCE_MAP[self.account_type] == self.NormalBalance.DEBIT

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE

    def signed_balance(self, debit: int, credit: int) -> int:
        """Net of debit/credit on this account's normal side."""
        return signed_balance(self.account_type, debit, credit)

    def clean(self):
        if self.parent_id and self.parent.tenant_id != self.tenant_id:
            raise ValidationError("Parent account must belong to the same tenant.")
        if self.parent_id and not self.types_compatible(self.parent.account_type, self.account_type):
            raise ValidationError(
                f"Account type {self.account_type} cannot be a child of {self.parent.account_type}."
            )

    def save(self, *args, **kwargs):
        self.normal_balance = self.NORMAL_BALANCE_MAP[self.account_type]
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "account_type" in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["normal_balance"]
        self.full_clean(validate_unique=False, validate_constraints=False)
        super().save(*args, **kwargs)


def signed_balance(account_type: str, debit: int, credit: int) -> int:
    """
    Apply the normal-balance sign rule.

    ASSET and EXPENSE are debit-normal (debit - credit); LIABILITY, EQUITY
    and INCOME are credit-normal (credit - debit). A negative result is an
    abnormal balance.
    """
    if Account.NORMAL_BALANCE_MAP[account_type] == Account.NormalBalance.DEBIT:
        return debit - credit
    return credit - debit


# =============================================================================
# Fiscal Years
# =============================================================================

class FiscalYear(LedgerModel):
    """
    A tenant fiscal year, e.g. "Fiscal Year 2025-26".

    Vouchers dated inside a year are tagged with it. A closed year
    rejects new postings (including reversals dated inside it).
    """

    WRITE_CONTEXTS = {"period"}

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="fiscal_years",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    name = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()
    is_closed = models.BooleanField(default=False)
    closed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["start_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "name"],
                name="uniq_fiscal_year_name_per_tenant",
            ),
            models.CheckConstraint(
                condition=Q(end_date__gte=models.F("start_date")),
                name="chk_fiscal_year_range",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.start_date} - {self.end_date})"

    def contains(self, value) -> bool:
        return self.start_date <= value <= self.end_date


# =============================================================================
# Vouchers
# =============================================================================

class VoucherSequence(LedgerModel):
    """
    Per-tenant, per-voucher-type counters for voucher numbers.

    next_value is the number the next successful post receives. It is
    advanced only by accounting.sequences.next_number, inside the same
    transaction that persists the voucher.
    """

    WRITE_CONTEXTS = {"ledger"}

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="voucher_sequences",
    )
    voucher_type = models.CharField(max_length=8)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "voucher_type"],
                name="uniq_voucher_sequence_per_type",
            ),
        ]

    def __str__(self):
        return f"{self.tenant_id}:{self.voucher_type}={self.next_value}"


class Voucher(LedgerModel):
    """
    Voucher header: one atomic, balanced financial transaction.

    Workflow: POSTED -> VOIDED (one way, only via void_voucher).
    A void never touches the original lines; it links a reversing
    voucher through `reverses`.
    """

    WRITE_CONTEXTS = {"ledger"}

    # Only the void bookkeeping may change after insert.
    MUTABLE_FIELDS = frozenset({"status", "void_reason", "voided_at", "voided_by"})

    class VoucherType(models.TextChoices):
        CPV = "CPV", "Cash Payment Voucher"
        CRV = "CRV", "Cash Receipt Voucher"
        BPV = "BPV", "Bank Payment Voucher"
        BRV = "BRV", "Bank Receipt Voucher"
        JV = "JV", "Journal Voucher"

    class Status(models.TextChoices):
        POSTED = "POSTED", "Posted"
        VOIDED = "VOIDED", "Voided"

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="vouchers",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    voucher_no = models.CharField(max_length=32)
    sequence_number = models.BigIntegerField()
    voucher_type = models.CharField(
        max_length=8,
        choices=VoucherType.choices,
        db_column="type",
    )

    date = models.DateField()
    description = models.CharField(max_length=255, blank=True, default="")
    reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Cheque no, invoice no, receipt no",
    )

    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.POSTED,
    )

    # Source tracking (fee collection, payroll, inventory integrations)
    source_module = models.CharField(max_length=50, blank=True, default="")
    source_id = models.CharField(max_length=100, blank=True, default="")

    fiscal_year = models.ForeignKey(
        FiscalYear,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="vouchers",
    )

    reverses = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversal",
    )

    void_reason = models.CharField(max_length=255, blank=True, default="")
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.CharField(max_length=150, blank=True, default="")

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "voucher_type", "sequence_number"],
                name="uniq_voucher_sequence_number",
            ),
            models.UniqueConstraint(
                fields=["tenant", "voucher_no"],
                name="uniq_voucher_no_per_tenant",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "date", "voucher_type", "sequence_number"], name="voucher_tenant_date_idx"),
            models.Index(fields=["tenant", "voucher_type", "date"], name="voucher_tenant_type_date_idx"),
        ]
        ordering = ["date", "voucher_type", "sequence_number"]

    def __str__(self):
        return f"{self.voucher_no} ({self.date}) {self.status}"

    @property
    def is_voided(self) -> bool:
        return self.status == self.Status.VOIDED

    @property
    def is_reversal(self) -> bool:
        return self.reverses_id is not None

    def save(self, *args, **kwargs):
        if not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if update_fields is None or not set(update_fields) <= self.MUTABLE_FIELDS:
                raise RuntimeError(
                    "Posted vouchers are immutable; only void bookkeeping "
                    f"({', '.join(sorted(self.MUTABLE_FIELDS))}) may change."
                )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("Vouchers are never deleted; void them instead.")


class VoucherLine(LedgerModel):
    """
    One debit or credit against one account within a voucher.

    Exactly one of debit/credit is strictly positive; both are integer
    minor units. Rows are append-only.
    """

    WRITE_CONTEXTS = {"ledger"}
    APPEND_ONLY = True

    voucher = models.ForeignKey(
        Voucher,
        on_delete=models.PROTECT,
        related_name="lines",
    )

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="voucher_lines",
    )

    line_no = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="voucher_lines",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    debit = models.BigIntegerField(default=0)
    credit = models.BigIntegerField(default=0)

    class Meta:
        ordering = ["voucher", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["voucher", "line_no"],
                name="uniq_voucher_line_no",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_line_not_both_debit_credit",
            ),
            models.CheckConstraint(
                condition=~(Q(debit=0) & Q(credit=0)),
                name="chk_line_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_line_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "account"], name="vline_tenant_account_idx"),
        ]

    def __str__(self):
        return f"{self.voucher_id} L{self.line_no}"

    @property
    def amount(self) -> int:
        """Returns the non-zero amount (debit or credit)."""
        return self.debit if self.debit > 0 else self.credit

    @property
    def is_debit(self) -> bool:
        return self.debit > 0
