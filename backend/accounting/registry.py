# accounting/registry.py
"""
Account registry: the tenant's chart of accounts.

All Account writes happen here, inside registry_writes_allowed(). The
registry guarantees that codes are unique per tenant, parents live in the
same tenant and statement family, and the parent graph has no cycles.

Pattern:
1. Load and lock the rows involved
2. Apply business policies (can_*)
3. Perform the operation inside the registry write context
4. Log and return the Account
"""

import logging
from dataclasses import dataclass, field

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from accounting.exceptions import (
    AccountInUse,
    AlreadyInitialized,
    CycleDetected,
    DuplicateCode,
    InvalidParent,
    NotFound,
    SystemAccount,
    ValidationError,
)
from accounting.models import Account
from accounting.policies import can_change_account_type, can_delete_account
from accounting.write_barrier import registry_writes_allowed

logger = logging.getLogger(__name__)


T = Account.AccountType

# (code, name, type, parent code)
DEFAULT_CHART = [
    ("1000", "Assets", T.ASSET, None),
    ("1001", "Cash in Hand", T.ASSET, "1000"),
    ("1002", "Cash at Bank", T.ASSET, "1000"),
    ("1003", "Accounts Receivable (Fees)", T.ASSET, "1000"),
    ("1004", "Inventory Assets", T.ASSET, "1000"),
    ("2000", "Liabilities", T.LIABILITY, None),
    ("2001", "Accounts Payable", T.LIABILITY, "2000"),
    ("3000", "Equity", T.EQUITY, None),
    ("3001", "Capital", T.EQUITY, "3000"),
    ("4000", "Income", T.INCOME, None),
    ("4001", "Tuition Fee Income", T.INCOME, "4000"),
    ("4002", "Admission Fee Income", T.INCOME, "4000"),
    ("5000", "Expenses", T.EXPENSE, None),
    ("5001", "Salary Expense", T.EXPENSE, "5000"),
    ("5002", "Rent Expense", T.EXPENSE, "5000"),
    ("5003", "Utility Expense", T.EXPENSE, "5000"),
    ("5004", "Purchase Expense", T.EXPENSE, "5000"),
]

UPDATABLE_FIELDS = {"name", "code", "parent_id", "account_type", "description"}


# =============================================================================
# Hierarchy
# =============================================================================

@dataclass
class AccountNode:
    account: Account
    children: list["AccountNode"] = field(default_factory=list)


@dataclass
class AccountTree:
    """
    Parent -> children view over a flat, id-indexed account table.

    Roots and children are ordered by account code.
    """

    nodes: dict[int, AccountNode]
    roots: list[AccountNode]

    def __contains__(self, account_id: int) -> bool:
        return account_id in self.nodes

    def node(self, account_id: int) -> AccountNode:
        return self.nodes[account_id]

    def descendants(self, account_id: int) -> list[Account]:
        result = []
        stack = list(reversed(self.nodes[account_id].children))
        while stack:
            current = stack.pop()
            result.append(current.account)
            stack.extend(reversed(current.children))
        return result

    def post_order(self) -> list[AccountNode]:
        """All nodes, children before their parent."""
        ordered = []
        stack = [(root, False) for root in reversed(self.roots)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                ordered.append(current)
                continue
            stack.append((current, True))
            stack.extend((child, False) for child in reversed(current.children))
        return ordered

    def depth(self, account_id: int) -> int:
        depth = 0
        current = self.nodes[account_id].account
        while current.parent_id is not None:
            depth += 1
            current = self.nodes[current.parent_id].account
        return depth


def _build_tree(accounts) -> AccountTree:
    nodes = {a.id: AccountNode(account=a) for a in accounts}
    roots = []
    for node in nodes.values():
        parent_id = node.account.parent_id
        if parent_id is None:
            roots.append(node)
        elif parent_id in nodes:
            nodes[parent_id].children.append(node)
        else:
            raise CycleDetected(
                f"Account {node.account.code} references a parent outside the tenant.",
                {"account_id": node.account.id, "parent_id": parent_id},
            )

    # Every node must be reachable from a root; anything left over sits on a cycle.
    reachable = set()
    stack = list(roots)
    while stack:
        current = stack.pop()
        reachable.add(current.account.id)
        stack.extend(current.children)
    if len(reachable) != len(nodes):
        cyclic = sorted(nodes[i].account.code for i in nodes if i not in reachable)
        raise CycleDetected(
            "Account hierarchy contains a cycle.",
            {"accounts": cyclic},
        )

    def by_code(n):
        return n.account.code

    roots.sort(key=by_code)
    for node in nodes.values():
        node.children.sort(key=by_code)
    return AccountTree(nodes=nodes, roots=roots)


def resolve_hierarchy(tenant) -> AccountTree:
    """Build the tenant's account tree (active and inactive accounts)."""
    return _build_tree(Account.objects.filter(tenant=tenant).order_by("code"))


# =============================================================================
# Lookups
# =============================================================================

def get_account(tenant, account_id: int) -> Account:
    try:
        return Account.objects.get(tenant=tenant, pk=account_id)
    except Account.DoesNotExist:
        raise NotFound("Account not found.", {"account_id": account_id})


def list_accounts(tenant, account_type: str = None, include_inactive: bool = True) -> list[Account]:
    """Accounts for a tenant ordered by code."""
    qs = Account.objects.filter(tenant=tenant)
    if account_type:
        qs = qs.filter(account_type=account_type)
    if not include_inactive:
        qs = qs.filter(status=Account.Status.ACTIVE)
    return list(qs.order_by("code"))


# =============================================================================
# Validation helpers
# =============================================================================

def _validate_type(account_type: str) -> None:
    if account_type not in Account.AccountType.values:
        raise ValidationError(
            f"Unknown account type: {account_type}",
            {"account_type": account_type, "allowed": list(Account.AccountType.values)},
        )


def _check_length(field_name: str, value: str) -> None:
    limit = Account._meta.get_field(field_name).max_length
    if len(value) > limit:
        raise ValidationError(
            f"Account {field_name} exceeds {limit} characters.",
            {"field": field_name, "max_length": limit, "length": len(value)},
        )


def _validate_code(tenant, code: str, exclude_id: int = None) -> None:
    if not code or not str(code).strip():
        raise ValidationError("Account code is required.")
    _check_length("code", str(code))
    qs = Account.objects.filter(tenant=tenant, code=code)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise DuplicateCode(f"Account code '{code}' already exists.", {"code": code})


def _resolve_parent(tenant, parent_id, account_type: str, account_id: int = None):
    """
    Load and validate a prospective parent.

    The parent must exist in the same tenant, share the child's statement
    family, and must not be the account itself or one of its descendants.
    """
    if parent_id is None:
        return None

    try:
        parent = Account.objects.get(pk=parent_id)
    except Account.DoesNotExist:
        raise InvalidParent("Parent account not found.", {"parent_id": parent_id})

    if parent.tenant_id != tenant.pk:
        raise InvalidParent("Parent account belongs to another tenant.", {"parent_id": parent_id})

    if not Account.types_compatible(parent.account_type, account_type):
        raise InvalidParent(
            f"Account type {account_type} cannot be placed under a {parent.account_type} account.",
            {"parent_id": parent_id, "parent_type": parent.account_type, "account_type": account_type},
        )

    if account_id is not None:
        # Walk up from the new parent; reaching the account means a cycle.
        parents = dict(Account.objects.filter(tenant=tenant).values_list("id", "parent_id"))
        current = parent.id
        seen = set()
        while current is not None and current not in seen:
            if current == account_id:
                raise InvalidParent(
                    "An account cannot be placed under itself or one of its descendants.",
                    {"parent_id": parent_id, "account_id": account_id},
                )
            seen.add(current)
            current = parents.get(current)

    return parent


def _save(account: Account, **kwargs) -> None:
    """Save inside a savepoint so a unique-code race surfaces as DuplicateCode."""
    try:
        with transaction.atomic(), registry_writes_allowed():
            account.save(**kwargs)
    except DjangoValidationError as e:
        raise ValidationError("Account failed validation.", e.message_dict)
    except IntegrityError:
        raise DuplicateCode(f"Account code '{account.code}' already exists.", {"code": account.code})


# =============================================================================
# Mutations
# =============================================================================

@transaction.atomic
def create_account(
    tenant,
    code: str,
    name: str,
    account_type: str,
    parent_id: int = None,
    description: str = "",
    is_system: bool = False,
) -> Account:
    """
    Create a new account in the chart of accounts.

    Args:
        tenant: The owning tenant
        code: Account code (unique per tenant)
        name: Account name
        account_type: One of Account.AccountType choices
        parent_id: Optional parent account ID (same tenant, same statement family)
        description: Free text
        is_system: True for seeded defaults that may never be deleted

    Raises:
        DuplicateCode, InvalidParent, ValidationError
    """
    _validate_type(account_type)
    if not name or not name.strip():
        raise ValidationError("Account name is required.")
    _check_length("name", name)
    _validate_code(tenant, code)
    parent = _resolve_parent(tenant, parent_id, account_type)

    account = Account(
        tenant=tenant,
        code=code,
        name=name,
        account_type=account_type,
        parent=parent,
        description=description,
        is_system=is_system,
    )
    _save(account)

    logger.info(
        "Account created",
        extra={"account_code": code, "account_type": account_type, "tenant_id": tenant.pk},
    )
    return account


@transaction.atomic
def setup_defaults(tenant) -> list[Account]:
    """
    Seed the standard school chart of accounts.

    Refuses to run when the tenant already has any account.
    """
    if Account.objects.filter(tenant=tenant).exists():
        raise AlreadyInitialized(
            "Chart of accounts already initialized.",
            {"tenant": tenant.slug},
        )

    created = []
    by_code = {}
    for code, name, account_type, parent_code in DEFAULT_CHART:
        parent = by_code.get(parent_code)
        account = create_account(
            tenant,
            code=code,
            name=name,
            account_type=account_type,
            parent_id=parent.id if parent else None,
            is_system=True,
        )
        by_code[code] = account
        created.append(account)

    logger.info(
        "Default chart of accounts seeded",
        extra={"tenant_id": tenant.pk, "account_count": len(created)},
    )
    return created


def _lock_account(tenant, account_id: int) -> Account:
    try:
        return Account.objects.select_for_update().get(tenant=tenant, pk=account_id)
    except Account.DoesNotExist:
        raise NotFound("Account not found.", {"account_id": account_id})


@transaction.atomic
def update_account(tenant, account_id: int, **changes) -> Account:
    """
    Update an existing account.

    Args:
        tenant: The owning tenant
        account_id: ID of account to update
        **changes: Any of name, code, parent_id, account_type, description

    Raises:
        NotFound, DuplicateCode, InvalidParent, AccountInUse, ValidationError
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Unsupported account fields: {', '.join(sorted(unknown))}",
            {"fields": sorted(unknown)},
        )

    account = _lock_account(tenant, account_id)
    updated = []

    new_type = changes.get("account_type", account.account_type)
    if new_type != account.account_type:
        _validate_type(new_type)
        allowed, reason = can_change_account_type(account)
        if not allowed:
            raise AccountInUse(reason, {"account_id": account.id})
        for child in account.children.all():
            if not Account.types_compatible(new_type, child.account_type):
                raise InvalidParent(
                    f"Child account {child.code} ({child.account_type}) is incompatible with {new_type}.",
                    {"account_id": account.id, "child_code": child.code},
                )
        account.account_type = new_type
        updated.append("account_type")

    if "code" in changes and changes["code"] != account.code:
        _validate_code(tenant, changes["code"], exclude_id=account.id)
        account.code = changes["code"]
        updated.append("code")

    if "parent_id" in changes and changes["parent_id"] != account.parent_id:
        account.parent = _resolve_parent(tenant, changes["parent_id"], new_type, account_id=account.id)
        updated.append("parent")
    elif "account_type" in updated and account.parent_id is not None:
        # Re-check the existing parent against the new type.
        _resolve_parent(tenant, account.parent_id, new_type, account_id=account.id)

    for name in ("name", "description"):
        if name in changes and changes[name] != getattr(account, name):
            if name == "name":
                if not (changes[name] or "").strip():
                    raise ValidationError("Account name is required.")
                _check_length("name", changes[name])
            setattr(account, name, changes[name])
            updated.append(name)

    if not updated:
        return account

    _save(account, update_fields=updated + ["updated_at"])
    logger.info(
        "Account updated",
        extra={"account_code": account.code, "fields": updated, "tenant_id": tenant.pk},
    )
    return account


def _set_status(tenant, account_id: int, status: str) -> Account:
    account = _lock_account(tenant, account_id)
    if account.status == status:
        return account
    account.status = status
    _save(account, update_fields=["status", "updated_at"])
    logger.info(
        "Account status changed",
        extra={"account_code": account.code, "status": status, "tenant_id": tenant.pk},
    )
    return account


@transaction.atomic
def deactivate_account(tenant, account_id: int) -> Account:
    """Stop new postings to an account. Its history stays in every report."""
    return _set_status(tenant, account_id, Account.Status.INACTIVE)


@transaction.atomic
def reactivate_account(tenant, account_id: int) -> Account:
    return _set_status(tenant, account_id, Account.Status.ACTIVE)


@transaction.atomic
def delete_account(tenant, account_id: int) -> None:
    """
    Physically delete an account.

    Only non-system accounts with no postings and no children qualify;
    anything else must be deactivated.
    """
    account = _lock_account(tenant, account_id)

    allowed, reason = can_delete_account(account)
    if not allowed:
        if account.is_system:
            raise SystemAccount(reason, {"account_id": account.id})
        raise AccountInUse(reason, {"account_id": account.id})

    code = account.code
    with registry_writes_allowed():
        account.delete()

    logger.info("Account deleted", extra={"account_code": code, "tenant_id": tenant.pk})
