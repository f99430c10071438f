# accounting/policies.py
"""
Business policy functions for ledger operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that is the service module's job.

Usage:
    from accounting.policies import can_delete_account

    allowed, reason = can_delete_account(account)
    if not allowed:
        raise AccountInUse(reason)

Design Principles:
1. Policies are pure functions (no side effects)
2. Policies return (bool, str) tuples for clear error messages
3. Policies check ONE thing conceptually
4. Service modules compose policies as needed
"""


def has_postings(account) -> bool:
    return account.voucher_lines.exists()


# =============================================================================
# Account Policies
# =============================================================================

def can_delete_account(account) -> tuple[bool, str]:
    """
    Check if an account can be deleted.

    Returns:
        (True, "") if allowed
        (False, reason) if not allowed

    Rules:
    - Cannot be a system account
    - Cannot have postings (deactivate instead)
    - Cannot have child accounts
    """
    if account.is_system:
        return False, f"Cannot delete system account: {account.code}"

    if has_postings(account):
        return False, "Cannot delete an account that has transactions. Deactivate it instead."

    if account.children.exists():
        return False, "Cannot delete an account that has child accounts."

    return True, ""


def can_change_account_type(account) -> tuple[bool, str]:
    """
    Check if account type can be changed.

    Rules:
    - Cannot change type once the account has postings
    """
    if has_postings(account):
        return False, "Cannot change type of an account with transactions."

    return True, ""


def can_post_to_account(account) -> tuple[bool, str]:
    """
    Check if voucher lines can be posted to this account.

    Rules:
    - Cannot post to inactive accounts
    """
    if not account.is_active:
        return False, f"Cannot post to inactive account: {account.code}"

    return True, ""


# =============================================================================
# Period Policies
# =============================================================================

def can_post_to_date(fiscal_year) -> tuple[bool, str]:
    """
    Check if a voucher may be dated inside the given fiscal year.

    Dates outside every configured fiscal year are allowed.
    """
    if fiscal_year is not None and fiscal_year.is_closed:
        return False, f"Fiscal year {fiscal_year.name} is closed."
    return True, ""


# =============================================================================
# Voucher Policies
# =============================================================================

def can_void_voucher(voucher) -> tuple[bool, str]:
    """
    Check if a voucher can be voided.

    Rules:
    - Must be POSTED (voiding is one-way)
    - Cannot be a reversing voucher itself
    """
    if voucher.is_voided:
        return False, f"Voucher {voucher.voucher_no} is already voided."

    if voucher.is_reversal:
        return False, f"Voucher {voucher.voucher_no} is a reversal and cannot be voided."

    return True, ""
