# accounting/exceptions.py
"""
Ledger errors.

Four families, each handled differently by callers:

- ValidationError: the request is malformed. Never retried; the caller
  fixes its input. Carries enough detail to do so.
- NotFound: the referenced voucher/account does not exist for the tenant.
- ConflictError: a transient race (sequence allocation). Retried inside
  the allocator; only surfaced once retries are exhausted.
- LedgerIntegrityError: the stored books contradict themselves. Never
  retried, never swallowed. The ledger may be corrupted and an operator
  has to look at it.
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    code = "ledger_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary for API responses and logging."""
        return {
            "error": self.code,
            "detail": str(self),
            "details": self.details,
        }


# =============================================================================
# Validation
# =============================================================================

class ValidationError(LedgerError):
    code = "validation_error"


class UnbalancedVoucher(ValidationError):
    code = "unbalanced_voucher"


class InvalidLine(ValidationError):
    code = "invalid_line"


class UnknownAccount(ValidationError):
    code = "unknown_account"


class DuplicateCode(ValidationError):
    code = "duplicate_code"


class InvalidParent(ValidationError):
    code = "invalid_parent"


class CycleDetected(ValidationError):
    code = "cycle_detected"


class AlreadyInitialized(ValidationError):
    code = "already_initialized"


class AlreadyVoided(ValidationError):
    code = "already_voided"


class CannotVoidReversal(ValidationError):
    code = "cannot_void_reversal"


class InvalidDateRange(ValidationError):
    code = "invalid_date_range"


class ClosedPeriod(ValidationError):
    code = "closed_period"


class AccountInUse(ValidationError):
    code = "account_in_use"


class SystemAccount(ValidationError):
    code = "system_account"


# =============================================================================
# Lookup
# =============================================================================

class NotFound(LedgerError):
    code = "not_found"


# =============================================================================
# Transient conflicts
# =============================================================================

class ConflictError(LedgerError):
    code = "conflict"


class SequenceConflict(ConflictError):
    code = "sequence_conflict"


# =============================================================================
# Integrity
# =============================================================================

class LedgerIntegrityError(LedgerError):
    """
    The persisted ledger is internally inconsistent.

    Raised when an aggregate that must balance by construction (trial
    balance columns, assets vs liabilities + equity) does not.
    """

    code = "ledger_integrity"
