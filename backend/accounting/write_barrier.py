# accounting/write_barrier.py
"""
Write contexts for ledger tables.

Each ledger table has one owner, named by the context it must push:

    "registry"  Account               (accounting.registry)
    "ledger"    Voucher, VoucherLine,  (accounting.vouchers, accounting.sequences)
                VoucherSequence
    "period"    FiscalYear            (accounting.periods)

Models refuse writes unless the owning component has pushed its context,
so no other code path can change balances. Contexts nest; only the
innermost one counts.
"""

from contextlib import contextmanager
import threading


_state = threading.local()


def _context_stack() -> list[str]:
    stack = getattr(_state, "write_context_stack", None)
    if stack is None:
        stack = []
        _state.write_context_stack = stack
    return stack


def current_write_context() -> str | None:
    stack = _context_stack()
    return stack[-1] if stack else None


def write_context_allowed(allowed_contexts: set[str]) -> bool:
    ctx = current_write_context()
    if ctx is None:
        return False
    return ctx in allowed_contexts


@contextmanager
def _push_write_context(name: str):
    stack = _context_stack()
    stack.append(name)
    try:
        yield
    finally:
        stack.pop()


@contextmanager
def registry_writes_allowed():
    with _push_write_context("registry"):
        yield


@contextmanager
def ledger_writes_allowed():
    with _push_write_context("ledger"):
        yield


@contextmanager
def period_writes_allowed():
    with _push_write_context("period"):
        yield
