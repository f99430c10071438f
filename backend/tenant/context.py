"""
Tenant context using contextvars for async-safety.

This module provides thread-safe and async-safe storage of the tenant
the current request or command is working for. The ledger core never
reads it to decide *which* tenant to touch (every operation takes the
tenant explicitly); it exists so log records and diagnostics can say
whose books were involved.

Usage:
    # In middleware
    set_tenant_context(tenant_id=12, slug="green-valley")

    # Context manager for explicit scoping
    with tenant_context(tenant):
        post_voucher(tenant, ...)
"""
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Optional, NamedTuple


class TenantContext(NamedTuple):
    """Immutable tenant context for a request."""

    tenant_id: int
    slug: str


# None means no tenant context (system operations)
_current_tenant: ContextVar[Optional[TenantContext]] = ContextVar(
    "current_tenant",
    default=None,
)


def get_current_tenant() -> Optional[TenantContext]:
    """
    Get the current tenant context.

    Returns None if no tenant context is set (e.g., during system operations
    or before middleware has processed the request).
    """
    return _current_tenant.get()


def set_tenant_context(tenant_id: int, slug: str) -> None:
    """
    Set the current tenant context.

    Called by middleware once the tenant in the URL has been resolved.
    """
    _current_tenant.set(TenantContext(tenant_id=tenant_id, slug=slug))


def clear_tenant_context() -> None:
    """
    Clear the current tenant context.

    Called by middleware in finally block to ensure cleanup.
    """
    _current_tenant.set(None)


@contextmanager
def tenant_context(tenant):
    """
    Context manager for setting tenant context from a Tenant instance.

    Automatically restores previous context on exit (even on exception).
    """
    token = _current_tenant.set(TenantContext(tenant_id=tenant.pk, slug=tenant.slug))
    try:
        yield
    finally:
        _current_tenant.reset(token)
