# tests/conftest.py
"""
Pytest fixtures for ledger tests.

Accounts are created through the registry and vouchers through the
voucher store, the same way production code does; the write barrier
rejects anything else.
"""

from datetime import date

import pytest
from rest_framework.test import APIClient

from accounting.models import Account
from accounting.registry import create_account
from accounting.vouchers import VoucherLineInput, post_voucher
from tenant.models import Tenant


# =============================================================================
# Tenant Fixtures
# =============================================================================

@pytest.fixture
def tenant(db):
    """Create a test school."""
    return Tenant.objects.create(
        slug="green-valley",
        name="Green Valley School",
        currency="PKR",
        decimal_places=2,
    )


@pytest.fixture
def second_tenant(db):
    """Create a second school for multi-tenant tests."""
    return Tenant.objects.create(
        slug="river-side",
        name="River Side School",
        currency="PKR",
        decimal_places=2,
    )


# =============================================================================
# Account Fixtures
# =============================================================================

@pytest.fixture
def cash_account(tenant):
    return create_account(tenant, "1000", "Cash", Account.AccountType.ASSET)


@pytest.fixture
def bank_account(tenant):
    return create_account(tenant, "1100", "Bank", Account.AccountType.ASSET)


@pytest.fixture
def payable_account(tenant):
    return create_account(tenant, "2000", "Accounts Payable", Account.AccountType.LIABILITY)


@pytest.fixture
def capital_account(tenant):
    return create_account(tenant, "3000", "Capital", Account.AccountType.EQUITY)


@pytest.fixture
def tuition_account(tenant):
    return create_account(tenant, "4000", "Tuition Income", Account.AccountType.INCOME)


@pytest.fixture
def salary_account(tenant):
    return create_account(tenant, "5000", "Salary Expense", Account.AccountType.EXPENSE)


# =============================================================================
# Voucher Helpers
# =============================================================================

@pytest.fixture
def post(tenant):
    """
    Post a voucher from (account, debit, credit) tuples.

        post("JV", date(2024, 1, 5), (cash, 5000, 0), (tuition, 0, 5000))
    """

    def _post(voucher_type, value_date, *lines, description="Test voucher", on_tenant=None):
        return post_voucher(
            on_tenant or tenant,
            voucher_type,
            value_date,
            description,
            [
                VoucherLineInput(account_id=account.id, debit=debit, credit=credit)
                for account, debit, credit in lines
            ],
        )

    return _post


@pytest.fixture
def tuition_received(post, cash_account, tuition_account):
    """JV on 2024-01-05: Cash Dr 5000 / Tuition Income Cr 5000."""
    return post(
        "JV",
        date(2024, 1, 5),
        (cash_account, 5000, 0),
        (tuition_account, 0, 5000),
        description="January tuition",
    )


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def api_base(tenant):
    return f"/api/tenants/{tenant.slug}/accounting"
