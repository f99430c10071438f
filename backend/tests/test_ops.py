# tests/test_ops.py
"""
Tests for structured logging and health endpoints.
"""

import json
import logging

import pytest

from accounting.models import VoucherLine
from accounting.write_barrier import ledger_writes_allowed
from ops.logging_config import JsonFormatter, TenantContextFilter, get_logging_config
from tenant.context import get_current_tenant, tenant_context


def _record(**extra):
    record = logging.LogRecord("accounting.vouchers", logging.INFO, __file__, 10, "Voucher posted", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# =============================================================================
# Logging
# =============================================================================

class TestTenantContextFilter:

    def test_without_tenant(self):
        record = _record()
        assert TenantContextFilter().filter(record) is True
        assert record.tenant == "-"

    @pytest.mark.django_db
    def test_with_tenant(self, tenant):
        record = _record()
        with tenant_context(tenant):
            TenantContextFilter().filter(record)
        assert record.tenant == "green-valley"
        assert get_current_tenant() is None


class TestJsonFormatter:

    def test_extra_fields_are_emitted(self):
        record = _record(voucher_no="CPV-000123", amount=5000, tenant="green-valley")
        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "accounting.vouchers"
        assert entry["message"] == "Voucher posted"
        assert entry["extra"] == {"voucher_no": "CPV-000123", "amount": 5000, "tenant": "green-valley"}

    def test_unserializable_extra_is_stringified(self):
        entry = json.loads(JsonFormatter().format(_record(when=object)))
        assert entry["extra"]["when"] == str(object)


def test_logging_config_formats(monkeypatch):
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    assert "json" in get_logging_config(debug=False)["formatters"]
    assert "verbose" in get_logging_config(debug=True)["formatters"]

    monkeypatch.setenv("LOG_FORMAT", "json")
    assert "json" in get_logging_config(debug=True)["formatters"]


# =============================================================================
# Health
# =============================================================================

@pytest.mark.django_db
class TestHealthEndpoints:

    def test_live(self, client):
        response = client.get("/_health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_ready(self, client):
        response = client.get("/_health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_full_healthy(self, client, tuition_received):
        response = client.get("/_health/full")
        body = response.json()

        assert response.status_code == 200
        assert body["checks"]["ledger_integrity"]["tenants_checked"] == 1
        assert body["checks"]["ledger_integrity"]["failures"] == []

    def test_full_reports_corrupted_tenant(self, client, tenant, cash_account, tuition_received):
        with ledger_writes_allowed():
            VoucherLine.objects.create(
                voucher=tuition_received,
                tenant=tenant,
                line_no=3,
                account=cash_account,
                debit=100,
            )

        response = client.get("/_health/full")
        body = response.json()

        assert response.status_code == 503
        assert body["status"] == "unhealthy"
        failure = body["checks"]["ledger_integrity"]["failures"][0]
        assert failure["tenant"] == "green-valley"
        assert failure["error"] == "ledger_integrity"
