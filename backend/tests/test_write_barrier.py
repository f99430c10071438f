# tests/test_write_barrier.py
"""
Tests for write barrier enforcement.
"""

import pytest
from rest_framework import serializers

from accounting.models import Account, FiscalYear, Voucher, VoucherLine, VoucherSequence
from accounting.write_barrier import (
    current_write_context,
    ledger_writes_allowed,
    period_writes_allowed,
    registry_writes_allowed,
)


class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = ("tenant", "code", "name", "account_type")


def test_contexts_nest_and_unwind():
    assert current_write_context() is None
    with registry_writes_allowed():
        with ledger_writes_allowed():
            assert current_write_context() == "ledger"
        assert current_write_context() == "registry"
    assert current_write_context() is None


@pytest.mark.parametrize("model,context", [
    (Account, "registry"),
    (Voucher, "ledger"),
    (VoucherLine, "ledger"),
    (VoucherSequence, "ledger"),
    (FiscalYear, "period"),
])
def test_each_table_has_a_single_owning_context(model, context):
    assert model.WRITE_CONTEXTS == {context}


@pytest.mark.django_db
def test_direct_account_save_raises(tenant, cash_account):
    cash_account.name = "Renamed"
    with pytest.raises(RuntimeError, match="Direct save is only allowed"):
        cash_account.save()


@pytest.mark.django_db
def test_direct_create_in_serializer_raises(tenant):
    serializer = AccountSerializer(
        data={
            "tenant": tenant.id,
            "code": "1000",
            "name": "Cash",
            "account_type": "ASSET",
        },
    )
    serializer.is_valid(raise_exception=True)

    with pytest.raises(RuntimeError, match="Direct save is only allowed"):
        serializer.save()


@pytest.mark.django_db
def test_bulk_update_outside_context_raises(tenant, cash_account):
    with pytest.raises(RuntimeError, match="registry write context"):
        Account.objects.filter(pk=cash_account.pk).update(name="Bulk")


@pytest.mark.django_db
def test_wrong_context_is_rejected(tenant, cash_account):
    cash_account.name = "Renamed"
    with ledger_writes_allowed():
        with pytest.raises(RuntimeError):
            cash_account.save()


@pytest.mark.django_db
def test_sequence_and_fiscal_year_guarded(tenant):
    with pytest.raises(RuntimeError):
        VoucherSequence.objects.create(tenant=tenant, voucher_type="JV", next_value=1)

    with pytest.raises(RuntimeError):
        FiscalYear.objects.create(tenant=tenant, name="FY", start_date="2024-01-01", end_date="2024-12-31")

    with period_writes_allowed():
        FiscalYear.objects.create(tenant=tenant, name="FY", start_date="2024-01-01", end_date="2024-12-31")


@pytest.mark.django_db
class TestPostedVouchersAreImmutable:

    def test_voucher_line_update_raises_even_in_ledger_context(self, tuition_received):
        line = tuition_received.lines.first()
        line.debit = 1

        with ledger_writes_allowed():
            with pytest.raises(RuntimeError, match="append-only"):
                line.save()
            with pytest.raises(RuntimeError, match="append-only"):
                VoucherLine.objects.filter(pk=line.pk).update(debit=1)
            with pytest.raises(RuntimeError, match="append-only"):
                line.delete()

    def test_voucher_header_fields_cannot_change(self, tuition_received):
        tuition_received.description = "Edited"
        with ledger_writes_allowed():
            with pytest.raises(RuntimeError, match="immutable"):
                tuition_received.save()
            with pytest.raises(RuntimeError, match="immutable"):
                tuition_received.save(update_fields=["description"])

    def test_void_bookkeeping_needs_ledger_context(self, tuition_received):
        tuition_received.status = Voucher.Status.VOIDED
        with pytest.raises(RuntimeError, match="Direct save is only allowed"):
            tuition_received.save(update_fields=["status"])

        tuition_received.refresh_from_db()
        assert tuition_received.status == Voucher.Status.POSTED

    def test_voucher_delete_raises(self, tuition_received):
        with ledger_writes_allowed():
            with pytest.raises(RuntimeError, match="never deleted"):
                tuition_received.delete()
