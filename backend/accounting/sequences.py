# accounting/sequences.py
"""
Gapless voucher numbering.

One VoucherSequence row per (tenant, voucher type). The counter is
advanced inside the posting transaction, so a post that rolls back also
rolls back its number and the sequence never has holes.

The increment is a compare-and-swap:

    UPDATE ... SET next_value = n + 1 WHERE id = ? AND next_value = n

Losing the race updates zero rows; the allocator re-reads and tries
again, up to LEDGER_SEQUENCE_MAX_RETRIES times.
"""

import logging

from django.conf import settings
from django.db import IntegrityError, connection, transaction
from django.utils import timezone

from accounting.exceptions import SequenceConflict
from accounting.models import VoucherSequence
from accounting.write_barrier import ledger_writes_allowed

logger = logging.getLogger(__name__)


def format_voucher_no(voucher_type: str, number: int) -> str:
    """CPV + 123 -> "CPV-000123"."""
    width = settings.LEDGER_VOUCHER_NO_WIDTH
    return f"{voucher_type}-{number:0{width}d}"


def _counter(tenant, voucher_type: str) -> VoucherSequence:
    try:
        return VoucherSequence.objects.get(tenant=tenant, voucher_type=voucher_type)
    except VoucherSequence.DoesNotExist:
        pass

    # First voucher of this type. Another transaction may be creating the
    # same row; the savepoint keeps the outer transaction usable if it wins.
    try:
        with transaction.atomic():
            return VoucherSequence.objects.create(
                tenant=tenant,
                voucher_type=voucher_type,
                next_value=1,
            )
    except IntegrityError:
        return VoucherSequence.objects.get(tenant=tenant, voucher_type=voucher_type)


def next_number(tenant, voucher_type: str) -> int:
    """
    Allocate the next number for (tenant, voucher_type).

    Must be called inside the transaction that persists the voucher.

    Raises:
        SequenceConflict: every compare-and-swap attempt lost its race
    """
    if not connection.in_atomic_block:
        raise RuntimeError("next_number must run inside the posting transaction.")

    max_retries = settings.LEDGER_SEQUENCE_MAX_RETRIES

    with ledger_writes_allowed():
        for attempt in range(1, max_retries + 1):
            counter = _counter(tenant, voucher_type)
            current = counter.next_value
            swapped = VoucherSequence.objects.filter(
                pk=counter.pk,
                next_value=current,
            ).update(next_value=current + 1, updated_at=timezone.now())

            if swapped == 1:
                return current

            logger.warning(
                "Voucher sequence compare-and-swap lost, retrying",
                extra={
                    "tenant_id": tenant.pk,
                    "voucher_type": voucher_type,
                    "attempt": attempt,
                    "expected_value": current,
                },
            )

    logger.error(
        "Voucher sequence retries exhausted",
        extra={"tenant_id": tenant.pk, "voucher_type": voucher_type, "attempts": max_retries},
    )
    raise SequenceConflict(
        f"Could not allocate a {voucher_type} number after {max_retries} attempts.",
        {"voucher_type": voucher_type, "attempts": max_retries},
    )
