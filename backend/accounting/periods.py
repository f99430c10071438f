# accounting/periods.py
"""
Fiscal years.

A school's fiscal year ("Fiscal Year 2025-26") tags every voucher dated
inside it. Closing a year blocks further postings into it, reversals
included. Dates that fall outside every configured year post freely.
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.exceptions import InvalidDateRange, NotFound, ValidationError
from accounting.models import FiscalYear
from accounting.write_barrier import period_writes_allowed

logger = logging.getLogger(__name__)


def list_fiscal_years(tenant) -> list[FiscalYear]:
    return list(FiscalYear.objects.filter(tenant=tenant).order_by("start_date"))


def get_fiscal_year(tenant, fiscal_year_id: int) -> FiscalYear:
    try:
        return FiscalYear.objects.get(tenant=tenant, pk=fiscal_year_id)
    except FiscalYear.DoesNotExist:
        raise NotFound("Fiscal year not found.", {"fiscal_year_id": fiscal_year_id})


def fiscal_year_for(tenant, value) -> FiscalYear | None:
    """The tenant's fiscal year containing `value`, or None."""
    return (
        FiscalYear.objects.filter(tenant=tenant, start_date__lte=value, end_date__gte=value)
        .order_by("start_date")
        .first()
    )


@transaction.atomic
def create_fiscal_year(tenant, name: str, start_date, end_date) -> FiscalYear:
    """
    Create a fiscal year.

    Raises:
        InvalidDateRange: start_date is after end_date
        ValidationError: the range overlaps an existing year or the name is taken
    """
    if start_date > end_date:
        raise InvalidDateRange(
            "Fiscal year start date is after its end date.",
            {"start_date": str(start_date), "end_date": str(end_date)},
        )
    if not name or not name.strip():
        raise ValidationError("Fiscal year name is required.")

    overlapping = FiscalYear.objects.filter(
        tenant=tenant,
        start_date__lte=end_date,
        end_date__gte=start_date,
    ).first()
    if overlapping is not None:
        raise ValidationError(
            f"Fiscal year overlaps {overlapping.name}.",
            {"overlaps": overlapping.name},
        )

    try:
        with transaction.atomic(), period_writes_allowed():
            fiscal_year = FiscalYear.objects.create(
                tenant=tenant,
                name=name,
                start_date=start_date,
                end_date=end_date,
            )
    except IntegrityError:
        raise ValidationError(f"Fiscal year '{name}' already exists.", {"name": name})

    logger.info(
        "Fiscal year created",
        extra={"tenant_id": tenant.pk, "fiscal_year": name},
    )
    return fiscal_year


def _set_closed(tenant, fiscal_year_id: int, closed: bool) -> FiscalYear:
    try:
        fiscal_year = FiscalYear.objects.select_for_update().get(tenant=tenant, pk=fiscal_year_id)
    except FiscalYear.DoesNotExist:
        raise NotFound("Fiscal year not found.", {"fiscal_year_id": fiscal_year_id})

    if fiscal_year.is_closed == closed:
        return fiscal_year

    fiscal_year.is_closed = closed
    fiscal_year.closed_at = timezone.now() if closed else None
    with period_writes_allowed():
        fiscal_year.save(update_fields=["is_closed", "closed_at"])

    logger.info(
        "Fiscal year closed" if closed else "Fiscal year reopened",
        extra={"tenant_id": tenant.pk, "fiscal_year": fiscal_year.name},
    )
    return fiscal_year


@transaction.atomic
def close_fiscal_year(tenant, fiscal_year_id: int) -> FiscalYear:
    return _set_closed(tenant, fiscal_year_id, True)


@transaction.atomic
def reopen_fiscal_year(tenant, fiscal_year_id: int) -> FiscalYear:
    return _set_closed(tenant, fiscal_year_id, False)
