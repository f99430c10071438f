# accounting/money.py
"""
Minor-unit conversion.

The ledger stores and sums integers only. Decimal amounts exist at the
HTTP boundary and in reports, and are converted here using the tenant's
decimal_places.
"""

from decimal import Decimal, InvalidOperation

from django.conf import settings

from accounting.exceptions import InvalidLine


def decimal_places_for(tenant) -> int:
    places = getattr(tenant, "decimal_places", None)
    if places is None:
        return settings.LEDGER_CURRENCY_DECIMAL_PLACES
    return places


def to_minor_units(amount, decimal_places: int) -> int:
    """
    Convert a decimal amount ("1250.50") to integer minor units (125050).

    Raises InvalidLine if the amount is not a number or carries more
    precision than the currency allows. Nothing is rounded.
    """
    if amount is None or amount == "":
        return 0
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidLine(f"Invalid amount: {amount!r}.", {"amount": str(amount)})

    if not value.is_finite():
        raise InvalidLine(f"Invalid amount: {amount!r}.", {"amount": str(amount)})

    scaled = value.scaleb(decimal_places)
    if scaled != scaled.to_integral_value():
        raise InvalidLine(
            f"Amount {amount} has more than {decimal_places} decimal places.",
            {"amount": str(amount), "decimal_places": decimal_places},
        )
    return int(scaled)


def from_minor_units(value: int, decimal_places: int) -> Decimal:
    """Convert integer minor units back to a Decimal with fixed precision."""
    quantum = Decimal(1).scaleb(-decimal_places)
    return (Decimal(value).scaleb(-decimal_places)).quantize(quantum)
