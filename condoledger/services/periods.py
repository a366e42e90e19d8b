"""Billing period and money helpers shared by the ledger and the allocation engine."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from condoledger.core.config import settings
from condoledger.core.errors import ValidationError
from condoledger.models.shared import MONEY_PRECISION, MONEY_SCALE

PERIOD_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

# Largest integer part a money column can hold
MONEY_LIMIT = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE)


def validate_period(period: str) -> str:
    """Return ``period`` if it is a valid ``YYYY-MM`` string."""
    if not isinstance(period, str) or not PERIOD_PATTERN.match(period.strip()):
        raise ValidationError(f"Period '{period}' must be in YYYY-MM format", field="period")
    return period.strip()


def period_from_parts(year: int, month: int) -> str:
    """Build a ``YYYY-MM`` period from the legacy ``year``/``month`` pair."""
    return validate_period(f"{int(year):04d}-{int(month):02d}")


def to_money(value: Any, field: str = "amount") -> Decimal:
    """Coerce to a Decimal with exactly the configured number of places.

    Floats go through ``str`` so ``0.1`` stays ``0.10`` rather than the binary
    expansion. Values with more places than configured, or too large for a
    money column, are rejected rather than rounded.
    """
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from None
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)
    if abs(amount) >= MONEY_LIMIT:
        raise ValidationError(
            f"{field.capitalize()} {amount} is out of range (limit {MONEY_LIMIT:,})", field=field
        )

    places = settings.MONEY_PLACES
    try:
        exact = amount.quantize(Decimal(1).scaleb(-places))
    except InvalidOperation:
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from None
    if exact != amount:
        raise ValidationError(
            f"{field.capitalize()} {amount} has more than {places} decimal places", field=field
        )
    return exact


def positive_money(value: Any, field: str = "amount") -> Decimal:
    amount = to_money(value, field)
    if amount <= 0:
        raise ValidationError(f"{field.capitalize()} must be positive, got {amount}", field=field)
    return amount
