"""Column types and defaults shared by the ledger models."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Numeric, String, TypeDecorator
from sqlalchemy.engine import Dialect

# Money columns: amounts up to 99,999,999.9999 in the building's currency
MONEY_PRECISION = 12
MONEY_SCALE = 4


def money_column_type() -> Numeric[Decimal]:
    return Numeric(MONEY_PRECISION, MONEY_SCALE)


class UUIDType(TypeDecorator[uuid.UUID]):
    """UUID stored as its 36 character string form on every backend."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return None
        return str(value if isinstance(value, uuid.UUID) else uuid.UUID(str(value)))

    def process_result_value(self, value: Any, dialect: Dialect) -> uuid.UUID | None:
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


def generate_uuid() -> uuid.UUID:
    return uuid.uuid4()


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_decimal(value: Any) -> Decimal:
    """Read a money column as ``Decimal``.

    Floats go through ``str`` so the value stays exact to the column scale.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))
