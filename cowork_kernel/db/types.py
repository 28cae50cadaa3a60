"""
Module: cowork_kernel.db.types
Responsibility: Money and timestamp helpers shared by models, calculations
    and services.
Architecture position: Kernel > DB.  MUST NOT import from outer layers.

Invariants enforced:
    - No floats for rent.  Amounts are Decimal with explicit precision.
    - round_money() is the only sanctioned rounding function for amounts
      shown to customers.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized with the given rounding mode.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalise a datetime read back from the database to aware UTC.

    Backends without timezone support (SQLite) return naive values that
    were written as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
