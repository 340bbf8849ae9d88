"""
Module: inventory_kernel.db.types
Responsibility: Annotated type aliases and the precision helpers used for
    volumetric and percentage columns.  Centralizes precision so that every
    model, service and selector uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in capacity arithmetic.  Volumes are Decimal with
      at most VOLUME_DECIMAL_PLACES places, so quantity x volume_per_unit
      is stored without rounding and sums reconcile exactly against
      Warehouse.current_capacity.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String


# Volume in warehouse volume units (e.g. cubic feet), 9 decimal places
Volume = Annotated[Decimal, Numeric(38, 9)]

# Percentage 0..100 with two decimals
Percentage = Annotated[Decimal, Numeric(5, 2)]

# Stock-keeping unit identifier
Sku = Annotated[str, String(100)]


VOLUME_DECIMAL_PLACES = 9
PERCENT_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def decimal_places(value: Decimal) -> int:
    """
    Number of significant places after the decimal point.

    Trailing zeros do not count: ``Decimal("1.50000000000")`` has one.
    Non-finite values report 0.
    """
    _, digits, exponent = value.as_tuple()
    if not isinstance(exponent, int) or exponent >= 0 or not any(digits):
        return 0
    trailing_zeros = len(digits) - len("".join(map(str, digits)).rstrip("0"))
    return max(-exponent - trailing_zeros, 0)


def fits_volume_scale(value: Decimal) -> bool:
    """True if ``value`` is stored in a Volume column without rounding."""
    return decimal_places(value) <= VOLUME_DECIMAL_PLACES


def quantize(
    value: Decimal,
    decimal_places: int,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a Decimal to a fixed number of places (ROUND_HALF_UP by default)."""
    quantize_str = "1" if decimal_places == 0 else "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def round_percentage(value: Decimal) -> Decimal:
    """Round a utilization percentage to two places."""
    return quantize(value, PERCENT_DECIMAL_PLACES)
