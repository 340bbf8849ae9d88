"""
Capacity -- pure volumetric arithmetic.

Responsibility:
    The single place where record volume, available capacity, admission
    checks and utilization are computed.  Models, services and selectors
    all delegate here so that the same Decimal expression is used on every
    mutation path.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    capacity_consistency -- volumes are exact Decimal products; nothing is
    rounded before it is added to or subtracted from current_capacity.
"""

from decimal import Decimal

from inventory_kernel.db.types import round_percentage

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def record_volume(quantity: int, volume_per_unit: Decimal) -> Decimal:
    """Volume occupied by ``quantity`` units."""
    return volume_per_unit * Decimal(quantity)


def available_capacity(max_capacity: Decimal, current_capacity: Decimal) -> Decimal:
    """Remaining space; negative when a warehouse is over-filled by transfers."""
    return max_capacity - current_capacity


def would_exceed_capacity(
    max_capacity: Decimal,
    current_capacity: Decimal,
    additional_volume: Decimal,
) -> bool:
    """True if adding ``additional_volume`` would pass ``max_capacity``."""
    return current_capacity + additional_volume > max_capacity


def utilization_percentage(max_capacity: Decimal, current_capacity: Decimal) -> Decimal:
    """current / max x 100, rounded half-up to two places (0 for zero max)."""
    if max_capacity == ZERO:
        return round_percentage(ZERO)
    return round_percentage(current_capacity / max_capacity * HUNDRED)


def is_alert_triggered(
    max_capacity: Decimal,
    current_capacity: Decimal,
    threshold_percent: Decimal,
) -> bool:
    """True once utilization reaches the alert threshold."""
    return utilization_percentage(max_capacity, current_capacity) >= threshold_percent
