"""
InventoryPolicy -- the configurable defaults the kernel consumes.

Responsibility:
    Carries the handful of values that legitimately vary between
    deployments.  The kernel never reads configuration files; the
    ``inventory_config`` bridge builds an InventoryPolicy from YAML and
    hands it to the services.

Architecture position:
    Kernel > Domain -- pure, frozen value object.

Invariants enforced:
    None of the values here can disable a KernelInvariant.  They only pick
    defaults (volume per unit, alert threshold) and whether an extra
    admission check runs on transfers.
"""

from dataclasses import dataclass
from decimal import Decimal

from inventory_kernel.db.types import fits_volume_scale


@dataclass(frozen=True)
class InventoryPolicy:
    """
    Deployment-level inventory defaults.

    Attributes:
        default_volume_per_unit: Applied when a record is created without a
            volume per unit.  ``1`` makes unit count equal volume.
        default_alert_threshold: Capacity alert threshold (percent) for new
            warehouses that do not specify one.
        enforce_destination_capacity_on_transfer: When True, a transfer is
            rejected with CapacityExceededError if the destination would pass
            its max capacity.  Off by default: relocation does not create new
            stock, so the receiving side is not admission-checked.
        expiring_soon_days: Default look-ahead window for expiry queries.
    """

    default_volume_per_unit: Decimal = Decimal("1")
    default_alert_threshold: Decimal = Decimal("80.00")
    enforce_destination_capacity_on_transfer: bool = False
    expiring_soon_days: int = 30

    def __post_init__(self) -> None:
        if self.default_volume_per_unit < 0:
            raise ValueError("default_volume_per_unit cannot be negative")
        if not fits_volume_scale(self.default_volume_per_unit):
            raise ValueError("default_volume_per_unit has more places than a Volume column stores")
        if not (Decimal("0") <= self.default_alert_threshold <= Decimal("100")):
            raise ValueError("default_alert_threshold must be between 0 and 100")
        if self.expiring_soon_days < 0:
            raise ValueError("expiring_soon_days cannot be negative")


DEFAULT_POLICY = InventoryPolicy()
