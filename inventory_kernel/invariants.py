"""
Kernel Invariants Contract.

These invariants are structural law. They are enforced by the services,
the unit of work, check constraints and the immutability listeners. No
InventoryPolicy value may switch them off.

This module exists solely to declare these invariants explicitly.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Configuration may influence defaults (volume per unit, alert
    threshold) but never *whether* these rules apply.
    """

    CAPACITY_CONSISTENCY = "capacity_consistency"
    """Warehouse.current_capacity equals the sum of quantity x
    volume_per_unit over its records. Maintained by every mutation path
    and verified by CapacitySelector.reconcile()."""

    NON_NEGATIVE_QUANTITY = "non_negative_quantity"
    """No inventory record quantity may drop below zero. Enforced by
    service validation and a CHECK constraint."""

    LEDGER_ARITHMETIC = "ledger_arithmetic"
    """new_quantity == previous_quantity + quantity_change on every
    activity entry. Enforced by ActivityLogger and a CHECK constraint."""

    LEDGER_APPEND_ONLY = "ledger_append_only"
    """Activity entries are never updated or deleted. Enforced by ORM
    listeners (inventory_kernel.db.immutability) and PostgreSQL triggers."""

    ATOMIC_UNIT = "atomic_unit"
    """Each single-item operation and each transfer commits its record,
    warehouse and ledger writes together or not at all."""

    TRANSFER_CONSERVATION = "transfer_conservation"
    """A transfer moves exactly the requested quantity from source to
    destination; nothing else changes. The source releases quantity x its
    own volume_per_unit. A new destination record takes on that same
    volume; an existing one gains quantity x its own volume_per_unit, so
    the two capacity changes can differ."""

    SEQUENCE_MONOTONICITY = "sequence_monotonicity"
    """Activity entry sequence numbers are strictly monotonic. Enforced
    by SequenceService with a locked counter row."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "inventory_batch",
    "inventory_config",
)
