"""
Domain DTOs -- request and response shapes of the inventory kernel.

Responsibility:
    Frozen dataclasses that cross the kernel boundary.  Services and
    selectors accept these as inputs and return them as outputs; ORM
    instances never leave the kernel.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by models/ (for to_dto),
    services/, selectors/ and outer packages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from inventory_kernel.domain import capacity


class ActivityType(str, Enum):
    """Kinds of quantity-affecting events recorded in the ledger."""

    RECEIVE = "RECEIVE"  # Record created with initial stock
    ADJUSTMENT = "ADJUSTMENT"  # Manual +/- correction
    TRANSFER = "TRANSFER"  # One leg of a warehouse-to-warehouse move
    UPDATE = "UPDATE"  # Record edited (quantity, volume or warehouse)
    DELETE = "DELETE"  # Record removed; quantity goes to zero


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class TransferRequest:
    """Move ``quantity`` units of ``sku`` between two warehouses."""

    sku: str
    source_warehouse_id: UUID
    destination_warehouse_id: UUID
    quantity: int
    notes: str | None = None


@dataclass(frozen=True)
class AdjustmentRequest:
    """Manual signed correction of one record's quantity."""

    item_id: UUID
    quantity_change: int
    notes: str | None = None


@dataclass(frozen=True)
class ItemDraft:
    """
    Full set of values for creating or replacing an inventory record.

    ``volume_per_unit=None`` means: policy default on create, keep the
    current value on update.
    """

    sku: str
    name: str
    warehouse_id: UUID
    quantity: int = 0
    description: str | None = None
    category: str | None = None
    brand: str | None = None
    unit_price: Decimal | None = None
    volume_per_unit: Decimal | None = None
    reorder_level: int | None = None
    warranty_end_date: date | None = None
    expiration_date: date | None = None
    barcode: str | None = None


@dataclass(frozen=True)
class WarehouseDraft:
    """Values for provisioning or updating a warehouse."""

    name: str
    max_capacity: Decimal
    location: str | None = None
    capacity_alert_threshold: Decimal | None = None


@dataclass(frozen=True)
class ActivityFilter:
    """
    Conjunctive ledger query.  Every ``None`` field is ignored.

    ``sku`` matches case-insensitively; ``warehouse_id`` matches either the
    source or the destination role; the time range is inclusive.
    """

    item_id: UUID | None = None
    sku: str | None = None
    activity_type: ActivityType | None = None
    performed_by_id: UUID | None = None
    performed_by_username: str | None = None
    warehouse_id: UUID | None = None
    occurred_from: datetime | None = None
    occurred_to: datetime | None = None


# =============================================================================
# Projections
# =============================================================================


@dataclass(frozen=True)
class WarehouseInfo:
    """Immutable projection of a warehouse and its capacity state."""

    id: UUID
    name: str
    location: str | None
    max_capacity: Decimal
    current_capacity: Decimal
    capacity_alert_threshold: Decimal
    is_active: bool

    @property
    def available_capacity(self) -> Decimal:
        return capacity.available_capacity(self.max_capacity, self.current_capacity)

    @property
    def utilization_percentage(self) -> Decimal:
        return capacity.utilization_percentage(self.max_capacity, self.current_capacity)

    @property
    def is_alert_triggered(self) -> bool:
        return capacity.is_alert_triggered(
            self.max_capacity, self.current_capacity, self.capacity_alert_threshold,
        )


@dataclass(frozen=True)
class InventoryRecordInfo:
    """Immutable projection of an inventory record."""

    id: UUID
    sku: str
    warehouse_id: UUID
    name: str
    description: str | None
    category: str | None
    brand: str | None
    quantity: int
    unit_price: Decimal | None
    volume_per_unit: Decimal
    reorder_level: int | None
    warranty_end_date: date | None
    expiration_date: date | None
    barcode: str | None

    @property
    def total_volume(self) -> Decimal:
        return capacity.record_volume(self.quantity, self.volume_per_unit)

    @property
    def is_low_stock(self) -> bool:
        return self.reorder_level is not None and self.quantity <= self.reorder_level


@dataclass(frozen=True)
class ActivityEntryInfo:
    """Immutable projection of one ledger entry."""

    id: UUID
    seq: int
    item_id: UUID | None
    sku: str
    activity_type: ActivityType
    quantity_change: int
    previous_quantity: int
    new_quantity: int
    occurred_at: datetime
    performed_by_id: UUID
    performed_by_username: str
    source_warehouse_id: UUID | None
    destination_warehouse_id: UUID | None
    notes: str | None


@dataclass(frozen=True)
class TransferResult:
    """
    Outcome of one successful transfer.

    Built from the arrival ledger entry: ``previous_quantity`` and
    ``new_quantity`` describe the destination record.
    """

    activity_id: UUID
    sku: str
    item_name: str
    quantity_transferred: int
    previous_quantity: int
    new_quantity: int
    source_warehouse_name: str
    destination_warehouse_name: str
    timestamp: datetime
    performed_by: str
    notes: str | None
    departure_activity_id: UUID | None = None


@dataclass(frozen=True)
class CapacityDiscrepancy:
    """A warehouse whose stored current_capacity differs from its records."""

    warehouse_id: UUID
    warehouse_name: str
    recorded_capacity: Decimal
    computed_capacity: Decimal

    @property
    def difference(self) -> Decimal:
        return self.recorded_capacity - self.computed_capacity
