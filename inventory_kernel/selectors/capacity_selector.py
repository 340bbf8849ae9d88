"""
CapacitySelector -- warehouse capacity snapshots, alerts and reconciliation.

Responsibility:
    Reads the capacity ledger.  ``reconcile()`` recomputes each warehouse's
    used volume from its inventory records and reports every warehouse
    whose stored ``current_capacity`` differs.

Invariants enforced:
    capacity_consistency -- this is the check for it.  An empty
        reconciliation means every warehouse's ledger row agrees with its
        records.

Audit relevance:
    A non-empty reconciliation is logged at WARNING with each discrepancy.
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain import capacity
from inventory_kernel.domain.dtos import CapacityDiscrepancy, WarehouseInfo
from inventory_kernel.exceptions import ResourceNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_record import InventoryRecord
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.capacity")


class CapacitySelector(BaseSelector[Warehouse]):
    """Selector for warehouse capacity state."""

    def __init__(self, session: Session):
        super().__init__(session)

    def get(self, warehouse_id: UUID) -> WarehouseInfo:
        """
        Raises:
            ResourceNotFoundError: No warehouse with that id.
        """
        warehouse = self.session.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise ResourceNotFoundError("Warehouse", str(warehouse_id))
        return warehouse.to_dto()

    def get_by_name(self, name: str) -> WarehouseInfo | None:
        warehouse = self.session.execute(
            select(Warehouse).where(Warehouse.name == name)
        ).scalar_one_or_none()
        return warehouse.to_dto() if warehouse else None

    def snapshots(self, active_only: bool = False) -> list[WarehouseInfo]:
        """Every warehouse's capacity state, ordered by name."""
        stmt = select(Warehouse).order_by(Warehouse.name)
        if active_only:
            stmt = stmt.where(Warehouse.is_active.is_(True))
        return [w.to_dto() for w in self.session.execute(stmt).scalars()]

    def alerts(self) -> list[WarehouseInfo]:
        """Active warehouses whose utilization has reached their alert threshold."""
        return [info for info in self.snapshots(active_only=True) if info.is_alert_triggered]

    def computed_usage(self) -> dict[UUID, Decimal]:
        """Sum of quantity x volume_per_unit per warehouse, from the records."""
        usage: dict[UUID, Decimal] = defaultdict(lambda: Decimal("0"))
        rows = self.session.execute(
            select(
                InventoryRecord.warehouse_id,
                InventoryRecord.quantity,
                InventoryRecord.volume_per_unit,
            )
        )
        for warehouse_id, quantity, volume_per_unit in rows:
            usage[warehouse_id] += capacity.record_volume(quantity, volume_per_unit)
        return dict(usage)

    def reconcile(self) -> list[CapacityDiscrepancy]:
        """Warehouses whose stored current_capacity disagrees with their records."""
        usage = self.computed_usage()
        discrepancies = []
        for warehouse in self.session.execute(
            select(Warehouse).order_by(Warehouse.name)
        ).scalars():
            computed = usage.get(warehouse.id, Decimal("0"))
            if computed != warehouse.current_capacity:
                discrepancies.append(
                    CapacityDiscrepancy(
                        warehouse_id=warehouse.id,
                        warehouse_name=warehouse.name,
                        recorded_capacity=warehouse.current_capacity,
                        computed_capacity=computed,
                    )
                )

        if discrepancies:
            logger.warning(
                "capacity_reconciliation_failed",
                extra={
                    "discrepancy_count": len(discrepancies),
                    "warehouses": [d.warehouse_name for d in discrepancies],
                },
            )
        return discrepancies
