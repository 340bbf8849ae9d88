"""InventoryRecord repository: (sku, warehouse) lookups and row locks."""

from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.models.inventory_record import InventoryRecord
from inventory_kernel.repositories.base import BaseRepository


class InventoryRecordRepository(BaseRepository[InventoryRecord]):
    """Persistence access for InventoryRecord rows."""

    model = InventoryRecord

    def get_by_sku_and_warehouse(
        self,
        sku: str,
        warehouse_id: UUID,
        for_update: bool = False,
    ) -> InventoryRecord | None:
        """Return the record for (sku, warehouse), optionally row-locked."""
        stmt = select(InventoryRecord).where(
            InventoryRecord.sku == sku,
            InventoryRecord.warehouse_id == warehouse_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_warehouse(self, warehouse_id: UUID) -> list[InventoryRecord]:
        return list(
            self.session.execute(
                select(InventoryRecord)
                .where(InventoryRecord.warehouse_id == warehouse_id)
                .order_by(InventoryRecord.sku)
            ).scalars()
        )

    def count_in_warehouse(self, warehouse_id: UUID) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(InventoryRecord)
            .where(InventoryRecord.warehouse_id == warehouse_id)
        ).scalar_one()
