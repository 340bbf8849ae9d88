"""
InventorySelector -- read access to inventory records.

Lookups by id and by (sku, warehouse), listings by warehouse, SKU and
category, and the stock-health views: low stock, expired and expiring soon.
"""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import InventoryRecordInfo
from inventory_kernel.domain.policy import DEFAULT_POLICY, InventoryPolicy
from inventory_kernel.exceptions import ResourceNotFoundError
from inventory_kernel.models.inventory_record import InventoryRecord
from inventory_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector[InventoryRecord]):
    """
    Selector for inventory record queries.

    Guarantees:
        - Read-only.
        - Listings are ordered by sku, then warehouse id.
    """

    def __init__(self, session: Session, policy: InventoryPolicy | None = None):
        super().__init__(session)
        self._policy = policy or DEFAULT_POLICY

    def _list(self, *criteria) -> list[InventoryRecordInfo]:
        stmt = (
            select(InventoryRecord)
            .where(*criteria)
            .order_by(InventoryRecord.sku, InventoryRecord.warehouse_id)
        )
        return [record.to_dto() for record in self.session.execute(stmt).scalars()]

    def get(self, item_id: UUID) -> InventoryRecordInfo:
        """
        Raises:
            ResourceNotFoundError: No record with that id.
        """
        record = self.session.get(InventoryRecord, item_id)
        if record is None:
            raise ResourceNotFoundError("InventoryRecord", str(item_id))
        return record.to_dto()

    def find(self, sku: str, warehouse_id: UUID) -> InventoryRecordInfo | None:
        record = self.session.execute(
            select(InventoryRecord).where(
                InventoryRecord.sku == sku,
                InventoryRecord.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        return record.to_dto() if record else None

    def list_all(self) -> list[InventoryRecordInfo]:
        return self._list()

    def by_warehouse(self, warehouse_id: UUID) -> list[InventoryRecordInfo]:
        return self._list(InventoryRecord.warehouse_id == warehouse_id)

    def by_sku(self, sku: str) -> list[InventoryRecordInfo]:
        """Every warehouse's record for one SKU."""
        return self._list(InventoryRecord.sku == sku)

    def by_category(self, category: str) -> list[InventoryRecordInfo]:
        return self._list(func.lower(InventoryRecord.category) == category.lower())

    def low_stock(self) -> list[InventoryRecordInfo]:
        """Records at or below their reorder level."""
        return self._list(
            InventoryRecord.reorder_level.is_not(None),
            InventoryRecord.quantity <= InventoryRecord.reorder_level,
        )

    def expired(self, as_of: date) -> list[InventoryRecordInfo]:
        """Records whose expiration date is strictly before ``as_of``."""
        return self._list(
            InventoryRecord.expiration_date.is_not(None),
            InventoryRecord.expiration_date < as_of,
        )

    def expiring_within(
        self,
        as_of: date,
        days: int | None = None,
    ) -> list[InventoryRecordInfo]:
        """
        Records expiring between ``as_of`` and ``as_of + days``, both inclusive.

        ``days`` defaults to the policy's expiring_soon_days.
        """
        if days is None:
            days = self._policy.expiring_soon_days
        return self._list(
            InventoryRecord.expiration_date.is_not(None),
            InventoryRecord.expiration_date >= as_of,
            InventoryRecord.expiration_date <= as_of + timedelta(days=days),
        )
