"""Warehouse repository: lookups and ordered row locks for the capacity ledger."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.repositories.base import BaseRepository


class WarehouseRepository(BaseRepository[Warehouse]):
    """Persistence access for Warehouse rows."""

    model = Warehouse

    def get_by_name(self, name: str) -> Warehouse | None:
        return self.session.execute(
            select(Warehouse).where(Warehouse.name == name)
        ).scalar_one_or_none()

    def exists_by_name(self, name: str, exclude_id: UUID | None = None) -> bool:
        stmt = select(func.count()).select_from(Warehouse).where(Warehouse.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Warehouse.id != exclude_id)
        return self.session.execute(stmt).scalar_one() > 0

    def lock_many(self, warehouse_ids: Iterable[UUID]) -> dict[UUID, Warehouse]:
        """
        Lock several warehouse rows in ascending id order.

        Every multi-warehouse operation goes through here so that two
        transactions touching the same pair always lock in the same order.
        Missing ids are simply absent from the returned mapping.
        """
        locked: dict[UUID, Warehouse] = {}
        for warehouse_id in sorted(set(warehouse_ids), key=str):
            warehouse = self.get_for_update(warehouse_id)
            if warehouse is not None:
                locked[warehouse_id] = warehouse
        return locked

    def list_all(self, active_only: bool = False) -> list[Warehouse]:
        stmt = select(Warehouse)
        if active_only:
            stmt = stmt.where(Warehouse.is_active.is_(True))
        return list(self.session.execute(stmt.order_by(Warehouse.name)).scalars())
