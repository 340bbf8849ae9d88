"""Repositories and the unit of work for the inventory kernel."""

from inventory_kernel.repositories.activity_repository import ActivityRepository
from inventory_kernel.repositories.inventory_record_repository import (
    InventoryRecordRepository,
)
from inventory_kernel.repositories.unit_of_work import UnitOfWork
from inventory_kernel.repositories.warehouse_repository import WarehouseRepository

__all__ = [
    "ActivityRepository",
    "InventoryRecordRepository",
    "UnitOfWork",
    "WarehouseRepository",
]
