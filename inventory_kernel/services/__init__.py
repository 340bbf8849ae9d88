"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.activity_logger import ActivityLogger
from inventory_kernel.services.adjustment_service import AdjustmentService
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.services.transfer_coordinator import TransferCoordinator
from inventory_kernel.services.warehouse_service import WarehouseService

__all__ = [
    "ActivityLogger",
    "AdjustmentService",
    "SequenceService",
    "TransferCoordinator",
    "WarehouseService",
]
