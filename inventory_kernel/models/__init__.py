"""Domain models for the inventory kernel."""

from inventory_kernel.models.activity_entry import ActivityEntry, ActivityType
from inventory_kernel.models.inventory_record import DESCRIPTIVE_FIELDS, InventoryRecord
from inventory_kernel.models.sequence_counter import SequenceCounter
from inventory_kernel.models.warehouse import Warehouse

__all__ = [
    "ActivityEntry",
    "ActivityType",
    "DESCRIPTIVE_FIELDS",
    "InventoryRecord",
    "SequenceCounter",
    "Warehouse",
]
