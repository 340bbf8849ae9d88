"""Selectors for the inventory kernel (read side)."""

from inventory_kernel.selectors.activity_selector import ActivitySelector
from inventory_kernel.selectors.capacity_selector import CapacitySelector
from inventory_kernel.selectors.inventory_selector import InventorySelector

__all__ = [
    "ActivitySelector",
    "CapacitySelector",
    "InventorySelector",
]
