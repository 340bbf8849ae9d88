"""
Inventory Kernel

A warehouse stock engine that keeps three facts consistent:
- Per-(SKU, warehouse) quantities
- Volumetric capacity usage of every warehouse
- An append-only activity ledger explaining each quantity change
"""

__version__ = "0.1.0"
