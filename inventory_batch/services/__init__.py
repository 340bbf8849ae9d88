"""Bulk transfer execution."""

from inventory_batch.services.runner import BulkTransferRunner

__all__ = ["BulkTransferRunner"]
