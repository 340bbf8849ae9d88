"""Pure request/result types for bulk transfers."""

from inventory_batch.domain.types import (
    BulkRunStatus,
    BulkTransferRequest,
    BulkTransferResult,
    TransferError,
)

__all__ = [
    "BulkRunStatus",
    "BulkTransferRequest",
    "BulkTransferResult",
    "TransferError",
]
