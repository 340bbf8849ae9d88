"""
inventory_batch.domain.types -- frozen dataclasses for bulk transfers.

ZERO I/O.  Collections are tuples so results cannot be mutated after the
run that produced them.

Invariants enforced:
    - total == succeeded + failed.
    - succeeded_indices and the error indices partition 0..total-1, each in
      ascending order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from inventory_kernel.domain.dtos import TransferRequest, TransferResult
from inventory_kernel.exceptions import InvalidOperationError


class BulkRunStatus(str, Enum):
    """Overall outcome of a bulk run."""

    COMPLETED = "completed"  # Every request succeeded
    PARTIALLY_COMPLETED = "partially_completed"  # Some requests failed
    FAILED = "failed"  # No request succeeded


@dataclass(frozen=True)
class BulkTransferRequest:
    """
    An ordered, non-empty list of transfers.

    Raises:
        InvalidOperationError: If ``transfers`` is empty.
    """

    transfers: tuple[TransferRequest, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.transfers, tuple):
            object.__setattr__(self, "transfers", tuple(self.transfers))
        if not self.transfers:
            raise InvalidOperationError("Bulk transfer requires at least one transfer")

    @classmethod
    def of(cls, transfers: Sequence[TransferRequest]) -> BulkTransferRequest:
        return cls(transfers=tuple(transfers))


@dataclass(frozen=True)
class TransferError:
    """One failed request: its position in the input, its SKU and why."""

    index: int
    sku: str
    message: str
    code: str


@dataclass(frozen=True)
class BulkTransferResult:
    """Envelope returned for every bulk run, whatever the individual outcomes."""

    total: int
    succeeded: int
    failed: int
    results: tuple[TransferResult, ...] = field(default_factory=tuple)
    errors: tuple[TransferError, ...] = field(default_factory=tuple)
    succeeded_indices: tuple[int, ...] = field(default_factory=tuple)
    duration_ms: int = 0

    @property
    def status(self) -> BulkRunStatus:
        if self.failed == 0:
            return BulkRunStatus.COMPLETED
        if self.succeeded == 0:
            return BulkRunStatus.FAILED
        return BulkRunStatus.PARTIALLY_COMPLETED
