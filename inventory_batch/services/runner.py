"""
BulkTransferRunner -- per-request isolated execution of many transfers.

Contract:
    ``run(request, actor)`` hands each TransferRequest to the
    TransferCoordinator in input order and always returns a
    BulkTransferResult.  Request i failing does not stop request i+1 and
    does not undo requests 0..i-1.

Architecture: inventory_batch/services.  Imports from inventory_batch.domain
    and kernel services.

Invariants enforced:
    - Isolation per request: the coordinator opens its own ``uow.atomic()``
      for every request.  Called with no transaction open, each request is
      committed on its own.  Called inside a transaction the caller opened
      explicitly, each request becomes a SAVEPOINT and the caller decides
      the final commit.
    - total == succeeded + failed; results and errors keep input order.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from uuid import uuid4

from inventory_kernel.domain.actor import Actor
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import TransferRequest, TransferResult
from inventory_kernel.domain.policy import InventoryPolicy
from inventory_kernel.exceptions import InventoryKernelError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.repositories.unit_of_work import UnitOfWork
from inventory_kernel.services.transfer_coordinator import TransferCoordinator

from inventory_batch.domain.types import (
    BulkTransferRequest,
    BulkTransferResult,
    TransferError,
)

logger = get_logger("batch.runner")

UNEXPECTED_ERROR_CODE = "UNEXPECTED_ERROR"


class BulkTransferRunner:
    """Best-effort bulk transfer runner.

    Non-goals:
        - Does NOT retry failed requests.
        - Does NOT run requests in parallel; order is the input order.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        policy: InventoryPolicy | None = None,
        coordinator: TransferCoordinator | None = None,
    ):
        self._uow = uow
        self._coordinator = coordinator or TransferCoordinator(
            uow, clock=clock, policy=policy,
        )

    def run(self, request: BulkTransferRequest, actor: Actor) -> BulkTransferResult:
        """Execute every transfer in ``request``."""
        return self.run_transfers(request.transfers, actor)

    def run_transfers(
        self,
        transfers: Sequence[TransferRequest],
        actor: Actor,
    ) -> BulkTransferResult:
        """Execute ``transfers`` in order.  An empty sequence returns zeros."""
        start_time = time.monotonic()
        batch_id = uuid4()
        results: list[TransferResult] = []
        succeeded_indices: list[int] = []
        errors: list[TransferError] = []

        with LogContext.bind(
            batch_id=batch_id, actor_id=actor.actor_id, operation="bulk_transfer",
        ):
            logger.info(
                "bulk_transfer_started",
                extra={
                    "total": len(transfers),
                    "nested": self._uow.caller_owns_transaction(),
                },
            )

            for index, transfer in enumerate(transfers):
                try:
                    result = self._coordinator.transfer(transfer, actor)
                except InventoryKernelError as exc:
                    errors.append(
                        TransferError(
                            index=index, sku=transfer.sku, message=str(exc), code=exc.code,
                        )
                    )
                    logger.warning(
                        "bulk_transfer_item_failed",
                        extra={"index": index, "sku": transfer.sku, "error_code": exc.code},
                    )
                except Exception as exc:
                    errors.append(
                        TransferError(
                            index=index,
                            sku=transfer.sku,
                            message=str(exc),
                            code=UNEXPECTED_ERROR_CODE,
                        )
                    )
                    logger.exception(
                        "bulk_transfer_item_failed",
                        extra={
                            "index": index,
                            "sku": transfer.sku,
                            "error_code": UNEXPECTED_ERROR_CODE,
                        },
                    )
                else:
                    results.append(result)
                    succeeded_indices.append(index)

            duration_ms = int((time.monotonic() - start_time) * 1000)
            outcome = BulkTransferResult(
                total=len(transfers),
                succeeded=len(results),
                failed=len(errors),
                results=tuple(results),
                errors=tuple(errors),
                succeeded_indices=tuple(succeeded_indices),
                duration_ms=duration_ms,
            )

            logger.info(
                "bulk_transfer_completed",
                extra={
                    "total": outcome.total,
                    "succeeded": outcome.succeeded,
                    "failed": outcome.failed,
                    "status": outcome.status.value,
                    "duration_ms": duration_ms,
                },
            )
            return outcome
