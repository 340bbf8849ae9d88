"""
TransferCoordinator -- atomic two-sided stock movement between warehouses.

Responsibility:
    Moves ``quantity`` units of a SKU from a source warehouse to a
    destination warehouse.  Decrements the source record, increments (or
    creates) the destination record, moves the volume between the two
    capacity ledgers and appends a departure and an arrival entry.

Architecture position:
    Kernel > Services.  Called directly by adapters and once per request by
    ``inventory_batch.services.runner.BulkTransferRunner``.

Invariants enforced:
    transfer_conservation -- the source loses exactly what the destination
        gains; no other record changes.
    capacity_consistency -- each warehouse's current_capacity moves by the
        volume its own record gained or lost.
    atomic_unit -- every write happens in one ``uow.atomic()`` block.
    - Lock order: both warehouse rows in ascending id order, then the
      source record, then the destination record.  Opposite-direction
      transfers between the same pair therefore cannot deadlock.

Failure modes (checked in this order, each with zero side effects):
    0. InvalidOperationError: quantity <= 0.
    1. InvalidOperationError: source == destination.
    2. ResourceNotFoundError / InvalidOperationError: unknown or inactive
       warehouse (source checked before destination).
    3. ResourceNotFoundError: no record for the SKU at the source.
    4. InsufficientStockError: source holds fewer units than requested.
    5. CapacityExceededError: destination full, only when the policy's
       ``enforce_destination_capacity_on_transfer`` is on.

Audit relevance:
    Two TRANSFER entries per movement, both naming both warehouses.  The
    TransferResult is built from the arrival entry.
"""

from uuid import UUID

from inventory_kernel.domain import capacity
from inventory_kernel.domain.actor import Actor
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import ActivityType, TransferRequest, TransferResult
from inventory_kernel.domain.policy import InventoryPolicy
from inventory_kernel.exceptions import (
    CapacityExceededError,
    InsufficientStockError,
    InvalidOperationError,
    InventoryKernelError,
    ResourceNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.inventory_record import InventoryRecord
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.repositories.unit_of_work import UnitOfWork
from inventory_kernel.services.activity_logger import (
    ActivityLogger,
    transfer_in_note,
    transfer_out_note,
)
from inventory_kernel.services.base import BaseService

logger = get_logger("services.transfer")


class TransferCoordinator(BaseService):
    """
    Executes one warehouse-to-warehouse transfer as a single atomic unit.

    Contract:
        ``transfer(request, actor)`` either returns a TransferResult with
        every write committed (or released to the caller's outer
        transaction), or raises an InventoryKernelError with nothing
        written.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        policy: InventoryPolicy | None = None,
        activity_logger: ActivityLogger | None = None,
    ):
        super().__init__(uow, clock=clock, policy=policy)
        self._activity = activity_logger or ActivityLogger(uow.session, self._clock)

    def _active_warehouse(
        self,
        locked: dict[UUID, Warehouse],
        warehouse_id: UUID,
        role: str,
    ) -> Warehouse:
        warehouse = locked.get(warehouse_id)
        if warehouse is None:
            raise ResourceNotFoundError("Warehouse", str(warehouse_id))
        if not warehouse.is_active:
            raise InvalidOperationError(
                f"{role} warehouse '{warehouse.name}' is not active"
            )
        return warehouse

    def transfer(self, request: TransferRequest, actor: Actor) -> TransferResult:
        """
        Move stock from the source warehouse to the destination warehouse.

        Postconditions:
            - source record quantity decreased by ``request.quantity``.
            - destination record exists and increased by the same amount;
              a new destination record copies the source's descriptive
              attributes.
            - Two TRANSFER ledger entries (departure, arrival).
        """
        quantity = request.quantity
        with LogContext.bind(
            operation="transfer", sku=request.sku, actor_id=actor.actor_id,
        ):
            try:
                result = self._transfer(request, actor)
            except InventoryKernelError as exc:
                logger.warning(
                    "transfer_rejected",
                    extra={
                        "source_warehouse_id": str(request.source_warehouse_id),
                        "destination_warehouse_id": str(request.destination_warehouse_id),
                        "quantity": quantity,
                        "error_code": exc.code,
                        "reason": str(exc),
                    },
                )
                raise

            logger.info(
                "transfer_completed",
                extra={
                    "source_warehouse": result.source_warehouse_name,
                    "destination_warehouse": result.destination_warehouse_name,
                    "quantity": quantity,
                    "activity_id": str(result.activity_id),
                },
            )
            return result

    def _transfer(self, request: TransferRequest, actor: Actor) -> TransferResult:
        quantity = request.quantity
        if quantity <= 0:
            raise InvalidOperationError("Transfer quantity must be positive")
        if request.source_warehouse_id == request.destination_warehouse_id:
            raise InvalidOperationError(
                "Source and destination warehouses must be different"
            )

        with self.uow.atomic("transfer"):
            locked = self.uow.warehouses.lock_many(
                [request.source_warehouse_id, request.destination_warehouse_id]
            )
            source = self._active_warehouse(locked, request.source_warehouse_id, "Source")
            destination = self._active_warehouse(
                locked, request.destination_warehouse_id, "Destination",
            )

            source_record = self.uow.records.get_by_sku_and_warehouse(
                request.sku, source.id, for_update=True,
            )
            if source_record is None:
                raise ResourceNotFoundError(
                    "InventoryRecord",
                    f"SKU '{request.sku}' in source warehouse '{source.name}'",
                )
            if source_record.quantity < quantity:
                raise InsufficientStockError(request.sku, source_record.quantity, quantity)

            destination_record = self.uow.records.get_by_sku_and_warehouse(
                request.sku, destination.id, for_update=True,
            )
            departure_volume = capacity.record_volume(quantity, source_record.volume_per_unit)
            arrival_volume = (
                departure_volume
                if destination_record is None
                else capacity.record_volume(quantity, destination_record.volume_per_unit)
            )
            if (
                self._policy.enforce_destination_capacity_on_transfer
                and destination.would_exceed_capacity(arrival_volume)
            ):
                raise CapacityExceededError(
                    destination.name, destination.available_capacity, arrival_volume,
                )

            source_previous = source_record.quantity
            source_record.quantity = source_previous - quantity
            source_record.updated_by_id = actor.actor_id
            source.current_capacity -= departure_volume
            source.updated_by_id = actor.actor_id

            if destination_record is None:
                destination_previous = 0
                destination_record = self.uow.records.add(
                    InventoryRecord(
                        sku=source_record.sku,
                        warehouse_id=destination.id,
                        quantity=quantity,
                        created_by_id=actor.actor_id,
                        **source_record.descriptive_attributes(),
                    )
                )
            else:
                destination_previous = destination_record.quantity
                destination_record.quantity = destination_previous + quantity
                destination_record.updated_by_id = actor.actor_id
            destination.current_capacity += arrival_volume
            destination.updated_by_id = actor.actor_id

            departure = self._activity.append(
                activity_type=ActivityType.TRANSFER,
                sku=request.sku,
                item_id=source_record.id,
                previous_quantity=source_previous,
                quantity_change=-quantity,
                actor=actor,
                source_warehouse_id=source.id,
                destination_warehouse_id=destination.id,
                notes=request.notes
                or transfer_out_note(quantity, source.name, destination.name),
            )
            arrival = self._activity.append(
                activity_type=ActivityType.TRANSFER,
                sku=request.sku,
                item_id=destination_record.id,
                previous_quantity=destination_previous,
                quantity_change=quantity,
                actor=actor,
                source_warehouse_id=source.id,
                destination_warehouse_id=destination.id,
                notes=request.notes
                or transfer_in_note(quantity, source.name, destination.name),
            )

            result = TransferResult(
                activity_id=arrival.id,
                sku=arrival.sku,
                item_name=destination_record.name,
                quantity_transferred=quantity,
                previous_quantity=arrival.previous_quantity,
                new_quantity=arrival.new_quantity,
                source_warehouse_name=source.name,
                destination_warehouse_name=destination.name,
                timestamp=arrival.occurred_at,
                performed_by=arrival.performed_by_username,
                notes=arrival.notes,
                departure_activity_id=departure.id,
            )
        return result
