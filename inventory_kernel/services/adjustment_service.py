"""
AdjustmentService -- single-record stock mutations with capacity bookkeeping.

Responsibility:
    Creates, replaces, deletes and manually adjusts one inventory record at
    a time.  Every call moves the record's quantity, its warehouse's
    ``current_capacity`` and the activity ledger together.

Architecture position:
    Kernel > Services.  Writes ledger entries through ActivityLogger.

Invariants enforced:
    capacity_consistency -- every change of quantity or volume_per_unit is
        mirrored into current_capacity by the exact volume delta.
    non_negative_quantity -- checked before any write.
    atomic_unit -- record, warehouse and ledger writes share one
        ``uow.atomic()`` block.
    - Lock order: warehouse rows (ascending id) before the record row.

Failure modes:
    - ResourceNotFoundError: unknown record or warehouse.
    - DuplicateResourceError: (sku, warehouse) already held by another record.
    - InvalidOperationError: inactive warehouse, negative values, zero or
      negative-result adjustment.
    - CapacityExceededError: added volume exceeds available capacity.
    - OptimisticLockError: the record moved warehouse while we were
      acquiring locks.

Audit relevance:
    create -> RECEIVE, update -> UPDATE, delete -> DELETE,
    adjust -> ADJUSTMENT.  Rejections are logged as ``*_rejected`` with the
    error code and leave no ledger entry.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.types import VOLUME_DECIMAL_PLACES, fits_volume_scale
from inventory_kernel.domain import capacity
from inventory_kernel.domain.actor import Actor
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import (
    ActivityType,
    AdjustmentRequest,
    InventoryRecordInfo,
    ItemDraft,
)
from inventory_kernel.domain.policy import InventoryPolicy
from inventory_kernel.exceptions import (
    CapacityExceededError,
    DuplicateResourceError,
    InvalidOperationError,
    InventoryKernelError,
    OptimisticLockError,
    ResourceNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.inventory_record import SKU_WAREHOUSE_UNIQUE, InventoryRecord
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.repositories.unit_of_work import UnitOfWork
from inventory_kernel.services.activity_logger import (
    ActivityLogger,
    adjustment_note,
    update_note,
)
from inventory_kernel.services.base import BaseService

logger = get_logger("services.adjustment")

# SQLite reports the columns of a unique key, not its name
_SQLITE_SKU_WAREHOUSE_CONFLICT = (
    "UNIQUE constraint failed: inventory_records.sku, inventory_records.warehouse_id"
)


def _is_sku_warehouse_conflict(exc: IntegrityError) -> bool:
    diag = getattr(exc.orig, "diag", None)
    if diag is not None:
        return diag.constraint_name == SKU_WAREHOUSE_UNIQUE
    return str(exc.orig).startswith(_SQLITE_SKU_WAREHOUSE_CONFLICT)


def _validate_draft(draft: ItemDraft) -> None:
    if not draft.sku or not draft.sku.strip():
        raise InvalidOperationError("SKU is required")
    if not draft.name or not draft.name.strip():
        raise InvalidOperationError("Item name is required")
    if draft.quantity < 0:
        raise InvalidOperationError("Quantity cannot be negative")
    if draft.volume_per_unit is not None and draft.volume_per_unit < 0:
        raise InvalidOperationError("Volume per unit cannot be negative")
    if draft.volume_per_unit is not None and not fits_volume_scale(draft.volume_per_unit):
        raise InvalidOperationError(
            f"Volume per unit allows at most {VOLUME_DECIMAL_PLACES} decimal places"
        )
    if draft.unit_price is not None and draft.unit_price < 0:
        raise InvalidOperationError("Unit price cannot be negative")


class AdjustmentService(BaseService):
    """
    Create / update / delete / adjust a single inventory record.

    Usage:
        service = AdjustmentService(uow, clock=clock, policy=policy)
        info = service.adjust_quantity(
            AdjustmentRequest(item_id=record_id, quantity_change=-3), actor,
        )
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

    # -------------------------------------------------------------------------
    # Locking helpers
    # -------------------------------------------------------------------------

    def _warehouse(self, locked: dict[UUID, Warehouse], warehouse_id: UUID) -> Warehouse:
        warehouse = locked.get(warehouse_id)
        if warehouse is None:
            raise ResourceNotFoundError("Warehouse", str(warehouse_id))
        return warehouse

    def _require_active(self, warehouse: Warehouse) -> None:
        if not warehouse.is_active:
            raise InvalidOperationError(f"Warehouse '{warehouse.name}' is not active")

    def _lock_record(
        self,
        item_id: UUID,
        extra_warehouse_id: UUID | None = None,
    ) -> tuple[InventoryRecord, dict[UUID, Warehouse]]:
        """
        Lock the record's warehouse (plus an optional second one), then the
        record itself.
        """
        record = self.uow.records.get(item_id)
        if record is None:
            raise ResourceNotFoundError("InventoryRecord", str(item_id))
        warehouse_id = record.warehouse_id

        ids = {warehouse_id}
        if extra_warehouse_id is not None:
            ids.add(extra_warehouse_id)
        locked = self.uow.warehouses.lock_many(ids)

        record = self.uow.records.get_for_update(item_id)
        if record is None:
            raise ResourceNotFoundError("InventoryRecord", str(item_id))
        if record.warehouse_id != warehouse_id:
            raise OptimisticLockError("InventoryRecord", str(item_id))
        return record, locked

    @contextmanager
    def _rejections(self, event: str, **fields: str | None) -> Iterator[None]:
        try:
            yield
        except InventoryKernelError as exc:
            logger.warning(
                event,
                extra={**fields, "error_code": exc.code, "reason": str(exc)},
            )
            raise

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create_item(self, draft: ItemDraft, actor: Actor) -> InventoryRecordInfo:
        """
        Create a record with its initial stock.

        ``volume_per_unit`` defaults to the policy value.  The warehouse
        must be active and have room for ``quantity x volume_per_unit``.
        Appends a RECEIVE entry (0 -> quantity).
        """
        with LogContext.bind(
            operation="create_item", sku=draft.sku, actor_id=actor.actor_id,
        ), self._rejections("create_item_rejected", warehouse_id=str(draft.warehouse_id)):
            _validate_draft(draft)
            try:
                with self.uow.atomic("create_item"):
                    locked = self.uow.warehouses.lock_many([draft.warehouse_id])
                    warehouse = self._warehouse(locked, draft.warehouse_id)
                    self._require_active(warehouse)

                    if self.uow.records.get_by_sku_and_warehouse(draft.sku, warehouse.id):
                        raise DuplicateResourceError(
                            "InventoryRecord", f"{draft.sku}@{warehouse.name}"
                        )

                    volume_per_unit = draft.volume_per_unit
                    if volume_per_unit is None:
                        volume_per_unit = self._policy.default_volume_per_unit
                    volume = capacity.record_volume(draft.quantity, volume_per_unit)
                    if warehouse.would_exceed_capacity(volume):
                        raise CapacityExceededError(
                            warehouse.name, warehouse.available_capacity, volume,
                        )

                    record = self.uow.records.add(
                        InventoryRecord(
                            sku=draft.sku,
                            warehouse_id=warehouse.id,
                            name=draft.name,
                            description=draft.description,
                            category=draft.category,
                            brand=draft.brand,
                            quantity=draft.quantity,
                            unit_price=draft.unit_price,
                            volume_per_unit=volume_per_unit,
                            reorder_level=draft.reorder_level,
                            warranty_end_date=draft.warranty_end_date,
                            expiration_date=draft.expiration_date,
                            barcode=draft.barcode,
                            created_by_id=actor.actor_id,
                        )
                    )
                    warehouse.current_capacity += volume
                    warehouse.updated_by_id = actor.actor_id

                    self._activity.append(
                        activity_type=ActivityType.RECEIVE,
                        sku=record.sku,
                        item_id=record.id,
                        previous_quantity=0,
                        quantity_change=draft.quantity,
                        actor=actor,
                        notes=f"Item created with {draft.quantity} units",
                    )
                    info = record.to_dto()
            except IntegrityError as exc:
                if not _is_sku_warehouse_conflict(exc):
                    raise
                # Lost a race on (sku, warehouse_id)
                raise DuplicateResourceError(
                    "InventoryRecord", f"{draft.sku}@{draft.warehouse_id}"
                ) from exc

            logger.info(
                "item_created",
                extra={
                    "item_id": str(info.id),
                    "warehouse_id": str(info.warehouse_id),
                    "quantity": info.quantity,
                    "volume": str(info.total_volume),
                },
            )
            return info

    def update_item(
        self,
        item_id: UUID,
        draft: ItemDraft,
        actor: Actor,
    ) -> InventoryRecordInfo:
        """
        Replace every field of a record with the draft's values.

        ``volume_per_unit=None`` keeps the current value.  Moving the record
        to another warehouse takes its old volume off the old warehouse and
        admission-checks the full new volume on the new one.  Staying put
        admission-checks only a volume increase.

        Appends an UPDATE entry describing the warehouse and volume changes.
        """
        with LogContext.bind(
            operation="update_item", sku=draft.sku, actor_id=actor.actor_id,
        ), self._rejections("update_item_rejected", item_id=str(item_id)):
            _validate_draft(draft)
            with self.uow.atomic("update_item"):
                record, locked = self._lock_record(item_id, draft.warehouse_id)
                old_warehouse = self._warehouse(locked, record.warehouse_id)
                new_warehouse = self._warehouse(locked, draft.warehouse_id)
                reassigned = new_warehouse.id != old_warehouse.id

                if (draft.sku, draft.warehouse_id) != (record.sku, record.warehouse_id):
                    existing = self.uow.records.get_by_sku_and_warehouse(
                        draft.sku, draft.warehouse_id,
                    )
                    if existing is not None and existing.id != record.id:
                        raise DuplicateResourceError(
                            "InventoryRecord", f"{draft.sku}@{new_warehouse.name}"
                        )

                old_quantity = record.quantity
                old_volume = record.total_volume
                volume_per_unit = draft.volume_per_unit
                if volume_per_unit is None:
                    volume_per_unit = record.volume_per_unit
                new_volume = capacity.record_volume(draft.quantity, volume_per_unit)

                if reassigned:
                    self._require_active(new_warehouse)
                    if new_warehouse.would_exceed_capacity(new_volume):
                        raise CapacityExceededError(
                            new_warehouse.name, new_warehouse.available_capacity, new_volume,
                        )
                    old_warehouse.current_capacity -= old_volume
                    new_warehouse.current_capacity += new_volume
                    old_warehouse.updated_by_id = actor.actor_id
                    new_warehouse.updated_by_id = actor.actor_id
                elif new_volume != old_volume:
                    difference = new_volume - old_volume
                    if difference > 0:
                        self._require_active(old_warehouse)
                        if old_warehouse.would_exceed_capacity(difference):
                            raise CapacityExceededError(
                                old_warehouse.name,
                                old_warehouse.available_capacity,
                                difference,
                            )
                    old_warehouse.current_capacity += difference
                    old_warehouse.updated_by_id = actor.actor_id

                record.sku = draft.sku
                record.warehouse_id = new_warehouse.id
                record.name = draft.name
                record.description = draft.description
                record.category = draft.category
                record.brand = draft.brand
                record.quantity = draft.quantity
                record.unit_price = draft.unit_price
                record.volume_per_unit = volume_per_unit
                record.reorder_level = draft.reorder_level
                record.warranty_end_date = draft.warranty_end_date
                record.expiration_date = draft.expiration_date
                record.barcode = draft.barcode
                record.updated_by_id = actor.actor_id

                self._activity.append(
                    activity_type=ActivityType.UPDATE,
                    sku=record.sku,
                    item_id=record.id,
                    previous_quantity=old_quantity,
                    quantity_change=draft.quantity - old_quantity,
                    actor=actor,
                    source_warehouse_id=old_warehouse.id if reassigned else None,
                    destination_warehouse_id=new_warehouse.id if reassigned else None,
                    notes=update_note(
                        old_warehouse.name if reassigned else None,
                        new_warehouse.name if reassigned else None,
                        old_volume,
                        new_volume,
                    ),
                )
                info = record.to_dto()

            logger.info(
                "item_updated",
                extra={
                    "item_id": str(info.id),
                    "reassigned": reassigned,
                    "previous_quantity": old_quantity,
                    "new_quantity": info.quantity,
                },
            )
            return info

    def delete_item(self, item_id: UUID, actor: Actor) -> None:
        """
        Remove a record and release its volume.

        Appends a DELETE entry (quantity -> 0) first; the entry keeps the
        record's id and sku after the row is gone.
        """
        with LogContext.bind(
            operation="delete_item", actor_id=actor.actor_id,
        ), self._rejections("delete_item_rejected", item_id=str(item_id)):
            with self.uow.atomic("delete_item"):
                record, locked = self._lock_record(item_id)
                warehouse = self._warehouse(locked, record.warehouse_id)
                quantity = record.quantity
                volume = record.total_volume
                sku = record.sku

                warehouse.current_capacity -= volume
                warehouse.updated_by_id = actor.actor_id

                self._activity.append(
                    activity_type=ActivityType.DELETE,
                    sku=sku,
                    item_id=record.id,
                    previous_quantity=quantity,
                    quantity_change=-quantity,
                    actor=actor,
                    notes=f"Item deleted from '{warehouse.name}'",
                )
                self.uow.records.delete(record)

            logger.info(
                "item_deleted",
                extra={
                    "item_id": str(item_id),
                    "sku": sku,
                    "released_volume": str(volume),
                },
            )

    def adjust_quantity(
        self,
        request: AdjustmentRequest,
        actor: Actor,
    ) -> InventoryRecordInfo:
        """
        Apply a signed manual correction to one record.

        Raises:
            InvalidOperationError: Zero change, or the result would be negative.
            CapacityExceededError: The added volume does not fit.
        """
        delta = request.quantity_change
        with LogContext.bind(
            operation="adjust_quantity", actor_id=actor.actor_id,
        ), self._rejections(
            "adjustment_rejected",
            item_id=str(request.item_id),
            quantity_change=str(delta),
        ):
            if delta == 0:
                raise InvalidOperationError("Quantity change must be non-zero")

            with self.uow.atomic("adjust_quantity"):
                record, locked = self._lock_record(request.item_id)
                warehouse = self._warehouse(locked, record.warehouse_id)

                previous = record.quantity
                if previous + delta < 0:
                    raise InvalidOperationError(
                        "Quantity adjustment would result in negative quantity"
                    )

                volume_change = capacity.record_volume(delta, record.volume_per_unit)
                if volume_change > Decimal("0"):
                    self._require_active(warehouse)
                    if warehouse.would_exceed_capacity(volume_change):
                        raise CapacityExceededError(
                            warehouse.name, warehouse.available_capacity, volume_change,
                        )

                record.quantity = previous + delta
                record.updated_by_id = actor.actor_id
                warehouse.current_capacity += volume_change
                warehouse.updated_by_id = actor.actor_id

                notes = adjustment_note(delta)
                if request.notes:
                    notes = f"{notes}; {request.notes}"
                self._activity.append(
                    activity_type=ActivityType.ADJUSTMENT,
                    sku=record.sku,
                    item_id=record.id,
                    previous_quantity=previous,
                    quantity_change=delta,
                    actor=actor,
                    notes=notes,
                )
                info = record.to_dto()

            logger.info(
                "adjustment_applied",
                extra={
                    "item_id": str(info.id),
                    "quantity_change": delta,
                    "previous_quantity": previous,
                    "new_quantity": info.quantity,
                    "volume_change": str(volume_change),
                },
            )
            return info
