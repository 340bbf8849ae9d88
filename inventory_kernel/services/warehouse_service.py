"""
WarehouseService -- provisioning and retirement of warehouses.

Responsibility:
    Creates, updates, activates, deactivates and hard-deletes warehouses.
    Never touches ``current_capacity``: that column is written only by the
    stock-moving services.

Architecture position:
    Kernel > Services.

Invariants enforced:
    capacity_consistency -- a warehouse can only be deactivated or removed
        while it holds no volume, and cannot shrink below what it holds.

Failure modes:
    - DuplicateResourceError: name already used by another warehouse.
    - ResourceNotFoundError: unknown warehouse id.
    - InvalidOperationError: negative capacity, threshold outside 0..100,
      shrinking below current usage, retiring a non-empty warehouse.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.types import VOLUME_DECIMAL_PLACES, fits_volume_scale
from inventory_kernel.domain.actor import Actor
from inventory_kernel.domain.capacity import HUNDRED, ZERO
from inventory_kernel.domain.dtos import WarehouseDraft, WarehouseInfo
from inventory_kernel.exceptions import (
    DuplicateResourceError,
    InvalidOperationError,
    ResourceNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.services.base import BaseService

logger = get_logger("services.warehouse")


class WarehouseService(BaseService):
    """
    Write-side operations on the capacity ledger's warehouse rows.

    Reads (snapshots, alerts, reconciliation) live in CapacitySelector.
    """

    def _validate_draft(self, draft: WarehouseDraft) -> None:
        if not draft.name or not draft.name.strip():
            raise InvalidOperationError("Warehouse name is required")
        if draft.max_capacity < ZERO:
            raise InvalidOperationError("Maximum capacity cannot be negative")
        if not fits_volume_scale(draft.max_capacity):
            raise InvalidOperationError(
                f"Maximum capacity allows at most {VOLUME_DECIMAL_PLACES} decimal places"
            )
        threshold = draft.capacity_alert_threshold
        if threshold is not None and not (ZERO <= threshold <= HUNDRED):
            raise InvalidOperationError(
                "Capacity alert threshold must be between 0 and 100"
            )

    def _lock(self, warehouse_id: UUID) -> Warehouse:
        warehouse = self.uow.warehouses.get_for_update(warehouse_id)
        if warehouse is None:
            raise ResourceNotFoundError("Warehouse", str(warehouse_id))
        return warehouse

    def create_warehouse(self, draft: WarehouseDraft, actor: Actor) -> WarehouseInfo:
        """
        Provision a new, active, empty warehouse.

        The alert threshold defaults to the policy value when the draft
        does not carry one.
        """
        self._validate_draft(draft)
        with LogContext.bind(operation="create_warehouse", actor_id=actor.actor_id):
            try:
                with self.uow.atomic("create_warehouse"):
                    if self.uow.warehouses.exists_by_name(draft.name):
                        raise DuplicateResourceError("Warehouse", draft.name)
                    threshold = draft.capacity_alert_threshold
                    if threshold is None:
                        threshold = self._policy.default_alert_threshold
                    warehouse = self.uow.warehouses.add(
                        Warehouse(
                            name=draft.name,
                            location=draft.location,
                            max_capacity=draft.max_capacity,
                            current_capacity=Decimal("0"),
                            capacity_alert_threshold=threshold,
                            is_active=True,
                            created_by_id=actor.actor_id,
                        )
                    )
                    info = warehouse.to_dto()
            except IntegrityError as exc:
                # Lost a race on the unique name
                raise DuplicateResourceError("Warehouse", draft.name) from exc

            logger.info(
                "warehouse_created",
                extra={
                    "warehouse_id": str(info.id),
                    "warehouse_name": info.name,
                    "max_capacity": str(info.max_capacity),
                },
            )
            return info

    def update_warehouse(
        self,
        warehouse_id: UUID,
        draft: WarehouseDraft,
        actor: Actor,
    ) -> WarehouseInfo:
        """
        Replace name, location and max capacity; threshold only if given.

        Raises:
            InvalidOperationError: New max capacity below current usage.
        """
        self._validate_draft(draft)
        with LogContext.bind(operation="update_warehouse", actor_id=actor.actor_id):
            with self.uow.atomic("update_warehouse"):
                warehouse = self._lock(warehouse_id)
                if draft.name != warehouse.name and self.uow.warehouses.exists_by_name(
                    draft.name, exclude_id=warehouse.id
                ):
                    raise DuplicateResourceError("Warehouse", draft.name)
                if draft.max_capacity < warehouse.current_capacity:
                    raise InvalidOperationError(
                        f"Maximum capacity {draft.max_capacity} is below current "
                        f"usage {warehouse.current_capacity} of '{warehouse.name}'"
                    )
                warehouse.name = draft.name
                warehouse.location = draft.location
                warehouse.max_capacity = draft.max_capacity
                if draft.capacity_alert_threshold is not None:
                    warehouse.capacity_alert_threshold = draft.capacity_alert_threshold
                warehouse.updated_by_id = actor.actor_id
                info = warehouse.to_dto()

            logger.info(
                "warehouse_updated",
                extra={"warehouse_id": str(info.id), "warehouse_name": info.name},
            )
            return info

    def activate_warehouse(self, warehouse_id: UUID, actor: Actor) -> WarehouseInfo:
        with self.uow.atomic("activate_warehouse"):
            warehouse = self._lock(warehouse_id)
            warehouse.is_active = True
            warehouse.updated_by_id = actor.actor_id
            info = warehouse.to_dto()
        logger.info("warehouse_activated", extra={"warehouse_id": str(info.id)})
        return info

    def deactivate_warehouse(self, warehouse_id: UUID, actor: Actor) -> WarehouseInfo:
        """
        Soft-delete: mark inactive.  Only allowed while the warehouse is empty.

        Inactive warehouses keep their records and history but accept no
        new stock.
        """
        with LogContext.bind(operation="deactivate_warehouse", actor_id=actor.actor_id):
            with self.uow.atomic("deactivate_warehouse"):
                warehouse = self._lock(warehouse_id)
                if warehouse.current_capacity > ZERO:
                    raise InvalidOperationError(
                        f"Cannot deactivate warehouse '{warehouse.name}' with existing "
                        "inventory. Move or remove all items first."
                    )
                warehouse.is_active = False
                warehouse.updated_by_id = actor.actor_id
                info = warehouse.to_dto()

            logger.info(
                "warehouse_deactivated",
                extra={"warehouse_id": str(info.id), "warehouse_name": info.name},
            )
            return info

    def delete_warehouse(self, warehouse_id: UUID, actor: Actor) -> None:
        """
        Hard-delete.  Requires zero usage and no inventory records at all,
        zero-quantity ones included.
        """
        with LogContext.bind(operation="delete_warehouse", actor_id=actor.actor_id):
            with self.uow.atomic("delete_warehouse"):
                warehouse = self._lock(warehouse_id)
                if warehouse.current_capacity > ZERO:
                    raise InvalidOperationError(
                        f"Cannot delete warehouse '{warehouse.name}' with existing inventory."
                    )
                record_count = self.uow.records.count_in_warehouse(warehouse.id)
                if record_count:
                    raise InvalidOperationError(
                        f"Cannot delete warehouse '{warehouse.name}': "
                        f"{record_count} inventory record(s) still reference it."
                    )
                name = warehouse.name
                self.uow.warehouses.delete(warehouse)

            logger.info(
                "warehouse_deleted",
                extra={"warehouse_id": str(warehouse_id), "warehouse_name": name},
            )
