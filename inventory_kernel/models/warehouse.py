"""
Warehouse ORM model -- the capacity ledger row.

Responsibility:
    Persists each warehouse's maximum and used volumetric capacity, its
    alert threshold and its active flag.

Architecture position:
    Kernel > Models.  May import from db/base.py and domain/capacity.py.

Invariants enforced:
    capacity_consistency -- current_capacity equals the sum of
        quantity x volume_per_unit over the warehouse's inventory records.
        Only AdjustmentService and TransferCoordinator write it.
    - current_capacity >= 0 and 0 <= capacity_alert_threshold <= 100
      (CHECK constraints).
    - Optimistic version counter (``version``) detects lost updates when
      a writer skipped the row lock.

Failure modes:
    - IntegrityError on duplicate name (uq constraint).
    - StaleDataError on version mismatch (translated to OptimisticLockError
      by UnitOfWork).
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.db.types import Percentage, Volume
from inventory_kernel.domain import capacity
from inventory_kernel.domain.dtos import WarehouseInfo


class Warehouse(TrackedBase):
    """
    A storage location with a volumetric capacity budget.

    Guarantees:
        - name is unique across all warehouses, active or not.
        - is_active=False warehouses reject new stock (enforced by services).
    """

    __tablename__ = "warehouses"

    __table_args__ = (
        CheckConstraint(
            "current_capacity >= 0",
            name="ck_warehouse_current_capacity_non_negative",
        ),
        CheckConstraint(
            "max_capacity >= 0",
            name="ck_warehouse_max_capacity_non_negative",
        ),
        CheckConstraint(
            "capacity_alert_threshold >= 0 AND capacity_alert_threshold <= 100",
            name="ck_warehouse_alert_threshold_range",
        ),
        Index("idx_warehouse_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    location: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    max_capacity: Mapped[Volume] = mapped_column(
        nullable=False,
    )

    current_capacity: Mapped[Volume] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    # Percent of max_capacity at which an alert is raised
    capacity_alert_threshold: Mapped[Percentage] = mapped_column(
        nullable=False,
        default=Decimal("80.00"),
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def available_capacity(self) -> Decimal:
        return capacity.available_capacity(self.max_capacity, self.current_capacity)

    @property
    def utilization_percentage(self) -> Decimal:
        return capacity.utilization_percentage(self.max_capacity, self.current_capacity)

    @property
    def is_alert_triggered(self) -> bool:
        return capacity.is_alert_triggered(
            self.max_capacity,
            self.current_capacity,
            self.capacity_alert_threshold,
        )

    def would_exceed_capacity(self, additional_volume: Decimal) -> bool:
        return capacity.would_exceed_capacity(
            self.max_capacity, self.current_capacity, additional_volume,
        )

    def to_dto(self) -> WarehouseInfo:
        return WarehouseInfo(
            id=self.id,
            name=self.name,
            location=self.location,
            max_capacity=self.max_capacity,
            current_capacity=self.current_capacity,
            capacity_alert_threshold=self.capacity_alert_threshold,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<Warehouse {self.name}: {self.current_capacity}/{self.max_capacity}>"
