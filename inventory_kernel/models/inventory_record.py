"""
InventoryRecord ORM model -- one quantity row per (SKU, warehouse).

Responsibility:
    Persists on-hand quantity and the descriptive attributes of a SKU at a
    single warehouse.

Architecture position:
    Kernel > Models.  May import from db/base.py, db/types.py and
    domain/capacity.py.

Invariants enforced:
    non_negative_quantity -- CHECK (quantity >= 0).
    - (sku, warehouse_id) is unique.
    - volume_per_unit is never NULL; the policy default is applied at
      creation so capacity arithmetic has no null branch.

Failure modes:
    - IntegrityError on duplicate (sku, warehouse_id) or negative quantity.
    - StaleDataError on version mismatch.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.db.types import Sku, Volume
from inventory_kernel.domain import capacity
from inventory_kernel.domain.dtos import InventoryRecordInfo

# Descriptive attributes copied onto a destination record by a transfer.
DESCRIPTIVE_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "category",
    "brand",
    "unit_price",
    "volume_per_unit",
    "reorder_level",
    "warranty_end_date",
    "expiration_date",
    "barcode",
)

SKU_WAREHOUSE_UNIQUE = "uq_inventory_record_sku_warehouse"


class InventoryRecord(TrackedBase):
    """
    Stock of one SKU held at one warehouse.

    Guarantees:
        - total_volume == quantity x volume_per_unit.
        - is_low_stock iff reorder_level is set and quantity <= reorder_level.
    """

    __tablename__ = "inventory_records"

    __table_args__ = (
        UniqueConstraint("sku", "warehouse_id", name=SKU_WAREHOUSE_UNIQUE),
        CheckConstraint("quantity >= 0", name="ck_inventory_record_quantity_non_negative"),
        CheckConstraint(
            "volume_per_unit >= 0",
            name="ck_inventory_record_volume_per_unit_non_negative",
        ),
        CheckConstraint(
            "unit_price IS NULL OR unit_price >= 0",
            name="ck_inventory_record_unit_price_non_negative",
        ),
        Index("idx_inventory_record_sku", "sku"),
        Index("idx_inventory_record_warehouse", "warehouse_id"),
        Index("idx_inventory_record_category", "category"),
        Index("idx_inventory_record_expiration", "expiration_date"),
    )

    sku: Mapped[Sku] = mapped_column(nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    volume_per_unit: Mapped[Volume] = mapped_column(nullable=False)

    reorder_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    warranty_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True)

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def total_volume(self) -> Decimal:
        return capacity.record_volume(self.quantity, self.volume_per_unit)

    @property
    def is_low_stock(self) -> bool:
        return self.reorder_level is not None and self.quantity <= self.reorder_level

    def descriptive_attributes(self) -> dict:
        """Attributes a transfer copies onto a new destination record."""
        return {field: getattr(self, field) for field in DESCRIPTIVE_FIELDS}

    def to_dto(self) -> InventoryRecordInfo:
        return InventoryRecordInfo(
            id=self.id,
            sku=self.sku,
            warehouse_id=self.warehouse_id,
            name=self.name,
            description=self.description,
            category=self.category,
            brand=self.brand,
            quantity=self.quantity,
            unit_price=self.unit_price,
            volume_per_unit=self.volume_per_unit,
            reorder_level=self.reorder_level,
            warranty_end_date=self.warranty_end_date,
            expiration_date=self.expiration_date,
            barcode=self.barcode,
        )

    def __repr__(self) -> str:
        return f"<InventoryRecord {self.sku}@{self.warehouse_id}: {self.quantity}>"
