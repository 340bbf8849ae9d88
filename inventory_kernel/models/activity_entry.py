"""
ActivityEntry ORM model -- the append-only stock ledger.

Responsibility:
    Records every quantity-affecting event: what changed, by how much, who
    did it, and which warehouses were involved.

Architecture position:
    Kernel > Models.  Written only through services/activity_logger.py.

Invariants enforced:
    ledger_arithmetic -- CHECK (new_quantity = previous_quantity +
        quantity_change).
    ledger_append_only -- no UPDATE / DELETE (ORM listeners in
        db/immutability.py, PostgreSQL triggers in db/sql/).
    sequence_monotonicity -- ``seq`` comes from SequenceService and is
        unique.
    - TRANSFER entries reference two distinct, non-null warehouses.

Failure modes:
    - IntegrityError on arithmetic or transfer CHECK violation.
    - ImmutabilityViolationError on any attempt to modify or delete a row.

Audit relevance:
    ``item_id`` deliberately has no foreign key and ``sku`` is denormalized,
    so entries outlive the inventory record they describe.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, Index, Integer, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString
from inventory_kernel.db.types import Sku
from inventory_kernel.domain.dtos import ActivityEntryInfo, ActivityType


class ActivityEntry(Base):
    """
    One immutable ledger line.

    Guarantees:
        - Never modified or deleted after INSERT.
        - previous_quantity / new_quantity are the affected record's
          quantity immediately before and after the event.
    """

    __tablename__ = "activity_entries"

    __table_args__ = (
        CheckConstraint(
            "new_quantity = previous_quantity + quantity_change",
            name="ck_activity_entry_arithmetic",
        ),
        CheckConstraint(
            "previous_quantity >= 0 AND new_quantity >= 0",
            name="ck_activity_entry_quantities_non_negative",
        ),
        CheckConstraint(
            "activity_type <> 'TRANSFER' OR ("
            "source_warehouse_id IS NOT NULL "
            "AND destination_warehouse_id IS NOT NULL "
            "AND source_warehouse_id <> destination_warehouse_id)",
            name="ck_activity_entry_transfer_warehouses",
        ),
        Index("idx_activity_entry_item", "item_id"),
        Index("idx_activity_entry_sku", "sku"),
        Index("idx_activity_entry_type", "activity_type"),
        Index("idx_activity_entry_performer", "performed_by_id"),
        Index("idx_activity_entry_occurred_at", "occurred_at"),
        Index("idx_activity_entry_source", "source_warehouse_id"),
        Index("idx_activity_entry_destination", "destination_warehouse_id"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        unique=True,
    )

    # Affected inventory record (no FK: survives record deletion)
    item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    sku: Mapped[Sku] = mapped_column(nullable=False)

    activity_type: Mapped[ActivityType] = mapped_column(
        SAEnum(ActivityType, native_enum=False, length=20),
        nullable=False,
    )

    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)

    previous_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    new_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    performed_by_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    performed_by_username: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
    )

    source_warehouse_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    destination_warehouse_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> ActivityEntryInfo:
        return ActivityEntryInfo(
            id=self.id,
            seq=self.seq,
            item_id=self.item_id,
            sku=self.sku,
            activity_type=ActivityType(self.activity_type),
            quantity_change=self.quantity_change,
            previous_quantity=self.previous_quantity,
            new_quantity=self.new_quantity,
            occurred_at=self.occurred_at,
            performed_by_id=self.performed_by_id,
            performed_by_username=self.performed_by_username,
            source_warehouse_id=self.source_warehouse_id,
            destination_warehouse_id=self.destination_warehouse_id,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<ActivityEntry #{self.seq} {self.activity_type.value} {self.sku}: "
            f"{self.previous_quantity}->{self.new_quantity}>"
        )
