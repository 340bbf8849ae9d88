"""
ActivityLogger -- the single writer of the stock ledger.

Responsibility:
    Appends ActivityEntry rows.  Computes ``new_quantity`` from the
    previous quantity and the signed change, stamps the entry with the
    next ``seq`` and the injected clock, and records who acted.

Architecture position:
    Kernel > Services.  Used by AdjustmentService and TransferCoordinator
    inside their atomic unit; never called on its own transaction.

Invariants enforced:
    ledger_arithmetic -- new_quantity = previous_quantity + quantity_change
        is computed here, never passed in.
    ledger_append_only -- the logger only INSERTs.
    sequence_monotonicity -- seq comes from SequenceService.
    - TRANSFER entries reference two distinct warehouses.

Failure modes:
    - InvalidOperationError if the transition would leave a negative
      quantity or a TRANSFER entry lacks distinct warehouses.  Reaching
      either means a caller skipped its own validation.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.actor import Actor
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import ActivityType
from inventory_kernel.exceptions import InvalidOperationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.activity_entry import ActivityEntry
from inventory_kernel.services.sequence_service import SequenceService

logger = get_logger("services.activity_logger")


def format_volume(value: Decimal) -> str:
    """Render a volume without exponent or trailing zeros (``480``, ``12.5``)."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def adjustment_note(quantity_change: int) -> str:
    sign = "+" if quantity_change > 0 else ""
    return f"Manual quantity adjustment: {sign}{quantity_change}"


def transfer_out_note(quantity: int, source_name: str, destination_name: str) -> str:
    return f"Transfer OUT: {quantity} units from {source_name} to {destination_name}"


def transfer_in_note(quantity: int, source_name: str, destination_name: str) -> str:
    return f"Transfer IN: {quantity} units from {source_name} to {destination_name}"


def update_note(
    old_warehouse_name: str | None = None,
    new_warehouse_name: str | None = None,
    old_volume: Decimal | None = None,
    new_volume: Decimal | None = None,
) -> str:
    """
    Describe an item update.  Only the parts that changed are listed.

    >>> update_note("A", "B", Decimal("10"), Decimal("12"))
    "Item updated: Warehouse changed from 'A' to 'B'; Volume changed from 10 to 12"
    """
    changes = []
    if old_warehouse_name is not None and old_warehouse_name != new_warehouse_name:
        changes.append(
            f"Warehouse changed from '{old_warehouse_name}' to '{new_warehouse_name}'"
        )
    if old_volume is not None and new_volume is not None and old_volume != new_volume:
        changes.append(
            f"Volume changed from {format_volume(old_volume)} to {format_volume(new_volume)}"
        )
    if not changes:
        return "Item details updated"
    return "Item updated: " + "; ".join(changes)


class ActivityLogger:
    """
    Append-only writer for ActivityEntry rows.

    Guarantees:
        - Every returned entry is flushed (has ``id`` and ``seq``).
        - Two entries appended in the same unit get increasing ``seq``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = sequence_service or SequenceService(session)

    def append(
        self,
        *,
        activity_type: ActivityType,
        sku: str,
        item_id: UUID | None,
        previous_quantity: int,
        quantity_change: int,
        actor: Actor,
        source_warehouse_id: UUID | None = None,
        destination_warehouse_id: UUID | None = None,
        notes: str | None = None,
    ) -> ActivityEntry:
        """
        Append one ledger entry.

        Raises:
            InvalidOperationError: Negative previous/new quantity, or a
                TRANSFER without two distinct warehouses.
        """
        new_quantity = previous_quantity + quantity_change
        if previous_quantity < 0 or new_quantity < 0:
            raise InvalidOperationError(
                f"Ledger transition {previous_quantity} -> {new_quantity} "
                f"for {sku} would be negative"
            )
        if activity_type == ActivityType.TRANSFER and (
            source_warehouse_id is None
            or destination_warehouse_id is None
            or source_warehouse_id == destination_warehouse_id
        ):
            raise InvalidOperationError(
                "Transfer entries require distinct source and destination warehouses"
            )

        entry = ActivityEntry(
            seq=self._sequences.next_value(SequenceService.ACTIVITY_ENTRY),
            item_id=item_id,
            sku=sku,
            activity_type=activity_type,
            quantity_change=quantity_change,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            occurred_at=self._clock.now(),
            performed_by_id=actor.actor_id,
            performed_by_username=actor.username,
            source_warehouse_id=source_warehouse_id,
            destination_warehouse_id=destination_warehouse_id,
            notes=notes,
        )
        self._session.add(entry)
        self._session.flush()

        logger.debug(
            "activity_appended",
            extra={
                "seq": entry.seq,
                "activity_type": activity_type.value,
                "sku": sku,
                "item_id": str(item_id) if item_id else None,
                "quantity_change": quantity_change,
                "previous_quantity": previous_quantity,
                "new_quantity": new_quantity,
            },
        )
        return entry
