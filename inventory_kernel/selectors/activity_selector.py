"""
ActivitySelector -- read access to the stock ledger.

Every filter field is optional and the supplied ones are combined with AND.
Results always come back in ``seq`` order, which is the order the entries
were appended in.
"""

from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import ActivityEntryInfo, ActivityFilter, ActivityType
from inventory_kernel.models.activity_entry import ActivityEntry
from inventory_kernel.selectors.base import BaseSelector


class ActivitySelector(BaseSelector[ActivityEntry]):
    """
    Selector for activity ledger queries.

    Guarantees:
        - Read-only.
        - Ordering: by ActivityEntry.seq ascending.
        - sku matches case-insensitively; warehouse_id matches the source
          or the destination role; the time range includes both ends.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _filtered(self, activity_filter: ActivityFilter) -> Select:
        stmt = select(ActivityEntry)
        f = activity_filter
        if f.item_id is not None:
            stmt = stmt.where(ActivityEntry.item_id == f.item_id)
        if f.sku is not None:
            stmt = stmt.where(func.lower(ActivityEntry.sku) == f.sku.lower())
        if f.activity_type is not None:
            stmt = stmt.where(ActivityEntry.activity_type == ActivityType(f.activity_type))
        if f.performed_by_id is not None:
            stmt = stmt.where(ActivityEntry.performed_by_id == f.performed_by_id)
        if f.performed_by_username is not None:
            stmt = stmt.where(
                ActivityEntry.performed_by_username == f.performed_by_username
            )
        if f.warehouse_id is not None:
            stmt = stmt.where(
                or_(
                    ActivityEntry.source_warehouse_id == f.warehouse_id,
                    ActivityEntry.destination_warehouse_id == f.warehouse_id,
                )
            )
        if f.occurred_from is not None:
            stmt = stmt.where(ActivityEntry.occurred_at >= f.occurred_from)
        if f.occurred_to is not None:
            stmt = stmt.where(ActivityEntry.occurred_at <= f.occurred_to)
        return stmt

    def query(self, activity_filter: ActivityFilter | None = None) -> list[ActivityEntryInfo]:
        """Entries matching every supplied filter field, in seq order."""
        stmt = self._filtered(activity_filter or ActivityFilter())
        entries = self.session.execute(stmt.order_by(ActivityEntry.seq)).scalars()
        return [entry.to_dto() for entry in entries]

    def count(self, activity_filter: ActivityFilter | None = None) -> int:
        stmt = self._filtered(activity_filter or ActivityFilter())
        return self.session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

    def get(self, entry_id: UUID) -> ActivityEntryInfo | None:
        entry = self.session.get(ActivityEntry, entry_id)
        return entry.to_dto() if entry else None

    def for_item(self, item_id: UUID) -> list[ActivityEntryInfo]:
        """Full history of one inventory record, including after its deletion."""
        return self.query(ActivityFilter(item_id=item_id))

    def recent(self, limit: int = 50) -> list[ActivityEntryInfo]:
        """The ``limit`` most recent entries, newest first."""
        entries = self.session.execute(
            select(ActivityEntry).order_by(ActivityEntry.seq.desc()).limit(limit)
        ).scalars()
        return [entry.to_dto() for entry in entries]
