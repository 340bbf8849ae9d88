"""ActivityEntry repository: append only."""

from sqlalchemy import func, select

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.models.activity_entry import ActivityEntry
from inventory_kernel.repositories.base import BaseRepository


class ActivityRepository(BaseRepository[ActivityEntry]):
    """
    Persistence access for ledger entries.

    ``delete`` is refused outright; queries live in
    selectors/activity_selector.py.
    """

    model = ActivityEntry

    def delete(self, entity: ActivityEntry) -> None:
        raise ImmutabilityViolationError(
            entity_type="ActivityEntry",
            entity_id=str(entity.id),
            reason="Activity entries cannot be deleted",
        )

    def count(self) -> int:
        return self.session.execute(
            select(func.count()).select_from(ActivityEntry)
        ).scalar_one()
