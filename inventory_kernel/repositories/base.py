"""
BaseRepository -- explicit persistence access for one aggregate.

Responsibility:
    Wraps a SQLAlchemy ``Session`` behind get-by-id / add / delete and
    locking reads, so services look entities up through explicit keys
    instead of walking ORM relationships.

Architecture position:
    Kernel > Repositories.  May import from db/ and models/.  Services reach
    repositories only through a UnitOfWork.

Invariants enforced:
    - Locking reads use ``SELECT ... FOR UPDATE`` with populate_existing so
      the identity map never serves a value read before the lock was taken.
    - Repositories flush, never commit; UnitOfWork owns the boundary.
"""

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic repository over a single mapped class."""

    model: type[ModelType]

    def __init__(self, session: Session):
        self.session = session

    def get(self, entity_id: UUID) -> ModelType | None:
        """Return the entity with ``entity_id`` or None."""
        return self.session.get(self.model, entity_id)

    def get_for_update(self, entity_id: UUID) -> ModelType | None:
        """Return the entity with its row locked for the current transaction."""
        return self.session.execute(
            select(self.model)
            .where(self.model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def add(self, entity: ModelType) -> ModelType:
        """Stage a new entity and flush so database defaults are populated."""
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, entity: ModelType) -> None:
        """Delete an entity and flush."""
        self.session.delete(entity)
        self.session.flush()
