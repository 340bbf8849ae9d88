"""
Append-only activity ledger.

Verifies:
- ORM updates and deletes of ActivityEntry are rejected (layer 1, listeners)
- ORM-enabled bulk UPDATE / DELETE statements are rejected
- ActivityRepository refuses deletes outright
- PostgreSQL triggers reject raw SQL tampering (layer 2, postgres only)
- Failed ledger writes leave no partial entries
"""

from contextlib import contextmanager
from uuid import uuid4

import pytest
from sqlalchemy import delete, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.domain.dtos import ActivityType
from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.models.activity_entry import ActivityEntry
from inventory_kernel.services.activity_logger import ActivityLogger


@contextmanager
def disabled_listeners():
    """Disable ORM-level enforcement so the database layer is tested alone."""
    unregister_immutability_listeners()
    try:
        yield
    finally:
        register_immutability_listeners()


@pytest.fixture
def entry(session, clock, actor) -> ActivityEntry:
    logged = ActivityLogger(session, clock).append(
        activity_type=ActivityType.RECEIVE,
        sku="SKU-1",
        item_id=uuid4(),
        previous_quantity=0,
        quantity_change=10,
        actor=actor,
        notes="original",
    )
    session.commit()
    return logged


class TestOrmImmutability:

    def test_update_rejected(self, session, entry):
        entry.notes = "tampered"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "ActivityEntry"
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
        session.rollback()
        assert session.get(ActivityEntry, entry.id).notes == "original"

    def test_delete_rejected(self, session, entry):
        session.delete(entry)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

        session.rollback()
        assert session.get(ActivityEntry, entry.id) is not None

    def test_bulk_update_rejected(self, session, entry):
        with pytest.raises(ImmutabilityViolationError):
            session.execute(update(ActivityEntry).values(notes="tampered"))

    def test_bulk_delete_rejected(self, session, entry):
        with pytest.raises(ImmutabilityViolationError):
            session.execute(delete(ActivityEntry))

    def test_repository_delete_rejected(self, uow, entry):
        with pytest.raises(ImmutabilityViolationError):
            uow.activities.delete(entry)

    def test_listener_registration_is_idempotent(self, session, entry):
        register_immutability_listeners()
        register_immutability_listeners()
        entry.notes = "tampered"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_violation_logged(self, session, entry, captured_logs):
        entry.quantity_change = 11

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        blocked = [
            r for r in captured_logs() if r["message"] == "immutability_violation_blocked"
        ]
        assert blocked[0]["operation"] == "UPDATE"
        assert blocked[0]["entity_id"] == str(entry.id)


class TestLedgerConstraints:
    """CHECK constraints back up ActivityLogger validation."""

    def test_arithmetic_constraint(self, session, actor, clock):
        session.add(
            ActivityEntry(
                seq=999,
                item_id=uuid4(),
                sku="SKU-1",
                activity_type=ActivityType.ADJUSTMENT,
                quantity_change=5,
                previous_quantity=1,
                new_quantity=4,
                occurred_at=clock.now(),
                performed_by_id=actor.actor_id,
                performed_by_username=actor.username,
            )
        )

        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()
        assert session.execute(select(ActivityEntry)).first() is None


@pytest.mark.postgres
class TestDatabaseTriggers:

    def test_raw_update_rejected_by_trigger(self, pg_engine, clock, actor):
        with Session(bind=pg_engine) as session:
            entry = ActivityLogger(session, clock).append(
                activity_type=ActivityType.RECEIVE,
                sku="SKU-1",
                item_id=uuid4(),
                previous_quantity=0,
                quantity_change=10,
                actor=actor,
            )
            session.commit()
            entry_id = str(entry.id)

        with disabled_listeners(), pg_engine.connect() as conn:
            with pytest.raises(DBAPIError, match="IMMUTABILITY_VIOLATION"):
                conn.execute(
                    text("UPDATE activity_entries SET notes = 'x' WHERE id = :id"),
                    {"id": entry_id},
                )
            conn.rollback()
            with pytest.raises(DBAPIError, match="IMMUTABILITY_VIOLATION"):
                conn.execute(
                    text("DELETE FROM activity_entries WHERE id = :id"), {"id": entry_id},
                )
            conn.rollback()
