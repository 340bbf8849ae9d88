"""
ORM-Level Ledger Immutability Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The activity ledger is the only explanation of how a quantity came to be.
An entry that can be edited after the fact explains nothing, so entries are
append-only:

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications made through SQLAlchemy: dirty-object flushes,
      session.delete(), and ORM-enabled bulk update()/delete() statements.
    - Fires BEFORE the SQL is sent to the database.

  Layer 2: db/sql/*.sql (PostgreSQL triggers)
    - Catches raw SQL and direct psql access.
    - Installed by db/triggers.py when running on PostgreSQL.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update] --> _check_activity_entry_update() --> ImmutabilityViolationError
    [before_delete] --> _check_activity_entry_delete() --> ImmutabilityViolationError
         |
    session.execute(update(ActivityEntry) / delete(ActivityEntry))
         |
         v
    [do_orm_execute] --> _check_bulk_ledger_statement() --> ImmutabilityViolationError

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable          | Why
----------------|-------------------------|----------------------------------
ActivityEntry   | ALWAYS (from creation)  | Ledger explains every quantity

Warehouses and inventory records are mutable; their history is
carried by the ledger.
"""

from sqlalchemy import event
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_activity_entry_update(mapper, connection, target):
    """Prevent any updates to ActivityEntry records."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "ActivityEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="ActivityEntry",
        entity_id=str(target.id),
        reason="Activity entries are immutable and cannot be modified",
    )


def _check_activity_entry_delete(mapper, connection, target):
    """Prevent deletion of ActivityEntry records."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "ActivityEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="ActivityEntry",
        entity_id=str(target.id),
        reason="Activity entries cannot be deleted",
    )


def _check_bulk_ledger_statement(orm_execute_state):
    """Reject ORM-enabled bulk UPDATE / DELETE against the ledger table."""
    from inventory_kernel.models.activity_entry import ActivityEntry

    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return

    mapper = orm_execute_state.bind_mapper
    if mapper is None or mapper.class_ is not ActivityEntry:
        return

    operation = "UPDATE" if orm_execute_state.is_update else "DELETE"
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "ActivityEntry",
            "entity_id": "*",
            "operation": f"BULK_{operation}",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="ActivityEntry",
        entity_id="*",
        reason=f"Bulk {operation} statements against the activity ledger are forbidden",
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after the models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    from inventory_kernel.models.activity_entry import ActivityEntry

    if not event.contains(ActivityEntry, "before_update", _check_activity_entry_update):
        event.listen(ActivityEntry, "before_update", _check_activity_entry_update)
    if not event.contains(ActivityEntry, "before_delete", _check_activity_entry_delete):
        event.listen(ActivityEntry, "before_delete", _check_activity_entry_delete)
    if not event.contains(Session, "do_orm_execute", _check_bulk_ledger_statement):
        event.listen(Session, "do_orm_execute", _check_bulk_ledger_statement)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally bypass layer 1 to
    verify layer 2.
    """
    from inventory_kernel.models.activity_entry import ActivityEntry

    _safe_remove_listener(ActivityEntry, "before_update", _check_activity_entry_update)
    _safe_remove_listener(ActivityEntry, "before_delete", _check_activity_entry_delete)
    _safe_remove_listener(Session, "do_orm_execute", _check_bulk_ledger_statement)
