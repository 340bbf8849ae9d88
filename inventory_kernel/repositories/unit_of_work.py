"""
UnitOfWork -- explicit transaction boundary plus repository access.

Responsibility:
    Bundles a SQLAlchemy ``Session`` with the three repositories and gives
    services one way to make a group of writes atomic: ``atomic()``.

Architecture position:
    Kernel > Repositories.  Constructed by the caller (REST adapter, CLI,
    bulk runner, tests) and passed into services.

Invariants enforced:
    atomic_unit -- record, warehouse and ledger writes made inside one
        ``atomic()`` block commit together or roll back together.
        * No transaction open: BEGIN ... COMMIT / ROLLBACK.
        * Only an autobegun transaction open (the session ran a read):
          the block runs in a SAVEPOINT and the implicit transaction is
          committed or rolled back with it.
        * Transaction opened explicitly by the caller (``session.begin()``
          or an enclosing ``atomic()``): SAVEPOINT ... RELEASE / ROLLBACK TO
          SAVEPOINT.  The caller still decides when to COMMIT.

Failure modes:
    - OptimisticLockError when a versioned row was changed underneath us
      (SQLAlchemy StaleDataError).
    - Any exception raised inside the block rolls the block back and is
      re-raised unchanged.
"""

import re
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, SessionTransaction, SessionTransactionOrigin
from sqlalchemy.orm.exc import StaleDataError

from inventory_kernel.exceptions import OptimisticLockError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.repositories.activity_repository import ActivityRepository
from inventory_kernel.repositories.inventory_record_repository import (
    InventoryRecordRepository,
)
from inventory_kernel.repositories.warehouse_repository import WarehouseRepository

logger = get_logger("repositories.unit_of_work")

_STALE_TABLE = re.compile(r"table '([^']+)'")


def _stale_table(exc: StaleDataError) -> str:
    match = _STALE_TABLE.search(str(exc))
    return match.group(1) if match else "unknown"


class UnitOfWork:
    """
    Session plus repositories plus an explicit begin/commit/rollback.

    Usage:
        uow = UnitOfWork(session)
        with uow.atomic("transfer"):
            source = uow.warehouses.get_for_update(source_id)
            ...
    """

    def __init__(self, session: Session):
        self.session = session
        self.warehouses = WarehouseRepository(session)
        self.records = InventoryRecordRepository(session)
        self.activities = ActivityRepository(session)

    def caller_owns_transaction(self) -> bool:
        """True if someone outside this block explicitly opened a transaction."""
        root = self.session.get_transaction()
        if root is None:
            return False
        return (
            root.origin is not SessionTransactionOrigin.AUTOBEGIN
            or self.session.in_nested_transaction()
        )

    def _begin(self) -> tuple[SessionTransaction, SessionTransaction | None]:
        """Return (block transaction, implicit root to finish with it)."""
        if self.caller_owns_transaction():
            return self.session.begin_nested(), None
        root = self.session.get_transaction()
        if root is None:
            return self.session.begin(), None
        return self.session.begin_nested(), root

    @contextmanager
    def atomic(self, operation: str = "unit_of_work") -> Iterator["UnitOfWork"]:
        """
        Run the enclosed block as one atomic unit.

        Top-level blocks commit on success, including when an earlier read
        left an autobegun transaction open.  Blocks entered inside an
        explicitly opened transaction become SAVEPOINTs and leave the
        commit to whoever opened it.
        """
        nested = self.caller_owns_transaction()
        transaction, implicit_root = self._begin()
        try:
            yield self
            self.session.flush()
        except StaleDataError as exc:
            self._abort(transaction, implicit_root)
            table = _stale_table(exc)
            logger.warning(
                "unit_of_work_conflict",
                extra={"operation": operation, "table": table, "nested": nested},
            )
            raise OptimisticLockError(entity_type=table, entity_id="unknown") from exc
        except Exception:
            self._abort(transaction, implicit_root)
            logger.debug(
                "unit_of_work_rolled_back",
                extra={"operation": operation, "nested": nested},
            )
            raise
        transaction.commit()
        if implicit_root is not None:
            implicit_root.commit()
        logger.debug(
            "savepoint_released" if nested else "unit_of_work_committed",
            extra={"operation": operation, "nested": nested},
        )

    @staticmethod
    def _abort(
        transaction: SessionTransaction,
        implicit_root: SessionTransaction | None,
    ) -> None:
        transaction.rollback()
        if implicit_root is not None:
            implicit_root.rollback()

    def commit(self) -> None:
        """Commit the caller-owned outer transaction."""
        self.session.commit()

    def rollback(self) -> None:
        """Roll back the caller-owned outer transaction."""
        self.session.rollback()
