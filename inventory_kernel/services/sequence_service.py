"""
SequenceService -- strictly increasing ``seq`` allocation.

Responsibility:
    Hands out the ``seq`` that totally orders the activity log.  Each named
    sequence is one ``sequence_counters`` row; allocation locks that row,
    bumps it and flushes.

Architecture position:
    Kernel > Services.  Used by ActivityLogger for every append.

Invariants enforced:
    sequence_monotonicity -- values come only from the locked counter row,
        never from ``max(seq) + 1`` over the ledger.  A writer holding the
        row lock blocks the next writer until its transaction ends.

Failure modes:
    - Two writers creating the same counter row concurrently: the loser's
      insert fails inside a savepoint, which is rolled back before the
      existing row is locked instead.

Audit relevance:
    A rolled-back transaction gives its value back; the next writer reuses
    it.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.sequence_counter import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Named counters allocated inside the caller's transaction.

    Never commits; the value becomes durable with the caller's commit.

    Usage:
        with uow.atomic("adjust_quantity"):
            seq = SequenceService(uow.session).next_value(SequenceService.ACTIVITY_ENTRY)
    """

    ACTIVITY_ENTRY = "activity_entry"

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """Lock ``sequence_name``'s counter (creating it at zero), add one, return it."""
        counter = self._lock(sequence_name)
        if counter is None:
            counter = self._create(sequence_name)

        counter.current_value += 1
        self._session.flush()

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Last allocated value, or None if the sequence was never used."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()

    def _lock(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create(self, sequence_name: str) -> SequenceCounter:
        counter = SequenceCounter(name=sequence_name, current_value=0)
        try:
            with self._session.begin_nested():
                self._session.add(counter)
        except IntegrityError:
            logger.debug(
                "sequence_counter_created_concurrently",
                extra={"sequence_name": sequence_name},
            )
            existing = self._lock(sequence_name)
            if existing is None:
                raise
            return existing
        return counter
