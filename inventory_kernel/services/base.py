"""
BaseService -- common constructor for the kernel's mutating services.

Responsibility:
    Gives every write-side service the same three collaborators: a
    UnitOfWork (session plus repositories plus ``atomic()``), a Clock for
    ledger timestamps, and the InventoryPolicy defaults.

Architecture position:
    Kernel > Services -- imperative shell.  Every service in
    ``inventory_kernel/services/`` that mutates state extends this class.

Invariants enforced:
    atomic_unit -- services wrap each public mutation in
        ``self.uow.atomic(...)``.  They never call ``session.commit()``
        directly, so a caller that already holds a transaction (the bulk
        runner, a test harness) gets a SAVEPOINT instead of a commit.

Failure modes:
    - A subclass that commits on its own breaks the caller's ability to
      group several operations into one transaction.
"""

from abc import ABC

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.policy import DEFAULT_POLICY, InventoryPolicy
from inventory_kernel.repositories.unit_of_work import UnitOfWork


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a UnitOfWork from the caller.  Reads and writes go through
        ``self.uow`` repositories; transaction boundaries through
        ``self.uow.atomic()``.

    Non-goals:
        - Does NOT provide query-only methods -- those belong in
          ``inventory_kernel/selectors/``.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        policy: InventoryPolicy | None = None,
    ):
        """
        Initialize the service.

        Args:
            uow: Unit of work wrapping the caller's session.
            clock: Time source for ledger timestamps (SystemClock if None).
            policy: Inventory defaults (DEFAULT_POLICY if None).
        """
        self.uow = uow
        self.session = uow.session
        self._clock = clock or SystemClock()
        self._policy = policy or DEFAULT_POLICY
