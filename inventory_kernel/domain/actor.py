"""
Actor -- the already-resolved identity performing a mutation.

The kernel never authenticates.  Callers resolve who is acting (session,
token, CLI user) and pass an Actor explicitly to every mutating operation;
it ends up in ``ActivityEntry.performed_by_*`` and the audit columns.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Actor:
    """Identity of the user or system process performing an operation."""

    actor_id: UUID
    username: str

    def __post_init__(self) -> None:
        if not self.username or not self.username.strip():
            raise ValueError("Actor username must be non-empty")

    def __str__(self) -> str:
        return self.username
