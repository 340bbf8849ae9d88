"""
SequenceCounter ORM model.

Each row is a named counter.  SequenceService locks the row
(``SELECT ... FOR UPDATE``) before incrementing it, which keeps
allocated values strictly monotonic under concurrent writers.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class SequenceCounter(Base):
    """Named monotonic counter row."""

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "activity_entry")
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
