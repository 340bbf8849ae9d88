"""
Declarative base and column types shared by every inventory table.

Architecture position: Kernel > DB.  Imported by models/ only; nothing here
    may import from models/, services/, selectors/ or domain/.

Conventions:
    - Primary keys are uuid4 values stored as 36-character strings, so the
      same schema runs on SQLite and PostgreSQL.
    - ``Decimal`` annotations become Numeric(38, 9).  Volumes and prices are
      never floats in application code.
    - ``datetime`` annotations become UTCDateTime: aware on the way in,
      aware UTC on the way out, whatever the backend keeps.
    - Mutable aggregates (warehouses, inventory records) extend TrackedBase
      and carry who created them and who touched them last.  The activity
      ledger extends Base directly: it is never updated.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID bound as its canonical string, read back as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, UUID):
            return value
        return UUID(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    SQLite keeps only the wall-clock text, so naive values coming back are
    tagged UTC; aware values going in are converted to UTC first, which
    also keeps SQLite's text comparisons in range queries correct.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None or value.tzinfo is not None:
            return value
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """Root of every mapped class; supplies the ``id`` column."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Audit columns for mutable rows.

    ``created_at`` / ``updated_at`` are filled by the database clock.
    ``created_by_id`` is mandatory; ``updated_by_id`` stays NULL until the
    first change.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), onupdate=func.now(), nullable=False,
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
