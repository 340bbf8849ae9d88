"""Database layer: engine, declarative base, column types, ledger immutability."""

from inventory_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from inventory_kernel.db.engine import (
    build_engine,
    create_schema,
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from inventory_kernel.db.types import Percentage, Sku, Volume

__all__ = [
    "build_engine",
    "create_schema",
    "create_tables",
    "get_engine",
    "get_session",
    "session_scope",
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "Percentage",
    "Sku",
    "Volume",
]
