"""
Pytest fixtures for the inventory kernel test suite.

Provides:
- In-memory SQLite sessions (default) with the kernel schema
- File-backed SQLite engines for threaded concurrency tests
- Services, selectors and a deterministic clock
- Warehouse / item factories and the two-warehouse scenario
  (A: max 1000 used 500, B: max 2000 used 800)

Environment Variables:
- INVENTORY_TEST_DATABASE_URL: run the ``pg_engine`` tests against this
  PostgreSQL URL.  Tests marked ``postgres`` are skipped without it.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from inventory_batch.services.runner import BulkTransferRunner
from inventory_kernel.db.engine import build_engine, create_schema
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain.actor import Actor
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.dtos import ItemDraft, WarehouseDraft
from inventory_kernel.domain.policy import InventoryPolicy
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.repositories.unit_of_work import UnitOfWork
from inventory_kernel.selectors.activity_selector import ActivitySelector
from inventory_kernel.selectors.capacity_selector import CapacitySelector
from inventory_kernel.selectors.inventory_selector import InventorySelector
from inventory_kernel.services.adjustment_service import AdjustmentService
from inventory_kernel.services.transfer_coordinator import TransferCoordinator
from inventory_kernel.services.warehouse_service import WarehouseService


# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, transfer_coordinator):
            transfer_coordinator.transfer(...)
            logs = captured_logs()
            assert any(r["message"] == "transfer_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _immutability_listeners():
    register_immutability_listeners()
    yield


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with the kernel schema."""
    eng = build_engine("sqlite://")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite database, shareable across threads."""
    eng = build_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def pg_engine():
    """PostgreSQL engine from INVENTORY_TEST_DATABASE_URL, schema dropped after."""
    url = os.environ.get("INVENTORY_TEST_DATABASE_URL")
    if not url:
        pytest.skip("INVENTORY_TEST_DATABASE_URL not set")
    from inventory_kernel.db.base import Base
    from inventory_kernel.db.triggers import uninstall_immutability_triggers

    eng = build_engine(url)
    Base.metadata.drop_all(eng)
    create_schema(eng)
    yield eng
    uninstall_immutability_triggers(eng)
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    sess = Session(bind=engine)
    yield sess
    sess.close()


@pytest.fixture
def uow(session) -> UnitOfWork:
    return UnitOfWork(session)


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def policy() -> InventoryPolicy:
    return InventoryPolicy()


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def actor(test_actor_id) -> Actor:
    return Actor(actor_id=test_actor_id, username="test_user")


# =============================================================================
# Services and selectors
# =============================================================================


@pytest.fixture
def warehouse_service(uow, clock, policy) -> WarehouseService:
    return WarehouseService(uow, clock=clock, policy=policy)


@pytest.fixture
def adjustment_service(uow, clock, policy) -> AdjustmentService:
    return AdjustmentService(uow, clock=clock, policy=policy)


@pytest.fixture
def transfer_coordinator(uow, clock, policy) -> TransferCoordinator:
    return TransferCoordinator(uow, clock=clock, policy=policy)


@pytest.fixture
def bulk_runner(uow, clock, policy) -> BulkTransferRunner:
    return BulkTransferRunner(uow, clock=clock, policy=policy)


@pytest.fixture
def activity_selector(session) -> ActivitySelector:
    return ActivitySelector(session)


@pytest.fixture
def inventory_selector(session, policy) -> InventorySelector:
    return InventorySelector(session, policy=policy)


@pytest.fixture
def capacity_selector(session) -> CapacitySelector:
    return CapacitySelector(session)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_warehouse(warehouse_service, actor):
    """Create a warehouse and return its WarehouseInfo."""

    def _make(
        name: str,
        max_capacity: Decimal | int | str = "1000",
        location: str | None = None,
        threshold: Decimal | None = None,
    ):
        return warehouse_service.create_warehouse(
            WarehouseDraft(
                name=name,
                max_capacity=Decimal(str(max_capacity)),
                location=location,
                capacity_alert_threshold=threshold,
            ),
            actor,
        )

    return _make


@pytest.fixture
def make_item(adjustment_service, actor):
    """Create an inventory record and return its InventoryRecordInfo."""

    def _make(
        sku: str,
        warehouse_id: UUID,
        quantity: int = 0,
        volume_per_unit: Decimal | int | str | None = "1",
        name: str | None = None,
        **fields,
    ):
        return adjustment_service.create_item(
            ItemDraft(
                sku=sku,
                name=name or f"Item {sku}",
                warehouse_id=warehouse_id,
                quantity=quantity,
                volume_per_unit=(
                    None if volume_per_unit is None else Decimal(str(volume_per_unit))
                ),
                **fields,
            ),
            actor,
        )

    return _make


@pytest.fixture
def two_warehouses(make_warehouse, make_item):
    """
    Warehouse A (max 1000, used 500) holding SKU-X qty 50 at 2 per unit,
    and warehouse B (max 2000, used 800) without SKU-X.

    The remaining usage comes from filler records.
    """
    a = make_warehouse("Warehouse A", "1000", location="North")
    b = make_warehouse("Warehouse B", "2000", location="South")
    make_item("FILL-A", a.id, quantity=400, volume_per_unit="1")
    make_item("FILL-B", b.id, quantity=800, volume_per_unit="1")
    sku_x = make_item(
        "SKU-X",
        a.id,
        quantity=50,
        volume_per_unit="2",
        name="Widget X",
        description="Blue widget",
        category="Widgets",
        brand="Acme",
        unit_price=Decimal("9.50"),
        reorder_level=5,
        barcode="0123456789012",
    )
    return {"a": a, "b": b, "sku_x": sku_x}
