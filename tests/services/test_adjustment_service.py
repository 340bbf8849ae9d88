"""
Tests for AdjustmentService.

Covers:
- create_item: RECEIVE entry, capacity admission, policy default volume
- adjust_quantity: signed corrections, capacity bookkeeping, rejections
- update_item: in-place edits, warehouse reassignment, duplicate detection
- delete_item: volume release and the surviving DELETE entry
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from inventory_kernel.domain.dtos import (
    ActivityFilter,
    ActivityType,
    AdjustmentRequest,
    ItemDraft,
)
from inventory_kernel.domain.policy import InventoryPolicy
from inventory_kernel.exceptions import (
    CapacityExceededError,
    DuplicateResourceError,
    InvalidOperationError,
    ResourceNotFoundError,
)
from inventory_kernel.services.adjustment_service import AdjustmentService


def _draft(record, **changes) -> ItemDraft:
    """ItemDraft reproducing ``record`` with selected fields replaced."""
    values = dict(
        sku=record.sku,
        name=record.name,
        warehouse_id=record.warehouse_id,
        quantity=record.quantity,
        description=record.description,
        category=record.category,
        brand=record.brand,
        unit_price=record.unit_price,
        volume_per_unit=record.volume_per_unit,
        reorder_level=record.reorder_level,
        warranty_end_date=record.warranty_end_date,
        expiration_date=record.expiration_date,
        barcode=record.barcode,
    )
    values.update(changes)
    return ItemDraft(**values)


# =============================================================================
# create_item
# =============================================================================


class TestCreateItem:

    def test_create_records_receive_entry(
        self, make_warehouse, make_item, activity_selector, capacity_selector,
    ):
        wh = make_warehouse("Main", "100")

        item = make_item("SKU-1", wh.id, quantity=8, volume_per_unit="1.25")

        assert item.quantity == 8
        assert item.total_volume == Decimal("10")
        assert capacity_selector.get(wh.id).current_capacity == Decimal("10")

        entries = activity_selector.for_item(item.id)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.activity_type == ActivityType.RECEIVE
        assert (entry.previous_quantity, entry.quantity_change, entry.new_quantity) == (0, 8, 8)
        assert entry.sku == "SKU-1"
        assert entry.performed_by_username == "test_user"
        assert entry.source_warehouse_id is None
        assert entry.destination_warehouse_id is None
        assert entry.notes == "Item created with 8 units"

    def test_volume_per_unit_defaults_from_policy(
        self, uow, clock, actor, make_warehouse, capacity_selector,
    ):
        service = AdjustmentService(
            uow, clock=clock, policy=InventoryPolicy(default_volume_per_unit=Decimal("0.5")),
        )
        wh = make_warehouse("Main", "100")

        item = service.create_item(
            ItemDraft(sku="SKU-1", name="Thing", warehouse_id=wh.id, quantity=10), actor,
        )

        assert item.volume_per_unit == Decimal("0.5")
        assert capacity_selector.get(wh.id).current_capacity == Decimal("5")

    def test_same_sku_allowed_in_different_warehouses(self, make_warehouse, make_item):
        north = make_warehouse("North", "100")
        south = make_warehouse("South", "100")

        first = make_item("SKU-1", north.id, quantity=1)
        second = make_item("SKU-1", south.id, quantity=1)

        assert first.id != second.id

    def test_duplicate_sku_in_warehouse_rejected(
        self, make_warehouse, make_item, activity_selector,
    ):
        wh = make_warehouse("Main", "100")
        make_item("SKU-1", wh.id, quantity=1)
        before = activity_selector.count()

        with pytest.raises(DuplicateResourceError) as exc_info:
            make_item("SKU-1", wh.id, quantity=1)

        assert exc_info.value.code == "DUPLICATE_RESOURCE"
        assert activity_selector.count() == before

    def test_capacity_exceeded_rejected_without_writes(
        self, make_warehouse, make_item, inventory_selector, capacity_selector,
        activity_selector,
    ):
        wh = make_warehouse("Tiny", "10")

        with pytest.raises(CapacityExceededError) as exc_info:
            make_item("SKU-1", wh.id, quantity=6, volume_per_unit="2")

        assert exc_info.value.available_volume == Decimal("10")
        assert exc_info.value.requested_volume == Decimal("12")
        assert inventory_selector.by_warehouse(wh.id) == []
        assert capacity_selector.get(wh.id).current_capacity == Decimal("0")
        assert activity_selector.count() == 0

    def test_fill_to_exact_capacity_allowed(self, make_warehouse, make_item, capacity_selector):
        wh = make_warehouse("Tiny", "10")

        make_item("SKU-1", wh.id, quantity=5, volume_per_unit="2")

        snapshot = capacity_selector.get(wh.id)
        assert snapshot.available_capacity == Decimal("0")
        assert snapshot.utilization_percentage == Decimal("100.00")

    def test_inactive_warehouse_rejected(self, warehouse_service, actor, make_warehouse, make_item):
        wh = make_warehouse("Closed", "100")
        warehouse_service.deactivate_warehouse(wh.id, actor)

        with pytest.raises(InvalidOperationError, match="not active"):
            make_item("SKU-1", wh.id, quantity=1)

    def test_unknown_warehouse(self, make_item):
        with pytest.raises(ResourceNotFoundError):
            make_item("SKU-1", uuid4(), quantity=1)

    @pytest.mark.parametrize(
        "changes",
        [
            {"sku": ""},
            {"name": "  "},
            {"quantity": -1},
            {"volume_per_unit": Decimal("-1")},
            {"volume_per_unit": Decimal("0.0000000001")},
            {"unit_price": Decimal("-0.5")},
        ],
    )
    def test_invalid_draft_rejected(self, adjustment_service, actor, make_warehouse, changes):
        wh = make_warehouse("Main", "100")
        values = dict(sku="SKU-1", name="Thing", warehouse_id=wh.id, quantity=1)
        values.update(changes)

        with pytest.raises(InvalidOperationError):
            adjustment_service.create_item(ItemDraft(**values), actor)

    def test_volume_finer_than_stored_scale_rejected(
        self, make_warehouse, make_item, inventory_selector, capacity_selector,
    ):
        wh = make_warehouse("Main", "100")

        with pytest.raises(InvalidOperationError, match="at most 9 decimal places"):
            make_item("SKU-P", wh.id, quantity=3, volume_per_unit="0.3333333333")

        assert inventory_selector.by_warehouse(wh.id) == []
        assert capacity_selector.get(wh.id).current_capacity == Decimal("0")

    def test_nine_place_volume_reconciles_exactly(
        self, make_warehouse, make_item, capacity_selector,
    ):
        wh = make_warehouse("Main", "100")

        make_item("SKU-P", wh.id, quantity=3, volume_per_unit="0.333333333")

        assert capacity_selector.get(wh.id).current_capacity == Decimal("0.999999999")
        assert capacity_selector.reconcile() == []

    def test_trailing_zeros_beyond_scale_accepted(self, make_warehouse, make_item):
        wh = make_warehouse("Main", "100")

        item = make_item("SKU-P", wh.id, quantity=2, volume_per_unit="0.50000000000")

        assert item.volume_per_unit == Decimal("0.5")

    def test_racing_duplicate_insert_is_duplicate_resource(
        self, adjustment_service, make_warehouse, make_item, monkeypatch,
    ):
        wh = make_warehouse("Main", "100")
        make_item("SKU-1", wh.id, quantity=1)
        # The pre-check misses a row inserted by a concurrent writer
        monkeypatch.setattr(
            adjustment_service.uow.records, "get_by_sku_and_warehouse", lambda *a, **k: None,
        )

        with pytest.raises(DuplicateResourceError):
            make_item("SKU-1", wh.id, quantity=1)

    def test_other_integrity_errors_propagate(
        self, adjustment_service, make_warehouse, make_item, monkeypatch, activity_selector,
    ):
        wh = make_warehouse("Main", "100")
        records = adjustment_service.uow.records
        original_add = records.add

        def add_negative(record):
            record.quantity = -1
            return original_add(record)

        monkeypatch.setattr(records, "add", add_negative)

        with pytest.raises(IntegrityError, match="ck_inventory_record_quantity_non_negative"):
            make_item("SKU-1", wh.id, quantity=1)
        assert activity_selector.count() == 0


# =============================================================================
# adjust_quantity
# =============================================================================


class TestAdjustQuantity:

    def test_increase(self, adjustment_service, actor, make_warehouse, make_item, capacity_selector):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=10, volume_per_unit="2")

        info = adjustment_service.adjust_quantity(
            AdjustmentRequest(item_id=item.id, quantity_change=5), actor,
        )

        assert info.quantity == 15
        assert capacity_selector.get(wh.id).current_capacity == Decimal("30")

    def test_decrease_records_adjustment_entry(
        self, adjustment_service, actor, make_warehouse, make_item, capacity_selector,
        activity_selector,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=10, volume_per_unit="2")

        adjustment_service.adjust_quantity(
            AdjustmentRequest(item_id=item.id, quantity_change=-4), actor,
        )

        assert capacity_selector.get(wh.id).current_capacity == Decimal("12")
        entries = activity_selector.query(
            ActivityFilter(item_id=item.id, activity_type=ActivityType.ADJUSTMENT)
        )
        assert len(entries) == 1
        entry = entries[0]
        assert (entry.previous_quantity, entry.quantity_change, entry.new_quantity) == (10, -4, 6)
        assert entry.notes == "Manual quantity adjustment: -4"
        assert entry.source_warehouse_id is None

    def test_request_notes_appended(
        self, adjustment_service, actor, make_warehouse, make_item, activity_selector,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=10)

        adjustment_service.adjust_quantity(
            AdjustmentRequest(item_id=item.id, quantity_change=3, notes="Cycle count"), actor,
        )

        entry = activity_selector.query(
            ActivityFilter(activity_type=ActivityType.ADJUSTMENT)
        )[0]
        assert entry.notes == "Manual quantity adjustment: +3; Cycle count"

    def test_adjust_down_to_zero(self, adjustment_service, actor, make_warehouse, make_item):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=10)

        info = adjustment_service.adjust_quantity(
            AdjustmentRequest(item_id=item.id, quantity_change=-10), actor,
        )

        assert info.quantity == 0

    def test_negative_result_rejected(
        self, adjustment_service, actor, make_warehouse, make_item, inventory_selector,
        activity_selector,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=10)
        before = activity_selector.count()

        with pytest.raises(InvalidOperationError, match="negative quantity"):
            adjustment_service.adjust_quantity(
                AdjustmentRequest(item_id=item.id, quantity_change=-11), actor,
            )

        assert inventory_selector.get(item.id).quantity == 10
        assert activity_selector.count() == before

    def test_zero_change_rejected(self, adjustment_service, actor, make_warehouse, make_item):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=10)

        with pytest.raises(InvalidOperationError, match="non-zero"):
            adjustment_service.adjust_quantity(
                AdjustmentRequest(item_id=item.id, quantity_change=0), actor,
            )

    def test_capacity_exceeded(
        self, adjustment_service, actor, make_warehouse, make_item, capacity_selector,
    ):
        wh = make_warehouse("Main", "20")
        item = make_item("SKU-1", wh.id, quantity=8, volume_per_unit="2")

        with pytest.raises(CapacityExceededError):
            adjustment_service.adjust_quantity(
                AdjustmentRequest(item_id=item.id, quantity_change=3), actor,
            )

        assert capacity_selector.get(wh.id).current_capacity == Decimal("16")

    def test_unknown_item(self, adjustment_service, actor):
        with pytest.raises(ResourceNotFoundError):
            adjustment_service.adjust_quantity(
                AdjustmentRequest(item_id=uuid4(), quantity_change=1), actor,
            )

    def test_inactive_warehouse_rejects_added_volume(
        self, adjustment_service, warehouse_service, actor, make_warehouse, make_item,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=0)
        warehouse_service.deactivate_warehouse(wh.id, actor)

        with pytest.raises(InvalidOperationError, match="not active"):
            adjustment_service.adjust_quantity(
                AdjustmentRequest(item_id=item.id, quantity_change=5), actor,
            )

    def test_inactive_warehouse_allows_removal(
        self, adjustment_service, warehouse_service, actor, make_warehouse, make_item,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=10, volume_per_unit="0")
        warehouse_service.deactivate_warehouse(wh.id, actor)

        info = adjustment_service.adjust_quantity(
            AdjustmentRequest(item_id=item.id, quantity_change=-3), actor,
        )

        assert info.quantity == 7

    def test_rejection_logged_with_code(
        self, adjustment_service, actor, make_warehouse, make_item, captured_logs,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=1)

        with pytest.raises(InvalidOperationError):
            adjustment_service.adjust_quantity(
                AdjustmentRequest(item_id=item.id, quantity_change=-2), actor,
            )

        rejected = [r for r in captured_logs() if r["message"] == "adjustment_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["error_code"] == "INVALID_OPERATION"
        assert rejected[0]["item_id"] == str(item.id)


# =============================================================================
# update_item
# =============================================================================


class TestUpdateItem:

    def test_update_descriptive_fields_only(
        self, adjustment_service, actor, make_warehouse, make_item, activity_selector,
        capacity_selector,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=4, volume_per_unit="2")

        info = adjustment_service.update_item(
            item.id, _draft(item, name="Renamed", brand="Acme"), actor,
        )

        assert info.name == "Renamed"
        assert info.brand == "Acme"
        assert capacity_selector.get(wh.id).current_capacity == Decimal("8")
        entry = activity_selector.query(ActivityFilter(activity_type=ActivityType.UPDATE))[0]
        assert entry.quantity_change == 0
        assert entry.notes == "Item details updated"

    def test_update_quantity_and_volume_in_place(
        self, adjustment_service, actor, make_warehouse, make_item, activity_selector,
        capacity_selector,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=4, volume_per_unit="2")

        adjustment_service.update_item(
            item.id, _draft(item, quantity=6, volume_per_unit=Decimal("2.5")), actor,
        )

        assert capacity_selector.get(wh.id).current_capacity == Decimal("15")
        entry = activity_selector.query(ActivityFilter(activity_type=ActivityType.UPDATE))[0]
        assert (entry.previous_quantity, entry.quantity_change, entry.new_quantity) == (4, 2, 6)
        assert entry.notes == "Item updated: Volume changed from 8 to 15"
        assert entry.source_warehouse_id is None

    def test_volume_per_unit_none_keeps_current(
        self, adjustment_service, actor, make_warehouse, make_item,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=4, volume_per_unit="2")

        info = adjustment_service.update_item(
            item.id, _draft(item, volume_per_unit=None, quantity=5), actor,
        )

        assert info.volume_per_unit == Decimal("2")

    def test_volume_finer_than_stored_scale_rejected(
        self, adjustment_service, actor, make_warehouse, make_item, capacity_selector,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=3, volume_per_unit="1")

        with pytest.raises(InvalidOperationError):
            adjustment_service.update_item(
                item.id, _draft(item, volume_per_unit=Decimal("0.3333333333")), actor,
            )

        assert capacity_selector.get(wh.id).current_capacity == Decimal("3")
        assert capacity_selector.reconcile() == []

    def test_in_place_growth_checked_against_capacity(
        self, adjustment_service, actor, make_warehouse, make_item, inventory_selector,
    ):
        wh = make_warehouse("Main", "10")
        item = make_item("SKU-1", wh.id, quantity=4, volume_per_unit="2")

        with pytest.raises(CapacityExceededError):
            adjustment_service.update_item(item.id, _draft(item, quantity=6), actor)

        assert inventory_selector.get(item.id).quantity == 4

    def test_reassign_moves_volume_between_warehouses(
        self, adjustment_service, actor, make_warehouse, make_item, capacity_selector,
        activity_selector,
    ):
        north = make_warehouse("North", "100")
        south = make_warehouse("South", "100")
        item = make_item("SKU-1", north.id, quantity=5, volume_per_unit="2")

        info = adjustment_service.update_item(
            item.id, _draft(item, warehouse_id=south.id, quantity=3), actor,
        )

        assert info.id == item.id
        assert info.warehouse_id == south.id
        assert capacity_selector.get(north.id).current_capacity == Decimal("0")
        assert capacity_selector.get(south.id).current_capacity == Decimal("6")
        assert capacity_selector.reconcile() == []

        entry = activity_selector.query(ActivityFilter(activity_type=ActivityType.UPDATE))[0]
        assert entry.source_warehouse_id == north.id
        assert entry.destination_warehouse_id == south.id
        assert entry.notes == (
            "Item updated: Warehouse changed from 'North' to 'South'; "
            "Volume changed from 10 to 6"
        )

    def test_reassign_checks_full_volume_at_target(
        self, adjustment_service, actor, make_warehouse, make_item, capacity_selector,
    ):
        north = make_warehouse("North", "100")
        south = make_warehouse("South", "5")
        item = make_item("SKU-1", north.id, quantity=5, volume_per_unit="2")

        with pytest.raises(CapacityExceededError) as exc_info:
            adjustment_service.update_item(item.id, _draft(item, warehouse_id=south.id), actor)

        assert exc_info.value.warehouse_name == "South"
        assert capacity_selector.get(north.id).current_capacity == Decimal("10")
        assert capacity_selector.get(south.id).current_capacity == Decimal("0")

    def test_reassign_to_inactive_rejected(
        self, adjustment_service, warehouse_service, actor, make_warehouse, make_item,
    ):
        north = make_warehouse("North", "100")
        south = make_warehouse("South", "100")
        warehouse_service.deactivate_warehouse(south.id, actor)
        item = make_item("SKU-1", north.id, quantity=1)

        with pytest.raises(InvalidOperationError, match="not active"):
            adjustment_service.update_item(item.id, _draft(item, warehouse_id=south.id), actor)

    def test_reassign_onto_existing_sku_rejected(
        self, adjustment_service, actor, make_warehouse, make_item,
    ):
        north = make_warehouse("North", "100")
        south = make_warehouse("South", "100")
        item = make_item("SKU-1", north.id, quantity=1)
        make_item("SKU-1", south.id, quantity=1)

        with pytest.raises(DuplicateResourceError):
            adjustment_service.update_item(item.id, _draft(item, warehouse_id=south.id), actor)

    def test_rename_sku_onto_existing_rejected(
        self, adjustment_service, actor, make_warehouse, make_item,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=1)
        make_item("SKU-2", wh.id, quantity=1)

        with pytest.raises(DuplicateResourceError):
            adjustment_service.update_item(item.id, _draft(item, sku="SKU-2"), actor)

    def test_unknown_item(self, adjustment_service, actor, make_warehouse):
        wh = make_warehouse("Main", "100")
        draft = ItemDraft(sku="SKU-1", name="Thing", warehouse_id=wh.id)

        with pytest.raises(ResourceNotFoundError):
            adjustment_service.update_item(uuid4(), draft, actor)


# =============================================================================
# delete_item
# =============================================================================


class TestDeleteItem:

    def test_delete_releases_volume(
        self, adjustment_service, actor, make_warehouse, make_item, capacity_selector,
        inventory_selector,
    ):
        wh = make_warehouse("Main", "100")
        keep = make_item("KEEP", wh.id, quantity=3)
        item = make_item("SKU-1", wh.id, quantity=5, volume_per_unit="2")

        adjustment_service.delete_item(item.id, actor)

        assert capacity_selector.get(wh.id).current_capacity == Decimal("3")
        assert [r.id for r in inventory_selector.by_warehouse(wh.id)] == [keep.id]
        with pytest.raises(ResourceNotFoundError):
            inventory_selector.get(item.id)

    def test_delete_entry_survives_record(
        self, adjustment_service, actor, make_warehouse, make_item, activity_selector,
    ):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=5)

        adjustment_service.delete_item(item.id, actor)

        history = activity_selector.for_item(item.id)
        assert [e.activity_type for e in history] == [ActivityType.RECEIVE, ActivityType.DELETE]
        deletion = history[-1]
        assert (deletion.previous_quantity, deletion.quantity_change, deletion.new_quantity) == (
            5, -5, 0,
        )
        assert deletion.sku == "SKU-1"
        assert deletion.notes == "Item deleted from 'Main'"

    def test_delete_unknown_item(self, adjustment_service, actor):
        with pytest.raises(ResourceNotFoundError):
            adjustment_service.delete_item(uuid4(), actor)

    def test_sku_reusable_after_delete(self, adjustment_service, actor, make_warehouse, make_item):
        wh = make_warehouse("Main", "100")
        item = make_item("SKU-1", wh.id, quantity=5)
        adjustment_service.delete_item(item.id, actor)

        again = make_item("SKU-1", wh.id, quantity=2)

        assert again.id != item.id
