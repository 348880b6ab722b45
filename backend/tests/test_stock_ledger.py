"""
Stock ledger tests.

Verifies:
- append_entry is the only writer and keeps records and ledger in agreement
- Quantities never go negative
- Records are created on first stock-in, cloned from another branch when possible
"""

import pytest

from replenish.errors import InsufficientStockError, ValidationError
from replenish.models import InventoryRecord, StockLedgerEntry
from replenish.services import inventory_service, ledger_service


# =============================================================================
# APPEND ENTRY
# =============================================================================


class TestAppendEntry:

    def test_stock_in_creates_record_and_entry(self, db_session, branches, stock):
        entry = stock("SH-001", "Main", 20, item_name="Shampoo", unit_price_cents=35000)

        record = ledger_service.get_record("SH-001", branches["Main"].id)
        assert record.quantity == 20
        assert record.item_name == "Shampoo"
        assert entry.previous_quantity == 0
        assert entry.new_quantity == 20
        assert entry.direction == "in"

    def test_stock_out_reduces_quantity(self, db_session, branches, stock):
        stock("SH-001", "Main", 20, item_name="Shampoo")

        entry = inventory_service.record_stock_movement(
            item_id="SH-001",
            branch_id=branches["Main"].id,
            direction="out",
            quantity=7,
            actor_id="mgr-main",
            reason="Damaged",
        )

        assert entry.previous_quantity == 20
        assert entry.new_quantity == 13
        assert inventory_service.get_quantity_on_hand("SH-001", branches["Main"].id) == 13

    def test_stock_out_below_zero_rejected_without_writes(self, db_session, branches, stock):
        stock("SH-001", "Main", 5, item_name="Shampoo")
        before = db_session.query(StockLedgerEntry).count()

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory_service.record_stock_movement(
                item_id="SH-001",
                branch_id=branches["Main"].id,
                direction="out",
                quantity=6,
                actor_id="mgr-main",
                reason="Damaged",
            )
        db_session.rollback()

        assert exc_info.value.available == 5
        assert exc_info.value.requested == 6
        assert inventory_service.get_quantity_on_hand("SH-001", branches["Main"].id) == 5
        assert db_session.query(StockLedgerEntry).count() == before

    def test_stock_out_of_unknown_item_is_insufficient(self, db_session, branches):
        with pytest.raises(InsufficientStockError):
            ledger_service.append_entry(
                item_id="NOPE",
                branch_id=branches["Main"].id,
                direction="out",
                quantity=1,
                actor_id="x",
                reason="Damaged",
            )

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, True, "4"])
    def test_non_positive_or_non_integer_quantity_rejected(self, db_session, branches, quantity):
        with pytest.raises(ValidationError):
            ledger_service.append_entry(
                item_id="SH-001",
                branch_id=branches["Main"].id,
                direction="in",
                quantity=quantity,
                actor_id="x",
                reason="Delivery",
                template={"item_name": "Shampoo"},
            )

    def test_first_stock_in_without_name_rejected(self, db_session, branches):
        with pytest.raises(ValidationError):
            ledger_service.append_entry(
                item_id="NEW-1",
                branch_id=branches["Main"].id,
                direction="in",
                quantity=1,
                actor_id="x",
                reason="Delivery",
            )

    def test_new_branch_record_clones_attributes(self, db_session, branches, stock):
        stock(
            "SH-001", "Main", 20,
            item_name="Shampoo", category="Hair", reorder_threshold=4,
            unit_price_cents=35000, supplier="Salon Supply Co",
        )

        stock("SH-001", "Uptown", 3, item_name=None)

        record = ledger_service.get_record("SH-001", branches["Uptown"].id)
        assert record.item_name == "Shampoo"
        assert record.category == "Hair"
        assert record.reorder_threshold == 4
        assert record.supplier == "Salon Supply Co"

    def test_concurrent_first_arrival_uses_existing_record(self, db_session, branches, stock, monkeypatch):
        stock("SH-001", "Downtown", 4, item_name="Shampoo")
        real_get_record = ledger_service.get_record
        lookups = []

        def _missed_first_lookup(item_id, branch_id, *, lock=False):
            lookups.append(lock)
            if len(lookups) == 1:
                return None
            return real_get_record(item_id, branch_id, lock=lock)

        monkeypatch.setattr(ledger_service, "get_record", _missed_first_lookup)

        entry = ledger_service.append_entry(
            item_id="SH-001",
            branch_id=branches["Downtown"].id,
            direction="in",
            quantity=6,
            actor_id="mgr-dt",
            reason="Transfer In",
            template={"item_name": "Shampoo"},
        )
        db_session.commit()

        assert lookups == [True, True]
        assert entry.previous_quantity == 4
        assert entry.new_quantity == 10
        assert db_session.query(InventoryRecord).filter_by(item_id="SH-001").count() == 1
        assert real_get_record("SH-001", branches["Downtown"].id).quantity == 10
        assert ledger_service.find_ledger_discrepancies() == []


# =============================================================================
# LEDGER-STATE AGREEMENT
# =============================================================================


class TestLedgerAgreement:

    def test_balance_matches_record(self, db_session, branches, stock):
        stock("SH-001", "Main", 20, item_name="Shampoo")
        inventory_service.record_stock_movement(
            item_id="SH-001", branch_id=branches["Main"].id, direction="out",
            quantity=8, actor_id="x", reason="Sold",
        )
        stock("SH-001", "Main", 3)

        assert ledger_service.ledger_balance("SH-001", branches["Main"].id) == 15
        assert ledger_service.find_ledger_discrepancies() == []

    def test_discrepancy_reported_when_record_edited_directly(self, db_session, branches, stock):
        stock("SH-001", "Main", 20, item_name="Shampoo")
        record = ledger_service.get_record("SH-001", branches["Main"].id)
        record.quantity = 99
        db_session.commit()

        discrepancies = ledger_service.find_ledger_discrepancies()

        assert len(discrepancies) == 1
        assert discrepancies[0].record_quantity == 99
        assert discrepancies[0].ledger_quantity == 20


# =============================================================================
# READ MODEL
# =============================================================================


class TestInventoryReadModel:

    def test_status_derived_from_threshold(self, db_session, branches, stock):
        stock("A", "Main", 50, item_name="Conditioner", reorder_threshold=10)
        stock("B", "Main", 10, item_name="Wax", reorder_threshold=10)
        stock("C", "Main", 1, item_name="Gel", reorder_threshold=10)
        inventory_service.record_stock_movement(
            item_id="C", branch_id=branches["Main"].id, direction="out",
            quantity=1, actor_id="x", reason="Sold",
        )

        statuses = {r.item_id: r.status for r in inventory_service.list_records(branches["Main"].id)}

        assert statuses == {"A": "in-stock", "B": "low-stock", "C": "out-of-stock"}

    def test_branch_stocks_excludes_branch_and_empty_records(self, db_session, branches, stock):
        stock("SH-001", "Main", 12, item_name="Shampoo")
        stock("SH-001", "Uptown", 30, item_name="Shampoo")
        stock("SH-001", "Downtown", 2, item_name="Shampoo")

        records = inventory_service.get_branch_stocks(["SH-001"], exclude_branch_id=branches["Downtown"].id)

        assert [(r.branch_id, r.quantity) for r in records] == [
            (branches["Uptown"].id, 30),
            (branches["Main"].id, 12),
        ]
