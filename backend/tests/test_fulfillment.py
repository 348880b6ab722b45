"""
Fulfillment tests.

Verifies:
- Transfers move exactly the planned quantity (conservation)
- A transfer line the source cannot cover fails alone; other lines apply
- Purchase orders are grouped per supplier and post stock on creation
- Storage failures roll back the whole pass and mark the request failed
- A pass that hits a stale row is retried and applied exactly once
- Ledger and inventory agree after every pass
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from replenish.models import ItemRequest, PurchaseOrder, StockLedgerEntry, Transfer
from replenish.services import approval_service, concurrency, fulfillment_service, inventory_service, request_service
from replenish.services.ledger_service import find_ledger_discrepancies
from replenish.time_utils import utcnow


def _qty(branches, branch_name, item_id="SH-001"):
    return inventory_service.get_quantity_on_hand(item_id, branches[branch_name].id)


def _plan(transfer_quantity=10, po_quantity=5, from_branch="Main"):
    transfers = []
    if transfer_quantity:
        transfers.append({"from_branch": from_branch, "quantity": transfer_quantity, "unit_price_cents": 35000})
    return [{
        "item_id": "SH-001",
        "item_name": "Shampoo",
        "transfers": transfers,
        "purchase_order_quantity": po_quantity,
        "purchase_order_price_cents": 35000,
    }]


@pytest.fixture
def shampoo_at_main(stock):
    def _seed(quantity):
        return stock(
            "SH-001", "Main", quantity,
            item_name="Shampoo", category="Hair", reorder_threshold=5,
            unit_price_cents=35000, supplier="Salon Supply Co",
        )
    return _seed


# =============================================================================
# SCENARIOS
# =============================================================================


class TestFulfillmentScenarios:

    def test_transfer_and_purchase_order_applied(self, db_session, admin, branches, shampoo_at_main, shampoo_request):
        shampoo_at_main(20)
        item_request = shampoo_request()

        result = approval_service.review_request(item_request.id, admin, "approve", fulfillment_plan=_plan())

        assert result.request.status == "approved"
        assert result.request.fulfillment_status == "applied"
        assert _qty(branches, "Main") == 10
        assert _qty(branches, "Downtown") == 15

        transfers = db_session.query(Transfer).all()
        assert len(transfers) == 1
        assert transfers[0].status == "completed"
        assert transfers[0].request_id == item_request.id
        assert transfers[0].transfer_number == f"TRF-{utcnow().year}-0001"
        assert [(line.item_id, line.quantity) for line in transfers[0].lines] == [("SH-001", 10)]

        orders = db_session.query(PurchaseOrder).all()
        assert len(orders) == 1
        order = orders[0]
        assert order.status == "ordered"
        assert order.supplier == "Salon Supply Co"
        assert order.stock_posted is True
        assert order.branch_id == branches["Downtown"].id
        assert order.requested_by == "staff-dt"
        assert order.ordered_at is not None
        assert order.total_amount_cents == 5 * 35000
        assert [(line.item_id, line.quantity) for line in order.lines] == [("SH-001", 5)]

        entries = (
            db_session.query(StockLedgerEntry)
            .filter_by(request_id=item_request.id)
            .order_by(StockLedgerEntry.id)
            .all()
        )
        assert [(e.branch_id, e.direction, e.quantity) for e in entries] == [
            (branches["Main"].id, "out", 10),
            (branches["Downtown"].id, "in", 10),
            (branches["Downtown"].id, "in", 5),
        ]

        report = result.fulfillment_report
        assert [item["kind"] for item in report.applied] == ["transfer", "purchase_order"]
        assert report.failed == []
        assert find_ledger_discrepancies() == []

    def test_insufficient_source_fails_only_that_line(
        self, db_session, admin, branches, shampoo_at_main, shampoo_request
    ):
        shampoo_at_main(6)
        item_request = shampoo_request()

        result = approval_service.review_request(item_request.id, admin, "approve", fulfillment_plan=_plan())

        report = result.fulfillment_report
        assert result.request.status == "approved"
        assert result.request.fulfillment_status == "partial"
        assert len(report.failed) == 1
        assert report.failed[0]["kind"] == "transfer"
        assert report.failed[0]["error"] == "InsufficientStockError"
        assert [item["kind"] for item in report.applied] == ["purchase_order"]

        assert _qty(branches, "Main") == 6
        assert _qty(branches, "Downtown") == 5
        assert db_session.query(Transfer).count() == 0
        assert find_ledger_discrepancies() == []

    def test_destination_record_cloned_from_source(self, db_session, admin, branches, shampoo_at_main, shampoo_request):
        shampoo_at_main(20)
        item_request = shampoo_request()

        approval_service.review_request(
            item_request.id, admin, "approve", fulfillment_plan=_plan(transfer_quantity=4, po_quantity=0)
        )

        record = inventory_service.list_records(branches["Downtown"].id)[0]
        assert record.item_name == "Shampoo"
        assert record.category == "Hair"
        assert record.reorder_threshold == 5
        assert record.supplier == "Salon Supply Co"
        assert record.quantity == 4
        assert record.status == "low-stock"

    def test_all_lines_failing_keeps_approval(self, db_session, admin, branches, shampoo_request, stock):
        stock("SH-001", "Uptown", 1, item_name="Shampoo")
        item_request = shampoo_request()

        result = approval_service.review_request(
            item_request.id, admin, "approve",
            fulfillment_plan=_plan(transfer_quantity=10, po_quantity=0, from_branch="Uptown"),
        )

        assert result.request.status == "approved"
        assert result.request.fulfillment_status == "failed"
        assert len(result.fulfillment_report.failed) == 1


# =============================================================================
# CONSERVATION
# =============================================================================


class TestConservation:

    def test_transfers_preserve_total_stock(self, db_session, admin, branches, stock, shampoo_request):
        stock("SH-001", "Main", 8, item_name="Shampoo")
        stock("SH-001", "Uptown", 9, item_name="Shampoo")
        total_before = sum(_qty(branches, name) for name in branches)
        item_request = shampoo_request()

        plan = [{
            "item_id": "SH-001",
            "transfers": [
                {"from_branch": "Main", "quantity": 8},
                {"from_branch": "UP", "quantity": 7},
            ],
        }]
        result = approval_service.review_request(item_request.id, admin, "approve", fulfillment_plan=plan)

        assert result.request.fulfillment_status == "applied"
        assert sum(_qty(branches, name) for name in branches) == total_before
        assert _qty(branches, "Main") == 0
        assert _qty(branches, "Uptown") == 2
        assert _qty(branches, "Downtown") == 15
        assert db_session.query(Transfer).count() == 2
        assert find_ledger_discrepancies() == []

    def test_zero_quantity_lines_are_skipped(self, db_session, admin, branches, shampoo_at_main, shampoo_request):
        shampoo_at_main(20)
        item_request = shampoo_request()

        result = approval_service.review_request(
            item_request.id, admin, "approve", fulfillment_plan=_plan(transfer_quantity=0, po_quantity=0)
        )

        assert result.fulfillment_report.applied == []
        assert result.fulfillment_report.failed == []
        assert result.request.fulfillment_status == "none"
        assert _qty(branches, "Main") == 20


# =============================================================================
# PURCHASE ORDERS
# =============================================================================


class TestPurchaseOrderGeneration:

    def test_orders_grouped_by_supplier(self, db_session, admin, branches, stock):
        stock("A", "Main", 1, item_name="Shampoo", supplier="Salon Supply Co")
        stock("B", "Main", 1, item_name="Conditioner", supplier="Salon Supply Co")
        stock("C", "Main", 1, item_name="Razor", supplier="Blade Works")
        item_request = request_service.create_request(
            branch="Downtown",
            lines=[
                {"item_id": item_id, "item_name": item_id, "requested_quantity": 3, "unit_price_cents": 100}
                for item_id in ("A", "B", "C", "D")
            ],
            requested_by="staff-dt",
        )
        plan = [{"item_id": item_id, "purchase_order_quantity": 3} for item_id in ("A", "B", "C", "D")]

        approval_service.review_request(item_request.id, admin, "approve", fulfillment_plan=plan)

        orders = {o.supplier: o for o in db_session.query(PurchaseOrder).all()}
        assert set(orders) == {"Salon Supply Co", "Blade Works", "General Supplier"}
        assert sorted(line.item_id for line in orders["Salon Supply Co"].lines) == ["A", "B"]
        assert orders["Salon Supply Co"].total_amount_cents == 600
        assert _qty(branches, "Downtown", "D") == 3

    def test_receipt_deferred_when_immediate_receipt_disabled(
        self, app, db_session, admin, branches, shampoo_at_main, shampoo_request, monkeypatch
    ):
        monkeypatch.setitem(app.config, "PURCHASE_ORDER_IMMEDIATE_RECEIPT", False)
        shampoo_at_main(20)
        item_request = shampoo_request()

        approval_service.review_request(
            item_request.id, admin, "approve", fulfillment_plan=_plan(transfer_quantity=0, po_quantity=5)
        )

        order = db_session.query(PurchaseOrder).one()
        assert order.status == "ordered"
        assert order.stock_posted is False
        assert _qty(branches, "Downtown") == 0


# =============================================================================
# STORAGE FAILURE
# =============================================================================


class TestStorageFailure:

    def test_storage_failure_rolls_back_whole_pass(
        self, db_session, admin, branches, shampoo_at_main, shampoo_request, monkeypatch
    ):
        shampoo_at_main(20)
        untouched = shampoo_request()

        def _locked(**kwargs):
            raise OperationalError("UPDATE inventory_records", {}, Exception("database is locked"))

        monkeypatch.setattr(fulfillment_service, "create_completed_transfer", _locked)
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)

        item_request = request_service.create_request(
            branch="Downtown",
            lines=[
                {"item_id": "SH-001", "item_name": "Shampoo", "requested_quantity": 5, "unit_price_cents": 35000},
                {"item_id": "CD-002", "item_name": "Conditioner", "requested_quantity": 2, "unit_price_cents": 900},
            ],
            requested_by="staff-dt",
        )
        plan = [
            {"item_id": "CD-002", "purchase_order_quantity": 2},
            {"item_id": "SH-001", "transfers": [{"from_branch": "Main", "quantity": 5}]},
        ]

        result = approval_service.review_request(item_request.id, admin, "approve", fulfillment_plan=plan)

        assert result.request.status == "approved"
        assert result.request.fulfillment_status == "failed"
        assert result.fulfillment_report.applied == []
        assert {item["error"] for item in result.fulfillment_report.failed} == {"StorageError"}
        assert len(result.fulfillment_report.failed) == 2

        assert db_session.query(PurchaseOrder).count() == 0
        assert _qty(branches, "Main") == 20
        assert _qty(branches, "Downtown", "CD-002") == 0
        assert db_session.get(ItemRequest, untouched.id).status == "pending"
        assert find_ledger_discrepancies() == []

    def test_stale_pass_is_retried_and_applied_once(
        self, db_session, admin, branches, shampoo_at_main, shampoo_request, monkeypatch
    ):
        shampoo_at_main(20)
        calls = []
        real_transfer = fulfillment_service.create_completed_transfer

        def _stale_once(**kwargs):
            calls.append(kwargs["quantity"])
            if len(calls) == 1:
                raise StaleDataError("UPDATE statement on table 'inventory_records' expected to update 1 row(s)")
            return real_transfer(**kwargs)

        monkeypatch.setattr(fulfillment_service, "create_completed_transfer", _stale_once)
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)

        item_request = shampoo_request(quantity=10)
        result = approval_service.review_request(
            item_request.id, admin, "approve", fulfillment_plan=_plan(transfer_quantity=10, po_quantity=0)
        )

        assert calls == [10, 10]
        assert result.request.fulfillment_status == "applied"
        assert len(result.fulfillment_report.applied) == 1
        assert result.fulfillment_report.failed == []

        assert db_session.query(Transfer).count() == 1
        transfer_entries = (
            db_session.query(StockLedgerEntry)
            .filter(StockLedgerEntry.request_id == item_request.id, StockLedgerEntry.transfer_id.isnot(None))
            .all()
        )
        assert sorted(e.direction for e in transfer_entries) == ["in", "out"]
        assert _qty(branches, "Main") == 10
        assert _qty(branches, "Downtown") == 10
        assert find_ledger_discrepancies() == []


# =============================================================================
# PLAN SUGGESTION
# =============================================================================


class TestSuggestPlan:

    def test_greedy_from_largest_holdings_then_purchase(self, db_session, branches, stock, shampoo_request):
        stock("SH-001", "Main", 4, item_name="Shampoo")
        stock("SH-001", "Uptown", 9, item_name="Shampoo")
        stock("SH-001", "Downtown", 50, item_name="Shampoo")
        item_request = shampoo_request(quantity=15)

        plan = fulfillment_service.suggest_fulfillment_plan(item_request)

        assert len(plan) == 1
        assert [(t["from_branch"], t["quantity"]) for t in plan[0]["transfers"]] == [
            (branches["Uptown"].id, 9),
            (branches["Main"].id, 4),
        ]
        assert plan[0]["purchase_order_quantity"] == 2
        assert plan[0]["purchase_order_price_cents"] == 35000

    def test_suggestion_is_accepted_by_review(self, db_session, admin, branches, stock, shampoo_request):
        stock("SH-001", "Main", 4, item_name="Shampoo")
        item_request = shampoo_request(quantity=6)

        plan = fulfillment_service.suggest_fulfillment_plan(item_request)
        result = approval_service.review_request(item_request.id, admin, "approve", fulfillment_plan=plan)

        assert result.request.fulfillment_status == "applied"
        assert _qty(branches, "Downtown") == 6
        assert _qty(branches, "Main") == 0
