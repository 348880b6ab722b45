"""
Purchase order lifecycle tests.

Verifies:
- requested -> ordered | cancelled, ordered -> received | cancelled
- Receiving posts stock once; orders posted at creation are not posted again
- Orders whose stock is already on the shelves cannot be cancelled
"""

import pytest

from replenish.errors import ConflictError, NotFoundError, ValidationError
from replenish.models import StockLedgerEntry
from replenish.services import approval_service, inventory_service, purchase_order_service


@pytest.fixture
def manual_order(branches):
    def _create(quantity=12):
        return purchase_order_service.create_purchase_order(
            branch="Uptown",
            supplier="Salon Supply Co",
            lines=[{"item_id": "WX-010", "item_name": "Hair Wax", "quantity": quantity, "unit_price_cents": 450}],
            requested_by="mgr-up",
        )
    return _create


class TestManualPurchaseOrders:

    def test_created_requested_with_total(self, db_session, branches, manual_order):
        order = manual_order()

        assert order.status == "requested"
        assert order.stock_posted is False
        assert order.total_amount_cents == 12 * 450
        assert order.order_number.startswith("PO-")

    def test_supplier_required(self, db_session, branches):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order(
                branch="Uptown", supplier=" ", lines=[], requested_by="u"
            )

    def test_full_lifecycle_posts_stock_on_receipt(self, db_session, branches, manual_order):
        order = manual_order()

        purchase_order_service.update_purchase_order_status(order.id, "ordered", actor_id="mgr-up")
        assert inventory_service.get_quantity_on_hand("WX-010", branches["Uptown"].id) == 0

        order = purchase_order_service.update_purchase_order_status(order.id, "received", actor_id="mgr-up")

        assert order.status == "received"
        assert order.stock_posted is True
        assert order.received_at is not None
        record = inventory_service.list_records(branches["Uptown"].id)[0]
        assert record.quantity == 12
        assert record.item_name == "Hair Wax"
        assert record.supplier == "Salon Supply Co"

    def test_cannot_skip_ordered(self, db_session, branches, manual_order):
        order = manual_order()

        with pytest.raises(ConflictError):
            purchase_order_service.update_purchase_order_status(order.id, "received", actor_id="u")

    def test_cancel_before_receipt(self, db_session, branches, manual_order):
        order = manual_order()

        order = purchase_order_service.update_purchase_order_status(order.id, "cancelled", actor_id="u")

        assert order.status == "cancelled"
        assert order.cancelled_at is not None
        with pytest.raises(ConflictError):
            purchase_order_service.update_purchase_order_status(order.id, "ordered", actor_id="u")

    def test_unknown_status_and_order(self, db_session, branches, manual_order):
        order = manual_order()

        with pytest.raises(ValidationError):
            purchase_order_service.update_purchase_order_status(order.id, "shipped", actor_id="u")
        with pytest.raises(NotFoundError):
            purchase_order_service.update_purchase_order_status(9999, "ordered", actor_id="u")


class TestGeneratedPurchaseOrders:

    def _approve_with_purchase(self, admin, branches, stock, shampoo_request):
        stock("SH-001", "Main", 1, item_name="Shampoo")
        item_request = shampoo_request(quantity=5)
        approval_service.review_request(
            item_request.id, admin, "approve",
            fulfillment_plan=[{"item_id": "SH-001", "purchase_order_quantity": 5}],
        )
        return purchase_order_service.list_purchase_orders(request_id=item_request.id)[0]

    def test_receiving_posted_order_does_not_double_post(
        self, db_session, admin, branches, stock, shampoo_request
    ):
        order = self._approve_with_purchase(admin, branches, stock, shampoo_request)
        assert order.stock_posted is True

        purchase_order_service.update_purchase_order_status(order.id, "received", actor_id="admin-1")

        assert inventory_service.get_quantity_on_hand("SH-001", branches["Downtown"].id) == 5
        assert db_session.query(StockLedgerEntry).filter_by(purchase_order_id=order.id).count() == 1

    def test_cannot_cancel_posted_order(self, db_session, admin, branches, stock, shampoo_request):
        order = self._approve_with_purchase(admin, branches, stock, shampoo_request)

        with pytest.raises(ConflictError):
            purchase_order_service.update_purchase_order_status(order.id, "cancelled", actor_id="admin-1")
        db_session.rollback()

        assert purchase_order_service.get_purchase_order(order.id).status == "ordered"

    def test_list_filters(self, db_session, admin, branches, stock, shampoo_request, manual_order):
        self._approve_with_purchase(admin, branches, stock, shampoo_request)
        manual_order()

        assert len(purchase_order_service.list_purchase_orders(branch_id=branches["Downtown"].id)) == 1
        assert len(purchase_order_service.list_purchase_orders(status="requested")) == 1
        assert len(purchase_order_service.list_purchase_orders()) == 2
