# Overview: Service-layer operations for purchase orders; encapsulates business logic.

"""
Purchase Order Service

WHY: Quantities that no other branch can cover are ordered from a supplier.
Orders are supplier-bound and delivered to one branch.

LIFECYCLE:
1. requested: drafted, lines may still be added
2. ordered: sent to the supplier
3. received: goods arrived; stock posted if it was not already
4. cancelled: abandoned (only while no stock has been posted)

RECEIPT POLICY:
Orders generated by fulfillment are created in `ordered` state. With
PURCHASE_ORDER_IMMEDIATE_RECEIPT enabled their quantities are posted to
inventory at creation (stock_posted=True) and marking them received later
only stamps received_at. With it disabled, stock is posted on receipt.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryRecord, ItemRequest, PurchaseOrder, PurchaseOrderLine
from ..models.inventory import DIRECTION_IN
from ..time_utils import utcnow
from .branch_service import resolve_branch
from .concurrency import lock_for_update, run_with_retry
from .document_service import DOCUMENT_TYPE_PURCHASE_ORDER, next_document_number
from .ledger_service import append_entry, get_record, record_template

# Valid statuses
STATUS_REQUESTED = "requested"
STATUS_ORDERED = "ordered"
STATUS_RECEIVED = "received"
STATUS_CANCELLED = "cancelled"
PURCHASE_ORDER_STATUSES = (STATUS_REQUESTED, STATUS_ORDERED, STATUS_RECEIVED, STATUS_CANCELLED)

ALLOWED_TRANSITIONS = {
    STATUS_REQUESTED: {STATUS_ORDERED, STATUS_CANCELLED},
    STATUS_ORDERED: {STATUS_RECEIVED, STATUS_CANCELLED},
    STATUS_RECEIVED: set(),
    STATUS_CANCELLED: set(),
}

RECEIPT_REASON = "Purchase Order Received"


def immediate_receipt_enabled() -> bool:
    return bool(current_app.config.get("PURCHASE_ORDER_IMMEDIATE_RECEIPT", True))


def supplier_for_item(item_id: str, branch_id: int) -> str:
    """Supplier on the branch's own record, else on any record of the item, else the default."""
    record = get_record(item_id, branch_id)
    if record and record.supplier:
        return record.supplier
    other = (
        db.session.query(InventoryRecord)
        .filter(InventoryRecord.item_id == item_id, InventoryRecord.supplier.isnot(None))
        .order_by(InventoryRecord.id.asc())
        .first()
    )
    if other:
        return other.supplier
    return current_app.config.get("DEFAULT_SUPPLIER", "General Supplier")


def _line_template(order: PurchaseOrder, line: PurchaseOrderLine) -> dict:
    existing = (
        db.session.query(InventoryRecord)
        .filter(InventoryRecord.item_id == line.item_id)
        .order_by(InventoryRecord.id.asc())
        .first()
    )
    template = record_template(existing) if existing else {}
    template.setdefault("item_name", line.item_name)
    if not template.get("unit_price_cents"):
        template["unit_price_cents"] = line.unit_price_cents
    if not template.get("supplier"):
        template["supplier"] = order.supplier
    return template


def open_order_for_request(
    *,
    item_request: ItemRequest,
    supplier: str,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Create the ordered purchase order that covers a request's shortfall.

    requested_by/requested_at are carried from the request. Does not commit.
    """
    now = utcnow()
    order = PurchaseOrder(
        order_number=next_document_number(document_type=DOCUMENT_TYPE_PURCHASE_ORDER),
        supplier=supplier,
        status=STATUS_ORDERED,
        total_amount_cents=0,
        branch_id=item_request.branch_id,
        request_id=item_request.id,
        requested_by=item_request.requested_by,
        requested_at=item_request.requested_at or now,
        ordered_at=now,
        notes=notes or f"Auto-generated from approved request {item_request.request_number}",
        stock_posted=False,
    )
    db.session.add(order)
    db.session.flush()
    return order


def add_order_line(
    order: PurchaseOrder,
    *,
    item_id: str,
    item_name: str,
    quantity: int,
    unit_price_cents: int,
) -> PurchaseOrderLine:
    """Append a line and keep the header total in step. Does not commit."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be positive")
    if isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int) or unit_price_cents < 0:
        raise ValidationError("Unit price cannot be negative")

    line = PurchaseOrderLine(
        item_id=item_id,
        item_name=item_name,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        total_price_cents=quantity * unit_price_cents,
    )
    order.lines.append(line)
    order.total_amount_cents = (order.total_amount_cents or 0) + line.total_price_cents
    db.session.flush()
    return line


def post_line_stock(
    order: PurchaseOrder,
    line: PurchaseOrderLine,
    *,
    actor_id: str,
    request_id: int | None = None,
):
    """Add one line's quantity to the order's branch through the ledger. Does not commit."""
    return append_entry(
        item_id=line.item_id,
        branch_id=order.branch_id,
        direction=DIRECTION_IN,
        quantity=line.quantity,
        actor_id=actor_id,
        reason=RECEIPT_REASON,
        notes=f"Received from purchase order {order.order_number}",
        request_id=request_id,
        purchase_order_id=order.id,
        template=_line_template(order, line),
    )


def create_purchase_order(
    *,
    branch,
    supplier: str,
    lines: list[dict],
    requested_by: str,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Create a manual purchase order in requested state.

    Args:
        branch: Receiving branch id, name or code
        supplier: Supplier name (REQUIRED)
        lines: [{item_id, item_name, quantity, unit_price_cents}]
        requested_by: Actor id
        notes: Additional notes

    Returns:
        Created PurchaseOrder (committed)
    """
    if not supplier or not str(supplier).strip():
        raise ValidationError("Supplier is required")
    if not isinstance(lines, list) or not lines:
        raise ValidationError("Items array is required and cannot be empty")

    def _op():
        branch_row = resolve_branch(branch)
        order = PurchaseOrder(
            order_number=next_document_number(document_type=DOCUMENT_TYPE_PURCHASE_ORDER),
            supplier=str(supplier).strip(),
            status=STATUS_REQUESTED,
            total_amount_cents=0,
            branch_id=branch_row.id,
            requested_by=requested_by,
            requested_at=utcnow(),
            notes=notes,
            stock_posted=False,
        )
        db.session.add(order)
        db.session.flush()

        for index, line in enumerate(lines):
            if not isinstance(line, dict):
                raise ValidationError(f"items[{index}] must be an object")
            item_id = str(line.get("item_id") or "").strip()
            item_name = str(line.get("item_name") or "").strip()
            if not item_id or not item_name:
                raise ValidationError(f"items[{index}] requires item_id and item_name")
            add_order_line(
                order,
                item_id=item_id,
                item_name=item_name,
                quantity=line.get("quantity"),
                unit_price_cents=line.get("unit_price_cents", 0),
            )

        db.session.commit()
        return order

    return run_with_retry(_op)


def get_purchase_order(order_id: int) -> PurchaseOrder:
    order = db.session.get(PurchaseOrder, order_id)
    if not order:
        raise NotFoundError(f"Purchase order {order_id} not found")
    return order


def list_purchase_orders(
    *,
    branch_id: int | None = None,
    status: str | None = None,
    request_id: int | None = None,
) -> list[PurchaseOrder]:
    q = db.session.query(PurchaseOrder)
    if branch_id is not None:
        q = q.filter(PurchaseOrder.branch_id == branch_id)
    if status:
        if status not in PURCHASE_ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PURCHASE_ORDER_STATUSES)}")
        q = q.filter(PurchaseOrder.status == status)
    if request_id is not None:
        q = q.filter(PurchaseOrder.request_id == request_id)
    return q.order_by(PurchaseOrder.requested_at.desc(), PurchaseOrder.id.desc()).all()


def update_purchase_order_status(order_id: int, status: str, *, actor_id: str) -> PurchaseOrder:
    """
    Move a purchase order along its lifecycle.

    Receiving posts each line to inventory unless the stock was already
    posted at creation. Cancelling an order whose stock is on the shelves is
    refused: that stock would have to be moved out explicitly.

    Raises:
        ValidationError: unknown status
        NotFoundError: unknown order
        ConflictError: transition not allowed from the current status
    """
    if status not in PURCHASE_ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PURCHASE_ORDER_STATUSES)}")

    def _op():
        order = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError(f"Purchase order {order_id} not found")

        if status not in ALLOWED_TRANSITIONS[order.status]:
            raise ConflictError(f"Cannot move purchase order from {order.status} to {status}")

        now = utcnow()
        if status == STATUS_ORDERED:
            order.ordered_at = now
        elif status == STATUS_RECEIVED:
            if not order.stock_posted:
                for line in order.lines:
                    post_line_stock(order, line, actor_id=actor_id, request_id=order.request_id)
                order.stock_posted = True
            order.received_at = now
        elif status == STATUS_CANCELLED:
            if order.stock_posted:
                raise ConflictError("Cannot cancel a purchase order whose stock has been posted")
            order.cancelled_at = now

        order.status = status
        db.session.commit()
        return order

    return run_with_retry(_op)
