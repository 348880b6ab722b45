# Overview: Applies an approved request's fulfillment plan as transfers and purchase orders.

"""
Fulfillment Service

WHY: Approving a request is a decision; fulfilling it moves stock. The plan
says, per requested item, how much to pull from which other branch and how
much to buy from a supplier.

TRANSACTION MODEL:
- One pass = one database transaction, committed once at the end.
- A transfer line whose source cannot cover it fails on its own
  (InsufficientStockError) before anything is written for it; the rest of
  the pass continues.
- A storage failure rolls back the whole pass. Every line is then reported
  as failed and the request is marked fulfillment_status="failed" in a
  follow-up commit. The approval itself is never undone here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError, ReplenishError, ValidationError
from ..extensions import db
from ..models import ItemRequest
from .branch_service import resolve_branch
from .concurrency import commit_session, run_with_retry
from .inventory_service import get_branch_stocks
from .purchase_order_service import (
    add_order_line,
    immediate_receipt_enabled,
    open_order_for_request,
    post_line_stock,
    supplier_for_item,
)
from .transfer_service import create_completed_transfer

KIND_TRANSFER = "transfer"
KIND_PURCHASE_ORDER = "purchase_order"

FULFILLMENT_NONE = "none"
FULFILLMENT_APPLIED = "applied"
FULFILLMENT_PARTIAL = "partial"
FULFILLMENT_FAILED = "failed"


@dataclass(frozen=True)
class TransferInstruction:
    from_branch_id: int
    from_branch_name: str
    quantity: int
    unit_price_cents: int

    def to_dict(self) -> dict:
        return {
            "from_branch": self.from_branch_id,
            "from_branch_name": self.from_branch_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
        }


@dataclass(frozen=True)
class PlanEntry:
    item_id: str
    item_name: str
    transfers: tuple[TransferInstruction, ...] = ()
    purchase_order_quantity: int = 0
    purchase_order_price_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "transfers": [t.to_dict() for t in self.transfers],
            "purchase_order_quantity": self.purchase_order_quantity,
            "purchase_order_price_cents": self.purchase_order_price_cents,
        }


@dataclass
class FulfillmentReport:
    applied: list[dict] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.failed and self.applied:
            return FULFILLMENT_PARTIAL
        if self.failed:
            return FULFILLMENT_FAILED
        if self.applied:
            return FULFILLMENT_APPLIED
        return FULFILLMENT_NONE

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "applied": list(self.applied),
            "failed": list(self.failed),
        }


def _non_negative_int(value, label: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer")
    if value < 0:
        raise ValidationError(f"{label} cannot be negative")
    return value


def parse_fulfillment_plan(item_request: ItemRequest, raw_plan) -> list[PlanEntry]:
    """
    Validate a reviewer-supplied plan against the request it fulfills.

    Accepts a list of entries shaped like
    {item_id, item_name?, transfers: [{from_branch, quantity, unit_price_cents?}],
     purchase_order_quantity?, purchase_order_price_cents?}.
    Missing prices default to the request line's unit price.

    Raises:
        ValidationError: malformed plan, unknown item, unknown or same branch
    """
    if raw_plan is None:
        return []
    if not isinstance(raw_plan, list):
        raise ValidationError("fulfillment_plan must be a list")

    lines_by_item = {line.item_id: line for line in item_request.lines}
    entries = []
    seen = set()

    for index, raw in enumerate(raw_plan):
        if not isinstance(raw, dict):
            raise ValidationError(f"fulfillment_plan[{index}] must be an object")

        item_id = str(raw.get("item_id") or "").strip()
        line = lines_by_item.get(item_id)
        if line is None:
            raise ValidationError(f"fulfillment_plan[{index}]: item {item_id!r} is not on this request")
        if item_id in seen:
            raise ValidationError(f"fulfillment_plan[{index}]: item {item_id!r} is planned twice")
        seen.add(item_id)

        raw_transfers = raw.get("transfers") or []
        if not isinstance(raw_transfers, list):
            raise ValidationError(f"fulfillment_plan[{index}].transfers must be a list")

        transfers = []
        for t_index, raw_transfer in enumerate(raw_transfers):
            label = f"fulfillment_plan[{index}].transfers[{t_index}]"
            if not isinstance(raw_transfer, dict):
                raise ValidationError(f"{label} must be an object")
            try:
                source = resolve_branch(raw_transfer.get("from_branch"))
            except NotFoundError as exc:
                raise ValidationError(f"{label}: {exc}") from exc
            if source.id == item_request.branch_id:
                raise ValidationError(f"{label}: cannot transfer from the requesting branch")

            price = raw_transfer.get("unit_price_cents")
            transfers.append(
                TransferInstruction(
                    from_branch_id=source.id,
                    from_branch_name=source.name,
                    quantity=_non_negative_int(raw_transfer.get("quantity"), f"{label}.quantity"),
                    unit_price_cents=(
                        line.unit_price_cents
                        if price is None
                        else _non_negative_int(price, f"{label}.unit_price_cents")
                    ),
                )
            )

        po_price = raw.get("purchase_order_price_cents")
        entries.append(
            PlanEntry(
                item_id=item_id,
                item_name=str(raw.get("item_name") or "").strip() or line.item_name,
                transfers=tuple(transfers),
                purchase_order_quantity=_non_negative_int(
                    raw.get("purchase_order_quantity"), f"fulfillment_plan[{index}].purchase_order_quantity"
                ),
                purchase_order_price_cents=(
                    line.unit_price_cents
                    if po_price is None
                    else _non_negative_int(po_price, f"fulfillment_plan[{index}].purchase_order_price_cents")
                ),
            )
        )

    return entries


def _transfer_item(entry: PlanEntry, instruction: TransferInstruction) -> dict:
    return {
        "kind": KIND_TRANSFER,
        "item_id": entry.item_id,
        "item_name": entry.item_name,
        "quantity": instruction.quantity,
        "from_branch_id": instruction.from_branch_id,
        "from_branch": instruction.from_branch_name,
    }


def _purchase_order_item(entry: PlanEntry) -> dict:
    return {
        "kind": KIND_PURCHASE_ORDER,
        "item_id": entry.item_id,
        "item_name": entry.item_name,
        "quantity": entry.purchase_order_quantity,
    }


def _all_lines_failed(entries: list[PlanEntry], exc: Exception) -> FulfillmentReport:
    report = FulfillmentReport()
    for entry in entries:
        for instruction in entry.transfers:
            if instruction.quantity > 0:
                report.failed.append(
                    {**_transfer_item(entry, instruction), "error": type(exc).__name__, "reason": str(exc)}
                )
        if entry.purchase_order_quantity > 0:
            report.failed.append(
                {**_purchase_order_item(entry), "error": type(exc).__name__, "reason": str(exc)}
            )
    return report


def _apply_plan(request_id: int, entries: list[PlanEntry], actor_id: str) -> FulfillmentReport:
    item_request = db.session.get(ItemRequest, request_id)
    if item_request is None:
        raise NotFoundError(f"Item request {request_id} not found")

    report = FulfillmentReport()
    orders_by_supplier = {}
    post_immediately = immediate_receipt_enabled()

    for entry in entries:
        for instruction in entry.transfers:
            if instruction.quantity <= 0:
                continue
            item = _transfer_item(entry, instruction)
            try:
                transfer = create_completed_transfer(
                    item_id=entry.item_id,
                    item_name=entry.item_name,
                    quantity=instruction.quantity,
                    unit_price_cents=instruction.unit_price_cents,
                    from_branch_id=instruction.from_branch_id,
                    to_branch_id=item_request.branch_id,
                    actor_id=actor_id,
                    request_id=item_request.id,
                    notes=f"Fulfillment of request {item_request.request_number}",
                )
            except InsufficientStockError as exc:
                current_app.logger.warning(
                    "Fulfillment of %s: transfer of %s x%s from %s failed: %s",
                    item_request.request_number,
                    entry.item_id,
                    instruction.quantity,
                    instruction.from_branch_name,
                    exc,
                )
                report.failed.append({**item, "error": type(exc).__name__, "reason": str(exc)})
                continue

            report.applied.append(
                {**item, "transfer_id": transfer.id, "transfer_number": transfer.transfer_number}
            )

        if entry.purchase_order_quantity > 0:
            supplier = supplier_for_item(entry.item_id, item_request.branch_id)
            order = orders_by_supplier.get(supplier)
            if order is None:
                order = open_order_for_request(item_request=item_request, supplier=supplier)
                orders_by_supplier[supplier] = order

            line = add_order_line(
                order,
                item_id=entry.item_id,
                item_name=entry.item_name,
                quantity=entry.purchase_order_quantity,
                unit_price_cents=entry.purchase_order_price_cents,
            )
            if post_immediately:
                post_line_stock(order, line, actor_id=actor_id, request_id=item_request.id)
                order.stock_posted = True

            report.applied.append(
                {
                    **_purchase_order_item(entry),
                    "purchase_order_id": order.id,
                    "order_number": order.order_number,
                    "supplier": supplier,
                    "stock_posted": order.stock_posted,
                }
            )

    item_request.fulfillment_plan = [entry.to_dict() for entry in entries]
    item_request.fulfillment_status = report.status
    db.session.commit()
    return report


def _mark_failed(request_id: int, entries: list[PlanEntry]) -> None:
    item_request = db.session.get(ItemRequest, request_id)
    if item_request is None:
        return
    item_request.fulfillment_plan = [entry.to_dict() for entry in entries]
    item_request.fulfillment_status = FULFILLMENT_FAILED
    try:
        commit_session()
    except ReplenishError:
        current_app.logger.exception("Could not record failed fulfillment for request %s", request_id)


def execute_fulfillment(request_id: int, entries: list[PlanEntry], *, actor_id: str) -> FulfillmentReport:
    """
    Apply a parsed plan for an approved request.

    Returns:
        FulfillmentReport with one applied or failed item per transfer line
        and per purchase-order line
    """
    if not entries:
        return FulfillmentReport()

    try:
        return run_with_retry(lambda: _apply_plan(request_id, entries, actor_id))
    except ReplenishError as exc:
        db.session.rollback()
        current_app.logger.exception("Fulfillment of request %s rolled back", request_id)
        _mark_failed(request_id, entries)
        return _all_lines_failed(entries, exc)


def suggest_fulfillment_plan(item_request: ItemRequest) -> list[dict]:
    """
    Greedy plan a reviewer can start from.

    Each line is covered from the other branches holding the most stock
    first; whatever they cannot cover is bought at the line's unit price.
    The result is in the same shape parse_fulfillment_plan accepts.
    """
    item_ids = [line.item_id for line in item_request.lines]
    stocks_by_item = {}
    for record in get_branch_stocks(item_ids, exclude_branch_id=item_request.branch_id):
        stocks_by_item.setdefault(record.item_id, []).append(record)

    plan = []
    for line in item_request.lines:
        remaining = line.requested_quantity
        transfers = []
        for record in stocks_by_item.get(line.item_id, []):
            if remaining <= 0:
                break
            take = min(record.quantity, remaining)
            transfers.append(
                {
                    "from_branch": record.branch_id,
                    "from_branch_name": record.branch.name if record.branch else None,
                    "available": record.quantity,
                    "quantity": take,
                    "unit_price_cents": line.unit_price_cents,
                }
            )
            remaining -= take

        plan.append(
            {
                "item_id": line.item_id,
                "item_name": line.item_name,
                "requested_quantity": line.requested_quantity,
                "transfers": transfers,
                "purchase_order_quantity": remaining,
                "purchase_order_price_cents": line.unit_price_cents,
            }
        )
    return plan
