# Overview: Service-layer operations for inventory; read model and direct stock movements.

# backend/replenish/services/inventory_service.py

from ..errors import ValidationError
from ..extensions import db
from ..models import InventoryRecord, StockLedgerEntry
from ..models.inventory import DIRECTION_IN, DIRECTION_OUT
from .concurrency import run_with_retry
from .ledger_service import append_entry, get_record, record_template
"""
Inventory Invariants (authoritative)

- InventoryRecord.quantity is materialized state; ledger_service.append_entry
  is the only writer and records every change as a StockLedgerEntry.
- Direct stock-in/out (counter corrections, deliveries outside purchase
  orders, breakage) goes through the same ledger contract as fulfillment.
- Status is derived, never stored: out-of-stock at 0, low-stock at or below
  reorder_threshold, in-stock otherwise.
"""


def get_quantity_on_hand(item_id: str, branch_id: int) -> int:
    record = get_record(item_id, branch_id)
    return record.quantity if record else 0


def list_records(branch_id: int | None = None, *, status: str | None = None) -> list[InventoryRecord]:
    q = db.session.query(InventoryRecord)
    if branch_id is not None:
        q = q.filter(InventoryRecord.branch_id == branch_id)
    records = q.order_by(InventoryRecord.branch_id.asc(), InventoryRecord.item_name.asc()).all()
    if status:
        records = [r for r in records if r.status == status]
    return records


def get_branch_stocks(item_ids: list[str], *, exclude_branch_id: int | None = None) -> list[InventoryRecord]:
    """
    Availability of the given items at every branch holding positive stock.

    This is what a reviewer compares when building a fulfillment plan;
    the requesting branch is normally excluded. Largest holdings first.
    """
    if not item_ids:
        return []
    q = db.session.query(InventoryRecord).filter(
        InventoryRecord.item_id.in_(item_ids),
        InventoryRecord.quantity > 0,
    )
    if exclude_branch_id is not None:
        q = q.filter(InventoryRecord.branch_id != exclude_branch_id)
    return q.order_by(
        InventoryRecord.item_id.asc(),
        InventoryRecord.quantity.desc(),
        InventoryRecord.branch_id.asc(),
    ).all()


def record_stock_movement(
    *,
    item_id: str,
    branch_id: int,
    direction: str,
    quantity: int,
    actor_id: str,
    reason: str,
    notes: str | None = None,
    item_name: str | None = None,
    category: str | None = None,
    reorder_threshold: int | None = None,
    unit_price_cents: int | None = None,
    supplier: str | None = None,
) -> StockLedgerEntry:
    """
    Record a direct stock-in or stock-out and commit it.

    Item attributes are only used when a stock-in creates the record for the
    first time at this branch; if omitted they are cloned from the same item
    at any other branch.
    """
    if direction not in (DIRECTION_IN, DIRECTION_OUT):
        raise ValidationError("direction must be 'in' or 'out'")

    def _op():
        template = None
        if direction == DIRECTION_IN and get_record(item_id, branch_id) is None:
            template = _template_for_new_record(
                item_id,
                item_name=item_name,
                category=category,
                reorder_threshold=reorder_threshold,
                unit_price_cents=unit_price_cents,
                supplier=supplier,
            )

        entry = append_entry(
            item_id=item_id,
            branch_id=branch_id,
            direction=direction,
            quantity=quantity,
            actor_id=actor_id,
            reason=reason,
            notes=notes,
            template=template,
        )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def _template_for_new_record(item_id: str, **overrides) -> dict:
    template = {}
    existing = (
        db.session.query(InventoryRecord)
        .filter(InventoryRecord.item_id == item_id)
        .order_by(InventoryRecord.id.asc())
        .first()
    )
    if existing:
        template.update(record_template(existing))
    template.update({key: value for key, value in overrides.items() if value is not None})
    return template
