# Overview: Service-layer operations for the stock ledger; the only writer of inventory quantities.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStockError, ValidationError
from ..extensions import db
from ..models import InventoryRecord, StockLedgerEntry
from ..models.inventory import DIRECTION_IN, DIRECTION_OUT
from ..time_utils import utcnow
from .concurrency import lock_for_update
"""
Stock Ledger Invariants (authoritative)

- append_entry is the only code path that changes InventoryRecord.quantity.
- Each call writes exactly one StockLedgerEntry and updates exactly one
  InventoryRecord, inside the caller's transaction (no commit here).
- For every (item_id, branch_id): SUM(in) - SUM(out) == InventoryRecord.quantity.
- Quantities never go negative; an out that would do so raises
  InsufficientStockError before anything is written.
- Ledger rows are never updated or deleted.
"""

TEMPLATE_FIELDS = ("item_name", "category", "reorder_threshold", "unit_price_cents", "supplier")


def record_template(record: InventoryRecord) -> dict:
    """Static item attributes to clone when the item first arrives at another branch."""
    return {field: getattr(record, field) for field in TEMPLATE_FIELDS}


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    return quantity


def get_record(item_id: str, branch_id: int, *, lock: bool = False) -> InventoryRecord | None:
    query = db.session.query(InventoryRecord).filter_by(item_id=item_id, branch_id=branch_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def _create_record(item_id: str, branch_id: int, template: dict | None) -> InventoryRecord:
    template = template or {}
    item_name = template.get("item_name")
    if not item_name:
        raise ValidationError(
            f"Item {item_id!r} has no record at branch {branch_id}; item_name is required to create it"
        )

    reorder_threshold = template.get("reorder_threshold")
    if reorder_threshold is None:
        reorder_threshold = current_app.config.get("DEFAULT_REORDER_THRESHOLD", 10)

    record = InventoryRecord(
        item_id=item_id,
        branch_id=branch_id,
        item_name=item_name,
        category=template.get("category"),
        quantity=0,
        reorder_threshold=reorder_threshold,
        unit_price_cents=template.get("unit_price_cents") or 0,
        supplier=template.get("supplier"),
    )
    try:
        with db.session.begin_nested():
            db.session.add(record)
    except IntegrityError:
        # Another writer created the record first; lock and use theirs.
        record = get_record(item_id, branch_id, lock=True)
        if record is None:
            raise
    return record


def append_entry(
    *,
    item_id: str,
    branch_id: int,
    direction: str,
    quantity: int,
    actor_id: str,
    reason: str,
    notes: Optional[str] = None,
    request_id: int | None = None,
    transfer_id: int | None = None,
    purchase_order_id: int | None = None,
    template: dict | None = None,
    occurred_at: Optional[datetime] = None,
) -> StockLedgerEntry:
    """
    Append one stock movement and apply it to the matching InventoryRecord.

    The record row is locked for the rest of the transaction. A missing
    record is created on the first "in" using `template` for its static
    attributes; an "out" against a missing record is insufficient stock.
    """
    if direction not in (DIRECTION_IN, DIRECTION_OUT):
        raise ValidationError("direction must be 'in' or 'out'")
    quantity = _validate_quantity(quantity)
    if not item_id:
        raise ValidationError("item_id is required")
    if not actor_id:
        raise ValidationError("actor_id is required")
    if not reason:
        raise ValidationError("reason is required")

    record = get_record(item_id, branch_id, lock=True)

    if record is None:
        if direction == DIRECTION_OUT:
            raise InsufficientStockError(
                f"Insufficient stock for item {item_id} at branch {branch_id}. "
                f"On-hand: 0, requested: {quantity}",
                item_id=item_id,
                branch_id=branch_id,
                available=0,
                requested=quantity,
            )
        record = _create_record(item_id, branch_id, template)

    previous = record.quantity
    new = previous + quantity if direction == DIRECTION_IN else previous - quantity
    if new < 0:
        raise InsufficientStockError(
            f"Insufficient stock for item {item_id} at branch {branch_id}. "
            f"On-hand: {previous}, requested: {quantity}",
            item_id=item_id,
            branch_id=branch_id,
            available=previous,
            requested=quantity,
        )

    record.quantity = new

    entry = StockLedgerEntry(
        item_id=item_id,
        branch_id=branch_id,
        direction=direction,
        quantity=quantity,
        previous_quantity=previous,
        new_quantity=new,
        actor_id=actor_id,
        reason=reason,
        notes=notes,
        request_id=request_id,
        transfer_id=transfer_id,
        purchase_order_id=purchase_order_id,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(entry)
    db.session.flush()  # assigns entry.id and bumps record.version_id without committing
    return entry


def ledger_balance(item_id: str, branch_id: int) -> int:
    """SUM(in) - SUM(out) for one (item, branch)."""
    signed = case(
        (StockLedgerEntry.direction == DIRECTION_IN, StockLedgerEntry.quantity),
        else_=-StockLedgerEntry.quantity,
    )
    value = (
        db.session.query(func.coalesce(func.sum(signed), 0))
        .filter(
            StockLedgerEntry.item_id == item_id,
            StockLedgerEntry.branch_id == branch_id,
        )
        .scalar()
    )
    return int(value or 0)


@dataclass(frozen=True)
class LedgerDiscrepancy:
    item_id: str
    branch_id: int
    record_quantity: int | None
    ledger_quantity: int

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "branch_id": self.branch_id,
            "record_quantity": self.record_quantity,
            "ledger_quantity": self.ledger_quantity,
        }


def find_ledger_discrepancies(branch_id: int | None = None) -> list[LedgerDiscrepancy]:
    """
    Compare every InventoryRecord against the ledger it should be derived from.

    An empty list means the ledger-state agreement holds. Ledger activity for
    a pair without any record is reported with record_quantity=None.
    """
    signed = case(
        (StockLedgerEntry.direction == DIRECTION_IN, StockLedgerEntry.quantity),
        else_=-StockLedgerEntry.quantity,
    )
    ledger_q = db.session.query(
        StockLedgerEntry.item_id,
        StockLedgerEntry.branch_id,
        func.sum(signed),
    ).group_by(StockLedgerEntry.item_id, StockLedgerEntry.branch_id)
    records_q = db.session.query(InventoryRecord)
    if branch_id is not None:
        ledger_q = ledger_q.filter(StockLedgerEntry.branch_id == branch_id)
        records_q = records_q.filter(InventoryRecord.branch_id == branch_id)

    ledger = {(item_id, b_id): int(total or 0) for item_id, b_id, total in ledger_q.all()}

    discrepancies = []
    for record in records_q.order_by(InventoryRecord.branch_id, InventoryRecord.item_id).all():
        key = (record.item_id, record.branch_id)
        ledger_quantity = ledger.pop(key, 0)
        if ledger_quantity != record.quantity:
            discrepancies.append(
                LedgerDiscrepancy(record.item_id, record.branch_id, record.quantity, ledger_quantity)
            )

    for (item_id, b_id), ledger_quantity in sorted(ledger.items(), key=lambda kv: (kv[0][1], kv[0][0])):
        discrepancies.append(LedgerDiscrepancy(item_id, b_id, None, ledger_quantity))

    return discrepancies


def list_entries(
    *,
    item_id: str | None = None,
    branch_id: int | None = None,
    direction: str | None = None,
    request_id: int | None = None,
    limit: int = 100,
) -> list[StockLedgerEntry]:
    q = db.session.query(StockLedgerEntry)
    if item_id:
        q = q.filter(StockLedgerEntry.item_id == item_id)
    if branch_id is not None:
        q = q.filter(StockLedgerEntry.branch_id == branch_id)
    if direction:
        if direction not in (DIRECTION_IN, DIRECTION_OUT):
            raise ValidationError("direction must be 'in' or 'out'")
        q = q.filter(StockLedgerEntry.direction == direction)
    if request_id is not None:
        q = q.filter(StockLedgerEntry.request_id == request_id)

    return (
        q.order_by(StockLedgerEntry.occurred_at.desc(), StockLedgerEntry.id.desc())
        .limit(max(1, min(limit, 500)))
        .all()
    )
