from __future__ import annotations

from ..extensions import db
from replenish.time_utils import to_utc_z

STATUS_IN_STOCK = "in-stock"
STATUS_LOW_STOCK = "low-stock"
STATUS_OUT_OF_STOCK = "out-of-stock"

DIRECTION_IN = "in"
DIRECTION_OUT = "out"


class InventoryRecord(db.Model):
    """
    On-hand quantity of one item at one branch.

    Materialized state: quantity is only ever changed by
    ledger_service.append_entry, which writes a StockLedgerEntry in the same
    transaction. Records are never deleted; zero is a valid quantity.

    version_id guards against lost updates when two fulfillment passes touch
    the same (item_id, branch_id) row.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.UniqueConstraint("item_id", "branch_id", name="uq_inventory_item_branch"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.Index("ix_inventory_branch_item", "branch_id", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_id = db.Column(db.String(64), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_threshold = db.Column(db.Integer, nullable=False, default=10)

    # Authoritative storage in cents
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    supplier = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("inventory_records", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def status(self) -> str:
        if self.quantity <= 0:
            return STATUS_OUT_OF_STOCK
        if self.quantity <= self.reorder_threshold:
            return STATUS_LOW_STOCK
        return STATUS_IN_STOCK

    def __repr__(self) -> str:
        return f"<InventoryRecord item_id={self.item_id!r} branch_id={self.branch_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "branch_id": self.branch_id,
            "branch": self.branch.name if self.branch else None,
            "item_name": self.item_name,
            "category": self.category,
            "quantity": self.quantity,
            "reorder_threshold": self.reorder_threshold,
            "unit_price_cents": self.unit_price_cents,
            "supplier": self.supplier,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLedgerEntry(db.Model):
    """
    Append-only stock movement.

    For every (item_id, branch_id): SUM(in) - SUM(out) == InventoryRecord.quantity.
    Rows are never updated or deleted.
    """
    __tablename__ = "stock_ledger_entries"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_ledger_quantity_positive"),
        db.CheckConstraint("direction IN ('in', 'out')", name="ck_ledger_direction"),
        db.Index("ix_ledger_item_branch_occurred", "item_id", "branch_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_id = db.Column(db.String(64), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    direction = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    actor_id = db.Column(db.String(64), nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # Source document references (traceability only)
    request_id = db.Column(db.Integer, db.ForeignKey("item_requests.id"), nullable=True, index=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id"), nullable=True, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    branch = db.relationship("Branch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "branch_id": self.branch_id,
            "branch": self.branch.name if self.branch else None,
            "direction": self.direction,
            "quantity": self.quantity,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "actor_id": self.actor_id,
            "reason": self.reason,
            "notes": self.notes,
            "request_id": self.request_id,
            "transfer_id": self.transfer_id,
            "purchase_order_id": self.purchase_order_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
