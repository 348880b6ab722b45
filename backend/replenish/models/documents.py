from __future__ import annotations

from ..extensions import db
from replenish.time_utils import to_utc_z


class ItemRequest(db.Model):
    """
    A branch's request for replenishment.

    LIFECYCLE:
    1. pending: created by branch staff
    2. approved: reviewer approved (terminal; may trigger fulfillment)
    3. rejected: reviewer rejected with a reason (terminal)

    IMMUTABLE: once reviewed, branch, number and lines never change.
    Only notes and fulfillment bookkeeping may be updated afterwards.
    """
    __tablename__ = "item_requests"
    __table_args__ = (
        db.Index("ix_item_requests_branch_status", "branch_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_number = db.Column(db.String(32), nullable=False, unique=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    # pending, approved, rejected
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    requested_by = db.Column(db.String(64), nullable=False)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    reviewed_by = db.Column(db.String(64), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    # Snapshot of the plan applied on approval, and how it went:
    # none, applied, partial, failed
    fulfillment_plan = db.Column(db.JSON, nullable=True)
    fulfillment_status = db.Column(db.String(16), nullable=False, default="none")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch")
    lines = db.relationship(
        "ItemRequestLine",
        back_populates="request",
        order_by="ItemRequestLine.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ItemRequest id={self.id} number={self.request_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_number": self.request_number,
            "branch_id": self.branch_id,
            "branch": self.branch.name if self.branch else None,
            "status": self.status,
            "items": [line.to_dict() for line in self.lines],
            "total_amount_cents": self.total_amount_cents,
            "requested_by": self.requested_by,
            "requested_at": to_utc_z(self.requested_at),
            "reviewed_by": self.reviewed_by,
            "reviewed_at": to_utc_z(self.reviewed_at) if self.reviewed_at else None,
            "notes": self.notes,
            "rejection_reason": self.rejection_reason,
            "fulfillment_plan": self.fulfillment_plan,
            "fulfillment_status": self.fulfillment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ItemRequestLine(db.Model):
    __tablename__ = "item_request_lines"
    __table_args__ = (
        db.CheckConstraint("requested_quantity > 0", name="ck_request_line_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("item_requests.id"), nullable=False, index=True)

    item_id = db.Column(db.String(64), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)
    requested_quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.Text, nullable=True)

    request = db.relationship("ItemRequest", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "requested_quantity": self.requested_quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "reason": self.reason,
        }


class Transfer(db.Model):
    """
    Branch-to-branch stock movement.

    Transfers created by fulfillment are born completed: the out entry at
    from_branch and the in entry at to_branch are written in the same
    transaction as the header, one pair per line, equal quantities.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.CheckConstraint("from_branch_id <> to_branch_id", name="ck_transfers_distinct_branches"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_number = db.Column(db.String(32), nullable=False, unique=True)

    from_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    to_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    # pending, completed, cancelled
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    request_id = db.Column(db.Integer, db.ForeignKey("item_requests.id"), nullable=True, index=True)

    initiated_by = db.Column(db.String(64), nullable=False)
    initiated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_by = db.Column(db.String(64), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    from_branch = db.relationship("Branch", foreign_keys=[from_branch_id])
    to_branch = db.relationship("Branch", foreign_keys=[to_branch_id])
    lines = db.relationship(
        "TransferLine",
        back_populates="transfer",
        order_by="TransferLine.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_number": self.transfer_number,
            "from_branch_id": self.from_branch_id,
            "from_branch": self.from_branch.name if self.from_branch else None,
            "to_branch_id": self.to_branch_id,
            "to_branch": self.to_branch.name if self.to_branch else None,
            "status": self.status,
            "request_id": self.request_id,
            "initiated_by": self.initiated_by,
            "initiated_at": to_utc_z(self.initiated_at),
            "completed_by": self.completed_by,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "notes": self.notes,
            "items": [line.to_dict() for line in self.lines],
        }


class TransferLine(db.Model):
    __tablename__ = "transfer_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transfer_line_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id"), nullable=False, index=True)

    item_id = db.Column(db.String(64), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)

    transfer = db.relationship("Transfer", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_id": self.transfer_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }


class PurchaseOrder(db.Model):
    """
    Supplier-bound order for the branch that needs the stock.

    LIFECYCLE:
    1. requested: drafted, not yet sent to the supplier
    2. ordered: sent to the supplier
    3. received: goods arrived
    4. cancelled: abandoned before receipt

    stock_posted records whether the line quantities have been added to
    inventory already (fulfillment with immediate receipt posts on creation).
    """
    __tablename__ = "purchase_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    supplier = db.Column(db.String(255), nullable=False)

    # requested, ordered, received, cancelled
    status = db.Column(db.String(16), nullable=False, default="requested", index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    request_id = db.Column(db.Integer, db.ForeignKey("item_requests.id"), nullable=True, index=True)

    requested_by = db.Column(db.String(64), nullable=False)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    ordered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    stock_posted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch")
    lines = db.relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        order_by="PurchaseOrderLine.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "supplier": self.supplier,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "branch_id": self.branch_id,
            "branch": self.branch.name if self.branch else None,
            "request_id": self.request_id,
            "requested_by": self.requested_by,
            "requested_at": to_utc_z(self.requested_at),
            "ordered_at": to_utc_z(self.ordered_at) if self.ordered_at else None,
            "received_at": to_utc_z(self.received_at) if self.received_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "notes": self.notes,
            "stock_posted": self.stock_posted,
            "items": [line.to_dict() for line in self.lines],
        }


class PurchaseOrderLine(db.Model):
    __tablename__ = "purchase_order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_po_line_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)

    item_id = db.Column(db.String(64), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)

    purchase_order = db.relationship("PurchaseOrder", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }


class DocumentSequence(db.Model):
    """
    Atomic document sequences per (document_type, period).

    WHY: Prevent collisions when generating request, transfer and
    purchase order numbers concurrently.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "period", name="uq_doc_sequences_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    period = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
