# backend/replenish/services/transfer_service.py
"""
Branch-to-branch transfer registry.

WHY: Every stock movement between branches is recorded as a named document
so the out entry at the source and the in entry at the destination can be
traced back to one transfer (and, when fulfillment created it, to the
originating request).

LIFECYCLE:
1. pending: reserved for manually staged transfers
2. completed: stock moved; both ledger entries written
3. cancelled: abandoned before completion

Fulfillment creates transfers directly in completed state.
"""
from __future__ import annotations

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Transfer, TransferLine
from ..models.inventory import DIRECTION_IN, DIRECTION_OUT
from ..time_utils import utcnow
from .document_service import DOCUMENT_TYPE_TRANSFER, next_document_number
from .ledger_service import append_entry, get_record, record_template

# Transfer status constants
TRANSFER_STATUS_PENDING = "pending"
TRANSFER_STATUS_COMPLETED = "completed"
TRANSFER_STATUS_CANCELLED = "cancelled"
TRANSFER_STATUSES = (TRANSFER_STATUS_PENDING, TRANSFER_STATUS_COMPLETED, TRANSFER_STATUS_CANCELLED)

TRANSFER_REASON_OUT = "Transfer Out"
TRANSFER_REASON_IN = "Transfer In"


def create_completed_transfer(
    *,
    item_id: str,
    item_name: str | None,
    quantity: int,
    unit_price_cents: int,
    from_branch_id: int,
    to_branch_id: int,
    actor_id: str,
    request_id: int | None = None,
    notes: str | None = None,
) -> Transfer:
    """
    Move stock between branches and record the completed transfer.

    Availability is checked on the locked source row before anything is
    written, so an InsufficientStockError leaves the session untouched.
    Does not commit; the caller owns the transaction.

    Raises:
        ValidationError: bad quantity/price or same source and destination
        InsufficientStockError: source holds less than quantity
    """
    if from_branch_id == to_branch_id:
        raise ValidationError("Cannot transfer to the same branch")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Transfer quantity must be a positive integer")
    if isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int) or unit_price_cents < 0:
        raise ValidationError("Transfer unit price must be a non-negative integer")

    source = get_record(item_id, from_branch_id, lock=True)
    available = source.quantity if source else 0
    if available < quantity:
        raise InsufficientStockError(
            f"Insufficient stock for item {item_id} at branch {from_branch_id}. "
            f"On-hand: {available}, requested: {quantity}",
            item_id=item_id,
            branch_id=from_branch_id,
            available=available,
            requested=quantity,
        )

    now = utcnow()
    transfer = Transfer(
        transfer_number=next_document_number(document_type=DOCUMENT_TYPE_TRANSFER),
        from_branch_id=from_branch_id,
        to_branch_id=to_branch_id,
        status=TRANSFER_STATUS_COMPLETED,
        request_id=request_id,
        initiated_by=actor_id,
        initiated_at=now,
        completed_by=actor_id,
        completed_at=now,
        notes=notes,
    )
    transfer.lines.append(
        TransferLine(
            item_id=item_id,
            item_name=item_name or source.item_name,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            total_price_cents=quantity * unit_price_cents,
        )
    )
    db.session.add(transfer)
    db.session.flush()  # Get ID

    note = f"Transfer {transfer.transfer_number}"
    append_entry(
        item_id=item_id,
        branch_id=from_branch_id,
        direction=DIRECTION_OUT,
        quantity=quantity,
        actor_id=actor_id,
        reason=TRANSFER_REASON_OUT,
        notes=note,
        request_id=request_id,
        transfer_id=transfer.id,
        occurred_at=now,
    )
    append_entry(
        item_id=item_id,
        branch_id=to_branch_id,
        direction=DIRECTION_IN,
        quantity=quantity,
        actor_id=actor_id,
        reason=TRANSFER_REASON_IN,
        notes=note,
        request_id=request_id,
        transfer_id=transfer.id,
        template=record_template(source),
        occurred_at=now,
    )

    return transfer


def get_transfer(transfer_id: int) -> Transfer:
    transfer = db.session.get(Transfer, transfer_id)
    if not transfer:
        raise NotFoundError(f"Transfer {transfer_id} not found")
    return transfer


def list_transfers(
    *,
    branch_id: int | None = None,
    request_id: int | None = None,
    status: str | None = None,
) -> list[Transfer]:
    """Transfers touching a branch (as source or destination), newest first."""
    q = db.session.query(Transfer)
    if branch_id is not None:
        q = q.filter((Transfer.from_branch_id == branch_id) | (Transfer.to_branch_id == branch_id))
    if request_id is not None:
        q = q.filter(Transfer.request_id == request_id)
    if status:
        if status not in TRANSFER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(TRANSFER_STATUSES)}")
        q = q.filter(Transfer.status == status)
    return q.order_by(Transfer.initiated_at.desc(), Transfer.id.desc()).all()
