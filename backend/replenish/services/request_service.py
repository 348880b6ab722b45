# Overview: Request store for item requests; creation, lookup and listing.

"""
Item Request Service

LIFECYCLE:
1. pending: created here
2. approved / rejected: set only by approval_service.review_request

There is deliberately no update function in this module: after creation a
request changes only through review.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import ItemRequest, ItemRequestLine
from ..time_utils import utcnow
from .branch_service import resolve_branch
from .concurrency import run_with_retry
from .document_service import DOCUMENT_TYPE_REQUEST, next_document_number

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
REQUEST_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

PRIORITY_HIGH = "high"
PRIORITY_NORMAL = "normal"
HIGH_PRIORITY_MARKERS = ("urgent", "out of stock")


def _int_field(line: dict, key: str, *, index: int, minimum: int) -> int:
    value = line.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"items[{index}].{key} must be an integer")
    if value < minimum:
        raise ValidationError(f"items[{index}].{key} must be at least {minimum}")
    return value


def _build_lines(lines: list[dict]) -> list[ItemRequestLine]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError("Items array is required and cannot be empty")

    built = []
    seen_item_ids = set()
    for index, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"items[{index}] must be an object")

        item_id = str(line.get("item_id") or "").strip()
        item_name = str(line.get("item_name") or "").strip()
        if not item_id:
            raise ValidationError(f"items[{index}].item_id is required")
        if not item_name:
            raise ValidationError(f"items[{index}].item_name is required")
        if item_id in seen_item_ids:
            raise ValidationError(f"Item {item_id!r} appears more than once")
        seen_item_ids.add(item_id)

        quantity = _int_field(line, "requested_quantity", index=index, minimum=1)
        unit_price_cents = _int_field(line, "unit_price_cents", index=index, minimum=0)

        built.append(
            ItemRequestLine(
                item_id=item_id,
                item_name=item_name,
                requested_quantity=quantity,
                unit_price_cents=unit_price_cents,
                total_price_cents=quantity * unit_price_cents,
                reason=(line.get("reason") or None),
            )
        )
    return built


def create_request(
    *,
    branch,
    lines: list[dict],
    requested_by: str,
    notes: str | None = None,
) -> ItemRequest:
    """
    Create a pending item request.

    Args:
        branch: Branch id, name or code of the requesting branch
        lines: [{item_id, item_name, requested_quantity, unit_price_cents, reason?}]
        requested_by: Actor id of the requester
        notes: Optional free text

    Returns:
        ItemRequest: committed, status pending, with a fresh REQ-<year>-<seq> number

    Raises:
        ValidationError: missing or malformed input
        NotFoundError: unknown branch
    """
    if not requested_by:
        raise ValidationError("requested_by is required")

    def _op():
        branch_row = resolve_branch(branch)
        built_lines = _build_lines(lines)

        request_number = next_document_number(document_type=DOCUMENT_TYPE_REQUEST)

        item_request = ItemRequest(
            request_number=request_number,
            branch_id=branch_row.id,
            status=STATUS_PENDING,
            total_amount_cents=sum(line.total_price_cents for line in built_lines),
            requested_by=requested_by,
            requested_at=utcnow(),
            notes=notes or None,
            lines=built_lines,
        )
        db.session.add(item_request)
        db.session.commit()
        return item_request

    return run_with_retry(_op)


def get_request(request_id: int) -> ItemRequest:
    item_request = db.session.get(ItemRequest, request_id)
    if not item_request:
        raise NotFoundError(f"Item request {request_id} not found")
    return item_request


def get_request_by_number(request_number: str) -> ItemRequest | None:
    return db.session.query(ItemRequest).filter_by(request_number=request_number).first()


def list_requests(*, branch_id: int | None = None, status: str | None = None) -> list[ItemRequest]:
    q = db.session.query(ItemRequest)
    if branch_id is not None:
        q = q.filter(ItemRequest.branch_id == branch_id)
    if status:
        if status not in REQUEST_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(REQUEST_STATUSES)}")
        q = q.filter(ItemRequest.status == status)
    return q.order_by(ItemRequest.requested_at.desc(), ItemRequest.id.desc()).all()


def request_priority(item_request: ItemRequest) -> str:
    """High when any line's reason mentions urgency or an out-of-stock shelf."""
    for line in item_request.lines:
        reason = (line.reason or "").lower()
        if any(marker in reason for marker in HIGH_PRIORITY_MARKERS):
            return PRIORITY_HIGH
    return PRIORITY_NORMAL
