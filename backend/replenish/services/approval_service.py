# Overview: Review of pending item requests; the only path out of the pending state.

"""
Approval Service

STATE MACHINE:
    pending --approve--> approved   (optionally followed by fulfillment)
    pending --reject---> rejected   (rejection_reason required)
    approved / rejected are terminal; a second review is a ConflictError.

ORDER OF CHECKS:
Everything that can refuse a review (decision, existence, authorization,
state, rejection reason, plan shape) is checked before the first write, so a
refused review leaves the request exactly as it was.

The decision commits on its own. Fulfillment runs afterwards in its own
transaction and its outcome never reverses the approval.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ..errors import ConflictError, ReplenishError, ValidationError
from ..extensions import db
from ..models import ItemRequest
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .fulfillment_service import FulfillmentReport, execute_fulfillment, parse_fulfillment_plan
from .identity_service import Actor, ensure_branch_access, require_permission
from .request_service import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED, get_request

DECISION_APPROVE = "approve"
DECISION_REJECT = "reject"
DECISIONS = (DECISION_APPROVE, DECISION_REJECT)


@dataclass
class ReviewResult:
    request: ItemRequest
    fulfillment_report: Optional[FulfillmentReport] = None

    def to_dict(self) -> dict:
        data = {"request": self.request.to_dict()}
        if self.fulfillment_report is not None:
            data["fulfillment_report"] = self.fulfillment_report.to_dict()
        return data


def merge_notes(existing: str | None, added: str | None) -> str | None:
    """Append review notes to whatever the requester wrote; never overwrite."""
    added = (added or "").strip()
    if not added:
        return existing
    if not existing:
        return added
    return f"{existing}\n{added}"


def review_request(
    request_id: int,
    actor: Actor,
    decision: str,
    *,
    notes: str | None = None,
    rejection_reason: str | None = None,
    fulfillment_plan=None,
) -> ReviewResult:
    """
    Approve or reject a pending request.

    Args:
        request_id: ItemRequest id
        actor: reviewing Actor (needs REVIEW_ITEM_REQUESTS; scoped roles only
            for their own branch)
        decision: "approve" or "reject"
        notes: appended to the request's notes
        rejection_reason: required (non-blank) when rejecting
        fulfillment_plan: optional list of plan entries, applied on approve

    Returns:
        ReviewResult with the reviewed request and, when a plan was applied,
        the fulfillment report

    Raises:
        ValidationError, NotFoundError, AuthorizationError, ConflictError,
        StorageError
    """
    decision = (decision or "").strip().lower()
    if decision not in DECISIONS:
        raise ValidationError(f"decision must be one of: {', '.join(DECISIONS)}")

    item_request = get_request(request_id)

    require_permission(actor, "REVIEW_ITEM_REQUESTS")
    ensure_branch_access(actor, item_request.branch_id)

    if item_request.status != STATUS_PENDING:
        raise ConflictError(f"Request {item_request.request_number} has already been reviewed")

    reason = (rejection_reason or "").strip()
    if decision == DECISION_REJECT and not reason:
        raise ValidationError("rejection_reason is required when rejecting a request")

    entries = []
    if decision == DECISION_APPROVE:
        entries = parse_fulfillment_plan(item_request, fulfillment_plan)

    new_status = STATUS_APPROVED if decision == DECISION_APPROVE else STATUS_REJECTED

    def _op():
        locked = lock_for_update(db.session.query(ItemRequest).filter_by(id=request_id)).first()
        values = {
            ItemRequest.status: new_status,
            ItemRequest.reviewed_by: actor.id,
            ItemRequest.reviewed_at: utcnow(),
            ItemRequest.notes: merge_notes(locked.notes if locked else None, notes),
        }
        if decision == DECISION_REJECT:
            values[ItemRequest.rejection_reason] = reason

        # Compare-and-set: only one reviewer can move the row out of pending.
        updated = (
            db.session.query(ItemRequest)
            .filter(ItemRequest.id == request_id, ItemRequest.status == STATUS_PENDING)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            raise ConflictError(f"Request {item_request.request_number} has already been reviewed")
        db.session.commit()

    try:
        run_with_retry(_op)
    except ReplenishError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Request %s %s by %s", item_request.request_number, new_status, actor.id
    )

    report = None
    if entries:
        report = execute_fulfillment(request_id, entries, actor_id=actor.id)
        current_app.logger.info(
            "Request %s fulfillment %s: %d applied, %d failed",
            item_request.request_number,
            report.status,
            len(report.applied),
            len(report.failed),
        )

    db.session.refresh(item_request)
    return ReviewResult(request=item_request, fulfillment_report=report)
