# backend/replenish/routes/item_requests.py
"""
Item request API routes.

Branches submit requests; reviewers approve (optionally with a fulfillment
plan) or reject them.
"""
from flask import Blueprint, current_app, g, jsonify, request

from replenish.decorators import require_actor, require_permission
from replenish.errors import ReplenishError
from replenish.extensions import db
from replenish.services import approval_service, fulfillment_service, request_service
from replenish.services.branch_service import resolve_branch
from replenish.services.identity_service import ensure_branch_access, visible_branch_id


item_requests_bp = Blueprint("item_requests", __name__, url_prefix="/api/item-requests")


def _request_payload(item_request) -> dict:
    return {**item_request.to_dict(), "priority": request_service.request_priority(item_request)}


@item_requests_bp.route("", methods=["POST"])
@require_actor
@require_permission("CREATE_ITEM_REQUESTS")
def create_item_request():
    """
    Create a pending item request.

    Request body:
    {
        "branch": int | str (optional for branch-scoped actors),
        "items": [
            {"item_id": str, "item_name": str, "requested_quantity": int,
             "unit_price_cents": int, "reason": str (optional)}
        ],
        "notes": str (optional)
    }

    Returns:
        201: Request created
        400: Invalid request
        403: Branch not accessible
    """
    data = request.get_json(silent=True) or {}

    try:
        branch = resolve_branch(data.get("branch") or g.actor.branch)
        ensure_branch_access(g.actor, branch.id)

        item_request = request_service.create_request(
            branch=branch.id,
            lines=data.get("items"),
            requested_by=g.actor.id,
            notes=data.get("notes"),
        )
        return jsonify(_request_payload(item_request)), 201

    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create item request")
        return jsonify({"error": "Internal server error"}), 500


@item_requests_bp.route("", methods=["GET"])
@require_actor
@require_permission("VIEW_ITEM_REQUESTS")
def list_item_requests():
    """
    List item requests, newest first.

    Query params:
        branch: branch id, name or code (scoped actors: own branch only)
        status: pending | approved | rejected
    """
    try:
        branch_id = visible_branch_id(g.actor, request.args.get("branch"))
        requests = request_service.list_requests(branch_id=branch_id, status=request.args.get("status"))
        return jsonify([_request_payload(r) for r in requests]), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to list item requests")
        return jsonify({"error": "Internal server error"}), 500


@item_requests_bp.route("/<int:request_id>", methods=["GET"])
@require_actor
@require_permission("VIEW_ITEM_REQUESTS")
def get_item_request(request_id: int):
    try:
        item_request = request_service.get_request(request_id)
        ensure_branch_access(g.actor, item_request.branch_id)
        return jsonify(_request_payload(item_request)), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to load item request %s", request_id)
        return jsonify({"error": "Internal server error"}), 500


@item_requests_bp.route("/<int:request_id>/review", methods=["POST"])
@require_actor
def review_item_request(request_id: int):
    """
    Approve or reject a pending request.

    Request body:
    {
        "decision": "approve" | "reject",
        "notes": str (optional),
        "rejection_reason": str (required to reject),
        "fulfillment_plan": [...] (optional, approve only)
    }

    Returns:
        200: {request, fulfillment_report?}
        400: Invalid decision, missing rejection reason or malformed plan
        403: Not allowed to review this request
        404: Request not found
        409: Already reviewed
        503: Storage unavailable
    """
    data = request.get_json(silent=True) or {}

    try:
        result = approval_service.review_request(
            request_id,
            g.actor,
            data.get("decision") or data.get("action"),
            notes=data.get("notes"),
            rejection_reason=data.get("rejection_reason"),
            fulfillment_plan=data.get("fulfillment_plan"),
        )
        payload = result.to_dict()
        payload["request"]["priority"] = request_service.request_priority(result.request)
        return jsonify(payload), 200

    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to review item request %s", request_id)
        return jsonify({"error": "Internal server error"}), 500


@item_requests_bp.route("/<int:request_id>/suggested-plan", methods=["GET"])
@require_actor
@require_permission("REVIEW_ITEM_REQUESTS")
def suggested_plan(request_id: int):
    """Greedy fulfillment plan built from current branch availability."""
    try:
        item_request = request_service.get_request(request_id)
        ensure_branch_access(g.actor, item_request.branch_id)
        return jsonify({
            "request_id": item_request.id,
            "request_number": item_request.request_number,
            "fulfillment_plan": fulfillment_service.suggest_fulfillment_plan(item_request),
        }), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to suggest plan for item request %s", request_id)
        return jsonify({"error": "Internal server error"}), 500
