# backend/replenish/routes/transfers.py
"""
Branch-to-branch transfer API routes (read only; transfers are created by fulfillment).
"""
from flask import Blueprint, current_app, g, jsonify, request

from replenish.decorators import require_actor, require_permission
from replenish.errors import AuthorizationError, ReplenishError
from replenish.extensions import db
from replenish.services import transfer_service
from replenish.services.identity_service import actor_branch_id, visible_branch_id


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["GET"])
@require_actor
@require_permission("VIEW_DOCUMENTS")
def list_transfers():
    """
    List transfers touching a branch, newest first.

    Query params:
        branch: source or destination branch (scoped actors: own branch only)
        request_id: originating item request
        status: pending | completed | cancelled
    """
    try:
        branch_id = visible_branch_id(g.actor, request.args.get("branch"))
        transfers = transfer_service.list_transfers(
            branch_id=branch_id,
            request_id=request.args.get("request_id", type=int),
            status=request.args.get("status"),
        )
        return jsonify([t.to_dict() for t in transfers]), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to list transfers")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@require_actor
@require_permission("VIEW_DOCUMENTS")
def get_transfer(transfer_id: int):
    try:
        transfer = transfer_service.get_transfer(transfer_id)
        scoped_branch_id = actor_branch_id(g.actor)
        if scoped_branch_id is not None and scoped_branch_id not in (
            transfer.from_branch_id,
            transfer.to_branch_id,
        ):
            raise AuthorizationError("Actor is not authorized for this branch")
        return jsonify(transfer.to_dict()), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to load transfer %s", transfer_id)
        return jsonify({"error": "Internal server error"}), 500
