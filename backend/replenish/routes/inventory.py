# Overview: Flask API routes for the inventory read model; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from replenish.decorators import require_actor, require_permission
from replenish.errors import ReplenishError, ValidationError
from replenish.extensions import db
from replenish.services import inventory_service
from replenish.services.branch_service import resolve_branch
from replenish.services.identity_service import visible_branch_id


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_actor
@require_permission("VIEW_INVENTORY")
def list_inventory():
    """
    List inventory records with derived stock status.

    Query params:
        branch: branch id, name or code (scoped actors: own branch only)
        status: in-stock | low-stock | out-of-stock
    """
    try:
        branch_id = visible_branch_id(g.actor, request.args.get("branch"))
        records = inventory_service.list_records(branch_id, status=request.args.get("status"))
        return jsonify([record.to_dict() for record in records]), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to list inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/branch-stocks")
@require_actor
@require_permission("VIEW_INVENTORY")
def branch_stocks():
    """
    Availability of items at other branches, for building fulfillment plans.

    Query params:
        item_ids: comma-separated item ids (REQUIRED)
        exclude_branch: branch to leave out, normally the requesting branch
    """
    try:
        item_ids = [i.strip() for i in (request.args.get("item_ids") or "").split(",") if i.strip()]
        if not item_ids:
            raise ValidationError("item_ids is required")

        exclude = request.args.get("exclude_branch")
        exclude_branch_id = resolve_branch(exclude).id if exclude else None

        records = inventory_service.get_branch_stocks(item_ids, exclude_branch_id=exclude_branch_id)
        return jsonify([
            {
                "item_id": record.item_id,
                "item_name": record.item_name,
                "branch_id": record.branch_id,
                "branch": record.branch.name if record.branch else None,
                "quantity": record.quantity,
                "status": record.status,
            }
            for record in records
        ]), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to load branch stocks")
        return jsonify({"error": "Internal server error"}), 500
