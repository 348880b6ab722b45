# backend/replenish/routes/purchase_orders.py
"""
Purchase order API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from replenish.decorators import require_actor, require_permission
from replenish.errors import ReplenishError
from replenish.extensions import db
from replenish.services import purchase_order_service
from replenish.services.branch_service import resolve_branch
from replenish.services.identity_service import ensure_branch_access, visible_branch_id


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.route("", methods=["GET"])
@require_actor
@require_permission("VIEW_DOCUMENTS")
def list_purchase_orders():
    """
    List purchase orders, newest first.

    Query params:
        branch: receiving branch (scoped actors: own branch only)
        status: requested | ordered | received | cancelled
        request_id: originating item request
    """
    try:
        branch_id = visible_branch_id(g.actor, request.args.get("branch"))
        orders = purchase_order_service.list_purchase_orders(
            branch_id=branch_id,
            status=request.args.get("status"),
            request_id=request.args.get("request_id", type=int),
        )
        return jsonify([o.to_dict() for o in orders]), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to list purchase orders")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.route("", methods=["POST"])
@require_actor
@require_permission("MANAGE_PURCHASE_ORDERS")
def create_purchase_order():
    """
    Create a manual purchase order (status requested).

    Request body:
    {
        "branch": int | str (optional for branch-scoped actors),
        "supplier": str,
        "items": [{"item_id": str, "item_name": str, "quantity": int, "unit_price_cents": int}],
        "notes": str (optional)
    }

    Returns:
        201: Purchase order created
        400: Invalid request
        403: Branch not accessible
    """
    data = request.get_json(silent=True) or {}

    try:
        branch = resolve_branch(data.get("branch") or g.actor.branch)
        ensure_branch_access(g.actor, branch.id)

        order = purchase_order_service.create_purchase_order(
            branch=branch.id,
            supplier=data.get("supplier"),
            lines=data.get("items"),
            requested_by=g.actor.id,
            notes=data.get("notes"),
        )
        return jsonify(order.to_dict()), 201
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.route("/<int:order_id>", methods=["GET"])
@require_actor
@require_permission("VIEW_DOCUMENTS")
def get_purchase_order(order_id: int):
    try:
        order = purchase_order_service.get_purchase_order(order_id)
        ensure_branch_access(g.actor, order.branch_id)
        return jsonify(order.to_dict()), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to load purchase order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.route("/<int:order_id>/status", methods=["POST"])
@require_actor
@require_permission("MANAGE_PURCHASE_ORDERS")
def update_purchase_order_status(order_id: int):
    """
    Move a purchase order to a new status.

    Request body:
    {
        "status": "ordered" | "received" | "cancelled"
    }

    Returns:
        200: Updated purchase order
        400: Unknown status
        403: Branch not accessible
        404: Purchase order not found
        409: Transition not allowed
    """
    data = request.get_json(silent=True) or {}

    try:
        order = purchase_order_service.get_purchase_order(order_id)
        ensure_branch_access(g.actor, order.branch_id)

        order = purchase_order_service.update_purchase_order_status(
            order_id,
            data.get("status"),
            actor_id=g.actor.id,
        )
        return jsonify(order.to_dict()), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update purchase order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500
