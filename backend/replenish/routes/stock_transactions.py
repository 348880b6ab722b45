# Overview: Flask API routes for stock ledger entries; ledger reads and direct stock movements.

from flask import Blueprint, current_app, g, jsonify, request

from replenish.decorators import require_actor, require_permission
from replenish.errors import ReplenishError, ValidationError
from replenish.extensions import db
from replenish.services import inventory_service, ledger_service
from replenish.services.branch_service import resolve_branch
from replenish.services.identity_service import ensure_branch_access, visible_branch_id


stock_transactions_bp = Blueprint("stock_transactions", __name__, url_prefix="/api/stock-transactions")


@stock_transactions_bp.get("")
@require_actor
@require_permission("VIEW_INVENTORY")
def list_stock_transactions():
    """
    List ledger entries, newest first.

    Query params:
        item_id, branch, direction (in|out), request_id, limit (default 100, max 500)
    """
    try:
        branch_id = visible_branch_id(g.actor, request.args.get("branch"))
        entries = ledger_service.list_entries(
            item_id=request.args.get("item_id"),
            branch_id=branch_id,
            direction=request.args.get("direction"),
            request_id=request.args.get("request_id", type=int),
            limit=request.args.get("limit", default=100, type=int),
        )
        return jsonify([entry.to_dict() for entry in entries]), 200
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to list stock transactions")
        return jsonify({"error": "Internal server error"}), 500


@stock_transactions_bp.post("")
@require_actor
@require_permission("MOVE_STOCK")
def create_stock_transaction():
    """
    Record a direct stock-in or stock-out.

    Request body:
    {
        "item_id": str,
        "branch": int | str,
        "direction": "in" | "out",
        "quantity": int,
        "reason": str,
        "notes": str (optional),
        "item_name", "category", "reorder_threshold",
        "unit_price_cents", "supplier": only used when a stock-in creates the record
    }

    Returns:
        201: {entry, record}
        400: Invalid request or insufficient stock
        403: Branch not accessible
    """
    data = request.get_json(silent=True) or {}

    try:
        item_id = str(data.get("item_id") or "").strip()
        if not item_id:
            raise ValidationError("item_id is required")

        branch = resolve_branch(data.get("branch") or g.actor.branch)
        ensure_branch_access(g.actor, branch.id)

        entry = inventory_service.record_stock_movement(
            item_id=item_id,
            branch_id=branch.id,
            direction=data.get("direction"),
            quantity=data.get("quantity"),
            actor_id=g.actor.id,
            reason=data.get("reason"),
            notes=data.get("notes"),
            item_name=data.get("item_name"),
            category=data.get("category"),
            reorder_threshold=data.get("reorder_threshold"),
            unit_price_cents=data.get("unit_price_cents"),
            supplier=data.get("supplier"),
        )

        record = ledger_service.get_record(item_id, branch.id)
        return jsonify({
            "entry": entry.to_dict(),
            "record": record.to_dict() if record else None,
        }), 201

    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record stock movement")
        return jsonify({"error": "Internal server error"}), 500
