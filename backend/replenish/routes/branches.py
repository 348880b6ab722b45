# Overview: Flask API routes for the branch directory; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from replenish.decorators import require_actor, require_permission
from replenish.errors import ReplenishError
from replenish.extensions import db
from replenish.services import branch_service


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("")
@require_actor
def list_branches():
    branches = branch_service.list_branches()
    return jsonify([branch.to_dict() for branch in branches]), 200


@branches_bp.post("")
@require_actor
@require_permission("MANAGE_BRANCHES")
def create_branch():
    data = request.get_json(silent=True) or {}
    try:
        branch = branch_service.create_branch(
            data.get("name"),
            data.get("code"),
            address=data.get("address"),
            phone=data.get("phone"),
        )
        return jsonify(branch.to_dict()), 201
    except ReplenishError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create branch")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.get("/<int:branch_id>")
@require_actor
def get_branch(branch_id: int):
    branch = branch_service.get_branch(branch_id)
    if not branch:
        return jsonify({"error": "Branch not found", "code": "NOT_FOUND"}), 404
    return jsonify(branch.to_dict()), 200
