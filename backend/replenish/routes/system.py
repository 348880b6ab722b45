# backend/replenish/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether the branch directory has been
seeded, for deployment debugging.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Branch, InventoryRecord, ItemRequest
from replenish.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        branch_count = db.session.query(Branch).count()
        record_count = db.session.query(InventoryRecord).count()
        request_count = db.session.query(ItemRequest).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "branches": branch_count,
                "inventory_records": record_count,
                "item_requests": request_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_branch_directory_health(database_health: dict) -> dict:
    """Degraded when the database is up but no branch has been registered yet."""
    if database_health["status"] != "healthy":
        return {"status": "unhealthy", "error": "Database unavailable"}
    if database_health["details"]["branches"] == 0:
        return {"status": "degraded", "warning": "No branches registered; run `flask system init`"}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unavailable
    """
    start_time = time.time()

    database_health = check_database_health()
    branch_health = check_branch_directory_health(database_health)

    all_checks = [database_health, branch_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "branch_directory": branch_health,
        }
    }

    return response, http_status
