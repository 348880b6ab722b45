# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import ValidationError
from .permissions import validate_permission_code
from .services.identity_service import actor_from_headers


def _is_authenticated() -> bool:
    return getattr(g, "actor", None) is not None


def require_actor(f):
    """
    Require a forwarded identity and establish the actor context.

    Sets g.actor to the Actor built from the X-Actor-* headers.

    Returns 401 when no identity was forwarded and 400 when it is malformed
    (unknown role, scoped role without a branch).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            actor = actor_from_headers(request.headers)
        except ValidationError as e:
            return jsonify(e.to_dict()), e.status_code

        if actor is None:
            return jsonify({"error": "Authentication required"}), 401

        g.actor = actor
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require the actor's role to grant a specific permission."""
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not g.actor.has_permission(permission_code):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": f"Role {g.actor.role!r} lacks permission {permission_code}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
