# Overview: Actor resolution and branch-scope authorization.

"""
Identity is owned by an upstream provider (gateway / SSO). It forwards the
resolved identity on each call as headers:

    X-Actor-Id      stable user id (required)
    X-Actor-Role    admin | branch_manager | staff (required)
    X-Actor-Branch  branch id, name or code (required for branch-scoped roles)
    X-Actor-Name    display name (optional)

This module turns that into an Actor and answers the two authorization
questions the core asks: "may this role do X?" and "may this actor touch
branch B?".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from replenish.errors import AuthorizationError, NotFoundError, ValidationError
from replenish.permissions import KNOWN_ROLES, is_branch_scoped, role_has_permission
from replenish.services.branch_service import resolve_branch

HEADER_ACTOR_ID = "X-Actor-Id"
HEADER_ACTOR_ROLE = "X-Actor-Role"
HEADER_ACTOR_BRANCH = "X-Actor-Branch"
HEADER_ACTOR_NAME = "X-Actor-Name"


@dataclass(frozen=True)
class Actor:
    id: str
    role: str
    branch: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_branch_scoped(self) -> bool:
        return is_branch_scoped(self.role)

    def has_permission(self, permission_code: str) -> bool:
        return role_has_permission(self.role, permission_code)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "branch": self.branch,
            "display_name": self.display_name,
        }


def actor_from_headers(headers: Mapping[str, str]) -> Actor | None:
    """
    Build an Actor from forwarded identity headers.

    Returns None when no identity was forwarded (caller answers 401).
    Raises ValidationError for a malformed identity.
    """
    actor_id = (headers.get(HEADER_ACTOR_ID) or "").strip()
    role = (headers.get(HEADER_ACTOR_ROLE) or "").strip().lower()
    if not actor_id or not role:
        return None

    if role not in KNOWN_ROLES:
        raise ValidationError(f"Unknown role {role!r}")

    branch = (headers.get(HEADER_ACTOR_BRANCH) or "").strip() or None
    if is_branch_scoped(role) and not branch:
        raise ValidationError(f"Role {role!r} requires {HEADER_ACTOR_BRANCH}")

    return Actor(
        id=actor_id,
        role=role,
        branch=branch,
        display_name=(headers.get(HEADER_ACTOR_NAME) or "").strip() or None,
    )


def require_permission(actor: Actor, permission_code: str) -> None:
    if not actor.has_permission(permission_code):
        raise AuthorizationError(f"Role {actor.role!r} lacks permission {permission_code}")


def actor_branch_id(actor: Actor) -> int | None:
    """Canonical branch id of a scoped actor; None for unscoped roles."""
    if not actor.is_branch_scoped:
        return None
    try:
        return resolve_branch(actor.branch).id
    except (NotFoundError, ValidationError) as exc:
        raise AuthorizationError(f"Actor branch {actor.branch!r} is not a known branch") from exc


def ensure_branch_access(actor: Actor, branch_id: int) -> None:
    """Scoped actors may only act on their own branch; unscoped roles pass."""
    scoped_branch_id = actor_branch_id(actor)
    if scoped_branch_id is not None and scoped_branch_id != branch_id:
        raise AuthorizationError("Actor is not authorized for this branch")


def visible_branch_id(actor: Actor, requested_branch=None) -> int | None:
    """
    Branch filter to apply to list queries.

    Scoped actors are pinned to their own branch (asking for another is an
    AuthorizationError); unscoped actors get the requested branch or None (all).
    """
    requested_id = resolve_branch(requested_branch).id if requested_branch not in (None, "") else None
    scoped_branch_id = actor_branch_id(actor)
    if scoped_branch_id is None:
        return requested_id
    if requested_id is not None and requested_id != scoped_branch_id:
        raise AuthorizationError("Actor is not authorized for this branch")
    return scoped_branch_id
