# Overview: Built-in roles, their scope and default permission grants.

from .helpers import get_all_permission_codes

ROLE_ADMIN = "admin"
ROLE_BRANCH_MANAGER = "branch_manager"
ROLE_STAFF = "staff"

KNOWN_ROLES = (ROLE_ADMIN, ROLE_BRANCH_MANAGER, ROLE_STAFF)

# Roles whose authority is limited to the actor's own branch.
BRANCH_SCOPED_ROLES = frozenset({ROLE_BRANCH_MANAGER, ROLE_STAFF})

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: get_all_permission_codes(),
    ROLE_BRANCH_MANAGER: [
        "VIEW_INVENTORY",
        "MOVE_STOCK",
        "VIEW_ITEM_REQUESTS",
        "CREATE_ITEM_REQUESTS",
        "REVIEW_ITEM_REQUESTS",
        "VIEW_DOCUMENTS",
        "MANAGE_PURCHASE_ORDERS",
    ],
    ROLE_STAFF: [
        "VIEW_INVENTORY",
        "VIEW_ITEM_REQUESTS",
        "CREATE_ITEM_REQUESTS",
        "VIEW_DOCUMENTS",
    ],
}


def role_has_permission(role: str | None, permission_code: str) -> bool:
    return permission_code in DEFAULT_ROLE_PERMISSIONS.get(role or "", ())


def is_branch_scoped(role: str | None) -> bool:
    return role in BRANCH_SCOPED_ROLES
