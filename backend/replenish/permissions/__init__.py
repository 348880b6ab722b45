# Overview: Permission system package.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    REQUEST_PERMISSIONS,
    DOCUMENT_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import (
    ROLE_ADMIN,
    ROLE_BRANCH_MANAGER,
    ROLE_STAFF,
    KNOWN_ROLES,
    BRANCH_SCOPED_ROLES,
    DEFAULT_ROLE_PERMISSIONS,
    role_has_permission,
    is_branch_scoped,
)
from .helpers import (
    get_all_permission_codes,
    PERMISSIONS_BY_CODE,
    PERMISSION_CATEGORIES,
    get_permission_codes_in_category,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "REQUEST_PERMISSIONS",
    "DOCUMENT_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "ROLE_ADMIN",
    "ROLE_BRANCH_MANAGER",
    "ROLE_STAFF",
    "KNOWN_ROLES",
    "BRANCH_SCOPED_ROLES",
    "DEFAULT_ROLE_PERMISSIONS",
    "role_has_permission",
    "is_branch_scoped",
    "get_all_permission_codes",
    "PERMISSIONS_BY_CODE",
    "PERMISSION_CATEGORIES",
    "get_permission_codes_in_category",
    "get_permission_definition",
    "validate_permission_code",
]
