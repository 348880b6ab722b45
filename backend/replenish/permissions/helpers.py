# Overview: Lookups over the permission table used by decorators, role grants and the CLI.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS

_FIELDS = ("code", "name", "description", "category")

# code -> definition dict, in declaration order
PERMISSIONS_BY_CODE = {perm[0]: dict(zip(_FIELDS, perm)) for perm in PERMISSION_DEFINITIONS}

PERMISSION_CATEGORIES = (
    PermissionCategory.INVENTORY,
    PermissionCategory.REQUESTS,
    PermissionCategory.DOCUMENTS,
    PermissionCategory.SYSTEM,
)


def get_all_permission_codes():
    """Every permission code; admins are granted exactly this list."""
    return list(PERMISSIONS_BY_CODE)


def get_permission_definition(code):
    """
    Return {code, name, description, category} for a permission, or None.

    A copy is returned so callers cannot alter the shared table.
    """
    definition = PERMISSIONS_BY_CODE.get(code)
    return dict(definition) if definition else None


def get_permission_codes_in_category(category):
    """Codes in one category (INVENTORY, REQUESTS, DOCUMENTS, SYSTEM)."""
    return [code for code, definition in PERMISSIONS_BY_CODE.items() if definition["category"] == category]


def validate_permission_code(code):
    """True when `code` names a permission that routes and roles may refer to."""
    return code in PERMISSIONS_BY_CODE
