# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View branch quantities, stock status and ledger entries",
        PermissionCategory.INVENTORY,
    ),
    (
        "MOVE_STOCK",
        "Move Stock",
        "Record direct stock-in and stock-out movements",
        PermissionCategory.INVENTORY,
    ),
]


# -- REQUESTS --

REQUEST_PERMISSIONS = [
    (
        "VIEW_ITEM_REQUESTS",
        "View Item Requests",
        "View replenishment requests",
        PermissionCategory.REQUESTS,
    ),
    (
        "CREATE_ITEM_REQUESTS",
        "Create Item Requests",
        "Submit replenishment requests for a branch",
        PermissionCategory.REQUESTS,
    ),
    (
        "REVIEW_ITEM_REQUESTS",
        "Review Item Requests",
        "Approve or reject requests and trigger fulfillment",
        PermissionCategory.REQUESTS,
    ),
]


# -- DOCUMENTS --

DOCUMENT_PERMISSIONS = [
    (
        "VIEW_DOCUMENTS",
        "View Documents",
        "View transfers and purchase orders",
        PermissionCategory.DOCUMENTS,
    ),
    (
        "MANAGE_PURCHASE_ORDERS",
        "Manage Purchase Orders",
        "Move purchase orders through ordered, received and cancelled",
        PermissionCategory.DOCUMENTS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "MANAGE_BRANCHES",
        "Manage Branches",
        "Register branches in the branch directory",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + REQUEST_PERMISSIONS
    + DOCUMENT_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
